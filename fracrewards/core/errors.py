"""Exception types for the rewards ledger.

Every concrete error carries a stable ``code`` equal to its class name. The
engine reports rejections by that code (``StepResult.rejection``) and
``step_or_raise()`` maps the code back to the class via ``ERROR_BY_CODE``.
"""

from __future__ import annotations


class RewardsError(Exception):
    """Base class for every rejected ledger operation."""

    code: str = "RewardsError"

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        cls.code = cls.__name__

    def __init__(self, message: str = "") -> None:
        self.message = message or self.code
        super().__init__(self.message)


# -- Categories -----------------------------------------------------------------

class LedgerValidationError(RewardsError):
    """Malformed input, rejected before any state is touched."""


class LedgerResourceError(RewardsError):
    """Not enough funds or principal to serve the request."""


class LedgerStateError(RewardsError):
    """The request is not valid in the record's current lifecycle state."""


# -- Validation -----------------------------------------------------------------

class StakeAmountTooLow(LedgerValidationError):
    pass


class InvalidLockDuration(LedgerValidationError):
    pass


class InvalidApyRate(LedgerValidationError):
    pass


class InvalidThresholds(LedgerValidationError):
    pass


class InvalidAmount(LedgerValidationError):
    pass


class InvalidVestingDuration(LedgerValidationError):
    pass


class InvalidStage(LedgerValidationError):
    pass


class InvalidIdentity(LedgerValidationError):
    pass


class InvalidActivityKind(LedgerValidationError):
    pass


class InvalidCategory(LedgerValidationError):
    pass


# -- Arithmetic -----------------------------------------------------------------

class MathOverflow(RewardsError):
    """A checked operation left its fixed-width domain."""


# -- Resources ------------------------------------------------------------------

class InsufficientRewardsPool(LedgerResourceError):
    pass


class InsufficientStakedAmount(LedgerResourceError):
    pass


class NoRewardsToClaim(LedgerResourceError):
    pass


class NoClaimableRewards(LedgerResourceError):
    pass


class TransferFailed(LedgerResourceError):
    pass


# -- State machine --------------------------------------------------------------

class StakeNotActive(LedgerStateError):
    pass


class GrantNotActive(LedgerStateError):
    pass


class NotMilestoneVesting(LedgerStateError):
    pass


class AlreadyUnlocked(LedgerStateError):
    pass


class TimeRequirementNotMet(LedgerStateError):
    pass


class MilestonesNotMet(LedgerStateError):
    pass


class PreviousStageLocked(MilestonesNotMet):
    """Stage N requires stage N-1 to be unlocked first."""


class ReferralCodeExists(LedgerStateError):
    pass


class UnknownReferralCode(LedgerStateError):
    pass


class SelfReferral(LedgerStateError):
    pass


class UnknownPosition(LedgerStateError):
    pass


class UnknownGrant(LedgerStateError):
    pass


# -- Authorization / invariants ---------------------------------------------------

class Unauthorized(RewardsError):
    """Caller identity does not own the record or lacks the admin role."""


class LedgerInvariantError(RewardsError):
    """Raised when a post-state violates one or more invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")


def _collect(cls: type[RewardsError]) -> dict[str, type[RewardsError]]:
    out: dict[str, type[RewardsError]] = {}
    for sub in cls.__subclasses__():
        out[sub.code] = sub
        out.update(_collect(sub))
    return out


ERROR_BY_CODE: dict[str, type[RewardsError]] = _collect(RewardsError)
