"""
Transfer execution for the ledger service.

The environment supplies a primitive ``transfer(source, destination, amount)
-> bool`` that either moves the value completely or does nothing. One ledger
operation may request several transfers (an early unstake pays the caller and
the treasury); ``execute_transfers`` runs them in order and reverses the ones
already done if a later one fails, so the operation stays all-or-nothing.
"""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from ..core.errors import TransferFailed
from ..core.types import Transfer

logger = logging.getLogger(__name__)


class TransferPrimitive(Protocol):
    def transfer(self, source: str, destination: str, amount: int) -> bool:
        ...


def execute_transfers(primitive: TransferPrimitive, transfers: Sequence[Transfer]) -> None:
    """Run *transfers* in order, or none of them.

    Raises:
        TransferFailed: a transfer was refused; earlier ones have been reversed.
    """
    done: list[Transfer] = []
    for t in transfers:
        if primitive.transfer(t.source, t.destination, t.amount):
            done.append(t)
            continue
        for prior in reversed(done):
            if not primitive.transfer(prior.destination, prior.source, prior.amount):
                logger.error(
                    "rollback of %s -> %s (%d) failed; balances are inconsistent",
                    prior.source, prior.destination, prior.amount,
                )
                raise TransferFailed(
                    f"transfer {t.source} -> {t.destination} failed and rollback did not complete"
                )
        if done:
            logger.error("rolled back %d transfer(s) after %s -> %s failed", len(done), t.source, t.destination)
        raise TransferFailed(f"transfer of {t.amount} from {t.source} to {t.destination} failed")
