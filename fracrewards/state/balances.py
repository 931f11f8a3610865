"""
Single-token balance tracking keyed by account name.

Implements BalanceTable[Account] -> Amount, plus the atomic ``transfer``
primitive the ledger service consumes.
"""

from typing import Dict


# Type aliases
Account = str  # caller identity or a named pool account (vault, reserve, treasury)
Amount = int  # Non-negative integer base units


class BalanceTable:
    """
    In-memory balance table mapping account -> amount.

    Note: this class stores balances in a plain dict. Callers that hash or
    serialize balances must sort keys explicitly.
    """

    def __init__(self, initial: Dict[Account, Amount] | None = None):
        """Initialize the table, optionally seeded with opening balances."""
        self._balances: Dict[Account, Amount] = {}
        for account, amount in (initial or {}).items():
            self.set(account, amount)

    def get(self, account: Account) -> Amount:
        """Get balance for account. Returns 0 if not found."""
        return self._balances.get(account, 0)

    def set(self, account: Account, amount: Amount) -> None:
        """
        Set balance for account.

        Raises:
            ValueError: If amount is negative
        """
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise TypeError(f"Balance must be an int: {amount!r}")
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop(account, None)
        else:
            self._balances[account] = amount

    def credit(self, account: Account, delta: Amount) -> None:
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.set(account, self.get(account) + delta)

    def debit(self, account: Account, delta: Amount) -> None:
        """
        Subtract delta from balance.

        Raises:
            ValueError: If delta is negative or insufficient balance
        """
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        current = self.get(account)
        if delta > current:
            raise ValueError(f"Insufficient balance: {current} - {delta} < 0")
        self.set(account, current - delta)

    def transfer(self, source: Account, destination: Account, amount: Amount) -> bool:
        """
        Move amount from source to destination, all or nothing.

        Returns False (and changes nothing) when the amount is invalid or the
        source cannot cover it.
        """
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            return False
        if self.get(source) < amount:
            return False
        if amount == 0 or source == destination:
            return True
        self.debit(source, amount)
        self.credit(destination, amount)
        return True

    def total(self) -> Amount:
        """Sum of all balances (conserved by transfer)."""
        return sum(self._balances.values())

    def get_all_balances(self) -> Dict[Account, Amount]:
        return dict(self._balances)

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
