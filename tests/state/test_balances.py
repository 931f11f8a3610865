from __future__ import annotations

import pytest

from fracrewards.state.balances import BalanceTable


def test_transfer_moves_value() -> None:
    table = BalanceTable({"alice": 100})
    assert table.transfer("alice", "vault", 60)
    assert table.get("alice") == 40
    assert table.get("vault") == 60
    assert table.total() == 100


def test_transfer_insufficient_changes_nothing() -> None:
    table = BalanceTable({"alice": 10})
    assert not table.transfer("alice", "vault", 11)
    assert table.get_all_balances() == {"alice": 10}


@pytest.mark.parametrize("amount", [-1, True, 1.0])
def test_transfer_rejects_invalid_amount(amount) -> None:
    table = BalanceTable({"alice": 10})
    assert not table.transfer("alice", "vault", amount)
    assert table.get("alice") == 10


def test_zero_balances_pruned() -> None:
    table = BalanceTable({"alice": 5})
    table.debit("alice", 5)
    assert table.get_all_balances() == {}
    with pytest.raises(ValueError):
        table.debit("alice", 1)


def test_set_rejects_negative() -> None:
    with pytest.raises(ValueError):
        BalanceTable({"alice": -1})
