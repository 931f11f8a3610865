"""
Imperative shell: service, transfer execution and snapshots
"""

from .service import RewardsLedger, system_clock
from .snapshot import LEDGER_SNAPSHOT_VERSION, LedgerSnapshot, snapshot_from_state, state_from_snapshot
from .transfers import TransferPrimitive, execute_transfers

__all__ = [
    "RewardsLedger",
    "system_clock",
    "LEDGER_SNAPSHOT_VERSION",
    "LedgerSnapshot",
    "snapshot_from_state",
    "state_from_snapshot",
    "TransferPrimitive",
    "execute_transfers",
]
