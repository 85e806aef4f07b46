"""Ledger collaborator: records notable actions, returns an opaque receipt.

Only ``SimulatedLedger`` ships. It mimics a remote chain: optional latency,
an injectable failure rate and ``0x``-prefixed hex receipt ids.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Protocol, Dict, Any, List, Optional, Callable
import random
import time

from pokechain.core.errors import LedgerError
from pokechain.core.logging import logger

ACTION_MINT_STARTER = "mint_starter"
ACTION_RECORD_BATTLE = "record_battle"
ACTION_BUY_CREATURE = "buy_creature"
ACTIONS = (ACTION_MINT_STARTER, ACTION_RECORD_BATTLE, ACTION_BUY_CREATURE)

@dataclass(frozen=True)
class LedgerReceipt:
    accepted: bool
    receipt_id: str = ""


class Ledger(Protocol):
    def submit(self, action_kind: str, payload: Dict[str, Any]) -> LedgerReceipt: ...


@dataclass
class SimulatedLedger:
    rng: random.Random = field(default_factory=random.Random)
    latency: float = 0.0
    failure_rate: float = 0.0
    sleep: Callable[[float], None] = time.sleep
    entries: List[Dict[str, Any]] = field(default_factory=list)

    def _receipt_id(self) -> str:
        return "0x" + "".join(f"{self.rng.randrange(256):02x}" for _ in range(32))

    def submit(self, action_kind: str, payload: Dict[str, Any]) -> LedgerReceipt:
        if action_kind not in ACTIONS:
            raise LedgerError(action_kind, "unknown action")
        if self.latency > 0:
            self.sleep(self.latency)
        if self.failure_rate > 0 and self.rng.random() < self.failure_rate:
            logger.debug("LedgerSimulatedReject", action=action_kind)
            return LedgerReceipt(accepted=False)
        receipt = LedgerReceipt(accepted=True, receipt_id=self._receipt_id())
        self.entries.append({"action": action_kind, "payload": dict(payload), "receipt": receipt.receipt_id})
        logger.debug("LedgerRecorded", action=action_kind, receipt=receipt.receipt_id)
        return receipt

    def actions(self, kind: Optional[str] = None) -> List[Dict[str, Any]]:
        return [e for e in self.entries if kind is None or e["action"] == kind]


__all__ = [
    "Ledger", "LedgerReceipt", "SimulatedLedger",
    "ACTION_MINT_STARTER", "ACTION_RECORD_BATTLE", "ACTION_BUY_CREATURE",
]
