"""Outstanding transaction bookkeeping.

A Transaction pairs a request with the future its caller is awaiting. The
table guarantees at most one live transaction per id; whoever pops an entry
(response, timeout or disposal) is the one that settles it.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import Iterator

from janus_signal.models import Signal


@dataclass
class Transaction:
    id: str
    kind: str  # request kind: "message" | "trickle" | "attach" | ...
    future: asyncio.Future[Signal]
    timer: asyncio.TimerHandle | None = None

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None

    def resolve(self, signal: Signal) -> None:
        self.cancel_timer()
        if not self.future.done():
            self.future.set_result(signal)

    def reject(self, exc: BaseException) -> None:
        self.cancel_timer()
        if not self.future.done():
            self.future.set_exception(exc)


class TransactionTable:
    def __init__(self):
        self._txns: dict[str, Transaction] = {}

    def __len__(self) -> int:
        return len(self._txns)

    def __contains__(self, txid: object) -> bool:
        return txid in self._txns

    def __iter__(self) -> Iterator[Transaction]:
        return iter(list(self._txns.values()))

    def ids(self) -> list[str]:
        return list(self._txns)

    def new_id(self) -> str:
        while True:
            txid = str(uuid.uuid4())
            if txid not in self._txns:
                return txid

    def add(self, txn: Transaction) -> None:
        if txn.id in self._txns:
            raise ValueError(f"Transaction {txn.id} is already pending")
        self._txns[txn.id] = txn

    def get(self, txid: str) -> Transaction | None:
        return self._txns.get(txid)

    def pop(self, txid: str, expected: Transaction | None = None) -> Transaction | None:
        """Remove a transaction; with `expected`, only if it is still that one."""
        txn = self._txns.get(txid)
        if txn is None:
            return None
        if expected is not None and txn is not expected:
            return None
        del self._txns[txid]
        return txn

    def drain(self) -> list[Transaction]:
        txns = list(self._txns.values())
        self._txns.clear()
        return txns
