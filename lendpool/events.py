"""
events.py - Domain events and the append-only event log

Every mutating pool operation emits exactly one event carrying the account
identity and the affected amounts. Events are appended to the EventLog only
after the operation has been fully applied, so observers never see an event
for a rolled-back operation.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional, Tuple, Type, TypeVar

from .core import AccountId


@dataclass(frozen=True, slots=True)
class PoolEvent:
    """Base class for pool events."""
    account: AccountId
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class Deposited(PoolEvent):
    amount: int
    shares_minted: int


@dataclass(frozen=True, slots=True)
class DepositWithdrawn(PoolEvent):
    """Native payout (principal + share redemption value) and shares burned."""
    total_payout: int
    shares_burned: int


@dataclass(frozen=True, slots=True)
class CollateralDeposited(PoolEvent):
    amount: int


@dataclass(frozen=True, slots=True)
class CollateralWithdrawn(PoolEvent):
    amount: int


@dataclass(frozen=True, slots=True)
class LoanBorrowed(PoolEvent):
    """Stable amount lent and its native-unit value at the borrow-time price."""
    stable_amount: int
    native_value: int


@dataclass(frozen=True, slots=True)
class RecordedEvent:
    """An event together with its position in the log."""
    sequence: int
    event: PoolEvent

    def __repr__(self) -> str:
        return f"#{self.sequence} {self.event!r}"


E = TypeVar('E', bound=PoolEvent)


class EventLog:
    """
    Append-only record of pool state transitions.

    Sequence numbers are monotonic and start at 0. Entries are never
    removed or reordered.

    Example:
        log = EventLog()
        log.append(Deposited("alice", now, amount=10, shares_minted=10))
        log.of_type(Deposited)  # [Deposited(...)]
    """

    def __init__(self):
        self._entries: List[RecordedEvent] = []

    def append(self, event: PoolEvent) -> RecordedEvent:
        recorded = RecordedEvent(sequence=len(self._entries), event=event)
        self._entries.append(recorded)
        return recorded

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PoolEvent]:
        return (entry.event for entry in self._entries)

    def entries(self) -> Tuple[RecordedEvent, ...]:
        return tuple(self._entries)

    def last(self) -> Optional[PoolEvent]:
        """Return the most recent event, or None if the log is empty."""
        return self._entries[-1].event if self._entries else None

    def of_type(self, event_type: Type[E]) -> List[E]:
        return [e.event for e in self._entries if isinstance(e.event, event_type)]

    def for_account(self, account: AccountId) -> List[PoolEvent]:
        return [e.event for e in self._entries if e.event.account == account]

    def since(self, sequence: int) -> List[RecordedEvent]:
        """Return entries with sequence >= the given number (for incremental indexers)."""
        return self._entries[sequence:]

    def __repr__(self):
        return f"EventLog({len(self._entries)} events)"
