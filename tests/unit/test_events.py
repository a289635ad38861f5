"""
test_events.py - Unit tests for pool events and the EventLog
"""

from datetime import datetime

from lendpool import (
    EventLog, Deposited, DepositWithdrawn, CollateralDeposited, LoanBorrowed,
)


T0 = datetime(2025, 1, 1)


class TestEventLog:

    def test_empty_log(self):
        log = EventLog()
        assert len(log) == 0
        assert log.last() is None
        assert list(log) == []

    def test_sequence_numbers_are_monotonic(self):
        log = EventLog()
        first = log.append(Deposited("alice", T0, amount=10, shares_minted=10))
        second = log.append(CollateralDeposited("bob", T0, amount=5))
        assert (first.sequence, second.sequence) == (0, 1)
        assert log.last() == second.event

    def test_iteration_yields_events_in_order(self):
        log = EventLog()
        events = [
            Deposited("alice", T0, amount=10, shares_minted=10),
            DepositWithdrawn("alice", T0, total_payout=5, shares_burned=2),
        ]
        for e in events:
            log.append(e)
        assert list(log) == events

    def test_of_type_and_for_account(self):
        log = EventLog()
        log.append(Deposited("alice", T0, amount=10, shares_minted=10))
        log.append(CollateralDeposited("bob", T0, amount=5))
        log.append(LoanBorrowed("bob", T0, stable_amount=100, native_value=1))
        assert [e.account for e in log.of_type(CollateralDeposited)] == ["bob"]
        assert len(log.for_account("bob")) == 2
        assert log.for_account("carol") == []

    def test_since(self):
        log = EventLog()
        for i in range(5):
            log.append(CollateralDeposited("bob", T0, amount=i + 1))
        tail = log.since(3)
        assert [r.sequence for r in tail] == [3, 4]

    def test_entries_is_a_copy(self):
        log = EventLog()
        log.append(CollateralDeposited("bob", T0, amount=1))
        entries = log.entries()
        log.append(CollateralDeposited("bob", T0, amount=2))
        assert len(entries) == 1

    def test_events_compare_by_value(self):
        a = Deposited("alice", T0, amount=10, shares_minted=10)
        b = Deposited("alice", T0, amount=10, shares_minted=10)
        assert a == b
        assert a != DepositWithdrawn("alice", T0, total_payout=10, shares_burned=10)
