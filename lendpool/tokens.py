"""
tokens.py - In-memory reference implementations of the token collaborators

The pool consumes its share token and its assets through the ShareToken and
AssetLedger protocols. These implementations keep integer balances in
memory and are used for simulations and tests; a deployment would plug in
adapters to real token contracts instead.

Classes:
- InMemoryShareToken: mint/burn-only pool share token
- InMemoryAsset: asset with holder balances and a pool custody account
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict

from .core import (
    AccountId, TransferFailed,
    checked_add, checked_sub, require_positive,
)


class InMemoryShareToken:
    """
    Pool share token.

    Supports mint and burn only; holder-to-holder transfers are outside the
    pool's concern and are not modelled.
    """

    def __init__(self, symbol: str = "LPT", name: str = "LP Token"):
        self.symbol = symbol
        self.name = name
        self._balances: Dict[AccountId, int] = defaultdict(int)
        self._total_supply = 0

    def mint(self, account: AccountId, amount: int) -> None:
        require_positive(amount)
        self._total_supply = checked_add(self._total_supply, amount)
        self._balances[account] = checked_add(self._balances[account], amount)

    def burn(self, account: AccountId, amount: int) -> None:
        require_positive(amount)
        balance = self._balances[account]
        if amount > balance:
            raise TransferFailed(
                f"{self.symbol}: cannot burn {amount} from {account}, balance {balance}"
            )
        self._balances[account] = balance - amount
        self._total_supply = checked_sub(self._total_supply, amount)

    def balance_of(self, account: AccountId) -> int:
        return self._balances.get(account, 0)

    def total_supply(self) -> int:
        return self._total_supply

    def __repr__(self):
        return f"InMemoryShareToken({self.symbol}, supply={self._total_supply})"


class InMemoryAsset:
    """
    Fungible asset with a dedicated pool custody balance.

    transfer_in debits the holder and credits custody; transfer_out does the
    reverse. Either raises TransferFailed, leaving balances untouched, when
    the paying side cannot cover the amount.

    Example:
        eth = InMemoryAsset("ETH", decimals=18)
        eth.mint("alice", 10 * 10**18)
        eth.transfer_in("alice", 10**18)
        eth.custody_balance()  # 10**18
    """

    def __init__(self, symbol: str, decimals: int, custody: str = "pool"):
        self.symbol = symbol
        self.decimals = decimals
        self.custody = custody
        self._balances: Dict[AccountId, int] = defaultdict(int)

    def mint(self, account: AccountId, amount: int) -> None:
        """Credit ``amount`` to ``account`` out of thin air (faucet / initial funding)."""
        require_positive(amount)
        self._balances[account] = checked_add(self._balances[account], amount)

    def fund_custody(self, amount: int) -> None:
        """Seed the pool's custody, e.g. with stable liquidity available for loans."""
        self.mint(self.custody, amount)

    def transfer_in(self, account: AccountId, amount: int) -> None:
        self._move(account, self.custody, amount)

    def transfer_out(self, account: AccountId, amount: int) -> None:
        self._move(self.custody, account, amount)

    def balance_of(self, account: AccountId) -> int:
        return self._balances.get(account, 0)

    def custody_balance(self) -> int:
        return self._balances.get(self.custody, 0)

    def total_supply(self) -> int:
        return sum(self._balances[a] for a in sorted(self._balances))

    def _move(self, source: AccountId, dest: AccountId, amount: int) -> None:
        require_positive(amount)
        balance = self._balances[source]
        if amount > balance:
            raise TransferFailed(
                f"{self.symbol}: {source} balance {balance} cannot cover {amount}"
            )
        new_dest = checked_add(self._balances[dest], amount)
        self._balances[source] = balance - amount
        self._balances[dest] = new_dest

    def __repr__(self):
        return f"InMemoryAsset({self.symbol}, custody={self.custody_balance()})"
