"""Fungible token balances"""
from dataclasses import dataclass, field
from typing import Dict, Tuple
from ..errors import InsufficientBalanceError, InputError
from ..fixed_point import checked_add


@dataclass
class Token:
    """Balances of one asset, keyed by account address"""
    symbol: str
    decimals: int = 18
    balances: Dict[str, int] = field(default_factory=dict)
    total_supply: int = 0

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def mint(self, to: str, amount: int) -> None:
        """Create new tokens, used to fund accounts in tests and simulations"""
        if amount < 0:
            raise InputError("Negative mint amount")
        self.balances[to] = checked_add(self.balance_of(to), amount)
        self.total_supply = checked_add(self.total_supply, amount)

    def transfer(self, sender: str, to: str, amount: int) -> None:
        if amount < 0:
            raise InputError("Negative transfer amount")
        balance = self.balance_of(sender)
        if amount > balance:
            raise InsufficientBalanceError(
                f"{sender} holds {balance} {self.symbol}, cannot send {amount}"
            )
        self.balances[sender] = balance - amount
        self.balances[to] = self.balance_of(to) + amount

    def snapshot(self) -> Tuple[Dict[str, int], int]:
        return dict(self.balances), self.total_supply

    def restore(self, state: Tuple[Dict[str, int], int]) -> None:
        balances, self.total_supply = state
        self.balances = dict(balances)
