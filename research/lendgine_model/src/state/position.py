"""Lender position state management"""
from dataclasses import dataclass
from typing import Dict
from ..constants import SCALE
from ..errors import InsufficientPositionError
from ..fixed_point import mul_div, mul_div_rounding_up, checked_add


@dataclass
class Position:
    """A lender's claim on pooled liquidity"""
    size: int = 0  # shares owned
    reward_per_position_paid: int = 0  # accumulator at last checkpoint, scaled by SCALE
    tokens_owed: int = 0  # collateral credited, not yet collected

    def new_tokens_owed(self, reward_per_position: int) -> int:
        """Collateral earned by the current size since the last checkpoint"""
        return mul_div(self.size, reward_per_position - self.reward_per_position_paid, SCALE)

    def settle(self, reward_per_position: int) -> int:
        """Credit earned collateral and checkpoint the accumulator

        Must run after accrual and before size changes, so the old size
        earns the old accumulator delta.
        """
        owed = self.new_tokens_owed(reward_per_position) if self.size > 0 else 0
        if owed > 0:
            self.tokens_owed = checked_add(self.tokens_owed, owed)
        self.reward_per_position_paid = reward_per_position
        return owed


def update(
    positions: Dict[str, Position],
    owner: str,
    size_delta: int,
    reward_per_position: int,
) -> Position:
    """Settle owner's rewards, then apply a signed change to its size"""
    position = positions.get(owner)
    if position is None:
        position = positions[owner] = Position()

    if size_delta < 0 and -size_delta > position.size:
        raise InsufficientPositionError(
            f"{owner} holds {position.size} shares, cannot remove {-size_delta}"
        )

    position.settle(reward_per_position)
    if size_delta != 0:
        position.size = checked_add(position.size, size_delta)
    return position


def convert_liquidity_to_position(liquidity: int, total_liquidity: int, total_position_size: int) -> int:
    """Shares minted for a deposit, rounded down"""
    if total_position_size == 0:
        return liquidity
    return mul_div(liquidity, total_position_size, total_liquidity)


def convert_position_to_liquidity(size: int, total_liquidity: int, total_position_size: int) -> int:
    """Liquidity redeemed by `size` shares, rounded up

    Each call can pay out less than one liquidity unit above the pro-rata
    amount, so splitting a withdrawal into many small ones earns that much
    per call at the expense of the remaining lenders.
    """
    return mul_div_rounding_up(size, total_liquidity, total_position_size)
