"""Capped power AMM pair backing the market's liquidity

The pair tracks reserves of both tokens and the liquidity they back.
Payments arrive through settlement callbacks: the pair measures its own
balances before and after the callback and credits only what arrived.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Tuple
from ..constants import SCALE
from ..errors import InvariantError, InsufficientOutputError, ReentrancyError
from ..events import EventLog, Mint, Burn, Swap
from ..fixed_point import mul_div, mul_div_rounding_up, checked_add, checked_mul
from .market_config import MarketConfig

logger = logging.getLogger(__name__)

# callback(liquidity, data) must transfer token0/token1 to the pair
PairMintCallback = Callable[[int, Any], None]
# callback(amount0_out, amount1_out, data) must pay for a swap
SwapCallback = Callable[[int, int, Any], None]


@dataclass
class Pair:
    address: str
    config: MarketConfig
    events: EventLog = field(default_factory=EventLog)
    reserve0: int = 0
    reserve1: int = 0
    total_liquidity: int = 0
    _locked: bool = field(default=False, repr=False)

    def invariant(self, amount0: int, amount1: int, liquidity: int) -> bool:
        """Check reserves against the capped power curve

        With scale0 = amount0 / liquidity and scale1 = amount1 / liquidity
        (both normalized to 18 decimals and scaled by SCALE):
            scale0 + scale1 * bound >= scale1^2 / 4 + bound^2
        """
        if liquidity == 0:
            return amount0 == 0 and amount1 == 0

        upper_bound = self.config.upper_bound
        scale0 = mul_div(checked_mul(amount0, self.config.token0_scale), SCALE, liquidity)
        scale1 = mul_div(checked_mul(amount1, self.config.token1_scale), SCALE, liquidity)

        if scale1 > 2 * upper_bound:
            raise InvariantError("token1 reserves exceed the upper bound")

        a = checked_mul(scale0, SCALE)
        b = checked_mul(scale1, upper_bound)
        c = checked_mul(scale1, scale1) // 4
        d = checked_mul(upper_bound, upper_bound)

        return checked_add(a, b) >= checked_add(c, d)

    def mint(self, liquidity: int, callback: PairMintCallback, data: Any = None) -> Tuple[int, int]:
        """Add liquidity, paid for by callback. Returns the amounts received."""
        token0, token1 = self.config.token0, self.config.token1
        balance0_before = token0.balance_of(self.address)
        balance1_before = token1.balance_of(self.address)

        callback(liquidity, data)

        amount0_in = token0.balance_of(self.address) - balance0_before
        amount1_in = token1.balance_of(self.address) - balance1_before

        reserve0 = checked_add(self.reserve0, amount0_in)
        reserve1 = checked_add(self.reserve1, amount1_in)
        total_liquidity = checked_add(self.total_liquidity, liquidity)
        if not self.invariant(reserve0, reserve1, total_liquidity):
            raise InvariantError(
                f"Payment of ({amount0_in}, {amount1_in}) does not back {liquidity} liquidity"
            )

        self.reserve0, self.reserve1, self.total_liquidity = reserve0, reserve1, total_liquidity
        self.events.emit(Mint(amount0_in, amount1_in, liquidity))
        logger.debug("pair mint liquidity=%d in=(%d, %d)", liquidity, amount0_in, amount1_in)
        return amount0_in, amount1_in

    def burn(self, to: str, liquidity: int) -> Tuple[int, int]:
        """Remove liquidity and send the proportional reserves to `to`"""
        if liquidity == 0 or liquidity > self.total_liquidity:
            raise InsufficientOutputError(
                f"Cannot burn {liquidity} of {self.total_liquidity} pair liquidity"
            )
        amount0 = mul_div(self.reserve0, liquidity, self.total_liquidity)
        amount1 = mul_div(self.reserve1, liquidity, self.total_liquidity)
        if amount0 == 0 and amount1 == 0:
            raise InsufficientOutputError("Burn releases no assets")

        self.reserve0 -= amount0
        self.reserve1 -= amount1
        self.total_liquidity -= liquidity

        self.config.token0.transfer(self.address, to, amount0)
        self.config.token1.transfer(self.address, to, amount1)

        self.events.emit(Burn(amount0, amount1, liquidity, to))
        logger.debug("pair burn liquidity=%d out=(%d, %d) to=%s", liquidity, amount0, amount1, to)
        return amount0, amount1

    def swap(
        self,
        to: str,
        amount0_out: int,
        amount1_out: int,
        callback: SwapCallback,
        data: Any = None,
    ) -> Tuple[int, int]:
        """Send amounts out optimistically, then require payment through callback

        The pair must be driven through a market transaction so a failed
        swap rolls back the optimistic transfer.
        """
        if self._locked:
            raise ReentrancyError("Pair re-entered during swap")
        if not (amount0_out > 0 or amount1_out > 0):
            raise InsufficientOutputError("Swap requests no output")

        token0, token1 = self.config.token0, self.config.token1
        self._locked = True
        try:
            if amount0_out > 0:
                token0.transfer(self.address, to, amount0_out)
            if amount1_out > 0:
                token1.transfer(self.address, to, amount1_out)

            callback(amount0_out, amount1_out, data)

            balance0 = token0.balance_of(self.address)
            balance1 = token1.balance_of(self.address)
            amount0_in = max(balance0 - (self.reserve0 - amount0_out), 0)
            amount1_in = max(balance1 - (self.reserve1 - amount1_out), 0)

            if not self.invariant(balance0, balance1, self.total_liquidity):
                raise InvariantError("Swap leaves reserves below the curve")

            self.reserve0, self.reserve1 = balance0, balance1
        finally:
            self._locked = False

        self.events.emit(Swap(amount0_out, amount1_out, amount0_in, amount1_in, to))
        return amount0_in, amount1_in

    def snapshot(self) -> Tuple[int, int, int]:
        return self.reserve0, self.reserve1, self.total_liquidity

    def restore(self, state: Tuple[int, int, int]) -> None:
        self.reserve0, self.reserve1, self.total_liquidity = state

    def reserves_held(self) -> bool:
        """True when the pair physically holds its recorded reserves"""
        return (
            self.config.token0.balance_of(self.address) >= self.reserve0
            and self.config.token1.balance_of(self.address) >= self.reserve1
        )


def liquidity_amounts(pair: Pair, liquidity: int, rounding_up: bool = True) -> Tuple[int, int]:
    """Token amounts matching `liquidity` at the pair's current reserve ratio"""
    if pair.total_liquidity == 0:
        raise InsufficientOutputError("Pair is empty, amounts must be chosen explicitly")
    divide = mul_div_rounding_up if rounding_up else mul_div
    return (
        divide(pair.reserve0, liquidity, pair.total_liquidity),
        divide(pair.reserve1, liquidity, pair.total_liquidity),
    )
