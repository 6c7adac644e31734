"""Market configuration"""
from dataclasses import dataclass
from ..constants import SCALE, TOKEN_DECIMALS
from .token import Token


@dataclass(frozen=True)
class MarketConfig:
    """Immutable parameters of one market, fixed at deployment"""
    token0: Token  # Using Token objects instead of addresses
    token1: Token  # Collateral and speculative asset
    upper_bound: int  # Price bound of the capped power curve, scaled by SCALE

    def __post_init__(self):
        if self.upper_bound <= 0:
            raise ValueError("upper_bound must be positive")
        for token in (self.token0, self.token1):
            if token.decimals > TOKEN_DECIMALS:
                raise ValueError(f"{token.symbol} has more than {TOKEN_DECIMALS} decimals")

    @property
    def token0_scale(self) -> int:
        return 10 ** (TOKEN_DECIMALS - self.token0.decimals)

    @property
    def token1_scale(self) -> int:
        return 10 ** (TOKEN_DECIMALS - self.token1.decimals)

    @property
    def collateral_per_liquidity(self) -> int:
        """token1 needed to back one unit of liquidity at the upper bound, scaled by SCALE"""
        return 2 * self.upper_bound

    def describe(self) -> str:
        return f"{self.token0.symbol}/{self.token1.symbol} bound={self.upper_bound / SCALE:g}"
