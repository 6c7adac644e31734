"""Jump rate borrow curve

All rates are per annum and scaled by SCALE.
"""
from dataclasses import dataclass
from .constants import (
    SCALE,
    DEFAULT_KINK,
    DEFAULT_MULTIPLIER,
    DEFAULT_JUMP_MULTIPLIER,
)
from .fixed_point import mul_div, checked_add


@dataclass(frozen=True)
class JumpRateParams:
    """Kinked curve: linear up to the kink, steeper after it"""
    kink: int = DEFAULT_KINK
    multiplier: int = DEFAULT_MULTIPLIER
    jump_multiplier: int = DEFAULT_JUMP_MULTIPLIER


DEFAULT_RATE_PARAMS = JumpRateParams()


def utilization_rate(borrowed_liquidity: int, total_liquidity: int) -> int:
    """Fraction of liquidity lent out, scaled by SCALE"""
    if total_liquidity == 0:
        return 0
    return mul_div(borrowed_liquidity, SCALE, total_liquidity)


def get_borrow_rate(
    borrowed_liquidity: int,
    total_liquidity: int,
    params: JumpRateParams = DEFAULT_RATE_PARAMS,
) -> int:
    """Per annum borrow rate for the given utilization"""
    util = utilization_rate(borrowed_liquidity, total_liquidity)

    if util <= params.kink:
        return mul_div(util, params.multiplier, SCALE)

    normal_rate = mul_div(params.kink, params.multiplier, SCALE)
    excess_util = util - params.kink
    return checked_add(mul_div(excess_util, params.jump_multiplier, SCALE), normal_rate)


def get_supply_rate(
    borrowed_liquidity: int,
    total_liquidity: int,
    params: JumpRateParams = DEFAULT_RATE_PARAMS,
) -> int:
    """Per annum rate earned by lenders: borrow rate weighted by utilization"""
    util = utilization_rate(borrowed_liquidity, total_liquidity)
    borrow_rate = get_borrow_rate(borrowed_liquidity, total_liquidity, params)
    return mul_div(borrow_rate, util, SCALE)
