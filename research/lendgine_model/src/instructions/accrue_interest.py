"""Interest accrual

Borrowers pay interest by having their liquidity debt diluted: the
interest is removed from total_liquidity_borrowed, which lowers the
liquidity every lender share redeems for. The collateral that no longer
backs borrower debt is streamed to lenders through
reward_per_position_stored.
"""
import logging
from typing import Optional
from ..constants import SCALE, YEAR_IN_SECONDS
from ..events import AccrueInterest, AccruePositionInterest
from ..fixed_point import mul_div, checked_add, checked_mul
from ..state.market import Market

logger = logging.getLogger(__name__)


def calculate_interest(borrowed_liquidity: int, borrow_rate: int, time_elapsed: int) -> int:
    """Liquidity owed by borrowers over time_elapsed, rounded down, capped at the debt"""
    interest = mul_div(
        borrowed_liquidity,
        checked_mul(borrow_rate, time_elapsed),
        SCALE * YEAR_IN_SECONDS,
    )
    return min(interest, borrowed_liquidity)


def accrue_interest(market: Market, now: Optional[int] = None) -> int:
    """Bring the market up to `now`. Returns the liquidity diluted.

    Must run at the start of every state-changing operation. Calling it
    again at the same instant changes nothing.
    """
    now = market.clock() if now is None else now

    if market.total_position_size == 0 or market.total_liquidity_borrowed == 0:
        market.last_update = now
        return 0

    time_elapsed = now - market.last_update
    if time_elapsed <= 0:
        return 0

    borrowed = market.total_liquidity_borrowed
    borrow_rate = market.get_borrow_rate(borrowed, market.total_liquidity)
    dilution_liquidity = calculate_interest(borrowed, borrow_rate, time_elapsed)
    dilution_collateral = market.convert_liquidity_to_collateral(dilution_liquidity)

    market.total_liquidity_borrowed = borrowed - dilution_liquidity
    market.reward_per_position_stored = checked_add(
        market.reward_per_position_stored,
        mul_div(dilution_collateral, SCALE, market.total_position_size),
    )
    market.last_update = now

    market.events.emit(AccrueInterest(time_elapsed, dilution_collateral, dilution_liquidity))
    logger.debug(
        "Accrued %ds at rate %d: liquidity=%d collateral=%d",
        time_elapsed, borrow_rate, dilution_liquidity, dilution_collateral,
    )
    return dilution_liquidity


def accrue_position_interest(market: Market, owner: str) -> int:
    """Accrue, then credit owner's earned collateral. Returns tokens_owed."""
    with market.transaction():
        accrue_interest(market)
        position = market.update_position(owner, 0)
        market.events.emit(AccruePositionInterest(owner, market.reward_per_position_stored))
        return position.tokens_owed


def sync(market: Market) -> int:
    """Run accrual as a standalone operation"""
    with market.transaction():
        return accrue_interest(market)
