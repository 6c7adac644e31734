"""Lender withdrawal"""
import logging
from typing import Tuple
from ..errors import InputError, InsufficientPositionError, CompleteUtilizationError
from ..events import Withdraw
from ..state.market import Market
from .accrue_interest import accrue_interest

logger = logging.getLogger(__name__)


def withdraw(market: Market, sender: str, to: str, shares: int) -> Tuple[int, int, int]:
    """Redeem `shares` of sender's position, sending the assets to `to`

    Returns (amount0, amount1, liquidity).
    """
    if shares == 0:
        raise InputError("Withdrawal of zero shares")

    with market.transaction():
        accrue_interest(market)

        position = market.get_position(sender)
        if shares > position.size:
            raise InsufficientPositionError(
                f"{sender} holds {position.size} shares, cannot withdraw {shares}"
            )

        liquidity = market.convert_position_to_liquidity(shares)
        if liquidity > market.available_liquidity:
            raise CompleteUtilizationError(
                f"Withdrawal needs {liquidity} liquidity, {market.available_liquidity} is unborrowed"
            )

        market.update_position(sender, -shares)
        market.total_position_size -= shares

        if liquidity > 0:
            amount0, amount1 = market.pair.burn(to, liquidity)
        else:
            # interest has diluted all lent liquidity, the shares only
            # carry the collateral already credited to the position
            amount0 = amount1 = 0

        market.events.emit(Withdraw(sender, shares, liquidity, to))
        logger.info(
            "withdraw sender=%s to=%s shares=%d liquidity=%d amounts=(%d, %d)",
            sender, to, shares, liquidity, amount0, amount1,
        )
        return amount0, amount1, liquidity
