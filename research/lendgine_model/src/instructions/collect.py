"""Collect interest earned by a lender position"""
import logging
from ..events import Collect
from ..state.market import Market
from .accrue_interest import accrue_interest

logger = logging.getLogger(__name__)


def collect(market: Market, sender: str, to: str, collateral_requested: int) -> int:
    """Pay up to collateral_requested of sender's earned token1 to `to`"""
    with market.transaction():
        accrue_interest(market)
        position = market.update_position(sender, 0)

        collateral = min(collateral_requested, position.tokens_owed)
        if collateral > 0:
            position.tokens_owed -= collateral
            market.config.token1.transfer(market.address, to, collateral)

        market.events.emit(Collect(sender, to, collateral))
        logger.info("collect owner=%s to=%s amount=%d", sender, to, collateral)
        return collateral
