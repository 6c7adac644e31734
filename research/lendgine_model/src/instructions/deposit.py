"""Lender deposit"""
import logging
from typing import Any
from ..errors import InputError, CompleteUtilizationError
from ..events import Deposit
from ..fixed_point import checked_add
from ..state.market import Market
from ..state.pair import PairMintCallback
from .accrue_interest import accrue_interest

logger = logging.getLogger(__name__)


def deposit(
    market: Market,
    sender: str,
    to: str,
    liquidity: int,
    callback: PairMintCallback,
    data: Any = None,
) -> int:
    """Add `liquidity` to the pool on behalf of `to`. Returns shares minted.

    callback(liquidity, data) must transfer both underlying tokens to the
    pair. Paying more than the curve needs is accepted, the excess stays
    in reserves and shares are still derived from `liquidity` alone.
    """
    if liquidity == 0:
        raise InputError("Deposit of zero liquidity")

    with market.transaction():
        accrue_interest(market)

        total_position_size = market.total_position_size
        total_liquidity = market.total_liquidity
        if total_liquidity == 0 and total_position_size > 0:
            raise CompleteUtilizationError("Outstanding positions have no liquidity left")

        size = market.convert_liquidity_to_position(liquidity)
        if size == 0:
            raise InputError(f"Liquidity {liquidity} is worth zero shares")

        market.update_position(to, size)
        market.total_position_size = checked_add(total_position_size, size)

        market.pair.mint(liquidity, callback, data)

        market.events.emit(Deposit(sender, size, liquidity, to))
        logger.info("deposit sender=%s to=%s liquidity=%d shares=%d", sender, to, liquidity, size)
        return size
