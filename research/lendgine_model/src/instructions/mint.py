"""Borrow liquidity against token1 collateral"""
import logging
from typing import Any, Callable
from ..errors import InputError, CompleteUtilizationError, InsufficientInputError
from ..events import Borrow
from ..fixed_point import checked_add
from ..state.market import Market
from .accrue_interest import accrue_interest

logger = logging.getLogger(__name__)

# callback(collateral, amount0, amount1, liquidity, data) must send
# `collateral` token1 to the market
MintCallback = Callable[[int, int, int, int, Any], None]


def mint(
    market: Market,
    sender: str,
    to: str,
    liquidity: int,
    callback: MintCallback,
    data: Any = None,
) -> int:
    """Borrow `liquidity`, crediting borrower shares to `to`. Returns shares.

    The pair's assets for `liquidity` go to `to` first; callback then has to
    post the collateral.
    """
    if liquidity == 0:
        raise InputError("Borrow of zero liquidity")

    with market.transaction():
        accrue_interest(market)

        collateral = market.convert_liquidity_to_collateral(liquidity, rounding_up=True)
        shares = market.convert_liquidity_to_share(liquidity)
        if shares == 0:
            raise InputError(f"Liquidity {liquidity} is worth zero borrower shares")
        if liquidity > market.available_liquidity:
            raise CompleteUtilizationError(
                f"Borrow of {liquidity} exceeds {market.available_liquidity} unborrowed liquidity"
            )
        if market.total_supply > 0 and market.total_liquidity_borrowed == 0:
            raise CompleteUtilizationError("Outstanding borrower shares have been fully diluted")

        market.total_liquidity_borrowed = checked_add(market.total_liquidity_borrowed, liquidity)
        amount0, amount1 = market.pair.burn(to, liquidity)
        market.mint_shares(to, shares)

        token1 = market.config.token1
        balance_before = token1.balance_of(market.address)
        callback(collateral, amount0, amount1, liquidity, data)
        received = token1.balance_of(market.address) - balance_before
        if received < collateral:
            raise InsufficientInputError(f"Borrow needs {collateral} collateral, received {received}")

        market.events.emit(Borrow(sender, collateral, shares, liquidity, to))
        logger.info(
            "borrow sender=%s to=%s liquidity=%d collateral=%d shares=%d",
            sender, to, liquidity, collateral, shares,
        )
        return shares
