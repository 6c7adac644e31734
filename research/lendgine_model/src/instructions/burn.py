"""Repay borrowed liquidity and release collateral"""
import logging
from typing import Any
from ..errors import InputError, InsufficientPositionError
from ..events import Repay
from ..fixed_point import mul_div, mul_div_rounding_up
from ..state.market import Market
from ..state.pair import PairMintCallback
from .accrue_interest import accrue_interest

logger = logging.getLogger(__name__)


def burn(
    market: Market,
    sender: str,
    to: str,
    shares: int,
    callback: PairMintCallback,
    data: Any = None,
) -> int:
    """Burn sender's borrower shares, sending their collateral to `to`

    callback(liquidity, data) must pay the pair for the liquidity being
    returned. Returns the collateral released. Once interest has diluted
    all borrowed liquidity the shares are burnt without any settlement.
    """
    if shares == 0:
        raise InputError("Repayment of zero shares")

    with market.transaction():
        accrue_interest(market)

        balance = market.balance_of(sender)
        if shares > balance:
            raise InsufficientPositionError(f"{sender} holds {balance} shares, cannot repay {shares}")

        total_supply = market.total_supply
        borrowed = market.total_liquidity_borrowed
        if borrowed == 0:
            # interest consumed the whole debt, the shares are cleared for nothing
            market.burn_shares(sender, shares)
            market.events.emit(Repay(sender, 0, shares, 0, to))
            logger.info("repay sender=%s to=%s shares=%d of fully diluted debt", sender, to, shares)
            return 0

        liquidity = mul_div_rounding_up(borrowed, shares, total_supply)
        collateral = market.convert_liquidity_to_collateral(mul_div(borrowed, shares, total_supply))
        if liquidity == 0 or collateral == 0:
            raise InputError(f"{shares} shares are worth no collateral")

        market.total_liquidity_borrowed = borrowed - liquidity
        market.burn_shares(sender, shares)

        # collateral is released before the repayment settles
        market.config.token1.transfer(market.address, to, collateral)
        market.pair.mint(liquidity, callback, data)

        market.events.emit(Repay(sender, collateral, shares, liquidity, to))
        logger.info(
            "repay sender=%s to=%s shares=%d liquidity=%d collateral=%d",
            sender, to, shares, liquidity, collateral,
        )
        return collateral
