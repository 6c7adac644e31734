"""Trade against the market's pair"""
from typing import Any, Tuple
from ..state.market import Market
from ..state.pair import SwapCallback


def swap(
    market: Market,
    to: str,
    amount0_out: int,
    amount1_out: int,
    callback: SwapCallback,
    data: Any = None,
) -> Tuple[int, int]:
    """Swap through the pair inside a market transaction. Returns amounts paid in."""
    with market.transaction():
        return market.pair.swap(to, amount0_out, amount1_out, callback, data)
