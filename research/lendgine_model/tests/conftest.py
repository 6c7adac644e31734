"""Shared fixtures: a 1:8 market with an upper bound of 5"""
import pytest
from lendgine_model.src.clock import ManualClock
from lendgine_model.src.constants import SCALE
from lendgine_model.src.instructions.deposit import deposit
from lendgine_model.src.instructions.mint import mint
from lendgine_model.src.state.market import Market
from lendgine_model.src.state.market_config import MarketConfig
from lendgine_model.src.state.token import Token

UPPER_BOUND = 5 * SCALE


def pair_payment(market, payer, amount0, amount1):
    """Pair mint callback paying fixed amounts from payer"""
    def callback(liquidity, data):
        market.config.token0.transfer(payer, market.pair.address, amount0)
        market.config.token1.transfer(payer, market.pair.address, amount1)
    return callback


def collateral_payment(market, payer, shortfall=0):
    """Borrow callback posting the requested collateral, minus shortfall"""
    def callback(collateral, amount0, amount1, liquidity, data):
        market.config.token1.transfer(payer, market.address, collateral - shortfall)
    return callback


@pytest.fixture
def clock():
    return ManualClock(now=1_700_000_000)


@pytest.fixture
def token0():
    return Token("TOKEN0")


@pytest.fixture
def token1():
    return Token("TOKEN1")


@pytest.fixture
def market(clock, token0, token1):
    return Market.create(MarketConfig(token0, token1, UPPER_BOUND), clock=clock)


@pytest.fixture
def deposit_liquidity(market, token0, token1):
    """Fund `owner` with the given amounts and deposit them"""
    def _deposit(owner, amount0, amount1, liquidity):
        token0.mint(owner, amount0)
        token1.mint(owner, amount1)
        return deposit(market, owner, owner, liquidity, pair_payment(market, owner, amount0, amount1))
    return _deposit


@pytest.fixture
def borrow_liquidity(market, token1):
    """Fund `owner` with exactly the collateral needed and borrow"""
    def _borrow(owner, liquidity):
        token1.mint(owner, market.convert_liquidity_to_collateral(liquidity, rounding_up=True))
        return mint(market, owner, owner, liquidity, collateral_payment(market, owner))
    return _borrow
