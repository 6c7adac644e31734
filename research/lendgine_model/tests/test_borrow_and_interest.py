"""Borrowing, repayment and interest accrual"""
import numpy as np
import pytest
from lendgine_model.src.constants import SCALE, YEAR_IN_SECONDS
from lendgine_model.src.errors import (
    CompleteUtilizationError,
    InputError,
    InsufficientInputError,
    InsufficientPositionError,
)
from lendgine_model.src.events import AccrueInterest, AccruePositionInterest, Borrow, Collect, Repay, Withdraw
from lendgine_model.src.instructions.accrue_interest import accrue_position_interest, sync
from lendgine_model.src.instructions.burn import burn
from lendgine_model.src.instructions.collect import collect
from lendgine_model.src.instructions.mint import mint
from lendgine_model.src.instructions.withdraw import withdraw
from lendgine_model.src.state.pair import liquidity_amounts
from conftest import collateral_payment, pair_payment

# Half of the pool borrowed for a year at 6.875% APR dilutes 3.4375% of it
HALF_UTILIZATION_RATE = 6875 * 10**13
YEAR_DILUTION = 34375 * 10**12


@pytest.fixture
def half_borrowed(market, deposit_liquidity, borrow_liquidity):
    """alice lends 1 liquidity, bob borrows half of it"""
    deposit_liquidity("alice", SCALE, 8 * SCALE, SCALE)
    borrow_liquidity("bob", SCALE // 2)
    return market


def _repay_callback(market, payer):
    def callback(liquidity, data):
        amount0, amount1 = liquidity_amounts(market.pair, liquidity)
        pair_payment(market, payer, amount0, amount1)(liquidity, data)
    return callback


def test_borrow(half_borrowed, token0, token1):
    market = half_borrowed

    assert market.total_liquidity_borrowed == SCALE // 2
    assert market.total_liquidity == SCALE
    assert market.available_liquidity == SCALE // 2
    assert market.balance_of("bob") == SCALE // 2
    assert market.total_supply == SCALE // 2
    # bob received the assets behind the liquidity and posted 5 token1
    assert token0.balance_of("bob") == SCALE // 2
    assert token1.balance_of("bob") == 4 * SCALE
    assert token1.balance_of(market.address) == 5 * SCALE
    assert market.events.last() == Borrow("bob", 5 * SCALE, SCALE // 2, SCALE // 2, "bob")


def test_borrow_requires_collateral(market, deposit_liquidity, token0, token1):
    deposit_liquidity("alice", SCALE, 8 * SCALE, SCALE)
    token1.mint("bob", 5 * SCALE)

    with pytest.raises(InsufficientInputError):
        mint(market, "bob", "bob", SCALE // 2, collateral_payment(market, "bob", shortfall=1))

    assert market.total_liquidity_borrowed == 0
    assert market.balance_of("bob") == 0
    assert token0.balance_of("bob") == 0
    assert token1.balance_of("bob") == 5 * SCALE
    assert (market.reserve0, market.reserve1) == (SCALE, 8 * SCALE)


def test_borrow_limited_to_unborrowed_liquidity(market, deposit_liquidity, borrow_liquidity):
    deposit_liquidity("alice", SCALE, 8 * SCALE, SCALE)
    with pytest.raises(CompleteUtilizationError):
        borrow_liquidity("bob", SCALE + 1)
    borrow_liquidity("bob", SCALE)
    assert market.available_liquidity == 0


@pytest.mark.parametrize("operation", ["mint", "burn"])
def test_zero_amounts_rejected(half_borrowed, operation):
    market = half_borrowed
    with pytest.raises(InputError):
        if operation == "mint":
            mint(market, "bob", "bob", 0, collateral_payment(market, "bob"))
        else:
            burn(market, "bob", "bob", 0, _repay_callback(market, "bob"))


def test_repay_more_than_owned(half_borrowed):
    market = half_borrowed
    with pytest.raises(InsufficientPositionError):
        burn(market, "bob", "bob", SCALE // 2 + 1, _repay_callback(market, "bob"))
    with pytest.raises(InsufficientPositionError):
        burn(market, "carol", "carol", 1, _repay_callback(market, "carol"))


def test_borrow_then_repay_without_interest(half_borrowed, token0, token1):
    market = half_borrowed

    collateral = burn(market, "bob", "bob", SCALE // 2, _repay_callback(market, "bob"))

    assert collateral == 5 * SCALE
    assert market.total_liquidity_borrowed == 0
    assert market.total_supply == 0
    assert (market.reserve0, market.reserve1) == (SCALE, 8 * SCALE)
    assert (token0.balance_of("bob"), token1.balance_of("bob")) == (0, 5 * SCALE)
    assert market.events.last() == Repay("bob", 5 * SCALE, SCALE // 2, SCALE // 2, "bob")


def test_interest_dilutes_lender_shares(half_borrowed, clock, deposit_liquidity):
    market = half_borrowed
    clock.advance(YEAR_IN_SECONDS)

    shares = deposit_liquidity("carol", SCALE, 8 * SCALE, SCALE)

    assert market.total_liquidity_borrowed == SCALE // 2 - YEAR_DILUTION
    assert shares == SCALE * SCALE // (SCALE - YEAR_DILUTION)
    # one deposit buys 1 / (1 - rate / 2) shares
    expected = 1 / (1 - (HALF_UTILIZATION_RATE / SCALE) / 2)
    assert np.isclose(shares / SCALE, expected, rtol=1e-15)
    assert market.events.of_type(AccrueInterest) == [
        AccrueInterest(YEAR_IN_SECONDS, 10 * YEAR_DILUTION, YEAR_DILUTION)
    ]


def test_accrual_is_idempotent_at_one_instant(half_borrowed, clock):
    market = half_borrowed
    clock.advance(3600)

    sync(market)
    state = (market.total_liquidity_borrowed, market.reward_per_position_stored, market.last_update)
    sync(market)
    sync(market)

    assert (market.total_liquidity_borrowed, market.reward_per_position_stored, market.last_update) == state
    assert len(market.events.of_type(AccrueInterest)) == 1


def test_accumulator_is_monotonic(half_borrowed, clock, deposit_liquidity, borrow_liquidity):
    market = half_borrowed
    history = [market.reward_per_position_stored]

    for step in range(12):
        clock.advance(30 * 86400)
        if step % 3 == 0:
            deposit_liquidity(f"lender{step}", SCALE, 8 * SCALE, SCALE)
        elif step % 3 == 1:
            borrow_liquidity(f"borrower{step}", SCALE // 10)
        else:
            sync(market)
        history.append(market.reward_per_position_stored)

    assert all(b >= a for a, b in zip(history, history[1:]))
    assert history[-1] > history[0]


def test_no_accrual_without_borrowers(market, deposit_liquidity, clock):
    deposit_liquidity("alice", SCALE, 8 * SCALE, SCALE)
    clock.advance(YEAR_IN_SECONDS)
    sync(market)

    assert market.reward_per_position_stored == 0
    assert market.last_update == clock.now
    assert market.events.of_type(AccrueInterest) == []


def test_lender_collects_interest(half_borrowed, clock, token1):
    market = half_borrowed
    clock.advance(YEAR_IN_SECONDS)

    owed = accrue_position_interest(market, "alice")

    assert owed == 10 * YEAR_DILUTION
    assert market.reward_per_position_stored == 10 * YEAR_DILUTION
    assert market.events.last() == AccruePositionInterest("alice", 10 * YEAR_DILUTION)

    collected = collect(market, "alice", "alice", owed // 2)
    assert collected == owed // 2
    collected += collect(market, "alice", "alice", 2**128)
    assert collected == owed
    assert token1.balance_of("alice") == owed
    assert market.get_position("alice").tokens_owed == 0
    assert market.events.last() == Collect("alice", "alice", owed - owed // 2)

    assert collect(market, "alice", "alice", 1) == 0


def test_repay_after_interest(half_borrowed, clock, token1):
    market = half_borrowed
    clock.advance(YEAR_IN_SECONDS)
    bob_token1 = token1.balance_of("bob")

    collateral = burn(market, "bob", "bob", SCALE // 2, _repay_callback(market, "bob"))

    remaining_debt = SCALE // 2 - YEAR_DILUTION
    assert collateral == 10 * remaining_debt
    assert market.total_liquidity_borrowed == 0
    assert market.total_liquidity == SCALE - YEAR_DILUTION
    # bob paid 8 token1 per liquidity and got 10 back
    assert token1.balance_of("bob") == bob_token1 - 8 * remaining_debt + 10 * remaining_debt
    # what is left in the market belongs to alice
    assert token1.balance_of(market.address) == 10 * YEAR_DILUTION


def test_lenders_exit_after_full_repayment(half_borrowed, clock, token0, token1):
    """Conservation: once all debt is repaid, lenders can drain the pool to zero"""
    market = half_borrowed
    clock.advance(YEAR_IN_SECONDS)
    burn(market, "bob", "bob", SCALE // 2, _repay_callback(market, "bob"))

    withdraw(market, "alice", "alice", SCALE)
    owed = collect(market, "alice", "alice", 2**128)

    assert owed == 10 * YEAR_DILUTION
    assert market.total_position_size == 0
    assert market.total_liquidity == 0
    assert (market.reserve0, market.reserve1) == (0, 0)
    assert token1.balance_of(market.address) == 0
    assert token0.balance_of(market.pair.address) == 0


def test_new_borrower_shares_track_diluted_debt(half_borrowed, clock, borrow_liquidity):
    market = half_borrowed
    clock.advance(YEAR_IN_SECONDS)

    shares = borrow_liquidity("carol", SCALE // 4)

    assert shares == (SCALE // 4) * (SCALE // 2) // (SCALE // 2 - YEAR_DILUTION)
    assert market.convert_share_to_liquidity(shares) <= SCALE // 4


def test_fully_diluted_market_recovers(market, clock, deposit_liquidity, borrow_liquidity, token1):
    """Two years at 100% utilization consume the whole debt, both sides can still exit"""
    deposit_liquidity("alice", SCALE, 8 * SCALE, SCALE)
    borrow_liquidity("bob", SCALE)
    clock.advance(2 * YEAR_IN_SECONDS)
    sync(market)

    assert market.total_liquidity_borrowed == 0
    assert market.total_liquidity == 0
    assert market.total_position_size == SCALE

    # alice's shares redeem no liquidity, only the collateral already credited
    assert withdraw(market, "alice", "alice", SCALE) == (0, 0, 0)
    assert market.events.last() == Withdraw("alice", SCALE, 0, "alice")
    assert market.total_position_size == 0
    assert collect(market, "alice", "alice", 2**128) == 10 * SCALE

    # bob's shares no longer represent any debt and are cleared for nothing
    assert burn(market, "bob", "bob", SCALE, _repay_callback(market, "bob")) == 0
    assert market.events.last() == Repay("bob", 0, SCALE, 0, "bob")
    assert market.total_supply == 0

    assert deposit_liquidity("carol", SCALE, 8 * SCALE, SCALE) == SCALE
    assert borrow_liquidity("dave", SCALE // 2) == SCALE // 2
    assert token1.balance_of(market.address) == 5 * SCALE
