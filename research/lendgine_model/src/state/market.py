"""Market state: lender positions, borrower shares and the pair they share

Every state-changing instruction runs inside Market.transaction(), which
serializes access, blocks re-entry from settlement callbacks and restores
the full pre-operation state if anything fails.
"""
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, Optional
from ..clock import Clock, SystemClock
from ..constants import SCALE
from ..errors import ReentrancyError, InvariantViolationError, InsufficientPositionError
from ..events import EventLog
from ..fixed_point import mul_div, mul_div_rounding_up, checked_add, checked_mul
from ..interest_rate_model import JumpRateParams, DEFAULT_RATE_PARAMS, get_borrow_rate, get_supply_rate
from .market_config import MarketConfig
from .pair import Pair
from .position import Position, convert_liquidity_to_position, convert_position_to_liquidity, update

logger = logging.getLogger(__name__)


@dataclass
class Market:
    """One lending market over one pair"""
    address: str
    config: MarketConfig
    pair: Pair
    clock: Clock = field(default_factory=SystemClock)
    rate_params: JumpRateParams = DEFAULT_RATE_PARAMS
    events: EventLog = field(default_factory=EventLog)

    # Lender side
    total_position_size: int = 0
    reward_per_position_stored: int = 0
    positions: Dict[str, Position] = field(default_factory=dict)

    # Borrower side
    total_liquidity_borrowed: int = 0
    total_supply: int = 0
    share_balances: Dict[str, int] = field(default_factory=dict)

    last_update: int = 0

    # Running sums over positions and share balances, kept current by the
    # entries each transaction touches
    position_size_sum: int = 0
    total_tokens_owed: int = 0
    size_reward_paid_sum: int = 0  # sum of size * reward_per_position_paid
    share_balance_sum: int = 0

    _touched_positions: Dict[str, Optional[Position]] = field(default_factory=dict, repr=False, compare=False)
    _touched_shares: Dict[str, Optional[int]] = field(default_factory=dict, repr=False, compare=False)
    _mutex: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)
    _entered: bool = field(default=False, repr=False, compare=False)

    @classmethod
    def create(
        cls,
        config: MarketConfig,
        clock: Optional[Clock] = None,
        address: str = "lendgine",
        rate_params: JumpRateParams = DEFAULT_RATE_PARAMS,
    ) -> "Market":
        """Deploy a market and its pair sharing one event log"""
        clock = clock if clock is not None else SystemClock()
        events = EventLog()
        pair = Pair(address=f"{address}/pair", config=config, events=events)
        market = cls(
            address=address,
            config=config,
            pair=pair,
            clock=clock,
            rate_params=rate_params,
            events=events,
            last_update=clock(),
        )
        logger.info("Deployed market %s (%s)", address, config.describe())
        return market

    # ------------------------------------------------------------------
    # Transaction boundary

    @contextmanager
    def transaction(self) -> Iterator["Market"]:
        """Exclusive, all-or-nothing scope for one operation"""
        with self._mutex:
            if self._entered:
                raise ReentrancyError(f"{self.address} re-entered during an operation")
            self._entered = True
            saved = self._snapshot()
            try:
                yield self
                self._fold_touched()
                self.check_invariants()
            except Exception:
                self._restore(saved)
                raise
            finally:
                self._touched_positions.clear()
                self._touched_shares.clear()
                self._entered = False

    def _snapshot(self) -> dict:
        # positions and share balances are journaled on first touch instead
        return {
            "scalars": (
                self.total_position_size,
                self.reward_per_position_stored,
                self.total_liquidity_borrowed,
                self.total_supply,
                self.last_update,
                self.position_size_sum,
                self.total_tokens_owed,
                self.size_reward_paid_sum,
                self.share_balance_sum,
            ),
            "pair": self.pair.snapshot(),
            "token0": self.config.token0.snapshot(),
            "token1": self.config.token1.snapshot(),
            "events": len(self.events),
        }

    def _restore(self, saved: dict) -> None:
        (
            self.total_position_size,
            self.reward_per_position_stored,
            self.total_liquidity_borrowed,
            self.total_supply,
            self.last_update,
            self.position_size_sum,
            self.total_tokens_owed,
            self.size_reward_paid_sum,
            self.share_balance_sum,
        ) = saved["scalars"]
        for owner, before in self._touched_positions.items():
            if before is None:
                self.positions.pop(owner, None)
            else:
                self.positions[owner] = before
        for owner, balance in self._touched_shares.items():
            if balance is None:
                self.share_balances.pop(owner, None)
            else:
                self.share_balances[owner] = balance
        self.pair.restore(saved["pair"])
        self.config.token0.restore(saved["token0"])
        self.config.token1.restore(saved["token1"])
        self.events.truncate(saved["events"])
        logger.debug("Reverted %s to pre-operation state", self.address)

    def _fold_touched(self) -> None:
        """Move the running sums from the touched entries' old values to their new ones"""
        for owner, before in self._touched_positions.items():
            after = self.positions.get(owner)
            if before is None and after is not None and after.size == 0 and after.tokens_owed == 0:
                # a zero-delta settle of an unknown owner leaves nothing behind
                del self.positions[owner]
                after = None
            for position, sign in ((before, -1), (after, 1)):
                if position is None:
                    continue
                self.position_size_sum += sign * position.size
                self.total_tokens_owed += sign * position.tokens_owed
                self.size_reward_paid_sum += sign * position.size * position.reward_per_position_paid
        for owner, before in self._touched_shares.items():
            self.share_balance_sum += self.share_balances.get(owner, 0) - (before or 0)

    # ------------------------------------------------------------------
    # Views

    @property
    def reserve0(self) -> int:
        return self.pair.reserve0

    @property
    def reserve1(self) -> int:
        return self.pair.reserve1

    @property
    def total_liquidity(self) -> int:
        """Liquidity owned by lenders, backed by the pair or lent out"""
        return self.pair.total_liquidity + self.total_liquidity_borrowed

    @property
    def available_liquidity(self) -> int:
        """Liquidity physically backed by pair reserves"""
        return self.pair.total_liquidity

    def get_position(self, owner: str) -> Position:
        """Copy of owner's position, zeroed if it never existed"""
        position = self.positions.get(owner)
        return replace(position) if position is not None else Position()

    def balance_of(self, owner: str) -> int:
        return self.share_balances.get(owner, 0)

    def get_borrow_rate(self, borrowed_liquidity: int, total_liquidity: int) -> int:
        return get_borrow_rate(borrowed_liquidity, total_liquidity, self.rate_params)

    def get_supply_rate(self, borrowed_liquidity: int, total_liquidity: int) -> int:
        return get_supply_rate(borrowed_liquidity, total_liquidity, self.rate_params)

    def convert_liquidity_to_share(self, liquidity: int) -> int:
        """Borrower shares for borrowing `liquidity`, rounded down"""
        if self.total_liquidity_borrowed == 0:
            return liquidity
        return mul_div(liquidity, self.total_supply, self.total_liquidity_borrowed)

    def convert_share_to_liquidity(self, shares: int) -> int:
        """Liquidity debt represented by `shares`, rounded down"""
        return mul_div(self.total_liquidity_borrowed, shares, self.total_supply)

    def convert_collateral_to_liquidity(self, collateral: int) -> int:
        return mul_div(
            checked_mul(collateral, self.config.token1_scale),
            SCALE,
            self.config.collateral_per_liquidity,
        )

    def convert_liquidity_to_collateral(self, liquidity: int, rounding_up: bool = False) -> int:
        """token1 backing `liquidity` at the upper bound

        Round up for collateral a borrower must post, down for collateral
        paid out.
        """
        scale = self.config.token1_scale
        if rounding_up:
            normalized = mul_div_rounding_up(liquidity, self.config.collateral_per_liquidity, SCALE)
            return -(-normalized // scale)
        return mul_div(liquidity, self.config.collateral_per_liquidity, SCALE) // scale

    def convert_liquidity_to_position(self, liquidity: int) -> int:
        return convert_liquidity_to_position(liquidity, self.total_liquidity, self.total_position_size)

    def convert_position_to_liquidity(self, size: int) -> int:
        return convert_position_to_liquidity(size, self.total_liquidity, self.total_position_size)

    # ------------------------------------------------------------------
    # Lender positions and borrower share ledger

    def update_position(self, owner: str, size_delta: int) -> Position:
        """Settle owner's rewards and resize the position. Transaction only."""
        if owner not in self._touched_positions:
            position = self.positions.get(owner)
            self._touched_positions[owner] = replace(position) if position is not None else None
        return update(self.positions, owner, size_delta, self.reward_per_position_stored)

    def _touch_shares(self, owner: str) -> None:
        if owner not in self._touched_shares:
            self._touched_shares[owner] = self.share_balances.get(owner)

    def mint_shares(self, to: str, shares: int) -> None:
        self._touch_shares(to)
        self.share_balances[to] = checked_add(self.balance_of(to), shares)
        self.total_supply = checked_add(self.total_supply, shares)

    def burn_shares(self, owner: str, shares: int) -> None:
        balance = self.balance_of(owner)
        if shares > balance:
            raise InsufficientPositionError(f"{owner} holds {balance} shares, cannot burn {shares}")
        self._touch_shares(owner)
        self.share_balances[owner] = balance - shares
        self.total_supply -= shares

    # ------------------------------------------------------------------
    # Invariants

    def collateral_owed(self) -> int:
        """token1 the market must hold: lender rewards plus borrower collateral

        Unsettled rewards come from the running sums, rounded down once for
        all positions, which bounds the per-position rounded-down sum from
        above.
        """
        unsettled = (
            self.position_size_sum * self.reward_per_position_stored - self.size_reward_paid_sum
        ) // SCALE
        return (
            self.total_tokens_owed
            + unsettled
            + self.convert_liquidity_to_collateral(self.total_liquidity_borrowed)
        )

    def check_invariants(self) -> None:
        """Raise InvariantViolationError if market totals are inconsistent"""
        violations = []

        if self.total_liquidity_borrowed > self.total_liquidity:
            violations.append(
                f"borrowed {self.total_liquidity_borrowed} exceeds total {self.total_liquidity}"
            )
        if self.total_position_size == 0 and self.total_liquidity != 0:
            violations.append(f"no positions but total liquidity is {self.total_liquidity}")
        if self.total_position_size != self.position_size_sum:
            violations.append("position sizes do not sum to total_position_size")
        if self.total_supply != self.share_balance_sum:
            violations.append("share balances do not sum to total_supply")
        if not self.pair.invariant(self.pair.reserve0, self.pair.reserve1, self.pair.total_liquidity):
            violations.append(
                f"pair reserves ({self.pair.reserve0}, {self.pair.reserve1}) "
                f"do not back {self.pair.total_liquidity} liquidity"
            )
        if not self.pair.reserves_held():
            violations.append("pair does not hold its recorded reserves")
        owed = self.collateral_owed()
        held = self.config.token1.balance_of(self.address)
        if held < owed:
            violations.append(f"market holds {held} collateral but owes {owed}")

        if violations:
            msg = f"Market {self.address} invariant violated: " + "; ".join(violations)
            logger.error(msg)
            raise InvariantViolationError(msg)
