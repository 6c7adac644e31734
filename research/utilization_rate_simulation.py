import numpy as np
import matplotlib.pyplot as plt
import pandas as pd
from dataclasses import dataclass, field
from typing import List, Optional
from pathlib import Path
from datetime import datetime

from lendgine_model.src.clock import ManualClock
from lendgine_model.src.constants import SCALE, YEAR_IN_SECONDS
from lendgine_model.src.errors import ProtocolError
from lendgine_model.src.interest_rate_model import JumpRateParams
from lendgine_model.src.instructions.accrue_interest import sync
from lendgine_model.src.instructions.burn import burn
from lendgine_model.src.instructions.deposit import deposit
from lendgine_model.src.instructions.mint import mint
from lendgine_model.src.state.market import Market
from lendgine_model.src.state.market_config import MarketConfig
from lendgine_model.src.state.pair import liquidity_amounts
from lendgine_model.src.state.token import Token

LENDER = "lender"
BORROWER = "borrower"


@dataclass
class SimulationParams:
    upper_bound: int = 5 * SCALE
    initial_liquidity: int = 100 * SCALE
    simulation_days: int = 365
    steps_per_day: int = 4
    borrow_intensity: float = 0.02  # mean fraction of free liquidity borrowed per step
    repay_intensity: float = 0.015  # mean fraction of borrower shares repaid per step
    random_seed: Optional[int] = None
    experiment_name: str = "default"
    rate_params: JumpRateParams = field(default_factory=JumpRateParams)


class UtilizationSimulation:
    """Random borrow/repay flow against a single market"""

    def __init__(self, params: SimulationParams):
        self.params = params
        self.clock = ManualClock()
        self.token0 = Token("TOKEN0")
        self.token1 = Token("TOKEN1")
        self.market = Market.create(
            MarketConfig(self.token0, self.token1, params.upper_bound),
            clock=self.clock,
            rate_params=params.rate_params,
        )
        self.rows: List[dict] = []

        if params.random_seed is not None:
            np.random.seed(params.random_seed)

    def _pay_pair(self, payer: str, amount0: int, amount1: int):
        def callback(liquidity, data):
            self.token0.transfer(payer, self.market.pair.address, amount0)
            self.token1.transfer(payer, self.market.pair.address, amount1)
        return callback

    def _seed_pool(self):
        liquidity = self.params.initial_liquidity
        # Reserves at price bound/2 on the curve: scale0 = (bound/2)^2, scale1 = bound
        amount0 = liquidity * (self.params.upper_bound // 2) ** 2 // SCALE // SCALE
        amount1 = liquidity * self.params.upper_bound // SCALE
        self.token0.mint(LENDER, amount0)
        self.token1.mint(LENDER, amount1)
        deposit(self.market, LENDER, LENDER, liquidity, self._pay_pair(LENDER, amount0, amount1))

    def _borrow(self, liquidity: int):
        def post_collateral(collateral, amount0, amount1, liquidity, data):
            self.token1.mint(BORROWER, collateral)
            self.token1.transfer(BORROWER, self.market.address, collateral)
        mint(self.market, BORROWER, BORROWER, liquidity, post_collateral)

    def _repay(self, shares: int):
        liquidity = self.market.convert_share_to_liquidity(shares) + 1
        amount0, amount1 = liquidity_amounts(self.market.pair, liquidity)
        self.token0.mint(BORROWER, amount0)
        self.token1.mint(BORROWER, amount1)
        burn(self.market, BORROWER, BORROWER, shares, self._pay_pair(BORROWER, amount0, amount1))

    def step(self):
        market = self.market
        free = market.available_liquidity
        borrow_fraction = np.random.exponential(self.params.borrow_intensity)
        borrow_amount = int(free * min(borrow_fraction, 1.0))
        repay_fraction = np.random.exponential(self.params.repay_intensity)
        repay_shares = int(market.balance_of(BORROWER) * min(repay_fraction, 1.0))

        try:
            if borrow_amount > 0:
                self._borrow(borrow_amount)
            if repay_shares > 0:
                self._repay(repay_shares)
        except ProtocolError as e:
            print(f"Step skipped at t={self.clock.now}: {e}")

    def record(self):
        market = self.market
        total = market.total_liquidity
        borrowed = market.total_liquidity_borrowed
        self.rows.append({
            "day": self.clock.now / 86400,
            "utilization": borrowed / total if total else 0.0,
            "borrow_rate": market.get_borrow_rate(borrowed, total) / SCALE,
            "supply_rate": market.get_supply_rate(borrowed, total) / SCALE,
            "liquidity_per_share": total / market.total_position_size if market.total_position_size else 0.0,
            "reward_per_position": market.reward_per_position_stored / SCALE,
        })

    def simulate(self) -> pd.DataFrame:
        self._seed_pool()
        step_seconds = 86400 // self.params.steps_per_day
        total_steps = self.params.simulation_days * self.params.steps_per_day

        for _ in range(total_steps):
            self.clock.advance(step_seconds)
            sync(self.market)
            self.step()
            self.record()

        return pd.DataFrame(self.rows)

    def plot_results(self, results: pd.DataFrame):
        output_dir = Path('research/results') / self.params.experiment_name
        output_dir.mkdir(parents=True, exist_ok=True)

        fig, (ax1, ax2, ax3) = plt.subplots(3, 1, figsize=(12, 10), sharex=True)

        ax1.plot(results["day"], results["utilization"] * 100, label='Utilization')
        ax1.axhline(y=self.params.rate_params.kink / SCALE * 100, color='r', linestyle='--', alpha=0.3)
        ax1.set_ylabel('Utilization (%)')
        ax1.set_title('Utilization Over Time')
        ax1.legend()
        ax1.grid(True)

        ax2.plot(results["day"], results["borrow_rate"] * 100, label='Borrow Rate', color='orange')
        ax2.plot(results["day"], results["supply_rate"] * 100, label='Supply Rate', color='green')
        ax2.set_ylabel('Rate (% APR)')
        ax2.set_title('Interest Rates Over Time')
        ax2.legend()
        ax2.grid(True)

        ax3.plot(results["day"], results["liquidity_per_share"], label='Liquidity per Share')
        ax3.set_ylabel('Liquidity / Share')
        ax3.set_xlabel('Time (days)')
        ax3.set_title('Lender Share Dilution')
        ax3.legend()
        ax3.grid(True)

        plt.tight_layout()

        plot_name = f"kink_{self.params.rate_params.kink / SCALE}_borrow_{self.params.borrow_intensity}"
        if self.params.random_seed is not None:
            plot_name += f"_seed_{self.params.random_seed}"

        plt.savefig(output_dir / f"{plot_name}.png")
        results.to_csv(output_dir / f"{plot_name}.csv", index=False)
        plt.close()


def compare_borrow_intensities(intensities: List[float], base_params: SimulationParams):
    """Run one simulation per borrow intensity and plot the borrow rates together"""
    output_dir = Path('research/results/borrow_intensity_comparison')
    output_dir.mkdir(parents=True, exist_ok=True)

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 10))

    for intensity in intensities:
        params = SimulationParams(
            upper_bound=base_params.upper_bound,
            initial_liquidity=base_params.initial_liquidity,
            simulation_days=base_params.simulation_days,
            steps_per_day=base_params.steps_per_day,
            borrow_intensity=intensity,
            repay_intensity=base_params.repay_intensity,
            random_seed=base_params.random_seed,
            experiment_name=base_params.experiment_name,
            rate_params=base_params.rate_params,
        )
        results = UtilizationSimulation(params).simulate()
        ax1.plot(results["day"], results["utilization"] * 100, label=f"borrow intensity {intensity}")
        ax2.plot(results["day"], results["borrow_rate"] * 100, label=f"borrow intensity {intensity}")

    ax1.set_ylabel('Utilization (%)')
    ax1.set_title('Utilization Over Time')
    ax1.legend(loc='upper left')
    ax1.grid(True, alpha=0.3)

    ax2.set_ylabel('Borrow Rate (%)')
    ax2.set_xlabel('Time (days)')
    ax2.set_title('Borrow Rate Over Time')
    ax2.legend(bbox_to_anchor=(1.05, 1), loc='upper left')
    ax2.grid(True, alpha=0.3)

    seed_text = f"Random Seed: {base_params.random_seed}" if base_params.random_seed is not None else "No Seed"
    fig.text(0.02, 0.02, seed_text, fontsize=8, alpha=0.7)

    plt.tight_layout()

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"borrow_intensity_comparison_{timestamp}.png"

    plt.savefig(output_dir / filename, bbox_inches='tight', dpi=300)
    plt.close()


def main():
    base_params = SimulationParams(
        experiment_name="borrow_intensity_comparison",
        random_seed=57,
        simulation_days=180,
    )

    compare_borrow_intensities([0.005, 0.02, 0.05], base_params)

    # # single run for testing
    # params = SimulationParams(experiment_name="single_run", random_seed=42)
    # sim = UtilizationSimulation(params)
    # sim.plot_results(sim.simulate())

if __name__ == "__main__":
    main()
