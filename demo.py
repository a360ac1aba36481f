#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: How an Account Gets Liquidated

Walks through the liquidation engine one step at a time against a small
in-memory ledger. Press Enter to advance.

WHAT YOU'LL LEARN:
  1:   Setup           - Parameters, rates and the ledger port
  2-3: Liquidity Tokens - Redeeming local tokens, fully and partially
  4-5: Collateral      - Selling collateral currency, fully and partially
  6:   Settlement      - Paying a cash obligation with collateral
  7:   Rejections      - What the engine refuses to do

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple
import sys

from liquidation import (
    LiquidationEngine,
    LiquidationParameters,
    StaticRateProvider,
    LiquidationError,
    to_fixed,
    from_fixed,
)


# ============================================================================
# IN-MEMORY LEDGER
# ============================================================================

@dataclass
class DemoLedger:
    """
    Tiny LedgerPort: liquidity token claims and settled balances per account.

    redeem_liquidity_token withdraws as much of the requested claim as the
    account holds and reports the rest as the remainder.
    """
    claims: Dict[Tuple[str, str], int] = field(default_factory=dict)
    balances: Dict[Tuple[str, str], int] = field(default_factory=dict)

    def redeem_liquidity_token(self, account: str, currency: str, amount: int) -> int:
        held = self.claims.get((account, currency), 0)
        withdrawn = min(held, amount)
        self.claims[(account, currency)] = held - withdrawn
        return amount - withdrawn

    def get_balance(self, account: str, currency: str) -> int:
        return self.balances.get((account, currency), 0)

    def set_balance(self, account: str, currency: str, balance: int) -> None:
        self.balances[(account, currency)] = balance


QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def fmt(amount: int) -> str:
    return f"{from_fixed(amount):,.4f}"


# ============================================================================
# STEPS
# ============================================================================

def step_01_setup():
    """Create parameters, rates, a ledger and the engine."""
    step_header(1, "Setup",
        "See the three things an engine needs: parameters, rates and a ledger.")

    params = LiquidationParameters()
    print(f"Liquidity haircut:      {fmt(params.liquidity_haircut)}")
    print(f"Repo incentive:         {fmt(params.repo_incentive)}")
    print(f"Liquidation discount:   {fmt(params.liquidation_discount)}")
    print(f"Settlement discount:    {fmt(params.settlement_discount)}")
    print(f"Local currency buffer:  {fmt(params.local_currency_buffer)}")

    rates = StaticRateProvider()
    rates.add_rate("DAI", "ETH", "0.01")
    print(f"\n>>> rates.add_rate('DAI', 'ETH', '0.01')   # 1 DAI = 0.01 ETH")

    ledger = DemoLedger()
    engine = LiquidationEngine(ledger, rates, params, verbose=True)
    return ledger, engine


def step_02_tokens_restore(ledger: DemoLedger, engine: LiquidationEngine):
    """Alice's DAI liquidity tokens cover her whole requirement."""
    step_header(2, "Liquidity Tokens Restore the Account",
        "Only the haircut slice of a claim helps; the liquidator is paid from it.")

    ledger.claims[("alice", "DAI")] = to_fixed("10000")
    print("alice holds a 10,000 DAI cash claim and needs 1,000 DAI.")
    print("Claim to redeem = 1000 * 1.10 / (1 - 0.80) = 5,500 DAI\n")

    result = engine.liquidate_account(
        "alice", "DAI", "ETH",
        required=to_fixed("1000"),
        net_available=to_fixed("-1500"),
        collateral_cash_claim=0,
        collateral_available=0,
    )

    section_header("Result")
    stage = result.token_stage
    print(f"Cash withdrawn:   {fmt(stage.cash_withdrawn)}")
    print(f"Raised:           {fmt(stage.local_currency_raised)}")
    print(f"Incentive paid:   {fmt(-stage.incentive_paid)}")
    print(f"Required after:   {fmt(stage.required_after)}")
    print(f"Collateral stage: {'skipped' if result.trade_stage is None else 'ran'}")


def step_03_tokens_then_collateral(ledger: DemoLedger, engine: LiquidationEngine):
    """Bob's tokens fall short, so his ETH is sold for the rest."""
    step_header(3, "Tokens Fall Short, Collateral Covers the Rest",
        "The ledger's remainder drives everything that follows.")

    ledger.claims[("bob", "DAI")] = to_fixed("2200")
    ledger.balances[("bob", "ETH")] = to_fixed("20")
    print("bob holds a 2,200 DAI claim (the request is 5,500) and 20 ETH.\n")

    result = engine.liquidate_account(
        "bob", "DAI", "ETH",
        required=to_fixed("1000"),
        net_available=to_fixed("-1500"),
        collateral_cash_claim=0,
        collateral_available=to_fixed("20"),
    )

    section_header("Result")
    print(f"Raised from tokens:  {fmt(result.token_stage.local_currency_raised)} DAI")
    print(f"Still required:      {fmt(result.token_stage.required_after)} DAI")
    print(f"Bought with ETH:     {fmt(result.trade_stage.local_purchased)} DAI")
    print(f"ETH sold:            {fmt(result.trade_stage.collateral_sold)}")
    print(f"bob ETH balance:     {fmt(ledger.get_balance('bob', 'ETH'))}")
    print(f"Total recovered:     {fmt(result.local_recovered)} DAI")


def step_04_partial_trade(ledger: DemoLedger, engine: LiquidationEngine):
    """Carol has too little ETH, so the sale is clamped."""
    step_header(4, "Partial Collateral Trade",
        "When collateral runs out, sell what exists and buy less local currency.")

    ledger.balances[("carol", "ETH")] = to_fixed("5")
    print("carol owes 2,000 DAI but holds only 5 ETH (worth ~500 DAI).\n")

    trade = engine.liquidate(
        "carol", "DAI", "ETH",
        required_local=to_fixed("700"),
        local_available=to_fixed("-2000"),
        collateral_cash_claim=0,
        collateral_available=to_fixed("5"),
    )

    section_header("Result")
    print(f"Partial:           {trade.partial}")
    print(f"ETH sold:          {fmt(trade.collateral_sold)}")
    print(f"DAI purchased:     {fmt(trade.local_purchased)}   (5 / 0.01 / 1.06)")
    print(f"carol ETH balance: {fmt(ledger.get_balance('carol', 'ETH'))}")


def step_05_raise_from_collateral_tokens(ledger: DemoLedger, engine: LiquidationEngine):
    """Dave's ETH sits partly in liquidity tokens and must be raised."""
    step_header(5, "Raising Collateral from Liquidity Tokens",
        "A sale larger than the balance redeems collateral tokens to cover it.")

    ledger.balances[("dave", "ETH")] = to_fixed("2")
    ledger.claims[("dave", "ETH")] = to_fixed("50")
    print("dave holds 2 ETH and a 50 ETH claim (counted as 40 after the haircut).\n")

    trade = engine.liquidate(
        "dave", "DAI", "ETH",
        required_local=to_fixed("300"),
        local_available=to_fixed("-1000"),
        collateral_cash_claim=to_fixed("40"),
        collateral_available=to_fixed("42"),
    )

    section_header("Result")
    print(f"ETH sold:           {fmt(trade.collateral_sold)}")
    print(f"ETH raised:         {fmt(trade.amount_raised)}")
    print(f"dave ETH balance:   {fmt(ledger.get_balance('dave', 'ETH'))}")
    print(f"dave ETH claim:     {fmt(ledger.claims[('dave', 'ETH')])}")


def step_06_settle(ledger: DemoLedger, engine: LiquidationEngine):
    """Erin pays a DAI obligation with ETH at the settlement discount."""
    step_header(6, "Settlement with Collateral",
        "settle() trades exactly the amount owed, with no debt precondition.")

    ledger.balances[("erin", "ETH")] = to_fixed("10")
    trade = engine.settle(
        "erin", "DAI", "ETH",
        required_local=to_fixed("250"),
        collateral_cash_claim=0,
        collateral_available=to_fixed("10"),
    )

    section_header("Result")
    print(f"DAI settled:       {fmt(trade.local_purchased)}")
    print(f"ETH paid:          {fmt(trade.collateral_sold)}")
    print(f"erin ETH balance:  {fmt(ledger.get_balance('erin', 'ETH'))}")


def step_07_rejections(ledger: DemoLedger, engine: LiquidationEngine):
    """Show the typed errors raised for invalid requests."""
    step_header(7, "Rejections",
        "Every failure is a LiquidationError; nothing is partially applied.")

    section_header("No local currency debt")
    try:
        engine.liquidate(
            "frank", "DAI", "ETH",
            required_local=to_fixed("100"),
            local_available=to_fixed("50"),
            collateral_cash_claim=0,
            collateral_available=to_fixed("10"),
        )
    except LiquidationError as e:
        print(f"Caught {type(e).__name__}")

    section_header("No exchange rate listed")
    try:
        engine.liquidate(
            "frank", "DAI", "WBTC",
            required_local=to_fixed("100"),
            local_available=to_fixed("-50"),
            collateral_cash_claim=0,
            collateral_available=to_fixed("10"),
        )
    except LiquidationError as e:
        print(f"Caught {type(e).__name__}: {e}")

    section_header("Nothing to sell")
    try:
        engine.liquidate(
            "frank", "DAI", "ETH",
            required_local=to_fixed("100"),
            local_available=to_fixed("-50"),
            collateral_cash_claim=0,
            collateral_available=0,
        )
    except LiquidationError as e:
        print(f"Caught {type(e).__name__}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       LIQUIDATION ENGINE - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    ledger, engine = step_01_setup()
    wait_for_enter()

    for step in (
        step_02_tokens_restore,
        step_03_tokens_then_collateral,
        step_04_partial_trade,
        step_05_raise_from_collateral_tokens,
        step_06_settle,
        step_07_rejections,
    ):
        step(ledger, engine)
        wait_for_enter()

    print(f"\n{'='*70}")
    print("Done. Run the tests with: pytest tests/")


if __name__ == "__main__":
    main()
