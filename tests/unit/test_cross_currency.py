"""
test_cross_currency.py - Unit tests for cross_currency.py

Tests:
- Sizing local currency to trade against the buffer
- Rate conversion between currencies with different decimals
- Purchase amount policy (full, raise from tokens, partial)
- Balance reconciliation and the raise remainder bound
- Trading collateral at a 1:1 rate across every balance / claim / requirement mix
- liquidate() and settle() preconditions
"""

import pytest
from decimal import Decimal

from liquidation import (
    DECIMALS,
    RateInfo,
    NoLocalDebt,
    InvalidHaircutSpread,
    ZeroSaleAmount,
    RaiseReconciliationError,
    calculate_local_currency_to_trade,
    calculate_collateral_to_sell,
    calculate_local_currency_to_purchase,
    calculate_purchase_amounts,
    apply_raise,
    liquidate,
    settle,
    to_fixed,
)
from tests.builders import (
    HAIRCUT, LIQUIDATION_DISCOUNT, LOCAL_CURRENCY_BUFFER, SIX, cross_request,
)
from tests.fake_ledger import FakeLedger


E18 = DECIMALS


def six(value) -> int:
    """Amount in the 6 decimal collateral currency."""
    return to_fixed(Decimal(str(value)), SIX)


# ============================================================================
# LOCAL CURRENCY SIZING
# ============================================================================

class TestLocalCurrencyToTrade:
    """Tests for calculate_local_currency_to_trade."""

    def test_required_below_max_debt(self):
        value = calculate_local_currency_to_trade(
            100 * E18, LIQUIDATION_DISCOUNT, LOCAL_CURRENCY_BUFFER, 1000 * E18
        )
        assert value == 100 * E18 * E18 // to_fixed("0.34")

    def test_required_above_max_debt(self):
        value = calculate_local_currency_to_trade(
            1000 * E18, LIQUIDATION_DISCOUNT, LOCAL_CURRENCY_BUFFER, 100 * E18
        )
        assert value == 100 * E18

    def test_buffer_must_exceed_discount(self):
        with pytest.raises(InvalidHaircutSpread):
            calculate_local_currency_to_trade(
                100 * E18, LIQUIDATION_DISCOUNT, LIQUIDATION_DISCOUNT, 1000 * E18
            )


# ============================================================================
# RATE CONVERSION
# ============================================================================

class TestCollateralToSell:
    """Tests for calculate_collateral_to_sell and its inverse."""

    def test_base_case(self):
        rate = RateInfo(to_fixed("0.01"), E18, E18, SIX)
        assert calculate_collateral_to_sell(rate, LIQUIDATION_DISCOUNT, 1000 * E18) == six("10.6")

    def test_small_values_convert_down(self):
        # 18 decimals down to 6 cannot sell below one unit of dust
        rate = RateInfo(to_fixed("0.01", SIX), SIX, E18, SIX)
        assert calculate_collateral_to_sell(rate, LIQUIDATION_DISCOUNT, to_fixed("0.0001")) == 1

    def test_small_values_convert_up(self):
        rate = RateInfo(to_fixed("0.01", SIX), SIX, SIX, E18)
        value = calculate_collateral_to_sell(rate, LIQUIDATION_DISCOUNT, six("0.0001"))
        assert value == to_fixed("0.00000106")

    def test_local_base_divided_before_collateral_base(self):
        # 3e18 / 7 truncates before the 1e19 collateral base is applied
        rate = RateInfo(rate=3, rate_decimals=1, local_decimals=7, collateral_decimals=10 ** 19)
        value = calculate_collateral_to_sell(rate, E18, 1)
        assert value == 3 * E18 // 7 * 10 ** 19 // E18
        assert value == 4285714285714285710

    def test_one_to_one(self, rate_one_to_one):
        assert calculate_collateral_to_sell(rate_one_to_one, LIQUIDATION_DISCOUNT, 100 * E18) == six(106)

    def test_inverse(self, rate_one_to_one):
        assert calculate_local_currency_to_purchase(six(53), LIQUIDATION_DISCOUNT, rate_one_to_one) == 50 * E18

    def test_inverse_at_fractional_rate(self):
        rate = RateInfo(to_fixed("0.01"), E18, E18, E18)
        value = calculate_local_currency_to_purchase(to_fixed("5"), LIQUIDATION_DISCOUNT, rate)
        assert value == 5 * E18 * E18 * E18 * E18 // to_fixed("0.01") // LIQUIDATION_DISCOUNT // E18


# ============================================================================
# PURCHASE AMOUNTS
# ============================================================================

class TestPurchaseAmounts:
    """Tests for calculate_purchase_amounts."""

    def test_available_covers_sale(self, rate_one_to_one):
        request = cross_request(100 * E18, collateral_available=six(110))
        outcome = calculate_purchase_amounts(0, 100 * E18, request, rate_one_to_one)

        assert outcome.amount_to_raise == 0
        assert outcome.local_to_purchase == 100 * E18
        assert outcome.collateral_to_sell == six(106)
        assert not outcome.partial

    def test_haircut_slice_covers_sale(self, rate_one_to_one):
        # 100 available + 26 haircut slice >= 106
        request = cross_request(100 * E18, collateral_cash_claim=six(104), collateral_available=six(100))
        outcome = calculate_purchase_amounts(six(26), 100 * E18, request, rate_one_to_one)

        assert outcome.amount_to_raise == six(30)
        assert outcome.collateral_to_sell == six(106)
        assert not outcome.partial

    def test_haircut_slice_branch_at_par(self, rate_one_to_one):
        # available 50 + haircut slice 40 >= sale of 80
        request = cross_request(
            80 * E18, collateral_cash_claim=six(160), collateral_available=six(50),
            discount_factor=DECIMALS,
        )
        outcome = calculate_purchase_amounts(six(40), 80 * E18, request, rate_one_to_one)

        assert outcome.collateral_to_sell == six(80)
        assert outcome.amount_to_raise == six(150)
        assert outcome.local_to_purchase == 80 * E18

    def test_partial_clamps_sale(self, rate_one_to_one):
        request = cross_request(120 * E18, collateral_cash_claim=six(80), collateral_available=six(33))
        outcome = calculate_purchase_amounts(six(20), 120 * E18, request, rate_one_to_one)

        assert outcome.partial
        assert outcome.collateral_to_sell == six(53)
        assert outcome.local_to_purchase == 50 * E18
        assert outcome.amount_to_raise == six(100)

    def test_nothing_to_sell(self, rate_one_to_one):
        request = cross_request(200 * E18, collateral_available=six(-106))
        with pytest.raises(ZeroSaleAmount):
            calculate_purchase_amounts(0, 200 * E18, request, rate_one_to_one)

    def test_zero_sale_amount(self, rate_one_to_one):
        request = cross_request(0, collateral_available=six(10))
        with pytest.raises(ZeroSaleAmount):
            calculate_purchase_amounts(0, 0, request, rate_one_to_one)


# ============================================================================
# BALANCE RECONCILIATION
# ============================================================================

class TestApplyRaise:
    """Tests for apply_raise."""

    def test_balance_covers_sale(self):
        calls = []
        update = apply_raise(six(110), six(106), 0, lambda amount: calls.append(amount) or 0)

        assert update.new_balance == six(4)
        assert calls == []

    def test_raises_shortfall(self):
        calls = []
        update = apply_raise(six(50), six(106), 0, lambda amount: calls.append(amount) or 0)

        assert calls == [six(56)]
        assert update.new_balance == 0
        assert update.amount_raised == six(56)

    def test_excess_raise_credited_to_balance(self):
        update = apply_raise(0, six(106), six(190), lambda amount: 0)

        assert update.new_balance == six(84)
        assert update.amount_raised == six(190)

    def test_remainder_of_one_tolerated(self):
        update = apply_raise(0, six(106), six(106), lambda amount: 1)

        assert update.new_balance == -1
        assert update.amount_raised == six(106) - 1
        assert update.remainder == 1

    def test_remainder_above_one_rejected(self):
        with pytest.raises(RaiseReconciliationError):
            apply_raise(0, six(106), six(106), lambda amount: 2)

    def test_negative_remainder_rejected(self):
        with pytest.raises(RaiseReconciliationError):
            apply_raise(0, six(106), six(106), lambda amount: -1)


# ============================================================================
# TRADING COLLATERAL CURRENCY (1:1 rate, 6 decimal collateral)
# ============================================================================

# (balance, pre haircut cash claim, requirement, local required)
#   -> (local purchased, collateral sold, payer balance, amount raised)
TRADE_SCENARIOS = [
    pytest.param((110, 0, 0, 100), (100, 106, 4, 0), id="balance-sufficient"),
    # No liquidity tokens to trade
    pytest.param((106, 0, 0, 200), (100, 106, 0, 0), id="no-tokens-balance-insufficient"),
    pytest.param((206, 0, 100, 200), (100, 106, 100, 0), id="no-tokens-sufficient-requirement"),
    pytest.param((153, 0, 100, 200), (50, 53, 100, 0), id="no-tokens-insufficient-requirement"),
    # Post haircut cash claim covers the sale
    pytest.param((0, 140, 0, 100), (100, 106, 0, 106), id="claim-no-balance"),
    pytest.param((50, 140, 0, 100), (100, 106, 0, 56), id="claim-partial-balance"),
    pytest.param((-50, 200, 0, 100), (100, 106, 0, 156), id="claim-negative-balance"),
    pytest.param((110, 200, 0, 100), (100, 106, 4, 0), id="claim-sufficient-balance"),
    pytest.param((0, 210, 100, 100), (100, 106, 84, 190), id="claim-requirement-no-balance"),
    pytest.param((106, 210, 100, 100), (100, 106, 0, 0), id="claim-requirement-sufficient"),
    pytest.param((50, 210, 100, 100), (100, 106, 0, 56), id="claim-requirement-partial"),
    pytest.param((-50, 300, 100, 100), (100, 106, 0, 156), id="claim-requirement-negative"),
    # Pre haircut cash claim covers the sale
    pytest.param((0, 120, 0, 100), (100, 106, 0, 106), id="pre-haircut-no-balance"),
    pytest.param((1, 120, 0, 100), (100, 106, 0, 105), id="pre-haircut-partial-balance"),
    pytest.param((-1, 120, 0, 100), (100, 106, 0, 107), id="pre-haircut-negative-balance"),
    pytest.param((110, 120, 0, 100), (100, 106, 4, 0), id="pre-haircut-sufficient"),
    pytest.param((0, 130, 20, 100), (100, 106, 4, 110), id="pre-haircut-requirement-no-balance"),
    pytest.param((1, 129, 20, 100), (100, 106, 4, 109), id="pre-haircut-requirement-partial"),
    pytest.param((-1, 131, 20, 100), (100, 106, 4, 111), id="pre-haircut-requirement-negative"),
    pytest.param((100, 26, 20, 100), (100, 106, 20, 26), id="pre-haircut-requirement-sufficient"),
    # Pre haircut cash claim does not cover the sale
    pytest.param((0, 106, 0, 120), (100, 106, 0, 106), id="short-no-balance"),
    pytest.param((6, 100, 0, 120), (100, 106, 0, 100), id="short-partial-balance"),
    pytest.param((-47, 100, 0, 120), (50, 53, 0, 100), id="short-negative-balance"),
    pytest.param((150, 100, 0, 120), (120, "127.2", "22.8", 0), id="short-sufficient-balance"),
    pytest.param((0, 126, 20, 120), (100, 106, 20, 126), id="short-requirement-no-balance"),
    pytest.param((1, 125, 20, 120), (100, 106, 20, 125), id="short-requirement-partial"),
    pytest.param((-1, 127, 20, 120), (100, 106, 20, 127), id="short-requirement-negative"),
    pytest.param((140, 127, 20, 120), (120, "127.2", "12.8", 0), id="short-requirement-sufficient"),
]


class TestTradeCollateralCurrency:
    """Collateral trades at a 1:1 rate between DAI (18 decimals) and a 6 decimal currency."""

    @pytest.mark.parametrize("inputs, outputs", TRADE_SCENARIOS)
    def test_trade(self, rate_one_to_one, inputs, outputs):
        balance, cash_claim, requirement, local_required = inputs
        local_purchased, collateral_sold, payer_balance, amount_to_raise = outputs

        claim = six(cash_claim) * HAIRCUT // E18
        available = six(balance) + claim - six(requirement)
        request = cross_request(
            local_required * E18,
            collateral_cash_claim=claim,
            collateral_available=available,
        )
        ledger = FakeLedger()

        trade = settle("bob", six(balance), request, rate_one_to_one, ledger)

        assert trade.local_purchased == local_purchased * E18
        assert trade.collateral_sold == six(collateral_sold)
        assert trade.new_balance == six(payer_balance)

        if amount_to_raise:
            assert ledger.was_called
            assert ledger.last_amount == six(amount_to_raise)
            # Net currency available cannot dip below the requirement
            post_claim = six(cash_claim - amount_to_raise) * HAIRCUT // E18
            assert trade.new_balance + post_claim >= six(requirement)
        else:
            assert not ledger.was_called

    def test_negative_balance_without_claim_rejected(self, rate_one_to_one):
        request = cross_request(200 * E18, collateral_available=six(-106))
        ledger = FakeLedger()

        with pytest.raises(ZeroSaleAmount):
            settle("bob", six(-106), request, rate_one_to_one, ledger)
        assert not ledger.was_called

    def test_partial_flag(self, rate_one_to_one):
        request = cross_request(120 * E18, collateral_cash_claim=six(80), collateral_available=six(33))
        trade = settle("bob", six(-47), request, rate_one_to_one, FakeLedger())
        assert trade.partial

    def test_raise_uses_collateral_currency(self, rate_one_to_one):
        request = cross_request(100 * E18, collateral_cash_claim=six(112), collateral_available=six(112))
        ledger = FakeLedger()
        settle("bob", 0, request, rate_one_to_one, ledger)
        assert ledger.redemptions == [("bob", "ETH", six(106))]

    def test_unfilled_raise_rejected(self, rate_one_to_one):
        request = cross_request(100 * E18, collateral_cash_claim=six(112), collateral_available=six(112))
        ledger = FakeLedger(remainder=six(1))
        with pytest.raises(RaiseReconciliationError):
            settle("bob", 0, request, rate_one_to_one, ledger)


# ============================================================================
# LIQUIDATE
# ============================================================================

class TestLiquidate:
    """Tests for liquidate()."""

    def test_requires_local_debt(self, rate_one_to_one):
        request = cross_request(100 * E18, collateral_available=six(110), local_available=0)
        with pytest.raises(NoLocalDebt):
            liquidate("bob", six(110), LOCAL_CURRENCY_BUFFER, request, rate_one_to_one, FakeLedger())

    def test_trade_capped_at_debt(self, rate_one_to_one):
        request = cross_request(100 * E18, collateral_available=six(110), local_available=-100 * E18)
        trade = liquidate("bob", six(110), LOCAL_CURRENCY_BUFFER, request, rate_one_to_one, FakeLedger())

        assert trade.local_purchased == 100 * E18
        assert trade.collateral_sold == six(106)
        assert trade.new_balance == six(4)

    def test_trade_sized_by_buffer(self, rate_one_to_one):
        request = cross_request(34 * E18, collateral_available=six(500), local_available=-1000 * E18)
        trade = liquidate("bob", six(500), LOCAL_CURRENCY_BUFFER, request, rate_one_to_one, FakeLedger())

        # 34 / (1.4 - 1.06) = 100
        assert trade.local_purchased == 100 * E18
        assert trade.collateral_sold == six(106)

    def test_invalid_spread(self, rate_one_to_one):
        request = cross_request(100 * E18, collateral_available=six(110), local_available=-100 * E18)
        with pytest.raises(InvalidHaircutSpread):
            liquidate("bob", six(110), to_fixed("1.0"), request, rate_one_to_one, FakeLedger())

    def test_settle_does_not_require_debt(self, rate_one_to_one):
        request = cross_request(100 * E18, collateral_available=six(110), local_available=0)
        trade = settle("bob", six(110), request, rate_one_to_one, FakeLedger())
        assert trade.local_purchased == 100 * E18
