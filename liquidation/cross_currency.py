"""
cross_currency.py - Selling collateral currency to cover local currency debt

When liquidity tokens cannot restore an account, the liquidator buys the
account's collateral currency at a discount and pays in local currency,
which reduces the account's local debt.

Flow of one trade:
    1. size the local currency to trade (liquidate only; settle takes it as given)
    2. convert it into collateral currency at rate * discount
    3. apply the availability policy:
         balance covers the sale             -> full trade, nothing to raise
         balance + haircut slice covers it   -> full trade, raise from tokens
         neither                             -> partial trade, clamp the sale
    4. debit the payer's balance, raising the shortfall from its tokens

Key Formulas:
    local_to_trade   = required / (buffer - discount), capped at the debt
    collateral       = rate * local * discount (each decimal base divided out)
    amount_to_raise  = shortfall / (1 - haircut)
"""

from __future__ import annotations
from functools import partial
from typing import Callable

from .core import (
    DECIMALS, MAX_RAISE_REMAINDER,
    AccountId, Amount, Ratio, SignedAmount,
    LedgerPort, RateInfo,
    CrossCurrencyRequest, PurchaseOutcome, BalanceUpdate, CurrencyTrade,
    NoLocalDebt, InvalidHaircutSpread, ZeroSaleAmount, RaiseReconciliationError,
)
from .fixed_point import checked_div, checked_mul, checked_sub, mul_div, to_int256, to_uint128
from .liquidity_tokens import calculate_liquidity_token_haircut


# Callable that redeems `amount` of liquidity tokens and returns the remainder.
RedeemFn = Callable[[Amount], Amount]


# ============================================================================
# LOCAL CURRENCY SIZING
# ============================================================================

def calculate_local_currency_to_trade(
    local_currency_required: Amount,
    liquidation_discount: Ratio,
    local_currency_buffer: Ratio,
    max_local_currency_debt: Amount,
) -> Amount:
    """
    Size how much local currency debt the liquidator should take over.

    Taking on x of local debt frees x * buffer of collateral requirement and
    costs x * discount of collateral currency, so the net benefit is
    x * (buffer - discount). Solving for the benefit that equals the
    requirement:

        x = required / (buffer - discount)

    Trading past the account's actual debt gives no further benefit, so the
    result is capped at max_local_currency_debt.

    Raises:
        InvalidHaircutSpread: if buffer <= discount.
    """
    if local_currency_buffer <= liquidation_discount:
        raise InvalidHaircutSpread(
            f"local currency buffer ({local_currency_buffer}) must exceed "
            f"liquidation discount ({liquidation_discount})"
        )

    local_currency_to_trade = to_uint128(
        mul_div(local_currency_required, DECIMALS, local_currency_buffer - liquidation_discount)
    )
    return min(local_currency_to_trade, max_local_currency_debt)


# ============================================================================
# RATE CONVERSION
# ============================================================================

def calculate_collateral_to_sell(
    rate: RateInfo,
    discount_factor: Ratio,
    local_amount: Amount,
) -> Amount:
    """
    Convert local currency into the discounted collateral currency amount.

        rate * local * discount / rate_decimals / local_decimals
            * collateral_decimals / DECIMALS

    Each decimal base is applied in its own step, in the order above.

    Example:
        # 1000 local at 0.01 collateral per local and a 6% discount
        calculate_collateral_to_sell(rate, to_fixed("1.06"), to_fixed("1000"))
    """
    x = checked_mul(checked_mul(rate.rate, local_amount), discount_factor)
    x = checked_div(x, rate.rate_decimals)
    x = checked_div(x, rate.local_decimals)
    x = checked_mul(x, rate.collateral_decimals)
    # Discount factor uses DECIMALS precision
    x = checked_div(x, DECIMALS)
    return to_uint128(x)


def calculate_local_currency_to_purchase(
    collateral_to_sell: Amount,
    discount_factor: Ratio,
    rate: RateInfo,
) -> Amount:
    """
    Inverse of calculate_collateral_to_sell.

        sell * rate_decimals * DECIMALS * local_decimals
            / rate / discount / collateral_decimals
    """
    x = checked_mul(checked_mul(collateral_to_sell, rate.rate_decimals), DECIMALS)
    x = checked_mul(x, rate.local_decimals)
    x = checked_div(x, rate.rate)
    x = checked_div(x, discount_factor)
    x = checked_div(x, rate.collateral_decimals)
    return to_uint128(x)


# ============================================================================
# PURCHASE AMOUNT POLICY
# ============================================================================

def _scale_to_pre_haircut(amount: Amount, liquidity_haircut: Ratio) -> Amount:
    # haircut_slice = pre_haircut_claim * (1 - haircut)
    return to_uint128(mul_div(amount, DECIMALS, checked_sub(DECIMALS, liquidity_haircut)))


def calculate_purchase_amounts(
    haircut_claim: Amount,
    local_currency_to_trade: Amount,
    request: CrossCurrencyRequest,
    rate: RateInfo,
) -> PurchaseOutcome:
    """
    Decide how much collateral to sell and how much must be raised from tokens.

    PURE FUNCTION - All inputs explicit, no hidden state.

    Args:
        haircut_claim: Slice of the collateral cash claim removed by the
            haircut (see calculate_liquidity_token_haircut)
        local_currency_to_trade: Local currency the liquidator is willing to pay
        request: Cross currency request (availability, discount, haircut)
        rate: Exchange rate snapshot

    Returns:
        PurchaseOutcome. partial is True when the sale had to be clamped to
        collateral_available + haircut_claim.

    Raises:
        ZeroSaleAmount: if the resolved sale is not strictly positive.
    """
    collateral_to_sell = calculate_collateral_to_sell(
        rate, request.discount_factor, local_currency_to_trade
    )
    available = request.collateral_available

    if available >= collateral_to_sell:
        # The collateral figure covers the sale outright. It may still be
        # locked inside tokens; apply_raise works that out against the balance.
        return _resolved(PurchaseOutcome(
            amount_to_raise=0,
            local_to_purchase=local_currency_to_trade,
            collateral_to_sell=collateral_to_sell,
        ))

    if available + haircut_claim >= collateral_to_sell:
        # Covered once the haircut slice of the tokens is counted. The
        # missing amount is scaled back up to a pre-haircut cash claim.
        return _resolved(PurchaseOutcome(
            amount_to_raise=_scale_to_pre_haircut(collateral_to_sell - available, request.liquidity_haircut),
            local_to_purchase=local_currency_to_trade,
            collateral_to_sell=collateral_to_sell,
        ))

    # Partial trade: sell everything that can be extracted.
    clamped = available + haircut_claim
    if clamped <= 0:
        raise ZeroSaleAmount(
            f"no collateral available to sell (available={available}, haircut claim={haircut_claim})"
        )
    return _resolved(PurchaseOutcome(
        amount_to_raise=_scale_to_pre_haircut(haircut_claim, request.liquidity_haircut),
        local_to_purchase=calculate_local_currency_to_purchase(clamped, request.discount_factor, rate),
        collateral_to_sell=clamped,
        partial=True,
    ))


def _resolved(outcome: PurchaseOutcome) -> PurchaseOutcome:
    if outcome.collateral_to_sell <= 0:
        raise ZeroSaleAmount("resolved collateral sale must be positive")
    return outcome


# ============================================================================
# BALANCE RECONCILIATION
# ============================================================================

def apply_raise(
    payer_balance: SignedAmount,
    collateral_to_sell: Amount,
    amount_to_raise: Amount,
    redeem: RedeemFn,
) -> BalanceUpdate:
    """
    Debit the payer's collateral balance, raising cash from tokens if needed.

    If the balance covers the sale no redemption happens. Otherwise the
    literal shortfall is raised, unless amount_to_raise is larger: that
    happens when the sale taps the haircut slice of the tokens, and the
    excess is credited back to the balance so the account's collateral
    position does not get worse.

    Args:
        payer_balance: Payer's settled collateral currency balance
        collateral_to_sell: Collateral sold to the liquidator
        amount_to_raise: Pre-haircut claim sized by calculate_purchase_amounts
        redeem: Redeems an amount of collateral liquidity tokens, returning
            the unfilled remainder

    Raises:
        RaiseReconciliationError: if the remainder exceeds MAX_RAISE_REMAINDER.
    """
    if payer_balance >= collateral_to_sell:
        return BalanceUpdate(new_balance=to_int256(payer_balance - collateral_to_sell))

    shortfall = collateral_to_sell - payer_balance
    if amount_to_raise > shortfall:
        new_balance = amount_to_raise - shortfall
    else:
        amount_to_raise = shortfall
        new_balance = 0
    amount_to_raise = to_uint128(amount_to_raise)

    remainder = redeem(amount_to_raise)
    if isinstance(remainder, bool) or not isinstance(remainder, int) or remainder < 0:
        raise RaiseReconciliationError(f"invalid redemption remainder: {remainder!r}")
    if remainder > MAX_RAISE_REMAINDER:
        raise RaiseReconciliationError(
            f"could not raise {remainder} of {amount_to_raise} requested from liquidity tokens"
        )

    return BalanceUpdate(
        new_balance=to_int256(new_balance - remainder),
        amount_raised=amount_to_raise - remainder,
        remainder=remainder,
    )


# ============================================================================
# ENTRY POINTS
# ============================================================================

def _trade_collateral_currency(
    payer: AccountId,
    payer_balance: SignedAmount,
    local_currency_to_trade: Amount,
    request: CrossCurrencyRequest,
    rate: RateInfo,
    ledger: LedgerPort,
) -> CurrencyTrade:
    haircut_claim = calculate_liquidity_token_haircut(
        request.collateral_cash_claim, request.liquidity_haircut
    )
    purchase = calculate_purchase_amounts(haircut_claim, local_currency_to_trade, request, rate)

    update = apply_raise(
        payer_balance,
        purchase.collateral_to_sell,
        purchase.amount_to_raise,
        partial(ledger.redeem_liquidity_token, payer, request.collateral_currency),
    )

    return CurrencyTrade(
        local_purchased=purchase.local_to_purchase,
        collateral_sold=purchase.collateral_to_sell,
        new_balance=update.new_balance,
        amount_raised=update.amount_raised,
        partial=purchase.partial,
    )


def liquidate(
    payer: AccountId,
    payer_balance: SignedAmount,
    local_currency_buffer: Ratio,
    request: CrossCurrencyRequest,
    rate: RateInfo,
    ledger: LedgerPort,
) -> CurrencyTrade:
    """
    Sell collateral currency to a liquidator to cover local currency debt.

    Args:
        payer: Account being liquidated
        payer_balance: Payer's collateral currency balance
        local_currency_buffer: Exchange rate buffer applied to local debt
        request: Cross currency request; required_local_amount is the
            requirement left after liquidity tokens were redeemed
        rate: Local to collateral exchange rate snapshot
        ledger: Collaborator used to raise collateral from liquidity tokens

    Returns:
        CurrencyTrade with the local currency purchased, collateral sold and
        the payer's new collateral balance.

    Raises:
        NoLocalDebt: if request.local_available is not negative.
        InvalidHaircutSpread: if the buffer does not exceed the discount.
        ZeroSaleAmount: if nothing can be sold.
        RaiseReconciliationError: if the ledger could not fill the raise.
    """
    if request.local_available >= 0:
        raise NoLocalDebt(
            f"{payer} has no {request.local_currency} debt to liquidate "
            f"(available={request.local_available})"
        )

    local_currency_to_trade = calculate_local_currency_to_trade(
        request.required_local_amount,
        request.discount_factor,
        local_currency_buffer,
        -request.local_available,
    )

    return _trade_collateral_currency(
        payer, payer_balance, local_currency_to_trade, request, rate, ledger
    )


def settle(
    payer: AccountId,
    payer_balance: SignedAmount,
    request: CrossCurrencyRequest,
    rate: RateInfo,
    ledger: LedgerPort,
) -> CurrencyTrade:
    """
    Exchange collateral currency for exactly request.required_local_amount.

    Same as liquidate() without the local debt precondition and without the
    buffer sizing step. Used when a payer settles a cash obligation with
    collateral rather than being liquidated.
    """
    return _trade_collateral_currency(
        payer, payer_balance, request.required_local_amount, request, rate, ledger
    )
