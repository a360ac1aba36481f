"""
liquidity_tokens.py - Recollateralizing an account from its liquidity tokens

A liquidity token entitles its holder to a cash claim on a market. For
collateral purposes only `liquidity_haircut` of that claim is counted, so the
slice between the post-haircut and the pre-haircut claim is value the
account owns but does not get credit for. Redeeming tokens converts that
slice into cash, improving the account's position. The liquidator who
triggers the redemption is paid `repo_incentive` out of the proceeds.

PURE CALCULATION FUNCTIONS (calculate_*, reconcile_post_trade):
    Take all inputs explicitly, no collaborator, no hidden state.

COLLABORATOR FUNCTIONS (redeem_local, liquidate_local_liquidity_tokens):
    Size the request first, call LedgerPort.redeem_liquidity_token exactly
    once, then interpret only the returned remainder.

Key Formulas:
    cash_claims_to_trade = required * repo_incentive / (1 - haircut)
    haircut_claim_amount = cash_withdrawn * (1 - haircut)
    incentive            = haircut_claim_amount - local_currency_raised
"""

from __future__ import annotations

from .core import (
    DECIMALS, MAX_RAISE_REMAINDER,
    Amount, Ratio, SignedAmount,
    LedgerPort,
    LocalRedemptionRequest, RedemptionOutcome, PostTradeResult,
    LiquidityTokenLiquidation,
    PreconditionViolation, RaiseReconciliationError,
)
from .fixed_point import checked_sub, mul_div, to_int256, to_uint128


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def calculate_cash_claims_to_trade(
    required_amount: Amount,
    liquidity_haircut: Ratio,
    repo_incentive: Ratio,
) -> Amount:
    """
    Size the cash claim to redeem so that `required_amount` is recovered.

    Only the slice of the claim above the haircut recollateralizes the
    account, and the liquidator takes its incentive from it:

        cashClaim - cashClaim * haircut = required * incentive
        cashClaim = required * incentive / (1 - haircut)
    """
    return to_uint128(
        mul_div(required_amount, repo_incentive, checked_sub(DECIMALS, liquidity_haircut))
    )


def calculate_local_currency_raised(
    cash_withdrawn: Amount,
    liquidity_haircut: Ratio,
    repo_incentive: Ratio,
) -> Amount:
    """
    Invert calculate_cash_claims_to_trade for a partially filled redemption.

        cash_withdrawn * (1 - haircut) / incentive = local_currency_raised
    """
    return to_uint128(
        mul_div(cash_withdrawn, checked_sub(DECIMALS, liquidity_haircut), repo_incentive)
    )


def reconcile_post_trade(
    cash_withdrawn: Amount,
    net_available: SignedAmount,
    required: Amount,
    local_currency_raised: Amount,
    liquidity_haircut: Ratio,
) -> PostTradeResult:
    """
    Convert a redemption outcome into account deltas.

    PURE FUNCTION - All inputs explicit, no hidden state.

    Floor rounding while sizing the redemption can leave the haircut slice
    one unit below the local currency raised. That unit is credited to the
    account and no incentive is paid.

    Args:
        cash_withdrawn: Cash claim actually redeemed
        net_available: Net local currency available before the trade
        required: Local currency required before the trade
        local_currency_raised: Local currency credited toward the requirement
        liquidity_haircut: Fraction of the claim counted as collateral

    Returns:
        PostTradeResult where net_available_after and required_after move by
        the same magnitude in opposite directions.

    Raises:
        FixedPointOverflow: if the haircut slice falls short of the local
            currency raised by more than one unit (a negative incentive) or
            required_after would be negative.
    """
    # Portion of the withdrawal available to recollateralize the account.
    haircut_claim_amount = to_uint128(
        mul_div(cash_withdrawn, checked_sub(DECIMALS, liquidity_haircut), DECIMALS)
    )
    if 0 < local_currency_raised - haircut_claim_amount <= MAX_RAISE_REMAINDER:
        haircut_claim_amount = local_currency_raised
    incentive = checked_sub(haircut_claim_amount, local_currency_raised)

    return PostTradeResult(
        incentive_paid=-incentive,
        credited_amount=checked_sub(cash_withdrawn, incentive),
        net_available_after=to_int256(net_available + haircut_claim_amount - incentive),
        required_after=to_uint128(checked_sub(required + incentive, haircut_claim_amount)),
    )


def calculate_liquidity_token_haircut(
    post_haircut_cash_claim: SignedAmount,
    liquidity_haircut: Ratio,
) -> Amount:
    """
    Recover the slice of a cash claim removed by the liquidity haircut.

        haircut_slice = claim / haircut - claim

    Args:
        post_haircut_cash_claim: Claim as counted for collateral purposes
        liquidity_haircut: Fraction of the claim counted (must be positive)

    Raises:
        PreconditionViolation: if the claim is negative.
        FixedPointOverflow: if the haircut is zero.

    Example:
        # A 1000 claim at an 80% haircut is counted as 800; 200 is recoverable
        calculate_liquidity_token_haircut(800 * DECIMALS, 8 * DECIMALS // 10)
    """
    if post_haircut_cash_claim < 0:
        raise PreconditionViolation(
            f"post haircut cash claim cannot be negative, got {post_haircut_cash_claim}"
        )
    pre_haircut = mul_div(post_haircut_cash_claim, DECIMALS, liquidity_haircut)
    return to_uint128(checked_sub(pre_haircut, post_haircut_cash_claim))


# ============================================================================
# COLLABORATOR FUNCTIONS
# ============================================================================

def _check_remainder(remainder, requested: Amount) -> Amount:
    if isinstance(remainder, bool) or not isinstance(remainder, int):
        raise RaiseReconciliationError(
            f"redemption remainder must be an int, got {type(remainder).__name__}"
        )
    if remainder < 0 or remainder > requested:
        raise RaiseReconciliationError(
            f"redemption remainder {remainder} outside [0, {requested}]"
        )
    return remainder


def redeem_local(request: LocalRedemptionRequest, ledger: LedgerPort) -> RedemptionOutcome:
    """
    Redeem local currency liquidity tokens to cover `request.required_amount`.

    The ledger may not hold enough tokens; its remainder tells how much of
    the request went unfilled and the local currency raised is scaled down
    by the same ratio. When the request is filled in full the raised amount
    is exactly the required amount, with no rounding drift.

    Raises:
        RaiseReconciliationError: if the ledger reports a remainder larger
            than the amount requested.
    """
    cash_claims_to_trade = calculate_cash_claims_to_trade(
        request.required_amount,
        request.liquidity_haircut,
        request.repo_incentive,
    )

    remainder = _check_remainder(
        ledger.redeem_liquidity_token(request.account, request.currency, cash_claims_to_trade),
        cash_claims_to_trade,
    )

    cash_withdrawn = cash_claims_to_trade - remainder
    if remainder > 0:
        local_currency_raised = calculate_local_currency_raised(
            cash_withdrawn,
            request.liquidity_haircut,
            request.repo_incentive,
        )
    else:
        local_currency_raised = request.required_amount

    return RedemptionOutcome(
        cash_claims_requested=cash_claims_to_trade,
        cash_withdrawn=cash_withdrawn,
        local_currency_raised=local_currency_raised,
        remainder=remainder,
    )


def liquidate_local_liquidity_tokens(
    request: LocalRedemptionRequest,
    net_available: SignedAmount,
    ledger: LedgerPort,
) -> LiquidityTokenLiquidation:
    """
    Recollateralize an account from its local currency liquidity tokens.

    Composes redeem_local() and reconcile_post_trade(). The returned
    required_after is what remains to be recovered by selling collateral
    currency (see cross_currency.liquidate).

    Example:
        request = LocalRedemptionRequest(
            account="alice", currency="DAI",
            required_amount=to_fixed("1000"),
            liquidity_haircut=to_fixed("0.8"),
            repo_incentive=to_fixed("1.1"),
        )
        result = liquidate_local_liquidity_tokens(request, to_fixed("-1500"), ledger)
    """
    outcome = redeem_local(request, ledger)
    post_trade = reconcile_post_trade(
        outcome.cash_withdrawn,
        net_available,
        request.required_amount,
        outcome.local_currency_raised,
        request.liquidity_haircut,
    )

    return LiquidityTokenLiquidation(
        credited_amount=post_trade.credited_amount,
        cash_withdrawn=outcome.cash_withdrawn,
        required_after=post_trade.required_after,
        net_available_after=post_trade.net_available_after,
        incentive_paid=post_trade.incentive_paid,
        local_currency_raised=outcome.local_currency_raised,
    )
