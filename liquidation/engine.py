"""
engine.py - Liquidation engine wired to its collaborators

LiquidationEngine binds the pure liquidation functions to a LedgerPort and a
RateProvider supplied at construction time, together with the protocol's
liquidation parameters. It is the entry point for a caller that already
knows an account must be liquidated (the free collateral check lives
outside this package).

A full account liquidation runs in two stages:
    1. redeem local currency liquidity tokens (same currency as the debt)
    2. if a requirement and local debt remain, sell collateral currency

Each engine call is expected to run inside the caller's all-or-nothing
transaction. Any exception means the attempt did not happen.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from .core import (
    DECIMALS,
    AccountId, Amount, CurrencyId, Ratio, SignedAmount,
    LedgerPort, RateProvider,
    LocalRedemptionRequest, CrossCurrencyRequest,
    LiquidityTokenLiquidation, CurrencyTrade, AccountLiquidation,
    LiquidationError,
)
from .fixed_point import from_fixed, to_fixed
from .liquidity_tokens import liquidate_local_liquidity_tokens
from .cross_currency import liquidate, settle


# ============================================================================
# PARAMETERS
# ============================================================================

@dataclass(frozen=True, slots=True)
class LiquidationParameters:
    """
    Protocol-wide liquidation parameters, all scaled by DECIMALS.

    Attributes:
        liquidity_haircut: Fraction of a liquidity token's cash claim counted
            as collateral
        repo_incentive: Gross multiplier paid for redeeming liquidity tokens
        liquidation_discount: Price multiplier for liquidators buying collateral
        settlement_discount: Price multiplier for cash settlement with collateral
        local_currency_buffer: Haircut applied to local currency debt in free
            collateral terms; must exceed liquidation_discount
    """
    liquidity_haircut: Ratio = 8 * DECIMALS // 10
    repo_incentive: Ratio = 11 * DECIMALS // 10
    liquidation_discount: Ratio = 106 * DECIMALS // 100
    settlement_discount: Ratio = DECIMALS
    local_currency_buffer: Ratio = 14 * DECIMALS // 10

    def __post_init__(self):
        for name in (
            'liquidity_haircut', 'repo_incentive', 'liquidation_discount',
            'settlement_discount', 'local_currency_buffer',
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an int, got {type(value).__name__}")

        if not 0 < self.liquidity_haircut < DECIMALS:
            raise ValueError(
                f"liquidity_haircut must be in (0, DECIMALS), got {self.liquidity_haircut}"
            )
        if self.repo_incentive < DECIMALS:
            raise ValueError(
                f"repo_incentive must be at least DECIMALS, got {self.repo_incentive}"
            )
        if self.liquidation_discount <= 0 or self.settlement_discount <= 0:
            raise ValueError("discounts must be positive")
        if self.local_currency_buffer <= self.liquidation_discount:
            raise ValueError(
                f"local_currency_buffer ({self.local_currency_buffer}) must exceed "
                f"liquidation_discount ({self.liquidation_discount})"
            )

    @classmethod
    def from_decimals(cls, **ratios: Union[Decimal, str]) -> 'LiquidationParameters':
        """
        Build parameters from human-readable ratios.

        Example:
            params = LiquidationParameters.from_decimals(
                liquidity_haircut="0.8",
                liquidation_discount="1.06",
            )
        """
        return cls(**{name: to_fixed(value) for name, value in ratios.items()})


# ============================================================================
# ENGINE
# ============================================================================

class LiquidationEngine:
    """
    Liquidation arithmetic bound to a ledger and a rate source.

    Design Principles:
        - Size first, call second: every amount requested from the ledger is
          fully computed before the call is made.
        - The remainder returned by the ledger is the only record of what
          was obtained; the full request is never assumed.
        - No retries: any failure propagates to the caller, whose transaction
          is expected to roll back.

    Thread Safety:
        The engine itself holds no mutable state. Concurrent use is only as
        safe as the injected ledger.

    Example:
        engine = LiquidationEngine(ledger, rates, LiquidationParameters())
        result = engine.liquidate_account(
            "alice", "DAI", "ETH",
            required=to_fixed("100"),
            net_available=to_fixed("-250"),
            collateral_cash_claim=0,
            collateral_available=to_fixed("5"),
        )
    """

    def __init__(
        self,
        ledger: LedgerPort,
        rates: RateProvider,
        parameters: Optional[LiquidationParameters] = None,
        verbose: bool = False,
    ):
        """
        Create an engine.

        Args:
            ledger: Collaborator that redeems liquidity tokens and holds balances
            rates: Collaborator that supplies exchange rate snapshots
            parameters: Liquidation parameters (default: LiquidationParameters())
            verbose: Print each stage's outcome (default: False)
        """
        self.ledger = ledger
        self.rates = rates
        self.parameters = parameters or LiquidationParameters()
        self.verbose = verbose

    # ========================================================================
    # STAGE 1: LOCAL LIQUIDITY TOKENS
    # ========================================================================

    def liquidate_local_liquidity_tokens(
        self,
        account: AccountId,
        currency: CurrencyId,
        required: Amount,
        net_available: SignedAmount,
    ) -> LiquidityTokenLiquidation:
        """
        Redeem the account's local currency liquidity tokens.

        Args:
            account: Account being liquidated
            currency: Local currency
            required: Local currency required to restore the account
            net_available: Net local currency available before redemption

        Returns:
            LiquidityTokenLiquidation; required_after is what remains to be
            recovered from collateral currency.
        """
        request = LocalRedemptionRequest(
            account=account,
            currency=currency,
            required_amount=required,
            liquidity_haircut=self.parameters.liquidity_haircut,
            repo_incentive=self.parameters.repo_incentive,
        )
        try:
            result = liquidate_local_liquidity_tokens(request, net_available, self.ledger)
        except LiquidationError as e:
            self._log(f"✗ REJECTED: token redemption for {account} {currency}: {e}")
            raise

        self._log(
            f"✓ TOKENS: {account} withdrew {self._fmt(result.cash_withdrawn)} {currency}, "
            f"raised {self._fmt(result.local_currency_raised)}, "
            f"still required {self._fmt(result.required_after)}"
        )
        return result

    # ========================================================================
    # STAGE 2: COLLATERAL CURRENCY
    # ========================================================================

    def _cross_currency_request(
        self,
        local_currency: CurrencyId,
        collateral_currency: CurrencyId,
        required_local: Amount,
        local_available: SignedAmount,
        collateral_cash_claim: SignedAmount,
        collateral_available: SignedAmount,
        discount_factor: Ratio,
    ) -> CrossCurrencyRequest:
        return CrossCurrencyRequest(
            local_currency=local_currency,
            collateral_currency=collateral_currency,
            required_local_amount=required_local,
            local_available=local_available,
            collateral_cash_claim=collateral_cash_claim,
            collateral_available=collateral_available,
            discount_factor=discount_factor,
            liquidity_haircut=self.parameters.liquidity_haircut,
        )

    def _apply_trade(self, label: str, payer: AccountId, request: CrossCurrencyRequest, trade_fn) -> CurrencyTrade:
        # Rate and balance are read once, before the trade touches the ledger.
        rate = self.rates.get_rate(request.local_currency, request.collateral_currency)
        payer_balance = self.ledger.get_balance(payer, request.collateral_currency)

        try:
            trade = trade_fn(payer_balance, rate)
        except LiquidationError as e:
            self._log(f"✗ REJECTED: {label} {payer} {request.collateral_currency}: {e}")
            raise

        self.ledger.set_balance(payer, request.collateral_currency, trade.new_balance)
        kind = "PARTIAL" if trade.partial else "FULL"
        self._log(
            f"✓ {label.upper()} ({kind}): {payer} sold {self._fmt(trade.collateral_sold)} "
            f"{request.collateral_currency} for {self._fmt(trade.local_purchased)} "
            f"{request.local_currency}"
        )
        return trade

    def liquidate(
        self,
        payer: AccountId,
        local_currency: CurrencyId,
        collateral_currency: CurrencyId,
        required_local: Amount,
        local_available: SignedAmount,
        collateral_cash_claim: SignedAmount,
        collateral_available: SignedAmount,
    ) -> CurrencyTrade:
        """
        Sell the payer's collateral currency at the liquidation discount.

        Reads the payer's collateral balance from the ledger and writes the
        new balance back after the trade.

        Raises:
            NoLocalDebt: if local_available is not negative.
        """
        request = self._cross_currency_request(
            local_currency, collateral_currency, required_local, local_available,
            collateral_cash_claim, collateral_available,
            self.parameters.liquidation_discount,
        )
        return self._apply_trade(
            "liquidate", payer, request,
            lambda balance, rate: liquidate(
                payer, balance, self.parameters.local_currency_buffer,
                request, rate, self.ledger,
            ),
        )

    def settle(
        self,
        payer: AccountId,
        local_currency: CurrencyId,
        collateral_currency: CurrencyId,
        required_local: Amount,
        collateral_cash_claim: SignedAmount,
        collateral_available: SignedAmount,
    ) -> CurrencyTrade:
        """
        Exchange the payer's collateral currency for required_local at the
        settlement discount.
        """
        request = self._cross_currency_request(
            local_currency, collateral_currency, required_local, 0,
            collateral_cash_claim, collateral_available,
            self.parameters.settlement_discount,
        )
        return self._apply_trade(
            "settle", payer, request,
            lambda balance, rate: settle(payer, balance, request, rate, self.ledger),
        )

    # ========================================================================
    # TWO-STAGE LIQUIDATION
    # ========================================================================

    def liquidate_account(
        self,
        account: AccountId,
        local_currency: CurrencyId,
        collateral_currency: CurrencyId,
        required: Amount,
        net_available: SignedAmount,
        collateral_cash_claim: SignedAmount,
        collateral_available: SignedAmount,
    ) -> AccountLiquidation:
        """
        Liquidate an account: liquidity tokens first, then collateral currency.

        The collateral stage only runs when the token stage leaves a
        requirement and the account still has local currency debt.

        Args:
            account: Account being liquidated
            local_currency: Currency of the debt
            collateral_currency: Currency to sell if tokens are insufficient
            required: Local currency required to restore the account
            net_available: Net local currency available (negative means debt)
            collateral_cash_claim: Post-haircut claim of collateral tokens
            collateral_available: Collateral net available

        Returns:
            AccountLiquidation with both stage results.
        """
        token_stage = self.liquidate_local_liquidity_tokens(
            account, local_currency, required, net_available
        )

        if token_stage.required_after == 0 or token_stage.net_available_after >= 0:
            self._log(f"✓ DONE: {account} restored by liquidity tokens")
            return AccountLiquidation(token_stage=token_stage)

        trade_stage = self.liquidate(
            account, local_currency, collateral_currency,
            token_stage.required_after,
            token_stage.net_available_after,
            collateral_cash_claim,
            collateral_available,
        )
        return AccountLiquidation(token_stage=token_stage, trade_stage=trade_stage)

    # ========================================================================
    # OUTPUT
    # ========================================================================

    @staticmethod
    def _fmt(amount: int) -> str:
        return f"{from_fixed(amount):.4f}"

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message)
