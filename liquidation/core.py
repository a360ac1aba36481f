"""
Core types for the liquidation arithmetic engine.

This module provides the foundational data structures and protocols:
1. Constants: DECIMALS and the integer widths used by the protocol
2. Protocols: LedgerPort and RateProvider, the two external collaborators
3. Exceptions: LiquidationError and its typed failure kinds
4. Immutable value types: requests, outcomes and results of one liquidation

Every amount is a fixed-point Python int. Ratios (haircuts, incentives,
discounts, buffers) are scaled by DECIMALS, where DECIMALS means 100%.
Nothing in this module performs I/O or holds mutable state.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Fixed-point unit representing 1.0 (and 100% for ratios).
DECIMALS = 10 ** 18

# Storage widths. Unsigned amounts are uint128, signed amounts are int256,
# and intermediate products may use the full uint256 range.
UINT128_MAX = 2 ** 128 - 1
UINT256_MAX = 2 ** 256 - 1
INT256_MAX = 2 ** 255 - 1
INT256_MIN = -(2 ** 255)

# Largest rounding shortfall tolerated when raising collateral currency or
# reconciling a token redemption. One unit can be lost to floor division.
MAX_RAISE_REMAINDER = 1


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Unsigned fixed-point amount in a currency's own decimal base.
Amount = int

# Signed fixed-point amount (negative means debt).
SignedAmount = int

# Ratio scaled by DECIMALS.
Ratio = int

AccountId = str
CurrencyId = str


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LiquidationError(Exception):
    """Base exception for all liquidation errors."""
    pass


class PreconditionViolation(LiquidationError):
    """Raised when the caller's state does not permit the requested liquidation."""
    pass


class NoLocalDebt(PreconditionViolation):
    """Raised when liquidating collateral for an account with no local currency debt."""
    pass


class InvalidHaircutSpread(PreconditionViolation):
    """Raised when the local currency buffer does not exceed the liquidation discount."""
    pass


class ZeroSaleAmount(PreconditionViolation):
    """Raised when the resolved collateral sale is not strictly positive."""
    pass


class InvalidRateParameters(PreconditionViolation):
    """Raised when an exchange rate or one of its decimal bases is not positive."""
    pass


class ExchangeRateNotListed(PreconditionViolation):
    """Raised when no exchange rate is listed for a currency pair."""
    pass


class ReconciliationAnomaly(LiquidationError):
    """
    Raised when a collaborator's answer disagrees with the engine's sizing.

    Unlike a PreconditionViolation this indicates a data or design bug, not
    bad caller input.
    """
    pass


class RaiseReconciliationError(ReconciliationAnomaly):
    """Raised when a redemption returns a remainder outside its permitted bound."""
    pass


class FixedPointOverflow(LiquidationError, ArithmeticError):
    """Raised on overflow, underflow or division by zero in fixed-point math."""
    pass


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerPort(Protocol):
    """
    Interface to the account ledger that holds balances and liquidity tokens.

    The engine calls this collaborator but never implements it. Each call to
    redeem_liquidity_token may mutate ledger state, so the engine completes
    all sizing before calling and treats the returned remainder as the only
    record of what was actually obtained.
    """

    def redeem_liquidity_token(
        self,
        account: AccountId,
        currency: CurrencyId,
        amount: Amount,
    ) -> Amount:
        """
        Redeem liquidity tokens for up to `amount` of cash in `currency`.

        Returns the portion of `amount` that could not be fulfilled
        (0 when the account held enough tokens).
        """
        ...

    def get_balance(self, account: AccountId, currency: CurrencyId) -> SignedAmount:
        """Return the account's settled balance in `currency`."""
        ...

    def set_balance(self, account: AccountId, currency: CurrencyId, balance: SignedAmount) -> None:
        """Overwrite the account's settled balance in `currency`."""
        ...


@runtime_checkable
class RateProvider(Protocol):
    """
    Read-only source of exchange rates.

    The returned RateInfo is treated as a snapshot valid for the duration of
    a single liquidation call.
    """

    def get_rate(self, local_currency: CurrencyId, collateral_currency: CurrencyId) -> 'RateInfo':
        """Return the rate converting local currency into collateral currency."""
        ...


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def _check_int(name: str, value, signed: bool = False) -> None:
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an int, got {type(value).__name__}")
    if not signed and value < 0:
        raise ValueError(f"{name} cannot be negative, got {value}")


def _check_identifier(name: str, value) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} cannot be empty")


# ============================================================================
# RATE SNAPSHOT
# ============================================================================

@dataclass(frozen=True, slots=True)
class RateInfo:
    """
    Exchange rate snapshot between a local and a collateral currency.

    Attributes:
        rate: Collateral currency per unit of local currency, scaled by rate_decimals
        rate_decimals: Decimal base of `rate`
        local_decimals: Decimal base of the local currency
        collateral_decimals: Decimal base of the collateral currency

    The three bases are independent and are divided out separately during
    conversion so that currencies with very different precision convert
    without losing the smaller side.
    """
    rate: int
    rate_decimals: int
    local_decimals: int
    collateral_decimals: int

    def __post_init__(self):
        for name in ('rate', 'rate_decimals', 'local_decimals', 'collateral_decimals'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidRateParameters(f"{name} must be an int, got {type(value).__name__}")
            if value <= 0:
                raise InvalidRateParameters(f"{name} must be positive, got {value}")


# ============================================================================
# LIQUIDITY TOKEN VALUE TYPES
# ============================================================================

@dataclass(frozen=True, slots=True)
class LocalRedemptionRequest:
    """
    Request to recollateralize an account from its local currency liquidity tokens.

    Attributes:
        account: Account being liquidated
        currency: Local currency (the currency of the debt and of the tokens)
        required_amount: Local currency needed to restore the account
        liquidity_haircut: Fraction of a token's cash claim counted as
            collateral (e.g. 0.80 * DECIMALS)
        repo_incentive: Gross multiplier paid to the liquidator
            (e.g. 1.10 * DECIMALS for a 10% incentive)
    """
    account: AccountId
    currency: CurrencyId
    required_amount: Amount
    liquidity_haircut: Ratio
    repo_incentive: Ratio

    def __post_init__(self):
        _check_identifier("account", self.account)
        _check_identifier("currency", self.currency)
        _check_int("required_amount", self.required_amount)
        _check_int("liquidity_haircut", self.liquidity_haircut)
        _check_int("repo_incentive", self.repo_incentive)
        if self.liquidity_haircut >= DECIMALS:
            raise ValueError(
                f"liquidity_haircut must be below DECIMALS, got {self.liquidity_haircut}"
            )
        if self.repo_incentive == 0:
            raise ValueError("repo_incentive must be positive")


@dataclass(frozen=True, slots=True)
class RedemptionOutcome:
    """Result of sizing and executing a local liquidity token redemption."""
    cash_claims_requested: Amount
    cash_withdrawn: Amount
    local_currency_raised: Amount
    remainder: Amount

    def __post_init__(self):
        if self.cash_withdrawn > self.cash_claims_requested:
            raise ValueError(
                f"cash_withdrawn ({self.cash_withdrawn}) cannot exceed "
                f"cash_claims_requested ({self.cash_claims_requested})"
            )


@dataclass(frozen=True, slots=True)
class PostTradeResult:
    """
    Account deltas after a liquidity token redemption.

    Attributes:
        incentive_paid: Debit owed to the liquidator (always <= 0)
        credited_amount: Cash returned to the account
        net_available_after: Net local currency available after the trade
        required_after: Local currency still required after the trade
    """
    incentive_paid: SignedAmount
    credited_amount: Amount
    net_available_after: SignedAmount
    required_after: Amount


@dataclass(frozen=True, slots=True)
class LiquidityTokenLiquidation:
    """Combined outcome of redeeming local liquidity tokens and reconciling the account."""
    credited_amount: Amount
    cash_withdrawn: Amount
    required_after: Amount
    net_available_after: SignedAmount
    incentive_paid: SignedAmount
    local_currency_raised: Amount


# ============================================================================
# CROSS CURRENCY VALUE TYPES
# ============================================================================

@dataclass(frozen=True, slots=True)
class CrossCurrencyRequest:
    """
    Request to sell an account's collateral currency for local currency.

    Attributes:
        local_currency: Currency of the debt
        collateral_currency: Currency sold to the liquidator
        required_local_amount: Local currency the liquidation should recover
        local_available: Net local currency position (negative means debt)
        collateral_cash_claim: Post-haircut cash claim of the account's
            collateral currency liquidity tokens
        collateral_available: Collateral net available (balance plus
            post-haircut claim minus requirement)
        discount_factor: Price multiplier granted to the liquidator
            (e.g. 1.06 * DECIMALS)
        liquidity_haircut: Fraction of a token's cash claim counted as collateral
    """
    local_currency: CurrencyId
    collateral_currency: CurrencyId
    required_local_amount: Amount
    local_available: SignedAmount
    collateral_cash_claim: SignedAmount
    collateral_available: SignedAmount
    discount_factor: Ratio
    liquidity_haircut: Ratio

    def __post_init__(self):
        _check_identifier("local_currency", self.local_currency)
        _check_identifier("collateral_currency", self.collateral_currency)
        if self.local_currency == self.collateral_currency:
            raise ValueError("local_currency and collateral_currency must be different")
        _check_int("required_local_amount", self.required_local_amount)
        _check_int("local_available", self.local_available, signed=True)
        _check_int("collateral_cash_claim", self.collateral_cash_claim)
        _check_int("collateral_available", self.collateral_available, signed=True)
        _check_int("discount_factor", self.discount_factor)
        _check_int("liquidity_haircut", self.liquidity_haircut)
        if self.discount_factor == 0:
            raise ValueError("discount_factor must be positive")
        if not 0 < self.liquidity_haircut < DECIMALS:
            raise ValueError(
                f"liquidity_haircut must be in (0, DECIMALS), got {self.liquidity_haircut}"
            )


@dataclass(frozen=True, slots=True)
class PurchaseOutcome:
    """
    Sizing of a collateral sale.

    Attributes:
        amount_to_raise: Pre-haircut cash claim to redeem from collateral
            liquidity tokens (0 when the balance covers the sale)
        local_to_purchase: Local currency the liquidator pays
        collateral_to_sell: Collateral currency the liquidator receives
        partial: True when availability forced a smaller trade than requested
    """
    amount_to_raise: Amount
    local_to_purchase: Amount
    collateral_to_sell: Amount
    partial: bool = False


@dataclass(frozen=True, slots=True)
class BalanceUpdate:
    """Payer balance after paying for a collateral sale."""
    new_balance: SignedAmount
    amount_raised: Amount = 0
    remainder: Amount = 0


@dataclass(frozen=True, slots=True)
class CurrencyTrade:
    """Outcome of liquidate() or settle() against collateral currency."""
    local_purchased: Amount
    collateral_sold: Amount
    new_balance: SignedAmount
    amount_raised: Amount = 0
    partial: bool = False


@dataclass(frozen=True, slots=True)
class AccountLiquidation:
    """
    Outcome of a two-stage account liquidation.

    trade_stage is None when the liquidity token stage alone restored the
    account or when no local currency debt remained to trade against.
    """
    token_stage: LiquidityTokenLiquidation
    trade_stage: Optional[CurrencyTrade] = None

    @property
    def local_recovered(self) -> Amount:
        """Local currency recovered across both stages."""
        traded = self.trade_stage.local_purchased if self.trade_stage else 0
        return self.token_stage.local_currency_raised + traded
