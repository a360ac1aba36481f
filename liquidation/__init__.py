"""
liquidation - Liquidation Arithmetic for a Fixed-Rate Lending Protocol

Computes how an undercollateralized account is restored: first by redeeming
its local currency liquidity tokens, then by selling its collateral currency
to a liquidator at a discount. All amounts are fixed-point ints.

Usage:
    from liquidation import (
        LiquidationEngine, LiquidationParameters, StaticRateProvider, to_fixed,
    )

    rates = StaticRateProvider()
    rates.add_rate("DAI", "ETH", "0.01")

    engine = LiquidationEngine(ledger, rates, LiquidationParameters(), verbose=True)
    result = engine.liquidate_account(
        "alice", "DAI", "ETH",
        required=to_fixed("100"),
        net_available=to_fixed("-250"),
        collateral_cash_claim=0,
        collateral_available=to_fixed("5"),
    )

`ledger` is any object implementing the LedgerPort protocol.
"""

# Core types
from .core import (
    DECIMALS,
    UINT128_MAX,
    UINT256_MAX,
    INT256_MAX,
    INT256_MIN,
    MAX_RAISE_REMAINDER,
    LedgerPort,
    RateProvider,
    RateInfo,
    LocalRedemptionRequest,
    RedemptionOutcome,
    PostTradeResult,
    LiquidityTokenLiquidation,
    CrossCurrencyRequest,
    PurchaseOutcome,
    BalanceUpdate,
    CurrencyTrade,
    AccountLiquidation,
    LiquidationError,
    PreconditionViolation,
    NoLocalDebt,
    InvalidHaircutSpread,
    ZeroSaleAmount,
    InvalidRateParameters,
    ExchangeRateNotListed,
    ReconciliationAnomaly,
    RaiseReconciliationError,
    FixedPointOverflow,
)

# Fixed-point arithmetic
from .fixed_point import (
    to_uint128, to_uint256, to_int256,
    checked_mul, checked_div, checked_sub, mul_div,
    to_fixed, from_fixed,
)

# Liquidity tokens
from .liquidity_tokens import (
    calculate_cash_claims_to_trade,
    calculate_local_currency_raised,
    calculate_liquidity_token_haircut,
    reconcile_post_trade,
    redeem_local,
    liquidate_local_liquidity_tokens,
)

# Cross currency
from .cross_currency import (
    calculate_local_currency_to_trade,
    calculate_collateral_to_sell,
    calculate_local_currency_to_purchase,
    calculate_purchase_amounts,
    apply_raise,
    liquidate,
    settle,
)

# Rates
from .rates import StaticRateProvider

# Engine
from .engine import LiquidationParameters, LiquidationEngine


__all__ = [
    # Constants
    'DECIMALS', 'UINT128_MAX', 'UINT256_MAX', 'INT256_MAX', 'INT256_MIN',
    'MAX_RAISE_REMAINDER',
    # Protocols
    'LedgerPort', 'RateProvider',
    # Value types
    'RateInfo', 'LocalRedemptionRequest', 'RedemptionOutcome', 'PostTradeResult',
    'LiquidityTokenLiquidation', 'CrossCurrencyRequest', 'PurchaseOutcome',
    'BalanceUpdate', 'CurrencyTrade', 'AccountLiquidation',
    # Exceptions
    'LiquidationError', 'PreconditionViolation', 'NoLocalDebt',
    'InvalidHaircutSpread', 'ZeroSaleAmount', 'InvalidRateParameters',
    'ExchangeRateNotListed', 'ReconciliationAnomaly', 'RaiseReconciliationError',
    'FixedPointOverflow',
    # Fixed point
    'to_uint128', 'to_uint256', 'to_int256',
    'checked_mul', 'checked_div', 'checked_sub', 'mul_div',
    'to_fixed', 'from_fixed',
    # Liquidity tokens
    'calculate_cash_claims_to_trade', 'calculate_local_currency_raised',
    'calculate_liquidity_token_haircut', 'reconcile_post_trade',
    'redeem_local', 'liquidate_local_liquidity_tokens',
    # Cross currency
    'calculate_local_currency_to_trade', 'calculate_collateral_to_sell',
    'calculate_local_currency_to_purchase', 'calculate_purchase_amounts',
    'apply_raise', 'liquidate', 'settle',
    # Rates
    'StaticRateProvider',
    # Engine
    'LiquidationParameters', 'LiquidationEngine',
]

__version__ = '1.0.0'
