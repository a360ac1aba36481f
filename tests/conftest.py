"""
conftest.py - Shared pytest fixtures for liquidation tests

Provides common fixtures used across unit, conformance and functional tests:
- A 1:1 exchange rate between an 18 decimal local and a 6 decimal collateral currency
- A DAI/ETH rate provider
- Fake ledgers and a wired engine
"""

import pytest

from liquidation import (
    DECIMALS,
    RateInfo,
    LiquidationEngine,
    LiquidationParameters,
    StaticRateProvider,
)

from tests.builders import LOCAL, COLLATERAL, SIX
from tests.fake_ledger import FakeLedger


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def rate_one_to_one():
    """1:1 rate, 18 decimal local currency, 6 decimal collateral currency."""
    return RateInfo(
        rate=SIX,
        rate_decimals=SIX,
        local_decimals=DECIMALS,
        collateral_decimals=SIX,
    )


@pytest.fixture
def fake_ledger():
    """Fake ledger with unlimited claims and no balances."""
    return FakeLedger()


@pytest.fixture
def rates():
    """DAI/ETH at 0.01 ETH per DAI, both 18 decimals."""
    provider = StaticRateProvider()
    provider.add_rate(LOCAL, COLLATERAL, "0.01")
    return provider


@pytest.fixture
def engine_factory(rates):
    """Return a builder for an engine around a given fake ledger."""
    def _build(ledger, parameters=None, verbose=False):
        return LiquidationEngine(
            ledger, rates, parameters or LiquidationParameters(), verbose=verbose
        )
    return _build
