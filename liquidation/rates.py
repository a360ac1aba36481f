"""
rates.py - Exchange rate sources for liquidation

Provides RateInfo snapshots to the liquidation engine.

Classes:
- StaticRateProvider: Time-independent rates keyed by currency pair

A rate converts one unit of local currency into collateral currency. Rates
are stored as fixed-point ints together with the decimal bases of the rate
and of both currencies.
"""

from decimal import Decimal
from typing import Dict, Tuple, Union

from .core import DECIMALS, CurrencyId, RateInfo, ExchangeRateNotListed
from .fixed_point import to_fixed


CurrencyPair = Tuple[CurrencyId, CurrencyId]


class StaticRateProvider:
    """
    Rate provider with static rates (time-independent).

    Implements the RateProvider protocol. Rates are looked up by
    (local_currency, collateral_currency); the reverse pair is not derived
    automatically.
    """

    def __init__(self, rates: Dict[CurrencyPair, RateInfo] = None):
        """
        Initialize with an optional rate map.

        Args:
            rates: Dictionary mapping (local, collateral) pairs to RateInfo
        """
        self.rates: Dict[CurrencyPair, RateInfo] = dict(rates or {})

    def get_rate(self, local_currency: CurrencyId, collateral_currency: CurrencyId) -> RateInfo:
        """
        Get the rate converting local currency into collateral currency.

        Raises:
            ExchangeRateNotListed: if the pair has no rate.
        """
        try:
            return self.rates[(local_currency, collateral_currency)]
        except KeyError:
            raise ExchangeRateNotListed(
                f"No exchange rate listed for {local_currency}/{collateral_currency}"
            ) from None

    def add_rate(
        self,
        local_currency: CurrencyId,
        collateral_currency: CurrencyId,
        rate: Union[Decimal, str, int],
        rate_decimals: int = DECIMALS,
        local_decimals: int = DECIMALS,
        collateral_decimals: int = DECIMALS,
    ) -> RateInfo:
        """
        List a rate from a human-readable number.

        Args:
            local_currency: Currency being bought by the liquidator
            collateral_currency: Currency being sold
            rate: Collateral currency per unit of local currency (e.g. "0.01")
            rate_decimals: Precision the rate is stored with
            local_decimals: Decimal base of the local currency
            collateral_decimals: Decimal base of the collateral currency

        Example:
            rates = StaticRateProvider()
            # DAI debt (18 decimals) against USDC collateral (6 decimals)
            rates.add_rate("DAI", "USDC", "1", rate_decimals=10 ** 6,
                           collateral_decimals=10 ** 6)
        """
        if local_currency == collateral_currency:
            raise ValueError("local and collateral currency must be different")
        info = RateInfo(
            rate=to_fixed(rate, rate_decimals),
            rate_decimals=rate_decimals,
            local_decimals=local_decimals,
            collateral_decimals=collateral_decimals,
        )
        self.rates[(local_currency, collateral_currency)] = info
        return info

    def update_rate(self, local_currency: CurrencyId, collateral_currency: CurrencyId, rate: int) -> RateInfo:
        """
        Replace the fixed-point rate of a listed pair, keeping its decimal bases.

        Raises:
            ExchangeRateNotListed: if the pair has no rate.
        """
        current = self.get_rate(local_currency, collateral_currency)
        info = RateInfo(
            rate=rate,
            rate_decimals=current.rate_decimals,
            local_decimals=current.local_decimals,
            collateral_decimals=current.collateral_decimals,
        )
        self.rates[(local_currency, collateral_currency)] = info
        return info

    def __repr__(self):
        return f"StaticRateProvider({len(self.rates)} rates)"
