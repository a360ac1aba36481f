"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the liquidation engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. token_redemption.py - Liquidity token sizing and reconciliation
2. collateral_trades.py - Purchase clamping and balance accounting
3. determinism.py - Repeatable trades and the raise remainder bound

These tests use hypothesis for property-based testing.
"""
