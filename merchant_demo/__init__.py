"""
Merchant demo - single-product storefront backend.

Checkout via Stripe hosted sessions, an in-memory order ledger, and
webhook reconciliation of payment results.
"""

__version__ = "1.0.0"
