"""cart-store: products and shopping carts with stock-aware reconciliation."""

__version__ = "0.1.0"
