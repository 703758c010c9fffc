# Lottery Checkout

__version__ = "1.0.0"
