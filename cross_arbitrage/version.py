"""Version information for the cross-exchange arbitrage evaluator."""

__version__ = "0.1.0"
