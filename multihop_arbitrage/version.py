"""Version information for the multi-hop arbitrage system."""

__version__ = "0.1.0"
