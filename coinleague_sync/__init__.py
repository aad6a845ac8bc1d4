"""CoinLeague game-state synchronization engine."""

__version__ = "1.0.0"
