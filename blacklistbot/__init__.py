"""Room blacklist enforcement bot for Pokemon Showdown style chat servers."""

__version__ = "0.1.0"
