# JSON-backed watchlist snapshot.
from ._store import WatchlistStore

__all__ = ["WatchlistStore"]
