from .client import (
    IndexerClient,
    IndexerEndpointUnavailable,
    IndexerError,
    IndexerNotConfigured,
    IndexerQueryError,
)
from .queries import GAME_FIELDS, build_games_query

__all__ = [
    "GAME_FIELDS",
    "IndexerClient",
    "IndexerEndpointUnavailable",
    "IndexerError",
    "IndexerNotConfigured",
    "IndexerQueryError",
    "build_games_query",
]
