from ..enums import GameStatus, GameType
from .onchain import OnChainCoin, OnChainGame, OnChainPlayer
from .schemas import IndexedGame, SyncRequest, SyncResult

__all__ = [
    "GameStatus",
    "GameType",
    "IndexedGame",
    "OnChainCoin",
    "OnChainGame",
    "OnChainPlayer",
    "SyncRequest",
    "SyncResult",
]
