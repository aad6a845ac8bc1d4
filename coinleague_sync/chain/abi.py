"""ABI fragments for the CoinLeague V3 factory contract."""

from __future__ import annotations

from typing import Any

ABI = list[dict[str, Any]]


def _uint(name: str) -> dict[str, str]:
    return {"internalType": "uint256", "name": name, "type": "uint256"}


def _int(name: str) -> dict[str, str]:
    return {"internalType": "int256", "name": name, "type": "int256"}


def _address(name: str) -> dict[str, str]:
    return {"internalType": "address", "name": name, "type": "address"}


def _bool(name: str) -> dict[str, str]:
    return {"internalType": "bool", "name": name, "type": "bool"}


# games(uint256) -> address. Resolves the per-game contract address.
FACTORY_GAME_ADDRESS_ABI: ABI = [
    {
        "inputs": [_uint("")],
        "name": "games",
        "outputs": [_address("")],
        "stateMutability": "view",
        "type": "function",
    },
]

FACTORY_ABI: ABI = [
    {
        "inputs": [_uint("")],
        "name": "games",
        "outputs": [
            _uint("id"),
            {"internalType": "uint8", "name": "game_type", "type": "uint8"},
            _bool("started"),
            _bool("scores_done"),
            _bool("finished"),
            _bool("aborted"),
            _uint("num_coins"),
            _uint("num_players"),
            _uint("duration"),
            _uint("start_timestamp"),
            _uint("abort_timestamp"),
            _uint("amount_to_play"),
            _uint("total_amount_collected"),
            _address("coin_to_play"),
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [_uint("id")],
        "name": "getPlayers",
        "outputs": [
            {
                "components": [
                    {"internalType": "address[]", "name": "coin_feeds", "type": "address[]"},
                    _address("player_address"),
                    _address("captain_coin"),
                    _int("score"),
                    _address("affiliate"),
                ],
                "internalType": "struct CoinLeagueGameFactoryV3.Player[]",
                "name": "",
                "type": "tuple[]",
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [_uint("index"), _uint("id")],
        "name": "playerCoinFeeds",
        "outputs": [{"internalType": "address[]", "name": "feeds", "type": "address[]"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [_uint("id"), _address("coin_feed")],
        "name": "coins",
        "outputs": [
            _address("coin_feed"),
            _int("start_price"),
            _int("end_price"),
            _int("score"),
        ],
        "stateMutability": "view",
        "type": "function",
    },
]
