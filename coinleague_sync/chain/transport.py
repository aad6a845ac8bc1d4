"""web3.py transport used by the chain reader."""

from __future__ import annotations

from typing import Any, Sequence

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from .abi import ABI


def _input_types(abi: ABI, method: str, arity: int) -> list[str]:
    for entry in abi:
        if entry.get("type") != "function" or entry.get("name") != method:
            continue
        inputs = entry.get("inputs", [])
        if len(inputs) == arity:
            return [str(item.get("type", "")) for item in inputs]
    return []


def checksum_args(abi: ABI, method: str, args: Sequence[Any]) -> list[Any]:
    """Checksum the address-typed arguments of ``method``; web3 rejects lowercase ones."""
    types = _input_types(abi, method, len(args))
    checked: list[Any] = []
    for index, value in enumerate(args):
        kind = types[index] if index < len(types) else ""
        if kind == "address" and isinstance(value, str):
            value = Web3.to_checksum_address(value)
        elif kind == "address[]" and isinstance(value, (list, tuple)):
            value = [Web3.to_checksum_address(item) for item in value]
        checked.append(value)
    return checked


class Web3Transport:
    """Opens providers and performs read-only contract calls."""

    def __init__(self, request_timeout_seconds: float = 20) -> None:
        self._timeout = request_timeout_seconds

    async def connect(self, url: str) -> AsyncWeb3:
        """Build a provider for ``url`` and check it answers eth_chainId."""
        w3 = AsyncWeb3(
            AsyncHTTPProvider(
                url, request_kwargs={"timeout": aiohttp.ClientTimeout(total=self._timeout)}
            )
        )
        await w3.eth.chain_id
        return w3

    async def call(
        self,
        w3: AsyncWeb3,
        address: str,
        abi: ABI,
        method: str,
        args: Sequence[Any],
    ) -> Any:
        # Addresses are stored lowercase; contract calls need checksum casing
        contract = w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        return await getattr(contract.functions, method)(*checksum_args(abi, method, args)).call()

    async def close(self, w3: AsyncWeb3) -> None:
        await w3.provider.disconnect()
