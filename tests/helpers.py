"""Test doubles shared across test modules."""

from __future__ import annotations


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def address(char: str) -> str:
    """A lowercase 20-byte hex address made of one repeated hex digit."""
    return "0x" + char * 40
