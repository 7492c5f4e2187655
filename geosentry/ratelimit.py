"""Per-address request rate limiting with allow and deny lists."""

from __future__ import annotations

import asyncio
import ipaddress
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
AddressLike = Union[str, IPAddress]

DEFAULT_MAX_REQUESTS = 60
DEFAULT_WINDOW_SECONDS = 60.0


def _address(ip: AddressLike) -> IPAddress:
    return ipaddress.ip_address(ip)


@dataclass
class RateLimitConfig:
    """How many requests one address may make per window, and who is exempt or banned."""

    max_requests: int = DEFAULT_MAX_REQUESTS
    window: float = DEFAULT_WINDOW_SECONDS
    whitelist: set[IPAddress] = field(default_factory=set)
    blacklist: set[IPAddress] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.whitelist = {_address(ip) for ip in self.whitelist}
        self.blacklist = {_address(ip) for ip in self.blacklist}


class RateLimitError(Exception):
    """Base class for a refused request."""


class LimitExceeded(RateLimitError):
    def __init__(self) -> None:
        super().__init__("Rate limit exceeded. Try again later.")


class Blacklisted(RateLimitError):
    def __init__(self) -> None:
        super().__init__("IP is blacklisted.")


@dataclass
class _Window:
    count: int
    start: float


class RateLimiter:
    """Fixed-window limiter keyed by client address, safe for concurrent tasks."""

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config if config is not None else RateLimitConfig()
        self._clock = clock
        self._windows: dict[IPAddress, _Window] = {}
        self._lock = asyncio.Lock()

    async def check(self, ip: AddressLike) -> None:
        """Record a request from ``ip``; raise if it is banned or over the limit."""
        address = _address(ip)
        if address in self.config.whitelist:
            return
        if address in self.config.blacklist:
            raise Blacklisted()
        async with self._lock:
            now = self._clock()
            window = self._windows.setdefault(address, _Window(count=0, start=now))
            if now - window.start > self.config.window:
                window.count = 1
                window.start = now
            else:
                window.count += 1
            if window.count > self.config.max_requests:
                raise LimitExceeded()

    def add_whitelist(self, ip: AddressLike) -> None:
        """Exempt an address from limiting."""
        self.config.whitelist.add(_address(ip))

    def add_blacklist(self, ip: AddressLike) -> None:
        """Refuse every request from an address."""
        self.config.blacklist.add(_address(ip))