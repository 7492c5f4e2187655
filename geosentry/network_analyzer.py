"""Network analysis that lowers trust for concealed connections (VPN, proxy, Tor)."""

from __future__ import annotations

import abc
import enum
import ipaddress
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Union

from geosentry.helpers import KEY_SIZE, aes_encrypt

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
AddressLike = Union[str, IPAddress]

VPN_PENALTY = 0.4
PROXY_PENALTY = 0.3
TOR_PENALTY = 0.6
UNKNOWN_LOCATION_PENALTY = 0.1
HIGH_RISK_COUNTRIES = frozenset({"RU", "CN"})
HIGH_RISK_TOR_FACTOR = 0.5


def _address(ip: AddressLike) -> IPAddress:
    return ipaddress.ip_address(ip)


class NetworkError(Exception):
    """Raised when provider input is invalid or the address cannot be encrypted."""


class ConnectionType(enum.Enum):
    WIFI = "wifi"
    CELLULAR = "cellular"
    ETHERNET = "ethernet"
    SATELLITE = "satellite"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class GeoLocation:
    """Where an address is located, as far as the geo database knows."""

    country_iso: str
    city: str
    accuracy_radius_km: int


@dataclass
class ConcealmentReport:
    """Which concealment tools the address is known to belong to."""

    is_vpn: bool = False
    is_proxy: bool = False
    is_tor: bool = False


@dataclass
class NetworkAnalysisResult:
    """Outcome of a network analysis; ``security_score`` runs from 0 (untrusted) to 1."""

    encrypted_ip: str
    connection_type: ConnectionType
    geo_location: GeoLocation | None
    concealment: ConcealmentReport
    security_score: float


@dataclass
class ProxyDatabase:
    """Known VPN, proxy and Tor exit addresses."""

    vpn_ips: set[IPAddress] = field(default_factory=set)
    proxy_ips: set[IPAddress] = field(default_factory=set)
    tor_nodes: set[IPAddress] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.vpn_ips = {_address(ip) for ip in self.vpn_ips}
        self.proxy_ips = {_address(ip) for ip in self.proxy_ips}
        self.tor_nodes = {_address(ip) for ip in self.tor_nodes}

    def is_vpn(self, ip: AddressLike) -> bool:
        return _address(ip) in self.vpn_ips

    def is_proxy(self, ip: AddressLike) -> bool:
        return _address(ip) in self.proxy_ips

    def is_tor(self, ip: AddressLike) -> bool:
        return _address(ip) in self.tor_nodes


class NetworkInfoProvider(abc.ABC):
    """Supplies facts about the current network connection."""

    @abc.abstractmethod
    async def get_connection_type(self) -> ConnectionType:
        """The kind of link in use."""

    @abc.abstractmethod
    async def get_public_ip(self) -> IPAddress | None:
        """The public address, or None if it cannot be determined."""


class AiNetworkAnalyzer(abc.ABC):
    """Refines an analysis result in place."""

    @abc.abstractmethod
    async def analyze(self, result: NetworkAnalysisResult) -> None:
        """Adjust ``result`` according to the model."""


GeoLookup = Callable[[IPAddress], Union[GeoLocation, None]]


class NetworkAnalyzer:
    """Detects concealment, geolocates, scores and encrypts the caller's address."""

    def __init__(
        self,
        encryption_key: bytes,
        proxy_db: ProxyDatabase,
        ai_analyzer: AiNetworkAnalyzer,
        geo_lookup: GeoLookup | None = None,
    ) -> None:
        self._encryption_key = bytes(encryption_key)
        self.proxy_db = proxy_db
        self.ai_analyzer = ai_analyzer
        self._geo_lookup = geo_lookup

    async def analyze(self, provider: NetworkInfoProvider) -> NetworkAnalysisResult:
        """Run a full analysis of the connection the provider describes."""
        raw_ip = await provider.get_public_ip()
        if raw_ip is None:
            raise NetworkError(
                "Invalid input from provider: Public IP address could not be obtained."
            )
        ip = _address(raw_ip)

        concealment = ConcealmentReport(
            is_vpn=self.proxy_db.is_vpn(ip),
            is_proxy=self.proxy_db.is_proxy(ip),
            is_tor=self.proxy_db.is_tor(ip),
        )
        geo_location = self._geolocate(ip)
        result = NetworkAnalysisResult(
            encrypted_ip=self._encrypt_ip(ip),
            connection_type=await provider.get_connection_type(),
            geo_location=geo_location,
            concealment=concealment,
            security_score=self._base_score(concealment, geo_location),
        )
        await self.ai_analyzer.analyze(result)
        return result

    def _geolocate(self, ip: IPAddress) -> GeoLocation | None:
        if self._geo_lookup is None:
            return None
        try:
            return self._geo_lookup(ip)
        except (LookupError, ValueError):
            return None

    @staticmethod
    def _base_score(concealment: ConcealmentReport, geo: GeoLocation | None) -> float:
        score = 1.0
        if concealment.is_vpn:
            score -= VPN_PENALTY
        if concealment.is_proxy:
            score -= PROXY_PENALTY
        if concealment.is_tor:
            score -= TOR_PENALTY
        if geo is None:
            score -= UNKNOWN_LOCATION_PENALTY
        return max(score, 0.0)

    def _encrypt_ip(self, ip: IPAddress) -> str:
        if len(self._encryption_key) != KEY_SIZE:
            raise NetworkError(
                f"Encryption or decryption failed: key must be {KEY_SIZE} bytes"
            )
        return aes_encrypt(str(ip).encode("ascii"), self._encryption_key).hex()


class DefaultAiNetworkAnalyzer(AiNetworkAnalyzer):
    """Halves trust for Tor connections located in high-risk countries."""

    async def analyze(self, result: NetworkAnalysisResult) -> None:
        geo = result.geo_location
        if (
            result.concealment.is_tor
            and geo is not None
            and geo.country_iso in HIGH_RISK_COUNTRIES
        ):
            result.security_score *= HIGH_RISK_TOR_FACTOR


@dataclass
class StaticNetworkProvider(NetworkInfoProvider):
    """A provider reporting fixed values."""

    ip: AddressLike | None
    conn_type: ConnectionType = ConnectionType.UNKNOWN

    async def get_connection_type(self) -> ConnectionType:
        return self.conn_type

    async def get_public_ip(self) -> IPAddress | None:
        return None if self.ip is None else _address(self.ip)