"""Shared data structures, errors and driver protocols for wifiscan."""

from __future__ import annotations

import enum
import ipaddress
import os
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

# -- Wire-format sizes (libiw / linux/wireless.h) --
IFNAMSIZ = 16
IFNAME_BUFFER_SIZE = IFNAMSIZ + 1
ENCODING_TOKEN_MAX = 64
ESSID_MAX_SIZE = 32
ESSID_BUFFER_SIZE = ESSID_MAX_SIZE + 2
SOCKADDR_DATA_SIZE = 14
IW_QUAL_DBM = 0x08          # iw_quality.updated: level is in dBm

# -- Colors (RGB tuples, mapped to Rich color names for the table) --
WHITE = (255, 255, 255)
GREEN = (0, 255, 0)
YELLOW = (255, 255, 0)
RED = (255, 0, 0)
CYAN = (0, 255, 255)
GRAY = (128, 128, 128)

COLOR_TO_RICH: dict[tuple, str] = {
    WHITE: "white",
    GREEN: "green",
    YELLOW: "yellow",
    RED: "red",
    CYAN: "cyan",
    GRAY: "grey50",
}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ScanError(Exception):
    """Base class for every failure of a scan session."""

    def __init__(self, message: str, interface: str | None = None) -> None:
        super().__init__(message)
        self.interface = interface


class ChannelOpenError(ScanError):
    """The wireless control channel could not be acquired."""

    def __init__(
        self,
        message: str,
        interface: str | None = None,
        errno: int | None = None,
    ) -> None:
        super().__init__(message, interface)
        self.errno = errno


class LibraryNotFoundError(ChannelOpenError):
    """libiw could not be loaded, so no channel can ever be opened."""


class RangeUnavailable(ScanError):
    """The interface did not answer the range query.

    Usually a missing interface or one without wireless-extension support.
    """


class ScanRequestFailed(ScanError):
    """The driver rejected or could not complete the scan request."""


class MalformedResultChain(ScanError):
    """The driver result chain exceeded the traversal bound."""


class DriverError(OSError):
    """A driver call returned a negative result."""


class RangeQueryError(DriverError):
    """``iw_get_range_info`` failed."""


class ScanRequestError(DriverError):
    """``iw_scan`` failed."""


# ---------------------------------------------------------------------------
# Decoded data structures
# ---------------------------------------------------------------------------

class EncryptionClass(enum.Enum):
    """Encryption class derived from the key bit-flags field."""

    NONE = "None"
    WPA = "WPA"
    WPA2 = "WPA2"
    UNKNOWN = "Unknown"


class WirelessMode(enum.IntEnum):
    """Operating mode codes as reported by the driver (IW_MODE_*)."""

    AUTO = 0      # let the driver decide
    ADHOC = 1     # single cell network
    INFRA = 2     # multi cell network, roaming
    MASTER = 3    # access point
    REPEAT = 4    # wireless repeater
    SECOND = 5    # secondary master/repeater
    MONITOR = 6   # passive monitor


@dataclass(frozen=True)
class SignalQuality:
    """A link quality snapshot (``struct iw_quality`` + stats status)."""

    quality: int
    level: int
    noise: int
    updated: int = 0
    status: int = 0

    @property
    def level_dbm(self) -> int | None:
        """Signal level in dBm, or ``None`` unless the driver flags dBm."""
        if not self.updated & IW_QUAL_DBM:
            return None
        return self.level - 0x100 if self.level >= 64 else self.level


@dataclass(frozen=True)
class EncodingKey:
    """The encoding key block copied out of a scan node."""

    key: bytes
    size: int
    flags: int


@dataclass
class WirelessNetwork:
    """A decoded scan result.

    Every field except ``encryption`` is optional because the driver may
    omit any of them per node.
    """

    essid: str | None = None
    encryption: EncryptionClass = EncryptionClass.UNKNOWN
    quality: SignalQuality | None = None
    frequency: float | None = None          # GHz
    mode: WirelessMode | None = None
    ap_addr: ipaddress.IPv4Address | None = None   # AF_INET only
    max_bitrate: int | None = None          # bit/s
    bssid: str | None = None                # lowercase MAC
    channel: int | None = None
    name: str | None = None                 # interface from the config block
    key: EncodingKey | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict of this network."""
        return {
            "essid": self.essid,
            "encryption": self.encryption.value,
            "quality": None if self.quality is None else {
                "quality": self.quality.quality,
                "level": self.quality.level,
                "noise": self.quality.noise,
                "level_dbm": self.quality.level_dbm,
            },
            "frequency": self.frequency,
            "channel": self.channel,
            "mode": None if self.mode is None else self.mode.name.lower(),
            "ap_addr": None if self.ap_addr is None else str(self.ap_addr),
            "bssid": self.bssid,
            "max_bitrate": self.max_bitrate,
            "name": self.name,
        }


@dataclass
class WifiScanResult:
    """Networks from one scan, in the order the driver returned them."""

    interface: str
    networks: list[WirelessNetwork] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.networks)

    def __iter__(self):
        return iter(self.networks)


@dataclass
class WifiDevice:
    """A wireless interface found on the system."""

    name: str                   # e.g., "wlan0"
    driver: str = "unknown"     # e.g., "ath9k", "iwlwifi"
    has_wext: bool = False      # exposes /sys/class/net/<name>/wireless
    is_up: bool = False


# ---------------------------------------------------------------------------
# Raw driver layout (plain-Python mirror of ``struct wireless_scan``)
# ---------------------------------------------------------------------------

@dataclass
class DriverRange:
    """The fields of ``struct iw_range`` the scan needs."""

    we_version_compiled: int = 0
    we_version_source: int = 0
    num_channels: int = 0


@dataclass
class RawQuality:
    qual: int = 0
    level: int = 0
    noise: int = 0
    updated: int = 0


@dataclass
class RawStats:
    status: int = 0
    qual: RawQuality = field(default_factory=RawQuality)


@dataclass
class RawParam:
    value: int = 0
    fixed: int = 0
    disabled: int = 0
    flags: int = 0


@dataclass
class RawSockaddr:
    sa_family: int = 0
    sa_data: bytes = bytes(SOCKADDR_DATA_SIZE)


@dataclass
class RawConfig:
    """Mirror of libiw's ``wireless_config`` block."""

    name: bytes = bytes(IFNAME_BUFFER_SIZE)
    has_freq: int = 0
    freq: float = 0.0
    has_key: int = 0
    key: bytes = bytes(ENCODING_TOKEN_MAX)
    key_size: int = 0
    key_flags: int = 0
    has_essid: int = 0
    essid_on: int = 0
    essid: bytes = bytes(ESSID_BUFFER_SIZE)
    essid_len: int = 0
    has_mode: int = 0
    mode: int = 0


@dataclass
class RawScanNode:
    """One node of a driver result chain.

    Driver bindings may hand back any object exposing these attributes;
    this dataclass is the in-memory form used by fakes and tests.
    """

    config: RawConfig = field(default_factory=RawConfig)
    has_ap_addr: int = 0
    ap_addr: RawSockaddr = field(default_factory=RawSockaddr)
    has_stats: int = 0
    stats: RawStats = field(default_factory=RawStats)
    has_maxbitrate: int = 0
    maxbitrate: RawParam = field(default_factory=RawParam)
    next: Optional[RawScanNode] = field(default=None, repr=False, compare=False)


# ---------------------------------------------------------------------------
# Driver / scanner protocols (composition seams)
# ---------------------------------------------------------------------------

class DriverProtocol(Protocol):
    """The driver operations a scan session needs.

    Production binds this to :class:`wifiscan.scanning.libiw.LibIwDriver`;
    tests substitute a deterministic fake.
    """

    def open(self) -> Any:
        """Acquire a control channel or raise :class:`ChannelOpenError`."""
        ...  # pragma: no cover

    def query_range(self, channel: Any, interface: str) -> DriverRange:
        """Return range info or raise :class:`RangeQueryError`."""
        ...  # pragma: no cover

    def scan(self, channel: Any, interface: str, we_version: int) -> Any:
        """Return the chain head (``None`` when empty) or raise :class:`ScanRequestError`."""
        ...  # pragma: no cover

    def close(self, channel: Any) -> None:
        """Release *channel* and any result chain it produced."""
        ...  # pragma: no cover


class ScannerProtocol(Protocol):
    """Anything that can run a scan on a named interface."""

    def run(self, interface: str) -> WifiScanResult:
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Signal helpers
# ---------------------------------------------------------------------------

def quality_to_bars(quality: SignalQuality | None) -> int:
    """Convert a quality snapshot to a bar count (0-4).

    Uses dBm when the driver reports it, the link quality byte otherwise.
    """
    if quality is None:
        return 0
    dbm = quality.level_dbm
    if dbm is not None:
        if dbm >= -50:
            return 4
        if dbm >= -60:
            return 3
        if dbm >= -70:
            return 2
        if dbm >= -80:
            return 1
        return 0
    # iwlib drivers commonly scale link quality to 70 or 100; 70 is the lower bound.
    return max(0, min(4, quality.quality * 4 // 70))


def bars_color(bars: int) -> tuple:
    """Return an RGB color tuple for a bar count."""
    if bars >= 3:
        return GREEN
    if bars == 2:
        return YELLOW
    return RED


def encryption_color(encryption: EncryptionClass) -> tuple:
    """Return an RGB color tuple for an encryption class."""
    if encryption is EncryptionClass.NONE:
        return RED
    if encryption is EncryptionClass.UNKNOWN:
        return GRAY
    return GREEN


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def encode_interface_name(interface: str) -> bytes:
    """Encode *interface* for the driver, rejecting names it cannot take.

    Raises:
        ValueError: if the name is empty, longer than IFNAMSIZ bytes, or
            contains a NUL byte.
    """
    raw = os.fsencode(interface)
    if not raw:
        raise ValueError("interface name must not be empty")
    if b"\0" in raw:
        raise ValueError(f"interface name {interface!r} contains a NUL byte")
    if len(raw) > IFNAMSIZ:
        raise ValueError(
            f"interface name {interface!r} is longer than {IFNAMSIZ} bytes"
        )
    return raw


def is_valid_interface_name(interface: str) -> bool:
    """Return True if *interface* can be passed to the driver."""
    try:
        encode_interface_name(interface)
    except ValueError:
        return False
    return True
