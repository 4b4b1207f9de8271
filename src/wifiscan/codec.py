"""Decoders for the fixed-layout fields of a libiw scan node.

Every function here is pure: it takes raw values copied from (or viewed in)
a driver struct and returns a typed, optional Python value.  Presence flags
gate every field, so a value the driver did not populate decodes as
``None`` whatever its raw bytes contain.  Byte buffers are never read past
their declared size, and text that is not valid UTF-8 is decoded with
replacement characters instead of raising.
"""

from __future__ import annotations

import ipaddress
import logging
import socket

from wifiscan.wifi_common import (
    ENCODING_TOKEN_MAX,
    ESSID_BUFFER_SIZE,
    IFNAME_BUFFER_SIZE,
    EncodingKey,
    EncryptionClass,
    RawParam,
    RawStats,
    SignalQuality,
    WirelessMode,
)

logger = logging.getLogger(__name__)

# IW_AUTH_WPA_VERSION_* bits of the key flags field
IW_AUTH_WPA_VERSION_DISABLED = 0x00000001
IW_AUTH_WPA_VERSION_WPA = 0x00000002
IW_AUTH_WPA_VERSION_WPA2 = 0x00000004

# Checked in this order; the first bit set wins.
ENCRYPTION_PRIORITY: tuple[tuple[int, EncryptionClass], ...] = (
    (IW_AUTH_WPA_VERSION_DISABLED, EncryptionClass.NONE),
    (IW_AUTH_WPA_VERSION_WPA, EncryptionClass.WPA),
    (IW_AUTH_WPA_VERSION_WPA2, EncryptionClass.WPA2),
)

ARPHRD_ETHER = 1
KILO = 10**3
GIGA = 10**9


# ---------------------------------------------------------------------------
# Bit-flag fields
# ---------------------------------------------------------------------------

def decode_encryption(flags: int) -> EncryptionClass:
    """Classify the key bit-flags field.

    Bits are independent and may co-occur; :data:`ENCRYPTION_PRIORITY` is the
    tie-break.  A field with none of the recognised bits is ``UNKNOWN``.
    """
    for bit, encryption in ENCRYPTION_PRIORITY:
        if flags & bit:
            return encryption
    return EncryptionClass.UNKNOWN


def decode_mode(mode: int, has_mode: bool) -> WirelessMode | None:
    """Map an IW_MODE_* code to :class:`WirelessMode`; unknown codes are absent."""
    if not has_mode:
        return None
    try:
        return WirelessMode(mode)
    except ValueError:
        logger.warning("Unknown wireless mode code %d", mode)
        return None


# ---------------------------------------------------------------------------
# Fixed-size byte buffers
# ---------------------------------------------------------------------------

def _bounded_cstring(buffer: bytes, size: int) -> bytes:
    """Return the bytes of *buffer* before the first NUL, within *size* bytes."""
    window = bytes(buffer[:size])
    end = window.find(b"\0")
    return window if end < 0 else window[:end]


def decode_essid(
    buffer: bytes,
    has_essid: bool,
    size: int = ESSID_BUFFER_SIZE,
) -> str | None:
    """Decode the NUL-terminated ESSID buffer.

    Args:
        buffer: The raw ESSID buffer.
        has_essid: Presence flag from the config block.
        size: Fixed buffer length; bytes beyond it are never read, even
            when no terminator is found.
    """
    if not has_essid:
        return None
    return _bounded_cstring(buffer, size).decode("utf-8", errors="replace")


def decode_ifname(buffer: bytes, size: int = IFNAME_BUFFER_SIZE) -> str | None:
    """Decode the interface-name field; an empty name is absent."""
    raw = _bounded_cstring(buffer, size)
    if not raw:
        return None
    return raw.decode("utf-8", errors="replace")


def decode_key(
    buffer: bytes,
    key_size: int,
    key_flags: int,
    has_key: bool,
    size: int = ENCODING_TOKEN_MAX,
) -> EncodingKey | None:
    """Copy the encoding key block, clamping its length to the buffer."""
    if not has_key:
        return None
    length = max(0, key_size)
    if length > size:
        logger.warning("Key length %d exceeds %d-byte buffer; clamping", key_size, size)
        length = size
    return EncodingKey(key=bytes(buffer[:length]), size=length, flags=key_flags)


def decode_bssid(sa_family: int, sa_data: bytes, has_ap_addr: bool) -> str | None:
    """Format the AP hardware address when the sockaddr carries one."""
    if not has_ap_addr or sa_family != ARPHRD_ETHER:
        return None
    return ":".join(f"{b:02x}" for b in bytes(sa_data[:6]))


def decode_ap_addr(
    sa_family: int,
    sa_data: bytes,
    has_ap_addr: bool,
) -> ipaddress.IPv4Address | None:
    """Decode the AP address in IP form.

    Only AF_INET fits in a 14-byte ``sa_data`` (port, then address); any
    other family, AF_INET6 included, decodes as absent.
    """
    if not has_ap_addr or sa_family != socket.AF_INET:
        return None
    return ipaddress.IPv4Address(bytes(sa_data[2:6]))


# ---------------------------------------------------------------------------
# Presence-gated snapshots
# ---------------------------------------------------------------------------

def decode_quality(stats: RawStats, has_stats: bool) -> SignalQuality | None:
    """Copy the quality snapshot out of ``struct iw_statistics``."""
    if not has_stats:
        return None
    qual = stats.qual
    return SignalQuality(
        quality=qual.qual,
        level=qual.level,
        noise=qual.noise,
        updated=qual.updated,
        status=stats.status,
    )


def decode_bitrate(param: RawParam, has_bitrate: bool) -> int | None:
    """Return the advertised max bitrate in bit/s."""
    if not has_bitrate:
        return None
    return int(param.value)


# ---------------------------------------------------------------------------
# Frequency
# ---------------------------------------------------------------------------

def channel_to_frequency(channel: int) -> float | None:
    """Convert an 802.11 channel number to GHz (2.4, 5 GHz bands)."""
    if channel == 14:
        return 2.484
    if 1 <= channel <= 13:
        return round(2.407 + 0.005 * channel, 3)
    if 32 <= channel <= 177:
        return round(5.000 + 0.005 * channel, 3)
    return None


def frequency_to_channel(frequency: float | None) -> int | None:
    """Convert a frequency in GHz to its 802.11 channel number."""
    if frequency is None:
        return None
    mhz = round(frequency * 1000)
    if mhz == 2484:
        return 14
    if 2412 <= mhz <= 2472:
        return (mhz - 2407) // 5
    if 5160 <= mhz <= 5885:
        return (mhz - 5000) // 5
    return None


def decode_frequency(freq: float, has_freq: bool) -> float | None:
    """Decode libiw's frequency value to GHz.

    libiw reports Hz, except that drivers which only know the channel
    report the channel number itself (any value below 1000).
    """
    if not has_freq:
        return None
    if freq < KILO:
        frequency = channel_to_frequency(int(freq))
        if frequency is None:
            logger.debug("Frequency field %r is not a known channel", freq)
        return frequency
    return freq / GIGA
