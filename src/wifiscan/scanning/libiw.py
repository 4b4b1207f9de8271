"""Wireless-extensions driver binding via libiw (wireless tools).

Loads ``libiw`` with cffi in ABI mode and exposes the three calls a scan
needs (``iw_sockets_open``, ``iw_get_range_info``, ``iw_scan``) behind
:class:`LibIwDriver`, which satisfies
:class:`~wifiscan.wifi_common.DriverProtocol`.

``iw_scan`` mallocs the result chain.  The chain belongs to the
:class:`LibIwChannel` that produced it and is freed when that channel is
closed, so nodes must be decoded before :meth:`LibIwDriver.close`.

The library handle is injectable (``lib=``) so tests can exercise the error
paths without libiw installed.
"""

from __future__ import annotations

import ctypes.util
import logging
import os
from typing import Any

from cffi import FFI

from wifiscan.wifi_common import (
    ChannelOpenError,
    DriverRange,
    LibraryNotFoundError,
    RangeQueryError,
    RawConfig,
    RawParam,
    RawQuality,
    RawSockaddr,
    RawStats,
    ScanRequestError,
    encode_interface_name,
)

logger = logging.getLogger(__name__)

LIBIW_ENV = "WIFISCAN_LIBIW"
LIBIW_FALLBACK = "libiw.so.30"

# Layouts from linux/wireless.h and iwlib.h (wireless tools 30).
CDEF = """
struct iw_param {
    int32_t value;
    uint8_t fixed;
    uint8_t disabled;
    uint16_t flags;
};

struct iw_quality {
    uint8_t qual;
    uint8_t level;
    uint8_t noise;
    uint8_t updated;
};

struct iw_freq {
    int32_t m;
    int16_t e;
    uint8_t i;
    uint8_t flags;
};

struct iw_discarded {
    uint32_t nwid;
    uint32_t code;
    uint32_t fragment;
    uint32_t retries;
    uint32_t misc;
};

struct iw_missed {
    uint32_t beacon;
};

struct iw_statistics {
    uint16_t status;
    struct iw_quality qual;
    struct iw_discarded discard;
    struct iw_missed miss;
};

struct iw_range {
    uint32_t throughput;
    uint32_t min_nwid;
    uint32_t max_nwid;
    uint16_t old_num_channels;
    uint8_t old_num_frequency;
    uint8_t scan_capa;
    uint32_t event_capa[6];
    int32_t sensitivity;
    struct iw_quality max_qual;
    struct iw_quality avg_qual;
    uint8_t num_bitrates;
    int32_t bitrate[32];
    int32_t min_rts;
    int32_t max_rts;
    int32_t min_frag;
    int32_t max_frag;
    int32_t min_pmp;
    int32_t max_pmp;
    int32_t min_pmt;
    int32_t max_pmt;
    uint16_t pmp_flags;
    uint16_t pmt_flags;
    uint16_t pm_capa;
    uint16_t encoding_size[8];
    uint8_t num_encoding_sizes;
    uint8_t max_encoding_tokens;
    uint8_t encoding_login_index;
    uint16_t txpower_capa;
    uint8_t num_txpower;
    int32_t txpower[8];
    uint8_t we_version_compiled;
    uint8_t we_version_source;
    uint16_t retry_capa;
    uint16_t retry_flags;
    uint16_t r_time_flags;
    int32_t min_retry;
    int32_t max_retry;
    int32_t min_r_time;
    int32_t max_r_time;
    uint16_t num_channels;
    uint8_t num_frequency;
    struct iw_freq freq[32];
    uint32_t enc_capa;
    int32_t min_pms;
    int32_t max_pms;
    uint16_t pms_flags;
    int32_t modul_capa;
    uint32_t bitrate_capa;
};

struct sockaddr {
    unsigned short sa_family;
    char sa_data[14];
};

typedef struct wireless_config {
    char name[17];
    int has_nwid;
    struct iw_param nwid;
    int has_freq;
    double freq;
    int freq_flags;
    int has_key;
    unsigned char key[64];
    int key_size;
    int key_flags;
    int has_essid;
    int essid_on;
    char essid[34];
    int essid_len;
    int has_mode;
    int mode;
} wireless_config;

typedef struct wireless_scan {
    struct wireless_scan *next;
    int has_ap_addr;
    struct sockaddr ap_addr;
    wireless_config b;
    struct iw_statistics stats;
    int has_stats;
    struct iw_param maxbitrate;
    int has_maxbitrate;
} wireless_scan;

typedef struct wireless_scan_head {
    wireless_scan *result;
    int retry;
} wireless_scan_head;

int iw_sockets_open(void);
int iw_get_range_info(int skfd, const char *ifname, struct iw_range *range);
int iw_scan(int skfd, char *ifname, int we_version, wireless_scan_head *context);

void free(void *ptr);
"""

ffi = FFI()
ffi.cdef(CDEF)


def _library_name() -> str:
    """Pick the libiw to load: env override, then ldconfig lookup, then soname."""
    return os.environ.get(LIBIW_ENV) or ctypes.util.find_library("iw") or LIBIW_FALLBACK


def load_libiw(name: str | None = None) -> Any:
    """Load libiw with cffi.

    Raises:
        LibraryNotFoundError: if the shared library cannot be loaded.
    """
    name = name or _library_name()
    try:
        lib = ffi.dlopen(name)
    except OSError as exc:
        raise LibraryNotFoundError(f"cannot load {name}: {exc}") from exc
    logger.debug("Loaded libiw from %s", name)
    return lib


def _free_chain(head: Any, max_nodes: int) -> int:
    """``free()`` each node of a malloc'd chain; return the number freed.

    Stops at NULL, after *max_nodes* nodes, or on reaching a node already
    freed, so a cyclic chain is released once per node.
    """
    libc = ffi.dlopen(None)
    freed = 0
    seen: set[int] = set()
    node = head
    while node != ffi.NULL and freed < max_nodes:
        addr = int(ffi.cast("uintptr_t", node))
        if addr in seen:
            logger.warning("Result chain loops back after %d node(s)", freed)
            break
        seen.add(addr)
        nxt = node.next
        libc.free(node)
        node = nxt
        freed += 1
    return freed


# ---------------------------------------------------------------------------
# Read-only node view
# ---------------------------------------------------------------------------

class LibIwScanNode:
    """A read-only view of one ``wireless_scan`` node.

    Exposes the attributes of :class:`~wifiscan.wifi_common.RawScanNode`,
    copying each field out of foreign memory when it is read.
    """

    __slots__ = ("_ptr",)

    def __init__(self, ptr: Any) -> None:
        self._ptr = ptr

    @property
    def next(self) -> LibIwScanNode | None:
        nxt = self._ptr.next
        if nxt == ffi.NULL:
            return None
        return LibIwScanNode(nxt)

    @property
    def config(self) -> RawConfig:
        b = self._ptr.b
        return RawConfig(
            name=ffi.buffer(b.name)[:],
            has_freq=b.has_freq,
            freq=b.freq,
            has_key=b.has_key,
            key=ffi.buffer(b.key)[:],
            key_size=b.key_size,
            key_flags=b.key_flags,
            has_essid=b.has_essid,
            essid_on=b.essid_on,
            essid=ffi.buffer(b.essid)[:],
            essid_len=b.essid_len,
            has_mode=b.has_mode,
            mode=b.mode,
        )

    @property
    def has_ap_addr(self) -> int:
        return self._ptr.has_ap_addr

    @property
    def ap_addr(self) -> RawSockaddr:
        addr = self._ptr.ap_addr
        return RawSockaddr(sa_family=addr.sa_family, sa_data=ffi.buffer(addr.sa_data)[:])

    @property
    def has_stats(self) -> int:
        return self._ptr.has_stats

    @property
    def stats(self) -> RawStats:
        stats = self._ptr.stats
        qual = stats.qual
        return RawStats(
            status=stats.status,
            qual=RawQuality(
                qual=qual.qual, level=qual.level, noise=qual.noise, updated=qual.updated,
            ),
        )

    @property
    def has_maxbitrate(self) -> int:
        return self._ptr.has_maxbitrate

    @property
    def maxbitrate(self) -> RawParam:
        rate = self._ptr.maxbitrate
        return RawParam(
            value=rate.value, fixed=rate.fixed, disabled=rate.disabled, flags=rate.flags,
        )


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------

class LibIwChannel:
    """An open iw socket plus the result chains allocated through it."""

    def __init__(self, fd: int) -> None:
        self.fd = fd
        self.heads: list[Any] = []
        self.closed = False


class LibIwDriver:
    """:class:`~wifiscan.wifi_common.DriverProtocol` backed by libiw.

    Args:
        lib: A loaded libiw handle (or a fake exposing the same calls).
            Loaded lazily with :func:`load_libiw` when omitted.
        library: Library path or soname used for lazy loading.
        close_fd: Closes the socket; defaults to :func:`os.close`.
        free_chain: Frees a result chain; defaults to libc ``free`` per node.
    """

    # Nodes freed per chain before giving up on a cyclic list.
    FREE_LIMIT = 4096

    def __init__(
        self,
        lib: Any | None = None,
        *,
        library: str | None = None,
        close_fd: Any = None,
        free_chain: Any = None,
    ) -> None:
        self._lib = lib
        self._library = library
        self._close_fd = close_fd or os.close
        self._free_chain = free_chain or _free_chain

    @property
    def lib(self) -> Any:
        if self._lib is None:
            self._lib = load_libiw(self._library)
        return self._lib

    def open(self) -> LibIwChannel:
        """Open an iw socket."""
        fd = self.lib.iw_sockets_open()
        if fd < 0:
            err = ffi.errno
            raise ChannelOpenError(
                f"cannot open wireless control socket: {os.strerror(err)}",
                errno=err,
            )
        logger.debug("Opened iw socket fd=%d", fd)
        return LibIwChannel(fd)

    def query_range(self, channel: LibIwChannel, interface: str) -> DriverRange:
        """Fill a zeroed ``struct iw_range`` for *interface*."""
        ifname = encode_interface_name(interface)
        rng = ffi.new("struct iw_range *")
        if self.lib.iw_get_range_info(channel.fd, ifname, rng) < 0:
            err = ffi.errno
            raise RangeQueryError(
                err, f"no wireless extensions on {interface}: {os.strerror(err)}",
            )
        logger.debug(
            "Range info for %s: we_version_compiled=%d we_version_source=%d",
            interface, rng.we_version_compiled, rng.we_version_source,
        )
        return DriverRange(
            we_version_compiled=rng.we_version_compiled,
            we_version_source=rng.we_version_source,
            num_channels=rng.num_channels,
        )

    def scan(
        self,
        channel: LibIwChannel,
        interface: str,
        we_version: int,
    ) -> LibIwScanNode | None:
        """Run ``iw_scan`` and return a view of the chain head."""
        ifname = ffi.new("char[]", encode_interface_name(interface))
        head = ffi.new("wireless_scan_head *")
        if self.lib.iw_scan(channel.fd, ifname, we_version, head) < 0:
            err = ffi.errno
            raise ScanRequestError(
                err, f"scan on {interface} failed: {os.strerror(err)}",
            )
        if head.result == ffi.NULL:
            logger.debug("Scan on %s returned an empty chain", interface)
            return None
        channel.heads.append(head.result)
        return LibIwScanNode(head.result)

    def close(self, channel: LibIwChannel) -> None:
        """Free the channel's result chains and close its socket."""
        if channel.closed:
            return
        channel.closed = True
        try:
            for head in channel.heads:
                freed = self._free_chain(head, self.FREE_LIMIT)
                logger.debug("Freed %d scan node(s)", freed)
        finally:
            channel.heads.clear()
            self._close_fd(channel.fd)
            logger.debug("Closed iw socket fd=%d", channel.fd)
