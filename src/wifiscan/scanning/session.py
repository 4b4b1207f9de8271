"""One-shot scan orchestration.

:class:`ScanSession` opens a driver channel, reads the range info to learn
the wireless-extensions version, issues the scan and decodes the result
chain before the channel is released.  The channel is released exactly once
on every path out of :meth:`ScanSession.run`.  Failures are not retried;
callers may call ``run`` again.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from wifiscan.scanning.decoder import ResultListDecoder
from wifiscan.scanning.libiw import LibIwDriver
from wifiscan.wifi_common import (
    DriverProtocol,
    RangeQueryError,
    RangeUnavailable,
    ScanRequestError,
    ScanRequestFailed,
    WifiScanResult,
    encode_interface_name,
)

logger = logging.getLogger(__name__)


@contextmanager
def open_channel(driver: DriverProtocol) -> Iterator[Any]:
    """Open a driver channel and close it when the block exits."""
    channel = driver.open()
    try:
        yield channel
    finally:
        driver.close(channel)


class ScanSession:
    """Run point-in-time scans through a :class:`DriverProtocol`.

    Args:
        driver: The driver binding.  Defaults to
            :class:`~wifiscan.scanning.libiw.LibIwDriver`.
        decoder: Result chain decoder.  Defaults to a
            :class:`ResultListDecoder` with the standard node bound.

    The session holds no per-scan state, so one instance may serve
    concurrent callers as long as the driver opens a fresh channel per call.
    """

    def __init__(
        self,
        driver: DriverProtocol | None = None,
        decoder: ResultListDecoder | None = None,
    ) -> None:
        self.driver = driver or LibIwDriver()
        self.decoder = decoder or ResultListDecoder()

    def run(self, interface: str) -> WifiScanResult:
        """Scan *interface* and return the networks in driver order.

        Raises:
            ValueError: if *interface* is not a valid interface name.
            ChannelOpenError: if the control channel cannot be opened.
            RangeUnavailable: if the interface does not answer the range query.
            ScanRequestFailed: if the driver rejects the scan.
            MalformedResultChain: if the result chain is unbounded.
        """
        encode_interface_name(interface)

        with open_channel(self.driver) as channel:
            try:
                rng = self.driver.query_range(channel, interface)
            except RangeQueryError as exc:
                logger.debug("Range query on %s failed: %s", interface, exc)
                raise RangeUnavailable(
                    f"{interface} did not answer the range query: {exc}", interface,
                ) from exc

            try:
                head = self.driver.scan(channel, interface, rng.we_version_compiled)
            except ScanRequestError as exc:
                logger.debug("Scan request on %s failed: %s", interface, exc)
                raise ScanRequestFailed(
                    f"scan on {interface} failed: {exc}", interface,
                ) from exc

            return self.decoder.decode(head, interface)


def scan_wifi_libiw(
    interface: str,
    *,
    driver: DriverProtocol | None = None,
) -> WifiScanResult:
    """Scan *interface* once via libiw.

    Args:
        interface: Wireless interface name, e.g. ``"wlan0"``.
        driver: Optional driver binding (testing seam).
    """
    return ScanSession(driver=driver).run(interface)
