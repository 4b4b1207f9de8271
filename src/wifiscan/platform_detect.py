"""Wireless interface discovery for wifiscan.

Enumerates network interfaces in sysfs, keeps the ones the kernel marks as
wireless, and picks the best candidate to scan when no interface is named.

All filesystem access takes a ``sysfs_net`` override so tests can point it
at a temporary tree.
"""

from __future__ import annotations

import logging
import os

from wifiscan.wifi_common import WifiDevice

logger = logging.getLogger(__name__)

SYSFS_NET = "/sys/class/net"


def _read_driver_name(
    iface: str,
    *,
    sysfs_net: str = SYSFS_NET,
) -> str:
    """Read the kernel driver name for *iface* from sysfs.

    The driver is the basename of the ``<iface>/device/driver`` symlink.

    Returns:
        Driver name string, or ``"unknown"`` if it cannot be determined.
    """
    driver_path = os.path.join(sysfs_net, iface, "device", "driver")
    try:
        return os.path.basename(os.readlink(driver_path))
    except OSError:
        return "unknown"


def _read_operstate(iface: str, sysfs_net: str) -> bool:
    """Return True if the interface operstate is ``"up"``."""
    operstate_path = os.path.join(sysfs_net, iface, "operstate")
    try:
        with open(operstate_path) as f:
            return f.read().strip() == "up"
    except OSError:
        return False


def _is_wireless(iface: str, sysfs_net: str) -> tuple[bool, bool]:
    """Return ``(is_wireless, has_wext)`` for *iface*.

    ``wireless`` appears only for interfaces answering wireless-extension
    ioctls; ``phy80211`` marks any cfg80211 device.
    """
    base = os.path.join(sysfs_net, iface)
    has_wext = os.path.isdir(os.path.join(base, "wireless"))
    has_phy = os.path.exists(os.path.join(base, "phy80211"))
    return (has_wext or has_phy, has_wext)


def list_wifi_interfaces(*, sysfs_net: str = SYSFS_NET) -> list[WifiDevice]:
    """Enumerate wireless interfaces from sysfs, sorted by name.

    Returns an empty list if the sysfs directory cannot be read.
    """
    try:
        names = sorted(os.listdir(sysfs_net))
    except OSError:
        logger.debug("Cannot list %s", sysfs_net)
        return []

    devices: list[WifiDevice] = []
    for name in names:
        wireless, has_wext = _is_wireless(name, sysfs_net)
        if not wireless:
            continue
        devices.append(WifiDevice(
            name=name,
            driver=_read_driver_name(name, sysfs_net=sysfs_net),
            has_wext=has_wext,
            is_up=_read_operstate(name, sysfs_net),
        ))

    logger.debug("Wireless interfaces: %s", [d.name for d in devices])
    return devices


def detect_best_interface(devices: list[WifiDevice]) -> str | None:
    """Pick the interface to scan.

    Selection priority:
    1. Prefer an interface with wireless extensions (libiw needs them).
    2. Prefer an interface that is currently up.
    3. Fall back to the first interface in the list.

    Returns:
        Interface name, or ``None`` if *devices* is empty.
    """
    if not devices:
        return None

    def _score(device: WifiDevice) -> tuple[int, int]:
        return (int(device.has_wext), int(device.is_up))

    return max(devices, key=_score).name
