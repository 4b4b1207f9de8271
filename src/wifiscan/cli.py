#!/usr/bin/env python3
"""wifiscan — one-shot WiFi scan via wireless extensions.

Usage:
    wifiscan                          # scan the best detected interface
    wifiscan -i wlan1                 # specific interface
    wifiscan -i wlan0 --json          # JSON output
    wifiscan --list-devices           # list wireless interfaces and exit
    sudo wifiscan --debug             # log driver calls to stderr

Scanning usually needs root (CAP_NET_ADMIN); without it most drivers only
return cached results or refuse the scan.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from rich.console import Console
from rich.markup import escape

from wifiscan.display.tables import build_device_table, build_table
from wifiscan.platform_detect import detect_best_interface, list_wifi_interfaces
from wifiscan.scanning.decoder import MAX_RESULT_NODES, ResultListDecoder
from wifiscan.scanning.libiw import LIBIW_ENV, LibIwDriver
from wifiscan.scanning.session import ScanSession
from wifiscan.wifi_common import ScanError

# -- Defaults --
INTERFACE_ENV = "WIFISCAN_INTERFACE"
EXIT_SCAN_ERROR = 1
EXIT_NO_INTERFACE = 2
_LOGGER = logging.getLogger("wifiscan.cli")


def _non_negative_int(value: str) -> int:
    """argparse type for counts that may be zero but not negative."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {number}")
    return number


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="wifiscan",
        description="Scan for WiFi networks via wireless extensions (libiw).",
    )
    parser.add_argument(
        "-i", "--interface",
        default=os.environ.get(INTERFACE_ENV),
        help=f"wireless interface to scan (default: ${INTERFACE_ENV} or auto-detect)",
    )
    parser.add_argument(
        "--json", action="store_true", dest="json_output",
        help="output as JSON instead of a table",
    )
    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="list detected wireless interfaces and exit",
    )
    parser.add_argument(
        "--library",
        metavar="PATH",
        default=os.environ.get(LIBIW_ENV),
        help=f"libiw path or soname (default: ${LIBIW_ENV} or system lookup)",
    )
    parser.add_argument(
        "--max-nodes",
        type=_non_negative_int,
        default=MAX_RESULT_NODES,
        help="maximum number of scan results before the chain is rejected",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="enable debug logging to stderr",
    )
    return parser.parse_args(argv)


def _configure_logging(debug: bool) -> None:
    """Send debug logs to stderr when --debug is given."""
    if not debug:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(name)s: %(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("wifiscan").setLevel(logging.DEBUG)


def main(argv: list[str] | None = None) -> None:
    """Scan once and print the results."""
    args = _parse_args(argv)
    _configure_logging(args.debug)
    console = Console()

    if args.list_devices:
        devices = list_wifi_interfaces()
        if not devices:
            console.print("[yellow]No wireless interfaces detected.[/yellow]")
            sys.exit(0)
        console.print(build_device_table(devices, detect_best_interface(devices)))
        sys.exit(0)

    interface = args.interface
    if not interface:
        interface = detect_best_interface(list_wifi_interfaces())
        if interface is None:
            console.print("[red]No wireless interface found; use -i.[/red]")
            sys.exit(EXIT_NO_INTERFACE)
        _LOGGER.debug("Auto-selected interface %s", interface)

    session = ScanSession(
        driver=LibIwDriver(library=args.library),
        decoder=ResultListDecoder(max_nodes=args.max_nodes),
    )
    try:
        result = session.run(interface)
    except ValueError as exc:
        console.print(f"[red]Invalid interface:[/red] {escape(str(exc))}")
        sys.exit(EXIT_NO_INTERFACE)
    except ScanError as exc:
        _LOGGER.debug("Scan failed", exc_info=True)
        console.print(f"[red]{type(exc).__name__}:[/red] {escape(str(exc))}")
        sys.exit(EXIT_SCAN_ERROR)

    if args.json_output:
        data = {
            "interface": result.interface,
            "networks": [n.to_dict() for n in result.networks],
        }
        print(json.dumps(data, indent=2))
        return

    if not result.networks:
        console.print("No networks found.")
        return
    console.print(build_table(result))


if __name__ == "__main__":
    main()
