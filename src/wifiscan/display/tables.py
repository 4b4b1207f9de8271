"""Rich table builders for wifiscan results.

Rows keep the driver's ordering.  Can be run standalone to render a demo
table::

    python -m wifiscan.display.tables
"""

from __future__ import annotations

from rich.markup import escape
from rich.table import Table

from wifiscan.wifi_common import (
    COLOR_TO_RICH,
    WifiDevice,
    WifiScanResult,
    bars_color,
    encryption_color,
    quality_to_bars,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _rich_color(rgb: tuple) -> str:  # type: ignore[type-arg]
    """Convert an RGB tuple to a Rich color name."""
    return COLOR_TO_RICH.get(rgb, "white")


def _bar_string(bars: int) -> str:
    """Build a signal-bar string like '▂▄▆█'."""
    chars = ["▂", "▄", "▆", "█"]
    return "".join(chars[i] if i < bars else " " for i in range(4))


def _format_bitrate(bitrate: int | None) -> str:
    """Format bit/s as Mb/s."""
    if bitrate is None:
        return "-"
    mbps = bitrate / 1e6
    return f"{mbps:g}"


def _dash(value: object) -> str:
    return "-" if value is None else str(value)


# ---------------------------------------------------------------------------
# Scan result table
# ---------------------------------------------------------------------------

def build_table(result: WifiScanResult, caption_override: str | None = None) -> Table:
    """Build a Rich Table for one scan.

    Args:
        result: The scan result, rendered in driver order.
        caption_override: Optional caption to use instead of the count.
    """
    caption = (
        caption_override if caption_override is not None
        else f"{len(result.networks)} networks found"
    )
    table = Table(
        title=f"WiFi Scan — {escape(result.interface)}",
        title_style="bold cyan",
        caption=caption,
        caption_style="grey50",
        expand=True,
        show_lines=False,
        padding=(0, 1),
    )
    table.add_column("#", style="grey50", width=3, justify="right")
    table.add_column("ESSID", style="white", min_width=15, max_width=32)
    table.add_column("BSSID", style="grey50", width=17)
    table.add_column("Ch", justify="right", width=4)
    table.add_column("GHz", justify="right", width=6)
    table.add_column("Qual", justify="right", width=4)
    table.add_column("dBm", justify="right", width=5)
    table.add_column("Sig", width=5)
    table.add_column("Mb/s", justify="right", width=5)
    table.add_column("Encryption", width=10)
    table.add_column("Mode", width=7)

    for i, net in enumerate(result.networks, 1):
        essid = escape(net.essid) if net.essid else "[dim]<hidden>[/dim]"
        bars = quality_to_bars(net.quality)
        sig_c = _rich_color(bars_color(bars))
        enc_c = _rich_color(encryption_color(net.encryption))
        quality = net.quality.quality if net.quality is not None else None
        dbm = net.quality.level_dbm if net.quality is not None else None
        freq = f"{net.frequency:.3f}" if net.frequency is not None else "-"

        table.add_row(
            str(i),
            essid,
            escape(net.bssid.upper()) if net.bssid else "-",
            _dash(net.channel),
            freq,
            _dash(quality),
            f"[{sig_c}]{_dash(dbm)}[/{sig_c}]",
            f"[{sig_c}]{_bar_string(bars)}[/{sig_c}]",
            _format_bitrate(net.max_bitrate),
            f"[{enc_c}]{net.encryption.value}[/{enc_c}]",
            net.mode.name.lower() if net.mode is not None else "-",
        )

    return table


# ---------------------------------------------------------------------------
# Device table
# ---------------------------------------------------------------------------

def build_device_table(devices: list[WifiDevice], best: str | None = None) -> Table:
    """Build a Rich Table listing wireless interfaces."""
    table = Table(
        title="Wireless Interfaces",
        title_style="bold cyan",
        caption=f"{len(devices)} interface(s)",
        caption_style="grey50",
        show_lines=False,
        padding=(0, 1),
    )
    table.add_column("Interface", style="white")
    table.add_column("Driver", style="grey50")
    table.add_column("WEXT", justify="center")
    table.add_column("State", justify="center")

    for dev in devices:
        name = escape(dev.name)
        if dev.name == best:
            name = f"[bold]{name}[/bold] [green]*[/green]"
        table.add_row(
            name,
            escape(dev.driver),
            "[green]yes[/green]" if dev.has_wext else "[red]no[/red]",
            "[green]up[/green]" if dev.is_up else "[yellow]down[/yellow]",
        )

    return table


# ---------------------------------------------------------------------------
# Standalone CLI (demo)
# ---------------------------------------------------------------------------

def main() -> None:
    """Render a demo table with sample data for visual testing."""
    from rich.console import Console

    from wifiscan.wifi_common import (
        EncryptionClass,
        SignalQuality,
        WirelessMode,
        WirelessNetwork,
    )

    sample = WifiScanResult(interface="wlan0", networks=[
        WirelessNetwork(
            essid="HomeNet", encryption=EncryptionClass.WPA2, frequency=2.437, channel=6,
            quality=SignalQuality(quality=60, level=211, noise=0, updated=0x08),
            bssid="aa:bb:cc:dd:ee:01", max_bitrate=54_000_000, mode=WirelessMode.MASTER,
        ),
        WirelessNetwork(
            essid=None, encryption=EncryptionClass.NONE, frequency=5.18, channel=36,
            bssid="aa:bb:cc:dd:ee:02",
        ),
    ])
    Console().print(build_table(sample))


if __name__ == "__main__":
    main()
