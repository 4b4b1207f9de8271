"""WiFi scanning via wireless extensions (libiw)."""

from wifiscan.scanning.decoder import ResultListDecoder, decode_result_chain  # noqa: F401
from wifiscan.scanning.libiw import LibIwDriver  # noqa: F401
from wifiscan.scanning.session import ScanSession, scan_wifi_libiw  # noqa: F401
