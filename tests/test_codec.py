"""Tests for wifiscan.codec — fixed-layout field decoders.

Follows TDD agent standards:
- test_<what>_<condition>_<expected_outcome> naming
- One concept per test
- @pytest.mark.parametrize for repetitive cases
"""

from __future__ import annotations

import ipaddress
import logging
import socket

import pytest

from wifiscan.codec import (
    ARPHRD_ETHER,
    IW_AUTH_WPA_VERSION_DISABLED,
    IW_AUTH_WPA_VERSION_WPA,
    IW_AUTH_WPA_VERSION_WPA2,
    channel_to_frequency,
    decode_ap_addr,
    decode_bitrate,
    decode_bssid,
    decode_encryption,
    decode_essid,
    decode_frequency,
    decode_ifname,
    decode_key,
    decode_mode,
    decode_quality,
    frequency_to_channel,
)
from wifiscan.wifi_common import (
    EncryptionClass,
    RawParam,
    RawQuality,
    RawStats,
    WirelessMode,
)

DISABLED = IW_AUTH_WPA_VERSION_DISABLED
WPA = IW_AUTH_WPA_VERSION_WPA
WPA2 = IW_AUTH_WPA_VERSION_WPA2


# ---------------------------------------------------------------------------
# decode_encryption
# ---------------------------------------------------------------------------

class TestDecodeEncryption:
    """decode_encryption applies the DISABLED > WPA > WPA2 priority."""

    @pytest.mark.parametrize("flags", [
        DISABLED,
        DISABLED | WPA,
        DISABLED | WPA2,
        DISABLED | WPA | WPA2,
        DISABLED | 0x80,
    ])
    def test_disabled_bit_wins_over_everything(self, flags):
        assert decode_encryption(flags) is EncryptionClass.NONE

    @pytest.mark.parametrize("flags", [WPA, WPA | WPA2, WPA | 0x100])
    def test_wpa_bit_without_disabled_is_wpa(self, flags):
        assert decode_encryption(flags) is EncryptionClass.WPA

    @pytest.mark.parametrize("flags", [WPA2, WPA2 | 0x8000])
    def test_wpa2_bit_alone_is_wpa2(self, flags):
        assert decode_encryption(flags) is EncryptionClass.WPA2

    @pytest.mark.parametrize("flags", [0, 0x08, 0x8000, 0xFFF0])
    def test_no_recognised_bit_is_unknown(self, flags):
        assert decode_encryption(flags) is EncryptionClass.UNKNOWN


# ---------------------------------------------------------------------------
# decode_essid
# ---------------------------------------------------------------------------

class TestDecodeEssid:
    """decode_essid reads a NUL-terminated, bounded, lossy text field."""

    @pytest.mark.parametrize("buffer", [
        b"Home\0" + bytes(29),
        bytes(34),
        b"\xff" * 34,
    ])
    def test_flag_false_returns_none(self, buffer):
        assert decode_essid(buffer, False) is None

    def test_terminated_buffer_stops_at_nul(self):
        buffer = b"AB\0" + b"\x55" * 31
        assert decode_essid(buffer, True) == "AB"

    def test_empty_essid_returns_empty_string(self):
        assert decode_essid(bytes(34), True) == ""

    def test_unterminated_buffer_stops_at_fixed_size(self):
        buffer = b"A" * 34 + b"OVERFLOW"
        assert decode_essid(buffer, True) == "A" * 34

    def test_unterminated_buffer_shorter_than_size(self):
        assert decode_essid(b"Cafe", True) == "Cafe"

    def test_custom_size_bounds_read(self):
        assert decode_essid(b"ABCDEF", True, size=3) == "ABC"

    def test_invalid_utf8_is_replaced_not_raised(self):
        result = decode_essid(b"Net\xff\xfe\0" + bytes(28), True)
        assert result == "Net\ufffd\ufffd"

    def test_utf8_multibyte_decoded(self):
        raw = "Café".encode("utf-8") + b"\0"
        assert decode_essid(raw + bytes(34 - len(raw)), True) == "Café"

    def test_accepts_bytearray(self):
        assert decode_essid(bytearray(b"Lab\0"), True) == "Lab"


# ---------------------------------------------------------------------------
# decode_ifname / decode_key
# ---------------------------------------------------------------------------

class TestDecodeIfname:
    def test_terminated_name(self):
        assert decode_ifname(b"wlan0\0" + bytes(11)) == "wlan0"

    def test_empty_name_returns_none(self):
        assert decode_ifname(bytes(17)) is None

    def test_unterminated_name_bounded_to_17_bytes(self):
        assert decode_ifname(b"x" * 20) == "x" * 17


class TestDecodeKey:
    def test_no_key_returns_none(self):
        assert decode_key(bytes(64), 8, 0, False) is None

    def test_key_truncated_to_key_size(self):
        key = decode_key(b"secret!!" + bytes(56), 6, 0x0800, True)
        assert key.key == b"secret"
        assert key.size == 6
        assert key.flags == 0x0800

    def test_oversize_length_clamped_to_buffer(self, caplog):
        with caplog.at_level(logging.WARNING, logger="wifiscan.codec"):
            key = decode_key(b"k" * 64, 500, 0, True)
        assert key.size == 64
        assert len(key.key) == 64
        assert "clamping" in caplog.text

    def test_negative_length_becomes_empty(self):
        key = decode_key(b"k" * 64, -3, 0, True)
        assert key.key == b""
        assert key.size == 0


# ---------------------------------------------------------------------------
# decode_mode
# ---------------------------------------------------------------------------

class TestDecodeMode:
    @pytest.mark.parametrize("code, expected", [
        (0, WirelessMode.AUTO),
        (1, WirelessMode.ADHOC),
        (2, WirelessMode.INFRA),
        (3, WirelessMode.MASTER),
        (6, WirelessMode.MONITOR),
    ])
    def test_known_codes(self, code, expected):
        assert decode_mode(code, True) is expected

    def test_absent_mode_returns_none(self):
        assert decode_mode(3, False) is None

    def test_unknown_code_returns_none(self, caplog):
        with caplog.at_level(logging.WARNING, logger="wifiscan.codec"):
            assert decode_mode(42, True) is None
        assert "42" in caplog.text


# ---------------------------------------------------------------------------
# decode_quality / decode_bitrate
# ---------------------------------------------------------------------------

class TestDecodeQuality:
    def test_absent_stats_returns_none(self):
        stats = RawStats(qual=RawQuality(qual=70, level=200, noise=0))
        assert decode_quality(stats, False) is None

    def test_copies_all_fields(self):
        stats = RawStats(status=3, qual=RawQuality(qual=55, level=200, noise=161, updated=0x4B))
        quality = decode_quality(stats, True)
        assert quality.quality == 55
        assert quality.level == 200
        assert quality.noise == 161
        assert quality.updated == 0x4B
        assert quality.status == 3

    def test_level_dbm_when_flagged(self):
        stats = RawStats(qual=RawQuality(qual=55, level=200, updated=0x08))
        assert decode_quality(stats, True).level_dbm == -56

    def test_level_dbm_none_without_flag(self):
        stats = RawStats(qual=RawQuality(qual=55, level=200, updated=0x00))
        assert decode_quality(stats, True).level_dbm is None


class TestDecodeBitrate:
    def test_absent_returns_none(self):
        assert decode_bitrate(RawParam(value=54_000_000), False) is None

    def test_present_returns_value(self):
        assert decode_bitrate(RawParam(value=54_000_000), True) == 54_000_000

    def test_negative_value_preserved(self):
        assert decode_bitrate(RawParam(value=-1), True) == -1


# ---------------------------------------------------------------------------
# decode_bssid / decode_ap_addr
# ---------------------------------------------------------------------------

MAC_DATA = bytes([0xAA, 0xBB, 0xCC, 0x0D, 0x0E, 0x01]) + bytes(8)


class TestDecodeBssid:
    def test_ether_family_formats_lowercase_mac(self):
        assert decode_bssid(ARPHRD_ETHER, MAC_DATA, True) == "aa:bb:cc:0d:0e:01"

    def test_absent_returns_none(self):
        assert decode_bssid(ARPHRD_ETHER, MAC_DATA, False) is None

    def test_other_family_returns_none(self):
        assert decode_bssid(socket.AF_INET, MAC_DATA, True) is None


class TestDecodeApAddr:
    def test_inet_family_decodes_ipv4(self):
        data = b"\x00\x50" + bytes([192, 168, 1, 1]) + bytes(8)
        assert decode_ap_addr(socket.AF_INET, data, True) == ipaddress.IPv4Address("192.168.1.1")

    def test_ether_family_returns_none(self):
        assert decode_ap_addr(ARPHRD_ETHER, MAC_DATA, True) is None

    def test_inet6_family_returns_none(self):
        assert decode_ap_addr(socket.AF_INET6, bytes(14), True) is None

    def test_absent_returns_none(self):
        assert decode_ap_addr(socket.AF_INET, bytes(14), False) is None


# ---------------------------------------------------------------------------
# Frequency
# ---------------------------------------------------------------------------

class TestDecodeFrequency:
    def test_absent_returns_none(self):
        assert decode_frequency(2.412e9, False) is None

    @pytest.mark.parametrize("hz, ghz", [
        (2.412e9, 2.412), (2.437e9, 2.437), (5.18e9, 5.18), (5.745e9, 5.745),
    ])
    def test_hz_converted_to_ghz(self, hz, ghz):
        assert decode_frequency(hz, True) == pytest.approx(ghz)

    @pytest.mark.parametrize("channel, ghz", [(1, 2.412), (6, 2.437), (14, 2.484), (36, 5.18)])
    def test_channel_number_converted_to_ghz(self, channel, ghz):
        assert decode_frequency(float(channel), True) == pytest.approx(ghz)

    def test_unknown_channel_returns_none(self):
        assert decode_frequency(200.0, True) is None


class TestChannelMapping:
    @pytest.mark.parametrize("ghz, channel", [
        (2.412, 1), (2.437, 6), (2.472, 13), (2.484, 14), (5.18, 36), (5.825, 165),
    ])
    def test_frequency_to_channel(self, ghz, channel):
        assert frequency_to_channel(ghz) == channel

    def test_none_frequency(self):
        assert frequency_to_channel(None) is None

    def test_out_of_band_frequency(self):
        assert frequency_to_channel(60.48) is None

    @pytest.mark.parametrize("channel", [0, 15, 200])
    def test_channel_to_frequency_unknown(self, channel):
        assert channel_to_frequency(channel) is None
