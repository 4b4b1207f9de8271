"""Walk a driver result chain and decode it into a :class:`WifiScanResult`.

The chain is foreign: its nodes belong to the driver binding and stay valid
only while the channel that produced them is open.  Every field is copied
out as the node is visited and no reference to a node survives
:meth:`ResultListDecoder.decode`.  Traversal is bounded so a cyclic or
unterminated chain fails with :class:`MalformedResultChain` instead of
looping forever.
"""

from __future__ import annotations

import logging
from typing import Any

from wifiscan.codec import (
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
    MalformedResultChain,
    WifiScanResult,
    WirelessNetwork,
)

logger = logging.getLogger(__name__)

MAX_RESULT_NODES = 4096


def decode_node(node: Any) -> WirelessNetwork:
    """Decode one raw scan node (a :class:`RawScanNode` or a driver view)."""
    config = node.config
    frequency = decode_frequency(config.freq, bool(config.has_freq))
    ap_addr = node.ap_addr
    has_ap_addr = bool(node.has_ap_addr)
    return WirelessNetwork(
        essid=decode_essid(config.essid, bool(config.has_essid)),
        encryption=decode_encryption(config.key_flags),
        quality=decode_quality(node.stats, bool(node.has_stats)),
        frequency=frequency,
        mode=decode_mode(config.mode, bool(config.has_mode)),
        ap_addr=decode_ap_addr(ap_addr.sa_family, ap_addr.sa_data, has_ap_addr),
        max_bitrate=decode_bitrate(node.maxbitrate, bool(node.has_maxbitrate)),
        bssid=decode_bssid(ap_addr.sa_family, ap_addr.sa_data, has_ap_addr),
        channel=frequency_to_channel(frequency),
        name=decode_ifname(config.name),
        key=decode_key(
            config.key, config.key_size, config.key_flags, bool(config.has_key),
        ),
    )


class ResultListDecoder:
    """Decode a result chain into an ordered :class:`WifiScanResult`.

    Args:
        max_nodes: Traversal bound.  A chain with more nodes than this is
            treated as malformed.
    """

    def __init__(self, max_nodes: int = MAX_RESULT_NODES) -> None:
        if max_nodes < 0:
            raise ValueError("max_nodes must not be negative")
        self.max_nodes = max_nodes

    def decode(self, head: Any, interface: str) -> WifiScanResult:
        """Visit each node from *head* until ``None`` and decode it in order.

        Raises:
            MalformedResultChain: if more than ``max_nodes`` nodes are visited.
        """
        networks: list[WirelessNetwork] = []
        node = head
        while node is not None:
            if len(networks) >= self.max_nodes:
                logger.debug(
                    "Result chain on %s exceeded %d nodes", interface, self.max_nodes,
                )
                raise MalformedResultChain(
                    f"result chain on {interface} has more than {self.max_nodes} nodes",
                    interface,
                )
            networks.append(decode_node(node))
            node = node.next

        logger.debug("Decoded %d network(s) on %s", len(networks), interface)
        return WifiScanResult(interface=interface, networks=networks)


def decode_result_chain(
    head: Any,
    interface: str,
    *,
    max_nodes: int = MAX_RESULT_NODES,
) -> WifiScanResult:
    """Convenience wrapper around :meth:`ResultListDecoder.decode`."""
    return ResultListDecoder(max_nodes=max_nodes).decode(head, interface)
