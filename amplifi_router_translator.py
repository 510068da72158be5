"""
Translation of the router's ``/info-async.php?do=full`` payload.

The payload is a top-level JSON array whose elements are addressed by
position, not by key. This is an undocumented vendor contract:

* index 1 - wireless clients, nested as
  ``access point -> radio band -> network type -> client -> fields``
* index 4 - ethernet ports, nested as ``switch -> port -> fields``; the
  port ``eth-0`` is the uplink to the modem and carries global throughput

All other indices are ignored. There is no schema version upstream, so a
layout change only shows up as missing data or a parse failure.
"""

from __future__ import annotations

import json
import logging

from amplifi_router_client_exceptions import ParseException
from amplifi_router_models import *
from amplifi_router_utils import get_number, get_string

CLIENTS_INDEX = 1
ETHERNET_INDEX = 4

INTERNAL_NETWORK = "Internal network"
UPLINK_PORT = "eth-0"

logger = logging.getLogger(__name__)


def _mappings(node) -> list:
    """Children of a JSON object that are themselves objects."""
    if not isinstance(node, dict):
        return []
    return [(key, value) for key, value in node.items() if isinstance(value, dict)]


def parse_client(data: dict) -> ClientRecord:
    return ClientRecord(
        description=get_string(data, "Description", UNKNOWN_DESCRIPTION),
        tx_bytes=get_number(data, "TxBytes"),
        rx_bytes=get_number(data, "RxBytes"),
        signal_quality=get_number(data, "SignalQuality"),
        happiness_score=get_number(data, "HappinessScore"),
    )


def extract_clients(section) -> list[ClientRecord]:
    clients: list[ClientRecord] = []
    for _, access_point in _mappings(section):
        for _, band in _mappings(access_point):
            for network_type, network in _mappings(band):
                if network_type == INTERNAL_NETWORK:
                    continue
                for _, client in _mappings(network):
                    clients.append(parse_client(client))
    return clients


def extract_global_stats(section) -> GlobalStats:
    stats = GlobalStats()
    for _, ports in _mappings(section):
        uplink = ports.get(UPLINK_PORT)
        if not isinstance(uplink, dict):
            continue
        tx_bitrate = get_number(uplink, "tx_bitrate")
        if tx_bitrate is not None:
            stats.tx_bitrate = tx_bitrate
        rx_bitrate = get_number(uplink, "rx_bitrate")
        if rx_bitrate is not None:
            stats.rx_bitrate = rx_bitrate
    return stats


def translate(raw: str | bytes) -> RouterSnapshot:
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseException(f"invalid JSON payload: {e}", "translate") from e

    if not isinstance(payload, list):
        raise ParseException(f"expected a JSON array, got {type(payload).__name__}", "translate")

    snapshot = RouterSnapshot()
    if len(payload) > CLIENTS_INDEX:
        snapshot.clients = extract_clients(payload[CLIENTS_INDEX])
    if len(payload) > ETHERNET_INDEX:
        snapshot.global_stats = extract_global_stats(payload[ETHERNET_INDEX])

    logger.debug(f"Translated payload: {snapshot.client_count} clients, "
                 f"tx_bitrate={snapshot.global_stats.tx_bitrate}, rx_bitrate={snapshot.global_stats.rx_bitrate}")
    return snapshot
