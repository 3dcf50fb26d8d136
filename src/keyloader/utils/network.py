"""Host address discovery for the startup banner.

The operator reaching the machine over the network during boot needs to
know which address to point a browser at, so the server prints the
address of every network interface before it starts listening.
"""

from __future__ import annotations

import logging
import socket

import psutil

logger = logging.getLogger(__name__)

IP_FAMILIES = (socket.AF_INET, socket.AF_INET6)


def list_addresses() -> list[str]:
    """Return the IPv4 and IPv6 addresses of every interface, loopback included.

    Link-layer entries are skipped. If the interface table cannot be read
    the failure is logged and an empty list is returned; the listing is
    informational only.
    """
    try:
        interfaces = psutil.net_if_addrs()
    except OSError as e:
        logger.warning("Cannot list network interfaces: %s", e)
        return []

    addresses: list[str] = []
    for name, entries in interfaces.items():
        for entry in entries:
            if entry.family not in IP_FAMILIES:
                continue
            # IPv6 link-local addresses carry a "%<iface>" zone suffix
            ip = entry.address.split("%", 1)[0]
            logger.debug("Interface %s has address %s", name, ip)
            if ip not in addresses:
                addresses.append(ip)
    return addresses
