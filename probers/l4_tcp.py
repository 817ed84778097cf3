"""
TCP connect probe using plain connect() without crafting raw packets.
No data is exchanged; the connection is closed as soon as it is established.
"""

import logging
import socket

log = logging.getLogger(__name__)


def tcp_probe(ip: str, port: int, timeout: float = 1.0) -> bool:
    try:
        sock = socket.create_connection((ip, port), timeout=timeout)
    except (socket.timeout, OSError) as exc:
        log.debug("closed %s:%d (%s)", ip, port, exc)
        return False
    sock.close()
    log.info("open port found: %s:%d", ip, port)
    return True
