"""
Thread-safe open-port accumulation shared by the connect workers.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List

log = logging.getLogger(__name__)


class ResultAggregator:
    """
    OpenPortSet: host -> insertion-ordered set of open ports.

    Every mutation goes through ``_lock``. Workers only append; readers are
    expected to wait for the pool's join barrier before calling ``snapshot``.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._open: Dict[str, Dict[int, None]] = {}

    def record(self, host: str, port: int) -> bool:
        with self._lock:
            ports = self._open.setdefault(host, {})
            if port in ports:
                return False
            ports[port] = None
        log.debug("recorded %s:%d", host, port)
        return True

    def hosts(self) -> List[str]:
        with self._lock:
            return [h for h, ports in self._open.items() if ports]

    def ports(self, host: str) -> List[int]:
        with self._lock:
            return list(self._open.get(host, {}))

    def snapshot(self) -> Dict[str, List[int]]:
        with self._lock:
            return {h: list(ports) for h, ports in self._open.items() if ports}

    def __len__(self) -> int:
        with self._lock:
            return sum(len(ports) for ports in self._open.values())
