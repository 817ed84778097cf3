"""
In-memory state manager with optional JSON cache.
Keeps the host documents of past scans available for the report command.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from core.config import settings

log = logging.getLogger(__name__)


class StateManager:
    def __init__(self, cache_path: Optional[str] = None):
        self.hosts: List[Dict] = []
        path = cache_path or settings.json_cache_path
        self.cache_path = Path(path) if path else None
        self._load_cache()

    def _load_cache(self):
        if self.cache_path and self.cache_path.exists():
            try:
                data = json.loads(self.cache_path.read_text())
            except (OSError, ValueError):
                log.warning("failed to load cache from %s", self.cache_path)
                return
            hosts = data.get("hosts") if isinstance(data, dict) else None
            if not isinstance(hosts, list):
                log.warning("ignoring malformed cache %s", self.cache_path)
                return
            self.hosts = hosts

    def _persist(self):
        if not self.cache_path:
            return
        try:
            self.cache_path.write_text(json.dumps({"hosts": self.hosts}, indent=2, default=str))
        except OSError:
            log.warning("failed to persist cache to %s", self.cache_path)

    def record_hosts(self, docs: List[Dict]):
        if not docs:
            return
        self.hosts.extend(docs)
        self._persist()

    def list_hosts(self, host: Optional[str] = None) -> List[Dict]:
        if host:
            return [d for d in self.hosts if d.get("host") == host]
        return list(self.hosts)
