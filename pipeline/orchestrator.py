"""
Single-node orchestrator: runs the scanner inline and hands the finished
report to the output collaborators (in-memory/JSON state, Elasticsearch).
"""

import datetime as dt
import logging
from typing import Any, Dict, List, Optional

from core.config import settings
from core.models import ScanReport
from core.state import StateManager
from elk.adapter import ElasticsearchAdapter
from pipeline.scanner import Scanner

log = logging.getLogger(__name__)


class Orchestrator:
    def __init__(self, scanner: Optional[Scanner] = None, state: Optional[StateManager] = None) -> None:
        self.scanner = scanner or Scanner()
        self.state = state or StateManager()
        self.elk = ElasticsearchAdapter() if settings.elasticsearch_url else None
        self.degraded = False

    @staticmethod
    def _host_docs(report: ScanReport) -> List[Dict[str, Any]]:
        ts = dt.datetime.now(dt.timezone.utc).isoformat()
        docs = []
        for host in report.hosts:
            doc = host.to_doc()
            doc["timestamp"] = ts
            doc["scan_started_at"] = report.started_at.isoformat()
            docs.append(doc)
        return docs

    def _emit(self, docs: List[Dict[str, Any]]) -> None:
        if not docs:
            return
        self.state.record_hosts(docs)

        if not self.elk:
            return
        try:
            self.elk.bulk_index(docs)
            self.degraded = False
        except Exception as e:  # noqa: BLE001
            # the scan result is still returned to the caller
            log.exception("ELK bulk_index failed | index=%s | err=%s", self.elk.index, e)
            self.degraded = True

    def scan(self, address_spec: str, port_spec: str, concurrency: Optional[int] = None) -> Dict[str, Any]:
        scanner = self.scanner
        if concurrency is not None and concurrency != scanner.concurrency:
            scanner = Scanner(
                concurrency=concurrency,
                connect_timeout_s=scanner.connect_timeout_s,
                banner_concurrency=scanner.banner_concurrency,
                identifier=scanner.identifier,
                probe=scanner.probe,
            )
        report = scanner.scan(address_spec, port_spec)
        self._emit(self._host_docs(report))
        return {
            "results": report.payload(),
            "summary": {
                "hosts_scanned": report.hosts_scanned,
                "ports_scanned": report.ports_scanned,
                "hosts_open": len(report.hosts),
                "ports_open": sum(len(h.ports) for h in report.hosts),
                "duration_s": report.duration_s,
            },
            "degraded": self.degraded,
        }

    def report(self, host: Optional[str] = None) -> List[Dict[str, Any]]:
        if self.elk and host:
            docs = self.elk.search_by_host(host, size=100)
            if docs:
                return docs
        return self.state.list_hosts(host)

    def verify(self) -> Dict[str, Any]:
        return {
            "elk": self.elk.ping() if self.elk else False,
            "elk_configured": self.elk is not None,
            "cache": str(self.state.cache_path) if self.state.cache_path else None,
            "concurrency": self.scanner.concurrency,
            "degraded": self.degraded,
        }
