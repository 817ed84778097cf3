"""
Two-phase range scan (single process):
Phase-1: bounded concurrent TCP connect over the host x port matrix
Phase-2: service identification for every open port, after the phase-1 join
"""

from __future__ import annotations

import ipaddress
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from core.aggregator import ResultAggregator
from core.config import settings
from core.models import BannerRecord, HostResult, ScanReport, Target
from core.pool import WorkerPool
from core.ranges import iter_addresses, parse_address_range, parse_port_range
from probers.banner import ServiceIdentifier
from probers.l4_tcp import tcp_probe

log = logging.getLogger(__name__)

Probe = Callable[[str, int, float], bool]


def build_report(open_ports: Dict[str, List[int]], banners: Dict[Tuple[str, int], BannerRecord]) -> List[HostResult]:
    results: List[HostResult] = []
    for host in sorted(open_ports, key=ipaddress.ip_address):
        ports = sorted(open_ports[host])
        if not ports:
            continue
        results.append(HostResult(host=host, ports=ports, banners=[banners[(host, p)] for p in ports]))
    return results


class Scanner:
    def __init__(
        self,
        concurrency: Optional[int] = None,
        connect_timeout_s: Optional[float] = None,
        banner_concurrency: Optional[int] = None,
        identifier: Optional[ServiceIdentifier] = None,
        probe: Optional[Probe] = None,
    ):
        self.concurrency = settings.concurrency if concurrency is None else concurrency
        self.connect_timeout_s = settings.connect_timeout_s if connect_timeout_s is None else connect_timeout_s
        self.banner_concurrency = settings.banner_concurrency if banner_concurrency is None else banner_concurrency
        if self.concurrency < 1 or self.banner_concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if self.connect_timeout_s <= 0:
            raise ValueError("connect timeout must be > 0")
        self.identifier = identifier or ServiceIdentifier()
        self.probe = probe or tcp_probe

    def _probe_one(self, aggregator: ResultAggregator, target: Target):
        if self.probe(target.host, target.port, self.connect_timeout_s):
            aggregator.record(target.host, target.port)

    def connect_phase(
        self,
        address_spec: str,
        port_spec: str,
        aggregator: ResultAggregator,
        stop_event: Optional[threading.Event] = None,
    ) -> Tuple[int, int]:
        """Probe every (host, port) once; returns (hosts enumerated, probes dispatched)."""
        # bad input fails here, before the pool exists
        start, end = parse_address_range(address_spec)
        ports = parse_port_range(port_spec)

        hosts = 0
        with WorkerPool(self.concurrency, name="probe") as pool:
            for addr in iter_addresses(start, end):
                if stop_event is not None and stop_event.is_set():
                    break
                host = str(addr)
                hosts += 1
                log.info("scanning: %s", host)
                for port in ports:
                    if stop_event is not None and stop_event.is_set():
                        log.warning("scan cancelled while dispatching %s", host)
                        break
                    pool.submit(self._probe_one, aggregator, Target(host=host, port=port))
        return hosts, pool.submitted

    def identify_phase(self, open_ports: Dict[str, List[int]]) -> Dict[Tuple[str, int], BannerRecord]:
        futures = {}
        with WorkerPool(self.banner_concurrency, name="banner") as pool:
            for host, ports in open_ports.items():
                for port in ports:
                    futures[(host, port)] = pool.submit(self.identifier.grab_banner, host, port)
        return {key: fut.result() for key, fut in futures.items()}

    def scan(self, address_spec: str, port_spec: str, stop_event: Optional[threading.Event] = None) -> ScanReport:
        report = ScanReport()
        t0 = time.monotonic()
        aggregator = ResultAggregator()
        hosts, probes = self.connect_phase(address_spec, port_spec, aggregator, stop_event=stop_event)

        open_ports = aggregator.snapshot()
        log.info("connect phase done: %d probes, %d open ports", probes, len(aggregator))
        banners = self.identify_phase(open_ports)

        report.hosts = build_report(open_ports, banners)
        report.hosts_scanned = hosts
        report.ports_scanned = probes
        report.duration_s = round(time.monotonic() - t0, 3)
        log.info("scan done: %d hosts with open ports in %.2fs", len(report.hosts), report.duration_s)
        return report
