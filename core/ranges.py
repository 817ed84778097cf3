"""
Address and port range parsing.

Address specs are a single IP literal or "start-end"; port specs are
"start-end" (or a single port). Everything is validated eagerly so a bad
invocation fails before the first socket is opened.
"""

from __future__ import annotations

import ipaddress
import re
from typing import Iterator, Tuple, Union

from .errors import InvalidAddress, InvalidPortRange, InvalidRange

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

MAX_PORT = 65535

_PORT_RE = re.compile(r"[0-9]+")


def _parse_ip(literal: str) -> IPAddress:
    literal = literal.strip()
    try:
        addr = ipaddress.ip_address(literal)
    except ValueError as exc:
        raise InvalidAddress(f"invalid IP address: {literal!r}") from exc
    # the increment works on raw bytes and cannot carry a zone along
    if getattr(addr, "scope_id", None):
        raise InvalidAddress(f"scoped IPv6 address not supported: {literal!r}")
    return addr


def parse_address_range(spec: str) -> Tuple[IPAddress, IPAddress]:
    parts = spec.strip().split("-")
    if len(parts) == 1:
        start = _parse_ip(parts[0])
        return start, start
    if len(parts) != 2:
        raise InvalidAddress(
            f"invalid IP range format {spec!r}, use 192.168.0.1 or 192.168.0.1-192.168.1.24"
        )
    start, end = _parse_ip(parts[0]), _parse_ip(parts[1])
    if start.version != end.version:
        raise InvalidRange(f"range {spec!r} mixes IPv{start.version} and IPv{end.version}")
    if end < start:
        raise InvalidRange(f"range end {end} is lower than start {start}")
    return start, end


def increment(addr: IPAddress) -> IPAddress:
    """Big-endian byte-wise increment with carry; wraps to all zeroes."""
    raw = bytearray(addr.packed)
    for i in range(len(raw) - 1, -1, -1):
        raw[i] = (raw[i] + 1) & 0xFF
        if raw[i] != 0:
            break
    return ipaddress.ip_address(bytes(raw))


def iter_addresses(start: IPAddress, end: IPAddress) -> Iterator[IPAddress]:
    if start.version != end.version or int(end) < int(start):
        raise InvalidRange(f"cannot enumerate {start} -> {end}")
    stop = end.packed
    addr = start
    while True:
        yield addr
        if addr.packed == stop:
            return
        addr = increment(addr)


def expand_addresses(spec: str) -> Iterator[IPAddress]:
    start, end = parse_address_range(spec)
    return iter_addresses(start, end)


def address_count(spec: str) -> int:
    start, end = parse_address_range(spec)
    return int(end) - int(start) + 1


def _parse_port(raw: str, spec: str) -> int:
    raw = raw.strip()
    if not _PORT_RE.fullmatch(raw):
        raise InvalidPortRange(f"invalid port {raw!r} in {spec!r}")
    port = int(raw)
    if port > MAX_PORT:
        raise InvalidPortRange(f"port {port} out of range in {spec!r}")
    return port


def parse_port_range(spec: str) -> range:
    parts = spec.strip().split("-")
    if len(parts) == 1:
        start = end = _parse_port(parts[0], spec)
    elif len(parts) == 2:
        start, end = _parse_port(parts[0], spec), _parse_port(parts[1], spec)
    else:
        raise InvalidPortRange(f"invalid port range format {spec!r}, use 80-100")
    if start > end:
        raise InvalidPortRange(f"port range start {start} is greater than end {end}")
    return range(start, end + 1)
