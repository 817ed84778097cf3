"""
Service identification for ports found open by the connect phase.

Two attempts, each on a fresh connection:
  HTTP: send GET / and, if the reply starts with HTTP/, report the Server header.
  TCP: read the first line the peer sends unprompted.
A port where both attempts fail still gets a BannerRecord whose text
describes the failure.
"""

from __future__ import annotations

import enum
import logging
import socket
import time
from typing import List, Optional, Tuple

from core.config import settings
from core.models import BannerRecord

log = logging.getLogger(__name__)

ERROR_PREFIX = "Error grabbing banner: "
NO_HTTP_SERVER = "no HTTP server detected"
NO_BANNER = "no banner received"


class BannerState(str, enum.Enum):
    START = "start"
    HTTP_ATTEMPT = "http_attempt"
    FALLTHROUGH = "fallthrough"
    TCP_ATTEMPT = "tcp_attempt"
    SUCCESS = "success"
    FAILURE = "failure"


class LineTooLong(Exception):
    pass


def _reason(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def _http_request(host: str, port: int) -> bytes:
    authority = f"[{host}]:{port}" if ":" in host else f"{host}:{port}"
    return f"GET / HTTP/1.1\r\nHost: {authority}\r\n\r\n".encode()


class _LineReader:
    """Line splitter over a socket with one read deadline for the whole attempt."""

    def __init__(self, sock: socket.socket, timeout: float, max_line: int):
        self.sock = sock
        self.deadline = time.monotonic() + timeout
        self.max_line = max_line
        self._buf = bytearray()
        self._eof = False

    def readline(self) -> Optional[str]:
        """Next line without its terminator, or None once the peer has nothing left."""
        while True:
            idx = self._buf.find(b"\n")
            if idx >= 0:
                raw = bytes(self._buf[:idx])
                del self._buf[: idx + 1]
                return self._decode(raw)
            if len(self._buf) > self.max_line:
                raise LineTooLong("banner line too long")
            if self._eof:
                if not self._buf:
                    return None
                raw = bytes(self._buf)
                self._buf.clear()
                return self._decode(raw)
            remaining = self.deadline - time.monotonic()
            if remaining <= 0:
                raise socket.timeout("timed out")
            self.sock.settimeout(remaining)
            chunk = self.sock.recv(4096)
            if chunk:
                self._buf.extend(chunk)
            else:
                self._eof = True

    @staticmethod
    def _decode(raw: bytes) -> str:
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        return raw.decode("utf-8", errors="replace")


class ServiceIdentifier:
    def __init__(
        self,
        connect_timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
        max_line: Optional[int] = None,
    ):
        self.connect_timeout = settings.banner_connect_timeout_s if connect_timeout is None else connect_timeout
        self.read_timeout = settings.banner_read_timeout_s if read_timeout is None else read_timeout
        self.max_line = settings.max_banner_line if max_line is None else max_line

    def _connect(self, host: str, port: int) -> socket.socket:
        return socket.create_connection((host, port), timeout=self.connect_timeout)

    def http_attempt(self, host: str, port: int) -> Tuple[Optional[str], str]:
        """Return (server header value, "") or (None, reason for falling through)."""
        try:
            sock = self._connect(host, port)
        except OSError as exc:
            return None, _reason(exc)
        with sock:
            try:
                sock.sendall(_http_request(host, port))
                reader = _LineReader(sock, self.read_timeout, self.max_line)
                first = reader.readline()
                if first is None or not first.startswith("HTTP/"):
                    return None, NO_HTTP_SERVER
                while True:
                    line = reader.readline()
                    if line is None:
                        break
                    if line.startswith("Server:"):
                        return line[len("Server:"):].strip(), ""
            except (OSError, LineTooLong) as exc:
                return None, _reason(exc)
        return None, NO_HTTP_SERVER

    def tcp_attempt(self, host: str, port: int) -> Tuple[Optional[str], str]:
        """Return (first line sent by the peer, "") or (None, failure reason)."""
        try:
            sock = self._connect(host, port)
        except OSError as exc:
            return None, _reason(exc)
        with sock:
            try:
                line = _LineReader(sock, self.read_timeout, self.max_line).readline()
            except (OSError, LineTooLong) as exc:
                return None, _reason(exc)
        if line is None:
            return None, NO_BANNER
        return line, ""

    def identify(self, host: str, port: int) -> Tuple[BannerRecord, List[BannerState]]:
        """Run the state machine; returns the record plus the visited states."""
        trail = [BannerState.START, BannerState.HTTP_ATTEMPT]
        banner, reason = self.http_attempt(host, port)
        if banner is not None:
            trail.append(BannerState.SUCCESS)
            log.debug("http banner %s:%d -> %s", host, port, banner)
            return BannerRecord(port=port, banner=banner), trail

        log.debug("http attempt on %s:%d fell through: %s", host, port, reason)
        trail += [BannerState.FALLTHROUGH, BannerState.TCP_ATTEMPT]
        banner, reason = self.tcp_attempt(host, port)
        if banner is not None:
            trail.append(BannerState.SUCCESS)
            log.debug("tcp banner %s:%d -> %s", host, port, banner)
            return BannerRecord(port=port, banner=banner), trail

        trail.append(BannerState.FAILURE)
        log.info("error grabbing banner for %s:%d: %s", host, port, reason)
        return BannerRecord(port=port, banner=ERROR_PREFIX + reason), trail

    def grab_banner(self, host: str, port: int) -> BannerRecord:
        record, _ = self.identify(host, port)
        return record
