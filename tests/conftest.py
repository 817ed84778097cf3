import socket
import threading

import pytest

from core.models import BannerRecord

HTTP_RESPONSE = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/plain\r\n"
    b"Server: TestServer/1.0\r\n"
    b"Content-Length: 2\r\n"
    b"Connection: close\r\n"
    b"\r\n"
    b"ok"
)


def _drain(conn, timeout=2.0):
    conn.settimeout(timeout)
    try:
        while conn.recv(4096):
            pass
    except OSError:
        pass


def _read_request(conn, timeout=2.0) -> bytes:
    conn.settimeout(timeout)
    data = b""
    try:
        while b"\r\n\r\n" not in data:
            chunk = conn.recv(4096)
            if not chunk:
                break
            data += chunk
    except OSError:
        pass
    return data


def http_handler(conn):
    if _read_request(conn).startswith(b"GET "):
        conn.sendall(HTTP_RESPONSE)


def http_no_server_handler(conn):
    if _read_request(conn, timeout=1.0).startswith(b"GET "):
        conn.sendall(b"HTTP/1.1 204 No Content\r\nConnection: close\r\n\r\n")


def ssh_handler(conn):
    conn.sendall(b"SSH-2.0-OpenSSH_9.0\r\n")
    _drain(conn)


def silent_close_handler(conn):
    return


def long_line_handler(conn):
    conn.sendall(b"A" * 512)
    _drain(conn)


class StubServer:
    """Threaded TCP server on 127.0.0.1 running ``handler(conn)`` per connection."""

    def __init__(self, handler, sock=None):
        self.handler = handler
        self.connections = 0
        self._lock = threading.Lock()
        self._stop = threading.Event()
        if sock is None:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(("127.0.0.1", 0))
        self.sock = sock
        self.sock.listen(128)
        self.sock.settimeout(0.1)
        self.host, self.port = self.sock.getsockname()[:2]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            with self._lock:
                self.connections += 1
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn):
        with conn:
            try:
                self.handler(conn)
            except OSError:
                pass

    def close(self):
        self._stop.set()
        self._thread.join(timeout=2)
        self.sock.close()


@pytest.fixture
def stub_server():
    servers = []

    def start(handler, sock=None):
        srv = StubServer(handler, sock=sock)
        servers.append(srv)
        return srv

    yield start
    for srv in servers:
        srv.close()


@pytest.fixture
def closed_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def port_pair():
    """A bound socket on port p where p+1 is currently free."""
    for _ in range(50):
        first = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        first.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        first.bind(("127.0.0.1", 0))
        port = first.getsockname()[1]
        if port >= 65535:
            first.close()
            continue
        probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            probe.bind(("127.0.0.1", port + 1))
        except OSError:
            first.close()
            continue
        finally:
            probe.close()
        return first, port
    pytest.skip("no adjacent free port pair found")


class FakeIdentifier:
    def __init__(self, banner="fake"):
        self.banner = banner
        self.calls = []
        self._lock = threading.Lock()

    def grab_banner(self, host, port):
        with self._lock:
            self.calls.append((host, port))
        return BannerRecord(port=port, banner=f"{self.banner}:{host}:{port}")


@pytest.fixture
def fake_identifier():
    return FakeIdentifier()
