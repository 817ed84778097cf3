from conftest import (
    http_handler,
    http_no_server_handler,
    long_line_handler,
    silent_close_handler,
    ssh_handler,
)
from probers.banner import ERROR_PREFIX, BannerState, ServiceIdentifier


def _identifier(**kw):
    kw.setdefault("connect_timeout", 2.0)
    kw.setdefault("read_timeout", 1.0)
    return ServiceIdentifier(**kw)


def test_http_server_header(stub_server):
    srv = stub_server(http_handler)
    record, trail = _identifier().identify("127.0.0.1", srv.port)
    assert record.port == srv.port
    assert record.banner == "TestServer/1.0"
    assert trail == [BannerState.START, BannerState.HTTP_ATTEMPT, BannerState.SUCCESS]
    assert srv.connections == 1


def test_unprompted_banner_falls_back_to_tcp(stub_server):
    srv = stub_server(ssh_handler)
    record, trail = _identifier().identify("127.0.0.1", srv.port)
    assert record.banner == "SSH-2.0-OpenSSH_9.0"
    assert BannerState.FALLTHROUGH in trail
    assert trail[-2:] == [BannerState.TCP_ATTEMPT, BannerState.SUCCESS]
    # each attempt uses its own connection
    assert srv.connections == 2


def test_immediate_close_is_failure_record(stub_server):
    srv = stub_server(silent_close_handler)
    record, trail = _identifier().identify("127.0.0.1", srv.port)
    assert record.port == srv.port
    assert record.banner.startswith(ERROR_PREFIX)
    assert len(record.banner) > len(ERROR_PREFIX)
    assert trail[-1] == BannerState.FAILURE


def test_http_without_server_header_does_not_report_status_line(stub_server):
    srv = stub_server(http_no_server_handler)
    ident = _identifier(read_timeout=0.3)
    banner, reason = ident.http_attempt("127.0.0.1", srv.port)
    assert banner is None
    assert reason == "no HTTP server detected"

    record, trail = ident.identify("127.0.0.1", srv.port)
    assert "HTTP/1.1" not in record.banner
    assert record.banner.startswith(ERROR_PREFIX)
    assert trail[-1] == BannerState.FAILURE


def test_refused_port(closed_port):
    record, trail = _identifier().identify("127.0.0.1", closed_port)
    assert record.banner.startswith(ERROR_PREFIX)
    assert trail[-1] == BannerState.FAILURE


def test_overlong_line(stub_server):
    srv = stub_server(long_line_handler)
    record = _identifier(max_line=64).grab_banner("127.0.0.1", srv.port)
    assert record.banner == ERROR_PREFIX + "banner line too long"
