import socket
import threading

import pytest

from static_httpd.client import parse_response, recv_all
from static_httpd.config import ServerConfig
from static_httpd.handler import RequestHandler
from static_httpd.logs import LogSinks
from static_httpd.server import make_listener, serve


@pytest.fixture
def docroot(tmp_path):
    root = tmp_path / "www"
    root.mkdir()
    (root / "a.txt").write_bytes(b"hello")
    (root / "index.html").write_text("<h1>home</h1>", encoding="utf-8")
    (root / "unicode.txt").write_text("héllo wörld ✓", encoding="utf-8")
    sub = root / "sub"
    sub.mkdir()
    (sub / "b.html").write_text("<p>b</p>", encoding="utf-8")
    return root.resolve()


@pytest.fixture
def make_config(docroot):
    def _make(**overrides):
        overrides.setdefault("document_root", docroot)
        return ServerConfig(**overrides)
    return _make


@pytest.fixture
def sinks(tmp_path):
    s = LogSinks(tmp_path / "logs" / "access.log", tmp_path / "logs" / "error.log")
    yield s
    s.close()


@pytest.fixture
def exchange():
    """Run one RequestHandler over a socketpair and return the raw response bytes."""
    def _exchange(config, request: bytes, sinks=None, client_ip="127.0.0.1"):
        sinks = sinks or LogSinks()
        server_side, client_side = socket.socketpair()
        worker = threading.Thread(
            target=RequestHandler(server_side, (client_ip, 54321), config, sinks).handle
        )
        worker.start()
        with client_side:
            if request:
                client_side.sendall(request)
            client_side.shutdown(socket.SHUT_WR)
            raw = recv_all(client_side, timeout=5.0)
        worker.join(timeout=5.0)
        assert not worker.is_alive()
        return raw
    return _exchange


@pytest.fixture
def get(exchange):
    def _get(config, path, sinks=None, client_ip="127.0.0.1"):
        request = f"GET {path} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode("iso-8859-1")
        return parse_response(exchange(config, request, sinks=sinks, client_ip=client_ip))
    return _get


@pytest.fixture
def start_server():
    """Serve a config on an ephemeral localhost port in a background thread."""
    running = []

    def _start(config, sinks=None):
        sinks = sinks or LogSinks()
        listener = make_listener("127.0.0.1", 0)
        stop = threading.Event()
        thread = threading.Thread(target=serve, args=(listener, config, sinks, stop), daemon=True)
        thread.start()
        running.append((listener, stop, thread))
        host, port = listener.getsockname()
        return f"http://{host}:{port}", port

    yield _start

    for listener, stop, thread in running:
        stop.set()
        thread.join(timeout=5.0)
        listener.close()
