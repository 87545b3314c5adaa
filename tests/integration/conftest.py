"""
In-process fake Elliptics proxy.

Serves the proxy's HTTP contract on three ephemeral ports of 127.0.0.1:
- write: POST /?name=&timestamp=&embed_timestamp=1, GET /delete/<id>, GET /download-info/<id>
- read: GET /<id>
- monitor: GET /ping
"""

import socket
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, Tuple
from unittest.mock import Mock
from urllib.parse import parse_qs, unquote, urlsplit

import pytest

from elliptics_client import EllipticsConfig, StorageClient


class FakeElliptics:
    """Shared state of the fake proxy."""

    def __init__(self) -> None:
        self.files: Dict[str, Tuple[bytes, int]] = {}
        self.upload_delay = 0.0
        self.monitor_status = 200
        self.lock = threading.Lock()

    def upload_response(self, name: str, size: int) -> bytes:
        return (
            '<?xml version="1.0" encoding="utf-8"?>'
            f'<post obj="{name}" id="0f1e2d" groups="2" size="{size}" key="">'
            '<complete addr="127.0.0.1:1025" path="/srv/elliptics/2/data" group="1" status="0"/>'
            '<complete addr="127.0.0.1:1026" path="/srv/elliptics/3/data" group="2" status="0"/>'
            '<written>2</written>'
            '</post>'
        ).encode()

    def download_info(self, name: str) -> bytes:
        content, timestamp = self.files[name]
        return (
            '<?xml version="1.0" encoding="utf-8"?>'
            '<download-info>'
            '<host>127.0.0.1</host>'
            '<path>/srv/elliptics/2/data</path>'
            '<group>1</group>'
            f'<size>{len(content)}</size>'
            f'<time>{timestamp}</time>'
            '</download-info>'
        ).encode()


def _handler(state: FakeElliptics, role: str):
    class Handler(BaseHTTPRequestHandler):
        def log_message(self, format, *args):
            pass

        def _reply(self, status: int, body: bytes = b'') -> None:
            self.send_response(status)
            self.send_header('Content-Length', str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def do_GET(self):
            parsed = urlsplit(self.path)
            path = unquote(parsed.path.lstrip('/'))

            if role == 'monitor':
                if path == 'ping':
                    return self._reply(state.monitor_status)
                return self._reply(404)

            with state.lock:
                if role == 'read':
                    if path in state.files:
                        return self._reply(200, state.files[path][0])
                    return self._reply(404)

                if path.startswith('delete/'):
                    name = path[len('delete/'):]
                    if state.files.pop(name, None) is None:
                        return self._reply(404)
                    return self._reply(200)

                if path.startswith('download-info/'):
                    name = path[len('download-info/'):]
                    if name not in state.files:
                        return self._reply(404)
                    return self._reply(200, state.download_info(name))

            return self._reply(404)

        def do_POST(self):
            length = int(self.headers.get('Content-Length', 0))
            body = self.rfile.read(length)
            if role != 'write':
                return self._reply(405)

            query = parse_qs(urlsplit(self.path).query)
            name = query['name'][0]
            timestamp = int(query['timestamp'][0])
            if state.upload_delay:
                time.sleep(state.upload_delay)

            with state.lock:
                state.files[name] = (body, timestamp)
            return self._reply(200, state.upload_response(name, len(body)))

    return Handler


@pytest.fixture
def fake_elliptics():
    """Start the fake proxy; yields (state, ports)."""
    state = FakeElliptics()
    servers = {}
    threads = []
    for role in ('write', 'read', 'monitor'):
        server = ThreadingHTTPServer(('127.0.0.1', 0), _handler(state, role))
        server.daemon_threads = True
        server.block_on_close = False
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        servers[role] = server
        threads.append(thread)

    ports = {role: server.server_address[1] for role, server in servers.items()}
    yield state, ports

    for server in servers.values():
        server.shutdown()
        server.server_close()


@pytest.fixture
def elliptics_client(fake_elliptics):
    _, ports = fake_elliptics
    config = EllipticsConfig(
        private_server_address='127.0.0.1',
        write_port=ports['write'],
        read_port=ports['read'],
        monitoring_port=ports['monitor'],
        connection_timeout=2000,
    )
    with StorageClient(config, logger=Mock()) as client:
        yield client


@pytest.fixture
def closed_port() -> int:
    """A local port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('127.0.0.1', 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
