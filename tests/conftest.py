"""
Shared fixtures: settings and a small in-memory WebDAV server.
"""

import base64
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import unquote

import pytest

from dav_backup.config import Settings
from dav_backup.webdav import WebDAVClient

USERNAME = "alice"
PASSWORD = "s3cret"


def parse_single_part(body: bytes, content_type: str):
    """Split a single-part multipart body into (headers, content)."""
    boundary = content_type.split("boundary=", 1)[1].encode("latin-1")
    delimiter = b"--" + boundary
    assert body.startswith(delimiter + b"\r\n")
    closing = b"\r\n" + delimiter + b"--\r\n"
    assert body.endswith(closing)
    inner = body[len(delimiter) + 2:-len(closing)]
    headers, _, content = inner.partition(b"\r\n\r\n")
    return headers.decode("utf-8"), content


class FakeDAVServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address):
        super().__init__(address, FakeDAVHandler)
        self.collections = set()
        self.files = {}
        self.requests = []
        self.put_status = 201
        self.aborted_uploads = 0
        self.lock = threading.Lock()
        token = base64.b64encode(f"{USERNAME}:{PASSWORD}".encode()).decode()
        self.expected_auth = f"Basic {token}"

    @property
    def base_url(self):
        host, port = self.server_address[:2]
        return f"http://{host}:{port}/dav/files"


class FakeDAVHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def log_message(self, format, *args):
        pass

    def _path(self):
        return unquote(self.path).rstrip("/")

    def _reply(self, status, body=b""):
        self.send_response(status)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body:
            self.wfile.write(body)

    def _authorized(self):
        with self.server.lock:
            self.server.requests.append((self.command, self._path()))
        if self.headers.get("Authorization") != self.server.expected_auth:
            self._reply(401)
            return False
        return True

    def _read_body(self):
        if self.headers.get("Transfer-Encoding", "").lower() == "chunked":
            chunks = []
            while True:
                line = self.rfile.readline()
                if not line:
                    raise ConnectionError("client went away")
                size = int(line.split(b";")[0].strip(), 16)
                if size == 0:
                    while self.rfile.readline() not in (b"\r\n", b"\n", b""):
                        pass
                    return b"".join(chunks)
                chunks.append(self.rfile.read(size))
                self.rfile.readline()
        return self.rfile.read(int(self.headers.get("Content-Length", 0)))

    def do_GET(self):
        if not self._authorized():
            return
        path = self._path()
        with self.server.lock:
            if path in self.server.files:
                self._reply(200, self.server.files[path])
            elif path in self.server.collections:
                self._reply(200)
            else:
                self._reply(404)

    def do_MKCOL(self):
        if not self._authorized():
            return
        path = self._path()
        with self.server.lock:
            if path in self.server.collections:
                self._reply(405)
                return
            self.server.collections.add(path)
        self._reply(201)

    def do_DELETE(self):
        if not self._authorized():
            return
        path = self._path()
        with self.server.lock:
            if path not in self.server.collections:
                self._reply(404)
                return
            self.server.collections.discard(path)
            for name in [name for name in self.server.files if name.startswith(path + "/")]:
                del self.server.files[name]
        self._reply(204)

    def do_PUT(self):
        if not self._authorized():
            return
        try:
            body = self._read_body()
        except (ConnectionError, ValueError):
            with self.server.lock:
                self.server.aborted_uploads += 1
            self.close_connection = True
            return
        if self.server.put_status >= 300:
            self._reply(self.server.put_status)
            return
        _, content = parse_single_part(body, self.headers["Content-Type"])
        with self.server.lock:
            self.server.files[self._path()] = content
        self._reply(self.server.put_status)


@pytest.fixture
def dav_server():
    server = FakeDAVServer(("127.0.0.1", 0))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def settings(dav_server, tmp_path) -> Settings:
    return Settings(
        base_url=dav_server.base_url + "/",
        username=USERNAME,
        password=PASSWORD,
        work_dir=tmp_path,
    )


@pytest.fixture
def client(settings):
    dav = WebDAVClient(settings)
    yield dav
    dav.close()


@pytest.fixture
def unused_url():
    """URL of a local port nothing listens on."""
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}/dav/files"
