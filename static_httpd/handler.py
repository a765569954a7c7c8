import logging
import socket
from dataclasses import dataclass
from http import HTTPStatus
from typing import BinaryIO
from urllib.parse import unquote, urlparse

from . import listing
from .access import is_allowed
from .config import ServerConfig
from .content_types import content_type_for
from .logs import AccessLogEntry, ErrorLogEntry, LogSinks
from .paths import RESOLUTION_ERROR, Directory, Forbidden, NotFound, RegularFile, index_for, resolve
from .response import ResponseWriter
from .sysinfo import is_status_path, render_system_info

logger = logging.getLogger(__name__)

MAX_LINE = 65536
MAX_HEADER_LINES = 100

UNKNOWN = "N/A"


def decode_path(raw_path: str) -> str:
    path = raw_path.split("?", 1)[0]
    if path.startswith("http://") or path.startswith("https://"):
        # absolute-form request target: keep only the path component
        path = urlparse(path).path or "/"
    # undecodable escapes map back to the same bytes on the filesystem
    path = unquote(path, errors="surrogateescape")
    if not path.startswith("/"):
        path = "/" + path
    return path


@dataclass(frozen=True)
class IncomingRequest:
    method: str
    raw_path: str

    @property
    def path(self) -> str:
        return decode_path(self.raw_path)

    @classmethod
    def from_line(cls, request_line: str) -> "IncomingRequest | None":
        parts = request_line.split()
        if len(parts) < 2:
            return None
        return cls(method=parts[0], raw_path=parts[1])


class RequestHandler:
    """Serves exactly one request on one accepted connection.

    Every exit path closes the streams and the socket. At most one response
    is written, and one access log entry is recorded for it.
    """

    def __init__(self, conn: socket.socket, client_addr, config: ServerConfig, sinks: LogSinks):
        self.conn = conn
        self.client_ip = str(client_addr[0]) if client_addr else UNKNOWN
        self.config = config
        self.sinks = sinks
        self.request: IncomingRequest | None = None
        self.writer: ResponseWriter | None = None

    def handle(self) -> None:
        rfile = wfile = None
        try:
            rfile = self.conn.makefile("rb")
            wfile = self.conn.makefile("wb")
            self.writer = ResponseWriter(wfile)
            self.process(rfile)
        except Exception as e:
            self.internal_error(f"Error processing request from {self.client_ip}: {e}")
        finally:
            self.log_access()
            self.close(rfile, wfile)

    def process(self, rfile: BinaryIO) -> None:
        if self.config.read_timeout is not None:
            self.conn.settimeout(self.config.read_timeout)

        request_line = self.read_request_line(rfile)
        if request_line is None:
            return
        logger.info(f"Request from {self.client_ip}: {request_line}")
        self.discard_headers(rfile)

        request = IncomingRequest.from_line(request_line)
        if request is None:
            self.send_error(HTTPStatus.BAD_REQUEST, "Malformed request line.")
            return
        self.request = request

        # Before any filesystem work, so blocked clients learn nothing about it.
        if not is_allowed(self.client_ip, self.config.allowed_ips, self.config.denied_ips):
            logger.info(f"Connection refused for {self.client_ip} by the access lists")
            self.send_error(HTTPStatus.FORBIDDEN, "Your IP address is not allowed to access this server.")
            return

        if request.method.upper() != "GET":
            self.send_error(HTTPStatus.METHOD_NOT_ALLOWED, f"Method {request.method} is not allowed.")
            return

        if is_status_path(request.path):
            self.writer.send_html(HTTPStatus.OK, render_system_info(self.config.document_root))
            return

        self.serve_path(request.path)

    def read_request_line(self, rfile: BinaryIO) -> str | None:
        try:
            line = rfile.readline(MAX_LINE + 1)
        except TimeoutError:
            logger.info(f"Timed out waiting for a request line from {self.client_ip}")
            return None
        if len(line) > MAX_LINE:
            # no line terminator within the limit, answered as malformed
            return "-"
        request_line = line.decode("iso-8859-1").rstrip("\r\n")
        return request_line or None

    def discard_headers(self, rfile: BinaryIO) -> None:
        try:
            for _ in range(MAX_HEADER_LINES):
                line = rfile.readline(MAX_LINE + 1)
                if line in (b"", b"\r\n", b"\n"):
                    return
        except TimeoutError:
            return

    def serve_path(self, path: str) -> None:
        root = self.config.document_root
        target = resolve(root, path)

        if isinstance(target, Directory):
            if self.config.directory_listing:
                self.send_listing(target, path)
                return
            index = index_for(root, path)
            if isinstance(index, RegularFile):
                self.send_file(index)
                return
            logger.info(f"Directory access refused: {target.path} (listing disabled)")
            self.send_error(HTTPStatus.FORBIDDEN, "Directory listing is disabled for this server.")
        elif isinstance(target, RegularFile):
            self.send_file(target)
        elif isinstance(target, NotFound):
            self.send_error(HTTPStatus.NOT_FOUND, "The requested file was not found.")
        elif isinstance(target, Forbidden):
            if target.reason == RESOLUTION_ERROR:
                self.internal_error(f"Error resolving path {path} for {self.client_ip}")
                return
            logger.warning(f"Blocked {target.reason} attempt from {self.client_ip}: {path}")
            self.send_error(HTTPStatus.FORBIDDEN, "Access outside the document root is not allowed.")

    def send_file(self, target: RegularFile) -> None:
        try:
            body = target.path.read_bytes()
        except OSError as e:
            self.internal_error(f"Error reading file {target.path}: {e}")
            return
        self.writer.send(HTTPStatus.OK, content_type_for(target.path.name), body)

    def send_listing(self, target: Directory, path: str) -> None:
        try:
            body = listing.render(target.path, path, self.config.document_root)
        except OSError as e:
            self.internal_error(f"Error listing directory {target.path}: {e}")
            return
        self.writer.send_html(HTTPStatus.OK, body)

    def send_error(self, status: HTTPStatus, message: str) -> None:
        self.writer.send_error(status, message)

    def internal_error(self, message: str) -> None:
        self.sinks.error(ErrorLogEntry(message, client_ip=self.client_ip))
        if self.writer is None or self.writer.headers_sent:
            return
        try:
            self.writer.send_error(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal server error.")
        except OSError as e:
            self.sinks.error(ErrorLogEntry(f"Error sending 500 response to {self.client_ip}: {e}"))

    def log_access(self) -> None:
        if self.writer is None or self.writer.status is None:
            return
        status = self.writer.status
        method = self.request.method if self.request else UNKNOWN
        path = self.request.raw_path if self.request else UNKNOWN
        self.sinks.access(AccessLogEntry(self.client_ip, method, path, f"{status.value} {status.phrase}"))

    def close(self, *streams) -> None:
        for stream in (*streams, self.conn):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError as e:
                self.sinks.error(ErrorLogEntry(f"Error closing connection from {self.client_ip}: {e}"))


def handle_connection(conn: socket.socket, client_addr, config: ServerConfig, sinks: LogSinks) -> None:
    try:
        RequestHandler(conn, client_addr, config, sinks).handle()
    except Exception as e:
        # a handler thread must never die silently
        logger.exception(f"Unhandled error on connection from {client_addr}: {e}")
