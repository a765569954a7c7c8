import html
from http import HTTPStatus
from typing import BinaryIO

HTML_CONTENT_TYPE = "text/html; charset=utf-8"


def build_http_response(status: HTTPStatus, content_type: str, body: bytes) -> bytes:
    lines = [
        f"HTTP/1.1 {status.value} {status.phrase}\r\n",
        f"Content-Type: {content_type}\r\n",
        # byte length of the encoded body, not a character count
        f"Content-Length: {len(body)}\r\n",
        "Connection: close\r\n",
        "\r\n",
    ]
    header_bytes = "".join(lines).encode("iso-8859-1")
    return header_bytes + body


def error_page(status: HTTPStatus, message: str) -> str:
    title = f"{status.value} {status.phrase}"
    return (
        f"<html><head><meta charset=\"utf-8\" /><title>{title}</title></head>"
        f"<body><h1>{title}</h1><p>{html.escape(message)}</p></body></html>"
    )


class ResponseWriter:
    """Writes exactly one response to a connection's output stream.

    ``headers_sent`` flips as soon as any byte has been handed to the
    stream, after which the handler must not attempt another response.
    """

    def __init__(self, out: BinaryIO):
        self.out = out
        self.headers_sent = False
        self.status: HTTPStatus | None = None

    def send(self, status: HTTPStatus, content_type: str, body: bytes | str) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        data = build_http_response(status, content_type, body)
        self.status = status
        self.headers_sent = True
        self.out.write(data)
        self.out.flush()

    def send_html(self, status: HTTPStatus, body: str) -> None:
        self.send(status, HTML_CONTENT_TYPE, body)

    def send_error(self, status: HTTPStatus, message: str) -> None:
        self.send_html(status, error_page(status, message))
