import io
from http import HTTPStatus

from static_httpd.client import parse_response
from static_httpd.response import ResponseWriter, build_http_response


def test_response_framing():
    raw = build_http_response(HTTPStatus.OK, "text/plain", b"hello")
    assert raw == (
        b"HTTP/1.1 200 OK\r\n"
        b"Content-Type: text/plain\r\n"
        b"Content-Length: 5\r\n"
        b"Connection: close\r\n"
        b"\r\n"
        b"hello"
    )


def test_content_length_counts_encoded_bytes():
    out = io.BytesIO()
    writer = ResponseWriter(out)
    text = "héllo ✓ 日本"
    writer.send(HTTPStatus.OK, "text/plain; charset=utf-8", text)

    status, headers, body = parse_response(out.getvalue())
    assert status == 200
    assert int(headers["content-length"]) == len(body) == len(text.encode("utf-8"))
    assert int(headers["content-length"]) != len(text)
    assert set(headers) == {"content-type", "content-length", "connection"}


def test_error_page_escapes_message():
    out = io.BytesIO()
    writer = ResponseWriter(out)
    writer.send_error(HTTPStatus.NOT_FOUND, "<missing>")

    status, headers, body = parse_response(out.getvalue())
    assert status == 404
    assert headers["content-type"] == "text/html; charset=utf-8"
    assert b"404 Not Found" in body
    assert b"&lt;missing&gt;" in body
    assert writer.headers_sent
    assert writer.status is HTTPStatus.NOT_FOUND
