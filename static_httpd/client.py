import socket
import sys
from pathlib import Path

TEXT_TYPES = ("text/html", "text/plain")


def recv_all(sock: socket.socket, timeout: float = 3.0) -> bytes:
    """Read until the peer closes the connection or stays silent for ``timeout``."""
    sock.settimeout(timeout)
    buffer = bytearray()
    while True:
        try:
            chunk = sock.recv(4096)
        except OSError:
            # includes TimeoutError
            return bytes(buffer)
        if not chunk:
            return bytes(buffer)
        buffer += chunk


def parse_response(raw: bytes) -> tuple[int, dict[str, str], bytes]:
    """Split a raw response into (status, lower-cased headers, body)."""
    head, separator, body = raw.partition(b"\r\n\r\n")
    if not separator:
        return (0, {}, raw)
    status_line, *header_lines = head.decode("iso-8859-1", errors="replace").split("\r\n")
    parts = status_line.split(None, 2)
    status = int(parts[1]) if len(parts) >= 2 and parts[1].isdigit() else 0
    headers = {}
    for line in header_lines:
        name, colon, value = line.partition(":")
        if colon:
            headers[name.strip().lower()] = value.strip()
    return (status, headers, body)


def fetch_raw(host: str, port: int, request: bytes, timeout: float = 5.0) -> bytes:
    with socket.create_connection((host, port), timeout=timeout) as sock:
        sock.sendall(request)
        return recv_all(sock, timeout=timeout)


def fetch(host: str, port: int, path: str, timeout: float = 5.0) -> tuple[int, dict[str, str], bytes]:
    if not path.startswith("/"):
        path = "/" + path
    request = f"GET {path} HTTP/1.1\r\nHost: {host}\r\nConnection: close\r\n\r\n".encode("iso-8859-1")
    return parse_response(fetch_raw(host, port, request, timeout))


def save_body(outdir: Path, path: str, body: bytes) -> Path:
    outdir.mkdir(parents=True, exist_ok=True)
    target = outdir / (Path(path).name or "index")
    with open(target, "wb") as f:
        f.write(body)
    return target


def main():
    if len(sys.argv) != 5:
        print("Usage: python -m static_httpd.client server_host server_port url_path directory", file=sys.stderr)
        sys.exit(1)
    host = sys.argv[1]
    port = int(sys.argv[2])
    path = sys.argv[3]
    outdir = Path(sys.argv[4])

    status, headers, body = fetch(host, port, path)
    ctype = headers.get("content-type", "")
    if status != 200:
        print(body.decode("utf-8", errors="replace"))
        sys.exit(1)

    if ctype.startswith(TEXT_TYPES):
        print(body.decode("utf-8", errors="replace"))
    else:
        # binary content is written to disk instead of the terminal
        print(str(save_body(outdir, path, body)))


if __name__ == "__main__":
    main()
