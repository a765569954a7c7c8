import logging
import socket
import sys
import threading
from pathlib import Path

from .config import CONFIG_FILE_PATH, ServerConfig, load_config
from .handler import handle_connection
from .logs import ErrorLogEntry, LogSinks

logger = logging.getLogger(__name__)

ACCEPT_POLL_SECONDS = 0.5


def make_listener(host: str, port: int, backlog: int = 50) -> socket.socket:
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        s.bind((host, port))
        s.listen(backlog)
    except OSError:
        s.close()
        raise
    return s


def serve(listener: socket.socket, config: ServerConfig, sinks: LogSinks,
          stop: threading.Event | None = None) -> None:
    """Accept connections until ``stop`` is set, one handler thread per connection.

    A failure on one connection, or in accept itself, is logged and the loop
    goes on with the next client.
    """
    stop = stop or threading.Event()
    listener.settimeout(ACCEPT_POLL_SECONDS)
    while not stop.is_set():
        try:
            conn, addr = listener.accept()
        except TimeoutError:
            continue
        except OSError as e:
            if stop.is_set():
                break
            sinks.error(ErrorLogEntry(f"Error accepting client connection: {e}"))
            continue
        # accepted sockets must not inherit the polling timeout
        conn.settimeout(None)
        # a silent client holds only its own thread
        thread = threading.Thread(
            target=handle_connection, args=(conn, addr, config, sinks),
            name=f"conn-{addr[0]}:{addr[1]}", daemon=True,
        )
        thread.start()


def run_server(config: ServerConfig) -> None:
    sinks = LogSinks(config.access_log_path, config.error_log_path)
    try:
        listener = make_listener(config.host, config.port)
    except OSError as e:
        sinks.error(ErrorLogEntry(f"Unable to start the server on port {config.port}: {e}"))
        sinks.close()
        raise

    logger.info(f"Serving {config.document_root} on {config.host}:{config.port}")
    logger.info(f"Directory listing: {'on' if config.directory_listing else 'off'}")
    logger.info(f"Allowed IPs: {sorted(config.allowed_ips) or 'all'}")
    logger.info(f"Denied IPs: {sorted(config.denied_ips) or 'none'}")
    if config.access_log_path is not None:
        logger.info(f"Access log: {config.access_log_path}")
    if config.error_log_path is not None:
        logger.info(f"Error log: {config.error_log_path}")

    try:
        with listener:
            serve(listener, config, sinks)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        sinks.close()


def main():
    logging.basicConfig(level=logging.INFO)
    if len(sys.argv) > 2:
        print("Usage: python -m static_httpd [conf.xml]", file=sys.stderr)
        sys.exit(1)
    config_path = Path(sys.argv[1]) if len(sys.argv) > 1 else CONFIG_FILE_PATH
    config = load_config(config_path)
    try:
        run_server(config)
    except OSError:
        sys.exit(1)


if __name__ == "__main__":
    main()
