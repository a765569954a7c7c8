"""Diagnostic page served at the reserved status paths."""

import datetime
import html
import os
import platform
import shutil
import socket
import sys
import time
from pathlib import Path

STATUS_PATHS = ("/status", "/info.html")

MEGABYTE = 1024 * 1024

# Approximation of process start, taken at import.
STARTED_AT = time.monotonic()


def is_status_path(path: str) -> bool:
    return path.lower() in STATUS_PATHS


def host_name() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return "unknown"


def local_ip() -> str:
    try:
        return socket.gethostbyname(socket.gethostname())
    except OSError:
        return "unknown"


def uptime(seconds: float | None = None) -> str:
    if seconds is None:
        seconds = time.monotonic() - STARTED_AT
    seconds = int(seconds)
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    return f"{days} days, {hours} hours, {minutes} minutes, {seconds} seconds"


def load_average() -> str:
    try:
        return f"{os.getloadavg()[0]:.2f}"
    except (AttributeError, OSError):
        return "not supported"


def section(title: str, rows: list[tuple[str, object]]) -> str:
    body = "".join(
        f"<tr><th>{html.escape(label)}</th><td>{html.escape(str(value))}</td></tr>\n"
        for label, value in rows
    )
    return f"<div class='section'><h2>{title}</h2><table>\n{body}</table></div>\n"


def render_system_info(document_root: Path | None = None) -> str:
    general = [
        ("Host name", host_name()),
        ("Local IP address", local_ip()),
        ("Server time", datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
        ("Uptime", uptime()),
        ("Python executable", sys.executable),
        ("Python version", platform.python_version()),
        ("Implementation", platform.python_implementation()),
    ]
    system = [
        ("System", platform.system()),
        ("Release", platform.release()),
        ("Architecture", platform.machine()),
        ("Logical processors", os.cpu_count()),
        ("Load average (last minute)", load_average()),
    ]
    parts = [section("General", general), section("Operating system", system)]

    if document_root is not None:
        try:
            usage = shutil.disk_usage(document_root)
        except OSError:
            pass
        else:
            parts.append(section("Disk space", [
                ("Partition", document_root),
                ("Total", f"{usage.total // MEGABYTE} MB"),
                ("Used", f"{usage.used // MEGABYTE} MB"),
                ("Free", f"{usage.free // MEGABYTE} MB"),
            ]))

    return (
        "<!DOCTYPE html>\n"
        "<html><head><meta charset=\"utf-8\" /><title>System information</title>"
        "<style>"
        "body { font-family: Arial, sans-serif; margin: 20px; background-color: #f4f4f4; color: #333; }"
        "table { width: 100%; border-collapse: collapse; margin-top: 20px; }"
        "th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }"
        ".section { margin-bottom: 30px; padding: 15px; background-color: #fff; }"
        "</style></head><body>\n"
        "<h1>Server system information</h1>\n"
        + "".join(parts)
        + "</body></html>"
    )
