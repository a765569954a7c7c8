"""Server configuration: an immutable value plus the conf.xml loader."""

import logging
import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

CONFIG_FILE_PATH = Path("XML") / "conf.xml"


def default_document_root() -> Path:
    return Path(os.getcwd(), "www")


def split_ips(value: str) -> frozenset[str]:
    return frozenset(ip.strip() for ip in value.split(",") if ip.strip())


class ServerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    port: int = Field(default=80, ge=0, le=65535)
    host: str = "0.0.0.0"
    document_root: Path = Field(default_factory=default_document_root)
    directory_listing: bool = False
    allowed_ips: frozenset[str] = frozenset()
    denied_ips: frozenset[str] = frozenset()
    access_log_path: Optional[Path] = None
    error_log_path: Optional[Path] = None
    # Bounded wait for the request line; None waits forever.
    read_timeout: Optional[float] = Field(default=None, gt=0)

    @field_validator("document_root")
    @classmethod
    def canonical_directory(cls, value: Path) -> Path:
        root = value.expanduser()
        if not root.is_absolute():
            root = Path(os.getcwd(), root)
        root = root.resolve()
        if not root.is_dir() or not os.access(root, os.R_OK):
            raise ValueError(f"{value} is not a readable directory")
        return root

    @field_validator("directory_listing", mode="before")
    @classmethod
    def on_off(cls, value: Any) -> Any:
        if isinstance(value, str):
            setting = value.strip().lower()
            if setting not in ("on", "off"):
                raise ValueError(f"expected 'on' or 'off', got {value!r}")
            return setting == "on"
        return value

    @field_validator("allowed_ips", "denied_ips", mode="before")
    @classmethod
    def ip_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return split_ips(value)
        return value


# XML tag -> ServerConfig field. The first tag found wins.
XML_OPTIONS = [
    ("port", "port"),
    ("DocumentRoot", "document_root"),
    ("DirectoryListing", "directory_listing"),
    ("Directory", "directory_listing"),
    ("Allow", "allowed_ips"),
    ("Deny", "denied_ips"),
    ("AccessLog", "access_log_path"),
    ("ErrorLog", "error_log_path"),
]


def read_xml_values(path: Path) -> dict[str, str]:
    """Text of the first element carrying each known tag, trimmed."""
    if not path.is_file():
        logger.warning(f"Configuration file not found or unreadable: {path}")
        return {}
    try:
        tree = ET.parse(path)
    except (ET.ParseError, OSError) as e:
        logger.warning(f"Error reading configuration file {path}: {e}")
        return {}

    values = {}
    root = tree.getroot()
    for tag, name in XML_OPTIONS:
        if name in values:
            continue
        element = root if root.tag == tag else root.find(f".//{tag}")
        if element is None:
            continue
        text = (element.text or "").strip()
        if text:
            values[name] = text
    return values


def load_config(path: Path = CONFIG_FILE_PATH) -> ServerConfig:
    """Build a ServerConfig from conf.xml.

    Each option is validated on its own: a missing or invalid value is
    reported and replaced by its default, so a broken file still yields a
    usable configuration.
    """
    values = read_xml_values(Path(path))
    accepted: dict[str, Any] = {}
    for name, raw in values.items():
        try:
            ServerConfig(**{name: raw})
        except ValidationError as e:
            message = e.errors()[0]["msg"]
            logger.warning(f"Invalid value {raw!r} for {name} ({message}), using default")
            continue
        accepted[name] = raw

    for name in dict.fromkeys(name for _, name in XML_OPTIONS):
        if name not in values:
            logger.warning(f"No value for {name} in {path}, using default")

    for name in ("access_log_path", "error_log_path"):
        if name in accepted:
            log_dir = Path(accepted[name]).parent
            try:
                log_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning(f"Cannot create log directory {log_dir}: {e}, log disabled")
                del accepted[name]

    if "document_root" not in accepted:
        root = default_document_root()
        root.mkdir(parents=True, exist_ok=True)
        accepted["document_root"] = root

    return ServerConfig(**accepted)
