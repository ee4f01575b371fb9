"""
Logging setup.

Modules log through logging.getLogger(__name__) and tag their records with
`extra={"identifier": ..., "meta": {...}}`. AppFormatter renders them as:

    2026-01-05 14:59:08,453 - WARNING {4242}[roomRegistry]: A malformed room in namespace: chat | META: {"namespace": "chat", "room_name": "lobby"}
"""

import json
import logging
import os
from typing import Any, Optional


class AppFormatter(logging.Formatter):
    """Formats records with their identifier and metadata."""

    def __init__(self, pretty_meta: bool = False, max_meta_length: int = 2000) -> None:
        super().__init__()
        self.pretty_meta = pretty_meta
        self.max_meta_length = max_meta_length

    def format_meta(self, meta: Any) -> str:
        if isinstance(meta, dict):
            cleaned = {}
            for key, value in meta.items():
                if value is None:
                    continue
                cleaned[key] = str(value) if isinstance(value, BaseException) else value
            meta_string = json.dumps(cleaned, indent=4 if self.pretty_meta else None, default=str)
        elif isinstance(meta, str):
            meta_string = meta
        else:
            return ""

        if len(meta_string) > self.max_meta_length:
            meta_string = f"Too long ({len(meta_string)} characters)"
        return meta_string

    def format(self, record: logging.LogRecord) -> str:
        identifier = getattr(record, "identifier", None) or "Unknown"
        meta_string = self.format_meta(getattr(record, "meta", None))

        line = (
            f"{self.formatTime(record)} - {record.levelname} "
            f"{{{os.getpid()}}}[{identifier}]: {record.getMessage()}"
        )
        if meta_string:
            line = f"{line} | META: {meta_string}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(
    level: str = "INFO", pretty_meta: bool = False, max_meta_length: int = 2000, stream: Optional[Any] = None
) -> None:
    """Installs a single AppFormatter handler on the root logger."""
    handler = logging.StreamHandler(stream)
    handler.setFormatter(AppFormatter(pretty_meta=pretty_meta, max_meta_length=max_meta_length))
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)
