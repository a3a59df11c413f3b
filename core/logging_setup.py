from __future__ import annotations

import logging
import os
import sys


class KVFormatter(logging.Formatter):
    """Formatter that appends common extra fields if present.

    Keeps classic human-readable format while surfacing structured context.
    """

    keys = (
        "event",
        "method",
        "path",
        "status_code",
        "user_id",
        "product_id",
        "link_id",
        "link_code",
        "conversion_id",
        "payout_id",
        "amount",
        "commission",
        "available",
        "status",
        "previous_status",
        "count",
        "client",
        "user_agent",
        "error",
        "took_ms",
    )

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        parts: list[str] = []
        for k in self.keys:
            if hasattr(record, k):
                v = getattr(record, k)
                if v is None:
                    continue
                if k in {"path", "user_agent", "error"}:
                    parts.append(f"{k}={v!r}")
                else:
                    parts.append(f"{k}={v}")
        if parts:
            return f"{base} | {' '.join(parts)}"
        return base


essential_format = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """Configure root logger with KVFormatter. Safe to call multiple times."""
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = level.upper()

    root = logging.getLogger()
    root.setLevel(level)

    # Drop existing handlers to avoid duplicates on reloads
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(KVFormatter(essential_format))
    root.addHandler(handler)

    # uvicorn prints its own access line; ours carries timing and user context
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return root
