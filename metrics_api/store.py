"""
Persistent store for per-owner, per-platform engagement counters.

Data is kept in a single JSON file that is read and rewritten whole on every
request, so it survives process restarts and can be inspected by hand.

Schema:
  {
    "personal": {"instagram": {"views": 0, "likes": 0, "shares": 0, "followers": 0}, ...},
    "studio":   {"x": {"views": 0, "likes": 0, "followers": 0}, ...},
    "lastUpdated": "2026-02-25T09:00:00.000Z"
  }
"""

import json
import logging
import os
import threading
from contextlib import suppress
from datetime import datetime, timezone

from metrics_api.errors import InvalidInput, NotFound, StoreUnreadable, StoreUnwritable

logger = logging.getLogger(__name__)

LAST_UPDATED = "lastUpdated"


def utc_now_iso() -> str:
    """UTC timestamp with millisecond precision, e.g. 2026-02-25T09:00:00.123Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def write_json_atomic(path: str, data) -> None:
    """Pretty-print ``data`` to ``<path>.tmp`` and swap it in; no temp file survives a failure."""
    tmp_path = f"{path}.tmp"
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        with suppress(OSError):
            os.remove(tmp_path)
        raise


def _zeroed(*fields: str) -> dict[str, int]:
    return {f: 0 for f in fields}


def default_document() -> dict:
    full = ("views", "likes", "shares", "followers")
    no_shares = ("views", "likes", "followers")
    return {
        "personal": {
            "instagram": _zeroed(*full),
            "youtube": _zeroed(*full),
        },
        "studio": {
            "instagram": _zeroed(*full),
            "tiktok": _zeroed(*full),
            "youtube": _zeroed(*full),
            "x": _zeroed(*no_shares),
            "threads": _zeroed(*no_shares),
        },
        LAST_UPDATED: utc_now_iso(),
    }


class MetricsStore:
    """File-backed metrics document.

    Every read-modify-write cycle holds one process-wide lock so two
    concurrent updates cannot clobber each other.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    # ── Raw document I/O ──────────────────────────────────────────────────────

    def load(self) -> dict:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as exc:
            raise StoreUnreadable(f"Metrics file not found: {self.path}") from exc
        except (OSError, ValueError) as exc:
            raise StoreUnreadable(f"Cannot read metrics file {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreUnreadable(f"Metrics file {self.path} does not hold a JSON object")
        return data

    def save(self, doc: dict) -> None:
        """Overwrite the file with ``doc``; the old version survives a failed write."""
        try:
            write_json_atomic(self.path, doc)
        except (OSError, TypeError, ValueError) as exc:
            raise StoreUnwritable(f"Cannot write metrics file {self.path}: {exc}") from exc

    def ensure_seeded(self) -> bool:
        """Write the default document if the file is absent. Returns True if it did."""
        with self._lock:
            if os.path.exists(self.path):
                return False
            self.save(default_document())
        logger.info("Created %s with default owners", self.path)
        return True

    # ── Counters ──────────────────────────────────────────────────────────────

    def get_counters(self, owner: str, platform: str) -> dict:
        doc = self.load()
        platforms = doc.get(owner) if owner != LAST_UPDATED else None
        if not isinstance(platforms, dict) or not isinstance(platforms.get(platform), dict):
            raise NotFound(f"No metrics for {owner}/{platform}")
        return platforms[platform]

    def upsert_counters(self, owner: str, platform: str, fields: dict[str, int]) -> dict:
        """
        Overwrite the supplied counter fields for owner/platform, creating the
        owner and platform entries when missing. Refreshes lastUpdated even
        when ``fields`` is empty.
        """
        if owner == LAST_UPDATED:
            raise InvalidInput(f"'{LAST_UPDATED}' is reserved and cannot be used as an owner")

        with self._lock:
            doc = self.load()
            platforms = doc.get(owner)
            if not isinstance(platforms, dict):
                platforms = doc[owner] = {}
            counters = platforms.get(platform)
            if not isinstance(counters, dict):
                counters = platforms[platform] = {}
            counters.update(fields)
            doc[LAST_UPDATED] = utc_now_iso()
            self.save(doc)

        logger.info("Saved %s/%s: %s", owner, platform, fields)
        return counters
