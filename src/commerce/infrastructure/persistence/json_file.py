"""Shared plumbing for the JSON-file repositories.

Each aggregate type lives in one JSON array file.  Every record carries
the aggregate's ``version``; ``_upsert`` performs the compare-and-swap
check against it before rewriting the file.  Writes go to a temp file
that then replaces the original, so a crash never leaves half a file.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from commerce.domain.model.value_objects import Money
from commerce.domain.repository.versioning import Versioned, check_version, mark_persisted

# One lock per file so two repository instances over the same file
# still serialize their read-check-write cycles.
_LOCKS: dict[Path, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    with _LOCKS_GUARD:
        return _LOCKS.setdefault(path, threading.Lock())


class JsonFileRepository:

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path.resolve()
        self._lock = _lock_for(self._file_path)
        self._ensure_file()

    # --- Record helpers -------------------------------------------------------

    def _find(self, match: Callable[[dict], bool]) -> dict | None:
        for raw in self._load_raw():
            if match(raw):
                return raw
        return None

    def _filter(self, match: Callable[[dict], bool]) -> list[dict]:
        return [raw for raw in self._load_raw() if match(raw)]

    def _upsert(self, key_fields: tuple[str, ...], aggregate: Versioned, raw: dict) -> int:
        """Compare-and-swap ``raw`` into the file, keyed by ``key_fields``."""
        key = tuple(raw[f] for f in key_fields)
        with self._lock:
            records = self._load_raw()
            index = next(
                (
                    i
                    for i, r in enumerate(records)
                    if tuple(r[f] for f in key_fields) == key
                ),
                None,
            )
            stored_version = records[index]["version"] if index is not None else None
            check_version(stored_version, aggregate, "/".join(key))

            raw = {**raw, "version": aggregate.version}
            if index is None:
                records.append(raw)
            else:
                records[index] = raw
            self._persist_raw(records)
        return mark_persisted(aggregate)

    def _remove(self, key_fields: tuple[str, ...], aggregate: Versioned, raw: dict) -> None:
        """Delete the record keyed like ``raw``, with the same version check as ``_upsert``."""
        key = tuple(raw[f] for f in key_fields)
        with self._lock:
            records = self._load_raw()
            kept = [r for r in records if tuple(r[f] for f in key_fields) != key]
            stored = [r for r in records if tuple(r[f] for f in key_fields) == key]
            stored_version = stored[0]["version"] if stored else None
            check_version(stored_version, aggregate, "/".join(key))
            self._persist_raw(kept)

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, records: list[dict]) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self._file_path.parent, prefix=f".{self._file_path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(json.dumps(records, indent=2) + "\n")
            os.replace(tmp_name, self._file_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")


# --- Value codecs ------------------------------------------------------------


def money_to_raw(money: Money | None) -> dict | None:
    if money is None:
        return None
    return {"amount": str(money.amount), "currency": money.currency}


def money_from_raw(raw: dict | None) -> Money | None:
    if raw is None:
        return None
    return Money(Decimal(raw["amount"]), raw["currency"])


def datetime_to_raw(moment: datetime | None) -> str | None:
    return moment.isoformat() if moment is not None else None


def datetime_from_raw(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw is not None else None
