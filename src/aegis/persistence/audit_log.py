"""Append-only privacy audit log — the durable record of audited operations.

The ComplianceAggregator keeps a bounded in-memory trail for reports; this
log is where every audit entry is written for good. Records are immutable
once appended and each carries a SHA-256 hash of its canonical JSON, so a
tampered JSONL file is rejected on load.

Invariant: an audit entry id is written at most once.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from aegis.models.privacy import PrivacyAuditEntry, PrivacyAuditOutcome

logger = logging.getLogger(__name__)


def _canonical_hash(body: dict[str, Any]) -> str:
    canonical = json.dumps(body, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class AuditRecord:
    """A single immutable, hashed audit log line."""
    entry_id: str
    body: dict[str, Any]
    record_hash: str

    @staticmethod
    def from_entry(entry: PrivacyAuditEntry) -> AuditRecord:
        body = entry.to_dict()
        return AuditRecord(
            entry_id=entry.entry_id,
            body=body,
            record_hash=_canonical_hash(body),
        )

    @property
    def outcome(self) -> PrivacyAuditOutcome:
        return PrivacyAuditOutcome(self.body["outcome"])

    @property
    def timestamp_utc(self) -> str:
        return self.body["timestamp"]


class AuditLog:
    """Append-only audit log with optional JSONL file persistence.

    Records can only be appended, never modified or deleted. An emergency
    wipe clears the in-memory trail of the aggregator, not this log.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._records: list[AuditRecord] = []
        self._storage_path = storage_path
        self._entry_ids: set[str] = set()
        self._write_lock = threading.Lock()

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def append(self, entry: PrivacyAuditEntry) -> AuditRecord:
        """Append an audit entry.

        The file line is written before the in-memory record, so a failed
        write leaves the log unchanged.

        Raises ValueError if entry_id is a duplicate (replay protection)
        and OSError if the storage file cannot be written.
        """
        record = AuditRecord.from_entry(entry)
        with self._write_lock:
            if record.entry_id in self._entry_ids:
                raise ValueError(f"Duplicate audit entry ID: {record.entry_id}")
            if self._storage_path:
                self._append_to_file(record)
            self._records.append(record)
            self._entry_ids.add(record.entry_id)
        return record

    def records(self, outcome: Optional[PrivacyAuditOutcome] = None) -> list[AuditRecord]:
        """Return records, optionally filtered by outcome."""
        if outcome is None:
            return list(self._records)
        return [r for r in self._records if r.outcome == outcome]

    def records_since(self, since_utc: str) -> list[AuditRecord]:
        """Return records at or after an ISO-8601 UTC timestamp string."""
        return [r for r in self._records if r.timestamp_utc >= since_utc]

    def record_hashes(self) -> list[str]:
        return [r.record_hash for r in self._records]

    @property
    def count(self) -> int:
        return len(self._records)

    @property
    def last_record(self) -> Optional[AuditRecord]:
        return self._records[-1] if self._records else None

    def _append_to_file(self, record: AuditRecord) -> None:
        line = {
            "entry_id": record.entry_id,
            "body": record.body,
            "record_hash": record.record_hash,
        }
        with self._storage_path.open("a", encoding="utf-8") as f:  # type: ignore[union-attr]
            f.write(json.dumps(line, sort_keys=True, ensure_ascii=False) + "\n")

    def _load_from_file(self, path: Path) -> None:
        """Load records from a JSONL file with integrity verification.

        Fail-closed: rejects tampered records (hash mismatch) and
        duplicate entry IDs.
        """
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                data = json.loads(line)
                entry_id = data["entry_id"]

                if entry_id in self._entry_ids:
                    raise ValueError(
                        f"Duplicate audit entry ID on load (line {line_num}): {entry_id}"
                    )

                expected_hash = _canonical_hash(data["body"])
                if data["record_hash"] != expected_hash:
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): entry {entry_id} "
                        f"stored hash {data['record_hash']} != computed {expected_hash}"
                    )

                self._records.append(AuditRecord(
                    entry_id=entry_id,
                    body=data["body"],
                    record_hash=data["record_hash"],
                ))
                self._entry_ids.add(entry_id)

        logger.info("Loaded %d audit records from %s", len(self._records), path)
