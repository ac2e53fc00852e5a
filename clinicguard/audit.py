"""
Append-Only, Tamper-Evident Audit Log (Hash-Chained).

Every validation transition, every denied workflow action, and every
policy-table load is recorded as a structured, append-only audit entry.
Entries are linked via a SHA-256 hash chain: if any entry is modified after
the fact, ``verify_chain()`` detects the inconsistency.

**Clinic isolation:**  All queries and exports are scoped by ``clinic_id``.
Entries belonging to clinic A are never visible in queries or exports for
clinic B.

Patient identifiers (name, NIK, address, phone) must not leave the panel
in exports; ``export_for_review()`` redacts them.
"""

from __future__ import annotations

import enum
import hashlib
import json
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Audit event types
# ---------------------------------------------------------------------------

class AuditEventType(str, enum.Enum):
    """Enumeration of auditable events."""

    # Validation workflow
    VALIDATION_APPROVED = "VALIDATION_APPROVED"
    VALIDATION_REJECTED = "VALIDATION_REJECTED"
    REVISION_REQUESTED = "REVISION_REQUESTED"
    VALIDATION_CANCELLED = "VALIDATION_CANCELLED"
    VALIDATION_RESUBMITTED = "VALIDATION_RESUBMITTED"
    VALIDATION_RESET = "VALIDATION_RESET"

    # Access control
    ACCESS_DENIED = "ACCESS_DENIED"

    # Policy management
    POLICY_LOADED = "POLICY_LOADED"


# ---------------------------------------------------------------------------
# Audit entry model
# ---------------------------------------------------------------------------

class AuditEntry(BaseModel):
    """A single audit log entry.

    Records who did what, when, in which clinic, and carries a hash link to
    the previous entry for tamper evidence.
    """

    entry_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique identifier for this audit entry (UUID).",
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp of the event.",
    )
    clinic_id: str = Field(
        ...,
        description="Clinic identifier -- scopes this entry for isolation.",
    )
    actor_id: str = Field(
        ...,
        description="Identifier of the acting user, or 'SYSTEM'.",
    )
    actor_role: str = Field(
        ...,
        description="Comma-joined roles of the actor at the time of the event.",
    )
    event_type: AuditEventType = Field(
        ...,
        description="The type of event being recorded.",
    )
    target_entity: str = Field(
        default="",
        description="Identifier of the target record or policy file.",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Event-specific data.",
    )
    previous_hash: str = Field(
        default="",
        description=(
            "SHA-256 hash of the previous entry's canonical representation. "
            "Empty string for the first entry in the chain."
        ),
    )

    def canonical_bytes(self) -> bytes:
        """Return a deterministic byte representation for hashing."""
        data = {
            "entry_id": self.entry_id,
            "timestamp": self.timestamp.isoformat(),
            "clinic_id": self.clinic_id,
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "event_type": self.event_type.value,
            "target_entity": self.target_entity,
            "metadata": self.metadata,
            "previous_hash": self.previous_hash,
        }
        return json.dumps(data, sort_keys=True, default=str).encode("utf-8")

    def compute_hash(self) -> str:
        return hashlib.sha256(self.canonical_bytes()).hexdigest()


# ---------------------------------------------------------------------------
# PHI redaction
# ---------------------------------------------------------------------------

_PHI_PATTERNS: dict[str, re.Pattern] = {
    "nik": re.compile(r"\b\d{16}\b"),  # Indonesian national ID number
    "dob": re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
    "phone": re.compile(r"(?:\+62|\b0)8\d{2}[-. ]?\d{3,4}[-. ]?\d{3,4}\b"),
    "email": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
}

_PHI_KEYS = {
    "name", "full_name", "nama", "nama_lengkap", "nama_pasien",
    "dob", "date_of_birth", "tanggal_lahir",
    "nik", "no_ktp", "no_rekam_medis",
    "email", "phone", "no_telepon", "telepon",
    "address", "alamat",
}


def redact_phi_from_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """Replace patient-identifying fields with ``[REDACTED]`` markers.

    Keys in the PHI key list are blanked entirely; string values are scanned
    for NIK, date, phone, and e-mail patterns.  Nested dicts are walked.

    Args:
        metadata: The original metadata dictionary.

    Returns:
        A new dictionary with PHI-matching fields redacted.
    """
    redacted = {}
    for key, value in metadata.items():
        if key.lower() in _PHI_KEYS:
            redacted[key] = "[REDACTED]"
        elif isinstance(value, str):
            redacted_value = value
            for pattern_name, pattern in _PHI_PATTERNS.items():
                redacted_value = pattern.sub(f"[REDACTED-{pattern_name.upper()}]", redacted_value)
            redacted[key] = redacted_value
        elif isinstance(value, dict):
            redacted[key] = redact_phi_from_metadata(value)
        else:
            redacted[key] = value
    return redacted


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------

class AuditLog:
    """Append-only, tamper-evident audit log with SHA-256 hash chaining.

    * **Append-only writes** -- there is no update or delete.
    * **Hash chain verification** -- ``verify_chain()`` walks the full log.
    * **Clinic-scoped reads** -- ``query()`` and ``export_for_review()``
      always take a ``clinic_id``.
    * **PHI redaction on export**.
    """

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []
        self._hashes: list[str] = []  # parallel list of computed hashes

    def append(self, entry: AuditEntry) -> AuditEntry:
        """Append an entry, linking it to the previous one.

        Returns:
            The entry with ``previous_hash`` populated.
        """
        entry.previous_hash = self._hashes[-1] if self._hashes else ""
        self._entries.append(entry)
        self._hashes.append(entry.compute_hash())
        return entry

    def verify_chain(self) -> tuple[bool, Optional[int]]:
        """Walk the log and validate every hash link.

        Returns:
            ``(valid, broken_at)`` where ``broken_at`` is the index of the
            first broken link, or None if the chain is intact.
        """
        for i, entry in enumerate(self._entries):
            if i == 0:
                if entry.previous_hash != "":
                    return (False, 0)
            elif entry.previous_hash != self._entries[i - 1].compute_hash():
                return (False, i)

            if self._hashes[i] != entry.compute_hash():
                return (False, i)

        return (True, None)

    def query(
        self,
        clinic_id: str,
        event_type: Optional[AuditEventType] = None,
        actor_id: Optional[str] = None,
        target_entity: Optional[str] = None,
    ) -> list[AuditEntry]:
        """Return deep copies of one clinic's entries, optionally filtered
        by event type, actor, or target record."""
        results = []
        for entry in self._entries:
            if entry.clinic_id != clinic_id:
                continue
            if event_type is not None and entry.event_type != event_type:
                continue
            if actor_id is not None and entry.actor_id != actor_id:
                continue
            if target_entity is not None and entry.target_entity != target_entity:
                continue
            results.append(entry.model_copy(deep=True))
        return results

    def export_for_review(self, clinic_id: str) -> dict[str, Any]:
        """Produce a JSON-serializable, PHI-redacted export of one clinic's
        entries, stamped with the chain integrity at export time."""
        redacted_entries = []
        for entry in self.query(clinic_id):
            entry_dict = entry.model_dump(mode="json")
            entry_dict["metadata"] = redact_phi_from_metadata(entry.metadata)
            redacted_entries.append(entry_dict)

        chain_valid, broken_at = self.verify_chain()

        return {
            "export_metadata": {
                "clinic_id": clinic_id,
                "exported_at": datetime.now(timezone.utc).isoformat(),
                "entry_count": len(redacted_entries),
                "chain_integrity": "VALID" if chain_valid else f"BROKEN_AT_INDEX_{broken_at}",
            },
            "entries": redacted_entries,
        }

    def __len__(self) -> int:
        return len(self._entries)
