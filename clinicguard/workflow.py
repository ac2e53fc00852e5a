"""
Validation Workflow -- status transitions for records awaiting validation.

Daily patient counts and procedures are entered by staff (``petugas``) in
``pending`` state and validated by the treasurer (``bendahara``) or an
admin.  This module moves records between statuses, gated by the access
evaluator and recorded in the audit log.

**Transitions** (over canonical statuses; legacy stored tokens are
normalized on read and written back canonical):

    pending       -> approved | rejected | need_revision | cancelled
    need_revision -> pending | cancelled
    rejected      -> pending
    approved      -> pending          (reset after a critical field edit)
    cancelled     -> (terminal)

**Gates enforced in code:**

* Validator actions (approve, reject, request revision, cancel) require
  ``update`` on the record's resource type.
* Resubmission and reset-after-edit require ``create`` or ``update``.
* ``reject()`` and ``request_revision()`` require notes.
* The actor must belong to the record's clinic.

The acting user is always passed in explicitly.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from clinicguard import status as status_rules
from clinicguard.access import AccessDeniedError, evaluate
from clinicguard.audit import AuditEntry, AuditEventType, AuditLog
from clinicguard.config import PolicyTable
from clinicguard.models import Action, Actor, ResourceType, ValidationRecord, ValidationStatus

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Valid status transitions
# ---------------------------------------------------------------------------

_VALID_TRANSITIONS: dict[ValidationStatus, set[ValidationStatus]] = {
    ValidationStatus.PENDING: {
        ValidationStatus.APPROVED,
        ValidationStatus.REJECTED,
        ValidationStatus.NEED_REVISION,
        ValidationStatus.CANCELLED,
    },
    ValidationStatus.NEED_REVISION: {
        ValidationStatus.PENDING,
        ValidationStatus.CANCELLED,
    },
    ValidationStatus.REJECTED: {ValidationStatus.PENDING},
    ValidationStatus.APPROVED: {ValidationStatus.PENDING},
    ValidationStatus.CANCELLED: set(),  # terminal state
    ValidationStatus.UNKNOWN: set(),
}

_RESUBMIT_SOURCES = frozenset({ValidationStatus.REJECTED, ValidationStatus.NEED_REVISION})

# Fields whose change invalidates an approval.
CRITICAL_FIELDS: dict[ResourceType, frozenset[str]] = {
    ResourceType.PATIENT_COUNT: frozenset({
        "jumlah_pasien_umum",
        "jumlah_pasien_bpjs",
        "jaspel_rupiah",
        "dokter_id",
        "tanggal",
        "shift",
        "poli",
    }),
    ResourceType.PROCEDURE: frozenset({
        "pasien_id",
        "jenis_tindakan_id",
        "dokter_id",
        "paramedis_id",
        "tanggal_tindakan",
        "tarif",
        "jasa_dokter",
        "jasa_paramedis",
        "jasa_non_paramedis",
        "shift_id",
    }),
}

RESET_NOTE_PREFIX = "Data diubah oleh petugas - perlu validasi ulang. Fields: "


# ---------------------------------------------------------------------------
# Transition errors
# ---------------------------------------------------------------------------

class InvalidTransitionError(Exception):
    """Raised when a status transition is not permitted."""
    pass


class ClinicMismatchError(Exception):
    """Raised when an actor acts on a record from another clinic."""
    pass


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------

class ValidationWorkflow:
    """Applies validation transitions to ``ValidationRecord`` instances.

    Every successful transition and every denied attempt emits an audit
    event.  Records are mutated in place and returned.
    """

    def __init__(self, audit_log: AuditLog, table: Optional[PolicyTable] = None) -> None:
        self._audit_log = audit_log
        self._table = table

    # -- helpers --

    def _emit_audit(
        self,
        event_type: AuditEventType,
        record: ValidationRecord,
        actor: Actor,
        metadata: dict | None = None,
    ) -> None:
        self._audit_log.append(AuditEntry(
            clinic_id=record.clinic_id,
            actor_id=actor.actor_id,
            actor_role=actor.role_label,
            event_type=event_type,
            target_entity=record.record_id,
            metadata=metadata or {},
        ))

    def _authorize(
        self, record: ValidationRecord, actor: Actor, actions: Iterable[Action]
    ) -> None:
        """Raise unless the actor may perform at least one of ``actions``.

        Both cross-clinic attempts and policy denials are audited under the
        record's clinic before raising.
        """
        actions = list(actions)
        denial = {
            "resource_type": record.resource_type.value,
            "actions": [a.value for a in actions],
        }
        if actor.clinic_id != record.clinic_id:
            self._emit_audit(
                AuditEventType.ACCESS_DENIED,
                record,
                actor,
                metadata={
                    **denial,
                    "reason": "clinic_mismatch",
                    "actor_clinic_id": actor.clinic_id,
                },
            )
            raise ClinicMismatchError(
                f"Actor clinic '{actor.clinic_id}' does not match record "
                f"clinic '{record.clinic_id}'."
            )

        state = record.resource_state()
        if any(
            evaluate(actor, action, record.resource_type, state, table=self._table)
            for action in actions
        ):
            return

        self._emit_audit(
            AuditEventType.ACCESS_DENIED,
            record,
            actor,
            metadata={**denial, "reason": "policy"},
        )
        raise AccessDeniedError(actor.actor_id, actions[0], record.resource_type)

    def _transition(
        self,
        record: ValidationRecord,
        actor: Actor,
        target: ValidationStatus,
        event_type: AuditEventType,
        notes: str = "",
        metadata: dict | None = None,
        sources: Optional[frozenset[ValidationStatus]] = None,
    ) -> ValidationRecord:
        """Move ``record`` to ``target``.

        ``sources`` narrows the statuses the operation may start from; the
        transition table still has to allow the move.
        """
        if record.is_trashed:
            raise InvalidTransitionError(
                f"Record '{record.record_id}' is soft-deleted; restore it first."
            )
        current = status_rules.parse_status(record.status)
        allowed = _VALID_TRANSITIONS[current]
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition from {record.status!r} to {target.value}. "
                f"Allowed transitions: {sorted(s.value for s in allowed)}"
            )
        if sources is not None and current not in sources:
            raise InvalidTransitionError(
                f"Cannot {event_type.value.lower()} a record in status "
                f"{record.status!r}. Expected one of: {sorted(s.value for s in sources)}"
            )

        previous = record.status
        record.status = target.value
        if target is ValidationStatus.PENDING:
            record.validated_by = None
            record.validated_at = None
        else:
            record.validated_by = actor.actor_id
            record.validated_at = datetime.now(timezone.utc)
        if notes:
            record.validation_notes = notes

        logger.info(
            "Record %s: %s -> %s by %s",
            record.record_id, previous, target.value, actor.actor_id,
        )
        self._emit_audit(
            event_type,
            record,
            actor,
            metadata={
                "previous_status": previous,
                "new_status": target.value,
                **(metadata or {}),
            },
        )
        return record

    @staticmethod
    def _require_notes(notes: str, verb: str) -> None:
        if not notes.strip():
            raise ValueError(f"Notes are mandatory to {verb} a record.")

    # -- validator operations --

    def approve(
        self, record: ValidationRecord, actor: Actor, notes: str = ""
    ) -> ValidationRecord:
        """Approve a pending record.

        Raises:
            AccessDeniedError: If the actor may not update this resource type.
            InvalidTransitionError: If the record is not pending.
        """
        self._authorize(record, actor, [Action.UPDATE])
        return self._transition(
            record, actor, ValidationStatus.APPROVED,
            AuditEventType.VALIDATION_APPROVED, notes,
        )

    def reject(
        self, record: ValidationRecord, actor: Actor, notes: str
    ) -> ValidationRecord:
        """Reject a pending record; ``notes`` must explain why."""
        self._authorize(record, actor, [Action.UPDATE])
        self._require_notes(notes, "reject")
        return self._transition(
            record, actor, ValidationStatus.REJECTED,
            AuditEventType.VALIDATION_REJECTED, notes,
        )

    def request_revision(
        self, record: ValidationRecord, actor: Actor, notes: str
    ) -> ValidationRecord:
        """Send a pending record back to its submitter for correction."""
        self._authorize(record, actor, [Action.UPDATE])
        self._require_notes(notes, "request revision of")
        return self._transition(
            record, actor, ValidationStatus.NEED_REVISION,
            AuditEventType.REVISION_REQUESTED, notes,
        )

    def cancel(
        self, record: ValidationRecord, actor: Actor, notes: str = ""
    ) -> ValidationRecord:
        """Cancel a pending or revision-requested record.  Terminal."""
        self._authorize(record, actor, [Action.UPDATE])
        return self._transition(
            record, actor, ValidationStatus.CANCELLED,
            AuditEventType.VALIDATION_CANCELLED, notes,
        )

    # -- submitter operations --

    def resubmit(
        self, record: ValidationRecord, actor: Actor
    ) -> ValidationRecord:
        """Return a rejected or revision-requested record to ``pending``.

        Approved records only go back to ``pending`` through
        ``reset_after_edit``.
        """
        self._authorize(record, actor, [Action.CREATE, Action.UPDATE])
        return self._transition(
            record, actor, ValidationStatus.PENDING,
            AuditEventType.VALIDATION_RESUBMITTED,
            sources=_RESUBMIT_SOURCES,
        )

    def reset_after_edit(
        self,
        record: ValidationRecord,
        actor: Actor,
        changed_fields: Iterable[str],
    ) -> ValidationRecord:
        """Re-open an approved record whose critical fields were edited.

        Approved-class records (``approved`` or legacy ``disetujui``) go back
        to ``pending`` with a note naming the changed fields.  Anything else,
        or an edit touching no critical field, leaves the record untouched.
        """
        if not status_rules.is_approved_class(record.status):
            return record

        critical = CRITICAL_FIELDS.get(record.resource_type, frozenset())
        changed = sorted(set(changed_fields) & critical)
        if not changed:
            return record

        self._authorize(record, actor, [Action.CREATE, Action.UPDATE])
        return self._transition(
            record, actor, ValidationStatus.PENDING,
            AuditEventType.VALIDATION_RESET,
            notes=RESET_NOTE_PREFIX + ", ".join(changed),
            metadata={"changed_fields": changed},
            sources=frozenset({ValidationStatus.APPROVED}),
        )
