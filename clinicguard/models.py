"""
Core data models for the ClinicGuard decision core.

Status tokens arrive from storage as raw strings and may use either the
current English vocabulary or the legacy Indonesian one.  They are parsed
into ``ValidationStatus`` at the boundary; anything unrecognized becomes
``ValidationStatus.UNKNOWN`` instead of travelling through the core as a
bare string.

Actors are snapshots supplied by the identity subsystem on every call.
Nothing in this package caches or mutates them.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ValidationStatus(str, enum.Enum):
    """Canonical validation status of a workflow record.

    * ``PENDING``       -- submitted, waiting for a validator.
    * ``APPROVED``      -- accepted by a validator.
    * ``REJECTED``      -- refused by a validator.
    * ``NEED_REVISION`` -- sent back to the submitter for correction.
    * ``CANCELLED``     -- withdrawn; terminal, but the record persists.

    ``UNKNOWN`` is not a storable status.  It is the parse result for any
    token outside the canonical and legacy vocabularies.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    NEED_REVISION = "need_revision"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class LegacyStatus(str, enum.Enum):
    """Deprecated status tokens still present in historical rows."""

    DISETUJUI = "disetujui"
    DITOLAK = "ditolak"


class ColorTag(str, enum.Enum):
    """UI severity tag attached to each canonical status."""

    WARNING = "warning"
    SUCCESS = "success"
    DANGER = "danger"
    INFO = "info"
    NEUTRAL = "neutral"


class Action(str, enum.Enum):
    """Actions the admin panel may request on a resource."""

    VIEW_ANY = "viewAny"
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    RESTORE = "restore"
    FORCE_DELETE = "forceDelete"


class ResourceType(str, enum.Enum):
    """Resource types covered by the policy table.

    * ``PATIENT``       -- patient master data (pasien).
    * ``PATIENT_COUNT`` -- daily patient-count entries awaiting validation
      (jumlah pasien harian).
    * ``PROCEDURE``     -- medical procedure entries awaiting validation
      (tindakan).
    """

    PATIENT = "patient"
    PATIENT_COUNT = "patient_count"
    PROCEDURE = "procedure"


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

class Actor(BaseModel):
    """Snapshot of the identity attempting an action.

    Roles and permissions are orthogonal: an actor may hold a permission
    without any role that conventionally implies it.
    """

    model_config = ConfigDict(frozen=True)

    actor_id: str = Field(
        ...,
        min_length=1,
        description="Identifier of the authenticated user.",
    )
    clinic_id: str = Field(
        default="default",
        description="Clinic the actor is working in.  Scopes audit entries.",
    )
    roles: frozenset[str] = Field(
        default_factory=frozenset,
        description="Role names, e.g. 'admin', 'manajer', 'dokter', 'petugas'.",
    )
    permissions: frozenset[str] = Field(
        default_factory=frozenset,
        description="Direct permission names, e.g. 'view-patients', 'delete_pasien'.",
    )

    def has_any_role(self, roles: frozenset[str]) -> bool:
        return not self.roles.isdisjoint(roles)

    def has_any_permission(self, permissions: frozenset[str]) -> bool:
        return not self.permissions.isdisjoint(permissions)

    @property
    def role_label(self) -> str:
        """Stable, comma-joined role list for audit entries."""
        return ",".join(sorted(self.roles)) or "NONE"


class ResourceState(BaseModel):
    """State of the resolved resource instance, when there is one."""

    trashed: bool = Field(
        default=False,
        description="Whether the record is soft-deleted.",
    )


class AccessRequest(BaseModel):
    """An (actor, action, resource-type, resource-state) tuple."""

    actor: Optional[Actor] = None
    action: Action
    resource_type: ResourceType
    resource_state: Optional[ResourceState] = None


class ValidationRecord(BaseModel):
    """A workflow record carrying a validation status.

    ``status`` holds the token exactly as stored, so legacy values read
    from old rows are preserved until the record is next transitioned.
    """

    record_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique identifier of the record.",
    )
    clinic_id: str = Field(
        ...,
        min_length=1,
        description="Clinic that owns this record.",
    )
    resource_type: ResourceType = Field(
        default=ResourceType.PATIENT_COUNT,
        description="Which policy-table resource governs this record.",
    )
    status: str = Field(
        default=ValidationStatus.PENDING.value,
        description="Raw status token as persisted (canonical or legacy).",
    )
    submitted_by: str = Field(
        ...,
        description="Actor ID of the staff member who entered the record.",
    )
    validated_by: Optional[str] = Field(default=None)
    validated_at: Optional[datetime] = Field(default=None)
    validation_notes: str = Field(
        default="",
        description="Notes left by the validator or by an automatic reset.",
    )
    deleted_at: Optional[datetime] = Field(
        default=None,
        description="Soft-delete timestamp; the record is trashed when set.",
    )

    @field_validator("status", mode="before")
    @classmethod
    def coerce_enum_status(cls, v):
        if isinstance(v, enum.Enum):
            return v.value
        return v

    @property
    def is_trashed(self) -> bool:
        return self.deleted_at is not None

    def resource_state(self) -> ResourceState:
        return ResourceState(trashed=self.is_trashed)
