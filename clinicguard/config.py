"""
Policy Table -- data-driven role/permission matrix for ClinicGuard.

Every (resource type, action) pair maps to a single ``PolicyRule``: a set
of roles that grant the action and a set of direct permissions that grant
it.  The evaluator ORs the two.  Stricter actions are expressed as rules
with one side left empty:

* patient ``restore``     -- permission ``delete_pasien`` only, no role shortcut.
* patient ``forceDelete`` -- role ``admin`` only, no permission shortcut.

Adding a resource type means adding rows here, not a new branching method.

The table is validated once at startup.  A missing pair, or a rule with no
path to allow, is a ``PolicyConfigurationError`` -- the evaluator never has
to recover from misconfiguration per request.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from clinicguard.audit import AuditEntry, AuditEventType, AuditLog
from clinicguard.models import Action, ResourceType

logger = logging.getLogger(__name__)


class PolicyConfigurationError(Exception):
    """Raised when the policy table is incomplete or grants nothing."""
    pass


# ---------------------------------------------------------------------------
# Policy rule model
# ---------------------------------------------------------------------------

class PolicyRule(BaseModel):
    """Who may perform one action on one resource type.

    An actor is allowed when it holds **any** role in ``allowed_roles`` **or**
    **any** permission in ``allowed_permissions``.
    """

    allowed_roles: frozenset[str] = Field(
        default_factory=frozenset,
        description="Role names that grant the action outright.",
    )
    allowed_permissions: frozenset[str] = Field(
        default_factory=frozenset,
        description="Direct permission names that grant the action.",
    )

    @field_validator("allowed_roles", "allowed_permissions")
    @classmethod
    def no_blank_names(cls, v: frozenset[str]) -> frozenset[str]:
        blanks = [name for name in v if not name.strip()]
        if blanks:
            raise ValueError("role and permission names must not be blank")
        return v

    @property
    def grants_anything(self) -> bool:
        return bool(self.allowed_roles or self.allowed_permissions)


def _rule(roles: Iterable[str] = (), permissions: Iterable[str] = ()) -> PolicyRule:
    return PolicyRule(allowed_roles=frozenset(roles), allowed_permissions=frozenset(permissions))


# ---------------------------------------------------------------------------
# Policy table
# ---------------------------------------------------------------------------

class PolicyTable(BaseModel):
    """Complete allow-matrix keyed by resource type, then action."""

    rules: dict[ResourceType, dict[Action, PolicyRule]] = Field(
        default_factory=dict,
        description="resource_type -> action -> PolicyRule",
    )

    def rule_for(
        self, resource_type: ResourceType, action: Action
    ) -> Optional[PolicyRule]:
        """Return the rule for a pair, or None when the pair is absent."""
        return self.rules.get(resource_type, {}).get(action)

    def missing_pairs(self) -> list[tuple[ResourceType, Action]]:
        """Pairs with no rule, in enum order."""
        return [
            (resource_type, action)
            for resource_type in ResourceType
            for action in Action
            if self.rule_for(resource_type, action) is None
        ]

    def validate_complete(self) -> "PolicyTable":
        """Check that every action on every resource type can be allowed.

        Returns:
            ``self``, so the call can be chained at construction time.

        Raises:
            PolicyConfigurationError: On a missing pair or an empty rule.
        """
        missing = self.missing_pairs()
        if missing:
            raise PolicyConfigurationError(
                "Policy table is missing rules for: "
                + ", ".join(f"{r.value}.{a.value}" for r, a in missing)
            )
        empty = [
            f"{resource_type.value}.{action.value}"
            for resource_type, actions in self.rules.items()
            for action, rule in actions.items()
            if not rule.grants_anything
        ]
        if empty:
            raise PolicyConfigurationError(
                "Policy rules grant no role or permission (unreachable allow): "
                + ", ".join(empty)
            )
        return self

    def merged_with(
        self, overrides: dict[ResourceType, dict[Action, PolicyRule]]
    ) -> "PolicyTable":
        """Return a new table with per-pair overrides applied."""
        merged = {r: dict(actions) for r, actions in self.rules.items()}
        for resource_type, actions in overrides.items():
            merged.setdefault(resource_type, {}).update(actions)
        return PolicyTable(rules=merged)


# ---------------------------------------------------------------------------
# Default table
# ---------------------------------------------------------------------------

_PATIENT_STAFF = {"petugas", "admin", "manajer", "dokter"}
_VALIDATORS = {"admin", "bendahara"}


def _validation_rules() -> dict[Action, PolicyRule]:
    return {
        Action.VIEW_ANY: _rule(_VALIDATORS | {"manajer"}),
        Action.VIEW: _rule(_VALIDATORS | {"manajer"}),
        Action.CREATE: _rule({"petugas", "admin"}),
        Action.UPDATE: _rule(_VALIDATORS),
        Action.DELETE: _rule({"admin"}),
        Action.RESTORE: _rule({"admin"}),
        Action.FORCE_DELETE: _rule({"admin"}),
    }


DEFAULT_POLICY_TABLE = PolicyTable(
    rules={
        ResourceType.PATIENT: {
            Action.VIEW_ANY: _rule(_PATIENT_STAFF, {"view-patients"}),
            Action.VIEW: _rule(_PATIENT_STAFF, {"view-patients"}),
            Action.CREATE: _rule(_PATIENT_STAFF, {"create-patients"}),
            Action.UPDATE: _rule(_PATIENT_STAFF, {"edit-patients"}),
            # dokter may edit patients but not delete them
            Action.DELETE: _rule({"petugas", "admin", "manajer"}, {"delete-patients"}),
            Action.RESTORE: _rule(permissions={"delete_pasien"}),
            Action.FORCE_DELETE: _rule(roles={"admin"}),
        },
        ResourceType.PATIENT_COUNT: _validation_rules(),
        ResourceType.PROCEDURE: _validation_rules(),
    }
).validate_complete()
"""Built-in allow-matrix, validated at import time."""


# ---------------------------------------------------------------------------
# YAML loader
# ---------------------------------------------------------------------------

def load_policy_table_from_yaml(
    path: str | Path,
    base: Optional[PolicyTable] = None,
    audit_log: Optional[AuditLog] = None,
    clinic_id: str = "default",
) -> PolicyTable:
    """Load policy rules from a YAML file and validate the result.

    Rules in the file override the matching pairs of ``base`` (the default
    table when omitted); pairs the file does not mention keep their base
    rule.  Pass an empty ``PolicyTable()`` as ``base`` to require the file
    to define every pair itself.

    Example YAML structure::

        resources:
          patient:
            delete:
              allowed_roles: [admin, manajer]
              allowed_permissions: [delete-patients]

    Args:
        path: Path to the YAML file.
        base: Table to apply the file's rules on top of.
        audit_log: When given, a ``POLICY_LOADED`` entry naming the file and
            the overridden pairs is appended once the table validates.
        clinic_id: Clinic the audit entry is scoped to.

    Returns:
        A validated ``PolicyTable``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the YAML structure is invalid.
        pydantic.ValidationError: If a resource, action, or rule is invalid.
        PolicyConfigurationError: If the merged table is incomplete.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Policy file not found: {path}")

    with open(path, "r") as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict) or "resources" not in raw:
        raise ValueError(
            "YAML file must contain a top-level 'resources' key mapping "
            "resource types to action rules."
        )

    resources = raw["resources"]
    if not isinstance(resources, dict):
        raise ValueError("'resources' must be a mapping of resource type to actions.")

    for name, actions in resources.items():
        if not isinstance(actions, dict):
            raise ValueError(f"Actions for resource '{name}' must be a mapping.")

    overrides = PolicyTable(rules=resources).rules
    base = DEFAULT_POLICY_TABLE if base is None else base
    table = base.merged_with(overrides).validate_complete()

    overridden = sorted(
        f"{resource_type.value}.{action.value}"
        for resource_type, actions in overrides.items()
        for action in actions
    )
    logger.info(
        "Loaded policy table from %s (%d rules overridden)",
        path,
        len(overridden),
    )
    if audit_log is not None:
        audit_log.append(AuditEntry(
            clinic_id=clinic_id,
            actor_id="SYSTEM",
            actor_role="SYSTEM",
            event_type=AuditEventType.POLICY_LOADED,
            target_entity=str(path),
            metadata={"overridden": overridden},
        ))
    return table
