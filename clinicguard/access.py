"""
Access Decision Evaluator for ClinicGuard.

Decides whether an actor may perform an action on a resource type by
consulting the ``PolicyTable``: allow when the actor holds any role **or**
any direct permission listed in the matching rule, deny otherwise.

**Properties:**

* Fail-closed -- no actor, an unknown action, or a pair missing from the
  table all yield ``False``.
* Never raises -- ``evaluate`` returns a plain bool; callers turn a denial
  into a 403 or a hidden button at their boundary.  ``require_access`` is
  provided for callers that prefer an exception.
* Explicit actor -- the actor snapshot is always a parameter; nothing here
  reads ambient session state.
* Resource state (e.g. soft-deleted) never changes the decision.  It only
  matters to record lookup, see ``lookup_includes_trashed``.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from clinicguard.config import DEFAULT_POLICY_TABLE, PolicyTable
from clinicguard.models import AccessRequest, Action, Actor, ResourceState, ResourceType

logger = logging.getLogger(__name__)


class AccessDeniedError(PermissionError):
    """Raised by ``require_access`` when the evaluator denies an action."""

    def __init__(
        self,
        actor_id: Optional[str],
        action: Union[Action, str],
        resource_type: Union[ResourceType, str],
    ) -> None:
        self.actor_id = actor_id
        self.action = getattr(action, "value", action)
        self.resource_type = getattr(resource_type, "value", resource_type)
        super().__init__(
            f"Actor '{actor_id}' is not permitted to perform "
            f"'{self.action}' on '{self.resource_type}'."
        )


def _coerce(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def evaluate(
    actor: Optional[Actor],
    action: Union[Action, str],
    resource_type: Union[ResourceType, str],
    resource_state: Optional[ResourceState] = None,
    table: Optional[PolicyTable] = None,
) -> bool:
    """Decide whether ``actor`` may perform ``action`` on ``resource_type``.

    Args:
        actor: Snapshot of the acting identity, or None when unauthenticated.
        action: The requested action (enum member or its string value).
        resource_type: The resource type (enum member or its string value).
        resource_state: State of the resolved record, if any.  Accepted for
            completeness; it does not affect the decision.
        table: Policy table to consult (defaults to ``DEFAULT_POLICY_TABLE``).

    Returns:
        True if allowed, False otherwise.
    """
    if actor is None:
        return False

    if table is None:
        table = DEFAULT_POLICY_TABLE
    action_enum = _coerce(Action, action)
    resource_enum = _coerce(ResourceType, resource_type)
    if action_enum is None or resource_enum is None:
        logger.warning(
            "Denying unknown action/resource pair %r/%r for actor %s",
            action, resource_type, actor.actor_id,
        )
        return False

    rule = table.rule_for(resource_enum, action_enum)
    if rule is None:
        logger.warning(
            "No policy rule for %s.%s; denying actor %s",
            resource_enum.value, action_enum.value, actor.actor_id,
        )
        return False

    allowed = actor.has_any_role(rule.allowed_roles) or actor.has_any_permission(
        rule.allowed_permissions
    )
    if not allowed:
        logger.debug(
            "Denied %s.%s for actor %s (roles=%s)",
            resource_enum.value, action_enum.value, actor.actor_id, actor.role_label,
        )
    return allowed


def evaluate_request(
    request: AccessRequest, table: Optional[PolicyTable] = None
) -> bool:
    """``evaluate`` for a pre-built ``AccessRequest``."""
    return evaluate(
        request.actor,
        request.action,
        request.resource_type,
        request.resource_state,
        table=table,
    )


def require_access(
    actor: Optional[Actor],
    action: Union[Action, str],
    resource_type: Union[ResourceType, str],
    resource_state: Optional[ResourceState] = None,
    table: Optional[PolicyTable] = None,
) -> None:
    """Enforce an access decision; raise if denied.

    Raises:
        AccessDeniedError: If the evaluator denies the action.
    """
    if not evaluate(actor, action, resource_type, resource_state, table=table):
        raise AccessDeniedError(
            actor.actor_id if actor is not None else None, action, resource_type
        )


def allowed_actions(
    actor: Optional[Actor],
    resource_type: Union[ResourceType, str],
    table: Optional[PolicyTable] = None,
) -> dict[str, bool]:
    """Return the full action -> decision matrix for one resource type.

    Useful for deciding which admin-panel buttons to render in one pass.
    """
    return {
        action.value: evaluate(actor, action, resource_type, table=table)
        for action in Action
    }


def lookup_includes_trashed(
    actor: Optional[Actor],
    resource_type: Union[ResourceType, str],
    table: Optional[PolicyTable] = None,
) -> bool:
    """Whether record lookup for this actor must include soft-deleted rows.

    When the actor can restore or force-delete, trashed rows have to be
    resolvable, otherwise those actions are unreachable.  The lookup itself
    is the caller's job.
    """
    return evaluate(actor, Action.RESTORE, resource_type, table=table) or evaluate(
        actor, Action.FORCE_DELETE, resource_type, table=table
    )
