"""
Tests for clinicguard.access -- Access Decision Evaluator.
"""

import pytest

from clinicguard.access import (
    AccessDeniedError,
    allowed_actions,
    evaluate,
    evaluate_request,
    lookup_includes_trashed,
    require_access,
)
from clinicguard.config import DEFAULT_POLICY_TABLE, PolicyRule, PolicyTable
from clinicguard.models import AccessRequest, Action, Actor, ResourceState, ResourceType

PATIENT = ResourceType.PATIENT


def _make_actor(roles=(), permissions=(), actor_id="user_1") -> Actor:
    return Actor(actor_id=actor_id, roles=frozenset(roles), permissions=frozenset(permissions))


class TestFailClosed:
    def test_empty_actor_denied_everywhere(self):
        actor = _make_actor()
        for resource_type in ResourceType:
            for action in Action:
                assert evaluate(actor, action, resource_type) is False

    def test_missing_actor_denied(self):
        assert evaluate(None, Action.VIEW, PATIENT) is False

    def test_unknown_action_denied_without_raising(self):
        actor = _make_actor(roles={"admin"})
        assert evaluate(actor, "export", PATIENT) is False
        assert evaluate(actor, Action.VIEW, "invoice") is False

    def test_pair_missing_from_table_denied(self):
        table = PolicyTable(rules={PATIENT: {Action.VIEW: PolicyRule(allowed_roles={"admin"})}})
        actor = _make_actor(roles={"admin"})
        assert evaluate(actor, Action.VIEW, PATIENT, table=table) is True
        assert evaluate(actor, Action.UPDATE, PATIENT, table=table) is False


class TestRolePermissionCombination:
    def test_dokter_can_view_create_update_but_not_delete(self):
        dokter = _make_actor(roles={"dokter"})
        assert evaluate(dokter, Action.VIEW_ANY, PATIENT) is True
        assert evaluate(dokter, Action.VIEW, PATIENT) is True
        assert evaluate(dokter, Action.CREATE, PATIENT) is True
        assert evaluate(dokter, Action.UPDATE, PATIENT) is True
        assert evaluate(dokter, Action.DELETE, PATIENT) is False

    def test_permission_without_role_allows_delete(self):
        actor = _make_actor(permissions={"delete-patients"})
        assert evaluate(actor, Action.DELETE, PATIENT) is True
        assert evaluate(actor, Action.VIEW, PATIENT) is False

    def test_view_permission_alone_allows_view(self):
        actor = _make_actor(permissions={"view-patients"})
        assert evaluate(actor, Action.VIEW_ANY, PATIENT) is True
        assert evaluate(actor, Action.UPDATE, PATIENT) is False

    def test_edit_permission_alone_allows_update(self):
        assert evaluate(_make_actor(permissions={"edit-patients"}), Action.UPDATE, PATIENT) is True

    @pytest.mark.parametrize("role", ["petugas", "admin", "manajer"])
    def test_staff_roles_can_delete(self, role):
        assert evaluate(_make_actor(roles={role}), Action.DELETE, PATIENT) is True

    def test_string_action_and_resource_accepted(self):
        assert evaluate(_make_actor(roles={"petugas"}), "viewAny", "patient") is True


class TestStrictActions:
    def test_admin_without_delete_pasien_cannot_restore(self):
        admin = _make_actor(roles={"admin"})
        assert evaluate(admin, Action.RESTORE, PATIENT) is False
        assert evaluate(admin, Action.FORCE_DELETE, PATIENT) is True

    def test_petugas_with_delete_pasien_restores_but_cannot_force_delete(self):
        actor = _make_actor(roles={"petugas"}, permissions={"delete_pasien"})
        assert evaluate(actor, Action.RESTORE, PATIENT) is True
        assert evaluate(actor, Action.FORCE_DELETE, PATIENT) is False

    def test_delete_patients_permission_does_not_grant_restore(self):
        actor = _make_actor(permissions={"delete-patients"})
        assert evaluate(actor, Action.RESTORE, PATIENT) is False

    def test_resource_state_does_not_change_decision(self):
        actor = _make_actor(permissions={"delete_pasien"})
        trashed = ResourceState(trashed=True)
        live = ResourceState(trashed=False)
        assert evaluate(actor, Action.RESTORE, PATIENT, trashed) is True
        assert evaluate(actor, Action.RESTORE, PATIENT, live) is True


class TestValidationResources:
    def test_bendahara_can_validate_patient_counts(self):
        bendahara = _make_actor(roles={"bendahara"})
        assert evaluate(bendahara, Action.UPDATE, ResourceType.PATIENT_COUNT) is True
        assert evaluate(bendahara, Action.UPDATE, ResourceType.PROCEDURE) is True

    def test_petugas_can_submit_but_not_validate(self):
        petugas = _make_actor(roles={"petugas"})
        assert evaluate(petugas, Action.CREATE, ResourceType.PATIENT_COUNT) is True
        assert evaluate(petugas, Action.UPDATE, ResourceType.PATIENT_COUNT) is False

    def test_manajer_can_view_but_not_validate(self):
        manajer = _make_actor(roles={"manajer"})
        assert evaluate(manajer, Action.VIEW_ANY, ResourceType.PROCEDURE) is True
        assert evaluate(manajer, Action.UPDATE, ResourceType.PROCEDURE) is False


class TestHelpers:
    def test_require_access_raises_on_denied(self):
        with pytest.raises(AccessDeniedError) as exc_info:
            require_access(_make_actor(roles={"dokter"}), Action.DELETE, PATIENT)
        assert isinstance(exc_info.value, PermissionError)
        assert exc_info.value.action == "delete"

    def test_require_access_passes_on_allowed(self):
        require_access(_make_actor(roles={"admin"}), Action.DELETE, PATIENT)

    def test_require_access_without_actor(self):
        with pytest.raises(AccessDeniedError):
            require_access(None, Action.VIEW, PATIENT)

    def test_evaluate_request(self):
        request = AccessRequest(
            actor=_make_actor(roles={"dokter"}),
            action=Action.VIEW,
            resource_type=PATIENT,
        )
        assert evaluate_request(request) is True
        assert evaluate_request(AccessRequest(action="view", resource_type="patient")) is False

    def test_allowed_actions_matrix(self):
        matrix = allowed_actions(_make_actor(roles={"dokter"}), PATIENT)
        assert set(matrix) == {a.value for a in Action}
        assert matrix["update"] is True
        assert matrix["delete"] is False
        assert matrix["forceDelete"] is False

    def test_lookup_includes_trashed(self):
        assert lookup_includes_trashed(_make_actor(roles={"admin"}), PATIENT) is True
        assert lookup_includes_trashed(_make_actor(permissions={"delete_pasien"}), PATIENT) is True
        assert lookup_includes_trashed(_make_actor(roles={"dokter"}), PATIENT) is False

    def test_default_table_is_used_when_none_given(self):
        actor = _make_actor(roles={"admin"})
        assert evaluate(actor, Action.VIEW, PATIENT) == evaluate(
            actor, Action.VIEW, PATIENT, table=DEFAULT_POLICY_TABLE
        )
