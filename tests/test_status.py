"""
Tests for clinicguard.status -- Status Normalizer.

Covers: legacy normalization, idempotence, pass-through of unknown tokens,
class predicates and null-safety, display lookups with fallback, canonical
ordering, and query allow-lists.
"""

import pytest

from clinicguard.models import ColorTag, LegacyStatus, ValidationStatus
from clinicguard.status import (
    all_canonical,
    approved_statuses,
    color_of,
    is_approved_class,
    is_canonical,
    is_editable,
    is_legacy,
    is_rejected_class,
    label_of,
    labels,
    normalize,
    parse_status,
    rejected_statuses,
)

ALL_TOKENS = [
    "pending", "approved", "rejected", "need_revision", "cancelled",
    "disetujui", "ditolak", "selesai", "", "APPROVED", "unknown",
]


# ---------------------------------------------------------------------------
# 1. Normalization
# ---------------------------------------------------------------------------

class TestNormalize:
    def test_legacy_aliases_map_to_canonical(self):
        assert normalize("disetujui") == "approved"
        assert normalize("ditolak") == "rejected"

    def test_canonical_tokens_pass_through(self):
        for status in all_canonical():
            assert normalize(status.value) == status.value

    def test_unrecognized_token_returned_verbatim(self):
        assert normalize("selesai") == "selesai"
        assert normalize("APPROVED") == "APPROVED"

    def test_none_stays_none(self):
        assert normalize(None) is None

    def test_accepts_enum_members(self):
        assert normalize(LegacyStatus.DISETUJUI) == "approved"
        assert normalize(ValidationStatus.PENDING) == "pending"

    @pytest.mark.parametrize("token", ALL_TOKENS)
    def test_normalize_is_idempotent(self, token):
        assert normalize(normalize(token)) == normalize(token)


class TestParseStatus:
    def test_parse_canonical(self):
        assert parse_status("need_revision") is ValidationStatus.NEED_REVISION

    def test_parse_legacy(self):
        assert parse_status("disetujui") is ValidationStatus.APPROVED

    def test_parse_unrecognized_is_unknown(self):
        assert parse_status("selesai") is ValidationStatus.UNKNOWN
        assert parse_status("unknown") is ValidationStatus.UNKNOWN
        assert parse_status(None) is ValidationStatus.UNKNOWN

    def test_vocabulary_checks(self):
        assert is_canonical("approved")
        assert not is_canonical("disetujui")
        assert not is_canonical("unknown")
        assert is_legacy("ditolak")
        assert not is_legacy("rejected")


# ---------------------------------------------------------------------------
# 2. Class predicates
# ---------------------------------------------------------------------------

class TestClassPredicates:
    def test_legacy_equivalence_for_approved(self):
        assert is_approved_class("disetujui") is True
        assert is_approved_class("approved") is True
        assert is_approved_class("ditolak") is False

    def test_legacy_equivalence_for_rejected(self):
        assert is_rejected_class("ditolak") is True
        assert is_rejected_class("rejected") is True
        assert is_rejected_class("disetujui") is False

    def test_null_safety(self):
        assert is_approved_class(None) is False
        assert is_rejected_class(None) is False

    def test_unknown_tokens_match_nothing(self):
        assert is_approved_class("selesai") is False
        assert is_rejected_class("batal") is False

    def test_editable_states(self):
        assert is_editable("pending")
        assert is_editable("need_revision")
        assert not is_editable("disetujui")
        assert not is_editable("cancelled")
        assert not is_editable(None)


# ---------------------------------------------------------------------------
# 3. Display lookups
# ---------------------------------------------------------------------------

class TestDisplay:
    def test_labels_and_colors_total_over_canonical(self):
        for status in all_canonical():
            assert label_of(status) != "Unknown"
            assert isinstance(color_of(status), ColorTag)

    def test_expected_colors(self):
        assert color_of("pending") == "warning"
        assert color_of("approved") == "success"
        assert color_of("rejected") == "danger"
        assert color_of("need_revision") == "info"
        assert color_of("cancelled") == "neutral"

    def test_unknown_falls_back(self):
        assert label_of("selesai") == "Unknown"
        assert color_of("selesai") is ColorTag.NEUTRAL
        assert label_of(None) == "Unknown"

    def test_legacy_token_resolves_label(self):
        assert label_of("ditolak") == "Ditolak"

    def test_labels_mapping_in_canonical_order(self):
        assert list(labels()) == [s.value for s in all_canonical()]

    def test_end_to_end_legacy_to_display(self):
        canonical = normalize("disetujui")
        assert canonical == "approved"
        assert label_of(canonical) == "Disetujui"
        assert color_of(canonical) == "success"


# ---------------------------------------------------------------------------
# 4. Canonical enumeration and allow-lists
# ---------------------------------------------------------------------------

class TestEnumeration:
    def test_all_canonical_fixed_order(self):
        assert all_canonical() == (
            ValidationStatus.PENDING,
            ValidationStatus.APPROVED,
            ValidationStatus.REJECTED,
            ValidationStatus.NEED_REVISION,
            ValidationStatus.CANCELLED,
        )
        assert len(set(all_canonical())) == 5
        assert ValidationStatus.UNKNOWN not in all_canonical()

    def test_approved_allow_list_includes_legacy(self):
        assert approved_statuses() == ["approved", "disetujui"]

    def test_rejected_allow_list_includes_legacy(self):
        assert rejected_statuses() == ["rejected", "ditolak"]
