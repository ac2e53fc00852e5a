"""
Tests for clinicguard.report -- Status Distribution Report.
"""

from clinicguard.report import generate_status_report


class TestStatusReport:
    def test_counts_legacy_under_canonical(self):
        report = generate_status_report(
            ["approved", "disetujui", "disetujui", "ditolak", "pending"]
        )
        assert report.counts["approved"] == 3
        assert report.counts["rejected"] == 1
        assert report.legacy_counts == {"disetujui": 2, "ditolak": 1}
        assert report.has_legacy

    def test_all_canonical_statuses_listed_in_order(self):
        report = generate_status_report([])
        assert list(report.counts) == [
            "pending", "approved", "rejected", "need_revision", "cancelled",
        ]
        assert report.total == 0
        assert not report.has_legacy

    def test_unknown_and_missing_tallied_separately(self):
        report = generate_status_report(["selesai", None, None, "pending"])
        assert report.unknown_counts == {"selesai": 1}
        assert report.missing == 2
        assert report.total == 4

    def test_to_dict_includes_labels_and_colors(self):
        d = generate_status_report(["disetujui"]).to_dict()
        approved = next(s for s in d["statuses"] if s["status"] == "approved")
        assert approved["label"] == "Disetujui"
        assert approved["color"] == "success"
        assert approved["count"] == 1
        assert d["legacy_total"] == 1
        assert "generated_at" in d
