"""
Status Distribution Report.

Summarizes the raw tokens found in a status column: how many rows sit in
each canonical status, how many still carry legacy tokens, and how many
hold values outside both vocabularies.  Used to check data integrity
before reconciliation jobs and to spot legacy values that writers should
no longer be producing.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from clinicguard import status as status_rules
from clinicguard.models import ValidationStatus


class StatusReport:
    """Counts per canonical status plus legacy/unknown/missing tallies."""

    def __init__(
        self,
        counts: dict[str, int],
        legacy_counts: dict[str, int],
        unknown_counts: dict[str, int],
        missing: int,
        generated_at: str,
    ) -> None:
        self.counts = counts
        self.legacy_counts = legacy_counts
        self.unknown_counts = unknown_counts
        self.missing = missing
        self.generated_at = generated_at

    @property
    def total(self) -> int:
        return sum(self.counts.values()) + sum(self.unknown_counts.values()) + self.missing

    @property
    def legacy_total(self) -> int:
        return sum(self.legacy_counts.values())

    @property
    def has_legacy(self) -> bool:
        return self.legacy_total > 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize the report, with labels and colors for each status."""
        return {
            "report_type": "Status Distribution Report",
            "total": self.total,
            "statuses": [
                {
                    "status": token,
                    "label": status_rules.label_of(token),
                    "color": status_rules.color_of(token).value,
                    "count": count,
                }
                for token, count in self.counts.items()
            ],
            "legacy": dict(self.legacy_counts),
            "legacy_total": self.legacy_total,
            "unknown": dict(self.unknown_counts),
            "missing": self.missing,
            "generated_at": self.generated_at,
        }

    def __repr__(self) -> str:
        return (
            f"StatusReport(total={self.total}, legacy={self.legacy_total}, "
            f"unknown={sum(self.unknown_counts.values())})"
        )


def generate_status_report(tokens: Iterable[Optional[str]]) -> StatusReport:
    """Build a ``StatusReport`` from raw status tokens.

    Legacy tokens are counted under their canonical status **and** tallied
    separately, so approved totals match what ``approved_statuses()``
    filters would return.

    Args:
        tokens: Raw ``status_validasi`` values, ``None`` for NULL.

    Returns:
        A ``StatusReport``.
    """
    raw_counts = Counter(tokens)

    counts = {s.value: 0 for s in status_rules.all_canonical()}
    legacy: dict[str, int] = {}
    unknown: dict[str, int] = {}
    missing = 0

    for token, n in raw_counts.items():
        if token is None:
            missing += n
            continue
        parsed = status_rules.parse_status(token)
        if parsed is ValidationStatus.UNKNOWN:
            unknown[token] = unknown.get(token, 0) + n
            continue
        counts[parsed.value] += n
        if status_rules.is_legacy(token):
            legacy[token] = legacy.get(token, 0) + n

    return StatusReport(
        counts=counts,
        legacy_counts=legacy,
        unknown_counts=unknown,
        missing=missing,
        generated_at=datetime.now(timezone.utc).isoformat(),
    )
