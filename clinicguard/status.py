"""
Status Normalizer -- canonical and legacy validation-status vocabularies.

Historical rows store ``disetujui`` / ``ditolak`` while newer code writes
``approved`` / ``rejected``.  Rather than rewriting old rows, every reader
normalizes at the boundary and uses class predicates (``is_approved_class``)
or allow-lists (``approved_statuses``) when filtering.  Legacy rows stay
queryable indefinitely.

Nothing in this module raises on unexpected input:

* ``normalize`` passes unrecognized tokens through verbatim.
* Class predicates return ``False`` for ``None`` and unknown tokens.
* ``label_of`` / ``color_of`` fall back to ``Unknown`` / ``neutral``.
"""

from __future__ import annotations

from typing import Optional, Union

from clinicguard.models import ColorTag, LegacyStatus, ValidationStatus

StatusLike = Union[str, ValidationStatus, LegacyStatus, None]


# ---------------------------------------------------------------------------
# Static lookup tables
# ---------------------------------------------------------------------------

_CANONICAL_ORDER: tuple[ValidationStatus, ...] = (
    ValidationStatus.PENDING,
    ValidationStatus.APPROVED,
    ValidationStatus.REJECTED,
    ValidationStatus.NEED_REVISION,
    ValidationStatus.CANCELLED,
)

_CANONICAL_TOKENS = frozenset(s.value for s in _CANONICAL_ORDER)

_LEGACY_ALIASES: dict[str, ValidationStatus] = {
    LegacyStatus.DISETUJUI.value: ValidationStatus.APPROVED,
    LegacyStatus.DITOLAK.value: ValidationStatus.REJECTED,
}

_LABELS: dict[ValidationStatus, str] = {
    ValidationStatus.PENDING: "Menunggu Validasi",
    ValidationStatus.APPROVED: "Disetujui",
    ValidationStatus.REJECTED: "Ditolak",
    ValidationStatus.NEED_REVISION: "Perlu Revisi",
    ValidationStatus.CANCELLED: "Dibatalkan",
}

_COLORS: dict[ValidationStatus, ColorTag] = {
    ValidationStatus.PENDING: ColorTag.WARNING,
    ValidationStatus.APPROVED: ColorTag.SUCCESS,
    ValidationStatus.REJECTED: ColorTag.DANGER,
    ValidationStatus.NEED_REVISION: ColorTag.INFO,
    ValidationStatus.CANCELLED: ColorTag.NEUTRAL,
}

UNKNOWN_LABEL = "Unknown"
UNKNOWN_COLOR = ColorTag.NEUTRAL

# States in which the submitter may still edit the record.
_EDITABLE = frozenset({ValidationStatus.PENDING, ValidationStatus.NEED_REVISION})


def _token(raw: StatusLike) -> Optional[str]:
    if raw is None:
        return None
    if isinstance(raw, (ValidationStatus, LegacyStatus)):
        return raw.value
    return raw


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def normalize(raw: StatusLike) -> Optional[str]:
    """Return the canonical token for a legacy alias.

    Canonical and unrecognized tokens are returned unchanged so callers can
    surface their own "unknown status" error if they need one.  ``None``
    stays ``None``.

    Args:
        raw: Status token as read from storage.

    Returns:
        The canonical token, or ``raw`` itself when it is not an alias.
    """
    token = _token(raw)
    if token is None:
        return None
    alias = _LEGACY_ALIASES.get(token)
    return alias.value if alias is not None else token


def parse_status(raw: StatusLike) -> ValidationStatus:
    """Parse a raw token into ``ValidationStatus``.

    Legacy aliases resolve to their canonical status.  ``None`` and any
    unrecognized token (including the literal ``"unknown"``) yield
    ``ValidationStatus.UNKNOWN``.
    """
    token = normalize(raw)
    if token in _CANONICAL_TOKENS:
        return ValidationStatus(token)
    return ValidationStatus.UNKNOWN


def is_canonical(raw: StatusLike) -> bool:
    return _token(raw) in _CANONICAL_TOKENS


def is_legacy(raw: StatusLike) -> bool:
    return _token(raw) in _LEGACY_ALIASES


def is_approved_class(raw: StatusLike) -> bool:
    """True iff ``raw`` is ``approved`` or an alias of it (``disetujui``)."""
    return parse_status(raw) is ValidationStatus.APPROVED


def is_rejected_class(raw: StatusLike) -> bool:
    """True iff ``raw`` is ``rejected`` or an alias of it (``ditolak``)."""
    return parse_status(raw) is ValidationStatus.REJECTED


def is_editable(raw: StatusLike) -> bool:
    """Whether a record in this status may still be edited by its submitter."""
    return parse_status(raw) in _EDITABLE


# ---------------------------------------------------------------------------
# Allow-lists for query filters
# ---------------------------------------------------------------------------

def _tokens_for(status: ValidationStatus) -> list[str]:
    aliases = [alias for alias, target in _LEGACY_ALIASES.items() if target is status]
    return [status.value, *aliases]


def approved_statuses() -> list[str]:
    """Every stored token that counts as approved, for ``IN (...)`` filters."""
    return _tokens_for(ValidationStatus.APPROVED)


def rejected_statuses() -> list[str]:
    """Every stored token that counts as rejected, for ``IN (...)`` filters."""
    return _tokens_for(ValidationStatus.REJECTED)


# ---------------------------------------------------------------------------
# Display attributes
# ---------------------------------------------------------------------------

def label_of(status: StatusLike) -> str:
    """Human-readable (Indonesian) label; ``Unknown`` for unrecognized input."""
    return _LABELS.get(parse_status(status), UNKNOWN_LABEL)


def color_of(status: StatusLike) -> ColorTag:
    """UI severity tag; ``neutral`` for unrecognized input."""
    return _COLORS.get(parse_status(status), UNKNOWN_COLOR)


def labels() -> dict[str, str]:
    """Token -> label mapping in canonical order, for select options."""
    return {s.value: _LABELS[s] for s in _CANONICAL_ORDER}


def all_canonical() -> tuple[ValidationStatus, ...]:
    """The five canonical statuses in fixed rendering order."""
    return _CANONICAL_ORDER
