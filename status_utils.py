from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Literal


class CanonicalStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    CHANGES_IN_PROGRESS = "CHANGES_IN_PROGRESS"
    APPROVED = "APPROVED"


class StatusPolicy(str, Enum):
    ITEM_STATUS = "item_status"
    COLLATERAL = "collateral"


Audience = Literal["internal", "client"]

DEFAULT_POLICY = StatusPolicy.ITEM_STATUS
DEFAULT_AUDIENCE: Audience = "client"

# Display order only; NEEDS_REVIEW and CHANGES_IN_PROGRESS are both "blocked".
STATUS_ORDER = (
    CanonicalStatus.NOT_STARTED,
    CanonicalStatus.IN_PROGRESS,
    CanonicalStatus.NEEDS_REVIEW,
    CanonicalStatus.CHANGES_IN_PROGRESS,
    CanonicalStatus.APPROVED,
)

_STATUS_MAP = {
    "DRAFT": CanonicalStatus.NOT_STARTED,
    "COMPLETED": CanonicalStatus.APPROVED,
    "IN_REVIEW": CanonicalStatus.NEEDS_REVIEW,
    "CHANGES_NEEDED": CanonicalStatus.CHANGES_IN_PROGRESS,
    **{status.value: status for status in CanonicalStatus},
}

STATUS_LABELS = {
    CanonicalStatus.NOT_STARTED: "Not Started",
    CanonicalStatus.IN_PROGRESS: "In Progress",
    CanonicalStatus.NEEDS_REVIEW: "Needs Review",
    CanonicalStatus.CHANGES_IN_PROGRESS: "Changes In Progress",
    CanonicalStatus.APPROVED: "Approved",
}

STATUS_LABELS_CLIENT = {
    CanonicalStatus.NOT_STARTED: "Not Started",
    CanonicalStatus.IN_PROGRESS: "In Progress",
    CanonicalStatus.NEEDS_REVIEW: "Needs Review",
    CanonicalStatus.CHANGES_IN_PROGRESS: "Changes Being Made",
    CanonicalStatus.APPROVED: "Completed",
}

STATUS_COLORS = {
    CanonicalStatus.NOT_STARTED: "gray",
    CanonicalStatus.IN_PROGRESS: "blue",
    CanonicalStatus.NEEDS_REVIEW: "yellow",
    CanonicalStatus.CHANGES_IN_PROGRESS: "orange",
    CanonicalStatus.APPROVED: "green",
}

_LABELS_BY_AUDIENCE = {
    "internal": STATUS_LABELS,
    "client": STATUS_LABELS_CLIENT,
}


@dataclass(frozen=True)
class StatusPresentation:
    label: str
    color: str


def _status_key(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, CanonicalStatus):
        return value.value
    text = str(value).strip().upper()
    return "_".join(text.replace("-", " ").split())


def map_raw_status(value: Any) -> CanonicalStatus:
    """Maps a persisted status token to its canonical status.

    Unknown, empty or missing tokens map to NOT_STARTED.
    """
    return _STATUS_MAP.get(_status_key(value), CanonicalStatus.NOT_STARTED)


def is_valid_status(value: Any) -> bool:
    return _status_key(value) in CanonicalStatus.__members__


def resolve_status_policy(value: Any = None) -> StatusPolicy:
    if isinstance(value, StatusPolicy):
        return value
    raw = value if value is not None else os.getenv("STATUS_POLICY", "")
    candidate = str(raw or "").strip().lower()
    try:
        return StatusPolicy(candidate)
    except ValueError:
        return DEFAULT_POLICY


def _review_requested(collateral: Any) -> bool:
    if isinstance(collateral, dict):
        marker = collateral.get("review_requested_at", collateral.get("reviewRequestedAt"))
    else:
        marker = getattr(collateral, "review_requested_at", None)
    return bool(marker)


def normalize_status(
    value: Any,
    collateral: Iterable[Any] | None = None,
    policy: StatusPolicy | str | None = None,
) -> CanonicalStatus:
    """Normalizes an item's raw status into one of the five canonical states.

    With ``StatusPolicy.ITEM_STATUS`` the item's own token is authoritative and
    collateral is ignored. With ``StatusPolicy.COLLATERAL`` a pending review
    request on any collateral wins, then an approved item token, then the mere
    presence of collateral. Never raises.
    """
    resolved = resolve_status_policy(policy)
    if resolved is StatusPolicy.ITEM_STATUS:
        return map_raw_status(value)

    records = list(collateral or [])
    if any(_review_requested(record) for record in records):
        return CanonicalStatus.NEEDS_REVIEW
    if map_raw_status(value) is CanonicalStatus.APPROVED:
        return CanonicalStatus.APPROVED
    if records:
        return CanonicalStatus.IN_PROGRESS
    return CanonicalStatus.NOT_STARTED


def normalize_audience(value: Any) -> Audience:
    candidate = str(value or "").strip().lower()
    if candidate in _LABELS_BY_AUDIENCE:
        return candidate  # type: ignore[return-value]
    return DEFAULT_AUDIENCE


def present_status(status: Any, audience: str | None = DEFAULT_AUDIENCE) -> StatusPresentation:
    canonical = map_raw_status(status)
    labels = _LABELS_BY_AUDIENCE[normalize_audience(audience)]
    return StatusPresentation(label=labels[canonical], color=STATUS_COLORS[canonical])


def status_options(audience: str | None = DEFAULT_AUDIENCE) -> list[dict]:
    options = []
    for status in STATUS_ORDER:
        presentation = present_status(status, audience)
        options.append(
            {
                "value": status.value,
                "label": presentation.label,
                "color": presentation.color,
            }
        )
    return options
