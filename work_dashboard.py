from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence

from status_utils import (
    Audience,
    CanonicalStatus,
    DEFAULT_AUDIENCE,
    StatusPolicy,
    normalize_audience,
    normalize_status,
    present_status,
    resolve_status_policy,
)

CTA_REVIEW = "You Have Work to Review"
CTA_CONTINUE = "Continue Your Work"
CTA_START = "Start Next Deliverable"

_REVIEW_STATUSES = {CanonicalStatus.NEEDS_REVIEW, CanonicalStatus.CHANGES_IN_PROGRESS}


@dataclass(frozen=True)
class DashboardContext:
    """Per-request settings every aggregation runs under."""

    policy: StatusPolicy = StatusPolicy.ITEM_STATUS
    audience: Audience = DEFAULT_AUDIENCE

    @classmethod
    def build(cls, policy: Any = None, audience: Any = None) -> "DashboardContext":
        return cls(policy=resolve_status_policy(policy), audience=normalize_audience(audience))


@dataclass
class Collateral:
    id: str
    status: Optional[str] = None
    review_requested_at: Optional[datetime] = None
    type: Optional[str] = None
    title: Optional[str] = None

    @classmethod
    def from_model(cls, row: Any) -> "Collateral":
        return cls(
            id=row.id,
            status=row.status,
            review_requested_at=row.review_requested_at,
            type=row.type,
            title=row.title,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "reviewRequestedAt": self.review_requested_at,
            "type": self.type,
            "title": self.title,
        }


@dataclass
class DeliverableItem:
    id: str
    status: Optional[str] = None
    phase_id: Optional[str] = None
    label: Optional[str] = None
    description: Optional[str] = None
    collateral: List[Collateral] = field(default_factory=list)

    @classmethod
    def from_model(cls, row: Any) -> "DeliverableItem":
        return cls(
            id=row.id,
            status=row.status,
            phase_id=row.work_package_phase_id,
            label=row.deliverable_label,
            description=row.deliverable_description,
            collateral=[Collateral.from_model(c) for c in (row.work_collateral or [])],
        )

    def canonical_status(self, context: DashboardContext) -> CanonicalStatus:
        return normalize_status(self.status, self.collateral, context.policy)

    def to_dict(self, context: DashboardContext) -> dict:
        canonical = self.canonical_status(context)
        presentation = present_status(canonical, context.audience)
        return {
            "id": self.id,
            "status": canonical.value,
            "rawStatus": self.status,
            "statusLabel": presentation.label,
            "statusColor": presentation.color,
            "deliverableLabel": self.label,
            "deliverableDescription": self.description,
            "workPackagePhaseId": self.phase_id,
            "workCollateral": [c.to_dict() for c in self.collateral],
        }


@dataclass
class Phase:
    id: str
    position: int
    name: Optional[str] = None
    description: Optional[str] = None
    items: List[DeliverableItem] = field(default_factory=list)

    @classmethod
    def from_model(cls, row: Any) -> "Phase":
        return cls(id=row.id, position=row.position, name=row.name, description=row.description)

    def summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "position": self.position,
        }

    def to_dict(self, context: DashboardContext) -> dict:
        data = self.summary()
        data["items"] = [item.to_dict(context) for item in self.items]
        return data


@dataclass(frozen=True)
class DashboardStats:
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    needs_review: int = 0
    not_started: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "completed": self.completed,
            "inProgress": self.in_progress,
            "needsReview": self.needs_review,
            "notStarted": self.not_started,
        }


@dataclass(frozen=True)
class PhaseSelection:
    phase: Optional[Phase]
    index: int


@dataclass
class WorkDashboard:
    stats: DashboardStats
    needs_review_items: List[DeliverableItem]
    current_phase: Optional[Phase]
    current_phase_index: int
    next_phase: Optional[Phase]
    cta: str

    def to_dict(self, context: DashboardContext) -> dict:
        return {
            "stats": self.stats.to_dict(),
            "needsReviewItems": [item.to_dict(context) for item in self.needs_review_items],
            "currentPhase": self.current_phase.to_dict(context) if self.current_phase else None,
            "nextPhase": self.next_phase.summary() if self.next_phase else None,
            "currentPhaseIndex": self.current_phase_index,
            "cta": self.cta,
        }


def aggregate_stats(items: Iterable[DeliverableItem], context: DashboardContext) -> DashboardStats:
    # CHANGES_IN_PROGRESS counts as needsReview on every dashboard.
    items = list(items)
    completed = in_progress = needs_review = not_started = 0
    for item in items:
        status = item.canonical_status(context)
        if status is CanonicalStatus.APPROVED:
            completed += 1
        elif status is CanonicalStatus.IN_PROGRESS:
            in_progress += 1
        elif status in _REVIEW_STATUSES:
            needs_review += 1
        else:
            not_started += 1
    return DashboardStats(
        total=len(items),
        completed=completed,
        in_progress=in_progress,
        needs_review=needs_review,
        not_started=not_started,
    )


def items_needing_review(items: Iterable[DeliverableItem], context: DashboardContext) -> List[DeliverableItem]:
    return [item for item in items if item.canonical_status(context) in _REVIEW_STATUSES]


def is_phase_complete(phase: Phase, context: DashboardContext) -> bool:
    if not phase.items:
        return False
    return all(item.canonical_status(context) is CanonicalStatus.APPROVED for item in phase.items)


def current_phase(phases: Sequence[Phase], context: DashboardContext) -> PhaseSelection:
    """Returns the first phase that is not complete.

    ``phases`` must already be sorted by ``position``. When every phase is
    complete the last one is returned so the dashboard always shows a phase.
    """
    if not phases:
        return PhaseSelection(phase=None, index=-1)
    for index, phase in enumerate(phases):
        if not is_phase_complete(phase, context):
            return PhaseSelection(phase=phase, index=index)
    last = len(phases) - 1
    return PhaseSelection(phase=phases[last], index=last)


def next_phase(phases: Sequence[Phase], current_index: int) -> Optional[Phase]:
    if current_index < 0:
        return None
    index = current_index + 1
    if index >= len(phases):
        return None
    return phases[index]


def compute_cta(stats: DashboardStats) -> str:
    if stats.needs_review > 0:
        return CTA_REVIEW
    if stats.in_progress > 0:
        return CTA_CONTINUE
    return CTA_START


def phases_from_items(phases: Sequence[Phase], items: Iterable[DeliverableItem]) -> List[Phase]:
    by_phase: dict[str, List[DeliverableItem]] = {}
    for item in items:
        if item.phase_id is None:
            continue
        by_phase.setdefault(item.phase_id, []).append(item)
    for phase in phases:
        phase.items = by_phase.get(phase.id, [])
    return list(phases)


def build_dashboard(
    phases: Sequence[Phase],
    items: Sequence[DeliverableItem],
    context: DashboardContext,
) -> WorkDashboard:
    stats = aggregate_stats(items, context)
    attached = phases_from_items(phases, items)
    selection = current_phase(attached, context)
    return WorkDashboard(
        stats=stats,
        needs_review_items=items_needing_review(items, context),
        current_phase=selection.phase,
        current_phase_index=selection.index,
        next_phase=next_phase(attached, selection.index),
        cta=compute_cta(stats),
    )


def empty_dashboard() -> WorkDashboard:
    return WorkDashboard(
        stats=DashboardStats(),
        needs_review_items=[],
        current_phase=None,
        current_phase_index=-1,
        next_phase=None,
        cta=CTA_START,
    )
