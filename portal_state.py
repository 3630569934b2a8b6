from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

PROPOSAL_STATUS_DRAFT = "draft"
PROPOSAL_STATUS_ACTIVE = "active"
PROPOSAL_STATUS_APPROVED = "approved"

HYDRATION_PROPOSAL_STATUSES = (
    PROPOSAL_STATUS_DRAFT,
    PROPOSAL_STATUS_ACTIVE,
    PROPOSAL_STATUS_APPROVED,
)

ROUTE_DASHBOARD = "/dashboard"
ROUTE_ONBOARDING = "/onboarding"


@dataclass(frozen=True)
class ClientRouting:
    has_approved_proposals: bool
    has_deliverables: bool
    has_draft_proposals: bool
    has_active_proposals: bool
    work_has_begun: bool
    route: str
    proposal_id: Optional[str]

    def flags(self) -> dict:
        return {
            "hasApprovedProposals": self.has_approved_proposals,
            "hasDeliverables": self.has_deliverables,
            "hasDraftProposals": self.has_draft_proposals,
            "hasActiveProposals": self.has_active_proposals,
            "workHasBegun": self.work_has_begun,
        }


def _proposal_status(proposal: Any) -> str:
    return str(getattr(proposal, "status", "") or "").strip().lower()


def _first_with_status(proposals: Sequence[Any], status: str) -> Any | None:
    for proposal in proposals:
        if _proposal_status(proposal) == status:
            return proposal
    return None


def resolve_client_routing(proposals: Sequence[Any], deliverables: Sequence[Any]) -> ClientRouting:
    """Decides where the portal sends a contact after login.

    Work has begun once a proposal is approved or any deliverable exists;
    otherwise the first draft proposal is shown, falling back to onboarding.
    """
    first_draft = _first_with_status(proposals, PROPOSAL_STATUS_DRAFT)
    first_approved = _first_with_status(proposals, PROPOSAL_STATUS_APPROVED)
    has_active = _first_with_status(proposals, PROPOSAL_STATUS_ACTIVE) is not None
    has_deliverables = len(deliverables) > 0
    work_has_begun = first_approved is not None or has_deliverables

    if work_has_begun:
        route = ROUTE_DASHBOARD
    elif first_draft is not None:
        route = f"/proposals/{first_draft.id}"
    else:
        route = ROUTE_ONBOARDING

    focus = first_approved or first_draft
    return ClientRouting(
        has_approved_proposals=first_approved is not None,
        has_deliverables=has_deliverables,
        has_draft_proposals=first_draft is not None,
        has_active_proposals=has_active,
        work_has_begun=work_has_begun,
        route=route,
        proposal_id=focus.id if focus is not None else None,
    )
