from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

import schemas
from auth import get_current_contact, get_db, get_identity_claims
from hydration import build_hydration
from identity import IdentityClaims
from models import Contact, ConsultantDeliverable, Proposal
from portal_state import resolve_client_routing

router = APIRouter(prefix="/api/client", tags=["Client"])


@router.get("", response_model=schemas.HydrationResponse)
def hydrate_contact(
    db: Session = Depends(get_db),
    claims: IdentityClaims = Depends(get_identity_claims),
    contact: Contact = Depends(get_current_contact),
):
    return build_hydration(db, contact, claims.uid)


@router.get("/hydrate", response_model=schemas.HydrationResponse)
def hydrate_portal(
    db: Session = Depends(get_db),
    claims: IdentityClaims = Depends(get_identity_claims),
    contact: Contact = Depends(get_current_contact),
):
    return build_hydration(db, contact, claims.uid, include_proposals=True)


@router.get("/state")
def client_state(
    db: Session = Depends(get_db),
    contact: Contact = Depends(get_current_contact),
):
    proposals = []
    if contact.contact_company_id:
        proposals = db.execute(
            select(Proposal)
            .where(Proposal.company_id == contact.contact_company_id)
            .order_by(Proposal.created_at.desc())
        ).scalars().all()

    deliverables = db.execute(
        select(ConsultantDeliverable)
        .where(ConsultantDeliverable.contact_id == contact.id)
        .order_by(ConsultantDeliverable.due_date.asc())
    ).scalars().all()

    routing = resolve_client_routing(proposals, deliverables)
    company = contact.company

    return {
        "success": True,
        "state": {
            "contact": {
                "id": contact.id,
                "firstName": contact.first_name,
                "lastName": contact.last_name,
                "email": contact.email,
                "contactCompanyId": contact.contact_company_id,
                "companyName": company.company_name if company else None,
            },
            "proposals": [
                {
                    "id": p.id,
                    "clientCompany": p.client_company,
                    "status": p.status,
                    "purpose": p.purpose,
                }
                for p in proposals
            ],
            "deliverables": [
                {
                    "id": d.id,
                    "title": d.title,
                    "status": d.status,
                    "category": d.category,
                    "dueDate": d.due_date,
                }
                for d in deliverables
            ],
            **routing.flags(),
            "routing": {
                "route": routing.route,
                "proposalId": routing.proposal_id,
            },
        },
    }
