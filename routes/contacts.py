from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

import schemas
from api_errors import forbidden, not_found
from auth import get_current_contact, get_db, get_identity_claims
from hydration import build_hydration
from identity import IdentityClaims
from models import Contact, ConsultantDeliverable

router = APIRouter(prefix="/api/contacts", tags=["Contacts"])


@router.get("/by-firebase-uid", response_model=schemas.HydrationResponse)
def contact_by_firebase_uid(
    db: Session = Depends(get_db),
    claims: IdentityClaims = Depends(get_identity_claims),
    contact: Contact = Depends(get_current_contact),
):
    return build_hydration(db, contact, claims.uid)


def _ensure_contact_visible(target: Contact, caller: Contact) -> None:
    if target.id == caller.id:
        return
    if caller.contact_company_id and target.contact_company_id == caller.contact_company_id:
        return
    raise forbidden("Contact does not belong to your company", field="contact_id")


@router.get("/{contact_id}/deliverables")
def contact_deliverables(
    contact_id: str,
    db: Session = Depends(get_db),
    current_contact: Contact = Depends(get_current_contact),
):
    target = db.get(Contact, contact_id)
    if not target:
        raise not_found("Contact", field="contact_id")
    _ensure_contact_visible(target, current_contact)

    deliverables = db.execute(
        select(ConsultantDeliverable)
        .options(joinedload(ConsultantDeliverable.proposal))
        .where(ConsultantDeliverable.contact_id == target.id)
        .order_by(ConsultantDeliverable.due_date.asc())
    ).scalars().all()

    return {
        "success": True,
        "deliverables": [
            {
                "id": d.id,
                "contactId": d.contact_id,
                "title": d.title,
                "status": d.status,
                "category": d.category,
                "dueDate": d.due_date,
                "proposal": (
                    {
                        "id": d.proposal.id,
                        "clientCompany": d.proposal.client_company,
                        "status": d.proposal.status,
                    }
                    if d.proposal
                    else None
                ),
            }
            for d in deliverables
        ],
    }
