from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Contact, Proposal
from portal_state import HYDRATION_PROPOSAL_STATUSES

logger = logging.getLogger(__name__)

HYDRATION_PROPOSAL_LIMIT = 10


def contact_payload(contact: Contact) -> dict:
    company = contact.company
    return {
        "id": contact.id,
        "first_name": contact.first_name,
        "last_name": contact.last_name,
        "email": contact.email,
        "role": contact.role or "contact",
        "owner_id": contact.owner_id,
        "crm_id": contact.crm_id,
        "is_activated": bool(contact.is_activated),
        "contact_company_id": contact.contact_company_id,
        "company_name": company.company_name if company else None,
    }


def contact_summary(contact: Contact) -> dict:
    return {
        "id": contact.id,
        "firstName": contact.first_name,
        "lastName": contact.last_name,
        "email": contact.email,
    }


def _recent_proposals(db: Session, company_id: str) -> list[dict]:
    stmt = (
        select(Proposal)
        .where(
            Proposal.company_id == company_id,
            Proposal.status.in_(HYDRATION_PROPOSAL_STATUSES),
        )
        .order_by(Proposal.created_at.desc())
        .limit(HYDRATION_PROPOSAL_LIMIT)
    )
    rows = db.execute(stmt).scalars().all()
    return [
        {
            "id": p.id,
            "client_name": p.client_name,
            "client_company": p.client_company,
            "status": p.status,
            "total_price": p.total_price,
            "date_issued": p.date_issued,
        }
        for p in rows
    ]


def build_hydration(db: Session, contact: Contact, firebase_uid: str, *, include_proposals: bool = False) -> dict:
    company = contact.company
    data = {
        "contact": contact_payload(contact),
        "company": {"id": company.id, "company_name": company.company_name} if company else None,
        "firebase_uid": firebase_uid,
    }
    if include_proposals:
        proposals: list[dict] = []
        if contact.contact_company_id:
            try:
                proposals = _recent_proposals(db, contact.contact_company_id)
            except SQLAlchemyError as exc:
                # Hydration still succeeds without proposals.
                logger.warning("could not load proposals for company=%s: %s", contact.contact_company_id, exc)
                db.rollback()
        data["proposals"] = proposals
    logger.info(
        "contact hydrated contact_id=%s company_id=%s proposals=%s",
        contact.id,
        contact.contact_company_id,
        len(data.get("proposals") or []),
    )
    return {"success": True, "data": data}
