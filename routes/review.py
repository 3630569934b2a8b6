from __future__ import annotations

import logging
import os

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

import schemas
from api_errors import forbidden, missing_fields_error, not_found, validation_error
from auth import get_current_contact, get_db
from models import Contact, Presentation, WorkCollateral, WorkPackage, WorkPackageItem

router = APIRouter(prefix="/api/portal/review", tags=["Review"])
logger = logging.getLogger(__name__)

COLLATERAL_TYPE_CLE_DECK = "CLE_DECK"


def _linked_presentation_ids(collateral: list[WorkCollateral]) -> list[str]:
    ids = []
    for record in collateral:
        content = record.content
        if content and content.get("presentationId"):
            ids.append(str(content["presentationId"]))
    return ids


def _company_deck_collateral(db: Session, company_id: str | None) -> list[WorkCollateral]:
    if not company_id:
        return []
    return db.execute(
        select(WorkCollateral)
        .join(WorkCollateral.work_package_item)
        .join(WorkPackageItem.work_package)
        .where(
            WorkPackage.company_id == company_id,
            WorkCollateral.type == COLLATERAL_TYPE_CLE_DECK,
        )
    ).scalars().all()


def _get_reviewable_presentation(db: Session, presentation_id: str, contact: Contact) -> Presentation:
    presentation = db.get(Presentation, presentation_id)
    if not presentation:
        raise not_found("Presentation", field="presentationId")
    allowed = _linked_presentation_ids(_company_deck_collateral(db, contact.contact_company_id))
    if presentation.id not in allowed:
        raise forbidden("Presentation does not belong to your company", field="presentationId")
    return presentation


def _presentation_payload(presentation: Presentation) -> dict:
    return {
        "id": presentation.id,
        "title": presentation.title,
        "slides": presentation.slides,
        "feedback": presentation.feedback,
        "createdAt": presentation.created_at,
        "updatedAt": presentation.updated_at,
    }


@router.get("/presentation")
def presentation_for_review(
    work_item_id: str | None = Query(default=None, alias="workItemId"),
    db: Session = Depends(get_db),
    contact: Contact = Depends(get_current_contact),
):
    item_id = work_item_id or os.getenv("REVIEW_WORK_ITEM_ID", "").strip()
    if not item_id:
        raise missing_fields_error(["workItemId"])

    item = db.get(WorkPackageItem, item_id)
    if not item:
        raise not_found("WorkItem", field="workItemId")
    if not item.work_package or item.work_package.company_id != contact.contact_company_id:
        raise forbidden("WorkItem does not belong to your company", field="workItemId")

    decks = [c for c in item.work_collateral if c.type == COLLATERAL_TYPE_CLE_DECK]
    presentation = None
    for presentation_id in _linked_presentation_ids(decks):
        presentation = db.get(Presentation, presentation_id)
        if presentation:
            break

    if not presentation:
        raise not_found("Presentation for this WorkItem", field="workItemId")

    return {"success": True, "presentation": _presentation_payload(presentation)}


@router.post("/cle/feedback", response_model=schemas.StatusOkResponse)
def save_feedback(
    payload: schemas.FeedbackPayload,
    db: Session = Depends(get_db),
    contact: Contact = Depends(get_current_contact),
):
    section_index = payload.section_index
    if (
        not payload.presentation_id
        or not isinstance(section_index, int)
        or isinstance(section_index, bool)
        or not isinstance(payload.comment, str)
    ):
        raise validation_error("presentationId, sectionIndex, and comment are required")

    presentation = _get_reviewable_presentation(db, payload.presentation_id, contact)
    feedback = presentation.feedback
    feedback[str(section_index)] = payload.comment
    presentation.feedback = feedback
    db.commit()
    logger.info("feedback saved presentation_id=%s section=%s contact_id=%s", presentation.id, section_index, contact.id)
    return {"success": True, "status": "ok"}


@router.post("/cle/slides", response_model=schemas.StatusOkResponse)
def save_slides(
    payload: schemas.SlidesPayload,
    db: Session = Depends(get_db),
    contact: Contact = Depends(get_current_contact),
):
    if not payload.presentation_id or not payload.slides:
        raise validation_error("presentationId and slides are required")

    presentation = _get_reviewable_presentation(db, payload.presentation_id, contact)
    presentation.slides = payload.slides
    db.commit()
    logger.info("slides saved presentation_id=%s contact_id=%s", presentation.id, contact.id)
    return {"success": True, "status": "ok"}
