from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

import schemas
from api_errors import ApiError, missing_fields_error, not_found
from auth import get_db, require_admin_key
from identity import IdentityError, get_identity_client
from models import Contact

router = APIRouter(prefix="/api/admin", tags=["Admin"])
logger = logging.getLogger(__name__)


def _normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


@router.post("/upsert-firebase-uid")
def upsert_firebase_uid(
    payload: schemas.UpsertFirebaseUidPayload,
    _admin=Depends(require_admin_key),
    db: Session = Depends(get_db),
):
    firebase_uid = (payload.firebase_uid or "").strip()
    if not firebase_uid:
        raise missing_fields_error(["firebaseUid"])

    email = _normalize_email(payload.email)
    if not email:
        try:
            email = _normalize_email(get_identity_client().lookup_user_email(firebase_uid))
        except IdentityError as exc:
            logger.warning("could not resolve email for uid=%s: %s", firebase_uid, exc)
            raise ApiError(
                status_code=400,
                code="email_unavailable",
                message="Could not get email from the identity provider. Please provide email in request body.",
                field="email",
            )
    if not email:
        raise missing_fields_error(["email"])

    contact = db.execute(
        select(Contact).where(func.lower(Contact.email) == email).limit(1)
    ).scalars().first()
    if not contact:
        raise not_found(f"Contact with email {email}", field="email")

    owner = db.execute(select(Contact).where(Contact.firebase_uid == firebase_uid)).scalar_one_or_none()
    if owner and owner.id != contact.id:
        raise ApiError(
            status_code=409,
            code="conflict",
            message=f"Firebase UID {firebase_uid} is already assigned to contact {owner.id}",
            field="firebaseUid",
        )

    previous = contact.firebase_uid
    contact.firebase_uid = firebase_uid
    contact.is_activated = True
    db.commit()
    db.refresh(contact)
    logger.info("linked uid to contact_id=%s (previous uid=%s)", contact.id, previous)

    return {
        "success": True,
        "contact": {
            "id": contact.id,
            "email": contact.email,
            "firstName": contact.first_name,
            "lastName": contact.last_name,
            "firebaseUid": contact.firebase_uid,
            "isActivated": contact.is_activated,
        },
        "message": f"Firebase UID {firebase_uid} successfully linked to contact {contact.id}",
    }
