from __future__ import annotations

import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from sqlalchemy import func, select

from database import SessionLocal
from identity import IdentityError, get_identity_client
from models import Contact


def _email_for_uid(firebase_uid: str, identity) -> str:
    try:
        email = (identity or get_identity_client()).lookup_user_email(firebase_uid)
    except IdentityError as exc:
        raise SystemExit(f"could not look up uid {firebase_uid}: {exc}")
    if not email:
        raise SystemExit(f"no email on record for uid {firebase_uid}; pass it explicitly")
    return email


def link_firebase_uid(firebase_uid: str, email: str | None = None, identity=None) -> Contact:
    """Attaches an identity-provider uid to the contact owning ``email`` and activates it.

    Without ``email`` the address registered for the uid in Firebase is used.
    """
    firebase_uid = firebase_uid.strip()
    email = (email or _email_for_uid(firebase_uid, identity)).strip().lower()
    db = SessionLocal()
    try:
        contact = db.execute(
            select(Contact).where(func.lower(Contact.email) == email).limit(1)
        ).scalars().first()
        if not contact:
            raise SystemExit(f"contact not found for email: {email}")

        print(f"link_firebase_uid: contact {contact.id} ({contact.display_name})")
        print(f"- current uid: {contact.firebase_uid or '-'}")

        owner = db.execute(select(Contact).where(Contact.firebase_uid == firebase_uid)).scalar_one_or_none()
        if owner and owner.id != contact.id:
            raise SystemExit(f"uid {firebase_uid} is already assigned to contact {owner.id} ({owner.email})")

        contact.firebase_uid = firebase_uid
        contact.is_activated = True
        db.commit()
        db.refresh(contact)
        print(f"- linked uid: {contact.firebase_uid}")
        print(f"- activated: {contact.is_activated}")
        return contact
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) not in (2, 3):
        raise SystemExit("usage: python scripts/link_firebase_uid.py <firebase_uid> [email]")
    link_firebase_uid(sys.argv[1], sys.argv[2] if len(sys.argv) == 3 else None)
