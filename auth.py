from __future__ import annotations

import hmac
import logging
import os
from dataclasses import dataclass

from fastapi import Depends, Header, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from api_errors import ApiError
from database import SessionLocal
from identity import IdentityClaims, IdentityConfigError, IdentityError, get_identity_client
from models import Contact
from work_dashboard import DashboardContext

logger = logging.getLogger(__name__)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _extract_token(authorization: str | None) -> str | None:
    if authorization:
        value = authorization.strip()
        if value.lower().startswith("bearer "):
            return value.split(" ", 1)[1].strip() or None
    return None


def get_identity_claims(authorization: str | None = Header(default=None)) -> IdentityClaims:
    token = _extract_token(authorization)
    if not token:
        raise ApiError(status_code=401, code="auth_required", message="Missing bearer token", field="authorization")
    try:
        return get_identity_client().verify_id_token(token)
    except IdentityConfigError:
        logger.exception("identity provider is not configured")
        raise ApiError(status_code=500, code="server_error", message="Identity provider unavailable", field=None)
    except IdentityError as exc:
        logger.warning("token verification failed: %s", exc)
        raise ApiError(
            status_code=401,
            code="invalid_token",
            message="Unauthorized: Invalid or expired token",
            field="authorization",
        )


def get_current_contact(
    claims: IdentityClaims = Depends(get_identity_claims),
    db: Session = Depends(get_db),
) -> Contact:
    contact = db.execute(select(Contact).where(Contact.firebase_uid == claims.uid)).scalar_one_or_none()
    if not contact:
        logger.info("no contact linked to uid=%s", claims.uid)
        raise ApiError(
            status_code=404,
            code="contact_not_found",
            message="Contact not found. Please ensure your account is activated.",
            field="firebase_uid",
        )
    return contact


@dataclass(frozen=True)
class PortalSession:
    """Who is calling and how their dashboards are computed."""

    contact: Contact
    dashboard: DashboardContext

    @property
    def company_id(self) -> str | None:
        return self.contact.contact_company_id


def get_portal_session(
    contact: Contact = Depends(get_current_contact),
    audience: str | None = Query(default=None),
) -> PortalSession:
    return PortalSession(contact=contact, dashboard=DashboardContext.build(audience=audience))


def require_admin_key(x_admin_key: str | None = Header(default=None, alias="X-Admin-Key")) -> None:
    expected = os.getenv("ADMIN_API_KEY", "")
    if not expected or not x_admin_key or not hmac.compare_digest(expected, x_admin_key.strip()):
        raise ApiError(status_code=403, code="forbidden", message="Admin access required", field="X-Admin-Key")
