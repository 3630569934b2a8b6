"""Identity provider client.

Verifies portal ID tokens with the Firebase Admin SDK (signature, audience,
issuer and expiry are checked locally against Google's public keys) and
resolves a user's email by uid for the admin linking flow.

Credentials come from ``FIREBASE_SERVICE_ACCOUNT_KEY`` (the service-account
JSON itself) or ``FIREBASE_SERVICE_ACCOUNT_PATH`` (a file holding it).
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

import firebase_admin
from firebase_admin import auth, credentials, exceptions as firebase_exceptions

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "client-portal"


class IdentityError(Exception):
    """Token could not be verified."""


class IdentityConfigError(IdentityError):
    """Provider credentials are missing."""


@dataclass(frozen=True)
class IdentityClaims:
    uid: str
    email: Optional[str] = None


def _load_credentials() -> credentials.Certificate:
    raw = os.getenv("FIREBASE_SERVICE_ACCOUNT_KEY", "").strip()
    path = os.getenv("FIREBASE_SERVICE_ACCOUNT_PATH", "").strip()
    try:
        if raw:
            return credentials.Certificate(json.loads(raw))
        if path:
            return credentials.Certificate(path)
    except (ValueError, OSError) as exc:
        raise IdentityConfigError(f"invalid Firebase service account: {exc}") from exc
    raise IdentityConfigError("FIREBASE_SERVICE_ACCOUNT_KEY or FIREBASE_SERVICE_ACCOUNT_PATH is not configured")


def _initialize_app() -> firebase_admin.App:
    try:
        return firebase_admin.get_app(FIREBASE_APP_NAME)
    except ValueError:
        pass
    options = {}
    project_id = os.getenv("FIREBASE_PROJECT_ID", "").strip()
    if project_id:
        options["projectId"] = project_id
    app = firebase_admin.initialize_app(_load_credentials(), options or None, name=FIREBASE_APP_NAME)
    logger.info("firebase admin initialized app=%s", FIREBASE_APP_NAME)
    return app


class IdentityClient:
    def __init__(self, app: Any = None):
        self._app = app

    @property
    def app(self) -> Any:
        if self._app is None:
            self._app = _initialize_app()
        return self._app

    def verify_id_token(self, token: str) -> IdentityClaims:
        value = (token or "").strip()
        if not value:
            raise IdentityError("token is empty")
        try:
            decoded = auth.verify_id_token(value, app=self.app)
        except auth.ExpiredIdTokenError as exc:
            raise IdentityError("token has expired") from exc
        except auth.InvalidIdTokenError as exc:
            raise IdentityError(f"token is invalid: {exc}") from exc
        except auth.CertificateFetchError as exc:
            logger.error("could not fetch Firebase public keys: %s", exc)
            raise IdentityError("identity provider unreachable") from exc
        except ValueError as exc:
            raise IdentityError(f"token is malformed: {exc}") from exc
        return IdentityClaims(uid=decoded["uid"], email=decoded.get("email"))

    def lookup_user_email(self, uid: str) -> Optional[str]:
        try:
            user = auth.get_user(uid, app=self.app)
        except auth.UserNotFoundError:
            return None
        except (ValueError, firebase_exceptions.FirebaseError) as exc:
            raise IdentityError(f"could not load user {uid}: {exc}") from exc
        return user.email


_CLIENT: IdentityClient | None = None


def get_identity_client() -> IdentityClient:
    global _CLIENT
    if _CLIENT is None:
        _CLIENT = IdentityClient()
    return _CLIENT
