import hashlib
import hmac
import os
import time
from datetime import datetime
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi import Header

DB_PATH = Path("test_portal.db")
DB_URL = "sqlite:///./test_portal.db"
ADMIN_KEY = "integration-admin-key"
WEBHOOK_SECRET = "whsec_integration"

os.environ.setdefault("DATABASE_URL", DB_URL)
os.environ.setdefault("ADMIN_API_KEY", ADMIN_KEY)
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
os.environ.setdefault("APP_ENV", "test")

if DB_PATH.exists():
    DB_PATH.unlink()


def pytest_sessionfinish(session, exitstatus):
    if DB_PATH.exists():
        try:
            DB_PATH.unlink()
        except OSError:
            pass


def _claims_from_bearer(authorization: str | None = Header(default=None)):
    # Tests use the identity uid itself as the bearer token.
    from api_errors import ApiError
    from identity import IdentityClaims

    value = (authorization or "").strip()
    if not value.lower().startswith("bearer ") or not value[7:].strip():
        raise ApiError(status_code=401, code="auth_required", message="Missing bearer token", field="authorization")
    return IdentityClaims(uid=value[7:].strip(), email=None)


@pytest.fixture(scope="session", autouse=True)
def _schema():
    from database import Base, engine
    import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from auth import get_identity_claims
    from main import app

    app.dependency_overrides[get_identity_claims] = _claims_from_bearer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    from database import SessionLocal

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _stripe_signature(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    # Signs the way Stripe does when it delivers an event: HMAC-SHA256 over "<t>.<body>".
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


@pytest.fixture
def sign_stripe_payload():
    return _stripe_signature


class PortalSeeder:
    """Creates a company with one linked contact and lets tests add work data."""

    def __init__(self, db):
        self.db = db
        self.suffix = uuid4().hex[:8]
        self.company = None
        self.contact = None

    def tenant(self, name: str = "Acme") -> "PortalSeeder":
        from models import Company, Contact

        self.company = Company(company_name=f"{name} {self.suffix}")
        self.db.add(self.company)
        self.db.flush()
        self.contact = Contact(
            first_name="Dana",
            last_name="Client",
            email=f"dana.{self.suffix}@example.com",
            firebase_uid=f"uid-{self.suffix}",
            is_activated=True,
            contact_company_id=self.company.id,
        )
        self.db.add(self.contact)
        self.db.commit()
        return self

    @property
    def uid(self) -> str:
        return self.contact.firebase_uid

    def work_package(self, title: str = "Growth Plan", *, created_at: datetime | None = None):
        from models import WorkPackage

        wp = WorkPackage(
            title=title,
            description="Quarterly engagement",
            company_id=self.company.id,
            contact_id=self.contact.id,
            created_at=created_at or datetime.utcnow(),
        )
        self.db.add(wp)
        self.db.commit()
        return wp

    def phase(self, work_package, name: str, position: int):
        from models import WorkPackagePhase

        phase = WorkPackagePhase(work_package_id=work_package.id, name=name, position=position)
        self.db.add(phase)
        self.db.commit()
        return phase

    def item(self, work_package, phase, status: str | None, label: str = "Deliverable"):
        from models import WorkPackageItem

        item = WorkPackageItem(
            work_package_id=work_package.id,
            work_package_phase_id=phase.id if phase else None,
            deliverable_label=label,
            status=status,
        )
        self.db.add(item)
        self.db.commit()
        return item

    def collateral(self, item, *, type: str = "DOC", content: dict | None = None, review_requested: bool = False):
        from models import WorkCollateral

        record = WorkCollateral(
            work_package_item_id=item.id,
            type=type,
            title=f"{type} collateral",
            review_requested_at=datetime.utcnow() if review_requested else None,
        )
        record.content = content
        self.db.add(record)
        self.db.commit()
        return record

    def proposal(self, status: str = "draft", *, created_at: datetime | None = None):
        from models import Proposal

        proposal = Proposal(
            company_id=self.company.id,
            client_company=self.company.company_name,
            status=status,
            created_at=created_at or datetime.utcnow(),
        )
        self.db.add(proposal)
        self.db.commit()
        return proposal

    def invoice(self, proposal, *, amount: float = 1500.0, status: str = "pending", number: str | None = None):
        from models import Invoice

        invoice = Invoice(
            proposal_id=proposal.id,
            invoice_number=number or f"INV-{uuid4().hex[:6]}",
            amount=amount,
            currency="USD",
            status=status,
        )
        self.db.add(invoice)
        self.db.commit()
        return invoice


@pytest.fixture
def seed(db):
    return PortalSeeder(db).tenant()


@pytest.fixture
def other_seed(db):
    return PortalSeeder(db).tenant(name="Globex")
