from datetime import datetime
import json
from uuid import uuid4
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Date, Boolean, Float
from sqlalchemy.orm import relationship
from database import Base


def _new_id() -> str:
    return uuid4().hex


def _load_json(raw, default):
    if not raw:
        return default
    try:
        return json.loads(raw)
    except Exception:
        return default


def _dump_json(value) -> str | None:
    if value is None:
        return None
    if hasattr(value, "model_dump"):
        value = value.model_dump()
    return json.dumps(value, ensure_ascii=False, default=str)


class Company(Base):
    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=_new_id)
    company_name = Column(String(255), nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    contacts = relationship("Contact", back_populates="company", lazy="selectin")
    proposals = relationship("Proposal", back_populates="company", lazy="selectin")
    work_packages = relationship("WorkPackage", back_populates="company")


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(String(36), primary_key=True, default=_new_id)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    goes_by = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    role = Column(String(30), nullable=True)
    owner_id = Column(String(36), nullable=True)
    crm_id = Column(String(36), nullable=True)
    firebase_uid = Column(String(128), nullable=True, unique=True, index=True)
    is_activated = Column(Boolean, nullable=False, default=False)

    contact_company_id = Column(
        String(36), ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    company = relationship("Company", back_populates="contacts")
    deliverables = relationship("ConsultantDeliverable", back_populates="contact")

    @property
    def display_name(self) -> str | None:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.goes_by or None


class Proposal(Base):
    __tablename__ = "proposals"

    id = Column(String(36), primary_key=True, default=_new_id)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=True, index=True)
    client_name = Column(String(255), nullable=True)
    client_company = Column(String(255), nullable=True)
    purpose = Column(Text, nullable=True)
    status = Column(String(30), nullable=False, default="draft", index=True)
    total_price = Column(Float, nullable=True)
    date_issued = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    company = relationship("Company", back_populates="proposals")
    invoices = relationship(
        "Invoice",
        back_populates="proposal",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Invoice.due_date",
    )


class ConsultantDeliverable(Base):
    __tablename__ = "consultant_deliverables"

    id = Column(String(36), primary_key=True, default=_new_id)
    contact_id = Column(String(36), ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False, index=True)
    proposal_id = Column(String(36), ForeignKey("proposals.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    status = Column(String(30), nullable=True)
    category = Column(String(100), nullable=True)
    due_date = Column(DateTime, nullable=True)

    contact = relationship("Contact", back_populates="deliverables")
    proposal = relationship("Proposal")


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=_new_id)
    proposal_id = Column(String(36), ForeignKey("proposals.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice_number = Column(String(64), nullable=False)
    amount = Column(Float, nullable=False, default=0)
    currency = Column(String(8), nullable=False, default="USD")
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    due_date = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    paid_by_contact_id = Column(String(36), ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True)
    week = Column(Integer, nullable=True)
    trigger = Column(String(255), nullable=True)

    stripe_customer_id = Column(String(255), nullable=True)
    stripe_checkout_session_id = Column(String(255), nullable=True, unique=True, index=True)
    stripe_payment_intent_id = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    proposal = relationship("Proposal", back_populates="invoices")


class WorkPackage(Base):
    __tablename__ = "work_packages"

    id = Column(String(36), primary_key=True, default=_new_id)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)
    contact_id = Column(String(36), ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    priority_summary = Column(Text, nullable=True)
    total_cost = Column(Float, nullable=True)
    effective_start_date = Column(Date, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    company = relationship("Company", back_populates="work_packages")
    contact = relationship("Contact")
    phases = relationship(
        "WorkPackagePhase",
        back_populates="work_package",
        cascade="all, delete-orphan",
        order_by="WorkPackagePhase.position",
    )
    items = relationship(
        "WorkPackageItem",
        back_populates="work_package",
        cascade="all, delete-orphan",
    )


class WorkPackagePhase(Base):
    __tablename__ = "work_package_phases"

    id = Column(String(36), primary_key=True, default=_new_id)
    work_package_id = Column(
        String(36), ForeignKey("work_packages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=0)

    work_package = relationship("WorkPackage", back_populates="phases")
    items = relationship("WorkPackageItem", back_populates="phase", order_by="WorkPackageItem.id")


class WorkPackageItem(Base):
    __tablename__ = "work_package_items"

    id = Column(String(36), primary_key=True, default=_new_id)
    work_package_id = Column(
        String(36), ForeignKey("work_packages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    work_package_phase_id = Column(
        String(36), ForeignKey("work_package_phases.id", ondelete="SET NULL"), nullable=True, index=True
    )
    deliverable_label = Column(String(255), nullable=True)
    deliverable_description = Column(Text, nullable=True)
    status = Column(String(30), nullable=True, default="NOT_STARTED")

    work_package = relationship("WorkPackage", back_populates="items")
    phase = relationship("WorkPackagePhase", back_populates="items")
    work_collateral = relationship(
        "WorkCollateral",
        back_populates="work_package_item",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="WorkCollateral.created_at",
    )


class WorkCollateral(Base):
    __tablename__ = "work_collateral"

    id = Column(String(36), primary_key=True, default=_new_id)
    work_package_item_id = Column(
        String(36), ForeignKey("work_package_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(String(50), nullable=True, index=True)
    title = Column(String(255), nullable=True)
    status = Column(String(30), nullable=True)
    content_json = Column("content", Text, nullable=True)
    review_requested_at = Column(DateTime, nullable=True)
    review_completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    work_package_item = relationship("WorkPackageItem", back_populates="work_collateral")

    @property
    def content(self) -> dict | None:
        data = _load_json(self.content_json, None)
        if not isinstance(data, dict):
            return None
        return data

    @content.setter
    def content(self, value) -> None:
        self.content_json = _dump_json(value)


class Presentation(Base):
    __tablename__ = "presentations"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(255), nullable=True)
    slides_json = Column("slides", Text, nullable=True)
    feedback_json = Column("feedback", Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def slides(self):
        return _load_json(self.slides_json, None)

    @slides.setter
    def slides(self, value) -> None:
        self.slides_json = _dump_json(value)

    @property
    def feedback(self) -> dict:
        data = _load_json(self.feedback_json, {})
        if not isinstance(data, dict):
            return {}
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    @feedback.setter
    def feedback(self, value) -> None:
        if not isinstance(value, dict):
            self.feedback_json = "{}"
            return
        normalized = {str(key): str(val) for key, val in value.items() if val is not None}
        self.feedback_json = json.dumps(normalized, ensure_ascii=False)
