from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------- Contact / Company ----------
class CompanyOut(CamelModel):
    id: str
    company_name: Optional[str] = Field(default=None, alias="companyName")


class ContactOut(CamelModel):
    id: str
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    email: Optional[str] = None
    role: str = "contact"
    owner_id: Optional[str] = Field(default=None, alias="ownerId")
    crm_id: Optional[str] = Field(default=None, alias="crmId")
    is_activated: bool = Field(default=False, alias="isActivated")
    contact_company_id: Optional[str] = Field(default=None, alias="contactCompanyId")
    company_name: Optional[str] = Field(default=None, alias="companyName")


class ProposalSummaryOut(CamelModel):
    id: str
    client_name: Optional[str] = Field(default=None, alias="clientName")
    client_company: Optional[str] = Field(default=None, alias="clientCompany")
    status: str
    total_price: Optional[float] = Field(default=None, alias="totalPrice")
    date_issued: Optional[datetime] = Field(default=None, alias="dateIssued")


class HydrationOut(CamelModel):
    contact: ContactOut
    company: Optional[CompanyOut] = None
    proposals: Optional[List[ProposalSummaryOut]] = None
    firebase_uid: str = Field(alias="firebaseUid")


class HydrationResponse(CamelModel):
    success: bool = True
    data: HydrationOut


# ---------- Billing ----------
class InvoiceProposalOut(CamelModel):
    id: str
    title: Optional[str] = None


class InvoiceOut(CamelModel):
    id: str
    invoice_number: str = Field(alias="invoiceNumber")
    amount: float
    currency: str
    description: Optional[str] = None
    status: str
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    paid_at: Optional[datetime] = Field(default=None, alias="paidAt")
    paid_by_contact_id: Optional[str] = Field(default=None, alias="paidByContactId")
    proposal: InvoiceProposalOut


class InvoiceListResponse(CamelModel):
    success: bool = True
    invoices: List[InvoiceOut]


class CheckoutSessionOut(CamelModel):
    success: bool = True
    client_secret: Optional[str] = Field(default=None, alias="clientSecret")
    session_id: str = Field(alias="sessionId")


# ---------- Review ----------
class FeedbackPayload(CamelModel):
    presentation_id: Optional[str] = Field(default=None, alias="presentationId")
    section_index: Any = Field(default=None, alias="sectionIndex")
    comment: Any = None


class SlidesPayload(CamelModel):
    presentation_id: Optional[str] = Field(default=None, alias="presentationId")
    slides: Any = None


# ---------- Admin ----------
class UpsertFirebaseUidPayload(CamelModel):
    firebase_uid: Optional[str] = Field(default=None, alias="firebaseUid")
    email: Optional[str] = None


class StatusOkResponse(CamelModel):
    success: bool = True
    status: str = "ok"
