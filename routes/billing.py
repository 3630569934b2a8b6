from __future__ import annotations

import logging
import os
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

import schemas
from api_errors import ApiError, forbidden, not_found
from auth import get_current_contact, get_db
from models import Contact, Invoice, Proposal
from payments import (
    INVOICE_STATUS_PAID,
    PaymentProcessorError,
    StripeClient,
    from_minor_units,
    get_payment_client,
    to_minor_units,
)

router = APIRouter(tags=["Billing"])
logger = logging.getLogger(__name__)


def _portal_url() -> str:
    return os.getenv("CLIENT_PORTAL_URL", "http://localhost:3000").rstrip("/")


def _company_invoices(db: Session, company_id: str) -> list[Invoice]:
    return db.execute(
        select(Invoice)
        .join(Invoice.proposal)
        .options(joinedload(Invoice.proposal))
        .where(Proposal.company_id == company_id)
        .order_by(Invoice.due_date.asc())
    ).scalars().all()


def _require_company(contact: Contact) -> str:
    if not contact.contact_company_id:
        raise not_found("Contact or company", field="contactCompanyId")
    return contact.contact_company_id


def _get_company_invoice(db: Session, invoice_id: str, contact: Contact) -> Invoice:
    invoice = db.get(Invoice, invoice_id)
    if not invoice:
        raise not_found("Invoice", field="invoice_id")
    if not invoice.proposal or invoice.proposal.company_id != contact.contact_company_id:
        raise forbidden("invoice does not belong to your company", field="invoice_id")
    return invoice


def _processor_error(exc: PaymentProcessorError) -> ApiError:
    return ApiError(status_code=502, code="payment_processor_error", message=str(exc), field=None)


@router.get("/api/client/billing", response_model=schemas.InvoiceListResponse)
def list_company_invoices(
    db: Session = Depends(get_db),
    contact: Contact = Depends(get_current_contact),
):
    company_id = _require_company(contact)
    invoices = _company_invoices(db, company_id)
    return {
        "success": True,
        "invoices": [
            {
                "id": invoice.id,
                "invoice_number": invoice.invoice_number,
                "amount": invoice.amount,
                "currency": invoice.currency,
                "description": invoice.description,
                "status": invoice.status,
                "due_date": invoice.due_date,
                "paid_at": invoice.paid_at,
                "paid_by_contact_id": invoice.paid_by_contact_id,
                "proposal": {"id": invoice.proposal.id, "title": invoice.proposal.client_company},
            }
            for invoice in invoices
        ],
    }


@router.get("/api/invoices")
def list_invoices_legacy(
    db: Session = Depends(get_db),
    contact: Contact = Depends(get_current_contact),
):
    invoices = _company_invoices(db, contact.contact_company_id) if contact.contact_company_id else []
    return {
        "success": True,
        "invoices": [
            {
                "id": invoice.id,
                "invoiceNumber": invoice.invoice_number,
                "amount": invoice.amount,
                "currency": invoice.currency,
                "description": invoice.description,
                "status": invoice.status,
                "dueDate": invoice.due_date,
                "paidAt": invoice.paid_at,
                "week": invoice.week,
                "trigger": invoice.trigger,
                "proposalId": invoice.proposal_id,
                "createdAt": invoice.created_at,
            }
            for invoice in invoices
        ],
    }


@router.post("/api/client/billing/{invoice_id}/checkout", response_model=schemas.CheckoutSessionOut)
def create_checkout(
    invoice_id: str,
    db: Session = Depends(get_db),
    contact: Contact = Depends(get_current_contact),
    client: StripeClient = Depends(get_payment_client),
):
    invoice = _get_company_invoice(db, invoice_id, contact)
    if invoice.status == INVOICE_STATUS_PAID:
        raise ApiError(status_code=400, code="invoice_already_paid", message="Invoice is already paid", field="status")

    try:
        if not invoice.stripe_customer_id:
            customer = client.create_customer(
                email=contact.email or None,
                name=contact.display_name,
                metadata={"contactId": contact.id, "companyId": contact.contact_company_id or ""},
            )
            invoice.stripe_customer_id = customer["id"]
            db.commit()

        session = client.create_checkout_session(
            customer_id=invoice.stripe_customer_id,
            currency=(invoice.currency or "usd").lower(),
            unit_amount=to_minor_units(invoice.amount),
            product_name=f"Invoice {invoice.invoice_number}",
            product_description=invoice.description or f"Payment for {invoice.proposal.client_company}",
            return_url=(
                f"{_portal_url()}/dashboard?session_id={{CHECKOUT_SESSION_ID}}&invoice_id={invoice.id}"
            ),
            metadata={
                "invoiceId": invoice.id,
                "invoiceNumber": invoice.invoice_number,
                "proposalId": invoice.proposal_id,
                "contactId": contact.id,
            },
        )
    except PaymentProcessorError as exc:
        raise _processor_error(exc)

    invoice.stripe_checkout_session_id = session["id"]
    db.commit()
    logger.info("checkout session created invoice_id=%s session_id=%s", invoice.id, session["id"])

    return {
        "success": True,
        "client_secret": session.get("client_secret"),
        "session_id": session["id"],
    }


@router.get("/api/client/billing/{invoice_id}/verify/{session_id}")
def verify_checkout(
    invoice_id: str,
    session_id: str,
    db: Session = Depends(get_db),
    contact: Contact = Depends(get_current_contact),
    client: StripeClient = Depends(get_payment_client),
):
    invoice = _get_company_invoice(db, invoice_id, contact)
    if invoice.stripe_checkout_session_id != session_id:
        raise ApiError(
            status_code=400,
            code="session_mismatch",
            message="Session does not match invoice",
            field="session_id",
        )

    try:
        session = client.retrieve_checkout_session(session_id)
    except PaymentProcessorError as exc:
        raise _processor_error(exc)

    payment_status = session.get("payment_status")
    if payment_status != "paid":
        return {
            "success": False,
            "status": payment_status,
            "message": f"Payment status: {payment_status}",
        }

    paid_by = (session.get("metadata") or {}).get("contactId") or contact.id
    invoice.status = INVOICE_STATUS_PAID
    invoice.paid_at = datetime.utcnow()
    invoice.stripe_payment_intent_id = session.get("payment_intent") or None
    invoice.paid_by_contact_id = paid_by
    db.commit()
    logger.info("invoice %s marked as paid via verify (contact_id=%s)", invoice.invoice_number, paid_by)

    return {
        "success": True,
        "contactId": paid_by,
        "amount": from_minor_units(session.get("amount_total")),
        "currency": session.get("currency"),
        "invoiceNumber": invoice.invoice_number,
    }
