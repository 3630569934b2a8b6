from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from api_errors import ApiError, forbidden, missing_fields_error, not_found
from auth import PortalSession, get_db, get_portal_session
from hydration import contact_summary
from models import Company, WorkCollateral, WorkPackage, WorkPackageItem, WorkPackagePhase
from work_dashboard import (
    DeliverableItem,
    Phase,
    build_dashboard,
    empty_dashboard,
    phases_from_items,
)

router = APIRouter(prefix="/api/client", tags=["Work"])
logger = logging.getLogger(__name__)


def _load_items(db: Session, work_package_id: str) -> list[DeliverableItem]:
    rows = db.execute(
        select(WorkPackageItem)
        .where(WorkPackageItem.work_package_id == work_package_id)
        .order_by(WorkPackageItem.id)
    ).scalars().all()
    return [DeliverableItem.from_model(row) for row in rows]


def _load_phases(db: Session, work_package_id: str) -> list[Phase]:
    rows = db.execute(
        select(WorkPackagePhase)
        .where(WorkPackagePhase.work_package_id == work_package_id)
        .order_by(WorkPackagePhase.position.asc())
    ).scalars().all()
    return [Phase.from_model(row) for row in rows]


def _work_package_summary(work_package: WorkPackage) -> dict:
    return {
        "id": work_package.id,
        "title": work_package.title,
        "description": work_package.description,
        "prioritySummary": work_package.priority_summary or None,
    }


def _latest_for_contact(db: Session, contact_id: str) -> WorkPackage | None:
    return db.execute(
        select(WorkPackage)
        .where(WorkPackage.contact_id == contact_id)
        .order_by(WorkPackage.created_at.desc())
        .limit(1)
    ).scalars().first()


def _latest_for_company(db: Session, company_id: str | None) -> WorkPackage | None:
    if not company_id:
        return None
    return db.execute(
        select(WorkPackage)
        .where(WorkPackage.company_id == company_id)
        .order_by(WorkPackage.created_at.desc())
        .limit(1)
    ).scalars().first()


def _ensure_contact_owns(work_package: WorkPackage, session: PortalSession) -> None:
    if work_package.contact_id != session.contact.id:
        raise forbidden("Work package does not belong to this contact", field="workPackageId")


def _company_scoped_package(db: Session, session: PortalSession, work_package_id: str | None) -> WorkPackage:
    if not work_package_id:
        raise missing_fields_error(["workPackageId"])
    if not session.company_id:
        raise ApiError(
            status_code=400,
            code="contact_without_company",
            message="Contact has no company",
            field="contactCompanyId",
        )
    work_package = db.get(WorkPackage, work_package_id)
    if not work_package:
        raise not_found("Work package", field="workPackageId")
    if work_package.company_id != session.company_id:
        raise forbidden("Work package does not belong to your company", field="workPackageId")
    return work_package


def _dashboard_payload(db: Session, work_package: WorkPackage, session: PortalSession) -> dict:
    items = _load_items(db, work_package.id)
    phases = _load_phases(db, work_package.id)
    dashboard = build_dashboard(phases, items, session.dashboard)
    logger.info(
        "dashboard work_package_id=%s items=%s phase_index=%s policy=%s",
        work_package.id,
        dashboard.stats.total,
        dashboard.current_phase_index,
        session.dashboard.policy.value,
    )
    return {
        "success": True,
        "workPackageId": work_package.id,
        "workPackage": _work_package_summary(work_package),
        **dashboard.to_dict(session.dashboard),
    }


@router.get("/work/dashboard")
def work_dashboard(
    work_package_id: str | None = Query(default=None, alias="workPackageId"),
    db: Session = Depends(get_db),
    session: PortalSession = Depends(get_portal_session),
):
    if work_package_id:
        work_package = db.get(WorkPackage, work_package_id)
        if work_package:
            _ensure_contact_owns(work_package, session)
    else:
        work_package = _latest_for_contact(db, session.contact.id)

    contact = contact_summary(session.contact)
    if not work_package:
        return {
            "success": True,
            "workPackage": None,
            **empty_dashboard().to_dict(session.dashboard),
            "contact": contact,
        }

    payload = _dashboard_payload(db, work_package, session)
    payload["contact"] = contact
    return payload


@router.get("/allitems")
def all_items(
    work_package_id: str | None = Query(default=None, alias="workPackageId"),
    db: Session = Depends(get_db),
    session: PortalSession = Depends(get_portal_session),
):
    work_package = _company_scoped_package(db, session, work_package_id)
    return _dashboard_payload(db, work_package, session)


@router.get("/work")
def work_package_overview(
    work_package_id: str | None = Query(default=None, alias="workPackageId"),
    db: Session = Depends(get_db),
    session: PortalSession = Depends(get_portal_session),
):
    company = db.get(Company, session.company_id) if session.company_id else None
    company_package = _latest_for_company(db, session.company_id)
    target_id = work_package_id or (company_package.id if company_package else None)

    if target_id:
        work_package = db.get(WorkPackage, target_id)
        if work_package:
            _ensure_contact_owns(work_package, session)
    else:
        work_package = _latest_for_contact(db, session.contact.id)

    company_payload = (
        {
            "id": company.id,
            "companyName": company.company_name,
            "workPackageId": company_package.id if company_package else None,
        }
        if company
        else None
    )

    if not work_package:
        return {
            "success": True,
            "workPackage": None,
            "company": company_payload,
            "contact": contact_summary(session.contact),
        }

    phases = phases_from_items(_load_phases(db, work_package.id), _load_items(db, work_package.id))
    package_company = work_package.company
    company_out = (
        {"id": package_company.id, "companyName": package_company.company_name}
        if package_company
        else company_payload
    )
    package_contact = contact_summary(work_package.contact) if work_package.contact else None

    return {
        "success": True,
        "workPackage": {
            **_work_package_summary(work_package),
            "phases": [phase.to_dict(session.dashboard) for phase in phases],
            "contact": package_contact,
            "company": company_out,
        },
        "workPackageId": work_package.id,
        "company": company_out,
        "contact": package_contact,
    }


@router.get("/workpackage")
def work_package_detail(
    work_package_id: str | None = Query(default=None, alias="workPackageId"),
    db: Session = Depends(get_db),
    session: PortalSession = Depends(get_portal_session),
):
    work_package = _company_scoped_package(db, session, work_package_id)
    phases = phases_from_items(_load_phases(db, work_package.id), _load_items(db, work_package.id))
    company = work_package.company

    return {
        "success": True,
        "workPackage": {
            **_work_package_summary(work_package),
            "totalCost": work_package.total_cost,
            "effectiveStartDate": work_package.effective_start_date,
            "contact": contact_summary(work_package.contact) if work_package.contact else None,
            "company": {"id": company.id, "companyName": company.company_name} if company else None,
            "phases": [phase.to_dict(session.dashboard) for phase in phases],
        },
    }


@router.get("/work/artifacts/{artifact_id}")
def work_artifact(
    artifact_id: str,
    db: Session = Depends(get_db),
    session: PortalSession = Depends(get_portal_session),
):
    artifact = db.get(WorkCollateral, artifact_id)
    if not artifact:
        raise not_found("Artifact", field="artifact_id")

    item = artifact.work_package_item
    work_package = item.work_package if item else None
    if not work_package or work_package.contact_id != session.contact.id:
        raise forbidden("Artifact does not belong to your work package", field="artifact_id")

    return {
        "success": True,
        "artifact": {
            "id": artifact.id,
            "type": artifact.type,
            "title": artifact.title,
            "contentJson": artifact.content,
            "status": artifact.status,
            "reviewRequestedAt": artifact.review_requested_at,
            "reviewCompletedAt": artifact.review_completed_at,
            "createdAt": artifact.created_at,
            "updatedAt": artifact.updated_at,
        },
        "workPackageItem": {
            "id": item.id,
            "deliverableLabel": item.deliverable_label,
            "deliverableDescription": item.deliverable_description,
            "status": item.status,
        },
    }
