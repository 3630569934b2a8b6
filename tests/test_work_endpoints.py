from __future__ import annotations

from datetime import datetime, timedelta

from models import ConsultantDeliverable


def _auth(uid: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {uid}"}


def _seed_three_phase_package(seed):
    wp = seed.work_package()
    discovery = seed.phase(wp, "Discovery", 1)
    build = seed.phase(wp, "Build", 2)
    launch = seed.phase(wp, "Launch", 3)
    seed.item(wp, discovery, "APPROVED", "Kickoff notes")
    seed.item(wp, discovery, "COMPLETED", "Audit")
    seed.item(wp, build, "IN_REVIEW", "Persona deck")
    seed.item(wp, build, "IN_PROGRESS", "Email sequence")
    seed.item(wp, launch, None, "Launch plan")
    return wp, discovery, build, launch


def test_requests_without_token_are_rejected(client):
    response = client.get("/api/client/work/dashboard")
    assert response.status_code == 401, response.text
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "auth_required"


def test_unknown_identity_has_no_contact(client):
    response = client.get("/api/client/work/dashboard", headers=_auth("uid-nobody"))
    assert response.status_code == 404, response.text
    assert response.json()["code"] == "contact_not_found"


def test_dashboard_summarizes_latest_work_package(client, seed):
    wp, _, build, launch = _seed_three_phase_package(seed)

    response = client.get("/api/client/work/dashboard", headers=_auth(seed.uid))
    assert response.status_code == 200, response.text
    body = response.json()

    assert body["success"] is True
    assert body["workPackageId"] == wp.id
    assert body["workPackage"]["title"] == "Growth Plan"
    assert body["stats"] == {"total": 5, "completed": 2, "inProgress": 1, "needsReview": 1, "notStarted": 1}
    assert body["currentPhaseIndex"] == 1
    assert body["currentPhase"]["id"] == build.id
    assert len(body["currentPhase"]["items"]) == 2
    assert body["nextPhase"]["id"] == launch.id
    assert "items" not in body["nextPhase"]
    assert body["cta"] == "You Have Work to Review"
    assert [i["deliverableLabel"] for i in body["needsReviewItems"]] == ["Persona deck"]
    assert body["contact"]["firstName"] == "Dana"


def test_dashboard_uses_audience_labels(client, seed):
    wp = seed.work_package()
    phase = seed.phase(wp, "Only", 1)
    seed.item(wp, phase, "COMPLETED")

    client_view = client.get("/api/client/work/dashboard", headers=_auth(seed.uid))
    internal_view = client.get("/api/client/work/dashboard?audience=internal", headers=_auth(seed.uid))

    assert client_view.json()["currentPhase"]["items"][0]["statusLabel"] == "Completed"
    assert internal_view.json()["currentPhase"]["items"][0]["statusLabel"] == "Approved"
    assert client_view.json()["cta"] == "Start Next Deliverable"


def test_dashboard_without_work_package_is_empty(client, seed):
    response = client.get("/api/client/work/dashboard", headers=_auth(seed.uid))
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["workPackage"] is None
    assert body["stats"]["total"] == 0
    assert body["currentPhase"] is None
    assert body["currentPhaseIndex"] == -1
    assert body["cta"] == "Start Next Deliverable"


def test_dashboard_picks_most_recent_package(client, seed):
    older = seed.work_package("Old plan", created_at=datetime.utcnow() - timedelta(days=30))
    newer = seed.work_package("New plan")
    seed.item(older, None, "APPROVED")

    body = client.get("/api/client/work/dashboard", headers=_auth(seed.uid)).json()
    assert body["workPackageId"] == newer.id

    body = client.get(
        f"/api/client/work/dashboard?workPackageId={older.id}", headers=_auth(seed.uid)
    ).json()
    assert body["workPackageId"] == older.id
    assert body["stats"]["completed"] == 1


def test_dashboard_rejects_foreign_work_package(client, seed, other_seed):
    foreign = other_seed.work_package()

    response = client.get(f"/api/client/work/dashboard?workPackageId={foreign.id}", headers=_auth(seed.uid))
    assert response.status_code == 403, response.text
    assert response.json()["code"] == "forbidden"


def test_allitems_requires_work_package_id(client, seed):
    response = client.get("/api/client/allitems", headers=_auth(seed.uid))
    assert response.status_code == 400, response.text
    body = response.json()
    assert body["code"] == "missing_field"
    assert body["field"] == "workPackageId"


def test_allitems_is_scoped_to_company(client, seed, other_seed):
    wp, *_ = _seed_three_phase_package(seed)

    ok = client.get(f"/api/client/allitems?workPackageId={wp.id}", headers=_auth(seed.uid))
    assert ok.status_code == 200, ok.text
    assert ok.json()["stats"]["total"] == 5

    denied = client.get(f"/api/client/allitems?workPackageId={wp.id}", headers=_auth(other_seed.uid))
    assert denied.status_code == 403, denied.text

    missing = client.get("/api/client/allitems?workPackageId=does-not-exist", headers=_auth(seed.uid))
    assert missing.status_code == 404, missing.text


def test_workpackage_detail_groups_items_by_phase(client, seed):
    wp, discovery, build, launch = _seed_three_phase_package(seed)

    response = client.get(f"/api/client/workpackage?workPackageId={wp.id}", headers=_auth(seed.uid))
    assert response.status_code == 200, response.text
    package = response.json()["workPackage"]

    assert [p["id"] for p in package["phases"]] == [discovery.id, build.id, launch.id]
    assert [len(p["items"]) for p in package["phases"]] == [2, 2, 1]
    assert package["company"]["id"] == seed.company.id


def test_work_overview_falls_back_to_company_package(client, seed):
    wp, *_ = _seed_three_phase_package(seed)

    response = client.get("/api/client/work", headers=_auth(seed.uid))
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["workPackageId"] == wp.id
    assert body["company"]["companyName"] == seed.company.company_name
    assert len(body["workPackage"]["phases"]) == 3


def test_artifact_access_is_limited_to_owner(client, seed, other_seed):
    wp = seed.work_package()
    item = seed.item(wp, None, "IN_REVIEW", "Brand guide")
    artifact = seed.collateral(item, type="DOC", content={"body": "hello"})

    ok = client.get(f"/api/client/work/artifacts/{artifact.id}", headers=_auth(seed.uid))
    assert ok.status_code == 200, ok.text
    assert ok.json()["artifact"]["contentJson"] == {"body": "hello"}
    assert ok.json()["workPackageItem"]["deliverableLabel"] == "Brand guide"

    denied = client.get(f"/api/client/work/artifacts/{artifact.id}", headers=_auth(other_seed.uid))
    assert denied.status_code == 403, denied.text


def test_hydrate_returns_contact_company_and_proposals(client, seed):
    seed.proposal("draft")
    seed.proposal("archived")

    response = client.get("/api/client/hydrate", headers=_auth(seed.uid))
    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["firebaseUid"] == seed.uid
    assert data["contact"]["email"] == seed.contact.email
    assert data["company"]["companyName"] == seed.company.company_name
    assert [p["status"] for p in data["proposals"]] == ["draft"]

    plain = client.get("/api/client", headers=_auth(seed.uid)).json()["data"]
    assert plain.get("proposals") is None


def test_client_state_routes_to_draft_proposal(client, seed):
    draft = seed.proposal("draft")

    state = client.get("/api/client/state", headers=_auth(seed.uid)).json()["state"]
    assert state["workHasBegun"] is False
    assert state["hasDraftProposals"] is True
    assert state["routing"] == {"route": f"/proposals/{draft.id}", "proposalId": draft.id}


def test_client_state_routes_to_dashboard_after_approval(client, seed):
    seed.proposal("approved")

    state = client.get("/api/client/state", headers=_auth(seed.uid)).json()["state"]
    assert state["workHasBegun"] is True
    assert state["routing"]["route"] == "/dashboard"


def test_contact_deliverables_visible_within_company(client, db, seed, other_seed):
    db.add(ConsultantDeliverable(contact_id=seed.contact.id, title="Positioning memo", status="IN_PROGRESS"))
    db.commit()

    ok = client.get(f"/api/contacts/{seed.contact.id}/deliverables", headers=_auth(seed.uid))
    assert ok.status_code == 200, ok.text
    assert [d["title"] for d in ok.json()["deliverables"]] == ["Positioning memo"]

    denied = client.get(f"/api/contacts/{seed.contact.id}/deliverables", headers=_auth(other_seed.uid))
    assert denied.status_code == 403, denied.text
