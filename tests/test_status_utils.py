from datetime import datetime
from types import SimpleNamespace

import pytest

from status_utils import (
    CanonicalStatus,
    STATUS_ORDER,
    StatusPolicy,
    is_valid_status,
    map_raw_status,
    normalize_status,
    present_status,
    resolve_status_policy,
    status_options,
)


def test_legacy_tokens_map_to_canonical_statuses():
    assert normalize_status("completed", []) is CanonicalStatus.APPROVED
    assert normalize_status("DRAFT", []) is CanonicalStatus.NOT_STARTED
    assert normalize_status("in_review", []) is CanonicalStatus.NEEDS_REVIEW
    assert normalize_status("Changes_Needed", []) is CanonicalStatus.CHANGES_IN_PROGRESS
    assert normalize_status("  approved  ", []) is CanonicalStatus.APPROVED
    assert normalize_status("in review", []) is CanonicalStatus.NEEDS_REVIEW


def test_missing_or_unknown_tokens_default_to_not_started():
    assert normalize_status(None, []) is CanonicalStatus.NOT_STARTED
    assert normalize_status("", []) is CanonicalStatus.NOT_STARTED
    assert normalize_status("archived", []) is CanonicalStatus.NOT_STARTED
    assert normalize_status(42, None) is CanonicalStatus.NOT_STARTED


def test_canonical_tokens_are_stable_when_fed_back():
    for raw in ("DRAFT", "COMPLETED", "IN_REVIEW", "CHANGES_NEEDED", *[s.value for s in CanonicalStatus]):
        first = normalize_status(raw, [])
        assert normalize_status(first.value, []) is first
        assert normalize_status(first, []) is first


def test_item_status_policy_ignores_collateral():
    pending_review = [SimpleNamespace(review_requested_at=datetime.utcnow())]
    assert normalize_status("APPROVED", pending_review, StatusPolicy.ITEM_STATUS) is CanonicalStatus.APPROVED
    assert normalize_status(None, pending_review, StatusPolicy.ITEM_STATUS) is CanonicalStatus.NOT_STARTED


def test_collateral_policy_prefers_review_requests():
    requested = SimpleNamespace(review_requested_at=datetime.utcnow())
    idle = SimpleNamespace(review_requested_at=None)

    assert normalize_status("COMPLETED", [idle, requested], "collateral") is CanonicalStatus.NEEDS_REVIEW
    assert normalize_status("COMPLETED", [idle], "collateral") is CanonicalStatus.APPROVED
    assert normalize_status("IN_PROGRESS", [idle], "collateral") is CanonicalStatus.IN_PROGRESS
    assert normalize_status("IN_PROGRESS", [], "collateral") is CanonicalStatus.NOT_STARTED
    assert normalize_status(None, [{"reviewRequestedAt": "2026-01-01"}], "collateral") is CanonicalStatus.NEEDS_REVIEW


def test_resolve_status_policy_reads_environment(monkeypatch):
    monkeypatch.setenv("STATUS_POLICY", "collateral")
    assert resolve_status_policy() is StatusPolicy.COLLATERAL
    monkeypatch.setenv("STATUS_POLICY", "nonsense")
    assert resolve_status_policy() is StatusPolicy.ITEM_STATUS
    monkeypatch.delenv("STATUS_POLICY", raising=False)
    assert resolve_status_policy() is StatusPolicy.ITEM_STATUS
    assert resolve_status_policy("COLLATERAL") is StatusPolicy.COLLATERAL


@pytest.mark.parametrize(
    "status,client_label,internal_label",
    [
        (CanonicalStatus.APPROVED, "Completed", "Approved"),
        (CanonicalStatus.CHANGES_IN_PROGRESS, "Changes Being Made", "Changes In Progress"),
        (CanonicalStatus.NEEDS_REVIEW, "Needs Review", "Needs Review"),
    ],
)
def test_present_status_labels_per_audience(status, client_label, internal_label):
    assert present_status(status, "client").label == client_label
    assert present_status(status, "internal").label == internal_label
    assert present_status(status, "client").color == present_status(status, "internal").color


def test_present_status_never_fails():
    for status in CanonicalStatus:
        assert present_status(status, "client").label
    assert present_status("garbage", "martian").label == "Not Started"


def test_status_options_follow_display_order():
    options = status_options("client")
    assert [o["value"] for o in options] == [s.value for s in STATUS_ORDER]
    assert options[-1]["label"] == "Completed"


def test_valid_status_only_accepts_canonical_names():
    assert is_valid_status("needs_review")
    assert not is_valid_status("COMPLETED")
    assert map_raw_status("COMPLETED") is CanonicalStatus.APPROVED
