from datetime import timedelta

from app.core.clock import utcnow
from app.core.security import issue_access_token
from app.models.audit_log import AuditLogRecord
from app.tests.helpers import bearer_for

BASE = "/api/v1"


def _rfp_body(**overrides):
    body = {
        "title": "Smart streetlights",
        "description": "Adaptive LED lighting for the old town.",
        "category": "lighting",
        "budget_min": "1000",
        "budget_max": "5000",
        "currency": "USD",
        "deadline": (utcnow() + timedelta(days=7)).isoformat(),
        "requirements": {"technical": ["LoRaWAN"], "compliance": ["EN 13201"]},
        "evaluation_criteria": {"technical_score": 50, "price_score": 30},
    }
    body.update(overrides)
    return body


def _bid_body(price, **overrides):
    body = {
        "proposal_text": "Retrofit with dimmable heads",
        "price": str(price),
        "timeline": "6 months",
        "solution_id": "SOL-1",
    }
    body.update(overrides)
    return body


def _published_rfp(client, municipality):
    headers = bearer_for(municipality)
    rfp = client.post(f"{BASE}/rfps", headers=headers, json=_rfp_body()).json()
    r = client.post(f"{BASE}/rfps/{rfp['rfpId']}/publish", headers=headers)
    assert r.status_code == 200
    return r.json()


def test_health(client):
    r = client.get(f"{BASE}/health", headers={"X-Request-Id": "req-1"})
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "database": "ok", "request_id": "req-1"}
    assert r.headers["X-Request-Id"] == "req-1"


def test_requests_need_a_token(client):
    r = client.get(f"{BASE}/rfps")
    assert r.status_code in (401, 403)


def test_create_and_read_draft(client, municipality, dev_a):
    r = client.post(f"{BASE}/rfps", headers=bearer_for(municipality), json=_rfp_body())
    assert r.status_code == 200
    rfp = r.json()
    assert rfp["status"] == "draft"
    assert rfp["municipalityId"] == "MUN-1"
    assert rfp["requirements"]["technical"] == ["LoRaWAN"]

    own = client.get(f"{BASE}/rfps/{rfp['rfpId']}", headers=bearer_for(municipality))
    assert own.status_code == 200

    hidden = client.get(f"{BASE}/rfps/{rfp['rfpId']}", headers=bearer_for(dev_a))
    assert hidden.status_code == 404


def test_criteria_over_100_rejected(client, municipality):
    body = _rfp_body(evaluation_criteria={"technical_score": 80, "price_score": 40})
    r = client.post(f"{BASE}/rfps", headers=bearer_for(municipality), json=body)
    assert r.status_code == 422


def test_developer_cannot_create_rfp(client, dev_a):
    r = client.post(f"{BASE}/rfps", headers=bearer_for(dev_a), json=_rfp_body())
    assert r.status_code == 403


def test_publish_without_deadline_is_400(client, municipality):
    headers = bearer_for(municipality)
    rfp = client.post(f"{BASE}/rfps", headers=headers, json=_rfp_body(deadline=None)).json()

    r = client.post(f"{BASE}/rfps/{rfp['rfpId']}/publish", headers=headers)
    assert r.status_code == 400

    again = client.get(f"{BASE}/rfps/{rfp['rfpId']}", headers=headers).json()
    assert again["status"] == "draft"


def test_patch_and_delete_draft(client, municipality):
    headers = bearer_for(municipality)
    rfp = client.post(f"{BASE}/rfps", headers=headers, json=_rfp_body()).json()

    r = client.patch(f"{BASE}/rfps/{rfp['rfpId']}", headers=headers, json={"title": "Renamed"})
    assert r.status_code == 200
    assert r.json()["title"] == "Renamed"

    bad = client.patch(f"{BASE}/rfps/{rfp['rfpId']}", headers=headers, json={"status": "closed"})
    assert bad.status_code == 422

    d = client.delete(f"{BASE}/rfps/{rfp['rfpId']}", headers=headers)
    assert d.status_code == 204
    assert client.get(f"{BASE}/rfps/{rfp['rfpId']}", headers=headers).status_code == 404


def test_bad_uuid_is_400(client, municipality):
    r = client.get(f"{BASE}/rfps/not-a-uuid", headers=bearer_for(municipality))
    assert r.status_code == 400


def test_full_award_flow(client, session_factory, municipality, dev_a, dev_b, dev_c):
    rfp = _published_rfp(client, municipality)
    rid = rfp["rfpId"]

    a = client.post(f"{BASE}/rfps/{rid}/bids", headers=bearer_for(dev_a), json=_bid_body(3000))
    b = client.post(f"{BASE}/rfps/{rid}/bids", headers=bearer_for(dev_b), json=_bid_body(4500))
    assert a.status_code == 200 and b.status_code == 200

    dup = client.post(f"{BASE}/rfps/{rid}/bids", headers=bearer_for(dev_a), json=_bid_body(2000))
    assert dup.status_code == 409

    mine = client.get(f"{BASE}/rfps/{rid}/bids", headers=bearer_for(dev_a)).json()
    assert [x["developerId"] for x in mine["bids"]] == ["dev-a"]

    listed = client.get(f"{BASE}/rfps?status=published", headers=bearer_for(dev_c)).json()
    assert [(x["rfpId"], x["bidCount"]) for x in listed["rfps"]] == [(rid, 2)]

    headers = {**bearer_for(municipality), "Idempotency-Key": "award-42"}
    award = client.post(f"{BASE}/rfps/{rid}/award", headers=headers, json={"bidId": a.json()["bidId"]})
    assert award.status_code == 200
    project = award.json()
    assert project["rfpId"] == rid
    assert project["winningBidId"] == a.json()["bidId"]
    assert project["status"] == "planning"
    assert float(project["budget"]) == 3000.0

    replay = client.post(f"{BASE}/rfps/{rid}/award", headers=headers, json={"bidId": a.json()["bidId"]})
    assert replay.status_code == 200
    assert replay.json()["projectId"] == project["projectId"]

    other = client.post(
        f"{BASE}/rfps/{rid}/award", headers=bearer_for(municipality), json={"bidId": b.json()["bidId"]}
    )
    assert other.status_code == 409

    late = client.post(f"{BASE}/rfps/{rid}/bids", headers=bearer_for(dev_c), json=_bid_body(1000))
    assert late.status_code == 409

    closed = client.get(f"{BASE}/rfps/{rid}", headers=bearer_for(dev_c)).json()
    assert closed["status"] == "closed"
    assert closed["selectedBidId"] == a.json()["bidId"]
    assert closed["projectId"] == project["projectId"]

    all_bids = client.get(f"{BASE}/rfps/{rid}/bids", headers=bearer_for(municipality)).json()
    statuses = {x["developerId"]: x["status"] for x in all_bids["bids"]}
    assert statuses == {"dev-a": "accepted", "dev-b": "rejected"}

    session = session_factory()
    try:
        actions = [row.action for row in session.query(AuditLogRecord).all()]
    finally:
        session.close()
    assert "RFP_AWARDED" in actions
    assert "BID_SUBMITTED" in actions


def test_replace_bid_endpoint(client, municipality, dev_a):
    rfp = _published_rfp(client, municipality)
    rid = rfp["rfpId"]
    first = client.post(f"{BASE}/rfps/{rid}/bids", headers=bearer_for(dev_a), json=_bid_body(3000)).json()

    r = client.put(f"{BASE}/rfps/{rid}/bids/mine", headers=bearer_for(dev_a), json=_bid_body(2500))
    assert r.status_code == 200
    assert r.json()["bidId"] == first["bidId"]
    assert float(r.json()["price"]) == 2500.0


def test_award_by_other_municipality_is_403(client, municipality, other_municipality, dev_a):
    rfp = _published_rfp(client, municipality)
    rid = rfp["rfpId"]
    bid = client.post(f"{BASE}/rfps/{rid}/bids", headers=bearer_for(dev_a), json=_bid_body(3000)).json()

    r = client.post(
        f"{BASE}/rfps/{rid}/award", headers=bearer_for(other_municipality), json={"bidId": bid["bidId"]}
    )
    assert r.status_code == 403


def test_municipality_token_without_municipality_is_401(client):
    token = issue_access_token("muni-user-2", "municipality")
    r = client.get(f"{BASE}/rfps", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_unknown_role_is_401(client):
    token = issue_access_token("someone", "auditor")
    r = client.get(f"{BASE}/rfps", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
