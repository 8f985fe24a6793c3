# tests/test_api.py
import pytest

from conftest import CANDIDATE_TOKEN, FULL_KIT_IDS, JOB_ID, REVOKED_TOKEN, kit_reply


PIPELINE_ROUTES = [
    ("post", "/api/likelihood"),
    ("post", "/api/likelihood/bulk"),
    ("post", "/api/kits"),
    ("post", "/api/kits/bulk"),
    ("get", "/api/likelihood"),
    ("get", "/api/kits"),
]


@pytest.mark.parametrize("method,path", PIPELINE_ROUTES)
def test_missing_token_is_401(client, method, path):
    """No bearer token is rejected before anything else."""
    response = getattr(client, method)(path, json={"contextId": JOB_ID, "subjectId": "cand-1"})
    assert response.status_code == 401
    assert response.get_json()["success"] is False


@pytest.mark.parametrize("token", ["unknown", REVOKED_TOKEN])
def test_invalid_token_is_401(client, token):
    """Unknown and revoked tokens are rejected."""
    response = client.post(
        "/api/likelihood",
        json={"contextId": JOB_ID, "subjectId": "cand-1"},
        headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 401


@pytest.mark.parametrize("method,path", PIPELINE_ROUTES)
def test_wrong_role_is_403(client, method, path):
    """A valid identity without a recruiter or admin role is refused."""
    response = getattr(client, method)(
        path,
        json={"contextId": JOB_ID, "subjectId": "cand-1"},
        headers={"Authorization": f"Bearer {CANDIDATE_TOKEN}"}
    )
    assert response.status_code == 403


@pytest.mark.parametrize("path,body", [
    ("/api/likelihood", {"contextId": JOB_ID}),
    ("/api/likelihood", {"subjectId": "cand-1"}),
    ("/api/kits", {}),
    ("/api/likelihood/bulk", {}),
    ("/api/kits/bulk", {"subjectId": "cand-1"}),
])
def test_missing_field_is_400(client, auth_headers, path, body):
    """Required body fields are enforced."""
    response = client.post(path, json=body, headers=auth_headers)
    assert response.status_code == 400
    assert "required" in response.get_json()["error"]


def test_non_json_body_is_400(client, auth_headers):
    """A body that is not a JSON object counts as missing fields."""
    response = client.post("/api/likelihood", data="nonsense", headers=auth_headers)
    assert response.status_code == 400


def test_invalid_focus_mode_is_400(client, auth_headers):
    """Unknown focus modes are refused."""
    response = client.post(
        "/api/kits",
        json={"contextId": JOB_ID, "subjectId": "cand-1", "focusMode": "vibes"},
        headers=auth_headers
    )
    assert response.status_code == 400


def test_unknown_context_is_404(client, auth_headers):
    """A missing job is 404 for single and bulk calls."""
    single = client.post("/api/likelihood", json={"contextId": "nope", "subjectId": "cand-1"}, headers=auth_headers)
    bulk = client.post("/api/kits/bulk", json={"contextId": "nope"}, headers=auth_headers)
    assert single.status_code == 404
    assert bulk.status_code == 404


def test_single_likelihood(client, auth_headers):
    """Single-subject scoring returns the persisted record."""
    response = client.post("/api/likelihood", json={"contextId": JOB_ID, "subjectId": "cand-1"}, headers=auth_headers)
    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["result"]["likelihood_band"] == "medium"
    assert body["result"]["actor_id"] == "user-recruiter"
    assert body["recordId"] == body["result"]["id"]


def test_single_likelihood_rate_limited_is_429(client, auth_headers, fake_inference):
    """Rate limiting surfaces on single-subject calls."""
    fake_inference.likelihood_default = 429
    response = client.post("/api/likelihood", json={"contextId": JOB_ID, "subjectId": "cand-1"}, headers=auth_headers)
    assert response.status_code == 429


def test_single_likelihood_quota_is_402(client, auth_headers, fake_inference):
    """Quota exhaustion surfaces on single-subject calls."""
    fake_inference.likelihood_default = 402
    response = client.post("/api/likelihood", json={"contextId": JOB_ID, "subjectId": "cand-1"}, headers=auth_headers)
    assert response.status_code == 402


def test_single_likelihood_transport_error_is_500(client, auth_headers, fake_inference):
    """Other inference failures are 500."""
    fake_inference.likelihood_default = 503
    response = client.post("/api/likelihood", json={"contextId": JOB_ID, "subjectId": "cand-1"}, headers=auth_headers)
    assert response.status_code == 500
    assert response.get_json()["success"] is False


def test_malformed_output_is_still_200(client, auth_headers, fake_inference):
    """Unparseable model output is recovered, not surfaced."""
    fake_inference.likelihood_default = "not json at all"
    response = client.post("/api/likelihood", json={"contextId": JOB_ID, "subjectId": "cand-1"}, headers=auth_headers)
    assert response.status_code == 200
    result = response.get_json()["result"]
    assert result["likelihood_score"] == 0
    assert result["reasoning"]["message"]


def test_bulk_likelihood_counts_and_idempotence(client, auth_headers):
    """Bulk returns counts; a second call processes nothing."""
    first = client.post("/api/likelihood/bulk", json={"contextId": JOB_ID}, headers=auth_headers).get_json()
    assert (first["processed"], first["skipped"], first["errors"], first["cancelled"]) == (3, 0, 0, 0)

    second = client.post("/api/likelihood/bulk", json={"contextId": JOB_ID}, headers=auth_headers).get_json()
    assert (second["processed"], second["skipped"], second["errors"]) == (0, 3, 0)
    assert second["message"] == "All candidates already assessed"


def test_bulk_partial_failure_is_200(client, auth_headers, fake_inference):
    """Bulk calls report failures in counts rather than failing."""
    fake_inference.by_subject["cand-2"] = 500
    response = client.post("/api/likelihood/bulk", json={"contextId": JOB_ID}, headers=auth_headers)
    assert response.status_code == 200
    body = response.get_json()
    assert (body["processed"], body["errors"]) == (2, 1)
    assert body["failed_subjects"][0]["subjectId"] == "cand-2"


def test_bulk_empty_pool(client, auth_headers):
    """A job with no prior signals short-circuits."""
    response = client.post("/api/likelihood/bulk", json={"contextId": "job-2"}, headers=auth_headers)
    body = response.get_json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["message"] == "no subjects"
    assert (body["processed"], body["skipped"]) == (0, 0)


def test_kit_generate_and_retrieve(client, auth_headers, fake_inference):
    """Generated kit is returned and retrievable as the current kit."""
    fake_inference.kit_default = kit_reply(FULL_KIT_IDS[:5])
    params = {"contextId": JOB_ID, "subjectId": "cand-1"}

    missing = client.get("/api/kits", query_string=params, headers=auth_headers).get_json()
    assert missing == {"success": True, "exists": False}

    created = client.post("/api/kits", json=dict(params, focusMode="culture"), headers=auth_headers).get_json()
    assert len(created["kit"]["selected_questions"]) >= 8
    assert created["kit"]["focus_mode"] == "culture"

    fetched = client.get("/api/kits", query_string=params, headers=auth_headers).get_json()
    assert fetched["exists"] is True
    assert fetched["kitId"] == created["kitId"]
    assert fetched["focusMode"] == "culture"


def test_likelihood_retrieve(client, auth_headers):
    """The GET route returns the newest record."""
    params = {"contextId": JOB_ID, "subjectId": "cand-3"}
    client.post("/api/likelihood", json=params, headers=auth_headers)
    fetched = client.get("/api/likelihood", query_string=params, headers=auth_headers).get_json()
    assert fetched["exists"] is True
    assert fetched["result"]["subject_id"] == "cand-3"


def test_bulk_kits(client, auth_headers):
    """Bulk kit generation covers the whole pool."""
    body = client.post("/api/kits/bulk", json={"contextId": JOB_ID, "focusMode": "leadership"},
                       headers=auth_headers).get_json()
    assert (body["processed"], body["errors"]) == (3, 0)


def test_health(client):
    """Health needs no token and reports inference and memory."""
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    assert body["inference_reachable"] is True
    assert "percent" in body["memory"]["ram"]
    assert body["config"]["model"] == "test-model"
