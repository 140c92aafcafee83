"""Tests for the seat-scout FastAPI routes."""

from seat_scout.services import history_store, score_cache

_SCORE_BODY = {
    "facilityId": "fac-1",
    "childId": "child-1",
    "targetClass": "age_2",
    "priorityType": "single_parent",
}


def _case(**overrides) -> dict:
    case = {
        "priorityType": "single_parent",
        "waitingMonths": 2,
        "result": "admitted",
        "year": 2025,
        "targetClass": "age_2",
    }
    case.update(overrides)
    return case


# ---------------------------------------------------------------------------
# GET /api/health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_reports_versions(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["scoringVersion"] == "v1"
        assert "version" in data


# ---------------------------------------------------------------------------
# POST /api/admission-score
# ---------------------------------------------------------------------------


class TestAdmissionScore:
    """Tests for the /api/admission-score endpoint."""

    def test_scores_stored_facility(self, client, strong_facility):
        history_store.save_facility(strong_facility)
        resp = client.post("/api/admission-score", json=_SCORE_BODY)

        assert resp.status_code == 200
        data = resp.json()
        assert data["facilityId"] == "fac-1"
        assert data["facilityName"] == "Sunflower Daycare"
        assert data["scoringVersion"] == "v1"
        assert data["factors"]["priority_bonus"] == {
            "kind": "measured",
            "score": 85.0,
            "weight": 0.25,
            "description": data["factors"]["priority_bonus"]["description"],
        }
        assert data["disclaimer"]

    def test_invalid_enumeration_is_400(self, client):
        resp = client.post("/api/admission-score", json={**_SCORE_BODY, "targetClass": "age_9"})
        assert resp.status_code == 400
        assert "targetClass" in resp.json()["error"]

    def test_missing_field_is_400(self, client):
        body = {k: v for k, v in _SCORE_BODY.items() if k != "childId"}
        resp = client.post("/api/admission-score", json=body)
        assert resp.status_code == 400
        assert "childId" in resp.json()["error"]

    def test_unknown_facility_is_503_with_retry_after(self, client):
        resp = client.post("/api/admission-score", json=_SCORE_BODY)
        assert resp.status_code == 503
        assert resp.headers["Retry-After"] == "30"
        assert "fac-1" in resp.json()["error"]

    def test_summary_is_plain_text(self, client, bare_facility):
        history_store.save_facility(bare_facility)
        resp = client.post("/api/admission-score/summary", json=_SCORE_BODY)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert resp.text.startswith("Sunflower Daycare: admission probability")

    def test_summary_invalid_is_400(self, client):
        resp = client.post(
            "/api/admission-score/summary", json={**_SCORE_BODY, "priorityType": "vip"}
        )
        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# /api/facilities/{facility_id}
# ---------------------------------------------------------------------------


class TestFacilities:
    """Tests for storing and reading facility metadata."""

    def test_put_then_get(self, client, strong_facility):
        resp = client.put("/api/facilities/fac-1", json=strong_facility.model_dump(mode="json"))
        assert resp.status_code == 200
        assert resp.json() == {"facilityId": "fac-1", "status": "saved"}

        resp = client.get("/api/facilities/fac-1")
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "Sunflower Daycare"
        assert data["seasonalWindow"] == {"openingMonths": [3]}
        assert data["caseCount"] == 0

    def test_get_unknown_is_404(self, client):
        resp = client.get("/api/facilities/nope")
        assert resp.status_code == 404
        assert "nope" in resp.json()["error"]

    def test_put_mismatched_id_is_400(self, client, bare_facility):
        resp = client.put("/api/facilities/other", json=bare_facility.model_dump(mode="json"))
        assert resp.status_code == 400

    def test_put_invalid_body_is_422(self, client):
        resp = client.put("/api/facilities/fac-1", json={"facilityId": "fac-1"})
        assert resp.status_code == 422

    def test_put_invalidates_cached_scores(self, client, bare_facility):
        client.put("/api/facilities/fac-1", json=bare_facility.model_dump(mode="json"))
        first = client.post("/api/admission-score", json=_SCORE_BODY).json()
        assert first["facilityName"] == "Sunflower Daycare"

        renamed = bare_facility.model_copy(update={"name": "Moonflower Daycare"})
        client.put("/api/facilities/fac-1", json=renamed.model_dump(mode="json"))
        second = client.post("/api/admission-score", json=_SCORE_BODY).json()
        assert second["facilityName"] == "Moonflower Daycare"


class TestFacilityCases:
    """Tests for recording admission outcomes."""

    def test_records_cases(self, client, bare_facility):
        history_store.save_facility(bare_facility)
        resp = client.post(
            "/api/facilities/fac-1/cases",
            json={"cases": [_case(), _case(result="waiting", waitingMonths=7)]},
        )
        assert resp.status_code == 200
        assert resp.json() == {"facilityId": "fac-1", "recorded": 2, "invalidated": 0}
        assert client.get("/api/facilities/fac-1").json()["caseCount"] == 2

    def test_cases_feed_scoring(self, client, bare_facility):
        history_store.save_facility(bare_facility)
        before = client.post("/api/admission-score", json=_SCORE_BODY).json()
        assert before["similarCases"] == []

        resp = client.post("/api/facilities/fac-1/cases", json={"cases": [_case()] * 3})
        assert resp.json()["invalidated"] == 1

        after = client.post("/api/admission-score", json=_SCORE_BODY).json()
        assert len(after["similarCases"]) == 3
        assert after["confidence"] > before["confidence"]

    def test_missing_target_class_is_400(self, client):
        case = _case()
        del case["targetClass"]
        resp = client.post("/api/facilities/fac-1/cases", json={"cases": [case]})
        assert resp.status_code == 400
        assert history_store.get_case_count("fac-1") == 0

    def test_empty_batch_is_422(self, client):
        resp = client.post("/api/facilities/fac-1/cases", json={"cases": []})
        assert resp.status_code == 422

    def test_invalid_result_is_422(self, client):
        resp = client.post(
            "/api/facilities/fac-1/cases", json={"cases": [_case(result="maybe")]}
        )
        assert resp.status_code == 422
        assert score_cache.invalidate_facility("fac-1") == 0


# ---------------------------------------------------------------------------
# GET /api/children/{child_id}/scores
# ---------------------------------------------------------------------------


class TestChildScores:
    """Tests for a child's score history."""

    def test_empty_history(self, client):
        resp = client.get("/api/children/child-1/scores")
        assert resp.status_code == 200
        assert resp.json() == {"childId": "child-1", "results": [], "total": 0}

    def test_lists_computed_scores_newest_first(self, client, bare_facility):
        history_store.save_facility(bare_facility)
        client.post("/api/admission-score", json=_SCORE_BODY)
        client.post("/api/admission-score", json={**_SCORE_BODY, "priorityType": "none"})

        data = client.get("/api/children/child-1/scores").json()
        assert data["total"] == 2
        first, second = data["results"]
        assert first["childId"] == "child-1"
        assert first["result"]["factors"]["priority_bonus"]["score"] == 20.0
        assert second["result"]["factors"]["priority_bonus"]["score"] == 85.0
        assert "calculatedAt" in first
        assert "estimatedMonths80th" in first["result"]

    def test_cache_hits_not_recorded(self, client, bare_facility):
        history_store.save_facility(bare_facility)
        client.post("/api/admission-score", json=_SCORE_BODY)
        client.post("/api/admission-score", json=_SCORE_BODY)
        assert client.get("/api/children/child-1/scores").json()["total"] == 1

    def test_limit(self, client, bare_facility):
        history_store.save_facility(bare_facility)
        for position in range(3):
            client.post("/api/admission-score", json={**_SCORE_BODY, "waitingPosition": position})
        data = client.get("/api/children/child-1/scores", params={"limit": 2}).json()
        assert data["total"] == 2

    def test_invalid_limit_is_422(self, client):
        assert client.get("/api/children/child-1/scores", params={"limit": 0}).status_code == 422
