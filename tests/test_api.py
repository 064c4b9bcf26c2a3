"""
Tests for API endpoints
"""
import pytest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from src.api.main import app, get_classifier, get_image_store, get_verifier
from src.auth.session import SessionResolver
from src.core.errors import RateLimitExceeded, VerificationError
from src.database.connection import get_db, get_session
from src.database.models import UserRole
from src.storage.image_store import report_image_key

USER = {"X-User-Id": "user-1"}
ADMIN = {"X-User-Id": "admin-1"}


class TestAPIEndpoints:
    """HTTP surface against an in-memory database."""

    @pytest.fixture(autouse=True)
    def _client(self, database, db_session, image_store, verifier):
        self.db = db_session
        self.verifier = verifier
        self.store = image_store
        self.classifier = MagicMock()

        def override_session():
            yield db_session

        app.dependency_overrides[get_session] = override_session
        app.dependency_overrides[get_db] = lambda: database
        app.dependency_overrides[get_image_store] = lambda: image_store
        app.dependency_overrides[get_verifier] = lambda: verifier
        app.dependency_overrides[get_classifier] = lambda: self.classifier

        SessionResolver(db_session).set_role("admin-1", UserRole.ADMIN)

        self.client = TestClient(app)
        yield
        app.dependency_overrides.clear()

    def _submit(self, headers=USER, **fields):
        data = {
            "category": "Pothole",
            "description": "Deep pothole",
            "address_line1": "O'Connell Street",
            "county": "dublin",
            "eircode": "D01 F5P2",
            "latitude": "53.3498",
            "longitude": "-6.2603",
            "accuracy": "12",
        }
        data.update(fields)
        files = {"image": ("photo.jpg", b"\xff\xd8\xff\xe0fake", "image/jpeg")}
        return self.client.post("/api/v1/reports", data=data, files=files, headers=headers)

    # ------------------------------------------------------------------
    # System and verification
    # ------------------------------------------------------------------

    def test_health_endpoint(self):
        response = self.client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"] is True

    def test_verify_image(self):
        self.classifier.classify.return_value = True

        response = self.client.post(
            "/api/verify-image", json={"imageBase64": "aGVsbG8=", "category": "Pothole"}
        )

        assert response.status_code == 200
        assert response.json() == {"isVerified": True}
        self.classifier.classify.assert_called_once_with("aGVsbG8=", "Pothole")

    def test_verify_image_missing_fields(self):
        response = self.client.post("/api/verify-image", json={"category": "Pothole"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}

    def test_verify_image_rate_limited(self):
        self.classifier.classify.side_effect = RateLimitExceeded("Rate limit reached")

        response = self.client.post(
            "/api/verify-image", json={"imageBase64": "aGVsbG8=", "category": "Pothole"}
        )

        assert response.status_code == 429
        assert response.json() == {"error": "Rate limit reached"}

    def test_verify_image_classifier_failure(self):
        self.classifier.classify.side_effect = VerificationError("model unavailable")

        response = self.client.post(
            "/api/verify-image", json={"imageBase64": "aGVsbG8=", "category": "Pothole"}
        )

        assert response.status_code == 500
        assert response.json() == {"error": "model unavailable"}

    def test_verify_image_preflight(self):
        response = self.client.options("/api/verify-image")

        assert response.status_code == 204
        assert response.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"
        assert response.headers["Access-Control-Allow-Headers"] == "Content-Type"

    def test_validate_county(self):
        response = self.client.post("/api/validate-county", json={"county": "dublin"})

        assert response.status_code == 200
        assert response.json()["isValid"] is True
        assert len(response.json()["counties"]) == 32

        assert self.client.post("/api/validate-county", json={"county": "Dubln"}).json()["isValid"] is False

    def test_validate_county_required(self):
        response = self.client.post("/api/validate-county", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "County is required"}

    def test_reference_data(self):
        assert len(self.client.get("/api/v1/categories").json()["categories"]) == 10
        assert "Co. Kerry" in self.client.get("/api/v1/counties").json()["counties"]

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def test_identity_header_required(self):
        assert self.client.get("/api/v1/reports/active").status_code == 401

    def test_submit_report(self):
        response = self._submit()

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "submitted"
        assert body["report"]["county"] == "Co. Dublin"
        assert body["report"]["status"] == "pending"

        active = self.client.get("/api/v1/reports/active", headers=USER).json()
        assert active["report"]["docId"] == body["report"]["docId"]

    def test_submit_rejected_by_verifier(self):
        self.verifier.verdict = False

        response = self._submit(submission_id="abc-123")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "rejected"
        assert body["title"] == "Validation Failed"
        assert body["submissionId"] != "abc-123"

    def test_form_submission_id_is_ignored(self):
        other = self._submit(headers={"X-User-Id": "user-2"}).json()["report"]
        key = report_image_key(other["id"])
        photo = self.store.read(key)

        response = self._submit(submission_id=other["id"], latitude="53.36")

        assert response.status_code == 201
        assert response.json()["report"]["id"] != other["id"]
        assert self.store.read(key) == photo

    def test_submit_invalid_county(self):
        response = self._submit(county="Atlantis")

        assert response.status_code == 422
        assert response.json()["error"] == "validation"
        assert response.json()["field"] == "county"
        assert self.verifier.calls == []

    def test_submit_duplicate_location(self):
        assert self._submit().status_code == 201

        response = self._submit(latitude="53.3499")

        assert response.status_code == 409
        assert response.json()["title"] == "Duplicate Report"

    def test_verification_outage(self):
        self.verifier.error = VerificationError("Failed to verify image with AI")

        response = self._submit()

        assert response.status_code == 502
        assert response.json()["error"] == "infrastructure"

    def test_delete_own_report(self):
        doc_id = self._submit().json()["report"]["docId"]

        assert self.client.delete(f"/api/v1/reports/{doc_id}", headers={"X-User-Id": "user-2"}).status_code == 403
        assert self.client.delete(f"/api/v1/reports/{doc_id}", headers=USER).status_code == 200
        assert self.client.get("/api/v1/reports/active", headers=USER).json()["report"] is None

    # ------------------------------------------------------------------
    # Moderation, messages, feed and leaderboard
    # ------------------------------------------------------------------

    def test_moderation_requires_admin(self):
        doc_id = self._submit().json()["report"]["docId"]

        response = self.client.post(f"/api/v1/moderation/{doc_id}/approve", headers=USER)

        assert response.status_code == 403
        assert response.json()["error"] == "authorization"

    def test_full_lifecycle(self):
        doc_id = self._submit().json()["report"]["docId"]

        pending = self.client.get("/api/v1/moderation/pending", headers=ADMIN).json()
        assert [r["docId"] for r in pending["reports"]] == [doc_id]

        approved = self.client.post(f"/api/v1/moderation/{doc_id}/approve", headers=ADMIN)
        assert approved.status_code == 200
        assert approved.json()["toStatus"] == "approved"

        feed = self.client.get("/api/v1/feed").json()
        assert [r["docId"] for r in feed["reports"]] == [doc_id]

        upvote = self.client.post(f"/api/v1/reports/{doc_id}/upvote", headers={"X-User-Id": "user-2"})
        assert upvote.json()["upvotes"] == 1

        assert self.client.post(f"/api/v1/moderation/{doc_id}/assign", headers=ADMIN).status_code == 200
        completed = self.client.post(f"/api/v1/moderation/{doc_id}/complete", headers=ADMIN)
        assert completed.json()["toStatus"] == "completed"

        messages = self.client.get("/api/v1/messages", headers=USER).json()["messages"]
        assert sorted(m["type"] for m in messages) == ["approval", "general"]

        leaderboard = self.client.get("/api/v1/leaderboard").json()["leaderboard"]
        assert leaderboard == [{"county": "Co. Dublin", "points": 10, "completedReports": 1}]

        history = self.client.get("/api/v1/reports/history", headers=USER).json()
        assert [r["docId"] for r in history["reports"]] == [doc_id]

    def test_decline(self):
        doc_id = self._submit().json()["report"]["docId"]

        response = self.client.post(
            f"/api/v1/moderation/{doc_id}/decline", json={"reason": "Not a pothole"}, headers=ADMIN
        )

        assert response.status_code == 200
        assert response.json()["toStatus"] == "deleted"
        messages = self.client.get("/api/v1/messages", headers=USER).json()["messages"]
        assert [m["type"] for m in messages] == ["decline"]

    def test_invalid_transition(self):
        doc_id = self._submit().json()["report"]["docId"]

        response = self.client.post(f"/api/v1/moderation/{doc_id}/complete", headers=ADMIN)

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_unknown_report(self):
        response = self.client.post("/api/v1/moderation/missing/approve", headers=ADMIN)

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_message_read_and_dismiss(self):
        doc_id = self._submit().json()["report"]["docId"]
        self.client.post(f"/api/v1/moderation/{doc_id}/approve", headers=ADMIN)
        message_id = self.client.get("/api/v1/messages", headers=USER).json()["messages"][0]["id"]

        read = self.client.post(f"/api/v1/messages/{message_id}/read", headers=USER)
        assert read.json()["read"] is True

        assert self.client.delete(f"/api/v1/messages/{message_id}", headers=USER).status_code == 200
        assert self.client.get("/api/v1/messages", headers=USER).json()["messages"] == []

    def test_register_user(self):
        response = self.client.post(
            "/api/v1/users", json={"email": "new@example.ie"}, headers={"X-User-Id": "new-user"}
        )

        assert response.status_code == 201
        assert response.json()["role"] == "user"
        assert response.json()["displayName"]

    def test_user_upvotes(self):
        assert self.client.get("/api/v1/upvotes", headers=USER).json() == {"upvotes": {}}
