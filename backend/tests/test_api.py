"""
HTTP Surface Tests

Drives the FastAPI app end to end: registration, role gates, submit,
digest upload, recruiter review and verification, sign-out.
"""
import pytest

from credverify.services.evidence import compute_evidence_digest

PDF_BYTES = b"%PDF-1.7 Bachelor of Technology - Rahul Kumar Singh"
PDF_DIGEST = compute_evidence_digest(PDF_BYTES)
TAMPERED_DIGEST = compute_evidence_digest(b"%PDF-1.7 edited")


def _register(client, email, role, full_name="Test User", password="secret123"):
    response = client.post("/auth/register", json={
        "email": email, "password": password, "full_name": full_name, "role": role,
    })
    assert response.status_code == 201, response.text
    return response.json()


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student_token(client):
    return _register(client, "rahul.singh@university.edu", "student", "Rahul Kumar Singh")["access_token"]


@pytest.fixture
def recruiter_token(client):
    return _register(client, "hr@company.com", "recruiter", "Hiring Manager")["access_token"]


@pytest.fixture
def submitted(client, student_token):
    response = client.post("/certificates", headers=_auth(student_token), json={
        "title": "B.Tech CSE",
        "certificate_type": "degree",
        "roll_number": "2020BTCS1234",
        "file_hash": PDF_DIGEST,
    })
    assert response.status_code == 201, response.text
    return response.json()


class TestAuthRoutes:

    def test_register_returns_landing_route(self, client):
        body = _register(client, "new@university.edu", "recruiter")
        assert body["role"] == "recruiter"
        assert body["redirect_to"] == "/recruiter"

    def test_institution_admin_not_self_service(self, client):
        response = client.post("/auth/register", json={
            "email": "admin@university.edu", "password": "secret123",
            "full_name": "Admin", "role": "institution_admin",
        })
        assert response.status_code == 422

    def test_short_password_rejected(self, client):
        response = client.post("/auth/register", json={
            "email": "a@university.edu", "password": "123", "full_name": "A", "role": "student",
        })
        assert response.status_code == 422

    def test_duplicate_registration(self, client, student_token):
        response = client.post("/auth/register", json={
            "email": "rahul.singh@university.edu", "password": "secret123",
            "full_name": "Again", "role": "student",
        })
        assert response.status_code == 409
        assert response.json()["detail"] == "User already registered"

    def test_login_and_me(self, client, student_token):
        response = client.post("/auth/login", json={
            "email": "rahul.singh@university.edu", "password": "secret123",
        })
        assert response.status_code == 200
        token = response.json()["access_token"]

        me = client.get("/auth/me", headers=_auth(token)).json()
        assert me["email"] == "rahul.singh@university.edu"
        assert me["role"] == "student"
        assert me["home"] == "/student"

    def test_bad_login(self, client, student_token):
        response = client.post("/auth/login", json={
            "email": "rahul.singh@university.edu", "password": "wrong-pass",
        })
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    def test_logout_revokes(self, client, student_token):
        assert client.post("/auth/logout", headers=_auth(student_token)).status_code == 200
        assert client.get("/auth/me", headers=_auth(student_token)).status_code == 401


class TestGate:

    def test_signed_out(self, client):
        body = client.get("/auth/gate", params={"view": "student"}).json()
        assert body == {"view": "student", "decision": "redirect_login", "redirect_to": "/auth"}

    def test_allowed(self, client, recruiter_token):
        body = client.get("/auth/gate", params={"view": "recruiter"}, headers=_auth(recruiter_token)).json()
        assert body["decision"] == "allow"

    def test_wrong_role(self, client, student_token):
        body = client.get("/auth/gate", params={"view": "recruiter"}, headers=_auth(student_token)).json()
        assert body["decision"] == "redirect_home"
        assert body["redirect_to"] == "/student"

    def test_unknown_view(self, client):
        assert client.get("/auth/gate", params={"view": "admin"}).status_code == 404


class TestStudentRoutes:

    def test_submit_starts_pending(self, submitted):
        assert submitted["status"] == "pending"
        assert submitted["certificate_type"] == "degree"
        assert submitted["file_hash"] == PDF_DIGEST

    def test_empty_title_is_validation_error(self, client, student_token):
        response = client.post("/certificates", headers=_auth(student_token), json={
            "title": " ", "certificate_type": "degree",
        })
        assert response.status_code == 422
        assert response.json()["field"] == "title"

    def test_recruiter_cannot_submit(self, client, recruiter_token):
        response = client.post("/certificates", headers=_auth(recruiter_token), json={
            "title": "B.Tech", "certificate_type": "degree",
        })
        assert response.status_code == 403
        assert response.json()["detail"]["redirect_to"] == "/recruiter"

    def test_signed_out_cannot_submit(self, client):
        response = client.post("/certificates", json={"title": "B.Tech", "certificate_type": "degree"})
        assert response.status_code == 401

    def test_list_is_scoped_to_owner(self, client, student_token, submitted):
        other = _register(client, "priya@university.edu", "student", "Priya Sharma")["access_token"]
        client.post("/certificates", headers=_auth(other), json={"title": "B.Tech ECE", "certificate_type": "degree"})

        mine = client.get("/certificates", headers=_auth(student_token)).json()
        assert [c["id"] for c in mine] == [submitted["id"]]

    def test_delete(self, client, student_token, submitted):
        response = client.delete(f"/certificates/{submitted['id']}", headers=_auth(student_token))
        assert response.status_code == 200
        assert client.get("/certificates", headers=_auth(student_token)).json() == []

    def test_cannot_delete_someone_elses(self, client, submitted):
        other = _register(client, "priya@university.edu", "student", "Priya Sharma")["access_token"]
        response = client.delete(f"/certificates/{submitted['id']}", headers=_auth(other))
        assert response.status_code == 404

    def test_digest_upload(self, client, student_token):
        response = client.post(
            "/certificates/digest",
            headers=_auth(student_token),
            files={"file": ("degree.pdf", PDF_BYTES, "application/pdf")},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["digest"] == PDF_DIGEST
        assert body["algorithm"] == "sha256"
        assert body["size"] == len(PDF_BYTES)

    def test_digest_upload_rejects_other_types(self, client, student_token):
        response = client.post(
            "/certificates/digest",
            headers=_auth(student_token),
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 422


class TestRecruiterRoutes:

    def test_list_grouped_by_owner(self, client, recruiter_token, submitted):
        body = client.get("/recruiter/certificates", headers=_auth(recruiter_token)).json()
        assert body["total"] == 1
        assert body["status_counts"]["pending"] == 1
        assert body["owners"][0]["owner"]["full_name"] == "Rahul Kumar Singh"
        assert body["owners"][0]["certificates"][0]["id"] == submitted["id"]

    def test_search(self, client, recruiter_token, submitted):
        body = client.get("/recruiter/certificates", params={"q": "2020BTCS"}, headers=_auth(recruiter_token)).json()
        assert body["total"] == 1
        body = client.get("/recruiter/certificates", params={"q": "nobody"}, headers=_auth(recruiter_token)).json()
        assert body["total"] == 0

    def test_student_cannot_list_all(self, client, student_token):
        assert client.get("/recruiter/certificates", headers=_auth(student_token)).status_code == 403

    def test_verify_then_flag(self, client, recruiter_token, student_token, submitted):
        url = f"/recruiter/certificates/{submitted['id']}/verify"

        first = client.post(url, headers=_auth(recruiter_token), json={"reference_digest": PDF_DIGEST})
        assert first.status_code == 200, first.text
        assert first.json()["result"] == "success"
        assert first.json()["certificate"]["status"] == "verified"
        assert first.json()["record"]["verification_method"] == "blockchain_hash"

        second = client.post(url, headers=_auth(recruiter_token), json={"reference_digest": TAMPERED_DIGEST})
        assert second.json()["result"] == "failed"
        assert second.json()["certificate"]["status"] == "flagged"

        history = client.get(
            f"/certificates/{submitted['id']}/verifications", headers=_auth(student_token)
        ).json()
        assert [r["verification_status"] for r in history] == ["flagged", "verified"]

    def test_student_cannot_verify(self, client, student_token, submitted):
        response = client.post(
            f"/recruiter/certificates/{submitted['id']}/verify",
            headers=_auth(student_token),
            json={"reference_digest": PDF_DIGEST},
        )
        assert response.status_code == 403

        mine = client.get("/certificates", headers=_auth(student_token)).json()
        assert mine[0]["status"] == "pending"
        history = client.get(f"/certificates/{submitted['id']}/verifications", headers=_auth(student_token)).json()
        assert history == []

    def test_stale_version_conflict(self, client, recruiter_token, submitted):
        url = f"/recruiter/certificates/{submitted['id']}/verify"
        client.post(url, headers=_auth(recruiter_token), json={"reference_digest": PDF_DIGEST})

        response = client.post(url, headers=_auth(recruiter_token), json={
            "reference_digest": PDF_DIGEST, "expected_version": submitted["version"],
        })
        assert response.status_code == 409
        assert response.json()["retryable"] is True

    def test_malformed_reference_digest(self, client, recruiter_token, submitted):
        response = client.post(
            f"/recruiter/certificates/{submitted['id']}/verify",
            headers=_auth(recruiter_token),
            json={"reference_digest": "8a7b"},
        )
        assert response.status_code == 422


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
