"""
Tests for auth, student profile/documents and job listing endpoints.
"""

from datetime import date, timedelta

from jobconnect.api.routes.student_routes import REQUIRED_FIELDS, profile_progress


class TestAuth:
    """Registration and login."""

    def test_register_and_me(self, api):
        headers = api.register_student(student_number="123456789")
        me = api.client.get("/api/auth/me", headers=headers).json()
        assert me["role"] == "student"
        assert me["is_active"] is True

    def test_student_number_must_be_nine_digits(self, client):
        response = client.post("/api/auth/register/student", json={
            "email": "a@uni.example.com", "password": "password123",
            "student_number": "12345", "first_name": "A", "last_name": "B",
        })
        assert response.status_code == 422

    def test_duplicate_student_number(self, api):
        api.register_student(student_number="123456789")
        response = api.client.post("/api/auth/register/student", json={
            "email": "other@uni.example.com", "password": "password123",
            "student_number": "123456789", "first_name": "A", "last_name": "B",
        })
        assert response.status_code == 400

    def test_wrong_password(self, api):
        api.register_student()
        response = api.client.post(
            "/api/auth/login", json={"email": "student1@uni.example.com", "password": "wrong-password"}
        )
        assert response.status_code == 401

    def test_bad_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_student_cannot_use_faculty_routes(self, api):
        student = api.register_student()
        assert api.client.get("/api/faculty/jobs", headers=student).status_code == 403


class TestStudentProfile:
    """Profile progress and document uploads."""

    def test_progress_counts_required_fields(self):
        student = {f: "x" for f in REQUIRED_FIELDS}
        assert profile_progress(student) == 100
        student["resume"] = None
        student["phone"] = "   "
        assert profile_progress(student) == round((len(REQUIRED_FIELDS) - 2) / len(REQUIRED_FIELDS) * 100)

    def test_new_student_is_incomplete(self, api):
        headers = api.register_student()
        profile = api.client.get("/api/students/profile", headers=headers).json()
        assert profile["profile_complete"] is False
        assert profile["documents"] == {
            "id_document": False, "proof_of_tax": False, "proof_of_bank": False,
            "resume": False, "academic_transcript": False,
        }

    def test_complete_profile(self, api):
        headers = api.register_student()
        result = api.complete_profile(headers)
        assert result["profile_complete"] is True
        assert result["profile_progress"] == 100

        profile = api.client.get("/api/students/profile", headers=headers).json()
        assert profile["profile_complete"] is True
        assert all(profile["documents"].values())

    def test_partial_upload(self, api):
        headers = api.register_student()
        result = api.complete_profile(headers, documents=["resume"])
        assert result["uploaded"] == ["resume"]
        assert result["profile_complete"] is False

    def test_upload_rejects_non_pdf_extension(self, api):
        headers = api.register_student()
        response = api.client.post(
            "/api/students/documents", headers=headers,
            files={"resume": ("resume.docx", b"PK\x03\x04", "application/octet-stream")},
        )
        assert response.status_code == 400

    def test_upload_rejects_corrupt_pdf(self, api):
        headers = api.register_student()
        response = api.client.post(
            "/api/students/documents", headers=headers,
            files={"resume": ("resume.pdf", b"definitely not a pdf", "application/pdf")},
        )
        assert response.status_code == 400

    def test_upload_requires_a_file(self, api):
        headers = api.register_student()
        assert api.client.post("/api/students/documents", headers=headers).status_code == 400

    def test_empty_update(self, api):
        headers = api.register_student()
        assert api.client.put("/api/students/profile", headers=headers, json={}).status_code == 400


class TestJobs:
    """Listing, filtering, pagination and faculty job management."""

    def test_listing_hides_closed_and_expired(self, api):
        faculty = api.register_faculty()
        open_id = api.create_job(faculty, job_title="Open Tutor Post")
        closed_id = api.create_job(faculty, job_title="Closed Post")
        api.create_job(
            faculty, job_title="Expired Post",
            application_deadline=(date.today() - timedelta(days=1)).isoformat()
        )
        api.client.put(f"/api/faculty/jobs/{closed_id}", headers=faculty, json={"is_active": False})

        body = api.client.get("/api/jobs").json()
        assert [j["job_id"] for j in body["jobs"]] == [open_id]
        assert body["total"] == 1

    def test_search_is_case_insensitive(self, api):
        faculty = api.register_faculty()
        api.create_job(faculty, job_title="Chemistry Tutor")
        api.create_job(faculty, job_title="Lab Assistant")

        jobs = api.client.get("/api/jobs", params={"search": "CHEMISTRY"}).json()["jobs"]
        assert [j["job_title"] for j in jobs] == ["Chemistry Tutor"]

    def test_job_type_filter(self, api):
        faculty = api.register_faculty()
        api.create_job(faculty, job_type="tutor")
        api.create_job(faculty, job_type="internship")

        jobs = api.client.get("/api/jobs", params={"job_type": "internship"}).json()["jobs"]
        assert [j["job_type"] for j in jobs] == ["internship"]

    def test_page_is_clamped(self, api):
        faculty = api.register_faculty()
        for i in range(3):
            api.create_job(faculty, job_title=f"Post number {i}")

        body = api.client.get("/api/jobs", params={"page": 5, "limit": 2}).json()
        assert body["total_pages"] == 2
        assert body["page"] == 2
        assert len(body["jobs"]) == 1

    def test_get_job(self, api):
        faculty = api.register_faculty()
        job_id = api.create_job(faculty)
        job = api.client.get(f"/api/jobs/{job_id}").json()
        assert job["posted_by"].startswith("Sipho Admin")
        assert api.client.get("/api/jobs/9999").status_code == 404

    def test_only_owner_can_edit_or_delete(self, api):
        owner = api.register_faculty()
        other = api.register_faculty()
        job_id = api.create_job(owner)

        assert api.client.put(
            f"/api/faculty/jobs/{job_id}", headers=other, json={"job_title": "Hijacked"}
        ).status_code == 404
        assert api.client.delete(f"/api/faculty/jobs/{job_id}", headers=other).status_code == 404
        assert api.client.delete(f"/api/faculty/jobs/{job_id}", headers=owner).status_code == 200
        assert api.client.get(f"/api/jobs/{job_id}").status_code == 404

    def test_my_jobs(self, api):
        faculty = api.register_faculty()
        api.create_job(faculty)
        api.create_job(api.register_faculty())
        assert len(api.client.get("/api/faculty/jobs", headers=faculty).json()) == 1

    def test_faculty_profile_update(self, api):
        faculty = api.register_faculty()
        response = api.client.put("/api/faculty/profile", headers=faculty, json={"phone": "0110000000"})
        assert response.status_code == 200
        assert api.client.get("/api/faculty/profile", headers=faculty).json()["phone"] == "0110000000"


class TestHealth:

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["database"] == "connected"
        assert body["ai_provider"] == "gemini"
        assert body["ai_configured"] is True
