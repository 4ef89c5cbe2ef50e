import pytest

from hyrepro.api.routes.jobs import parse_salary, salary_range
from hyrepro.models.job import Job, JobInvitation

JOB_FORM = {
    "jobTitle": "Math Teacher",
    "subjects": ["Mathematics"],
    "gradeLevel": ["9", "10"],
    "employmentType": "Full-time",
    "experience": "2-4 years",
    "location": "Pune",
    "jobDescription": "Teach algebra",
    "requirements": "B.Ed\nCTET",
}


@pytest.mark.parametrize("raw, expected", [
    (None, None),
    ("", None),
    (0, None),
    ("₹30,000", 30000.0),
    (45000, 45000.0),
    ("abc", 0.0),
])
def test_parse_salary(raw, expected):
    assert parse_salary(raw) == expected


def test_salary_range_formats():
    assert salary_range(30000.0, 50000.0) == "₹30000 - ₹50000"
    assert salary_range(30000.0, None) == "₹30000+"
    assert salary_range(None, 50000.0) == "Up to ₹50000"
    assert salary_range(None, None) == ""


class TestCreateJob:
    def test_creates_job_for_callers_school(self, client, db, school, auth_headers):
        form = dict(JOB_FORM, salaryMin="₹30,000", salaryMax="50000", includeSubjectTest=True,
                    numberOfQuestions=20, minimumPassingMarks=12, assessmentDifficulty="medium")

        response = client.post("/api/create-job", json=form, headers=auth_headers)

        assert response.status_code == 201
        job = db.query(Job).filter(Job.id == response.json()["data"]["id"]).one()
        assert job.school_id == "school-1"
        assert job.salary_range == "₹30000 - ₹50000"
        assert job.requirements == "B.Ed\nCTET"
        assert job.number_of_questions == 20
        assert job.assessment_difficulty["assessmentDifficulty"] == "medium"
        assert job.assessment_difficulty["subjectScreening"] is True

    def test_subject_test_fields_only_when_enabled(self, client, db, school, auth_headers):
        form = dict(JOB_FORM, numberOfQuestions=20, assessmentDifficulty="hard")
        job_id = client.post("/api/create-job", json=form, headers=auth_headers).json()["data"]["id"]

        job = db.query(Job).filter(Job.id == job_id).one()
        assert "assessmentDifficulty" not in job.assessment_difficulty
        assert job.number_of_questions == 10
        assert job.minimum_passing_marks == 0

    def test_missing_fields(self, client, school, auth_headers):
        response = client.post("/api/create-job", json={"jobTitle": "Math"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {
            "error": "Missing required fields: jobTitle, subjects, gradeLevel, employmentType"
        }

    def test_min_salary_above_max(self, client, school, auth_headers):
        form = dict(JOB_FORM, salaryMin="60000", salaryMax="50000")
        response = client.post("/api/create-job", json=form, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "salaryMin cannot exceed salaryMax"}

    def test_demo_duration_limit(self, client, school, auth_headers):
        response = client.post("/api/create-job", json=dict(JOB_FORM, demoVideoDuration=12), headers=auth_headers)
        assert response.status_code == 400


class TestUpdateJob:
    def test_only_whitelisted_fields_change(self, client, db, school, auth_headers):
        db.add(Job(id="job-1", school_id="school-1", title="Old", openings=1))
        db.commit()

        response = client.put("/api/update-job", headers=auth_headers, json={
            "jobId": "job-1", "title": "New", "openings": 3, "school_id": "other-school",
        })

        assert response.status_code == 200
        job = response.json()["job"]
        assert job["title"] == "New"
        assert job["openings"] == 3
        assert job["school_id"] == "school-1"

    def test_other_schools_job_is_404(self, client, db, school, auth_headers):
        db.add(Job(id="job-2", school_id="another", title="Theirs"))
        db.commit()

        response = client.put("/api/update-job", headers=auth_headers, json={"jobId": "job-2", "title": "Mine"})

        assert response.status_code == 404
        assert response.json() == {"error": "Job not found or you do not have permission to update it"}


class TestListJobs:
    def test_window_and_status_passed_to_procedure(self, client, rpc, school, auth_headers):
        rpc.returns("get_jobs_with_analytics", [{"id": "job-1"}])

        response = client.get("/api/jobs", headers=auth_headers,
                              params={"status": "open", "startIndex": "20", "endIndex": "40"})

        assert response.json() == {"jobs": [{"id": "job-1"}], "message": "Jobs fetched successfully"}
        params = rpc.called("get_jobs_with_analytics")[0]
        assert params["p_status"] == "OPEN"
        assert (params["p_start_index"], params["p_end_index"]) == (20, 40)
        assert params["p_school_id"] == "school-1"

    def test_page_too_large(self, client, rpc, school, auth_headers):
        response = client.get("/api/jobs", headers=auth_headers, params={"startIndex": "0", "endIndex": "500"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"].startswith("Maximum page size is 100 items")
        assert body["details"]["maxAllowed"] == 100

    def test_start_too_large(self, client, rpc, school, auth_headers):
        response = client.get("/api/jobs", headers=auth_headers, params={"startIndex": "20000"})
        assert response.status_code == 400
        assert response.json() == {"error": "Start index too large. Maximum allowed is 10,000."}

    def test_job_count_uses_school_scope(self, client, db, school, auth_headers):
        db.add_all([
            Job(school_id="school-1", title="Math"),
            Job(school_id="school-1", title="Physics"),
            Job(school_id="another", title="Math"),
        ])
        db.commit()

        response = client.get("/api/get-job-count", headers=auth_headers, params={"search": "math"})

        assert response.json()["count"] == 1


class TestJobInvitations:
    def test_duplicates_are_409_with_existing_emails(self, client, db, school, auth_headers):
        db.add(Job(id="job-1", school_id="school-1", title="Math"))
        db.add(JobInvitation(job_id="job-1", school_id="school-1", email="a@x.test"))
        db.commit()

        response = client.post("/api/job-invitations", headers=auth_headers,
                               json={"jobId": "job-1", "emails": ["a@x.test", "b@x.test"]})

        assert response.status_code == 409
        body = response.json()
        assert body["existingEmails"] == ["a@x.test"]
        assert db.query(JobInvitation).count() == 1

    def test_invalid_emails(self, client, school, auth_headers):
        response = client.post("/api/job-invitations", headers=auth_headers,
                               json={"jobId": "job-1", "emails": ["not-an-email"]})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid email addresses: not-an-email"}

    def test_creates_invitations(self, client, db, school, auth_headers):
        db.add(Job(id="job-1", school_id="school-1", title="Math"))
        db.commit()

        response = client.post("/api/job-invitations", headers=auth_headers,
                               json={"jobId": "job-1", "emails": ["a@x.test", "b@x.test"]})

        assert response.status_code == 201
        assert response.json()["message"] == "2 invitation(s) created successfully"


class TestSingleResources:
    def test_job_with_analytics_not_found(self, client, rpc):
        rpc.returns("get_job_with_analytics", [])
        response = client.get("/api/jobs/job-9/job-with-analytics")
        assert response.status_code == 404

    def test_assessment_config(self, client, rpc):
        rpc.returns("get_job_assessment_config", {"numberOfQuestions": 10})
        response = client.get("/api/jobs/job-1/assessment-config")
        assert response.json() == {"numberOfQuestions": 10}
