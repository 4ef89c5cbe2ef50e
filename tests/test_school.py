from hyrepro.models.interview import InterviewMeetingSettings
from hyrepro.models.school import AdminUserInfo, School

SCHOOL_FORM = {
    "name": "Sunrise Public School",
    "location": "Nagpur",
    "board": "ICSE",
    "address": "12 Lake Rd",
    "school_type": "K-12",
    "num_students": "850",
    "num_teachers": "",
    "website": "",
}


class TestCreateSchool:
    def test_creates_school_and_admin_profile(self, client, db, auth_headers):
        response = client.post("/api/school", json=SCHOOL_FORM, headers=auth_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "School created and user profile updated successfully"
        assert body["school"]["num_students"] == 850
        assert body["school"]["num_teachers"] is None
        assert body["school"]["website"] is None

        admin = db.query(AdminUserInfo).filter(AdminUserInfo.id == "user-admin").one()
        assert admin.school_id == body["school"]["id"]
        assert admin.first_name == "Asha"
        assert admin.phone_no == "9999999999"
        assert admin.role == "admin"

    def test_missing_fields(self, client, auth_headers):
        response = client.post("/api/school", json={"name": "Only a name"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {
            "error": "Missing required fields: name, location, board, address, school_type"
        }

    def test_requires_login(self, client):
        assert client.post("/api/school", json=SCHOOL_FORM).status_code == 401


class TestUpdateSchool:
    def test_updates_callers_school(self, client, db, school, auth_headers):
        response = client.put("/api/school", json=dict(SCHOOL_FORM, name="Renamed"), headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["school"]["name"] == "Renamed"
        db.expire_all()
        assert db.query(School).filter(School.id == "school-1").one().name == "Renamed"

    def test_user_without_school(self, client, newcomer_headers):
        response = client.put("/api/school", json=SCHOOL_FORM, headers=newcomer_headers)
        assert response.status_code == 404


def test_admin_user_profile(client):
    response = client.post("/api/admin-user", json={
        "first_name": "Ravi", "last_name": "K", "email": "ravi@x.test", "phone_no": "123",
    })
    assert response.status_code == 201
    assert response.json()["data"][0]["email"] == "ravi@x.test"

    assert client.post("/api/admin-user", json={"first_name": "Ravi"}).status_code == 400


def test_check_user_info(client, school, auth_headers):
    assert client.get("/api/check-user-info").status_code == 401

    response = client.get("/api/check-user-info", headers=auth_headers)
    assert response.json()["data"]["school_id"] == "school-1"


class TestInterviewSettings:
    def test_defaults_when_never_saved(self, client, school, auth_headers):
        response = client.get("/api/settings/interviews", headers=auth_headers)

        body = response.json()
        assert body["id"] is None
        assert body["default_duration"] == "30"
        enabled = {day["day"]: day["enabled"] for day in body["working_days"]}
        assert enabled["monday"] is True
        assert enabled["saturday"] is False
        assert enabled["sunday"] is False
        assert body["breaks"] == [] and body["slots"] == []

    def test_save_then_read_back(self, client, db, school, auth_headers):
        response = client.put("/api/settings/interviews", headers=auth_headers, json={
            "default_duration": "45",
            "buffer_time": "10",
            "working_days": [{"day": "monday", "enabled": True}],
        })
        assert response.json() == {"success": True}

        row = db.query(InterviewMeetingSettings).filter(InterviewMeetingSettings.school_id == "school-1").one()
        assert row.default_duration == "45"
        body = client.get("/api/settings/interviews", headers=auth_headers).json()
        assert body["buffer_time"] == "10"
        assert body["working_days"] == [{"day": "monday", "enabled": True}]

    def test_no_school(self, client, newcomer_headers):
        response = client.get("/api/settings/interviews", headers=newcomer_headers)
        assert response.status_code == 404
        assert response.json() == {"error": "No school associated with user"}


def test_account_settings_round_trip(client, school, auth_headers):
    response = client.put("/api/settings/account", headers=auth_headers,
                          json={"first_name": "Asha", "last_name": "Iyer", "phone_no": "42"})
    assert response.json() == {"success": True}
    assert client.get("/api/settings/account", headers=auth_headers).json()["last_name"] == "Iyer"


def test_settings_users_pages_through_procedure(client, rpc, school, auth_headers):
    rpc.returns("get_admin_users", [{"id": "u1", "role": None}, {"id": "u2", "role": "hr"}])
    rpc.returns("get_admin_users_count", 42)

    response = client.post("/api/settings/users", headers=auth_headers, json={"page": 2, "page_size": 10})

    body = response.json()
    assert body["total"] == 42
    assert body["users"][0] == {"id": "u1", "role": "admin", "status": "active"}
    assert body["users"][1]["role"] == "hr"
    params = rpc.called("get_admin_users")[0]
    assert (params["p_start_index"], params["p_end_index"]) == (20, 29)
    assert params["p_school_id"] == "school-1"


class TestStorageUpload:
    def test_uploads_to_allowed_bucket(self, client, bridge, school, auth_headers):
        response = client.post(
            "/api/storage/upload",
            headers=auth_headers,
            data={"bucket": "school", "fileName": "logos/school-1.png"},
            files={"file": ("logo.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "publicUrl": "https://storage.test/school/logos/school-1.png",
            "path": "logos/school-1.png",
        }
        bucket, path, content, options = bridge.storage_client.uploads[0]
        assert (bucket, content) == ("school", b"\x89PNG")
        assert options["content-type"] == "image/png"

    def test_rejects_unknown_bucket(self, client, school, auth_headers):
        response = client.post(
            "/api/storage/upload",
            headers=auth_headers,
            data={"bucket": "secrets", "fileName": "x.txt"},
            files={"file": ("x.txt", b"x", "text/plain")},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid bucket name"}

    def test_missing_file(self, client, school, auth_headers):
        response = client.post("/api/storage/upload", headers=auth_headers, data={"bucket": "school"})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}
