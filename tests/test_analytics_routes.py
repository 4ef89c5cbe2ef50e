from hyrepro.services.analytics_service import KPI_FIELDS, normalize_kpis, shape_job_analytics


def test_normalize_kpis_fills_every_numeric_field():
    kpis = normalize_kpis({"total_active_campaigns": 5, "section_wise_performance": {"pedagogy": 7.5}})

    assert kpis["total_active_campaigns"] == 5
    assert all(kpis[name] == 0 for name in KPI_FIELDS if name != "total_active_campaigns")
    assert kpis["section_wise_performance"] == {
        "pedagogy": 7.5, "communication": 0, "digital_literacy": 0, "subject_knowledge": 0,
    }


def test_funnel_shape_has_zeroed_stages():
    shaped = shape_job_analytics([{"stages": {"hired": "2"}}], "job-1", "funnel")
    assert shaped["type"] == "funnel"
    assert shaped["job_id"] == "job-1"
    assert shaped["stages"]["hired"] == 2
    assert shaped["stages"]["rejected"] == 0
    assert shaped["conversion_rates"]["hire_rate"] == 0


class TestSchoolKpis:
    def test_missing_school_id(self, client, rpc):
        response = client.get("/api/school-kpis")
        assert response.status_code == 400
        assert response.json() == {"error": "Missing schoolId parameter"}
        assert rpc.calls == []

    def test_partial_kpis_are_completed(self, client, rpc):
        rpc.returns("get_school_kpis", {"total_active_campaigns": 5})

        response = client.get("/api/school-kpis", params={"schoolId": "school-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["total_active_campaigns"] == 5
        assert body["candidates_offered"] == 0
        assert body["section_wise_performance"]["pedagogy"] == 0
        assert rpc.called("get_school_kpis") == [{"school_id": "school-1", "period": "all"}]

    def test_procedure_failure_is_500(self, client, rpc):
        rpc.fails("get_school_kpis")
        response = client.get("/api/school-kpis", params={"schoolId": "school-1", "period": "month"})
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch KPIs"}


class TestSchoolAnalytics:
    def test_results_are_cached_per_range(self, client, rpc):
        rpc.returns("get_school_analytics", lambda params: {"range": params["date_range"]})

        first = client.get("/api/school-analytics", params={"schoolId": "school-1"})
        second = client.get("/api/school-analytics", params={"schoolId": "school-1"})
        month = client.get("/api/school-analytics", params={"schoolId": "school-1", "dateRange": "month"})

        assert first.json() == second.json() == {"range": "week"}
        assert month.json() == {"range": "month"}
        assert len(rpc.called("get_school_analytics")) == 2

    def test_invalid_range(self, client, rpc):
        response = client.get("/api/school-analytics", params={"schoolId": "school-1", "dateRange": "year"})
        assert response.status_code == 400

    def test_empty_result_is_404_and_not_cached(self, client, rpc):
        rpc.returns("get_school_analytics", None)
        assert client.get("/api/school-analytics", params={"schoolId": "school-1"}).status_code == 404

        rpc.returns("get_school_analytics", {"ok": True})
        assert client.get("/api/school-analytics", params={"schoolId": "school-1"}).json() == {"ok": True}

    def test_clear_cache_for_callers_school(self, client, rpc, school, auth_headers):
        rpc.returns("get_school_analytics", {"ok": True})
        client.get("/api/school-analytics", params={"schoolId": "school-1"})
        client.get("/api/school-analytics", params={"schoolId": "school-1", "dateRange": "day"})

        response = client.delete("/api/school-analytics", headers=auth_headers)

        assert response.json() == {"success": True, "cleared": 2}
        client.get("/api/school-analytics", params={"schoolId": "school-1"})
        assert len(rpc.called("get_school_analytics")) == 3


class TestDashboardWidgets:
    def test_weekly_activity_falls_back_on_failure(self, client, rpc, school, auth_headers):
        rpc.fails("get_application_stats")
        response = client.get("/api/weekly-activity", headers=auth_headers)
        assert response.status_code == 200
        assert [row["period"] for row in response.json()] == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

    def test_hiring_progress_needs_login(self, client, rpc):
        response = client.get("/api/hiring-progress")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized. Please log in."}

    def test_hiring_progress_needs_school(self, client, rpc, newcomer_headers):
        response = client.get("/api/hiring-progress", headers=newcomer_headers)
        assert response.status_code == 404
        assert response.json() == {
            "error": "User school information not found. Please complete your profile."
        }

    def test_application_distribution(self, client, rpc, school, auth_headers):
        rpc.returns("get_application_distribution", [{"status": "offered", "count": 3}])
        response = client.get("/api/application-distribution", headers=auth_headers)
        assert response.json() == {"data": [{"status": "offered", "count": 3}]}
        assert rpc.called("get_application_distribution") == [{"school_id": "school-1"}]


class TestJobAnalytics:
    def test_overview(self, client, rpc):
        rpc.returns("get_job_analytics", [{"total_applicants": 12}])
        response = client.get("/api/job-analytics", params={"jobId": "job-1"})
        body = response.json()
        assert body["type"] == "overview"
        assert body["total_applicants"] == 12
        assert body["demos_completed"] == 0

    def test_invalid_type(self, client, rpc):
        response = client.get("/api/job-analytics", params={"jobId": "job-1", "type": "pipeline"})
        assert response.status_code == 400

    def test_no_rows_is_404(self, client, rpc):
        rpc.returns("get_demo_analytics", [])
        response = client.get("/api/demo-analytics", params={"jobId": "job-1"})
        assert response.status_code == 404
        assert response.json() == {"error": "Demo analytics not found"}

    def test_remote_failure_is_500_not_404(self, client, rpc):
        rpc.fails("get_interview_analytics")
        response = client.get("/api/interview-analytics", params={"jobId": "job-1"})
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch interview analytics"}
