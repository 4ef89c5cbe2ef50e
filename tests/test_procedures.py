from types import SimpleNamespace

import pytest

from hyrepro.api.params import clamp_window, extract_count, parse_int
from hyrepro.services.procedures import ProcedureError, ProcedureGateway, first_row


class FakeResult:
    def __init__(self, columns, rows):
        self.columns = columns
        self.rows = rows

    def keys(self):
        return self.columns

    def __iter__(self):
        return iter(SimpleNamespace(_mapping=dict(zip(self.columns, row))) for row in self.rows)


class FakeSession:
    def __init__(self, result):
        self.result = result
        self.statements = []
        self.committed = False

    def execute(self, statement, params):
        self.statements.append((str(statement), params))
        return self.result

    def commit(self):
        self.committed = True


def test_statement_uses_named_arguments():
    gateway = ProcedureGateway()
    statement = gateway.build_statement("get_jobs_count", {"p_school_id": "s1", "p_status": "ALL"})
    assert statement == "SELECT * FROM get_jobs_count(p_school_id => :p_school_id, p_status => :p_status)"


@pytest.mark.parametrize("name, params", [
    ("drop table jobs;--", {}),
    ("get_jobs", {"p_id); --": 1}),
])
def test_rejects_unsafe_identifiers(name, params):
    with pytest.raises(ValueError):
        ProcedureGateway().build_statement(name, params)


def test_json_function_result_is_unwrapped():
    session = FakeSession(FakeResult(["get_school_kpis"], [({"total_active_campaigns": 3},)]))
    result = ProcedureGateway().call(session, "get_school_kpis", {"school_id": "s1"})
    assert result == {"total_active_campaigns": 3}
    assert session.committed


def test_set_returning_function_gives_rows():
    session = FakeSession(FakeResult(["id", "title"], [("j1", "Math"), ("j2", "Physics")]))
    result = ProcedureGateway().call(session, "get_school_jobs_data", {"p_school_id": "s1"})
    assert result == [{"id": "j1", "title": "Math"}, {"id": "j2", "title": "Physics"}]


def test_database_error_becomes_procedure_error(db):
    with pytest.raises(ProcedureError) as excinfo:
        ProcedureGateway().call(db, "missing_function", {"p_school_id": "s1"})
    assert excinfo.value.procedure == "missing_function"


def test_first_row_handles_both_shapes():
    assert first_row(None) is None
    assert first_row([]) is None
    assert first_row([{"a": 1}, {"a": 2}]) == {"a": 1}
    assert first_row({"a": 1}) == {"a": 1}


@pytest.mark.parametrize("data, expected", [
    (5, 5),
    ([{"count": 4}], 4),
    ({"get_jobs_count": 9}, 9),
    ([], 0),
    (None, 0),
])
def test_extract_count(data, expected):
    assert extract_count(data) == expected


def test_parse_int_falls_back_like_parse_int():
    assert parse_int("15", 0) == 15
    assert parse_int("abc", 10) == 10
    assert parse_int("0", 10) == 10
    assert parse_int(None, 20) == 20


def test_clamp_window_bounds():
    assert clamp_window("-5", None) == (0, 20)
    assert clamp_window("50", "10") == (50, 51)
    assert clamp_window("950", "1200") == (950, 1000)
