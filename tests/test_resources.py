import pytest
import requests
from fhir_workbench.resources import (
    calculate_next_version,
    is_new_version_route,
    load_canonical_resource,
    load_fhir_resource,
    save_fhir_resource,
)
from fhir_workbench.schemas import ConformanceResourceState, OperationOutcome, ResourceState
from conftest import MockResponse, BASE_URL

def new_questionnaire():
    return {"resourceType": "Questionnaire", "status": "draft"}

def stored_questionnaire():
    return {
        "resourceType": "Questionnaire",
        "id": "abc",
        "meta": {"versionId": "3", "lastUpdated": "2024-01-01T00:00:00Z", "profile": ["http://example.org/p"]},
        "url": "http://example.org/Questionnaire/phq9",
        "version": "1.0.0",
        "status": "active",
        "date": "2024-01-01",
        "text": {"status": "generated", "div": "<div>PHQ-9</div>"},
    }

@pytest.mark.parametrize("route_id, expected", [
    (":new", False),
    ("abc:new", True),
    ("abc", False),
])
def test_is_new_version_route(route_id, expected):
    assert is_new_version_route(route_id) is expected

# --- load_fhir_resource ---

def test_load_new_resource_skips_http(patch_get):
    state = ResourceState(save_outcome=OperationOutcome(), show_outcome=True)
    outcome = load_fhir_resource(BASE_URL, state, "Questionnaire", ":new", new_questionnaire)
    assert outcome is None
    patch_get.assert_not_called()
    assert state.raw == new_questionnaire()
    assert state.enable_save is True
    assert state.show_outcome is False
    assert state.save_outcome is None

def test_load_existing_resource(patch_get):
    patch_get.return_value = MockResponse(stored_questionnaire(), 200)
    state = ResourceState()
    outcome = load_fhir_resource(BASE_URL, state, "Questionnaire", "abc", new_questionnaire)
    assert outcome is None
    assert state.raw["id"] == "abc"
    assert state.raw["meta"]["versionId"] == "3"
    assert state.enable_save is False
    args, kwargs = patch_get.call_args
    assert args[0] == f"{BASE_URL}/Questionnaire/abc"
    assert kwargs["headers"]["Cache-Control"] == "no-cache"

def test_load_new_version_strips_identity(patch_get):
    patch_get.return_value = MockResponse(stored_questionnaire(), 200)
    state = ResourceState()
    load_fhir_resource(BASE_URL, state, "Questionnaire", "abc:new", new_questionnaire)
    args, _ = patch_get.call_args
    assert args[0] == f"{BASE_URL}/Questionnaire/abc"
    assert "id" not in state.raw
    assert state.raw["meta"] == {"profile": ["http://example.org/p"]}
    assert state.enable_save is True

def test_load_copies_advanced_settings(patch_get, monkeypatch):
    monkeypatch.setenv("SHOW_ADVANCED_SETTINGS", "true")
    state = ResourceState()
    load_fhir_resource(BASE_URL, state, "Questionnaire", ":new", new_questionnaire)
    assert state.show_advanced_settings is True

def test_load_not_found_returns_outcome(patch_get, outcome_body):
    patch_get.return_value = MockResponse(outcome_body, 404)
    state = ResourceState()
    outcome = load_fhir_resource(BASE_URL, state, "Questionnaire", "abc", new_questionnaire)
    assert isinstance(outcome, OperationOutcome)
    assert state.raw is None

def test_load_transport_error_returns_none(mocker, caplog):
    mocker.patch("requests.get", side_effect=requests.exceptions.ConnectionError("refused"))
    state = ResourceState()
    with caplog.at_level("WARNING"):
        outcome = load_fhir_resource(BASE_URL, state, "Questionnaire", "abc", new_questionnaire)
    assert outcome is None
    assert state.raw is None
    assert "Client Error" in caplog.text

# --- load_canonical_resource ---

def history_bundle():
    return {
        "resourceType": "Bundle",
        "entry": [
            {"resource": {"resourceType": "Questionnaire", "id": "abc", "version": "1.0.0"}},
            {"resource": {"resourceType": "Questionnaire", "id": "old", "version": "0.9.0"}},
        ],
    }

def test_load_canonical_resource_loads_history(mocker):
    def fake_get(url, *args, **kwargs):
        if "?url=" in url:
            return MockResponse(history_bundle(), 200)
        return MockResponse(stored_questionnaire(), 200)
    get = mocker.patch("requests.get", side_effect=fake_get)
    state = ConformanceResourceState()
    outcome = load_canonical_resource(BASE_URL, state, "Questionnaire", "abc", new_questionnaire)
    assert outcome is None
    assert "text" not in state.raw
    assert state.raw["status"] == "active"
    assert state.raw["version"] == "1.0.0"
    assert [v["id"] for v in state.published_versions] == ["abc", "old"]
    assert get.call_args_list[1][0][0] == (
        f"{BASE_URL}/Questionnaire?url=http://example.org/Questionnaire/phq9&_summary=true"
    )

def test_load_canonical_new_version_injects_draft(mocker):
    def fake_get(url, *args, **kwargs):
        if "?url=" in url:
            return MockResponse(history_bundle(), 200)
        return MockResponse(stored_questionnaire(), 200)
    mocker.patch("requests.get", side_effect=fake_get)
    state = ConformanceResourceState()
    load_canonical_resource(BASE_URL, state, "Questionnaire", "abc:new", new_questionnaire)
    assert state.raw["status"] == "draft"
    assert "date" not in state.raw
    assert "id" not in state.raw
    assert state.published_versions[0] is state.raw
    assert len(state.published_versions) == 3
    assert state.raw["version"] == calculate_next_version(["1.0.0", "1.0.0", "0.9.0"])

def test_load_canonical_keeps_authored_narrative(patch_get):
    resource = stored_questionnaire()
    resource["text"] = {"status": "additional", "div": "<div>Authored</div>"}
    del resource["url"]
    patch_get.return_value = MockResponse(resource, 200)
    state = ConformanceResourceState()
    load_canonical_resource(BASE_URL, state, "Questionnaire", "abc", new_questionnaire)
    assert state.raw["text"]["status"] == "additional"
    assert state.published_versions is None
    assert patch_get.call_count == 1

def test_load_canonical_failure_returns_outcome(patch_get, outcome_body):
    patch_get.return_value = MockResponse(outcome_body, 404)
    state = ConformanceResourceState()
    outcome = load_canonical_resource(BASE_URL, state, "Questionnaire", "abc", new_questionnaire)
    assert isinstance(outcome, OperationOutcome)
    assert patch_get.call_count == 1

def test_calculate_next_version_is_not_derived_yet():
    assert calculate_next_version(["1.0.0", None]) == ""

# --- save_fhir_resource ---

def test_save_creates_resource_without_id(mocker):
    created = {"resourceType": "Questionnaire", "id": "new-1", "meta": {"versionId": "1"}}
    post = mocker.patch("requests.post", return_value=MockResponse(created, 201))
    put = mocker.patch("requests.put")
    state = ResourceState(raw=new_questionnaire(), enable_save=True)
    outcome = save_fhir_resource(BASE_URL, state)
    assert outcome is None
    put.assert_not_called()
    assert post.call_args[0][0] == f"{BASE_URL}/Questionnaire"
    assert state.raw == created
    assert state.saving is False
    assert state.enable_save is False

def test_save_updates_resource_with_id(mocker):
    resource = stored_questionnaire()
    updated = dict(resource, meta={"versionId": "4"})
    put = mocker.patch("requests.put", return_value=MockResponse(updated, 200))
    post = mocker.patch("requests.post")
    state = ResourceState(raw=resource, enable_save=True)
    save_fhir_resource(BASE_URL, state)
    post.assert_not_called()
    assert put.call_args[0][0] == f"{BASE_URL}/Questionnaire/abc"
    assert state.raw["meta"]["versionId"] == "4"
    assert state.enable_save is False

def test_save_failure_stores_outcome(mocker, outcome_body):
    mocker.patch("requests.put", return_value=MockResponse(outcome_body, 422))
    resource = stored_questionnaire()
    state = ResourceState(raw=resource, enable_save=True)
    outcome = save_fhir_resource(BASE_URL, state)
    assert isinstance(outcome, OperationOutcome)
    assert state.save_outcome is outcome
    assert state.show_outcome is True
    assert state.saving is False
    assert state.enable_save is True
    assert state.raw == stored_questionnaire()

def test_save_transport_error_keeps_edits(mocker):
    mocker.patch("requests.post", side_effect=requests.exceptions.ConnectionError("refused"))
    state = ResourceState(raw=new_questionnaire(), enable_save=True)
    outcome = save_fhir_resource(BASE_URL, state)
    assert outcome is None
    assert state.saving is False
    assert state.save_outcome is None
    assert state.raw == new_questionnaire()

def test_load_new_resource_factory_error_is_logged(patch_get, caplog):
    def broken_factory():
        raise KeyError("resourceType")
    state = ResourceState()
    with caplog.at_level("WARNING"):
        outcome = load_fhir_resource(BASE_URL, state, "Questionnaire", ":new", broken_factory)
    assert outcome is None
    assert state.raw is None
    assert state.enable_save is False
    assert "Client Error" in caplog.text
    patch_get.assert_not_called()

def test_save_without_resource_sends_nothing(mocker, caplog):
    post = mocker.patch("requests.post")
    put = mocker.patch("requests.put")
    state = ResourceState()
    with caplog.at_level("WARNING"):
        outcome = save_fhir_resource(BASE_URL, state)
    assert outcome is None
    post.assert_not_called()
    put.assert_not_called()
    assert state.saving is False
    assert "no resource loaded" in caplog.text
