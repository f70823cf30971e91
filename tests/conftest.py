import pytest
from fhir_workbench import config

BASE_URL = "http://fhir.example.org/r4"

class MockResponse:
    def __init__(self, json_data, status_code=200):
        self._json = json_data
        self.status_code = status_code
    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json

@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Start every test from a known environment with no .env overrides."""
    for name in ("FHIR_SERVER_URL", "FHIR_REQUEST_TIMEOUT", "SHOW_ADVANCED_SETTINGS"):
        monkeypatch.delenv(name, raising=False)
    config.reset_settings()
    yield
    config.reset_settings()

@pytest.fixture
def patch_get(mocker):
    """
    Patch requests.get. Tests inject responses through `patch_get.return_value`
    or `patch_get.side_effect`.
    """
    return mocker.patch("requests.get", return_value=MockResponse({}, 200))

@pytest.fixture
def outcome_body():
    return {
        "resourceType": "OperationOutcome",
        "issue": [{
            "severity": "error",
            "code": "processing",
            "diagnostics": "Resource Questionnaire/abc is not known",
        }],
    }
