"""
Configuration for fhir_workbench.

Values come from the environment, with a local .env file loaded for
development:
 - FHIR_SERVER_URL: base URL of the FHIR server the host talks to.
 - FHIR_REQUEST_TIMEOUT: request timeout in seconds (unset: no timeout).
 - SHOW_ADVANCED_SETTINGS: user preference copied into resource view state.
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Load .env file for local development
load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    fhir_server_url: Optional[str] = None
    request_timeout: Optional[float] = None
    show_advanced_settings: bool = False


_settings: Optional[Settings] = None


def load_settings() -> Settings:
    """Read settings from the current environment."""
    timeout = os.getenv("FHIR_REQUEST_TIMEOUT")
    base_url = os.getenv("FHIR_SERVER_URL")
    return Settings(
        fhir_server_url=base_url.rstrip('/') if base_url else None,
        request_timeout=float(timeout) if timeout else None,
        show_advanced_settings=os.getenv("SHOW_ADVANCED_SETTINGS", "").strip().lower() in _TRUE_VALUES,
    )


def get_settings() -> Settings:
    """Return the cached settings, loading them if necessary."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
