"""
Load and save a single FHIR resource for an editor view.

Route ids from the host follow two conventions:
 - ":new"      create a brand new resource (no HTTP call),
 - "<id>:new"  start a new draft version of resource <id>.
"""
# Type hints
from typing import Any, Callable, Dict, List, Optional

# Standard library imports
import logging

# Internal imports
from fhir_workbench.client import FhirClient
from fhir_workbench.config import get_settings
from fhir_workbench.errors import ServerOutcome, TransportError
from fhir_workbench.outcome import summarize_outcome
from fhir_workbench.schemas import ConformanceResourceState, OperationOutcome, ResourceState
from fhir_workbench.search import load_published_versions

log = logging.getLogger(__name__)

NEW_RESOURCE_ROUTE_ID = ":new"

def is_new_version_route(route_id: str) -> bool:
    """True for "<id>:new", i.e. a new draft version of an existing resource."""
    return route_id.endswith(NEW_RESOURCE_ROUTE_ID) and route_id != NEW_RESOURCE_ROUTE_ID

def calculate_next_version(versions: List[Optional[str]]) -> str:
    # TODO: derive the next version from the published version strings
    # (semver bump vs. date based); until then new drafts get an empty version.
    return ""

def load_fhir_resource(
    base_url: str,
    state: ResourceState,
    resource_type: str,
    route_id: str,
    create_new: Callable[[], Dict[str, Any]],
    client: Optional[FhirClient] = None,
) -> Optional[OperationOutcome]:
    """
    Load the resource named by `route_id` into `state.raw`.

    Args:
        base_url: FHIR base URL.
        state: resource view state to update.
        resource_type: FHIR resource type (e.g., 'Questionnaire').
        route_id: resource id, ":new", or "<id>:new".
        create_new: factory for a fresh resource when route_id is ":new".
        client: HTTP client; defaults to one built from settings.

    Returns:
        The server's OperationOutcome on failure, otherwise None.
    """
    # clear the save validation messaging properties
    state.show_outcome = False
    state.save_outcome = None
    state.show_advanced_settings = get_settings().show_advanced_settings

    if route_id == NEW_RESOURCE_ROUTE_ID:
        try:
            state.raw = create_new()
        except Exception as ex:
            log.warning("Client Error: %s", ex)
            return None
        state.enable_save = True
        return None

    load_resource_id = route_id
    new_version = is_new_version_route(route_id)
    if new_version:
        state.enable_save = True
        load_resource_id = route_id[:route_id.rfind(":")]

    client = client or FhirClient.from_settings()
    url_request = f"{base_url}/{resource_type}/{load_resource_id}"
    try:
        state.raw = client.get(url_request, no_cache=True)
    except ServerOutcome as ex:
        log.info("Loading %s/%s failed: %s", resource_type, load_resource_id, summarize_outcome(ex.outcome))
        return ex.outcome
    except TransportError as ex:
        log.warning("Client Error: %s", ex)
        return None

    if new_version:
        log.info("new draft version of %s/%s", resource_type, load_resource_id)
        state.raw.pop("id", None)
        meta = state.raw.get("meta")
        if meta:
            meta.pop("lastUpdated", None)
            meta.pop("versionId", None)
    return None

def load_canonical_resource(
    base_url: str,
    state: ConformanceResourceState,
    resource_type: str,
    route_id: str,
    create_new: Callable[[], Dict[str, Any]],
    client: Optional[FhirClient] = None,
) -> Optional[OperationOutcome]:
    """
    Load a conformance resource and its publishing history.

    For a new draft version ("<id>:new") the copy is reset to status 'draft'
    with no date, and is listed first in `state.published_versions`.
    """
    client = client or FhirClient.from_settings()
    outcome = load_fhir_resource(base_url, state, resource_type, route_id, create_new, client=client)
    if outcome is not None:
        return outcome

    loaded = state.raw
    if not loaded:
        return None

    # generated narrative is stale as soon as the resource is edited
    if (loaded.get("text") or {}).get("status") == "generated":
        del loaded["text"]

    new_version = is_new_version_route(route_id)
    if new_version:
        loaded["status"] = "draft"
        loaded.pop("date", None)

    # now that we have the URL for the instance - check for other published versions
    if loaded.get("url"):
        outcome = load_published_versions(base_url, resource_type, loaded["url"], state, client=client)
        if new_version:
            # inject this as the newest published version (even though it's not saved)
            if state.published_versions is None:
                state.published_versions = []
            state.published_versions.insert(0, loaded)
            loaded["version"] = calculate_next_version(
                [pv.get("version") for pv in state.published_versions]
            )
    return outcome

def save_fhir_resource(
    base_url: str,
    state: ResourceState,
    client: Optional[FhirClient] = None,
) -> Optional[OperationOutcome]:
    """
    Save `state.raw`: update when it has an id, otherwise create.

    On success `state.raw` is replaced by the server's copy (new id, meta).
    On an OperationOutcome it is stored in `state.save_outcome` for display.
    """
    resource = state.raw
    if not resource:
        log.warning("save skipped: no resource loaded")
        return None

    client = client or FhirClient.from_settings()
    state.saving = True
    state.show_outcome = None
    state.save_outcome = None
    log.info("save %s/%s", resource.get("resourceType"), resource.get("id"))

    try:
        if resource.get("id"):
            url_request = f"{base_url}/{resource.get('resourceType')}/{resource['id']}"
            saved = client.put(url_request, resource)
        else:
            # Create a new resource (via post)
            url_request = f"{base_url}/{resource.get('resourceType')}"
            saved = client.post(url_request, resource)
    except ServerOutcome as ex:
        state.saving = False
        log.info("Save failed: %s", summarize_outcome(ex.outcome))
        state.save_outcome = ex.outcome
        state.show_outcome = True
        return ex.outcome
    except TransportError as ex:
        state.saving = False
        log.warning("Client Error: %s", ex)
        return None

    state.raw = saved
    state.saving = False
    state.enable_save = False
    return None
