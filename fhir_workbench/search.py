"""
Request pipeline: FHIR search with pagination, publishing history, and
ValueSet expansion.

All functions catch request failures at their boundary:
 - a server OperationOutcome is returned to the caller,
 - a transport error is logged and None is returned,
 - a cancelled (superseded) search returns None without touching state.
"""
# Type hints
from typing import Any, Callable, Dict, List, Optional, Union

# Standard library imports
import logging
from urllib.parse import quote

# Internal imports
from fhir_workbench.cancel import CancelSource
from fhir_workbench.canonical import split_canonical
from fhir_workbench.client import FhirClient
from fhir_workbench.errors import Cancelled, ServerOutcome, TransportError
from fhir_workbench.outcome import is_operation_outcome, make_outcome, summarize_outcome
from fhir_workbench.schemas import ConformanceResourceState, OperationOutcome, TableState

log = logging.getLogger(__name__)

# Characters JavaScript's encodeURI leaves untouched (besides alphanumerics and -_.~)
_ENCODE_URI_SAFE = ";,/?:@&=+$!*'()#"

def encode_uri(value: str) -> str:
    """Percent-encode a query value the way JavaScript's encodeURI does."""
    return quote(value, safe=_ENCODE_URI_SAFE)

def get_link(kind: str, links: Optional[List[Dict[str, Any]]]) -> Optional[str]:
    """Return the url of the Bundle link whose relation is `kind`, if any."""
    if not links:
        return None
    for link in links:
        if link.get("relation") == kind:
            return link.get("url")
    return None

def search_page(
    state: TableState,
    url: str,
    map_entries: Callable[[List[Dict[str, Any]]], None],
    client: Optional[FhirClient] = None,
) -> Optional[OperationOutcome]:
    """
    Perform a FHIR search and load one page of results into `state`.

    Any search already in flight for `state` is cancelled first, so only the
    most recent call writes its results.

    Args:
        state: table view state to update.
        url: fully-qualified search URL (often a page link from a prior Bundle).
        map_entries: callback that turns Bundle entries into `state.table_data`.
        client: HTTP client; defaults to one built from settings.

    Returns:
        The server's OperationOutcome on failure, otherwise None.
    """
    client = client or FhirClient.from_settings()
    if state.cancel_source:
        state.cancel_source.cancel("new search started")
    source = CancelSource()
    state.cancel_source = source
    state.loading_data = True
    try:
        bundle = client.get(url, cancel_token=source.token)
    except Cancelled as ex:
        log.debug("search superseded: %s", ex.reason)
        return None
    except (ServerOutcome, TransportError) as ex:
        state.loading_data = False
        state.show_empty = True
        state.table_data = []
        if state.cancel_source is source:
            state.cancel_source = None
        return _handle_failure(ex)

    state.cancel_source = None
    state.loading_data = False

    results = bundle.get("entry")
    if results:
        state.total_count = bundle.get("total")
        links = bundle.get("link")
        if links:
            state.first_page_link = get_link("first", links)
            state.previous_page_link = get_link("previous", links)
            state.next_page_link = get_link("next", links)
            state.last_page_link = get_link("last", links)
        try:
            map_entries(results)
        except Exception as ex:
            state.show_empty = True
            state.table_data = []
            log.warning("Client Error: %s", ex)
            return None
        state.show_empty = False
    else:
        state.table_data = []
        state.show_empty = True
    return None

def load_published_versions(
    base_url: str,
    resource_type: str,
    canonical_url: str,
    state: ConformanceResourceState,
    client: Optional[FhirClient] = None,
) -> Optional[OperationOutcome]:
    """
    Load every version of a canonical resource into `state.published_versions`.

    Only entries of exactly `resource_type` are kept (servers may include
    OperationOutcome entries in a search Bundle).
    """
    client = client or FhirClient.from_settings()
    url_request = f"{base_url}/{resource_type}?url={canonical_url}&_summary=true"
    try:
        bundle = client.get(url_request, no_cache=True)
    except (ServerOutcome, TransportError) as ex:
        return _handle_failure(ex)

    result = []
    for entry in bundle.get("entry") or []:
        resource = entry.get("resource") or {}
        if resource.get("resourceType") == resource_type:
            result.append(resource)
    state.published_versions = result
    return None

def expand_value_set(
    base_url: str,
    vs_canonical: str,
    filter: Optional[str] = None,
    client: Optional[FhirClient] = None,
) -> Union[Dict[str, Any], OperationOutcome]:
    """
    Expand a ValueSet on the terminology server.

    Args:
        base_url: FHIR base URL of the terminology server.
        vs_canonical: ValueSet canonical, optionally `|version` qualified.
        filter: optional text filter for the expansion.

    Returns:
        The ValueSet's `expansion` dict, or an OperationOutcome. Never None.
    """
    client = client or FhirClient.from_settings()
    can = split_canonical(vs_canonical)
    url_request = f"{base_url}/ValueSet/$expand?url={can.canonical_url if can else ''}"
    if can and can.version:
        url_request += f"&version={encode_uri(can.version)}"
    if filter:
        url_request += f"&filter={encode_uri(filter)}"

    try:
        body = client.get(url_request, no_cache=True)
    except ServerOutcome as ex:
        log.info("ValueSet expansion failed: %s", summarize_outcome(ex.outcome))
        return ex.outcome
    except TransportError as ex:
        log.warning("Client Error: %s", ex)
        return make_outcome(
            f"Terminology Server failed to return an expansion in the Valueset returned: {ex}"
        )

    if is_operation_outcome(body):
        return OperationOutcome.model_validate(body)
    if body.get("expansion") is not None:
        return body["expansion"]
    return make_outcome("Terminology Server failed to return an expansion in the Valueset returned.")

def _handle_failure(ex: Union[ServerOutcome, TransportError]) -> Optional[OperationOutcome]:
    """Return the outcome of a server error; log a transport error and return None."""
    if isinstance(ex, ServerOutcome):
        log.info("Server returned OperationOutcome: %s", summarize_outcome(ex.outcome))
        return ex.outcome
    log.warning("Client Error: %s", ex)
    return None
