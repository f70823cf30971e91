"""HTTP transport for talking to a FHIR REST server.

Provides GET/PUT/POST of FHIR JSON with the FHIR Accept header, optional
cache bypass, and per-request cancellation. Failures are raised as
`fhir_workbench.errors` types rather than `requests` exceptions.

Usage:
    client = FhirClient(timeout=10)
    client.get("http://hapi.fhir.org/baseR4/Patient/123")
    client.put("http://hapi.fhir.org/baseR4/Patient/123", patient)
"""
import json
import logging
import requests
from typing import Optional, Dict, Any

from fhir_workbench.cancel import CancelToken
from fhir_workbench.config import get_settings
from fhir_workbench.errors import Cancelled, ServerOutcome, TransportError
from fhir_workbench.outcome import is_operation_outcome
from fhir_workbench.schemas import OperationOutcome

log = logging.getLogger(__name__)

REQUEST_FHIR_ACCEPT_HEADERS = "application/fhir+json; fhirVersion=4.0, application/fhir+json"
REQUEST_FHIR_CONTENT_TYPE_HEADERS = "application/fhir+json"

class FhirClient:
    """
    HTTP client for a FHIR REST endpoint.

    Takes fully-qualified URLs; callers build them from their base URL.

    Raises:
        fhir_workbench.errors.ServerOutcome: error response carrying an OperationOutcome
        fhir_workbench.errors.TransportError: any other failed request
        fhir_workbench.errors.Cancelled: the request's cancel token was cancelled

    Examples:
        >>> client = FhirClient(timeout=5)
        >>> client.get("http://localhost:8080/fhir/Patient/123", no_cache=True)
        {'resourceType': 'Patient', ...}
    """
    def __init__(self, timeout: Optional[float] = None):
        """
        Initialize the client.

        Args:
            timeout: Request timeout in seconds. None means no timeout.
        """
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "FhirClient":
        return cls(timeout=get_settings().request_timeout)

    def headers(self, no_cache: bool = False, with_body: bool = False) -> Dict[str, str]:
        """Build request headers for a FHIR call."""
        headers = {"Accept": REQUEST_FHIR_ACCEPT_HEADERS}
        if no_cache:
            # query URL without using any intermediate cache
            headers["Cache-Control"] = "no-cache"
        if with_body:
            headers["Content-Type"] = REQUEST_FHIR_CONTENT_TYPE_HEADERS
        return headers

    def get(self, url: str, no_cache: bool = False, cancel_token: Optional[CancelToken] = None) -> Dict[str, Any]:
        """
        GET a FHIR resource or Bundle.

        Args:
            url: fully-qualified request URL.
            no_cache: send `Cache-Control: no-cache`.
            cancel_token: token checked before sending and after the response arrives.

        Returns:
            The decoded JSON body.
        """
        self._check_cancelled(cancel_token)
        try:
            resp = self._send(requests.get, url, headers=self.headers(no_cache=no_cache))
        except TransportError:
            # A superseded request's failure is not reported
            self._check_cancelled(cancel_token)
            raise
        self._check_cancelled(cancel_token)
        return self._decode(url, resp)

    def put(self, url: str, resource: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the resource at `url` (FHIR update). Returns the server's copy."""
        resp = self._send(requests.put, url, headers=self.headers(with_body=True), data=json.dumps(resource))
        return self._decode(url, resp)

    def post(self, url: str, resource: Dict[str, Any]) -> Dict[str, Any]:
        """Create a resource at the type endpoint `url`. Returns the server's copy."""
        resp = self._send(requests.post, url, headers=self.headers(with_body=True), data=json.dumps(resource))
        return self._decode(url, resp)

    def _send(self, method, url: str, **kwargs):
        try:
            return method(url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as ex:
            raise TransportError(f"{type(ex).__name__}: {ex}") from ex

    @staticmethod
    def _check_cancelled(cancel_token: Optional[CancelToken]) -> None:
        if cancel_token is not None and cancel_token.cancelled:
            raise Cancelled(cancel_token.reason)

    @staticmethod
    def _decode(url: str, resp) -> Dict[str, Any]:
        """Decode a response body, raising for non-2xx status codes."""
        try:
            body = resp.json()
        except ValueError:
            body = None
        if resp.status_code >= 400:
            # Attempt to interpret the error body as an OperationOutcome
            if is_operation_outcome(body):
                raise ServerOutcome(OperationOutcome.model_validate(body), resp.status_code)
            raise TransportError(
                f"FHIR server returned status {resp.status_code} for {url}",
                status_code=resp.status_code,
            )
        if not isinstance(body, dict):
            raise TransportError(f"FHIR server returned a non-JSON body for {url}", status_code=resp.status_code)
        return body
