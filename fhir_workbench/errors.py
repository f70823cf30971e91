"""Failure types raised by `fhir_workbench.client.FhirClient`.

Every failed request surfaces as exactly one of:
 - ServerOutcome: the server answered with an OperationOutcome.
 - TransportError: no structured answer (connection error, timeout,
   non-JSON or non-OperationOutcome error body).
 - Cancelled: a newer request on the same state superseded this one.

The pipeline functions in `search` and `resources` catch these at their
boundary; none of them escape to the host.
"""
from typing import Optional

from fhir_workbench.schemas import OperationOutcome


class FhirRequestError(Exception):
    """Base class for request failures."""


class TransportError(FhirRequestError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ServerOutcome(FhirRequestError):
    def __init__(self, outcome: OperationOutcome, status_code: Optional[int] = None):
        super().__init__(f"Server returned OperationOutcome (status {status_code})")
        self.outcome = outcome
        self.status_code = status_code


class Cancelled(FhirRequestError):
    def __init__(self, reason: Optional[str] = None):
        super().__init__(reason or "cancelled")
        self.reason = reason
