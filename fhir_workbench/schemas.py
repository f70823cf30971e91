"""Pydantic models for fhir_workbench.

Defines the OperationOutcome payload, the mutable view-state objects that the
request pipeline writes into, the versioned canonical reference, and the
FHIRPath result tree handed back to the UI.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict

from fhir_workbench.cancel import CancelSource

class OperationOutcomeIssue(BaseModel):
    """
    Represents a single FHIR OperationOutcome issue.

    severity: issue severity (e.g., 'error', 'warning').
    code: machine-readable issue code (e.g., 'not-found').
    diagnostics: human-readable explanation of the issue.
    details: optional CodeableConcept describing the issue.
    """
    severity: Optional[str] = Field(None, description="Issue severity (e.g., 'error', 'warning').")
    code: Optional[str] = Field(None, description="Machine-readable issue code (e.g., 'not-found').")
    diagnostics: Optional[str] = Field(None, description="Human-readable explanation of the issue.")
    details: Optional[Dict[str, Any]] = Field(None, description="CodeableConcept with further detail, e.g. {'text': ...}.")
    expression: Optional[List[str]] = Field(None, description="FHIRPath expressions locating the issue.")

    # Keep any other FHIR elements the server sent (location, extension, ...)
    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "severity": "error",
                "code": "not-found",
                "diagnostics": "Resource Patient/123 is not known",
                "details": None
            }
        }
    )

class OperationOutcome(BaseModel):
    """
    FHIR OperationOutcome as returned by the server on failure.

    Surfaced verbatim: unknown elements are preserved and
    `model_dump(exclude_none=True)` gives back the server JSON.
    """
    resourceType: str = Field("OperationOutcome", description="Always 'OperationOutcome'.")
    issue: List[OperationOutcomeIssue] = Field(default_factory=list, description="List of issue objects.")

    model_config = ConfigDict(extra="allow")

class VersionedCanonicalUrl(BaseModel):
    """A canonical reference split into `url|version#code` parts."""
    canonical_url: str
    version: Optional[str] = None
    code: Optional[str] = None

# --- View state ---

class TableState(BaseModel):
    """
    View state for a paged search table.

    Owned by the host; mutated only by `search.search_page`.
    """
    loading_data: bool = False
    show_empty: bool = False
    total_count: Optional[int] = None
    first_page_link: Optional[str] = None
    previous_page_link: Optional[str] = None
    next_page_link: Optional[str] = None
    last_page_link: Optional[str] = None
    table_data: List[Any] = Field(default_factory=list)
    cancel_source: Optional[CancelSource] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

class ResourceState(BaseModel):
    """
    View state for a single resource being viewed or edited.

    raw: the current resource as FHIR JSON.
    saving: a save is in flight.
    enable_save: the in-memory resource has changes worth saving.
    save_outcome: OperationOutcome from the last failed save.
    show_outcome: whether the host should display `save_outcome`.
    """
    raw: Optional[Dict[str, Any]] = None
    saving: bool = False
    enable_save: bool = False
    save_outcome: Optional[OperationOutcome] = None
    show_outcome: Optional[bool] = None
    show_advanced_settings: bool = False

class ConformanceResourceState(ResourceState):
    """ResourceState for a canonical resource, plus its publishing history."""
    published_versions: Optional[List[Dict[str, Any]]] = None

# --- FHIRPath results ---

class ResultItem(BaseModel):
    type: str
    value: Any = None

class TraceData(BaseModel):
    name: str
    type: Optional[str] = None
    value: Optional[str] = None

class ResultData(BaseModel):
    """Values (and trace output) produced for one evaluation context."""
    context: Optional[str] = None
    position: Optional[Dict[str, Any]] = None
    result: List[ResultItem] = Field(default_factory=list)
    trace: List[TraceData] = Field(default_factory=list)

class JsonNode(BaseModel):
    """
    A node of the FHIRPath parse tree returned by the debug endpoint.

    SpecUrl links to the FHIRPath documentation for this node's function or
    operator, where one is known.
    """
    id: Optional[str] = None
    ExpressionType: str
    Name: str
    Arguments: Optional[List["JsonNode"]] = None
    ReturnType: Optional[str] = None
    Position: Optional[int] = None
    Length: Optional[int] = None
    Line: Optional[int] = None
    Column: Optional[int] = None
    SpecUrl: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

class FpjsNode(BaseModel):
    """fhirpath.js AST node."""
    children: Optional[List["FpjsNode"]] = None
    terminalNodeText: Optional[List[str]] = None
    text: str
    type: str
