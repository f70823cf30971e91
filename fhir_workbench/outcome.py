from typing import Any, Optional

from fhir_workbench.schemas import OperationOutcome, OperationOutcomeIssue


def is_operation_outcome(body: Any) -> bool:
    """True when a decoded JSON body is shaped like a FHIR OperationOutcome."""
    return isinstance(body, dict) and body.get("resourceType") == "OperationOutcome"


def make_outcome(
    diagnostics: str,
    severity: str = "error",
    code: str = "informational",
    details_text: Optional[str] = "(none)",
) -> OperationOutcome:
    """
    Build a single-issue OperationOutcome for failures detected locally.

    Args:
        diagnostics: explanation shown to the user.
        severity: issue severity.
        code: FHIR issue type code.
        details_text: text for the issue's `details` CodeableConcept.

    Returns:
        OperationOutcome instance
    """
    details = {"text": details_text} if details_text is not None else None
    return OperationOutcome(
        issue=[
            OperationOutcomeIssue(
                severity=severity,
                code=code,
                diagnostics=diagnostics,
                details=details,
            )
        ]
    )


def summarize_outcome(outcome: OperationOutcome) -> str:
    """Render an outcome's issues on one line, e.g. for log messages."""
    parts = []
    for issue in outcome.issue:
        text = issue.diagnostics
        if not text and issue.details:
            text = issue.details.get("text")
        parts.append(f"{issue.severity or 'error'} ({issue.code or 'unknown'}): {text or '<no diagnostics>'}")
    return "; ".join(parts) if parts else "<no issues>"
