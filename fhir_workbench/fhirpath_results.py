"""
Interpret FHIRPath evaluation results returned by a FHIRPath test endpoint.

The endpoint answers with a FHIR `Parameters` resource:
 - a `parameters` parameter echoing the inputs, including the
   `parseDebugTree` (JSON text of the expression's parse tree),
 - one `result` parameter per evaluation context, whose `valueString` is
   the context path and whose parts are the result values (part name = type)
   or `trace` parts (valueString = trace name, parts = traced values).
"""
import json
import logging
from typing import Any, Dict, List, Optional

from fhir_workbench.schemas import JsonNode, ResultData, ResultItem, TraceData

log = logging.getLogger(__name__)

JSON_VALUE_EXTENSION_URL = "http://fhir.forms-lab.com/StructureDefinition/json-value"

def get_extension_string_value(element: Dict[str, Any], url: str) -> Optional[str]:
    """Return `valueString` of the first extension on `element` with this url."""
    for ext in element.get("extension") or []:
        if ext.get("url") == url:
            return ext.get("valueString")
    return None

def get_value(entry: Dict[str, Any]) -> List[ResultItem]:
    """Collect the values carried by one Parameters.parameter (or part)."""
    result: List[ResultItem] = []
    for key, value in entry.items():
        if key.startswith("value"):
            result.append(ResultItem(type=key[len("value"):], value=value))
        elif key == "resource":
            result.append(ResultItem(type=value.get("resourceType", ""), value=value))

    # values with no FHIR datatype (e.g. backbone elements) come back as JSON text
    ext_val = get_extension_string_value(entry, JSON_VALUE_EXTENSION_URL)
    if ext_val:
        result.append(ResultItem(type=entry.get("name", ""), value=json.loads(ext_val)))
    if entry.get("name") == "empty-string":
        result.append(ResultItem(type="empty-string", value=""))
    return result

def get_trace_value(entry: Dict[str, Any]) -> List[TraceData]:
    """Flatten a `trace` parameter into one TraceData per traced value."""
    result: List[TraceData] = []
    for part in entry.get("part") or []:
        val = get_value(part)
        value_data = TraceData(name=entry.get("valueString") or "", type=part.get("name"))
        if val:
            value_data.value = json.dumps(val[0].value, indent=4, ensure_ascii=False)
        result.append(value_data)
    return result

def interpret_results(parameters: Dict[str, Any]) -> List[ResultData]:
    """
    Build the display tree for every `result` parameter.

    Args:
        parameters: the Parameters resource returned by the endpoint.

    Returns:
        One ResultData per evaluation context, in server order.
    """
    results: List[ResultData] = []
    for param in parameters.get("parameter") or []:
        if param.get("name") != "result":
            continue
        data = ResultData(context=param.get("valueString"))
        for part in param.get("part") or []:
            if part.get("name") == "trace":
                data.trace.extend(get_trace_value(part))
            else:
                data.result.extend(get_value(part))
        results.append(data)
    return results

def parse_debug_tree(parameters: Dict[str, Any]) -> Optional[JsonNode]:
    """Return the expression's parse tree, or None if the server sent none."""
    for param in parameters.get("parameter") or []:
        if param.get("name") != "parameters":
            continue
        for part in param.get("part") or []:
            if part.get("name") == "parseDebugTree" and part.get("valueString"):
                try:
                    return JsonNode.model_validate(json.loads(part["valueString"]))
                except ValueError as ex:
                    log.warning("Unable to read parseDebugTree: %s", ex)
                    return None
    return None
