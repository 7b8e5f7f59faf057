"""Parsing of raw model answers into GeneratedReport.

Models are asked for a bare JSON object but regularly wrap it in a
markdown fence or flatten the highlight list into a bullet string; both
are accepted here. Anything else is a ReportFormatError.
"""

import json
import re
from typing import Any, Dict, List

from pydantic import ValidationError

from llm_synthesis.schema import GeneratedReport

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class ReportFormatError(Exception):
    """The model answer could not be turned into a report.

    ``stage`` is "json_parse" when the text is not a JSON object and
    "schema" when the object misses or mistypes report fields.
    """

    def __init__(self, stage: str, errors: List[str], raw_response: str) -> None:
        self.stage = stage
        self.errors = errors
        self.raw_response = raw_response
        super().__init__(f"Report output rejected at '{stage}': " + "; ".join(errors))


def _unwrap(text: str) -> str:
    stripped = text.strip()
    match = _FENCE.match(stripped)
    return match.group(1) if match else stripped


def _split_highlights(data: Dict[str, Any]) -> Dict[str, Any]:
    highlights = data.get("highlights")
    if isinstance(highlights, str):
        data = dict(data)
        data["highlights"] = [
            line.strip("-*• ").strip() for line in highlights.splitlines() if line.strip()
        ]
    return data


def parse_report(raw_response: str) -> GeneratedReport:
    """Validate one model answer as a GeneratedReport."""
    try:
        data = json.loads(_unwrap(raw_response or ""))
    except json.JSONDecodeError as exc:
        raise ReportFormatError("json_parse", [str(exc)], raw_response) from exc

    if not isinstance(data, dict):
        raise ReportFormatError("json_parse", ["expected a JSON object"], raw_response)

    try:
        return GeneratedReport.model_validate(_split_highlights(data))
    except ValidationError as exc:
        errors = [
            f"{'.'.join(str(part) for part in error['loc']) or 'report'}: {error['msg']}"
            for error in exc.errors()
        ]
        raise ReportFormatError("schema", errors, raw_response) from exc
