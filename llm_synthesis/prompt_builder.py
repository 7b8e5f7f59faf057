"""Structured prompt builder for SEO report generation."""

import json
from typing import Any, Dict, List

from llm_synthesis.schema import GeneratedReport

_SCHEMA_JSON = json.dumps(GeneratedReport.model_json_schema(), indent=2)

_EXAMPLE_OUTPUT = json.dumps(
    {
        "title": "Ranking recap: 3 queries gained, 1 lost",
        "content": (
            "## Summary\n\n"
            "- \"running shoes\" moved from #8 to #4\n"
            "- competitor.com now outranks the site on \"trail shoes\"\n"
        ),
        "highlights": [
            "\"running shoes\" entered the top 5",
            "competitor.com leads on 2 of 5 tracked queries",
        ],
    },
    indent=2,
)

_SYSTEM_INSTRUCTIONS = """\
You are an SEO analyst writing for the owner of the website below.

STRICT RULES:
- Use ONLY the data provided below. Do not invent positions or competitors.
- A null position means the site was not found in the fetched results.
- Lower positions are better (1 is the top result).
- Return strictly valid JSON matching the schema defined below.
- The "content" field is Markdown. Do NOT include any text outside the JSON object.
"""

_SECTION_TEMPLATE = """\
## {title}
```json
{data}
```
"""


class ReportPromptBuilder:
    """Builds deterministic prompts for the periodic recap and the initial report."""

    def build_periodic_recap(
        self,
        website: Dict[str, Any],
        period_days: int,
        queries: List[Dict[str, Any]],
        competitors: List[Dict[str, Any]],
    ) -> str:
        """Build the recap prompt.

        Args:
            website: Name and URL of the tracked site.
            period_days: Length of the reporting window.
            queries: Per tracked query, current and earliest positions in the window.
            competitors: Per competitor, latest positions and competitive score.

        Returns:
            A fully formatted prompt string.
        """
        task = (
            f"Write a recap of the last {period_days} days: how rankings moved per "
            f"query, how the site compares with each competitor, the positive and "
            f"negative trends, and a short actionable executive summary."
        )
        return self._assemble(
            task,
            website=website,
            tracked_queries=queries,
            competitors=competitors,
        )

    def build_initial_report(
        self,
        website: Dict[str, Any],
        sitemap: Dict[str, Any],
        pages: List[Dict[str, Any]],
        competitors: List[Dict[str, Any]],
    ) -> str:
        task = (
            "Write a first SEO assessment of the site from its sitemap and key "
            "pages: content coverage, title and meta description quality, heading "
            "structure, and the first three actions to take."
        )
        return self._assemble(
            task,
            website=website,
            sitemap=sitemap,
            key_pages=pages,
            competitors=competitors,
        )

    def _assemble(self, task: str, **data: Any) -> str:
        sections = self._format_data_sections(**data)
        return (
            f"{_SYSTEM_INSTRUCTIONS}\n"
            f"# PROVIDED DATA\n\n{sections}\n"
            f"# OUTPUT SCHEMA\n\n"
            f"Your response MUST conform to this JSON schema:\n\n"
            f"```json\n{_SCHEMA_JSON}\n```\n\n"
            f"# EXAMPLE OUTPUT\n\n"
            f"```json\n{_EXAMPLE_OUTPUT}\n```\n\n"
            f"# TASK\n\n{task}"
        )

    def _format_data_sections(self, **data: Any) -> str:
        parts = []
        for key, value in data.items():
            title = key.replace("_", " ").title()
            body = json.dumps(value, indent=2, default=str)
            parts.append(_SECTION_TEMPLATE.format(title=title, data=body))
        return "\n".join(parts)
