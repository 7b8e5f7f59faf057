"""Report generator backed by an LLM adapter.

Formatting failures (non-JSON answers, missing fields) are retried up to
``max_retries`` times with the same prompt. Adapter transport errors are not
retried here; they reach the job dispatcher, which owns job-level retries.
"""

import logging
from typing import Any, Dict, List, Protocol

from llm_synthesis.adapter import BaseLLMAdapter
from llm_synthesis.prompt_builder import ReportPromptBuilder
from llm_synthesis.schema import GeneratedReport
from llm_synthesis.validator import ReportFormatError, parse_report

logger = logging.getLogger(__name__)


class ReportGenerationError(Exception):
    """Every attempt returned an answer that failed validation."""

    def __init__(self, attempts: int, failures: List[ReportFormatError]) -> None:
        self.attempts = attempts
        self.failures = failures
        super().__init__(
            f"Report output invalid after {attempts} attempt(s): {failures[-1]}"
        )


class ReportGenerator(Protocol):
    def generate_periodic_recap(
        self,
        *,
        website: Dict[str, Any],
        period_days: int,
        queries: List[Dict[str, Any]],
        competitors: List[Dict[str, Any]],
    ) -> GeneratedReport: ...

    def generate_initial_report(
        self,
        *,
        website: Dict[str, Any],
        sitemap: Dict[str, Any],
        pages: List[Dict[str, Any]],
        competitors: List[Dict[str, Any]],
    ) -> GeneratedReport: ...


class LLMReportGenerator:
    """Builds the prompt, calls the adapter and validates the JSON answer."""

    def __init__(
        self,
        adapter: BaseLLMAdapter,
        prompt_builder: ReportPromptBuilder | None = None,
        max_retries: int = 2,
    ) -> None:
        self._adapter = adapter
        self._prompt_builder = prompt_builder or ReportPromptBuilder()
        self._max_retries = max(0, max_retries)

    def generate_periodic_recap(
        self,
        *,
        website: Dict[str, Any],
        period_days: int,
        queries: List[Dict[str, Any]],
        competitors: List[Dict[str, Any]],
    ) -> GeneratedReport:
        prompt = self._prompt_builder.build_periodic_recap(
            website=website,
            period_days=period_days,
            queries=queries,
            competitors=competitors,
        )
        logger.info(
            "Generating periodic recap website=%s queries=%d competitors=%d",
            website.get("url"),
            len(queries),
            len(competitors),
        )
        return self._generate(prompt)

    def generate_initial_report(
        self,
        *,
        website: Dict[str, Any],
        sitemap: Dict[str, Any],
        pages: List[Dict[str, Any]],
        competitors: List[Dict[str, Any]],
    ) -> GeneratedReport:
        prompt = self._prompt_builder.build_initial_report(
            website=website,
            sitemap=sitemap,
            pages=pages,
            competitors=competitors,
        )
        logger.info("Generating initial report website=%s pages=%d", website.get("url"), len(pages))
        return self._generate(prompt)

    def _generate(self, prompt: str) -> GeneratedReport:
        attempts = 1 + self._max_retries
        failures: List[ReportFormatError] = []
        for attempt in range(1, attempts + 1):
            try:
                report = parse_report(self._adapter.generate(prompt))
            except ReportFormatError as exc:
                failures.append(exc)
                logger.warning(
                    "Report attempt %d/%d rejected at '%s': %s",
                    attempt,
                    attempts,
                    exc.stage,
                    "; ".join(exc.errors),
                )
                continue
            if failures:
                logger.info("Report validated on attempt %d/%d", attempt, attempts)
            return report
        raise ReportGenerationError(attempts, failures)
