"""
Repository for page analyses and AI reports.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.analysis import AIReport, PageAnalysis


class AnalysisRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def add_page_analysis(
        self,
        *,
        website_id: uuid.UUID,
        competitor_id: uuid.UUID | None,
        url: str,
        title: str | None,
        meta_description: str | None,
        headings: dict[str, list[str]],
        word_count: int,
        html_blob_url: str | None,
    ) -> PageAnalysis:
        analysis = PageAnalysis(
            website_id=website_id,
            competitor_id=competitor_id,
            url=url,
            title=title,
            meta_description=meta_description,
            headings=headings,
            word_count=word_count,
            html_blob_url=html_blob_url,
        )
        self._session.add(analysis)
        self._session.flush()
        return analysis

    def list_page_analyses(
        self,
        website_id: uuid.UUID,
        *,
        competitor_id: uuid.UUID | None = None,
        limit: int = 50,
    ) -> list[PageAnalysis]:
        stmt = select(PageAnalysis).where(PageAnalysis.website_id == website_id)
        if competitor_id is None:
            stmt = stmt.where(PageAnalysis.competitor_id.is_(None))
        else:
            stmt = stmt.where(PageAnalysis.competitor_id == competitor_id)
        stmt = stmt.order_by(PageAnalysis.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def add_report(
        self,
        *,
        website_id: uuid.UUID,
        report_type: str,
        title: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> AIReport:
        report = AIReport(
            website_id=website_id,
            report_type=report_type,
            title=title,
            content=content,
            metadata_json=metadata,
        )
        self._session.add(report)
        self._session.flush()
        return report
