"""create serp tracking tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=120), nullable=False),
        sa.Column("serp_frequency_hours", sa.Integer(), nullable=False),
        sa.Column("ai_report_frequency_hours", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )

    op.create_table(
        "websites",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("sitemap_url", sa.String(length=2048), nullable=True),
        sa.Column("last_sitemap_fetch", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_websites_organization_id", "websites", ["organization_id"], unique=False)
    op.create_index("ix_websites_status", "websites", ["status"], unique=False)

    op.create_table(
        "search_queries",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("website_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("query", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["website_id"], ["websites.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_search_queries_website_id", "search_queries", ["website_id"], unique=False)
    op.create_index(
        "ix_search_queries_website_active",
        "search_queries",
        ["website_id", "is_active"],
        unique=False,
    )

    op.create_table(
        "competitors",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("website_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("sitemap_url", sa.String(length=2048), nullable=True),
        sa.Column("last_sitemap_fetch", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["website_id"], ["websites.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_competitors_website_id", "competitors", ["website_id"], unique=False)
    op.create_index(
        "ix_competitors_website_active",
        "competitors",
        ["website_id", "is_active"],
        unique=False,
    )

    op.create_table(
        "serp_results",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("website_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("search_query_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("competitor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("query", sa.String(length=500), nullable=False),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("url", sa.String(length=2048), nullable=True),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("snippet", sa.Text(), nullable=True),
        sa.Column("search_engine", sa.String(length=32), nullable=False),
        sa.Column("country", sa.String(length=8), nullable=False),
        sa.Column("device", sa.String(length=16), nullable=False),
        sa.Column("raw_data_blob_url", sa.String(length=2048), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["website_id"], ["websites.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["search_query_id"], ["search_queries.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["competitor_id"], ["competitors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_serp_results_website_id", "serp_results", ["website_id"], unique=False)
    op.create_index(
        "ix_serp_results_search_query_created",
        "serp_results",
        ["search_query_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_serp_results_competitor_created",
        "serp_results",
        ["competitor_id", "created_at"],
        unique=False,
    )

    op.create_table(
        "sitemap_snapshots",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("website_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("competitor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("sitemap_url", sa.String(length=2048), nullable=False),
        sa.Column("blob_url", sa.String(length=2048), nullable=True),
        sa.Column("url_count", sa.Integer(), nullable=False),
        sa.Column("sitemap_type", sa.String(length=16), nullable=False),
        sa.Column("fetched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.ForeignKeyConstraint(["website_id"], ["websites.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["competitor_id"], ["competitors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_sitemap_snapshots_website_fetched",
        "sitemap_snapshots",
        ["website_id", "fetched_at"],
        unique=False,
    )
    op.create_index(
        "ix_sitemap_snapshots_competitor_fetched",
        "sitemap_snapshots",
        ["competitor_id", "fetched_at"],
        unique=False,
    )

    op.create_table(
        "sitemap_urls",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("snapshot_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("ordinal", sa.Integer(), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("lastmod", sa.String(length=64), nullable=True),
        sa.Column("changefreq", sa.String(length=32), nullable=True),
        sa.Column("priority", sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(["snapshot_id"], ["sitemap_snapshots.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sitemap_urls_snapshot_id", "sitemap_urls", ["snapshot_id"], unique=False)

    op.create_table(
        "page_analyses",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("website_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("competitor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("meta_description", sa.Text(), nullable=True),
        sa.Column("headings", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("word_count", sa.Integer(), nullable=False),
        sa.Column("html_blob_url", sa.String(length=2048), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["website_id"], ["websites.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["competitor_id"], ["competitors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_page_analyses_website_id", "page_analyses", ["website_id"], unique=False)
    op.create_index("ix_page_analyses_competitor_id", "page_analyses", ["competitor_id"], unique=False)

    op.create_table(
        "ai_reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("website_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("report_type", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("metadata_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["website_id"], ["websites.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_ai_reports_website_type",
        "ai_reports",
        ["website_id", "report_type"],
        unique=False,
    )

    op.create_table(
        "analysis_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("website_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("job_type", sa.String(length=50), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("target_key", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("max_attempts", sa.Integer(), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("result", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("attempts <= max_attempts", name="ck_analysis_jobs_attempts_bounded"),
        sa.ForeignKeyConstraint(["website_id"], ["websites.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_analysis_jobs_due", "analysis_jobs", ["status", "scheduled_at"], unique=False)
    op.create_index("ix_analysis_jobs_priority", "analysis_jobs", ["priority"], unique=False)
    op.create_index(
        "ix_analysis_jobs_dedup",
        "analysis_jobs",
        ["website_id", "job_type", "target_key", "status"],
        unique=False,
    )
    op.create_index("ix_analysis_jobs_created_at", "analysis_jobs", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_analysis_jobs_created_at", table_name="analysis_jobs")
    op.drop_index("ix_analysis_jobs_dedup", table_name="analysis_jobs")
    op.drop_index("ix_analysis_jobs_priority", table_name="analysis_jobs")
    op.drop_index("ix_analysis_jobs_due", table_name="analysis_jobs")
    op.drop_table("analysis_jobs")
    op.drop_index("ix_ai_reports_website_type", table_name="ai_reports")
    op.drop_table("ai_reports")
    op.drop_index("ix_page_analyses_competitor_id", table_name="page_analyses")
    op.drop_index("ix_page_analyses_website_id", table_name="page_analyses")
    op.drop_table("page_analyses")
    op.drop_index("ix_sitemap_urls_snapshot_id", table_name="sitemap_urls")
    op.drop_table("sitemap_urls")
    op.drop_index("ix_sitemap_snapshots_competitor_fetched", table_name="sitemap_snapshots")
    op.drop_index("ix_sitemap_snapshots_website_fetched", table_name="sitemap_snapshots")
    op.drop_table("sitemap_snapshots")
    op.drop_index("ix_serp_results_competitor_created", table_name="serp_results")
    op.drop_index("ix_serp_results_search_query_created", table_name="serp_results")
    op.drop_index("ix_serp_results_website_id", table_name="serp_results")
    op.drop_table("serp_results")
    op.drop_index("ix_competitors_website_active", table_name="competitors")
    op.drop_index("ix_competitors_website_id", table_name="competitors")
    op.drop_table("competitors")
    op.drop_index("ix_search_queries_website_active", table_name="search_queries")
    op.drop_index("ix_search_queries_website_id", table_name="search_queries")
    op.drop_table("search_queries")
    op.drop_index("ix_websites_status", table_name="websites")
    op.drop_index("ix_websites_organization_id", table_name="websites")
    op.drop_table("websites")
    op.drop_table("organizations")
