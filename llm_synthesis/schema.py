"""Structured output schema for generated SEO reports."""

from pydantic import BaseModel, ConfigDict, Field


class GeneratedReport(BaseModel):
    """Only allowed output contract for the report generator."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        str_strip_whitespace=True,
    )

    title: str = Field(min_length=1, max_length=500)
    content: str = Field(min_length=1)
    highlights: list[str] = Field(default_factory=list, max_length=10)
