"""Report configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ReportSettings(BaseModel):
    """Tunable limits for the enrichment passes and report sections."""

    model_config = ConfigDict(frozen=True)

    # Traces longer than this are called out as "[N line trace]"
    trace_report_limit: int = Field(default=250, ge=0)
    # Request times later than the dump date plus this much belong to the previous day
    date_roll_fluff_seconds: int = Field(default=5, ge=0)

    oldest_threads: int = Field(default=10, ge=0)
    youngest_threads: int = Field(default=10, ge=0)
    top_clients: int = Field(default=5, ge=0)
    longest_traces: int = Field(default=10, ge=0)
    top_urls: int = Field(default=10, ge=0)


class RenderOptions(BaseModel):
    """Presentation switches threaded explicitly through the renderers."""

    model_config = ConfigDict(frozen=True)

    color: bool = True
