"""
Configuration for the analysis context builder.

All settings are bounded to avoid oversized context payloads.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class AnalysisContextConfig(BaseModel):
    """
    Analysis context configuration.

    Notes:
    - max_drivers: cap on attributed metrics included in the context.
    - max_snapshots: cap on recent snapshots attached.
    - min_score: alerts below this score are not analyzed.
    """

    max_drivers: int = Field(3, ge=1, le=4)
    max_snapshots: int = Field(6, ge=0)
    min_score: int = Field(5, ge=0, le=100)
