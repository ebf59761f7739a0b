"""Conversion result models."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ConversionOutcome(BaseModel):
    """Per-file result of a batch conversion."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: Path
    success: bool
    output_path: Path | None = None
    error: str | None = None
    patched_documents: tuple[str, ...] = ()
