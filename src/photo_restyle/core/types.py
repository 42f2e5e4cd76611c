"""Shared type definitions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

PromptSource = Literal["catalog", "raw-style", "prompt"]


@dataclass(frozen=True)
class ResolvedPrompt:
    """Prompt text chosen for a transform request."""

    text: str
    source: PromptSource
    style: str | None = None


@dataclass(frozen=True)
class TransformResult:
    """Result of a successful transform."""

    image_id: str
    prompt: ResolvedPrompt
    size_bytes: int
    elapsed_seconds: float
