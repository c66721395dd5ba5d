"""Advisory AI enrichment.

Nothing here may change authoritative state: analysis results only ever land
in the ai_* fields of a feedback.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from feedhub_core.providers.anthropic import AnthropicAnalyzer
from feedhub_core.providers.openai import OpenAIAnalyzer

if TYPE_CHECKING:
    from feedhub_core.config import AIConfig
    from feedhub_core.providers.base import BaseAnalyzer, FeedbackAnalysis

logger = logging.getLogger(__name__)


def get_analyzer(ai_config: AIConfig | None) -> BaseAnalyzer | None:
    """Build the configured analyzer, or None when AI is off or has no key."""
    if ai_config is None or not ai_config.enabled:
        return None
    if not ai_config.api_key:
        logger.debug("AI enabled for %s but no API key is set; skipping.", ai_config.provider)
        return None
    if ai_config.provider == "anthropic":
        return AnthropicAnalyzer(ai_config.api_key, model=ai_config.model, temperature=ai_config.temperature)
    if ai_config.provider == "openai":
        return OpenAIAnalyzer(ai_config.api_key, model=ai_config.model, temperature=ai_config.temperature)
    raise ValueError(f"Unknown AI provider: {ai_config.provider!r}. Choose 'anthropic' or 'openai'.")


def advisory_fields(analysis: FeedbackAnalysis) -> dict:
    return {
        "ai_summary": analysis.summary,
        "ai_suggested_type": analysis.suggested_type,
        "ai_suggested_priority": analysis.suggested_priority,
        "ai_confidence": analysis.confidence,
    }
