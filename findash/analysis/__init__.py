"""
LLM analysis of stock snapshots
"""

from .insights import (
    StructuredAnalysis,
    InsightCache,
    CompletionService,
    OpenAICompletionService,
    InsightGenerator,
    parse_analysis,
    fingerprint,
    build_analysis_payload
)

__all__ = [
    "StructuredAnalysis",
    "InsightCache",
    "CompletionService",
    "OpenAICompletionService",
    "InsightGenerator",
    "parse_analysis",
    "fingerprint",
    "build_analysis_payload"
]
