from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

logger = logging.getLogger(__name__)


class RecommendationSchema(str, Enum):
    """Response shape served by one deployment. Never mixed."""

    product_ids = "product_ids"
    product_ids_with_reasons = "product_ids_with_reasons"
    recommends = "recommends"


def schema_from_env(value: str | None) -> RecommendationSchema:
    """Resolve ``RECOMMENDATION_SCHEMA``; unknown values fall back to ``product_ids``."""
    if not value:
        return RecommendationSchema.product_ids
    try:
        return RecommendationSchema(value.strip().lower())
    except ValueError:
        logger.warning(
            "Unknown RECOMMENDATION_SCHEMA %r, expected one of %s; using %s",
            value,
            ", ".join(s.value for s in RecommendationSchema),
            RecommendationSchema.product_ids.value,
        )
        return RecommendationSchema.product_ids


@dataclass(frozen=True)
class EngineConfig:
    response_schema: RecommendationSchema = schema_from_env(os.getenv("RECOMMENDATION_SCHEMA"))
    rule_limit: int = 3
    fallback_limit: int = 5
    quiz_config_file: str = os.getenv("QUIZ_CONFIG_FILE", "")
    # Provenance events kept in memory; oldest are dropped first
    analytics_max_events: int = int(os.getenv("ANALYTICS_MAX_EVENTS", "1000"))


DEFAULT_ENGINE_CONFIG = EngineConfig()
