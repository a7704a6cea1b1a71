from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from .models import QuizConfig

logger = logging.getLogger(__name__)


class QuizConfigError(RuntimeError):
    """The quiz configuration file is missing or does not match the schema."""


def load_quiz_config(path: str | Path) -> QuizConfig:
    """Read and validate the locale-keyed quiz JSON at *path*.

    Called once at startup; the returned object is immutable and shared
    by every request.
    """
    config_path = Path(path)
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise QuizConfigError(f"Quiz config not found: {config_path}") from exc
    except json.JSONDecodeError as exc:
        raise QuizConfigError(f"Quiz config is not valid JSON: {config_path}: {exc}") from exc

    try:
        config = QuizConfig.model_validate(raw)
    except ValidationError as exc:
        raise QuizConfigError(f"Quiz config does not match schema: {exc}") from exc

    if not config.locales:
        raise QuizConfigError(f"Quiz config defines no locales: {config_path}")

    logger.info(
        "Loaded quiz config %s with locales %s",
        config_path.name,
        ", ".join(config.locales),
    )
    return config
