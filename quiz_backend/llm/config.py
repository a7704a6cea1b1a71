from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class LLMConfig:
    api_key: str = os.getenv("GEMINI_API_KEY", "")
    default_model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    timeout: float = float(os.getenv("GEMINI_TIMEOUT", "10.0"))
    temperature: float = float(os.getenv("GEMINI_TEMPERATURE", "0.7"))
    top_k: int = int(os.getenv("GEMINI_TOP_K", "40"))
    top_p: float = float(os.getenv("GEMINI_TOP_P", "0.95"))
    max_output_tokens: int = int(os.getenv("GEMINI_MAX_OUTPUT_TOKENS", "2048"))


DEFAULT_LLM_CONFIG = LLMConfig()
