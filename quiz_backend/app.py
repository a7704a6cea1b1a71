from __future__ import annotations

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events, record_recommendation
from .llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from .quiz_config.loader import load_quiz_config
from .quiz_config.models import QuizConfig
from .recommendations.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .recommendations.engine import (
    parse_locale_request,
    parse_locale_rule_request,
    parse_recommend_request,
    parse_rule_request,
    recommend,
    recommend_by_rules,
)
from .recommendations.models import (
    RecommendRequest,
    RuleMatch,
    RuleRecommendRequest,
    RuleRecommendResponse,
)
from .recommendations.validation import InvalidEngineInput

logger = logging.getLogger(__name__)

SOURCE_HEADER = "x-recommendation-source"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Quiz config is loaded once here and never mutated afterwards.
    app.state.quiz_config = None
    if DEFAULT_ENGINE_CONFIG.quiz_config_file:
        app.state.quiz_config = load_quiz_config(DEFAULT_ENGINE_CONFIG.quiz_config_file)
    else:
        logger.info("QUIZ_CONFIG_FILE not set, /quiz endpoints are disabled")
    yield


app = FastAPI(title="Quiz Recommendation API", version="1.0.0", lifespan=lifespan)


# ── Dependencies ─────────────────────────────────────────────────────────


def get_llm_config() -> LLMConfig:
    return DEFAULT_LLM_CONFIG


def get_engine_config() -> EngineConfig:
    return DEFAULT_ENGINE_CONFIG


def get_quiz_config(request: Request) -> QuizConfig:
    """Return the startup-loaded quiz config, or 503 when none was loaded."""
    config = getattr(request.app.state, "quiz_config", None)
    if config is None:
        raise HTTPException(status_code=503, detail="Quiz configuration not loaded")
    return config


@app.exception_handler(InvalidEngineInput)
async def invalid_input_handler(request: Request, exc: InvalidEngineInput) -> JSONResponse:
    logger.info("Rejected recommendation request: %s", exc)
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as exc:
        raise InvalidEngineInput("Invalid JSON body.") from exc


async def _run_engine(
    body: RecommendRequest,
    llm_config: LLMConfig,
    engine_config: EngineConfig,
    locale: str | None = None,
) -> JSONResponse:
    start_time = time.time()

    # Gemini call is blocking; keep it off the event loop.
    outcome = await run_in_threadpool(recommend, body, llm_config, engine_config)

    elapsed_ms = round((time.time() - start_time) * 1000, 1)
    record_recommendation(outcome, len(body.products), elapsed_ms, locale)

    return JSONResponse(
        content=outcome.recommendation.to_json_dict(),
        headers={SOURCE_HEADER: outcome.source.value},
    )


def _rule_response(body: RuleRecommendRequest, engine_config: EngineConfig) -> dict:
    matches = recommend_by_rules(body.answers, body.products, body.limit, engine_config)
    response = RuleRecommendResponse(
        matches=[RuleMatch(product=m.product, score=m.score) for m in matches],
        total=len(matches),
    )
    return response.to_json_dict()


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/recommend")
async def recommend_products(
    request: Request,
    llm_config: LLMConfig = Depends(get_llm_config),
    engine_config: EngineConfig = Depends(get_engine_config),
) -> JSONResponse:
    body = parse_recommend_request(await _read_json(request))
    return await _run_engine(body, llm_config, engine_config)


@app.post("/recommend/rules")
async def recommend_products_by_rules(
    request: Request,
    engine_config: EngineConfig = Depends(get_engine_config),
) -> dict:
    body = parse_rule_request(await _read_json(request))
    return _rule_response(body, engine_config)


# ── Locale quiz endpoints ────────────────────────────────────────────────


@app.get("/quiz")
def quiz_locales(quiz_config: QuizConfig = Depends(get_quiz_config)) -> dict:
    return {"locales": quiz_config.locales}


@app.get("/quiz/{locale}")
def quiz_for_locale(
    locale: str,
    quiz_config: QuizConfig = Depends(get_quiz_config),
) -> dict:
    return quiz_config.for_locale(locale).to_json_dict()


@app.post("/quiz/{locale}/recommend")
async def quiz_recommend(
    locale: str,
    request: Request,
    quiz_config: QuizConfig = Depends(get_quiz_config),
    llm_config: LLMConfig = Depends(get_llm_config),
    engine_config: EngineConfig = Depends(get_engine_config),
) -> JSONResponse:
    body = parse_locale_request(await _read_json(request), quiz_config.for_locale(locale))
    return await _run_engine(body, llm_config, engine_config, locale)


@app.post("/quiz/{locale}/matches")
async def quiz_matches(
    locale: str,
    request: Request,
    quiz_config: QuizConfig = Depends(get_quiz_config),
    engine_config: EngineConfig = Depends(get_engine_config),
) -> dict:
    body = parse_locale_rule_request(await _read_json(request), quiz_config.for_locale(locale))
    return _rule_response(body, engine_config)


# ── Monitoring ───────────────────────────────────────────────────────────


@app.get("/analytics")
def analytics() -> dict:
    return compute_analytics(get_events())


def main() -> None:
    """Serve the API with uvicorn (``quiz-recommendation-service`` script)."""
    uvicorn.run(
        "quiz_backend.app:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
    )
