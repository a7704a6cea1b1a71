from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Immutable model that reads and writes camelCase JSON keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ── Quiz ─────────────────────────────────────────────────────────────────


class QuizOption(CamelModel):
    id: str
    text: str


class QuizQuestion(CamelModel):
    id: str
    text: str
    type: Literal["single-select", "multi-select"]
    options: list[QuizOption] = Field(..., min_length=1)


class QuizAnswer(CamelModel):
    question_id: str = Field(..., min_length=1)
    selected_options: list[str] = Field(..., min_length=1)


# ── Catalog ──────────────────────────────────────────────────────────────


class MatchRule(CamelModel):
    any_of: list[str] | None = None
    all_of: list[str] | None = None
    not_: list[str] | None = Field(default=None, alias="not")


class Product(CamelModel):
    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    price: str = ""
    image: str = ""
    shop_link: str = ""
    tags: list[str] = Field(default_factory=list)
    attributes: dict[str, str] | None = None
    conditions: MatchRule | None = None


@dataclass(frozen=True)
class ScoredProduct:
    product: Product
    score: int


class GeminiConfig(CamelModel):
    enabled: bool = False
    model: str = ""
    prompt: str = ""


# ── Recommendation shapes ────────────────────────────────────────────────


class ProductIdsRecommendation(CamelModel):
    product_ids: list[str]
    reasoning: str
    guidance: str
    reasons: dict[str, str] | None = None


class RecommendedItem(CamelModel):
    id: str = Field(..., min_length=1)
    description: str
    tags: list[str] = Field(default_factory=list)


class RecommendsRecommendation(CamelModel):
    recommends: list[RecommendedItem]
    reasoning: str


Recommendation = Union[ProductIdsRecommendation, RecommendsRecommendation]


class RecommendationSource(str, Enum):
    gemini = "gemini"
    fallback = "fallback"


class FallbackReason(str, Enum):
    disabled = "disabled"
    missing_api_key = "missing_api_key"
    empty_response = "empty_response"
    no_json_object = "no_json_object"
    invalid_json = "invalid_json"
    invalid_shape = "invalid_shape"
    timeout = "timeout"
    request_failed = "request_failed"


@dataclass(frozen=True)
class RecommendationOutcome:
    recommendation: Recommendation
    source: RecommendationSource
    fallback_reason: FallbackReason | None = None

    def recommended_ids(self) -> list[str]:
        if isinstance(self.recommendation, RecommendsRecommendation):
            return [item.id for item in self.recommendation.recommends]
        return list(self.recommendation.product_ids)


# ── Requests / responses ─────────────────────────────────────────────────


class RecommendRequest(CamelModel):
    answers: list[QuizAnswer]
    products: list[Product]
    config: GeminiConfig = Field(default_factory=GeminiConfig)
    questions: list[QuizQuestion] = Field(default_factory=list)

    @field_validator("config", mode="before")
    @classmethod
    def _null_config_is_disabled(cls, value):
        return GeminiConfig() if value is None else value


class RuleRecommendRequest(CamelModel):
    answers: list[QuizAnswer]
    products: list[Product]
    questions: list[QuizQuestion] = Field(default_factory=list)
    limit: int | None = Field(default=None, ge=0, le=50)


class RuleMatch(CamelModel):
    product: Product
    score: int


class RuleRecommendResponse(CamelModel):
    matches: list[RuleMatch]
    total: int
