from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field, RootModel

from ..recommendations.models import CamelModel, GeminiConfig, Product, QuizQuestion


class PageTexts(CamelModel):
    """Welcome / result page copy. Keys are owned by the front end."""

    model_config = ConfigDict(extra="allow")


class GeneralConfiguration(CamelModel):
    show_fake_loading: bool = False


class LocaleConfiguration(CamelModel):
    general: GeneralConfiguration = Field(default_factory=GeneralConfiguration)
    welcome_page: PageTexts | None = None
    result_page: PageTexts | None = None
    gemini: GeminiConfig | None = None


class QuizLocaleConfig(CamelModel):
    configuration: LocaleConfiguration = Field(default_factory=LocaleConfiguration)
    questions: list[QuizQuestion] = Field(default_factory=list)
    products: list[Product] = Field(default_factory=list)

    @property
    def gemini(self) -> GeminiConfig:
        return self.configuration.gemini or GeminiConfig()


class QuizConfig(RootModel[dict[str, QuizLocaleConfig]]):
    model_config = ConfigDict(frozen=True)

    @property
    def locales(self) -> list[str]:
        return list(self.root)

    def for_locale(self, locale: str) -> QuizLocaleConfig:
        """Return the config for *locale*, or for the first locale when unknown."""
        if locale in self.root:
            return self.root[locale]
        return self.root[self.locales[0]]

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
