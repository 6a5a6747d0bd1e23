import logging
from typing import Callable, Optional, Protocol

from openai import OpenAI

from folio.config import settings

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {
    "en": "English",
    "nl": "Dutch",
    "fr": "French",
    "de": "German",
    "es": "Spanish",
    "it": "Italian",
    "pt": "Portuguese",
    "zh": "Chinese",
    "ja": "Japanese",
    "ko": "Korean",
}


class Translator(Protocol):
    is_mock: bool

    def translate(self, text: str, target_language: str, source_language: str = "auto") -> str:
        ...


class MockTranslator:
    """Used when no OpenAI key is configured: tags the text with the target language."""

    is_mock = True

    def translate(self, text: str, target_language: str, source_language: str = "auto") -> str:
        return f"[{target_language.upper()}] {text}"


class OpenAITranslator:
    is_mock = False

    def __init__(self, api_key: str, model: Optional[str] = None):
        self.client = OpenAI(api_key=api_key)
        self.model = model or settings.openai_model

    def translate(self, text: str, target_language: str, source_language: str = "auto") -> str:
        target = LANGUAGE_NAMES.get(target_language, target_language)
        source = "the source language" if source_language == "auto" else LANGUAGE_NAMES.get(source_language, source_language)
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "system",
                    "content": (
                        f"You are a professional translator. Translate the following text from {source} to {target}. "
                        "Maintain the original tone, style, and formatting. "
                        "Only return the translated text, nothing else."
                    ),
                },
                {"role": "user", "content": text},
            ],
            temperature=0.3,
            max_tokens=2000,
        )
        return (response.choices[0].message.content or "").strip()


TranslatorFactory = Callable[[Optional[str]], Translator]


def translator_for(api_key: Optional[str]) -> Translator:
    if not api_key:
        return MockTranslator()
    return OpenAITranslator(api_key)


def get_translator_factory() -> TranslatorFactory:
    return translator_for
