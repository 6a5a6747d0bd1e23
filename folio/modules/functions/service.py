import logging
from typing import Any, Callable, Dict, Optional

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy import select

from folio.backend.query import QueryCommand, UpsertOptions
from folio.database.client import Database
from folio.database.query_interpreter import QueryInterpreter
from folio.database.tables import site_settings
from folio.modules.email.schemas import ContactRequest
from folio.modules.email.service import EmailService
from folio.modules.functions.schemas import (
    AddUiTranslationsRequest, BulkTranslateRequest, TranslateContentRequest,
)
from folio.modules.functions.translator import TranslatorFactory

logger = logging.getLogger(__name__)

# Invocable without a signed-in editor
PUBLIC_FUNCTIONS = frozenset({"send-contact-email"})


class FunctionService:
    def __init__(self, database: Database, translator_factory: TranslatorFactory, email_service: EmailService):
        self.database = database
        self.translator_factory = translator_factory
        self.email_service = email_service
        self.registry: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
            "translate-content": self.translate_content,
            "bulk-translate": self.bulk_translate,
            "add-ui-translations": self.add_ui_translations,
            "send-contact-email": self.send_contact_email,
        }

    def invoke(self, name: str, body: Dict[str, Any], user: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        handler = self.registry.get(name)
        if handler is None:
            raise HTTPException(status_code=404, detail=f"Function not found: {name}")
        if name not in PUBLIC_FUNCTIONS:
            if user is None:
                raise HTTPException(status_code=401, detail="Authentication required")
            if user.get("role") not in ("admin", "editor"):
                raise HTTPException(status_code=403, detail="Editor or admin role required")
        try:
            return {"data": handler(body or {})}
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e.errors()[0].get("msg", "Invalid request body")))

    def _openai_key(self) -> Optional[str]:
        row = self.database.fetch_one(select(site_settings.c.openai_api_key).limit(1))
        return row["openai_api_key"] if row else None

    def _save_translations(self, rows):
        QueryInterpreter(self.database).run(QueryCommand(
            table="translations",
            operation="upsert",
            data=rows,
            options=UpsertOptions(on_conflict="translation_key,language_code"),
        ))

    def translate_content(self, body: Dict[str, Any]) -> Dict[str, Any]:
        request = TranslateContentRequest.model_validate(body)
        translator = self.translator_factory(self._openai_key())
        try:
            translated = translator.translate(request.text, request.target_language, request.source_language)
        except Exception as e:
            logger.error("Translation failed: %s", e)
            raise HTTPException(status_code=502, detail="Translation service failed")

        saved = False
        if request.save_translation and request.translation_key:
            self._save_translations([{
                "translation_key": request.translation_key,
                "language_code": request.target_language,
                "translation_value": translated,
            }])
            saved = True

        return {
            "translatedText": translated,
            "sourceLanguage": request.source_language,
            "targetLanguage": request.target_language,
            "saved": saved,
            "isMock": translator.is_mock,
        }

    def bulk_translate(self, body: Dict[str, Any]) -> Dict[str, Any]:
        request = BulkTranslateRequest.model_validate(body)
        api_key = self._openai_key()
        if not api_key:
            raise HTTPException(status_code=400, detail="OpenAI API key not configured")
        translator = self.translator_factory(api_key)

        results, errors = [], []
        for item in request.items:
            if not item.text or not item.text.strip():
                continue
            try:
                translated = translator.translate(item.text, request.target_language, request.source_language)
                self._save_translations([{
                    "translation_key": item.key,
                    "language_code": request.target_language,
                    "translation_value": translated,
                    "table_name": item.table_name,
                    "record_id": item.record_id,
                    "field_name": item.field_name,
                }])
                results.append({"key": item.key, "original": item.text, "translated": translated, "saved": True})
            except Exception as e:
                logger.error("Error translating item %s: %s", item.key, e)
                errors.append({"key": item.key, "error": str(e)})

        return {
            "targetLanguage": request.target_language,
            "totalItems": len(request.items),
            "translated": len(results),
            "results": results,
            "errors": errors,
        }

    def add_ui_translations(self, body: Dict[str, Any]) -> Dict[str, Any]:
        request = AddUiTranslationsRequest.model_validate(body)
        if request.translations:
            self._save_translations([
                {"translation_key": t.key, "language_code": t.language_code, "translation_value": t.value}
                for t in request.translations
            ])
        return {"message": "Translations added successfully", "count": len(request.translations)}

    def send_contact_email(self, body: Dict[str, Any]) -> Dict[str, Any]:
        result = self.email_service.send_contact(ContactRequest.model_validate(body))
        return result.model_dump(by_alias=True)
