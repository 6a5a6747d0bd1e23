from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TranslateContentRequest(_CamelModel):
    text: str
    target_language: str = Field(alias="targetLanguage", min_length=2)
    source_language: str = Field(default="auto", alias="sourceLanguage")
    save_translation: bool = Field(default=False, alias="saveTranslation")
    translation_key: Optional[str] = Field(default=None, alias="translationKey")


class BulkTranslateItem(_CamelModel):
    key: str
    text: Optional[str] = None
    table_name: Optional[str] = Field(default=None, alias="tableName")
    record_id: Optional[str] = Field(default=None, alias="recordId")
    field_name: Optional[str] = Field(default=None, alias="fieldName")


class BulkTranslateRequest(_CamelModel):
    items: List[BulkTranslateItem]
    target_language: str = Field(alias="targetLanguage", min_length=2)
    source_language: str = Field(default="auto", alias="sourceLanguage")


class UiTranslation(_CamelModel):
    key: str
    language_code: str = Field(alias="languageCode")
    value: str


class AddUiTranslationsRequest(BaseModel):
    translations: List[UiTranslation]
