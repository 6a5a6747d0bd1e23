from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from folio.core.dependencies import get_optional_user
from folio.database.client import Database, get_database
from folio.modules.email.routes import get_email_service
from folio.modules.email.service import EmailService
from folio.modules.functions.service import FunctionService
from folio.modules.functions.translator import TranslatorFactory, get_translator_factory

router = APIRouter(prefix="/functions", tags=["functions"])


def get_function_service(
    database: Database = Depends(get_database),
    translator_factory: TranslatorFactory = Depends(get_translator_factory),
    email_service: EmailService = Depends(get_email_service),
) -> FunctionService:
    return FunctionService(database, translator_factory, email_service)


@router.post("/{name}")
async def invoke_function(
    name: str,
    body: Optional[Dict[str, Any]] = Body(default=None),
    current_user: Optional[Dict] = Depends(get_optional_user),
    service: FunctionService = Depends(get_function_service),
):
    """Invoke a named server function"""
    return service.invoke(name, body or {}, current_user)
