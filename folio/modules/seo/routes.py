from typing import Dict

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from folio.core.dependencies import require_admin
from folio.database.client import Database, get_database
from folio.modules.seo.schemas import SeoSettingsResponse, SeoSettingsUpdate
from folio.modules.seo.service import SeoService

router = APIRouter(prefix="/seo", tags=["seo"])


def get_seo_service(database: Database = Depends(get_database)) -> SeoService:
    return SeoService(database)


@router.get("", response_model=SeoSettingsResponse)
async def get_seo_settings(service: SeoService = Depends(get_seo_service)):
    return SeoSettingsResponse(data=service.get_settings())


@router.get("/robots", response_class=PlainTextResponse)
async def robots_txt(service: SeoService = Depends(get_seo_service)):
    return PlainTextResponse(service.robots_txt())


@router.put("", response_model=SeoSettingsResponse)
async def update_seo_settings(
    data: SeoSettingsUpdate,
    current_user: Dict = Depends(require_admin),
    service: SeoService = Depends(get_seo_service),
):
    return SeoSettingsResponse(data=service.update_settings(data))
