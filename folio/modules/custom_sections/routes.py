from typing import Dict

from fastapi import APIRouter, Depends

from folio.core.dependencies import require_admin
from folio.database.client import Database, get_database
from folio.modules.custom_sections.schemas import (
    CustomSectionCreate, CustomSectionResponse, CustomSectionUpdate, ReorderRequest,
)
from folio.modules.custom_sections.service import CustomSectionService

router = APIRouter(prefix="/custom-sections", tags=["custom-sections"])


def get_custom_section_service(database: Database = Depends(get_database)) -> CustomSectionService:
    return CustomSectionService(database)


@router.get("", response_model=CustomSectionResponse)
async def list_active_sections(service: CustomSectionService = Depends(get_custom_section_service)):
    """Active sections for the public site"""
    return CustomSectionResponse(data=service.list_active())


@router.get("/admin", response_model=CustomSectionResponse)
async def list_all_sections(
    current_user: Dict = Depends(require_admin),
    service: CustomSectionService = Depends(get_custom_section_service),
):
    return CustomSectionResponse(data=service.list_all())


# Declared before /{section_id} so "reorder" is not taken for an id
@router.put("/reorder", response_model=CustomSectionResponse)
async def reorder_sections(
    data: ReorderRequest,
    current_user: Dict = Depends(require_admin),
    service: CustomSectionService = Depends(get_custom_section_service),
):
    service.reorder(data)
    return CustomSectionResponse(data={"message": "Sections reordered successfully"})


@router.get("/{section_id}", response_model=CustomSectionResponse)
async def get_section(
    section_id: str,
    current_user: Dict = Depends(require_admin),
    service: CustomSectionService = Depends(get_custom_section_service),
):
    return CustomSectionResponse(data=service.get(section_id))


@router.post("", response_model=CustomSectionResponse, status_code=201)
async def create_section(
    data: CustomSectionCreate,
    current_user: Dict = Depends(require_admin),
    service: CustomSectionService = Depends(get_custom_section_service),
):
    return CustomSectionResponse(data=service.create(data))


@router.put("/{section_id}", response_model=CustomSectionResponse)
async def update_section(
    section_id: str,
    data: CustomSectionUpdate,
    current_user: Dict = Depends(require_admin),
    service: CustomSectionService = Depends(get_custom_section_service),
):
    return CustomSectionResponse(data=service.update(section_id, data))


@router.delete("/{section_id}", response_model=CustomSectionResponse)
async def delete_section(
    section_id: str,
    current_user: Dict = Depends(require_admin),
    service: CustomSectionService = Depends(get_custom_section_service),
):
    return CustomSectionResponse(data=service.delete(section_id))


@router.put("/{section_id}/toggle", response_model=CustomSectionResponse)
async def toggle_section(
    section_id: str,
    current_user: Dict = Depends(require_admin),
    service: CustomSectionService = Depends(get_custom_section_service),
):
    return CustomSectionResponse(data=service.toggle(section_id))
