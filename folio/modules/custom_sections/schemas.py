from typing import Any, List, Optional

from pydantic import BaseModel, Field


class CustomSectionCreate(BaseModel):
    name: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    title: str = Field(min_length=1)
    is_active: bool = False
    show_in_navigation: bool = True
    show_hero_button: bool = False
    menu_order: int = 0
    header_image_url: Optional[str] = None
    content_left: Optional[str] = None
    content_right: List[Any] = Field(default_factory=list)
    button_text: Optional[str] = None
    button_link: Optional[str] = None


class CustomSectionUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    title: Optional[str] = None
    is_active: Optional[bool] = None
    show_in_navigation: Optional[bool] = None
    show_hero_button: Optional[bool] = None
    menu_order: Optional[int] = None
    header_image_url: Optional[str] = None
    content_left: Optional[str] = None
    content_right: Optional[List[Any]] = None
    button_text: Optional[str] = None
    button_link: Optional[str] = None


class SectionRef(BaseModel):
    id: str


class ReorderRequest(BaseModel):
    sections: List[SectionRef]


class CustomSectionResponse(BaseModel):
    success: bool = True
    data: Any = None
