"""
Page builder element model.

Elements are placed on a free canvas. Position and size carry a CSS unit per
axis so the same element can be laid out in pixels in the editor and in
viewport units on the homepage.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

Unit = Literal["px", "%", "vw", "vh", "em", "rem"]

ElementType = Literal[
    "heading", "text", "button", "image", "video", "container", "form", "map",
    "social", "divider", "spacer", "icon",
    "hero", "slideshow", "portfolio-gallery", "about",
]

HOMEPAGE_TYPES = frozenset({"hero", "slideshow", "portfolio-gallery", "about"})


class Dimension(BaseModel):
    value: float
    unit: Unit = "px"

    @classmethod
    def px(cls, value: float) -> "Dimension":
        return cls(value=value, unit="px")


class Position(BaseModel):
    x: Dimension
    y: Dimension


class Size(BaseModel):
    width: Dimension
    height: Dimension


class Layout(BaseModel):
    positioning: Literal["absolute", "relative", "flex"] = "absolute"
    alignment: Optional[Dict[str, str]] = None
    margin: Optional[Dict[str, Dimension]] = None
    padding: Optional[Dict[str, Dimension]] = None


class PageElement(BaseModel):
    id: str
    type: ElementType
    position: Position
    size: Size
    layout: Layout = Field(default_factory=Layout)
    style: Dict[str, Any] = Field(default_factory=dict)
    content: str = ""
    parent: Optional[str] = None
    settings: Dict[str, Any] = Field(default_factory=dict)
    breakpoint_styles: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


DEFAULT_WIDTHS = {
    "text": 200, "heading": 300, "button": 120, "image": 300, "video": 400,
    "form": 350, "map": 400, "social": 200, "divider": 300, "spacer": 100,
    "icon": 50, "container": 400,
}

DEFAULT_HEIGHTS = {
    "text": 40, "heading": 60, "button": 40, "image": 200, "video": 300,
    "form": 400, "map": 300, "social": 60, "divider": 2, "spacer": 50,
    "icon": 50, "container": 200,
}

DEFAULT_CONTENT = {
    "text": "Tekst bewerken...",
    "heading": "Nieuwe Kop",
    "button": "Klik hier",
    "video": "https://www.youtube.com/embed/dQw4w9WgXcQ",
    "icon": "star",
}

# applied when a loaded element has no style of its own
BASE_STYLE = {
    "backgroundColor": "transparent",
    "color": "#000000",
    "fontSize": 16,
    "fontWeight": "normal",
    "textAlign": "left",
    "borderRadius": 0,
    "padding": 0,
}


def default_size(element_type: str) -> Size:
    return Size(
        width=Dimension.px(DEFAULT_WIDTHS.get(element_type, 300)),
        height=Dimension.px(DEFAULT_HEIGHTS.get(element_type, 200)),
    )


def default_style(element_type: str) -> Dict[str, Any]:
    if element_type == "button":
        background = "#3b82f6"
    elif element_type == "container":
        background = "#f3f4f6"
    else:
        background = "transparent"

    if element_type in ("text", "button"):
        padding = 8
    elif element_type == "container":
        padding = 16
    else:
        padding = 0

    return {
        "backgroundColor": background,
        "color": "#ffffff" if element_type == "button" else "#000000",
        "fontSize": 24 if element_type == "heading" else 16,
        "fontWeight": "bold" if element_type == "heading" else "normal",
        "textAlign": "left",
        "borderRadius": 6 if element_type == "button" else 0,
        "padding": padding,
    }


def default_content(element_type: str) -> str:
    return DEFAULT_CONTENT.get(element_type, "")
