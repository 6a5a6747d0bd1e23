"""
Stores page builder elements as ``page_builder_elements`` rows through any
backend adapter.

Units, layout and settings have no columns of their own; they travel inside
the ``styles`` JSON next to the visual style keys.

Homepage layout: the homepage stacks its hero, slideshow, gallery and about
blocks vertically at full width. When ``load`` runs with
``homepage_layout=True`` those element types always come back with ``%``
position and width units, a ``vh`` height and relative positioning, whatever
units were stored. Every other element type loads exactly as saved.
"""

import json
import logging
from typing import Any, Dict, List

from folio.backend.base import BackendAdapter
from folio.backend.types import BackendResult
from folio.page_builder.elements import (
    BASE_STYLE, HOMEPAGE_TYPES, Dimension, Layout, PageElement, Position, Size,
)

logger = logging.getLogger(__name__)

TABLE = "page_builder_elements"

UNIT_KEYS = ("position_x_unit", "position_y_unit", "size_width_unit", "size_height_unit")


def _json_field(value: Any, element_id: str) -> Dict[str, Any]:
    if not value:
        return {}
    if isinstance(value, dict):
        return value
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError) as e:
        logger.warning("Unreadable styles on element %s: %s", element_id, e)
        return {}
    return parsed if isinstance(parsed, dict) else {}


def element_to_row(page_id: str, element: PageElement, sort_order: int) -> Dict[str, Any]:
    styles = {
        **element.style,
        "position_x_unit": element.position.x.unit,
        "position_y_unit": element.position.y.unit,
        "size_width_unit": element.size.width.unit,
        "size_height_unit": element.size.height.unit,
        "layout": element.layout.model_dump(exclude_none=True),
        "settings": element.settings,
    }
    return {
        "page_id": page_id,
        "element_id": element.id,
        "element_type": element.type,
        "position_x": element.position.x.value,
        "position_y": element.position.y.value,
        "size_width": element.size.width.value,
        "size_height": element.size.height.value,
        "content": element.content,
        "styles": styles,
        "responsive_styles": element.breakpoint_styles,
        "parent_element_id": element.parent,
        "sort_order": sort_order,
    }


def row_to_element(row: Dict[str, Any], homepage_layout: bool = True) -> PageElement:
    element_id = row["element_id"]
    stored = _json_field(row.get("styles"), element_id)
    styles = dict(stored)
    units = {key: styles.pop(key, "px") for key in UNIT_KEYS}
    layout = styles.pop("layout", None) or {"positioning": "absolute"}
    settings = styles.pop("settings", None) or {}
    element_type = row["element_type"]

    if homepage_layout and element_type in HOMEPAGE_TYPES:
        units = {
            "position_x_unit": "%",
            "position_y_unit": "%",
            "size_width_unit": "%",
            "size_height_unit": "vh",
        }
        layout = {**layout, "positioning": "relative"}

    return PageElement(
        id=element_id,
        type=element_type,
        position=Position(
            x=Dimension(value=float(row.get("position_x") or 0), unit=units["position_x_unit"]),
            y=Dimension(value=float(row.get("position_y") or 0), unit=units["position_y_unit"]),
        ),
        size=Size(
            width=Dimension(value=float(row.get("size_width") or 0), unit=units["size_width_unit"]),
            height=Dimension(value=float(row.get("size_height") or 0), unit=units["size_height_unit"]),
        ),
        layout=Layout.model_validate(layout),
        style=styles if stored else dict(BASE_STYLE),
        content=row.get("content") or "",
        parent=row.get("parent_element_id") or None,
        settings=settings,
        breakpoint_styles=_json_field(row.get("responsive_styles"), element_id),
    )


class PageRepository:
    def __init__(self, adapter: BackendAdapter):
        self.adapter = adapter

    def save(self, page_id: str, elements: List[PageElement]) -> BackendResult:
        """
        Replace the stored elements of a page with ``elements``, in list order.

        Adapters expose no transactions, so the previous rows are read first
        and written back when the insert of the new rows fails.
        """
        previous = self.adapter.from_(TABLE).select("*").eq("page_id", page_id).order("sort_order").execute()
        if not previous.ok:
            logger.error("Could not read elements of page %s: %s", page_id, previous.error.message)
            return previous
        deleted = self.adapter.from_(TABLE).delete().eq("page_id", page_id).execute()
        if not deleted.ok:
            logger.error("Could not clear elements of page %s: %s", page_id, deleted.error.message)
            return deleted
        if not elements:
            return BackendResult.success([], count=0)

        rows = [element_to_row(page_id, element, index) for index, element in enumerate(elements)]
        result = self.adapter.from_(TABLE).insert(rows).execute()
        if not result.ok:
            logger.error("Could not save elements of page %s: %s", page_id, result.error.message)
            self._restore(page_id, previous.data or [])
        return result

    def _restore(self, page_id: str, rows: List[Dict[str, Any]]) -> None:
        if not rows:
            return
        restored = self.adapter.from_(TABLE).insert(rows).execute()
        if restored.ok:
            logger.info("Restored %d previous elements of page %s", len(rows), page_id)
        else:
            logger.error("Could not restore elements of page %s: %s", page_id, restored.error.message)

    def load(self, page_id: str, homepage_layout: bool = True) -> BackendResult:
        result = (
            self.adapter.from_(TABLE)
            .select("*")
            .eq("page_id", page_id)
            .order("sort_order")
            .execute()
        )
        if not result.ok:
            return result
        elements = [row_to_element(row, homepage_layout) for row in result.data or []]
        return BackendResult.success(elements, count=len(elements))
