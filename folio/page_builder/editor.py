import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from folio.page_builder.elements import (
    Dimension, ElementType, Layout, PageElement, Position, default_content, default_size, default_style,
)

logger = logging.getLogger(__name__)

DEFAULT_OFFSET = 100


class DragItem(BaseModel):
    """Toolbar items carry only ``element_type``; canvas items also carry ``id``."""

    element_type: ElementType
    id: Optional[str] = None


class PageEditor:
    """
    Editing state for one page: the element list, the selection and an
    undo/redo history of element-list snapshots.
    """

    def __init__(self, elements: Optional[List[PageElement]] = None):
        self.elements: List[PageElement] = [e.model_copy(deep=True) for e in elements or []]
        self.selected_id: Optional[str] = None
        self._history: List[List[PageElement]] = [self._snapshot()]
        self._index = 0

    def _snapshot(self) -> List[PageElement]:
        return [e.model_copy(deep=True) for e in self.elements]

    def _commit(self) -> None:
        # a new edit discards anything that could have been redone
        del self._history[self._index + 1:]
        self._history.append(self._snapshot())
        self._index = len(self._history) - 1

    @property
    def selected(self) -> Optional[PageElement]:
        return self.get(self.selected_id) if self.selected_id else None

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._history) - 1

    def get(self, element_id: str) -> Optional[PageElement]:
        return next((e for e in self.elements if e.id == element_id), None)

    def add_element(self, element_type: ElementType, position: Optional[Position] = None) -> PageElement:
        element = PageElement(
            id=str(uuid.uuid4()),
            type=element_type,
            position=position or Position(x=Dimension.px(DEFAULT_OFFSET), y=Dimension.px(DEFAULT_OFFSET)),
            size=default_size(element_type),
            layout=Layout(positioning="absolute"),
            style=default_style(element_type),
            content=default_content(element_type),
        )
        self.elements.append(element)
        self._commit()
        self.selected_id = element.id
        return element

    def drop(self, item: DragItem, client_x: float, client_y: float, canvas_origin: Tuple[float, float]) -> Optional[PageElement]:
        """Place a dragged item at the drop point, relative to the canvas' top-left corner."""
        position = Position(
            x=Dimension.px(client_x - canvas_origin[0]),
            y=Dimension.px(client_y - canvas_origin[1]),
        )
        if item.id:
            return self.update_element(item.id, {"position": position})
        return self.add_element(item.element_type, position)

    def select(self, element_id: Optional[str]) -> None:
        self.selected_id = element_id

    def click_canvas(self, target_is_canvas: bool) -> None:
        if target_is_canvas:
            self.selected_id = None

    def update_element(self, element_id: str, updates: Dict[str, Any]) -> Optional[PageElement]:
        for i, element in enumerate(self.elements):
            if element.id == element_id:
                merged = {**element.model_dump(), **updates, "id": element.id}
                self.elements[i] = PageElement.model_validate(merged)
                self._commit()
                return self.elements[i]
        logger.debug("Ignoring update for unknown element %s", element_id)
        return None

    def delete_element(self, element_id: str) -> bool:
        remaining = [e for e in self.elements if e.id != element_id]
        if len(remaining) == len(self.elements):
            return False
        self.elements = remaining
        self._commit()
        if self.selected_id == element_id:
            self.selected_id = None
        return True

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self._index -= 1
        self.elements = [e.model_copy(deep=True) for e in self._history[self._index]]
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self._index += 1
        self.elements = [e.model_copy(deep=True) for e in self._history[self._index]]
        return True
