from dataclasses import dataclass, field
from typing import Dict, List, Optional

from folio.page_builder.elements import PageElement


@dataclass
class RenderNode:
    element: PageElement
    children: List["RenderNode"] = field(default_factory=list)


def _parent_id(element: PageElement, by_id: Dict[str, PageElement]) -> Optional[str]:
    """The parent to nest under, or None when it is missing or the element sits in a cycle."""
    if not element.parent or element.parent not in by_id:
        return None
    seen = set()
    current = element.parent
    while current is not None and current not in seen:
        if current == element.id:
            return None
        seen.add(current)
        ancestor = by_id.get(current)
        current = ancestor.parent if ancestor is not None else None
    return element.parent


def build_render_tree(elements: List[PageElement]) -> List[RenderNode]:
    """
    Nest elements under their ``parent``. Elements whose parent is missing
    end up at the top level. Sibling order follows the input order.
    """
    by_id = {element.id: element for element in elements}
    nodes = {element.id: RenderNode(element) for element in elements}
    roots: List[RenderNode] = []
    for element in elements:
        parent_id = _parent_id(element, by_id)
        if parent_id is None:
            roots.append(nodes[element.id])
        else:
            nodes[parent_id].children.append(nodes[element.id])
    return roots
