import unittest
from unittest.mock import patch

from folio.database.tables import pages
from folio.page_builder import persistence
from folio.page_builder.editor import DragItem, PageEditor
from folio.page_builder.elements import BASE_STYLE, Dimension, PageElement, Position, Size
from folio.page_builder.persistence import PageRepository, element_to_row, row_to_element
from folio.page_builder.render import build_render_tree

from server_case import ServerTestCase


def element(element_id: str, parent=None, element_type="container") -> PageElement:
    return PageElement(
        id=element_id,
        type=element_type,
        position=Position(x=Dimension.px(0), y=Dimension.px(0)),
        size=Size(width=Dimension.px(100), height=Dimension.px(100)),
        parent=parent,
    )


class PageEditorTests(unittest.TestCase):
    def setUp(self):
        self.editor = PageEditor()

    def test_add_uses_type_defaults_and_selects(self):
        button = self.editor.add_element("button")
        self.assertEqual(button.content, "Klik hier")
        self.assertEqual((button.size.width.value, button.size.height.value), (120, 40))
        self.assertEqual(button.style["backgroundColor"], "#3b82f6")
        self.assertEqual((button.position.x.value, button.position.y.value), (100, 100))
        self.assertEqual(self.editor.selected_id, button.id)

    def test_drop_from_toolbar_adds_at_canvas_offset(self):
        dropped = self.editor.drop(DragItem(element_type="image"), 250, 180, canvas_origin=(50, 30))
        self.assertEqual((dropped.position.x.value, dropped.position.y.value), (200, 150))
        self.assertEqual(len(self.editor.elements), 1)

    def test_drop_existing_element_moves_it(self):
        text = self.editor.add_element("text")
        self.editor.drop(DragItem(element_type="text", id=text.id), 300, 300, canvas_origin=(0, 0))
        self.assertEqual(len(self.editor.elements), 1)
        self.assertEqual(self.editor.get(text.id).position.x.value, 300)

    def test_click_on_canvas_background_clears_selection(self):
        heading = self.editor.add_element("heading")
        self.editor.click_canvas(target_is_canvas=False)
        self.assertEqual(self.editor.selected_id, heading.id)
        self.editor.click_canvas(target_is_canvas=True)
        self.assertIsNone(self.editor.selected)

    def test_update_merges_and_keeps_id(self):
        heading = self.editor.add_element("heading")
        updated = self.editor.update_element(heading.id, {"content": "Over mij", "id": "other"})
        self.assertEqual(updated.id, heading.id)
        self.assertEqual(updated.content, "Over mij")
        self.assertEqual(updated.style["fontWeight"], "bold")
        self.assertIsNone(self.editor.update_element("missing", {"content": "x"}))

    def test_delete_clears_selection(self):
        text = self.editor.add_element("text")
        self.assertTrue(self.editor.delete_element(text.id))
        self.assertIsNone(self.editor.selected_id)
        self.assertFalse(self.editor.delete_element(text.id))

    def test_undo_redo(self):
        self.assertFalse(self.editor.undo())
        text = self.editor.add_element("text")
        self.editor.update_element(text.id, {"content": "Eerste versie"})

        self.assertTrue(self.editor.undo())
        self.assertEqual(self.editor.get(text.id).content, "Tekst bewerken...")
        self.assertTrue(self.editor.undo())
        self.assertEqual(self.editor.elements, [])
        self.assertTrue(self.editor.redo())
        self.assertTrue(self.editor.can_redo)

        # a new edit drops the redo branch
        self.editor.add_element("divider")
        self.assertFalse(self.editor.can_redo)
        self.assertEqual([e.type for e in self.editor.elements], ["text", "divider"])


class RowMappingTests(unittest.TestCase):
    def test_units_and_layout_travel_in_styles(self):
        editor = PageEditor()
        hero = editor.add_element("hero")
        hero = editor.update_element(hero.id, {"size": {"width": {"value": 100, "unit": "%"}, "height": {"value": 80, "unit": "vh"}}})
        row = element_to_row("page-1", hero, 3)
        self.assertEqual(row["styles"]["size_width_unit"], "%")
        self.assertEqual(row["styles"]["layout"], {"positioning": "absolute"})
        self.assertEqual(row["sort_order"], 3)

    def test_homepage_types_are_coerced_on_load(self):
        row = {
            "element_id": "h1", "element_type": "slideshow",
            "position_x": 0, "position_y": 10, "size_width": 100, "size_height": 60,
            "styles": '{"position_x_unit": "px", "size_height_unit": "px", "color": "#111111"}',
        }
        loaded = row_to_element(row)
        self.assertEqual(loaded.position.y.unit, "%")
        self.assertEqual(loaded.size.width.unit, "%")
        self.assertEqual(loaded.size.height.unit, "vh")
        self.assertEqual(loaded.layout.positioning, "relative")
        self.assertEqual(loaded.style, {"color": "#111111"})

        raw = row_to_element(row, homepage_layout=False)
        self.assertEqual(raw.size.height.unit, "px")
        self.assertEqual(raw.position.y.unit, "px")

    def test_missing_styles_get_base_style(self):
        loaded = row_to_element({"element_id": "t1", "element_type": "text", "styles": None})
        self.assertEqual(loaded.style, BASE_STYLE)
        self.assertEqual(loaded.position.x.unit, "px")
        self.assertEqual(loaded.layout.positioning, "absolute")


class PageRepositoryTests(ServerTestCase):
    def setUp(self):
        super().setUp()
        self.create_user("editor@example.com")
        self.adapter = self.local_adapter()
        self.assertTrue(self.adapter.auth.sign_in("editor@example.com", "secret123").ok)
        self.page_id = self.database.fetch_one(
            pages.insert().values(title="Home", slug="home", is_homepage=True).returning(pages.c.id)
        )["id"]
        self.repository = PageRepository(self.adapter)

    def test_save_and_load_round_trip(self):
        editor = PageEditor()
        editor.add_element("heading")
        button = editor.add_element("button")
        editor.update_element(button.id, {"settings": {"href": "/contact"}, "breakpoint_styles": {"mobile": {"fontSize": 14}}})

        self.assertTrue(self.repository.save(self.page_id, editor.elements).ok)
        loaded = self.repository.load(self.page_id).unwrap()
        self.assertEqual(loaded, editor.elements)

    def test_save_replaces_previous_elements(self):
        editor = PageEditor()
        editor.add_element("text")
        editor.add_element("image")
        self.repository.save(self.page_id, editor.elements).unwrap()

        editor.delete_element(editor.elements[0].id)
        self.repository.save(self.page_id, editor.elements).unwrap()
        loaded = self.repository.load(self.page_id).unwrap()
        self.assertEqual([e.type for e in loaded], ["image"])

    def test_anonymous_save_is_rejected(self):
        repository = PageRepository(self.local_adapter())
        result = repository.save(self.page_id, [element("c1")])
        self.assertEqual(result.error.status, 401)

    def test_round_trip_keeps_units_layout_and_parents(self):
        editor = PageEditor()
        container = editor.add_element("container")
        editor.update_element(container.id, {
            "position": {"x": {"value": 5, "unit": "vw"}, "y": {"value": 12.5, "unit": "%"}},
            "size": {"width": {"value": 90, "unit": "%"}, "height": {"value": 40, "unit": "vh"}},
            "layout": {
                "positioning": "flex",
                "alignment": {"justify": "space-between", "align": "center"},
                "margin": {"top": {"value": 8, "unit": "px"}, "bottom": {"value": 2, "unit": "rem"}},
                "padding": {"left": {"value": 1.5, "unit": "em"}},
            },
            "settings": {"columns": 2, "gap": "1rem"},
        })
        text = editor.add_element("text")
        editor.update_element(text.id, {
            "parent": container.id,
            "position": {"x": {"value": 1, "unit": "em"}, "y": {"value": 2, "unit": "rem"}},
            "size": {"width": {"value": 50, "unit": "%"}, "height": {"value": 3, "unit": "em"}},
            "layout": {"positioning": "relative"},
            "breakpoint_styles": {"tablet": {"fontSize": 14}, "mobile": {"fontSize": 12, "textAlign": "center"}},
        })
        hero = editor.add_element("hero")
        editor.update_element(hero.id, {
            "position": {"x": {"value": 0, "unit": "%"}, "y": {"value": 0, "unit": "%"}},
            "size": {"width": {"value": 100, "unit": "%"}, "height": {"value": 80, "unit": "vh"}},
            "layout": {"positioning": "relative"},
            "settings": {"autoplay": False},
        })

        self.repository.save(self.page_id, editor.elements).unwrap()
        loaded = self.repository.load(self.page_id).unwrap()
        self.assertEqual(loaded, editor.elements)
        self.assertEqual(build_render_tree(loaded)[0].children[0].element.id, text.id)

    def test_failed_insert_keeps_previous_elements(self):
        editor = PageEditor()
        editor.add_element("heading")
        editor.add_element("image")
        self.repository.save(self.page_id, editor.elements).unwrap()

        def broken_row(page_id, element, sort_order):
            return {**element_to_row(page_id, element, sort_order), "no_such_column": 1}

        with patch.object(persistence, "element_to_row", side_effect=broken_row):
            result = self.repository.save(self.page_id, [element("c1")])
        self.assertEqual(result.error.status, 400)

        loaded = self.repository.load(self.page_id).unwrap()
        self.assertEqual(loaded, editor.elements)


class RenderTreeTests(unittest.TestCase):
    def test_children_nest_in_input_order(self):
        roots = build_render_tree([element("root"), element("b", "root"), element("a", "root")])
        self.assertEqual([n.element.id for n in roots], ["root"])
        self.assertEqual([c.element.id for c in roots[0].children], ["b", "a"])

    def test_unknown_parent_renders_at_top_level(self):
        roots = build_render_tree([element("orphan", "gone"), element("root")])
        self.assertEqual([n.element.id for n in roots], ["orphan", "root"])

    def test_cycle_is_broken(self):
        roots = build_render_tree([element("a", "b"), element("b", "a"), element("c", "a")])
        self.assertEqual([n.element.id for n in roots], ["a", "b"])
        self.assertEqual([c.element.id for c in roots[0].children], ["c"])


if __name__ == "__main__":
    unittest.main()
