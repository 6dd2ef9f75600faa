"""
Tests for the overlay model.

Covers:
- Defaults of a new overlay
- Exclusive selection
- Idempotent removal and id allocation
- Minimum size clamping
- Backend payload shape
"""

import unittest

from memeforge.editor.overlays import (
    DEFAULT_HEIGHT,
    DEFAULT_TEXT,
    DEFAULT_WIDTH,
    MIN_HEIGHT,
    MIN_WIDTH,
    OverlayModel,
    TextOverlay,
)


class TestAddOverlay(unittest.TestCase):

    def setUp(self):
        self.model = OverlayModel()

    def test_new_overlay_uses_defaults(self):
        overlay_id = self.model.add()
        overlay = self.model.get(overlay_id)
        self.assertEqual(overlay.text, DEFAULT_TEXT)
        self.assertEqual((overlay.x, overlay.y), (50.0, 50.0))
        self.assertEqual((overlay.width, overlay.height), (DEFAULT_WIDTH, DEFAULT_HEIGHT))
        self.assertEqual(overlay.rotation, 0.0)

    def test_add_uses_given_style(self):
        overlay_id = self.model.add(color="#FF0000", font="Arial", font_size=48)
        overlay = self.model.get(overlay_id)
        self.assertEqual(overlay.color, "#FF0000")
        self.assertEqual(overlay.font, "Arial")
        self.assertEqual(overlay.font_size, 48)

    def test_add_appends_on_top(self):
        first = self.model.add(text="bottom")
        second = self.model.add(text="top")
        self.assertEqual([o.id for o in self.model.overlays], [first, second])

    def test_ids_never_reused(self):
        first = self.model.add()
        self.model.remove(first)
        second = self.model.add()
        self.assertNotEqual(first, second)

        self.model.clear()
        third = self.model.add()
        self.assertNotIn(third, (first, second))

    def test_caller_cannot_choose_id(self):
        overlay_id = self.model.add(id=999)
        self.assertNotEqual(overlay_id, 999)


class TestSelection(unittest.TestCase):

    def setUp(self):
        self.model = OverlayModel()
        self.a = self.model.add(text="a")
        self.b = self.model.add(text="b")

    def test_at_most_one_selected(self):
        self.model.select(self.a)
        self.model.select(self.b)
        self.assertEqual(self.model.selected_id, self.b)
        self.assertFalse(self.model.is_selected(self.a))
        self.assertTrue(self.model.is_selected(self.b))

    def test_select_none_clears(self):
        self.model.select(self.a)
        self.model.select(None)
        self.assertIsNone(self.model.selected_id)
        self.assertIsNone(self.model.selected)

    def test_select_unknown_id_clears(self):
        self.model.select(self.a)
        self.model.select(12345)
        self.assertIsNone(self.model.selected_id)

    def test_removing_selected_clears_selection(self):
        self.model.select(self.a)
        self.model.remove(self.a)
        self.assertIsNone(self.model.selected_id)

    def test_removing_other_keeps_selection(self):
        self.model.select(self.a)
        self.model.remove(self.b)
        self.assertEqual(self.model.selected_id, self.a)

    def test_reselecting_does_not_notify(self):
        calls = []
        self.model.select(self.a)
        self.model.subscribe(lambda: calls.append(1))
        self.model.select(self.a)
        self.assertEqual(calls, [])


class TestRemoveAndUpdate(unittest.TestCase):

    def setUp(self):
        self.model = OverlayModel()
        self.a = self.model.add()
        self.b = self.model.add()

    def test_remove_is_idempotent(self):
        self.model.remove(self.a)
        self.model.remove(self.a)
        self.assertEqual(len(self.model), 1)
        self.assertNotIn(self.a, self.model)
        self.assertIn(self.b, self.model)

    def test_remove_unknown_does_not_notify(self):
        calls = []
        self.model.subscribe(lambda: calls.append(1))
        self.model.remove(777)
        self.assertEqual(calls, [])

    def test_update_merges_fields(self):
        self.model.update(self.a, text="Hello", x=10, rotation=45)
        overlay = self.model.get(self.a)
        self.assertEqual(overlay.text, "Hello")
        self.assertEqual(overlay.x, 10)
        self.assertEqual(overlay.y, 50.0)
        self.assertEqual(overlay.rotation, 45)

    def test_update_unknown_id_is_noop(self):
        self.model.update(404, text="nothing")
        self.assertEqual(len(self.model), 2)

    def test_update_unknown_field_ignored(self):
        self.model.update(self.a, colour="#000000", text="kept")
        overlay = self.model.get(self.a)
        self.assertEqual(overlay.text, "kept")
        self.assertFalse(hasattr(overlay, "colour"))

    def test_update_clamps_size(self):
        self.model.update(self.a, width=5, height=-30)
        overlay = self.model.get(self.a)
        self.assertEqual(overlay.width, MIN_WIDTH)
        self.assertEqual(overlay.height, MIN_HEIGHT)

    def test_positions_are_not_clamped(self):
        self.model.update(self.a, x=-500, y=10000)
        overlay = self.model.get(self.a)
        self.assertEqual((overlay.x, overlay.y), (-500, 10000))

    def test_snapshots_are_copies(self):
        snapshot = self.model.get(self.a)
        snapshot.text = "changed outside"
        self.assertEqual(self.model.get(self.a).text, DEFAULT_TEXT)

    def test_listeners_notified_on_mutation(self):
        calls = []
        listener = lambda: calls.append(1)
        self.model.subscribe(listener)
        self.model.update(self.a, text="x")
        self.model.unsubscribe(listener)
        self.model.update(self.a, text="y")
        self.assertEqual(len(calls), 1)


class TestPayload(unittest.TestCase):

    def test_payload_uses_backend_keys(self):
        model = OverlayModel()
        model.add(text="Top\nText", font_size=40)
        payload = model.to_payload()
        self.assertEqual(len(payload), 1)
        self.assertEqual(payload[0]["fontSize"], 40)
        self.assertEqual(payload[0]["text"], "Top\nText")
        self.assertNotIn("font_size", payload[0])

    def test_load_payload_assigns_fresh_ids(self):
        model = OverlayModel()
        existing = model.add()
        model.load_payload([{"id": existing, "text": "restored", "fontSize": 20}])
        restored = model.overlays[0]
        self.assertEqual(restored.text, "restored")
        self.assertEqual(restored.font_size, 20)
        self.assertNotEqual(restored.id, existing)

    def test_overlay_lines(self):
        overlay = TextOverlay(id=1, text="one\ntwo\n")
        self.assertEqual(overlay.lines, ["one", "two", ""])

    def test_overlay_center(self):
        overlay = TextOverlay(id=1, x=10, y=20, width=100, height=40)
        self.assertEqual(overlay.center.x(), 60)
        self.assertEqual(overlay.center.y(), 40)


if __name__ == "__main__":
    unittest.main()
