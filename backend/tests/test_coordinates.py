"""
Tests for render-space to PDF point-space mapping.
"""

from paperdesk.esign.coordinates import Rect, Size, map_placement

LETTER = Size(width=612.0, height=792.0)


class TestMapPlacement:
    def test_identity_when_render_matches_page(self):
        rect = map_placement(Rect(50, 100, 200, 80), Size(612, 792), LETTER)
        assert rect == Rect(x=50, y=792 - 180, width=200, height=80)

    def test_missing_render_dimensions_uses_scale_one(self):
        placement = Rect(10, 20, 30, 40)
        assert map_placement(placement, None, LETTER) == map_placement(placement, LETTER, LETTER)

    def test_double_render_halves_everything(self):
        page = Size(600, 800)
        rect = map_placement(Rect(100, 200, 300, 100), Size(1200, 1600), page)
        assert rect.x == 50
        assert rect.width == 150
        assert rect.height == 50
        # bottom edge of the placement is at 300 render px -> 150 pt from the top
        assert rect.y == 800 - 150

    def test_placement_at_top_left_lands_at_top(self):
        rect = map_placement(Rect(0, 0, 100, 50), Size(612, 792), LETTER)
        assert rect.x == 0
        assert rect.y + rect.height == LETTER.height

    def test_non_uniform_scale(self):
        rect = map_placement(Rect(10, 10, 10, 10), Size(306, 396 * 4), LETTER)
        assert rect.width == 20
        assert rect.height == 5

    def test_degenerate_values_pass_through(self):
        rect = map_placement(Rect(-10, 900, 0, 0), None, LETTER)
        assert rect == Rect(x=-10, y=792 - 900, width=0, height=0)
