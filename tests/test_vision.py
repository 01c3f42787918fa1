from __future__ import annotations

import io
import unittest

from soko_search.sokoban import build_forward_problem, parse_xsb_levels
from soko_search.sokoban.vision import (
    COLORS,
    render_board_image,
    render_search_state_image,
)

try:
    from PIL import Image as PILImage
except ImportError:  # pragma: no cover
    PILImage = None

ROOM = """######
#   .#
# $@ #
#    #
######
"""


def _rgb(hex_color: str) -> tuple[int, int, int]:
    value = hex_color.lstrip("#")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


def _tile_center(row: int, col: int, tile_size: int) -> tuple[int, int]:
    outer_pad = max(2, tile_size // 12)
    return (
        outer_pad + col * tile_size + tile_size // 2,
        outer_pad + row * tile_size + tile_size // 2,
    )


@unittest.skipIf(PILImage is None, "pillow not installed")
class TestVision(unittest.TestCase):
    def setUp(self) -> None:
        level = parse_xsb_levels(ROOM, set_name="vision")[0]
        self.level = level
        self.root = build_forward_problem(level).initial_state

    def _open(self, image):
        return PILImage.open(io.BytesIO(image.to_bytes())).convert("RGB")

    def test_board_image_dimensions_and_data_url(self) -> None:
        image = render_board_image(self.level.snapshot(), tile_size=16, label_grid=False)
        self.assertEqual(image.mime_type, "image/png")
        self.assertTrue(image.data_url.startswith("data:image/png;base64,"))
        self.assertEqual(image.width, 6 * 16 + 4)
        self.assertEqual(image.height, 5 * 16 + 4)
        pil = self._open(image)
        self.assertEqual(pil.size, (image.width, image.height))
        self.assertEqual(pil.getpixel(_tile_center(0, 0, 16)), _rgb(COLORS["wall"]))
        self.assertEqual(pil.getpixel(_tile_center(2, 3, 16)), _rgb(COLORS["player"]))

    def test_labels_add_a_gutter(self) -> None:
        plain = render_board_image(self.level.snapshot(), tile_size=16, label_grid=False)
        labelled = render_board_image(self.level.snapshot(), tile_size=16, label_grid=True)
        self.assertEqual(labelled.width, plain.width + 16)
        self.assertEqual(labelled.height, plain.height + 16)

    def test_state_image_shades_dead_and_reachable_squares(self) -> None:
        pil = self._open(
            render_search_state_image(self.root, tile_size=16, label_grid=False)
        )
        self.assertEqual(pil.getpixel(_tile_center(1, 1, 16)), _rgb(COLORS["dead"]))
        self.assertEqual(pil.getpixel(_tile_center(1, 2, 16)), _rgb(COLORS["reachable"]))

        bare = self._open(
            render_search_state_image(
                self.root,
                show_dead=False,
                show_reachable=False,
                tile_size=16,
                label_grid=False,
            )
        )
        self.assertEqual(bare.getpixel(_tile_center(1, 1, 16)), _rgb(COLORS["floor"]))

    def test_rejects_tiny_tiles(self) -> None:
        with self.assertRaises(ValueError):
            render_board_image(self.level.snapshot(), tile_size=4)


if __name__ == "__main__":
    unittest.main()
