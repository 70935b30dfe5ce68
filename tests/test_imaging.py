import os
import tempfile
from unittest import TestCase

import numpy as np
import PIL.Image

from ink_fluid_sim.imaging import load_background, save_png, to_engine_layout


class TestImaging(TestCase):

    def test_engine_layout_puts_top_row_last(self):
        image = np.zeros((3, 5, 4), dtype=np.float32)  # 3 rows, 5 columns
        image[0, 4] = 1.0  # top-right pixel
        engine = to_engine_layout(image)
        self.assertEqual(engine.shape, (5, 3, 4))
        self.assertEqual(float(engine[4, 2, 0]), 1.0)
        self.assertEqual(float(engine.sum()), 4.0)

    def test_load_background_resamples_to_display(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "bg.png")
            PIL.Image.new("RGB", (7, 9), (255, 0, 0)).save(path)
            bg = load_background(path, (16, 12))
        self.assertEqual(bg.shape, (16, 12, 4))
        np.testing.assert_allclose(bg[3, 3], [1.0, 0.0, 0.0, 1.0], atol=1e-6)

    def test_save_png_writes_image_orientation(self):
        frame = np.zeros((4, 2, 4), dtype=np.uint8)
        frame[..., 3] = 255
        frame[0, 1] = (0, 255, 0, 255)  # top-left in engine layout
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "frame.png")
            save_png(frame, path)
            with PIL.Image.open(path) as img:
                self.assertEqual(img.size, (4, 2))
                self.assertEqual(img.getpixel((0, 0)), (0, 255, 0, 255))
