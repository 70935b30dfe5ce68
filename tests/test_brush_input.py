import threading
from unittest import TestCase

from ink_fluid_sim.fluid.brush_input import BrushInput, BrushState


class TestBrushInput(TestCase):

    def setUp(self):
        # 100x50 grid shown on a 500x250 display
        self.brush = BrushInput(100, 50, display_height=250, quality=0.2)

    def test_display_to_grid_flips_y(self):
        self.assertEqual(self.brush.to_grid(0, 0), (0, 49))
        self.assertEqual(self.brush.to_grid(250, 125), (50, 25))
        self.assertEqual(self.brush.to_grid(12, 240), (2, 2))

    def test_out_of_range_points_are_clamped(self):
        self.assertEqual(self.brush.to_grid(-40, -40), (0, 49))
        self.assertEqual(self.brush.to_grid(9000, 9000), (99, 0))

    def test_pixel_ratio(self):
        brush = BrushInput(100, 50, display_height=250, quality=0.2, pixel_ratio=2.0)
        self.assertEqual(brush.to_grid(50, 50), (20, 30))

    def test_press_move_release(self):
        self.brush.press(100, 100)
        state = self.brush.snapshot()
        self.assertEqual(state, BrushState(pos=(20, 30), delta=(0.0, 0.0), is_down=True))

        self.brush.move(150, 80)
        state = self.brush.snapshot()
        self.assertEqual(state.pos, (30, 34))
        self.assertEqual(state.delta, (10.0, 4.0))
        self.assertTrue(state.is_down)

        self.brush.release()
        self.assertEqual(self.brush.snapshot(), BrushState())

    def test_move_without_press_is_ignored(self):
        self.brush.move(150, 80)
        self.assertFalse(self.brush.snapshot().is_down)

    def test_set_grid_state_clamps(self):
        self.brush.set_grid_state((-5, 80), (1, -1))
        self.assertEqual(self.brush.snapshot(), BrushState(pos=(0, 49), delta=(1.0, -1.0), is_down=True))

    def test_snapshot_never_tears(self):
        # each writer keeps pos == delta, so a torn read would break the equality
        stop = threading.Event()

        def writer(offset):
            k = 0
            while not stop.is_set():
                v = (k + offset) % 40
                self.brush.set_grid_state((v, v), (float(v), float(v)))
                k += 1

        threads = [threading.Thread(target=writer, args=(o,)) for o in (0, 17)]
        for t in threads:
            t.start()
        try:
            for _ in range(2000):
                s = self.brush.snapshot()
                self.assertEqual((float(s.pos[0]), float(s.pos[1])), s.delta)
        finally:
            stop.set()
            for t in threads:
                t.join()
