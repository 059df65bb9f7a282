import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "protocol"))

from scalersync_protocol.centering import CenteringCalculator
from scalersync_protocol.models import CenteringError, Resolution


class CenteringTests(unittest.TestCase):
    def test_default_values(self):
        values = CenteringCalculator().compute(Resolution(936, 250), Resolution(1920, 1080))
        self.assertEqual(values.h, 10240 + 960 - 468)
        self.assertEqual(values.v, 10240 + 540 - 125)

    def test_same_size_is_origin(self):
        values = CenteringCalculator().compute(Resolution(1920, 1080), Resolution(1920, 1080))
        self.assertEqual((values.h, values.v), (10240, 10240))

    def test_configured_scale(self):
        calc = CenteringCalculator(h_origin=0, v_origin=100, h_units_per_pixel=2, v_units_per_line=3)
        values = calc.compute(Resolution(100, 100), Resolution(200, 120))
        self.assertEqual(values.h, 100)
        self.assertEqual(values.v, 130)

    def test_monotonic_in_output(self):
        calc = CenteringCalculator()
        previous = None
        for out_h in range(640, 2000, 7):
            value = calc.compute(Resolution(640, 480), Resolution(out_h, 1080)).h
            if previous is not None:
                self.assertGreaterEqual(value, previous)
            previous = value

    def test_output_smaller_than_input_is_fatal(self):
        calc = CenteringCalculator()
        with self.assertRaises(CenteringError):
            calc.compute(Resolution(2560, 1080), Resolution(1920, 1080))
        with self.assertRaises(CenteringError):
            calc.compute(Resolution(640, 1200), Resolution(1920, 1080))

    def test_scale_must_be_positive(self):
        with self.assertRaises(ValueError):
            CenteringCalculator(h_units_per_pixel=0)


if __name__ == "__main__":
    unittest.main()
