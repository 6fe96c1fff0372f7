"""Unit tests for the scalar text form shared by nodes and factors."""

import numpy as np
import pytest

from planar_slam.utils import format_scalar, format_vector


class TestFormatScalar:
    """Test suite for format_scalar."""

    @pytest.mark.parametrize(
        "value, text",
        [(1.0, "1"), (0.0, "0"), (-2.25, "-2.25"), (0.1, "0.1"), (100.0, "100")],
    )
    def test_known_values(self, value, text):
        assert format_scalar(value) == text

    def test_round_trip(self):
        """Parsing the text gives back the exact float."""
        rng = np.random.default_rng(7)
        for value in rng.normal(scale=1e3, size=50):
            assert float(format_scalar(value)) == value

    def test_format_vector(self):
        assert format_vector([1.0, -0.5, np.pi]) == "(1, -0.5, 3.141592653589793)"
