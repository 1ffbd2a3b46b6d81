"""
Tests for the fuzzy module.
"""

import math
import os

import numpy as np
import pytest

from correct_watertype import fuzzy
from correct_watertype.auxdata import Auxdata
from correct_watertype.exceptions import ClassificationError, DimensionMismatchError
from correct_watertype.owt_types import COASTAL

AUXDATA_ROOT = os.environ.get("CORRECT_WATERTYPE_AUXDATA", "")


class TestMembershipFromDistance:
    """Tests for the chi-square membership of a distance."""

    def test_zero_distance(self):
        """Test that a spectrum at the class mean has full membership."""
        assert fuzzy.membership_from_distance(0.0, 5) == 1.0

    @pytest.mark.parametrize("z_square", [0.5, 2.0, 6.0, 12.0, 40.0])
    def test_two_bands(self, z_square):
        """Test the closed form exp(-z/2) for two degrees of freedom."""
        expected = math.exp(-z_square / 2.0)
        assert fuzzy.membership_from_distance(z_square, 2) == pytest.approx(expected, rel=1e-5)

    def test_decreasing(self):
        """Test that memberships shrink with the distance."""
        values = [fuzzy.membership_from_distance(z, 5) for z in np.linspace(0.0, 30.0, 31)]
        assert np.all(np.diff(values) <= 1e-7)

    def test_negative_distance(self):
        """Test that a negative distance cannot be evaluated."""
        with pytest.raises(ValueError):
            fuzzy.membership_from_distance(-1.0, 3)


class TestComputeMemberships:
    """Tests for the memberships of a spectrum."""

    def test_class_mean(self, three_band_auxdata):
        """Test a spectrum equal to the first class mean."""
        r = three_band_auxdata.spectral_means[:, 0]
        m = fuzzy.compute_memberships(r, three_band_auxdata)
        assert m.shape == (3,)
        assert m[0] == 1.0
        assert m[1] < 1e-10
        assert m[2] < 1e-10

    def test_deterministic(self, three_band_auxdata):
        """Test that repeated calls give identical results."""
        r = [0.005, 0.006, 0.004]
        m1 = fuzzy.compute_memberships(r, three_band_auxdata)
        m2 = fuzzy.compute_memberships(r, three_band_auxdata)
        np.testing.assert_array_equal(m1, m2)

    def test_wrong_length(self, three_band_auxdata):
        with pytest.raises(DimensionMismatchError):
            fuzzy.compute_memberships([0.01, 0.02], three_band_auxdata)

    def test_indefinite_statistics(self):
        """Test that a negative distance is reported as classification error."""
        aux = Auxdata(np.zeros((2, 1)), -np.eye(2)[None, :, :])
        with pytest.raises(ClassificationError):
            fuzzy.compute_memberships([1.0, 1.0], aux)

    def test_classifier(self, three_band_auxdata):
        """Test the classifier object."""
        classifier = fuzzy.FuzzyClassifier(three_band_auxdata)
        assert classifier.class_count == 3
        assert classifier.band_count == 3
        r = three_band_auxdata.spectral_means[:, 2]
        assert classifier.compute_memberships(r)[2] == 1.0


@pytest.mark.skipif(
    not os.path.exists(AUXDATA_ROOT + COASTAL.auxdata_source.means_path),
    reason="coastal class statistics not available",
)
class TestCoastalStatistics:
    """Tests against the 16 class coastal statistics."""

    def test_known_memberships(self):
        aux = COASTAL.load_auxdata(AUXDATA_ROOT)
        m = fuzzy.compute_memberships([0.0307, 0.0414, 0.0500, 0.0507, 0.0454], aux)
        expected = np.zeros(16)
        expected[13:] = [0.024374, 0.083183, 0.199592]
        np.testing.assert_allclose(m, expected, atol=1e-5)
