"""
Tests for the classification module.
"""

import numpy as np
import pytest

from correct_watertype import classification
from correct_watertype.classification import ClassificationResult, OWTClassification
from correct_watertype.auxdata import Auxdata
from correct_watertype.config import ClassificationConfig, ReflectanceUnit
from correct_watertype.exceptions import ConfigurationError, DimensionMismatchError
from correct_watertype.owt_types import COASTAL, INLAND, OpticalWaterType
from correct_watertype.special import trapz


def reflectance_for_rrs(rrs):
    """Above-water radiance reflectance giving the subsurface ``rrs``."""
    rrs = np.asarray(rrs)
    r = 0.52 * rrs / (1.0 - 1.7 * rrs)
    return r * np.pi


class TestSubsurfaceConversion:
    """Tests for the subsurface remote sensing reflectance."""

    def test_radiance(self):
        """Test the conversion of a radiance reflectance."""
        rrs = classification.convert_to_subsurface_rrs(0.05)
        r = 0.05 / np.pi
        assert rrs == pytest.approx(r / (0.52 + 1.7 * r))

    def test_irradiance(self):
        """Test that irradiance reflectances are divided by pi once more."""
        radiance = classification.convert_to_subsurface_rrs(0.05, ReflectanceUnit.RADIANCE)
        irradiance = classification.convert_to_subsurface_rrs(0.05, ReflectanceUnit.IRRADIANCE)
        assert irradiance == pytest.approx(radiance / np.pi)

    def test_inverse(self):
        """Test the helper used by the tests."""
        rrs = np.array([0.001, 0.01])
        np.testing.assert_allclose(
            classification.convert_to_subsurface_rrs(reflectance_for_rrs(rrs)), rrs
        )


class TestNormalization:
    """Tests for spectrum and membership normalization."""

    def test_memberships_sum_to_one(self):
        m = classification.normalize_memberships([0.2, 0.5, 0.05])
        assert np.sum(m) == pytest.approx(1.0, abs=1e-9)

    def test_memberships_idempotent(self):
        m = classification.normalize_memberships([0.2, 0.5, 0.05])
        np.testing.assert_allclose(classification.normalize_memberships(m), m, rtol=1e-12)

    def test_spectrum_integral(self):
        """Test that a normalized spectrum integrates to one."""
        wl = [400.0, 450.0, 500.0, 600.0]
        spectrum = classification.normalize_spectrum(wl, [0.01, 0.02, 0.015, 0.005])
        assert trapz(wl, spectrum) == pytest.approx(1.0)


class TestDominantClass:
    """Tests for the dominant class."""

    def test_first_largest(self):
        """Test that the first of equal maxima wins (1-based)."""
        assert classification.dominant_class([0.1, 0.7, 0.7, 0.2]) == 2

    def test_all_zero(self):
        """Test the no-data value when no class is positive."""
        assert classification.dominant_class([0.0, 0.0]) == -1

    def test_smallest_positive(self):
        """Test that the smallest positive double is not enough."""
        tiny = np.nextafter(0.0, 1.0)
        assert classification.dominant_class([tiny, 0.0]) == -1
        assert classification.dominant_class([0.0, 2 * tiny]) == 2


class TestBandSelection:
    """Tests for matching water type wavelengths to input bands."""

    def test_find_band_index(self):
        bands = [412.7, 442.6, 489.9, 509.8, 559.7]
        assert classification.find_band_index(443.0, bands) == 1
        assert classification.find_band_index(700.0, bands) is None

    def test_select_bands(self):
        """Test mapping the coastal wavelengths onto MERIS bands."""
        bands = [412.7, 442.6, 489.9, 509.8, 559.7, 619.6]
        idx = classification.select_bands(COASTAL, bands)
        assert idx.tolist() == [0, 1, 2, 3, 4]

    def test_select_bands_missing(self):
        with pytest.raises(ConfigurationError):
            classification.select_bands(COASTAL, [412.7, 442.6, 489.9])


class TestOWTClassification:
    """Tests for the classification of single pixels."""

    def test_class_mean(self, three_band_type, three_band_auxdata):
        """Test a pixel whose spectrum equals the first class mean."""
        owt = OWTClassification(three_band_type, three_band_auxdata)
        result = owt.classify(reflectance_for_rrs(three_band_auxdata.spectral_means[:, 0]))
        assert result.is_valid
        assert result.memberships.shape == (2,)
        assert result.memberships[0] == pytest.approx(1.0)
        assert result.dominant_class == 1
        assert result.class_sum == pytest.approx(np.sum(result.memberships))
        assert result.norm_class_sum == pytest.approx(1.0)

    def test_merged_classes(self, three_band_type, three_band_auxdata):
        """Test that the trailing classes are merged."""
        owt = OWTClassification(three_band_type, three_band_auxdata)
        result = owt.classify(reflectance_for_rrs(three_band_auxdata.spectral_means[:, 2]))
        raw = owt.classifier.compute_memberships(result.rrs)
        assert result.memberships[1] == pytest.approx(raw[1] + raw[2])
        assert result.dominant_class == 2

    def test_nan_input(self, three_band_type, three_band_auxdata):
        """Test the no-data result for NaN input."""
        owt = OWTClassification(three_band_type, three_band_auxdata)
        result = owt.classify([0.01, np.nan, 0.02])
        assert not result.is_valid
        assert result.dominant_class == -1
        assert result.class_sum == -1.0
        assert np.all(np.isnan(result.memberships))

    def test_wrong_length(self, three_band_type, three_band_auxdata):
        owt = OWTClassification(three_band_type, three_band_auxdata)
        with pytest.raises(DimensionMismatchError):
            owt.classify([0.01, 0.02])

    def test_auxdata_mismatch(self, three_band_auxdata):
        """Test that statistics for other wavelengths are rejected."""
        with pytest.raises(DimensionMismatchError):
            OWTClassification(COASTAL, three_band_auxdata)

    def test_invalid_result(self):
        result = ClassificationResult.invalid(4)
        assert result.memberships.shape == (4,)
        assert np.isnan(result.norm_class_sum)


class TestFromConfig:
    """Tests for building the classification from its configuration."""

    @pytest.fixture
    def loaded_roots(self, monkeypatch):
        """Replace the statistics loading by 7 classes on the 10 inland bands."""
        roots = []

        def fake_load(owt_type, root=""):
            roots.append((owt_type.name, root))
            means = np.full((owt_type.band_count, owt_type.class_count), 0.01)
            inv_cov = np.stack([np.eye(owt_type.band_count) * 1.0e6] * owt_type.class_count)
            return Auxdata(means, inv_cov)

        monkeypatch.setattr(OpticalWaterType, "load_auxdata", fake_load)
        return roots

    def test_from_config(self, loaded_roots):
        config = ClassificationConfig(owt_type="inland", input_reflectance="IRRADIANCE",
                                      auxdata_root="/data/owt")
        owt = OWTClassification.from_config(config)
        assert owt.owt_type is INLAND
        assert owt.input_reflectance is ReflectanceUnit.IRRADIANCE
        assert loaded_roots == [("INLAND", "/data/owt")]
        result = owt.classify(np.full(INLAND.band_count, 0.02))
        assert result.memberships.shape == (7,)

    def test_unknown_type(self, loaded_roots):
        with pytest.raises(ConfigurationError):
            OWTClassification.from_config(ClassificationConfig(owt_type="ARCTIC"))
        assert loaded_roots == []
