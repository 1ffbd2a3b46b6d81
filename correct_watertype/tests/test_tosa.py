"""
Tests for the TOSA model and its Rayleigh and gas components.
"""

import dataclasses

import numpy as np
import pytest

from correct_watertype import gases, rayleigh, tosa
from correct_watertype.constants import MERIS_WAVELENGTHS, OZONE_ABSORPTION, TOSA_BAND_INDICES
from correct_watertype.exceptions import DimensionMismatchError, InvalidInputError, NumericalError
from correct_watertype.tosa import SmileAuxdata, TosaModel


class TestRayleigh:
    """Tests for the Rayleigh terms of the correction layer."""

    def test_optical_thickness_412(self):
        """Test the Rayleigh optical thickness in the blue."""
        tau = rayleigh.rayleigh_optical_thickness(412.3)
        assert 0.30 < tau < 0.33

    def test_wavelength_dependence(self):
        """Test that the optical thickness falls with wavelength."""
        tau = rayleigh.rayleigh_optical_thickness(np.array(MERIS_WAVELENGTHS))
        assert np.all(np.diff(tau) < 0)

    def test_air_mass_scaling(self):
        tau1 = rayleigh.rayleigh_optical_thickness(560.0)
        tau2 = rayleigh.rayleigh_optical_thickness(560.0, air_mass=-0.5)
        assert tau2 == pytest.approx(-0.5 * tau1)

    def test_phase_function_isotropic_molecules(self):
        """Test the classical form without depolarization."""
        for c in (-1.0, 0.0, 0.3, 1.0):
            assert rayleigh.rayleigh_phase_function(c, depolarization=0.0) == pytest.approx(0.75 * (1 + c * c))

    def test_layer_mass_sign(self):
        """Test that high pressure gives a positive layer mass."""
        assert rayleigh.correction_layer_mass(1030.0, 0.0) > 0
        assert rayleigh.correction_layer_mass(990.0, 0.0) < 0

    def test_minimum_altitude(self):
        """Test that altitudes below 1 m are clamped."""
        assert rayleigh.altitude_pressure(1013.2, -20.0) == rayleigh.altitude_pressure(1013.2, 1.0)
        assert rayleigh.altitude_pressure(1013.2, 1000.0) < rayleigh.altitude_pressure(1013.2, 0.0)


class TestGases:
    """Tests for ozone and water vapour."""

    def test_no_ozone(self):
        t = gases.ozone_transmittance(0.0, 0.8)
        np.testing.assert_array_equal(t, np.ones(len(OZONE_ABSORPTION)))

    def test_ozone_path_length(self):
        """Test that a slant path absorbs more."""
        t_short = gases.ozone_transmittance(350.0, 1.0)
        t_long = gases.ozone_transmittance(350.0, 0.5)
        assert np.all(t_long <= t_short)
        np.testing.assert_allclose(t_long, t_short ** 2)

    def test_water_vapour_ratio(self, meris_radiance, meris_solar_flux):
        ratio = gases.water_vapour_ratio(meris_radiance, meris_solar_flux)
        expected = (meris_radiance[14] / meris_solar_flux[14]) / (meris_radiance[13] / meris_solar_flux[13])
        assert ratio == pytest.approx(expected)

    def test_water_vapour_correction(self, meris_radiance, meris_solar_flux):
        """Test that the 708 nm correction divides by the transmittance."""
        ratio = gases.water_vapour_ratio(meris_radiance, meris_solar_flux)
        trans = gases.water_vapour_transmittance_708(ratio)
        corrected = gases.correct_water_vapour(0.02, meris_radiance, meris_solar_flux)
        assert corrected == pytest.approx(0.02 / trans)


class TestTosaModel:
    """Tests for the TOSA reflectance."""

    def test_shape_and_sign(self, water_pixel):
        """Test that 12 positive finite reflectances are returned."""
        model = TosaModel()
        rl = model.compute_tosa_reflectance(water_pixel, np.deg2rad(20.0), np.deg2rad(35.0))
        assert rl.shape == (12,)
        assert np.all(np.isfinite(rl))
        assert np.all(rl > 0)

    def test_standard_atmosphere(self, water_pixel):
        """Test that only ozone matters at standard pressure."""
        sun, view = np.deg2rad(35.0), np.deg2rad(20.0)
        rl = TosaModel().compute_tosa_reflectance(water_pixel, view, sun)
        idx = list(TOSA_BAND_INDICES)
        l_toa = water_pixel.toa_radiance[idx]
        flux = water_pixel.solar_flux[idx]
        t_oz = (gases.ozone_transmittance(water_pixel.ozone, np.cos(sun))
                * gases.ozone_transmittance(water_pixel.ozone, np.cos(view)))
        expected = l_toa / (flux * np.cos(sun) * t_oz)
        others = [i for i in range(12) if i != 8]
        np.testing.assert_allclose(rl[others], expected[others], rtol=1e-3)

    def test_pressure_dependence(self, water_pixel):
        """Test that the reflectance changes with the surface pressure."""
        sun, view = np.deg2rad(35.0), np.deg2rad(20.0)
        rl_std = TosaModel().compute_tosa_reflectance(water_pixel, view, sun)
        high = dataclasses.replace(water_pixel, pressure=1040.0)
        rl_high = TosaModel().compute_tosa_reflectance(high, view, sun)
        assert not np.allclose(rl_std, rl_high, rtol=1e-6)

    def test_zero_radiance(self, water_pixel):
        """Test that a zero radiance fails instead of returning NaN."""
        radiance = water_pixel.toa_radiance.copy()
        radiance[0] = 0.0
        pixel = dataclasses.replace(water_pixel, toa_radiance=radiance)
        with pytest.raises(InvalidInputError):
            TosaModel().compute_tosa_reflectance(pixel, 0.3, 0.6)

    def test_negative_flux(self, water_pixel):
        flux = water_pixel.solar_flux.copy()
        flux[14] = -1.0
        pixel = dataclasses.replace(water_pixel, solar_flux=flux)
        with pytest.raises(NumericalError):
            TosaModel().compute_tosa_reflectance(pixel, 0.3, 0.6)

    def test_unused_band_ignored(self, water_pixel):
        """Test that the O2 band (761 nm) is not checked."""
        radiance = water_pixel.toa_radiance.copy()
        radiance[10] = 0.0
        pixel = dataclasses.replace(water_pixel, toa_radiance=radiance)
        rl = TosaModel().compute_tosa_reflectance(pixel, 0.3, 0.6)
        assert np.all(np.isfinite(rl))

    def test_low_pressure(self, water_pixel):
        """Test that a path radiance above the measured radiance is rejected."""
        pixel = dataclasses.replace(water_pixel, toa_radiance=np.full(15, 0.05), pressure=700.0)
        with pytest.raises(InvalidInputError, match="Non-positive TOSA reflectance"):
            TosaModel().compute_tosa_reflectance(pixel, np.deg2rad(20.0), np.deg2rad(35.0))

    @pytest.mark.parametrize("altitude, same_as_sea_level", [
        (-10.0, True),
        (0.0, True),
        (0.5, True),
        (1500.0, False),
    ])
    def test_altitude(self, water_pixel, altitude, same_as_sea_level):
        """Test the 1 m altitude clamp and the pressure reduction with altitude."""
        sun, view = np.deg2rad(35.0), np.deg2rad(20.0)
        model = TosaModel()
        reference = model.compute_tosa_reflectance(
            dataclasses.replace(water_pixel, altitude=1.0), view, sun
        )
        rl = model.compute_tosa_reflectance(
            dataclasses.replace(water_pixel, altitude=altitude), view, sun
        )
        assert np.all(rl > 0)
        if same_as_sea_level:
            np.testing.assert_array_equal(rl, reference)
        else:
            assert not np.allclose(rl, reference, rtol=1e-3)

    def test_sun_below_horizon(self, water_pixel):
        with pytest.raises(InvalidInputError):
            TosaModel().compute_tosa_reflectance(water_pixel, 0.3, np.deg2rad(95.0))

    def test_tosa_bands(self):
        values = np.arange(15.0)
        np.testing.assert_array_equal(tosa.to_tosa_bands(values), [0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 11, 12])
        with pytest.raises(DimensionMismatchError):
            tosa.to_tosa_bands(values[:12])


class TestSmileCorrection:
    """Tests for the per-detector solar flux."""

    def test_flux_ratio(self, water_pixel):
        theoretical = np.full(15, 1000.0)
        detectors = np.stack([theoretical, theoretical * 1.01])
        smile = SmileAuxdata(detectors, theoretical)
        pixel = dataclasses.replace(water_pixel, detector_index=1)
        flux = TosaModel(smile).solar_flux(pixel)
        expected = tosa.to_tosa_bands(water_pixel.solar_flux) * 1.01
        np.testing.assert_allclose(flux, expected)

    def test_no_smile(self, water_pixel):
        flux = TosaModel().solar_flux(water_pixel)
        np.testing.assert_array_equal(flux, tosa.to_tosa_bands(water_pixel.solar_flux))

    def test_wrong_shape(self):
        with pytest.raises(DimensionMismatchError):
            SmileAuxdata(np.ones((3, 12)), np.ones(15))

    @pytest.mark.parametrize("detector_index", [-1, 2, 100])
    def test_detector_out_of_range(self, water_pixel, detector_index):
        """Test that the invalid-detector marker and indices past the end are rejected."""
        theoretical = np.full(15, 1000.0)
        smile = SmileAuxdata(np.stack([theoretical, theoretical * 1.01]), theoretical)
        pixel = dataclasses.replace(water_pixel, detector_index=detector_index)
        with pytest.raises(InvalidInputError):
            TosaModel(smile).compute_tosa_reflectance(pixel, 0.3, 0.6)
        with pytest.raises(InvalidInputError):
            smile.correct(detector_index, water_pixel.solar_flux)

    def test_detector_unchecked_without_smile(self, water_pixel):
        pixel = dataclasses.replace(water_pixel, detector_index=-1)
        rl = TosaModel().compute_tosa_reflectance(pixel, 0.3, 0.6)
        assert np.all(np.isfinite(rl))
