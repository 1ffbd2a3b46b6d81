"""
Pytest configuration and shared fixtures for correct_watertype tests.
"""

import numpy as np
import pytest

from correct_watertype.auxdata import Auxdata, AuxdataSource
from correct_watertype.neuralnet import NeuralNetModel
from correct_watertype.owt_types import OpticalWaterType, merge_trailing_classes
from correct_watertype.pixel import PixelSample


def _constant_net(n_in, n_out, values, input_min=-100.0, input_max=100.0, name="constant"):
    """
    Two-plane net with zero weights.

    Every neuron outputs sigmoid(0) = 0.5, so with output bounds
    ``value -/+ 1`` the net returns ``values`` for any input.
    """
    values = np.broadcast_to(np.asarray(values, dtype=np.float64), (n_out,))
    return NeuralNetModel(
        sizes=(n_in, n_out),
        weights=(np.zeros((n_out, n_in)),),
        biases=(np.zeros(n_out),),
        input_min=np.broadcast_to(input_min, (n_in,)),
        input_max=np.broadcast_to(input_max, (n_in,)),
        output_min=values - 1.0,
        output_max=values + 1.0,
        name=name,
    )


class _FixedOutputNet:
    """Stand-in for a net that returns a fixed output and records its input."""

    def __init__(self, output, n_in=18, output_min=None, output_max=None):
        self.output = np.asarray(output, dtype=np.float64)
        self.input_count = n_in
        self.input_min = np.full(n_in, -100.0)
        self.input_max = np.full(n_in, 100.0)
        self.output_min = np.full(self.output.size, -100.0) if output_min is None else np.asarray(output_min)
        self.output_max = np.full(self.output.size, 100.0) if output_max is None else np.asarray(output_max)
        self.inputs = []

    def evaluate(self, inputs):
        self.inputs.append(np.array(inputs))
        return self.output.copy()


@pytest.fixture
def constant_net():
    """Factory of nets with a fixed output."""
    return _constant_net


@pytest.fixture
def fixed_output_net():
    """Factory of recording stand-in nets."""
    return _FixedOutputNet


@pytest.fixture
def small_net_text():
    """Three-plane net definition with hand-picked weights."""
    return "\n".join([
        "problem: test net",
        "trained on nothing",
        "# end of header",
        "2",
        "0.0 1.0",
        "0.0 2.0",
        "1",
        "-1.0 1.0",
        "$",
        "#planes=3 2 2 1",
        "bias 1 2",
        "0.0 0.5",
        "bias 2 1",
        "-0.25",
        "wgt 0 2 2",
        "1.0 0.0",
        "0.0 1.0",
        "wgt 1 1 2",
        "1.0 -1.0",
    ])


@pytest.fixture
def meris_radiance():
    """Clear water MERIS TOA radiances [W m-2 sr-1 um-1]."""
    return np.array([
        82.0, 71.0, 56.0, 46.0, 36.0, 22.5, 17.6, 15.8,
        13.1, 10.2, 5.1, 8.4, 6.9, 6.2, 4.3,
    ])


@pytest.fixture
def meris_solar_flux():
    """MERIS extraterrestrial solar flux [W m-2 um-1]."""
    return np.array([
        1714.9, 1872.4, 1926.6, 1930.2, 1804.2, 1651.5, 1531.4, 1475.6,
        1408.9, 1265.5, 1255.4, 1178.0, 955.1, 914.2, 882.8,
    ])


@pytest.fixture
def water_pixel(meris_radiance, meris_solar_flux):
    """Valid open-water pixel with moderate geometry."""
    return PixelSample(
        toa_radiance=meris_radiance,
        solar_flux=meris_solar_flux,
        solar_zenith=35.0,
        solar_azimuth=140.0,
        view_zenith=20.0,
        view_azimuth=100.0,
        pressure=1013.2,
        ozone=330.0,
        pixel_x=300,
        nadir_column_index=560,
    )


@pytest.fixture
def three_band_auxdata():
    """Three classes on three bands, standard deviation 1e-3 per band."""
    means = np.array([
        [0.010, 0.002, 0.004],
        [0.012, 0.003, 0.004],
        [0.008, 0.004, 0.004],
    ])
    return Auxdata(means, np.stack([np.eye(3) * 1.0e6] * 3))


@pytest.fixture
def three_band_type():
    """Water type matching ``three_band_auxdata``; classes 2-3 merged."""
    source = AuxdataSource(
        means_path="means.nc",
        means_variable="class_means",
        covariance_path="cov.nc",
        covariance_variables=("class_covariance",),
    )
    return OpticalWaterType(
        name="TEST",
        wavelengths=(443.0, 490.0, 555.0),
        class_count=2,
        auxdata_source=source,
        map_memberships=merge_trailing_classes(2),
    )
