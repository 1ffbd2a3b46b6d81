"""
Tests for the neuralnet module.
"""

import numpy as np
import pytest

from correct_watertype import neuralnet
from correct_watertype.exceptions import ConfigurationError, DimensionMismatchError
from correct_watertype.neuralnet import NeuralNetModel


def sig(x):
    return 1.0 / (1.0 + np.exp(-x))


class TestParse:
    """Tests for reading net definitions."""

    def test_structure(self, small_net_text):
        """Test plane sizes, bounds and weight shapes."""
        net = NeuralNetModel.from_text(small_net_text, name="small")
        assert net.sizes == (2, 2, 1)
        assert net.input_count == 2
        assert net.output_count == 1
        np.testing.assert_array_equal(net.input_min, [0.0, 0.0])
        np.testing.assert_array_equal(net.input_max, [1.0, 2.0])
        assert net.weights[0].shape == (2, 2)
        assert net.weights[1].shape == (1, 2)
        np.testing.assert_array_equal(net.biases[0], [0.0, 0.5])

    def test_from_file(self, small_net_text, tmp_path):
        """Test reading from a local file."""
        path = tmp_path / "small.net"
        path.write_text(small_net_text)
        net = NeuralNetModel.from_file(str(path))
        assert net.sizes == (2, 2, 1)
        assert net.name == str(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            NeuralNetModel.from_file(str(tmp_path / "missing.net"))

    def test_truncated(self, small_net_text):
        """Test that a definition without the last weights is rejected."""
        text = small_net_text.rsplit("\n", 1)[0]
        with pytest.raises(ConfigurationError):
            NeuralNetModel.from_text(text)

    def test_plane_mismatch(self, small_net_text):
        """Test that plane sizes must match the input count."""
        text = small_net_text.replace("#planes=3 2 2 1", "#planes=3 3 2 1")
        with pytest.raises(ConfigurationError):
            NeuralNetModel.from_text(text)

    def test_bad_number(self, small_net_text):
        text = small_net_text.replace("-0.25", "abc")
        with pytest.raises(ConfigurationError):
            NeuralNetModel.from_text(text)


class TestEvaluate:
    """Tests for the forward pass."""

    def test_hand_computed(self, small_net_text):
        """Test against a forward pass computed by hand."""
        net = NeuralNetModel.from_text(small_net_text)
        # inputs scale to 0.5, 0.5
        hidden = np.array([sig(0.5), sig(1.0)])
        expected = sig(hidden[0] - hidden[1] - 0.25) * 2.0 - 1.0
        out = net.evaluate([0.5, 1.0])
        assert out.shape == (1,)
        assert out[0] == pytest.approx(expected, rel=1e-12)
        assert net([0.5, 1.0])[0] == out[0]

    def test_output_inside_bounds(self, small_net_text):
        """Test that outputs stay inside the output scaling range."""
        net = NeuralNetModel.from_text(small_net_text)
        for x in ([-50.0, 80.0], [0.0, 0.0], [1.0, 2.0]):
            out = net.evaluate(x)[0]
            assert -1.0 < out < 1.0

    def test_wrong_input_count(self, small_net_text):
        net = NeuralNetModel.from_text(small_net_text)
        with pytest.raises(DimensionMismatchError):
            net.evaluate([0.5, 1.0, 2.0])

    def test_constant_net(self, constant_net):
        """Test the zero-weight net used by the pipeline tests."""
        net = constant_net(4, 3, [1.0, -2.0, 0.5])
        np.testing.assert_allclose(net.evaluate([9.0, -3.0, 0.0, 1.0]), [1.0, -2.0, 0.5])

    def test_inputs_out_of_range(self, small_net_text):
        net = NeuralNetModel.from_text(small_net_text)
        assert not net.inputs_out_of_range([0.5, 1.5])
        assert net.inputs_out_of_range([0.5, 2.5])
        assert not net.inputs_out_of_range([0.5, 2.5], start=0, stop=1)
        assert net.inputs_out_of_range([np.nan, 1.5])


class TestModel:
    """Tests for the model container."""

    def test_immutable(self, small_net_text):
        net = NeuralNetModel.from_text(small_net_text)
        with pytest.raises(ValueError):
            net.weights[0][0, 0] = 3.0
        with pytest.raises(AttributeError):
            net.name = "other"

    def test_weight_shape_mismatch(self):
        with pytest.raises(ConfigurationError):
            NeuralNetModel(
                sizes=(2, 1),
                weights=(np.zeros((2, 2)),),
                biases=(np.zeros(1),),
                input_min=np.zeros(2),
                input_max=np.ones(2),
                output_min=np.zeros(1),
                output_max=np.ones(1),
            )


class TestConverters:
    """Tests for the input/output converters."""

    def test_log_multiply_pi(self):
        np.testing.assert_allclose(neuralnet.log_multiply_pi([1.0 / np.pi]), [0.0], atol=1e-15)

    def test_exp_divide_pi(self):
        x = np.array([-3.0, 0.0, 1.5])
        np.testing.assert_allclose(neuralnet.exp_divide_pi(x), np.exp(x) / np.pi, rtol=1e-14)

    def test_inverse_pairs(self):
        x = np.array([0.01, 0.2])
        np.testing.assert_allclose(neuralnet.exp_divide_pi(neuralnet.log_multiply_pi(x)), x)
        np.testing.assert_allclose(neuralnet.divide_pi(neuralnet.multiply_pi(x)), x)
        np.testing.assert_allclose(neuralnet.exp(neuralnet.log(x)), x)
