"""Unit tests for linear resampling."""

import pytest
import numpy as np

from dictato.audio.resample import resample_linear, TARGET_SAMPLE_RATE


@pytest.mark.unit
class TestResampleLinear:

    def test_empty_input(self):
        result = resample_linear([], 48000, 16000)
        assert result.size == 0
        assert result.dtype == np.float32

    @pytest.mark.parametrize("src,dst", [(0, 16000), (48000, 0)])
    def test_zero_rate_returns_empty(self, src, dst):
        assert resample_linear([0.1, 0.2, 0.3], src, dst).size == 0

    def test_same_rate_is_copy(self):
        data = np.array([0.1, -0.2, 0.3], dtype=np.float32)
        result = resample_linear(data, 16000, 16000)

        np.testing.assert_array_equal(result, data)
        assert result is not data

    def test_upsample_interpolates_and_clamps(self):
        result = resample_linear([0.0, 1.0], 1, 2)

        # Last output sample clamps to the final input sample
        np.testing.assert_allclose(result, [0.0, 0.5, 1.0, 1.0])

    def test_downsample_picks_every_third_sample(self):
        data = np.arange(9, dtype=np.float32)
        result = resample_linear(data, 48000, 16000)

        np.testing.assert_allclose(result, [0.0, 3.0, 6.0])

    @pytest.mark.parametrize("n,src,expected", [
        (1000, 48000, 334),
        (16000, 48000, 5334),
        (10, 44100, 4),
        (7, 8000, 14),
    ])
    def test_output_length_is_ceiling(self, n, src, expected):
        result = resample_linear(np.zeros(n, dtype=np.float32), src, TARGET_SAMPLE_RATE)
        assert result.size == expected

    def test_constant_signal_stays_constant(self):
        data = np.full(4410, 0.25, dtype=np.float32)
        result = resample_linear(data, 44100, TARGET_SAMPLE_RATE)

        np.testing.assert_allclose(result, 0.25, rtol=1e-6)
