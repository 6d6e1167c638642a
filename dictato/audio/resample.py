"""Linear-interpolation resampling for mono float audio."""

import math
from typing import Sequence, Union

import numpy as np

TARGET_SAMPLE_RATE = 16000


def resample_linear(samples: Union[Sequence[float], np.ndarray],
                    src_rate: int, dst_rate: int) -> np.ndarray:
    """Resample ``samples`` from ``src_rate`` to ``dst_rate``.

    Output length is ``ceil(len(samples) * dst_rate / src_rate)``. Each output
    sample interpolates between ``floor(t)`` and the next input sample
    (clamped to the last one), where ``t = i / ratio``.

    Args:
        samples: Mono float samples
        src_rate: Sample rate of ``samples`` in Hz
        dst_rate: Wanted sample rate in Hz

    Returns:
        float32 array; empty when the input is empty or a rate is zero
    """
    data = np.asarray(samples, dtype=np.float32)
    if data.size == 0 or src_rate == 0 or dst_rate == 0:
        return np.zeros(0, dtype=np.float32)
    if src_rate == dst_rate:
        return data.copy()

    ratio = dst_rate / src_rate
    out_len = math.ceil(data.size * ratio)
    if out_len == 0:
        return np.zeros(0, dtype=np.float32)

    positions = np.arange(out_len, dtype=np.float64) / ratio
    lower = np.floor(positions).astype(np.int64)
    lower = np.minimum(lower, data.size - 1)
    upper = np.minimum(lower + 1, data.size - 1)
    frac = (positions - lower).astype(np.float32)

    a = data[lower]
    b = data[upper]
    return (a + (b - a) * frac).astype(np.float32)
