"""3×3 moving-average smoothing over the raw count grid."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.ndimage import convolve

# Kernel radius 1 → 3×3 window
SMOOTHING_RADIUS = 1
SMOOTHING_WINDOW = 2 * SMOOTHING_RADIUS + 1
SMOOTHING_WINDOW_CELLS = SMOOTHING_WINDOW * SMOOTHING_WINDOW  # 9

# Halo search ceiling for owner lookup on smoothed cells. A lone contributor
# adds at most 1/9 per neighbour to the window mean; values within half of
# that above 1 are still treated as "one participant" territory.
HALO_TOLERANCE = 1.0 / (2 * SMOOTHING_WINDOW_CELLS)
HALO_MAX_VALUE = 1.0 + HALO_TOLERANCE  # ≈ 1.056

_KERNEL = np.ones((SMOOTHING_WINDOW, SMOOTHING_WINDOW), dtype=np.float64)


def smooth(counts: NDArray[np.float64]) -> NDArray[np.float64]:
    """Box filter; out-of-bounds neighbours are left out of sum and divisor.

    Returns a new array of the same shape. An empty grid stays empty.
    """
    if counts.size == 0:
        return counts.astype(np.float64, copy=True)

    values = counts.astype(np.float64, copy=False)
    sums = convolve(values, _KERNEL, mode="constant", cval=0.0)
    # Number of in-bounds cells under the window at each position
    support = convolve(np.ones_like(values), _KERNEL, mode="constant", cval=0.0)
    return sums / support
