import numpy as np
import numba as nb

from ._utils.conversions import as_bits
from ._interface import EmptyInputError

# ==========================================================================
# Z-function kernels
# ==========================================================================


@nb.njit
def _z_function(s: np.ndarray) -> np.ndarray:
    """
    Linear-time Z-function.

    z[i] (i >= 1) is the length of the longest common prefix of s and s[i:].
    z[0] is set to len(s).

    [L, R) is the rightmost match window found so far: s[L:R] == s[0:R-L].
    Inside it z[i - L] bounds z[i], so each comparison either extends R or
    terminates the inner loop, O(n) total.
    """
    n = s.shape[0]
    z = np.zeros(n, dtype=np.int64)
    if n == 0:
        return z
    z[0] = n

    L = 0
    R = 0
    for i in range(1, n):
        if i < R:
            z[i] = min(R - i, z[i - L])
        while i + z[i] < n and s[z[i]] == s[i + z[i]]:
            z[i] += 1
        if i + z[i] > R:
            L = i
            R = i + z[i]

    return z


@nb.njit
def _min_period(s: np.ndarray) -> int:
    n = s.shape[0]
    z = _z_function(s)
    for q in range(1, n):
        if q + z[q] == n:
            return q
    return n


@nb.njit
def _window_min_periods(s: np.ndarray, l: int) -> np.ndarray:
    count = s.shape[0] - l + 1
    out = np.empty(max(count, 0), dtype=np.int64)
    for i in range(count):
        out[i] = _min_period(s[i : i + l])
    return out


# ==========================================================================
# Public API
# ==========================================================================


def compute_z(bits) -> np.ndarray:
    return _z_function(as_bits(bits))


def compute_z_naive(bits) -> np.ndarray:
    """
    Reference Z-function by direct comparison at every offset.

    O(n^2), NOT linear. Only meant for cross-checking compute_z.
    """
    s = as_bits(bits)
    n = s.size
    z = np.zeros(n, dtype=np.int64)
    if n == 0:
        return z
    z[0] = n
    for i in range(1, n):
        k = 0
        while i + k < n and s[k] == s[i + k]:
            k += 1
        z[i] = k
    return z


def compute_periods(bits) -> set[int]:
    """
    All periods of the sequence: q in [1, n] with s[i] == s[i + q] for every
    i < n - q. The suffix at q matches the prefix up to the end exactly when
    q + z[q] == n. n itself is always a period of a non-empty sequence.
    """
    s = as_bits(bits)
    n = s.size
    z = _z_function(s)
    periods = {q for q in range(1, n) if q + z[q] == n}
    if n > 0:
        periods.add(n)
    return periods


def compute_min_period(bits) -> int:
    s = as_bits(bits)
    if s.size == 0:
        raise EmptyInputError("minimal period of an empty sequence is undefined")
    return int(_min_period(s))


def window_min_periods(bits, l: int) -> np.ndarray:
    """Minimal period of every length-l window, indexed by window offset."""
    if l < 1:
        raise ValueError("window size must be >= 1")
    return _window_min_periods(as_bits(bits), l)


def satisfies_constraint(bits, l: int, p: int) -> bool:
    """True if every length-l window has minimal period >= p."""
    periods = window_min_periods(bits, l)
    return bool(np.all(periods >= p))
