"""One-dimensional grid families: sample points, refinement and transforms.

Each family knows how to place ``n`` sample points on an interval, how to
grow a grid so that every old point is also a point of the new grid (the
nesting map), how to turn sample values into expansion coefficients and
back into values anywhere on the interval, and whether a sampled sequence
is resolved.

Chebyshev points are computed as ``sin(pi * k / q)`` from the exact
rational ``k / q`` so that a nested point is bit-identical to the point
it came from.
"""

from __future__ import annotations

from typing import Sequence, Tuple, Union

import numpy as np
from numpy.polynomial.chebyshev import chebval

from pychebcross._chop import happiness_check, standard_chop
from pychebcross.exceptions import UnsupportedRepresentationError


def _to_reference(x: np.ndarray, interval: Sequence[float]) -> np.ndarray:
    """Map points from ``[a, b]`` to ``[-1, 1]``."""
    a, b = interval
    return (2.0 * np.asarray(x, dtype=float) - (a + b)) / (b - a)


def _from_reference(t: np.ndarray, interval: Sequence[float]) -> np.ndarray:
    """Map points from ``[-1, 1]`` to ``[a, b]``."""
    a, b = interval
    return 0.5 * (a + b) + 0.5 * (b - a) * t


class GridFamily:
    """Interface shared by all grid families."""

    name: str = ""
    periodic: bool = False
    min_samples: int = 17
    max_length: int = 65537

    def points(self, size: int) -> np.ndarray:
        """Return ``size`` ascending sample points on ``[-1, 1]``."""
        raise NotImplementedError

    def grid(self, size: int, interval: Sequence[float]) -> np.ndarray:
        """Return ``size`` ascending sample points on ``interval``."""
        if size < 1:
            raise ValueError(f"grid size must be >= 1, got {size}")
        return _from_reference(self.points(size), interval)

    def refine(self, size: int) -> Tuple[int, np.ndarray]:
        """Return the next grid size and the nesting map old -> new indices."""
        raise NotImplementedError

    def nested_size(self, size: int) -> int:
        """Smallest size >= ``size`` whose refinement nests exactly."""
        raise NotImplementedError

    def vals2coeffs(self, values: np.ndarray) -> np.ndarray:
        """Expansion coefficients from values on :meth:`points` (along axis 0)."""
        raise NotImplementedError

    def evaluate(self, coeffs: np.ndarray, x, interval: Sequence[float]) -> np.ndarray:
        """Evaluate the expansion(s) at points ``x`` of ``interval``.

        Returns shape ``(len(x),)`` for 1-D ``coeffs`` and ``(len(x), k)``
        for coefficients of shape ``(n, k)``.
        """
        raise NotImplementedError

    def chop_coeffs(self, coeffs: np.ndarray) -> np.ndarray:
        """Coefficient magnitudes ordered by increasing degree, max over columns."""
        raise NotImplementedError

    def truncate(self, coeffs: np.ndarray, length: int) -> np.ndarray:
        """Restrict coefficients to the first ``length`` degrees."""
        raise NotImplementedError

    def is_resolved(self, values: np.ndarray, tol: float) -> Tuple[bool, float]:
        """Resolution oracle for a sampled sequence on :meth:`points`.

        Parameters
        ----------
        values : ndarray of shape (n,)
            Samples on a grid of this family.
        tol : float
            Relative accuracy target.

        Returns
        -------
        (bool, float)
            Whether the sequence is resolved and the achieved relative
            accuracy. The zero sequence is always resolved.
        """
        coeffs = self.vals2coeffs(np.asarray(values))
        return happiness_check(self.chop_coeffs(coeffs), tol)

    def chop_length(self, coeffs: np.ndarray, tol: float) -> int:
        """Number of magnitude entries :meth:`truncate` should keep."""
        return standard_chop(self.chop_coeffs(coeffs), tol)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ChebyshevSecondKind(GridFamily):
    """Chebyshev extreme points, including the endpoints."""

    name = "chebyshev2"

    def points(self, size: int) -> np.ndarray:
        if size == 1:
            return np.zeros(1)
        m = size - 1
        return np.sin(np.pi * (np.arange(-m, m + 1, 2) / (2 * m)))

    def refine(self, size: int) -> Tuple[int, np.ndarray]:
        # 2 ** (floor(log2(size)) + 1) + 1
        new_size = 2 ** int(size).bit_length() + 1
        return new_size, np.arange(0, new_size, 2)

    def nested_size(self, size: int) -> int:
        size = max(int(size), 3)
        k = (size - 2).bit_length()
        return 2 ** k + 1

    def vals2coeffs(self, values: np.ndarray) -> np.ndarray:
        from scipy.fft import dct

        values = np.asarray(values)
        if np.iscomplexobj(values):
            return self.vals2coeffs(values.real) + 1j * self.vals2coeffs(values.imag)
        n = values.shape[0]
        if n == 1:
            return values.copy()
        # Reverse to decreasing-node order for the DCT-I convention
        coeffs = dct(values[::-1], type=1, axis=0) / (n - 1)
        coeffs[0] /= 2
        coeffs[-1] /= 2
        return coeffs

    def evaluate(self, coeffs, x, interval):
        t = _to_reference(x, interval)
        vals = chebval(t, coeffs)
        if np.ndim(coeffs) > 1:
            return vals.T
        return vals

    def chop_coeffs(self, coeffs: np.ndarray) -> np.ndarray:
        mags = np.abs(coeffs)
        if mags.ndim > 1:
            mags = mags.max(axis=1) if mags.shape[1] else np.zeros(mags.shape[0])
        return mags

    def truncate(self, coeffs: np.ndarray, length: int) -> np.ndarray:
        return coeffs[:max(int(length), 1)].copy()


class ChebyshevFirstKind(ChebyshevSecondKind):
    """Chebyshev roots (Type I nodes), excluding the endpoints."""

    name = "chebyshev1"

    def points(self, size: int) -> np.ndarray:
        m = size - 1
        return np.sin(np.pi * (np.arange(-m, m + 1, 2) / (2 * size)))

    def refine(self, size: int) -> Tuple[int, np.ndarray]:
        new_size = 3 * int(size)
        return new_size, np.arange(1, new_size, 3)

    def nested_size(self, size: int) -> int:
        return max(int(size), 1)

    def vals2coeffs(self, values: np.ndarray) -> np.ndarray:
        from scipy.fft import dct

        values = np.asarray(values)
        if np.iscomplexobj(values):
            return self.vals2coeffs(values.real) + 1j * self.vals2coeffs(values.imag)
        n = values.shape[0]
        coeffs = dct(values[::-1], type=2, axis=0) / n
        coeffs[0] /= 2
        return coeffs


class Trigonometric(GridFamily):
    """Equispaced points on a periodic interval, Fourier coefficients.

    Coefficients are stored in centred order: frequency ``k`` lives at
    index ``k + len // 2``.
    """

    name = "trig"
    periodic = True
    min_samples = 16
    max_length = 65536

    def points(self, size: int) -> np.ndarray:
        return -1.0 + 2.0 * (np.arange(size) / size)

    def refine(self, size: int) -> Tuple[int, np.ndarray]:
        # 2 ** floor(log2(size) + 1)
        new_size = 2 ** int(size).bit_length()
        return new_size, np.arange(0, new_size, 2)

    def nested_size(self, size: int) -> int:
        size = max(int(size), 1)
        return 2 ** (size - 1).bit_length()

    def vals2coeffs(self, values: np.ndarray) -> np.ndarray:
        values = np.asarray(values)
        n = values.shape[0]
        coeffs = np.fft.fft(values, axis=0) / n
        return np.fft.fftshift(coeffs, axes=0)

    def evaluate(self, coeffs, x, interval):
        coeffs = np.asarray(coeffs)
        t = np.atleast_1d(_to_reference(x, interval)) + 1.0
        length = coeffs.shape[0]
        freqs = np.arange(length) - length // 2
        basis = np.exp(1j * np.pi * np.outer(t, freqs))
        if length % 2 == 0:
            # Nyquist mode is split evenly between +k and -k
            basis[:, 0] = np.cos(np.pi * freqs[0] * t)
        return basis @ coeffs

    def chop_coeffs(self, coeffs: np.ndarray) -> np.ndarray:
        mags = np.abs(coeffs)
        if mags.ndim > 1:
            mags = mags.max(axis=1) if mags.shape[1] else np.zeros(mags.shape[0])
        length = len(mags)
        center = length // 2
        combined = np.empty(center + 1)
        combined[0] = mags[center]
        for k in range(1, center + 1):
            combined[k] = mags[center - k]
            if center + k < length:
                combined[k] += mags[center + k]
        return combined

    def truncate(self, coeffs: np.ndarray, length: int) -> np.ndarray:
        center = coeffs.shape[0] // 2
        keep = max(int(length), 1) - 1
        if keep >= center:
            return coeffs.copy()
        return coeffs[center - keep:center + keep + 1].copy()


FAMILIES = {
    family.name: family
    for family in (ChebyshevSecondKind(), ChebyshevFirstKind(), Trigonometric())
}


def get_family(family: Union[str, GridFamily]) -> GridFamily:
    """Look up a grid family by name.

    Raises
    ------
    UnsupportedRepresentationError
        If ``family`` is not a known family name.
    """
    if isinstance(family, GridFamily):
        return family
    try:
        return FAMILIES[family]
    except (KeyError, TypeError):
        raise UnsupportedRepresentationError(
            f"Unrecognized grid family {family!r}; "
            f"expected one of {sorted(FAMILIES)}"
        ) from None


def grid(size: int, interval: Sequence[float], family: Union[str, GridFamily]) -> np.ndarray:
    """Sample points of ``family`` on ``interval``."""
    return get_family(family).grid(size, interval)


def refine(size: int, family: Union[str, GridFamily]) -> Tuple[int, np.ndarray]:
    """Next grid size of ``family`` and the nesting map into it."""
    return get_family(family).refine(size)
