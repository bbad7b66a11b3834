"""Sets of one-dimensional functions on a common interval.

A :class:`Quasimatrix` is a "matrix" whose columns are functions of one
variable instead of vectors. All columns share one interval and one grid
family and are stored as expansion coefficients of equal length.
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np

from pychebcross._families import GridFamily, get_family


class Quasimatrix:
    """Columns of one-dimensional functions stored as coefficients.

    Parameters
    ----------
    coeffs : ndarray of shape (n, k)
        Expansion coefficients, one column per function.
    interval : (float, float)
        Common interval of the functions.
    family : str or GridFamily
        Grid family the coefficients belong to.
    real : bool, optional
        If True (default), evaluation discards the imaginary part, which
        is round-off for real data with complex Fourier coefficients.
    """

    def __init__(
        self,
        coeffs: np.ndarray,
        interval: Sequence[float],
        family: Union[str, GridFamily],
        real: bool = True,
    ):
        coeffs = np.asarray(coeffs)
        if coeffs.ndim == 1:
            coeffs = coeffs[:, np.newaxis]
        self.coeffs = coeffs
        self.interval = (float(interval[0]), float(interval[1]))
        self.family = get_family(family)
        self.real = bool(real)

    @classmethod
    def from_values(
        cls,
        values: np.ndarray,
        interval: Sequence[float],
        family: Union[str, GridFamily],
    ) -> "Quasimatrix":
        """Build from samples on the family grid, one column per function."""
        values = np.asarray(values)
        if values.ndim == 1:
            values = values[:, np.newaxis]
        family = get_family(family)
        return cls(family.vals2coeffs(values), interval, family, real=np.isrealobj(values))

    @classmethod
    def zeros(
        cls,
        n_columns: int,
        interval: Sequence[float],
        family: Union[str, GridFamily],
    ) -> "Quasimatrix":
        """``n_columns`` copies of the zero function."""
        return cls(np.zeros((1, n_columns)), interval, family)

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def length(self) -> int:
        """Number of coefficients per column."""
        return self.coeffs.shape[0]

    @property
    def n_columns(self) -> int:
        return self.coeffs.shape[1]

    def __len__(self) -> int:
        return self.n_columns

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def __call__(self, x) -> np.ndarray:
        """Evaluate every column at points ``x``.

        Returns
        -------
        ndarray of shape (len(x), n_columns)
        """
        x = np.atleast_1d(np.asarray(x, dtype=float)).ravel()
        if self.n_columns == 0:
            return np.zeros((len(x), 0))
        vals = self.family.evaluate(self.coeffs, x, self.interval)
        if self.real:
            vals = np.real(vals)
        return vals

    # ------------------------------------------------------------------
    # Restriction
    # ------------------------------------------------------------------

    def simplify(self, tol: float) -> "Quasimatrix":
        """Drop trailing coefficients below ``tol`` relative to the largest one."""
        if self.n_columns == 0:
            return self
        cutoff = self.family.chop_length(self.coeffs, tol)
        coeffs = self.family.truncate(self.coeffs, cutoff)
        return Quasimatrix(coeffs, self.interval, self.family, self.real)

    def select(self, index) -> "Quasimatrix":
        """Quasimatrix of the columns ``index`` (slice or index array)."""
        return Quasimatrix(self.coeffs[:, index], self.interval, self.family, self.real)

    def pad_columns(self, count: int) -> "Quasimatrix":
        """Append ``count`` zero columns."""
        zeros = np.zeros((self.length, count), dtype=self.coeffs.dtype)
        return Quasimatrix(
            np.hstack([self.coeffs, zeros]), self.interval, self.family, self.real
        )

    def __repr__(self) -> str:
        return (
            f"Quasimatrix(columns={self.n_columns}, length={self.length}, "
            f"interval={list(self.interval)}, family={self.family.name!r})"
        )
