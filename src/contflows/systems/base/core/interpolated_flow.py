# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Interpolated 2D Flow - Steady Flow from Gridded Velocity Samples

Builds a smooth steady vector field from velocity measured on a
rectangular grid (e.g. particle image velocimetry), using bicubic
splines for each component. The Jacobian is the exact derivative of
the interpolant, so test_jacobian() holds to finite-difference accuracy.
"""

import numpy as np
from scipy.interpolate import RectBivariateSpline

from contflows.systems.base.core.ode_flow import ODEFlow
from contflows.systems.base.utils.flow_validator import ValidationError, as_state_batch
from contflows.types.core import ArrayLike, JacobianStack, StateBatch, TimeLike


class InterpolatedODEFlow2D(ODEFlow):
    """
    Steady planar flow interpolated from velocity samples on a grid.

    Parameters
    ----------
    xi, yi : ArrayLike
        Strictly increasing grid axes, at least 4 points each
    U, V : ArrayLike
        Velocity components (len(xi), len(yi)), ndgrid layout
        (U[i, j] is the x-velocity at (xi[i], yi[j]))
    smoothing : float
        Spline smoothing factor, 0 interpolates the samples exactly
    **flow_options
        dt, label, quiet and solver configuration; the domain defaults to
        the grid's extent

    Examples
    --------
    >>> xi = yi = np.linspace(-1, 1, 21)
    >>> X, Y = np.meshgrid(xi, yi, indexing="ij")
    >>> flow = InterpolatedODEFlow2D(xi, yi, -Y, X)
    >>> flow.vf(0.0, [0.5, 0.0]).ravel()
    array([0. , 0.5])
    """

    def __init__(
        self,
        xi: ArrayLike,
        yi: ArrayLike,
        U: ArrayLike,
        V: ArrayLike,
        smoothing: float = 0.0,
        **flow_options,
    ):
        xi = np.asarray(xi, dtype=float).ravel()
        yi = np.asarray(yi, dtype=float).ravel()
        U = np.asarray(U, dtype=float)
        V = np.asarray(V, dtype=float)

        for name, axis in (("xi", xi), ("yi", yi)):
            if axis.size < 4:
                raise ValidationError(f"{name} needs at least 4 points for bicubic splines")
            if np.any(np.diff(axis) <= 0):
                raise ValidationError(f"{name} must be strictly increasing")
        for name, comp in (("U", U), ("V", V)):
            if comp.shape != (xi.size, yi.size):
                raise ValidationError(
                    f"{name} must have shape (len(xi), len(yi)) = {(xi.size, yi.size)}, "
                    f"got {comp.shape}"
                )
            if not np.all(np.isfinite(comp)):
                raise ValidationError(f"{name} contains non-finite samples")

        self.xi, self.yi = xi, yi
        self._splines = (
            RectBivariateSpline(xi, yi, U, s=smoothing),
            RectBivariateSpline(xi, yi, V, s=smoothing),
        )

        flow_options.setdefault("domain", [[xi[0], xi[-1]], [yi[0], yi[-1]]])
        flow_options.setdefault("label", "Interpolated flow")
        super().__init__(**flow_options)

    def vf(self, t: TimeLike, x: ArrayLike) -> StateBatch:
        x = as_state_batch(x, nx=2)
        return np.vstack([s.ev(x[0], x[1]) for s in self._splines])

    def jacobian(self, t: TimeLike, x: ArrayLike) -> JacobianStack:
        x = as_state_batch(x, nx=2)
        J = np.empty((2, 2, x.shape[1]))
        for row, spline in enumerate(self._splines):
            J[row, 0] = spline.ev(x[0], x[1], dx=1)
            J[row, 1] = spline.ev(x[0], x[1], dy=1)
        return J
