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
Hamiltonian 2D Flow - Planar Flows from a Stream Function
=========================================================

A planar incompressible flow is determined by a scalar stream function
psi(t, x, y). Subclasses provide psi and its first and second partial
derivatives; the vector field, its Jacobian and the vorticity follow.

Orientation
-----------
Two sign conventions are in common use:

- "canonical" (s = +1): vf = [psi_y, -psi_x], Hamilton's equations with
  x as position and y as momentum.
- "geophysical" (s = -1): vf = [-psi_y, psi_x], the fluid dynamics
  convention u = -psi_y, v = psi_x.

The Jacobian follows the chosen orientation:

    J = s * [[ psi_xy,  psi_yy],
             [-psi_xx, -psi_xy]]

The vorticity psi_xx + psi_yy (Laplacian of psi) does not depend on it.
"""

from abc import abstractmethod

import numpy as np

from contflows.systems.base.core.ode_flow import ODEFlow
from contflows.systems.base.utils import finite_difference
from contflows.systems.base.utils.flow_validator import (
    ValidationError,
    as_state_batch,
    require_planar,
)
from contflows.types.core import (
    ArrayLike,
    JacobianStack,
    ScalarLike,
    StateBatch,
    StreamDerivatives,
    TimeLike,
)

ORIENTATIONS = {"canonical": 1.0, "geophysical": -1.0}


class Hamiltonian2DFlow(ODEFlow):
    """
    Planar flow generated by a stream function.

    Subclasses implement psi(t, x, order) for order 0, 1 and 2.

    Examples
    --------
    >>> class Rotation(Hamiltonian2DFlow):
    ...     def psi(self, t, x, order=0):
    ...         x = np.asarray(x, dtype=float)
    ...         if order == 0:
    ...             return 0.5 * (x[[0]] ** 2 + x[[1]] ** 2)
    ...         if order == 1:
    ...             return x.copy()
    ...         return np.tile([[1.0], [0.0], [1.0]], (1, x.shape[1]))
    >>>
    >>> flow = Rotation(domain=[[-1, 1], [-1, 1]])
    >>> flow.vf(0.0, np.array([[1.0], [0.0]]))
    array([[ 0.],
           [-1.]])
    >>> flow.vorticity(0.0, np.zeros((2, 3)))
    array([2., 2., 2.])
    """

    def __init__(
        self,
        domain: ArrayLike,
        dt: ScalarLike = 0.1,
        label: str = "FLOWNAME",
        quiet: bool = True,
        orientation: str = "canonical",
        **ode_options,
    ):
        """
        Parameters
        ----------
        domain, dt, label, quiet
            See ContinuousFlowBase; domain must be 2D
        orientation : str
            'canonical' or 'geophysical'
        **ode_options
            Solver configuration, see ODEFlow

        Raises
        ------
        ValidationError
            If the domain is not 2D
        ValueError
            If orientation is unknown
        """
        if orientation not in ORIENTATIONS:
            raise ValueError(
                f"orientation must be one of {list(ORIENTATIONS)}, got '{orientation}'"
            )
        self.orientation = orientation
        super().__init__(domain, dt=dt, label=label, quiet=quiet, **ode_options)
        require_planar(self.nx, self.__class__.__name__)

    @property
    def sign(self) -> float:
        """+1 for canonical, -1 for geophysical orientation."""
        return ORIENTATIONS[self.orientation]

    @abstractmethod
    def psi(self, t: TimeLike, x: ArrayLike, order: int = 0) -> StreamDerivatives:
        """
        Stream function and its partial derivatives.

        Parameters
        ----------
        t : TimeLike
            Scalar time, or one time per column
        x : ArrayLike
            Points (2, N)
        order : int
            0: psi, (1, N)
            1: [psi_x, psi_y], (2, N)
            2: [psi_xx, psi_xy, psi_yy], (3, N)

        Returns
        -------
        StreamDerivatives
            Array with N columns, row layout set by order
        """

    def _psi_checked(self, t: TimeLike, x: StateBatch, order: int) -> np.ndarray:
        rows = {0: 1, 1: 2, 2: 3}[order]
        out = np.asarray(self.psi(t, x, order), dtype=float)
        if out.shape != (rows, x.shape[1]):
            raise ValidationError(
                f"psi(order={order}) must return shape ({rows}, {x.shape[1]}), got {out.shape}"
            )
        return out

    def vf(self, t: TimeLike, x: ArrayLike) -> StateBatch:
        """Velocity s * [psi_y, -psi_x], (2, N)."""
        x = as_state_batch(x, nx=2)
        d1 = self._psi_checked(t, x, 1)
        return self.sign * np.vstack([d1[1], -d1[0]])

    def jacobian(self, t: TimeLike, x: ArrayLike) -> JacobianStack:
        """Jacobian s * [[psi_xy, psi_yy], [-psi_xx, -psi_xy]], (2, 2, N)."""
        x = as_state_batch(x, nx=2)
        psi_xx, psi_xy, psi_yy = self._psi_checked(t, x, 2)
        J = np.empty((2, 2, x.shape[1]))
        J[0, 0] = psi_xy
        J[0, 1] = psi_yy
        J[1, 0] = -psi_xx
        J[1, 1] = -psi_xy
        return self.sign * J

    def vorticity(self, t: TimeLike, x: ArrayLike) -> np.ndarray:
        """Laplacian psi_xx + psi_yy, (N,)."""
        x = as_state_batch(x, nx=2)
        d2 = self._psi_checked(t, x, 2)
        return d2[0] + d2[2]

    def stream_function(self, t: TimeLike, x: ArrayLike) -> np.ndarray:
        """Values of psi, (N,)."""
        x = as_state_batch(x, nx=2)
        return self._psi_checked(t, x, 0)[0]

    def test_psi(
        self, t: ScalarLike, x: ArrayLike, order: int, delta: float = 1e-6
    ) -> np.ndarray:
        """
        Compare psi(order) with a central difference of psi(order - 1).

        Parameters
        ----------
        t : float
            Single time value
        x : ArrayLike
            Single point (2,) or (2, 1)
        order : int
            1 or 2
        delta : float
            Finite-difference step

        Returns
        -------
        np.ndarray
            (2, 1) for order 1, (3, 2) for order 2; see
            finite_difference.psi_error

        Raises
        ------
        ValidationError
            If order is not 1 or 2, more than one time or point is
            passed, or delta <= 0
        """
        return finite_difference.psi_error(self, t, x, order, delta)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(dt={self.dt}, method='{self.method}', "
            f"orientation='{self.orientation}', label='{self.label}')"
        )
