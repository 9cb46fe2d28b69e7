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
Conservative oscillators with closed-form stream functions.
"""

from typing import Optional

import numpy as np

from contflows.systems.base.core.hamiltonian_2d_flow import Hamiltonian2DFlow
from contflows.systems.base.utils.flow_validator import as_state_batch, validate_psi_order
from contflows.types.core import ArrayLike, ScalarLike, StreamDerivatives, TimeLike


class Harmonic2D(Hamiltonian2DFlow):
    """
    Linear harmonic oscillator.

    Stream function (energy):
        ψ(x, y) = (x² + y²) / 2

    Dynamics (canonical orientation):
        ẋ = y
        ẏ = -x

    Every orbit is a circle around the origin traversed clockwise with
    period 2π, which makes the flow a convenient accuracy check for the
    integrators: flow(x0, 2π) should return x0.

    Examples
    --------
    >>> flow = Harmonic2D()
    >>> x0 = np.array([[1.0], [0.0]])
    >>> np.allclose(flow.flow(x0, 2 * np.pi), x0, atol=1e-5)
    True
    """

    DEFAULT_DOMAIN = [[-1.0, 1.0], [-1.0, 1.0]]

    def __init__(
        self,
        domain: Optional[ArrayLike] = None,
        dt: ScalarLike = 0.1,
        label: str = "Harmonic oscillator",
        quiet: bool = True,
        **ode_options,
    ):
        if domain is None:
            domain = self.DEFAULT_DOMAIN
        super().__init__(domain, dt=dt, label=label, quiet=quiet, **ode_options)

    def psi(self, t: TimeLike, x: ArrayLike, order: int = 0) -> StreamDerivatives:
        order = validate_psi_order(order)
        x = as_state_batch(x, nx=2)
        if order == 0:
            return 0.5 * (x[[0]] ** 2 + x[[1]] ** 2)
        if order == 1:
            return x.copy()
        return np.tile([[1.0], [0.0], [1.0]], (1, x.shape[1]))


class Duffing(Hamiltonian2DFlow):
    """
    Undamped, unforced Duffing oscillator in the double-well regime.

    Stream function (energy):
        ψ(x, y) = y²/2 - x²/2 + x⁴/4

    Dynamics (canonical orientation):
        ẋ = y
        ẏ = x - x³

    Equilibria
    ----------
    - (0, 0): saddle, joined to itself by two homoclinic orbits (ψ = 0)
    - (±1, 0): centers at the bottom of the two potential wells (ψ = -1/4)

    See Also
    --------
    DuffingDamped : Dissipative, periodically forced version
    """

    DEFAULT_DOMAIN = [[-1.5, 1.5], [-1.0, 1.0]]

    def __init__(
        self,
        domain: Optional[ArrayLike] = None,
        dt: ScalarLike = 0.1,
        label: str = "Duffing oscillator",
        quiet: bool = True,
        **ode_options,
    ):
        if domain is None:
            domain = self.DEFAULT_DOMAIN
        super().__init__(domain, dt=dt, label=label, quiet=quiet, **ode_options)

    def psi(self, t: TimeLike, x: ArrayLike, order: int = 0) -> StreamDerivatives:
        order = validate_psi_order(order)
        x = as_state_batch(x, nx=2)
        q, p = x[0], x[1]

        if order == 0:
            return (p**2 / 2 - q**2 / 2 + q**4 / 4)[np.newaxis, :]
        if order == 1:
            return np.vstack([-q + q**3, p])
        return np.vstack([-1.0 + 3 * q**2, np.zeros_like(q), np.ones_like(q)])


__all__ = ["Harmonic2D", "Duffing"]
