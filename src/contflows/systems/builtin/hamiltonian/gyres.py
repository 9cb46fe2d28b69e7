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
Periodically Driven Gyre Flows
==============================

Planar cellular flows whose separatrices oscillate in time. Both share
the stream function

    ψ(t, x, y) = A sin(π f(t, x)) sin(π y)
    f(t, x) = a(t) x² + b(t) x
    a(t) = ε sin(ωt),  b(t) = 1 - 2ε sin(ωt)

and the geophysical orientation u = -ψ_y, v = ψ_x.

- DoubleGyre: two counter-rotating cells on [0, 2] x [0, 1], the
  standard benchmark for Lagrangian coherent structures (Shadden,
  Lekien, Marsden, Physica D 2005). Derivatives are written out by hand.
- FourGyre: four cells on [0, 2] x [0, 2] (Mezić et al., Science 2010),
  defined symbolically.
"""

from typing import Optional

import numpy as np
import sympy as sp

from contflows.systems.base.core.hamiltonian_2d_flow import Hamiltonian2DFlow
from contflows.systems.base.core.symbolic_flow import SymbolicHamiltonian2DFlow
from contflows.systems.base.utils.flow_validator import (
    as_state_batch,
    broadcast_time,
    validate_psi_order,
)
from contflows.types.core import ArrayLike, ScalarLike, StreamDerivatives, TimeLike


class DoubleGyre(Hamiltonian2DFlow):
    """
    Shadden's time-periodic double gyre.

    Parameters
    ----------
    A : float
        Velocity magnitude (default 0.1)
    epsilon : float
        Amplitude of the separatrix oscillation (default 0.25)
    omega : float
        Driving frequency (default 2π/10, period 10)
    domain, dt, label, quiet, **ode_options
        See Hamiltonian2DFlow

    Examples
    --------
    >>> flow = DoubleGyre()
    >>> x0 = flow.sample_domain_grid(10)
    >>> x, t = flow.trajectory(x0, T=15.0)
    >>> x.shape
    (2, 151, 100)
    """

    DEFAULT_DOMAIN = [[0.0, 2.0], [0.0, 1.0]]

    def __init__(
        self,
        A: float = 0.1,
        epsilon: float = 0.25,
        omega: float = 2 * np.pi / 10,
        domain: Optional[ArrayLike] = None,
        dt: ScalarLike = 0.1,
        label: str = "Double gyre",
        quiet: bool = True,
        **ode_options,
    ):
        self.A = float(A)
        self.epsilon = float(epsilon)
        self.omega = float(omega)
        if domain is None:
            domain = self.DEFAULT_DOMAIN
        super().__init__(
            domain,
            dt=dt,
            label=label,
            quiet=quiet,
            orientation="geophysical",
            **ode_options,
        )

    def psi(self, t: TimeLike, x: ArrayLike, order: int = 0) -> StreamDerivatives:
        order = validate_psi_order(order)
        x = as_state_batch(x, nx=2)
        t = broadcast_time(t, x.shape[1])

        a = self.epsilon * np.sin(self.omega * t)
        b = 1 - 2 * a
        f = a * x[0] ** 2 + b * x[0]
        fx = 2 * a * x[0] + b
        fxx = 2 * a

        pi, A = np.pi, self.A
        sin_f, cos_f = np.sin(pi * f), np.cos(pi * f)
        sin_y, cos_y = np.sin(pi * x[1]), np.cos(pi * x[1])

        if order == 0:
            return (A * sin_f * sin_y)[np.newaxis, :]
        if order == 1:
            return np.vstack([A * pi * cos_f * fx * sin_y, A * pi * sin_f * cos_y])

        psi_xx = A * pi * sin_y * (cos_f * fxx - pi * sin_f * fx**2)
        psi_xy = A * pi**2 * cos_f * fx * cos_y
        psi_yy = -A * pi**2 * sin_f * sin_y
        return np.vstack([psi_xx, psi_xy, psi_yy])


class FourGyre(SymbolicHamiltonian2DFlow):
    """
    Four-cell gyre flow with periodically oscillating separatrices.

    Model parameters (keyword arguments): A_val, epsilon_val, omega_val.
    Flow options (domain, dt, label, ...) are accepted alongside.

    Examples
    --------
    >>> flow = FourGyre(epsilon_val=0.1, dt=0.05)
    >>> flow.stream_function(0.0, np.array([[0.5], [0.5]]))
    array([0.1])
    """

    DEFAULT_DOMAIN = [[0.0, 2.0], [0.0, 2.0]]
    DEFAULT_LABEL = "Four gyre"
    DEFAULT_ORIENTATION = "geophysical"

    def define_system(
        self,
        A_val: float = 0.1,
        epsilon_val: float = 0.25,
        omega_val: float = 2 * np.pi / 10,
    ):
        x, y, t = sp.symbols("x y t", real=True)
        A, epsilon, omega = sp.symbols("A epsilon omega", real=True)

        self.parameters = {A: A_val, epsilon: epsilon_val, omega: omega_val}
        self.state_vars = [x, y]
        self.time_var = t

        a = epsilon * sp.sin(omega * t)
        f = a * x**2 + (1 - 2 * a) * x
        self._psi_sym = A * sp.sin(sp.pi * f) * sp.sin(sp.pi * y)


__all__ = ["DoubleGyre", "FourGyre"]
