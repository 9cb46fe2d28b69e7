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

import numpy as np
import sympy as sp

from contflows.systems.base.core.symbolic_flow import SymbolicHamiltonian2DFlow

EARTH_RADIUS = 6.371  # Mm


class BickleyRossby(SymbolicHamiltonian2DFlow):
    """
    Bickley jet perturbed by three traveling Rossby waves.

    Idealized zonal jet in the stratosphere (Rypina et al., J. Atmos. Sci.
    2007). Units are megameters and days.

    Stream Function:
    ---------------
        ψ(t, x, y) = -U L tanh(y/L)
                     + U L sech²(y/L) Σₙ εₙ cos(kₙ (x - cₙ t))

    with kₙ = 2n / r₀ for n = 1, 2, 3. The flow uses the geophysical
    orientation, so u = -ψ_y is the eastward jet velocity U sech²(y/L)
    at the leading order.

    Parameters (define_system keyword arguments):
    ----------
    U_val : float, default=5.4138
        Jet speed [Mm/day] (62.66 m/s)
    L_val : float, default=1.77
        Jet width [Mm]
    eps1_val, eps2_val, eps3_val : float, default=0.075, 0.4, 0.3
        Wave amplitudes
    c1_val, c2_val, c3_val : float
        Wave phase speeds [Mm/day], default 0.1446 U, 0.205 U, 0.461 U

    The x direction is periodic with period π r₀; the default domain is
    one period in x and y in [-3, 3].

    Examples
    --------
    >>> flow = BickleyRossby(eps2_val=0.0, dt=0.5)
    >>> x, t = flow.trajectory(flow.sample_domain_random(50), T=10.0)
    """

    DEFAULT_DOMAIN = [[0.0, np.pi * EARTH_RADIUS], [-3.0, 3.0]]
    DEFAULT_LABEL = "Bickley jet with Rossby waves"
    DEFAULT_ORIENTATION = "geophysical"

    def define_system(
        self,
        U_val: float = 5.4138,
        L_val: float = 1.77,
        eps1_val: float = 0.075,
        eps2_val: float = 0.4,
        eps3_val: float = 0.3,
        c1_val: float = None,
        c2_val: float = None,
        c3_val: float = None,
    ):
        x, y, t = sp.symbols("x y t", real=True)
        U, L = sp.symbols("U L", positive=True)
        eps = sp.symbols("epsilon1:4", real=True)
        c = sp.symbols("c1:4", real=True)

        speeds = [c1_val, c2_val, c3_val]
        defaults = [0.1446, 0.205, 0.461]
        speeds = [U_val * d if s is None else s for s, d in zip(speeds, defaults)]

        self.parameters = {U: U_val, L: L_val}
        self.parameters.update(zip(eps, [eps1_val, eps2_val, eps3_val]))
        self.parameters.update(zip(c, speeds))
        self.state_vars = [x, y]
        self.time_var = t

        waves = sum(
            eps[n] * sp.cos(2 * (n + 1) / EARTH_RADIUS * (x - c[n] * t)) for n in range(3)
        )
        self._psi_sym = -U * L * sp.tanh(y / L) + U * L / sp.cosh(y / L) ** 2 * waves


__all__ = ["BickleyRossby"]
