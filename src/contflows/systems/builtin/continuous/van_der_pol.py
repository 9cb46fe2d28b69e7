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

from typing import Optional

import numpy as np

from contflows.systems.base.core.ode_flow import ODEFlow
from contflows.systems.base.utils.flow_validator import as_state_batch
from contflows.types.core import ArrayLike, JacobianStack, ScalarLike, StateBatch, TimeLike


class Vanderpol(ODEFlow):
    """
    Van der Pol oscillator.

        ẋ = y
        ẏ = μ(1 - x²)y - x

    For μ > 0 every trajectory except the unstable focus at the origin
    approaches a unique limit cycle. Large μ gives relaxation oscillations
    and a stiff system; pass method="Radau" or "BDF" in that regime.

    Parameters
    ----------
    mu : float
        Nonlinear damping strength (default 1.0)
    domain, dt, label, quiet, **ode_options
        See ODEFlow
    """

    DEFAULT_DOMAIN = [[-3.0, 3.0], [-3.0, 3.0]]

    def __init__(
        self,
        mu: float = 1.0,
        domain: Optional[ArrayLike] = None,
        dt: ScalarLike = 0.1,
        label: str = "Van der Pol oscillator",
        quiet: bool = True,
        **ode_options,
    ):
        self.mu = float(mu)
        if domain is None:
            domain = self.DEFAULT_DOMAIN
        super().__init__(domain, dt=dt, label=label, quiet=quiet, **ode_options)

    def vf(self, t: TimeLike, x: ArrayLike) -> StateBatch:
        x = as_state_batch(x, nx=2)
        return np.vstack([x[1], self.mu * (1 - x[0] ** 2) * x[1] - x[0]])

    def jacobian(self, t: TimeLike, x: ArrayLike) -> JacobianStack:
        x = as_state_batch(x, nx=2)
        J = np.zeros((2, 2, x.shape[1]))
        J[0, 1] = 1.0
        J[1, 0] = -2 * self.mu * x[0] * x[1] - 1
        J[1, 1] = self.mu * (1 - x[0] ** 2)
        return J


__all__ = ["Vanderpol"]
