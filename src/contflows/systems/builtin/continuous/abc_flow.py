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
Unsteady Arnold-Beltrami-Childress (ABC) flow.

A 3D volume-preserving flow on the triply periodic cube [0, 2π]³:

    ẋ = A(t) sin z + C cos y
    ẏ = B sin x + A(t) cos z
    ż = C sin y + B cos x

with A(t) = A + ε sin(ωt). The steady flow (ε = 0) is an exact Euler
solution with chaotic streamlines; the time dependence widens the chaotic
region (Haller, Physica D 2001).
"""

from typing import Optional

import numpy as np

from contflows.systems.base.core.ode_flow import ODEFlow
from contflows.systems.base.utils.flow_validator import as_state_batch, broadcast_time
from contflows.types.core import ArrayLike, JacobianStack, ScalarLike, StateBatch, TimeLike


class ABCFlow(ODEFlow):
    """
    Unsteady ABC flow.

    Parameters
    ----------
    A, B, C : float
        Mode amplitudes (defaults √3, √2, 1)
    epsilon : float
        Amplitude of the A modulation (default 0.1)
    omega : float
        Modulation frequency (default 2π)

    Examples
    --------
    >>> flow = ABCFlow()
    >>> flow.vf(0.0, np.zeros(3)).ravel()
    array([1.        , 1.73205081, 1.41421356])
    """

    DEFAULT_DOMAIN = [[0.0, 2 * np.pi]] * 3

    def __init__(
        self,
        A: float = np.sqrt(3),
        B: float = np.sqrt(2),
        C: float = 1.0,
        epsilon: float = 0.1,
        omega: float = 2 * np.pi,
        domain: Optional[ArrayLike] = None,
        dt: ScalarLike = 0.1,
        label: str = "ABC flow",
        quiet: bool = True,
        **ode_options,
    ):
        self.A = float(A)
        self.B = float(B)
        self.C = float(C)
        self.epsilon = float(epsilon)
        self.omega = float(omega)
        if domain is None:
            domain = self.DEFAULT_DOMAIN
        super().__init__(domain, dt=dt, label=label, quiet=quiet, **ode_options)

    def _amplitude(self, t: TimeLike, n: int) -> np.ndarray:
        return self.A + self.epsilon * np.sin(self.omega * broadcast_time(t, n))

    def vf(self, t: TimeLike, x: ArrayLike) -> StateBatch:
        x = as_state_batch(x, nx=3)
        a = self._amplitude(t, x.shape[1])
        return np.vstack(
            [
                a * np.sin(x[2]) + self.C * np.cos(x[1]),
                self.B * np.sin(x[0]) + a * np.cos(x[2]),
                self.C * np.sin(x[1]) + self.B * np.cos(x[0]),
            ]
        )

    def jacobian(self, t: TimeLike, x: ArrayLike) -> JacobianStack:
        x = as_state_batch(x, nx=3)
        a = self._amplitude(t, x.shape[1])
        J = np.zeros((3, 3, x.shape[1]))
        J[0, 1] = -self.C * np.sin(x[1])
        J[0, 2] = a * np.cos(x[2])
        J[1, 0] = self.B * np.cos(x[0])
        J[1, 2] = -a * np.sin(x[2])
        J[2, 0] = -self.B * np.sin(x[0])
        J[2, 1] = self.C * np.cos(x[1])
        return J


__all__ = ["ABCFlow"]
