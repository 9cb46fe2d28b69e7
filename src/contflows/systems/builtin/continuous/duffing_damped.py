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

import sympy as sp

from contflows.systems.base.core.symbolic_flow import SymbolicODEFlow


class DuffingDamped(SymbolicODEFlow):
    """
    Damped, periodically forced Duffing oscillator.

    Dynamics:
    --------
        ẋ = y
        ẏ = x - x³ - δy + γ·cos(ω·t)

    Second-order form:
        ẍ + δẋ - x + x³ = γ·cos(ω·t)

    The unforced system (γ = 0) is the double-well Duffing oscillator with
    dissipation: trajectories settle into one of the wells at (±1, 0).
    With forcing, the classic parameters δ = 0.3, γ = 0.5, ω = 1.2
    produce a chaotic attractor.

    Parameters:
    ----------
    delta_val : float, default=0.3
        Damping coefficient δ
    gamma_val : float, default=0.5
        Forcing amplitude γ
    omega_val : float, default=1.2
        Forcing frequency ω

    See Also:
    --------
    Duffing : Conservative version with a stream function

    Examples
    --------
    >>> flow = DuffingDamped(gamma_val=0.0)
    >>> flow.print_equations()
    """

    DEFAULT_DOMAIN = [[-2.0, 2.0], [-2.0, 2.0]]
    DEFAULT_LABEL = "Damped Duffing oscillator"

    def define_system(
        self,
        delta_val: float = 0.3,
        gamma_val: float = 0.5,
        omega_val: float = 1.2,
    ):
        x, y, t = sp.symbols("x y t", real=True)
        delta, gamma, omega = sp.symbols("delta gamma omega", real=True)

        self.parameters = {delta: delta_val, gamma: gamma_val, omega: omega_val}
        self.state_vars = [x, y]
        self.time_var = t

        dx = y
        dy = x - x**3 - delta * y + gamma * sp.cos(omega * t)

        self._f_sym = sp.Matrix([dx, dy])


__all__ = ["DuffingDamped"]
