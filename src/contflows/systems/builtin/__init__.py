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
Built-in Flow Catalog

Hamiltonian (stream function) flows:
    - Harmonic2D: linear harmonic oscillator
    - Duffing: undamped double-well oscillator
    - DoubleGyre: Shadden's time-periodic double gyre
    - FourGyre: four-cell gyre flow (symbolic)
    - BickleyRossby: Bickley jet with Rossby waves (symbolic)

ODE flows:
    - DuffingDamped: damped, forced Duffing oscillator (symbolic)
    - Vanderpol: Van der Pol oscillator
    - ABCFlow: unsteady 3D ABC flow
"""

from . import continuous
from . import hamiltonian

from .continuous import ABCFlow, DuffingDamped, Vanderpol
from .hamiltonian import BickleyRossby, DoubleGyre, Duffing, FourGyre, Harmonic2D

__all__ = [
    # Submodules
    "continuous",
    "hamiltonian",
    # Hamiltonian flows
    "Harmonic2D",
    "Duffing",
    "DoubleGyre",
    "FourGyre",
    "BickleyRossby",
    # ODE flows
    "DuffingDamped",
    "Vanderpol",
    "ABCFlow",
]
