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
Core flow classes.

Hierarchy
---------
ContinuousFlowBase (abstract contract: vf, jacobian, flow, trajectory)
└── ODEFlow (flow map by numerical integration)
    ├── Hamiltonian2DFlow (vector field from a stream function)
    │   └── SymbolicHamiltonian2DFlow
    ├── SymbolicODEFlow
    └── InterpolatedODEFlow2D
"""

from .continuous_flow_base import ContinuousFlowBase
from .hamiltonian_2d_flow import Hamiltonian2DFlow
from .interpolated_flow import InterpolatedODEFlow2D
from .ode_flow import ODEFlow, time_grid
from .symbolic_flow import SymbolicHamiltonian2DFlow, SymbolicODEFlow

__all__ = [
    "ContinuousFlowBase",
    "ODEFlow",
    "Hamiltonian2DFlow",
    "SymbolicODEFlow",
    "SymbolicHamiltonian2DFlow",
    "InterpolatedODEFlow2D",
    "time_grid",
]
