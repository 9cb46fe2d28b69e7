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
contflows - Continuous-Time Flows

Vector fields, flow maps and trajectories of continuous-time dynamical
systems dx/dt = f(t, x), with planar Hamiltonian flows defined by a
stream function, grid field analysis and Plotly rendering.

Quick Start
-----------
>>> import numpy as np
>>> from contflows import DoubleGyre
>>>
>>> flow = DoubleGyre(dt=0.1)
>>> x0 = flow.sample_domain_random(100, rng=0)
>>> x, t = flow.trajectory(x0, T=10.0)
>>> fig = flow.plotter.plot_trajectories(x)
"""

__version__ = "0.1.0"

from contflows.analysis import FlowFieldAnalysis
from contflows.systems.base.core import (
    ContinuousFlowBase,
    Hamiltonian2DFlow,
    InterpolatedODEFlow2D,
    ODEFlow,
    SymbolicHamiltonian2DFlow,
    SymbolicODEFlow,
)
from contflows.systems.base.numerical_integration import (
    IntegrationCancelledError,
    IntegrationError,
    IntegrationTimeoutError,
    IntegratorFactory,
    InvalidInitialStateError,
    NonConvergenceError,
)
from contflows.systems.base.utils.flow_validator import ValidationError
from contflows.systems.builtin import (
    ABCFlow,
    BickleyRossby,
    DoubleGyre,
    Duffing,
    DuffingDamped,
    FourGyre,
    Harmonic2D,
    Vanderpol,
)
from contflows.visualization import FlowFieldPlotter

__all__ = [
    "__version__",
    # Base classes
    "ContinuousFlowBase",
    "ODEFlow",
    "Hamiltonian2DFlow",
    "SymbolicODEFlow",
    "SymbolicHamiltonian2DFlow",
    "InterpolatedODEFlow2D",
    # Built-in flows
    "Harmonic2D",
    "Duffing",
    "DoubleGyre",
    "FourGyre",
    "BickleyRossby",
    "DuffingDamped",
    "Vanderpol",
    "ABCFlow",
    # Integration
    "IntegratorFactory",
    # Analysis and plotting
    "FlowFieldAnalysis",
    "FlowFieldPlotter",
    # Errors
    "ValidationError",
    "IntegrationError",
    "InvalidInitialStateError",
    "NonConvergenceError",
    "IntegrationTimeoutError",
    "IntegrationCancelledError",
]
