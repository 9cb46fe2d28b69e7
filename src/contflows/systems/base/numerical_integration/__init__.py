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
Numerical Integration

Integrators for single trajectories of continuous flows and the
IntegrationError hierarchy.
"""

from .fixed_step_integrators import (
    ExplicitEulerIntegrator,
    FixedStepIntegrator,
    HermiteDenseOutput,
    MidpointIntegrator,
    RK4Integrator,
)
from .integrator_base import (
    IntegrationCancelledError,
    IntegrationError,
    IntegrationTimeoutError,
    IntegratorBase,
    InvalidInitialStateError,
    NonConvergenceError,
    StepMode,
)
from .integrator_factory import IntegratorFactory, create_integrator
from .scipy_integrator import ScipyIntegrator

__all__ = [
    "IntegratorBase",
    "StepMode",
    "IntegrationError",
    "InvalidInitialStateError",
    "NonConvergenceError",
    "IntegrationTimeoutError",
    "IntegrationCancelledError",
    "ScipyIntegrator",
    "FixedStepIntegrator",
    "ExplicitEulerIntegrator",
    "MidpointIntegrator",
    "RK4Integrator",
    "HermiteDenseOutput",
    "IntegratorFactory",
    "create_integrator",
]
