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
Types Module - Type Definitions for ContinuousFlows

Central import point for all type definitions.

Module Organization
------------------
- core: arrays, state batches, Jacobian stacks, domains
- trajectories: time arrays, integration and flow results
- fields: grid field results
"""

from .core import (
    ArrayLike,
    DomainBox,
    JacobianFunction,
    JacobianStack,
    Polygon,
    ScalarLike,
    StateBatch,
    StateVector,
    StreamDerivatives,
    TimeLike,
    VectorFieldFunction,
)
from .fields import GridAxes, GridField, PolarField, VelocityField
from .trajectories import (
    FlowResult,
    IntegrationResult,
    StateTrajectory,
    TimePoints,
    TimeSpan,
)

__all__ = [
    "ArrayLike",
    "DomainBox",
    "JacobianFunction",
    "JacobianStack",
    "Polygon",
    "ScalarLike",
    "StateBatch",
    "StateVector",
    "StreamDerivatives",
    "TimeLike",
    "VectorFieldFunction",
    "GridAxes",
    "GridField",
    "PolarField",
    "VelocityField",
    "FlowResult",
    "IntegrationResult",
    "StateTrajectory",
    "TimePoints",
    "TimeSpan",
]
