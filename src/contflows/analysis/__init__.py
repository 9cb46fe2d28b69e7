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
Analysis Module

Grid evaluation of derived fields of 2D flows.
"""

from .flow_fields import (
    FlowFieldAnalysis,
    divergence_field,
    grid_axes,
    jacobian_scalar_field,
    polar_field,
    scalar_field,
    stream_function_field,
    velocity_field,
    vorticity_field,
)

__all__ = [
    "FlowFieldAnalysis",
    "grid_axes",
    "velocity_field",
    "stream_function_field",
    "vorticity_field",
    "divergence_field",
    "polar_field",
    "jacobian_scalar_field",
    "scalar_field",
]
