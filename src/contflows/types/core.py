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
Core Types - Fundamental Building Blocks

Defines the most basic types used throughout the package:
- Array and scalar aliases
- Semantic point/batch types (state vectors, state batches)
- Derivative stacks (Jacobians, stream-function derivatives)
- Domain boxes and polygons

Shape Conventions
-----------------
Points are stored as COLUMNS, one point per column:

- State vector:  (nx,) or (nx, 1)
- State batch:   (nx, n_points)
- Jacobian:      (nx, nx, n_points), J[:, :, i] belongs to column i
- Trajectories:  (nx, n_times, n_trajectories)
- Domain:        (nx, 2), column 0 lower bounds, column 1 upper bounds

Usage
-----
>>> from contflows.types.core import StateBatch, JacobianStack
>>>
>>> def speed(f: StateBatch) -> np.ndarray:
...     return np.linalg.norm(f, axis=0)
"""

from typing import Callable, Sequence, Union

import numpy as np

# ============================================================================
# Basic Array Types
# ============================================================================

ArrayLike = Union[np.ndarray, Sequence[float], Sequence[Sequence[float]]]
"""
Anything numpy can turn into a float array.

Every public entry point calls ``np.asarray(..., dtype=float)`` on its
array arguments, so lists and tuples are accepted wherever an array is.
"""

ScalarLike = Union[float, int, np.number]
"""Real scalar (Python or NumPy)."""

TimeLike = Union[ScalarLike, np.ndarray, Sequence[float]]
"""
Time argument of field evaluations.

Either a scalar, broadcast to every column of the state batch, or a 1-D
array with one time per column.
"""

# ============================================================================
# Semantic Point Types
# ============================================================================

StateVector = np.ndarray
"""
Single point of state space, shape (nx,) or (nx, 1).

Examples
--------
>>> x0: StateVector = np.array([0.5, 0.25])
"""

StateBatch = np.ndarray
"""
Batch of points of state space, shape (nx, n_points).

Each column is an independent point. Vector-field evaluations return a
batch of the same shape.

Examples
--------
>>> x: StateBatch = np.array([[0.0, 0.5, 1.0],
...                           [0.0, 0.5, 1.0]])  # three points in 2D
"""

JacobianStack = np.ndarray
"""
Stack of Jacobian matrices, shape (nx, nx, n_points).

J[:, :, i] is the Jacobian of the vector field at column i of the batch.
"""

StreamDerivatives = np.ndarray
"""
Stream function or its partial derivatives, shape (rows, n_points).

- order 0: 1 row  [psi]
- order 1: 2 rows [psi_x, psi_y]
- order 2: 3 rows [psi_xx, psi_xy, psi_yy]
"""

# ============================================================================
# Geometry
# ============================================================================

DomainBox = np.ndarray
"""
Rectangular domain, shape (nx, 2).

Row k holds [lower_k, upper_k]. Used for default sampling and plotting
grids only; integration is never restricted to the domain.

Examples
--------
>>> domain: DomainBox = np.array([[0.0, 2.0],
...                               [0.0, 1.0]])
"""

Polygon = np.ndarray
"""
Planar polygon, shape (2, n_vertices). The closing side from the last
vertex back to the first is implicit.
"""

# ============================================================================
# Function Signatures
# ============================================================================

VectorFieldFunction = Callable[[TimeLike, StateBatch], StateBatch]
"""Signature of ``vf(t, x)``."""

JacobianFunction = Callable[[TimeLike, StateBatch], JacobianStack]
"""Signature of ``jacobian(t, x)``."""


__all__ = [
    "ArrayLike",
    "ScalarLike",
    "TimeLike",
    "StateVector",
    "StateBatch",
    "JacobianStack",
    "StreamDerivatives",
    "DomainBox",
    "Polygon",
    "VectorFieldFunction",
    "JacobianFunction",
]
