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
Grid Field Types

Result types for fields sampled on a 2D tensor grid.

Grids use ndgrid layout (``np.meshgrid(xi, yi, indexing="ij")``), so
X[i, j] = xi[i] and Y[i, j] = yi[j]. Every value array carries a trailing
time axis: shape (len(xi), len(yi), len(t)).
"""

from typing import List

from typing_extensions import TypedDict

from .core import ArrayLike


class GridField(TypedDict):
    """
    Scalar field on a grid.

    Fields
    ------
    X, Y : ArrayLike
        Grid coordinates (nx_grid, ny_grid)
    values : ArrayLike
        Field values (nx_grid, ny_grid, n_times)
    t : ArrayLike
        Evaluation times (n_times,)
    name : str
        Human-readable field name (colour-bar title)
    """

    X: ArrayLike
    Y: ArrayLike
    values: ArrayLike
    t: ArrayLike
    name: str


class VelocityField(TypedDict):
    """
    Vector field on a grid (quiver data).

    U, V have shape (nx_grid, ny_grid, n_times).
    """

    X: ArrayLike
    Y: ArrayLike
    U: ArrayLike
    V: ArrayLike
    t: ArrayLike


class PolarField(TypedDict):
    """
    Vector field on a grid in polar form.

    angle is in [-pi, pi]; magnitude is |v| or log10|v| when
    ``logarithmic`` is set.
    """

    X: ArrayLike
    Y: ArrayLike
    angle: ArrayLike
    magnitude: ArrayLike
    t: ArrayLike
    logarithmic: bool


GridAxes = List[ArrayLike]
"""Pair [xi, yi] of 1-D grid axes."""


__all__ = ["GridField", "VelocityField", "PolarField", "GridAxes"]
