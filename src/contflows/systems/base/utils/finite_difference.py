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
Finite-Difference Verifier

Cross-checks analytic derivatives of a flow against second-order central
differences at a single space-time point. The intended use is catching
mistakes in hand-derived Jacobians and stream-function derivatives:

    error = analytic - (f(x + delta*e_j) - f(x - delta*e_j)) / (2*delta)

The truncation error of the central difference is O(delta**2), so for a
correct analytic derivative the returned error shrinks quadratically with
delta until floating-point cancellation (roughly eps/delta) takes over.

Both functions evaluate the flow on the whole stencil in ONE call, so they
also exercise the batched (multi-column) code path of the flow.

Examples
--------
>>> err = jacobian_error(flow, 0.0, np.array([0.3, 0.7]))
>>> assert np.abs(err).max() < 1e-6
>>>
>>> err = psi_error(hamiltonian_flow, 0.0, np.array([0.3, 0.7]), order=2)
>>> err.shape
(3, 2)
"""

from typing import TYPE_CHECKING

import numpy as np

from contflows.systems.base.utils.flow_validator import (
    as_state_batch,
    require_single_point,
    validate_delta,
    validate_psi_order,
)
from contflows.types.core import ArrayLike, ScalarLike

if TYPE_CHECKING:
    from contflows.systems.base.core.continuous_flow_base import ContinuousFlowBase
    from contflows.systems.base.core.hamiltonian_2d_flow import Hamiltonian2DFlow


def _stencil(x: np.ndarray, delta: float) -> np.ndarray:
    """Columns x + delta*e_1..e_n followed by x - delta*e_1..e_n."""
    shift = np.eye(x.shape[0]) * delta
    return np.hstack([x + shift, x - shift])


def jacobian_error(
    flow: "ContinuousFlowBase", t: ScalarLike, x: ArrayLike, delta: float = 1e-6
) -> np.ndarray:
    """
    Difference between the analytic Jacobian and a central difference of vf.

    Parameters
    ----------
    flow : ContinuousFlowBase
        Flow providing vf(t, x) and jacobian(t, x)
    t : float
        Single time value
    x : ArrayLike
        Single point (nx,) or (nx, 1)
    delta : float
        Spatial step of the central difference (default: 1e-6)

    Returns
    -------
    np.ndarray
        Error matrix (nx, nx), analytic minus numeric

    Raises
    ------
    ValidationError
        If more than one time or point is given, or delta is not positive
    """
    delta = validate_delta(delta)
    t, x = require_single_point(t, x)
    nx = x.shape[0]

    analytic = np.asarray(flow.jacobian(t, x), dtype=float).reshape(nx, nx)

    xi = _stencil(x, delta)
    v = np.asarray(flow.vf(np.full(xi.shape[1], t), xi), dtype=float)
    numeric = (v[:, :nx] - v[:, nx:]) / (2 * delta)

    return analytic - numeric


def psi_error(
    flow: "Hamiltonian2DFlow",
    t: ScalarLike,
    x: ArrayLike,
    order: int,
    delta: float = 1e-6,
) -> np.ndarray:
    """
    Difference between psi(order) and a central difference of psi(order - 1).

    Parameters
    ----------
    flow : Hamiltonian2DFlow
        Flow providing psi(t, x, order)
    t : float
        Single time value
    x : ArrayLike
        Single planar point (2,) or (2, 1)
    order : int
        1 checks [psi_x, psi_y] against differences of psi;
        2 checks [psi_xx, psi_xy, psi_yy] against differences of the gradient
    delta : float
        Spatial step of the central difference (default: 1e-6)

    Returns
    -------
    np.ndarray
        order 1: (2, 1) error column
        order 2: (3, 2) error columns. The mixed derivative can be estimated
        from the x-difference of psi_y (column 0) or from the y-difference
        of psi_x (column 1); the two estimates legitimately differ, so both
        are reported instead of averaged.
    """
    order = validate_psi_order(order, allowed=(1, 2))
    delta = validate_delta(delta)
    t, x = require_single_point(t, x)
    x = as_state_batch(x, nx=2)

    analytic = np.asarray(flow.psi(t, x, order), dtype=float)

    xi = _stencil(x, delta)
    lower = np.asarray(flow.psi(np.full(xi.shape[1], t), xi, order - 1), dtype=float)
    # d[i, j] = d(row i of psi(order-1)) / d(x_j)
    d = (lower[:, 0:2] - lower[:, 2:4]) / (2 * delta)

    if d.shape[0] == 1:
        numeric = d.reshape(2, 1)
    else:
        from_x = np.array([d[0, 0], d[1, 0], d[1, 1]])
        from_y = np.array([d[0, 0], d[0, 1], d[1, 1]])
        numeric = np.column_stack([from_x, from_y])

    return analytic - numeric


__all__ = ["jacobian_error", "psi_error"]
