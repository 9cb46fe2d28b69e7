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
Trajectory and Integration Result Types

Defines types for time series produced by flows:
- Time arrays and spans
- Single solver runs (IntegrationResult)
- Batched flow evaluations (FlowResult)

Two layouts are in use and are kept deliberately apart:

- IntegrationResult stores ONE trajectory time-major, (T, nx), exactly as
  the integrators produce it.
- FlowResult stores a BATCH column-major, (nx, N) for final states or
  (nx, L, N) for full trajectories, matching the point-per-column
  convention of vector-field evaluation.

Usage
-----
>>> result: FlowResult = flow.integrate_batch(x0, T=10.0, full_trajectory=True)
>>> x, t = result["x"], result["t"]
>>> x.shape
(2, 101, 5)
"""

from typing import Any, List, Optional, Tuple

from typing_extensions import TypedDict

from .core import ArrayLike

# ============================================================================
# Time Types
# ============================================================================

TimePoints = ArrayLike
"""
Time instants, shape (T,).

Strictly monotone. For full-trajectory output the points are uniformly
spaced by the flow's dt: t0, t0 + dt, ..., t0 + (L-1)*dt.
"""

TimeSpan = Tuple[float, float]
"""
Integration interval (t_start, t_end).

t_end < t_start integrates backward in time.
"""

StateTrajectory = ArrayLike
"""
Batch of trajectories, shape (nx, L, N).

1st index: state dimension, 2nd index: time, 3rd index: trajectory.
"""

# ============================================================================
# Result Types
# ============================================================================


class IntegrationResult(TypedDict, total=False):
    """
    Result of a single solver run.

    Fields
    ------
    t : TimePoints
        Time points (T,), solver-chosen unless t_eval was given
    x : ArrayLike
        State trajectory (T, nx), time-major
    success : bool
        Whether the solver reached t_end
    message : str
        Solver status message
    nfev : int
        Right-hand-side evaluations
    nsteps : int
        Steps taken
    integration_time : float
        Wall-clock seconds
    solver : str
        Integrator name
    njev, nlu, status : int
        Solver diagnostics, when available
    sol : Callable
        Dense output, sol(t) -> (nx,) or (nx, len(t)), when requested
    dense_output : bool
        True when ``sol`` is present
    """

    t: TimePoints
    x: ArrayLike
    success: bool
    message: str
    nfev: int
    nsteps: int
    integration_time: float
    solver: str
    njev: int
    nlu: int
    status: int
    sol: Any
    dense_output: bool


class FlowResult(TypedDict):
    """
    Result of integrating a batch of initial conditions.

    Fields
    ------
    x : ArrayLike
        Final states (nx, N), or trajectories (nx, L, N) in
        full-trajectory mode. Columns of failed trajectories are NaN.
    t : Optional[TimePoints]
        Uniform time grid (L,) in full-trajectory mode, otherwise None
    success : ArrayLike
        Boolean array (N,), per-trajectory success
    errors : List[Optional[Exception]]
        Per-trajectory IntegrationError, None where successful
    nfev : int
        Total right-hand-side evaluations over the batch
    integration_time : float
        Wall-clock seconds for the whole batch
    solver : str
        Integrator name
    """

    x: ArrayLike
    t: Optional[TimePoints]
    success: ArrayLike
    errors: List[Optional[Exception]]
    nfev: int
    integration_time: float
    solver: str


__all__ = [
    "TimePoints",
    "TimeSpan",
    "StateTrajectory",
    "IntegrationResult",
    "FlowResult",
]
