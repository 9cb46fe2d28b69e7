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
Integrator Base - Abstract Interface for Numerical Integration

Provides a unified interface for integrating a single trajectory of a
continuous flow, with both fixed and adaptive time stepping.

This module defines:
- StepMode: fixed or adaptive stepping
- IntegratorBase: abstract base class all integrators implement
- The IntegrationError hierarchy raised when a trajectory cannot be
  computed

Integrators see the flow only through its vector field ``vf(t, x)`` and
Jacobian ``jacobian(t, x)``, evaluated one point at a time as a single
column. Every right-hand-side evaluation also checks the optional
deadline and cancellation event, so a long integration can be aborted
from outside.

Result types are TypedDicts from contflows.types.trajectories.
"""

import threading
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

import numpy as np

from contflows.types.core import ScalarLike, StateVector
from contflows.types.trajectories import IntegrationResult, TimePoints, TimeSpan

if TYPE_CHECKING:
    from contflows.systems.base.core.continuous_flow_base import ContinuousFlowBase


# ============================================================================
# Exceptions
# ============================================================================


class IntegrationError(RuntimeError):
    """
    Raised when a trajectory cannot be integrated.

    Attributes
    ----------
    column : Optional[int]
        Index of the failing trajectory within its batch, when known
    """

    def __init__(self, message: str, column: Optional[int] = None):
        super().__init__(message)
        self.column = column

    def __str__(self) -> str:
        message = super().__str__()
        if self.column is None:
            return message
        return f"{message} (trajectory {self.column})"


class InvalidInitialStateError(IntegrationError):
    """Initial state contains NaN or Inf."""

    pass


class NonConvergenceError(IntegrationError):
    """
    Solver reported failure or produced non-finite states.

    Attributes
    ----------
    solver_message : str
        Message reported by the solver
    """

    def __init__(self, message: str, column: Optional[int] = None, solver_message: str = ""):
        super().__init__(message, column)
        self.solver_message = solver_message


class IntegrationTimeoutError(IntegrationError):
    """Per-trajectory deadline was exceeded."""

    pass


class IntegrationCancelledError(IntegrationError):
    """Cancellation event was set during integration."""

    pass


# ============================================================================
# Step Mode
# ============================================================================


class StepMode(Enum):
    """
    Integration step mode.

    Attributes
    ----------
    FIXED : str
        Fixed time step, integrator uses a constant step
        Best for: smooth non-stiff flows, reproducible step counts

    ADAPTIVE : str
        Adaptive time step, integrator adjusts the step from error estimates
        Best for: stiff flows, high accuracy requirements
    """

    FIXED = "fixed"
    ADAPTIVE = "adaptive"


# ============================================================================
# Base Class
# ============================================================================


class IntegratorBase(ABC):
    """
    Abstract base class for numerical integrators.

    All integrators must implement:
    - step(): Single integration step
    - integrate(): Integration over an interval
    - name: Integrator name for display

    Result Types
    ------------
    All integrators return an IntegrationResult TypedDict with:
    - t: Time points (T,)
    - x: State trajectory (T, nx)
    - success: Integration succeeded
    - message: Status message
    - nfev: Number of function evaluations
    - nsteps: Number of steps taken
    - integration_time: Computation time
    - solver: Integrator name
    - sol: Dense output callable (if requested)

    Examples
    --------
    >>> integrator = RK4Integrator(flow, dt=0.01)
    >>>
    >>> # Single step
    >>> x_next = integrator.step(0.0, np.array([1.0, 0.0]))
    >>>
    >>> # Integration over an interval
    >>> result = integrator.integrate(np.array([1.0, 0.0]), (0.0, 10.0))
    >>> t, x_traj = result["t"], result["x"]
    >>> print(f"Steps: {result['nsteps']}, Function evals: {result['nfev']}")
    """

    def __init__(
        self,
        flow: "ContinuousFlowBase",
        dt: Optional[ScalarLike] = None,
        step_mode: StepMode = StepMode.FIXED,
        **options,
    ):
        """
        Initialize integrator.

        Parameters
        ----------
        flow : ContinuousFlowBase
            Flow to integrate
        dt : Optional[float]
            Time step:
            - FIXED mode: constant step size (default: the flow's dt)
            - ADAPTIVE mode: unused, kept for a uniform signature
        step_mode : StepMode
            FIXED or ADAPTIVE stepping
        **options : dict
            Integrator-specific options:
            - rtol : float
                Relative tolerance (adaptive only, default: 1e-6)
            - atol : float
                Absolute tolerance (adaptive only, default: 1e-8)
            - max_step : float
                Maximum step size (adaptive only, default: inf)
            - first_step : float
                Initial step size (adaptive only, default: solver's choice)

        Raises
        ------
        ValueError
            If dt is not positive, or tolerances are not positive
        """
        self.flow = flow
        self.step_mode = step_mode
        self.options = options

        if dt is None and step_mode == StepMode.FIXED:
            dt = flow.dt
        if dt is not None and not float(dt) > 0:
            raise ValueError(f"Time step dt must be positive, got {dt}")
        self.dt = None if dt is None else float(dt)

        self.rtol = options.get("rtol", 1e-6)
        self.atol = options.get("atol", 1e-8)
        if self.rtol <= 0 or self.atol <= 0:
            raise ValueError(
                f"Tolerances must be positive, got rtol={self.rtol}, atol={self.atol}"
            )

        # Per-call interruption state, set by _begin()
        self._deadline: Optional[float] = None
        self._cancel_event: Optional[threading.Event] = None

        # Statistics
        self._stats = {
            "total_steps": 0,
            "total_fev": 0,  # Function evaluations
            "total_jev": 0,  # Jacobian evaluations
            "total_time": 0.0,
        }

    @abstractmethod
    def step(self, t: ScalarLike, x: StateVector, dt: Optional[ScalarLike] = None) -> StateVector:
        """
        Take one integration step: x(t) -> x(t + dt).

        Parameters
        ----------
        t : float
            Current time
        x : StateVector
            Current state (nx,)
        dt : Optional[float]
            Step size, negative to step backward (uses self.dt if None)

        Returns
        -------
        StateVector
            Next state (nx,)
        """
        pass

    @abstractmethod
    def integrate(
        self,
        x0: StateVector,
        t_span: TimeSpan,
        t_eval: Optional[TimePoints] = None,
        dense_output: bool = False,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> IntegrationResult:
        """
        Integrate a single trajectory over a time interval.

        Parameters
        ----------
        x0 : StateVector
            Initial state (nx,)
        t_span : Tuple[float, float]
            Integration interval (t_start, t_end); t_end < t_start
            integrates backward
        t_eval : Optional[ArrayLike]
            Times at which to store the solution; if None the integrator's
            own step nodes are returned
        dense_output : bool
            If True, result["sol"] is a callable interpolating the solution
            anywhere in t_span
        deadline : Optional[float]
            Absolute ``time.monotonic()`` value after which the integration
            is aborted with IntegrationTimeoutError
        cancel_event : Optional[threading.Event]
            Aborts the integration with IntegrationCancelledError once set

        Returns
        -------
        IntegrationResult
            TypedDict with t, x (T, nx), success, message, nfev, nsteps,
            integration_time, solver and, on request, sol

        Raises
        ------
        IntegrationTimeoutError
            If the deadline passes during integration
        IntegrationCancelledError
            If cancel_event is set during integration
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Get integrator name for display.

        Examples
        --------
        >>> integrator.name
        'RK4 (Fixed Step)'
        >>> adaptive_integrator.name
        'scipy.RK45'
        """
        pass

    # ========================================================================
    # Common Utilities (Shared by All Integrators)
    # ========================================================================

    def _begin(
        self, deadline: Optional[float], cancel_event: Optional[threading.Event]
    ) -> None:
        """Arm the interruption checks for one integrate() call."""
        self._deadline = deadline
        self._cancel_event = cancel_event
        self._check_interrupt()

    def _check_interrupt(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise IntegrationCancelledError("Integration cancelled")
        if self._deadline is not None and time.monotonic() > self._deadline:
            raise IntegrationTimeoutError("Integration exceeded its time limit")

    def _evaluate_dynamics(self, t: ScalarLike, x: StateVector) -> np.ndarray:
        """
        Evaluate the flow's vector field at one point with statistics tracking.

        Parameters
        ----------
        t : float
            Time
        x : StateVector
            State (nx,)

        Returns
        -------
        np.ndarray
            State derivative dx/dt (nx,)

        Notes
        -----
        Also checks the deadline and cancellation event of the running
        integrate() call.
        """
        self._check_interrupt()
        self._stats["total_fev"] += 1
        f = self.flow.vf(t, np.asarray(x, dtype=float)[:, np.newaxis])
        return np.asarray(f, dtype=float)[:, 0]

    def _evaluate_jacobian(self, t: ScalarLike, x: StateVector) -> np.ndarray:
        """Jacobian of the vector field at one point, (nx, nx)."""
        self._check_interrupt()
        self._stats["total_jev"] += 1
        J = self.flow.jacobian(t, np.asarray(x, dtype=float)[:, np.newaxis])
        return np.asarray(J, dtype=float)[:, :, 0]

    def get_stats(self) -> Dict[str, Any]:
        """
        Get integration statistics.

        Returns
        -------
        dict
            Statistics with keys:
            - 'total_steps': Total integration steps taken
            - 'total_fev': Total function evaluations
            - 'total_jev': Total Jacobian evaluations
            - 'total_time': Total integration time
            - 'avg_fev_per_step': Average function evaluations per step

        Examples
        --------
        >>> result = integrator.integrate(x0, (0, 10))
        >>> stats = integrator.get_stats()
        >>> print(f"Evals/step: {stats['avg_fev_per_step']:.1f}")
        """
        avg_fev = self._stats["total_fev"] / max(1, self._stats["total_steps"])

        return {
            **self._stats,
            "avg_fev_per_step": avg_fev,
        }

    def reset_stats(self):
        """
        Reset integration statistics to zero.

        Examples
        --------
        >>> integrator.reset_stats()
        >>> integrator.get_stats()['total_steps']
        0
        """
        self._stats["total_steps"] = 0
        self._stats["total_fev"] = 0
        self._stats["total_jev"] = 0
        self._stats["total_time"] = 0.0

    def __repr__(self) -> str:
        """String representation for debugging"""
        return f"{self.__class__.__name__}(dt={self.dt}, mode={self.step_mode.value})"

    def __str__(self) -> str:
        """Human-readable string"""
        if self.dt is None:
            return self.name
        return f"{self.name} (dt={self.dt:.4f})"


__all__ = [
    "StepMode",
    "IntegratorBase",
    "IntegrationError",
    "InvalidInitialStateError",
    "NonConvergenceError",
    "IntegrationTimeoutError",
    "IntegrationCancelledError",
]
