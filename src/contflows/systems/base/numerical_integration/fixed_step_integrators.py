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
Fixed-Step Integrators

Implements classic fixed time-step integration methods:
- Explicit Euler (1st order)
- Midpoint/RK2 (2nd order)
- RK4 (4th order)

Steps have constant size dt (default: the flow's dt) from t_start; the
last step is shortened to land exactly on t_end. Dense output is a cubic
Hermite spline through the step nodes, using the vector field at each
node as the slope.
"""

import time
import warnings
import threading
from abc import abstractmethod
from typing import TYPE_CHECKING, Optional, Type

import numpy as np
from scipy.interpolate import CubicHermiteSpline

from contflows.systems.base.numerical_integration.integrator_base import (
    IntegratorBase,
    StepMode,
)
from contflows.types.core import ScalarLike, StateVector
from contflows.types.trajectories import IntegrationResult, TimePoints, TimeSpan

if TYPE_CHECKING:
    from contflows.systems.base.core.continuous_flow_base import ContinuousFlowBase


class HermiteDenseOutput:
    """
    Piecewise cubic interpolant through the step nodes.

    Called like scipy's OdeSolution: sol(t) returns (nx,) for a scalar t
    and (nx, len(t)) for an array of times. Works for backward
    integration (decreasing nodes).
    """

    def __init__(self, t_nodes: np.ndarray, x_nodes: np.ndarray, f_nodes: np.ndarray):
        if t_nodes[-1] < t_nodes[0]:
            t_nodes, x_nodes, f_nodes = t_nodes[::-1], x_nodes[::-1], f_nodes[::-1]
        self._spline = CubicHermiteSpline(t_nodes, x_nodes, f_nodes, axis=0)
        self.t_min = float(t_nodes[0])
        self.t_max = float(t_nodes[-1])

    def __call__(self, t):
        return np.asarray(self._spline(t)).T


class FixedStepIntegrator(IntegratorBase):
    """
    Shared integration loop of the fixed-step methods.

    Subclasses implement _increment(t, x, h, f0), the change of state over
    one step of size h given f0 = f(t, x).
    """

    order: int = 0

    def __init__(self, flow: "ContinuousFlowBase", dt: Optional[ScalarLike] = None, **options):
        super().__init__(flow, dt, StepMode.FIXED, **options)

    @abstractmethod
    def _increment(self, t: float, x: np.ndarray, h: float, f0: np.ndarray) -> np.ndarray:
        """State change over one step of size h, given f0 = f(t, x)."""

    def step(self, t: ScalarLike, x: StateVector, dt: Optional[ScalarLike] = None) -> StateVector:
        """
        Take one step: x(t) -> x(t + dt).

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
        h = float(dt) if dt is not None else self.dt
        x = np.asarray(x, dtype=float)
        self._stats["total_steps"] += 1
        return x + self._increment(float(t), x, h, self._evaluate_dynamics(t, x))

    def _step_nodes(self, t0: float, tf: float) -> np.ndarray:
        """t0, t0 + h, ..., with a final shortened step onto tf."""
        span = tf - t0
        direction = 1.0 if span >= 0 else -1.0
        n_full = int(np.floor(abs(span) / self.dt + 1e-9))
        nodes = t0 + direction * self.dt * np.arange(n_full + 1)
        if abs(tf - nodes[-1]) > 1e-8 * self.dt:
            warnings.warn(
                f"Step {self.dt} does not divide the span {abs(span)}; "
                f"last step shortened to {abs(tf - nodes[-1]):.3g}",
                UserWarning,
                stacklevel=3,
            )
            nodes = np.append(nodes, tf)
        else:
            nodes[-1] = tf
        return nodes

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
        Integrate using fixed steps.

        Parameters
        ----------
        x0 : StateVector
            Initial state (nx,)
        t_span : Tuple[float, float]
            (t_start, t_end)
        t_eval : Optional[ArrayLike]
            Times to report; the solution is interpolated there from the
            step nodes. If None, the step nodes are reported.
        dense_output : bool
            If True, result["sol"] is a HermiteDenseOutput
        deadline, cancel_event
            Interruption controls, see IntegratorBase.integrate

        Returns
        -------
        IntegrationResult
            TypedDict with trajectory and diagnostics. success is False
            when the state stopped being finite.

        Examples
        --------
        >>> result = integrator.integrate(np.array([1.0, 0.0]), (0.0, 10.0))
        >>> assert result["success"]
        >>> assert result["nsteps"] > 0
        """
        start_time = time.time()
        self._begin(deadline, cancel_event)
        fev_before = self._stats["total_fev"]

        t0, tf = float(t_span[0]), float(t_span[1])
        nodes = self._step_nodes(t0, tf)

        x = np.asarray(x0, dtype=float)
        states = [x]
        slopes = []
        success = True
        for i in range(len(nodes) - 1):
            t, h = nodes[i], nodes[i + 1] - nodes[i]
            f0 = self._evaluate_dynamics(t, x)
            slopes.append(f0)
            x = x + self._increment(t, x, h, f0)
            states.append(x)
            if not np.all(np.isfinite(x)):
                success = False
                break

        n_steps = len(states) - 1
        self._stats["total_steps"] += n_steps
        x_nodes = np.stack(states)
        t_nodes = nodes[: n_steps + 1]

        sol = None
        if success and (dense_output or t_eval is not None) and n_steps > 0:
            slopes.append(self._evaluate_dynamics(t_nodes[-1], x_nodes[-1]))
            sol = HermiteDenseOutput(t_nodes, x_nodes, np.stack(slopes))

        if t_eval is not None and sol is not None:
            t_out = np.asarray(t_eval, dtype=float)
            x_out = sol(t_out).T
        else:
            t_out, x_out = t_nodes, x_nodes

        elapsed = time.time() - start_time
        self._stats["total_time"] += elapsed

        result: IntegrationResult = {
            "t": t_out,
            "x": x_out,
            "success": success,
            "message": (
                f"{self.name} integration completed"
                if success
                else f"State became non-finite at t={t_nodes[-1]:.6g}"
            ),
            "nfev": self._stats["total_fev"] - fev_before,
            "nsteps": n_steps,
            "integration_time": elapsed,
            "solver": self.name,
        }

        if dense_output and sol is not None:
            result["sol"] = sol
            result["dense_output"] = True

        return result


class ExplicitEulerIntegrator(FixedStepIntegrator):
    """
    Explicit Euler integrator (Forward Euler).

    First-order method: x_{k+1} = x_k + dt * f(t_k, x_k)

    Characteristics:
    - Order: 1 (error proportional to dt)
    - Stability: Conditionally stable (small dt required)
    - Cost: 1 function evaluation per step

    Best for prototyping; energy drifts visibly on Hamiltonian flows.
    """

    order = 1

    def _increment(self, t, x, h, f0):
        return h * f0

    @property
    def name(self) -> str:
        return "Euler (Fixed Step)"


class MidpointIntegrator(FixedStepIntegrator):
    """
    Explicit midpoint method (RK2).

        k1 = f(t, x)
        k2 = f(t + dt/2, x + dt/2 * k1)
        x_{k+1} = x_k + dt * k2

    Second order, 2 function evaluations per step.
    """

    order = 2

    def _increment(self, t, x, h, f0):
        k2 = self._evaluate_dynamics(t + 0.5 * h, x + 0.5 * h * f0)
        return h * k2

    @property
    def name(self) -> str:
        return "Midpoint (Fixed Step)"


class RK4Integrator(FixedStepIntegrator):
    """
    Classic 4th-order Runge-Kutta integrator.

        k1 = f(t, x)
        k2 = f(t + dt/2, x + dt/2 * k1)
        k3 = f(t + dt/2, x + dt/2 * k2)
        k4 = f(t + dt, x + dt * k3)
        x_{k+1} = x_k + dt/6 * (k1 + 2*k2 + 2*k3 + k4)

    Characteristics:
    - Order: 4 (error proportional to dt^4)
    - Cost: 4 function evaluations per step
    - Good default when a fixed step is wanted

    Examples
    --------
    >>> integrator = RK4Integrator(flow, dt=0.01)
    >>> result = integrator.integrate(np.array([1.0, 0.0]), (0.0, 2 * np.pi))
    >>> np.allclose(result["x"][-1], [1.0, 0.0], atol=1e-6)
    True
    """

    order = 4

    def _increment(self, t, x, h, f0):
        k1 = f0
        k2 = self._evaluate_dynamics(t + 0.5 * h, x + 0.5 * h * k1)
        k3 = self._evaluate_dynamics(t + 0.5 * h, x + 0.5 * h * k2)
        k4 = self._evaluate_dynamics(t + h, x + h * k3)
        return h / 6.0 * (k1 + 2 * k2 + 2 * k3 + k4)

    @property
    def name(self) -> str:
        return "RK4 (Fixed Step)"


FIXED_STEP_METHODS = {
    "euler": ExplicitEulerIntegrator,
    "midpoint": MidpointIntegrator,
    "rk4": RK4Integrator,
}


def create_fixed_step_integrator(
    method: str, flow: "ContinuousFlowBase", dt: Optional[ScalarLike] = None, **options
) -> FixedStepIntegrator:
    """
    Factory function for fixed-step integrators.

    Parameters
    ----------
    method : str
        'euler', 'midpoint' or 'rk4'
    flow : ContinuousFlowBase
        Flow to integrate
    dt : Optional[float]
        Step size (default: the flow's dt)

    Examples
    --------
    >>> integrator = create_fixed_step_integrator('rk4', flow, dt=0.01)
    """
    method = method.lower()
    if method not in FIXED_STEP_METHODS:
        raise ValueError(
            f"Unknown fixed-step method '{method}'. "
            f"Choose from: {list(FIXED_STEP_METHODS.keys())}"
        )

    integrator_class: Type[FixedStepIntegrator] = FIXED_STEP_METHODS[method]
    return integrator_class(flow, dt=dt, **options)


__all__ = [
    "HermiteDenseOutput",
    "FixedStepIntegrator",
    "ExplicitEulerIntegrator",
    "MidpointIntegrator",
    "RK4Integrator",
    "create_fixed_step_integrator",
]
