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
Scipy Integrator - Adaptive Integration via scipy.integrate.solve_ivp

Supported Methods:
- RK45: Explicit Runge-Kutta 5(4) - general purpose
- RK23: Explicit Runge-Kutta 3(2) - low accuracy/fast
- DOP853: Explicit Runge-Kutta 8 - high accuracy
- Radau: Implicit Runge-Kutta (Radau IIA) - stiff flows
- BDF: Backward Differentiation Formula - very stiff flows
- LSODA: Automatic stiffness detection and switching

Implicit methods are handed the flow's analytic Jacobian instead of
estimating it by finite differences.
"""

import threading
import time
from typing import TYPE_CHECKING, Optional

import numpy as np
from scipy.integrate import solve_ivp

from contflows.systems.base.numerical_integration.integrator_base import (
    IntegratorBase,
    StepMode,
)
from contflows.types.core import ScalarLike, StateVector
from contflows.types.trajectories import IntegrationResult, TimePoints, TimeSpan

if TYPE_CHECKING:
    from contflows.systems.base.core.continuous_flow_base import ContinuousFlowBase


class ScipyIntegrator(IntegratorBase):
    """
    Adaptive integrator using scipy.integrate.solve_ivp.

    Key Features:
    - Automatic step size adaptation
    - Error control (rtol, atol)
    - Dense output (interpolated solution)
    - Stiff solvers with analytic Jacobian

    Available Methods:
    ------------------
    **Explicit (Non-Stiff):**
    - 'RK45': Dormand-Prince 5(4) [DEFAULT]
    - 'RK23': Bogacki-Shampine 3(2)
    - 'DOP853': Dormand-Prince 8(5,3)

    **Implicit (Stiff):**
    - 'Radau': Implicit Runge-Kutta, order 5
    - 'BDF': Backward Differentiation Formula, variable order (1-5)

    **Automatic:**
    - 'LSODA': Switches between Adams (non-stiff) and BDF (stiff)

    Examples
    --------
    >>> integrator = ScipyIntegrator(flow, method='RK45', rtol=1e-8, atol=1e-10)
    >>> result = integrator.integrate(np.array([1.0, 0.0]), (0.0, 10.0))
    >>> print(f"Adaptive steps: {result['nsteps']}")
    >>>
    >>> # Dense output for interpolation
    >>> result = integrator.integrate(x0, (0, 10), dense_output=True)
    >>> x_at_5_5 = result["sol"](5.5)
    """

    EXPLICIT_METHODS = ["RK45", "RK23", "DOP853"]
    IMPLICIT_METHODS = ["Radau", "BDF", "LSODA"]

    def __init__(
        self,
        flow: "ContinuousFlowBase",
        dt: Optional[ScalarLike] = None,
        method: str = "RK45",
        **options,
    ):
        """
        Initialize scipy adaptive integrator.

        Parameters
        ----------
        flow : ContinuousFlowBase
            Flow to integrate
        dt : Optional[float]
            Unused by adaptive methods, kept for API consistency
        method : str
            Solver method: 'RK45', 'RK23', 'DOP853', 'Radau', 'BDF', 'LSODA'
        **options : dict
            Solver options:
            - rtol: Relative tolerance (default: 1e-6)
            - atol: Absolute tolerance (default: 1e-8)
            - max_step: Maximum step size (default: inf)
            - first_step: Initial step size (default: auto)

        Raises
        ------
        ValueError
            If method is unknown
        """
        super().__init__(flow, dt, StepMode.ADAPTIVE, **options)

        valid_methods = self.EXPLICIT_METHODS + self.IMPLICIT_METHODS
        if method not in valid_methods:
            raise ValueError(f"Invalid method '{method}'. Choose from: {valid_methods}")

        self.method = method

    def step(self, t: ScalarLike, x: StateVector, dt: Optional[ScalarLike] = None) -> StateVector:
        """
        Take one integration step (uses integrate() internally).

        Integrates from t to t + dt with adaptive stepping internally and
        returns the final state. Less efficient than integrate() for many
        steps because the solver is restarted each time.
        """
        dt = dt if dt is not None else (self.dt or self.flow.dt)
        result = self.integrate(x, (float(t), float(t) + float(dt)))
        return result["x"][-1]

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
        Integrate using scipy.solve_ivp with adaptive stepping.

        Parameters
        ----------
        x0 : StateVector
            Initial state (nx,)
        t_span : Tuple[float, float]
            Integration interval (t_start, t_end)
        t_eval : Optional[ArrayLike]
            Specific times at which to store solution
            If None, solver chooses time points automatically
        dense_output : bool
            If True, compute continuous solution (allows interpolation)
        deadline : Optional[float]
            Absolute time.monotonic() deadline
        cancel_event : Optional[threading.Event]
            Cooperative cancellation flag

        Returns
        -------
        IntegrationResult
            TypedDict containing:
            - t: Time points (T,)
            - x: State trajectory (T, nx) - time-major ordering
            - success, message, nfev, nsteps, integration_time, solver
            - njev, nlu, status: solver diagnostics
            - sol: Dense output object (if dense_output=True)
            - dense_output: True (if dense_output=True)

        Raises
        ------
        IntegrationTimeoutError, IntegrationCancelledError
            Propagated from the right-hand side when interrupted
        """
        start_time = time.time()
        self._begin(deadline, cancel_event)

        def ode_func(t: float, x: np.ndarray) -> np.ndarray:
            """Vector field in scipy's signature: f(t, x) -> dx/dt"""
            return self._evaluate_dynamics(t, x)

        kwargs = {}
        if self.method in self.IMPLICIT_METHODS:
            kwargs["jac"] = self._evaluate_jacobian

        first_step = self.options.get("first_step", None)
        if first_step is not None:
            kwargs["first_step"] = first_step

        sol = solve_ivp(
            fun=ode_func,
            t_span=(float(t_span[0]), float(t_span[1])),
            y0=np.asarray(x0, dtype=float),
            method=self.method,
            t_eval=t_eval,
            dense_output=dense_output,
            rtol=self.rtol,
            atol=self.atol,
            max_step=self.options.get("max_step", np.inf),
            **kwargs,
        )

        elapsed = time.time() - start_time
        self._stats["total_time"] += elapsed
        self._stats["total_steps"] += sol.nfev  # Approximate

        result: IntegrationResult = {
            "t": sol.t,
            "x": sol.y.T,  # scipy returns (nx, T), we want (T, nx)
            "success": bool(sol.success),
            "message": sol.message,
            "nfev": sol.nfev,
            "nsteps": sol.nfev,  # scipy doesn't track steps separately
            "integration_time": elapsed,
            "solver": self.name,
        }

        if hasattr(sol, "njev"):
            result["njev"] = sol.njev

        if hasattr(sol, "nlu"):
            result["nlu"] = sol.nlu

        if hasattr(sol, "status"):
            result["status"] = sol.status

        if dense_output and getattr(sol, "sol", None) is not None:
            result["sol"] = sol.sol
            result["dense_output"] = True

        return result

    @property
    def name(self) -> str:
        stiff_indicator = " (Stiff)" if self.method in ["Radau", "BDF"] else ""
        auto_indicator = " (Auto-Stiffness)" if self.method == "LSODA" else ""
        return f"scipy.{self.method}{stiff_indicator}{auto_indicator}"

    def __repr__(self) -> str:
        return (
            f"ScipyIntegrator(method='{self.method}', "
            f"rtol={self.rtol:.1e}, atol={self.atol:.1e})"
        )
