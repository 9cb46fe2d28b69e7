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
ODE Flow - Flow Map by Numerical Integration
============================================

ODEFlow turns any vector field into a flow map: each initial condition
(column of x0) is integrated independently over [t0, t0 + T] by the
configured integrator, with dense output evaluated on the uniform grid
t0 + k*dt when full trajectories are requested.

Failures are reported per trajectory. flow() and trajectory() fail the
whole call on the first failed column; integrate_batch() can instead fill
failed columns with NaN and return the exceptions alongside.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

import numpy as np

from contflows.systems.base.core.continuous_flow_base import ContinuousFlowBase
from contflows.systems.base.numerical_integration.integrator_base import (
    IntegrationError,
    IntegratorBase,
    InvalidInitialStateError,
    NonConvergenceError,
)
from contflows.systems.base.numerical_integration.integrator_factory import (
    IntegratorFactory,
)
from contflows.systems.base.utils.flow_validator import ValidationError, as_state_batch
from contflows.types.core import ArrayLike, ScalarLike, StateBatch
from contflows.types.trajectories import FlowResult, StateTrajectory, TimePoints


def time_grid(t0: float, T: float, dt: float) -> np.ndarray:
    """
    Uniform output grid t0, t0 + dt, ... up to t0 + T.

    The last point may fall short of t0 + T when dt does not divide T.
    Negative T gives a decreasing grid with step -dt.

    Examples
    --------
    >>> time_grid(0.0, 1.0, 0.3)
    array([0. , 0.3, 0.6, 0.9])
    """
    n = int(np.floor(abs(T) / dt + 1e-9)) + 1
    return t0 + np.sign(T) * dt * np.arange(n)


class ODEFlow(ContinuousFlowBase):
    """
    Flow of an ODE computed by numerical integration.

    Subclasses supply vf() and jacobian(); flow(), trajectory() and
    integrate_batch() are provided.

    Solver Configuration
    --------------------
    method : str
        'RK45' (default), 'RK23', 'DOP853', 'Radau', 'BDF', 'LSODA',
        or fixed-step 'euler', 'midpoint', 'rk4'
    rtol, atol : float
        Tolerances of adaptive methods (default 1e-6, 1e-8)
    max_step, first_step : float
        Step bounds of adaptive methods
    step : float
        Step of fixed-step methods (default: dt)
    workers : int
        Integrate columns in a thread pool when > 1
    timeout : float
        Per-trajectory time limit in seconds

    Examples
    --------
    >>> flow = Harmonic2D(method='DOP853', rtol=1e-10, atol=1e-12)
    >>> x0 = flow.sample_domain_grid(5)
    >>> xT = flow.flow(x0, T=2 * np.pi)
    >>> np.allclose(xT, x0, atol=1e-8)
    True
    >>>
    >>> result = flow.integrate_batch(x0, T=10.0, full_trajectory=True)
    >>> result["x"].shape, result["success"].all()
    ((2, 101, 25), True)
    """

    def __init__(
        self,
        domain: ArrayLike,
        dt: ScalarLike = 0.1,
        label: str = "FLOWNAME",
        quiet: bool = True,
        method: str = "RK45",
        workers: int = 1,
        timeout: Optional[float] = None,
        **integrator_options,
    ):
        """
        Parameters
        ----------
        domain, dt, label, quiet
            See ContinuousFlowBase
        method : str
            Integration method
        workers : int
            Number of threads for batch integration
        timeout : Optional[float]
            Per-trajectory time limit in seconds
        **integrator_options
            rtol, atol, max_step, first_step, step

        Raises
        ------
        ValueError
            If the method is unknown, or workers/timeout are out of range
        """
        super().__init__(domain, dt=dt, label=label, quiet=quiet)

        if int(workers) != workers or workers < 1:
            raise ValueError(f"workers must be a positive integer, got {workers}")
        if timeout is not None and not timeout > 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        self.method = method
        self.workers = int(workers)
        self.timeout = timeout
        self.integrator_options = dict(integrator_options)

        # Fails early on an unknown method or bad option
        self._last_integrators = [self.create_integrator()]

    def create_integrator(self) -> IntegratorBase:
        """Fresh integrator configured with this flow's solver options."""
        return IntegratorFactory.create(self, self.method, **self.integrator_options)

    def get_integration_stats(self) -> dict:
        """
        Statistics of the most recent call, summed over its integrators.

        Parallel batches use one integrator per column; the counters
        of all of them are added up.
        """
        stats = [integ.get_stats() for integ in self._last_integrators]
        totals = {
            key: sum(s[key] for s in stats)
            for key in ("total_steps", "total_fev", "total_jev", "total_time")
        }
        totals["avg_fev_per_step"] = totals["total_fev"] / max(1, totals["total_steps"])
        return totals

    def reset_integration_stats(self) -> None:
        """Zero the counters reported by get_integration_stats()."""
        for integ in self._last_integrators:
            integ.reset_stats()

    # =========================================================================
    # Flow Map
    # =========================================================================

    def flow(self, x0: ArrayLike, T: ScalarLike, t0: ScalarLike = 0.0) -> StateBatch:
        """
        Final states x(t0 + T), shaped like x0.

        Raises
        ------
        ValidationError
            If x0 does not have nx rows
        IntegrationError
            On the first trajectory that fails
        """
        single = np.ndim(x0) == 1
        result = self.integrate_batch(x0, T, t0, full_trajectory=False, raise_on_failure=True)
        return result["x"][:, 0] if single else result["x"]

    def trajectory(
        self, x0: ArrayLike, T: ScalarLike, t0: ScalarLike = 0.0
    ) -> Tuple[StateTrajectory, TimePoints]:
        """
        Trajectories sampled at t0 + k*dt.

        Returns
        -------
        x : StateTrajectory
            (nx, L, N)
        t : TimePoints
            (L,), L = floor(|T|/dt) + 1

        Raises
        ------
        IntegrationError
            On the first trajectory that fails
        """
        result = self.integrate_batch(x0, T, t0, full_trajectory=True, raise_on_failure=True)
        return result["x"], result["t"]

    def integrate_batch(
        self,
        x0: ArrayLike,
        T: ScalarLike,
        t0: ScalarLike = 0.0,
        full_trajectory: bool = False,
        raise_on_failure: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> FlowResult:
        """
        Integrate every column of x0 independently.

        Parameters
        ----------
        x0 : ArrayLike
            Initial conditions (nx, N) or (nx,)
        T : float
            Duration, negative for backward integration
        t0 : float
            Initial time
        full_trajectory : bool
            Return trajectories on the dt grid instead of final states
        raise_on_failure : bool
            Raise the first IntegrationError instead of recording it
        cancel_event : Optional[threading.Event]
            Aborts running and pending trajectories once set

        Returns
        -------
        FlowResult
            x (nx, N) or (nx, L, N), t, per-trajectory success and errors

        Raises
        ------
        ValidationError
            If x0 does not have nx rows, or T or t0 is not finite
        IntegrationError
            Only with raise_on_failure=True
        """
        start_time = time.time()
        x0 = as_state_batch(x0, nx=self.nx, name="x0")
        T, t0 = float(T), float(t0)
        if not (np.isfinite(T) and np.isfinite(t0)):
            raise ValidationError(f"T and t0 must be finite, got T={T}, t0={t0}")
        n = x0.shape[1]

        t_grid = time_grid(t0, T, self.dt) if full_trajectory else None
        shape = (self.nx, len(t_grid), n) if full_trajectory else (self.nx, n)
        x_out = np.full(shape, np.nan)
        success = np.zeros(n, dtype=bool)
        errors: List[Optional[IntegrationError]] = [None] * n

        if T == 0:
            if full_trajectory:
                x_out[:, 0, :] = x0
            else:
                x_out[:] = x0
            success[:] = True
            return self._result(x_out, t_grid, success, errors, 0, start_time, "identity")

        parallel = self.workers > 1 and n > 1
        # Integrators keep per-call state, so parallel columns get their own
        integrators = [self.create_integrator() for _ in range(n if parallel else 1)]

        def run(i: int, integrator: IntegratorBase) -> None:
            try:
                x_out[..., i] = self._integrate_column(
                    integrator, x0[:, i], t0, T, t_grid, cancel_event
                )
                success[i] = True
            except IntegrationError as e:
                e.column = i
                errors[i] = e
                if raise_on_failure:
                    raise

        if parallel:
            with ThreadPoolExecutor(max_workers=min(self.workers, n)) as pool:
                futures = [pool.submit(run, i, integrators[i]) for i in range(n)]
                try:
                    for future in futures:
                        future.result()
                except IntegrationError:
                    for future in futures:
                        future.cancel()
                    raise
        else:
            for i in range(n):
                run(i, integrators[0])

        self._last_integrators = integrators
        nfev = sum(integ.get_stats()["total_fev"] for integ in integrators)

        if not self.quiet:
            print(
                f"{self.label}: integrated {n} trajectories over T={T:g} "
                f"({int(success.sum())} ok, {nfev} evaluations, "
                f"{time.time() - start_time:.3f}s)"
            )

        return self._result(x_out, t_grid, success, errors, nfev, start_time, integrators[0].name)

    def _integrate_column(
        self,
        integrator: IntegratorBase,
        x0: np.ndarray,
        t0: float,
        T: float,
        t_grid: Optional[np.ndarray],
        cancel_event: Optional[threading.Event],
    ) -> np.ndarray:
        """One trajectory: final state (nx,) or samples on t_grid (nx, L)."""
        if not np.all(np.isfinite(x0)):
            raise InvalidInitialStateError(f"Initial state must be finite, got {x0}")

        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        result = integrator.integrate(
            x0,
            (t0, t0 + T),
            dense_output=t_grid is not None,
            deadline=deadline,
            cancel_event=cancel_event,
        )

        if not result["success"]:
            raise NonConvergenceError(
                f"{result['solver']} failed: {result['message']}",
                solver_message=str(result["message"]),
            )

        if t_grid is None:
            x_final = np.asarray(result["x"][-1], dtype=float)
        else:
            x_final = np.asarray(result["sol"](t_grid), dtype=float).reshape(self.nx, -1)

        if not np.all(np.isfinite(x_final)):
            raise NonConvergenceError(
                f"{result['solver']} produced non-finite states",
                solver_message=str(result["message"]),
            )
        return x_final

    def _result(self, x, t, success, errors, nfev, start_time, solver) -> FlowResult:
        return {
            "x": x,
            "t": t,
            "success": success,
            "errors": errors,
            "nfev": int(nfev),
            "integration_time": time.time() - start_time,
            "solver": solver,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(nx={self.nx}, dt={self.dt}, "
            f"method='{self.method}', label='{self.label}')"
        )
