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
Unit Tests for IntegratorBase
=============================

Tests the abstract base class for flow integrators, including:
1. StepMode enum definitions
2. IntegrationError hierarchy
3. Abstract interface enforcement
4. Initialization and validation
5. Interruption (deadline and cancellation)
6. Statistics tracking
7. String representations
"""

import threading
import time

import numpy as np
import pytest

from contflows.systems.base.numerical_integration.integrator_base import (
    IntegrationCancelledError,
    IntegrationError,
    IntegrationTimeoutError,
    IntegratorBase,
    InvalidInitialStateError,
    NonConvergenceError,
    StepMode,
)

# ============================================================================
# Mock Flows and Integrators
# ============================================================================


class MockFlow:
    """dx/dt = -x with Jacobian -I, batched over columns."""

    def __init__(self, nx=2, dt=0.1):
        self.nx = nx
        self.dt = dt
        self.vf_calls = 0

    def vf(self, t, x):
        self.vf_calls += 1
        return -np.asarray(x)

    def jacobian(self, t, x):
        x = np.asarray(x)
        return -np.repeat(np.eye(self.nx)[:, :, np.newaxis], x.shape[1], axis=2)


class MinimalIntegrator(IntegratorBase):
    """Euler steps, enough to exercise the base class."""

    def step(self, t, x, dt=None):
        dt = dt if dt is not None else self.dt
        self._stats["total_steps"] += 1
        return x + dt * self._evaluate_dynamics(t, x)

    def integrate(
        self, x0, t_span, t_eval=None, dense_output=False, deadline=None, cancel_event=None
    ):
        self._begin(deadline, cancel_event)
        t0, tf = t_span
        n = int(round((tf - t0) / self.dt))
        x = np.asarray(x0, dtype=float)
        states = [x]
        for k in range(n):
            x = self.step(t0 + k * self.dt, x)
            states.append(x)
        return {
            "t": t0 + self.dt * np.arange(n + 1),
            "x": np.stack(states),
            "success": True,
            "message": "ok",
            "nfev": n,
            "nsteps": n,
            "integration_time": 0.0,
            "solver": self.name,
        }

    @property
    def name(self):
        return "Minimal"


# ============================================================================
# Test Class 1: StepMode
# ============================================================================


class TestStepMode:
    """Test StepMode enum"""

    def test_values(self):
        assert StepMode.FIXED.value == "fixed"
        assert StepMode.ADAPTIVE.value == "adaptive"

    def test_members_distinct(self):
        assert StepMode.FIXED != StepMode.ADAPTIVE


# ============================================================================
# Test Class 2: Error Hierarchy
# ============================================================================


class TestIntegrationErrors:
    """Test the IntegrationError hierarchy"""

    @pytest.mark.parametrize(
        "error_class",
        [
            InvalidInitialStateError,
            NonConvergenceError,
            IntegrationTimeoutError,
            IntegrationCancelledError,
        ],
    )
    def test_subclasses_share_root(self, error_class):
        assert issubclass(error_class, IntegrationError)
        assert issubclass(error_class, RuntimeError)

    def test_column_defaults_to_none(self):
        error = IntegrationError("failed")
        assert error.column is None
        assert str(error) == "failed"

    def test_column_in_message(self):
        error = IntegrationError("failed", column=3)
        assert str(error) == "failed (trajectory 3)"

    def test_column_assigned_later(self):
        error = IntegrationTimeoutError("too slow")
        error.column = 7
        assert "(trajectory 7)" in str(error)

    def test_non_convergence_carries_solver_message(self):
        error = NonConvergenceError("solver failed", solver_message="Required step size is less")
        assert error.solver_message == "Required step size is less"
        assert error.column is None


# ============================================================================
# Test Class 3: Abstract Interface
# ============================================================================


class TestAbstractInterface:
    """Test that IntegratorBase cannot be used directly"""

    def test_cannot_instantiate_base(self):
        with pytest.raises(TypeError):
            IntegratorBase(MockFlow())

    def test_missing_name_is_abstract(self):
        class NoName(IntegratorBase):
            def step(self, t, x, dt=None):
                return x

            def integrate(self, x0, t_span, **kwargs):
                return {}

        with pytest.raises(TypeError):
            NoName(MockFlow())


# ============================================================================
# Test Class 4: Initialization
# ============================================================================


class TestInitialization:
    """Test initialization and validation"""

    def test_fixed_mode_defaults_to_flow_dt(self):
        integrator = MinimalIntegrator(MockFlow(dt=0.25))
        assert integrator.dt == 0.25
        assert integrator.step_mode == StepMode.FIXED

    def test_explicit_dt(self):
        integrator = MinimalIntegrator(MockFlow(), dt=0.01)
        assert integrator.dt == 0.01

    def test_adaptive_mode_keeps_dt_none(self):
        integrator = MinimalIntegrator(MockFlow(), step_mode=StepMode.ADAPTIVE)
        assert integrator.dt is None

    def test_default_tolerances(self):
        integrator = MinimalIntegrator(MockFlow())
        assert integrator.rtol == 1e-6
        assert integrator.atol == 1e-8

    def test_custom_tolerances(self):
        integrator = MinimalIntegrator(MockFlow(), rtol=1e-9, atol=1e-12)
        assert integrator.rtol == 1e-9
        assert integrator.atol == 1e-12

    @pytest.mark.parametrize("dt", [0.0, -0.1])
    def test_non_positive_dt_rejected(self, dt):
        with pytest.raises(ValueError, match="dt must be positive"):
            MinimalIntegrator(MockFlow(), dt=dt)

    def test_non_positive_tolerance_rejected(self):
        with pytest.raises(ValueError, match="Tolerances must be positive"):
            MinimalIntegrator(MockFlow(), rtol=0.0)


# ============================================================================
# Test Class 5: Interruption
# ============================================================================


class TestInterruption:
    """Test deadline and cancellation checks"""

    def test_cancel_event_set_before_start(self):
        integrator = MinimalIntegrator(MockFlow(), dt=0.1)
        event = threading.Event()
        event.set()

        with pytest.raises(IntegrationCancelledError, match="cancelled"):
            integrator.integrate(np.ones(2), (0.0, 1.0), cancel_event=event)

    def test_expired_deadline(self):
        integrator = MinimalIntegrator(MockFlow(), dt=0.1)
        deadline = time.monotonic() - 1.0

        with pytest.raises(IntegrationTimeoutError, match="time limit"):
            integrator.integrate(np.ones(2), (0.0, 1.0), deadline=deadline)

    def test_cancel_during_integration(self):
        flow = MockFlow()
        event = threading.Event()
        original_vf = flow.vf

        def vf(t, x):
            if flow.vf_calls >= 3:
                event.set()
            return original_vf(t, x)

        flow.vf = vf
        integrator = MinimalIntegrator(flow, dt=0.1)

        with pytest.raises(IntegrationCancelledError):
            integrator.integrate(np.ones(2), (0.0, 1.0), cancel_event=event)
        assert flow.vf_calls < 10

    def test_unset_event_does_not_interrupt(self):
        integrator = MinimalIntegrator(MockFlow(), dt=0.1)
        result = integrator.integrate(
            np.ones(2), (0.0, 1.0), cancel_event=threading.Event(), deadline=time.monotonic() + 60
        )
        assert result["success"]


# ============================================================================
# Test Class 6: Evaluation and Statistics
# ============================================================================


class TestEvaluationAndStats:
    """Test single-point evaluation helpers and counters"""

    def test_evaluate_dynamics_returns_vector(self):
        integrator = MinimalIntegrator(MockFlow())
        f = integrator._evaluate_dynamics(0.0, np.array([1.0, 2.0]))
        assert f.shape == (2,)
        np.testing.assert_allclose(f, [-1.0, -2.0])

    def test_evaluate_jacobian_returns_matrix(self):
        integrator = MinimalIntegrator(MockFlow())
        J = integrator._evaluate_jacobian(0.0, np.array([1.0, 2.0]))
        assert J.shape == (2, 2)
        np.testing.assert_allclose(J, -np.eye(2))

    def test_stats_count_evaluations(self):
        integrator = MinimalIntegrator(MockFlow(), dt=0.1)
        integrator.integrate(np.ones(2), (0.0, 1.0))
        stats = integrator.get_stats()

        assert stats["total_fev"] == 10
        assert stats["total_steps"] == 10
        assert stats["avg_fev_per_step"] == pytest.approx(1.0)

    def test_jacobian_evaluations_counted(self):
        integrator = MinimalIntegrator(MockFlow())
        integrator._evaluate_jacobian(0.0, np.ones(2))
        assert integrator.get_stats()["total_jev"] == 1

    def test_reset_stats(self):
        integrator = MinimalIntegrator(MockFlow(), dt=0.1)
        integrator.integrate(np.ones(2), (0.0, 1.0))
        integrator.reset_stats()
        stats = integrator.get_stats()

        assert stats["total_fev"] == 0
        assert stats["total_steps"] == 0
        assert stats["total_jev"] == 0
        assert stats["total_time"] == 0.0


# ============================================================================
# Test Class 7: String Representations
# ============================================================================


class TestStringRepresentations:
    def test_repr(self):
        integrator = MinimalIntegrator(MockFlow(), dt=0.1)
        assert repr(integrator) == "MinimalIntegrator(dt=0.1, mode=fixed)"

    def test_str_with_dt(self):
        integrator = MinimalIntegrator(MockFlow(), dt=0.1)
        assert str(integrator) == "Minimal (dt=0.1000)"

    def test_str_without_dt(self):
        integrator = MinimalIntegrator(MockFlow(), step_mode=StepMode.ADAPTIVE)
        assert str(integrator) == "Minimal"
