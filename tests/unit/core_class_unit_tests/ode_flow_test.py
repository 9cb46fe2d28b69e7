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
Unit Tests for ODEFlow

Tests cover:
1. Output time grid
2. Flow map and trajectories against analytic solutions
3. Identity for T == 0 and backward integration
4. Per-trajectory failures
5. Thread-pool batches, timeouts and cancellation
6. Solver configuration
"""

import threading
import time

import numpy as np
import pytest

from contflows.systems.base.core.ode_flow import ODEFlow, time_grid
from contflows.systems.base.numerical_integration.integrator_base import (
    IntegrationCancelledError,
    IntegrationError,
    IntegrationTimeoutError,
    InvalidInitialStateError,
    NonConvergenceError,
)
from contflows.systems.base.utils.flow_validator import ValidationError

# ============================================================================
# Mock Flows
# ============================================================================


class RotationFlow(ODEFlow):
    """dx/dt = -y, dy/dt = x; counter-clockwise rotation with period 2*pi"""

    def vf(self, t, x):
        x = np.asarray(x, dtype=float)
        return np.vstack([-x[1], x[0]])

    def jacobian(self, t, x):
        n = np.asarray(x).shape[1]
        J = np.zeros((2, 2, n))
        J[0, 1] = -1.0
        J[1, 0] = 1.0
        return J


class BlowUpFlow(ODEFlow):
    """dx/dt = x**2, x(t) = x0 / (1 - x0*t)"""

    def vf(self, t, x):
        return np.asarray(x, dtype=float) ** 2

    def jacobian(self, t, x):
        return (2 * np.asarray(x, dtype=float))[np.newaxis]


class SlowRotationFlow(RotationFlow):
    def vf(self, t, x):
        time.sleep(0.002)
        return super().vf(t, x)


def make_rotation(**kwargs):
    kwargs.setdefault("method", "DOP853")
    kwargs.setdefault("rtol", 1e-10)
    kwargs.setdefault("atol", 1e-12)
    return RotationFlow(domain=[[-1, 1], [-1, 1]], dt=0.1, label="Rotation", **kwargs)


def exact_rotation(x0, T):
    c, s = np.cos(T), np.sin(T)
    return np.array([[c, -s], [s, c]]) @ x0


# ============================================================================
# Test Class 1: Time Grid
# ============================================================================


class TestTimeGrid:
    def test_divisible(self):
        t = time_grid(0.0, 1.0, 0.1)
        assert len(t) == 11
        assert t[-1] == pytest.approx(1.0)

    def test_not_divisible_stops_short(self):
        np.testing.assert_allclose(time_grid(0.0, 1.0, 0.3), [0.0, 0.3, 0.6, 0.9])

    def test_offset_start(self):
        np.testing.assert_allclose(time_grid(2.0, 0.5, 0.25), [2.0, 2.25, 2.5])

    def test_backward(self):
        np.testing.assert_allclose(time_grid(1.0, -0.5, 0.1), [1.0, 0.9, 0.8, 0.7, 0.6, 0.5])

    def test_zero_duration(self):
        np.testing.assert_array_equal(time_grid(3.0, 0.0, 0.1), [3.0])


# ============================================================================
# Test Class 2: Flow Map and Trajectories
# ============================================================================


class TestFlowMap:
    def test_full_period_returns_to_start(self):
        flow = make_rotation()
        x0 = flow.sample_domain_grid(4)
        np.testing.assert_allclose(flow.flow(x0, 2 * np.pi), x0, atol=1e-8)

    def test_quarter_turn(self):
        flow = make_rotation()
        x0 = np.array([[1.0, 0.5], [0.0, 0.5]])
        np.testing.assert_allclose(flow.flow(x0, np.pi / 2), exact_rotation(x0, np.pi / 2), atol=1e-8)

    def test_single_point_keeps_shape(self):
        xT = make_rotation().flow(np.array([1.0, 0.0]), 1.0)
        assert xT.shape == (2,)
        np.testing.assert_allclose(xT, [np.cos(1.0), np.sin(1.0)], atol=1e-8)

    def test_initial_time_ignored_by_autonomous_field(self):
        flow = make_rotation()
        x0 = np.array([[1.0], [0.0]])
        np.testing.assert_allclose(flow.flow(x0, 1.0, t0=5.0), flow.flow(x0, 1.0), atol=1e-9)

    def test_backward_integration(self):
        xT = make_rotation().flow(np.array([1.0, 0.0]), -np.pi / 2)
        np.testing.assert_allclose(xT, [0.0, -1.0], atol=1e-8)

    def test_wrong_rows(self):
        with pytest.raises(ValidationError, match="x0 must have 2 rows"):
            make_rotation().flow(np.zeros((3, 2)), 1.0)

    @pytest.mark.parametrize("T", [np.nan, np.inf, -np.inf])
    def test_non_finite_duration_rejected(self, T):
        with pytest.raises(ValidationError, match="T and t0 must be finite"):
            make_rotation().flow(np.array([1.0, 0.0]), T)

    @pytest.mark.parametrize("t0", [np.nan, np.inf])
    def test_non_finite_start_time_rejected(self, t0):
        with pytest.raises(ValidationError, match="T and t0 must be finite"):
            make_rotation().flow(np.array([1.0, 0.0]), 1.0, t0=t0)

    def test_non_finite_trajectory_duration_rejected(self):
        with pytest.raises(ValidationError, match="T and t0 must be finite"):
            make_rotation().trajectory(np.array([1.0, 0.0]), np.nan)

    def test_trajectory_shapes(self):
        flow = make_rotation()
        x, t = flow.trajectory(np.zeros((2, 3)), T=1.0)
        assert x.shape == (2, 11, 3)
        assert t.shape == (11,)

    def test_trajectory_values(self):
        flow = make_rotation()
        x, t = flow.trajectory(np.array([[1.0], [0.0]]), T=2.0, t0=1.0)

        assert t[0] == 1.0
        assert t[-1] == pytest.approx(3.0)
        np.testing.assert_allclose(x[0, :, 0], np.cos(t - 1.0), atol=1e-8)
        np.testing.assert_allclose(x[1, :, 0], np.sin(t - 1.0), atol=1e-8)

    def test_trajectory_starts_at_x0(self):
        x0 = np.array([[0.3, -0.2], [0.1, 0.9]])
        x, _ = make_rotation().trajectory(x0, T=0.5)
        np.testing.assert_allclose(x[:, 0, :], x0, atol=1e-12)

    def test_backward_trajectory(self):
        x, t = make_rotation().trajectory(np.array([[1.0], [0.0]]), T=-1.0)
        assert np.all(np.diff(t) < 0)
        np.testing.assert_allclose(x[1, -1, 0], np.sin(-1.0), atol=1e-8)

    def test_fixed_step_method(self):
        flow = RotationFlow(domain=[[-1, 1], [-1, 1]], dt=0.1, method="rk4", step=0.001)
        x, t = flow.trajectory(np.array([[1.0], [0.0]]), T=1.0)
        np.testing.assert_allclose(x[0, :, 0], np.cos(t), atol=1e-9)


# ============================================================================
# Test Class 3: Zero Duration
# ============================================================================


class TestZeroDuration:
    def test_flow_identity(self):
        x0 = np.array([[0.1, 0.2], [0.3, 0.4]])
        np.testing.assert_array_equal(make_rotation().flow(x0, 0.0), x0)

    def test_batch_reports_identity(self):
        result = make_rotation().integrate_batch(np.zeros((2, 3)), 0.0)
        assert result["solver"] == "identity"
        assert result["nfev"] == 0
        assert result["success"].all()

    def test_trajectory_single_sample(self):
        x0 = np.array([[0.1], [0.3]])
        x, t = make_rotation().trajectory(x0, 0.0, t0=2.0)
        assert x.shape == (2, 1, 1)
        np.testing.assert_array_equal(t, [2.0])
        np.testing.assert_array_equal(x[:, 0, :], x0)


# ============================================================================
# Test Class 4: Failures
# ============================================================================


class TestFailures:
    def test_non_finite_initial_state_isolated(self):
        x0 = np.array([[1.0, np.nan], [0.0, 0.0]])
        result = make_rotation().integrate_batch(x0, 1.0)

        np.testing.assert_array_equal(result["success"], [True, False])
        assert result["errors"][0] is None
        assert isinstance(result["errors"][1], InvalidInitialStateError)
        assert result["errors"][1].column == 1
        assert np.all(np.isnan(result["x"][:, 1]))
        np.testing.assert_allclose(result["x"][:, 0], [np.cos(1.0), np.sin(1.0)], atol=1e-8)

    def test_flow_raises_on_failed_column(self):
        x0 = np.array([[1.0, np.inf], [0.0, 0.0]])
        with pytest.raises(InvalidInitialStateError, match="trajectory 1"):
            make_rotation().flow(x0, 1.0)

    def test_batch_raise_on_failure(self):
        with pytest.raises(IntegrationError):
            make_rotation().integrate_batch(np.array([[np.nan], [0.0]]), 1.0, raise_on_failure=True)

    def test_solver_failure(self):
        flow = BlowUpFlow(domain=[[0, 2]], dt=0.1)
        with np.errstate(over="ignore", invalid="ignore"):
            result = flow.integrate_batch(np.array([[1.0, -1.0]]), 2.0)

        np.testing.assert_array_equal(result["success"], [False, True])
        assert isinstance(result["errors"][0], NonConvergenceError)
        assert result["x"][0, 1] == pytest.approx(-1.0 / 3.0, rel=1e-4)


# ============================================================================
# Test Class 5: Workers, Timeouts and Cancellation
# ============================================================================


class TestConcurrency:
    def test_workers_match_serial(self):
        x0 = np.random.default_rng(0).uniform(-1, 1, (2, 6))
        serial = make_rotation().flow(x0, 3.0)
        parallel = make_rotation(workers=3).flow(x0, 3.0)
        np.testing.assert_allclose(parallel, serial, atol=1e-12)

    def test_workers_trajectories(self):
        x0 = np.zeros((2, 4))
        x0[0] = 1.0
        x, _ = make_rotation(workers=2).trajectory(x0, 1.0)
        assert x.shape == (2, 11, 4)
        np.testing.assert_allclose(x[0, -1], np.cos(1.0), atol=1e-8)

    def test_workers_isolate_failures(self):
        x0 = np.array([[1.0, np.nan, 0.5], [0.0, 0.0, 0.5]])
        result = make_rotation(workers=2).integrate_batch(x0, 1.0)
        np.testing.assert_array_equal(result["success"], [True, False, True])

    def test_timeout(self):
        flow = SlowRotationFlow(domain=[[-1, 1], [-1, 1]], timeout=0.02)
        result = flow.integrate_batch(np.array([[1.0], [0.0]]), 1000.0)

        assert not result["success"][0]
        assert isinstance(result["errors"][0], IntegrationTimeoutError)

    def test_cancel_event(self):
        cancel = threading.Event()
        cancel.set()
        result = make_rotation().integrate_batch(np.zeros((2, 2)), 1.0, cancel_event=cancel)

        assert not result["success"].any()
        assert all(isinstance(e, IntegrationCancelledError) for e in result["errors"])

    def test_cancelled_trajectory_raises_in_flow(self):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(IntegrationCancelledError):
            make_rotation().integrate_batch(
                np.zeros((2, 1)), 1.0, raise_on_failure=True, cancel_event=cancel
            )


# ============================================================================
# Test Class 6: Configuration and Reporting
# ============================================================================


class TestConfiguration:
    def test_default_method(self):
        flow = RotationFlow(domain=[[-1, 1], [-1, 1]])
        assert flow.method == "RK45"
        result = flow.integrate_batch(np.array([[1.0], [0.0]]), 1.0)
        assert result["solver"] == "scipy.RK45"
        assert result["nfev"] > 0

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown integration method"):
            RotationFlow(domain=[[-1, 1], [-1, 1]], method="Heun")

    @pytest.mark.parametrize("workers", [0, 1.5, -2])
    def test_invalid_workers(self, workers):
        with pytest.raises(ValueError, match="workers"):
            RotationFlow(domain=[[-1, 1], [-1, 1]], workers=workers)

    def test_invalid_timeout(self):
        with pytest.raises(ValueError, match="timeout"):
            RotationFlow(domain=[[-1, 1], [-1, 1]], timeout=0.0)

    def test_misspelled_solver_option_fails_at_construction(self):
        with pytest.raises(ValueError, match="Unknown integrator option"):
            RotationFlow(domain=[[-1, 1], [-1, 1]], rtoll=1e-8)

    def test_integration_stats(self):
        flow = make_rotation()
        flow.flow(np.array([1.0, 0.0]), 1.0)
        stats = flow.get_integration_stats()
        assert stats["total_fev"] > 0

    def test_parallel_stats_cover_every_column(self):
        flow = make_rotation(workers=3)
        result = flow.integrate_batch(np.array([[1.0, 0.0, 0.5], [0.0, 1.0, 0.5]]), 1.0)
        stats = flow.get_integration_stats()
        assert stats["total_fev"] == result["nfev"]

        single = make_rotation()
        single_nfev = single.integrate_batch(np.array([[1.0], [0.0]]), 1.0)["nfev"]
        assert stats["total_fev"] > single_nfev

    def test_reset_integration_stats(self):
        flow = make_rotation(workers=2)
        flow.flow(np.zeros((2, 2)), 0.5)
        flow.reset_integration_stats()
        stats = flow.get_integration_stats()
        assert stats["total_fev"] == 0
        assert stats["total_steps"] == 0

    def test_progress_printed_when_not_quiet(self, capsys):
        flow = make_rotation(quiet=False)
        flow.flow(np.zeros((2, 2)), 0.5)
        assert "Rotation: integrated 2 trajectories" in capsys.readouterr().out

    def test_quiet_prints_nothing(self, capsys):
        make_rotation().flow(np.zeros((2, 2)), 0.5)
        assert capsys.readouterr().out == ""

    def test_repr(self):
        assert "method='DOP853'" in repr(make_rotation())
