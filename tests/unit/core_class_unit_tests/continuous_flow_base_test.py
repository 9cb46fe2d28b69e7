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
Unit Tests for ContinuousFlowBase

Tests the abstract contract, configuration properties, sampling
delegation and the lazily created field/plotter accessors.
"""

import numpy as np
import pytest

from contflows.analysis.flow_fields import FlowFieldAnalysis
from contflows.systems.base.core.continuous_flow_base import ContinuousFlowBase
from contflows.systems.base.utils.flow_validator import ValidationError
from contflows.visualization.field_plotter import FlowFieldPlotter

# ============================================================================
# Mock Flow
# ============================================================================


class ShearFlow(ContinuousFlowBase):
    """vf = [y, 0]; exact flow map x(T) = [x + T*y, y]"""

    def vf(self, t, x):
        x = np.asarray(x, dtype=float).reshape(self.nx, -1)
        return np.vstack([x[1], np.zeros_like(x[1])])

    def jacobian(self, t, x):
        n = np.asarray(x).reshape(self.nx, -1).shape[1]
        J = np.zeros((2, 2, n))
        J[0, 1] = 1.0
        return J

    def flow(self, x0, T, t0=0.0):
        x0 = np.asarray(x0, dtype=float)
        return x0 + T * np.stack([x0[1], np.zeros_like(x0[1])])

    def trajectory(self, x0, T, t0=0.0):
        x0 = np.asarray(x0, dtype=float).reshape(2, -1)
        t = t0 + self.dt * np.arange(int(round(T / self.dt)) + 1)
        x = np.stack([self.flow(x0, tk - t0) for tk in t], axis=1)
        return x, t


@pytest.fixture
def flow():
    return ShearFlow(domain=[[-1, 1], [0, 2]], dt=0.25, label="Shear")


# ============================================================================
# Test Class 1: Abstract Contract
# ============================================================================


class TestAbstractContract:
    def test_cannot_instantiate_base(self):
        with pytest.raises(TypeError):
            ContinuousFlowBase(domain=[[0, 1], [0, 1]])

    def test_missing_method_cannot_instantiate(self):
        class Incomplete(ContinuousFlowBase):
            def vf(self, t, x):
                return x

        with pytest.raises(TypeError):
            Incomplete(domain=[[0, 1], [0, 1]])

    def test_call_is_vf(self, flow):
        x = np.array([[0.5], [1.5]])
        np.testing.assert_array_equal(flow(x, 0.0), flow.vf(0.0, x))

    def test_trajectory_layout(self, flow):
        x, t = flow.trajectory(np.array([[0.0, 1.0], [1.0, 2.0]]), T=1.0)
        assert x.shape == (2, 5, 2)
        np.testing.assert_allclose(t, [0.0, 0.25, 0.5, 0.75, 1.0])
        np.testing.assert_allclose(x[:, -1, 1], [3.0, 2.0])


# ============================================================================
# Test Class 2: Configuration
# ============================================================================


class TestConfiguration:
    def test_defaults(self):
        flow = ShearFlow(domain=[[0, 1], [0, 1]])
        assert flow.dt == 0.1
        assert flow.label == "FLOWNAME"
        assert flow.quiet is True

    def test_nx_from_domain(self, flow):
        assert flow.nx == 2
        assert flow.domain.shape == (2, 2)

    def test_invalid_domain(self):
        with pytest.raises(ValidationError, match="lower bounds"):
            ShearFlow(domain=[[1, 0], [0, 1]])

    @pytest.mark.parametrize("dt", [0.0, -0.1, np.inf])
    def test_invalid_dt(self, dt):
        with pytest.raises(ValueError, match="dt must be positive"):
            ShearFlow(domain=[[0, 1], [0, 1]], dt=dt)

    def test_set_dt(self, flow):
        flow.dt = 0.5
        assert flow.dt == 0.5
        with pytest.raises(ValueError):
            flow.dt = -1.0

    def test_set_domain_same_dimension(self, flow):
        flow.domain = [[0, 3], [0, 3]]
        np.testing.assert_array_equal(flow.domain, [[0, 3], [0, 3]])

    def test_set_domain_other_dimension(self, flow):
        with pytest.raises(ValueError, match="state dimension 2"):
            flow.domain = [[0, 1], [0, 1], [0, 1]]

    def test_repr_and_str(self, flow):
        assert repr(flow) == "ShearFlow(nx=2, dt=0.25, label='Shear')"
        assert str(flow) == "Shear (2D)"


# ============================================================================
# Test Class 3: Jacobian Verification and Sampling
# ============================================================================


class TestVerificationAndSampling:
    def test_test_jacobian(self, flow):
        err = flow.test_jacobian(0.0, [0.3, 0.7])
        assert err.shape == (2, 2)
        assert np.abs(err).max() < 1e-8

    def test_sample_domain_random(self, flow):
        x = flow.sample_domain_random(50, rng=0)
        assert x.shape == (2, 50)
        assert np.all((x[0] >= -1) & (x[0] <= 1))
        assert np.all((x[1] >= 0) & (x[1] <= 2))

    def test_sample_domain_grid(self, flow):
        x = flow.sample_domain_grid(5)
        assert x.shape == (2, 25)
        assert x[1].max() == 2.0

    def test_sample_domain_gaussian(self, flow):
        x = flow.sample_domain_gaussian(20, [0.0, 1.0], 0.05 * np.eye(2), rng=0)
        assert x.shape == (2, 20)

    def test_sample_random_in_sub_box(self, flow):
        box = [[0.0, 0.5], [1.0, 1.25]]
        x = flow.sample_domain_random(200, domain=box, rng=0)
        assert x.shape == (2, 200)
        assert np.all((x[0] >= 0.0) & (x[0] <= 0.5))
        assert np.all((x[1] >= 1.0) & (x[1] <= 1.25))

    def test_sample_grid_in_sub_box(self, flow):
        x = flow.sample_domain_grid(3, domain=[[0.0, 0.5], [1.0, 1.5]])
        np.testing.assert_allclose(x[0, :3], [0.0, 0.25, 0.5])
        assert x[1].min() == 1.0 and x[1].max() == 1.5

    def test_sample_gaussian_in_sub_box(self, flow):
        box = [[-0.2, 0.2], [0.8, 1.2]]
        x = flow.sample_domain_gaussian(50, [0.0, 1.0], 0.05 * np.eye(2), domain=box, rng=0)
        assert np.all(np.abs(x[0]) <= 0.2)
        assert np.all(np.abs(x[1] - 1.0) <= 0.2)

    def test_sampling_box_dimension_checked(self, flow):
        with pytest.raises(ValidationError, match="Sampling domain must have 2 rows"):
            flow.sample_domain_grid(3, domain=[[0, 1], [0, 1], [0, 1]])

    def test_sample_polygon(self, flow):
        square = [[0, 1, 1, 0], [0, 0, 1, 1]]
        assert flow.sample_polygon_boundary(12, square).shape == (2, 12)
        assert flow.sample_polygon_interior(12, square, rng=0).shape == (2, 12)


# ============================================================================
# Test Class 4: Lazy Accessors
# ============================================================================


class TestAccessors:
    def test_fields_cached(self, flow):
        fields = flow.fields
        assert isinstance(fields, FlowFieldAnalysis)
        assert flow.fields is fields

    def test_plotter_cached(self, flow):
        plotter = flow.plotter
        assert isinstance(plotter, FlowFieldPlotter)
        assert flow.plotter is plotter
        assert plotter.label == "Shear"
