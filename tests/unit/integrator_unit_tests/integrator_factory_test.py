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
Unit Tests for IntegratorFactory

Tests name-based integrator creation, option routing, helper
constructors and method metadata.
"""

import numpy as np
import pytest

from contflows.systems.base.numerical_integration.fixed_step_integrators import (
    ExplicitEulerIntegrator,
    RK4Integrator,
)
from contflows.systems.base.numerical_integration.integrator_factory import (
    IntegratorFactory,
    create_integrator,
)
from contflows.systems.base.numerical_integration.scipy_integrator import ScipyIntegrator

# ============================================================================
# Mock Flow
# ============================================================================


class MockFlow:
    nx = 2
    dt = 0.05

    def vf(self, t, x):
        return -np.asarray(x)

    def jacobian(self, t, x):
        x = np.asarray(x)
        return -np.repeat(np.eye(2)[:, :, np.newaxis], x.shape[1], axis=2)


# ============================================================================
# Test Class 1: Creation
# ============================================================================


class TestCreate:
    """Test IntegratorFactory.create"""

    def test_default_is_rk45(self):
        integrator = IntegratorFactory.create(MockFlow())
        assert isinstance(integrator, ScipyIntegrator)
        assert integrator.method == "RK45"

    @pytest.mark.parametrize("method", ["RK45", "RK23", "DOP853", "Radau", "BDF", "LSODA"])
    def test_scipy_methods(self, method):
        integrator = IntegratorFactory.create(MockFlow(), method=method)
        assert isinstance(integrator, ScipyIntegrator)
        assert integrator.method == method

    def test_fixed_step_method(self):
        integrator = IntegratorFactory.create(MockFlow(), method="euler")
        assert isinstance(integrator, ExplicitEulerIntegrator)

    def test_fixed_step_uses_flow_dt(self):
        integrator = IntegratorFactory.create(MockFlow(), method="rk4")
        assert integrator.dt == 0.05

    def test_step_option_sets_fixed_step(self):
        integrator = IntegratorFactory.create(MockFlow(), method="rk4", step=0.01)
        assert integrator.dt == 0.01

    def test_step_option_rejected_by_adaptive(self):
        with pytest.raises(ValueError, match="step do not apply to method 'RK45'"):
            IntegratorFactory.create(MockFlow(), method="RK45", step=0.01)

    @pytest.mark.parametrize("option", ["rtol", "atol", "max_step", "first_step"])
    def test_tolerances_rejected_by_fixed_step(self, option):
        with pytest.raises(ValueError, match=f"{option} do not apply to method 'rk4'"):
            IntegratorFactory.create(MockFlow(), method="rk4", **{option: 1e-3})

    def test_misspelled_option_rejected(self):
        with pytest.raises(ValueError, match="Unknown integrator option\\(s\\): rtoll"):
            IntegratorFactory.create(MockFlow(), method="RK45", rtoll=1e-8)

    def test_misspelled_option_rejected_for_fixed_step(self):
        with pytest.raises(ValueError, match="Unknown integrator option"):
            IntegratorFactory.create(MockFlow(), method="euler", stp=0.1)

    def test_tolerances_forwarded(self):
        integrator = IntegratorFactory.create(MockFlow(), method="DOP853", rtol=1e-10, atol=1e-12)
        assert integrator.rtol == 1e-10
        assert integrator.atol == 1e-12

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown integration method 'Heun'"):
            IntegratorFactory.create(MockFlow(), method="Heun")

    def test_non_positive_step(self):
        with pytest.raises(ValueError, match="dt must be positive"):
            IntegratorFactory.create(MockFlow(), method="rk4", step=-0.1)

    def test_create_integrator_alias(self):
        integrator = create_integrator(MockFlow(), "midpoint", step=0.02)
        assert integrator.dt == 0.02
        assert "Midpoint" in integrator.name


# ============================================================================
# Test Class 2: Helpers
# ============================================================================


class TestHelpers:
    def test_for_stiff(self):
        integrator = IntegratorFactory.for_stiff(MockFlow())
        assert isinstance(integrator, ScipyIntegrator)
        assert integrator.method == "Radau"

    def test_for_simple(self):
        integrator = IntegratorFactory.for_simple(MockFlow())
        assert isinstance(integrator, RK4Integrator)
        assert integrator.dt == 0.05


# ============================================================================
# Test Class 3: Metadata
# ============================================================================


class TestMetadata:
    def test_list_methods(self):
        methods = IntegratorFactory.list_methods()
        assert methods["fixed"] == ["euler", "midpoint", "rk4"]
        assert "RK45" in methods["adaptive"]
        assert "LSODA" in methods["adaptive"]

    def test_get_info(self):
        assert IntegratorFactory.get_info("rk4")["order"] == 4
        assert IntegratorFactory.get_info("RK4")["method"] == "rk4"
        assert IntegratorFactory.get_info("Radau")["stiff"] is True

    def test_get_info_unknown(self):
        with pytest.raises(ValueError, match="Unknown integration method"):
            IntegratorFactory.get_info("Heun")
