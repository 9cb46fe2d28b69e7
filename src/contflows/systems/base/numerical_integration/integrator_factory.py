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
Integrator Factory - Name-Based Construction of Integrators

Maps a method name to a configured integrator:

- scipy (adaptive): 'RK45', 'RK23', 'DOP853', 'Radau', 'BDF', 'LSODA'
- manual (fixed step): 'euler', 'midpoint', 'rk4'

Examples
--------
>>> integrator = IntegratorFactory.create(flow)                  # RK45
>>> integrator = IntegratorFactory.create(flow, method='Radau', rtol=1e-9)
>>> integrator = IntegratorFactory.create(flow, method='rk4', step=0.01)
>>>
>>> # Quick helpers
>>> integrator = IntegratorFactory.for_stiff(flow)
>>> integrator = IntegratorFactory.for_simple(flow)
"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from contflows.systems.base.numerical_integration.fixed_step_integrators import (
    FIXED_STEP_METHODS,
    create_fixed_step_integrator,
)
from contflows.systems.base.numerical_integration.integrator_base import IntegratorBase
from contflows.systems.base.numerical_integration.scipy_integrator import ScipyIntegrator

if TYPE_CHECKING:
    from contflows.systems.base.core.continuous_flow_base import ContinuousFlowBase


class IntegratorFactory:
    """
    Factory for creating numerical integrators.

    Options understood by every integrator:
    - rtol, atol: tolerances (adaptive methods)
    - max_step, first_step: step bounds (adaptive methods)
    - step: constant step size (fixed-step methods, default: flow.dt)

    Examples
    --------
    >>> integrator = IntegratorFactory.create(flow, method='LSODA')
    >>> IntegratorFactory.list_methods()['fixed']
    ['euler', 'midpoint', 'rk4']
    """

    DEFAULT_METHOD = "RK45"
    ADAPTIVE_OPTIONS = ("rtol", "atol", "max_step", "first_step")
    FIXED_STEP_OPTIONS = ("step",)

    @classmethod
    def create(
        cls,
        flow: "ContinuousFlowBase",
        method: Optional[str] = None,
        **options,
    ) -> IntegratorBase:
        """
        Create an integrator for a flow.

        Parameters
        ----------
        flow : ContinuousFlowBase
            Flow to integrate
        method : Optional[str]
            Solver method, default 'RK45'. Fixed-step names are
            case-insensitive.
        **options
            Integrator options (rtol, atol, max_step, first_step, step)

        Returns
        -------
        IntegratorBase
            Configured integrator

        Raises
        ------
        ValueError
            If the method is unknown, an option is unknown or does not
            apply to the method, or an option is out of range
        """
        if method is None:
            method = cls.DEFAULT_METHOD

        unknown = sorted(set(options) - set(cls.ADAPTIVE_OPTIONS + cls.FIXED_STEP_OPTIONS))
        if unknown:
            raise ValueError(
                f"Unknown integrator option(s): {', '.join(unknown)}. "
                f"Valid options: {', '.join(cls.ADAPTIVE_OPTIONS + cls.FIXED_STEP_OPTIONS)}"
            )

        if cls._is_fixed_step_method(method):
            cls._reject_options(method, options, cls.ADAPTIVE_OPTIONS)
            step = options.pop("step", None)
            return create_fixed_step_integrator(method, flow, dt=step, **options)

        if cls._is_scipy_method(method):
            cls._reject_options(method, options, cls.FIXED_STEP_OPTIONS)
            return ScipyIntegrator(flow, method=method, **options)

        available = cls.list_methods()
        raise ValueError(
            f"Unknown integration method '{method}'. "
            f"Choose from: {available['adaptive'] + available['fixed']}"
        )

    @staticmethod
    def _reject_options(method: str, options: dict, names: tuple) -> None:
        given = [name for name in names if name in options]
        if given:
            raise ValueError(
                f"Option(s) {', '.join(given)} do not apply to method '{method}'"
            )

    @classmethod
    def _is_fixed_step_method(cls, method: str) -> bool:
        return method.lower() in FIXED_STEP_METHODS

    @classmethod
    def _is_scipy_method(cls, method: str) -> bool:
        return method in ScipyIntegrator.EXPLICIT_METHODS + ScipyIntegrator.IMPLICIT_METHODS

    @classmethod
    def for_stiff(cls, flow: "ContinuousFlowBase", **options) -> IntegratorBase:
        """Implicit Radau with the flow's analytic Jacobian."""
        return cls.create(flow, method="Radau", **options)

    @classmethod
    def for_simple(cls, flow: "ContinuousFlowBase", **options) -> IntegratorBase:
        """Fixed-step RK4 with the flow's dt as step."""
        return cls.create(flow, method="rk4", **options)

    @staticmethod
    def list_methods() -> Dict[str, List[str]]:
        """
        List available methods.

        Returns
        -------
        Dict[str, list]
            Methods keyed by 'adaptive' and 'fixed'

        Examples
        --------
        >>> methods = IntegratorFactory.list_methods()
        >>> print(methods['adaptive'])
        """
        return {
            "adaptive": ScipyIntegrator.EXPLICIT_METHODS + ScipyIntegrator.IMPLICIT_METHODS,
            "fixed": list(FIXED_STEP_METHODS.keys()),
        }

    @staticmethod
    def get_info(method: str) -> Dict[str, Any]:
        """
        Short description of a method.

        Examples
        --------
        >>> IntegratorFactory.get_info('rk4')['order']
        4
        """
        info = {
            "RK45": {"order": 5, "stiff": False, "description": "Dormand-Prince 5(4)"},
            "RK23": {"order": 3, "stiff": False, "description": "Bogacki-Shampine 3(2)"},
            "DOP853": {"order": 8, "stiff": False, "description": "Dormand-Prince 8(5,3)"},
            "Radau": {"order": 5, "stiff": True, "description": "Implicit Runge-Kutta"},
            "BDF": {"order": "1-5", "stiff": True, "description": "Backward differentiation"},
            "LSODA": {"order": "1-12", "stiff": "auto", "description": "Adams/BDF switching"},
            "euler": {"order": 1, "stiff": False, "description": "Forward Euler"},
            "midpoint": {"order": 2, "stiff": False, "description": "Explicit midpoint (RK2)"},
            "rk4": {"order": 4, "stiff": False, "description": "Classic Runge-Kutta"},
        }
        key = method.lower() if method.lower() in FIXED_STEP_METHODS else method
        if key not in info:
            raise ValueError(f"Unknown integration method '{method}'")
        return {"method": key, **info[key]}


# ============================================================================
# Convenience Functions
# ============================================================================


def create_integrator(
    flow: "ContinuousFlowBase",
    method: Optional[str] = None,
    **options,
) -> IntegratorBase:
    """
    Convenience function for creating integrators.

    Alias for IntegratorFactory.create().

    Examples
    --------
    >>> integrator = create_integrator(flow)
    >>> integrator = create_integrator(flow, method='rk4', step=0.05)
    """
    return IntegratorFactory.create(flow, method, **options)


__all__ = ["IntegratorFactory", "create_integrator"]
