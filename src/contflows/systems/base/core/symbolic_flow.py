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
Symbolic Flows - Vector Fields and Stream Functions from SymPy
==============================================================

Flows defined by symbolic expressions. Subclasses implement
define_system() to populate the symbolic definition; derivatives are
taken symbolically and every function is compiled once to vectorized
NumPy code with sympy.lambdify.

- SymbolicODEFlow: vector field f(t, x) as a column Matrix
- SymbolicHamiltonian2DFlow: scalar stream function psi(t, x, y)

Construction follows a template method:
1. Split keyword arguments into flow options and model parameters
2. Call define_system(**model_parameters)
3. Validate the definition
4. Compile the numerical functions

Examples
--------
>>> class Pendulum(SymbolicODEFlow):
...     DEFAULT_DOMAIN = [[-np.pi, np.pi], [-3.0, 3.0]]
...
...     def define_system(self, g_val=9.81, l_val=1.0):
...         theta, omega = sp.symbols("theta omega", real=True)
...         g, l = sp.symbols("g l", positive=True)
...         self.parameters = {g: g_val, l: l_val}
...         self.state_vars = [theta, omega]
...         self._f_sym = sp.Matrix([omega, -g / l * sp.sin(theta)])
>>>
>>> flow = Pendulum(l_val=2.0, dt=0.05)
>>> flow.jacobian(0.0, np.zeros((2, 1)))[:, :, 0]
array([[ 0.   ,  1.   ],
       [-4.905,  0.   ]])
"""

from abc import abstractmethod
from typing import Dict, List, Optional

import numpy as np
import sympy as sp

from contflows.systems.base.core.hamiltonian_2d_flow import Hamiltonian2DFlow
from contflows.systems.base.core.ode_flow import ODEFlow
from contflows.systems.base.utils.codegen_utils import (
    generate_jacobian_function,
    generate_numpy_function,
    substitute_parameters,
)
from contflows.systems.base.utils.flow_validator import (
    ValidationError,
    as_state_batch,
    broadcast_time,
    validate_psi_order,
    validate_symbolic_definition,
)
from contflows.types.core import ArrayLike, JacobianStack, StateBatch, TimeLike

FLOW_OPTIONS = frozenset(
    [
        "domain",
        "dt",
        "label",
        "quiet",
        "method",
        "workers",
        "timeout",
        "orientation",
        "rtol",
        "atol",
        "max_step",
        "first_step",
        "step",
    ]
)


class SymbolicFlowMixin:
    """
    Shared construction of symbolic flows.

    Class attributes DEFAULT_DOMAIN, DEFAULT_DT and DEFAULT_LABEL supply
    the flow options a subclass is usually constructed with.
    """

    DEFAULT_DOMAIN: Optional[ArrayLike] = None
    DEFAULT_DT: float = 0.1
    DEFAULT_LABEL: Optional[str] = None

    def _split_options(self, kwargs: dict) -> tuple:
        flow_kwargs = {k: kwargs.pop(k) for k in list(kwargs) if k in FLOW_OPTIONS}
        flow_kwargs.setdefault("dt", self.DEFAULT_DT)
        flow_kwargs.setdefault("label", self.DEFAULT_LABEL or self.__class__.__name__)
        if "domain" not in flow_kwargs:
            if self.DEFAULT_DOMAIN is None:
                raise ValidationError(
                    f"{self.__class__.__name__} has no default domain; pass domain=..."
                )
            flow_kwargs["domain"] = self.DEFAULT_DOMAIN
        return flow_kwargs, kwargs

    def _init_symbolic_containers(self) -> None:
        self.state_vars: List[sp.Symbol] = []
        """State variables as SymPy Symbols, one per state dimension"""

        self.time_var: Optional[sp.Symbol] = None
        """Time symbol, if the definition is time-dependent"""

        self.parameters: Dict[sp.Symbol, float] = {}
        """Parameter symbols and their numeric values"""

    @property
    def arguments(self) -> List[sp.Symbol]:
        """Argument order of the compiled functions: [t, *state_vars]."""
        t = self.time_var if self.time_var is not None else sp.Symbol("_t")
        return [t] + list(self.state_vars)

    def _call_compiled(self, func, t: TimeLike, x: StateBatch) -> np.ndarray:
        tt = broadcast_time(t, x.shape[1])
        return func(tt, *x)


class SymbolicODEFlow(SymbolicFlowMixin, ODEFlow):
    """
    ODE flow with a symbolic vector field.

    define_system() must set:
    - self.state_vars: list of nx Symbols
    - self._f_sym: Matrix (nx, 1), the vector field
    and may set:
    - self.parameters: {Symbol: value}
    - self.time_var: Symbol for time in non-autonomous fields

    Attributes
    ----------
    f_sym : sp.Matrix
        Vector field with parameters substituted
    jacobian_sym : sp.Matrix
        Symbolic Jacobian (nx, nx)
    """

    def __init__(self, *args, **kwargs):
        """
        Parameters
        ----------
        *args, **kwargs
            Flow options (domain, dt, label, quiet, method, workers,
            timeout, rtol, atol, max_step, first_step, step) go to the
            flow; everything else is passed to define_system().

        Raises
        ------
        ValidationError
            If the symbolic definition is invalid
        """
        flow_kwargs, model_kwargs = self._split_options(kwargs)

        self._init_symbolic_containers()
        self._f_sym: Optional[sp.Matrix] = None

        self.define_system(*args, **model_kwargs)

        if self._f_sym is None:
            raise ValidationError(f"{self.__class__.__name__}.define_system() must set _f_sym")
        self._f_sym = sp.Matrix(self._f_sym)

        validate_symbolic_definition(
            self._f_sym,
            self.state_vars,
            self.parameters,
            self.time_var,
            expected_rows=len(self.state_vars),
        )

        self.f_sym = substitute_parameters(self._f_sym, self.parameters)
        self.jacobian_sym = self.f_sym.jacobian(self.state_vars)
        self._f_func = generate_numpy_function(self.f_sym, self.arguments)
        self._jac_func = generate_jacobian_function(self.f_sym, self.arguments, self.state_vars)

        super().__init__(**flow_kwargs)

        if self.nx != len(self.state_vars):
            raise ValidationError(
                f"Domain is {self.nx}-D but the field has {len(self.state_vars)} state variables"
            )

    @abstractmethod
    def define_system(self, *args, **kwargs):
        """Populate state_vars, parameters, time_var and _f_sym."""

    def vf(self, t: TimeLike, x: ArrayLike) -> StateBatch:
        x = as_state_batch(x, nx=self.nx)
        return self._call_compiled(self._f_func, t, x)

    def jacobian(self, t: TimeLike, x: ArrayLike) -> JacobianStack:
        x = as_state_batch(x, nx=self.nx)
        return self._call_compiled(self._jac_func, t, x)

    def print_equations(self) -> None:
        """Print the vector field, one equation per state variable."""
        print(f"{self.label}:")
        for var, rhs in zip(self.state_vars, self._f_sym):
            print(f"  d{var}/dt = {rhs}")


class SymbolicHamiltonian2DFlow(SymbolicFlowMixin, Hamiltonian2DFlow):
    """
    Hamiltonian flow with a symbolic stream function.

    define_system() must set:
    - self.state_vars: [x, y] Symbols
    - self._psi_sym: scalar expression psi(t, x, y)
    and may set self.parameters and self.time_var.

    All derivative orders are derived from the single expression, so
    psi, its gradient and its Hessian are consistent by construction.
    """

    DEFAULT_ORIENTATION = "canonical"

    def __init__(self, *args, **kwargs):
        flow_kwargs, model_kwargs = self._split_options(kwargs)
        flow_kwargs.setdefault("orientation", self.DEFAULT_ORIENTATION)

        self._init_symbolic_containers()
        self._psi_sym: Optional[sp.Expr] = None

        self.define_system(*args, **model_kwargs)

        if self._psi_sym is None:
            raise ValidationError(f"{self.__class__.__name__}.define_system() must set _psi_sym")
        if len(self.state_vars) != 2:
            raise ValidationError(
                f"Stream function needs exactly 2 state variables, got {len(self.state_vars)}"
            )

        validate_symbolic_definition(
            sp.Matrix([self._psi_sym]), self.state_vars, self.parameters, self.time_var
        )

        x, y = self.state_vars
        psi = substitute_parameters(sp.Matrix([self._psi_sym]), self.parameters)[0]
        self.psi_sym = psi
        self.psi_derivatives_sym = {
            0: sp.Matrix([psi]),
            1: sp.Matrix([sp.diff(psi, x), sp.diff(psi, y)]),
            2: sp.Matrix([sp.diff(psi, x, 2), sp.diff(psi, x, y), sp.diff(psi, y, 2)]),
        }
        self._psi_funcs = {
            order: generate_numpy_function(expr, self.arguments)
            for order, expr in self.psi_derivatives_sym.items()
        }

        super().__init__(**flow_kwargs)

    @abstractmethod
    def define_system(self, *args, **kwargs):
        """Populate state_vars, parameters, time_var and _psi_sym."""

    def psi(self, t: TimeLike, x: ArrayLike, order: int = 0) -> np.ndarray:
        order = validate_psi_order(order)
        x = as_state_batch(x, nx=2)
        return self._call_compiled(self._psi_funcs[order], t, x)


__all__ = ["SymbolicODEFlow", "SymbolicHamiltonian2DFlow", "FLOW_OPTIONS"]
