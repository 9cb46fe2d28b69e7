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
Code generation utilities for symbolic flows.

Compiles SymPy expressions to vectorized NumPy functions. Every symbol
argument may be a scalar or an array of N values; the compiled function
returns an array of shape expr.shape + (N,), with entries that do not
depend on the arguments (constants) broadcast to all N points.

Example: for the Jacobian of a 2D field, a (2, 2) Matrix compiles to a
function returning a (2, 2, N) stack.
"""

from typing import Callable, List, Union

import numpy as np
import sympy as sp


def _numpy_min(*args):
    """
    Handle SymPy Min for NumPy backend.

    SymPy's Min can take arbitrary number of arguments: Min(x, y, z)
    NumPy's np.minimum only takes 2 arguments.

    Examples:
        >>> _numpy_min(np.array([1, 2]), np.array([3, 0]), 2)
        array([1, 0])
    """
    if len(args) == 0:
        raise ValueError("Min requires at least one argument")
    result = args[0]
    for arg in args[1:]:
        result = np.minimum(result, arg)
    return result


def _numpy_max(*args):
    """Handle SymPy Max for NumPy backend (see _numpy_min)."""
    if len(args) == 0:
        raise ValueError("Max requires at least one argument")
    result = args[0]
    for arg in args[1:]:
        result = np.maximum(result, arg)
    return result


SYMPY_TO_NUMPY_LAMBDIFY = {
    "Min": _numpy_min,
    "Max": _numpy_max,
}


def _lambdify_batched(matrix: sp.MatrixBase, symbols: List[sp.Symbol]) -> Callable:
    """Compile a Matrix to f(*values) -> matrix.shape + broadcast shape."""
    shape = matrix.shape
    entries = list(matrix)  # row-major
    func = sp.lambdify(symbols, entries, modules=[SYMPY_TO_NUMPY_LAMBDIFY, "numpy"])

    def wrapped_func(*args):
        args = [np.asarray(a, dtype=float) for a in args]
        batch_shape = np.broadcast(*args).shape if args else ()
        values = func(*args)

        out = np.empty(shape + batch_shape)
        for k, value in enumerate(values):
            # Constant entries come back as Python scalars
            out[np.unravel_index(k, shape)] = value
        return out

    return wrapped_func


def generate_numpy_function(
    expr: Union[sp.Expr, List[sp.Expr], sp.Matrix],
    symbols: List[sp.Symbol],
) -> Callable:
    """
    Generate a vectorized NumPy function from SymPy expression(s).

    Args:
        expr: SymPy expression, list (column vector), or Matrix
        symbols: Input symbols in order

    Returns:
        Function f(*values). A column (list, scalar or (n, 1) Matrix)
        evaluates to shape (n,) + broadcast shape of the values; any
        other Matrix evaluates to expr.shape + broadcast shape.

    Examples:
        >>> x, y = sp.symbols('x y')
        >>> f = generate_numpy_function(sp.Matrix([x * y, 1]), [x, y])
        >>> f(np.array([1.0, 2.0]), np.array([3.0, 4.0]))
        array([[3., 8.],
               [1., 1.]])
    """
    # Convert to matrix for consistent handling
    if isinstance(expr, list):
        expr = sp.Matrix(expr)
    elif not isinstance(expr, sp.MatrixBase):
        expr = sp.Matrix([expr])

    func = _lambdify_batched(expr, symbols)
    if expr.shape[1] != 1:
        return func

    def column_func(*args):
        return func(*args)[:, 0]

    return column_func


def generate_jacobian_function(
    expr: Union[List[sp.Expr], sp.Matrix],
    symbols: List[sp.Symbol],
    wrt_symbols: List[sp.Symbol],
) -> Callable:
    """
    Generate Jacobian function.

    Args:
        expr: Column vector (list or Matrix)
        symbols: All input symbols in order
        wrt_symbols: Symbols to differentiate with respect to

    Returns:
        Function returning (len(expr), len(wrt_symbols)) + batch shape
    """
    if isinstance(expr, list):
        expr = sp.Matrix(expr)

    return _lambdify_batched(expr.jacobian(wrt_symbols), symbols)


def substitute_parameters(expr: sp.MatrixBase, parameters: dict) -> sp.MatrixBase:
    """Replace parameter symbols by their numeric values."""
    if not parameters:
        return expr
    return expr.subs({symbol: sp.Float(value) for symbol, value in parameters.items()})


__all__ = [
    "generate_numpy_function",
    "generate_jacobian_function",
    "substitute_parameters",
]
