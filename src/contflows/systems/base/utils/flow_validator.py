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
Flow Validator - Argument and Definition Checks

Precondition checks shared by the flow classes, the finite-difference
verifier and the sampling utilities. Every check either returns a
normalized float array or raises ValidationError with a message naming
the offending argument; nothing is silently coerced beyond promoting a
single vector to a one-column batch.

Also validates symbolic flow definitions (dimensions, stray symbols,
unused parameters) before they are compiled.
"""

import warnings
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import sympy as sp

from contflows.types.core import ArrayLike, DomainBox, Polygon, StateBatch, TimeLike

# ============================================================================
# Exceptions
# ============================================================================


class ValidationError(ValueError):
    """Raised when an argument or a flow definition violates a precondition"""

    pass


# ============================================================================
# Array Arguments
# ============================================================================


def as_state_batch(x: ArrayLike, nx: Optional[int] = None, name: str = "x") -> StateBatch:
    """
    Normalize a point or batch of points to shape (nx, n_points).

    Parameters
    ----------
    x : ArrayLike
        Single point (nx,) or batch (nx, n_points)
    nx : Optional[int]
        Expected state dimension (number of rows); not checked if None
    name : str
        Argument name used in error messages

    Returns
    -------
    StateBatch
        Float array (nx, n_points)

    Raises
    ------
    ValidationError
        If x has more than two dimensions or the wrong number of rows

    Examples
    --------
    >>> as_state_batch([1.0, 2.0]).shape
    (2, 1)
    """
    x = np.asarray(x, dtype=float)
    if x.ndim == 0:
        x = x.reshape(1, 1)
    elif x.ndim == 1:
        x = x[:, np.newaxis]
    elif x.ndim > 2:
        raise ValidationError(
            f"{name} must be a point (nx,) or a batch (nx, n_points), got shape {x.shape}"
        )

    if nx is not None and x.shape[0] != nx:
        raise ValidationError(
            f"{name} must have {nx} rows (one per state dimension), got shape {x.shape}"
        )
    return x


def broadcast_time(t: TimeLike, n_points: int, name: str = "t") -> np.ndarray:
    """
    Broadcast a time argument to one time per column.

    A scalar (or single-element array) is repeated; a 1-D array must have
    exactly n_points entries.

    Returns
    -------
    np.ndarray
        Times (n_points,)
    """
    t = np.asarray(t, dtype=float)
    if t.size == 1:
        return np.full(n_points, float(t.reshape(-1)[0]))
    t = t.reshape(-1)
    if t.size != n_points:
        raise ValidationError(
            f"{name} must be a scalar or have one entry per point ({n_points}), got {t.size}"
        )
    return t


def require_single_point(t: TimeLike, x: ArrayLike) -> Tuple[float, StateBatch]:
    """
    Check that exactly one time value and one state-space point are given.

    Returns
    -------
    Tuple[float, StateBatch]
        The time as a float and the point as a (nx, 1) column

    Raises
    ------
    ValidationError
        If more than one time or more than one point is given
    """
    x = as_state_batch(x)
    if x.shape[1] != 1:
        raise ValidationError(f"Single point x has to be provided, got {x.shape[1]} points")

    t = np.asarray(t, dtype=float)
    if t.size != 1:
        raise ValidationError(f"Single point t has to be provided, got {t.size} times")

    return float(t.reshape(-1)[0]), x


def validate_delta(delta: float) -> float:
    """Finite-difference step must be a positive finite number."""
    delta = float(delta)
    if not np.isfinite(delta) or delta <= 0:
        raise ValidationError(f"delta must be positive and finite, got {delta}")
    return delta


def validate_psi_order(order: int, allowed: Sequence[int] = (0, 1, 2)) -> int:
    """
    Check a stream-function derivative order.

    Raises
    ------
    ValidationError
        If order is not an integer in ``allowed``
    """
    if isinstance(order, (bool, np.bool_)) or int(order) != order:
        raise ValidationError(f"Order must be an integer, got {order!r}")
    order = int(order)
    if order not in allowed:
        raise ValidationError(f"Order must be one of {tuple(allowed)}, got {order}")
    return order


# ============================================================================
# Geometry Arguments
# ============================================================================


def validate_domain(domain: ArrayLike) -> DomainBox:
    """
    Check a rectangular domain of shape (nx, 2) with finite lower <= upper.

    A flat [lower, upper] pair is accepted as a 1-D domain.

    Returns
    -------
    DomainBox
        Float array (nx, 2)
    """
    domain = np.asarray(domain, dtype=float)
    if domain.ndim == 1 and domain.size == 2:
        domain = domain[np.newaxis, :]
    if domain.ndim != 2 or domain.shape[1] != 2 or domain.shape[0] < 1:
        raise ValidationError(
            f"Domain must have shape (nx, 2) with [lower, upper] rows, got {domain.shape}"
        )
    if not np.all(np.isfinite(domain)):
        raise ValidationError("Domain bounds must be finite")
    if np.any(domain[:, 0] > domain[:, 1]):
        raise ValidationError("Domain lower bounds must not exceed upper bounds")
    return domain


def validate_polygon(polygon: ArrayLike) -> Polygon:
    """
    Check a polygon given as a (2, n_vertices) array of finite vertices.
    """
    polygon = np.asarray(polygon, dtype=float)
    if polygon.ndim != 2 or polygon.shape[0] != 2:
        raise ValidationError(f"Polygon must have shape (2, n_vertices), got {polygon.shape}")
    if polygon.shape[1] < 3:
        raise ValidationError(f"Polygon needs at least 3 vertices, got {polygon.shape[1]}")
    if not np.all(np.isfinite(polygon)):
        raise ValidationError("Polygon vertices must be finite")
    return polygon


def require_planar(nx: int, operation: str) -> None:
    """Raise unless the flow is two-dimensional."""
    if nx != 2:
        raise ValidationError(f"{operation} requires a 2D flow, got state dimension {nx}")


# ============================================================================
# Symbolic Definitions
# ============================================================================


def validate_symbolic_definition(
    expressions: sp.Matrix,
    state_vars: List[sp.Symbol],
    parameters: Dict[sp.Symbol, float],
    time_var: Optional[sp.Symbol] = None,
    expected_rows: Optional[int] = None,
) -> None:
    """
    Validate a symbolic vector field or stream function before compilation.

    Checks
    ------
    - the expression has the expected number of rows
    - state variables are distinct sympy Symbols
    - every free symbol is a state variable, the time variable, or a
      parameter with a finite numeric value
    - parameters that never appear trigger a UserWarning

    Raises
    ------
    ValidationError
        Listing every problem found
    """
    errors: List[str] = []

    if expected_rows is not None and expressions.shape[0] != expected_rows:
        errors.append(
            f"Expression must have {expected_rows} row(s), got {expressions.shape[0]}"
        )

    if not all(isinstance(s, sp.Symbol) for s in state_vars):
        errors.append("State variables must be sympy Symbols")
    elif len(set(state_vars)) != len(state_vars):
        errors.append(f"State variables must be distinct, got {state_vars}")

    for symbol, value in parameters.items():
        if not np.isfinite(float(value)):
            errors.append(f"Parameter {symbol} must be finite, got {value}")

    known = set(state_vars) | set(parameters)
    if time_var is not None:
        known.add(time_var)
    stray = expressions.free_symbols - known
    if stray:
        names = ", ".join(sorted(str(s) for s in stray))
        errors.append(f"Undefined symbols in expression: {names}")

    if errors:
        raise ValidationError(
            "Symbolic flow definition is invalid:\n" + "\n".join(f"  - {e}" for e in errors)
        )

    unused = _unused(parameters, expressions.free_symbols)
    if unused:
        warnings.warn(
            f"Parameters never used in the expression: {', '.join(unused)}",
            UserWarning,
            stacklevel=3,
        )


def _unused(parameters: Dict[sp.Symbol, float], used: Iterable[sp.Symbol]) -> List[str]:
    used = set(used)
    return sorted(str(s) for s in parameters if s not in used)


__all__ = [
    "ValidationError",
    "as_state_batch",
    "broadcast_time",
    "require_single_point",
    "validate_delta",
    "validate_psi_order",
    "validate_domain",
    "validate_polygon",
    "require_planar",
    "validate_symbolic_definition",
]
