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
Flow Field Analysis - Fields of 2D Flows on Tensor Grids

Pure functions evaluating derived fields of a planar flow on a grid
xi x yi, at one or several times, plus the FlowFieldAnalysis wrapper
exposed as ``flow.fields``.

Layout
------
Grids use ndgrid layout: X, Y = np.meshgrid(xi, yi, indexing="ij"), so
values[i, j, k] belongs to (xi[i], yi[j]) at time t[k]. The trailing time
axis is present even for a single time.

Fields
------
- velocity: U, V components (quiver data)
- stream_function: psi (Hamiltonian flows)
- vorticity: J[0,1] - J[1,0]; optionally divided by the speed
- divergence: trace(J); optionally log10(|div| / ||J||_2)
- polar: angle and magnitude (or log10 magnitude) of the velocity
- jacobian_scalar: fn(J) per point
- scalar: fn(v), fn(J) or fn(v, J) per point

Non-finite values (e.g. normalization by a zero speed) are kept as NaN or
Inf and reported with a RuntimeWarning.
"""

import warnings
from typing import TYPE_CHECKING, Callable, Optional, Sequence, Tuple

import numpy as np

from contflows.systems.base.utils.flow_validator import (
    ValidationError,
    require_planar,
    validate_domain,
)
from contflows.types.core import DomainBox, TimeLike
from contflows.types.fields import GridAxes, GridField, PolarField, VelocityField

if TYPE_CHECKING:
    from contflows.systems.base.core.continuous_flow_base import ContinuousFlowBase

DEFAULT_RESOLUTION = 100
DEFAULT_VECTOR_RESOLUTION = 20


# ============================================================================
# Grid Helpers
# ============================================================================


def grid_axes(
    domain: DomainBox,
    resolution: Optional[int] = None,
    grid: Optional[GridAxes] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Grid axes from an explicit grid or a resolution over the domain.

    Parameters
    ----------
    domain : DomainBox
        Box (2, 2) used when grid is not given
    resolution : Optional[int]
        Points per axis (default: 100)
    grid : Optional[GridAxes]
        Explicit [xi, yi]; takes precedence over resolution

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        (xi, yi), 1-D float arrays
    """
    if grid is not None:
        if len(grid) != 2:
            raise ValidationError(f"grid must be a pair [xi, yi], got {len(grid)} axes")
        xi, yi = (np.asarray(axis, dtype=float) for axis in grid)
        for name, axis in (("xi", xi), ("yi", yi)):
            if axis.ndim != 1 or axis.size == 0 or not np.all(np.isfinite(axis)):
                raise ValidationError(f"{name} must be a non-empty finite 1-D array")
        return xi, yi

    domain = validate_domain(domain)
    require_planar(domain.shape[0], "Grid evaluation")
    resolution = DEFAULT_RESOLUTION if resolution is None else int(resolution)
    if resolution < 1:
        raise ValidationError(f"resolution must be positive, got {resolution}")
    return (
        np.linspace(domain[0, 0], domain[0, 1], resolution),
        np.linspace(domain[1, 0], domain[1, 1], resolution),
    )


def _times(t: TimeLike) -> np.ndarray:
    return np.atleast_1d(np.asarray(t, dtype=float)).ravel()


def _mesh(xi: np.ndarray, yi: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """ndgrid X, Y and the grid points (2, n) in column-major order."""
    X, Y = np.meshgrid(xi, yi, indexing="ij")
    points = np.vstack([X.ravel(order="F"), Y.ravel(order="F")])
    return X, Y, points


def _unflatten(values: np.ndarray, shape: Tuple[int, int]) -> np.ndarray:
    return np.reshape(values, shape, order="F")


def _warn_non_finite(values: np.ndarray, name: str) -> None:
    bad = np.count_nonzero(~np.isfinite(values))
    if bad:
        warnings.warn(
            f"{name}: {bad} of {values.size} grid values are not finite",
            RuntimeWarning,
            stacklevel=3,
        )


def _per_time(
    flow: "ContinuousFlowBase",
    t: TimeLike,
    xi: np.ndarray,
    yi: np.ndarray,
    evaluate: Callable[[float, np.ndarray], np.ndarray],
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Evaluate a per-point quantity at every grid point and time."""
    require_planar(flow.nx, "Grid evaluation")
    times = _times(t)
    X, Y, points = _mesh(xi, yi)
    values = np.empty(X.shape + (times.size,))
    for k, tk in enumerate(times):
        values[:, :, k] = _unflatten(evaluate(tk, points), X.shape)
    return X, Y, values, times


# ============================================================================
# Field Functions
# ============================================================================


def velocity_field(
    flow: "ContinuousFlowBase", t: TimeLike, xi: np.ndarray, yi: np.ndarray
) -> VelocityField:
    """
    Velocity components on the grid.

    Returns
    -------
    VelocityField
        X, Y (len(xi), len(yi)); U, V (len(xi), len(yi), len(t))
    """
    require_planar(flow.nx, "velocity")
    times = _times(t)
    X, Y, points = _mesh(xi, yi)
    U = np.empty(X.shape + (times.size,))
    V = np.empty_like(U)
    for k, tk in enumerate(times):
        v = np.asarray(flow.vf(tk, points), dtype=float)
        U[:, :, k] = _unflatten(v[0], X.shape)
        V[:, :, k] = _unflatten(v[1], X.shape)
    return {"X": X, "Y": Y, "U": U, "V": V, "t": times}


def stream_function_field(
    flow: "ContinuousFlowBase", t: TimeLike, xi: np.ndarray, yi: np.ndarray
) -> GridField:
    """Stream function psi on the grid; the flow must define stream_function()."""
    if not hasattr(flow, "stream_function"):
        raise ValidationError(
            f"{flow.__class__.__name__} has no stream function (not a Hamiltonian flow)"
        )
    X, Y, values, times = _per_time(flow, t, xi, yi, flow.stream_function)
    return {"X": X, "Y": Y, "values": values, "t": times, "name": "Stream function"}


def vorticity_field(
    flow: "ContinuousFlowBase",
    t: TimeLike,
    xi: np.ndarray,
    yi: np.ndarray,
    normalized: bool = False,
) -> GridField:
    """
    Scalar vorticity J[0,1] - J[1,0] on the grid.

    For canonical Hamiltonian flows this equals the Laplacian of the
    stream function. With normalized=True the vorticity is divided by
    the speed |v|.
    """

    def evaluate(tk, points):
        J = np.asarray(flow.jacobian(tk, points), dtype=float)
        omega = J[0, 1] - J[1, 0]
        if normalized:
            speed = np.linalg.norm(np.asarray(flow.vf(tk, points), dtype=float), axis=0)
            with np.errstate(divide="ignore", invalid="ignore"):
                omega = omega / speed
        return omega

    X, Y, values, times = _per_time(flow, t, xi, yi, evaluate)
    name = "Vorticity / speed" if normalized else "Vorticity"
    _warn_non_finite(values, name)
    return {"X": X, "Y": Y, "values": values, "t": times, "name": name}


def divergence_field(
    flow: "ContinuousFlowBase",
    t: TimeLike,
    xi: np.ndarray,
    yi: np.ndarray,
    normalized: bool = False,
) -> GridField:
    """
    Divergence trace(J) on the grid.

    With normalized=True returns log10(|div| / ||J||_2), NaN where the
    Jacobian vanishes.
    """

    def evaluate(tk, points):
        J = np.asarray(flow.jacobian(tk, points), dtype=float)
        div = J[0, 0] + J[1, 1]
        if normalized:
            norm = np.linalg.norm(np.moveaxis(J, 2, 0), ord=2, axis=(1, 2))
            with np.errstate(divide="ignore", invalid="ignore"):
                div = np.log10(np.abs(div) / norm)
            div[norm == 0] = np.nan
        return div

    X, Y, values, times = _per_time(flow, t, xi, yi, evaluate)
    name = "log10(|divergence| / ||J||)" if normalized else "Divergence"
    _warn_non_finite(values, name)
    return {"X": X, "Y": Y, "values": values, "t": times, "name": name}


def polar_field(
    flow: "ContinuousFlowBase",
    t: TimeLike,
    xi: np.ndarray,
    yi: np.ndarray,
    logarithmic: bool = False,
) -> PolarField:
    """
    Velocity in polar form: angle in [-pi, pi] and magnitude.

    With logarithmic=True the magnitude is log10|v|.
    """
    vel = velocity_field(flow, t, xi, yi)
    angle = np.arctan2(vel["V"], vel["U"])
    magnitude = np.hypot(vel["U"], vel["V"])
    if logarithmic:
        with np.errstate(divide="ignore"):
            magnitude = np.log10(magnitude)
        _warn_non_finite(magnitude, "log10 speed")
    return {
        "X": vel["X"],
        "Y": vel["Y"],
        "angle": angle,
        "magnitude": magnitude,
        "t": vel["t"],
        "logarithmic": logarithmic,
    }


def jacobian_scalar_field(
    flow: "ContinuousFlowBase",
    t: TimeLike,
    fn: Callable[[np.ndarray], float],
    xi: np.ndarray,
    yi: np.ndarray,
    name: str = "Jacobian function",
) -> GridField:
    """
    Scalar function of the Jacobian, fn(J) with J a (2, 2) matrix per point.

    Examples
    --------
    >>> # largest real part of the eigenvalues
    >>> field = jacobian_scalar_field(
    ...     flow, 0.0, lambda J: np.linalg.eigvals(J).real.max(), xi, yi
    ... )
    """
    return scalar_field(flow, t, fn, xi, yi, use_velocity=False, use_jacobian=True, name=name)


def scalar_field(
    flow: "ContinuousFlowBase",
    t: TimeLike,
    fn: Callable[..., float],
    xi: np.ndarray,
    yi: np.ndarray,
    use_velocity: bool = True,
    use_jacobian: bool = False,
    name: str = "Scalar function",
) -> GridField:
    """
    Scalar function of the velocity and/or Jacobian at every grid point.

    fn is called once per point as fn(v), fn(J) or fn(v, J), with v of
    shape (2,) and J of shape (2, 2), depending on use_velocity and
    use_jacobian.

    Raises
    ------
    ValidationError
        If neither use_velocity nor use_jacobian is set
    """
    if not (use_velocity or use_jacobian):
        raise ValidationError("At least one of use_velocity and use_jacobian must be True")

    def evaluate(tk, points):
        v = np.asarray(flow.vf(tk, points), dtype=float) if use_velocity else None
        J = np.asarray(flow.jacobian(tk, points), dtype=float) if use_jacobian else None
        out = np.empty(points.shape[1])
        for i in range(points.shape[1]):
            if use_velocity and use_jacobian:
                out[i] = fn(v[:, i], J[:, :, i])
            elif use_jacobian:
                out[i] = fn(J[:, :, i])
            else:
                out[i] = fn(v[:, i])
        return out

    X, Y, values, times = _per_time(flow, t, xi, yi, evaluate)
    return {"X": X, "Y": Y, "values": values, "t": times, "name": name}


# ============================================================================
# Wrapper for Composition
# ============================================================================


class FlowFieldAnalysis:
    """
    Grid field evaluation bound to a flow.

    Thin wrapper that resolves the grid from the flow's domain and routes
    to the pure field functions of this module. Every method accepts
    ``resolution`` (points per axis over the domain) or ``grid``
    (explicit [xi, yi]).

    Examples
    --------
    >>> flow = DoubleGyre()
    >>> vort = flow.fields.vorticity(t=[0.0, 2.5, 5.0], resolution=64)
    >>> vort["values"].shape
    (64, 64, 3)
    >>> fig = flow.plotter.plot_scalar_field(vort, divergent=True)
    """

    def __init__(self, flow: "ContinuousFlowBase"):
        self.flow = flow

    def _axes(self, resolution, grid, default):
        return grid_axes(
            self.flow.domain, default if resolution is None and grid is None else resolution, grid
        )

    def velocity(
        self, t: TimeLike = 0.0, resolution: Optional[int] = None, grid: Optional[Sequence] = None
    ) -> VelocityField:
        """Quiver data; default resolution 20."""
        xi, yi = self._axes(resolution, grid, DEFAULT_VECTOR_RESOLUTION)
        return velocity_field(self.flow, t, xi, yi)

    def stream_function(
        self, t: TimeLike = 0.0, resolution: Optional[int] = None, grid: Optional[Sequence] = None
    ) -> GridField:
        xi, yi = self._axes(resolution, grid, DEFAULT_RESOLUTION)
        return stream_function_field(self.flow, t, xi, yi)

    def vorticity(
        self,
        t: TimeLike = 0.0,
        normalized: bool = False,
        resolution: Optional[int] = None,
        grid: Optional[Sequence] = None,
    ) -> GridField:
        xi, yi = self._axes(resolution, grid, DEFAULT_RESOLUTION)
        return vorticity_field(self.flow, t, xi, yi, normalized=normalized)

    def divergence(
        self,
        t: TimeLike = 0.0,
        normalized: bool = False,
        resolution: Optional[int] = None,
        grid: Optional[Sequence] = None,
    ) -> GridField:
        xi, yi = self._axes(resolution, grid, DEFAULT_RESOLUTION)
        return divergence_field(self.flow, t, xi, yi, normalized=normalized)

    def polar(
        self,
        t: TimeLike = 0.0,
        logarithmic: bool = False,
        resolution: Optional[int] = None,
        grid: Optional[Sequence] = None,
    ) -> PolarField:
        """Angle and magnitude of the velocity; default resolution 20."""
        xi, yi = self._axes(resolution, grid, DEFAULT_VECTOR_RESOLUTION)
        return polar_field(self.flow, t, xi, yi, logarithmic=logarithmic)

    def jacobian_scalar(
        self,
        t: TimeLike,
        fn: Callable[[np.ndarray], float],
        name: str = "Jacobian function",
        resolution: Optional[int] = None,
        grid: Optional[Sequence] = None,
    ) -> GridField:
        xi, yi = self._axes(resolution, grid, DEFAULT_RESOLUTION)
        return jacobian_scalar_field(self.flow, t, fn, xi, yi, name=name)

    def scalar(
        self,
        t: TimeLike,
        fn: Callable[..., float],
        use_velocity: bool = True,
        use_jacobian: bool = False,
        name: str = "Scalar function",
        resolution: Optional[int] = None,
        grid: Optional[Sequence] = None,
    ) -> GridField:
        xi, yi = self._axes(resolution, grid, DEFAULT_RESOLUTION)
        return scalar_field(
            self.flow,
            t,
            fn,
            xi,
            yi,
            use_velocity=use_velocity,
            use_jacobian=use_jacobian,
            name=name,
        )

    def __repr__(self) -> str:
        return f"FlowFieldAnalysis(flow={self.flow.label!r})"


__all__ = [
    "FlowFieldAnalysis",
    "grid_axes",
    "velocity_field",
    "stream_function_field",
    "vorticity_field",
    "divergence_field",
    "polar_field",
    "jacobian_scalar_field",
    "scalar_field",
]
