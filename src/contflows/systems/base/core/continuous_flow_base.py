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
Continuous Flow Base Class
==========================

Abstract base class for all continuous-time flows dx/dt = f(t, x).
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional, Tuple

import numpy as np

from contflows.systems.base.utils import finite_difference, sampling
from contflows.systems.base.utils.flow_validator import ValidationError, validate_domain
from contflows.types.core import (
    ArrayLike,
    DomainBox,
    JacobianStack,
    ScalarLike,
    StateBatch,
    TimeLike,
)
from contflows.types.trajectories import StateTrajectory, TimePoints

if TYPE_CHECKING:
    from contflows.analysis.flow_fields import FlowFieldAnalysis
    from contflows.systems.base.utils.sampling import RandomState
    from contflows.visualization.field_plotter import FlowFieldPlotter


class ContinuousFlowBase(ABC):
    """
    Abstract base class for all continuous-time flows.

    A flow is defined by its vector field dx/dt = f(t, x) and the
    Jacobian of that field with respect to x. Points are passed as
    columns, so every evaluation is vectorized over a batch (nx, N).

    Subclasses must implement:
    1. vf(t, x): Vector field at a batch of points
    2. jacobian(t, x): Jacobian stack at a batch of points
    3. flow(x0, T, t0): Final states after time T
    4. trajectory(x0, T, t0): Trajectories sampled every dt

    ODEFlow implements 3 and 4 by numerical integration, so most flows
    only supply the vector field and its Jacobian.

    Attributes
    ----------
    domain : DomainBox
        Default box (nx, 2) for sampling and plotting
    dt : float
        Sampling step of trajectory output
    label : str
        Display name
    quiet : bool
        Suppress progress output

    Examples
    --------
    >>> class Rotation(ODEFlow):
    ...     def vf(self, t, x):
    ...         x = np.asarray(x, dtype=float)
    ...         return np.vstack([-x[1], x[0]])
    ...
    ...     def jacobian(self, t, x):
    ...         n = np.asarray(x).reshape(2, -1).shape[1]
    ...         J = np.array([[0.0, -1.0], [1.0, 0.0]])
    ...         return np.repeat(J[:, :, np.newaxis], n, axis=2)
    >>>
    >>> flow = Rotation(domain=[[-1, 1], [-1, 1]], dt=0.05)
    >>> x, t = flow.trajectory(np.array([1.0, 0.0]), T=np.pi)
    """

    def __init__(
        self,
        domain: ArrayLike,
        dt: ScalarLike = 0.1,
        label: str = "FLOWNAME",
        quiet: bool = True,
    ):
        """
        Parameters
        ----------
        domain : ArrayLike
            Box (nx, 2) with [lower, upper] rows; its row count fixes nx
        dt : float
            Trajectory sampling step, must be positive
        label : str
            Display name
        quiet : bool
            If False, integration prints short progress lines

        Raises
        ------
        ValidationError
            If the domain is malformed
        ValueError
            If dt is not positive
        """
        self.domain = domain
        self.dt = dt
        self.label = label
        self.quiet = quiet

        self._field_analysis = None
        self._field_plotter = None

    # =========================================================================
    # Configuration
    # =========================================================================

    @property
    def domain(self) -> DomainBox:
        """Default sampling and plotting box (nx, 2)."""
        return self._domain

    @domain.setter
    def domain(self, value: ArrayLike):
        domain = validate_domain(value)
        if hasattr(self, "_domain") and domain.shape != self._domain.shape:
            raise ValueError(
                f"Domain must keep the state dimension {self.nx}, got shape {domain.shape}"
            )
        self._domain = domain

    @property
    def dt(self) -> float:
        """Sampling step of trajectory output."""
        return self._dt

    @dt.setter
    def dt(self, value: ScalarLike):
        value = float(value)
        if not np.isfinite(value) or value <= 0:
            raise ValueError(f"dt must be positive and finite, got {value}")
        self._dt = value

    @property
    def nx(self) -> int:
        """State dimension."""
        return self._domain.shape[0]

    # =========================================================================
    # Abstract Methods (MUST be implemented by subclasses)
    # =========================================================================

    @abstractmethod
    def vf(self, t: TimeLike, x: ArrayLike) -> StateBatch:
        """
        Evaluate the vector field dx/dt = f(t, x).

        Parameters
        ----------
        t : TimeLike
            Scalar time, or one time per column of x
        x : ArrayLike
            Points (nx, N); a single point (nx,) is accepted

        Returns
        -------
        StateBatch
            Field values (nx, N)

        Notes
        -----
        Must accept an arbitrary number of columns. The integrators call
        it with single columns, the verifiers and field utilities with
        large batches.
        """

    @abstractmethod
    def jacobian(self, t: TimeLike, x: ArrayLike) -> JacobianStack:
        """
        Jacobian of the vector field with respect to x.

        Returns
        -------
        JacobianStack
            (nx, nx, N), J[:, :, i] at column i

        Notes
        -----
        Must be the exact derivative of vf; check with test_jacobian().
        """

    @abstractmethod
    def flow(self, x0: ArrayLike, T: ScalarLike, t0: ScalarLike = 0.0) -> StateBatch:
        """
        Final states x(t0 + T) of trajectories starting at x0.

        Parameters
        ----------
        x0 : ArrayLike
            Initial conditions (nx, N) or a single point (nx,)
        T : float
            Duration; negative integrates backward
        t0 : float
            Initial time

        Returns
        -------
        StateBatch
            Final states, shaped like x0
        """

    @abstractmethod
    def trajectory(
        self, x0: ArrayLike, T: ScalarLike, t0: ScalarLike = 0.0
    ) -> Tuple[StateTrajectory, TimePoints]:
        """
        Trajectories of x0 sampled every dt.

        Returns
        -------
        x : StateTrajectory
            (nx, L, N): state dimension, time index, trajectory index
        t : TimePoints
            (L,) times t0 + k*dt
        """

    # =========================================================================
    # Concrete Methods
    # =========================================================================

    def __call__(self, x: ArrayLike, t: TimeLike = 0.0) -> StateBatch:
        """Shorthand for vf(t, x)."""
        return self.vf(t, x)

    def test_jacobian(self, t: ScalarLike, x: ArrayLike, delta: float = 1e-6) -> np.ndarray:
        """
        Compare jacobian() with a central difference of vf().

        Parameters
        ----------
        t : float
            Single time value
        x : ArrayLike
            Single point (nx,) or (nx, 1)
        delta : float
            Finite-difference step

        Returns
        -------
        np.ndarray
            Error (nx, nx), analytic minus numeric; O(delta**2) for a
            correct Jacobian

        Raises
        ------
        ValidationError
            If more than one time or point is passed, or delta <= 0

        Examples
        --------
        >>> err = flow.test_jacobian(0.0, [0.3, 0.4])
        >>> np.abs(err).max() < 1e-6
        True
        """
        return finite_difference.jacobian_error(self, t, x, delta)

    # =========================================================================
    # Sampling
    # =========================================================================

    def _sampling_domain(self, domain: Optional[ArrayLike]) -> DomainBox:
        if domain is None:
            return self.domain
        domain = validate_domain(domain)
        if domain.shape[0] != self.nx:
            raise ValidationError(
                f"Sampling domain must have {self.nx} rows, got {domain.shape[0]}"
            )
        return domain

    def sample_domain_random(
        self, n: int, domain: Optional[ArrayLike] = None, rng: "RandomState" = None
    ) -> StateBatch:
        """n uniformly random points in domain (default: the flow's), (nx, n)."""
        return sampling.sample_domain_random(n, self._sampling_domain(domain), rng=rng)

    def sample_domain_gaussian(
        self,
        n: int,
        mu: ArrayLike,
        sigma: ArrayLike,
        p: Optional[ArrayLike] = None,
        domain: Optional[ArrayLike] = None,
        rng: "RandomState" = None,
        max_rounds: int = 1000,
    ) -> StateBatch:
        """
        n points from a Gaussian mixture, restricted to domain (default:
        the flow's domain).

        See sampling.sample_domain_gaussian for the accepted shapes.
        """
        return sampling.sample_domain_gaussian(
            n, mu, sigma, self._sampling_domain(domain), p=p, rng=rng, max_rounds=max_rounds
        )

    def sample_domain_grid(self, n: int, domain: Optional[ArrayLike] = None) -> StateBatch:
        """Tensor grid with n points per axis over domain (default: the flow's)."""
        return sampling.sample_domain_grid(n, self._sampling_domain(domain))

    def sample_polygon_boundary(self, n: int, polygon: ArrayLike) -> StateBatch:
        """n points spread evenly along a polygon boundary, (2, n)."""
        return sampling.sample_polygon_boundary(n, polygon)

    def sample_polygon_interior(
        self, n: int, polygon: ArrayLike, rng: "RandomState" = None
    ) -> StateBatch:
        """n uniformly random points inside a polygon, (2, n)."""
        return sampling.sample_polygon_interior(n, polygon, rng=rng)

    # =========================================================================
    # Field Analysis and Plotting Integration
    # =========================================================================

    @property
    def fields(self) -> "FlowFieldAnalysis":
        """
        Access grid field evaluation (2D flows).

        Returns
        -------
        FlowFieldAnalysis
            Utilities with methods:
            - velocity(t, resolution=None, grid=None)
            - vorticity(t, normalized=False, ...)
            - divergence(t, normalized=False, ...)
            - polar(t, logarithmic=False, ...)
            - jacobian_scalar(t, fn, ...)
            - scalar(t, fn, use_velocity=True, use_jacobian=False, ...)

        Examples
        --------
        >>> vort = flow.fields.vorticity(t=0.0, resolution=101)
        >>> vort["values"].shape
        (101, 101, 1)

        See Also
        --------
        plotter : Rendering of field results
        """
        if self._field_analysis is None:
            from contflows.analysis.flow_fields import FlowFieldAnalysis

            self._field_analysis = FlowFieldAnalysis(self)

        return self._field_analysis

    @property
    def plotter(self) -> "FlowFieldPlotter":
        """
        Access plotly rendering of field results and trajectories.

        Examples
        --------
        >>> fig = flow.plotter.plot_scalar_field(flow.fields.vorticity(0.0))
        >>> fig.show()
        >>>
        >>> x, t = flow.trajectory(x0, T=10.0)
        >>> fig = flow.plotter.plot_trajectories(x)
        """
        if self._field_plotter is None:
            from contflows.visualization.field_plotter import FlowFieldPlotter

            self._field_plotter = FlowFieldPlotter(label=self.label)

        return self._field_plotter

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(nx={self.nx}, dt={self.dt}, label='{self.label}')"

    def __str__(self) -> str:
        return f"{self.label} ({self.nx}D)"
