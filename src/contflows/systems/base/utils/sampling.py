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
Sampling Utilities - Initial Conditions over Domains and Polygons

Pure functions producing point batches (nx, N), one point per column:

- sample_domain_random: uniform in a box
- sample_domain_gaussian: Gaussian mixture restricted to a box
- sample_domain_grid: tensor grid over a box
- sample_polygon_boundary: evenly spaced points along a polygon boundary
- sample_polygon_interior: uniform points inside a polygon

Random functions take an optional ``rng`` (numpy Generator or seed) so
results are reproducible in tests.
"""

from typing import Optional, Union

import numpy as np

from contflows.systems.base.utils.flow_validator import (
    ValidationError,
    validate_domain,
    validate_polygon,
)
from contflows.types.core import ArrayLike, DomainBox, Polygon, StateBatch

RandomState = Optional[Union[np.random.Generator, int]]


def _rng(rng: RandomState) -> np.random.Generator:
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def _count(n: int, name: str = "N", minimum: int = 0) -> int:
    if isinstance(n, (bool, np.bool_)) or int(n) != n or n < minimum:
        raise ValidationError(f"{name} must be an integer >= {minimum}, got {n!r}")
    return int(n)


# ============================================================================
# Box Domains
# ============================================================================


def sample_domain_random(n: int, domain: ArrayLike, rng: RandomState = None) -> StateBatch:
    """
    Draw n uniformly random points inside a rectangular domain.

    Parameters
    ----------
    n : int
        Number of points
    domain : DomainBox
        Box (nx, 2), rows [lower, upper]
    rng : Generator or int, optional
        Random generator or seed

    Returns
    -------
    StateBatch
        Points (nx, n)
    """
    n = _count(n)
    domain = validate_domain(domain)
    width = domain[:, 1] - domain[:, 0]
    unit = _rng(rng).random((domain.shape[0], n))
    return domain[:, [0]] + unit * width[:, np.newaxis]


def sample_domain_gaussian(
    n: int,
    mu: ArrayLike,
    sigma: ArrayLike,
    domain: ArrayLike,
    p: Optional[ArrayLike] = None,
    rng: RandomState = None,
    max_rounds: int = 1000,
) -> StateBatch:
    """
    Draw n points from a Gaussian mixture, keeping only points in the domain.

    The mixture is resampled in rounds of n draws until n points fall inside
    the (closed) domain.

    Parameters
    ----------
    n : int
        Number of points
    mu : ArrayLike
        Component means (K, nx); a single mean (nx,) is one component
    sigma : ArrayLike
        Covariances: (K, nx, nx) per component, (nx, nx) shared by all
        components, or (K, nx) diagonal variances
    domain : DomainBox
        Box (nx, 2)
    p : ArrayLike, optional
        Component weights (K,), normalized internally; equal if omitted
    rng : Generator or int, optional
        Random generator or seed
    max_rounds : int
        Give up after this many rounds

    Returns
    -------
    StateBatch
        Points (nx, n)

    Raises
    ------
    ValidationError
        If the dimension of the domain and of the distribution differ, the
        covariance or weight shapes do not match, or fewer than n points
        landed in the domain after max_rounds rounds
    """
    n = _count(n)
    domain = validate_domain(domain)
    dim = domain.shape[0]

    mu = np.atleast_2d(np.asarray(mu, dtype=float))
    if mu.shape[1] != dim:
        raise ValidationError(
            "Dimension of the domain and dimension of distributions have to match: "
            f"domain is {dim}-D, means are {mu.shape[1]}-D"
        )
    k = mu.shape[0]
    cov = _mixture_covariances(sigma, k, dim)

    if p is None:
        weights = np.full(k, 1.0 / k)
    else:
        weights = np.asarray(p, dtype=float).reshape(-1)
        if weights.size != k or np.any(weights < 0) or weights.sum() <= 0:
            raise ValidationError(
                f"Weights must be {k} non-negative numbers with positive sum, got {weights}"
            )
        weights = weights / weights.sum()

    gen = _rng(rng)
    accepted = np.zeros((dim, 0))
    for _ in range(max_rounds):
        if accepted.shape[1] >= n:
            break
        components = gen.choice(k, size=n, p=weights)
        draws = np.empty((n, dim))
        for c in range(k):
            sel = components == c
            if np.any(sel):
                draws[sel] = gen.multivariate_normal(mu[c], cov[c], size=int(sel.sum()))
        inside = np.all((draws >= domain[:, 0]) & (draws <= domain[:, 1]), axis=1)
        accepted = np.hstack([accepted, draws[inside].T])
    else:
        if accepted.shape[1] < n:
            raise ValidationError(
                f"Only {accepted.shape[1]} of {n} mixture samples fell inside the domain "
                f"after {max_rounds} rounds"
            )

    return accepted[:, :n]


def _mixture_covariances(sigma: ArrayLike, k: int, dim: int) -> np.ndarray:
    sigma = np.asarray(sigma, dtype=float)
    if sigma.shape == (dim, dim):
        return np.broadcast_to(sigma, (k, dim, dim))
    if sigma.shape == (k, dim, dim):
        return sigma
    if sigma.shape == (k, dim):
        return np.stack([np.diag(row) for row in sigma])
    raise ValidationError(
        f"sigma must have shape ({dim}, {dim}), ({k}, {dim}, {dim}) or ({k}, {dim}), "
        f"got {sigma.shape}"
    )


def sample_domain_grid(n: int, domain: ArrayLike) -> StateBatch:
    """
    Regular tensor grid with n points per axis, bounds included.

    Points are ordered with the first coordinate varying fastest, as in a
    column-major flattening of ``np.meshgrid(..., indexing="ij")``.

    Parameters
    ----------
    n : int
        Points per axis
    domain : DomainBox
        Box (nx, 2)

    Returns
    -------
    StateBatch
        Points (nx, n**nx)

    Examples
    --------
    >>> sample_domain_grid(3, [[0, 1], [0, 2]])[:, :4]
    array([[0. , 0.5, 1. , 0. ],
           [0. , 0. , 0. , 1. ]])
    """
    n = _count(n)
    domain = validate_domain(domain)
    axes = [np.linspace(lo, hi, n) for lo, hi in domain]
    grids = np.meshgrid(*axes, indexing="ij")
    return np.vstack([g.ravel(order="F") for g in grids])


# ============================================================================
# Polygons
# ============================================================================


def sample_polygon_boundary(n: int, polygon: ArrayLike) -> StateBatch:
    """
    Sample n points along a polygon boundary, as evenly as possible.

    Each side receives a share of the n points proportional to its length
    (floored), then single points are removed from the side with the
    smallest spacing or added to the side with the largest spacing until
    the total is exactly n. Each side is sampled uniformly from its first
    vertex, excluding its last vertex (which starts the next side).

    Parameters
    ----------
    n : int
        Number of points, at least the number of sides
    polygon : Polygon
        Vertices (2, S)

    Returns
    -------
    StateBatch
        Points (2, n)
    """
    polygon = validate_polygon(polygon)
    sides = polygon.shape[1]
    n = _count(n)
    if n < sides:
        raise ValidationError(
            f"N must be at least the number of polygon sides ({sides}), got {n}"
        )

    closed = np.hstack([polygon, polygon[:, [0]]])
    lengths = np.sqrt(np.sum(np.diff(closed, axis=1) ** 2, axis=0))
    perimeter = lengths.sum()
    if perimeter == 0:
        raise ValidationError("Polygon has zero perimeter")

    counts = np.floor(n * lengths / perimeter).astype(int)

    with np.errstate(divide="ignore", invalid="ignore"):
        while counts.sum() > n:
            gap = np.where(counts > 0, lengths / counts, np.inf)
            counts[np.argmin(gap)] -= 1
        while counts.sum() < n:
            gap = np.where(counts > 0, lengths / counts, np.inf)
            gap[lengths == 0] = -np.inf
            counts[np.argmax(gap)] += 1

    pieces = []
    for s in range(sides):
        frac = np.arange(counts[s]) / counts[s] if counts[s] else np.empty(0)
        start, stop = closed[:, s], closed[:, s + 1]
        pieces.append(start[:, np.newaxis] + np.outer(stop - start, frac))
    return np.hstack(pieces)


def polygon_area(polygon: ArrayLike) -> float:
    """Unsigned area of a simple polygon (shoelace formula)."""
    polygon = validate_polygon(polygon)
    x, y = polygon
    return 0.5 * abs(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))


def points_in_polygon(points: ArrayLike, polygon: Polygon) -> np.ndarray:
    """
    Even-odd rule membership test.

    Parameters
    ----------
    points : ArrayLike
        Points (2, N)
    polygon : Polygon
        Vertices (2, S)

    Returns
    -------
    np.ndarray
        Boolean mask (N,)
    """
    points = np.asarray(points, dtype=float)
    px, py = points[0][:, np.newaxis], points[1][:, np.newaxis]
    x0, y0 = polygon
    x1, y1 = np.roll(x0, -1), np.roll(y0, -1)

    straddles = (y0 > py) != (y1 > py)
    with np.errstate(divide="ignore", invalid="ignore"):
        x_cross = x0 + (py - y0) * (x1 - x0) / (y1 - y0)
    crossings = straddles & (px < x_cross)
    return np.count_nonzero(crossings, axis=1) % 2 == 1


def sample_polygon_interior(n: int, polygon: ArrayLike, rng: RandomState = None) -> StateBatch:
    """
    Draw n uniformly random points inside a polygon by rejection.

    Candidates are drawn from the polygon's bounding box, oversampled by
    the ratio of box area to polygon area so one round usually suffices.

    Parameters
    ----------
    n : int
        Number of points
    polygon : Polygon
        Vertices (2, S)
    rng : Generator or int, optional
        Random generator or seed

    Returns
    -------
    StateBatch
        Points (2, n)
    """
    n = _count(n)
    polygon = validate_polygon(polygon)
    area = polygon_area(polygon)
    if area == 0:
        raise ValidationError("Polygon has zero area")

    box: DomainBox = np.column_stack([polygon.min(axis=1), polygon.max(axis=1)])
    ratio = np.prod(box[:, 1] - box[:, 0]) / area
    batch = max(int(np.ceil(ratio * n)), 1)

    gen = _rng(rng)
    points = np.zeros((2, 0))
    while points.shape[1] < n:
        candidates = sample_domain_random(batch, box, rng=gen)
        inside = candidates[:, points_in_polygon(candidates, polygon)]
        points = np.hstack([points, inside[:, : n - points.shape[1]]])
    return points


__all__ = [
    "sample_domain_random",
    "sample_domain_gaussian",
    "sample_domain_grid",
    "sample_polygon_boundary",
    "sample_polygon_interior",
    "polygon_area",
    "points_in_polygon",
]
