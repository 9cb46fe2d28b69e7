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
Unit Tests for Domain and Polygon Sampling

Tests cover:
1. Uniform random sampling in a box
2. Gaussian mixture sampling restricted to a box
3. Tensor grids
4. Polygon boundary sampling with proportional side counts
5. Polygon interior rejection sampling
"""

import numpy as np
import pytest

from contflows.systems.base.utils.flow_validator import ValidationError
from contflows.systems.base.utils.sampling import (
    points_in_polygon,
    polygon_area,
    sample_domain_gaussian,
    sample_domain_grid,
    sample_domain_random,
    sample_polygon_boundary,
    sample_polygon_interior,
)

DOMAIN = np.array([[0.0, 2.0], [-1.0, 1.0]])
UNIT_SQUARE = np.array([[0.0, 1.0, 1.0, 0.0], [0.0, 0.0, 1.0, 1.0]])
RECTANGLE = np.array([[0.0, 3.0, 3.0, 0.0], [0.0, 0.0, 1.0, 1.0]])


def _inside(points, domain):
    return np.all((points >= domain[:, [0]]) & (points <= domain[:, [1]]))


# ============================================================================
# Test Class 1: Uniform Sampling
# ============================================================================


class TestSampleDomainRandom:
    def test_shape_and_bounds(self):
        x = sample_domain_random(500, DOMAIN, rng=0)
        assert x.shape == (2, 500)
        assert _inside(x, DOMAIN)

    def test_seed_reproducible(self):
        np.testing.assert_array_equal(
            sample_domain_random(10, DOMAIN, rng=42), sample_domain_random(10, DOMAIN, rng=42)
        )

    def test_generator_accepted(self):
        gen = np.random.default_rng(1)
        assert sample_domain_random(3, DOMAIN, rng=gen).shape == (2, 3)

    def test_zero_points(self):
        assert sample_domain_random(0, DOMAIN).shape == (2, 0)

    def test_three_dimensional(self):
        domain = [[0, 1], [0, 1], [0, 1]]
        assert sample_domain_random(5, domain, rng=0).shape == (3, 5)


# ============================================================================
# Test Class 2: Gaussian Mixture
# ============================================================================


class TestSampleDomainGaussian:
    def test_single_component(self):
        x = sample_domain_gaussian(200, [1.0, 0.0], 0.1 * np.eye(2), DOMAIN, rng=0)
        assert x.shape == (2, 200)
        assert _inside(x, DOMAIN)
        np.testing.assert_allclose(x.mean(axis=1), [1.0, 0.0], atol=0.1)

    def test_points_outside_domain_are_rejected(self):
        # Mean on the boundary: about half of each round is discarded
        x = sample_domain_gaussian(300, [2.0, 0.0], np.eye(2), DOMAIN, rng=0)
        assert x.shape == (2, 300)
        assert _inside(x, DOMAIN)

    def test_mixture_weights(self):
        mu = [[0.25, 0.0], [1.75, 0.0]]
        sigma = [[0.01, 0.01], [0.01, 0.01]]  # (K, nx) diagonal variances
        x = sample_domain_gaussian(1000, mu, sigma, DOMAIN, p=[3, 1], rng=0)
        left = np.mean(x[0] < 1.0)
        assert left == pytest.approx(0.75, abs=0.05)

    def test_per_component_covariances(self):
        mu = [[0.5, 0.0], [1.5, 0.0]]
        sigma = np.stack([0.01 * np.eye(2), 0.02 * np.eye(2)])
        x = sample_domain_gaussian(100, mu, sigma, DOMAIN, rng=0)
        assert x.shape == (2, 100)

    def test_dimension_mismatch(self):
        with pytest.raises(ValidationError, match="Dimension of the domain"):
            sample_domain_gaussian(10, [0.0, 0.0, 0.0], np.eye(3), DOMAIN)

    def test_bad_sigma_shape(self):
        with pytest.raises(ValidationError, match="sigma must have shape"):
            sample_domain_gaussian(10, [1.0, 0.0], np.eye(3), DOMAIN)

    def test_bad_weights(self):
        with pytest.raises(ValidationError, match="Weights"):
            sample_domain_gaussian(10, [[1.0, 0.0], [0.5, 0.0]], np.eye(2), DOMAIN, p=[1.0])

    def test_gives_up_after_max_rounds(self):
        far_away = [100.0, 100.0]
        with pytest.raises(ValidationError, match="after 5 rounds"):
            sample_domain_gaussian(10, far_away, 0.01 * np.eye(2), DOMAIN, rng=0, max_rounds=5)


# ============================================================================
# Test Class 3: Grids
# ============================================================================


class TestSampleDomainGrid:
    def test_count_and_bounds(self):
        x = sample_domain_grid(7, DOMAIN)
        assert x.shape == (2, 49)
        assert _inside(x, DOMAIN)

    def test_bounds_included(self):
        x = sample_domain_grid(3, DOMAIN)
        assert x[0].min() == 0.0 and x[0].max() == 2.0
        assert x[1].min() == -1.0 and x[1].max() == 1.0

    def test_first_coordinate_varies_fastest(self):
        x = sample_domain_grid(3, [[0, 1], [0, 2]])
        np.testing.assert_allclose(x[:, :4], [[0.0, 0.5, 1.0, 0.0], [0.0, 0.0, 0.0, 1.0]])

    def test_three_dimensional(self):
        x = sample_domain_grid(4, [[0, 1], [0, 1], [0, 1]])
        assert x.shape == (3, 64)
        assert len({tuple(col) for col in x.T}) == 64


# ============================================================================
# Test Class 4: Polygon Boundary
# ============================================================================


class TestSamplePolygonBoundary:
    def test_exact_count(self):
        for n in [4, 5, 13, 100]:
            assert sample_polygon_boundary(n, RECTANGLE).shape == (2, n)

    def test_side_counts_proportional(self):
        n = 80
        points = sample_polygon_boundary(n, RECTANGLE)
        # Sides: bottom (3), right (1), top (3), left (1); perimeter 8
        bottom = np.sum((points[1] == 0.0) & (points[0] < 3.0))
        right = np.sum((points[0] == 3.0) & (points[1] < 1.0))
        assert abs(bottom - n * 3 / 8) <= 1
        assert abs(right - n * 1 / 8) <= 1

    def test_points_on_boundary(self):
        points = sample_polygon_boundary(37, UNIT_SQUARE)
        on_edge = (
            np.isclose(points[0], 0)
            | np.isclose(points[0], 1)
            | np.isclose(points[1], 0)
            | np.isclose(points[1], 1)
        )
        assert np.all(on_edge)

    def test_starts_at_first_vertex(self):
        points = sample_polygon_boundary(8, UNIT_SQUARE)
        np.testing.assert_allclose(points[:, 0], [0.0, 0.0])
        np.testing.assert_allclose(points[:, 1], [0.5, 0.0])

    def test_fewer_points_than_sides(self):
        with pytest.raises(ValidationError, match="at least the number of polygon sides"):
            sample_polygon_boundary(3, UNIT_SQUARE)

    def test_invalid_polygon(self):
        with pytest.raises(ValidationError, match="Polygon"):
            sample_polygon_boundary(10, [[0, 1, np.inf], [0, 0, 1]])


# ============================================================================
# Test Class 5: Polygon Interior
# ============================================================================


class TestSamplePolygonInterior:
    def test_area(self):
        assert polygon_area(UNIT_SQUARE) == pytest.approx(1.0)
        assert polygon_area(RECTANGLE) == pytest.approx(3.0)
        assert polygon_area([[0, 1, 0], [0, 0, 1]]) == pytest.approx(0.5)

    def test_points_in_polygon(self):
        points = np.array([[0.5, 1.5, 0.2], [0.5, 0.5, 0.9]])
        np.testing.assert_array_equal(points_in_polygon(points, UNIT_SQUARE), [True, False, True])

    def test_triangle_interior(self):
        triangle = np.array([[0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
        x = sample_polygon_interior(300, triangle, rng=0)
        assert x.shape == (2, 300)
        assert np.all(x[0] + x[1] <= 1.0)
        assert np.all(x >= 0.0)

    def test_non_convex_polygon(self):
        # L-shape: the square [0, 2]^2 minus [1, 2] x [1, 2]
        l_shape = np.array([[0, 2, 2, 1, 1, 0], [0, 0, 1, 1, 2, 2]], dtype=float)
        x = sample_polygon_interior(200, l_shape, rng=1)
        assert not np.any((x[0] > 1.0) & (x[1] > 1.0))

    def test_zero_area(self):
        with pytest.raises(ValidationError, match="zero area"):
            sample_polygon_interior(5, [[0, 1, 2], [0, 1, 2]])
