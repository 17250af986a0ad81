"""Tests for peak profiles, axial divergence and Bragg-profile synthesis."""

import chex
import jax.numpy as jnp
import numpy as np
import pytest
from absl.testing import parameterized

from xrpdium.simul import (
    fcj_kernel,
    fcj_low_angle_extent,
    fcj_profile,
    gaussian_profile,
    lorentz_polarisation_factor,
    lorentzian_profile,
    pseudo_voigt_profile,
    synthesize_bragg_profile,
)
from xrpdium.types import DomainError, make_two_theta_grid


class TestSymmetricProfiles(chex.TestCase, parameterized.TestCase):
    """Test area and width of the symmetric profiles."""

    @chex.variants(with_jit=True, without_jit=True)
    @parameterized.named_parameters(
        ("gaussian", 0.0),
        ("mixed", 0.5),
        ("default", 0.9),
    )
    def test_pseudo_voigt_width(self, eta) -> None:
        var_fn = self.variant(lambda x: pseudo_voigt_profile(x, 0.1, eta))
        values = var_fn(jnp.array([0.0, -0.05, 0.05]))
        chex.assert_trees_all_close(values[1:], 0.5 * values[0] * jnp.ones(2))

    def test_gaussian_area(self) -> None:
        step = 1e-4
        x = jnp.arange(-5.0, 5.0, step)
        area = jnp.sum(gaussian_profile(x, 0.1)) * step
        chex.assert_trees_all_close(area, 1.0, rtol=1e-8)

    def test_lorentzian_area(self) -> None:
        step = 1e-3
        half_range = 500.0
        x = jnp.arange(-half_range, half_range, step)
        area = jnp.sum(lorentzian_profile(x, 0.1)) * step
        expected = 2.0 / np.pi * np.arctan(half_range / 0.05)
        chex.assert_trees_all_close(area, expected, rtol=1e-5)

    def test_invalid_width_raises(self) -> None:
        with pytest.raises(ValueError):
            gaussian_profile(jnp.zeros(3), 0.0)
        with pytest.raises(ValueError):
            pseudo_voigt_profile(jnp.zeros(3), -0.1)

    def test_lorentz_polarisation(self) -> None:
        values = lorentz_polarisation_factor(jnp.array([30.0, 90.0]))
        expected = jnp.array(
            [
                1.75 / (2.0 * 0.5 * np.sin(np.radians(15.0))),
                1.0 / (2.0 * np.sin(np.radians(45.0))),
            ]
        )
        chex.assert_trees_all_close(values, expected, rtol=1e-12)


class TestAxialDivergence(chex.TestCase, parameterized.TestCase):
    """Test the Finger-Cox-Jephcoat kernel and profile."""

    @parameterized.named_parameters(
        ("low", 10.0),
        ("mid", 30.0),
        ("high", 80.0),
    )
    def test_kernel_normalised(self, two_theta) -> None:
        offsets, weights = fcj_kernel(two_theta, 0.02, 0.02)
        chex.assert_trees_all_close(jnp.sum(weights), 1.0, rtol=1e-12)
        self.assertTrue(bool(jnp.all(weights >= 0.0)))
        self.assertTrue(bool(jnp.all(offsets <= 0.0)))

    def test_kernel_is_single_node_past_90(self) -> None:
        offsets, weights = fcj_kernel(95.0, 0.02, 0.02)
        chex.assert_trees_all_close(weights[-1], 1.0)
        chex.assert_trees_all_close(jnp.sum(weights[:-1]), 0.0)
        chex.assert_trees_all_close(offsets[-1], 0.0)

    def test_tail_shrinks_towards_90(self) -> None:
        extent = fcj_low_angle_extent(
            jnp.array([20.0, 40.0, 60.0, 80.0, 95.0]), 0.02, 0.02
        )
        self.assertTrue(bool(jnp.all(jnp.diff(extent[:4]) < 0.0)))
        self.assertGreater(float(extent[0]), 0.0)
        chex.assert_trees_all_close(extent[4], 0.0)

    @chex.variants(with_jit=True, without_jit=True)
    def test_profile_area_and_asymmetry(self) -> None:
        step = 1e-3
        x = jnp.arange(-5.0, 5.0, step)
        var_fn = self.variant(lambda v: fcj_profile(v, 20.0, 0.1, 0.02, 0.02, 0.0))
        values = var_fn(x)
        chex.assert_trees_all_close(jnp.sum(values) * step, 1.0, rtol=1e-6)
        low = float(jnp.sum(jnp.where(x < 0.0, values, 0.0)))
        high = float(jnp.sum(jnp.where(x > 0.0, values, 0.0)))
        self.assertGreater(low, high)

    def test_profile_symmetric_past_90(self) -> None:
        x = jnp.linspace(-1.0, 1.0, 201)
        chex.assert_trees_all_close(
            fcj_profile(x, 100.0, 0.1, 0.02, 0.02),
            pseudo_voigt_profile(x, 0.1),
            rtol=1e-12,
        )
        values = fcj_profile(x, 120.0, 0.1, 0.02, 0.02)
        chex.assert_trees_all_close(values, values[::-1], rtol=1e-12)

    @parameterized.named_parameters(
        ("zero_a", 0.1, 0.0, 0.02),
        ("negative_b", 0.1, 0.02, -0.01),
        ("zero_width", 0.0, 0.02, 0.02),
    )
    def test_invalid_parameters_raise(self, fwhm, a, b) -> None:
        with pytest.raises(ValueError):
            fcj_profile(jnp.zeros(3), 30.0, fwhm, a, b)


class TestSynthesizeBraggProfile(chex.TestCase, parameterized.TestCase):
    """Test that peaks are placed on the grid with their integrated intensity."""

    def setUp(self) -> None:
        super().setUp()
        self.positions = jnp.array([20.0, 30.123, 40.5])
        self.intensities = jnp.array([100.0, 250.0, 50.0])

    @parameterized.named_parameters(
        ("narrow_fine", 0.1, 0.01),
        ("wide_coarse", 0.3, 0.02),
        ("very_fine", 0.05, 0.005),
        ("undersampled", 0.2, 0.05),
    )
    def test_area_is_conserved(self, fwhm, step) -> None:
        grid = make_two_theta_grid(10.0, 50.0, step)
        profile = synthesize_bragg_profile(
            grid, self.positions, self.intensities, fwhm
        )
        chex.assert_trees_all_close(jnp.sum(profile) * step, 400.0, rtol=1e-9)
        self.assertTrue(bool(jnp.all(profile >= 0.0)))

    def test_area_is_conserved_with_asymmetry(self) -> None:
        step = 0.01
        grid = make_two_theta_grid(10.0, 50.0, step)
        profile = synthesize_bragg_profile(
            grid, self.positions, self.intensities, 0.1, asymmetry=(0.02, 0.02)
        )
        chex.assert_trees_all_close(jnp.sum(profile) * step, 400.0, rtol=1e-9)

    def test_integer_parameters_accepted(self) -> None:
        step = 0.01
        grid = make_two_theta_grid(10.0, 50.0, step)
        from_ints = synthesize_bragg_profile(
            grid, self.positions, self.intensities, 1, eta=1, cutoff_fwhm=8
        )
        from_floats = synthesize_bragg_profile(
            grid, self.positions, self.intensities, 1.0, eta=1.0, cutoff_fwhm=8.0
        )
        chex.assert_trees_all_close(from_ints, from_floats, rtol=1e-12)
        chex.assert_trees_all_close(jnp.sum(from_ints) * step, 400.0, rtol=1e-9)

    def test_integer_fwhm_must_be_positive(self) -> None:
        grid = make_two_theta_grid(10.0, 50.0, 0.01)
        with pytest.raises(ValueError):
            synthesize_bragg_profile(grid, self.positions, self.intensities, 0)

    def test_peak_maximum_at_position(self) -> None:
        grid = make_two_theta_grid(10.0, 50.0, 0.01)
        profile = synthesize_bragg_profile(
            grid, jnp.array([25.0]), jnp.array([1.0]), 0.1
        )
        chex.assert_trees_all_close(grid[jnp.argmax(profile)], 25.0, atol=1e-9)

    def test_asymmetry_moves_centroid_down(self) -> None:
        grid = make_two_theta_grid(10.0, 50.0, 0.01)
        profile = synthesize_bragg_profile(
            grid, jnp.array([15.0]), jnp.array([1.0]), 0.1, asymmetry=(0.02, 0.02)
        )
        centroid = float(jnp.sum(grid * profile) / jnp.sum(profile))
        self.assertLess(centroid, 15.0)

    def test_peak_at_grid_edge_is_truncated(self) -> None:
        grid = make_two_theta_grid(10.0, 50.0, 0.01)
        profile = synthesize_bragg_profile(
            grid, jnp.array([10.0]), jnp.array([100.0]), 0.1
        )
        area = float(jnp.sum(profile) * 0.01)
        self.assertLess(area, 100.0)
        self.assertGreater(area, 40.0)

    def test_no_peaks_gives_zeros(self) -> None:
        grid = make_two_theta_grid(10.0, 20.0, 0.1)
        profile = synthesize_bragg_profile(
            grid, jnp.zeros(0), jnp.zeros(0), 0.1
        )
        chex.assert_trees_all_close(profile, jnp.zeros(grid.shape[0]))

    def test_non_uniform_grid_raises(self) -> None:
        grid = jnp.array([10.0, 10.1, 10.3, 10.4])
        with pytest.raises(DomainError):
            synthesize_bragg_profile(grid, jnp.array([10.2]), jnp.array([1.0]), 0.1)

    def test_invalid_width_raises(self) -> None:
        grid = make_two_theta_grid(10.0, 20.0, 0.1)
        with pytest.raises(ValueError):
            synthesize_bragg_profile(grid, jnp.array([15.0]), jnp.array([1.0]), -0.1)
