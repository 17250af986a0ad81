"""Tests for reflection lists, powder patterns and simulation settings."""

import chex
import jax
import jax.numpy as jnp
import pytest
from absl.testing import parameterized

from xrpdium.types import (
    DomainError,
    PowderPattern,
    SimulationSettings,
    add_patterns,
    check_uniform_grid,
    create_powder_pattern,
    create_reflection_list,
    create_simulation_settings,
    make_two_theta_grid,
    pattern_step,
    scale_pattern,
)


class TestTwoThetaGrid(chex.TestCase, parameterized.TestCase):
    """Test grid construction and the uniform-step check."""

    @parameterized.named_parameters(
        ("coarse", 10.0, 20.0, 0.5, 21),
        ("fine", 5.0, 35.0, 0.015, 2001),
        ("end_off_grid", 10.0, 10.95, 0.1, 10),
    )
    def test_grid_size(self, start, end, step, n_points) -> None:
        grid = make_two_theta_grid(start, end, step)
        chex.assert_shape(grid, (n_points,))
        chex.assert_trees_all_close(grid[0], start)
        chex.assert_trees_all_close(pattern_step(grid), step, rtol=1e-10)

    def test_invalid_grid_raises(self) -> None:
        with pytest.raises(ValueError):
            make_two_theta_grid(10.0, 20.0, 0.0)
        with pytest.raises(ValueError):
            make_two_theta_grid(20.0, 10.0, 0.1)

    def test_uniform_grid_returns_step(self) -> None:
        grid = make_two_theta_grid(10.0, 20.0, 0.02)
        chex.assert_trees_all_close(check_uniform_grid(grid), 0.02, rtol=1e-8)

    def test_non_uniform_grid_raises(self) -> None:
        grid = jnp.array([10.0, 10.1, 10.2, 10.35, 10.4])
        with pytest.raises(DomainError):
            check_uniform_grid(grid)
        pattern = create_powder_pattern(grid, jnp.ones(5))
        with pytest.raises(DomainError):
            check_uniform_grid(pattern)

    def test_single_point_has_no_step(self) -> None:
        with pytest.raises(DomainError):
            pattern_step(jnp.array([10.0]))


class TestPowderPattern(chex.TestCase):
    """Test pattern creation, addition and scaling."""

    def setUp(self) -> None:
        super().setUp()
        self.grid = make_two_theta_grid(10.0, 11.0, 0.25)
        self.first = create_powder_pattern(self.grid, jnp.full(5, 16.0))
        self.second = create_powder_pattern(
            self.grid, jnp.full(5, 9.0), jnp.full(5, 3.0)
        )

    def test_default_esd_is_square_root(self) -> None:
        chex.assert_trees_all_close(self.first.esd, jnp.full(5, 4.0))

    def test_pattern_is_pytree(self) -> None:
        doubled = jax.tree_util.tree_map(lambda x: 2.0 * x, self.first)
        self.assertIsInstance(doubled, PowderPattern)
        chex.assert_trees_all_close(doubled.intensity, jnp.full(5, 32.0))

    def test_invalid_patterns_raise(self) -> None:
        with pytest.raises(ValueError):
            create_powder_pattern(jnp.array([10.0, 10.0]), jnp.ones(2))
        with pytest.raises(ValueError):
            create_powder_pattern(jnp.array([10.0, 11.0]), jnp.array([1.0, jnp.nan]))

    def test_add_patterns(self) -> None:
        total = add_patterns(self.first, self.second)
        chex.assert_trees_all_close(total.intensity, jnp.full(5, 25.0))
        chex.assert_trees_all_close(total.esd, jnp.full(5, 5.0))

    def test_add_patterns_on_other_grid_raises(self) -> None:
        shifted = create_powder_pattern(self.grid + 0.01, jnp.ones(5))
        with pytest.raises(DomainError):
            add_patterns(self.first, shifted)

    def test_scale_pattern(self) -> None:
        scaled = scale_pattern(self.second, -2.0)
        chex.assert_trees_all_close(scaled.intensity, jnp.full(5, -18.0))
        chex.assert_trees_all_close(scaled.esd, jnp.full(5, 6.0))


class TestReflectionList(chex.TestCase):
    """Test ordering and validation of reflection lists."""

    def test_sorted_by_two_theta(self) -> None:
        reflections = create_reflection_list(
            hkl=jnp.array([[2, 0, 0], [1, 1, 1]]),
            d_spacing=jnp.array([2.82, 3.256]),
            two_theta=jnp.array([31.7, 27.37]),
            f_squared=jnp.array([100.0, 4.0]),
            multiplicity=jnp.array([6, 8]),
        )
        self.assertEqual(reflections.n_reflections, 2)
        chex.assert_trees_all_equal(reflections.hkl[0], jnp.array([1, 1, 1]))
        chex.assert_trees_all_close(reflections.intensity, jnp.array([32.0, 600.0]))
        chex.assert_trees_all_close(reflections.orientation_factor, jnp.ones(2))

    def test_invalid_values_raise(self) -> None:
        with pytest.raises(ValueError):
            create_reflection_list(
                jnp.array([[1, 0, 0]]),
                jnp.array([2.0]),
                jnp.array([40.0]),
                jnp.array([-1.0]),
                jnp.array([2]),
            )
        with pytest.raises(ValueError):
            create_reflection_list(
                jnp.array([[1, 0, 0]]),
                jnp.array([2.0]),
                jnp.array([40.0]),
                jnp.array([1.0]),
                jnp.array([0]),
            )


class TestSimulationSettings(chex.TestCase, parameterized.TestCase):
    """Test defaults and validation of the simulation settings."""

    def test_defaults(self) -> None:
        settings = create_simulation_settings()
        self.assertIsInstance(settings, SimulationSettings)
        self.assertEqual(settings, SimulationSettings())
        self.assertAlmostEqual(settings.wavelength, 1.54056)
        self.assertEqual(settings.background_model, "amorphous")

    def test_sequences_become_tuples(self) -> None:
        settings = create_simulation_settings(
            preferred_orientation=[1, 1, 0], chebyshev_coefficients=[1.0, 2]
        )
        self.assertEqual(settings.preferred_orientation, (1, 1, 0))
        self.assertEqual(settings.chebyshev_coefficients, (1.0, 2.0))

    @parameterized.named_parameters(
        ("negative_wavelength", {"wavelength": -1.0}),
        ("zero_step", {"two_theta_step": 0.0}),
        ("empty_window", {"two_theta_start": 40.0, "two_theta_end": 30.0}),
        ("window_past_180", {"two_theta_end": 180.0}),
        ("eta_above_one", {"eta": 1.5}),
        ("r_zero", {"march_dollase_r": 0.0}),
        ("r_above_one", {"march_dollase_r": 1.2}),
        ("zero_axis", {"preferred_orientation": (0, 0, 0)}),
        ("unknown_background", {"background_model": "spline"}),
        ("negative_floor", {"noise_floor": -1.0}),
        ("zero_target", {"highest_peak": 0.0}),
        ("fcj_without_tail", {"include_fcj": True, "fcj_a": 0.0}),
    )
    def test_invalid_settings_raise(self, overrides) -> None:
        with pytest.raises(ValueError):
            create_simulation_settings(**overrides)

    def test_targets_may_be_disabled(self) -> None:
        settings = create_simulation_settings(
            bragg_total_signal=None, highest_peak=None
        )
        self.assertIsNone(settings.bragg_total_signal)
        self.assertIsNone(settings.highest_peak)
