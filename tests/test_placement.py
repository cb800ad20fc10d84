import numpy as np
import pytest

from ipt.model import PlacementMode, TensionParameters
from ipt.placement import (
    biased_split,
    center_bounds_for_perm,
    equal_spaced_anchors,
    get_engine,
    neutral_centers_from_bounds,
    projected_pairwise_solve,
    quantize_interval,
    quantized_split,
    repulsion_deltas,
    repulsion_diagnostics,
    repulsion_forces,
    rho_place,
    safe_anchor_range,
)


def _down(n):
    return ["down"] * n


def test_quantized_split_even_rounds_half_up():
    assert quantized_split(12, 0.5) == (6, 6)
    assert quantized_split(10, 0.25) == (3, 7)
    assert quantized_split(10, 0.0) == (0, 10)
    assert quantized_split(10, 1.0) == (10, 0)


def test_quantized_split_odd_follows_bias():
    assert quantized_split(7, 0.5, "down") == (4, 3)
    assert quantized_split(7, 0.5, "up") == (3, 4)
    assert quantized_split(0, 0.5) == (0, 0)


def test_quantize_interval_floors_anchor():
    assert quantize_interval(6.7, 12, 0.5) == (6, 0, 12)
    assert quantize_interval(4.0 - 1e-12, 3, 0.5, "up") == (4, 3, 6)


def test_rho_place_continuous_endpoints():
    low, high = rho_place(10.0, 8, 0.25)
    assert low == pytest.approx(8.0)
    assert high == pytest.approx(16.0)


def test_legacy_split_and_range():
    assert biased_split(7, False) == (4, 3)
    assert biased_split(7, True) == (3, 4)
    assert biased_split(8, True) == (4, 4)
    assert safe_anchor_range(36, [11, 7, 16]) == (8, 28)


def test_equal_spaced_anchors_largest_remainder():
    assert equal_spaced_anchors(4, 11, 3) == [4, 8, 11]
    assert equal_spaced_anchors(0, 10, 4) == [0, 4, 7, 10]
    assert equal_spaced_anchors(5, 5, 1) == [5]
    assert equal_spaced_anchors(5, 9, 0) == []


def test_uniform_engine_shares_anchors_across_orderings():
    params = TensionParameters(placement_mode="v1")
    engine = get_engine(PlacementMode.UNIFORM)
    first = engine.solve_centers(36, [11, 7, 16], params, _down(3))
    second = engine.solve_centers(36, [16, 11, 7], params, _down(3))
    assert first.anchors == second.anchors == [8, 18, 28]
    assert first.endpoints() == [(2, 13), (14, 21), (20, 36)]


def test_uniform_engine_infeasible():
    params = TensionParameters(placement_mode="v1")
    assert get_engine("v1").solve_centers(12, [13], params, _down(1)) is None


def test_prefix_slack_single_octave_interval():
    params = TensionParameters()
    placement = get_engine("v2").solve_centers(12, [12], params, _down(1))
    assert placement.anchor_range == (6.0, 6.0)
    assert placement.anchors == [6]
    assert placement.endpoints() == [(0, 12)]


def test_prefix_slack_alpha_zero_is_uniform_grid():
    params = TensionParameters(anchor_alpha=0.0)
    placement = get_engine("v2").solve_centers(36, [11, 7, 16], params, _down(3))
    np.testing.assert_allclose(placement.centers, [8.0, 18.0, 28.0])
    assert placement.anchors == [8, 18, 28]


def test_prefix_slack_blend():
    params = TensionParameters(anchor_alpha=0.3, anchor_beta=1.0)
    perm = [11, 7, 16]
    placement = get_engine("v2").solve_centers(36, perm, params, _down(3))
    slack = np.array([25.0, 29.0, 20.0])
    fractions = np.array([0.0, slack[0], slack[0] + slack[1]]) / slack.sum()
    grid = 8 + np.array([0.0, 0.5, 1.0]) * 20
    expected = 0.7 * grid + 0.3 * (8 + fractions * 20)
    np.testing.assert_allclose(placement.centers, expected)
    np.testing.assert_allclose(placement.meta["prefix_fractions"], fractions)
    assert placement.meta["total_weight"] == pytest.approx(74.0)


def test_prefix_slack_infeasible():
    params = TensionParameters()
    assert get_engine("v2").solve_centers(12, [16], params, _down(1)) is None


def test_prefix_dominance_beta_zero_is_equal_spacing():
    params = TensionParameters(placement_mode="prefixDominance", anchor_beta=0.0)
    placement = get_engine("prefixDominance").solve_centers(24, [12, 5, 8], params, _down(3))
    assert placement.anchor_range == (6.0, 18.0)
    np.testing.assert_allclose(placement.centers, [6.0, 10.0, 14.0])


def test_prefix_dominance_depends_on_ordering():
    params = TensionParameters(placement_mode="prefixDominance", anchor_beta=1.0)
    engine = get_engine("prefixDominance")
    long_first = engine.solve_centers(24, [12, 5, 8], params, _down(3))
    short_first = engine.solve_centers(24, [5, 8, 12], params, _down(3))
    np.testing.assert_allclose(long_first.centers, [6.0, 11.76, 14.16])
    np.testing.assert_allclose(short_first.centers, [6.0, 8.4, 12.24])
    assert long_first.centers[1] > short_first.centers[1]


def test_prefix_dominance_centers_stay_in_range():
    params = TensionParameters(placement_mode="prefixDominance", anchor_beta=2.0, anchor_rho=0.3)
    placement = get_engine("prefixDominance").solve_centers(36, [3, 9, 14, 5], params, _down(4))
    amin, amax = placement.anchor_range
    assert all(amin - 1e-12 <= c <= amax + 1e-12 for c in placement.centers)


def test_prefix_dominance_infeasible():
    params = TensionParameters(placement_mode="prefixDominance", anchor_rho=0.9)
    assert get_engine("prefixDominance").solve_centers(6, [7], params, _down(1)) is None


def test_center_bounds_tightened_by_split():
    bounds = center_bounds_for_perm(36, [11, 7, 16], 0.5, _down(3))
    np.testing.assert_allclose(bounds, [(6.0, 30.5), (4.0, 32.5), (8.0, 28.0)])


def test_neutral_centers_interpolate_bounds():
    bounds = [(6.0, 30.5), (4.0, 32.5), (8.0, 28.0)]
    np.testing.assert_allclose(neutral_centers_from_bounds(bounds), [6.0, 18.25, 28.0])
    assert neutral_centers_from_bounds([(2.0, 10.0)]) == [6.0]


def test_repulsion_deltas():
    radii, deltas = repulsion_deltas([12, 6], 1.0, 0.4, 24)
    np.testing.assert_allclose(radii, [0.5, 0.25])
    np.testing.assert_allclose(deltas, [[0.0, 0.3], [0.3, 0.0]])


def test_repulsion_forces_push_coincident_centers_apart():
    deltas = np.array([[0.0, 1.0], [1.0, 0.0]])
    forces = repulsion_forces(np.array([5.0, 5.0]), deltas, 0.5)
    np.testing.assert_allclose(forces, [1.0, -1.0])


def test_repulsion_forces_balance():
    _, deltas = repulsion_deltas([10, 3, 7, 7], 1.0, 20.0, 24)
    forces = repulsion_forces(np.array([4.0, 6.0, 9.0, 9.5]), deltas, 0.1)
    assert abs(forces.sum()) < 1e-12


def test_projected_solve_respects_bounds():
    bounds = [(0.0, 1.0), (0.5, 2.0)]
    out = projected_pairwise_solve([0.5, 1.0], bounds, 50, 1.0,
                                   lambda c: np.array([-10.0, 10.0]))
    np.testing.assert_allclose(out, [0.0, 2.0])


def test_repulsion_relaxation_lowers_energy():
    params = TensionParameters(placement_mode="repulse", repulse_kappa=100.0)
    perm = [2, 2, 2, 2]
    placement = get_engine("repulse").solve_centers(24, perm, params, _down(4))
    _, deltas = repulsion_deltas(perm, params.repulse_gamma, params.repulse_kappa, 24)
    before = repulsion_diagnostics(placement.meta["neutral"], deltas, params.repulse_lambda)
    after = placement.diagnostics
    assert before.violations
    assert after.energy <= before.energy + 1e-12
    for c, (lo, hi) in zip(placement.centers, placement.bounds):
        assert lo <= c <= hi


def test_repulsion_alpha_zero_keeps_neutral_centers():
    params = TensionParameters(placement_mode="repulse", repulse_alpha=0.0, repulse_kappa=5.0)
    placement = get_engine("repulse").solve_centers(36, [11, 7, 16], params, _down(3))
    assert placement.centers == placement.meta["neutral"]


def test_engines_return_none_for_empty_ordering():
    params = TensionParameters()
    for mode in PlacementMode:
        assert get_engine(mode).solve_centers(36, [], params, []) is None


@pytest.mark.parametrize("mode", ["v1", "v2", "prefixDominance"])
def test_anchors_non_decreasing(mode):
    params = TensionParameters(placement_mode=mode, anchor_beta=1.5)
    engine = get_engine(mode)
    for perm in ([11, 7, 16], [3, 9, 14, 5], [2, 2, 13]):
        placement = engine.solve_centers(48, perm, params, _down(len(perm)))
        assert placement.anchors == sorted(placement.anchors)


def test_prefix_dominance_keeps_odd_interval_in_window():
    params = TensionParameters(placement_mode="prefixDominance")
    placement = get_engine("prefixDominance").solve_centers(48, [7], params, _down(1))
    assert placement.centers == [3.5]
    assert placement.anchors == [4]
    assert placement.endpoints() == [(0, 7)]


def test_uniform_range_follows_up_bias():
    assert safe_anchor_range(24, [7, 5], ["up", "up"]) == (3, 20)
    assert safe_anchor_range(24, [7, 5]) == (4, 21)
    params = TensionParameters(placement_mode="v1")
    placement = get_engine("v1").solve_centers(24, [7, 5], params, ["up", "up"])
    assert placement.anchor_range == (3.0, 20.0)
    assert placement.endpoints() == [(0, 7), (18, 23)]
