import dataclasses
import math
import numpy as np
import pytest

from sogdecoder.processing.lod import (
    LodEngine, LodWeights, LodInput, LodDecision, compute_view_scalars, focal_length_px,
)


@pytest.fixture
def engine():
    return LodEngine()


def test_default_weights(engine):
    assert engine.weights == LodWeights(0.5, 0.35, 0.15)


def test_tiny_splat_is_culled(engine):
    decision = engine.decide(LodInput(distance=1.0, projected_radius_px=0.4, semantic_priority=0.0))
    assert decision.level == 2
    assert decision.keep is False


def test_large_near_splat_gets_full_detail(engine):
    decision = engine.decide(LodInput(distance=1.0, projected_radius_px=32.0, semantic_priority=1.0))
    assert decision.score > 0.75
    assert decision.level == 0
    assert decision.keep is True
    assert decision.score == pytest.approx(1.0)


def test_reduced_and_minimal_detail(engine):
    reduced = engine.decide(LodInput(2.0, 16.0, 0.0))
    assert reduced.score == pytest.approx(0.425)
    assert (reduced.level, reduced.keep) == (1, True)

    minimal = engine.decide(LodInput(4.0, 8.0, 0.0))
    assert minimal.score == pytest.approx(0.2125)
    assert (minimal.level, minimal.keep) == (2, True)


def test_cull_takes_precedence_over_score(engine):
    decision = engine.decide(LodInput(1.0, 0.49, 10.0))
    assert decision.score > 0.75
    assert (decision.level, decision.keep) == (2, False)


def test_threshold_edges_are_exclusive():
    # w1 alone sets the score: distance 1 -> score == w1
    at_full = LodEngine(LodWeights(0.75, 0.0, 0.0)).decide(LodInput(1.0, 1.0, 0.0))
    assert at_full.score == 0.75 and at_full.level == 1

    at_reduced = LodEngine(LodWeights(0.35, 0.0, 0.0)).decide(LodInput(1.0, 1.0, 0.0))
    assert at_reduced.score == 0.35 and at_reduced.level == 2


def test_radius_exactly_half_pixel_is_kept(engine):
    assert engine.decide(LodInput(1.0, 0.5, 0.0)).keep is True


def test_distance_floor(engine):
    near = engine.decide(LodInput(0.01, 4.0, 0.2))
    at_one = engine.decide(LodInput(1.0, 4.0, 0.2))
    assert near.score == at_one.score


def test_score_monotonic_in_distance(engine):
    distances = [100.0, 50.0, 10.0, 3.0, 1.5, 1.0, 0.5, 0.1]
    scores = [engine.decide(LodInput(d, 2.0, 0.3)).score for d in distances]
    assert all(b >= a for a, b in zip(scores, scores[1:]))


def test_custom_weights():
    engine = LodEngine(LodWeights(w1=0.0, w2=0.0, w3=1.0))
    decision = engine.decide(LodInput(5.0, 1.0, 0.8))
    assert decision.score == pytest.approx(0.8)
    assert decision.level == 0


def test_weights_are_immutable():
    weights = LodWeights()
    with pytest.raises(dataclasses.FrozenInstanceError):
        weights.w1 = 1.0


def test_non_positive_distance_trips_assertion(engine):
    with pytest.raises(AssertionError):
        engine.decide(LodInput(0.0, 1.0, 0.0))
    with pytest.raises(AssertionError):
        engine.decide_batch([1.0, -2.0], [1.0, 1.0], [0.0, 0.0])


def test_decision_is_a_named_triple(engine):
    level, keep, score = engine.decide(LodInput(1.0, 32.0, 1.0))
    assert isinstance(engine.decide(LodInput(1.0, 32.0, 1.0)), LodDecision)
    assert (level, keep) == (0, True)
    assert math.isfinite(score)


def test_batch_matches_scalar(engine, rng):
    n = 500
    distance = rng.uniform(0.05, 40.0, size=n)
    radius = rng.uniform(0.0, 40.0, size=n)
    priority = rng.uniform(-0.5, 1.5, size=n)

    levels, keep, score = engine.decide_batch(distance, radius, priority)

    for i in range(n):
        expected = engine.decide(LodInput(float(distance[i]), float(radius[i]), float(priority[i])))
        assert levels[i] == expected.level
        assert bool(keep[i]) == expected.keep
        assert score[i] == expected.score


def test_batch_broadcasts_scalar_priority(engine):
    levels, keep, score = engine.decide_batch([1.0, 2.0], [32.0, 0.1], 0.0)
    assert levels.tolist() == [0, 2]
    assert keep.tolist() == [True, False]
    assert score.shape == (2,)


def test_apply_sets_chunk_levels(engine, make_chunk):
    chunk = make_chunk(3)
    keep = engine.apply(chunk, [1.0, 2.0, 4.0], [32.0, 16.0, 0.1], [1.0, 0.0, 0.0])

    assert chunk.lod_levels.tolist() == [0, 1, 2]
    assert keep.tolist() == [True, True, False]


def test_apply_rejects_misaligned_inputs(engine, make_chunk):
    chunk = make_chunk(3)
    with pytest.raises(ValueError):
        engine.apply(chunk, [1.0, 2.0], [1.0, 1.0], [0.0, 0.0])


def test_focal_length():
    assert focal_length_px(90.0, 1000) == pytest.approx(500.0)


def test_view_scalars_isotropic_splat():
    positions = np.array([[0.0, 0.0, -10.0], [3.0, 4.0, 0.0]])
    covariances = np.array([
        [0.01, 0.0, 0.0, 0.01, 0.0, 0.01],
        [0.04, 0.0, 0.0, 0.01, 0.0, 0.0],
    ])

    distance, radius = compute_view_scalars(positions, covariances, (0.0, 0.0, 0.0), focal_px=100.0)

    np.testing.assert_allclose(distance, [10.0, 5.0])
    # 3 sigma: 100 * 3 * 0.1 / 10 and 100 * 3 * 0.2 / 5
    np.testing.assert_allclose(radius, [3.0, 12.0])


def test_view_scalars_rotated_covariance():
    # Eigenvalues of [[0.02, 0.01], [0.01, 0.02]] are 0.03 and 0.01
    covariances = np.array([[0.02, 0.01, 0.0, 0.02, 0.0, 0.0]])
    _, radius = compute_view_scalars([[0.0, 0.0, 1.0]], covariances, (0.0, 0.0, 0.0), focal_px=1.0)
    np.testing.assert_allclose(radius, [3.0 * math.sqrt(0.03)])


def test_view_scalars_camera_on_splat_stays_positive():
    distance, radius = compute_view_scalars([[1.0, 1.0, 1.0]], [[0.01, 0, 0, 0.01, 0, 0.01]], (1.0, 1.0, 1.0), 100.0)
    assert distance[0] > 0
    assert np.isfinite(radius[0])
