import math
import os
import sys

import numpy as np
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import config
import seeding
from noise import CellularField, SmoothField, mixed_hash, poisson_count, sum_hash


def _brute_nearest(field, x, y):
    bx, by = field.batch_of(x, y)
    best = None
    best_d2 = None
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            for px, py in field.points_in_batch(bx + dx, by + dy):
                d2 = (px - x) ** 2 + (py - y) ** 2
                if best is None or d2 < best_d2:
                    best, best_d2 = (px, py), d2
    return best, best_d2


def test_smooth_field_range():
    field = SmoothField(seed=1234)
    rng = np.random.RandomState(7)
    coords = list(rng.uniform(-1e7, 1e7, size=(500, 2))) + [(0, 0), (5000000, 5000000), (-3.5, 2.25)]
    for x, y in coords:
        v = field.value(x, y)
        assert 0.0 < v < 1.0


def test_smooth_field_is_continuous():
    field = SmoothField(seed="continuity")
    for x, y in [(0.0, 0.0), (123.4, -77.0), (5000000.0, 5000016.0)]:
        v = field.value(x, y)
        assert abs(field.value(x + 0.01, y) - v) < 1e-3
        assert abs(field.value(x, y + 0.01) - v) < 1e-3


def test_smooth_field_is_pure():
    a = SmoothField(seed=99)
    b = SmoothField(seed=99)
    assert a.x_offsets == b.x_offsets and a.y_offsets == b.y_offsets
    assert a.value(10, 20) == a.value(10, 20) == b.value(10, 20)
    assert SmoothField(seed=100).value(10, 20) != a.value(10, 20)


def test_smooth_field_octave_parameters():
    field = SmoothField(seed=5, octaves=4)
    assert field.x_amplitudes == [1, 4, 9, 16]
    assert field.y_amplitudes == [1, 4, 9, 16]
    for i, (ox, oy) in enumerate(zip(field.x_offsets, field.y_offsets)):
        assert 0.0 <= ox < math.exp(i)
        assert 0.0 <= oy < math.exp(i)


def test_smooth_field_vectorised_matches_scalar():
    field = SmoothField(seed="vector")
    xs = np.arange(0, 64, dtype=float) + 5000000
    ys = np.arange(0, 64, dtype=float) * 3 - 100
    expected = np.array([field.value(x, y) for x, y in zip(xs, ys)])
    np.testing.assert_allclose(field.values(xs, ys), expected, rtol=0, atol=1e-12)


def test_smooth_field_rejects_zero_octaves():
    with pytest.raises(ValueError):
        SmoothField(seed=1, octaves=0)


def test_smooth_field_many_octaves_do_not_overflow():
    field = SmoothField(seed=1, octaves=40)
    v = field.value(1234, 5678)
    assert 0.0 <= v <= 1.0


def test_batch_size_is_even():
    assert CellularField(0.00005, seed=1).batch_size == 448
    for density in (1.0, 0.3, 0.01, 0.0007, 0.00005, 0.000001):
        assert CellularField(density, seed=1).batch_size % 2 == 0


def test_cellular_rejects_bad_parameters():
    with pytest.raises(ValueError):
        CellularField(0, seed=1)
    with pytest.raises(ValueError):
        CellularField(0.01, seed=1, point_hash="md5")


def test_batch_points_stay_near_corner():
    field = CellularField(0.01, seed="corner")
    half = field.batch_size // 2
    for bx, by in [(0, 0), (-1, 3), (7, -2)]:
        for px, py in field.points_in_batch(bx, by):
            assert abs(px - bx * field.batch_size) <= half
            assert abs(py - by * field.batch_size) <= half


def test_batch_of_negative_coordinates():
    field = CellularField(0.01, seed=1)
    b = field.batch_size
    assert field.batch_of(0, 0) == (0, 0)
    assert field.batch_of(-1, -1) == (-1, -1)
    assert field.batch_of(b, -b) == (1, -1)
    assert field.batch_of(-b - 1, b - 1) == (-2, 0)


def test_cellular_value_non_negative():
    field = CellularField(0.01, seed="values")
    for x in range(-100, 100, 7):
        for y in range(-100, 100, 11):
            assert field.value(x, y) >= 0.0


def test_point_index_matches_nearest_point():
    field = CellularField(0.01, seed="nearest", point_hash="mixed")
    for x, y in [(0, 0), (13, -40), (-77, 5), (250, 250)]:
        (px, py), d2 = _brute_nearest(field, x, y)
        index, dist = field.closest_distance_and_point(x, y)
        assert index == mixed_hash(px, py)
        assert dist >= 0.0
        assert math.isclose(dist * math.sqrt(field._neighborhood(*field.batch_of(x, y))[1]), d2)


def test_point_index_invariant_towards_nearest_point():
    field = CellularField(0.01, seed="regions", point_hash="mixed")
    for x, y in [(3, 4), (-20, 17), (100, -60), (31, 31)]:
        (px, py), _ = _brute_nearest(field, x, y)
        index = field.point_index(x, y)
        for t in (0.25, 0.5, 0.75, 1.0):
            mx = x + (px - x) * t
            my = y + (py - y) * t
            if field.batch_of(mx, my) != field.batch_of(x, y):
                continue
            assert field.point_index(mx, my) == index


def test_sum_hash_is_default():
    field = CellularField(0.01, seed="weak")
    (px, py), _ = _brute_nearest(field, 10, 10)
    assert field.point_index(10, 10) == sum_hash(px, py) == px + py


def test_point_cache_idempotent():
    field = CellularField(0.01, seed="cache")
    first = field.points_in_batch(2, -3)
    second = field.points_in_batch(2, -3)
    assert first is second
    fresh = CellularField(0.01, seed="cache").points_in_batch(2, -3)
    assert fresh == first
    info = field.cache_info()
    assert info.cells == 1 and info.hits == 1 and info.misses == 1
    assert info.neighborhood_hits == 0


def test_point_cache_lru_recomputes_identically():
    field = CellularField(0.01, seed="lru", cache_size=2)
    original = field.points_in_batch(0, 0)
    for i in range(1, 6):
        field.points_in_batch(i, i)
    assert field.cache_info()[0] == 2
    assert (0, 0) not in field._points
    assert field.points_in_batch(0, 0) == original


def test_empty_neighborhood_is_guarded():
    field = CellularField(0.01, seed="empty")
    field._generate_batch = lambda bx, by: ()
    index, dist = field.closest_distance_and_point(5, 5)
    assert index == 0
    assert math.isinf(dist)
    assert field.value(5, 5) >= 0.0


def test_single_point_neighborhood_is_guarded():
    field = CellularField(0.01, seed="single")
    field._generate_batch = lambda bx, by: ((3, 4),) if (bx, by) == (0, 0) else ()
    index, dist = field.closest_distance_and_point(0, 0)
    assert index == 7
    assert math.isinf(dist)


def test_poisson_counts_match_distribution():
    mean = 10
    n = 2000
    counts = np.array([poisson_count(seeding.derive("poisson", i), mean) for i in range(n)])
    assert abs(counts.mean() - mean) < 0.35
    assert 8.5 < counts.var() < 11.5
    for k in range(5, 16):
        pmf = math.exp(-mean) * mean ** k / math.factorial(k)
        assert abs(np.mean(counts == k) - pmf) < 0.03


def test_batch_point_counts_are_poisson():
    field = CellularField(0.01, seed="batches")
    counts = np.array([len(field.points_in_batch(bx, by)) for bx in range(30) for by in range(30)])
    assert abs(counts.mean() - field.expected_points) < 0.5


def test_neighborhood_reuse_is_counted(monkeypatch):
    monkeypatch.setattr(config, "NEIGHBORHOOD_CACHE", 1)
    field = CellularField(0.01, seed="hoods")
    field.point_index(5, 5)
    info = field.cache_info()
    assert info.misses == 9 and info.neighborhood_hits == 0
    field.point_index(6, 5)
    assert field.cache_info().neighborhood_hits == 1
    field.point_index(5 + field.batch_size, 5)
    assert len(field._neighborhoods) == 1
    field.point_index(5, 5)
    assert field.cache_info().neighborhood_hits == 1
