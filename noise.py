#
# Two dimensional noise fields used by the chunk generator.
#
# SmoothField is a sum of sines over a handful of octaves, squashed into (0,1)
# with a logistic curve. CellularField scatters points over the plane in
# square batches and answers which point is nearest to a location.
#
# Both are pure functions of their seed and the query coordinates. The only
# mutable state is the CellularField batch cache, and a cache entry is itself
# a pure function of (seed, batch x, batch y).
#
import math
import threading
from collections import OrderedDict, namedtuple

import numpy

import config
import seeding

MASK64 = (1 << 64) - 1

CacheInfo = namedtuple('CacheInfo', 'cells hits misses neighborhood_hits')


def logistic(s, squash):
    """1 / (1 + e^(s/squash)) without overflowing for large |s|."""
    t = s / squash
    if t >= 0:
        e = math.exp(-t)
        return e / (1.0 + e)
    return 1.0 / (1.0 + math.exp(t))


class SmoothField(object):
    def __init__(self, seed, octaves=None):
        if octaves is None:
            octaves = getattr(config, 'NOISE_OCTAVES', 4)
        if octaves < 1:
            raise ValueError(f'octave count must be at least 1, got {octaves}')
        self.seed = seed
        self.octaves = octaves
        self.squash = float(getattr(config, 'SMOOTH_SQUASH', 70.0))
        rng = seeding.derive('smooth', seed)
        self.x_amplitudes = []
        self.x_offsets = []
        self.y_amplitudes = []
        self.y_offsets = []
        for i in range(octaves):
            power = math.exp(i)
            self.x_amplitudes.append((i + 1) * (i + 1))
            self.x_offsets.append(rng.next_real() * power)
            self.y_amplitudes.append((i + 1) * (i + 1))
            self.y_offsets.append(rng.next_real() * power)
        # wavelength of octave i is e^(i+1)
        self.wavelengths = [math.exp(i + 1) for i in range(octaves)]

    def raw(self, x, y):
        """ Unsquashed sine sum at (x, y). """
        s = 0.0
        for i in range(self.octaves):
            w = self.wavelengths[i]
            s += self.x_amplitudes[i] * math.sin((x - self.x_offsets[i]) / w)
            s += self.y_amplitudes[i] * math.sin((y - self.y_offsets[i]) / w)
        return s

    def value(self, x, y):
        return logistic(self.raw(x, y), self.squash)

    def values(self, xs, ys):
        '''
        Vectorised value() over numpy arrays of coordinates. numpy's sin may
        differ from math.sin in the last bit, so chunk generation sticks to
        value(); this is for previews and statistics.
        '''
        xs = numpy.asarray(xs, dtype=float)
        ys = numpy.asarray(ys, dtype=float)
        s = numpy.zeros(numpy.broadcast(xs, ys).shape)
        for i in range(self.octaves):
            w = self.wavelengths[i]
            s += self.x_amplitudes[i] * numpy.sin((xs - self.x_offsets[i]) / w)
            s += self.y_amplitudes[i] * numpy.sin((ys - self.y_offsets[i]) / w)
        return 0.5 - 0.5 * numpy.tanh(s / (2.0 * self.squash))


def sum_hash(px, py):
    return px + py


def mixed_hash(px, py):
    # Splitmix64-style finalizer over the coordinate pair.
    h = ((int(px) * 0x632BE59BD9B4E019) ^ (int(py) * 0x9E3779B97F4A7C15)) & MASK64
    h = ((h ^ (h >> 30)) * 0xbf58476d1ce4e5b9) & MASK64
    h = ((h ^ (h >> 27)) * 0x94d049bb133111eb) & MASK64
    h ^= (h >> 31)
    return h >> 1


POINT_HASHES = {
    'sum': sum_hash,
    'mixed': mixed_hash,
}


def poisson_count(rng, mean):
    """ Inverse CDF Poisson draw: one uniform scaled by e^mean, minus the
    series terms mean^i/i! until it drops to zero. """
    remaining = rng.next_real() * math.exp(mean)
    term = 1.0
    i = 0
    while True:
        remaining -= term
        if remaining <= 0:
            return i
        i += 1
        term *= mean / i
        if term == 0.0:
            return i


class CellularField(object):
    '''
    Point distance noise. Points are generated lazily per square batch of
    side `batch_size`, with a Poisson distributed count per batch and
    positions within half a batch of the batch corner.
    '''
    def __init__(self, density, seed, expected_points=None, cache_size=None, point_hash=None):
        if density <= 0:
            raise ValueError(f'point density must be positive, got {density}')
        if expected_points is None:
            expected_points = getattr(config, 'EXPECTED_POINTS_PER_BATCH', 10)
        if cache_size is None:
            cache_size = getattr(config, 'POINT_CACHE_MAX', None)
        if point_hash is None:
            point_hash = getattr(config, 'POINT_HASH', 'sum')
        if point_hash not in POINT_HASHES:
            raise ValueError(f'unknown point hash {point_hash!r}')
        self.density = density
        self.seed = seed
        self.expected_points = expected_points
        self.batch_size = int(math.ceil(math.sqrt(expected_points / density) / 2) * 2)
        self.cache_size = cache_size
        self.point_hash = POINT_HASHES[point_hash]
        self._points = OrderedDict()
        self._neighborhoods = OrderedDict()
        self._lock = threading.Lock()
        self.neighborhood_cache = getattr(config, 'NEIGHBORHOOD_CACHE', 16)
        self.hits = 0
        self.misses = 0
        self.neighborhood_hits = 0

    def batch_of(self, x, y):
        b = self.batch_size
        return int(x // b), int(y // b)

    def _generate_batch(self, bx, by):
        rng = seeding.derive('cellular', self.seed, bx, by)
        count = poisson_count(rng, self.expected_points)
        half = self.batch_size // 2
        corner_x = bx * self.batch_size
        corner_y = by * self.batch_size
        points = []
        for _ in range(count):
            px = corner_x + rng.next_int(-half, half)
            py = corner_y + rng.next_int(-half, half)
            points.append((px, py))
        return tuple(points)

    def points_in_batch(self, bx, by):
        """ Points of batch (bx, by), generated on first use. """
        key = (bx, by)
        with self._lock:
            points = self._points.get(key)
            if points is not None:
                self.hits += 1
                self._points.move_to_end(key)
                return points
            self.misses += 1
        # Generated outside the lock; a racing thread computes the same tuple.
        points = self._generate_batch(bx, by)
        with self._lock:
            points = self._points.setdefault(key, points)
            if self.cache_size is not None:
                while len(self._points) > self.cache_size:
                    self._points.popitem(last=False)
        return points

    def cache_info(self):
        with self._lock:
            return CacheInfo(len(self._points), self.hits, self.misses, self.neighborhood_hits)

    def _neighborhood(self, bx, by):
        key = (bx, by)
        with self._lock:
            found = self._neighborhoods.get(key)
            if found is not None:
                self.neighborhood_hits += 1
                self._neighborhoods.move_to_end(key)
                return found
        points = []
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                points.extend(self.points_in_batch(bx + dx, by + dy))
        pts = numpy.array(points, dtype=numpy.int64).reshape(len(points), 2)
        if len(points) > 1:
            diff = pts[:, None, :] - pts[None, :, :]
            max_sq = int((diff * diff).sum(-1).max())
        else:
            max_sq = 0
        found = (pts, max_sq)
        with self._lock:
            self._neighborhoods[key] = found
            while len(self._neighborhoods) > self.neighborhood_cache:
                self._neighborhoods.popitem(last=False)
        return found

    def closest_distance_and_point(self, x, y):
        '''
        Returns (identity of nearest point, min squared distance / sqrt of the
        largest squared distance between any two points of the 3x3 batch
        neighborhood). A neighborhood without two distinct points has no
        spread to normalize by; its distance is reported as infinity.
        '''
        pts, max_sq = self._neighborhood(*self.batch_of(x, y))
        if len(pts) == 0:
            return 0, math.inf
        dx = pts[:, 0] - x
        dy = pts[:, 1] - y
        sq = dx * dx + dy * dy
        i = int(numpy.argmin(sq))
        identity = self.point_hash(int(pts[i, 0]), int(pts[i, 1]))
        if max_sq == 0:
            return identity, math.inf
        return identity, float(sq[i]) / math.sqrt(max_sq)

    def value(self, x, y):
        return self.closest_distance_and_point(x, y)[1]

    def point_index(self, x, y):
        return self.closest_distance_and_point(x, y)[0]


if __name__ == '__main__':
    import sys
    import time
    from PIL import Image

    seed = sys.argv[1] if len(sys.argv) > 1 else 'preview'
    size = 256
    origin = getattr(config, 'WORLD_SIZE', 10000000) // 2

    t = time.time()
    smooth = SmoothField(seeding.seed_value(seed, 'surface'))
    grid = numpy.mgrid[0:size, 0:size]
    n = smooth.values(grid[0] + origin, grid[1] + origin)
    print('smooth field', time.time() - t)
    print(n.min(), n.max(), numpy.average(n))
    im = Image.fromarray(numpy.array(n * 255, dtype='u1'), 'L')
    im.save('smooth.png')

    t = time.time()
    cellular = CellularField(getattr(config, 'BIOME_POINT_DENSITY', 0.00005) * 64, seeding.seed_value(seed, 'biome'))
    ids = numpy.zeros((size, size), dtype='u1')
    for x in range(size):
        for y in range(size):
            ids[x, y] = (cellular.point_index(origin + x, origin + y) * 37) % 256
    print('cellular field', time.time() - t, cellular.cache_info())
    Image.fromarray(ids, 'L').save('cellular.png')
