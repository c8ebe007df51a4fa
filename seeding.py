'''
seeding.py -- reproducible random streams derived from composite keys

A key is the world seed followed by whatever coordinates identify the stream,
e.g. derive(seed, chunk_x, chunk_z) for the per-chunk placement stream or
derive('cellular', seed, cell_x, cell_y) for one cellular noise batch. The
same key always yields the same sequence of draws.
'''

import hashlib
import json

import numpy
from numpy.random import Generator, PCG64

_DIGEST_SIZE = 16


def _tag(part):
    # bool is checked before int since it is an int subclass
    if isinstance(part, (bool, numpy.bool_)):
        return ['b', bool(part)]
    if isinstance(part, (int, numpy.integer)):
        return ['i', str(int(part))]
    if isinstance(part, (float, numpy.floating)):
        return ['f', float(part).hex()]
    if isinstance(part, str):
        return ['s', part]
    if part is None:
        return ['n', None]
    raise TypeError(f'unsupported seed key part {part!r} ({type(part).__name__})')


def derivation_key(parts):
    """ Encode an ordered tuple of primitives as bytes.

    Every value carries a type tag and the whole tuple is a JSON array, so
    distinct tuples never encode to the same key (("a:1",) vs ("a", 1), or
    1 vs "1" vs 1.0).
    """
    return json.dumps([_tag(p) for p in parts], separators=(',', ':'), ensure_ascii=True).encode('ascii')


def seed_value(*parts):
    """ 128 bit integer digest of the key made of `parts`. """
    digest = hashlib.blake2b(derivation_key(parts), digest_size=_DIGEST_SIZE).digest()
    return int.from_bytes(digest, 'big')


class Stream(object):
    '''
    Sequence of draws from one derived key. Not thread safe; each chunk or
    cell owns its own stream.
    '''
    def __init__(self, seed):
        self.seed = seed
        self._gen = Generator(PCG64(seed))

    def next_int(self, low, high):
        """ Uniform integer in the inclusive range [low, high]. """
        return int(self._gen.integers(low, high, endpoint=True))

    def next_below(self, n):
        """ Uniform integer in [0, n). """
        return int(self._gen.integers(0, n))

    def one_in(self, n):
        """ True with odds 1 in n. Always consumes exactly one draw. """
        return self.next_below(n) == 0

    def next_real(self):
        """ Uniform float in [0, 1). """
        return float(self._gen.random())


def derive(*parts):
    """ Return a fresh Stream for the key made of `parts`. """
    return Stream(seed_value(*parts))
