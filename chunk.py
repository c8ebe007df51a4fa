'''
chunk.py -- in-memory voxel container written by the generator

Blocks are stored as numeric state ids in an (x, y, z) array like the rest of
the code base uses for sectors. y is the world height; index 0 of the array is
`min_y`. Writes outside the container are dropped and reads outside it see
air, so features near a chunk edge are clipped rather than wrapped.
'''

import hashlib

import numpy

from config import SECTOR_SIZE
from blocks import AIR

MAX_LIGHT = 15


class Chunk(object):
    def __init__(self, min_y=0, world_height=256, size=SECTOR_SIZE):
        if world_height <= 0:
            raise ValueError(f'world height must be positive, got {world_height}')
        self.min_y = min_y
        self.world_height = world_height
        self.size = size
        self.blocks = numpy.zeros((size, world_height, size), dtype='u2')
        self.sky_light = numpy.zeros((size, world_height, size), dtype='u1')

    def _index(self, pos):
        x, y, z = pos
        y -= self.min_y
        if 0 <= x < self.size and 0 <= y < self.world_height and 0 <= z < self.size:
            return x, y, z
        return None

    def set_block_state_id(self, pos, state):
        idx = self._index(pos)
        if idx is not None:
            self.blocks[idx] = state

    def set_block(self, pos, block):
        self.set_block_state_id(pos, block.default_state if block is not None else AIR)

    def get_block_type(self, pos):
        idx = self._index(pos)
        if idx is None:
            return AIR
        return int(self.blocks[idx])

    def set_sky_light(self, pos, level):
        if not 0 <= level <= MAX_LIGHT:
            raise ValueError(f'light level must be within 0..{MAX_LIGHT}, got {level}')
        idx = self._index(pos)
        if idx is not None:
            self.sky_light[idx] = level

    def fill_sky_light(self, x, z, level):
        """ Set the light of the whole (x, z) column. """
        if not 0 <= level <= MAX_LIGHT:
            raise ValueError(f'light level must be within 0..{MAX_LIGHT}, got {level}')
        self.sky_light[x, :, z] = level

    def column(self, x, z):
        """ Block ids of column (x, z), bottom first. """
        return self.blocks[x, :, z]

    def dump(self):
        return self.blocks.tobytes() + self.sky_light.tobytes()

    def digest(self):
        return hashlib.sha256(self.dump()).hexdigest()

    def __eq__(self, other):
        if not isinstance(other, Chunk):
            return NotImplemented
        return (self.min_y == other.min_y and self.world_height == other.world_height
                and numpy.array_equal(self.blocks, other.blocks)
                and numpy.array_equal(self.sky_light, other.sky_light))

    __hash__ = None
