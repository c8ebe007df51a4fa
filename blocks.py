import threading

import config


class UnknownBlockError(KeyError):
    pass


# Versions are compared as tuples: '1.18.2' -> (1, 18, 2).
def parse_version(version):
    if isinstance(version, tuple):
        return version
    return tuple(int(p) for p in str(version).split('.'))


MIN_VERSION = (1, 13)


class Block(object):
    name = None
    # First and last (exclusive) version the name exists in.
    since = MIN_VERSION
    until = None

class Bedrock(Block):
    name = 'bedrock'

class Stone(Block):
    name = 'stone'

class CoalOre(Block):
    name = 'coal_ore'

class IronOre(Block):
    name = 'iron_ore'

class RedstoneOre(Block):
    name = 'redstone_ore'

class DiamondOre(Block):
    name = 'diamond_ore'

class Dirt(Block):
    name = 'dirt'

class GrassBlock(Block):
    name = 'grass_block'

class Sand(Block):
    name = 'sand'

class Sandstone(Block):
    name = 'sandstone'

class Water(Block):
    name = 'water'

class Grass(Block):
    # the short plant; renamed in 1.20.3
    name = 'grass'
    until = (1, 20, 3)

class ShortGrass(Block):
    name = 'short_grass'
    since = (1, 20, 3)

class TallGrass(Block):
    name = 'tall_grass'

class Dandelion(Block):
    name = 'dandelion'

class Poppy(Block):
    name = 'poppy'

class DeadBush(Block):
    name = 'dead_bush'

class Seagrass(Block):
    name = 'seagrass'

class TallSeagrass(Block):
    name = 'tall_seagrass'

class Kelp(Block):
    name = 'kelp'

class SugarCane(Block):
    name = 'sugar_cane'

class Cactus(Block):
    name = 'cactus'

class OakLog(Block):
    name = 'oak_log'

class OakLeaves(Block):
    name = 'oak_leaves'

# Explicit ordering keeps block IDs (and so chunk contents) stable.
BLOCKS = [
    Bedrock,
    Stone,
    CoalOre,
    IronOre,
    RedstoneOre,
    DiamondOre,
    Dirt,
    GrassBlock,
    Sand,
    Sandstone,
    Water,
    Grass,
    ShortGrass,
    TallGrass,
    Dandelion,
    Poppy,
    DeadBush,
    Seagrass,
    TallSeagrass,
    Kelp,
    SugarCane,
    Cactus,
    OakLog,
    OakLeaves,
]
AIR = 0
i = 1
BLOCK_ID = {'air': AIR}
for x in BLOCKS:
    x.id = i
    x.default_state = i
    BLOCK_ID[x.name] = i
    i += 1
BLOCK_NAME = {v: k for k, v in BLOCK_ID.items()}
_BY_NAME = {x.name: x for x in BLOCKS}

# Names introduced under a new name at a version: {version: {old: new}}.
RENAMES = {
    (1, 20, 3): {'grass': 'short_grass'},
}


def default_renamer(kind, name, from_version, to_version):
    """ Carry a block name written for `from_version` over to `to_version`. """
    if kind != 'blocks':
        return name
    src = parse_version(from_version)
    dst = parse_version(to_version)
    for version in sorted(RENAMES):
        if src < version <= dst:
            name = RENAMES[version].get(name, name)
    return name


class BlockRegistry(object):
    '''
    Name lookup for one game version. Names are written against
    BLOCK_DATA_VERSION and passed through `renamer` before lookup.
    '''
    def __init__(self, version=None, renamer=None, data_version=None):
        if version is None:
            version = getattr(config, 'TARGET_VERSION', '1.18.2')
        if data_version is None:
            data_version = getattr(config, 'BLOCK_DATA_VERSION', '1.18.2')
        self.version = parse_version(version)
        if self.version < MIN_VERSION:
            raise ValueError(f'unsupported version {version}; oldest supported is 1.13')
        self.data_version = data_version
        self.renamer = renamer or default_renamer
        self._cache = {}
        self._lock = threading.Lock()

    def _lookup(self, name):
        renamed = self.renamer('blocks', name, self.data_version, self.version)
        block = _BY_NAME.get(renamed)
        if block is None:
            return None
        if self.version < block.since:
            return None
        if block.until is not None and self.version >= block.until:
            return None
        return block

    def get(self, name):
        with self._lock:
            if name in self._cache:
                return self._cache[name]
        block = self._lookup(name)
        with self._lock:
            self._cache[name] = block
        return block

    def __contains__(self, name):
        return self.get(name) is not None

    def __getitem__(self, name):
        block = self.get(name)
        if block is None:
            raise UnknownBlockError(f'block {name!r} does not exist in version {".".join(map(str, self.version))}')
        return block

    def first_of(self, *names):
        """ First name that exists in this version, like a ?? chain. """
        for name in names:
            block = self.get(name)
            if block is not None:
                return block
        return self[names[-1]]


def resolve_block_by_name(name, version):
    return BlockRegistry(version)[name]
