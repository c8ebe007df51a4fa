#std/external libs
import time
import math
import concurrent.futures
from collections import Counter, namedtuple

#local libs
import config
import logutil
import seeding
from config import SECTOR_SIZE
from blocks import AIR, BlockRegistry, UnknownBlockError
from chunk import Chunk
from noise import SmoothField, CellularField
from util import SIDES, RING, CANOPY, offset, weighted_list, sectorize, world_origin

BIOMES = ('plains', 'forest', 'desert', 'ocean', 'river', 'mountains')
WATER_BIOMES = ('river', 'ocean')
GRASSY_BIOMES = ('forest', 'plains')

# Block names per biome for (soil layer 2, soil layer 1, surface voxel).
BIOME_LAYERS = {
    'river': ('dirt', 'sand', 'sand'),
    'ocean': ('dirt', 'sand', 'sand'),
    'desert': ('sandstone', 'sand', 'sand'),
    'mountains': ('stone', 'stone', 'stone'),
    'forest': ('dirt', 'dirt', 'grass_block'),
    'plains': ('dirt', 'dirt', 'grass_block'),
}


class UnknownBiomeError(ValueError):
    pass


class GenerationSettings(object):
    '''
    Parameters shared by every chunk of a world. Anything left as None takes
    its default from config.
    '''
    def __init__(self, world_height=None, min_y=None, waterline=None, size=None,
                 roughness=None, octaves=None, version=None):
        self.world_height = world_height if world_height is not None else getattr(config, 'WORLD_HEIGHT', 80)
        self.min_y = min_y if min_y is not None else getattr(config, 'MIN_Y', 0)
        self.waterline = waterline if waterline is not None else getattr(config, 'WATERLINE', 32)
        self.size = size if size is not None else getattr(config, 'WORLD_SIZE', 10000000)
        self.octaves = octaves if octaves is not None else getattr(config, 'NOISE_OCTAVES', 4)
        self.version = version if version is not None else getattr(config, 'TARGET_VERSION', '1.18.2')
        # Accepted for compatibility with world presets; terrain does not use it yet.
        self.roughness = roughness if roughness is not None else self.size / 500
        if self.world_height <= 0:
            raise ValueError(f'world height must be positive, got {self.world_height}')
        if self.octaves < 1:
            raise ValueError(f'octave count must be at least 1, got {self.octaves}')
        if self.size <= 0:
            raise ValueError(f'world size must be positive, got {self.size}')
        if not self.min_y <= self.waterline < self.min_y + self.world_height:
            raise ValueError(f'waterline {self.waterline} outside world '
                             f'[{self.min_y}, {self.min_y + self.world_height})')

    def __repr__(self):
        return (f'GenerationSettings(world_height={self.world_height}, min_y={self.min_y}, '
                f'waterline={self.waterline}, size={self.size}, roughness={self.roughness}, '
                f'octaves={self.octaves}, version={self.version!r})')


class ColumnProfile(object):
    __slots__ = ('surface', 'bedrock', 'soil_upper', 'soil_lower', 'waterline', 'biome')

    def __init__(self, surface, bedrock, soil_upper, soil_lower, waterline, biome):
        self.surface = surface
        self.bedrock = bedrock
        self.soil_upper = soil_upper
        self.soil_lower = soil_lower
        self.waterline = waterline
        self.biome = biome

    @property
    def water_depth(self):
        return max(self.waterline - self.surface, 0)

    def __repr__(self):
        return (f'ColumnProfile(surface={self.surface}, bedrock={self.bedrock}, '
                f'soil_upper={self.soil_upper}, soil_lower={self.soil_lower}, '
                f'waterline={self.waterline}, biome={self.biome!r})')


# ----- Decorations -----

class _Site(object):
    # One column being decorated.
    def __init__(self, chunk, registry, rng, profile, x, z):
        self.chunk = chunk
        self.registry = registry
        self.rng = rng
        self.profile = profile
        self.surface_pos = (x, profile.surface, z)
        self.deco_pos = (x, profile.surface + 1, z)

    def put(self, delta, name):
        self.chunk.set_block(offset(self.deco_pos, delta), self.registry[name])


def _near_water(site):
    water = site.registry['water'].id
    return any(site.chunk.get_block_type(offset(site.surface_pos, d)) == water for d in SIDES)


def _open_ground(site):
    return all(site.chunk.get_block_type(offset(site.deco_pos, d)) == AIR for d in RING)


def _place_grass(site):
    site.chunk.set_block(site.deco_pos, site.registry.first_of('short_grass', 'grass'))


def _place_flower(site):
    site.put((0, 0, 0), 'dandelion' if site.rng.one_in(2) else 'poppy')


def _place_dead_bush(site):
    site.put((0, 0, 0), 'dead_bush')


def _place_tall_grass(site):
    site.put((0, 0, 0), 'tall_grass')
    site.put((0, 1, 0), 'tall_grass')


def _place_stack(site, name):
    height = site.rng.next_below(3) + 1
    for i in range(height):
        site.put((0, i, 0), name)


def _place_sugar_cane(site):
    _place_stack(site, 'sugar_cane')


def _place_cactus(site):
    _place_stack(site, 'cactus')


def _place_tree(site):
    height = site.rng.next_below(4) + 4
    for i in range(height):
        site.put((0, i, 0), 'oak_log')
    for dx, dy, dz in CANOPY:
        site.put((dx, height + dy, dz), 'oak_leaves')
    for i in range(height - 3, height - 1):
        for dx in range(-2, 3):
            for dz in range(-2, 3):
                if dx == 0 and dz == 0:
                    continue
                site.put((dx, i, dz), 'oak_leaves')


# A feature applies when the biome matches, `requires` names a block the
# registry has, the water depth is in range and `check` passes; only then is
# its 1 in `odds` draw taken. `place` None marks a disabled feature: a
# successful draw still ends the cascade but writes nothing.
Feature = namedtuple('Feature', 'name biomes odds requires min_depth max_depth check place')

FEATURES = (
    Feature('grass', GRASSY_BIOMES, 30, None, 0, None, None, _place_grass),
    Feature('flowers', ('plains',), 100, None, 0, None, None, _place_flower),
    Feature('dead_bush', ('desert',), 100, None, 0, None, None, _place_dead_bush),
    Feature('seagrass', WATER_BIOMES, 30, 'seagrass', 2, None, None, None),
    Feature('double_tall_grass', GRASSY_BIOMES, 120, 'tall_grass', 0, None, None, _place_tall_grass),
    Feature('double_tall_seagrass', WATER_BIOMES, 40, 'tall_seagrass', 3, None, None, None),
    Feature('sugar_cane', WATER_BIOMES, 75, None, 0, 0, _near_water, _place_sugar_cane),
    Feature('cactus', ('desert',), 250, None, 0, 0, _open_ground, _place_cactus),
    Feature('kelp', ('ocean',), 40, 'kelp', 3, None, None, None),
    Feature('trees', GRASSY_BIOMES, {'plains': 3000, 'forest': 200}, None, 0, None, None, _place_tree),
)


def decorate(site):
    """ Run the feature cascade for one column; returns the feature that
    fired, or None. """
    biome = site.profile.biome
    depth = site.profile.water_depth
    for feature in FEATURES:
        if biome not in feature.biomes:
            continue
        if feature.requires is not None and feature.requires not in site.registry:
            continue
        if depth < feature.min_depth:
            continue
        if feature.max_depth is not None and depth > feature.max_depth:
            continue
        if feature.check is not None and not feature.check(site):
            continue
        odds = feature.odds[biome] if isinstance(feature.odds, dict) else feature.odds
        if not site.rng.one_in(odds):
            continue
        if feature.place is not None:
            feature.place(site)
        return feature.name
    return None


# ----- Generator -----

class ChunkGenerator(object):
    '''
    Builds chunks for one world seed. Noise fields are created once and
    shared by every chunk; each chunk draws ores and decorations from its
    own stream keyed by (seed, chunk_x, chunk_z).
    '''
    def __init__(self, seed, settings=None, registry=None):
        self.seed = seed
        self.settings = settings if settings is not None else GenerationSettings()
        self.registry = registry if registry is not None else BlockRegistry(self.settings.version)
        octaves = self.settings.octaves
        # Sampled in this order for every column.
        self.surface_noise = SmoothField(seeding.seed_value(seed, 'surface'), octaves)
        self.bedrock_noise = SmoothField(seeding.seed_value(seed, 'bedrock'), octaves)
        self.soil_noise = SmoothField(seeding.seed_value(seed, 'soil'), octaves)
        self.soil_noise2 = SmoothField(seeding.seed_value(seed, 'soil2'), octaves)
        self.biome_noise = CellularField(getattr(config, 'BIOME_POINT_DENSITY', 0.00005),
                                         seeding.seed_value(seed, 'biome'))
        self.biomes = weighted_list(getattr(config, 'BIOME_WEIGHTS', (('plains', 15), ('forest', 20), ('desert', 10))))
        self.bedrock_scale = getattr(config, 'BEDROCK_SCALE', 5)
        self.soil_scale = getattr(config, 'SOIL_SCALE', 3)
        self.sky_light = getattr(config, 'SKY_LIGHT', 15)
        # Base terrain blocks resolve up front so a bad registry fails here.
        r = self.registry
        self.bedrock = r['bedrock']
        self.stone = r['stone']
        self.water = r['water']
        self.ores = [(r[name], cmp, threshold, odds)
                     for name, cmp, threshold, odds in getattr(config, 'ORES', ())]
        self.layers = {biome: tuple(r[name] for name in names) for biome, names in BIOME_LAYERS.items()}

    def __repr__(self):
        return f'ChunkGenerator(seed={self.seed!r}, {self.settings!r})'

    def column_profile(self, wx, wz):
        s = self.settings
        surface_value = self.surface_noise.value(wx, wz)
        bedrock_value = self.bedrock_noise.value(wx, wz)
        soil_value = self.soil_noise.value(wx, wz)
        soil2_value = self.soil_noise2.value(wx, wz)
        biome_index = self.biome_noise.point_index(wx, wz)

        biome = self.biomes[biome_index % len(self.biomes)]
        bedrock = int(math.floor(bedrock_value * self.bedrock_scale))
        surface = int(math.floor(surface_value * s.world_height))
        soil_upper = surface - 1 - int(math.floor(soil_value * self.soil_scale))
        soil_lower = soil_upper - 1 - int(math.floor(soil2_value * self.soil_scale))
        if surface - s.waterline < 1:
            biome = 'ocean'
        return ColumnProfile(surface, bedrock, soil_upper, soil_lower, s.waterline, biome)

    def build_profiles(self, chunk_x, chunk_z):
        """ 16x16 column profiles indexed [x][z]. """
        ox, oz = world_origin(chunk_x, chunk_z, self.settings.size)
        levels = []
        for x in range(SECTOR_SIZE):
            levels.append([self.column_profile(ox + x, oz + z) for z in range(SECTOR_SIZE)])
        return levels

    def _ore_or_stone(self, y, rng):
        for block, cmp, threshold, odds in self.ores:
            gated = y > threshold if cmp == '>' else y < threshold
            if gated and rng.one_in(odds):
                return block
        return self.stone

    def paint_column(self, chunk, x, z, profile, rng):
        if profile.biome not in self.layers:
            raise UnknownBiomeError(f'Unknown biome: {profile.biome}')
        soil2_block, soil_block, surface_block = self.layers[profile.biome]
        for y in range(0, profile.bedrock + 1):
            chunk.set_block((x, y, z), self.bedrock)
        for y in range(profile.bedrock + 1, profile.soil_lower + 1):
            chunk.set_block((x, y, z), self._ore_or_stone(y, rng))
        for y in range(profile.soil_lower + 1, profile.soil_upper + 1):
            chunk.set_block((x, y, z), soil2_block)
        for y in range(profile.soil_upper + 1, profile.surface):
            chunk.set_block((x, y, z), soil_block)
        chunk.set_block((x, profile.surface, z), surface_block)
        for y in range(profile.surface + 1, profile.waterline + 1):
            chunk.set_block((x, y, z), self.water)

    def generate(self, chunk_x, chunk_z):
        logutil.set_chunk((chunk_x, chunk_z))
        t0 = time.perf_counter()
        s = self.settings
        try:
            chunk = Chunk(min_y=s.min_y, world_height=s.world_height)
            placements = seeding.derive(self.seed, chunk_x, chunk_z)
            levels = self.build_profiles(chunk_x, chunk_z)
            for x in range(SECTOR_SIZE):
                for z in range(SECTOR_SIZE):
                    chunk.fill_sky_light(x, z, self.sky_light)
            t_profile = (time.perf_counter() - t0) * 1000.0

            # Bedrock, stone, soil, surface and water layers
            for x in range(SECTOR_SIZE):
                for z in range(SECTOR_SIZE):
                    self.paint_column(chunk, x, z, levels[x][z], placements)

            # Decorations read the painted terrain, so they run as a second pass.
            placed = Counter()
            for x in range(SECTOR_SIZE):
                for z in range(SECTOR_SIZE):
                    site = _Site(chunk, self.registry, placements, levels[x][z], x, z)
                    feature = decorate(site)
                    if feature is not None:
                        placed[feature] += 1
        except Exception as e:
            logutil.log("CHUNK", f"generation of ({chunk_x}, {chunk_z}) failed: {type(e).__name__}: {e}", level="ERROR")
            raise
        finally:
            logutil.set_chunk(None)

        if logutil.enabled("CHUNK"):
            ms = (time.perf_counter() - t0) * 1000.0
            logutil.log("CHUNK", f"generated ({chunk_x}, {chunk_z}) in {ms:.1f}ms (profiles {t_profile:.1f}ms)")
        if logutil.enabled("COLUMNS", "DEBUG"):
            surfaces = [p.surface for column in levels for p in column]
            biomes = Counter(p.biome for column in levels for p in column)
            logutil.log("COLUMNS", f"({chunk_x}, {chunk_z}) surface {min(surfaces)}..{max(surfaces)} "
                        f"biomes={dict(biomes)}", level="DEBUG")
        if logutil.enabled("DECOR", "DEBUG"):
            logutil.log("DECOR", f"({chunk_x}, {chunk_z}) decorations={dict(placed)}", level="DEBUG")
        return chunk

    __call__ = generate

    def generate_many(self, coords, workers=None):
        '''
        Generate chunks for a list of (chunk_x, chunk_z). Results come back in
        input order and match one-at-a-time generation; the worker threads
        only share the noise fields.
        '''
        coords = list(coords)
        if workers is None:
            workers = getattr(config, 'CHUNKGEN_WORKERS', 1)
        if workers <= 1 or len(coords) <= 1:
            return [self.generate(cx, cz) for cx, cz in coords]
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix='ChunkGen') as pool:
            return list(pool.map(lambda c: self.generate(*c), coords))


def generate_chunk(seed, chunk_x, chunk_z, settings=None):
    return ChunkGenerator(seed, settings).generate(chunk_x, chunk_z)


chunk_generator = None

def initialize_map_generator(seed=None, **kwargs):
    global chunk_generator
    if seed is None:
        seed = int(time.time())
    chunk_generator = ChunkGenerator(seed, GenerationSettings(**kwargs))
    logutil.log("MAPGEN", f"initialized {chunk_generator!r}")
    return chunk_generator


def generate_sector(position):
    """ Generate the chunk containing world block `position` (x, y, z). """
    global chunk_generator
    if chunk_generator is None:
        initialize_map_generator()
    chunk_x, chunk_z = sectorize(position)
    return chunk_generator.generate(chunk_x, chunk_z)
