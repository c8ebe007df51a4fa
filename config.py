# Width and depth (x and z) of a generated chunk.
SECTOR_SIZE = 16

# Vertical extent of a chunk and the world offset of its lowest voxel.
WORLD_HEIGHT = 80
MIN_Y = 0

# Blocks at or below this height (and above the surface) are filled with water.
WATERLINE = 32

# Width of the world; half of it is added to chunk coordinates so the origin
# sits at the middle of the world.
WORLD_SIZE = 10000000

# Octaves of the smooth sine field. Amplitude of octave i is (i+1)**2.
NOISE_OCTAVES = 4
# Divisor inside the logistic squash of the smooth field.
SMOOTH_SQUASH = 70.0

# Cellular field used for biomes: expected points per unit area and per batch.
BIOME_POINT_DENSITY = 0.00005
EXPECTED_POINTS_PER_BATCH = 10
# Cap on cached cellular batches per field (None keeps every batch).
POINT_CACHE_MAX = None
# 3x3 batch neighborhoods kept per cellular field for repeat queries.
NEIGHBORHOOD_CACHE = 16
# Nearest point identity: 'sum' (px + py) or 'mixed' (integer hash of the pair).
# Changing it changes biome placement for existing seeds.
POINT_HASH = 'sum'

# Duplication weights of the biome pick list.
BIOME_WEIGHTS = (
    ('plains', 15),
    ('forest', 20),
    ('desert', 10),
)

# Layer thickness scales.
BEDROCK_SCALE = 5
SOIL_SCALE = 3

# Ores: (block name, y comparison, y threshold, 1 in N odds), tested in order.
ORES = (
    ('coal_ore', '>', 20, 40),
    ('iron_ore', '>', 20, 50),
    ('redstone_ore', '<', 20, 100),
    ('diamond_ore', '<', 20, 150),
)

# Sky light written for every voxel of a generated chunk.
SKY_LIGHT = 15

# Registry version block names are written against.
BLOCK_DATA_VERSION = '1.18.2'
TARGET_VERSION = '1.18.2'

# Worker threads for ChunkGenerator.generate_many.
CHUNKGEN_WORKERS = 1

# Enable ANSI colors in logs.
LOG_COLOR = True

# Log per-chunk generation timings and column statistics.
LOG_CHUNKGEN = True

# Minimum level printed: DEBUG, INFO, WARN or ERROR.
LOG_LEVEL = 'INFO'
