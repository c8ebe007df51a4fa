from config import SECTOR_SIZE

# (dx, dy, dz) offsets of the four horizontal neighbors.
SIDES = [
    (-1, 0, 0),
    (0, 0, -1),
    (0, 0, 1),
    (1, 0, 0),
]

# The eight horizontal neighbors including diagonals.
RING = [
    (-1, 0, -1), (-1, 0, 0), (-1, 0, 1),
    (0, 0, -1), (0, 0, 1),
    (1, 0, -1), (1, 0, 0), (1, 0, 1),
]

# Leaves around and just below the top of a tree trunk.
CANOPY = [
    (0, 0, 0),
    (1, 0, 0),
    (-1, 0, 0),
    (0, 0, 1),
    (0, 0, -1),
    (1, -1, 0),
    (-1, -1, 0),
    (0, -1, 1),
    (0, -1, -1),
    (1, -1, 1),
    (-1, -1, 1),
    (1, -1, -1),
    (-1, -1, -1),
]


def offset(position, delta):
    return (position[0] + delta[0], position[1] + delta[1], position[2] + delta[2])


def duplicate_list(items, times):
    """ `items` repeated `times` times, in order. """
    return list(items) * times


def weighted_list(weights):
    """ Flatten ((name, count), ...) into a list with each name repeated. """
    out = []
    for name, count in weights:
        out.extend(duplicate_list([name], count))
    return out


def normalize(position):
    """ Accepts `position` of arbitrary precision and returns the block
    containing that position.

    Parameters
    ----------
    position : tuple of len 3

    Returns
    -------
    block_position : tuple of ints of len 3

    """
    x, y, z = position
    x, y, z = (int(round(x)), int(round(y)), int(round(z)))
    return (x, y, z)


def sectorize(position):
    """ Returns the (chunk_x, chunk_z) of the chunk containing `position`.

    Parameters
    ----------
    position : tuple of len 3

    Returns
    -------
    chunk : tuple of len 2

    """
    x, y, z = normalize(position)
    return (x // SECTOR_SIZE, z // SECTOR_SIZE)


def world_origin(chunk_x, chunk_z, size):
    """ World (x, z) of local column (0, 0) of a chunk; half the world size
    shifts the origin to the middle of the world. """
    return (chunk_x * SECTOR_SIZE + size // 2, chunk_z * SECTOR_SIZE + size // 2)
