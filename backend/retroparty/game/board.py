from __future__ import annotations

from .models import Board, Tile
from .rng import Mulberry32


MAX_ATTEMPTS = 250
BONUS_TILES = 4
BONUS_MIN_INDEX = 6

# Weighted by repetition: blue is 4x as likely as red or violet.
BASE_TYPES = ("blue", "blue", "blue", "blue", "green", "green", "red", "violet")

_DIRECTIONS = ((1, 0), (-1, 0), (0, 1), (0, -1))


def generate_board(
    seed: int,
    cols: int = 20,
    rows: int = 6,
    length: int = 45,
    cell_size: int = 72,
    offset_x: int = 60,
    offset_y: int = 60,
) -> Board:
    """Build a self-avoiding random-walk path and paint its tile types.

    The same seed and options always give the same tile sequence. If no walk
    reaches ``length`` within ``MAX_ATTEMPTS`` tries an empty board is
    returned; callers treat it as a valid zero-length board.
    """
    rng = Mulberry32(seed)

    for _ in range(MAX_ATTEMPTS):
        path = _random_walk(rng, cols, rows, length)
        if len(path) < length:
            continue

        tiles = [
            Tile(
                id=idx,
                grid_x=x,
                grid_y=y,
                pixel_x=offset_x + x * cell_size,
                pixel_y=offset_y + y * cell_size,
            )
            for idx, (x, y) in enumerate(path)
        ]
        _paint_tile_types(tiles, rng)
        return Board(seed=seed, cols=cols, rows=rows, tiles=tiles)

    return Board(seed=seed, cols=cols, rows=rows, tiles=[])


def _random_walk(rng: Mulberry32, cols: int, rows: int, length: int) -> list[tuple[int, int]]:
    start = (rng.randbelow(cols), rng.randbelow(rows))
    path = [start]
    visited = {start}

    while len(path) < length:
        cx, cy = path[-1]
        candidates = [
            (cx + dx, cy + dy)
            for dx, dy in _DIRECTIONS
            if 0 <= cx + dx < cols and 0 <= cy + dy < rows and (cx + dx, cy + dy) not in visited
        ]
        if not candidates:
            break

        # Horizontal steps count three times so the path spreads across the width.
        weighted: list[tuple[int, int]] = []
        for cell in candidates:
            weight = 3 if abs(cell[0] - cx) == 1 else 1
            weighted.extend([cell] * weight)

        nxt = rng.choice(weighted)
        path.append(nxt)
        visited.add(nxt)

    return path


def _paint_tile_types(tiles: list[Tile], rng: Mulberry32) -> None:
    if not tiles:
        return

    tiles[0].type = "start"
    for tile in tiles[1:]:
        tile.type = rng.choice(BASE_TYPES)

    min_idx = min(BONUS_MIN_INDEX, len(tiles) - 1)
    span = len(tiles) - min_idx
    used = {0}
    for _ in range(BONUS_TILES):
        for _try in range(400):
            idx = min_idx + rng.randbelow(span)
            if idx not in used:
                used.add(idx)
                tiles[idx].type = "bonus"
                break
