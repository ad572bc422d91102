import pytest

from retroparty.game.board import BONUS_MIN_INDEX, BONUS_TILES, generate_board
from retroparty.game.rng import Mulberry32


@pytest.mark.parametrize("seed", [1, 42, 424242, 987654321])
def test_board_is_a_contiguous_self_avoiding_path(seed):
    board = generate_board(seed)

    assert board.length == 45
    assert [t.id for t in board.tiles] == list(range(45))

    cells = [(t.grid_x, t.grid_y) for t in board.tiles]
    assert len(set(cells)) == len(cells)
    for x, y in cells:
        assert 0 <= x < 20
        assert 0 <= y < 6
    for (ax, ay), (bx, by) in zip(cells, cells[1:]):
        assert abs(ax - bx) + abs(ay - by) == 1


@pytest.mark.parametrize("seed", [1, 42, 424242])
def test_tile_types(seed):
    board = generate_board(seed)
    types = [t.type for t in board.tiles]

    assert types[0] == "start"
    assert "start" not in types[1:]
    assert set(types[1:]) <= {"blue", "green", "red", "violet", "bonus"}

    bonus = [i for i, t in enumerate(types) if t == "bonus"]
    assert len(bonus) == BONUS_TILES
    assert all(i >= BONUS_MIN_INDEX for i in bonus)


def test_same_seed_same_board():
    a = generate_board(1234)
    b = generate_board(1234)
    assert a == b
    assert generate_board(1235).tiles != a.tiles


def test_pixel_coordinates_follow_grid():
    board = generate_board(7, cell_size=50, offset_x=10, offset_y=20)
    for t in board.tiles:
        assert t.pixel_x == 10 + t.grid_x * 50
        assert t.pixel_y == 20 + t.grid_y * 50


def test_unreachable_length_gives_empty_board():
    board = generate_board(99, cols=2, rows=2, length=10)
    assert board.tiles == []
    assert board.length == 0
    assert board.seed == 99


def test_mulberry32_is_deterministic_and_in_range():
    a = Mulberry32(2024)
    b = Mulberry32(2024)
    draws = [a.random() for _ in range(200)]

    assert draws == [b.random() for _ in range(200)]
    assert all(0 <= v < 1 for v in draws)
    assert len(set(draws)) > 190


def test_mulberry32_randbelow():
    rng = Mulberry32(5)
    values = {rng.randbelow(6) for _ in range(500)}
    assert values == {0, 1, 2, 3, 4, 5}


@pytest.mark.parametrize("length", [1, 2, 5, 7, 8, 10])
def test_short_boards_hold_fewer_bonus_tiles(length):
    board = generate_board(31, cols=8, rows=4, length=length)
    types = [t.type for t in board.tiles]

    assert len(types) == length
    assert types[0] == "start"

    min_idx = min(BONUS_MIN_INDEX, length - 1)
    expected = 0 if length == 1 else min(BONUS_TILES, length - min_idx)
    bonus = [i for i, t in enumerate(types) if t == "bonus"]
    assert len(bonus) == expected
    assert 0 not in bonus
    assert all(i >= min_idx for i in bonus)
