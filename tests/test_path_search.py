"""Legal destination search: exact numbered distances, joker unions,
collapse and occupancy pruning, exemplar tie-break."""

import time

import pytest

from collapsi.board_manager import BoardManager
from collapsi.models import CardType
from collapsi.rules.geometry import BoardGeometry
from collapsi.rules.outcome import check_game_end
from collapsi.rules.path_search import (
    enumerate_paths,
    has_legal_destination,
    legal_destinations,
)

from conftest import path_of, pos, uniform_layout, with_card


def _destinations(options):
    return {option.destination for option in options}


def test_joker_single_step_reaches_the_four_wraparound_neighbors(
    board_factory, players_factory
):
    board = board_factory(
        layout=with_card(uniform_layout("A"), (0, 0), "red-joker"),
        occupants={"red": (0, 0), "blue": (2, 2)},
    )
    occupied = BoardManager.occupied_positions(board, players_factory(blue=(2, 2)))

    options = enumerate_paths(
        board, pos(0, 0), 1, occupied=occupied, block_occupied=True
    )
    assert _destinations(options) == {pos(0, 1), pos(1, 0), pos(0, 3), pos(3, 0)}


def test_occupied_neighbor_is_not_a_destination(board_factory, players_factory):
    board = board_factory(
        layout=with_card(uniform_layout("A"), (0, 0), "red-joker"),
        occupants={"red": (0, 0), "blue": (0, 1)},
    )
    occupied = BoardManager.occupied_positions(board, players_factory(blue=(0, 1)))

    options = enumerate_paths(
        board, pos(0, 0), 1, occupied=occupied, block_occupied=True
    )
    assert _destinations(options) == {pos(1, 0), pos(0, 3), pos(3, 0)}


def test_numbered_two_reaches_exactly_the_distance_two_cells(board_factory):
    board = board_factory(
        layout=uniform_layout("2"),
        occupants={"red": (1, 1), "blue": (3, 3)},
    )
    options = legal_destinations(board, pos(1, 1), CardType.TWO)

    assert _destinations(options) == {
        pos(3, 1),
        pos(0, 0),
        pos(0, 2),
        pos(2, 0),
        pos(2, 2),
        pos(1, 3),
    }
    assert all(option.distance == 2 for option in options)


def test_exemplar_prefers_lexicographically_smallest_directions(board_factory):
    board = board_factory(
        layout=uniform_layout("2"),
        occupants={"red": (1, 1), "blue": (3, 3)},
    )
    options = {o.destination: o.path for o in legal_destinations(board, pos(1, 1), "2")}

    # up-left beats left-up; up-up beats down-down
    assert options[pos(0, 0)] == path_of((1, 1), (0, 1), (0, 0))
    assert options[pos(3, 1)] == path_of((1, 1), (0, 1), (3, 1))


def test_results_are_sorted_row_major(board_factory):
    board = board_factory(layout=uniform_layout("2"), occupants={"red": (1, 1)})
    destinations = [o.destination for o in legal_destinations(board, pos(1, 1), "2")]
    assert destinations == sorted(destinations, key=lambda p: (p.row, p.col))


def test_collapsed_cells_are_never_crossed(board_factory):
    board = board_factory(
        layout=uniform_layout("2"),
        collapsed=[(0, 1), (1, 0)],
        occupants={"red": (1, 1)},
    )
    options = legal_destinations(board, pos(1, 1), CardType.TWO)

    # (0,0) needs (0,1) or (1,0); both are gone.
    assert pos(0, 0) not in _destinations(options)
    for option in options:
        for step in option.path[1:]:
            assert not BoardManager.is_collapsed(step, board)


def test_numbered_move_may_pass_through_the_opponent(board_factory):
    board = board_factory(
        layout=uniform_layout("2"),
        collapsed=[(1, 0)],
        occupants={"red": (1, 1), "blue": (1, 2)},
    )
    options = {o.destination: o.path for o in legal_destinations(board, pos(1, 1), "2")}
    assert options[pos(1, 3)] == path_of((1, 1), (1, 2), (1, 3))


def test_joker_steps_are_landings_so_the_opponent_blocks(board_factory):
    board = board_factory(
        layout=with_card(uniform_layout("2"), (1, 1), "black-joker"),
        collapsed=[(1, 0)],
        occupants={"red": (1, 1), "blue": (1, 2)},
    )
    occupied = BoardManager.occupied_positions(board)
    two_steps = enumerate_paths(
        board, pos(1, 1), 2, occupied=occupied, block_occupied=True
    )
    assert pos(1, 3) not in _destinations(two_steps)

    for option in legal_destinations(board, pos(1, 1), CardType.BLACK_JOKER):
        assert pos(1, 2) not in option.path


def test_joker_union_covers_every_free_cell_on_open_board(board_factory):
    board = board_factory(
        layout=with_card(uniform_layout("A"), (0, 0), "red-joker"),
        occupants={"red": (0, 0), "blue": (2, 2)},
    )
    options = legal_destinations(board, pos(0, 0), CardType.RED_JOKER)

    assert len(options) == 14
    assert pos(0, 0) not in _destinations(options)
    assert pos(2, 2) not in _destinations(options)
    # Shortest path kept for each destination.
    by_dest = {o.destination: o for o in options}
    assert by_dest[pos(0, 1)].distance == 1
    assert by_dest[pos(2, 1)].distance == 3
    assert all(1 <= o.distance <= 4 for o in options)


@pytest.mark.parametrize("card_type", list(CardType))
def test_paths_never_revisit(board_factory, card_type):
    board = board_factory(
        layout=with_card(uniform_layout("A"), (1, 1), card_type.value),
        collapsed=[(0, 2), (3, 3)],
        occupants={"red": (1, 1), "blue": (2, 0)},
    )
    for option in legal_destinations(board, pos(1, 1), card_type):
        assert len(set(option.path)) == len(option.path)
        assert option.path[0] == pos(1, 1)
        assert option.path[-1] == option.destination


@pytest.mark.parametrize("card_type", list(CardType))
def test_only_the_active_cell_left_means_no_destinations(
    board_factory, players_factory, card_type
):
    others = [p for p in BoardGeometry.all_positions() if p != pos(1, 1)]
    board = board_factory(
        layout=with_card(uniform_layout("A"), (1, 1), card_type.value),
        collapsed=[(p.row, p.col) for p in others],
        occupants={"red": (1, 1)},
    )
    players = players_factory(red=(1, 1), blue=None)

    assert legal_destinations(board, pos(1, 1), card_type) == []
    assert not has_legal_destination(board, pos(1, 1), card_type)

    outcome = check_game_end(board, players, 0)
    assert outcome.ended is True
    assert outcome.winner_id == "blue"


def test_trapped_next_to_the_opponent(board_factory, players_factory):
    keep = {(0, 0), (0, 1)}
    collapsed = [
        (p.row, p.col)
        for p in BoardGeometry.all_positions()
        if (p.row, p.col) not in keep
    ]
    board = board_factory(
        layout=uniform_layout("A"),
        collapsed=collapsed,
        occupants={"red": (0, 0), "blue": (0, 1)},
    )
    players = players_factory(red=(0, 0), blue=(0, 1))

    outcome = check_game_end(board, players, 0)
    assert outcome.ended is True
    assert outcome.winner_id == "blue"


@pytest.mark.timeout(10)
def test_search_stays_fast_on_every_start(board_factory):
    board = board_factory(layout=uniform_layout("A"))
    slowest = 0.0
    for start in BoardGeometry.all_positions():
        for card_type in CardType:
            began = time.perf_counter()
            legal_destinations(board, start, card_type, occupied=set())
            slowest = max(slowest, time.perf_counter() - began)
    assert slowest < 0.1
