from __future__ import annotations

import pytest

from chessgame.engine.board import Board
from chessgame.engine.fen import STARTPOS_FEN, board_to_fen, parse_fen
from chessgame.engine.perft import perft


KIWIPETE = "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1"
POSITION_3 = "8/2p5/3p4/KP5r/1R3p1k/8/4P1P1/8 w - - 0 1"


@pytest.mark.parametrize("depth,expected", [(0, 1), (1, 20), (2, 400), (3, 8902)])
def test_perft_startpos(depth: int, expected: int) -> None:
    assert perft(Board.startpos(), depth) == expected


@pytest.mark.parametrize("depth,expected", [(1, 48), (2, 2039)])
def test_perft_kiwipete(depth: int, expected: int) -> None:
    assert perft(parse_fen(KIWIPETE), depth) == expected


@pytest.mark.parametrize("depth,expected", [(1, 14), (2, 191), (3, 2812)])
def test_perft_position_3(depth: int, expected: int) -> None:
    assert perft(parse_fen(POSITION_3), depth) == expected


def test_perft_restores_board() -> None:
    b = parse_fen(KIWIPETE)
    perft(b, 2)
    assert board_to_fen(b) == KIWIPETE
    assert b.move_history == []


def test_perft_negative_depth_raises() -> None:
    with pytest.raises(ValueError):
        perft(parse_fen(STARTPOS_FEN), -1)
