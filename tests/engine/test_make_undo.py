from __future__ import annotations

from typing import Any, Tuple

import pytest

from chessgame.engine.board import Board
from chessgame.engine.fen import parse_fen
from chessgame.engine.move import Position
from chessgame.engine.pieces import Color, Piece, PieceKind


def sq(name: str) -> Position:
    return Position.from_algebraic(name)


def snapshot(b: Board) -> Tuple[Any, ...]:
    return (
        [list(row) for row in b.squares],
        b.current_turn,
        b.en_passant_target,
        b.fullmove_number,
        list(b.move_history),
    )


def setup(fen: str, *ucis: str) -> Board:
    b = parse_fen(fen)
    for u in ucis:
        assert b.make_move(sq(u[:2]), sq(u[2:4])) is not None, u
    return b


START = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
CASTLE = "r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1"


@pytest.mark.parametrize(
    "fen,prelude,move",
    [
        (START, (), "e2e4"),  # quiet double push
        (START, (), "g1f3"),  # quiet piece move
        (START, ("e2e4", "d7d5"), "e4d5"),  # capture
        (START, ("e2e4", "a7a6", "e4e5", "d7d5"), "e5d6"),  # en passant
        (CASTLE, (), "e1g1"),  # king side castling
        (CASTLE, (), "e1c1"),  # queen side castling
        (CASTLE, ("h1h2",), "e8c8"),  # black castling
        ("8/P6k/8/8/8/8/8/K7 w - - 0 1", (), "a7a8"),  # promotion
    ],
)
def test_make_then_undo_restores_exact_state(fen: str, prelude: Tuple[str, ...], move: str) -> None:
    b = setup(fen, *prelude)
    before = snapshot(b)
    assert b.make_move(sq(move[:2]), sq(move[2:4])) is not None
    assert snapshot(b) != before
    assert b.undo_last_move() is True
    assert snapshot(b) == before


def test_undo_sequence_back_to_start() -> None:
    b = setup(START, "e2e4", "e7e5", "g1f3", "b8c6", "f1c4", "g8f6", "e1g1")
    while b.move_history:
        assert b.undo_last_move()
    assert b.squares == Board.startpos().squares
    assert b.current_turn is Color.WHITE
    assert b.en_passant_target is None
    assert b.fullmove_number == 1


def test_make_move_flips_turn_and_records_history() -> None:
    b = Board.startpos()
    move = b.make_move(sq("e2"), sq("e4"))
    assert move is not None
    assert b.current_turn is Color.BLACK
    assert b.move_history == [move]
    assert move.piece == Piece(PieceKind.PAWN, Color.WHITE, has_moved=True)
    assert move.captured_piece is None
    assert b.en_passant_target == sq("e3")


def test_quiet_move_clears_en_passant_target() -> None:
    b = setup(START, "e2e4", "g8f6")
    assert b.en_passant_target is None
    assert b.fullmove_number == 2


def test_capture_records_captured_piece() -> None:
    b = setup(START, "e2e4", "d7d5")
    move = b.make_move(sq("e4"), sq("d5"))
    assert move is not None
    assert move.is_capture
    assert move.captured_piece == Piece(PieceKind.PAWN, Color.BLACK, has_moved=True)


def test_en_passant_capture_removes_pawn_behind_target() -> None:
    b = setup(START, "e2e4", "a7a6", "e4e5", "d7d5")
    assert sq("d6") in b.get_possible_moves(sq("e5"))
    move = b.make_move(sq("e5"), sq("d6"))
    assert move is not None
    assert move.is_en_passant
    assert move.captured_piece is not None and move.captured_piece.kind is PieceKind.PAWN
    assert b.piece_at(sq("d5")) is None
    assert b.piece_at(sq("d6")) == Piece(PieceKind.PAWN, Color.WHITE, has_moved=True)


def test_en_passant_only_on_immediately_following_ply() -> None:
    b = setup(START, "e2e4", "a7a6", "e4e5", "d7d5", "a2a3", "a6a5")
    assert sq("d6") not in b.get_possible_moves(sq("e5"))
    assert b.make_move(sq("e5"), sq("d6")) is None


def test_en_passant_for_black() -> None:
    b = parse_fen("4k3/8/8/8/3pP3/8/8/4K3 b - e3 0 1")
    assert sq("e3") in b.get_possible_moves(sq("d4"))
    b.make_move(sq("d4"), sq("e3"))
    assert b.piece_at(sq("e4")) is None


def test_en_passant_exposing_king_is_illegal() -> None:
    # Removing both pawns from the fifth rank would expose the king to the rook
    b = parse_fen("8/8/8/K2pP2r/8/8/8/7k w - d6 0 1")
    assert sq("d6") not in b.get_possible_moves(sq("e5"))


def test_promotion_always_yields_queen() -> None:
    b = parse_fen("8/P6k/8/8/8/8/8/K7 w - - 0 1")
    move = b.make_move(sq("a7"), sq("a8"))
    assert move is not None
    assert move.is_promotion
    assert move.promotion_kind is PieceKind.QUEEN
    assert move.to_uci() == "a7a8q"
    assert b.piece_at(sq("a8")) == Piece(PieceKind.QUEEN, Color.WHITE, has_moved=True)


def test_capture_promotion() -> None:
    b = parse_fen("1r5k/P7/8/8/8/8/8/K7 w - - 0 1")
    move = b.make_move(sq("a7"), sq("b8"))
    assert move is not None
    assert move.is_promotion and move.is_capture
    assert b.piece_at(sq("b8")) == Piece(PieceKind.QUEEN, Color.WHITE, has_moved=True)
