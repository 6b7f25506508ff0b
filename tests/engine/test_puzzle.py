from __future__ import annotations

import pytest

from chessgame.engine.game import Game, GameState
from chessgame.engine.move import Position
from chessgame.engine.pieces import Color
from chessgame.engine.puzzle import (
    SAMPLE_PUZZLES,
    Puzzle,
    PuzzleDifficulty,
    PuzzleResult,
    PuzzleSession,
    PuzzleTheme,
)


def sq(name: str) -> Position:
    return Position.from_algebraic(name)


def puzzle(title: str) -> Puzzle:
    return next(p for p in SAMPLE_PUZZLES if p.title == title)


@pytest.mark.parametrize("p", SAMPLE_PUZZLES, ids=lambda p: p.title)
def test_sample_lines_are_legal(p: Puzzle) -> None:
    p.validate()
    assert p.side_to_move is Color.WHITE


def test_illegal_line_is_rejected() -> None:
    bad = Puzzle.from_uci(
        "Blocked queen",
        "r1bq1rk1/ppp2ppp/2np1n2/2b1p3/2B1P3/2NP1N2/PPP2PPP/R1BQ1RK1 w - - 0 1",
        ["d1d5"],
        PuzzleDifficulty.INTERMEDIATE,
        PuzzleTheme.SACRIFICE,
    )
    with pytest.raises(ValueError, match="illegal"):
        PuzzleSession(bad)


def test_empty_line_is_rejected() -> None:
    empty = Puzzle(
        "Nothing", "4k3/8/8/8/8/8/8/4K3 w - - 0 1", (), PuzzleDifficulty.BEGINNER, PuzzleTheme.MATE
    )
    with pytest.raises(ValueError, match="empty solution"):
        empty.validate()


def test_single_move_mate_is_solved() -> None:
    session = PuzzleSession(puzzle("Back Rank Mate"))
    assert session.check_move(sq("e1"), sq("e8")) is PuzzleResult.SOLVED
    assert session.is_solved
    assert session.hint() is None
    game = Game(board=session.board)
    assert game.status().state is GameState.CHECKMATE


def test_wrong_move_leaves_board_untouched() -> None:
    session = PuzzleSession(puzzle("Back Rank Mate"))
    fen = session.board_fen()
    # legal on the board but not the solution
    assert session.check_move(sq("g1"), sq("f1")) is PuzzleResult.WRONG
    assert session.board_fen() == fen
    assert session.move_index == 0
    assert session.attempts == 1
    assert not session.is_solved


def test_correct_move_plays_scripted_reply() -> None:
    session = PuzzleSession(puzzle("Knight Fork"))
    assert session.check_move(sq("f3"), sq("g5")) is PuzzleResult.CORRECT
    assert session.move_index == 2
    assert session.board.current_turn is Color.WHITE
    assert [m.to_uci() for m in session.board.move_history] == ["f3g5", "d8e7"]

    assert session.check_move(sq("g5"), sq("f7")) is PuzzleResult.SOLVED
    # further moves do nothing once solved
    fen = session.board_fen()
    assert session.check_move(sq("a2"), sq("a3")) is PuzzleResult.SOLVED
    assert session.board_fen() == fen


def test_hint_follows_progress() -> None:
    session = PuzzleSession(puzzle("King and Pawn Endgame"))
    hint = session.hint()
    assert hint is not None and hint.to_uci() == "e3e2"
    session.check_move(sq("e3"), sq("e2"))
    hint = session.hint()
    assert hint is not None and hint.to_uci() == "e2e3"
    assert session.check_move(sq("e2"), sq("e3")) is PuzzleResult.CORRECT
    assert session.check_move(sq("e3"), sq("f3")) is PuzzleResult.SOLVED


def test_reset_restores_start() -> None:
    p = puzzle("Skewer Attack")
    session = PuzzleSession(p)
    session.check_move(sq("d5"), sq("a8"))
    session.check_move(sq("a1"), sq("a2"))
    assert session.move_index == 2
    session.reset()
    assert session.move_index == 0
    assert session.attempts == 0
    assert session.board_fen() == p.fen
    assert session.board.move_history == []
