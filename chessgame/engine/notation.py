from __future__ import annotations

from typing import List

from .board import Board
from .move import Move
from .pieces import PieceKind


def move_notation(move: Move) -> str:
    """Render a recorded move in short algebraic form without check marks.

    Examples: ``"Nf3"``, ``"exd5"``, ``"O-O"``, ``"e8=Q"``. Pieces are not
    disambiguated.
    """
    if move.is_castling:
        return "O-O" if move.to_pos.col > move.from_pos.col else "O-O-O"
    is_pawn = move.is_promotion or move.piece.kind is PieceKind.PAWN
    letter = "" if is_pawn else move.piece.kind.letter
    capture = move.is_capture or move.is_en_passant
    origin = move.from_pos.algebraic[0] if is_pawn and capture else ""
    promotion = ""
    if move.is_promotion:
        promotion = "=" + (move.promotion_kind or PieceKind.QUEEN).letter
    return f"{letter}{origin}{'x' if capture else ''}{move.to_pos.algebraic}{promotion}"


def notation_with_check(move: Move, is_check: bool, is_checkmate: bool) -> str:
    text = move_notation(move)
    if is_checkmate:
        return text + "#"
    if is_check:
        return text + "+"
    return text


def history_notation(board: Board) -> List[str]:
    """Render a board's move history, marking checks and mates.

    Replays the history by undoing on a copy, so the board itself is not
    touched.
    """
    scratch = board.copy()
    out: List[str] = []
    while scratch.move_history:
        move = scratch.move_history[-1]
        mover = scratch.current_turn
        out.append(
            notation_with_check(
                move, scratch.is_in_check(mover), scratch.is_checkmate(mover)
            )
        )
        scratch.undo_last_move()
    out.reverse()
    return out
