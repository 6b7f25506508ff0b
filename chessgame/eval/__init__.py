"""Static position evaluation.

Pure, deterministic, and side-effect free. Scores are in centipawns from the
perspective of the side to move.
"""

from __future__ import annotations

from typing import Dict, Final

from chessgame.engine.board import Board
from chessgame.engine.move import Position
from chessgame.engine.pieces import Piece, PieceKind


# Material values in centipawns
P_VAL: Final = 100
N_VAL: Final = 300
B_VAL: Final = 300
R_VAL: Final = 500
Q_VAL: Final = 900
K_VAL: Final = 100_000

PIECE_VALUES: Final[Dict[PieceKind, int]] = {
    PieceKind.PAWN: P_VAL,
    PieceKind.KNIGHT: N_VAL,
    PieceKind.BISHOP: B_VAL,
    PieceKind.ROOK: R_VAL,
    PieceKind.QUEEN: Q_VAL,
    PieceKind.KING: K_VAL,
}

# Heuristic weights (centipawns)
PAWN_ADVANCE_BONUS: Final = 10  # per rank advanced from the back rank
CENTER_BONUS: Final = 10  # per unit of center proximity
MOBILITY_WEIGHT: Final = 10  # per legal move of difference
CHECK_BONUS: Final = 50


def center_proximity(pos: Position) -> float:
    # 5.0 on d4/e4/d5/e5, -1.0 in the corners
    return 6 - abs(pos.row - 3.5) - abs(pos.col - 3.5)


def positional_bonus(piece: Piece, pos: Position) -> int:
    kind = piece.kind
    if kind is PieceKind.PAWN:
        advanced = pos.row if piece.color.forward > 0 else 7 - pos.row
        return advanced * PAWN_ADVANCE_BONUS
    if kind in (PieceKind.KNIGHT, PieceKind.BISHOP):
        return int(CENTER_BONUS * center_proximity(pos))
    if kind is PieceKind.QUEEN:
        return int(CENTER_BONUS * center_proximity(pos) / 2)
    return 0


def material_and_position(board: Board) -> int:
    """Sum of material plus positional bonus, own pieces minus opponent's."""
    mover = board.current_turn
    score = 0
    for pos, piece in board.pieces():
        value = PIECE_VALUES[piece.kind] + positional_bonus(piece, pos)
        score += value if piece.color is mover else -value
    return score


def mobility(board: Board) -> int:
    mover = board.current_turn
    own = len(board.legal_moves(mover))
    opp = len(board.legal_moves(mover.opposite))
    return (own - opp) * MOBILITY_WEIGHT


def evaluate(board: Board) -> int:
    """Evaluate ``board`` from ``board.current_turn``'s perspective.

    Returns:
        int: Material and positional balance, plus mobility balance, minus
            ``CHECK_BONUS`` when the mover is in check and plus it when the
            opponent is.
    """
    mover = board.current_turn
    score = material_and_position(board) + mobility(board)
    if board.is_in_check(mover):
        score -= CHECK_BONUS
    if board.is_in_check(mover.opposite):
        score += CHECK_BONUS
    return score
