"""FEN setup source.

Seeds a Board's contents and side to move from Forsyth–Edwards Notation and
renders a Board back. Castling rights have no dedicated field on the Board;
they are carried by the ``has_moved`` flags of kings and rooks.
"""

from __future__ import annotations

from typing import List, Optional

from .board import Board
from .move import Position
from .pieces import Color, Piece, PieceKind


STARTPOS_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

# right -> (color, rook column)
_CASTLING_ROOKS = {
    "K": (Color.WHITE, 7),
    "Q": (Color.WHITE, 0),
    "k": (Color.BLACK, 7),
    "q": (Color.BLACK, 0),
}
_KING_COL = 4


def parse_fen(fen: str) -> Board:
    """Create a board from a FEN string.

    Args:
        fen (str): FEN string describing the position to load.

    Returns:
        Board: Board with pieces, side to move, en-passant target and
            fullmove number taken from ``fen`` and an empty move history.

    Raises:
        ValueError: If ``fen`` is empty, has the wrong number of fields, or
            contains invalid piece placement, castling rights, en passant
            square, or move counters.

    Notes:
        Kings and rooks are unmoved only where the castling field grants a
        matching right and pawns only on their start rank; other pieces are
        unmoved. The halfmove clock is validated but not kept.
    """
    if not fen or not isinstance(fen, str):
        raise ValueError("FEN must be a non-empty string")
    parts = fen.strip().split()
    if len(parts) != 6:
        raise ValueError("FEN must have 6 fields")
    placement, stm, castling, ep, halfmove, fullmove = parts

    ranks = placement.split("/")
    if len(ranks) != 8:
        raise ValueError("FEN board must have 8 ranks")
    board = Board.empty()
    for row, rank in zip(range(7, -1, -1), ranks):
        col = 0
        for ch in rank:
            if ch.isdigit():
                n = int(ch)
                if n < 1 or n > 8:
                    raise ValueError("invalid empty count in FEN rank")
                col += n
            else:
                if col >= 8:
                    raise ValueError("too many squares in FEN rank")
                board.set_piece(Piece.from_symbol(ch, has_moved=True), Position(row, col))
                col += 1
        if col != 8:
            raise ValueError("rank does not sum to 8 squares in FEN")

    if stm not in ("w", "b"):
        raise ValueError("side to move must be 'w' or 'b'")
    board.current_turn = Color.WHITE if stm == "w" else Color.BLACK

    rights = ""
    if castling != "-":
        for ch in castling:
            if ch not in _CASTLING_ROOKS:
                raise ValueError("invalid castling rights")
        rights = castling
    _apply_moved_flags(board, rights)

    if ep != "-":
        try:
            target = Position.from_algebraic(ep)
        except ValueError as e:
            raise ValueError("invalid en passant square") from e
        if target.row not in (2, 5):
            raise ValueError("invalid en passant square rank")
        board.en_passant_target = target

    try:
        halfmove_clock = int(halfmove)
        fullmove_number = int(fullmove)
    except ValueError as e:
        raise ValueError("invalid move counters in FEN") from e
    if halfmove_clock < 0 or fullmove_number <= 0:
        raise ValueError("invalid move counters in FEN")
    board.fullmove_number = fullmove_number
    return board


def _apply_moved_flags(board: Board, rights: str) -> None:
    for pos, piece in list(board.pieces()):
        unmoved = True
        if piece.kind is PieceKind.PAWN:
            unmoved = pos.row == piece.color.pawn_row
        elif piece.kind is PieceKind.KING:
            home = Position(piece.color.back_row, _KING_COL)
            unmoved = pos == home and any(
                _CASTLING_ROOKS[r][0] is piece.color for r in rights
            )
        elif piece.kind is PieceKind.ROOK:
            unmoved = any(
                color is piece.color and pos == Position(color.back_row, col)
                for color, col in (_CASTLING_ROOKS[r] for r in rights)
            )
        if unmoved:
            board.set_piece(Piece(piece.kind, piece.color), pos)


def castling_rights(board: Board) -> str:
    """Derive the FEN castling field from king and rook ``has_moved`` flags."""
    out: List[str] = []
    for right in "KQkq":
        color, rook_col = _CASTLING_ROOKS[right]
        king = board.piece_at(Position(color.back_row, _KING_COL))
        rook = board.piece_at(Position(color.back_row, rook_col))
        if (
            king is not None
            and king.kind is PieceKind.KING
            and king.color is color
            and not king.has_moved
            and rook is not None
            and rook.kind is PieceKind.ROOK
            and rook.color is color
            and not rook.has_moved
        ):
            out.append(right)
    return "".join(out) or "-"


def board_to_fen(board: Board) -> str:
    """Serialize the board into a FEN string.

    Returns:
        str: FEN string; the halfmove clock is always ``0``.
    """
    ranks_str: List[str] = []
    for row in range(7, -1, -1):
        run = 0
        out: List[str] = []
        for col in range(8):
            piece: Optional[Piece] = board.piece_at(Position(row, col))
            if piece is None:
                run += 1
                continue
            if run > 0:
                out.append(str(run))
                run = 0
            out.append(piece.symbol)
        if run > 0:
            out.append(str(run))
        ranks_str.append("".join(out))
    placement = "/".join(ranks_str)
    stm = "w" if board.current_turn is Color.WHITE else "b"
    ep = board.en_passant_target.algebraic if board.en_passant_target is not None else "-"
    return f"{placement} {stm} {castling_rights(board)} {ep} 0 {board.fullmove_number}"
