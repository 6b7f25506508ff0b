from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .pieces import Piece, PieceKind


FILES = "abcdefgh"


@dataclass(frozen=True, order=True)
class Position:
    """A board square.

    Attributes:
        row (int): Rank index, 0 for rank 1 through 7 for rank 8.
        col (int): File index, 0 for file a through 7 for file h.

    Positions compare and hash by value and sort in board scan order
    (ascending row, then column).
    """

    row: int
    col: int

    @property
    def is_valid(self) -> bool:
        return 0 <= self.row < 8 and 0 <= self.col < 8

    def offset(self, drow: int, dcol: int) -> "Position":
        return Position(self.row + drow, self.col + dcol)

    @property
    def algebraic(self) -> str:
        """Algebraic name of the square.

        Returns:
            str: Square name such as ``"e4"``.

        Raises:
            ValueError: If the position lies outside the board.
        """
        if not self.is_valid:
            raise ValueError(f"invalid position: ({self.row}, {self.col})")
        return FILES[self.col] + str(self.row + 1)

    @classmethod
    def from_algebraic(cls, s: str) -> "Position":
        """Parse an algebraic square name.

        Args:
            s (str): Square name such as ``"e4"`` (case-insensitive file).

        Returns:
            Position: Parsed square.

        Raises:
            ValueError: If ``s`` is not a valid square.
        """
        if not isinstance(s, str) or len(s) != 2:
            raise ValueError(f"invalid square: {s!r}")
        f, r = s[0].lower(), s[1]
        if f not in FILES or r < "1" or r > "8":
            raise ValueError(f"invalid square: {s!r}")
        return cls(int(r) - 1, FILES.index(f))

    def __str__(self) -> str:
        return self.algebraic if self.is_valid else f"({self.row}, {self.col})"


ALL_SQUARES: Tuple[Position, ...] = tuple(Position(r, c) for r in range(8) for c in range(8))


@dataclass(frozen=True)
class Move:
    """A move as recorded in a board's history.

    Attributes:
        from_pos (Position): Origin square.
        to_pos (Position): Destination square.
        piece (Piece): The moved piece after the move (promoted and marked
            moved).
        captured_piece (Optional[Piece]): Piece removed by the move, if any.
            For en passant this is the pawn taken behind ``to_pos``.
        is_en_passant (bool): Move captured en passant.
        is_castling (bool): King move of two files; the rook moved too.
        is_promotion (bool): Pawn reached the last rank.
        promotion_kind (Optional[PieceKind]): Kind the pawn became.
    """

    from_pos: Position
    to_pos: Position
    piece: Piece
    captured_piece: Optional[Piece] = None
    is_en_passant: bool = False
    is_castling: bool = False
    is_promotion: bool = False
    promotion_kind: Optional[PieceKind] = None

    @property
    def is_capture(self) -> bool:
        return self.captured_piece is not None

    def to_uci(self) -> str:
        """Serialize the move into long algebraic UCI form.

        Returns:
            str: Move encoded like ``"e2e4"`` or ``"e7e8q"``.
        """
        promo = ""
        if self.is_promotion and self.promotion_kind is not None:
            promo = self.promotion_kind.letter.lower()
        return self.from_pos.algebraic + self.to_pos.algebraic + promo


def parse_uci(uci: str) -> Tuple[Position, Position]:
    """Parse a UCI move string into origin and destination.

    A promotion suffix is validated and dropped; promotions always yield a
    queen.

    Args:
        uci (str): Move encoded in long algebraic notation (e.g. ``"e2e4"``).

    Returns:
        Tuple[Position, Position]: Origin and destination squares.

    Raises:
        ValueError: If the string has an invalid length, squares, or promotion
            piece.
    """
    if len(uci) not in (4, 5):
        raise ValueError(f"invalid UCI move length: {uci!r}")
    from_pos = Position.from_algebraic(uci[0:2])
    to_pos = Position.from_algebraic(uci[2:4])
    if len(uci) == 5 and uci[4].lower() not in "qrbn":
        raise ValueError(f"invalid promotion piece: {uci[4]!r}")
    return from_pos, to_pos


def format_uci(from_pos: Position, to_pos: Position) -> str:
    return from_pos.algebraic + to_pos.algebraic
