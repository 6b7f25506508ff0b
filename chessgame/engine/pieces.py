from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class Color(str, Enum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opposite(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def forward(self) -> int:
        """Row delta of a pawn step for this color."""
        return 1 if self is Color.WHITE else -1

    @property
    def pawn_row(self) -> int:
        return 1 if self is Color.WHITE else 6

    @property
    def back_row(self) -> int:
        return 0 if self is Color.WHITE else 7

    @property
    def promotion_row(self) -> int:
        return 7 if self is Color.WHITE else 0


class PieceKind(str, Enum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"

    @property
    def letter(self) -> str:
        """Uppercase FEN/SAN letter (``"N"`` for knight)."""
        return _LETTERS[self]

    @classmethod
    def from_letter(cls, ch: str) -> "PieceKind":
        try:
            return _FROM_LETTER[ch.upper()]
        except KeyError:
            raise ValueError(f"invalid piece letter: {ch!r}") from None


_LETTERS = {
    PieceKind.PAWN: "P",
    PieceKind.KNIGHT: "N",
    PieceKind.BISHOP: "B",
    PieceKind.ROOK: "R",
    PieceKind.QUEEN: "Q",
    PieceKind.KING: "K",
}
_FROM_LETTER = {v: k for k, v in _LETTERS.items()}


@dataclass(frozen=True)
class Piece:
    """A piece value.

    Pieces are immutable; moving a piece stores a copy with ``has_moved`` set,
    so board copies can share Piece instances freely.
    """

    kind: PieceKind
    color: Color
    has_moved: bool = False

    def moved(self) -> "Piece":
        return self if self.has_moved else replace(self, has_moved=True)

    def promoted(self) -> "Piece":
        return Piece(PieceKind.QUEEN, self.color, has_moved=True)

    @property
    def symbol(self) -> str:
        """FEN character: uppercase for white, lowercase for black."""
        ch = self.kind.letter
        return ch if self.color is Color.WHITE else ch.lower()

    @classmethod
    def from_symbol(cls, ch: str, *, has_moved: bool = False) -> "Piece":
        color = Color.WHITE if ch.isupper() else Color.BLACK
        return cls(PieceKind.from_letter(ch), color, has_moved)
