from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple

from .move import ALL_SQUARES, Move, Position
from .pieces import Color, Piece, PieceKind


KNIGHT_STEPS = ((1, 2), (2, 1), (2, -1), (1, -2), (-1, -2), (-2, -1), (-2, 1), (-1, 2))
KING_STEPS = ((-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1))
ORTHOGONALS = ((-1, 0), (1, 0), (0, -1), (0, 1))
DIAGONALS = ((-1, -1), (-1, 1), (1, -1), (1, 1))

BACK_RANK = (
    PieceKind.ROOK,
    PieceKind.KNIGHT,
    PieceKind.BISHOP,
    PieceKind.QUEEN,
    PieceKind.KING,
    PieceKind.BISHOP,
    PieceKind.KNIGHT,
    PieceKind.ROOK,
)

Square = Optional[Piece]
MovePair = Tuple[Position, Position]


def _empty_squares() -> List[List[Square]]:
    return [[None] * 8 for _ in range(8)]


def _sign(x: int) -> int:
    return (x > 0) - (x < 0)


@dataclass(frozen=True)
class _Snapshot:
    """Prior contents of every square a move touched, plus prior counters."""

    squares: Tuple[Tuple[Position, Square], ...]
    en_passant_target: Optional[Position]
    fullmove_number: int


@dataclass
class Board:
    """Mutable chess position and the single source of truth for legality.

    Notes:
    - ``squares[row][col]``; row 0 is rank 1, col 0 is file a.
    - ``make_move`` is the only mutator used during play. Every successful
      move appends to ``move_history`` and pushes a snapshot that
      ``undo_last_move`` restores verbatim.
    - Query methods never raise; mutators report failure through their
      return value and leave the board untouched.
    """

    squares: List[List[Square]] = field(default_factory=_empty_squares)
    current_turn: Color = Color.WHITE
    move_history: List[Move] = field(default_factory=list)
    en_passant_target: Optional[Position] = None
    fullmove_number: int = 1
    _undo_stack: List[_Snapshot] = field(default_factory=list, repr=False)

    @classmethod
    def empty(cls) -> "Board":
        return cls()

    @classmethod
    def startpos(cls) -> "Board":
        """Create a board set up in the standard initial position.

        Returns:
            Board: Board with all 32 pieces unmoved and white to move.
        """
        board = cls()
        board.setup_initial()
        return board

    def setup_initial(self) -> None:
        self.squares = _empty_squares()
        for col, kind in enumerate(BACK_RANK):
            self.squares[0][col] = Piece(kind, Color.WHITE)
            self.squares[1][col] = Piece(PieceKind.PAWN, Color.WHITE)
            self.squares[6][col] = Piece(PieceKind.PAWN, Color.BLACK)
            self.squares[7][col] = Piece(kind, Color.BLACK)
        self.current_turn = Color.WHITE
        self.move_history = []
        self.en_passant_target = None
        self.fullmove_number = 1
        self._undo_stack = []

    def copy(self) -> "Board":
        """Return an independent deep copy for simulation.

        Pieces, moves and snapshots are immutable values, so copying the
        containers is enough to isolate the copy from this board.
        """
        return Board(
            squares=[list(row) for row in self.squares],
            current_turn=self.current_turn,
            move_history=list(self.move_history),
            en_passant_target=self.en_passant_target,
            fullmove_number=self.fullmove_number,
            _undo_stack=list(self._undo_stack),
        )

    # --- Square access ---
    def piece_at(self, pos: Position) -> Square:
        if not pos.is_valid:
            return None
        return self.squares[pos.row][pos.col]

    def set_piece(self, piece: Square, pos: Position) -> None:
        if pos.is_valid:
            self.squares[pos.row][pos.col] = piece

    def pieces(self, color: Optional[Color] = None) -> Iterator[Tuple[Position, Piece]]:
        """Yield occupied squares in board scan order, optionally by color."""
        for pos in ALL_SQUARES:
            piece = self.squares[pos.row][pos.col]
            if piece is not None and (color is None or piece.color is color):
                yield pos, piece

    def find_king(self, color: Color) -> Optional[Position]:
        for pos, piece in self.pieces(color):
            if piece.kind is PieceKind.KING:
                return pos
        return None

    # --- Validation ---
    def is_valid_move(self, from_pos: Position, to_pos: Position) -> bool:
        """Return True if the side to move may play ``from_pos`` → ``to_pos``.

        Args:
            from_pos (Position): Origin square.
            to_pos (Position): Destination square.

        Returns:
            bool: False when the origin is empty or holds an opponent piece,
                the destination is off the board or holds an own piece, the
                piece cannot move that way, or the move would leave the
                mover's king attacked.
        """
        piece = self.piece_at(from_pos)
        if piece is None or piece.color is not self.current_turn:
            return False
        return self._is_legal(piece, from_pos, to_pos)

    def _is_legal(self, piece: Piece, from_pos: Position, to_pos: Position) -> bool:
        if not to_pos.is_valid:
            return False
        target = self.piece_at(to_pos)
        if target is not None and target.color is piece.color:
            return False
        if not MOVE_RULES[piece.kind](self, piece, from_pos, to_pos):
            return False
        return not self._leaves_king_in_check(piece, from_pos, to_pos)

    def _en_passant_victim(
        self, piece: Piece, from_pos: Position, to_pos: Position
    ) -> Optional[Position]:
        """Square of the pawn an en-passant capture would remove, if any."""
        if (
            piece.kind is not PieceKind.PAWN
            or to_pos != self.en_passant_target
            or piece.color is not self.current_turn
            or from_pos.col == to_pos.col
            or self.piece_at(to_pos) is not None
        ):
            return None
        victim_pos = Position(from_pos.row, to_pos.col)
        victim = self.piece_at(victim_pos)
        if victim is None or victim.kind is not PieceKind.PAWN or victim.color is piece.color:
            return None
        return victim_pos

    def _leaves_king_in_check(self, piece: Piece, from_pos: Position, to_pos: Position) -> bool:
        # Simulate in place and always revert.
        captured = self.piece_at(to_pos)
        victim_pos = self._en_passant_victim(piece, from_pos, to_pos)
        victim = self.piece_at(victim_pos) if victim_pos is not None else None
        self.set_piece(piece, to_pos)
        self.set_piece(None, from_pos)
        if victim_pos is not None:
            self.set_piece(None, victim_pos)
        try:
            return self.is_in_check(piece.color)
        finally:
            if victim_pos is not None:
                self.set_piece(victim, victim_pos)
            self.set_piece(piece, from_pos)
            self.set_piece(captured, to_pos)

    def is_path_clear(self, from_pos: Position, to_pos: Position) -> bool:
        """True if every square strictly between two aligned squares is empty."""
        drow = _sign(to_pos.row - from_pos.row)
        dcol = _sign(to_pos.col - from_pos.col)
        current = from_pos.offset(drow, dcol)
        while current != to_pos and current.is_valid:
            if self.piece_at(current) is not None:
                return False
            current = current.offset(drow, dcol)
        return True

    def can_castle(self, from_pos: Position, to_pos: Position, color: Color) -> bool:
        king = self.piece_at(from_pos)
        if king is None or king.kind is not PieceKind.KING or king.has_moved:
            return False
        direction = 1 if to_pos.col > from_pos.col else -1
        rook_pos = Position(from_pos.row, 7 if direction == 1 else 0)
        rook = self.piece_at(rook_pos)
        if rook is None or rook.kind is not PieceKind.ROOK or rook.color is not color:
            return False
        if rook.has_moved:
            return False
        if not self.is_path_clear(from_pos, rook_pos):
            return False
        enemy = color.opposite
        for col in (from_pos.col, from_pos.col + direction, to_pos.col):
            if self.is_square_under_attack(Position(from_pos.row, col), enemy):
                return False
        return True

    # --- Attack detection ---
    def is_square_under_attack(self, square: Position, by_color: Color) -> bool:
        """Return True if any piece of ``by_color`` attacks ``square``.

        Attack patterns ignore pins and self-check. Pawns attack only their
        forward diagonals and kings only adjacent squares, so castling never
        counts as an attack.
        """
        if not square.is_valid:
            return False
        behind = -by_color.forward
        for dcol in (-1, 1):
            p = self.piece_at(square.offset(behind, dcol))
            if p is not None and p.color is by_color and p.kind is PieceKind.PAWN:
                return True
        for steps, kind in ((KNIGHT_STEPS, PieceKind.KNIGHT), (KING_STEPS, PieceKind.KING)):
            for drow, dcol in steps:
                p = self.piece_at(square.offset(drow, dcol))
                if p is not None and p.color is by_color and p.kind is kind:
                    return True
        for rays, slider in ((ORTHOGONALS, PieceKind.ROOK), (DIAGONALS, PieceKind.BISHOP)):
            for drow, dcol in rays:
                current = square.offset(drow, dcol)
                while current.is_valid:
                    p = self.piece_at(current)
                    if p is not None:
                        if p.color is by_color and p.kind in (slider, PieceKind.QUEEN):
                            return True
                        break
                    current = current.offset(drow, dcol)
        return False

    def is_in_check(self, color: Color) -> bool:
        king_pos = self.find_king(color)
        if king_pos is None:
            return False
        return self.is_square_under_attack(king_pos, color.opposite)

    # --- Move enumeration ---
    def _candidates(self, piece: Piece, from_pos: Position) -> Iterator[Position]:
        """Superset of the squares a piece's pattern can reach."""
        kind = piece.kind
        if kind is PieceKind.PAWN:
            d = piece.color.forward
            yield from (from_pos.offset(d, 0), from_pos.offset(2 * d, 0))
            yield from (from_pos.offset(d, -1), from_pos.offset(d, 1))
        elif kind is PieceKind.KNIGHT:
            for drow, dcol in KNIGHT_STEPS:
                yield from_pos.offset(drow, dcol)
        elif kind is PieceKind.KING:
            for drow, dcol in KING_STEPS:
                yield from_pos.offset(drow, dcol)
            yield from (from_pos.offset(0, 2), from_pos.offset(0, -2))
        else:
            rays: Tuple[Tuple[int, int], ...] = ()
            if kind in (PieceKind.ROOK, PieceKind.QUEEN):
                rays += ORTHOGONALS
            if kind in (PieceKind.BISHOP, PieceKind.QUEEN):
                rays += DIAGONALS
            for drow, dcol in rays:
                current = from_pos.offset(drow, dcol)
                while current.is_valid:
                    yield current
                    if self.piece_at(current) is not None:
                        break
                    current = current.offset(drow, dcol)

    def _destinations(self, piece: Piece, from_pos: Position) -> List[Position]:
        return sorted(
            to_pos
            for to_pos in self._candidates(piece, from_pos)
            if to_pos.is_valid and self._is_legal(piece, from_pos, to_pos)
        )

    def get_possible_moves(self, from_pos: Position) -> List[Position]:
        """Return every destination ``is_valid_move`` accepts from a square.

        Args:
            from_pos (Position): Origin square.

        Returns:
            List[Position]: Destinations in board scan order (ascending row,
                then column). Empty when the square is empty or holds a piece
                of the side not to move.
        """
        piece = self.piece_at(from_pos)
        if piece is None or piece.color is not self.current_turn:
            return []
        return self._destinations(piece, from_pos)

    def legal_moves(self, color: Optional[Color] = None) -> List[MovePair]:
        """All legal ``(from, to)`` pairs for ``color`` (default: side to move).

        Moves for the side not to move are generated as if it were its turn,
        except that en passant is only ever available to the side to move.
        """
        color = color or self.current_turn
        return [
            (from_pos, to_pos)
            for from_pos, piece in self.pieces(color)
            for to_pos in self._destinations(piece, from_pos)
        ]

    def has_legal_moves(self, color: Optional[Color] = None) -> bool:
        color = color or self.current_turn
        for from_pos, piece in self.pieces(color):
            for to_pos in self._candidates(piece, from_pos):
                if to_pos.is_valid and self._is_legal(piece, from_pos, to_pos):
                    return True
        return False

    def is_checkmate(self, color: Color) -> bool:
        return self.is_in_check(color) and not self.has_legal_moves(color)

    def is_stalemate(self, color: Color) -> bool:
        return not self.is_in_check(color) and not self.has_legal_moves(color)

    def get_threatened_pieces(self, color: Color) -> Set[Position]:
        """Squares holding pieces of ``color`` attacked by the other side."""
        enemy = color.opposite
        return {pos for pos, _ in self.pieces(color) if self.is_square_under_attack(pos, enemy)}

    # --- Mutation ---
    def make_move(self, from_pos: Position, to_pos: Position) -> Optional[Move]:
        """Apply a move for the side to move.

        Handles en passant (removes the pawn behind ``to_pos``), castling
        (relocates the rook and marks it moved) and promotion (always to a
        queen), updates the en-passant target, records the Move and flips the
        turn.

        Args:
            from_pos (Position): Origin square.
            to_pos (Position): Destination square.

        Returns:
            Optional[Move]: The recorded move, or ``None`` if the move is not
                valid, in which case the board is unchanged.
        """
        if not self.is_valid_move(from_pos, to_pos):
            return None
        piece = self.piece_at(from_pos)
        if piece is None:
            return None

        prior: Dict[Position, Square] = {}

        def write(pos: Position, value: Square) -> None:
            if pos not in prior:
                prior[pos] = self.piece_at(pos)
            self.set_piece(value, pos)

        captured = self.piece_at(to_pos)
        victim_pos = self._en_passant_victim(piece, from_pos, to_pos)
        is_en_passant = victim_pos is not None
        if victim_pos is not None:
            captured = self.piece_at(victim_pos)
            write(victim_pos, None)

        is_castling = piece.kind is PieceKind.KING and abs(to_pos.col - from_pos.col) == 2
        if is_castling:
            direction = 1 if to_pos.col > from_pos.col else -1
            rook_from = Position(from_pos.row, 7 if direction == 1 else 0)
            rook_to = Position(from_pos.row, from_pos.col + direction)
            rook = self.piece_at(rook_from)
            if rook is not None:
                write(rook_to, rook.moved())
                write(rook_from, None)

        is_promotion = piece.kind is PieceKind.PAWN and to_pos.row == piece.color.promotion_row
        moved = piece.promoted() if is_promotion else piece.moved()

        snapshot_ep = self.en_passant_target
        if piece.kind is PieceKind.PAWN and abs(to_pos.row - from_pos.row) == 2:
            self.en_passant_target = from_pos.offset(piece.color.forward, 0)
        else:
            self.en_passant_target = None

        write(to_pos, moved)
        write(from_pos, None)

        move = Move(
            from_pos=from_pos,
            to_pos=to_pos,
            piece=moved,
            captured_piece=captured,
            is_en_passant=is_en_passant,
            is_castling=is_castling,
            is_promotion=is_promotion,
            promotion_kind=PieceKind.QUEEN if is_promotion else None,
        )
        self._undo_stack.append(
            _Snapshot(
                squares=tuple(prior.items()),
                en_passant_target=snapshot_ep,
                fullmove_number=self.fullmove_number,
            )
        )
        self.move_history.append(move)
        if self.current_turn is Color.BLACK:
            self.fullmove_number += 1
        self.current_turn = self.current_turn.opposite
        return move

    def undo_last_move(self) -> bool:
        """Revert the most recent move.

        Returns:
            bool: False if there is no move to undo (board unchanged).
        """
        if not self.move_history or not self._undo_stack:
            return False
        self.move_history.pop()
        snapshot = self._undo_stack.pop()
        for pos, piece in snapshot.squares:
            self.set_piece(piece, pos)
        self.en_passant_target = snapshot.en_passant_target
        self.fullmove_number = snapshot.fullmove_number
        self.current_turn = self.current_turn.opposite
        return True


# --- Movement patterns (pre-simulation filters) ---
def _pawn_rule(board: Board, piece: Piece, from_pos: Position, to_pos: Position) -> bool:
    d = piece.color.forward
    drow = to_pos.row - from_pos.row
    dcol = abs(to_pos.col - from_pos.col)
    target = board.piece_at(to_pos)
    if dcol == 0:
        if drow == d:
            return target is None
        if drow == 2 * d and from_pos.row == piece.color.pawn_row:
            return target is None and board.piece_at(from_pos.offset(d, 0)) is None
        return False
    if dcol == 1 and drow == d:
        if target is not None:
            return target.color is not piece.color
        return board._en_passant_victim(piece, from_pos, to_pos) is not None
    return False


def _rook_rule(board: Board, piece: Piece, from_pos: Position, to_pos: Position) -> bool:
    if from_pos == to_pos or (from_pos.row != to_pos.row and from_pos.col != to_pos.col):
        return False
    return board.is_path_clear(from_pos, to_pos)


def _knight_rule(board: Board, piece: Piece, from_pos: Position, to_pos: Position) -> bool:
    drow = abs(to_pos.row - from_pos.row)
    dcol = abs(to_pos.col - from_pos.col)
    return (drow, dcol) in ((1, 2), (2, 1))


def _bishop_rule(board: Board, piece: Piece, from_pos: Position, to_pos: Position) -> bool:
    drow = abs(to_pos.row - from_pos.row)
    if drow == 0 or drow != abs(to_pos.col - from_pos.col):
        return False
    return board.is_path_clear(from_pos, to_pos)


def _queen_rule(board: Board, piece: Piece, from_pos: Position, to_pos: Position) -> bool:
    return _rook_rule(board, piece, from_pos, to_pos) or _bishop_rule(
        board, piece, from_pos, to_pos
    )


def _king_rule(board: Board, piece: Piece, from_pos: Position, to_pos: Position) -> bool:
    drow = abs(to_pos.row - from_pos.row)
    dcol = abs(to_pos.col - from_pos.col)
    if drow <= 1 and dcol <= 1:
        return drow + dcol > 0
    if not piece.has_moved and drow == 0 and dcol == 2:
        return board.can_castle(from_pos, to_pos, piece.color)
    return False


MoveRule = Callable[[Board, Piece, Position, Position], bool]

MOVE_RULES: Dict[PieceKind, MoveRule] = {
    PieceKind.PAWN: _pawn_rule,
    PieceKind.KNIGHT: _knight_rule,
    PieceKind.BISHOP: _bishop_rule,
    PieceKind.ROOK: _rook_rule,
    PieceKind.QUEEN: _queen_rule,
    PieceKind.KING: _king_rule,
}
