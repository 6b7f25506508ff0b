from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set

from .board import Board, MovePair
from .fen import board_to_fen, parse_fen
from .move import Move, Position
from .notation import history_notation
from .pieces import Color
from ..search.service import Difficulty, SearchService


logger = logging.getLogger(__name__)


class GameState(str, Enum):
    IN_PROGRESS = "in_progress"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"


@dataclass(frozen=True)
class GameStatus:
    state: GameState
    winner: Optional[Color] = None

    @property
    def is_terminal(self) -> bool:
        return self.state is not GameState.IN_PROGRESS


IN_PROGRESS = GameStatus(GameState.IN_PROGRESS)
STALEMATE = GameStatus(GameState.STALEMATE)


# --- Functional interface over a Board ---
def new_board() -> Board:
    return Board.startpos()


def legal_destinations(board: Board, from_pos: Position) -> List[Position]:
    return board.get_possible_moves(from_pos)


def apply_move(board: Board, from_pos: Position, to_pos: Position) -> Optional[Move]:
    return board.make_move(from_pos, to_pos)


def undo(board: Board) -> bool:
    return board.undo_last_move()


def status(board: Board) -> GameStatus:
    """Terminal status of the side to move.

    Returns:
        GameStatus: ``CHECKMATE`` with the other side as winner, ``STALEMATE``,
            or ``IN_PROGRESS``.
    """
    mover = board.current_turn
    if board.has_legal_moves(mover):
        return IN_PROGRESS
    if board.is_in_check(mover):
        return GameStatus(GameState.CHECKMATE, winner=mover.opposite)
    return STALEMATE


class GameMode(str, Enum):
    PLAYER_VS_PLAYER = "pvp"
    PLAYER_VS_AI = "pvai"


@dataclass
class Game:
    """Game wrapper around a board with helper operations.

    Responsibility: track board state, expose legal moves, apply moves, and
    stop accepting moves once the game has reached a terminal state.

    In ``PLAYER_VS_AI`` mode the human plays ``player_color`` and the computer
    answers every human move at ``difficulty``. Undo then takes back the
    computer's reply together with the human move before it.
    """

    board: Board = field(default_factory=Board.startpos)
    mode: GameMode = GameMode.PLAYER_VS_PLAYER
    player_color: Color = Color.WHITE
    difficulty: Difficulty = Difficulty.MEDIUM

    @classmethod
    def new(
        cls,
        mode: GameMode = GameMode.PLAYER_VS_PLAYER,
        player_color: Color = Color.WHITE,
        difficulty: Difficulty = Difficulty.MEDIUM,
    ) -> "Game":
        return cls(Board.startpos(), mode, player_color, difficulty)

    @classmethod
    def from_fen(
        cls,
        fen: str,
        mode: GameMode = GameMode.PLAYER_VS_PLAYER,
        player_color: Color = Color.WHITE,
        difficulty: Difficulty = Difficulty.MEDIUM,
    ) -> "Game":
        return cls(parse_fen(fen), mode, player_color, difficulty)

    def with_fen(self, fen: str) -> "Game":
        """New game at ``fen`` that keeps this game's mode and settings."""
        return Game.from_fen(fen, self.mode, self.player_color, self.difficulty)

    def to_fen(self) -> str:
        return board_to_fen(self.board)

    @property
    def turn(self) -> Color:
        return self.board.current_turn

    @property
    def vs_ai(self) -> bool:
        return self.mode is GameMode.PLAYER_VS_AI

    def ai_to_move(self) -> bool:
        """True when the computer owes a move in a game still in progress."""
        return (
            self.vs_ai
            and self.turn is not self.player_color
            and not self.status().is_terminal
        )

    def legal_destinations(self, from_pos: Position) -> List[Position]:
        return self.board.get_possible_moves(from_pos)

    def legal_moves(self) -> List[MovePair]:
        return self.board.legal_moves()

    def apply_move(self, from_pos: Position, to_pos: Position) -> Optional[Move]:
        if self.status().is_terminal:
            logger.debug("move rejected: game over", extra={"from": str(from_pos)})
            return None
        move = self.board.make_move(from_pos, to_pos)
        if move is None:
            logger.debug(
                "move rejected: illegal",
                extra={"from": str(from_pos), "to": str(to_pos)},
            )
        return move

    def play_ai_move(self, service: Optional[SearchService] = None) -> Optional[Move]:
        """Let the computer move if it is its turn.

        The search runs on a copy of the board.

        Returns:
            Optional[Move]: The computer's move, or ``None`` when the computer
                is not to move.
        """
        if not self.ai_to_move():
            return None
        service = service if service is not None else SearchService()
        result = service.choose(self.board.copy(), self.difficulty)
        if result.best_move is None:
            return None
        return self.apply_move(*result.best_move)

    def move_and_reply(
        self,
        from_pos: Position,
        to_pos: Position,
        service: Optional[SearchService] = None,
    ) -> Optional[Move]:
        """Apply a human move and, against the computer, its reply.

        Returns:
            Optional[Move]: The human move, or ``None`` if it was rejected. A
                move is rejected while the computer is to move.
        """
        if self.ai_to_move():
            logger.debug("move rejected: computer to move", extra={"from": str(from_pos)})
            return None
        move = self.apply_move(from_pos, to_pos)
        if move is not None:
            self.play_ai_move(service)
        return move

    def can_undo(self) -> bool:
        plies = len(self.board.move_history)
        return plies >= 2 if self.vs_ai else plies >= 1

    def undo_move(self) -> bool:
        """Take back the last move, or the last move pair against the computer.

        Against the computer the board is rewound to the human's turn, which
        takes back two plies unless the human's move ended the game.
        """
        if not self.can_undo():
            logger.debug("undo rejected: not enough history")
            return False
        self.board.undo_last_move()
        if self.vs_ai and self.turn is not self.player_color:
            self.board.undo_last_move()
        return True

    # --- State flags for protocol ---
    def status(self) -> GameStatus:
        return status(self.board)

    def in_check(self) -> bool:
        return self.board.is_in_check(self.board.current_turn)

    def checkmate(self) -> bool:
        return self.board.is_checkmate(self.board.current_turn)

    def stalemate(self) -> bool:
        return self.board.is_stalemate(self.board.current_turn)

    def threatened(self) -> Set[Position]:
        return self.board.get_threatened_pieces(self.board.current_turn)

    def last_move(self) -> Optional[Move]:
        return self.board.move_history[-1] if self.board.move_history else None

    def move_history_uci(self) -> List[str]:
        return [m.to_uci() for m in self.board.move_history]

    def move_history_san(self) -> List[str]:
        return history_notation(self.board)
