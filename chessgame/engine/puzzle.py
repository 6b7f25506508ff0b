from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .board import Board
from .fen import board_to_fen, parse_fen
from .move import Move, Position, parse_uci
from .pieces import Color


logger = logging.getLogger(__name__)


class PuzzleDifficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class PuzzleTheme(str, Enum):
    MATE = "mate"
    FORK = "fork"
    PIN = "pin"
    SKEWER = "skewer"
    DISCOVERY = "discovery"
    SACRIFICE = "sacrifice"
    ENDGAME = "endgame"
    TACTICAL = "tactical"


class PuzzleResult(str, Enum):
    WRONG = "wrong"
    CORRECT = "correct"
    SOLVED = "solved"


@dataclass(frozen=True)
class PuzzleMove:
    from_pos: Position
    to_pos: Position

    @classmethod
    def from_uci(cls, uci: str) -> "PuzzleMove":
        from_pos, to_pos = parse_uci(uci)
        return cls(from_pos, to_pos)

    def matches(self, from_pos: Position, to_pos: Position) -> bool:
        return self.from_pos == from_pos and self.to_pos == to_pos

    def to_uci(self) -> str:
        return self.from_pos.algebraic + self.to_pos.algebraic


@dataclass(frozen=True)
class Puzzle:
    """A position plus the scripted line that solves it.

    ``solution`` alternates between the solver's moves (even indices) and the
    opponent's scripted replies (odd indices), starting with the side to move
    in ``fen``.
    """

    title: str
    fen: str
    solution: Tuple[PuzzleMove, ...]
    difficulty: PuzzleDifficulty
    theme: PuzzleTheme
    description: str = ""

    @classmethod
    def from_uci(
        cls,
        title: str,
        fen: str,
        line: List[str],
        difficulty: PuzzleDifficulty,
        theme: PuzzleTheme,
        description: str = "",
    ) -> "Puzzle":
        return cls(
            title=title,
            fen=fen,
            solution=tuple(PuzzleMove.from_uci(u) for u in line),
            difficulty=difficulty,
            theme=theme,
            description=description,
        )

    @property
    def side_to_move(self) -> Color:
        return parse_fen(self.fen).current_turn

    def validate(self) -> None:
        """Replay the whole line on a fresh board.

        Raises:
            ValueError: If the FEN is invalid, the line is empty, or a move in
                the line is not legal at the point it is played.
        """
        if not self.solution:
            raise ValueError(f"puzzle {self.title!r} has an empty solution")
        board = parse_fen(self.fen)
        for i, step in enumerate(self.solution):
            if board.make_move(step.from_pos, step.to_pos) is None:
                raise ValueError(
                    f"puzzle {self.title!r}: move {i + 1} ({step.to_uci()}) is illegal"
                )


@dataclass
class PuzzleSession:
    """Play through a ``Puzzle`` one solver move at a time.

    A correct move is played and the opponent's scripted reply follows
    immediately. A wrong move leaves the board untouched.
    """

    puzzle: Puzzle
    board: Board = field(init=False)
    move_index: int = field(init=False, default=0)
    attempts: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        self.puzzle.validate()
        self.reset()

    def reset(self) -> None:
        self.board = parse_fen(self.puzzle.fen)
        self.move_index = 0
        self.attempts = 0

    @property
    def is_solved(self) -> bool:
        return self.move_index >= len(self.puzzle.solution)

    def board_fen(self) -> str:
        return board_to_fen(self.board)

    def hint(self) -> Optional[PuzzleMove]:
        if self.is_solved:
            return None
        return self.puzzle.solution[self.move_index]

    def check_move(self, from_pos: Position, to_pos: Position) -> PuzzleResult:
        """Compare a solver move with the next step of the line.

        Returns:
            PuzzleResult: ``WRONG`` if the move is not the expected one,
                ``SOLVED`` once the line is exhausted, ``CORRECT`` otherwise.
                A solved puzzle keeps answering ``SOLVED`` without moving.
        """
        if self.is_solved:
            return PuzzleResult.SOLVED
        self.attempts += 1
        expected = self.puzzle.solution[self.move_index]
        if not expected.matches(from_pos, to_pos):
            logger.debug(
                "puzzle move rejected",
                extra={"puzzle": self.puzzle.title, "move": f"{from_pos}{to_pos}"},
            )
            return PuzzleResult.WRONG
        self._play(expected)
        if not self.is_solved:
            self._play(self.puzzle.solution[self.move_index])
        if self.is_solved:
            logger.info(
                "puzzle solved",
                extra={"puzzle": self.puzzle.title, "attempts": self.attempts},
            )
            return PuzzleResult.SOLVED
        return PuzzleResult.CORRECT

    def _play(self, step: PuzzleMove) -> Move:
        move = self.board.make_move(step.from_pos, step.to_pos)
        if move is None:
            # validate() replayed this exact line at construction
            raise RuntimeError(f"scripted move {step.to_uci()} rejected by the board")
        self.move_index += 1
        return move


SAMPLE_PUZZLES: Tuple[Puzzle, ...] = (
    Puzzle.from_uci(
        "Back Rank Mate",
        "6k1/5ppp/8/8/8/8/5PPP/4R1K1 w - - 0 1",
        ["e1e8"],
        PuzzleDifficulty.BEGINNER,
        PuzzleTheme.MATE,
        "Deliver checkmate on the back rank.",
    ),
    Puzzle.from_uci(
        "Knight Fork",
        "r1bqkb1r/pppp1ppp/2n2n2/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R w KQkq - 0 1",
        ["f3g5", "d8e7", "g5f7"],
        PuzzleDifficulty.BEGINNER,
        PuzzleTheme.FORK,
        "Use your knight to fork the queen and rook.",
    ),
    Puzzle.from_uci(
        "Simple Pin",
        "r1bqkb1r/pppp1ppp/2n5/4p3/2B1n3/5N2/PPPP1PPP/RNBQK2R w KQkq - 0 1",
        ["d1e2"],
        PuzzleDifficulty.BEGINNER,
        PuzzleTheme.PIN,
        "Pin the knight to the king.",
    ),
    Puzzle.from_uci(
        "Skewer Attack",
        "2r2rk1/5ppp/8/3Q4/8/8/5PPP/4R1K1 w - - 0 1",
        ["d5a8", "c8a8", "e1e8"],
        PuzzleDifficulty.INTERMEDIATE,
        PuzzleTheme.SKEWER,
        "Use a skewer to win material.",
    ),
    Puzzle.from_uci(
        "Smothered Mate",
        "6rk/6pp/7N/8/8/8/5PPP/6K1 w - - 0 1",
        ["h6f7"],
        PuzzleDifficulty.ADVANCED,
        PuzzleTheme.MATE,
        "Deliver a smothered checkmate.",
    ),
    Puzzle.from_uci(
        "Discovered Check",
        "r1bqk2r/pppp1ppp/2n2n2/2b1p3/2B1P3/2N2N2/PPPP1PPP/R1BQK2R w KQkq - 0 1",
        ["f3d4", "e8f8", "d4c6"],
        PuzzleDifficulty.ADVANCED,
        PuzzleTheme.DISCOVERY,
        "Use the knight jump to win material.",
    ),
    Puzzle.from_uci(
        "King and Pawn Endgame",
        "8/8/8/4k3/4P3/4K3/8/8 w - - 0 1",
        ["e3e2", "e5e6", "e2e3", "e6e5", "e3f3"],
        PuzzleDifficulty.EXPERT,
        PuzzleTheme.ENDGAME,
        "Win the opposition in the king and pawn endgame.",
    ),
)
