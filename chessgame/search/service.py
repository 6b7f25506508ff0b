from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Final, List, Optional, Tuple

from chessgame.engine.board import Board, MovePair
from chessgame.engine.move import format_uci
from chessgame.eval import evaluate


logger = logging.getLogger(__name__)

INF: Final = 10_000_000
# Dominates any material swing on the centipawn scale; independent of depth.
MATE_SCORE: Final = 1_000_000


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def search_depth(self) -> int:
        return {Difficulty.EASY: 1, Difficulty.MEDIUM: 2, Difficulty.HARD: 3}[self]

    @property
    def uses_minimax(self) -> bool:
        return self is not Difficulty.EASY

    @classmethod
    def parse(cls, value: str) -> "Difficulty":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"unknown difficulty: {value!r}") from None


@dataclass
class SearchResult:
    best_move: Optional[MovePair]
    score: Optional[int]
    nodes: int
    depth: int
    time_ms: int
    root_scores: List[Tuple[MovePair, int]] = field(default_factory=list)


class SearchService:
    """Move selection for the computer opponent.

    Easy picks a uniformly random legal move; medium and hard run a fixed-depth
    minimax with alpha-beta pruning over ``evaluate``. Every simulated move is
    played on a private copy, so the caller's board is never mutated.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def choose(self, board: Board, difficulty: Difficulty) -> SearchResult:
        if not difficulty.uses_minimax:
            result = self.random_move(board)
        else:
            result = self.search(board, depth=difficulty.search_depth)
        logger.info(
            "move chosen",
            extra={
                "difficulty": difficulty.value,
                "move": _pair_uci(result.best_move),
                "nodes": result.nodes,
            },
        )
        return result

    def random_move(self, board: Board) -> SearchResult:
        start = time.perf_counter()
        moves = board.legal_moves()
        choice = self.rng.choice(moves) if moves else None
        return SearchResult(
            best_move=choice,
            score=None,
            nodes=len(moves),
            depth=0,
            time_ms=int((time.perf_counter() - start) * 1000),
        )

    def search(self, board: Board, depth: int = 2, *, prune: bool = True) -> SearchResult:
        """Fixed-depth minimax from the side to move.

        Args:
            board (Board): Position to search; left untouched.
            depth (int): Plies to look ahead, at least 1.
            prune (bool): Apply alpha-beta cutoffs. Disabling it visits the
                full tree and yields the same move and score.

        Returns:
            SearchResult: First strictly best root move (board scan order)
                with its score on the mover's scale, or ``best_move=None``
                when the side to move has no legal move.

        Raises:
            ValueError: If ``depth`` is less than 1.
        """
        if depth < 1:
            raise ValueError("depth must be >= 1")
        start = time.perf_counter()
        nodes = 0

        # Scores are on the root mover's scale: maximizing nodes are the
        # root mover's turns, so leaf evaluations of the opponent's turns
        # are negated.
        def minimax(node: Board, d: int, alpha: int, beta: int, maximizing: bool) -> int:
            nonlocal nodes
            nodes += 1
            if d == 0:
                score = evaluate(node)
                return score if maximizing else -score

            mover = node.current_turn
            if not node.has_legal_moves(mover):
                if node.is_in_check(mover):
                    return -MATE_SCORE if maximizing else MATE_SCORE
                return 0

            if maximizing:
                best = -INF
                for from_pos, to_pos in node.legal_moves(mover):
                    child = node.copy()
                    child.make_move(from_pos, to_pos)
                    score = minimax(child, d - 1, alpha, beta, False)
                    best = max(best, score)
                    alpha = max(alpha, score)
                    if prune and alpha >= beta:
                        break  # beta cutoff
                return best

            best = INF
            for from_pos, to_pos in node.legal_moves(mover):
                child = node.copy()
                child.make_move(from_pos, to_pos)
                score = minimax(child, d - 1, alpha, beta, True)
                best = min(best, score)
                beta = min(beta, score)
                if prune and beta <= alpha:
                    break  # alpha cutoff
            return best

        best_move: Optional[MovePair] = None
        best_score: Optional[int] = None
        root_scores: List[Tuple[MovePair, int]] = []
        for move in board.legal_moves():
            child = board.copy()
            child.make_move(*move)
            score = minimax(child, depth - 1, -INF, INF, False)
            root_scores.append((move, score))
            logger.debug("root move", extra={"move": _pair_uci(move), "score": score})
            if best_score is None or score > best_score:
                best_score = score
                best_move = move

        result = SearchResult(
            best_move=best_move,
            score=best_score,
            nodes=nodes,
            depth=depth,
            time_ms=int((time.perf_counter() - start) * 1000),
            root_scores=root_scores,
        )
        logger.info(
            "search",
            extra={
                "depth": depth,
                "nodes": result.nodes,
                "score": result.score,
                "time_ms": result.time_ms,
            },
        )
        return result


def _pair_uci(move: Optional[MovePair]) -> Optional[str]:
    return format_uci(*move) if move is not None else None


def best_move(
    board: Board, difficulty: Difficulty, rng: Optional[random.Random] = None
) -> Optional[MovePair]:
    """Pick a move for the side to move, or ``None`` if it has none."""
    return SearchService(rng).choose(board, difficulty).best_move
