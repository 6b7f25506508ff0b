from __future__ import annotations

from .board import Board


def perft(board: Board, depth: int) -> int:
    """Compute perft node count for `board` at `depth`.

    Definition:
    - depth == 0 returns 1 (the current node).
    - depth > 0 returns the sum over all legal child positions' perft(depth-1).

    Moves are counted as ``(from, to)`` pairs, so a promotion counts once.
    The board is walked with make/undo and is restored on return.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1

    moves = board.legal_moves()
    if depth == 1:
        return len(moves)
    nodes = 0
    for from_pos, to_pos in moves:
        board.make_move(from_pos, to_pos)
        try:
            nodes += perft(board, depth - 1)
        finally:
            board.undo_last_move()
    return nodes
