from __future__ import annotations

import logging
import random
import threading
from typing import Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .error import (
    exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from .session import GameSessionStore, PuzzleSessionStore
from ...engine.board import Board, MovePair
from ...engine.game import Game, GameMode
from ...engine.move import Position, format_uci
from ...engine.pieces import Color
from ...engine.puzzle import SAMPLE_PUZZLES, PuzzleResult, PuzzleSession
from ...search.service import Difficulty, SearchResult, SearchService


logger = logging.getLogger(__name__)

# (game object id, fen, plies); a search result is only applied if unchanged
PositionKey = Tuple[int, str, int]


class CreateGameRequest(BaseModel):
    mode: GameMode = Field(default=GameMode.PLAYER_VS_PLAYER)
    player_color: Color = Field(default=Color.WHITE)
    difficulty: Difficulty = Field(default=Difficulty.MEDIUM)


class CreateGameResponse(BaseModel):
    game_id: str
    fen: str
    mode: GameMode
    player_color: Color
    difficulty: Difficulty


class SetPositionRequest(BaseModel):
    fen: str = Field(..., description="FEN string")


class MoveRequest(BaseModel):
    from_square: str = Field(..., alias="from", min_length=2, max_length=2)
    to_square: str = Field(..., alias="to", min_length=2, max_length=2)


class SearchRequest(BaseModel):
    difficulty: Difficulty = Field(default=Difficulty.MEDIUM)
    seed: Optional[int] = Field(default=None, description="Seed for the easy policy")
    apply: bool = Field(default=False, description="Play the chosen move")


class DestinationsResponse(BaseModel):
    square: str
    destinations: List[str]


class SearchResponse(BaseModel):
    best_move: Optional[str]
    score: Optional[int]
    nodes: int
    depth: int
    time_ms: int
    difficulty: Difficulty
    applied: bool


class GameStateResponse(BaseModel):
    game_id: str
    fen: str
    turn: str
    status: str
    winner: Optional[str]
    in_check: bool
    last_move: Optional[str]
    move_history: List[str]
    threatened: List[str]
    mode: GameMode
    player_color: Color
    can_undo: bool


class PuzzleInfo(BaseModel):
    index: int
    title: str
    fen: str
    side_to_move: Color
    difficulty: str
    theme: str
    description: str
    moves: int


class PuzzleStateResponse(BaseModel):
    session_id: str
    title: str
    fen: str
    move_index: int
    attempts: int
    solved: bool


class PuzzleMoveResponse(BaseModel):
    result: PuzzleResult
    state: PuzzleStateResponse


class PuzzleHintResponse(BaseModel):
    move: Optional[str]


def create_app() -> FastAPI:
    app = FastAPI(title="Chess Game API", version="0.1.0")

    logging.basicConfig(level=logging.INFO)

    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, exception_handler)

    store = GameSessionStore()
    puzzles = PuzzleSessionStore()

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game(req: Optional[CreateGameRequest] = None) -> CreateGameResponse:
        req = req if req is not None else CreateGameRequest()
        game_id = store.create(Game.new(req.mode, req.player_color, req.difficulty))
        logger.info(
            "game created",
            extra={"game_id": game_id, "mode": req.mode.value, "player": req.player_color.value},
        )
        await run_in_threadpool(_ai_reply, store, game_id)
        with _game_lock(store, game_id):
            game = _require_game(store, game_id)
            return CreateGameResponse(
                game_id=game_id,
                fen=game.to_fen(),
                mode=game.mode,
                player_color=game.player_color,
                difficulty=game.difficulty,
            )

    @app.delete("/api/games/{game_id}")
    async def delete_game(game_id: str) -> Dict[str, str]:
        if not store.delete(game_id):
            raise HTTPException(status_code=404, detail="game not found")
        return {"status": "deleted"}

    @app.get("/api/games/{game_id}/state", response_model=GameStateResponse)
    async def get_state(game_id: str) -> GameStateResponse:
        return _locked_state(store, game_id)

    @app.post("/api/games/{game_id}/position", response_model=GameStateResponse)
    async def set_position(game_id: str, req: SetPositionRequest) -> GameStateResponse:
        with _game_lock(store, game_id):
            current = _require_game(store, game_id)
            try:
                game = current.with_fen(req.fen)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=f"invalid FEN: {e}")
            store.replace(game_id, game)
        logger.info("position set", extra={"game_id": game_id, "fen": req.fen})
        await run_in_threadpool(_ai_reply, store, game_id)
        return _locked_state(store, game_id)

    @app.get("/api/games/{game_id}/moves/{square}", response_model=DestinationsResponse)
    async def destinations(game_id: str, square: str) -> DestinationsResponse:
        pos = _parse_square(square)
        with _game_lock(store, game_id):
            game = _require_game(store, game_id)
            return DestinationsResponse(
                square=pos.algebraic,
                destinations=[p.algebraic for p in game.legal_destinations(pos)],
            )

    @app.post("/api/games/{game_id}/move", response_model=GameStateResponse)
    async def make_move(game_id: str, req: MoveRequest) -> GameStateResponse:
        from_pos = _parse_square(req.from_square)
        to_pos = _parse_square(req.to_square)
        with _game_lock(store, game_id):
            game = _require_game(store, game_id)
            if game.status().is_terminal:
                raise HTTPException(status_code=409, detail="game is over")
            if game.ai_to_move():
                raise HTTPException(status_code=409, detail="computer is to move")
            if game.apply_move(from_pos, to_pos) is None:
                raise HTTPException(status_code=400, detail="illegal move")
        await run_in_threadpool(_ai_reply, store, game_id)
        return _locked_state(store, game_id)

    @app.post("/api/games/{game_id}/undo", response_model=GameStateResponse)
    async def undo(game_id: str) -> GameStateResponse:
        with _game_lock(store, game_id):
            game = _require_game(store, game_id)
            if not game.undo_move():
                raise HTTPException(status_code=400, detail="nothing to undo")
            return _state(game_id, game)

    @app.post("/api/games/{game_id}/search", response_model=SearchResponse)
    async def search(game_id: str, req: SearchRequest) -> SearchResponse:
        with _game_lock(store, game_id):
            game = _require_game(store, game_id)
            board = game.board.copy()
            key = _position_key(game)
        rng = random.Random(req.seed) if req.seed is not None else None
        res: SearchResult = await run_in_threadpool(
            SearchService(rng).choose, board, req.difficulty
        )
        applied = False
        if req.apply and res.best_move is not None:
            applied = _apply_if_unchanged(store, game_id, key, res.best_move)
            if applied:
                await run_in_threadpool(_ai_reply, store, game_id)
        return SearchResponse(
            best_move=format_uci(*res.best_move) if res.best_move else None,
            score=res.score,
            nodes=res.nodes,
            depth=res.depth,
            time_ms=res.time_ms,
            difficulty=req.difficulty,
            applied=applied,
        )

    @app.get("/api/puzzles", response_model=List[PuzzleInfo])
    async def list_puzzles() -> List[PuzzleInfo]:
        return [
            PuzzleInfo(
                index=i,
                title=p.title,
                fen=p.fen,
                side_to_move=p.side_to_move,
                difficulty=p.difficulty.value,
                theme=p.theme.value,
                description=p.description,
                moves=len(p.solution),
            )
            for i, p in enumerate(SAMPLE_PUZZLES)
        ]

    @app.post("/api/puzzles/{index}/sessions", response_model=PuzzleStateResponse)
    async def start_puzzle(index: int) -> PuzzleStateResponse:
        if not 0 <= index < len(SAMPLE_PUZZLES):
            raise HTTPException(status_code=404, detail="puzzle not found")
        session = PuzzleSession(SAMPLE_PUZZLES[index])
        session_id = puzzles.create(session)
        logger.info("puzzle started", extra={"session_id": session_id, "puzzle": index})
        return _puzzle_state(session_id, session)

    @app.get("/api/puzzle-sessions/{session_id}", response_model=PuzzleStateResponse)
    async def puzzle_state(session_id: str) -> PuzzleStateResponse:
        return _puzzle_state(session_id, _require_puzzle(puzzles, session_id))

    @app.post("/api/puzzle-sessions/{session_id}/move", response_model=PuzzleMoveResponse)
    async def puzzle_move(session_id: str, req: MoveRequest) -> PuzzleMoveResponse:
        session = _require_puzzle(puzzles, session_id)
        result = session.check_move(
            _parse_square(req.from_square), _parse_square(req.to_square)
        )
        return PuzzleMoveResponse(result=result, state=_puzzle_state(session_id, session))

    @app.get("/api/puzzle-sessions/{session_id}/hint", response_model=PuzzleHintResponse)
    async def puzzle_hint(session_id: str) -> PuzzleHintResponse:
        hint = _require_puzzle(puzzles, session_id).hint()
        return PuzzleHintResponse(move=hint.to_uci() if hint is not None else None)

    @app.post("/api/puzzle-sessions/{session_id}/reset", response_model=PuzzleStateResponse)
    async def puzzle_reset(session_id: str) -> PuzzleStateResponse:
        session = _require_puzzle(puzzles, session_id)
        session.reset()
        return _puzzle_state(session_id, session)

    return app


def _require_game(store: GameSessionStore, game_id: str) -> Game:
    game = store.get(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="game not found")
    return game


def _game_lock(store: GameSessionStore, game_id: str) -> threading.RLock:
    try:
        return store.lock(game_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="game not found") from None


def _require_puzzle(store: PuzzleSessionStore, session_id: str) -> PuzzleSession:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="puzzle session not found")
    return session


def _parse_square(square: str) -> Position:
    try:
        return Position.from_algebraic(square)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _position_key(game: Game) -> PositionKey:
    return id(game), game.to_fen(), len(game.board.move_history)


def _apply_if_unchanged(
    store: GameSessionStore, game_id: str, key: PositionKey, pair: MovePair
) -> bool:
    """Play ``pair`` unless the game moved on while it was being searched."""
    with _game_lock(store, game_id):
        game = _require_game(store, game_id)
        if _position_key(game) != key:
            logger.info("search result discarded: position changed", extra={"game_id": game_id})
            return False
        return game.apply_move(*pair) is not None


def _ai_reply(store: GameSessionStore, game_id: str) -> None:
    """Computer move for a game against the computer; runs on a worker thread.

    The lock is held only to copy the board and to apply the result, never
    across the search itself.
    """
    with _game_lock(store, game_id):
        game = _require_game(store, game_id)
        if not game.ai_to_move():
            return
        board: Board = game.board.copy()
        key = _position_key(game)
        difficulty = game.difficulty
    result = SearchService().choose(board, difficulty)
    if result.best_move is not None:
        _apply_if_unchanged(store, game_id, key, result.best_move)


def _locked_state(store: GameSessionStore, game_id: str) -> GameStateResponse:
    with _game_lock(store, game_id):
        return _state(game_id, _require_game(store, game_id))


def _state(game_id: str, game: Game) -> GameStateResponse:
    status = game.status()
    last = game.last_move()
    return GameStateResponse(
        game_id=game_id,
        fen=game.to_fen(),
        turn=game.turn.value,
        status=status.state.value,
        winner=status.winner.value if status.winner is not None else None,
        in_check=game.in_check(),
        last_move=last.to_uci() if last is not None else None,
        move_history=game.move_history_san(),
        threatened=sorted(p.algebraic for p in game.threatened()),
        mode=game.mode,
        player_color=game.player_color,
        can_undo=game.can_undo(),
    )


def _puzzle_state(session_id: str, session: PuzzleSession) -> PuzzleStateResponse:
    return PuzzleStateResponse(
        session_id=session_id,
        title=session.puzzle.title,
        fen=session.board_fen(),
        move_index=session.move_index,
        attempts=session.attempts,
        solved=session.is_solved,
    )
