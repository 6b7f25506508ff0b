from __future__ import annotations

import logging
import random
import sys
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from ...engine.game import Game
from ...engine.move import format_uci, parse_uci
from ...search.service import Difficulty, SearchResult, SearchService


logger = logging.getLogger(__name__)

Writer = Callable[[str], None]

MIN_DEPTH = 1
MAX_DEPTH = 3


@dataclass
class GoParams:
    depth: Optional[int] = None


class UCIEngine:
    """UCI protocol adapter around the game and search service.

    Notes:
    - Supported commands: uci, isready, setoption (Difficulty), ucinewgame,
      position, go [depth N], stop, quit.
    - ``go`` runs on a daemon thread. Searches are not cancellable: ``stop``
      and any command that changes the position wait for the running search.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.game: Game = Game.new()
        self.difficulty: Difficulty = Difficulty.MEDIUM
        self.search = SearchService(rng)
        self._search_thread: Optional[threading.Thread] = None

    # ---- Command handlers ----
    def cmd_uci(self, write: Writer) -> None:
        write("id name chessgame")
        write("id author chessgame developers")
        write(
            "option name Difficulty type combo default medium var easy var medium var hard"
        )
        write("uciok")

    def cmd_isready(self, write: Writer) -> None:
        write("readyok")

    def cmd_ucinewgame(self) -> None:
        self.wait()
        self.game = Game.new()

    def cmd_position(self, args: List[str]) -> None:
        # position [startpos | fen <FEN>] [moves m1 m2 ...]
        if not args:
            return
        self.wait()
        idx = 0
        if args[idx] == "startpos":
            self.game = Game.new()
            idx += 1
        elif args[idx] == "fen":
            idx += 1
            fen_tokens: List[str] = []
            while idx < len(args) and args[idx] != "moves":
                fen_tokens.append(args[idx])
                idx += 1
            try:
                self.game = Game.from_fen(" ".join(fen_tokens))
            except ValueError:
                logger.debug("ignoring invalid FEN", extra={"fen": " ".join(fen_tokens)})
                return
        if idx < len(args) and args[idx] == "moves":
            for token in args[idx + 1 :]:
                try:
                    from_pos, to_pos = parse_uci(token)
                except ValueError:
                    logger.debug("ignoring malformed move", extra={"uci": token})
                    break
                if self.game.apply_move(from_pos, to_pos) is None:
                    logger.debug("ignoring illegal move", extra={"uci": token})
                    break

    def cmd_setoption(self, args: List[str]) -> None:
        # setoption name <name> [value <value>]
        if "value" in args:
            split = args.index("value")
            name_tokens, value_tokens = args[:split], args[split + 1 :]
        else:
            name_tokens, value_tokens = args, []
        if name_tokens and name_tokens[0] == "name":
            name_tokens = name_tokens[1:]
        name = " ".join(name_tokens).strip().lower()
        value = " ".join(value_tokens).strip()
        if name == "difficulty":
            try:
                self.difficulty = Difficulty.parse(value)
            except ValueError:
                logger.debug("ignoring unknown difficulty", extra={"value": value})

    def cmd_go(self, args: List[str], write: Writer) -> None:
        params = self._parse_go_args(args)
        self.wait()
        board = self.game.board.copy()
        difficulty = self.difficulty

        def worker() -> None:
            if params.depth is not None:
                depth = max(MIN_DEPTH, min(MAX_DEPTH, params.depth))
                res = self.search.search(board, depth=depth)
            else:
                res = self.search.choose(board, difficulty)
            self._emit_info(res, write)
            best = format_uci(*res.best_move) if res.best_move else "(none)"
            write(f"bestmove {best}")

        self._search_thread = threading.Thread(target=worker, name="uci-search", daemon=True)
        self._search_thread.start()

    def cmd_stop(self) -> None:
        self.wait()

    def wait(self) -> None:
        """Block until the running search, if any, has written its bestmove."""
        thread = self._search_thread
        if thread is not None:
            thread.join()
            self._search_thread = None

    def handle(self, line: str, write: Writer) -> bool:
        """Dispatch one command line. Returns False once ``quit`` is seen."""
        parts = line.split()
        if not parts:
            return True
        cmd, args = parts[0], parts[1:]
        if cmd == "uci":
            self.cmd_uci(write)
        elif cmd == "isready":
            self.cmd_isready(write)
        elif cmd == "setoption":
            self.cmd_setoption(args)
        elif cmd == "ucinewgame":
            self.cmd_ucinewgame()
        elif cmd == "position":
            self.cmd_position(args)
        elif cmd == "go":
            self.cmd_go(args, write)
        elif cmd == "stop":
            self.cmd_stop()
        elif cmd == "quit":
            self.wait()
            return False
        # Unknown commands are ignored
        return True

    # ---- Utilities ----
    def _parse_go_args(self, args: List[str]) -> GoParams:
        gp = GoParams()
        if "depth" in args:
            i = args.index("depth")
            if i + 1 < len(args):
                try:
                    gp.depth = int(args[i + 1])
                except ValueError:
                    pass
        return gp

    def _emit_info(self, res: SearchResult, write: Writer) -> None:
        nps = int(res.nodes * 1000 / max(1, res.time_ms))
        line = f"info depth {res.depth} time {res.time_ms} nodes {res.nodes} nps {nps}"
        if res.score is not None:
            line += f" score cp {res.score}"
        if res.best_move is not None:
            line += f" pv {format_uci(*res.best_move)}"
        write(line)


def _default_writer(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def run_uci(lines: Optional[Iterable[str]] = None, write: Writer = _default_writer) -> None:
    eng = UCIEngine()
    for raw in lines if lines is not None else sys.stdin:
        if not eng.handle(raw.strip(), write):
            break
    eng.wait()
