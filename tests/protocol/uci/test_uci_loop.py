from __future__ import annotations

import random
from typing import Callable, List

from chessgame.engine.game import Game
from chessgame.protocol.uci.loop import UCIEngine, run_uci
from chessgame.search.service import Difficulty


def capture_writer(buf: List[str]) -> Callable[[str], None]:
    def _w(line: str) -> None:
        buf.append(line)

    return _w


def test_basic_handshake() -> None:
    eng = UCIEngine()
    out: List[str] = []
    eng.cmd_uci(capture_writer(out))
    assert any(line.startswith("id name ") for line in out)
    assert any(line.startswith("option name Difficulty type combo") for line in out)
    assert out[-1] == "uciok"


def test_isready() -> None:
    eng = UCIEngine()
    out: List[str] = []
    eng.cmd_isready(capture_writer(out))
    assert out == ["readyok"]


def test_position_startpos_with_moves() -> None:
    eng = UCIEngine()
    eng.cmd_position(["startpos", "moves", "e2e4", "e7e5", "g1f3"])
    assert eng.game.move_history_uci() == ["e2e4", "e7e5", "g1f3"]


def test_position_stops_at_illegal_move() -> None:
    eng = UCIEngine()
    eng.cmd_position(["startpos", "moves", "e2e4", "e2e4", "d7d5"])
    assert eng.game.move_history_uci() == ["e2e4"]


def test_position_invalid_fen_is_ignored() -> None:
    eng = UCIEngine()
    eng.cmd_position(["startpos", "moves", "e2e4"])
    eng.cmd_position(["fen", "not", "a", "fen"])
    assert eng.game.move_history_uci() == ["e2e4"]


def test_position_fen_with_promotion_suffix() -> None:
    eng = UCIEngine()
    eng.cmd_position(["fen", *"8/P6k/8/8/8/8/8/K7 w - - 0 1".split(), "moves", "a7a8q"])
    assert eng.game.move_history_uci() == ["a7a8q"]


def test_setoption_difficulty() -> None:
    eng = UCIEngine()
    eng.cmd_setoption(["name", "Difficulty", "value", "Hard"])
    assert eng.difficulty is Difficulty.HARD
    eng.cmd_setoption(["name", "Difficulty", "value", "bogus"])
    assert eng.difficulty is Difficulty.HARD
    eng.cmd_setoption(["name", "Unknown", "value", "1"])
    assert eng.difficulty is Difficulty.HARD


def test_go_depth_takes_hanging_queen() -> None:
    eng = UCIEngine()
    eng.cmd_position(["fen", *"q3k3/8/8/8/8/8/8/R3K3 w - - 0 1".split()])
    out: List[str] = []
    eng.cmd_go(["depth", "1"], capture_writer(out))
    eng.cmd_stop()
    assert out[0].startswith("info depth 1 ")
    assert " score cp " in out[0]
    assert out[-1] == "bestmove a1a8"


def test_go_depth_is_clamped() -> None:
    eng = UCIEngine()
    eng.cmd_position(["fen", *"4k3/8/8/8/8/8/8/R3K3 w - - 0 1".split()])
    out: List[str] = []
    eng.cmd_go(["depth", "99"], capture_writer(out))
    eng.wait()
    assert out[0].startswith("info depth 3 ")


def test_go_easy_uses_random_policy() -> None:
    eng = UCIEngine(rng=random.Random(3))
    eng.cmd_setoption(["name", "Difficulty", "value", "easy"])
    out: List[str] = []
    eng.cmd_go([], capture_writer(out))
    eng.wait()
    best = out[-1].split()[1]
    assert best in {f.algebraic + t.algebraic for f, t in Game.new().legal_moves()}
    assert " score " not in out[0]


def test_go_on_mated_position() -> None:
    eng = UCIEngine()
    eng.cmd_position(["fen", *"7k/6Q1/6K1/8/8/8/8/8 b - - 0 1".split()])
    out: List[str] = []
    eng.cmd_go(["depth", "2"], capture_writer(out))
    eng.wait()
    assert out[-1] == "bestmove (none)"


def test_go_does_not_touch_engine_game() -> None:
    eng = UCIEngine()
    eng.cmd_position(["startpos", "moves", "e2e4"])
    fen = eng.game.to_fen()
    eng.cmd_go(["depth", "1"], capture_writer([]))
    eng.wait()
    assert eng.game.to_fen() == fen


def test_run_uci_session() -> None:
    out: List[str] = []
    run_uci(
        [
            "uci",
            "isready",
            "setoption name Difficulty value medium",
            "ucinewgame",
            "position fen 6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1",
            "go",
            "quit",
            "isready",
        ],
        write=capture_writer(out),
    )
    assert "uciok" in out
    assert out.count("readyok") == 1
    assert out[-1] == "bestmove a1a8"
