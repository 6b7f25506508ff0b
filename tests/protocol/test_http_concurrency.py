from __future__ import annotations

import asyncio
import time
from typing import Tuple

import httpx

from chessgame.protocol.http.app import create_app


async def _health_during_search() -> Tuple[float, httpx.Response]:
    transport = httpx.ASGITransport(app=create_app())
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        game_id = (await client.post("/api/games")).json()["game_id"]
        search = asyncio.ensure_future(
            client.post(
                f"/api/games/{game_id}/search", json={"difficulty": "hard", "apply": True}
            )
        )
        await asyncio.sleep(0.2)
        start = time.perf_counter()
        health = await client.get("/healthz")
        elapsed = time.perf_counter() - start
        assert health.status_code == 200
        return elapsed, await search


def test_search_runs_off_the_event_loop() -> None:
    elapsed, search = asyncio.run(_health_during_search())
    assert elapsed < 1.2
    assert search.status_code == 200
    body = search.json()
    assert body["best_move"] is not None
    assert body["applied"] is True


def test_stale_search_result_is_not_applied() -> None:
    async def scenario() -> Tuple[httpx.Response, httpx.Response]:
        transport = httpx.ASGITransport(app=create_app())
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            game_id = (await client.post("/api/games")).json()["game_id"]
            search = asyncio.ensure_future(
                client.post(
                    f"/api/games/{game_id}/search", json={"difficulty": "hard", "apply": True}
                )
            )
            await asyncio.sleep(0.2)
            moved = await client.post(
                f"/api/games/{game_id}/move", json={"from": "a2", "to": "a3"}
            )
            return moved, await search

    moved, search = asyncio.run(scenario())
    assert moved.status_code == 200
    assert moved.json()["last_move"] == "a2a3"
    assert search.json()["applied"] is False
