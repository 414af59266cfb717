"""FastAPI-powered web UI for playing tic-tac-toe in the browser."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, Literal, Tuple

from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from .ai import Strategy
from .scheduling import TimerScheduler
from .session import AI_MOVE_DELAY, GameConfig, GameMode, Session, Side

logger = logging.getLogger(__name__)


@dataclass
class GameEntry:
    """An active session plus the lock its timer callbacks run under."""

    session: Session
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)


SESSIONS: Dict[str, GameEntry] = {}
app = FastAPI(title="Tic-Tac-Toe", description="Tic-tac-toe played in the browser")


class GameSettings(BaseModel):
    """Mode, symbol, starting side and computer strategy for a game."""

    mode: GameMode = Field(default=GameMode.SINGLE_PLAYER)
    symbol: Literal["X", "O"] = Field(
        default="X", description="Symbol of the human (or player 1)"
    )
    first: Side = Field(default=Side.PLAYER, description="Which side opens the game")
    strategy: Strategy = Field(default=Strategy.HEURISTIC)

    def to_config(self) -> GameConfig:
        return GameConfig(
            mode=self.mode, symbol=self.symbol, first=self.first, strategy=self.strategy
        )


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    index: int = Field(ge=0, le=8)


def _create_session(config: GameConfig) -> Tuple[str, GameEntry]:
    """Create a new game session and register it for later access."""

    lock = threading.RLock()
    with lock:
        session = Session(
            config, scheduler=TimerScheduler(lock), ai_delay=AI_MOVE_DELAY
        )
    entry = GameEntry(session=session, lock=lock)
    game_id = uuid.uuid4().hex
    SESSIONS[game_id] = entry
    logger.info("created game %s", game_id)
    return game_id, entry


def _get_entry(game_id: str) -> GameEntry:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _serialize_session(game_id: str, entry: GameEntry) -> Dict[str, object]:
    with entry.lock:
        session = entry.session
        snapshot = session.snapshot()
        status = session.status()
        side_a, side_b = session.side_labels()
        config = session.config
        line = snapshot.terminal_line
        return {
            "id": game_id,
            "cells": list(snapshot.cells),
            "terminalLine": list(line) if line else None,
            "gameOver": snapshot.game_over,
            "currentPlayer": session.current,
            "status": {
                "kind": status.kind.value,
                "symbol": status.symbol,
                "ownerLabel": status.owner_label,
                "text": status.text,
            },
            "scores": {
                "sideA": session.scores.side_a,
                "sideB": session.scores.side_b,
                "ties": session.scores.ties,
            },
            "labels": {
                "sideA": side_a,
                "sideB": side_b,
                "strategy": session.strategy_label(),
            },
            "config": {
                "mode": config.mode.value,
                "symbol": config.symbol,
                "first": config.first.value,
                "strategy": config.strategy.value,
            },
            "computerPlayer": session.computer_symbol,
            "aiPending": session.ai_pending,
        }


@app.post("/api/game")
def create_game(settings: GameSettings) -> Dict[str, object]:
    game_id, entry = _create_session(settings.to_config())
    return _serialize_session(game_id, entry)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    entry = _get_entry(game_id)
    return _serialize_session(game_id, entry)


@app.post("/api/game/{game_id}/move")
def make_move(game_id: str, request: MoveRequest) -> Dict[str, object]:
    entry = _get_entry(game_id)
    with entry.lock:
        # Moves that are not allowed right now are ignored, not reported
        if not entry.session.on_human_move(request.index):
            logger.debug("ignored move %d in game %s", request.index, game_id)
    return _serialize_session(game_id, entry)


@app.put("/api/game/{game_id}/config")
def configure_game(game_id: str, settings: GameSettings) -> Dict[str, object]:
    entry = _get_entry(game_id)
    with entry.lock:
        entry.session.configure(settings.to_config())
    return _serialize_session(game_id, entry)


@app.post("/api/game/{game_id}/reset")
def reset_game(game_id: str) -> Dict[str, object]:
    entry = _get_entry(game_id)
    with entry.lock:
        entry.session.request_reset()
    return _serialize_session(game_id, entry)


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Tic-Tac-Toe</title>
    <style>
      :root {
        color-scheme: light;
        font-family: system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
      }
      * {
        box-sizing: border-box;
      }
      body {
        margin: 0;
        background: radial-gradient(circle at top, #f2f5ff, #dbe0ff 40%, #cfd8ff 70%);
        min-height: 100vh;
        display: flex;
        justify-content: center;
        padding: 2rem 1rem 3rem;
        color: #13203a;
      }
      main {
        background: rgba(255, 255, 255, 0.92);
        border-radius: 18px;
        box-shadow: 0 20px 40px rgba(34, 47, 79, 0.16);
        padding: clamp(1.5rem, 4vw, 2.5rem);
        width: min(520px, 100%);
      }
      h1 {
        margin: 0 0 1rem;
        text-align: center;
        letter-spacing: 0.06em;
      }
      button,
      select {
        font-size: 1rem;
        padding: 0.45rem 0.85rem;
        border-radius: 999px;
        border: 1px solid rgba(60, 70, 120, 0.25);
        background: white;
        cursor: pointer;
        font-family: inherit;
      }
      .controls {
        display: flex;
        flex-wrap: wrap;
        gap: 0.6rem;
        justify-content: center;
        margin-bottom: 1rem;
      }
      #aiIndicator {
        text-align: center;
        font-size: 0.9rem;
        color: rgba(19, 32, 58, 0.7);
        margin-bottom: 0.5rem;
      }
      #status {
        text-align: center;
        font-size: 1.1rem;
        font-weight: 600;
        margin: 0 auto 1rem;
      }
      #board {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 0.5rem;
        max-width: 320px;
        margin: 0 auto 1.25rem;
      }
      .cell {
        aspect-ratio: 1 / 1;
        font-size: 2.2rem;
        font-weight: 700;
        border-radius: 12px;
        background: rgba(255, 255, 255, 0.95);
        border: 2px solid rgba(80, 100, 160, 0.25);
      }
      .cell.x {
        color: #f04a6a;
      }
      .cell.o {
        color: #3a7bff;
      }
      .cell.win {
        background: #fff3b0;
        border-color: #e0b400;
      }
      .cell:disabled {
        cursor: default;
      }
      .scores {
        display: flex;
        justify-content: space-around;
        text-align: center;
        font-weight: 600;
      }
      .scores span {
        display: block;
        font-size: 1.4rem;
      }
    </style>
  </head>
  <body>
    <main>
      <h1>Tic-Tac-Toe</h1>
      <div class=\"controls\">
        <select id=\"gameModeSelect\" aria-label=\"Game mode\">
          <option value=\"single\">1 player</option>
          <option value=\"two\">2 players</option>
        </select>
        <select id=\"symbolSelect\" aria-label=\"Your symbol\">
          <option value=\"X\">Play as X</option>
          <option value=\"O\">Play as O</option>
        </select>
        <select id=\"startSelect\" aria-label=\"Who starts\">
          <option value=\"player\">Player starts</option>
          <option value=\"opponent\">Opponent starts</option>
        </select>
        <select id=\"modeSelect\" aria-label=\"Computer strategy\">
          <option value=\"heuristic\">Heuristic</option>
          <option value=\"minimax\">Minimax</option>
        </select>
        <button id=\"resetBtn\" type=\"button\">Reset</button>
      </div>
      <div id=\"aiIndicator\"></div>
      <div id=\"status\" role=\"status\">Loading…</div>
      <div id=\"board\" role=\"grid\"></div>
      <div class=\"scores\">
        <div><div id=\"sideALabel\"></div><span id=\"sideAScore\">0</span></div>
        <div><div>TIES</div><span id=\"tieScore\">0</span></div>
        <div><div id=\"sideBLabel\"></div><span id=\"sideBScore\">0</span></div>
      </div>
    </main>
    <script>
      const boardEl = document.getElementById('board');
      const statusEl = document.getElementById('status');
      const aiIndicator = document.getElementById('aiIndicator');
      const gameModeSelect = document.getElementById('gameModeSelect');
      const symbolSelect = document.getElementById('symbolSelect');
      const startSelect = document.getElementById('startSelect');
      const modeSelect = document.getElementById('modeSelect');
      const resetBtn = document.getElementById('resetBtn');
      let gameId = null;
      let gameState = null;
      let pollHandle = null;

      function settings() {
        return {
          mode: gameModeSelect.value,
          symbol: symbolSelect.value,
          first: startSelect.value,
          strategy: modeSelect.value,
        };
      }

      async function request(method, url, body) {
        const options = { method, headers: { 'Content-Type': 'application/json' } };
        if (body !== undefined) {
          options.body = JSON.stringify(body);
        }
        const response = await fetch(url, options);
        if (!response.ok) {
          throw new Error('Request failed');
        }
        setState(await response.json());
      }

      function ensurePolling() {
        if (pollHandle === null) {
          pollHandle = window.setTimeout(poll, 150);
        }
      }

      async function poll() {
        pollHandle = null;
        if (!gameId) return;
        try {
          await request('GET', `/api/game/${gameId}`);
        } catch (error) {
          console.error('Polling failed', error);
        }
      }

      function setState(data) {
        gameId = data.id;
        gameState = data;
        render();
        if (gameState.aiPending) {
          ensurePolling();
        }
      }

      function render() {
        boardEl.innerHTML = '';
        const winLine = new Set(gameState.terminalLine || []);
        const humanTurn =
          !gameState.gameOver &&
          !gameState.aiPending &&
          gameState.currentPlayer !== gameState.computerPlayer;
        gameState.cells.forEach((value, index) => {
          const cell = document.createElement('button');
          cell.type = 'button';
          cell.className = 'cell';
          cell.textContent = value;
          cell.setAttribute('aria-label', `Cell ${index + 1}`);
          if (value) cell.classList.add(value.toLowerCase());
          if (winLine.has(index)) cell.classList.add('win');
          cell.disabled = Boolean(value) || !humanTurn;
          cell.addEventListener('click', () => request('POST', `/api/game/${gameId}/move`, { index }));
          boardEl.appendChild(cell);
        });
        statusEl.textContent = gameState.status.text;
        aiIndicator.textContent = gameState.config.mode === 'single' ? gameState.labels.strategy : '';
        document.getElementById('sideALabel').textContent = gameState.labels.sideA;
        document.getElementById('sideBLabel').textContent = gameState.labels.sideB;
        document.getElementById('sideAScore').textContent = gameState.scores.sideA;
        document.getElementById('sideBScore').textContent = gameState.scores.sideB;
        document.getElementById('tieScore').textContent = gameState.scores.ties;
      }

      function configure() {
        if (!gameId) {
          request('POST', '/api/game', settings());
          return;
        }
        request('PUT', `/api/game/${gameId}/config`, settings());
      }

      [gameModeSelect, symbolSelect, startSelect, modeSelect].forEach((el) =>
        el.addEventListener('change', configure)
      );
      resetBtn.addEventListener('click', () => {
        if (gameId) request('POST', `/api/game/${gameId}/reset`);
      });

      configure();
    </script>
  </body>
</html>
"""
