"""FastAPI-powered web UI for playing RobotXO in the browser."""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from .game import (
    GameListener,
    Mode,
    Player,
    RobotTicket,
    TicTacToeGame,
    turn_status,
)
from .robot import RobotMoveClient, resolve_robot_turn

logger = logging.getLogger(__name__)


@dataclass
class SessionView(GameListener):
    """What the browser renders for one game, kept current by the game's callbacks."""

    status: str = turn_status("X")
    robot_thinking: bool = False
    last_move: Optional[Dict[str, int | str]] = None
    # Incremented on every notification so the page can skip identical redraws
    revision: int = 0

    def on_status_change(self, text: str) -> None:
        self.status = text
        self.revision += 1

    def on_cell_filled(self, index: int, mark: Player) -> None:
        self.last_move = {"index": index, "player": mark}
        self.revision += 1

    def on_win(self, winner: Player, line_index: int) -> None:
        logger.info("Player %s won on line %d", winner, line_index)
        self.revision += 1

    def on_draw(self) -> None:
        logger.info("Game ended in a draw")
        self.revision += 1

    def on_reset(self) -> None:
        self.last_move = None
        self.revision += 1

    def on_robot_thinking(self, thinking: bool) -> None:
        self.robot_thinking = thinking
        self.revision += 1

    def on_mode_change(self, mode: Mode) -> None:
        logger.info("Switched to %s mode", mode.value)
        self.revision += 1


@dataclass
class GameSession:
    """Container for one browser game and the view that mirrors it."""

    game: TicTacToeGame
    view: SessionView = field(default_factory=SessionView)


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(title="RobotXO", description="Tic-tac-toe against a friend or a robot")


ROBOT_SERVICE_URL = os.environ.get("ROBOTXO_ROBOT_URL", "http://127.0.0.1:8080")
ROBOT_CLIENT = RobotMoveClient(ROBOT_SERVICE_URL)
# Pause before showing the robot's reply
ROBOT_THINK_DELAY = 0.8


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    mode: Mode = Field(default=Mode.LOCAL, description="local or robot")


class ModeRequest(BaseModel):
    """Request payload for switching an existing game between modes."""

    mode: Mode


class MoveRequest(BaseModel):
    """Request payload for selecting a cell; illegal cells are ignored, not refused."""

    index: int


def _create_session(mode: Mode) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    view = SessionView()
    game = TicTacToeGame(mode=mode, listener=view)
    session = GameSession(game=game, view=view)
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.debug("Created %s game %s", mode.value, session_id)
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


async def _run_robot_turn(game_id: str, ticket: RobotTicket) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return
    await resolve_robot_turn(session.game, ticket, ROBOT_CLIENT, ROBOT_THINK_DELAY)


def _schedule_robot_turn(
    game_id: str, session: GameSession, background_tasks: BackgroundTasks
) -> bool:
    ticket = session.game.begin_robot_turn()
    if ticket is None:
        return False
    background_tasks.add_task(_run_robot_turn, game_id, ticket)
    return True


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    game = session.game
    view = session.view
    state: Dict[str, object] = {
        "id": game_id,
        "board": list(game.board),
        "currentPlayer": game.current_player,
        "active": game.active,
        "mode": game.mode.value,
        "winner": game.winner,
        "winningLine": game.winning_line,
        "winningCells": list(game.winning_cells) if game.winning_cells else None,
        "drawn": game.drawn,
        "status": view.status,
        "robotThinking": view.robot_thinking,
        "canRetry": game.needs_robot_move,
        "revision": view.revision,
    }
    if view.last_move:
        state["lastMove"] = view.last_move
    return state


@app.post("/api/game")
async def create_game(request: NewGameRequest) -> Dict[str, object]:
    game_id, session = _create_session(request.mode)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
async def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
async def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    accepted = session.game.play(request.index)
    if accepted:
        _schedule_robot_turn(game_id, session, background_tasks)
    state = _serialize_session(game_id, session)
    state["accepted"] = accepted
    return state


@app.post("/api/game/{game_id}/reset")
async def reset_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    session.game.reset()
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/mode")
async def change_mode(game_id: str, request: ModeRequest) -> Dict[str, object]:
    session = _get_session(game_id)
    session.game.set_mode(request.mode)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/retry")
async def retry_robot_move(
    game_id: str, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    if not _schedule_robot_turn(game_id, session, background_tasks):
        raise HTTPException(status_code=409, detail="The robot has no move to make")
    return _serialize_session(game_id, session)


@app.get("/", response_class=HTMLResponse)
async def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>RobotXO</title>
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
        min-height: 100vh;
        display: flex;
        justify-content: center;
        align-items: flex-start;
        padding: 2rem 1rem 3rem;
        background: radial-gradient(circle at top, #f2f5ff, #dbe0ff 40%, #cfd8ff 70%);
        color: #13203a;
      }
      main {
        background: rgba(255, 255, 255, 0.92);
        border-radius: 18px;
        box-shadow: 0 20px 40px rgba(34, 47, 79, 0.16);
        padding: clamp(1.5rem, 4vw, 2.5rem);
        width: min(460px, 100%);
        text-align: center;
      }
      h1 {
        margin: 0 0 1rem;
        letter-spacing: 0.06em;
      }
      button {
        font: inherit;
        border: none;
        border-radius: 10px;
        padding: 0.55rem 1.1rem;
        background: #e6ebff;
        color: #13203a;
        cursor: pointer;
      }
      button.active,
      button.primary {
        background: #3454d1;
        color: #fff;
      }
      .modes,
      .controls {
        display: flex;
        gap: 0.5rem;
        justify-content: center;
        margin-bottom: 1rem;
      }
      #status {
        font-weight: 600;
        min-height: 1.5rem;
        margin-bottom: 1rem;
      }
      #status.thinking {
        color: #3454d1;
      }
      .board-wrap {
        position: relative;
        width: min(300px, 80vw);
        aspect-ratio: 1;
        margin: 0 auto 1.25rem;
      }
      #board {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 6px;
        width: 100%;
        height: 100%;
      }
      #board.thinking {
        opacity: 0.7;
        pointer-events: none;
      }
      .cell {
        font-size: 2.6rem;
        font-weight: 700;
        border-radius: 12px;
        background: #f4f6ff;
      }
      .cell.x {
        color: #d1345b;
      }
      .cell.o {
        color: #3454d1;
      }
      .cell.fresh {
        animation: pop 0.25s ease-out;
      }
      .cell.win {
        background: #fff4c2;
      }
      @keyframes pop {
        from {
          transform: scale(0.6);
        }
        to {
          transform: scale(1);
        }
      }
      #winning-line {
        position: absolute;
        inset: 0;
        pointer-events: none;
      }
      #winning-line line {
        stroke: #13203a;
        stroke-width: 8;
        stroke-linecap: round;
        stroke-dasharray: 400;
        stroke-dashoffset: 400;
        animation: draw 0.3s ease-out forwards;
      }
      @keyframes draw {
        to {
          stroke-dashoffset: 0;
        }
      }
      .modal {
        position: fixed;
        inset: 0;
        display: none;
        align-items: center;
        justify-content: center;
        background: rgba(9, 24, 46, 0.45);
      }
      .modal.show {
        display: flex;
      }
      .modal-card {
        background: #fff;
        border-radius: 16px;
        padding: 2rem;
        min-width: 260px;
      }
      .hidden {
        display: none;
      }
    </style>
  </head>
  <body>
    <main>
      <h1>RobotXO</h1>
      <div class=\"modes\">
        <button id=\"mode-local\" class=\"active\">2 Players</button>
        <button id=\"mode-robot\">vs Robot</button>
      </div>
      <div id=\"status\" role=\"status\">Player X's Turn</div>
      <div class=\"board-wrap\">
        <div id=\"board\"></div>
        <svg id=\"winning-line\" viewBox=\"0 0 300 300\" aria-hidden=\"true\"></svg>
      </div>
      <div class=\"controls\">
        <button id=\"reset-btn\">Reset</button>
        <button id=\"retry-btn\" class=\"primary hidden\">Ask robot again</button>
      </div>
    </main>
    <div id=\"winner-modal\" class=\"modal\">
      <div class=\"modal-card\">
        <h2 id=\"winner-title\"></h2>
        <p id=\"winner-message\"></p>
        <button id=\"new-game-btn\" class=\"primary\">New Game</button>
      </div>
    </div>
    <script>
      const boardEl = document.getElementById('board');
      const statusEl = document.getElementById('status');
      const lineEl = document.getElementById('winning-line');
      const modal = document.getElementById('winner-modal');
      const winnerTitle = document.getElementById('winner-title');
      const winnerMessage = document.getElementById('winner-message');
      const modeLocalBtn = document.getElementById('mode-local');
      const modeRobotBtn = document.getElementById('mode-robot');
      const retryBtn = document.getElementById('retry-btn');

      let gameId = null;
      let gameState = null;
      let pollHandle = null;
      let modalHandle = null;

      const cells = [];
      for (let i = 0; i < 9; i++) {
        const cell = document.createElement('button');
        cell.className = 'cell';
        cell.dataset.index = String(i);
        cell.addEventListener('click', () => sendMove(i));
        boardEl.appendChild(cell);
        cells.push(cell);
      }

      function centre(index) {
        return [(index % 3) * 100 + 50, Math.floor(index / 3) * 100 + 50];
      }

      async function request(path, body) {
        const options = body === undefined
          ? { method: 'POST' }
          : {
              method: 'POST',
              headers: { 'Content-Type': 'application/json' },
              body: JSON.stringify(body),
            };
        const response = await fetch(path, options);
        if (!response.ok) {
          throw new Error('Request failed');
        }
        return response.json();
      }

      async function startGame(mode) {
        try {
          setState(await request('/api/game', { mode }));
        } catch (error) {
          statusEl.textContent = 'Unable to start a game.';
        }
      }

      async function sendMove(index) {
        if (!gameState || !gameState.active || gameState.robotThinking) return;
        if (gameState.board[index] !== null) return;
        try {
          setState(await request(`/api/game/${gameId}/move`, { index }));
        } catch (error) {
          statusEl.textContent = 'Network error. Please try again.';
        }
      }

      async function resetGame() {
        if (!gameId) return;
        setState(await request(`/api/game/${gameId}/reset`));
      }

      async function setMode(mode) {
        if (!gameId) return startGame(mode);
        setState(await request(`/api/game/${gameId}/mode`, { mode }));
      }

      async function retryRobot() {
        if (!gameId) return;
        setState(await request(`/api/game/${gameId}/retry`));
      }

      async function poll() {
        pollHandle = null;
        if (!gameId) return;
        try {
          const response = await fetch(`/api/game/${gameId}`);
          if (response.ok) {
            setState(await response.json());
          }
        } catch (error) {
          console.error('Polling failed', error);
        }
      }

      function setState(data) {
        const previous = gameState;
        gameId = data.id;
        gameState = data;
        if (!previous || previous.revision !== data.revision) {
          render(previous);
        }
        if (data.robotThinking && pollHandle === null) {
          pollHandle = window.setTimeout(poll, 300);
        }
      }

      function render(previous) {
        const state = gameState;
        state.board.forEach((mark, i) => {
          const cell = cells[i];
          cell.textContent = mark || '';
          cell.classList.toggle('x', mark === 'X');
          cell.classList.toggle('o', mark === 'O');
          cell.classList.toggle('fresh', Boolean(state.lastMove && state.lastMove.index === i));
          cell.classList.toggle('win', Boolean(state.winningCells && state.winningCells.includes(i)));
          cell.disabled = mark !== null || !state.active;
        });
        statusEl.textContent = state.status;
        statusEl.classList.toggle('thinking', state.robotThinking);
        boardEl.classList.toggle('thinking', state.robotThinking);
        modeLocalBtn.classList.toggle('active', state.mode === 'local');
        modeRobotBtn.classList.toggle('active', state.mode === 'robot');
        retryBtn.classList.toggle('hidden', !state.canRetry);
        renderOutcome(previous);
      }

      function renderOutcome(previous) {
        const state = gameState;
        const finished = Boolean(state.winner) || state.drawn;
        const wasFinished = Boolean(previous && (previous.winner || previous.drawn));
        if (!finished) {
          lineEl.innerHTML = '';
          hideModal();
          return;
        }
        if (wasFinished) return;
        if (state.winner) {
          const [a, , c] = state.winningCells;
          const [x1, y1] = centre(a);
          const [x2, y2] = centre(c);
          lineEl.innerHTML = `<line x1=\"${x1}\" y1=\"${y1}\" x2=\"${x2}\" y2=\"${y2}\" />`;
          modalHandle = window.setTimeout(
            () => showModal(`${state.winner} Wins!`, `Player ${state.winner} takes the victory!`),
            1000
          );
        } else {
          showModal(\"It's a Draw!\", 'No one wins this round.');
        }
      }

      function showModal(title, message) {
        winnerTitle.textContent = title;
        winnerMessage.textContent = message;
        modal.classList.add('show');
      }

      function hideModal() {
        if (modalHandle !== null) {
          clearTimeout(modalHandle);
          modalHandle = null;
        }
        modal.classList.remove('show');
      }

      document.getElementById('reset-btn').addEventListener('click', resetGame);
      document.getElementById('new-game-btn').addEventListener('click', resetGame);
      modeLocalBtn.addEventListener('click', () => setMode('local'));
      modeRobotBtn.addEventListener('click', () => setMode('robot'));
      retryBtn.addEventListener('click', retryRobot);

      startGame('local');
    </script>
  </body>
</html>
"""
