"""Core rules and turn bookkeeping for RobotXO (classic 3x3 tic-tac-toe)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

Player = str  # "X" or "O"
Cell = Optional[Player]  # None for empty
Board = List[Cell]

MARKS: Tuple[Player, ...] = ("X", "O")
ROBOT_PLAYER: Player = "O"

WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

ROBOT_THINKING_STATUS = "Robot is thinking..."
DRAW_STATUS = "It's a Draw!"


class Mode(str, Enum):
    LOCAL = "local"
    ROBOT = "robot"


def empty_board() -> Board:
    return [None] * 9


def other(player: Player) -> Player:
    return "O" if player == "X" else "X"


def turn_status(player: Player) -> str:
    return f"Player {player}'s Turn"


def win_status(player: Player) -> str:
    return f"Player {player} Wins!"


# ---------- Presentation hooks ----------


class GameListener:
    """Receives every state change of a :class:`TicTacToeGame`.

    All hooks are no-ops; presentation adapters override the ones they render.
    """

    def on_status_change(self, text: str) -> None:
        pass

    def on_cell_filled(self, index: int, mark: Player) -> None:
        pass

    def on_win(self, winner: Player, line_index: int) -> None:
        pass

    def on_draw(self) -> None:
        pass

    def on_reset(self) -> None:
        pass

    def on_robot_thinking(self, thinking: bool) -> None:
        pass

    def on_mode_change(self, mode: Mode) -> None:
        pass


@dataclass(frozen=True)
class RobotTicket:
    """Identifies one robot move request and the game it was issued for."""

    generation: int
    board: Tuple[Cell, ...]


# ---------- Game ----------


@dataclass
class TicTacToeGame:
    board: Board = field(default_factory=empty_board)
    current_player: Player = "X"
    active: bool = True
    mode: Mode = Mode.LOCAL
    winner: Optional[Player] = None
    # Position in WINNING_LINES of the completed line, if any
    winning_line: Optional[int] = None
    drawn: bool = False
    robot_pending: bool = False
    # Bumped on every reset so late robot responses can be recognised
    generation: int = 0
    listener: GameListener = field(default_factory=GameListener, repr=False)

    # ---- rules ----

    def apply_move(self, index: int, player: Player) -> bool:
        """Place ``player`` at ``index``; return False and change nothing if illegal."""
        if not self.active:
            return False
        if player not in MARKS:
            return False
        if not isinstance(index, int) or isinstance(index, bool):
            return False
        if not 0 <= index < len(self.board):
            return False
        if self.board[index] is not None:
            return False

        self.board[index] = player
        self.listener.on_cell_filled(index, player)
        return True

    def evaluate_win(self) -> Optional[Tuple[Player, int]]:
        """First completed line in WINNING_LINES order, as (winner, line index)."""
        for line_index, (a, b, c) in enumerate(WINNING_LINES):
            v = self.board[a]
            if v is not None and v == self.board[b] == self.board[c]:
                return v, line_index
        return None

    def evaluate_draw(self) -> bool:
        if any(cell is None for cell in self.board):
            return False
        return self.evaluate_win() is None

    def advance_turn(self) -> None:
        self.current_player = other(self.current_player)
        self.listener.on_status_change(turn_status(self.current_player))

    def available_moves(self) -> List[int]:
        if not self.active:
            return []
        return [i for i, cell in enumerate(self.board) if cell is None]

    @property
    def winning_cells(self) -> Optional[Tuple[int, int, int]]:
        if self.winning_line is None:
            return None
        return WINNING_LINES[self.winning_line]

    # ---- local input ----

    def play(self, index: int) -> bool:
        """Handle a cell selection by the player whose turn it is."""
        if self.robot_pending:
            return False
        if self.mode == Mode.ROBOT and self.current_player == ROBOT_PLAYER:
            return False
        if not self.apply_move(index, self.current_player):
            return False
        self._settle()
        return True

    # ---- robot turn ----

    @property
    def needs_robot_move(self) -> bool:
        return (
            self.mode == Mode.ROBOT
            and self.active
            and self.current_player == ROBOT_PLAYER
            and not self.robot_pending
        )

    def begin_robot_turn(self) -> Optional[RobotTicket]:
        if not self.needs_robot_move:
            return None
        self.robot_pending = True
        self.listener.on_status_change(ROBOT_THINKING_STATUS)
        self.listener.on_robot_thinking(True)
        return RobotTicket(generation=self.generation, board=tuple(self.board))

    def is_current(self, ticket: RobotTicket) -> bool:
        return self.robot_pending and ticket.generation == self.generation

    def complete_robot_turn(self, ticket: RobotTicket, index: int) -> bool:
        """Apply the robot's move; stale tickets are ignored."""
        if not self.is_current(ticket):
            return False
        self.robot_pending = False
        self.listener.on_robot_thinking(False)
        if not self.apply_move(index, ROBOT_PLAYER):
            self.listener.on_status_change(turn_status(self.current_player))
            return False
        self._settle()
        return True

    def fail_robot_turn(self, ticket: RobotTicket, message: str) -> bool:
        """Abandon a robot request; the turn stays with the robot."""
        if not self.is_current(ticket):
            return False
        self.robot_pending = False
        self.listener.on_robot_thinking(False)
        self.listener.on_status_change(message)
        return True

    # ---- lifecycle ----

    def reset(self) -> None:
        was_pending = self.robot_pending
        self.generation += 1
        self.board = empty_board()
        self.current_player = "X"
        self.active = True
        self.winner = None
        self.winning_line = None
        self.drawn = False
        self.robot_pending = False
        if was_pending:
            self.listener.on_robot_thinking(False)
        self.listener.on_reset()
        self.listener.on_status_change(turn_status(self.current_player))

    def set_mode(self, mode: Mode | str) -> None:
        self.mode = Mode(mode)
        self.listener.on_mode_change(self.mode)
        self.reset()

    # ---- helpers ----

    def _settle(self) -> None:
        result = self.evaluate_win()
        if result is not None:
            self.winner, self.winning_line = result
            self.active = False
            self.listener.on_status_change(win_status(self.winner))
            self.listener.on_win(self.winner, self.winning_line)
            return
        if self.evaluate_draw():
            self.drawn = True
            self.active = False
            self.listener.on_status_change(DRAW_STATUS)
            self.listener.on_draw()
            return
        self.advance_turn()
