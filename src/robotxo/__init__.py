"""RobotXO package exposing the game state machine, robot client, and web application."""

from .game import Mode, TicTacToeGame
from .robot import RobotMoveClient, ServiceError, ServiceProtocolViolation
from .ui import app

__all__ = [
    "Mode",
    "RobotMoveClient",
    "ServiceError",
    "ServiceProtocolViolation",
    "TicTacToeGame",
    "app",
]
