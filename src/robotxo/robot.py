"""Client for the external Robot Move Service (``POST /move``)."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Literal, Optional, Sequence

import httpx
from pydantic import BaseModel, ValidationError, field_validator

from .game import ROBOT_PLAYER, Board, Cell, Player, RobotTicket, TicTacToeGame

logger = logging.getLogger(__name__)

CONNECTION_ERROR_STATUS = "Error connecting to robot server."
PROTOCOL_ERROR_STATUS = "Robot returned an invalid move."


class ServiceError(Exception):
    """The robot service could not be reached or answered with a failure."""


class ServiceProtocolViolation(ServiceError):
    """The robot service answered, but not with exactly one legal new mark."""


class BoardPayload(BaseModel):
    """Wire format shared by the move request and response."""

    board: List[Optional[Literal["X", "O"]]]

    @field_validator("board")
    @classmethod
    def ensure_nine_cells(cls, value: List[Cell]) -> List[Cell]:
        if len(value) != 9:
            raise ValueError(f"Board must have 9 cells, got {len(value)}")
        return value


def find_robot_move(before: Sequence[Cell], after: Sequence[Cell], mark: Player) -> int:
    """Locate the single cell the robot filled between ``before`` and ``after``."""
    if len(before) != len(after):
        raise ServiceProtocolViolation("Response board has the wrong size")

    changed = [i for i, (old, new) in enumerate(zip(before, after)) if old != new]
    if not changed:
        raise ServiceProtocolViolation("Robot did not place a mark")
    if len(changed) > 1:
        raise ServiceProtocolViolation(
            f"Robot changed {len(changed)} cells: {changed}"
        )

    index = changed[0]
    if before[index] is not None:
        raise ServiceProtocolViolation(f"Robot overwrote occupied cell {index}")
    if after[index] != mark:
        raise ServiceProtocolViolation(
            f"Robot placed {after[index]!r} at {index}, expected {mark!r}"
        )
    return index


class RobotMoveClient:
    """Posts the current board to ``{base_url}/move`` and returns the reply board."""

    def __init__(
        self,
        base_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.transport = transport

    @property
    def move_url(self) -> str:
        return f"{self.base_url}/move"

    async def request_move(self, board: Sequence[Cell]) -> Board:
        payload = {"board": list(board)}
        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(self.move_url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ServiceError(f"Robot move request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ServiceError("Robot service returned malformed JSON") from exc

        try:
            reply = BoardPayload.model_validate(data)
        except ValidationError as exc:
            raise ServiceProtocolViolation(
                f"Robot service returned an invalid board: {exc.error_count()} error(s)"
            ) from exc
        return reply.board


async def play_robot_turn(
    game: TicTacToeGame, client: RobotMoveClient, delay: float = 0.0
) -> bool:
    """Start and resolve the robot's turn on ``game`` if one is owed."""
    ticket = game.begin_robot_turn()
    if ticket is None:
        return False
    return await resolve_robot_turn(game, ticket, client, delay)


async def resolve_robot_turn(
    game: TicTacToeGame,
    ticket: RobotTicket,
    client: RobotMoveClient,
    delay: float = 0.0,
) -> bool:
    """Request the move for an already started robot turn and apply it.

    Returns True when the robot's move was applied. Failures are reported to
    the game's listener as a status message and leave the turn with the robot.
    Replies for a ticket invalidated by a reset are dropped.
    """
    try:
        reply = await client.request_move(ticket.board)
        index = find_robot_move(ticket.board, reply, ROBOT_PLAYER)
    except ServiceProtocolViolation as exc:
        logger.warning("Rejected robot reply: %s", exc)
        game.fail_robot_turn(ticket, PROTOCOL_ERROR_STATUS)
        return False
    except ServiceError as exc:
        logger.error("Robot service unavailable: %s", exc)
        game.fail_robot_turn(ticket, CONNECTION_ERROR_STATUS)
        return False

    if delay > 0:
        await asyncio.sleep(delay)

    if not game.is_current(ticket):
        logger.info("Discarding robot move %d for a game that was reset", index)
        return False
    return game.complete_robot_turn(ticket, index)
