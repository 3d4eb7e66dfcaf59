"""Tests for the Robot Move Service client."""

import asyncio
import json

import httpx
import pytest

from robotxo.game import Mode, TicTacToeGame
from robotxo.robot import (
    CONNECTION_ERROR_STATUS,
    PROTOCOL_ERROR_STATUS,
    RobotMoveClient,
    ServiceError,
    ServiceProtocolViolation,
    find_robot_move,
    play_robot_turn,
)


def robot_client(handler):
    return RobotMoveClient("http://robot.test", transport=httpx.MockTransport(handler))


def reply_with(board):
    def handler(request):
        return httpx.Response(200, json={"board": board})

    return handler


def robot_game(first_move=0):
    game = TicTacToeGame(mode=Mode.ROBOT)
    game.play(first_move)
    return game


# ---- board diffing ----


def test_find_robot_move_locates_new_mark():
    before = ["X", None, None, None, None, None, None, None, None]
    after = ["X", None, None, None, "O", None, None, None, None]
    assert find_robot_move(before, after, "O") == 4


def test_identical_board_is_a_violation():
    board = ["X"] + [None] * 8
    with pytest.raises(ServiceProtocolViolation):
        find_robot_move(board, list(board), "O")


def test_two_new_marks_are_a_violation():
    before = ["X"] + [None] * 8
    after = ["X", "O", "O"] + [None] * 6
    with pytest.raises(ServiceProtocolViolation):
        find_robot_move(before, after, "O")


def test_overwriting_a_mark_is_a_violation():
    before = ["X"] + [None] * 8
    after = ["O"] + [None] * 8
    with pytest.raises(ServiceProtocolViolation):
        find_robot_move(before, after, "O")


def test_wrong_mark_is_a_violation():
    before = ["X"] + [None] * 8
    after = ["X", "X"] + [None] * 7
    with pytest.raises(ServiceProtocolViolation):
        find_robot_move(before, after, "O")


# ---- HTTP client ----


def test_request_move_posts_board():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"board": ["X", "O"] + [None] * 7})

    client = robot_client(handler)
    board = asyncio.run(client.request_move(["X"] + [None] * 8))

    assert board == ["X", "O"] + [None] * 7
    assert seen["method"] == "POST"
    assert seen["url"] == "http://robot.test/move"
    assert seen["body"] == {"board": ["X"] + [None] * 8}


def test_trailing_slash_in_base_url():
    client = RobotMoveClient("http://robot.test/")
    assert client.move_url == "http://robot.test/move"


def test_error_status_raises_service_error():
    client = robot_client(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(ServiceError) as excinfo:
        asyncio.run(client.request_move([None] * 9))
    assert not isinstance(excinfo.value, ServiceProtocolViolation)


def test_connection_failure_raises_service_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = robot_client(handler)
    with pytest.raises(ServiceError):
        asyncio.run(client.request_move([None] * 9))


def test_malformed_json_raises_service_error():
    client = robot_client(lambda request: httpx.Response(200, text="not json"))
    with pytest.raises(ServiceError):
        asyncio.run(client.request_move([None] * 9))


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"board": [None] * 8},
        {"board": ["Z"] + [None] * 8},
        {"cells": [None] * 9},
    ],
)
def test_bad_board_shape_is_a_violation(payload):
    client = robot_client(lambda request: httpx.Response(200, json=payload))
    with pytest.raises(ServiceProtocolViolation):
        asyncio.run(client.request_move([None] * 9))


# ---- full robot turn ----


def test_robot_turn_applies_reply():
    game = robot_game(first_move=0)
    client = robot_client(reply_with(["X", None, None, None, "O", None, None, None, None]))

    assert asyncio.run(play_robot_turn(game, client)) is True
    assert game.board[4] == "O"
    assert game.current_player == "X"
    assert game.robot_pending is False


def test_robot_turn_with_unchanged_board_applies_nothing():
    game = robot_game(first_move=0)
    client = robot_client(reply_with(["X"] + [None] * 8))

    assert asyncio.run(play_robot_turn(game, client)) is False
    assert game.board == ["X"] + [None] * 8
    assert game.current_player == "O"
    assert game.robot_pending is False


def test_robot_turn_with_two_marks_surfaces_error():
    statuses = []
    game = robot_game(first_move=0)
    game.listener.on_status_change = statuses.append
    client = robot_client(reply_with(["X", "O", "O"] + [None] * 6))

    assert asyncio.run(play_robot_turn(game, client)) is False
    assert game.board == ["X"] + [None] * 8
    assert statuses[-1] == PROTOCOL_ERROR_STATUS


def test_robot_turn_connection_error_surfaces_message():
    statuses = []
    game = robot_game(first_move=0)
    game.listener.on_status_change = statuses.append

    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    assert asyncio.run(play_robot_turn(game, robot_client(handler))) is False
    assert statuses[-1] == CONNECTION_ERROR_STATUS
    assert game.current_player == "O"
    assert game.needs_robot_move is True


def test_robot_turn_not_started_when_not_owed():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"board": [None] * 9})

    game = TicTacToeGame(mode=Mode.LOCAL)
    game.play(0)
    assert asyncio.run(play_robot_turn(game, robot_client(handler))) is False
    assert calls == []


def test_reply_after_reset_is_discarded():
    game = robot_game(first_move=0)

    def handler(request):
        game.reset()
        return httpx.Response(200, json={"board": ["X", None, None, None, "O"] + [None] * 4})

    assert asyncio.run(play_robot_turn(game, robot_client(handler))) is False
    assert game.board == [None] * 9
    assert game.current_player == "X"
