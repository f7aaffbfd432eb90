import random

import pytest

from game2048 import LOSE, WIN
from game_state import (
    DEFAULT_PLAYER_NAME,
    GameState,
    MESSAGES,
    Snapshot,
    update_leaderboard,
)


def _empty():
    return [[0] * 4 for _ in range(4)]


def _tiles(board):
    return sorted(value for row in board for value in row if value != 0)


def _game(board, **kwargs):
    return GameState(board=board, rng=random.Random(0), **kwargs)


def test_new_game_has_two_tiles():
    game = GameState.new_game(rng=random.Random(1))
    assert len(_tiles(game.board)) == 2
    assert game.score == 0
    assert not game.can_undo
    assert game.player_name == DEFAULT_PLAYER_NAME


def test_move_merges_spawns_and_scores():
    board = _empty()
    board[0] = [2, 2, 4, 4]
    game = _game(board)

    result = game.move("left")

    assert result.moved
    assert result.gain == 12
    assert result.outcome is None
    assert game.score == 12
    assert game.best_score == 12
    assert game.board[0][:2] == [4, 8]
    # 合并后剩 2 个数字，再加 1 个新生成的
    assert len(_tiles(game.board)) == 3
    r, c = result.spawned
    assert game.board[r][c] in (2, 4)


def test_noop_move_keeps_state_but_saves_snapshot():
    board = _empty()
    board[0] = [2, 4, 0, 0]
    game = _game(board, score=10)

    result = game.move("left")

    assert not result.moved
    assert result.spawned is None
    assert game.board[0] == [2, 4, 0, 0]
    assert game.score == 10
    assert game.can_undo
    assert game.undo()
    assert game.board[0] == [2, 4, 0, 0]
    assert game.score == 10


def test_move_unknown_direction():
    game = _game(_empty())
    with pytest.raises(ValueError):
        game.move("sideways")


def test_undo_restores_exact_state_once():
    board = _empty()
    board[1] = [4, 4, 0, 2]
    game = _game(board, score=20)
    before = [row[:] for row in game.board]

    game.move("right")
    assert game.score == 28

    assert game.undo()
    assert game.board == before
    assert game.score == 20

    # 只有一层历史
    assert not game.undo()
    assert game.board == before
    assert game.score == 20


def test_undo_without_history_is_noop():
    game = _game(_empty())
    assert not game.undo()


def test_snapshot_is_not_affected_by_later_moves():
    board = _empty()
    board[0] = [2, 2, 0, 0]
    game = _game(board)
    game.move("left")
    snapshot = game.previous

    game.board[0][0] = 1024
    assert snapshot.grid[0] == (2, 2, 0, 0)

    restored = snapshot.restore()
    restored[0][0] = 512
    assert snapshot.restore()[0] == [2, 2, 0, 0]


def test_best_score_not_lowered_by_undo_or_restart():
    board = _empty()
    board[0] = [8, 8, 0, 0]
    game = _game(board, best_score=5)
    game.move("left")
    assert game.best_score == 16

    game.undo()
    assert game.score == 0
    assert game.best_score == 16

    game.restart()
    assert game.best_score == 16


def test_restart_clears_game():
    board = _empty()
    board[0] = [1024, 1024, 0, 0]
    game = _game(board, player_name="Alice")
    game.move("left")
    assert game.game_over

    game.restart()
    assert game.score == 0
    assert not game.game_over
    assert not game.can_undo
    assert len(_tiles(game.board)) == 2
    assert game.player_name == "Alice"
    assert game.leaderboard == [{"name": "Alice", "score": 2048}]


def test_shuffle_keeps_tiles_and_score():
    board = [
        [2, 0, 4, 0],
        [0, 8, 0, 0],
        [2, 0, 0, 16],
        [0, 0, 32, 0],
    ]
    game = _game([row[:] for row in board], score=44)

    result = game.shuffle()

    r, c = result.spawned
    spawned_value = game.board[r][c]
    assert spawned_value in (2, 4)
    after = _tiles(game.board)
    after.remove(spawned_value)
    assert after == _tiles(board)
    assert game.score == 44

    assert game.undo()
    assert game.board == board


def test_shuffle_is_reproducible():
    board = [[2, 4, 8, 16]] + [[0] * 4 for _ in range(3)]
    first = GameState(board=[row[:] for row in board], rng=random.Random(3))
    second = GameState(board=[row[:] for row in board], rng=random.Random(3))
    first.shuffle()
    second.shuffle()
    assert first.board == second.board


def test_win_updates_leaderboard_once():
    board = _empty()
    board[0] = [1024, 1024, 2, 2]
    game = _game(board, player_name="Bob")

    result = game.move("left")

    assert result.outcome == WIN
    assert game.outcome == WIN
    assert game.message == MESSAGES[WIN]
    assert game.leaderboard == [{"name": "Bob", "score": 2052}]

    # 2048 还留在棋盘上，继续移动不能再次记分
    moves = [game.move(direction) for direction in ("right", "down", "left", "up")]
    assert any(result.moved for result in moves)
    assert game.outcome == WIN
    assert game.leaderboard == [{"name": "Bob", "score": 2052}]


def test_undo_then_win_again_records_once():
    board = _empty()
    board[0] = [1024, 1024, 0, 0]
    game = _game(board, player_name="Bob")

    game.move("left")
    assert game.undo()
    assert not game.game_over

    result = game.move("left")
    assert result.outcome == WIN
    assert game.game_over
    assert game.leaderboard == [{"name": "Bob", "score": 2048}]

    # 新的一局可以再次上榜
    game.restart()
    game.board = [[1024, 1024, 0, 0]] + [[0] * 4 for _ in range(3)]
    game.move("left")
    assert game.leaderboard == [
        {"name": "Bob", "score": 2048},
        {"name": "Bob", "score": 2048},
    ]


def test_shuffle_does_not_check_game_end():
    # 15 个互不相同的数字（含 2048），打乱并补一个新数字后棋盘满了
    values = [2 ** n for n in range(2, 17)]
    board = [values[i:i + 4] for i in range(0, 16, 4)]
    board[3].append(0)
    game = _game(board, leaderboard=[{"name": "a", "score": 10}])

    result = game.shuffle()

    assert result.spawned is not None
    assert all(value != 0 for row in game.board for value in row)
    assert game.outcome is None
    assert game.leaderboard == [{"name": "a", "score": 10}]


def test_noop_move_on_lost_board_does_not_end_game():
    board = [
        [2, 4, 8, 16],
        [16, 8, 4, 2],
        [2, 4, 8, 16],
        [16, 8, 4, 2],
    ]
    game = _game(board, score=50)

    for direction in ("left", "right", "up", "down"):
        result = game.move(direction)
        assert not result.moved
        assert result.outcome is None

    assert game.outcome is None
    assert game.leaderboard == []


def test_lose_is_detected_after_last_move():
    # 向左移动后只剩 (0, 3) 一个空位，新数字无论是 2 还是 4 都无法合并
    board = [
        [0, 2, 4, 8],
        [8, 16, 32, 64],
        [2, 4, 8, 16],
        [8, 16, 32, 64],
    ]
    game = _game(board, score=100)

    result = game.move("left")

    assert result.moved
    assert result.outcome == LOSE
    assert game.game_over
    assert game.message == MESSAGES[LOSE]
    assert game.leaderboard == [{"name": DEFAULT_PLAYER_NAME, "score": 100}]


def test_undo_clears_outcome():
    board = _empty()
    board[0] = [1024, 1024, 0, 0]
    game = _game(board)
    game.move("left")
    assert game.game_over

    game.undo()
    assert not game.game_over
    assert game.message is None


def test_hint_does_not_change_game():
    board = _empty()
    board[2] = [0, 4, 0, 4]
    game = _game(board, score=8)
    hint = game.hint()
    assert hint.direction == "left"
    assert hint.gain == 8
    assert game.board[2] == [0, 4, 0, 4]
    assert game.score == 8
    assert not game.can_undo


def test_update_leaderboard_keeps_top_three():
    board = [
        {"name": "a", "score": 300},
        {"name": "b", "score": 200},
        {"name": "c", "score": 100},
    ]
    assert update_leaderboard(board, "d", 250) == [
        {"name": "a", "score": 300},
        {"name": "d", "score": 250},
        {"name": "b", "score": 200},
    ]
    assert update_leaderboard(board, "e", 50) == board
    # 同分时先上榜的在前
    assert update_leaderboard(board, "f", 200)[1:] == [
        {"name": "b", "score": 200},
        {"name": "f", "score": 200},
    ]


def test_to_dict():
    board = _empty()
    board[3][3] = 64
    game = _game(board, score=12, best_score=40, player_name="Zoe")
    data = game.to_dict()
    assert data["board"] == board
    assert data["score"] == 12
    assert data["best_score"] == 40
    assert data["max_tile"] == 64
    assert data["game_over"] is False
    assert data["can_undo"] is False
    assert data["player_name"] == "Zoe"
    assert data["leaderboard"] == []


def test_snapshot_capture():
    snapshot = Snapshot.capture([[2, 0, 0, 0]] + [[0] * 4 for _ in range(3)], 6)
    assert snapshot.score == 6
    assert snapshot.grid[0] == (2, 0, 0, 0)
