"""
读写持久化状态（Flask session 或任意 dict）。
数据缺失或格式不对时一律使用默认值，不抛异常。
"""
import logging
import random
from typing import Any, List, MutableMapping, Optional

from game2048 import LOSE, SIZE, WIN, Board
from game_state import (
    DEFAULT_PLAYER_NAME,
    LEADERBOARD_SIZE,
    GameState,
    LeaderboardEntry,
    Snapshot,
)

logger = logging.getLogger(__name__)

Store = MutableMapping[str, Any]

BEST_SCORE_KEY = "best_score"
LEADERBOARD_KEY = "leaderboard"
PLAYER_NAME_KEY = "player_name"


def _is_tile(value: Any) -> bool:
    """0 或 2 的幂。"""
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        return False
    return value == 0 or (value >= 2 and value & (value - 1) == 0)


def _parse_board(raw: Any) -> Optional[Board]:
    if not isinstance(raw, (list, tuple)) or len(raw) != SIZE:
        return None
    board: Board = []
    for row in raw:
        if not isinstance(row, (list, tuple)) or len(row) != SIZE:
            return None
        if not all(_is_tile(value) for value in row):
            return None
        board.append(list(row))
    return board


def _parse_score(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    try:
        score = int(raw)
    except (TypeError, ValueError):
        return None
    return score if score >= 0 else None


def load_best_score(store: Store) -> int:
    score = _parse_score(store.get(BEST_SCORE_KEY))
    if score is None:
        if BEST_SCORE_KEY in store:
            logger.debug("最高分格式不对，按 0 处理: %r", store.get(BEST_SCORE_KEY))
        return 0
    return score


def save_best_score(store: Store, best_score: int) -> None:
    store[BEST_SCORE_KEY] = best_score


def load_leaderboard(store: Store) -> List[LeaderboardEntry]:
    """读取排行榜，任何一条记录不合法都视为空榜。"""
    raw = store.get(LEADERBOARD_KEY)
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        logger.debug("排行榜格式不对，按空榜处理: %r", raw)
        return []

    entries: List[LeaderboardEntry] = []
    for item in raw:
        if not isinstance(item, dict) or not isinstance(item.get("name"), str):
            logger.debug("排行榜记录格式不对，按空榜处理: %r", item)
            return []
        score = _parse_score(item.get("score"))
        if score is None:
            logger.debug("排行榜分数格式不对，按空榜处理: %r", item)
            return []
        entries.append({"name": item["name"], "score": score})

    entries.sort(key=lambda entry: entry["score"], reverse=True)
    return entries[:LEADERBOARD_SIZE]


def save_leaderboard(store: Store, leaderboard: List[LeaderboardEntry]) -> None:
    store[LEADERBOARD_KEY] = [dict(entry) for entry in leaderboard]


def load_player_name(store: Store) -> str:
    name = store.get(PLAYER_NAME_KEY)
    if not isinstance(name, str) or not name.strip():
        return DEFAULT_PLAYER_NAME
    return name.strip()


def save_player_name(store: Store, name: str) -> None:
    store[PLAYER_NAME_KEY] = name.strip() or DEFAULT_PLAYER_NAME


def load_game(store: Store, rng: Optional[random.Random] = None) -> Optional[GameState]:
    """
    从 store 恢复当前这局游戏。
    棋盘缺失或不合法时返回 None，由调用方开新局。
    """
    board = _parse_board(store.get("board"))
    if board is None:
        if "board" in store:
            logger.warning("保存的棋盘不合法，将重新开始")
        return None

    score = _parse_score(store.get("score")) or 0

    previous = None
    raw_previous = store.get("previous")
    if isinstance(raw_previous, dict):
        previous_board = _parse_board(raw_previous.get("grid"))
        previous_score = _parse_score(raw_previous.get("score"))
        if previous_board is not None and previous_score is not None:
            previous = Snapshot.capture(previous_board, previous_score)

    outcome = store.get("outcome")
    if outcome not in (WIN, LOSE):
        outcome = None

    return GameState(
        board=board,
        score=score,
        best_score=load_best_score(store),
        previous=previous,
        outcome=outcome,
        player_name=load_player_name(store),
        leaderboard=load_leaderboard(store),
        recorded=store.get("recorded") is True,
        rng=rng,
    )


def save_game(store: Store, game: GameState) -> None:
    """保存游戏状态到 store。"""
    previous = None
    if game.previous is not None:
        previous = {
            "grid": [list(row) for row in game.previous.grid],
            "score": game.previous.score,
        }

    store.update({
        "board": [row[:] for row in game.board],
        "score": game.score,
        "previous": previous,
        "outcome": game.outcome,
        "recorded": game.recorded,
    })
    save_best_score(store, game.best_score)
    save_leaderboard(store, game.leaderboard)
    save_player_name(store, game.player_name)
