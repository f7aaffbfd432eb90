"""
一局游戏的完整状态：棋盘、分数、最高分、撤回快照、排行榜。
所有操作都作用在显式创建的 GameState 上，不依赖全局变量。
"""
import logging
import random
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from game2048 import (
    DIRECTIONS,
    LOSE,
    WIN,
    Board,
    Cell,
    Hint,
    add_random_tile,
    apply_move,
    check_game_end,
    copy_board,
    get_max_tile,
    random_start_board,
    shuffle_tiles,
    suggest_move,
)

logger = logging.getLogger(__name__)

LEADERBOARD_SIZE = 3          # 排行榜最多保留几名
DEFAULT_PLAYER_NAME = "Player"

# 游戏结束提示
MESSAGES = {
    WIN: "你赢了！🎉",
    LOSE: "游戏结束！",
}

LeaderboardEntry = Dict[str, Any]


class Snapshot(NamedTuple):
    """撤回用的快照，棋盘以元组保存，之后的移动不会改动它。"""
    grid: Tuple[Tuple[int, ...], ...]
    score: int

    @classmethod
    def capture(cls, board: Board, score: int) -> "Snapshot":
        return cls(tuple(tuple(row) for row in board), score)

    def restore(self) -> Board:
        return [list(row) for row in self.grid]


class MoveResult(NamedTuple):
    moved: bool
    gain: int
    outcome: Optional[str]
    spawned: Optional[Cell]


class ShuffleResult(NamedTuple):
    spawned: Optional[Cell]


def update_leaderboard(
    leaderboard: List[LeaderboardEntry],
    name: str,
    score: int,
    size: int = LEADERBOARD_SIZE,
) -> List[LeaderboardEntry]:
    """加入一条记录，按分数从高到低排序并只保留前 size 名。"""
    entries = [dict(entry) for entry in leaderboard]
    entries.append({"name": name, "score": score})
    # 同分时先上榜的排在前面
    entries.sort(key=lambda entry: entry["score"], reverse=True)
    return entries[:size]


class GameState:
    def __init__(
        self,
        board: Optional[Board] = None,
        score: int = 0,
        best_score: int = 0,
        previous: Optional[Snapshot] = None,
        outcome: Optional[str] = None,
        player_name: str = DEFAULT_PLAYER_NAME,
        leaderboard: Optional[List[LeaderboardEntry]] = None,
        recorded: bool = False,
        rng: Optional[random.Random] = None,
    ):
        self.rng = rng or random.Random()
        self.board = board if board is not None else random_start_board(self.rng)
        self.score = score
        self.best_score = max(best_score, score)
        self.previous = previous
        self.outcome = outcome
        self.player_name = player_name
        self.leaderboard = list(leaderboard or [])
        # 本局成绩是否已经记入排行榜，撤回后再次结束也只记一次
        self.recorded = recorded

    @classmethod
    def new_game(cls, rng: Optional[random.Random] = None, **kwargs: Any) -> "GameState":
        """开始新的一局（随机两个数字）。"""
        rng = rng or random.Random()
        return cls(board=random_start_board(rng), rng=rng, **kwargs)

    @property
    def game_over(self) -> bool:
        return self.outcome is not None

    @property
    def can_undo(self) -> bool:
        return self.previous is not None

    @property
    def message(self) -> Optional[str]:
        return MESSAGES.get(self.outcome)

    def _snapshot(self) -> None:
        self.previous = Snapshot.capture(self.board, self.score)

    def _update_best_score(self) -> None:
        if self.score > self.best_score:
            self.best_score = self.score

    def move(self, direction: str) -> MoveResult:
        """
        执行一次移动。
        移动前总会保存快照（即使这一步没有任何变化）；
        有变化时再生成新数字、更新最高分并判断输赢。
        """
        if direction not in DIRECTIONS:
            raise ValueError(f"未知方向: {direction!r}")

        self._snapshot()
        new_board, gain, moved = apply_move(self.board, direction)
        if not moved:
            return MoveResult(False, 0, None, None)

        self.board = new_board
        self.score += gain
        spawned = add_random_tile(self.board, self.rng)
        self._update_best_score()

        outcome = check_game_end(self.board)
        if outcome is not None and self.outcome is None:
            self.outcome = outcome
            logger.info("游戏结束 (%s)：%s 得分 %d", outcome, self.player_name, self.score)
            if not self.recorded:
                self.leaderboard = update_leaderboard(self.leaderboard, self.player_name, self.score)
                self.recorded = True

        return MoveResult(True, gain, outcome, spawned)

    def undo(self) -> bool:
        """撤回一步，只保存一层历史；没有历史时返回 False。"""
        if self.previous is None:
            return False

        self.board = self.previous.restore()
        self.score = self.previous.score
        self.previous = None
        self.outcome = None
        return True

    def restart(self) -> None:
        """重新开始（保留最高分、玩家名和排行榜）。"""
        self.board = random_start_board(self.rng)
        self.score = 0
        self.previous = None
        self.outcome = None
        self.recorded = False

    def shuffle(self) -> ShuffleResult:
        """打乱现有数字的位置并生成一个新数字，不加分，也不判断输赢。"""
        self._snapshot()
        self.board = shuffle_tiles(self.board, self.rng)
        return ShuffleResult(add_random_tile(self.board, self.rng))

    def hint(self) -> Hint:
        return suggest_move(self.board)

    def to_dict(self) -> Dict[str, Any]:
        """供页面和 JSON 接口展示的状态。"""
        return {
            "board": copy_board(self.board),
            "score": self.score,
            "best_score": self.best_score,
            "max_tile": get_max_tile(self.board),
            "game_over": self.game_over,
            "outcome": self.outcome,
            "message": self.message,
            "can_undo": self.can_undo,
            "player_name": self.player_name,
            "leaderboard": [dict(entry) for entry in self.leaderboard],
        }
