import random
from typing import Dict, List, NamedTuple, Optional, Tuple

SIZE = 4  # 棋盘大小：4x4
WIN_TILE = 2048
DIRECTIONS = ("left", "right", "up", "down")  # 提示时按此顺序检查

WIN = "win"
LOSE = "lose"

Board = List[List[int]]
Row = List[int]
Cell = Tuple[int, int]
MergePair = Tuple[Cell, Cell]


class Hint(NamedTuple):
    """提示结果；direction 为 None 表示没有可走的方向。"""
    direction: Optional[str]
    gain: int
    pairs: List[MergePair]


def new_board() -> Board:
    """创建一个空棋盘。"""
    return [[0] * SIZE for _ in range(SIZE)]


def copy_board(board: Board) -> Board:
    """深拷贝棋盘。"""
    return [row[:] for row in board]


def empty_cells(board: Board) -> List[Cell]:
    """所有空格的位置。"""
    return [
        (r, c)
        for r in range(SIZE)
        for c in range(SIZE)
        if board[r][c] == 0
    ]


def add_random_tile(board: Board, rng: Optional[random.Random] = None) -> Optional[Tuple[int, int]]:
    """
    在空格随机生成一个 2 或 4（2 的概率为 90%）
    返回生成的位置 (r, c)，如果棋盘已满返回 None
    """
    rng = rng or random
    cells = empty_cells(board)
    if not cells:
        return None

    r, c = rng.choice(cells)
    board[r][c] = 4 if rng.random() < 0.1 else 2
    return r, c


def random_start_board(rng: Optional[random.Random] = None) -> Board:
    """新游戏初始棋盘：随机出现两个数字。"""
    board = new_board()
    add_random_tile(board, rng)
    add_random_tile(board, rng)
    return board


def compress_and_merge_row(row: Row) -> Tuple[Row, int]:
    """
    向左挤压并合并一行，同时返回本行增加的分数。
    每个数字一次移动中最多合并一次。
    例如: [2, 0, 2, 4] -> [4, 4, 0, 0], score_gain = 4
          [2, 2, 2, 2] -> [4, 4, 0, 0], score_gain = 8
    """
    arr = [x for x in row if x != 0]
    new_row: Row = []
    score_gain = 0
    i = 0

    while i < len(arr):
        if i + 1 < len(arr) and arr[i] == arr[i + 1]:
            merged = arr[i] * 2
            new_row.append(merged)
            score_gain += merged
            i += 2
        else:
            new_row.append(arr[i])
            i += 1

    new_row += [0] * (len(row) - len(new_row))
    return new_row, score_gain


def move_left(board: Board) -> Tuple[Board, int]:
    """整盘向左移动。"""
    new_board_state: Board = []
    total_gain = 0
    for row in board:
        new_row, gain = compress_and_merge_row(row)
        new_board_state.append(new_row)
        total_gain += gain
    return new_board_state, total_gain


def reverse_rows(board: Board) -> Board:
    """每一行做反转。"""
    return [list(reversed(row)) for row in board]


def transpose(board: Board) -> Board:
    """矩阵转置。"""
    return [list(row) for row in zip(*board)]


def move_right(board: Board) -> Tuple[Board, int]:
    """整盘向右移动。"""
    reversed_board = reverse_rows(board)
    moved, gain = move_left(reversed_board)
    return reverse_rows(moved), gain


def move_up(board: Board) -> Tuple[Board, int]:
    """整盘向上移动。"""
    transposed = transpose(board)
    moved, gain = move_left(transposed)
    return transpose(moved), gain


def move_down(board: Board) -> Tuple[Board, int]:
    """整盘向下移动。"""
    transposed = transpose(board)
    moved, gain = move_right(transposed)
    return transpose(moved), gain


# 移动方向映射
MOVES = {
    "left": move_left,
    "right": move_right,
    "up": move_up,
    "down": move_down,
}


def apply_move(board: Board, direction: str) -> Tuple[Board, int, bool]:
    """
    按方向移动整盘，不修改传入的棋盘。
    返回 (新棋盘, 本次得分, 是否有格子发生变化)
    """
    move_func = MOVES.get(direction)
    if move_func is None:
        raise ValueError(f"未知方向: {direction!r}")

    new_board_state, gain = move_func(board)
    return new_board_state, gain, new_board_state != board


def can_move(board: Board) -> bool:
    """判断是否还能继续游戏。"""
    for r in range(SIZE):
        for c in range(SIZE):
            if board[r][c] == 0:
                return True

    for r in range(SIZE):
        for c in range(SIZE - 1):
            if board[r][c] == board[r][c + 1]:
                return True

    for c in range(SIZE):
        for r in range(SIZE - 1):
            if board[r][c] == board[r + 1][c]:
                return True

    return False


def has_tile(board: Board, value: int) -> bool:
    """棋盘上是否有某个数字。"""
    return any(value in row for row in board)


def check_game_end(board: Board) -> Optional[str]:
    """
    判断游戏是否结束。
    出现 2048 返回 WIN（优先判断），无路可走返回 LOSE，否则返回 None
    """
    if has_tile(board, WIN_TILE):
        return WIN
    if can_move(board):
        return None
    return LOSE


def get_max_tile(board: Board) -> int:
    """取得当前最大的数字。"""
    return max(max(row) for row in board)


def shuffle_tiles(board: Board, rng: Optional[random.Random] = None) -> Board:
    """
    把现有数字随机重新摆放到新棋盘上，不修改传入的棋盘。
    数字的多重集合保持不变。
    """
    rng = rng or random
    values = [value for row in board for value in row if value != 0]
    positions = [(r, c) for r in range(SIZE) for c in range(SIZE)]
    rng.shuffle(positions)

    shuffled = new_board()
    for (r, c), value in zip(positions, values):
        shuffled[r][c] = value
    return shuffled


def line_coords(direction: str, index: int) -> List[Cell]:
    """第 index 条线上的坐标，按移动方向排序（靠近目标边的在前）。"""
    if direction == "left":
        return [(index, c) for c in range(SIZE)]
    if direction == "right":
        return [(index, c) for c in reversed(range(SIZE))]
    if direction == "up":
        return [(r, index) for r in range(SIZE)]
    if direction == "down":
        return [(r, index) for r in reversed(range(SIZE))]
    raise ValueError(f"未知方向: {direction!r}")


def find_merge_pairs(board: Board, direction: str) -> List[MergePair]:
    """
    找出该方向移动时会合并的格子对，用于提示高亮。
    只有挤压后紧挨着的相同数字才会合并，不会跳过不同的数字。
    """
    pairs: List[MergePair] = []
    for index in range(SIZE):
        tiles = [(cell, board[cell[0]][cell[1]]) for cell in line_coords(direction, index)]
        tiles = [(cell, value) for cell, value in tiles if value != 0]
        i = 0
        while i < len(tiles):
            if i + 1 < len(tiles) and tiles[i][1] == tiles[i + 1][1]:
                pairs.append((tiles[i][0], tiles[i + 1][0]))
                i += 2
            else:
                i += 1
    return pairs


def evaluate_moves(board: Board) -> Dict[str, Tuple[bool, int]]:
    """对四个方向分别试走一步，返回 {方向: (是否移动, 得分)}。"""
    results = {}
    for direction in DIRECTIONS:
        _, gain, moved = apply_move(board, direction)
        results[direction] = (moved, gain)
    return results


def suggest_move(board: Board) -> Hint:
    """
    贪心看一步：在能走的方向中选得分最高的，同分取先检查到的。
    都不能合并时，取第一个能走的方向。
    """
    best_direction = None
    best_gain = 0
    first_legal = None

    for direction, (moved, gain) in evaluate_moves(board).items():
        if not moved:
            continue
        if first_legal is None:
            first_legal = direction
        if gain > best_gain:
            best_direction, best_gain = direction, gain

    direction = best_direction or first_legal
    if direction is None:
        return Hint(None, 0, [])
    return Hint(direction, best_gain, find_merge_pairs(board, direction))
