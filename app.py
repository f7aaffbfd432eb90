import logging
from typing import Any, Dict, List, Set

from flask import Flask, flash, jsonify, redirect, render_template, request, session, url_for

from game2048 import DIRECTIONS, SIZE, Cell, Hint
from game_state import GameState
from storage import (
    load_best_score,
    load_game,
    load_leaderboard,
    load_player_name,
    save_game,
    save_player_name,
)

app = Flask(__name__)
app.config["SECRET_KEY"] = "change_this_to_a_random_secret_key"
# 环境变量 GAME2048_* 可覆盖上面的配置，例如 GAME2048_SECRET_KEY
app.config.from_prefixed_env("GAME2048")

# 方向中文名，用于提示信息
DIRECTION_NAMES = {
    "left": "左",
    "right": "右",
    "up": "上",
    "down": "下",
}


def start_new_game() -> GameState:
    """初始化一局新游戏（沿用已保存的最高分、玩家名和排行榜）。"""
    game = GameState.new_game(
        best_score=load_best_score(session),
        player_name=load_player_name(session),
        leaderboard=load_leaderboard(session),
    )
    save_game(session, game)
    return game


def get_game() -> GameState:
    """获取当前游戏状态，没有或损坏时开新局。"""
    game = load_game(session)
    if game is None:
        app.logger.debug("session 中没有可用的棋盘，开始新游戏")
        game = start_new_game()
    return game


def hint_to_dict(hint: Hint) -> Dict[str, Any]:
    """把提示结果转成可放进 session / JSON 的字典。"""
    return {
        "direction": hint.direction,
        "gain": hint.gain,
        "pairs": [[list(a), list(b)] for a, b in hint.pairs],
    }


def highlighted_cells(hint_data: Dict[str, Any]) -> Set[Cell]:
    """提示中需要高亮的格子。"""
    cells: Set[Cell] = set()
    for pair in hint_data.get("pairs", []):
        for r, c in pair:
            cells.add((r, c))
    return cells


@app.route("/")
def index():
    """游戏主页面。"""
    game = get_game()
    # 提示只显示一次
    hint_data = session.pop("hint", None) or {}

    return render_template(
        "index.html",
        size=SIZE,
        state=game.to_dict(),
        hint_direction=DIRECTION_NAMES.get(hint_data.get("direction")),
        highlighted=highlighted_cells(hint_data),
    )


@app.route("/move", methods=["POST"])
def move():
    """处理移动操作。"""
    direction = request.form.get("direction")
    game = get_game()
    # 棋盘可能变化，旧的提示作废
    session.pop("hint", None)

    if game.game_over:
        return redirect(url_for("index"))
    if direction not in DIRECTIONS:
        app.logger.debug("忽略未知方向: %r", direction)
        return redirect(url_for("index"))

    result = game.move(direction)
    app.logger.debug("移动 %s: moved=%s gain=%d", direction, result.moved, result.gain)

    save_game(session, game)
    return redirect(url_for("index"))


@app.route("/undo", methods=["POST"])
def undo():
    """撤回一步。"""
    game = get_game()
    session.pop("hint", None)
    if not game.undo():
        flash("没有可以撤回的步骤")
        return redirect(url_for("index"))

    save_game(session, game)
    return redirect(url_for("index"))


@app.route("/reset", methods=["POST"])
def reset():
    """重新开始一局游戏（保留最高分和排行榜）。"""
    game = get_game()
    session.pop("hint", None)
    game.restart()
    save_game(session, game)
    return redirect(url_for("index"))


@app.route("/shuffle", methods=["POST"])
def shuffle():
    """打乱棋盘。"""
    game = get_game()
    session.pop("hint", None)
    if game.game_over:
        return redirect(url_for("index"))

    game.shuffle()
    save_game(session, game)
    return redirect(url_for("index"))


@app.route("/hint", methods=["POST"])
def hint():
    """给出下一步建议。"""
    game = get_game()
    result = game.hint()
    if result.direction is None:
        flash("没有可以移动的方向")
    else:
        session["hint"] = hint_to_dict(result)
    return redirect(url_for("index"))


@app.route("/name", methods=["POST"])
def set_name():
    """修改玩家名，空名字使用默认值。"""
    save_player_name(session, request.form.get("name", ""))
    return redirect(url_for("index"))


@app.route("/api/state")
def api_state():
    """当前游戏状态（JSON）。"""
    return jsonify(get_game().to_dict())


@app.route("/api/hint")
def api_hint():
    """下一步建议（JSON）。"""
    return jsonify(hint_to_dict(get_game().hint()))


def leaderboard_rows(leaderboard: List[Dict[str, Any]]) -> List[str]:
    """排行榜每一行的显示文字。"""
    return [f"{i}. {entry['name']} - {entry['score']}" for i, entry in enumerate(leaderboard, 1)]


app.jinja_env.globals["leaderboard_rows"] = leaderboard_rows


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app.run(debug=True)
