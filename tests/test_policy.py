import chess
import pytest

import chess_logic
from stonefish.config import EngineConfig
from stonefish.policy import (
    PolicyContext,
    RepetitionTable,
    SafetyBucket,
    build_policy_context,
    classify,
    is_drawish,
    is_immediate_draw,
    is_mate_in_one,
    material_balance,
    opponent_has_mate_in_one,
)

SHUFFLE = ("g1f3", "g8f6", "f3g1", "f6g8")


def play(board: chess.Board, moves) -> chess.Board:
    for uci in moves:
        board.push_uci(uci)
    return board


def test_material_balance_is_relative_to_color() -> None:
    assert material_balance(chess.Board(), chess.WHITE) == 0
    board = chess.Board("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
    assert material_balance(board, chess.WHITE) == 5
    assert material_balance(board, chess.BLACK) == -5


@pytest.mark.parametrize(
    "fen, allowed",
    [
        ("4k3/8/8/8/8/8/8/R3K3 w - - 0 1", False),
        ("4k3/8/8/8/8/8/8/R3K3 b - - 0 1", True),
        ("4k3/8/8/8/8/8/8/3BK3 b - - 0 1", False),
        ("4k3/8/8/8/8/8/8/3NKB2 b - - 0 1", True),
    ],
)
def test_draws_allowed_only_when_far_enough_behind(fen: str, allowed: bool) -> None:
    board = chess.Board(fen)
    context = build_policy_context(board, EngineConfig())
    assert context.color == board.turn
    assert context.draw_allowed is allowed


def test_repetition_table_replays_full_history() -> None:
    board = play(chess.Board(), SHUFFLE)
    table = RepetitionTable.from_board(board)
    assert table.count(board) == 2
    assert table.count_key(chess_logic.position_key(chess.Board())) == 2
    assert len(table) == 5

    table.clear()
    assert table.count(board) == 0


def test_repetition_table_starts_from_fen_root() -> None:
    board = chess.Board("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
    play(board, ("a1a2", "e8e7", "a2a1", "e7e8"))
    table = RepetitionTable.from_board(board)
    assert table.count(board) == 2


def test_mate_in_one_both_directions() -> None:
    board = play(chess.Board(), ("f2f3", "e7e5", "g2g4"))
    assert is_mate_in_one(board, chess.Move.from_uci("d8h4")) is True
    assert is_mate_in_one(board, chess.Move.from_uci("d8g5")) is False

    before = play(chess.Board(), ("f2f3", "e7e5"))
    blunder = chess_logic.simulate_move(before, chess.Move.from_uci("g2g4"))
    assert opponent_has_mate_in_one(blunder) is True
    solid = chess_logic.simulate_move(before, chess.Move.from_uci("b1c3"))
    assert opponent_has_mate_in_one(solid) is False


def test_immediate_draws() -> None:
    assert is_immediate_draw(chess.Board("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")) is True
    assert is_immediate_draw(chess.Board("4k3/8/8/8/8/8/8/4K3 w - - 0 1")) is True
    assert is_immediate_draw(chess.Board()) is False


def test_fifty_move_threshold_is_drawish() -> None:
    config = EngineConfig()
    near_limit = chess.Board("4k3/8/8/8/8/8/8/R3K3 w - - 99 80")
    simulation = chess_logic.simulate_move(near_limit, chess.Move.from_uci("e1d2"))
    assert is_drawish(simulation, RepetitionTable(), config) is True

    fresh = chess.Board("4k3/8/8/8/8/8/8/R3K3 w - - 10 80")
    simulation = chess_logic.simulate_move(fresh, chess.Move.from_uci("e1d2"))
    assert is_drawish(simulation, RepetitionTable(), config) is False


def test_repetition_completing_move_is_drawish() -> None:
    config = EngineConfig()
    board = play(chess.Board(), SHUFFLE + ("g1f3", "g8f6", "f3g1"))
    table = RepetitionTable.from_board(board)

    repeat = chess_logic.simulate_move(board, chess.Move.from_uci("f6g8"))
    assert is_drawish(repeat, table, config) is True

    fresh = chess_logic.simulate_move(board, chess.Move.from_uci("e7e5"))
    assert is_drawish(fresh, table, config) is False


def test_classify_unsafe_when_opponent_mates() -> None:
    board = play(chess.Board(), ("f2f3", "e7e5"))
    context = build_policy_context(board, EngineConfig())
    simulation = chess_logic.simulate_move(board, chess.Move.from_uci("g2g4"))
    assert classify(simulation, context, EngineConfig()) is SafetyBucket.UNSAFE


def test_classify_demotes_stalemate_only_when_ahead() -> None:
    config = EngineConfig()
    board = chess.Board("7k/8/6K1/8/8/8/8/5Q2 w - - 0 1")
    stalemating = chess_logic.simulate_move(board, chess.Move.from_uci("f1f7"))
    assert chess_logic.is_stalemate(stalemating)

    ahead = build_policy_context(board, config)
    assert ahead.draw_allowed is False
    assert classify(stalemating, ahead, config) is SafetyBucket.DRAWISH

    behind = PolicyContext(
        color=chess.WHITE,
        material_balance=-5,
        draw_allowed=True,
        repetitions=RepetitionTable(),
        halfmove_clock=0,
    )
    assert classify(stalemating, behind, config) is SafetyBucket.SAFE


def test_classify_safe_in_quiet_position() -> None:
    board = chess.Board()
    context = build_policy_context(board, EngineConfig())
    simulation = chess_logic.simulate_move(board, chess.Move.from_uci("e2e4"))
    assert classify(simulation, context, EngineConfig()) is SafetyBucket.SAFE


@pytest.mark.parametrize(
    "fen, moves, drawing, quiet",
    [
        # Kxd5 leaves king and bishop against a bare king.
        ("8/8/4k3/8/3P4/8/8/2B1K3 w - - 0 1", (), "d4d5", "c1a3"),
        # Rxh3 stalemates the white king.
        ("7r/8/8/7R/8/p7/P1k5/K7 w - - 0 1", (), "h5h3", "h5g5"),
        # Nxg8 would repeat the start position a third time.
        (chess.STARTING_FEN, SHUFFLE + ("g1f3", "g8f6"), "f3g1", "e2e4"),
        # Any reply reaches the hundredth quiet ply.
        ("4k3/8/8/8/8/8/8/R3K3 w - - 98 80", (), "e1d2", None),
    ],
)
def test_classify_demotes_moves_allowing_a_forced_draw_reply(fen: str, moves, drawing: str, quiet) -> None:
    config = EngineConfig()
    board = play(chess.Board(fen), moves)
    context = build_policy_context(board, config)
    assert context.draw_allowed is False

    simulation = chess_logic.simulate_move(board, chess.Move.from_uci(drawing))
    assert is_drawish(simulation, context.repetitions, config) is True
    assert classify(simulation, context, config) is SafetyBucket.DRAWISH

    if quiet is not None:
        simulation = chess_logic.simulate_move(board, chess.Move.from_uci(quiet))
        assert classify(simulation, context, config) is SafetyBucket.SAFE
