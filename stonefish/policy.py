"""Mate and draw policy: decides which candidate moves are safe to play.

The engine only accepts drawish continuations when it is clearly behind on
material, and it never walks into a mate-in-one if anything else is available.
Repetition is judged on the full game history through :class:`RepetitionTable`,
which is built once per decision (or kept up to date by the caller) instead of
replaying the game for every candidate.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

import chess

import chess_logic
from stonefish.config import EngineConfig, piece_value


class SafetyBucket(Enum):
    SAFE = "safe-non-drawish"
    DRAWISH = "safe-or-drawish"
    UNSAFE = "unsafe"


class RepetitionTable:
    """Occurrence counts of position keys over a game's history."""

    def __init__(self, keys: Iterable[int] = ()) -> None:
        self._counts: Counter[int] = Counter(keys)

    @classmethod
    def from_board(cls, board: chess.Board) -> "RepetitionTable":
        """Replay ``board``'s move stack from its root, counting every position."""

        replay = board.root()
        table = cls()
        table.push(replay)
        for move in chess_logic.move_history(board):
            replay.push(move)
            table.push(replay)
        return table

    def push(self, board: chess.Board) -> None:
        self._counts[chess_logic.position_key(board)] += 1

    def count(self, board: chess.Board) -> int:
        return self._counts[chess_logic.position_key(board)]

    def count_key(self, key: int) -> int:
        return self._counts[key]

    def clear(self) -> None:
        self._counts.clear()

    def __len__(self) -> int:
        return sum(self._counts.values())


@dataclass
class PolicyContext:
    color: chess.Color
    material_balance: int
    draw_allowed: bool
    repetitions: RepetitionTable
    halfmove_clock: int


def material_balance(board: chess.Board, color: chess.Color) -> int:
    balance = 0
    for piece in board.piece_map().values():
        value = piece_value(piece.piece_type)
        balance += value if piece.color == color else -value
    return balance


def build_policy_context(
    board: chess.Board,
    config: EngineConfig,
    repetitions: Optional[RepetitionTable] = None,
) -> PolicyContext:
    color = board.turn
    balance = material_balance(board, color)
    return PolicyContext(
        color=color,
        material_balance=balance,
        draw_allowed=balance <= config.deficit_threshold,
        repetitions=repetitions if repetitions is not None else RepetitionTable.from_board(board),
        halfmove_clock=board.halfmove_clock,
    )


def is_mate_in_one(board: chess.Board, move: chess.Move) -> bool:
    return chess_logic.is_checkmate(chess_logic.simulate_move(board, move))


def is_immediate_draw(board: chess.Board) -> bool:
    return chess_logic.is_stalemate(board) or chess_logic.has_insufficient_material(board)


def _is_draw_position(board: chess.Board, repetitions: RepetitionTable, config: EngineConfig) -> bool:
    if is_immediate_draw(board):
        return True
    if repetitions.count(board) >= config.repetition_prior_occurrences:
        return True
    return board.halfmove_clock >= config.fifty_move_plies


def _any_reply(simulation: chess.Board, predicate: Callable[[chess.Board], bool]) -> bool:
    """Whether some opponent reply leads to a position matching ``predicate``."""

    board = simulation.copy(stack=False)
    for reply in list(board.legal_moves):
        board.push(reply)
        try:
            if predicate(board):
                return True
        finally:
            board.pop()
    return False


def opponent_has_mate_in_one(simulation: chess.Board) -> bool:
    return _any_reply(simulation, chess_logic.is_checkmate)


def is_drawish(simulation: chess.Board, repetitions: RepetitionTable, config: EngineConfig) -> bool:
    """Whether playing into ``simulation`` ends the game drawn or lets the opponent force it."""

    if _is_draw_position(simulation, repetitions, config):
        return True
    return _any_reply(simulation, lambda reply: _is_draw_position(reply, repetitions, config))


def classify(simulation: chess.Board, context: PolicyContext, config: EngineConfig) -> SafetyBucket:
    if opponent_has_mate_in_one(simulation):
        return SafetyBucket.UNSAFE
    # Drawishness only matters while draws are unwelcome.
    if not context.draw_allowed and is_drawish(simulation, context.repetitions, config):
        return SafetyBucket.DRAWISH
    return SafetyBucket.SAFE
