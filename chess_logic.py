"""Thin adapter over ``python-chess`` used as the engine's rules oracle.

Everything StoneFish needs to know about the rules of chess goes through the
helpers below so that the heuristic modules never touch board internals
directly and never mutate a board they did not create.
"""

from __future__ import annotations

from typing import List, Sequence

import chess
from chess import polyglot


class IllegalMove(ValueError):
    """Raised when a move is paired with a board it was not generated for."""


class InvalidGameHandle(TypeError):
    """Raised when an object without the board query surface is handed in."""


REQUIRED_CAPABILITIES = ("legal_moves", "push", "copy", "piece_at")


def ensure_board(board: object) -> chess.Board:
    missing = [name for name in REQUIRED_CAPABILITIES if not hasattr(board, name)]
    if missing:
        raise InvalidGameHandle(
            f"{type(board).__name__} is missing board capabilities: {', '.join(missing)}"
        )
    return board  # type: ignore[return-value]


def is_valid_move(board: chess.Board, move: chess.Move) -> bool:
    return move in board.legal_moves


def legal_moves(board: chess.Board) -> List[chess.Move]:
    return list(board.legal_moves)


def moves_for_side(board: chess.Board, color: chess.Color) -> List[chess.Move]:
    """Moves ``color`` could play on this board, whoever is actually to move.

    When ``color`` is not the side to move the board is copied with the turn
    handed over; the en-passant right is dropped since it belongs to the side
    to move only. If the side to move is in check, the flipped view includes
    the capture of its king.
    """

    if board.turn == color:
        return list(board.legal_moves)

    view = board.copy(stack=False)
    view.turn = color
    view.ep_square = None
    return list(view.legal_moves)


def simulate_move(board: chess.Board, move: chess.Move) -> chess.Board:
    if not is_valid_move(board, move):
        raise IllegalMove(f"{move.uci()} is not legal in {board.fen()}")
    simulation = board.copy()
    simulation.push(move)
    return simulation


def _optional_query(board: chess.Board, name: str) -> bool:
    query = getattr(board, name, None)
    if not callable(query):
        return False
    return bool(query())


def is_in_check(board: chess.Board) -> bool:
    return _optional_query(board, "is_check")


def is_checkmate(board: chess.Board) -> bool:
    return _optional_query(board, "is_checkmate")


def is_stalemate(board: chess.Board) -> bool:
    return _optional_query(board, "is_stalemate")


def has_insufficient_material(board: chess.Board) -> bool:
    return _optional_query(board, "is_insufficient_material")


def position_key(board: chess.Board) -> int:
    """Repetition key: placement, side to move, castling and capturable ep square."""

    return polyglot.zobrist_hash(board)


def move_history(board: chess.Board) -> Sequence[chess.Move]:
    return tuple(board.move_stack)
