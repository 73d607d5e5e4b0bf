"""Static positional scoring for one side of a board.

The score is a small sum of per-piece structural terms (pawn structure, piece
activity, king safety) measured in pawns. It is pure: the board is only read.
"""

from __future__ import annotations

from typing import List

import chess

from stonefish.config import (
    BISHOP_DEVELOPED_BONUS,
    DOUBLED_PAWN_PENALTY,
    EXPOSED_KING_PENALTY,
    ISOLATED_PAWN_PENALTY,
    KING_CASTLED_BONUS,
    KNIGHT_CENTER_BONUS,
    PASSED_PAWN_BONUS,
    PASSED_SUPPORTED_BONUS,
    PAWN_CENTER_BONUS,
    RIM_KNIGHT_PENALTY,
    ROOK_OPEN_FILE_BONUS,
)

CENTER_PAWN_SQUARES = frozenset((chess.D4, chess.E4, chess.D5, chess.E5))

CASTLED_KING_SQUARES = {
    chess.WHITE: frozenset((chess.G1, chess.C1)),
    chess.BLACK: frozenset((chess.G8, chess.C8)),
}


def _back_rank(color: chess.Color) -> int:
    return 0 if color == chess.WHITE else 7


def _pawns_by_file(board: chess.Board, color: chess.Color) -> List[int]:
    counts = [0] * 8
    for square in board.pieces(chess.PAWN, color):
        counts[chess.square_file(square)] += 1
    return counts


def _is_isolated_pawn(square: chess.Square, pawns_by_file: List[int]) -> bool:
    file_index = chess.square_file(square)
    left_file = pawns_by_file[file_index - 1] if file_index > 0 else 0
    right_file = pawns_by_file[file_index + 1] if file_index < 7 else 0
    return left_file == 0 and right_file == 0


def _is_passed_pawn(square: chess.Square, color: chess.Color, opponent_pawns: chess.SquareSet) -> bool:
    file_index = chess.square_file(square)
    rank = chess.square_rank(square)
    for opp_square in opponent_pawns:
        if abs(chess.square_file(opp_square) - file_index) > 1:
            continue
        opp_rank = chess.square_rank(opp_square)
        if color == chess.WHITE and opp_rank > rank:
            return False
        if color == chess.BLACK and opp_rank < rank:
            return False
    return True


def _is_supported_pawn(board: chess.Board, square: chess.Square, color: chess.Color) -> bool:
    support_rank = chess.square_rank(square) + (-1 if color == chess.WHITE else 1)
    if not 0 <= support_rank < 8:
        return False
    file_index = chess.square_file(square)
    for df in (-1, 1):
        support_file = file_index + df
        if not 0 <= support_file < 8:
            continue
        piece = board.piece_at(chess.square(support_file, support_rank))
        if piece and piece.piece_type == chess.PAWN and piece.color == color:
            return True
    return False


def _is_knight_center(square: chess.Square) -> bool:
    return 2 <= chess.square_file(square) <= 5 and 2 <= chess.square_rank(square) <= 5


def _is_rim_square(square: chess.Square) -> bool:
    return chess.square_file(square) in (0, 7) or chess.square_rank(square) in (0, 7)


def _is_open_file(board: chess.Board, file_index: int) -> bool:
    return not (board.pawns & chess.BB_FILES[file_index])


def _king_exposed(board: chess.Board, square: chess.Square, color: chess.Color) -> bool:
    """Two or more of the shield squares on the second rank lack an own pawn."""

    shield_rank = 1 if color == chess.WHITE else 6
    file_index = chess.square_file(square)
    missing = 0
    for df in (-1, 0, 1):
        shield_file = file_index + df
        if not 0 <= shield_file < 8:
            continue
        piece = board.piece_at(chess.square(shield_file, shield_rank))
        if not (piece and piece.piece_type == chess.PAWN and piece.color == color):
            missing += 1
    return missing >= 2


def _pawn_points(board: chess.Board, color: chess.Color) -> float:
    points = 0.0
    pawns_by_file = _pawns_by_file(board, color)
    opponent_pawns = board.pieces(chess.PAWN, not color)
    for square in board.pieces(chess.PAWN, color):
        if square in CENTER_PAWN_SQUARES:
            points += PAWN_CENTER_BONUS
        if _is_isolated_pawn(square, pawns_by_file):
            points -= ISOLATED_PAWN_PENALTY
        if pawns_by_file[chess.square_file(square)] >= 2:
            points -= DOUBLED_PAWN_PENALTY
        if _is_passed_pawn(square, color, opponent_pawns):
            points += PASSED_PAWN_BONUS
            if _is_supported_pawn(board, square, color):
                points += PASSED_SUPPORTED_BONUS
    return points


def _piece_points(board: chess.Board, color: chess.Color) -> float:
    points = 0.0
    for square in board.pieces(chess.KNIGHT, color):
        if _is_knight_center(square):
            points += KNIGHT_CENTER_BONUS
        if _is_rim_square(square):
            points -= RIM_KNIGHT_PENALTY
    for square in board.pieces(chess.BISHOP, color):
        if chess.square_rank(square) != _back_rank(color):
            points += BISHOP_DEVELOPED_BONUS
    for square in board.pieces(chess.ROOK, color):
        if _is_open_file(board, chess.square_file(square)):
            points += ROOK_OPEN_FILE_BONUS
    return points


def _king_points(board: chess.Board, color: chess.Color) -> float:
    king_square = board.king(color)
    if king_square is None:
        return 0.0
    points = 0.0
    if king_square in CASTLED_KING_SQUARES[color]:
        points += KING_CASTLED_BONUS
    if _king_exposed(board, king_square, color):
        points -= EXPOSED_KING_PENALTY
    return points


def positional_points(board: chess.Board, color: chess.Color) -> float:
    return _pawn_points(board, color) + _piece_points(board, color) + _king_points(board, color)
