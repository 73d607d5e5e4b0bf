"""Capture and threat bookkeeping for one-ply tactical scoring.

All metrics here are derived from legal capture moves, never from raw attack
maps, so pinned pieces do not count as attackers. Squares are keyed by the
square of the *captured* piece: for an en-passant capture that is one rank
behind the capturing pawn's landing square. A king in check shows up as a
capturable piece worth the king's sentinel value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Sequence

import chess

import chess_logic
from stonefish.config import piece_value


class Capture(NamedTuple):
    move: chess.Move
    captured_square: chess.Square
    captured_type: chess.PieceType
    value: int


@dataclass(frozen=True)
class Attacker:
    square: chess.Square
    piece_type: chess.PieceType
    value: int


@dataclass
class ThreatEntry:
    square: chess.Square
    piece: chess.Piece
    value: int
    attackers: List[Attacker] = field(default_factory=list)


ThreatMap = Dict[chess.Square, ThreatEntry]


def captured_square(board: chess.Board, color: chess.Color, move: chess.Move) -> Optional[chess.Square]:
    """Square of the piece ``move`` removes, or ``None`` for a quiet move.

    ``board.is_capture`` assumes the move belongs to the side to move, which
    does not hold for moves generated on behalf of the other side.
    """

    if board.turn == color and board.is_en_passant(move):
        # The captured pawn sits on the landing file, on the rank the
        # capturing pawn started from.
        return chess.square(chess.square_file(move.to_square), chess.square_rank(move.from_square))
    target = board.piece_at(move.to_square)
    if target is None or target.color == color:
        return None
    return move.to_square


def capture_moves(board: chess.Board, color: chess.Color) -> List[Capture]:
    """Legal captures available to ``color``, in generation order."""

    captures: List[Capture] = []
    for move in chess_logic.moves_for_side(board, color):
        square = captured_square(board, color, move)
        if square is None:
            continue
        victim = board.piece_type_at(square)
        captures.append(Capture(move, square, victim, piece_value(victim)))
    return captures


def threat_map(board: chess.Board, color: chess.Color, captures: Optional[Sequence[Capture]] = None) -> ThreatMap:
    """Map each of ``color``'s capturable pieces to the opponent moves that take it.

    ``captures`` may carry the opponent's captures when the caller already has them.
    """

    if captures is None:
        captures = capture_moves(board, not color)
    threats: ThreatMap = {}
    for capture in captures:
        piece = board.piece_at(capture.captured_square)
        if piece is None or piece.color != color:
            continue
        attacker_type = board.piece_type_at(capture.move.from_square)
        attacker = Attacker(capture.move.from_square, attacker_type, piece_value(attacker_type))
        entry = threats.get(capture.captured_square)
        if entry is None:
            entry = ThreatEntry(capture.captured_square, piece, capture.value)
            threats[capture.captured_square] = entry
        entry.attackers.append(attacker)
    return threats


def best_capture_value(captures: Sequence[Capture]) -> int:
    return max((capture.value for capture in captures), default=0)


def max_capture_value(board: chess.Board, color: chess.Color) -> int:
    return best_capture_value(capture_moves(board, color))


def opponent_max_capture_after(
    board: chess.Board, color: chess.Color, captures: Optional[Sequence[Capture]] = None
) -> int:
    """Largest value the opponent could take from ``color`` right now; lower is safer."""

    if captures is None:
        captures = capture_moves(board, not color)
    return best_capture_value(captures)


def recapture_count(
    board: chess.Board, color: chess.Color, square: chess.Square, captures: Optional[Sequence[Capture]] = None
) -> int:
    """How many opponent captures land on ``square``."""

    if captures is None:
        captures = capture_moves(board, not color)
    return sum(1 for capture in captures if capture.move.to_square == square)


def _is_promotion_descendant(before: chess.Piece, after: chess.Piece) -> bool:
    return before.piece_type == chess.PAWN and after.color == before.color and after.piece_type != chess.PAWN


def value_saved(
    move: chess.Move,
    simulation: chess.Board,
    color: chess.Color,
    threatened_before: ThreatMap,
    threatened_after: ThreatMap,
    cap: float,
) -> float:
    """Value of previously threatened pieces that are out of danger after ``move``."""

    if not threatened_before:
        return 0

    saved = 0
    destination_piece = simulation.piece_at(move.to_square)
    for square, entry in threatened_before.items():
        if square == move.from_square:
            if destination_piece is None or destination_piece.color != color:
                continue
            same_piece = destination_piece.piece_type == entry.piece.piece_type
            if not same_piece and not _is_promotion_descendant(entry.piece, destination_piece):
                continue
            if move.to_square in threatened_after:
                continue
            saved += entry.value
            continue

        still_there = simulation.piece_at(square)
        if still_there is None or still_there.color != color:
            continue
        if square in threatened_after:
            continue
        saved += entry.value

    return min(saved, cap)
