"""Tuning constants and the configuration model for the StoneFish engines.

Every weight used by the scoring pipeline lives here as a named constant so the
heuristics modules never introduce magic numbers of their own. The constants
are bundled into an immutable :class:`EngineConfig`; a handful of named presets
cover the engine variants.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Mapping

import chess

# Material values in pawns. The king weight is a sentinel: kings are never
# traded, it only keeps material sums well defined.
PIECE_VALUES: Mapping[chess.PieceType, int] = {
    chess.PAWN: 1,
    chess.KNIGHT: 3,
    chess.BISHOP: 3,
    chess.ROOK: 5,
    chess.QUEEN: 9,
    chess.KING: 100,
}

# Positional bonuses
PAWN_CENTER_BONUS = 0.3
PASSED_PAWN_BONUS = 0.5
PASSED_SUPPORTED_BONUS = 0.2
KNIGHT_CENTER_BONUS = 0.4
BISHOP_DEVELOPED_BONUS = 0.25
ROOK_OPEN_FILE_BONUS = 0.5
KING_CASTLED_BONUS = 0.6

# Positional penalties
ISOLATED_PAWN_PENALTY = 0.25
DOUBLED_PAWN_PENALTY = 0.3
RIM_KNIGHT_PENALTY = 0.3
EXPOSED_KING_PENALTY = 0.6

# Move scoring weights
OPPONENT_CAPTURE_WEIGHT = 0.9
CREATED_THREAT_WEIGHT = 0.25
LOCAL_RECAPTURE_PENALTY = 0.5
MAX_VALUE_SAVED = 30
CHECK_ESCAPE_BONUS = 100

# Draw policy
DRAW_DEFICIT_THRESHOLD = -4
REPETITION_PRIOR_OCCURRENCES = 2
FIFTY_MOVE_PLIES = 100

# Reactive variant: replies that win this much are "dominating" threats.
DOMINATION_THRESHOLD = 9

# Ties are decided on scores rounded to this many decimals.
SCORE_PRECISION = 6


@dataclass(slots=True, frozen=True)
class EngineConfig:
    opponent_capture_weight: float = OPPONENT_CAPTURE_WEIGHT
    created_threat_weight: float = CREATED_THREAT_WEIGHT
    local_recapture_penalty: float = LOCAL_RECAPTURE_PENALTY
    max_value_saved: float = MAX_VALUE_SAVED
    check_escape_bonus: float = CHECK_ESCAPE_BONUS
    deficit_threshold: int = DRAW_DEFICIT_THRESHOLD
    repetition_prior_occurrences: int = REPETITION_PRIOR_OCCURRENCES
    fifty_move_plies: int = FIFTY_MOVE_PLIES
    domination_threshold: int = DOMINATION_THRESHOLD
    use_positional: bool = True
    use_policy: bool = True

    def with_overrides(self, **overrides: object) -> "EngineConfig":
        return replace(self, **overrides)


CONFIG_PRESETS: Dict[str, EngineConfig] = {
    "default": EngineConfig(),
    "reactive": EngineConfig(use_positional=False, use_policy=False),
}


def resolve_config(name: str) -> EngineConfig:
    try:
        return CONFIG_PRESETS[name]
    except KeyError as exc:
        valid = ", ".join(sorted(CONFIG_PRESETS))
        raise KeyError(f"unknown config preset '{name}' (expected one of: {valid})") from exc


def piece_value(piece_type: chess.PieceType) -> int:
    return PIECE_VALUES.get(piece_type, 0)
