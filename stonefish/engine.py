"""StoneFish move selectors and the registry that names them.

Every engine variant implements a single capability, :meth:`MoveSelector.select_move`,
which maps a board (plus optional repetition history) to one legal move. The
main variant, :class:`StoneFish`, runs a one-ply pipeline:

0. play a mate-in-one immediately if one exists;
1. build the policy context (material balance, draw permission, repetitions);
2. score every legal move on its simulated successor;
3. sort each candidate into a safety bucket;
4. pick the best candidate from the first non-empty bucket.

Registries are plain values: callers build one with :func:`default_registry`
and pass it around, nothing is kept in module state.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import chess

import chess_logic
from stonefish import threats
from stonefish.config import CONFIG_PRESETS, SCORE_PRECISION, EngineConfig, piece_value
from stonefish.policy import (
    PolicyContext,
    RepetitionTable,
    SafetyBucket,
    build_policy_context,
    classify,
)
from stonefish.positional import positional_points

Logger = Callable[[str], None]


def _noop(*_: object) -> None:
    return None


def lexical_key(move: chess.Move) -> str:
    promotion = chess.piece_symbol(move.promotion) if move.promotion else ""
    return f"{chess.square_name(move.from_square)}-{chess.square_name(move.to_square)}-{promotion}"


def is_developing_move(board: chess.Board, move: chess.Move) -> bool:
    """A non-pawn piece leaving its own back rank."""

    piece = board.piece_at(move.from_square)
    if piece is None or piece.piece_type == chess.PAWN:
        return False
    back_rank = 0 if piece.color == chess.WHITE else 7
    return chess.square_rank(move.from_square) == back_rank and chess.square_rank(move.to_square) != back_rank


@dataclass
class Candidate:
    move: chess.Move
    score: float
    gives_check: bool
    is_developing: bool
    lexical: str
    bucket: SafetyBucket = SafetyBucket.SAFE
    breakdown: Dict[str, float] = field(default_factory=dict)
    captured_value: int = 0
    opponent_capture: int = 0
    mover_in_check: bool = False

    def sort_key(self) -> Tuple[float, bool, bool, str]:
        # Ascending order puts the preferred candidate first.
        return (
            -round(self.score, SCORE_PRECISION),
            not self.gives_check,
            not self.is_developing,
            self.lexical,
        )


def best_candidate(candidates: Sequence[Candidate]) -> Optional[Candidate]:
    if not candidates:
        return None
    return min(candidates, key=Candidate.sort_key)


class MoveSelector(ABC):
    name: str = "selector"
    description: str = ""

    def __init__(self, *, logger: Optional[Logger] = None) -> None:
        self._logger = logger or _noop

    @abstractmethod
    def select_move(self, board: chess.Board, history: Optional[RepetitionTable] = None) -> Optional[chess.Move]:
        ...


class RandomMover(MoveSelector):
    name = "StoneFish V1"
    description = "Early proof of concept: uniformly random legal move"

    def __init__(self, *, seed: Optional[int] = None, logger: Optional[Logger] = None) -> None:
        super().__init__(logger=logger)
        self._rng = random.Random(seed)

    def select_move(self, board: chess.Board, history: Optional[RepetitionTable] = None) -> Optional[chess.Move]:
        try:
            board = chess_logic.ensure_board(board)
        except chess_logic.InvalidGameHandle as exc:
            self._logger(f"{self.name}: {exc}")
            return None
        moves = chess_logic.legal_moves(board)
        if not moves:
            return None
        return self._rng.choice(moves)


class StoneFish(MoveSelector):
    name = "StoneFish V3"
    description = "Tactical core + positional scoring + mate/draw policy"

    def __init__(self, *, config: Optional[EngineConfig] = None, logger: Optional[Logger] = None) -> None:
        super().__init__(logger=logger)
        self.config = config or CONFIG_PRESETS["default"]

    def select_move(self, board: chess.Board, history: Optional[RepetitionTable] = None) -> Optional[chess.Move]:
        try:
            board = chess_logic.ensure_board(board)
        except chess_logic.InvalidGameHandle as exc:
            self._logger(f"{self.name}: {exc}")
            return None

        moves = chess_logic.legal_moves(board)
        if not moves:
            return None

        if self.config.use_policy:
            mate = self.find_mate_in_one(board, moves)
            if mate is not None:
                self._logger(f"{self.name}: mate in one {mate.uci()}")
                return mate

        context = self._build_context(board, history)
        candidates = self.score_moves(board, moves, context)
        winner = self.choose(candidates)
        if winner is None:
            return moves[0]

        terms = " ".join(f"{name}={value:.2f}" for name, value in winner.breakdown.items())
        self._logger(f"{self.name}: chose {winner.move.uci()} score={winner.score:.2f} bucket={winner.bucket.value} {terms}")
        return winner.move

    def find_mate_in_one(self, board: chess.Board, moves: Sequence[chess.Move]) -> Optional[chess.Move]:
        for move in sorted(moves, key=lexical_key):
            if chess_logic.is_checkmate(chess_logic.simulate_move(board, move)):
                return move
        return None

    def _build_context(self, board: chess.Board, history: Optional[RepetitionTable]) -> PolicyContext:
        if history is None and not self.config.use_policy:
            # Repetitions only feed the policy stage.
            history = RepetitionTable()
        context = build_policy_context(board, self.config, history)
        self._logger(
            f"{self.name}: balance={context.material_balance} draw_allowed={context.draw_allowed} "
            f"halfmove={context.halfmove_clock}"
        )
        return context

    def score_moves(self, board: chess.Board, moves: Sequence[chess.Move], context: PolicyContext) -> List[Candidate]:
        color = board.turn
        in_check = chess_logic.is_in_check(board)
        threatened_before = threats.threat_map(board, color)

        candidates: List[Candidate] = []
        for move in moves:
            # IllegalMove here means the oracle and the engine disagree; let it surface.
            simulation = chess_logic.simulate_move(board, move)
            replies = threats.capture_moves(simulation, not color)
            candidate = Candidate(
                move=move,
                score=0.0,
                gives_check=chess_logic.is_in_check(simulation),
                is_developing=is_developing_move(board, move),
                lexical=lexical_key(move),
                captured_value=self.captured_value(board, color, move),
                opponent_capture=threats.opponent_max_capture_after(simulation, color, replies),
                mover_in_check=in_check,
            )
            candidate.breakdown = self.score_terms(board, candidate, simulation, color, threatened_before, replies)
            candidate.score = sum(candidate.breakdown.values())
            if self.config.use_policy:
                candidate.bucket = classify(simulation, context, self.config)
            candidates.append(candidate)
        return candidates

    @staticmethod
    def captured_value(board: chess.Board, color: chess.Color, move: chess.Move) -> int:
        square = threats.captured_square(board, color, move)
        if square is None:
            return 0
        return piece_value(board.piece_type_at(square))

    def score_terms(
        self,
        board: chess.Board,
        candidate: Candidate,
        simulation: chess.Board,
        color: chess.Color,
        threatened_before: threats.ThreatMap,
        replies: Sequence[threats.Capture],
    ) -> Dict[str, float]:
        config = self.config
        move = candidate.move

        capture_score = 0.0
        if candidate.captured_value:
            capture_score = candidate.captured_value - piece_value(board.piece_type_at(move.from_square))

        saved = 0.0
        if threatened_before:
            threatened_after = threats.threat_map(simulation, color, replies)
            saved = threats.value_saved(
                move, simulation, color, threatened_before, threatened_after, config.max_value_saved
            )
        saved += self.escape_bonus(candidate, simulation)

        # Counts the enemy king when the move gives check.
        created_threat = threats.max_capture_value(simulation, color)
        recaptured = threats.recapture_count(simulation, color, move.to_square, replies) > 0

        terms = {
            "capture": capture_score,
            "saved": saved,
            "exposure": -config.opponent_capture_weight * candidate.opponent_capture,
            "pressure": config.created_threat_weight * created_threat,
            "local": -config.local_recapture_penalty if recaptured else 0.0,
        }
        if config.use_positional:
            terms["positional"] = positional_points(simulation, color)
        return terms

    def escape_bonus(self, candidate: Candidate, simulation: chess.Board) -> float:
        # Every legal reply to check escapes it.
        return self.config.check_escape_bonus if candidate.mover_in_check else 0.0

    def choose(self, candidates: Sequence[Candidate]) -> Optional[Candidate]:
        for bucket in (SafetyBucket.SAFE, SafetyBucket.DRAWISH):
            winner = best_candidate([c for c in candidates if c.bucket is bucket])
            if winner is not None:
                return winner
        return best_candidate(candidates)


class ReactiveStoneFish(StoneFish):
    name = "StoneFish V2.5"
    description = "Material-aware reactive engine (defend ~ capture)"

    def __init__(self, *, config: Optional[EngineConfig] = None, logger: Optional[Logger] = None) -> None:
        super().__init__(config=config or CONFIG_PRESETS["reactive"], logger=logger)

    def escape_bonus(self, candidate: Candidate, simulation: chess.Board) -> float:
        if candidate.mover_in_check and not chess_logic.is_in_check(simulation):
            return self.config.check_escape_bonus
        return 0.0

    def is_dominated(self, candidate: Candidate) -> bool:
        """Leaves a big piece en prise without winning or saving as much."""

        threshold = self.config.domination_threshold
        return (
            not candidate.mover_in_check
            and candidate.opponent_capture >= threshold
            and candidate.captured_value < threshold
            and candidate.breakdown.get("saved", 0.0) < threshold
        )

    def choose(self, candidates: Sequence[Candidate]) -> Optional[Candidate]:
        winner = best_candidate([c for c in candidates if not self.is_dominated(c)])
        return winner or best_candidate(candidates)


SelectorFactory = Callable[..., MoveSelector]


@dataclass
class RegistryEntry:
    factory: SelectorFactory
    description: str


class EngineRegistry:
    def __init__(self, *, logger: Optional[Logger] = None) -> None:
        self._entries: Dict[str, RegistryEntry] = {}
        self._logger = logger or _noop

    def register(self, name: str, factory: SelectorFactory, description: str = "") -> None:
        self._entries[name] = RegistryEntry(factory, description)
        self._logger(f"engine registered: {name}")

    def names(self) -> Tuple[str, ...]:
        return tuple(self._entries)

    def describe(self, name: str) -> str:
        return self._entry(name).description

    def create(self, name: str, **kwargs: object) -> MoveSelector:
        return self._entry(name).factory(**kwargs)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def _entry(self, name: str) -> RegistryEntry:
        try:
            return self._entries[name]
        except KeyError as exc:
            valid = ", ".join(self._entries)
            raise KeyError(f"unknown engine variant '{name}' (expected one of: {valid})") from exc


DEFAULT_VARIANT = "v3"


def default_registry(*, logger: Optional[Logger] = None) -> EngineRegistry:
    registry = EngineRegistry(logger=logger)
    registry.register("v1", RandomMover, RandomMover.description)
    registry.register("v2_5", ReactiveStoneFish, ReactiveStoneFish.description)
    registry.register("v3", StoneFish, StoneFish.description)
    return registry
