"""Public package interface for the StoneFish engines."""

from .config import CONFIG_PRESETS, PIECE_VALUES, EngineConfig, resolve_config
from .engine import (
    DEFAULT_VARIANT,
    Candidate,
    EngineRegistry,
    MoveSelector,
    RandomMover,
    ReactiveStoneFish,
    StoneFish,
    default_registry,
)
from .policy import PolicyContext, RepetitionTable, SafetyBucket
from .positional import positional_points
from .threats import ThreatEntry, threat_map

__all__ = [
    "CONFIG_PRESETS",
    "Candidate",
    "DEFAULT_VARIANT",
    "EngineConfig",
    "EngineRegistry",
    "MoveSelector",
    "PIECE_VALUES",
    "PolicyContext",
    "RandomMover",
    "ReactiveStoneFish",
    "RepetitionTable",
    "SafetyBucket",
    "StoneFish",
    "ThreatEntry",
    "default_registry",
    "positional_points",
    "resolve_config",
    "threat_map",
]
