"""Prediction core: synchronous, browser-free, one instance set per session."""

from voicehints.core.commands import CommandKind, VoiceCommand, parse_voice_command
from voicehints.core.engine import (
    EngineUpdate,
    HintEngine,
    SpeechError,
    SpeechErrorCode,
    SpeechEvent,
    StatusUpdate,
)
from voicehints.core.metrics import JsonlMetricsSink, MetricsLogger, MetricsSink, NullMetricsSink, StoreMetricsSink
from voicehints.core.models import (
    Candidate,
    CommittedAction,
    ExecutionResult,
    MotionSample,
    PendingConfirmation,
    Point,
    RankedSet,
    RawCandidate,
    Rect,
    SelectionMethod,
    WeightVector,
)
from voicehints.core.motion_tracker import MotionTracker, TrackerConfig
from voicehints.core.ranker import CandidateRanker, RankerConfig
from voicehints.core.risk import RiskClassifier
from voicehints.core.selection import (
    OutcomeKind,
    SelectionConfig,
    SelectionController,
    SelectionOutcome,
    SelectionState,
)
from voicehints.core.settings import BadgeSize, HintSettings, PredictionMode
from voicehints.core.store import HintStore

__all__ = [
    "BadgeSize",
    "Candidate",
    "CandidateRanker",
    "CommandKind",
    "CommittedAction",
    "EngineUpdate",
    "ExecutionResult",
    "HintEngine",
    "HintSettings",
    "HintStore",
    "JsonlMetricsSink",
    "MetricsLogger",
    "MetricsSink",
    "MotionSample",
    "MotionTracker",
    "NullMetricsSink",
    "OutcomeKind",
    "PendingConfirmation",
    "Point",
    "PredictionMode",
    "RankedSet",
    "RankerConfig",
    "RawCandidate",
    "Rect",
    "RiskClassifier",
    "SelectionConfig",
    "SelectionController",
    "SelectionMethod",
    "SelectionOutcome",
    "SelectionState",
    "SpeechError",
    "SpeechErrorCode",
    "SpeechEvent",
    "StatusUpdate",
    "StoreMetricsSink",
    "TrackerConfig",
    "VoiceCommand",
    "WeightVector",
    "parse_voice_command",
]
