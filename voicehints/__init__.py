"""Voice Hints: trajectory-based target prediction with keyboard and voice selection."""

from voicehints.core import HintEngine, HintSettings

__all__ = ["HintEngine", "HintSettings"]
