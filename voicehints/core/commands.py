from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

NUMBER_WORDS: dict[str, int] = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
}

_TOKEN_RE = re.compile(r"[a-z]+|\d+", re.IGNORECASE)


class CommandKind(str, Enum):
    SELECT = "select"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class VoiceCommand:
    kind: CommandKind
    transcript: str
    ordinal: int | None = None


def parse_voice_command(transcript: str) -> VoiceCommand:
    """Map a final transcript to a command.

    Matching is on whole tokens, case-insensitively, so "someone" does not
    read as "one". Cancel beats confirm beats a number; the first number
    word or digit run wins ("click three" -> 3, "select 12" -> 12).
    """
    tokens = [tok.lower() for tok in _TOKEN_RE.findall(transcript or "")]

    if "cancel" in tokens or "stop" in tokens:
        return VoiceCommand(kind=CommandKind.CANCEL, transcript=transcript)
    if "confirm" in tokens:
        return VoiceCommand(kind=CommandKind.CONFIRM, transcript=transcript)

    for tok in tokens:
        if tok in NUMBER_WORDS:
            return VoiceCommand(kind=CommandKind.SELECT, transcript=transcript, ordinal=NUMBER_WORDS[tok])
        if tok.isdigit():
            return VoiceCommand(kind=CommandKind.SELECT, transcript=transcript, ordinal=int(tok))

    return VoiceCommand(kind=CommandKind.UNKNOWN, transcript=transcript)
