"""
Transcript replay.

Feeds a recorded stream of recognition results into an engine, honouring the
recorded timing, and reports what the engine made of it. Transcripts are
JSON-lines files with one ``{"text", "confidence", "offset_ms"}`` object per
line; blank lines and lines starting with ``#`` are ignored.
"""
import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from .engine import Statistics, VoiceCommand, VoiceCommandDebouncer

logger = logging.getLogger(__name__)


class TranscriptError(ValueError):
    """Raised when a transcript line cannot be parsed."""

    def __init__(self, line_number: int, message: str):
        super().__init__(f"line {line_number}: {message}")
        self.line_number = line_number


class TranscriptEntry(BaseModel):
    """One recognition result in a transcript."""

    text: str
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    offset_ms: float = Field(0.0, ge=0.0, description="Time since the start of the transcript")
    context: Any = None

    def to_command(self) -> VoiceCommand:
        return VoiceCommand(text=self.text, confidence=self.confidence)


@dataclass
class ReplayOutcome:
    """What happened to one transcript entry."""

    entry: TranscriptEntry
    accepted: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.entry.text,
            "confidence": self.entry.confidence,
            "offset_ms": self.entry.offset_ms,
            "accepted": self.accepted,
        }


@dataclass
class ReplayReport:
    """Result of replaying a transcript."""

    outcomes: list[ReplayOutcome] = field(default_factory=list)
    statistics: Optional[Statistics] = None

    @property
    def submitted(self) -> int:
        return len(self.outcomes)

    @property
    def accepted(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.accepted)

    @property
    def rejected(self) -> int:
        return self.submitted - self.accepted

    def to_dict(self) -> dict[str, Any]:
        return {
            "submitted": self.submitted,
            "accepted": self.accepted,
            "rejected": self.rejected,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "statistics": self.statistics.to_dict() if self.statistics else None,
        }


def parse_transcript(lines) -> list[TranscriptEntry]:
    """
    Parse transcript lines.

    Args:
        lines: Iterable of JSON-lines strings

    Returns:
        Entries ordered by offset (stable for equal offsets)

    Raises:
        TranscriptError: If a line is not valid JSON or fails validation
    """
    entries = []
    for line_number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise TranscriptError(line_number, f"invalid JSON ({e.msg})") from e

        try:
            entries.append(TranscriptEntry.model_validate(data))
        except ValidationError as e:
            raise TranscriptError(line_number, str(e)) from e

    entries.sort(key=lambda entry: entry.offset_ms)
    return entries


def load_transcript(path: Union[str, Path]) -> list[TranscriptEntry]:
    """Load and parse a transcript file."""
    with open(path, encoding="utf-8") as transcript:
        return parse_transcript(transcript)


async def replay_transcript(
    debouncer: VoiceCommandDebouncer,
    entries: list[TranscriptEntry],
    speed: float = 1.0,
) -> ReplayReport:
    """
    Replay transcript entries through an engine.

    Each entry is submitted at its offset (divided by ``speed``) relative to
    the start of the replay. Submissions do not wait for earlier debounced
    commands to fire, matching how a live recognizer would deliver them.

    Args:
        debouncer: Engine to feed
        entries: Transcript entries ordered by offset
        speed: Playback speed multiplier

    Returns:
        Replay report with per-entry outcomes and final statistics
    """
    if speed <= 0:
        raise ValueError(f"speed must be positive, got {speed}")

    loop = asyncio.get_running_loop()
    started = loop.time()
    tasks = []

    for entry in entries:
        due = started + entry.offset_ms / 1000.0 / speed
        delay = due - loop.time()
        if delay > 0:
            await asyncio.sleep(delay)

        logger.debug(f"Replaying '{entry.text}' at {entry.offset_ms}ms")
        tasks.append(
            asyncio.create_task(debouncer.process_command(entry.to_command(), entry.context))
        )

    results = await asyncio.gather(*tasks)

    report = ReplayReport(
        outcomes=[
            ReplayOutcome(entry=entry, accepted=accepted)
            for entry, accepted in zip(entries, results)
        ],
        statistics=debouncer.get_statistics(),
    )
    logger.info(
        f"Replay finished: {report.accepted}/{report.submitted} commands accepted",
        extra={"submitted": report.submitted, "accepted": report.accepted},
    )
    return report
