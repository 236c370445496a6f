"""ffmpeg statistics line parsing and status rendering

ffmpeg reports progress on stderr with lines like::

    frame=  100 fps= 30 q=-1.0 size=    2048kB time=00:00:10.00 bitrate=1677.7kbits/s speed=2.5x

and finishes with a result line::

    [out#0/matroska @ 0x5581] video:2048kB audio:128kB subtitle:0kB other streams:0kB global headers:0kB muxing overhead: 0.123%

Anything else is ignored.
"""

import re
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Dict, Optional

from .formatting import end_status, write_status
from .utils import format_duration, format_size

_CANDIDATE = re.compile(r"(size=|overhead:)", re.IGNORECASE)
# Alignment padding after ':'/'=' and "[muxer @ 0x...] " tags
_PADDING = re.compile(r"((?<=[:=])\s+|\[[^\]]+\]\s+)")
_FIELD = re.compile(r"([\w\s]+)[=:]([\d:.\-/+e\w%]+)\s*", re.IGNORECASE)
_CLOCK = re.compile(r"^(-)?(\d+):(\d{1,2}):(\d{1,2})(?:\.(\d+))?$")
_LEADING_NUMBER = re.compile(r"^[\d.]+")
_LEADING_SPEED = re.compile(r"^[\d.e+]+")


class SampleKind(Enum):
    PROGRESS = "progress"
    RESULT = "result"


@dataclass
class ProgressSample:
    """Values parsed from one statistics line.

    Sizes and bitrates are in bytes (ffmpeg's kB/kbit figures times 1024).
    """
    kind: SampleKind
    frame: Optional[int] = None
    fps: Optional[float] = None
    speed: Optional[float] = None
    time: Optional[timedelta] = None
    bitrate: Optional[float] = None
    video_size: Optional[float] = None
    audio_size: Optional[float] = None

    @property
    def is_result(self) -> bool:
        return self.kind is SampleKind.RESULT


def parse_duration(value: str) -> Optional[timedelta]:
    """Parse ``[-]HH:MM:SS[.ffff]`` or plain seconds; None for N/A and garbage"""
    m = _CLOCK.match(value)
    if m:
        sign, hours, minutes, seconds, fraction = m.groups()
        delta = timedelta(
            hours=int(hours),
            minutes=int(minutes),
            seconds=int(seconds) + (float(f"0.{fraction}") if fraction else 0.0),
        )
        return -delta if sign else delta
    try:
        return timedelta(seconds=float(value))
    except (ValueError, OverflowError):
        return None


def _to_size(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    m = _LEADING_NUMBER.match(value)
    try:
        return float(m.group(0)) * 1024 if m else None
    except ValueError:
        return None


def _to_speed(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    m = _LEADING_SPEED.match(value)
    try:
        return float(m.group(0)) if m else None
    except ValueError:
        return None


def _to_number(value: Optional[str], kind=float):
    if value is None:
        return None
    try:
        return kind(value)
    except ValueError:
        return None


def split_fields(line: str) -> Dict[str, str]:
    """Decompose a statistics line into key/value pairs"""
    line = _PADDING.sub("", line)
    return {m.group(1).strip(): m.group(2) for m in _FIELD.finditer(line)}


def parse_progress_line(line: str) -> Optional[ProgressSample]:
    """Classify one line of ffmpeg output.

    Returns:
        A progress or result sample, or None if the line should be ignored
    """
    if not line or not _CANDIDATE.search(line):
        return None

    fields = split_fields(line)
    if "speed" in fields:
        time_value = fields.get("time")
        return ProgressSample(
            kind=SampleKind.PROGRESS,
            frame=_to_number(fields.get("frame"), int),
            fps=_to_number(fields.get("fps")),
            speed=_to_speed(fields["speed"]),
            time=parse_duration(time_value) if time_value else None,
            bitrate=_to_size(fields.get("bitrate")),
        )
    if "video" in fields and "audio" in fields:
        return ProgressSample(
            kind=SampleKind.RESULT,
            video_size=_to_size(fields["video"]),
            audio_size=_to_size(fields["audio"]),
        )
    return None


def _size_text(value: Optional[float]) -> str:
    return "N/A" if value is None else format_size(value)


def render_sample(sample: ProgressSample) -> str:
    """Render a sample as a one-line human readable status"""
    if sample.is_result:
        return (
            f"Result => video size: {_size_text(sample.video_size)}, "
            f"audio size: {_size_text(sample.audio_size)}"
        )

    parts = []
    if sample.frame is not None:
        parts.append(f"Frames: {sample.frame}")
    speed = "N/A" if sample.speed is None else f"{sample.speed:g}x"
    if sample.fps is not None:
        parts.append(f"Speed: {sample.fps:g} fps ({speed})")
    else:
        parts.append(f"Speed: {speed}")
    parts.append(f"Duration: {format_duration(sample.time)}")
    parts.append(f"Bitrate: {_size_text(sample.bitrate)}/s")
    return " ".join(parts)


class StatusLine:
    """In-place progress line for one combine attempt"""

    def __init__(self) -> None:
        self._drawn = False

    def feed(self, line: str) -> bool:
        """Render the line if it is a statistics line.

        Returns:
            True once the result line was rendered and rendering should stop
        """
        sample = parse_progress_line(line)
        if sample is None:
            return False
        write_status(render_sample(sample), redraw=self._drawn)
        self._drawn = True
        return sample.is_result

    def close(self) -> None:
        if self._drawn:
            end_status()
            self._drawn = False
