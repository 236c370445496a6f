"""Source discovery and merge job grouping

Responsibilities:
- Expand configured source entries into candidate segment files
- Attach capture timestamps to segments
- Bucket segments into ordered merge jobs per day or per month
- Render output file names from a job's group key
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Tuple

from .timestamps import extract_timestamp

logger = logging.getLogger(__name__)

# Bit layout of a group key: year << 9 | month << 5 | day
_MONTH_SHIFT = 5
_YEAR_SHIFT = 9
_MONTH_MASK = 0b1111
_DAY_MASK = 0b11111


@dataclass(frozen=True)
class SourceFile:
    """A segment file and its capture time"""
    path: Path
    timestamp: datetime


@dataclass(frozen=True)
class MergeJob:
    """Segments merged into one output, ordered by capture time"""
    key: int
    sources: Tuple[Path, ...]

    @property
    def date(self) -> Tuple[int, int, int]:
        return decode_group_key(self.key)


def encode_group_key(year: int, month: int, day: int = 0) -> int:
    """Pack a (year, month, day) bucket into an integer; day 0 means the whole month"""
    return (year << _YEAR_SHIFT) | (month << _MONTH_SHIFT) | day


def decode_group_key(key: int) -> Tuple[int, int, int]:
    """Unpack a group key into (year, month, day)"""
    return key >> _YEAR_SHIFT, (key >> _MONTH_SHIFT) & _MONTH_MASK, key & _DAY_MASK


def group_key_for(timestamp: datetime, by_month: bool = False) -> int:
    return encode_group_key(timestamp.year, timestamp.month, 0 if by_month else timestamp.day)


def render_target_name(key: int, template: str, file_type: str) -> str:
    """Build the output file name (relative to the target directory) for a group key.

    Args:
        key: Group key of the merge job
        template: Name template with yyyy, MM and dd placeholders
        file_type: Output container extension without the dot

    Returns:
        The substituted template with the extension appended
    """
    year, month, day = decode_group_key(key)
    name = (
        template.replace("yyyy", f"{year:04d}")
        .replace("MM", f"{month:02d}")
        .replace("dd", f"{day:02d}")
    )
    return f"{name}.{file_type}"


def discover_files(entries: Iterable[Path], extensions: Sequence[str]) -> List[Path]:
    """Expand source entries into candidate segment files.

    A directory yields every file with one of the given extensions found
    recursively, a file is taken as-is and anything else yields nothing.
    """
    suffixes = {f".{ext.lower()}" for ext in extensions}
    found: List[Path] = []
    for entry in entries:
        entry = Path(entry)
        if entry.is_dir():
            matches = sorted(
                p for p in entry.rglob("*")
                if p.is_file() and p.suffix.lower() in suffixes
            )
            logger.debug("Found %d files in %s", len(matches), entry)
            found.extend(matches)
        elif entry.is_file():
            found.append(entry)
        else:
            logger.warning("Source not found: %s", entry)
    return found


def collect_sources(paths: Iterable[Path]) -> List[SourceFile]:
    """Attach capture timestamps, dropping files with unrecognized names"""
    sources = []
    for path in paths:
        timestamp = extract_timestamp(path.stem)
        if timestamp is None:
            logger.debug("Skipping file with unrecognized name: %s", path)
            continue
        sources.append(SourceFile(path, timestamp))
    return sources


def group_sources(sources: Iterable[SourceFile], by_month: bool = False) -> List[MergeJob]:
    """Bucket sources into merge jobs ordered by key, members ordered by timestamp"""
    buckets: Dict[int, List[SourceFile]] = {}
    for source in sources:
        buckets.setdefault(group_key_for(source.timestamp, by_month), []).append(source)

    jobs = []
    for key in sorted(buckets):
        # sorted() is stable, so equal timestamps keep discovery order
        members = sorted(buckets[key], key=lambda s: s.timestamp)
        jobs.append(MergeJob(key, tuple(s.path for s in members)))
    return jobs
