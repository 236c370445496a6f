"""Configuration settings for recjoin

This module centralizes all configuration settings including:
- External tool locations (ffmpeg, untrunc)
- Log file locations and default log level
- File naming conventions for temporary and processed files
- Diagnostic markers recognized in ffmpeg output

It provides both user-configurable settings via environment variables
and the JoinOptions container passed through the merge pipeline.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .exceptions import ConfigurationError

# External tools: user definable, looked up on PATH by default
FFMPEG_BIN = os.environ.get("RECJOIN_FFMPEG", "ffmpeg")
UNTRUNC_BIN = os.environ.get("RECJOIN_UNTRUNC", "untrunc")

# LOG_DIR: user definable with default of "$HOME/recjoin_logs"
LOG_DIR = Path(os.environ.get("RECJOIN_LOG_DIR", str(Path.home() / "recjoin_logs")))

# Logging configuration
LOG_LEVEL = os.environ.get("RECJOIN_LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR, CRITICAL

# Source discovery
SOURCE_EXTENSIONS = ("mp4",)

# Output containers and the ffmpeg muxer used for each
OUTPUT_FORMATS = {
    "mkv": "matroska",
    "mp4": "mp4",
}
DEFAULT_FILE_TYPE = "mkv"

# Output name templates
DAY_TEMPLATE = f"yyyy-MM{os.sep}dd"
MONTH_TEMPLATE = "yyyy-MM"

# Suffixes for intermediate and processed files
TEMP_SUFFIX = ".tmp"
SWAP_SUFFIX = ".swp"
PROCESSED_SUFFIX = ".old"
REPAIRED_SUFFIX = ".fix"

# Audio codec used when stream copy is rejected by the container
REENCODE_AUDIO_CODEC = "aac"

# Retry ceiling for one combine chain (re-encode, skip and repair retries)
MAX_COMBINE_ATTEMPTS = 8

# ffmpeg diagnostic markers
UNSUPPORTED_CODEC_MARKER = "codec not currently supported in container"
MOOV_ATOM_MARKER = "moov atom not found"


@dataclass
class JoinOptions:
    """Options for one recjoin run.

    Attributes:
        sources: Files or directories to scan for recordings
        target: Output root directory (defaults to the working directory)
        name_template: Output name template with yyyy/MM/dd placeholders
        file_type: Output container, mkv or mp4
        group_by_month: Merge per month instead of per day
        delete_after_combine: Delete merged sources instead of renaming them
        encode_audio: Re-encode audio from the first attempt on
        verbose: Echo raw ffmpeg output instead of a progress line
        skip_bad_files: Drop segments ffmpeg cannot open and retry
        repair_moov: Repair segments without a moov atom using untrunc
        max_attempts: Upper bound of combine attempts per merge pass
    """
    sources: List[Path] = field(default_factory=list)
    target: Optional[Path] = None
    name_template: str = ""
    file_type: str = DEFAULT_FILE_TYPE
    group_by_month: bool = False
    delete_after_combine: bool = False
    encode_audio: bool = False
    verbose: bool = False
    skip_bad_files: bool = False
    repair_moov: bool = False
    max_attempts: int = MAX_COMBINE_ATTEMPTS

    def __post_init__(self) -> None:
        """Validate options and fill in defaults."""
        if self.file_type not in OUTPUT_FORMATS:
            raise ConfigurationError(
                f"Output type must be one of: {', '.join(OUTPUT_FORMATS)}",
                module="config"
            )
        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1", module="config")
        if not self.name_template:
            self.name_template = MONTH_TEMPLATE if self.group_by_month else DAY_TEMPLATE
        self.sources = [Path(s) for s in self.sources]
        if self.target is not None:
            self.target = Path(self.target)

    @property
    def recovery_enabled(self) -> bool:
        """Whether source faults should stop ffmpeg early for skip/repair."""
        return self.skip_bad_files or self.repair_moov

    @property
    def container_format(self) -> str:
        return OUTPUT_FORMATS[self.file_type]
