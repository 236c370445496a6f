"""Helper functions for building ffmpeg and untrunc commands"""

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Sequence

import ffmpeg

from .config import FFMPEG_BIN, REENCODE_AUDIO_CODEC, UNTRUNC_BIN

log = logging.getLogger(__name__)

def _quote_concat_path(path: Path) -> str:
    # Inside single quotes the concat demuxer needs ' written as '\''
    return "'" + str(path).replace("'", "'\\''") + "'"

def write_concat_list(inputs: Sequence[Path]) -> Path:
    """Write a concat demuxer list file for the inputs and return its path.

    The caller owns the file and must remove it.
    """
    fd, name = tempfile.mkstemp(prefix="recjoin_", suffix=".txt")
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        for path in inputs:
            f.write(f"file {_quote_concat_path(Path(path).absolute())}\n")
    log.debug("Wrote concat list %s with %d entries", name, len(inputs))
    return Path(name)

def build_combine_command(
    concat_file: Path,
    output_file: Path,
    container_format: str,
    encode_audio: bool = False,
    ffmpeg_bin: str = FFMPEG_BIN
) -> List[str]:
    """Build ffmpeg command for joining the files listed in concat_file"""
    stream = ffmpeg.input(str(concat_file), format="concat", safe=0)
    stream = ffmpeg.output(
        stream,
        str(output_file),
        format=container_format,
        **{
            "c:v": "copy",
            "c:a": REENCODE_AUDIO_CODEC if encode_audio else "copy",
        }
    )
    stream = stream.global_args("-hide_banner", "-nostdin")
    return stream.compile(cmd=ffmpeg_bin, overwrite_output=True)

def build_version_command(ffmpeg_bin: str = FFMPEG_BIN) -> List[str]:
    return [ffmpeg_bin, "-version"]

def build_repair_command(
    reference_file: Path,
    broken_file: Path,
    output_file: Path,
    untrunc_bin: str = UNTRUNC_BIN
) -> List[str]:
    """Build untrunc command rebuilding broken_file with reference_file as template"""
    return [
        untrunc_bin,
        "-dst", str(output_file),
        str(reference_file),
        str(broken_file),
    ]

def build_untrunc_probe_command(untrunc_bin: str = UNTRUNC_BIN) -> List[str]:
    return [untrunc_bin, "-V"]
