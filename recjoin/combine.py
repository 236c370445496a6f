"""Single ffmpeg combine attempt

Runs ffmpeg's concat demuxer over one candidate input list, consumes
its output while it runs and reports what was observed. Deciding what
to do with the outcome is left to the merge orchestrator.
"""

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from .command_builders import build_combine_command, write_concat_list
from .config import FFMPEG_BIN, MOOV_ATOM_MARKER, UNSUPPORTED_CODEC_MARKER
from .formatting import print_raw, print_warning
from .progress import StatusLine
from .stream_pump import StreamPump
from .utils import ensure_writable, get_file_size

logger = logging.getLogger(__name__)

FILE_OPEN_ERROR = "FILE_OPEN_ERROR"
MOOV_ATOM_NOT_FOUND = "MOOV_ATOM_NOT_FOUND"

# Greedy up to the quote ending the line, as paths can contain apostrophes
_OPEN_FAILURE = re.compile(r"Impossible\sto\sopen\s(['\"])(.+)\1\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class CombineAttempt:
    """One ffmpeg invocation over a candidate input list"""
    inputs: Tuple[Path, ...]
    output: Path
    encode_audio: bool = False


@dataclass(frozen=True)
class SourceFault:
    """A source file ffmpeg reported as unusable"""
    kind: str
    path: Path


@dataclass
class AttemptResult:
    """What a combine attempt observed"""
    exit_code: Optional[int]
    output_size: int = 0
    unsupported_codec: bool = False
    source_error: Optional[SourceFault] = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and self.output_size > 0


class CombineRunner:
    """Run combine attempts with ffmpeg.

    Attributes:
        container_format: ffmpeg muxer name for the output
        verbose: Echo raw ffmpeg output instead of the progress line
        ffmpeg_bin: ffmpeg executable
    """

    def __init__(self, container_format: str, verbose: bool = False, ffmpeg_bin: str = FFMPEG_BIN):
        self.container_format = container_format
        self.verbose = verbose
        self.ffmpeg_bin = ffmpeg_bin

    def run(self, attempt: CombineAttempt, detect_faults: bool = False) -> AttemptResult:
        """Execute one attempt.

        Args:
            attempt: Inputs, output and audio mode to use
            detect_faults: Stop ffmpeg as soon as a source file is reported
                unreadable or truncated, and report that file

        Returns:
            AttemptResult describing exit status, output size and markers seen

        Raises:
            OutputPermissionError: If the output file cannot be created
        """
        ensure_writable(attempt.output)
        concat_file = write_concat_list(attempt.inputs)
        try:
            cmd = build_combine_command(
                concat_file,
                attempt.output,
                self.container_format,
                attempt.encode_audio,
                self.ffmpeg_bin
            )
            logger.info("Running ffmpeg command:\n%s", " \\\n    ".join(cmd))
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace"
            )
            pump = StreamPump(process).start()
            try:
                unsupported_codec, fault = self._consume(process, pump, detect_faults)
                process.wait()
                pump.join()
            except BaseException:
                self._cleanup_process(process, attempt.output)
                raise
        finally:
            concat_file.unlink(missing_ok=True)

        result = AttemptResult(
            exit_code=process.returncode,
            output_size=get_file_size(attempt.output),
            unsupported_codec=unsupported_codec,
            source_error=fault
        )
        logger.debug("Attempt result: %s", result)
        return result

    def _consume(self, process, pump: StreamPump, detect_faults: bool) -> Tuple[bool, Optional[SourceFault]]:
        """Drain pumped lines, rendering progress and watching for error markers."""
        status = StatusLine()
        unsupported_codec = False
        fault_kind = None
        rendering = True
        try:
            for stream_name, line in pump.lines():
                logger.debug("[%s] %s", stream_name, line)
                if UNSUPPORTED_CODEC_MARKER in line:
                    unsupported_codec = True

                if detect_faults:
                    if MOOV_ATOM_MARKER in line:
                        fault_kind = MOOV_ATOM_NOT_FOUND
                    else:
                        m = _OPEN_FAILURE.search(line)
                        if m:
                            fault = SourceFault(fault_kind or FILE_OPEN_ERROR, Path(m.group(2)))
                            self._stop(process)
                            status.close()
                            print_warning(f"Error detected -> {fault.path}: {fault.kind}")
                            return unsupported_codec, fault

                if not rendering:
                    continue
                if self.verbose:
                    print_raw(line)
                elif status.feed(line):
                    rendering = False
        finally:
            status.close()
        return unsupported_codec, None

    @classmethod
    def _cleanup_process(cls, process, output: Path) -> None:
        """Stop an interrupted attempt and drop its partial output."""
        logger.debug("Combine attempt aborted, cleaning up %s", output)
        cls._stop(process)
        output.unlink(missing_ok=True)

    @staticmethod
    def _stop(process) -> None:
        if process.poll() is None:
            logger.debug("Killing ffmpeg (pid %s)", process.pid)
            process.kill()
        process.wait()
