"""Merge orchestration

Responsibilities:
  - Discover recordings and group them into merge jobs.
  - Run each job's combine with the retry/recovery state machine.
  - Append new recordings to output files left by earlier runs.
  - Delete or rename merged sources, holding back repair references.
  - Present a final summary of the run.
"""

import logging
import os
import time
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .combine import MOOV_ATOM_NOT_FOUND, AttemptResult, CombineAttempt, CombineRunner
from .config import (
    PROCESSED_SUFFIX, SOURCE_EXTENSIONS, SWAP_SUFFIX, TEMP_SUFFIX, JoinOptions
)
from .exceptions import DirectoryCreateError, RepairError
from .formatting import (
    console, print_check, print_error, print_header, print_info,
    print_separator, print_success, print_warning
)
from .grouping import (
    MergeJob, collect_sources, discover_files, group_sources, render_target_name
)
from .recovery import RecoveryContext, RepairCoordinator, index_of
from .utils import format_size, get_file_size, has_free_space

logger = logging.getLogger(__name__)


class Transition(Enum):
    """Outcome of evaluating one combine attempt"""
    SUCCESS = auto()
    RETRY_REENCODE = auto()
    RETRY_SKIP_FILE = auto()
    REPAIR_AND_RETRY = auto()
    FAIL = auto()


def decide_transition(
    attempt: CombineAttempt,
    result: AttemptResult,
    options: JoinOptions,
    allow_reencode: bool = True,
    allow_recovery: bool = True
) -> Transition:
    """Pick the next step after an attempt; rules are checked in priority order."""
    if result.unsupported_codec and not attempt.encode_audio and allow_reencode:
        return Transition.RETRY_REENCODE
    fault = result.source_error
    if fault is not None and allow_recovery:
        if options.skip_bad_files:
            return Transition.RETRY_SKIP_FILE
        if options.repair_moov and fault.kind == MOOV_ATOM_NOT_FOUND:
            return Transition.REPAIR_AND_RETRY
    if result.succeeded:
        return Transition.SUCCESS
    return Transition.FAIL


def without_path(paths: Sequence[Path], target: Path) -> Tuple[Path, ...]:
    """Drop every case-insensitive match of target"""
    return tuple(p for p in paths if str(p).casefold() != str(target).casefold())


def replace_path(paths: Sequence[Path], target: Path, replacement: Path) -> Tuple[Path, ...]:
    """Swap the first case-insensitive match of target for replacement"""
    index = index_of(paths, target)
    if index < 0:
        return tuple(paths)
    return tuple(paths[:index]) + (replacement,) + tuple(paths[index + 1:])


def _append_suffix(path: Path, suffix: str) -> Path:
    return path.with_name(path.name + suffix)


@dataclass
class CombineOutcome:
    """Result of a full combine chain"""
    success: bool
    inputs: Tuple[Path, ...] = ()
    skipped: Tuple[Path, ...] = ()
    attempts: int = 0


@dataclass
class RunSummary:
    jobs_total: int = 0
    jobs_merged: int = 0
    jobs_failed: int = 0
    files_merged: int = 0
    elapsed: float = 0.0


class JoinWorker:
    """Merge recordings into one file per day or month.

    Attributes:
        options: Run options
        context: Recovery state shared across all jobs of the run
        runner: Executes single combine attempts
        repairer: Repairs truncated recordings
    """

    def __init__(
        self,
        options: JoinOptions,
        context: Optional[RecoveryContext] = None,
        runner: Optional[CombineRunner] = None,
        repairer: Optional[RepairCoordinator] = None
    ):
        self.options = options
        self.context = context or RecoveryContext()
        self.runner = runner or CombineRunner(options.container_format, options.verbose)
        self.repairer = repairer or RepairCoordinator(self.context)

    def combine(
        self,
        sources: Sequence[Path],
        output: Path,
        allow_reencode: bool = True,
        allow_recovery: bool = True
    ) -> CombineOutcome:
        """Combine sources into output, retrying per the recovery rules.

        Args:
            sources: Files to join, in order
            output: File to write
            allow_reencode: Whether an unsupported codec may trigger an audio re-encode
            allow_recovery: Whether broken sources may be skipped or repaired

        Returns:
            CombineOutcome with the final input list and skipped files

        Raises:
            OutputPermissionError: If output cannot be created
        """
        inputs = tuple(sources)
        encode_audio = self.options.encode_audio and allow_reencode
        detect_faults = allow_recovery and self.options.recovery_enabled
        skipped: List[Path] = []
        repaired: List[Path] = []

        def outcome(success: bool, attempts: int) -> CombineOutcome:
            return CombineOutcome(success, inputs, tuple(skipped), attempts)

        try:
            for attempt_no in range(1, self.options.max_attempts + 1):
                attempt = CombineAttempt(inputs, output, encode_audio)
                result = self.runner.run(attempt, detect_faults=detect_faults)
                transition = decide_transition(attempt, result, self.options, allow_reencode, allow_recovery)
                logger.info("Attempt %d for %s: %s", attempt_no, output.name, transition.name)

                if transition is Transition.SUCCESS:
                    return outcome(True, attempt_no)

                output.unlink(missing_ok=True)
                fault = result.source_error

                if transition is Transition.RETRY_REENCODE:
                    print_warning("Codec not supported by the output container, retrying with audio re-encoded")
                    encode_audio = True

                elif transition is Transition.RETRY_SKIP_FILE:
                    narrowed = without_path(inputs, fault.path)
                    if len(narrowed) == len(inputs):
                        print_error(f"Broken file {fault.path} is not in the merge list, giving up")
                        return outcome(False, attempt_no)
                    if not narrowed:
                        print_error("No files left to merge after skipping broken files")
                        return outcome(False, attempt_no)
                    print_warning(f"Skipping broken file {fault.path} and retrying")
                    skipped.append(fault.path)
                    inputs = narrowed

                elif transition is Transition.REPAIR_AND_RETRY:
                    if index_of(repaired, fault.path) >= 0:
                        print_error(f"Repaired file {fault.path} is still unreadable")
                        return outcome(False, attempt_no)
                    self.repairer.note_moov_failure(inputs, fault.path)
                    print_info(f"Trying to repair broken file {fault.path}")
                    try:
                        fixed = self.repairer.repair(fault.path)
                    except RepairError as e:
                        print_error(e.message)
                        return outcome(False, attempt_no)
                    repaired.append(fixed)
                    inputs = replace_path(inputs, fault.path, fixed)
                    print_info(f"Merging again with repaired file {fixed}")

                else:
                    logger.error(
                        "ffmpeg failed for %s (exit code %s, output %s)",
                        output, result.exit_code, format_size(result.output_size)
                    )
                    return outcome(False, attempt_no)

            print_error(f"Giving up on {output.name} after {self.options.max_attempts} attempts")
            return outcome(False, self.options.max_attempts)
        finally:
            for path in repaired:
                path.unlink(missing_ok=True)
                logger.debug("Removed repaired file %s", path)

    def process_job(self, job: MergeJob, target_dir: Path) -> bool:
        """Merge one job into its output file.

        Returns:
            True if the job's recordings ended up in the output file

        Raises:
            OutputPermissionError: If output files cannot be created
        """
        target = target_dir / render_target_name(job.key, self.options.name_template, self.options.file_type)
        temp = _append_suffix(target, TEMP_SUFFIX)

        print_separator()
        print_check(f"First merge, target: {target}")
        print_info(f"{len(job.sources)} recordings:")
        for i, path in enumerate(job.sources, 1):
            console.print(f"  [{i:05d}] {path}", highlight=False)

        try:
            self._prepare_directory(target.parent)
        except DirectoryCreateError as e:
            print_error(e.message)
            return False

        sources = tuple(p.absolute() for p in job.sources)
        # First pass writes the temp file; appending also writes a swap copy of target + temp
        new_data = sum(get_file_size(p) for p in sources)
        required = new_data
        if target.exists():
            required += get_file_size(target) + new_data
        if not has_free_space(target.parent, required):
            print_error(f"Not enough free space in {target.parent}, {format_size(required)} required")
            return False

        first = self.combine(sources, temp)
        if not first.success:
            print_error("Merge failed")
            temp.unlink(missing_ok=True)
            return False

        if self.options.repair_moov:
            # Repaired substitutes are deleted again, only originals can serve as reference
            self.repairer.record_success([p for p in first.inputs if index_of(sources, p) >= 0])
        print_success("Merge succeeded")

        if target.exists():
            print_info("Merged file already exists, appending new recordings")
            swap = _append_suffix(temp, SWAP_SUFFIX)
            second = self.combine((target, temp), swap, allow_reencode=False, allow_recovery=False)
            if not second.success:
                print_error("Append merge failed")
                temp.unlink(missing_ok=True)
                return False
            os.replace(swap, target)
            temp.unlink(missing_ok=True)
            print_success("Append merge finished")
        else:
            os.replace(temp, target)

        merged = [p for p in sources if index_of(first.skipped, p) < 0]
        for path in first.skipped:
            print_warning(f"  Broken file left in place: {path}")
        self.dispose_sources(merged)
        print_success("Done")
        return True

    @staticmethod
    def _prepare_directory(directory: Path) -> None:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreateError(
                f"Cannot create directory {directory}: {e}",
                module="pipeline"
            ) from e

    def _dispose(self, path: Path) -> None:
        if self.options.delete_after_combine:
            path.unlink()
            print_info(f"  Deleted: {path}")
        else:
            path.rename(_append_suffix(path, PROCESSED_SUFFIX))
            print_info(f"  Renamed: {path}")

    def dispose_sources(self, sources: Sequence[Path]) -> None:
        """Delete or rename merged sources; repair references are held back"""
        action = "Deleting" if self.options.delete_after_combine else "Renaming"
        print_info(f"{action} source files")
        for path in sources:
            if self.context.is_reference(path):
                print_info(f"  Keeping repair reference for now: {path}")
                self.context.defer_removal(path)
                continue
            try:
                self._dispose(path)
            except OSError as e:
                print_warning(f"  Cannot process {path} -> {e}")

    def cleanup_pending(self, final: bool = False) -> None:
        """Reclaim held back sources that are no longer needed"""
        for path in self.context.drain_pending(final):
            try:
                self._dispose(path)
            except OSError as e:
                print_warning(f"Cannot process held back file {path} -> {e}")

    def plan_jobs(self) -> List[MergeJob]:
        print_info("Searching for files and directories...")
        files = discover_files(self.options.sources, SOURCE_EXTENSIONS)
        print_info(f"Found {len(files)} files, preprocessing...")
        return group_sources(collect_sources(files), self.options.group_by_month)

    def run(self) -> RunSummary:
        """Merge all discovered recordings.

        Returns:
            RunSummary of the run

        Raises:
            OutputPermissionError: If output files cannot be created
        """
        start_time = time.time()
        summary = RunSummary()
        jobs = self.plan_jobs()
        if not jobs:
            print_error("No recordings found, pass the files or directories to merge")
            return summary

        if self.options.target is None:
            print_info("No output directory given, using the current directory")
        target_dir = (self.options.target or Path.cwd()).absolute()
        print_check(f"Merged files go to: {target_dir}")
        if self.options.delete_after_combine:
            print_check("Source files will be deleted after merging")
        else:
            print_check(f"Source files will be renamed to *{PROCESSED_SUFFIX} after merging")
        print_check(f"Merging {sum(len(j.sources) for j in jobs)} recordings into {len(jobs)} files")

        summary.jobs_total = len(jobs)
        try:
            for job in jobs:
                try:
                    merged = self.process_job(job, target_dir)
                finally:
                    self.cleanup_pending(final=False)
                if merged:
                    summary.jobs_merged += 1
                    summary.files_merged += len(job.sources)
                else:
                    summary.jobs_failed += 1
        finally:
            self.cleanup_pending(final=True)
            summary.elapsed = time.time() - start_time

        print_summary(summary)
        return summary


def print_summary(summary: RunSummary) -> None:
    hours = int(summary.elapsed // 3600)
    minutes = int((summary.elapsed % 3600) // 60)
    seconds = int(summary.elapsed % 60)

    print_header("Merge Summary")
    print_success(f"Merged files:  {summary.jobs_merged}/{summary.jobs_total}")
    print_success(f"Recordings:    {summary.files_merged}")
    if summary.jobs_failed:
        print_error(f"Failed merges: {summary.jobs_failed}")
    print_check(f"Total time:    {hours:02d}h {minutes:02d}m {seconds:02d}s")
    print_separator()
