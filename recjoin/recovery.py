"""Recovery state and truncated file repair

Responsibilities:
- Track the last known-good recording, used as untrunc's reference
- Repair recordings without a moov atom via untrunc
- Hold back merged sources that are still needed as repair reference
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from .command_builders import build_repair_command, build_untrunc_probe_command
from .config import REPAIRED_SUFFIX, UNTRUNC_BIN
from .exceptions import RepairError
from .formatting import print_info, print_warning
from .utils import get_file_size, run_cmd, tool_available

logger = logging.getLogger(__name__)


def same_path(a: Path, b: Path) -> bool:
    """Case-insensitive path comparison"""
    return str(a).casefold() == str(b).casefold()


def index_of(paths: Sequence[Path], target: Path) -> int:
    """Index of target in paths (case-insensitive), -1 if absent"""
    for i, path in enumerate(paths):
        if same_path(path, target):
            return i
    return -1


@dataclass
class RecoveryContext:
    """Run-wide recovery state shared by the orchestrator and the repair coordinator.

    Attributes:
        last_known_good: Reference recording for repairs; set at most once
        pending_removal: Merged sources kept back while still referenced
    """
    last_known_good: Optional[Path] = None
    pending_removal: List[Path] = field(default_factory=list)

    def set_reference_if_absent(self, path: Path) -> bool:
        """Record path as reference unless one is already known.

        Returns:
            True if the reference was set by this call
        """
        if self.last_known_good is not None:
            return False
        self.last_known_good = Path(path)
        logger.debug("Repair reference set to %s", path)
        return True

    def is_reference(self, path: Path) -> bool:
        return self.last_known_good is not None and same_path(path, self.last_known_good)

    def defer_removal(self, path: Path) -> None:
        if index_of(self.pending_removal, path) < 0:
            self.pending_removal.append(Path(path))

    def drain_pending(self, final: bool = False) -> List[Path]:
        """Remove and return the pending files that may be reclaimed now.

        Args:
            final: End of run; everything pending is released
        """
        ready = [p for p in self.pending_removal if final or not self.is_reference(p)]
        self.pending_removal = [p for p in self.pending_removal if p not in ready]
        return ready


class RepairCoordinator:
    """Drive untrunc to rebuild truncated recordings.

    untrunc needs an intact recording from the same camera as structural
    template; the coordinator picks it from the context.
    """

    def __init__(self, context: RecoveryContext, untrunc_bin: str = UNTRUNC_BIN):
        self.context = context
        self.untrunc_bin = untrunc_bin

    def check_available(self) -> bool:
        return tool_available(build_untrunc_probe_command(self.untrunc_bin))

    def record_success(self, sources: Sequence[Path]) -> None:
        """Remember the newest file of a successful merge as reference"""
        if sources:
            self.context.set_reference_if_absent(sources[-1])

    def note_moov_failure(self, sources: Sequence[Path], broken: Path) -> None:
        """Pick a reference next to the broken file if none is known yet"""
        if self.context.last_known_good is not None:
            return

        index = index_of(sources, broken)
        if index > 0:
            self.context.set_reference_if_absent(sources[index - 1])
        elif len(sources) == 1:
            print_warning("The broken file is the only file of this job and cannot be repaired, please repair it manually")
        elif index == 0:
            print_warning("The broken file is the first file; using the second file as reference, repair may fail if it is broken as well")
            self.context.set_reference_if_absent(sources[1])
        else:
            logger.warning("Broken file %s is not part of the merge list", broken)

    def repair(self, broken: Path) -> Path:
        """Rebuild broken into ``<broken>.fix``.

        Returns:
            Path of the repaired file

        Raises:
            RepairError: No reference is known, untrunc failed or produced nothing
        """
        reference = self.context.last_known_good
        if reference is None:
            raise RepairError("no reference recording available, please repair the file manually", module="recovery")

        repaired = broken.with_name(broken.name + REPAIRED_SUFFIX)
        print_info(f"Repairing {broken} using reference {reference} -> {repaired}")
        try:
            result = run_cmd(
                build_repair_command(reference, broken, repaired, self.untrunc_bin),
                check=False
            )
        except OSError as e:
            raise RepairError(f"cannot start untrunc: {e}", module="recovery") from e

        if result.returncode != 0:
            repaired.unlink(missing_ok=True)
            raise RepairError(f"untrunc exited unexpectedly, exit code={result.returncode}", module="recovery")
        if get_file_size(repaired) <= 0:
            repaired.unlink(missing_ok=True)
            raise RepairError(f"repaired file {repaired} is missing or empty", module="recovery")
        return repaired
