"""Utility functions for the recjoin merge pipeline"""

import logging
import subprocess
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Union

import psutil

from .exceptions import OutputPermissionError

logger = logging.getLogger(__name__)

def run_cmd(cmd: List[str], capture_output: bool = True,
            check: bool = True) -> subprocess.CompletedProcess:
    """Run a command and handle errors"""
    logger.info("Running command: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            capture_output=capture_output,
            check=check,
            text=True,
            errors="replace"
        )
        if result.stdout:
            logger.debug("Command stdout: %s", result.stdout)
        if result.stderr:
            logger.debug("Command stderr: %s", result.stderr)
        return result
    except subprocess.CalledProcessError as e:
        logger.error("Command failed: %s", " ".join(cmd))
        logger.error("Error output: %s", e.stderr)
        raise

def tool_available(cmd: List[str]) -> bool:
    """Check that an external tool can be started and exits cleanly"""
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            stdin=subprocess.DEVNULL
        )
    except OSError as e:
        logger.debug("Cannot start %s: %s", cmd[0], e)
        return False
    return result.returncode == 0

def get_file_size(path: Union[str, Path]) -> int:
    """Get file size in bytes, 0 if the file is missing"""
    try:
        return Path(path).stat().st_size
    except FileNotFoundError:
        return 0

def get_timestamp() -> str:
    """Get current timestamp in YYYYMMDD_HHMMSS format"""
    return datetime.now().strftime("%Y%m%d_%H%M%S")

def format_size(size: float) -> str:
    """Format file size for display"""
    for unit in ['B', 'KiB', 'MiB', 'GiB', 'TiB']:
        if abs(size) < 1024:
            return f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}PiB"

def format_duration(value: Optional[timedelta]) -> str:
    """Format a duration as a short human readable string"""
    if value is None:
        return "N/A"
    total = int(value.total_seconds())
    sign = "-" if total < 0 else ""
    total = abs(total)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{sign}{hours}h{minutes:02d}m{seconds:02d}s"
    if minutes:
        return f"{sign}{minutes}m{seconds:02d}s"
    return f"{sign}{seconds}s"

def ensure_writable(path: Path) -> None:
    """Verify that a file can be created at path.

    Raises:
        OutputPermissionError: If the file cannot be created
    """
    try:
        path.touch()
        path.unlink()
    except OSError as e:
        raise OutputPermissionError(
            f"Cannot create output file {path}: {e}",
            module="utils"
        ) from e

def has_free_space(directory: Path, required: int) -> bool:
    """Check that the filesystem holding directory has at least required bytes free"""
    free = psutil.disk_usage(str(directory)).free
    logger.debug("Free space in %s: %s (need %s)", directory, format_size(free), format_size(required))
    return free >= required
