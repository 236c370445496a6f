"""
Command-line interface for recjoin
"""
import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .command_builders import build_version_command
from .config import MAX_COMBINE_ATTEMPTS, OUTPUT_FORMATS, JoinOptions
from .exceptions import DependencyError, RecJoinError
from .formatting import print_error, print_header, print_info
from .logging import configure_logging
from .pipeline import JoinWorker
from .utils import tool_available

NOTES = """\
notes:
  - when grouping by month the default name template is "yyyy-MM"
  - when grouping by day the default name template is "yyyy-MM/dd"
  - use -f to override either
"""

def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog="recjoin",
        description="Merge surveillance camera recordings into one file per day or month",
        epilog=NOTES,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "sources",
        nargs="*",
        type=Path,
        help="Recording files or directories to merge"
    )
    parser.add_argument(
        "-o", "--output",
        dest="target",
        type=Path,
        help="Output directory (default: current directory)"
    )
    parser.add_argument(
        "-d", "--delete",
        dest="delete_after_combine",
        action="store_true",
        help="Delete source files after merging instead of renaming them (renaming prevents merging twice)"
    )
    parser.add_argument(
        "-f", "--format",
        dest="name_template",
        default="",
        help="Output name template without extension, supports yyyy, MM and dd placeholders"
    )
    parser.add_argument(
        "-t", "--type",
        dest="file_type",
        choices=sorted(OUTPUT_FORMATS),
        default="mkv",
        help="Output file type (default: %(default)s, recommended)"
    )
    parser.add_argument(
        "-gm", "--group-by-month",
        dest="group_by_month",
        action="store_true",
        help="Merge per month (default is per day)"
    )
    parser.add_argument(
        "-v", "--verbose",
        dest="verbose",
        action="store_true",
        help="Show raw ffmpeg output"
    )
    parser.add_argument(
        "-ie", "--ignore-errors",
        dest="skip_bad_files",
        action="store_true",
        help="Skip files that cannot be merged and continue"
    )
    parser.add_argument(
        "-fix", "--fix",
        dest="repair_moov",
        action="store_true",
        help="Try to repair broken files with untrunc (only 'moov atom not found' errors)"
    )
    parser.add_argument(
        "--encode-audio",
        dest="encode_audio",
        action="store_true",
        help="Re-encode audio to AAC from the start"
    )
    parser.add_argument(
        "--max-attempts",
        dest="max_attempts",
        type=int,
        default=MAX_COMBINE_ATTEMPTS,
        help="Maximum ffmpeg attempts per merge (default: %(default)s)"
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set logging level (default from RECJOIN_LOG_LEVEL or INFO)"
    )
    return parser.parse_args(argv)

def build_options(args) -> JoinOptions:
    return JoinOptions(
        sources=args.sources,
        target=args.target,
        name_template=args.name_template,
        file_type=args.file_type,
        group_by_month=args.group_by_month,
        delete_after_combine=args.delete_after_combine,
        encode_audio=args.encode_audio,
        verbose=args.verbose,
        skip_bad_files=args.skip_bad_files,
        repair_moov=args.repair_moov,
        max_attempts=args.max_attempts,
    )

def check_dependencies(worker: JoinWorker) -> None:
    """Verify the external tools the run needs.

    Raises:
        DependencyError: If ffmpeg (or untrunc, when repairing) cannot be run
    """
    if not tool_available(build_version_command(worker.runner.ffmpeg_bin)):
        raise DependencyError(
            f"ffmpeg not found. Install it or make '{worker.runner.ffmpeg_bin}' runnable (RECJOIN_FFMPEG)",
            module="main"
        )
    if worker.options.repair_moov and not worker.repairer.check_available():
        raise DependencyError(
            f"untrunc not found, it is required by -fix. Install it or make '{worker.repairer.untrunc_bin}' runnable (RECJOIN_UNTRUNC)",
            module="main"
        )

def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)
    configure_logging(args.log_level)

    log = logging.getLogger("recjoin")
    print_header(f"recjoin v{__version__}")

    try:
        options = build_options(args)
        worker = JoinWorker(options)
        check_dependencies(worker)
        if not options.sources:
            print_error("Pass the files or directories to merge")
            return 1
        print_info("Processing input...")
        summary = worker.run()
    except KeyboardInterrupt:
        log.warning("Merge interrupted by user")
        return 130
    except RecJoinError as e:
        print_error(e.message)
        log.debug("Aborted: %s", e)
        return 1
    except Exception as e:
        log.exception("Merge failed: %s", e)
        return 1

    if summary.jobs_total == 0 or summary.jobs_failed:
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
