"""Tests for the command-line interface"""
from pathlib import Path

import pytest

from recjoin.__main__ import build_options, check_dependencies, main, parse_args
from recjoin.config import DAY_TEMPLATE, MONTH_TEMPLATE, JoinOptions
from recjoin.exceptions import DependencyError
from recjoin.pipeline import JoinWorker, RunSummary


@pytest.fixture(autouse=True)
def no_log_files(mocker):
    return mocker.patch("recjoin.__main__.configure_logging")


def test_parse_all_flags():
    args = parse_args(["-gm", "-ie", "-fix", "-d", "-t", "mp4", "-o", "out", "a", "b"])
    options = build_options(args)

    assert options.sources == [Path("a"), Path("b")]
    assert options.target == Path("out")
    assert options.group_by_month
    assert options.skip_bad_files
    assert options.repair_moov
    assert options.delete_after_combine
    assert options.file_type == "mp4"
    assert options.container_format == "mp4"
    assert options.name_template == MONTH_TEMPLATE


def test_defaults():
    options = build_options(parse_args(["cam"]))

    assert options.target is None
    assert options.file_type == "mkv"
    assert options.container_format == "matroska"
    assert options.name_template == DAY_TEMPLATE
    assert not options.recovery_enabled
    assert not options.delete_after_combine


def test_custom_template():
    options = build_options(parse_args(["-f", "cam1/yyyyMMdd", "cam"]))
    assert options.name_template == "cam1/yyyyMMdd"


def test_invalid_type_rejected():
    with pytest.raises(SystemExit):
        parse_args(["-t", "avi", "cam"])


def test_missing_ffmpeg_returns_error(mocker):
    mocker.patch("recjoin.__main__.tool_available", return_value=False)
    run = mocker.patch.object(JoinWorker, "run")

    assert main(["cam"]) == 1
    run.assert_not_called()


def test_missing_untrunc_with_fix(mocker):
    mocker.patch("recjoin.__main__.tool_available", return_value=True)
    worker = JoinWorker(JoinOptions(repair_moov=True))
    mocker.patch.object(worker.repairer, "check_available", return_value=False)

    with pytest.raises(DependencyError, match="untrunc"):
        check_dependencies(worker)


def test_no_sources_returns_error(mocker):
    mocker.patch("recjoin.__main__.tool_available", return_value=True)
    run = mocker.patch.object(JoinWorker, "run")

    assert main([]) == 1
    run.assert_not_called()


@pytest.mark.parametrize("summary,code", [
    (RunSummary(jobs_total=2, jobs_merged=2), 0),
    (RunSummary(jobs_total=2, jobs_merged=1, jobs_failed=1), 1),
    (RunSummary(), 1),
])
def test_exit_code_from_summary(mocker, summary, code):
    mocker.patch("recjoin.__main__.tool_available", return_value=True)
    mocker.patch.object(JoinWorker, "run", return_value=summary)

    assert main(["cam"]) == code


def test_interrupt_returns_130(mocker):
    mocker.patch("recjoin.__main__.tool_available", return_value=True)
    mocker.patch.object(JoinWorker, "run", side_effect=KeyboardInterrupt)

    assert main(["cam"]) == 130


def test_invalid_attempts_reported():
    assert main(["--max-attempts", "0", "cam"]) == 1
