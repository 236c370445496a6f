"""Tests for discovery, group keys and merge job grouping"""
import os
from datetime import datetime
from pathlib import Path

import pytest

from recjoin.grouping import (
    MergeJob, SourceFile, collect_sources, decode_group_key, discover_files,
    encode_group_key, group_key_for, group_sources, render_target_name
)


@pytest.mark.parametrize("year", [1970, 2000, 2024, 2099, 4095])
def test_group_key_round_trip(year):
    for month in range(1, 13):
        for day in range(0, 32):
            assert decode_group_key(encode_group_key(year, month, day)) == (year, month, day)


def test_month_mode_drops_day():
    first = group_key_for(datetime(2024, 1, 1, 8), by_month=True)
    last = group_key_for(datetime(2024, 1, 31, 23), by_month=True)
    assert first == last
    assert decode_group_key(first) == (2024, 1, 0)


def test_keys_order_chronologically():
    keys = [
        group_key_for(datetime(2023, 12, 31)),
        group_key_for(datetime(2024, 1, 1)),
        group_key_for(datetime(2024, 1, 2)),
        group_key_for(datetime(2024, 2, 1)),
    ]
    assert keys == sorted(keys)


def test_render_target_name_day_and_month():
    day_key = encode_group_key(2024, 1, 1)
    month_key = encode_group_key(2024, 1, 0)
    assert render_target_name(day_key, f"yyyy-MM{os.sep}dd", "mkv") == f"2024-01{os.sep}01.mkv"
    assert render_target_name(month_key, "yyyy-MM", "mkv") == "2024-01.mkv"
    assert render_target_name(encode_group_key(987, 3, 9), "cam_yyyyMMdd", "mp4") == "cam_09870309.mp4"


def test_group_sources_one_job_per_day():
    a = SourceFile(Path("a.mp4"), datetime(2024, 1, 1, 1))
    b = SourceFile(Path("b.mp4"), datetime(2024, 1, 1, 2))
    c = SourceFile(Path("c.mp4"), datetime(2024, 1, 2, 0))

    jobs = group_sources([b, c, a])

    assert jobs == [
        MergeJob(encode_group_key(2024, 1, 1), (Path("a.mp4"), Path("b.mp4"))),
        MergeJob(encode_group_key(2024, 1, 2), (Path("c.mp4"),)),
    ]
    assert jobs[0].date == (2024, 1, 1)


def test_group_sources_by_month_merges_days():
    items = [
        SourceFile(Path("late.mp4"), datetime(2024, 1, 31, 23)),
        SourceFile(Path("early.mp4"), datetime(2024, 1, 1, 0)),
        SourceFile(Path("feb.mp4"), datetime(2024, 2, 1, 0)),
    ]
    jobs = group_sources(items, by_month=True)
    assert [j.sources for j in jobs] == [
        (Path("early.mp4"), Path("late.mp4")),
        (Path("feb.mp4"),),
    ]


def test_group_sources_keeps_discovery_order_for_equal_times():
    when = datetime(2024, 5, 5, 5)
    items = [SourceFile(Path(f"{n}.mp4"), when) for n in ("10_x", "00_x", "05_x")]
    (job,) = group_sources(items)
    assert job.sources == (Path("10_x.mp4"), Path("00_x.mp4"), Path("05_x.mp4"))


def test_members_are_ordered_by_timestamp():
    stamps = [datetime(2024, 3, 3, h, m) for h in (9, 1, 5) for m in (30, 0)]
    items = [SourceFile(Path(f"{i}.mp4"), t) for i, t in enumerate(stamps)]
    (job,) = group_sources(items)
    ordered = [next(s.timestamp for s in items if s.path == p) for p in job.sources]
    assert ordered == sorted(ordered)


def test_collect_sources_drops_unrecognized(tmp_path):
    good = tmp_path / "20240101010000_20240101015959.mp4"
    bad = tmp_path / "notes.mp4"
    sources = collect_sources([good, bad])
    assert sources == [SourceFile(good, datetime(2024, 1, 1, 1, 0, 0))]


def test_discover_files(tmp_path):
    nested = tmp_path / "cam" / "2024" / "01"
    nested.mkdir(parents=True)
    (nested / "b.mp4").touch()
    (nested / "a.MP4").touch()
    (nested / "a.mp4.old").touch()
    (nested / "readme.txt").touch()
    single = tmp_path / "single.mov"
    single.touch()

    found = discover_files([tmp_path / "cam", single, tmp_path / "missing"], ("mp4",))

    assert found == [nested / "a.MP4", nested / "b.mp4", single]


def test_scenario_day_and_month_naming(make_recordings):
    a, b = make_recordings("20240101010000", "20240101020000")
    (job,) = group_sources(collect_sources([b, a]))
    assert job.sources == (a, b)
    assert render_target_name(job.key, f"yyyy-MM{os.sep}dd", "mkv") == os.path.join("2024-01", "01.mkv")

    (month_job,) = group_sources(collect_sources([b, a]), by_month=True)
    assert render_target_name(month_job.key, "yyyy-MM", "mkv") == "2024-01.mkv"
