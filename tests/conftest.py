import io
from pathlib import Path

import pytest

from recjoin.combine import AttemptResult


class FakeProcess:
    """Stand-in for subprocess.Popen with canned output"""

    def __init__(self, stdout="", stderr="", returncode=0, on_start=None):
        self.stdout = io.StringIO(stdout)
        self.stderr = io.StringIO(stderr)
        self.returncode = returncode
        self.pid = 4242
        self.killed = False
        if on_start:
            on_start()

    def poll(self):
        return self.returncode

    def kill(self):
        self.killed = True
        self.returncode = -9

    def wait(self, timeout=None):
        return self.returncode


class FakeRunner:
    """Replays AttemptResults and writes output files for successful ones"""

    def __init__(self, results):
        self.results = list(results)
        self.calls = []

    def run(self, attempt, detect_faults=False):
        self.calls.append((attempt, detect_faults))
        result = self.results.pop(0)
        if result.output_size:
            attempt.output.write_bytes(b"x" * result.output_size)
        return result


def ok(size=16):
    return AttemptResult(exit_code=0, output_size=size)


@pytest.fixture
def make_recordings(tmp_path):
    """Create recording files named <start>_<end>.mp4 under tmp_path/cam"""
    def _make(*stamps, directory="cam"):
        folder = tmp_path / directory
        folder.mkdir(parents=True, exist_ok=True)
        paths = []
        for stamp in stamps:
            path = folder / f"{stamp}_{stamp[:8]}235959.mp4"
            path.write_bytes(b"rec" + stamp.encode())
            paths.append(path)
        return paths
    return _make


@pytest.fixture
def out_dir(tmp_path) -> Path:
    path = tmp_path / "out"
    path.mkdir()
    return path
