import shutil
import stat
import sys
import tempfile
from pathlib import Path

import pytest

FAKE_MPV = Path(__file__).parent / "fake_mpv.py"


@pytest.fixture
def short_dir():
    """Short temp dir: Unix socket paths are limited to ~104 bytes."""
    d = Path(tempfile.mkdtemp(prefix="cr-"))
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def fake_mpv(short_dir) -> str:
    """Executable wrapper that runs tests/fake_mpv.py with this interpreter."""
    wrapper = short_dir / "mpv"
    wrapper.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{FAKE_MPV}" "$@"\n')
    wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR)
    return str(wrapper)
