import sys
from pathlib import Path

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'modforge'
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


from modforge.core.stdlib_logging import reset_logging_for_tests
from modforge.data import read_yaml


@pytest.fixture(autouse=True)
def _reset_modforge_state():
    """Drop cached bundled data and the modforge log handler between tests."""
    yield
    read_yaml.cache_clear()
    reset_logging_for_tests()


@pytest.fixture
def write_bytes(tmp_path):
    """Write raw bytes to ``tmp_path / name`` and return the path."""

    def _write(name: str, data: bytes) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    return _write
