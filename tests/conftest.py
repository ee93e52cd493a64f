from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

# Import the local src tree, not an older installed wheel, plus the shared fakes.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))
sys.path.insert(0, str(ROOT / "tests"))


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """CLI runs reconfigure the root logger; undo it between tests."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
