"""
Unit test configuration for Blunderbuss.

Keeps log files and the models.dev cache out of the user's home directory.
"""

import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))


@pytest.fixture(autouse=True)
def isolated_cache_dir(tmp_path, monkeypatch):
    """Point the log and model cache directories at a temp directory."""
    cache_dir = tmp_path / "cache"
    monkeypatch.setattr("blunderbuss.logging_config.DEFAULT_LOG_DIR", cache_dir)
    monkeypatch.setattr("blunderbuss.discovery.DEFAULT_CACHE_DIR", cache_dir)
    monkeypatch.delenv("BLUNDERBUSS_TMUX_SOCKET", raising=False)
    yield cache_dir
    # setup_*_logging installs handlers on the package logger; undo that
    root = logging.getLogger("blunderbuss")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = True
