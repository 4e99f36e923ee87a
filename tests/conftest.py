"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from tally.config import TallyConfig
from tally.ledger import Tally


@pytest.fixture
def tally() -> Tally:
    """Fresh in-memory ledger (no journal)."""
    return Tally()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / ".tally"


@pytest.fixture
def config(data_dir: Path) -> TallyConfig:
    """Journal-backed config rooted in a temp directory."""
    return TallyConfig(data_dir=data_dir)
