from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def concept2_tcx(fixtures_dir: Path) -> Path:
    return fixtures_dir / "concept2.tcx"


@pytest.fixture
def location_tcx(fixtures_dir: Path) -> Path:
    return fixtures_dir / "cycling-location.tcx"


@pytest.fixture
def hard_cuts_bundle(fixtures_dir: Path) -> Path:
    return fixtures_dir / "fcp" / "hard-cuts.fcpxmld"


@pytest.fixture
def t0() -> datetime:
    return datetime(2025, 1, 1, 10, 0, 0, tzinfo=UTC)


@pytest.fixture
def at(t0: datetime):
    """at(1500) -> t0 + 1.5 s"""

    def _at(ms: float) -> datetime:
        return t0 + timedelta(milliseconds=ms)

    return _at
