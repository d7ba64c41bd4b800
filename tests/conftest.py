from pathlib import Path

import pytest

from jstack_report.dump import load_dump
from jstack_report.models import Dump

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_path() -> Path:
    return FIXTURES / "sample_dump.txt"


@pytest.fixture
def sample_lines(sample_path: Path) -> list[str]:
    return sample_path.read_text(encoding="utf-8").splitlines()


@pytest.fixture
def sample_dump(sample_path: Path) -> Dump:
    return load_dump(sample_path)
