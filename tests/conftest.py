from pathlib import Path

import pytest

from testbook.core.codec import HEADER
from testbook.core.config import TestbookSettings
from testbook.storage import CSVRecordStore, open_store


SAMPLE_ROWS = [
    "1,Core DB,UnitTest,Passed,1",
    "2,Billing API (v2),Integration,Failed,1",
    "3,Auth-Service_x.y,Smoke,Pending,0",
    "4,Search [beta],Regression,Success,1",
]


@pytest.fixture
def settings(tmp_path: Path) -> TestbookSettings:
    return TestbookSettings(data_dir=tmp_path, max_records=100, page_size=2)


@pytest.fixture
def write_csv(tmp_path: Path):
    def _write(*rows: str, name: str = "tests.csv", header: str = HEADER) -> Path:
        path = tmp_path / name
        path.write_text("\n".join([header, *rows]) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def empty_store(tmp_path: Path, settings: TestbookSettings) -> CSVRecordStore:
    return open_store(tmp_path / "tests.csv", create_if_missing=True, settings=settings)


@pytest.fixture
def sample_store(write_csv, settings: TestbookSettings) -> CSVRecordStore:
    return open_store(write_csv(*SAMPLE_ROWS), settings=settings)
