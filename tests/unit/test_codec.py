import logging
import os
import stat
from pathlib import Path

import pytest

from testbook.core import codec
from testbook.core.codec import HEADER, DecodeWarning, decode, encode, read_file, write_file
from testbook.core.validators import validate_id
from testbook.errors import HeaderMismatchError, LoadError, PersistError
from testbook.models import TestOutcome, TestRecord


def _text(*rows: str) -> str:
    return "\n".join([HEADER, *rows]) + "\n"


class TestDecode:
    def test_loads_valid_row(self):
        records, warnings = decode(_text("5,Core DB,UnitTest,Passed,1"))

        assert records == [TestRecord(5, "Core DB", "UnitTest", TestOutcome.PASSED, True)]
        assert warnings == []

    def test_skips_rows_without_valid_id(self):
        records, warnings = decode(
            _text(
                "5,Core DB,UnitTest,Passed,1",
                "abc,Broken,UnitTest,Passed,1",
                "0,Zero,UnitTest,Passed,1",
                "-4,Negative,UnitTest,Passed,1",
                ",Empty,UnitTest,Passed,1",
            )
        )

        assert [r.test_id for r in records] == [5]
        assert warnings == []

    def test_unknown_result_defaults_to_pending_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="testbook.core.codec"):
            records, warnings = decode(_text("6,Other,Smoke,Bogus,1"))

        assert records[0].result is TestOutcome.PENDING
        assert len(warnings) == 1
        assert warnings[0].line_number == 2
        assert "Bogus" in warnings[0].message
        assert "Bogus" in caplog.text

    def test_missing_trailing_fields_use_defaults(self):
        records, warnings = decode(_text("7,Lonely"))

        assert records == [TestRecord(7, "Lonely", "", TestOutcome.PENDING, False)]
        assert len(warnings) == 1

    def test_active_flag_parsing(self):
        records, warnings = decode(
            _text(
                "1,Aaa,Bbb,Passed,0",
                "2,Aaa,Bbb,Passed,1",
                "3,Aaa,Bbb,Passed,2",
                "4,Aaa,Bbb,Passed,yes",
            )
        )

        assert [r.active for r in records] == [False, True, True, False]
        assert [w.line_number for w in warnings] == [5]

    def test_duplicate_ids_keep_first_row(self):
        records, warnings = decode(_text("1,First,Bbb,Passed,1", "1,Second,Bbb,Failed,1"))

        assert [r.system_name for r in records] == ["First"]
        assert warnings == [DecodeWarning(3, "duplicate test ID 1, row skipped")]

    def test_tolerates_crlf_and_blank_lines(self):
        text = HEADER + "\r\n" + "1,Core DB,UnitTest,Passed,1\r\n" + "\r\n" + "2,Aaa,Bbb,Failed,0\r\n"
        records, warnings = decode(text)

        assert [r.test_id for r in records] == [1, 2]
        assert records[0].active is True
        assert warnings == []

    @pytest.mark.parametrize("separator", ["\x0b", "\x0c", "\x1c", "\x85", "\u2028", "\u2029"])
    def test_only_lf_and_crlf_end_rows(self, separator):
        text = _text(f"5,Core{separator}DB,UnitTest,Passed,1", "6,Other,Smoke,Failed,0")

        records, warnings = decode(text)

        assert records == [
            TestRecord(5, f"Core{separator}DB", "UnitTest", TestOutcome.PASSED, True),
            TestRecord(6, "Other", "Smoke", TestOutcome.FAILED, False),
        ]
        assert warnings == []
        assert encode(records) == text

    def test_plus_sign_id_is_skipped(self):
        records, _ = decode(_text("+5,Core DB,UnitTest,Passed,1"))

        assert records == []
        assert validate_id("+5") is False

    def test_keeps_file_order(self):
        records, _ = decode(_text("9,Aaa,Bbb,Passed,1", "3,Ccc,Ddd,Passed,1", "5,Eee,Fff,Passed,1"))
        assert [r.test_id for r in records] == [9, 3, 5]

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "\n1,Core DB,UnitTest,Passed,1\n",
            "testid,systemname,testtype,testresult,active\n",
            HEADER + " \n",
            "ID,Name,Type,Result,Active\n1,Core DB,UnitTest,Passed,1\n",
        ],
    )
    def test_header_mismatch(self, text):
        with pytest.raises(HeaderMismatchError):
            decode(text)

    def test_header_only(self):
        assert decode(HEADER) == ([], [])


class TestEncode:
    def test_format(self):
        records = [
            TestRecord(1, "Core DB", "UnitTest", TestOutcome.PASSED, True),
            TestRecord(3, "Billing API (v2)", "Smoke", TestOutcome.FAILED, False),
        ]

        assert encode(records) == _text(
            "1,Core DB,UnitTest,Passed,1",
            "3,Billing API (v2),Smoke,Failed,0",
        )

    def test_empty(self):
        assert encode([]) == HEADER + "\n"

    def test_canonical_text_is_stable(self):
        text = _text(
            "4,Search [beta],Regression,Success,1",
            "2,Core DB,UnitTest,Pending,0",
            "8,Auth-Service_x.y,Smoke,Failed,1",
        )
        assert encode(decode(text).records) == text

    def test_records_survive_encoding(self):
        records = [TestRecord(i, f"System {i}", "UnitTest", outcome, i % 2 == 0) for i, outcome in enumerate(TestOutcome, 1)]
        assert decode(encode(records)).records == records


class TestFileIO:
    def test_write_then_read(self, tmp_path: Path):
        path = tmp_path / "tests.csv"
        records = [TestRecord(1, "Core DB", "UnitTest", TestOutcome.PASSED, True)]

        write_file(path, records)

        assert path.read_text(encoding="utf-8") == _text("1,Core DB,UnitTest,Passed,1")
        assert read_file(path).records == records

    def test_read_keeps_unusual_line_breaks_inside_fields(self, tmp_path: Path):
        path = tmp_path / "tests.csv"
        text = _text("5,Core\x0cDB,UnitTest,Passed,1")
        path.write_bytes(text.replace("\n", "\r\n").encode("utf-8"))

        [record] = read_file(path).records

        assert record.system_name == "Core\x0cDB"
        assert record.active is True

    def test_new_file_follows_umask(self, tmp_path: Path):
        path = tmp_path / "tests.csv"
        old_umask = os.umask(0o022)
        try:
            write_file(path, [])
        finally:
            os.umask(old_umask)

        assert stat.S_IMODE(path.stat().st_mode) == 0o644

    def test_rewrite_keeps_existing_mode(self, tmp_path: Path):
        path = tmp_path / "tests.csv"
        write_file(path, [])
        path.chmod(0o640)

        write_file(path, [TestRecord(1, "Core DB", "UnitTest")])

        assert stat.S_IMODE(path.stat().st_mode) == 0o640

    def test_read_missing_file(self, tmp_path: Path):
        with pytest.raises(LoadError):
            read_file(tmp_path / "missing.csv")

    def test_read_reports_path_on_header_mismatch(self, tmp_path: Path):
        path = tmp_path / "other.csv"
        path.write_text("a,b,c\n", encoding="utf-8")

        with pytest.raises(HeaderMismatchError) as excinfo:
            read_file(path)
        assert excinfo.value.path == path

    def test_write_into_missing_directory(self, tmp_path: Path):
        with pytest.raises(PersistError):
            write_file(tmp_path / "nope" / "tests.csv", [])

    def test_failed_replace_keeps_old_content(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "tests.csv"
        write_file(path, [TestRecord(1, "Core DB", "UnitTest")])
        before = path.read_text(encoding="utf-8")

        def boom(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(codec.os, "replace", boom)

        with pytest.raises(PersistError, match="disk full"):
            write_file(path, [])

        assert path.read_text(encoding="utf-8") == before
        assert os.listdir(tmp_path) == ["tests.csv"]
