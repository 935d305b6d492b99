from __future__ import annotations

import argparse
import math
from collections.abc import Sequence
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from ..core.config import TestbookSettings
from ..core.log_config import setup_logging
from ..core.validators import validate_id
from ..discovery import find_record_files
from ..errors import TestbookError
from ..models.record import TestOutcome, TestRecord
from ..storage import CSVRecordStore, open_store


_RESULT_STYLES: dict[TestOutcome, str] = {
    TestOutcome.FAILED: "red",
    TestOutcome.PASSED: "green",
    TestOutcome.PENDING: "yellow",
    TestOutcome.SUCCESS: "bold green",
}


def _test_id(raw: str) -> int:
    if not validate_id(raw):
        raise argparse.ArgumentTypeError(f"invalid test ID {raw!r} (expected a positive integer)")
    return int(raw.strip())


def _page(raw: str) -> int:
    if not validate_id(raw):
        raise argparse.ArgumentTypeError(f"invalid page {raw!r}")
    return int(raw.strip())


class CLIApplication:
    """Top-level command router."""

    def __init__(self, console: Console | None = None, settings: TestbookSettings | None = None) -> None:
        self.console = console or Console()
        self.settings = settings
        self.parser = argparse.ArgumentParser(
            prog="testbook",
            description="Keep a CSV list of tests and their results.",
        )
        self.parser.add_argument(
            "-f",
            "--file",
            dest="file",
            help="Record file, relative to TESTBOOK_DATA_DIR (default: TESTBOOK_DEFAULT_FILE)",
        )
        self.parser.add_argument("--log-level", dest="log_level", help="Override TESTBOOK_LOG_LEVEL")
        subparsers = self.parser.add_subparsers(dest="command", required=True)

        files = subparsers.add_parser("files", help="List candidate record files in a directory.")
        files.add_argument("directory", nargs="?", help="Directory to scan (default: TESTBOOK_DATA_DIR)")

        subparsers.add_parser("init", help="Create the record file, or load it if it exists.")

        listing = subparsers.add_parser("list", help="Show tests one page at a time.")
        listing.add_argument("--deleted", action="store_true", help="Show deleted tests instead")
        listing.add_argument("--page", type=_page, default=1, help="Page number (default: 1)")

        show = subparsers.add_parser("show", help="Show a single test.")
        show.add_argument("test_id", type=_test_id)

        add = subparsers.add_parser("add", help="Add a test.")
        add.add_argument("system_name")
        add.add_argument("test_type")
        add.add_argument("--result", default=TestOutcome.PENDING.display_name, help="Failed, Passed, Pending or Success")

        search = subparsers.add_parser("search", help="Find active tests containing a term.")
        search.add_argument("term")

        update = subparsers.add_parser("update", help="Edit fields of an active test, saved together.")
        update.add_argument("test_id", type=_test_id)
        update.add_argument("--name", dest="system_name")
        update.add_argument("--type", dest="test_type")
        update.add_argument("--result")

        for name, help_text in (
            ("delete", "Mark a test deleted (it can be recovered)."),
            ("recover", "Bring a deleted test back."),
            ("purge", "Remove a deleted test permanently."),
        ):
            sub = subparsers.add_parser(name, help=help_text)
            sub.add_argument("test_id", type=_test_id)
            sub.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    def run(self, argv: Sequence[str] | None = None) -> int:
        load_dotenv(Path.cwd() / ".env")
        args = self.parser.parse_args(argv)
        settings = self.settings or TestbookSettings()
        setup_logging(args.log_level or settings.log_level)

        command = COMMANDS[args.command](self.console, args, settings)
        try:
            command.run()
        except TestbookError as ex:
            self.console.print(f"[red]error:[/red] {escape(str(ex))}")
            return 1
        return command.exit_code


class Command:
    """Base for subcommands that work on the bound record file."""

    def __init__(self, console: Console, args: argparse.Namespace, settings: TestbookSettings) -> None:
        self.console = console
        self.args = args
        self.settings = settings
        self.path = settings.resolve(getattr(args, "file", None))
        self.exit_code = 0

    def open(self, create_if_missing: bool = False) -> CSVRecordStore:
        store = open_store(self.path, create_if_missing=create_if_missing, settings=self.settings)
        for warning in store.warnings:
            self.console.print(f"[yellow]warning:[/yellow] {escape(str(warning))}")
        return store

    def confirm(self, question: str) -> bool:
        if getattr(self.args, "yes", False):
            return True
        return Confirm.ask(question, console=self.console, default=False)

    def print_records(self, records: Sequence[TestRecord], title: str) -> None:
        if not records:
            self.console.print(f"[dim]{escape(title)}: nothing to show[/dim]")
            return
        table = Table(title=escape(title))
        table.add_column("ID", justify="right")
        table.add_column("System")
        table.add_column("Type")
        table.add_column("Result")
        table.add_column("Active", justify="center")
        for record in records:
            style = _RESULT_STYLES[record.result]
            table.add_row(
                str(record.test_id),
                escape(record.system_name),
                escape(record.test_type),
                f"[{style}]{record.result.display_name}[/{style}]",
                "yes" if record.active else "no",
            )
        self.console.print(table)

    def run(self) -> None:
        raise NotImplementedError


class FilesCommand(Command):
    def run(self) -> None:
        directory = Path(self.args.directory) if self.args.directory else self.settings.data_dir
        candidates = find_record_files(directory)
        if not candidates:
            self.console.print(f"No CSV files in {escape(str(directory))}")
            return
        for candidate in candidates:
            marker = "[green]✓[/green]" if candidate.has_header else "[dim]-[/dim]"
            self.console.print(f"{marker} {escape(candidate.name)}")


class InitCommand(Command):
    def run(self) -> None:
        store = self.open(create_if_missing=True)
        self.console.print(
            f"Using {escape(str(store.path))}: {len(store.list_active())} active, "
            f"{len(store.list_inactive())} deleted, next ID {store.next_id}"
        )


class ListCommand(Command):
    def run(self) -> None:
        store = self.open()
        records = store.list_inactive() if self.args.deleted else store.list_active()
        label = "Deleted tests" if self.args.deleted else "Tests"
        size = self.settings.page_size
        pages = max(1, math.ceil(len(records) / size))
        page = min(self.args.page, pages)
        start = (page - 1) * size
        self.print_records(records[start : start + size], f"{label} (page {page} of {pages})")


class ShowCommand(Command):
    def run(self) -> None:
        store = self.open()
        record = store.get(self.args.test_id)
        self.print_records([record], f"Test {record.test_id}")


class AddCommand(Command):
    def run(self) -> None:
        store = self.open()
        record = store.create(self.args.system_name, self.args.test_type, self.args.result)
        self.console.print(f"[green]Added test {record.test_id}[/green]")


class SearchCommand(Command):
    def run(self) -> None:
        store = self.open()
        matches = store.search(self.args.term)
        self.print_records(matches, f"Tests matching {self.args.term.strip()!r}")


class UpdateCommand(Command):
    def run(self) -> None:
        store = self.open()
        with store.edit(self.args.test_id) as pending:
            for field in ("system_name", "test_type", "result"):
                value = getattr(self.args, field)
                if value is not None:
                    pending.set(field, value)
            if not pending.dirty:
                self.console.print("Nothing to update")
                return
            record = pending.save()
        self.print_records([record], f"Updated test {record.test_id}")


class DeleteCommand(Command):
    def run(self) -> None:
        store = self.open()
        record = store.get(self.args.test_id)
        if not self.confirm(f"Delete test {record.test_id} ({escape(record.system_name)})?"):
            self.console.print("Cancelled")
            return
        store.soft_delete(record.test_id)
        self.console.print(f"Deleted test {record.test_id}")


class RecoverCommand(Command):
    def run(self) -> None:
        store = self.open()
        record = store.get(self.args.test_id)
        if not self.confirm(f"Recover test {record.test_id} ({escape(record.system_name)})?"):
            self.console.print("Cancelled")
            return
        store.recover(record.test_id)
        self.console.print(f"Recovered test {record.test_id}")


class PurgeCommand(Command):
    def run(self) -> None:
        store = self.open()
        record = store.get(self.args.test_id)
        if not self.confirm(f"Permanently remove test {record.test_id}? This cannot be undone"):
            self.console.print("Cancelled")
            return
        store.permanent_delete(record.test_id)
        self.console.print(f"Removed test {record.test_id}")


COMMANDS: dict[str, type[Command]] = {
    "files": FilesCommand,
    "init": InitCommand,
    "list": ListCommand,
    "show": ShowCommand,
    "add": AddCommand,
    "search": SearchCommand,
    "update": UpdateCommand,
    "delete": DeleteCommand,
    "recover": RecoverCommand,
    "purge": PurgeCommand,
}


def main(argv: Sequence[str] | None = None) -> int:
    return CLIApplication().run(argv)
