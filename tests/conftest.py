"""Shared test fixtures for ingestkit-checklist tests.

Provides a queue-based mock satisfying the ``LLMBackend`` protocol, a
recording ``ProgressSink``, fast-retry config helpers, and session-scoped
.xlsx file generators.
"""

from __future__ import annotations

import json
import pathlib
import tempfile
from typing import Any

import openpyxl
import pytest

from ingestkit_checklist.config import ChecklistProcessorConfig
from ingestkit_checklist.models import ProgressEvent, ProgressStatus

HEADER = "question | type | option | required | isDependent | dependentOn | dependentOptions"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_config(**overrides: Any) -> ChecklistProcessorConfig:
    """Create a config with near-zero backoff for tests."""
    defaults: dict[str, Any] = {
        "backoff_base_seconds": 0.0,
        "backoff_max_seconds": 0.01,
    }
    defaults.update(overrides)
    return ChecklistProcessorConfig(**defaults)


def make_rows(count: int, width: int = 20) -> list[str]:
    """Build *count* distinct data rows of exactly *width* characters."""
    return [f"Question {i:04d}".ljust(width, ".") for i in range(1, count + 1)]


def items_json(count: int, prefix: str = "Q", **fields: Any) -> str:
    """Serialize *count* well-formed raw items as a JSON array."""
    items = []
    for i in range(1, count + 1):
        item = {
            "id": i,
            "question": f"{prefix}{i}",
            "type": "textField",
            "options": "",
            "required": False,
            "isDependent": False,
            "dependentOn": "",
            "dependentOptions": "",
        }
        item.update(fields)
        items.append(item)
    return json.dumps(items)


# ---------------------------------------------------------------------------
# Mock Backends
# ---------------------------------------------------------------------------


class MockLLM:
    """Queue-based LLM backend satisfying ``LLMBackend`` protocol.

    Push reply strings or exception instances onto ``responses`` with
    :meth:`enqueue`.  Each ``complete`` call pops from the front; an
    exception instance is raised instead of returned.
    """

    def __init__(self, *responses: Any) -> None:
        self.responses: list[Any] = list(responses)
        self.calls: list[dict[str, Any]] = []

    def enqueue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def complete(
        self,
        prompt: str,
        model: str,
        system: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 4000,
        timeout: float | None = None,
    ) -> str:
        self.calls.append(
            {
                "prompt": prompt,
                "model": model,
                "system": system,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "timeout": timeout,
            }
        )
        if not self.responses:
            raise RuntimeError("MockLLM: no responses enqueued")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


class RecordingSink:
    """``ProgressSink`` that keeps every published event in order."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def publish(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def statuses(self, chunk_index: int | None = None) -> list[ProgressStatus]:
        return [
            e.status
            for e in self.events
            if chunk_index is None or e.chunk_index == chunk_index
        ]


class ExplodingSink:
    """``ProgressSink`` whose every publish raises."""

    def __init__(self) -> None:
        self.calls = 0

    def publish(self, event: ProgressEvent) -> None:
        self.calls += 1
        raise RuntimeError("sink is broken")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_config() -> ChecklistProcessorConfig:
    """Return a ChecklistProcessorConfig with all defaults."""
    return ChecklistProcessorConfig()


@pytest.fixture()
def test_config() -> ChecklistProcessorConfig:
    """``ChecklistProcessorConfig`` pre-set with test-friendly backoff."""
    return make_config()


@pytest.fixture()
def mock_llm() -> MockLLM:
    """Fresh ``MockLLM`` instance with an empty response queue."""
    return MockLLM()


@pytest.fixture()
def recording_sink() -> RecordingSink:
    return RecordingSink()


# ---------------------------------------------------------------------------
# Session-scoped .xlsx Fixture Generators
# ---------------------------------------------------------------------------

_XLSX_TMP_DIR: tempfile.TemporaryDirectory | None = None


def _xlsx_dir() -> pathlib.Path:
    """Lazily create a session-wide temp directory for generated .xlsx files."""
    global _XLSX_TMP_DIR  # noqa: PLW0603
    if _XLSX_TMP_DIR is None:
        _XLSX_TMP_DIR = tempfile.TemporaryDirectory(prefix="ingestkit_checklist_xlsx_")
    return pathlib.Path(_XLSX_TMP_DIR.name)


@pytest.fixture(scope="session")
def checklist_xlsx() -> pathlib.Path:
    """Checklist sheet: header, 3 data rows, a blank row, padded cells."""
    path = _xlsx_dir() / "checklist.xlsx"
    if path.exists():
        return path
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Checklist"
    ws.append(["question", "type", "option", "required"])
    ws.append(["  Inspector name  ", "textField", None, "Yes"])
    ws.append(["Site condition", "dropdown", "Good,Fair,Poor", "No"])
    ws.append([None, None, None, None])
    ws.append(["Inspection date", "date", None, True])
    wb.save(path)
    return path


@pytest.fixture(scope="session")
def header_only_xlsx() -> pathlib.Path:
    """Sheet holding a header row and nothing else."""
    path = _xlsx_dir() / "header_only.xlsx"
    if path.exists():
        return path
    wb = openpyxl.Workbook()
    wb.active.append(["question", "type"])
    wb.save(path)
    return path


@pytest.fixture(scope="session")
def empty_xlsx() -> pathlib.Path:
    """Workbook whose only sheet has no cells."""
    path = _xlsx_dir() / "empty.xlsx"
    if path.exists():
        return path
    openpyxl.Workbook().save(path)
    return path


@pytest.fixture(scope="session")
def full_header_xlsx() -> pathlib.Path:
    """Sheet with every expected checklist column and one data row."""
    path = _xlsx_dir() / "full_header.xlsx"
    if path.exists():
        return path
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(
        [
            "Question",
            "Type",
            "Option",
            "Required",
            "isDependent",
            "dependentOn",
            "dependentOptions",
        ]
    )
    ws.append(["Inspector name", "textField", None, "Yes", "No", None, None])
    wb.save(path)
    return path


@pytest.fixture(scope="session")
def bad_header_xlsx() -> pathlib.Path:
    """Sheet whose header names none of the expected columns."""
    path = _xlsx_dir() / "bad_header.xlsx"
    if path.exists():
        return path
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(["Name", "Kind", "Notes"])
    ws.append(["Inspector name", "text", "first page"])
    ws.append(["Site condition", "choice", "Good,Fair,Poor"])
    wb.save(path)
    return path


@pytest.fixture(scope="session")
def corrupt_xlsx() -> pathlib.Path:
    """A file with an .xlsx name that is not a zip archive."""
    path = _xlsx_dir() / "corrupt.xlsx"
    if not path.exists():
        path.write_bytes(b"this is not a workbook")
    return path
