"""Tests for ingestkit_checklist.router -- ChecklistRouter end to end with mock backends."""

from __future__ import annotations

import json
import logging
import threading

import pytest

from conftest import HEADER, MockLLM, RecordingSink, items_json, make_config, make_rows
from ingestkit_checklist.errors import EmptyInput, ErrorCode, ProviderUnavailable
from ingestkit_checklist.models import FieldType, ProgressStatus, Provider
from ingestkit_checklist.router import ChecklistRouter, create_default_router

BOTH = [Provider.ANTHROPIC, Provider.OPENAI]


def _two_chunk_config(**overrides):
    """Config that splits ten 20-char rows into two chunks of five."""
    defaults = {
        "small_dataset_max_rows": 0,
        "prompt_overhead_chars": 0,
        "max_chars_per_chunk": {},
        "default_max_chars_per_chunk": 50,
        "min_rows_per_chunk": 5,
    }
    defaults.update(overrides)
    return make_config(**defaults)


@pytest.fixture()
def clean_env(monkeypatch):
    for var in ("AI_PROVIDER", "CLAUDE_MODEL", "OPENAI_MODEL", "ANTHROPIC_API_KEY", "OPENAI_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


# ===========================================================================
# extract()
# ===========================================================================


@pytest.mark.unit
class TestExtract:
    def test_three_rows_three_items(self) -> None:
        reply = json.dumps(
            [
                {"id": 1, "question": "Inspector name", "type": "textField", "required": "true"},
                {"id": 2, "question": "Site condition", "type": "dropdown",
                 "options": "Good,Fair,Poor", "required": "true"},
                {"id": 3, "question": "Inspection date", "type": "date", "required": "true"},
            ]
        )
        llm = MockLLM(reply)
        router = ChecklistRouter({Provider.ANTHROPIC: llm}, config=make_config())

        result = router.extract(
            HEADER,
            [
                "Inspector name | textField |  | true",
                "Site condition | dropdown | Good,Fair,Poor | true",
                "Inspection date | date |  | true",
            ],
        )

        assert [i.id for i in result.items] == [1, 2, 3]
        assert all(i.required is True for i in result.items)
        assert result.items[1].type == FieldType.DROPDOWN
        assert result.total_rows == 3
        assert result.total_chunks == 1
        assert result.succeeded_chunks == 1
        assert not result.is_partial
        assert len(llm.calls) == 1

    def test_ten_rows_under_threshold_is_one_call(self) -> None:
        llm = MockLLM(items_json(10))
        router = ChecklistRouter({Provider.ANTHROPIC: llm}, config=make_config())

        result = router.extract(HEADER, make_rows(10))

        assert len(llm.calls) == 1
        assert result.total_chunks == 1
        assert len(result.items) == 10

    def test_default_budget_splits_a_large_sheet(self, caplog) -> None:
        caplog.set_level(logging.INFO, logger="ingestkit_checklist")
        llm = MockLLM(*[items_json(1) for _ in range(20)])
        config = make_config()
        router = ChecklistRouter({Provider.ANTHROPIC: llm}, config=config)

        result = router.extract(HEADER, make_rows(400, width=80))

        # 2800-char haiku budget: 33 rows per chunk, short tail folded into the last.
        assert result.total_chunks == 12
        assert result.succeeded_chunks == 12
        assert len(llm.calls) == 12
        rows_per_call = [call["prompt"].count("Question ") for call in llm.calls]
        assert sum(rows_per_call) == 400
        assert max(rows_per_call) <= 40
        for call in llm.calls:
            assert len(call["prompt"]) / config.chars_per_token < config.llm_max_tokens
        assert "above llm_max_tokens" not in caplog.text

    def test_budget_does_not_grow_with_input_size(self) -> None:
        llm = MockLLM(*[items_json(1) for _ in range(40)])
        router = ChecklistRouter({Provider.ANTHROPIC: llm}, config=make_config())

        result = router.extract(HEADER, make_rows(1000, width=80))

        assert result.total_chunks == 31
        assert all(call["model"] == "claude-3-haiku-20240307" for call in llm.calls)
        assert max(call["prompt"].count("Question ") for call in llm.calls) == 33

    def test_oversized_chunk_logs_token_warning(self, caplog) -> None:
        caplog.set_level(logging.INFO, logger="ingestkit_checklist")
        llm = MockLLM(items_json(10))
        router = ChecklistRouter({Provider.ANTHROPIC: llm}, config=make_config(llm_max_tokens=50))

        router.extract(HEADER, make_rows(10))

        assert "above llm_max_tokens=50" in caplog.text
        assert "largest ~84 tokens" in caplog.text

    def test_second_chunk_exhausted_gives_partial_result(self) -> None:
        llm = MockLLM(
            items_json(5),
            ConnectionError("down 1"),
            ConnectionError("down 2"),
            ConnectionError("down 3"),
        )
        sink = RecordingSink()
        router = ChecklistRouter({Provider.ANTHROPIC: llm}, config=_two_chunk_config())

        result = router.extract(HEADER, make_rows(10), sink=sink)

        assert result.total_chunks == 2
        assert result.succeeded_chunks == 1
        assert [i.id for i in result.items] == [1, 2, 3, 4, 5]
        assert result.is_partial
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.chunk_index == 1
        assert failure.affected_row_range == (5, 9)
        assert failure.row_count == 5
        assert failure.error_code == ErrorCode.E_CHUNK_EXHAUSTED
        assert sink.statuses(chunk_index=1)[-1] == ProgressStatus.FAILED

    def test_ids_are_renumbered_across_chunks(self) -> None:
        llm = MockLLM(items_json(5, "A"), items_json(5, "B"))
        router = ChecklistRouter({Provider.ANTHROPIC: llm}, config=_two_chunk_config())

        result = router.extract(HEADER, make_rows(10))

        assert [i.id for i in result.items] == list(range(1, 11))
        assert result.items[5].question == "B1"
        assert len(llm.calls) == 2

    def test_type_correction_warning_surfaces(self) -> None:
        reply = json.dumps([{"question": "Q", "type": "foo", "required": False}])
        router = ChecklistRouter({Provider.ANTHROPIC: MockLLM(reply)}, config=make_config())

        result = router.extract(HEADER, ["Q | foo"])

        assert result.items[0].type == FieldType.TEXT_FIELD
        assert [w.code for w in result.warnings] == [ErrorCode.W_TYPE_CORRECTED]

    def test_fallback_provider_is_used(self) -> None:
        router = ChecklistRouter(
            {
                Provider.ANTHROPIC: MockLLM(ConnectionError("down")),
                Provider.OPENAI: MockLLM(json.dumps({"checklist": json.loads(items_json(2))})),
            },
            config=make_config(providers=BOTH),
        )

        result = router.extract(HEADER, make_rows(2))

        assert len(result.items) == 2
        assert ErrorCode.W_PROVIDER_FALLBACK in [w.code for w in result.warnings]

    def test_empty_rows_raise(self) -> None:
        router = ChecklistRouter({Provider.ANTHROPIC: MockLLM()}, config=make_config())
        with pytest.raises(EmptyInput):
            router.extract(HEADER, [])

    def test_no_backend_raises(self) -> None:
        router = ChecklistRouter({}, config=make_config())
        with pytest.raises(ProviderUnavailable):
            router.extract(HEADER, make_rows(3))

    def test_default_sink_is_router_progress(self) -> None:
        router = ChecklistRouter({Provider.ANTHROPIC: MockLLM(items_json(1))}, config=make_config())
        subscription = router.progress.subscribe()

        router.extract(HEADER, make_rows(1))

        statuses = [e.status for e in subscription.drain()]
        assert statuses == [ProgressStatus.ATTEMPTING, ProgressStatus.SUCCESS]

    def test_cancelled_run_returns_all_failures(self) -> None:
        llm = MockLLM(items_json(5), items_json(5))
        router = ChecklistRouter({Provider.ANTHROPIC: llm}, config=_two_chunk_config())
        event = threading.Event()
        event.set()

        result = router.extract(HEADER, make_rows(10), cancel_event=event)

        assert llm.calls == []
        assert result.items == []
        assert [f.error_code for f in result.failures] == [ErrorCode.E_CANCELLED] * 2


# ===========================================================================
# process() / status()
# ===========================================================================


@pytest.mark.unit
class TestProcess:
    def test_reads_spreadsheet_then_extracts(self, checklist_xlsx) -> None:
        llm = MockLLM(items_json(3))
        router = ChecklistRouter({Provider.ANTHROPIC: llm}, config=make_config())

        result = router.process(str(checklist_xlsx))

        assert result.total_rows == 3
        assert "Inspector name | textField" in llm.calls[0]["prompt"]
        assert "question | type | option | required" in llm.calls[0]["prompt"]

    def test_header_only_sheet_is_empty_input(self, header_only_xlsx) -> None:
        router = ChecklistRouter({Provider.ANTHROPIC: MockLLM()}, config=make_config())
        with pytest.raises(EmptyInput):
            router.process(str(header_only_xlsx))

    def test_header_mismatch_is_reported_as_warning(self, bad_header_xlsx) -> None:
        llm = MockLLM(items_json(2))
        router = ChecklistRouter({Provider.ANTHROPIC: llm}, config=make_config())

        result = router.process(str(bad_header_xlsx))

        assert len(result.items) == 2
        assert [w.code for w in result.warnings] == [ErrorCode.W_HEADER_MISMATCH]

    def test_full_header_adds_no_warning(self, full_header_xlsx) -> None:
        router = ChecklistRouter({Provider.ANTHROPIC: MockLLM(items_json(1))}, config=make_config())
        result = router.process(str(full_header_xlsx))
        assert result.warnings == []


@pytest.mark.unit
class TestStatus:
    def test_reports_availability_and_models(self) -> None:
        router = ChecklistRouter({Provider.ANTHROPIC: MockLLM()}, config=make_config(providers=BOTH))

        status = router.status()

        assert status["ready"] is True
        anthropic, openai = status["providers"]
        assert anthropic["provider"] == "anthropic"
        assert anthropic["available"] is True
        assert anthropic["primary"] is True
        assert anthropic["models"]["small"] == "claude-3-haiku-20240307"
        assert openai["available"] is False
        assert openai["primary"] is False

    def test_not_ready_without_backends(self) -> None:
        assert ChecklistRouter({}, config=make_config()).status()["ready"] is False


# ===========================================================================
# create_default_router()
# ===========================================================================


@pytest.mark.unit
class TestCreateDefaultRouter:
    def test_builds_backend_from_api_key(self, clean_env) -> None:
        clean_env.setenv("ANTHROPIC_API_KEY", "sk-test")
        router = create_default_router()

        status = router.status()
        assert status["ready"] is True
        assert status["providers"][0]["provider"] == "anthropic"

    def test_missing_keys_leave_router_not_ready(self, clean_env) -> None:
        clean_env.setenv("AI_PROVIDER", "both")
        router = create_default_router()
        assert router.status()["ready"] is False
        assert [p["available"] for p in router.status()["providers"]] == [False, False]

    def test_openai_only(self, clean_env) -> None:
        clean_env.setenv("AI_PROVIDER", "openai")
        clean_env.setenv("OPENAI_API_KEY", "sk-openai")
        clean_env.setenv("ANTHROPIC_API_KEY", "sk-unused")

        status = create_default_router().status()

        assert [p["provider"] for p in status["providers"]] == ["openai"]
        assert status["ready"] is True

    def test_config_kwargs_and_backends_override(self, clean_env) -> None:
        llm = MockLLM(items_json(1))
        router = create_default_router(backends={Provider.ANTHROPIC: llm}, max_retries=0)

        assert router.config.max_retries == 0
        router.extract(HEADER, make_rows(1))
        assert len(llm.calls) == 1
