"""Tests for the provider contract and tool-call delta merging."""

from __future__ import annotations

import pytest
from pydantic import BaseModel, Field, TypeAdapter

from streamcase.foundation.errors import ErrorCode
from streamcase.foundation.testing import MockLanguageModel
from streamcase.io.streaming import TextDelta, ToolCallArgsDelta, ToolCallComplete, ToolCallStart
from streamcase.providers import (
    CallMode,
    LanguageModel,
    ObjectToolMode,
    RegularMode,
    ToolCallDeltaMerger,
    ToolDefinition,
    UnsupportedFunctionalityError,
)


class SearchParams(BaseModel):
    query: str = Field(..., description="What to look for")
    limit: int = 5


class TestToolDefinition:
    def test_from_model_uses_json_schema(self) -> None:
        tool = ToolDefinition.from_model("search", SearchParams, "Search the knowledge base")
        assert tool.name == "search"
        assert tool.parameters["required"] == ["query"]
        assert set(tool.parameters["properties"]) == {"query", "limit"}

    def test_default_parameters(self) -> None:
        assert ToolDefinition(name="ping").parameters == {"type": "object", "properties": {}}

    def test_call_mode_is_discriminated(self) -> None:
        adapter = TypeAdapter(CallMode)
        mode = adapter.validate_python({"type": "object-tool", "tool": {"name": "extract"}})
        assert isinstance(mode, ObjectToolMode)
        assert mode.tool.name == "extract"
        assert isinstance(adapter.validate_python({"type": "regular"}), RegularMode)


class TestUnsupported:
    def test_names_the_functionality(self) -> None:
        err = UnsupportedFunctionalityError("object-grammar mode")
        assert str(err) == "'object-grammar mode' functionality not supported."
        assert err.error.code is ErrorCode.UNSUPPORTED
        assert not err.error.recoverable
        assert err.functionality == "object-grammar mode"


class TestMockLanguageModel:
    def test_satisfies_the_protocol(self) -> None:
        assert isinstance(MockLanguageModel(), LanguageModel)

    @pytest.mark.asyncio
    async def test_generate_folds_the_script(self) -> None:
        model = MockLanguageModel(parts=[TextDelta("Hel"), TextDelta("lo"), ToolCallComplete("t1", "search", {})])
        result = await model.generate(mode=RegularMode(), prompt=[{"role": "user", "content": "hi"}])
        assert result.text == "Hello"
        assert [c.tool_name for c in result.tool_calls] == ["search"]
        assert model.call_count == 1


# ─────────────────────────────────────────────────────────────────────────────
# ToolCallDeltaMerger
# ─────────────────────────────────────────────────────────────────────────────


class TestToolCallDeltaMerger:
    def test_fragments_become_start_deltas_and_complete(self) -> None:
        merger = ToolCallDeltaMerger()
        assert merger.feed(0, id="call_1", name="search") == [ToolCallStart("call_1", "search")]
        assert merger.feed(0, arguments='{"query":') == [ToolCallArgsDelta("call_1", '{"query":', "search")]
        assert merger.feed(0, arguments='"ai"}') == [
            ToolCallArgsDelta("call_1", '"ai"}', "search"),
            ToolCallComplete("call_1", "search", {"query": "ai"}),
        ]
        assert merger.incomplete == []

    def test_whole_call_in_one_fragment(self) -> None:
        merger = ToolCallDeltaMerger()
        assert merger.feed(0, id="c1", name="ping", arguments="{}") == [
            ToolCallStart("c1", "ping"),
            ToolCallArgsDelta("c1", "{}", "ping"),
            ToolCallComplete("c1", "ping", {}),
        ]

    def test_fragments_after_completion_are_ignored(self) -> None:
        merger = ToolCallDeltaMerger()
        merger.feed(0, id="c1", name="ping", arguments="{}")
        assert merger.feed(0, arguments=" ") == []

    def test_parallel_calls_by_index(self) -> None:
        merger = ToolCallDeltaMerger()
        merger.feed(0, id="a", name="search", arguments='{"query":')
        merger.feed(1, id="b", name="ping", arguments="{}")
        assert merger.incomplete == ["a"]
        (*_, done) = merger.feed(0, arguments='"x"}')
        assert done == ToolCallComplete("a", "search", {"query": "x"})

    def test_missing_id_is_generated(self) -> None:
        merger = ToolCallDeltaMerger(generate_id=lambda: "gen_1")
        assert merger.feed(0, name="ping") == [ToolCallStart("gen_1", "ping")]

    def test_name_may_arrive_after_arguments(self) -> None:
        merger = ToolCallDeltaMerger()
        assert merger.feed(0, id="c1", arguments="{") == [ToolCallArgsDelta("c1", "{", "")]
        assert merger.feed(0, name="ping", arguments="}") == [
            ToolCallStart("c1", "ping"),
            ToolCallArgsDelta("c1", "}", "ping"),
            ToolCallComplete("c1", "ping", {}),
        ]
