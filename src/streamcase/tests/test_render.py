"""Tests for driving model output into streamable UI."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from typing import Any

import pytest
from pydantic import BaseModel, Field

from streamcase.foundation.errors import ConfigurationError, StreamException
from streamcase.foundation.testing import MockLanguageModel
from streamcase.io.streaming import ErrorEvent, FunctionCallComplete, TextDelta, ToolCallComplete
from streamcase.runtime.observability import CaptureRenderer
from streamcase.runtime.streamable import (
    ComposeProps,
    Renderer,
    RendererKind,
    TextProps,
    ToolUI,
    UIRevision,
    as_renderer,
    read_streamable_ui,
    render,
)

PROMPT = [{"role": "user", "content": "What's the weather in Paris?"}]


class WeatherParams(BaseModel):
    city: str = Field(..., description="City name")


async def _final(node: UIRevision[Any]) -> tuple[Any, ...]:
    last: tuple[Any, ...] = ()
    async for segments in read_streamable_ui(node):
        last = segments
    return last


async def _composed(node: UIRevision[Any]) -> Any:
    (value,) = await _final(node)
    return value


# ─────────────────────────────────────────────────────────────────────────────
# Renderer tags
# ─────────────────────────────────────────────────────────────────────────────


class TestRenderer:
    def test_plain_callable_is_value_renderer(self) -> None:
        renderer = as_renderer(lambda p: p)
        assert renderer.kind is RendererKind.VALUE

    def test_tagged_renderer_is_kept(self) -> None:
        async def card(p: object) -> str:
            return "card"

        renderer = Renderer.awaitable(card)
        assert as_renderer(renderer) is renderer
        assert renderer.kind is RendererKind.AWAITABLE


# ─────────────────────────────────────────────────────────────────────────────
# render()
# ─────────────────────────────────────────────────────────────────────────────


class TestRender:
    def test_tools_and_functions_are_exclusive(self) -> None:
        cfg = ToolUI(WeatherParams, lambda p: p.city)
        with pytest.raises(ConfigurationError, match="both functions and tools"):
            render(MockLanguageModel(), PROMPT, tools={"weather": cfg}, functions={"weather": cfg})

    @pytest.mark.asyncio
    async def test_text_is_streamed_into_its_own_node(self) -> None:
        model = MockLanguageModel(parts=[TextDelta("Hel"), TextDelta("lo")])
        node = render(model, PROMPT)

        (text_node,) = await _composed(node)
        assert await _final(text_node) == ("Hello",)
        assert model.call_count == 1

    @pytest.mark.asyncio
    async def test_custom_text_renderer_sees_deltas(self) -> None:
        seen: list[TextProps] = []

        def bubble(props: TextProps) -> str:
            seen.append(props)
            return f"<p>{props.content}</p>"

        node = render(MockLanguageModel(parts=[TextDelta("a"), TextDelta("b")]), PROMPT, text=bubble)
        (text_node,) = await _composed(node)

        assert await _final(text_node) == ("<p>ab</p>",)
        assert [(p.content, p.delta, p.done) for p in seen] == [("a", "a", False), ("ab", "b", False), ("ab", None, True)]

    @pytest.mark.asyncio
    async def test_tool_call_runs_its_renderer(self) -> None:
        async def weather_card(params: WeatherParams) -> str:
            return f"card:{params.city}"

        model = MockLanguageModel(parts=[ToolCallComplete("t1", "weather", {"city": "Paris"})])
        node = render(model, PROMPT, tools={
            "weather": ToolUI(WeatherParams, Renderer.awaitable(weather_card), "Show the weather", initial="loading"),
        })

        text_node, tool_node = await _composed(node)
        assert await _final(tool_node) == ("card:Paris",)
        assert await _final(text_node) == ("",)

        mode = model.last_mode
        assert mode is not None and mode.tools is not None
        assert mode.tools[0].name == "weather"
        assert mode.tools[0].description == "Show the weather"
        assert "city" in mode.tools[0].parameters["properties"]

    @pytest.mark.asyncio
    async def test_iterator_renderer_ends_with_return_value(self) -> None:
        def steps(params: WeatherParams) -> Iterator[str]:
            yield "spinner"
            yield f"fetching {params.city}"
            return "final card"

        model = MockLanguageModel(parts=[ToolCallComplete("t1", "weather", {"city": "Oslo"})])
        node = render(model, PROMPT, tools={"weather": ToolUI(WeatherParams, Renderer.iterator(steps))})

        _, tool_node = await _composed(node)
        history = [segments async for segments in read_streamable_ui(tool_node)]
        assert history == [(None,), ("spinner",), ("fetching Oslo",), ("final card",)]

    @pytest.mark.asyncio
    async def test_async_iterator_renderer(self) -> None:
        async def live(params: WeatherParams) -> AsyncIterator[str]:
            yield "connecting"
            yield f"{params.city}: 21C"

        model = MockLanguageModel(parts=[ToolCallComplete("t1", "weather", {"city": "Rome"})])
        node = render(model, PROMPT, tools={"weather": ToolUI(WeatherParams, Renderer.async_iterator(live))})

        _, tool_node = await _composed(node)
        assert await _final(tool_node) == ("Rome: 21C",)

    @pytest.mark.asyncio
    async def test_legacy_function_call(self) -> None:
        model = MockLanguageModel(parts=[FunctionCallComplete("weather", {"city": "Lima"})])
        node = render(model, PROMPT, functions={"weather": ToolUI(WeatherParams, lambda p: f"fn:{p.city}")})

        text_node, fn_node = await _composed(node)
        assert await _final(fn_node) == ("fn:Lima",)

    @pytest.mark.asyncio
    async def test_custom_compose(self) -> None:
        def compose(props: ComposeProps) -> dict[str, Any]:
            return {"text": props.text, "tools": [call.name for call in props.tool_calls]}

        model = MockLanguageModel(parts=[TextDelta("Hi"), ToolCallComplete("t1", "weather", {"city": "Bern"})])
        node = render(model, PROMPT, tools={"weather": ToolUI(WeatherParams, lambda p: p.city)}, compose=compose)

        composed = await _composed(node)
        assert composed["tools"] == ["weather"]
        assert await _final(composed["text"]) == ("Hi",)

    @pytest.mark.asyncio
    async def test_unknown_tool_is_ignored(self, captured_logs: CaptureRenderer) -> None:
        model = MockLanguageModel(parts=[TextDelta("ok"), ToolCallComplete("t1", "missing", {})])
        node = render(model, PROMPT, tools={"weather": ToolUI(WeatherParams, lambda p: p.city)})

        (text_node,) = await _composed(node)
        assert await _final(text_node) == ("ok",)
        assert "model called an unknown tool" in captured_logs.events("warning")

    @pytest.mark.asyncio
    async def test_model_failure_errors_every_open_cell(self) -> None:
        model = MockLanguageModel(parts=[TextDelta("par")], raises=RuntimeError("provider down"))
        node = render(model, PROMPT)

        with pytest.raises(RuntimeError, match="provider down"):
            await _final(node)

    @pytest.mark.asyncio
    async def test_error_event_fails_the_render(self) -> None:
        model = MockLanguageModel(parts=[TextDelta("par"), ErrorEvent("content filtered")])
        node = render(model, PROMPT)

        with pytest.raises(StreamException, match="content filtered"):
            await _final(node)
