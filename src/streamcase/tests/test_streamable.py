"""Tests for streamable values and UI cells."""

from __future__ import annotations

import asyncio

import pytest

from streamcase.foundation.config import clear_settings_cache
from streamcase.foundation.errors import ClosedStreamError
from streamcase.runtime.observability import CaptureRenderer
from streamcase.runtime.streamable import (
    IdleWarning,
    Patch,
    StreamableUI,
    StreamableValue,
    create_streamable_ui,
    create_streamable_value,
    read_streamable_ui,
    read_streamable_value,
)


async def _collect(aiter) -> list:  # type: ignore[no-untyped-def]
    return [item async for item in aiter]


# ─────────────────────────────────────────────────────────────────────────────
# Patch
# ─────────────────────────────────────────────────────────────────────────────


class TestPatch:
    @pytest.mark.parametrize(("old", "new"), [
        ("", "Hello"),
        ("Hel", "Hello"),
        ("Hello", "Hello"),
        ("日本", "日本語"),
    ])
    def test_apply_reconstructs_new(self, old: str, new: str) -> None:
        patch = Patch.between(old, new)
        assert patch is not None
        assert patch.offset == len(old)
        assert patch.apply(old) == new

    @pytest.mark.parametrize(("old", "new"), [
        ("Hello", "Help"),
        ("abc", ""),
        (None, "abc"),
        ("abc", {"not": "a string"}),
    ])
    def test_no_patch_unless_extension(self, old: object, new: object) -> None:
        assert Patch.between(old, new) is None


# ─────────────────────────────────────────────────────────────────────────────
# StreamableValue
# ─────────────────────────────────────────────────────────────────────────────


class TestStreamableValue:
    @pytest.mark.asyncio
    async def test_reader_sees_every_revision(self) -> None:
        stream = StreamableValue("")
        snapshot = stream.value
        stream.update("Hel")
        stream.update("Hello")
        stream.done()
        assert await _collect(read_streamable_value(snapshot)) == ["", "Hel", "Hello"]

    @pytest.mark.asyncio
    async def test_string_extensions_publish_patches(self) -> None:
        stream = StreamableValue("Hel")
        head = stream.value.next
        stream.update("Hello")
        assert head is not None and head.resolved
        revision = await head
        assert revision.diff == Patch(3, "lo")
        assert not revision.has_value

    def test_one_revision_per_update(self) -> None:
        stream = create_streamable_value(0)
        for i in range(1, 4):
            stream.update(i)
            assert stream.revisions == i
        stream.done()
        assert stream.revisions == 4
        assert stream.closed

    @pytest.mark.asyncio
    async def test_snapshot_mid_stream_starts_from_full_value(self) -> None:
        stream = StreamableValue("a")
        stream.update("ab")
        snapshot = stream.value
        assert snapshot.has_value and snapshot.curr == "ab"
        stream.update("abc")
        stream.done("abcd")
        assert await _collect(read_streamable_value(snapshot)) == ["ab", "abc", "abcd"]

    @pytest.mark.asyncio
    async def test_non_string_values_replace(self) -> None:
        stream: StreamableValue[dict[str, int]] = StreamableValue()
        snapshot = stream.value
        stream.update({"a": 1})
        stream.update({"a": 2})
        stream.done()
        assert await _collect(read_streamable_value(snapshot)) == [None, {"a": 1}, {"a": 2}]

    @pytest.mark.asyncio
    async def test_consumer_waits_for_producer(self) -> None:
        stream = StreamableValue("")
        reader = asyncio.create_task(_collect(read_streamable_value(stream.value)))
        for chunk in ("a", "ab", "abc"):
            await asyncio.sleep(0)
            stream.update(chunk)
        assert not reader.done()
        stream.done()
        assert await reader == ["", "a", "ab", "abc"]

    @pytest.mark.asyncio
    async def test_error_propagates_to_reader(self) -> None:
        stream = StreamableValue("x")
        snapshot = stream.value
        stream.update("xy")
        stream.error(RuntimeError("model failed"))

        seen: list[str] = []
        with pytest.raises(RuntimeError, match="model failed"):
            async for value in read_streamable_value(snapshot):
                seen.append(value)
        assert seen == ["x", "xy"]

    @pytest.mark.parametrize("op", ["update", "error", "done"])
    def test_closed_cell_rejects_writes(self, op: str) -> None:
        stream = StreamableValue("x")
        stream.done()
        args = {"update": ("y",), "error": (ValueError(),), "done": ()}[op]
        with pytest.raises(ClosedStreamError, match=rf"\.{op}\(\): Value stream is already closed\."):
            getattr(stream, op)(*args)

    def test_failed_cell_is_closed(self) -> None:
        stream = StreamableValue()
        stream.error(ValueError("x"))
        assert stream.closed
        with pytest.raises(ClosedStreamError):
            stream.update(1)


# ─────────────────────────────────────────────────────────────────────────────
# StreamableUI
# ─────────────────────────────────────────────────────────────────────────────


class TestStreamableUI:
    @pytest.mark.asyncio
    async def test_update_and_append(self) -> None:
        ui = StreamableUI("loading")
        node = ui.value
        ui.update("card")
        ui.append("footer")
        ui.update("footer v2")
        ui.done()
        assert await _collect(read_streamable_ui(node)) == [
            ("loading",),
            ("card",),
            ("card", "footer"),
            ("card", "footer v2"),
        ]

    @pytest.mark.asyncio
    async def test_done_with_final_value(self) -> None:
        ui = create_streamable_ui("spinner")
        node = ui.value
        ui.done("result")
        assert await _collect(read_streamable_ui(node)) == [("spinner",), ("result",)]

    def test_same_object_update_is_a_noop(self) -> None:
        card = {"title": "Weather"}
        ui = StreamableUI(card)
        ui.update(card)
        assert ui.revisions == 0
        ui.update({"title": "Weather"})
        assert ui.revisions == 1

    def test_unobserved_cell_collapses_to_final_value(self) -> None:
        ui = StreamableUI("a")
        ui.update("b")
        ui.done()
        node = ui.value
        assert node.done
        assert node.value == "b"
        assert node.next is None

    def test_observed_cell_keeps_its_chain(self) -> None:
        ui = StreamableUI("a")
        node = ui.value
        ui.done()
        assert ui.value is node
        assert node.next is not None and node.next.resolved

    @pytest.mark.parametrize("op", ["update", "append", "error", "done"])
    def test_closed_cell_rejects_writes(self, op: str) -> None:
        ui = StreamableUI()
        ui.done()
        args = {"update": ("x",), "append": ("x",), "error": (ValueError(),), "done": ()}[op]
        with pytest.raises(ClosedStreamError, match=r"UI stream is already closed"):
            getattr(ui, op)(*args)

    @pytest.mark.asyncio
    async def test_error_propagates_to_reader(self) -> None:
        ui = StreamableUI("a")
        node = ui.value
        ui.error(ConnectionError("lost"))
        with pytest.raises(ConnectionError):
            await _collect(read_streamable_ui(node))

    @pytest.mark.asyncio
    async def test_error_before_first_read_still_raises(self) -> None:
        ui = StreamableUI("spinner")
        ui.update("half")
        ui.error(ConnectionError("lost"))

        seen: list[tuple] = []
        with pytest.raises(ConnectionError, match="lost"):
            async for segments in read_streamable_ui(ui.value):
                seen.append(segments)
        assert seen == [("spinner",), ("half",)]


# ─────────────────────────────────────────────────────────────────────────────
# Idle warning
# ─────────────────────────────────────────────────────────────────────────────


class TestIdleWarning:
    @pytest.mark.asyncio
    async def test_warns_when_left_open(self, captured_logs: CaptureRenderer) -> None:
        stream = StreamableValue("", warning=IdleWarning("value", delay=0.01, enabled=True))
        stream.update("a")
        await asyncio.sleep(0.05)
        warnings = captured_logs.events("warning")
        assert len(warnings) == 1
        assert warnings[0].startswith("The streamable value has been slow to update.")

    @pytest.mark.asyncio
    async def test_done_cancels_the_warning(self, captured_logs: CaptureRenderer) -> None:
        ui = StreamableUI("", warning=IdleWarning("UI", delay=0.01, enabled=True))
        ui.done()
        await asyncio.sleep(0.05)
        assert captured_logs.events("warning") == []

    @pytest.mark.asyncio
    async def test_disabled_in_production(
        self, captured_logs: CaptureRenderer, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("STREAMCASE_ENVIRONMENT", "production")
        clear_settings_cache()
        stream = StreamableValue("", warning=IdleWarning("value", delay=0.01))
        await asyncio.sleep(0.05)
        assert captured_logs.events("warning") == []
        stream.done()
