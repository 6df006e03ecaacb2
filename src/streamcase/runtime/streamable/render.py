"""Drive a language model stream into streamable UI cells.

``render`` starts the model in a background task and returns the composed
UI node immediately. Text deltas and tool calls are routed to renderers;
each renderer writes into its own ``StreamableUI`` and renders for the same
cell run strictly in order.

Renderers are tagged explicitly instead of being inspected at runtime:

    >>> Renderer.value(lambda p: p.content)
    >>> Renderer.awaitable(fetch_card)          # async def fetch_card(p)
    >>> Renderer.iterator(spinner_then_card)    # sync generator, return value is final
    >>> Renderer.async_iterator(live_card)      # async generator

A plain callable is treated as ``Renderer.value``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from streamcase.foundation.errors import ConfigurationError, ErrorCode, StreamError, StreamException
from streamcase.io.streaming import ErrorEvent, FunctionCallComplete, Status, TextDelta, ToolCallComplete
from streamcase.providers.base import LanguageModel, Prompt, RegularMode, ToolDefinition
from streamcase.runtime.observability import get_logger

from .ui import StreamableUI, UIRevision

P = TypeVar("P")

log = get_logger("streamcase.render")

# Strong references for in-flight render tasks; the loop only keeps weak ones.
_BACKGROUND: set[asyncio.Task[None]] = set()


class RendererKind(StrEnum):
    VALUE = "value"
    AWAITABLE = "awaitable"
    ITERATOR = "iterator"
    ASYNC_ITERATOR = "async_iterator"


@dataclass(slots=True, frozen=True)
class Renderer(Generic[P]):
    """A render function tagged with how its result is produced."""
    kind: RendererKind
    fn: Callable[[P], Any]

    @classmethod
    def value(cls, fn: Callable[[P], Any]) -> Renderer[P]:
        return cls(RendererKind.VALUE, fn)

    @classmethod
    def awaitable(cls, fn: Callable[[P], Any]) -> Renderer[P]:
        return cls(RendererKind.AWAITABLE, fn)

    @classmethod
    def iterator(cls, fn: Callable[[P], Any]) -> Renderer[P]:
        return cls(RendererKind.ITERATOR, fn)

    @classmethod
    def async_iterator(cls, fn: Callable[[P], Any]) -> Renderer[P]:
        return cls(RendererKind.ASYNC_ITERATOR, fn)

    async def run(self, props: P, ui: StreamableUI[Any]) -> None:
        """Invoke the function and write each produced node into ``ui``."""
        match self.kind:
            case RendererKind.VALUE:
                ui.update(self.fn(props))
            case RendererKind.AWAITABLE:
                ui.update(await self.fn(props))
            case RendererKind.ITERATOR:
                it = iter(self.fn(props))
                while True:
                    try:
                        node = next(it)
                    except StopIteration as stop:
                        if stop.value is not None:
                            ui.update(stop.value)
                        break
                    ui.update(node)
            case RendererKind.ASYNC_ITERATOR:
                async for node in self.fn(props):
                    ui.update(node)


def as_renderer(r: Renderer[P] | Callable[[P], Any]) -> Renderer[P]:
    return r if isinstance(r, Renderer) else Renderer.value(r)


# ─────────────────────────────────────────────────────────────────────────────
# Props
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(slots=True, frozen=True)
class TextProps:
    content: str
    delta: str | None
    done: bool


@dataclass(slots=True, frozen=True)
class RenderedCall:
    """A tool or function call together with the UI node its renderer drives."""
    name: str
    node: UIRevision[Any]
    tool_call_id: str | None = None


@dataclass(slots=True, frozen=True)
class ComposeProps:
    text: UIRevision[Any]
    function_call: RenderedCall | None
    tool_calls: tuple[RenderedCall, ...]


@dataclass(slots=True)
class ToolUI:
    """Render configuration for one tool (or legacy function)."""
    parameters: type[BaseModel]
    render: Renderer[Any] | Callable[[Any], Any]
    description: str | None = None
    initial: Any = None


def default_compose(props: ComposeProps) -> tuple[Any, ...]:
    nodes: list[Any] = [props.text]
    if props.function_call is not None:
        nodes.append(props.function_call.node)
    nodes.extend(call.node for call in props.tool_calls)
    return tuple(nodes)


# ─────────────────────────────────────────────────────────────────────────────
# Render contexts
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(slots=True)
class _Slot:
    """A UI cell plus the tail of its serialized render queue."""
    ui: StreamableUI[Any]
    tail: asyncio.Task[None] | None = None

    def schedule(self, renderer: Renderer[Any], props: Any) -> None:
        previous = self.tail

        async def step() -> None:
            if previous is not None:
                await previous
            await renderer.run(props, self.ui)

        self.tail = asyncio.create_task(step())

    async def settle(self) -> None:
        if self.tail is not None:
            await self.tail

    def abandon(self, error: BaseException) -> None:
        if self.tail is not None and not self.tail.done():
            self.tail.cancel()
        if not self.ui.closed:
            self.ui.error(error)


def render(
    model: LanguageModel,
    prompt: Prompt,
    *,
    text: Renderer[TextProps] | Callable[[TextProps], Any] | None = None,
    tools: Mapping[str, ToolUI] | None = None,
    functions: Mapping[str, ToolUI] | None = None,
    compose: Callable[[ComposeProps], Any] | None = None,
    initial: Any = None,
) -> UIRevision[Any]:
    """Stream ``model`` output into UI and return the composed node.

    Must be called with a running event loop. Every cell created here is
    closed with ``done()`` when the model stream ends; if the model fails
    every open cell is closed with the error instead.

    Raises:
        ConfigurationError: both ``tools`` and ``functions`` were given.
    """
    if tools and functions:
        raise ConfigurationError("You can't have both functions and tools defined. Please choose one or the other.")

    calls = dict(tools or functions or {})
    text_renderer = as_renderer(text) if text is not None else Renderer.value(lambda p: p.content)
    compose_fn = compose or default_compose

    root = _Slot(StreamableUI(initial))
    text_slot = _Slot(StreamableUI())
    call_slots: list[tuple[RenderedCall, _Slot]] = []
    function_call: list[RenderedCall] = []

    mode = RegularMode(tools=[
        ToolDefinition.from_model(name, cfg.parameters, cfg.description) for name, cfg in calls.items()
    ] or None)

    def recompose() -> None:
        props = ComposeProps(
            text=text_slot.ui.value,
            function_call=function_call[0] if function_call else None,
            tool_calls=tuple(call for call, _ in call_slots),
        )
        root.schedule(Renderer.value(compose_fn), props)

    def start_call(name: str, args: Any, tool_call_id: str | None) -> RenderedCall | None:
        cfg = calls.get(name)
        if cfg is None:
            log.warning("model called an unknown tool", tool_name=name)
            return None
        slot = _Slot(StreamableUI(cfg.initial))
        call = RenderedCall(name, slot.ui.value, tool_call_id)
        call_slots.append((call, slot))
        slot.schedule(as_renderer(cfg.render), cfg.parameters.model_validate(args))
        return call

    async def drive() -> None:
        content = ""
        try:
            async for part in model.stream(mode=mode, prompt=prompt):
                match part:
                    case TextDelta(text=delta):
                        first = not content
                        content += delta
                        text_slot.schedule(text_renderer, TextProps(content, delta, False))
                        if first:
                            recompose()
                    case ToolCallComplete(tool_call_id=call_id, tool_name=name, args=args) if tools:
                        if start_call(name, args, call_id) is not None:
                            recompose()
                    case FunctionCallComplete(name=name, args=args) if functions and not function_call:
                        call = start_call(name, args, None)
                        if call is not None:
                            function_call.append(call)
                            recompose()
                    case ErrorEvent(message=message):
                        raise StreamException(StreamError.create(message, ErrorCode.PROVIDER_ERROR))
                    case Status() as status if status.failed:
                        raise StreamException(StreamError.create(
                            status.information or "model stream failed", ErrorCode.STREAM_FAILED,
                        ))
                    case _:
                        pass

            text_slot.schedule(text_renderer, TextProps(content, None, True))
            if not content and not call_slots:
                recompose()
            for slot in (root, text_slot, *(s for _, s in call_slots)):
                await slot.settle()
                slot.ui.done()
        except Exception as exc:  # noqa: BLE001
            log.exception("render stream failed", model_id=getattr(model, "model_id", None))
            for slot in (root, text_slot, *(s for _, s in call_slots)):
                slot.abandon(exc)

    task = asyncio.get_running_loop().create_task(drive())
    _BACKGROUND.add(task)
    task.add_done_callback(_BACKGROUND.discard)
    return root.ui.value
