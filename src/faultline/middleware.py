from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional

from .types import PipelineResult, PipelineStatus

if TYPE_CHECKING:
    from .event import Event

Next = Callable[..., Any]
Step = Callable[["Event", Next], Any]
FinalHandler = Callable[["Event"], Any]


def step_name(step: Step) -> str:
    """Human-readable name for a step (function name or class name)."""
    return getattr(step, "__name__", None) or type(step).__name__


class MiddlewareStack:
    """
    Ordered chain of middleware steps with cooperative short-circuit.

    Rules
    -----
    - Steps run in insertion order; duplicates are allowed.
    - Each step is called as ``step(event, next_)`` and must call ``next_()``
      (or ``next_(other_event)``) to pass control on.
    - A step that returns without calling ``next_`` halts the run; the final
      handler is never reached and the result names the halting step.
    - Exceptions raised by a step propagate to the caller untouched.

    Usage example
    -------------
        stack = MiddlewareStack()
        stack.use(lambda event, next_: next_())
        result = stack.run(event, deliver)
    """

    def __init__(self) -> None:
        self._steps: list[Step] = []
        self._lock = threading.Lock()

    def use(self, step: Step) -> None:
        """Append a step."""
        with self._lock:
            self._steps.append(step)

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps())

    def steps(self) -> tuple[Step, ...]:
        """Snapshot of the registered steps."""
        with self._lock:
            return tuple(self._steps)

    def run(self, event: "Event", final: FinalHandler) -> PipelineResult:
        """
        Run every step over `event`, then `final`.

        Returns
        -------
        result
            DELIVERED with the final handler's return value, or HALTED with the
            name of the step that did not continue.
        """
        steps = self.steps()
        reached_final = False
        final_value: Any = None
        deepest = -1

        def _call(index: int, current: "Event") -> Any:
            nonlocal reached_final, final_value, deepest
            if index == len(steps):
                reached_final = True
                final_value = final(current)
                return final_value

            deepest = max(deepest, index)

            def _next(replacement: Optional["Event"] = None) -> Any:
                return _call(index + 1, current if replacement is None else replacement)

            return steps[index](current, _next)

        _call(0, event)
        if reached_final:
            return PipelineResult(status=PipelineStatus.DELIVERED, value=final_value)
        return PipelineResult(status=PipelineStatus.HALTED, halted_by=step_name(steps[deepest]))


def run_chain(
    internal: MiddlewareStack,
    user: MiddlewareStack,
    event: "Event",
    final: FinalHandler,
) -> PipelineResult:
    """
    Run the internal stack with the user stack as its final handler.

    Internal steps therefore see the event both before and after every user step.
    """
    inner: Optional[PipelineResult] = None

    def _run_user(current: "Event") -> PipelineResult:
        nonlocal inner
        inner = user.run(current, final)
        return inner

    outer = internal.run(event, _run_user)
    if outer.halted or inner is None:
        return outer
    return inner
