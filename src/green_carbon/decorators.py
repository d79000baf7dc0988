"""Decorator and wrapper helpers that track a single callable."""

from __future__ import annotations

import asyncio
import functools
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from green_carbon.tracker import BlockingEmissionsTracker, EmissionsTracker

__all__ = ["measure", "track_emissions"]

_R = TypeVar("_R")


def track_emissions(
    func: Callable[..., Any] | None = None,
    *,
    return_emissions: bool = False,
    **options: Any,
) -> Any:
    """Track emissions for every call of the decorated function.

    Works with and without arguments (``@track_emissions`` or
    ``@track_emissions(pue=1.2)``). Coroutine functions are tracked on the
    caller's event loop; plain functions use :class:`BlockingEmissionsTracker`.
    The tracker is always stopped, even when the function raises.

    Args:
        func: Function being decorated when used without parentheses.
        return_emissions: Return ``(result, emissions_kg)`` instead of the
            bare result.
        **options: Tracker configuration and collaborators. ``project_name``
            defaults to the function's qualified name.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        tracker_options = {"project_name": fn.__qualname__, **options}

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                tracker = EmissionsTracker(**tracker_options)
                await tracker.start()
                try:
                    result = await fn(*args, **kwargs)
                finally:
                    emissions = await tracker.stop()
                return (result, emissions) if return_emissions else result

            return async_wrapper

        @functools.wraps(fn)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            tracker = BlockingEmissionsTracker(**tracker_options)
            tracker.start()
            try:
                result = fn(*args, **kwargs)
            finally:
                emissions = tracker.stop()
            return (result, emissions) if return_emissions else result

        return sync_wrapper

    if func is not None:
        return decorator(func)
    return decorator


async def measure(
    fn: Callable[[], _R] | Callable[[], Awaitable[_R]], **options: Any
) -> tuple[_R, float]:
    """Run ``fn`` under a tracker and return ``(result, emissions_kg)``.

    Plain callables run in a worker thread so periodic ticks keep firing
    while they execute.
    """
    tracker = EmissionsTracker(**options)
    await tracker.start()
    try:
        if inspect.iscoroutinefunction(fn):
            result = await fn()
        else:
            result = await asyncio.to_thread(fn)
    finally:
        emissions = await tracker.stop()
    return result, emissions
