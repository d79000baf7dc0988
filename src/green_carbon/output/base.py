"""Output sink protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from green_carbon.models import EmissionsResult


@runtime_checkable
class OutputSink(Protocol):
    """Receives the final :class:`EmissionsResult` of a stopped session.

    Sinks may raise; the tracker logs the failure and carries on.
    """

    def emit(self, result: EmissionsResult) -> None: ...
