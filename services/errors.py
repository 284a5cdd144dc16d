"""Exceptions raised by the ingest and readings services."""

from __future__ import annotations


class InvalidPayloadError(ValueError):
    """The request body does not match the deployed payload schema."""

    def __init__(self, field: str | None, problem: str) -> None:
        self.field = field
        self.problem = problem
        if field is None:
            message = f"Invalid payload format: {problem}"
        else:
            message = f"Invalid payload format: {field} {problem}"
        super().__init__(message)


class StoreError(RuntimeError):
    """The durable store could not complete an insert or query."""
