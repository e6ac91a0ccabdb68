"""Shared consumer/processor/producer scaffolding.

A command handler builds a request, a processor turns it into a
``ResultEnvelope`` and a producer renders the envelope.
"""
from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, Protocol, TypeVar

from .cli_errors import CLIError, ExitCode, format_error


ResultT = TypeVar("ResultT")
T = TypeVar("T")
R = TypeVar("R")


@dataclass
class ResultEnvelope(Generic[ResultT]):
    status: str
    payload: Optional[ResultT] = None
    diagnostics: Optional[Dict[str, Any]] = None

    def ok(self) -> bool:
        return self.status.lower() == "success"

    def unwrap(self) -> ResultT:
        """Return payload or raise ValueError. Use after ok() check."""
        if self.payload is None:
            msg = (self.diagnostics or {}).get("message", "No payload")
            raise ValueError(msg)
        return self.payload

    @property
    def error(self) -> Optional[CLIError]:
        return (self.diagnostics or {}).get("error")


class Processor(Protocol[T, R]):
    def process(self, payload: T) -> ResultEnvelope[R]:
        ...


class BaseProducer:
    """Base class for pipeline producers with common error rendering.

    Subclasses override _produce_success(); failed envelopes are printed
    to stderr as ``Error: ...`` / ``Hint: ...``.
    """

    def produce(self, result: ResultEnvelope) -> None:
        if not result.ok():
            self.print_error(result)
            return
        if result.payload is not None:
            self._produce_success(result.payload, result.diagnostics)

    def _produce_success(self, payload: Any, diagnostics: Optional[Dict[str, Any]]) -> None:
        raise NotImplementedError("Subclass must implement _produce_success")

    @staticmethod
    def print_error(result: ResultEnvelope) -> bool:
        """Print error message if result failed. Returns True if error was printed."""
        if result.ok():
            return False
        err = result.error
        if err is not None:
            print(format_error(err), file=sys.stderr)
        else:
            print(f"Error: {(result.diagnostics or {}).get('message', 'unknown error')}", file=sys.stderr)
        return True


class SafeProcessor(Generic[T, R]):
    """Base processor that turns reported errors into failed envelopes.

    Only ``CLIError`` is captured; anything else is a bug and propagates
    to the CLI framework.
    """

    def process(self, payload: T) -> ResultEnvelope[R]:
        try:
            result = self._process_safe(payload)
        except CLIError as e:
            return ResultEnvelope(
                status="error",
                diagnostics={"message": e.message, "code": int(e.code), "error": e},
            )
        return ResultEnvelope(status="success", payload=result)

    def _process_safe(self, payload: T) -> R:
        raise NotImplementedError("Subclass must implement _process_safe")


def run_pipeline(request: Any, processor: Any, producer: Any) -> int:
    """Execute a pipeline and return the CLI exit code.

    ``processor`` and ``producer`` may be instances or zero-arg classes.
    """
    if isinstance(processor, type):
        processor = processor()
    if isinstance(producer, type):
        producer = producer()
    envelope = processor.process(request)
    producer.produce(envelope)
    if envelope.ok():
        return ExitCode.SUCCESS
    return int((envelope.diagnostics or {}).get("code", ExitCode.ERROR))
