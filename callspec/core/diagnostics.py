# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Diagnostic structure shared by the parser, the checker and the driver.

A Diagnostic is a message plus a span, an error kind from the closed taxonomy
below and a stable `code` string that tests and tooling can match on without
depending on message wording.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Optional

from .span import Span


class ErrorKind(Enum):
	"""Closed taxonomy of declaration errors."""

	STRUCTURAL_CONFLICT = "structural-conflict"
	ATTRIBUTE_CONFLICT = "attribute-conflict"
	MISSING_RECEIVER = "missing-receiver"
	UNSUPPORTED_PARAMETER_SHAPE = "unsupported-parameter-shape"
	ILLEGAL_ATTRIBUTE_PLACEMENT = "illegal-attribute-placement"
	UNKNOWN_PARAMETER = "unknown-parameter"
	AMBIGUOUS_PROPERTY_NAME = "ambiguous-property-name"
	PARSE_ERROR = "parse-error"
	CONFIG_ERROR = "config-error"


@dataclass(frozen=True)
class Diagnostic:
	"""Represents a compiler diagnostic (error/warning/etc.)."""

	message: str
	kind: Optional[ErrorKind] = None
	code: str | None = None
	# Pipeline step that produced the diagnostic: "parser", "classify",
	# "assemble" or "config".
	phase: str | None = None
	severity: str = "error"
	span: Span = field(default_factory=Span)
	notes: tuple[str, ...] = ()

	def __post_init__(self) -> None:
		if self.span is None:  # type: ignore[unreachable]
			object.__setattr__(self, "span", Span())
		if not isinstance(self.notes, tuple):
			object.__setattr__(self, "notes", tuple(self.notes))

	@property
	def is_error(self) -> bool:
		return self.severity == "error"

	def render(self) -> str:
		"""Human-readable `file:line:col: severity: message` line."""
		return f"{self.span.short()}: {self.severity}: {self.message}"


def error(
	kind: ErrorKind,
	code: str,
	message: str,
	span: Span | None,
	*,
	phase: str | None = None,
	notes: Iterable[str] = (),
) -> Diagnostic:
	"""Shorthand used throughout the checker for error-severity diagnostics."""
	return Diagnostic(
		message=message,
		kind=kind,
		code=code,
		phase=phase,
		severity="error",
		span=span or Span(),
		notes=tuple(notes),
	)


class DiagnosticSink:
	"""
	Ordered, thread-safe collection of diagnostics.

	Declarations may be assembled on worker threads; each result is appended
	under a lock so a diagnostic (or a declaration's whole batch) is never
	interleaved with another's.
	"""

	def __init__(self) -> None:
		self._lock = threading.Lock()
		self._items: list[Diagnostic] = []

	def append(self, diag: Diagnostic) -> None:
		with self._lock:
			self._items.append(diag)

	def extend(self, diags: Iterable[Diagnostic]) -> None:
		batch = list(diags)
		with self._lock:
			self._items.extend(batch)

	def snapshot(self) -> tuple[Diagnostic, ...]:
		with self._lock:
			return tuple(self._items)

	def has_errors(self) -> bool:
		with self._lock:
			return any(d.is_error for d in self._items)

	def __len__(self) -> int:
		with self._lock:
			return len(self._items)

	def __iter__(self) -> Iterator[Diagnostic]:
		return iter(self.snapshot())


__all__ = ["Diagnostic", "DiagnosticSink", "ErrorKind", "error"]
