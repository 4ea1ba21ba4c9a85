# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source span representation used by diagnostics and the declaration model.

Every syntactic element the front-end hands to the checker carries a Span so
diagnostics can point at the exact attribute, parameter or type that violated
a rule.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Span:
	"""Best-effort file/line/column range. `Span()` denotes an unknown location."""

	file: Optional[str] = None
	line: Optional[int] = None
	column: Optional[int] = None
	end_line: Optional[int] = None
	end_column: Optional[int] = None

	@classmethod
	def from_meta(cls, meta: Any, file: Optional[str] = None) -> "Span":
		"""
		Build a Span from a lark `Tree.meta` or `Token`.

		Trees that matched nothing (empty rules) have no position; they map to
		the unknown span instead of raising.
		"""
		if meta is None or getattr(meta, "empty", False):
			return cls(file=file)
		return cls(
			file=file,
			line=getattr(meta, "line", None),
			column=getattr(meta, "column", None),
			end_line=getattr(meta, "end_line", None),
			end_column=getattr(meta, "end_column", None),
		)

	@property
	def known(self) -> bool:
		return self.line is not None

	def short(self) -> str:
		"""Format as `file:line:column` (unknown parts as `?`)."""
		f = self.file or "<unknown>"
		l = self.line if self.line is not None else "?"
		c = self.column if self.column is not None else "?"
		return f"{f}:{l}:{c}"


__all__ = ["Span"]
