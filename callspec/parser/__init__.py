# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Declaration front-end.

`parse_file` is the driver-facing entrypoint: it never raises for bad input and
returns parser-phase diagnostics instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

from callspec.core.diagnostics import Diagnostic, ErrorKind, error
from callspec.core.span import Span

from . import ast
from .parser import DeclParseError, parse_decl, parse_source


def parse_file(path: Path) -> Tuple[Optional[ast.SourceFile], list[Diagnostic]]:
	"""Read and parse one source file, returning (source, diagnostics)."""
	try:
		text = path.read_text(encoding="utf-8")
	except (OSError, UnicodeDecodeError) as exc:
		return None, [
			error(ErrorKind.PARSE_ERROR, "unreadable-source", f"cannot read source: {exc}", Span(file=str(path)), phase="parser")
		]
	return parse_text(text, file=str(path))


def parse_text(text: str, file: Optional[str] = None) -> Tuple[Optional[ast.SourceFile], list[Diagnostic]]:
	try:
		return parse_source(text, file), []
	except DeclParseError as exc:
		return None, [error(ErrorKind.PARSE_ERROR, "parse-error", str(exc), exc.span, phase="parser")]


__all__ = ["DeclParseError", "ast", "parse_decl", "parse_file", "parse_source", "parse_text"]
