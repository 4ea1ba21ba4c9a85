# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Shared building blocks: source spans and diagnostics."""

from .diagnostics import Diagnostic, DiagnosticSink, ErrorKind
from .span import Span

__all__ = ["Diagnostic", "DiagnosticSink", "ErrorKind", "Span"]
