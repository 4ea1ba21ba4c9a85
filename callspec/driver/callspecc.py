# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Command-line driver: parse declaration files, assemble every exported
declaration and report CallSpecs plus diagnostics.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from callspec.checker import AssemblyResult, assemble_all, is_exported, render_text_signature
from callspec.core.diagnostics import Diagnostic, DiagnosticSink, ErrorKind, error
from callspec.core.span import Span
from callspec.parser import parse_file
from callspec.parser.ast import Decl

from .config import DriverConfig, find_config, load_config_json

logger = logging.getLogger(__name__)


def _diag_to_json(diag: Diagnostic, source: Optional[Path] = None) -> dict:
	"""Render a Diagnostic to a structured JSON-friendly dict."""
	file = diag.span.file
	if file is None and source is not None:
		file = str(source)
	return {
		"phase": diag.phase,
		"kind": diag.kind.value if diag.kind is not None else None,
		"code": diag.code,
		"message": diag.message,
		"severity": diag.severity,
		"file": file,
		"line": diag.span.line,
		"column": diag.span.column,
		"notes": list(diag.notes),
	}


def _summary(result: AssemblyResult) -> str:
	spec = result.spec
	assert spec is not None
	sig = spec.text_signature or render_text_signature(spec.binding_kind.rules, spec.parameters)
	return f"{spec.span.short()}: {spec.binding_kind.value} {spec.native_name} -> {spec.external_name}{sig}"


def _print_human_diag(diag: Diagnostic) -> None:
	print(diag.render(), file=sys.stderr)
	for note in diag.notes:
		print(f"  note: {note}", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
	"""
	Parse each source, assemble its exported declarations and report.

	With --json, prints one JSON object (`exit_code`, `specs`, `diagnostics`);
	otherwise prints one summary line per CallSpec on stdout and human-readable
	diagnostics on stderr. Exit code is 1 if anything failed to parse or was
	rejected.
	"""
	parser = argparse.ArgumentParser(description="callspec signature compiler")
	parser.add_argument("source", type=Path, nargs="+", help="Path(s) to declaration source file(s)")
	parser.add_argument("--json", action="store_true", help="Emit specs and diagnostics as JSON")
	parser.add_argument("--config", type=Path, help="Path to config JSON (default: ./callspec.json when present)")
	parser.add_argument(
		"--context-type",
		dest="context_types",
		action="append",
		help="Additional runtime context handle type name (repeatable)",
	)
	parser.add_argument("-j", "--jobs", type=int, default=None, help="Assemble declarations on N worker threads")
	parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline progress to stderr")
	args = parser.parse_args(argv)

	logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(name)s: %(message)s")

	def fail(diags: list[Diagnostic]) -> int:
		if args.json:
			print(json.dumps({"exit_code": 1, "specs": [], "diagnostics": [_diag_to_json(d) for d in diags]}))
		else:
			for d in diags:
				_print_human_diag(d)
		return 1

	config_path = find_config(args.config)
	config = DriverConfig()
	try:
		if config_path is not None:
			logger.debug("loading config from %s", config_path)
			config = load_config_json(config_path)
		config = config.with_overrides(context_types=args.context_types, jobs=args.jobs)
	except (OSError, ValueError) as exc:
		return fail([error(ErrorKind.CONFIG_ERROR, "config", f"invalid config: {exc}", Span(file=str(config_path) if config_path else None), phase="config")])

	sink = DiagnosticSink()
	decls: list[Decl] = []
	for path in args.source:
		source, parse_diags = parse_file(path)
		sink.extend(parse_diags)
		if source is None:
			logger.debug("%s: parse failed", path)
			continue
		found = [d for d in source.declarations() if is_exported(d)]
		logger.debug("%s: %d exported declaration(s)", path, len(found))
		decls.extend(found)

	results = assemble_all(decls, options=config.checker_options(), jobs=config.jobs, sink=sink)
	for result in results:
		logger.debug("%s: %s", result.name, result.state.name)

	# Worker threads append in completion order; report in source order.
	diags = sorted(sink.snapshot(), key=lambda d: (d.span.file or "", d.span.line or 0, d.span.column or 0))
	exit_code = 1 if any(d.is_error for d in diags) else 0
	specs = [r.spec for r in results if r.spec is not None]

	if args.json:
		payload = {
			"exit_code": exit_code,
			"specs": [s.to_json() for s in specs],
			"diagnostics": [_diag_to_json(d) for d in diags],
		}
		print(json.dumps(payload))
		return exit_code

	for result in results:
		if result.spec is None:
			continue
		print(_summary(result))
		for notice in result.spec.deprecations:
			print(f"{result.spec.span.short()}: warning: {notice}", file=sys.stderr)
	for d in diags:
		_print_human_diag(d)
	return exit_code


__all__ = ["main"]
