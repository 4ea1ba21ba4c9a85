# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import threading

from callspec.core.diagnostics import Diagnostic, DiagnosticSink, ErrorKind, error
from callspec.core.span import Span


def test_span_short_form() -> None:
	assert Span(file="a.rs", line=3, column=7).short() == "a.rs:3:7"
	assert Span().short() == "<unknown>:?:?"
	assert not Span().known


def test_error_helper_fills_defaults() -> None:
	diag = error(ErrorKind.MISSING_RECEIVER, "missing-receiver", "expected receiver", None, phase="assemble", notes=["n"])
	assert diag.is_error
	assert diag.span == Span()
	assert diag.notes == ("n",)
	assert diag.render() == "<unknown>:?:?: error: expected receiver"


def test_notes_are_normalized_to_tuple() -> None:
	diag = Diagnostic(message="m", notes=["a", "b"])  # type: ignore[arg-type]
	assert diag.notes == ("a", "b")
	assert diag.severity == "error"


def test_sink_preserves_order_and_counts() -> None:
	sink = DiagnosticSink()
	sink.append(Diagnostic(message="first", severity="warning"))
	assert not sink.has_errors()
	sink.extend([error(ErrorKind.PARSE_ERROR, "parse-error", "second", Span())])
	assert [d.message for d in sink] == ["first", "second"]
	assert len(sink) == 2
	assert sink.has_errors()


def test_sink_batches_are_not_interleaved() -> None:
	sink = DiagnosticSink()
	start = threading.Barrier(8)

	def worker(idx: int) -> None:
		batch = [Diagnostic(message=f"{idx}:{j}") for j in range(50)]
		start.wait()
		for _ in range(5):
			sink.extend(batch)

	threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
	for t in threads:
		t.start()
	for t in threads:
		t.join()

	items = sink.snapshot()
	assert len(items) == 8 * 5 * 50
	for off in range(0, len(items), 50):
		chunk = items[off:off + 50]
		owner = chunk[0].message.split(":")[0]
		assert [d.message for d in chunk] == [f"{owner}:{j}" for j in range(50)]
