# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from callspec.checker.model import BindingKind, ReceiverKind
from callspec.checker.receiver import is_receiver_shaped, resolve_receiver
from callspec.core.diagnostics import ErrorKind
from callspec.parser.parser import parse_decl


def _resolve(sig: str, kind: BindingKind = BindingKind.PLAIN):
	decl = parse_decl(f"fn {sig} {{}}")
	return resolve_receiver(decl.params, kind, decl_span=decl.span)


@pytest.mark.parametrize(
	"sig,expected",
	[
		("f(&self)", ReceiverKind.IMMUTABLE_BORROW),
		("f(&'a self)", ReceiverKind.IMMUTABLE_BORROW),
		("f(self)", ReceiverKind.IMMUTABLE_BORROW),
		("f(&mut self)", ReceiverKind.MUTABLE_BORROW),
		("f(mut self)", ReceiverKind.MUTABLE_BORROW),
		("f(slf: PyRef<Self>)", ReceiverKind.FALLIBLE_CONVERSION),
		("f(slf: &Self)", ReceiverKind.FALLIBLE_CONVERSION),
	],
)
def test_receiver_kinds(sig: str, expected: ReceiverKind) -> None:
	res = _resolve(sig)
	assert res.binding.kind is expected
	assert res.skip_first
	assert res.diagnostics == ()


def test_fallible_conversion_points_at_declared_type() -> None:
	decl = parse_decl("fn f(slf: PyRefMut<Self>, a: i32) {}")
	res = resolve_receiver(decl.params, BindingKind.PLAIN)
	assert res.binding.span == decl.params[0].type_expr.span
	assert res.binding.present


def test_receiver_shape_detection() -> None:
	decl = parse_decl("fn f(&self, a: i32, b: Vec<Self>) {}")
	assert [is_receiver_shaped(p) for p in decl.params] == [True, False, True]


def test_receiver_shape_by_impl_type_name() -> None:
	decl = parse_decl("fn f(slf: PyRef<Counter>, a: &Other, b: my::Counter) {}")
	slf, a, b = decl.params
	assert not is_receiver_shaped(slf)
	assert is_receiver_shaped(slf, "Counter")
	assert not is_receiver_shaped(a, "Counter")
	assert is_receiver_shaped(b, "Counter")


def test_impl_type_name_receiver_binds_as_fallible_conversion() -> None:
	decl = parse_decl("fn f(slf: PyRef<Counter>, a: i32) {}")
	res = resolve_receiver(decl.params, BindingKind.PLAIN, self_type="Counter")
	assert res.binding.kind is ReceiverKind.FALLIBLE_CONVERSION
	assert res.binding.span == decl.params[0].type_expr.span
	assert res.skip_first
	assert res.diagnostics == ()


@pytest.mark.parametrize(
	"kind,message",
	[
		(BindingKind.PLAIN, "static method needs #[staticmethod] attribute"),
		(BindingKind.GETTER, "expected receiver for #[getter]"),
		(BindingKind.SETTER, "expected receiver for #[setter]"),
		(BindingKind.CALL_OPERATOR, "expected receiver for #[call]"),
	],
)
def test_missing_receiver(kind: BindingKind, message: str) -> None:
	for sig in ("f()", "f(a: i32)"):
		res = _resolve(sig, kind)
		assert not res.binding.present
		assert not res.skip_first
		assert [d.code for d in res.diagnostics] == ["missing-receiver"]
		assert res.diagnostics[0].kind is ErrorKind.MISSING_RECEIVER
		assert res.diagnostics[0].message == message
		assert res.diagnostics[0].span.known


@pytest.mark.parametrize("kind", [BindingKind.STATIC_METHOD, BindingKind.CONSTRUCTOR, BindingKind.CLASS_ATTRIBUTE])
def test_receiver_forbidden(kind: BindingKind) -> None:
	res = _resolve("f(&self, a: i32)", kind)
	assert not res.binding.present
	assert res.skip_first
	assert [d.code for d in res.diagnostics] == ["receiver-not-allowed"]
	assert res.diagnostics[0].kind is ErrorKind.UNSUPPORTED_PARAMETER_SHAPE


def test_self_typed_first_parameter_is_an_argument_when_receiver_forbidden() -> None:
	res = _resolve("f(other: &Self)", BindingKind.STATIC_METHOD)
	assert not res.binding.present
	assert not res.skip_first
	assert res.diagnostics == ()


def test_class_method_skips_class_object() -> None:
	res = _resolve("f(cls: &PyType, a: i32)", BindingKind.CLASS_METHOD)
	assert not res.binding.present
	assert res.skip_first
	assert res.diagnostics == ()


def test_class_method_errors() -> None:
	res = _resolve("f()", BindingKind.CLASS_METHOD)
	assert [d.code for d in res.diagnostics] == ["missing-class-parameter"]
	assert res.diagnostics[0].kind is ErrorKind.MISSING_RECEIVER
	res = _resolve("f(&self)", BindingKind.CLASS_METHOD)
	assert [d.code for d in res.diagnostics] == ["receiver-not-allowed"]


def test_receiver_in_later_position_is_rejected() -> None:
	res = _resolve("f(a: i32, &self)", BindingKind.STATIC_METHOD)
	assert [d.code for d in res.diagnostics] == ["unexpected-receiver"]
