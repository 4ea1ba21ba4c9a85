# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from callspec.checker.attributes import classify_attributes
from callspec.checker.model import BindingKind, KeywordOnly, PositionalDefault, VariadicKeyword, VariadicPositional
from callspec.core.diagnostics import ErrorKind
from callspec.parser.parser import parse_decl


def _classify(attrs: str):
	decl = parse_decl(f"{attrs}\nfn f(&self) {{}}")
	return classify_attributes(decl.attrs)


def _codes(classified) -> list[str]:
	return [d.code for d in classified.diagnostics]


def test_no_tag_is_plain_method() -> None:
	out = _classify("")
	assert out.kind is None
	assert out.binding_kind is BindingKind.PLAIN
	assert out.diagnostics == []


def test_each_tag_selects_its_binding_kind() -> None:
	cases = {
		"#[new]": BindingKind.CONSTRUCTOR,
		"#[call]": BindingKind.CALL_OPERATOR,
		"#[classmethod]": BindingKind.CLASS_METHOD,
		"#[staticmethod]": BindingKind.STATIC_METHOD,
		"#[classattr]": BindingKind.CLASS_ATTRIBUTE,
		"#[getter]": BindingKind.GETTER,
		"#[setter]": BindingKind.SETTER,
	}
	for src, kind in cases.items():
		out = _classify(src)
		assert out.binding_kind is kind, src
		assert out.diagnostics == [], src


def test_second_binding_kind_is_a_structural_conflict() -> None:
	out = _classify("#[classattr]\n#[staticmethod]")
	assert out.kind is BindingKind.CLASS_ATTRIBUTE
	assert _codes(out) == ["duplicate-binding-kind"]
	diag = out.diagnostics[0]
	assert diag.kind is ErrorKind.STRUCTURAL_CONFLICT
	assert diag.message == "cannot specify a second method type"
	assert diag.span.line == 2
	assert diag.notes


def test_property_name_from_ident_and_string() -> None:
	assert _classify("#[getter(x)]").name_override == "x"
	assert _classify('#[setter("y")]').name_override == "y"


def test_property_name_errors() -> None:
	assert _codes(_classify("#[getter(x, y)]")) == ["property-name-count"]
	assert _codes(_classify("#[getter()]")) == ["property-name-count"]
	assert _codes(_classify("#[getter(1)]")) == ["property-name-type"]
	assert _codes(_classify('#[getter("not an ident")]')) == ["property-name-ident"]
	assert _codes(_classify("#[getter(a::b)]")) == ["property-name-shape"]
	assert _codes(_classify("#[getter(a = 1)]")) == ["property-name-shape"]


def test_inner_property_attribute_is_rejected() -> None:
	out = _classify("#![getter]")
	assert _codes(out) == ["inner-property-attribute"]
	assert out.binding_kind is BindingKind.GETTER


def test_tags_that_take_no_arguments() -> None:
	out = _classify("#[classattr(foobar)]")
	assert _codes(out) == ["unexpected-attribute-value"]
	assert out.binding_kind is BindingKind.CLASS_ATTRIBUTE
	assert _codes(_classify('#[staticmethod = "x"]')) == ["unexpected-attribute-value"]
	assert _codes(_classify("#[new()]")) == []


def test_init_is_disabled() -> None:
	out = _classify("#[init]")
	assert _codes(out) == ["init-disabled"]
	assert out.diagnostics[0].kind is ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT


def test_deprecated_spellings_are_accepted_with_notice() -> None:
	out = _classify("#[__new__]")
	assert out.binding_kind is BindingKind.CONSTRUCTOR
	assert out.diagnostics == []
	assert len(out.deprecations) == 1 and "#[new]" in out.deprecations[0]

	out = _classify('#[name = "other"]')
	assert out.name_override == "other"
	assert len(out.deprecations) == 1


def test_export_name_and_duplicates() -> None:
	assert _classify('#[export(name = "other")]').name_override == "other"
	out = _classify('#[export(name = "a")]\n#[export(name = "b")]')
	assert out.name_override == "a"
	assert _codes(out) == ["duplicate-name-override"]
	assert _codes(_classify("#[export(name = 3)]")) == ["name-type"]
	assert _codes(_classify('#[export(rename = "x")]')) == ["unknown-export-option"]


def test_name_override_forbidden_for_constructor_and_call() -> None:
	out = _classify('#[new]\n#[export(name = "make")]')
	assert _codes(out) == ["name-not-allowed"]
	assert out.diagnostics[0].message == "`name` not allowed with `#[new]`"
	assert _codes(_classify('#[call]\n#[export(name = "x")]')) == ["name-not-allowed"]


def test_getter_name_and_export_name_conflict() -> None:
	out = _classify('#[getter(x)]\n#[export(name = "y")]')
	assert out.name_override == "x"
	assert _codes(out) == ["duplicate-name-override"]


def test_args_item_roles() -> None:
	out = _classify('#[args(a, b = "5", args = "*", c = "None", kwargs = "**")]')
	assert out.diagnostics == []
	a, b, args, c, kwargs = out.arguments
	assert isinstance(a, PositionalDefault) and a.name == "a" and a.default is None
	assert isinstance(b, PositionalDefault) and b.default == "5"
	assert isinstance(args, VariadicPositional) and args.name == "args"
	assert isinstance(c, KeywordOnly) and c.default == "None"
	assert isinstance(kwargs, VariadicKeyword) and kwargs.name == "kwargs"


def test_args_separator_makes_following_items_keyword_only() -> None:
	out = _classify('#[args(a = "1", "*", b, c = "2")]')
	assert out.diagnostics == []
	assert [type(x) for x in out.arguments] == [PositionalDefault, KeywordOnly, KeywordOnly]
	assert out.arguments[1].default is None


def test_args_ordering_errors() -> None:
	assert _codes(_classify('#[args("*", "*")]')) == ["duplicate-separator"]
	assert _codes(_classify('#[args(a = "*", "*")]')) == ["separator-after-varargs"]
	assert _codes(_classify('#[args("*", a = "*")]')) == ["varargs-after-separator"]
	assert _codes(_classify('#[args(a = "*", b = "*")]')) == ["duplicate-varargs"]
	assert _codes(_classify('#[args(a = "**", b = "**")]')) == ["duplicate-kwargs"]
	assert _codes(_classify('#[args(k = "**", b = "1")]')) == ["args-after-kwargs"]
	assert _codes(_classify('#[args(k = "**", b)]')) == ["args-after-kwargs"]


def test_args_value_errors() -> None:
	assert _codes(_classify("#[args(a = 5)]")) == ["default-type"]
	assert _codes(_classify('#[args(a = "  ")]')) == ["empty-default"]
	assert _codes(_classify("#[args(1)]")) == ["args-item"]
	assert _codes(_classify("#[args(a::b)]")) == ["args-item"]


def test_text_signature_forms() -> None:
	explicit = _classify('#[text_signature = "(a, b)"]').text_signature
	assert explicit is not None and not explicit.generated and explicit.text == "(a, b)"
	generated = _classify("#[text_signature]").text_signature
	assert generated is not None and generated.generated
	assert _codes(_classify("#[text_signature(a)]")) == ["text-signature-form"]
	assert _codes(_classify("#[text_signature = 1]")) == ["text-signature-form"]
	out = _classify('#[text_signature = "(a)"]\n#[text_signature = "(b)"]')
	assert _codes(out) == ["duplicate-text-signature"]
	assert out.text_signature.text == "(a)"


def test_doc_lines_and_passthrough() -> None:
	out = _classify('/// One.\n#[doc = " Two."]\n#[inline]\n#[cfg(test)]')
	assert out.doc_lines == [" One.", " Two."]
	assert [a.name for a in out.passthrough] == ["inline", "cfg"]
	assert out.diagnostics == []


def test_every_problem_is_reported_in_one_pass() -> None:
	out = _classify('#[init]\n#[getter(1)]\n#[staticmethod]\n#[args(a = 5)]')
	assert _codes(out) == ["init-disabled", "property-name-type", "duplicate-binding-kind", "default-type"]
	assert all(d.phase == "classify" for d in out.diagnostics)
