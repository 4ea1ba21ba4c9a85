# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from callspec.parser import parse_text
from callspec.parser.ast import AttrAssign, AttrLit, AttrPath, ConstDecl, FnDecl, ImplBlock, SelfParam, TypedParam
from callspec.parser.parser import DeclParseError, parse_decl, parse_source


def test_parse_method_with_receiver_and_attrs() -> None:
	decl = parse_decl(
		"""
#[getter]
fn get_x(&self) -> i32 { self.x }
"""
	)
	assert isinstance(decl, FnDecl)
	assert decl.name == "get_x"
	assert [a.name for a in decl.attrs] == ["getter"]
	assert decl.attrs[0].form == "path"
	recv = decl.params[0]
	assert isinstance(recv, SelfParam)
	assert recv.by_ref and not recv.mutable
	assert decl.return_type is not None and decl.return_type.render() == "i32"
	assert decl.span.line == 3


def test_parse_receiver_shapes() -> None:
	src = parse_source(
		"""
fn a(&mut self) {}
fn b(&'a self) {}
fn c(self) {}
fn d(mut self) {}
"""
	)
	recvs = [d.params[0] for d in src.declarations()]
	assert all(isinstance(r, SelfParam) for r in recvs)
	assert [(r.by_ref, r.mutable) for r in recvs] == [(True, True), (True, False), (False, False), (False, True)]
	assert recvs[1].lifetime == "'a"


def test_doc_comments_become_doc_attributes() -> None:
	decl = parse_decl(
		"""
/// First line.
/// Second line.
#[staticmethod]
fn f() {}
"""
	)
	docs = [a for a in decl.attrs if a.name == "doc"]
	assert [d.value.value for d in docs] == [" First line.", " Second line."]
	assert decl.attrs[-1].name == "staticmethod"


def test_attribute_argument_shapes() -> None:
	decl = parse_decl('#[args(a, b = "5", "*", c = 1)]\nfn f(&self) {}')
	attr = decl.attrs[0]
	assert attr.form == "list"
	a, b, star, c = attr.args
	assert isinstance(a, AttrPath) and a.is_ident("a")
	assert isinstance(b, AttrAssign) and b.value == AttrLit("str", "5", b.value.span)
	assert isinstance(star, AttrLit) and star.value == "*"
	assert isinstance(c, AttrAssign) and c.value.kind == "int" and c.value.value == 1


def test_name_value_and_inner_attributes() -> None:
	decl = parse_decl('#![getter]\n#[text_signature = "(a, b)"]\nfn f(&self) {}')
	assert decl.attrs[0].inner
	assert decl.attrs[1].form == "name_value"
	assert decl.attrs[1].value.value == "(a, b)"


def test_parse_types() -> None:
	decl = parse_decl(
		"""
fn f(
	&self,
	py: Python<'_>,
	a: Option<&str>,
	b: Vec<Option<i32>>,
	c: impl AsRef<PyAny>,
	d: &'a mut Foo,
	e: (i32, String),
	f: [u8; 4],
	g: std::collections::HashMap<String, i32>,
) -> PyResult<()> {}
"""
	)
	params = {p.name: p.type_expr for p in decl.params if isinstance(p, TypedParam)}
	assert params["py"].render() == "Python<'_>"
	assert params["a"].render() == "Option<&str>"
	assert params["b"].render() == "Vec<Option<i32>>"
	assert params["c"].kind == "impl"
	assert params["c"].find_impl_trait() is params["c"]
	assert params["d"].kind == "ref" and params["d"].mutable
	assert params["e"].render() == "(i32, String)"
	assert params["f"].render() == "[u8; 4]"
	assert params["g"].last_segment == "HashMap"
	assert decl.return_type.render() == "PyResult<()>"


def test_nested_impl_trait_is_found() -> None:
	decl = parse_decl("fn f(&self, a: Vec<impl Foo>) {}")
	ty = decl.params[1].type_expr
	found = ty.find_impl_trait()
	assert found is not None and found.kind == "impl"


def test_parse_patterns_and_raw_identifiers() -> None:
	decl = parse_decl("fn r#type(&self, _: i32, (a, b): (i32, i32), mut r#in: i32) {}")
	assert decl.name == "r#type"
	wild, tup, named = decl.params[1:]
	assert wild.pattern == "wild" and wild.name is None
	assert tup.pattern == "tuple"
	assert named.pattern == "ident" and named.name == "r#in" and named.mutable


def test_parse_generics_and_async() -> None:
	decl = parse_decl("pub async fn f<'a, T: Clone + Send, const N: usize>(&self) {}")
	assert decl.is_async
	assert [(g.kind, g.name) for g in decl.generics] == [("lifetime", "'a"), ("type", "T"), ("const", "N")]


def test_impl_block_members_are_flattened_with_context() -> None:
	src = parse_source(
		"""
impl<T> MyClass<T> {
	#[new]
	fn new() -> Self { Self {} }

	#[classattr]
	const LIMIT: i32 = 3;

	fn nested(&self) { if true { { } } }
}
"""
	)
	assert isinstance(src.items[0], ImplBlock)
	decls = src.declarations()
	assert [d.name for d in decls] == ["new", "LIMIT", "nested"]
	assert isinstance(decls[1], ConstDecl)
	assert decls[1].value_src == "3"
	assert decls[0].impl is not None
	assert decls[0].impl.self_ty.render() == "MyClass<T>"
	assert [g.name for g in decls[0].impl.generics] == ["T"]


def test_bodyless_declarations_and_comments() -> None:
	src = parse_source(
		"""
// a comment
fn a(&self); /* block
comment */
fn b(&self) -> ();
"""
	)
	assert [d.name for d in src.declarations()] == ["a", "b"]


def test_parse_error_carries_location() -> None:
	with pytest.raises(DeclParseError) as excinfo:
		parse_source("fn f(&self) -> {}\n", file="x.rs")
	assert excinfo.value.span.file == "x.rs"
	assert excinfo.value.span.line == 1


def test_parse_text_reports_diagnostic_instead_of_raising() -> None:
	source, diags = parse_text("fn (", file="bad.rs")
	assert source is None
	assert len(diags) == 1
	assert diags[0].code == "parse-error"
	assert diags[0].phase == "parser"


def test_parse_decl_requires_single_declaration() -> None:
	with pytest.raises(DeclParseError):
		parse_decl("fn a(&self) {}\nfn b(&self) {}")


def test_items_after_bodies_are_still_parsed() -> None:
	src = parse_source(
		"""
impl C {
	fn a(&self) {}
	#[getter]
	fn get_b(&self) -> i32 { 0 }
}
fn c(&self) { x }
#[staticmethod]
fn d() { let s = "}"; let t = '{'; /* } */ let r = r#"{"#; }
const E: i32 = 1;
"""
	)
	decls = src.declarations()
	assert [d.name for d in decls] == ["a", "get_b", "c", "d", "E"]
	assert [a.name for a in decls[1].attrs] == ["getter"]
	assert [a.name for a in decls[3].attrs] == ["staticmethod"]
	assert decls[2].span.line == 7
	assert decls[4].span.line == 10


def test_body_braces_do_not_hide_signature_errors() -> None:
	with pytest.raises(DeclParseError) as excinfo:
		parse_source("fn a(&self) { if x { y } }\nfn b(&self) -> {}\n")
	assert excinfo.value.span.line == 2
	with pytest.raises(DeclParseError):
		parse_source("fn a(&self) { {\n")


@pytest.mark.parametrize(
	"literal,expected",
	[
		('"caf\\u{e9}"', "café"),
		('"\\u{20ac}"', "€"),
		('"\\u{1F600}"', "\U0001f600"),
		('"tab\\there"', "tab\there"),
		('"\\x41\\0\\\\\\"\\\'"', "A\0\\\"'"),
		('"one \\\n    two"', "one two"),
	],
)
def test_string_escapes(literal: str, expected: str) -> None:
	decl = parse_decl(f"#[doc = {literal}]\nfn f(&self) {{}}")
	assert decl.attrs[0].value.value == expected


@pytest.mark.parametrize("literal", ['"\\q"', '"\\xff"', '"\\u{d800}"', '"\\u{110000}"'])
def test_invalid_string_escape_is_a_parse_error(literal: str) -> None:
	with pytest.raises(DeclParseError) as excinfo:
		parse_decl(f"#[doc = {literal}]\nfn f(&self) {{}}", file="esc.rs")
	assert excinfo.value.span.file == "esc.rs"
	assert excinfo.value.span.line == 1
	source, diags = parse_text(f"#[doc = {literal}]\nfn f(&self) {{}}", file="esc.rs")
	assert source is None
	assert [d.code for d in diags] == ["parse-error"]
