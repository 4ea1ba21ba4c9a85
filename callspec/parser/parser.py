# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
lark-based front-end for native declarations.

`parse_source` turns declaration text into a `SourceFile` of `FnDecl` /
`ConstDecl` / `ImplBlock` items. Grammar errors are raised as `DeclParseError`
carrying a span; the driver turns them into parser-phase diagnostics.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Tuple

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from callspec.core.span import Span

from .ast import (
	AttrArg,
	AttrAssign,
	AttrLit,
	AttrPath,
	Attribute,
	ConstDecl,
	Decl,
	FnDecl,
	GenericParam,
	ImplBlock,
	ImplContext,
	Param,
	SelfParam,
	SourceFile,
	TypeExpr,
	TypedParam,
)

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

# The contextual lexer is required: const initializers are only lexable in the
# parser states that expect them.
_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="contextual",
	start="start",
	propagate_positions=True,
	maybe_placeholders=False,
)


class DeclParseError(ValueError):
	"""
	User-facing error for declaration text the grammar rejects.

	This is a `ValueError` so callers that only care about "bad input" can catch
	it generically, but it carries a span for precise reporting.
	"""

	def __init__(self, message: str, *, span: Span) -> None:
		super().__init__(message)
		self.span = span


_ESCAPE_RE = re.compile(r"\\(?:u\{([0-9A-Fa-f][0-9A-Fa-f_]{0,7})\}|x([0-9A-Fa-f]{2})|\n[ \t\r\n]*|(.))", re.S)
_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "\\": "\\", "0": "\0", "'": "'", '"': '"'}


def _decode_string_token(tok: Token, file: Optional[str] = None) -> str:
	"""
	Decode STRING tokens using the declaration language's escape rules:
	`\\n \\r \\t \\\\ \\0 \\' \\"`, `\\xHH` (ASCII only), `\\u{H...}` (any scalar
	value) and backslash-newline line continuations.
	"""
	content = tok.value[1:-1]  # strip quotes

	def _bad(msg: str) -> DeclParseError:
		return DeclParseError(msg, span=Span.from_meta(tok, file))

	def _escape(m: re.Match) -> str:
		uni, hex_byte, simple = m.groups()
		if uni is not None:
			code = int(uni.replace("_", ""), 16)
			if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
				raise _bad(f"invalid unicode escape '\\u{{{uni}}}'")
			return chr(code)
		if hex_byte is not None:
			code = int(hex_byte, 16)
			if code > 0x7F:
				raise _bad(f"out of range hex escape '\\x{hex_byte}'")
			return chr(code)
		if simple is None:
			return ""
		if simple not in _SIMPLE_ESCAPES:
			raise _bad(f"unknown character escape '\\{simple}'")
		return _SIMPLE_ESCAPES[simple]

	return _ESCAPE_RE.sub(_escape, content)


_CHAR_LIT_RE = re.compile(r"'(?:[^'\\\n]|\\(?:u\{[0-9A-Fa-f_]{1,8}\}|x[0-9A-Fa-f]{2}|.))'")
_RAW_STR_RE = re.compile(r'r(#*)"')
_FN_RE = re.compile(r"fn\b")


def _is_ident_char(ch: str) -> bool:
	return ch.isalnum() or ch == "_"


def _skip_opaque(src: str, i: int) -> Optional[int]:
	"""
	If a comment, string or char literal starts at `i`, return the index just
	past it; otherwise None.
	"""
	if src.startswith("//", i):
		end = src.find("\n", i)
		return len(src) if end < 0 else end
	if src.startswith("/*", i):
		end = src.find("*/", i + 2)
		return len(src) if end < 0 else end + 2
	m = _RAW_STR_RE.match(src, i)
	if m is not None and (i == 0 or not _is_ident_char(src[i - 1])):
		close = '"' + m.group(1)
		end = src.find(close, m.end())
		return len(src) if end < 0 else end + len(close)
	if src[i] == '"':
		j = i + 1
		while j < len(src):
			if src[j] == "\\":
				j += 2
				continue
			if src[j] == '"':
				return j + 1
			j += 1
		return len(src)
	m = _CHAR_LIT_RE.match(src, i)
	if m is not None:
		return m.end()
	return None


def _matching_brace(src: str, start: int) -> Optional[int]:
	depth = 0
	i = start
	while i < len(src):
		skip = _skip_opaque(src, i)
		if skip is not None:
			i = skip
			continue
		if src[i] == "{":
			depth += 1
		elif src[i] == "}":
			depth -= 1
			if depth == 0:
				return i
		i += 1
	return None


def _blank_fn_bodies(source: str) -> str:
	"""
	Replace the inside of every `fn` body with spaces (newlines kept).

	Bodies are opaque to the grammar; blanking them keeps every line and column
	of the surrounding declarations intact. An unterminated body is left as-is
	so the grammar reports it.
	"""
	out = list(source)
	in_signature = False
	i = 0
	while i < len(source):
		skip = _skip_opaque(source, i)
		if skip is not None:
			i = skip
			continue
		ch = source[i]
		if _FN_RE.match(source, i) and (i == 0 or not _is_ident_char(source[i - 1])):
			in_signature = True
			i += 2
			continue
		if in_signature and ch == ";":
			in_signature = False
		elif in_signature and ch == "{":
			in_signature = False
			end = _matching_brace(source, i)
			if end is None:
				break
			for j in range(i + 1, end):
				if out[j] != "\n":
					out[j] = " "
			i = end
		i += 1
	return "".join(out)


def _name(node: Tree | Token) -> str:
	if isinstance(node, Tree):
		data = node.data
		if isinstance(data, Token):
			return data.value
		return data
	if isinstance(node, Token):
		return node.type
	return str(node)


def _trees(node: Tree) -> List[Tree]:
	return [c for c in node.children if isinstance(c, Tree)]


def _tokens(node: Tree, kind: str) -> List[Token]:
	return [c for c in node.children if isinstance(c, Token) and c.type == kind]


def _first_token(node: Tree, kind: str) -> Optional[Token]:
	return next(iter(_tokens(node, kind)), None)


def _child(node: Tree, name: str) -> Optional[Tree]:
	return next((c for c in _trees(node) if _name(c) == name), None)


def _describe_unexpected(exc: UnexpectedInput, source: str) -> str:
	if isinstance(exc, UnexpectedEOF):
		return "unexpected end of input"
	if isinstance(exc, UnexpectedToken):
		tok = exc.token
		if tok.type == "$END":
			return "unexpected end of input"
		return f"unexpected token '{tok.value}'"
	if isinstance(exc, UnexpectedCharacters):
		ch = source[exc.pos_in_stream] if 0 <= exc.pos_in_stream < len(source) else "?"
		return f"unexpected character '{ch}'"
	return str(exc)


class _Builder:
	"""Converts a lark parse tree into the declaration model."""

	def __init__(self, file: Optional[str]) -> None:
		self.file = file

	def span(self, node: Tree | Token) -> Span:
		if isinstance(node, Token):
			return Span.from_meta(node, self.file)
		return Span.from_meta(node.meta, self.file)

	# --- items -------------------------------------------------------------

	def build(self, tree: Tree) -> SourceFile:
		items: list = []
		for item in _trees(tree):
			attrs_tree, body = _trees(item)
			attrs = self.attrs(attrs_tree)
			kind = _name(body)
			if kind == "fn_def":
				items.append(self.fn_def(body, attrs, None))
			elif kind == "const_def":
				items.append(self.const_def(body, attrs, None))
			elif kind == "impl_def":
				items.append(self.impl_def(body, attrs))
			else:
				raise TypeError(f"unexpected item node '{kind}'")
		return SourceFile(items=items, file=self.file)

	def impl_def(self, tree: Tree, attrs: Tuple[Attribute, ...]) -> ImplBlock:
		generics_tree = _child(tree, "generics")
		generics = self.generics(generics_tree) if generics_tree is not None else ()
		type_tree = next(c for c in _trees(tree) if _name(c) not in ("generics", "impl_member"))
		context = ImplContext(self_ty=self.type_expr(type_tree), generics=generics, span=self.span(tree))
		members: list[Decl] = []
		for member in _trees(tree):
			if _name(member) != "impl_member":
				continue
			m_attrs_tree, m_body = _trees(member)
			m_attrs = self.attrs(m_attrs_tree)
			if _name(m_body) == "fn_def":
				members.append(self.fn_def(m_body, m_attrs, context))
			else:
				members.append(self.const_def(m_body, m_attrs, context))
		return ImplBlock(context=context, items=tuple(members), attrs=attrs, span=self.span(tree))

	def fn_def(self, tree: Tree, attrs: Tuple[Attribute, ...], impl: Optional[ImplContext]) -> FnDecl:
		name_tok = _first_token(tree, "IDENT")
		assert name_tok is not None
		async_tok = _first_token(tree, "ASYNC")
		generics_tree = _child(tree, "generics")
		params_tree = _child(tree, "params")
		ret_tree = _child(tree, "ret_type")
		params: Tuple[Param, ...] = ()
		if params_tree is not None:
			params = tuple(self.param(p) for p in _trees(params_tree))
		return_type = None
		if ret_tree is not None:
			return_type = self.type_expr(_trees(ret_tree)[0])
		return FnDecl(
			name=name_tok.value,
			params=params,
			return_type=return_type,
			attrs=attrs,
			generics=self.generics(generics_tree) if generics_tree is not None else (),
			async_span=self.span(async_tok) if async_tok is not None else None,
			impl=impl,
			name_span=self.span(name_tok),
			span=self.span(tree),
		)

	def const_def(self, tree: Tree, attrs: Tuple[Attribute, ...], impl: Optional[ImplContext]) -> ConstDecl:
		name_tok = _first_token(tree, "IDENT")
		value_tok = _first_token(tree, "CONST_EXPR")
		assert name_tok is not None and value_tok is not None
		type_tree = next(c for c in _trees(tree) if _name(c) != "visibility")
		return ConstDecl(
			name=name_tok.value,
			type_expr=self.type_expr(type_tree),
			value_src=value_tok.value.strip(),
			attrs=attrs,
			impl=impl,
			name_span=self.span(name_tok),
			span=self.span(tree),
		)

	# --- attributes --------------------------------------------------------

	def attrs(self, tree: Tree) -> Tuple[Attribute, ...]:
		out: list[Attribute] = []
		for node in tree.children:
			if isinstance(node, Tree) and _name(node) == "doc_attr":
				tok = node.children[0]
				text = tok.value[3:]
				span = self.span(tok)
				out.append(
					Attribute(
						path=AttrPath(("doc",), span),
						value=AttrLit("str", text, span),
						span=span,
					)
				)
			elif isinstance(node, Tree):
				out.append(self.attribute(node))
		return tuple(out)

	def attribute(self, tree: Tree) -> Attribute:
		inner = _first_token(tree, "BANG") is not None
		meta = next(c for c in _trees(tree))
		kind = _name(meta)
		path_tree, *rest = _trees(meta)
		path = self.attr_path(path_tree)
		span = self.span(tree)
		if kind == "meta_list":
			args: Tuple[AttrArg, ...] = ()
			if rest:
				args = tuple(self.meta_arg(a) for a in _trees(rest[0]))
			return Attribute(path=path, args=args, inner=inner, span=span)
		if kind == "meta_value":
			return Attribute(path=path, value=self.lit(rest[0]), inner=inner, span=span)
		return Attribute(path=path, inner=inner, span=span)

	def attr_path(self, tree: Tree) -> AttrPath:
		return AttrPath(tuple(t.value for t in _tokens(tree, "IDENT")), self.span(tree))

	def meta_arg(self, tree: Tree) -> AttrArg:
		kind = _name(tree)
		children = _trees(tree)
		if kind == "arg_path":
			return self.attr_path(children[0])
		if kind == "arg_assign":
			return AttrAssign(name=self.attr_path(children[0]), value=self.lit(children[1]), span=self.span(tree))
		return self.lit(children[0])

	def lit(self, tree: Tree) -> AttrLit:
		kind = _name(tree)
		tok = tree.children[0]
		span = self.span(tree)
		if kind == "lit_str":
			return AttrLit("str", _decode_string_token(tok, self.file), span)
		if kind == "lit_bool":
			return AttrLit("bool", tok.value == "true", span)
		if "." in tok.value:
			return AttrLit("float", float(tok.value), span)
		return AttrLit("int", int(tok.value), span)

	# --- generics / params -------------------------------------------------

	def generics(self, tree: Tree) -> Tuple[GenericParam, ...]:
		out: list[GenericParam] = []
		for node in _trees(tree):
			kind = _name(node)
			if kind == "lifetime_param":
				out.append(GenericParam("lifetime", _tokens(node, "LIFETIME")[0].value, self.span(node)))
			elif kind == "type_param":
				out.append(GenericParam("type", _tokens(node, "IDENT")[0].value, self.span(node)))
			else:
				out.append(GenericParam("const", _tokens(node, "IDENT")[0].value, self.span(node)))
		return tuple(out)

	def param(self, tree: Tree) -> Param:
		attrs_tree, body = _trees(tree)
		param_attrs = tuple(self.attribute(a) for a in _trees(attrs_tree))
		kind = _name(body)
		mutable = _first_token(body, "MUT") is not None
		if kind == "ref_self":
			lt = _first_token(body, "LIFETIME")
			return SelfParam(by_ref=True, mutable=mutable, lifetime=lt.value if lt else None, span=self.span(body))
		if kind == "value_self":
			return SelfParam(by_ref=False, mutable=mutable, span=self.span(body))
		pattern, type_tree = _trees(body)
		pat_kind = _name(pattern)
		name = None
		pat_mut = False
		if pat_kind == "ident_pat":
			name = _tokens(pattern, "IDENT")[0].value
			pat_mut = _first_token(pattern, "MUT") is not None
		return TypedParam(
			pattern={"ident_pat": "ident", "wild_pat": "wild"}.get(pat_kind, "tuple"),
			name=name,
			type_expr=self.type_expr(type_tree),
			mutable=pat_mut,
			attrs=param_attrs,
			span=self.span(body),
		)

	# --- types -------------------------------------------------------------

	def type_expr(self, node: Tree | Token) -> TypeExpr:
		if isinstance(node, Token):
			# Bare lifetimes only appear as bounds; model them as paths.
			return TypeExpr(kind="path", name=node.value, span=self.span(node))
		kind = _name(node)
		span = self.span(node)
		if kind == "path_type":
			segments: list[str] = []
			args: list[TypeExpr] = []
			lifetimes: list[str] = []
			for seg in _trees(node):
				segments.append(_tokens(seg, "IDENT")[0].value)
				gen = _child(seg, "generic_args")
				if gen is None:
					continue
				for arg in gen.children:
					if isinstance(arg, Token) and arg.type == "LIFETIME":
						lifetimes.append(arg.value)
					else:
						args.append(self.type_expr(arg))
			return TypeExpr(kind="path", name="::".join(segments), args=tuple(args), lifetimes=tuple(lifetimes), span=span)
		if kind == "ref_type":
			lt = _first_token(node, "LIFETIME")
			return TypeExpr(
				kind="ref",
				args=(self.type_expr(_trees(node)[0]),),
				lifetimes=(lt.value,) if lt else (),
				mutable=_first_token(node, "MUT") is not None,
				span=span,
			)
		if kind == "tuple_type":
			return TypeExpr(kind="tuple", args=tuple(self.type_expr(t) for t in _trees(node)), span=span)
		if kind == "slice_type":
			length = next((c.value for c in node.children if isinstance(c, Token)), None)
			return TypeExpr(kind="slice", args=(self.type_expr(_trees(node)[0]),), length=length, span=span)
		if kind in ("impl_type", "dyn_type"):
			bounds = tuple(self.type_expr(b) for b in _trees(node))
			lifetimes = tuple(t.value for t in _tokens(node, "LIFETIME"))
			return TypeExpr(kind=kind[:-5], bounds=bounds, lifetimes=lifetimes, span=span)
		if kind == "infer_type":
			return TypeExpr(kind="infer", span=span)
		raise TypeError(f"unexpected type node '{kind}'")


def parse_source(source: str, file: Optional[str] = None) -> SourceFile:
	"""Parse declaration text. Raises `DeclParseError` on grammar errors."""
	try:
		tree = _PARSER.parse(_blank_fn_bodies(source))
	except UnexpectedInput as exc:
		line = exc.line if isinstance(exc.line, int) and exc.line > 0 else None
		column = exc.column if isinstance(exc.column, int) and exc.column > 0 else None
		raise DeclParseError(
			_describe_unexpected(exc, source),
			span=Span(file=file, line=line, column=column),
		) from exc
	return _Builder(file).build(tree)


def parse_decl(source: str, file: Optional[str] = None) -> Decl:
	"""
	Parse text holding exactly one declaration (possibly inside one `impl`).

	Convenience for tests and tools that work on a single signature.
	"""
	decls = parse_source(source, file).declarations()
	if len(decls) != 1:
		raise DeclParseError(f"expected exactly one declaration, found {len(decls)}", span=Span(file=file))
	return decls[0]


__all__ = ["DeclParseError", "parse_decl", "parse_source"]
