# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Declaration model handed from the front-end to the checker.

The checker never looks at lark trees; it only consumes these dataclasses.
Anything that can carry a diagnostic has a `span`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple, Union

from callspec.core.span import Span


@dataclass(frozen=True)
class AttrPath:
	"""A path inside an attribute (`getter(x)`, `args(a, b = "1")`)."""

	segments: Tuple[str, ...]
	span: Span = field(default_factory=Span)

	@property
	def text(self) -> str:
		return "::".join(self.segments)

	def is_ident(self, name: str) -> bool:
		return len(self.segments) == 1 and self.segments[0] == name


@dataclass(frozen=True)
class AttrLit:
	"""A literal inside an attribute. `kind` is "str", "int", "float" or "bool"."""

	kind: str
	value: Union[str, int, float, bool]
	span: Span = field(default_factory=Span)


@dataclass(frozen=True)
class AttrAssign:
	"""`name = literal` inside an attribute argument list."""

	name: AttrPath
	value: AttrLit
	span: Span = field(default_factory=Span)


AttrArg = Union[AttrPath, AttrLit, AttrAssign]


@dataclass(frozen=True)
class Attribute:
	"""
	One annotation attached to a declaration.

	Three shapes exist, mirroring how annotations are written:
	- path form: `#[staticmethod]` (`args is None and value is None`)
	- list form: `#[getter(x)]` (`args` holds the nested values)
	- name-value form: `#[text_signature = "(a)"]` (`value` holds the literal)

	`///` doc comments are normalized to `#[doc = "..."]`.
	"""

	path: AttrPath
	args: Optional[Tuple[AttrArg, ...]] = None
	value: Optional[AttrLit] = None
	inner: bool = False
	span: Span = field(default_factory=Span)

	@property
	def name(self) -> str:
		return self.path.text

	@property
	def form(self) -> str:
		if self.args is not None:
			return "list"
		if self.value is not None:
			return "name_value"
		return "path"


@dataclass(frozen=True)
class TypeExpr:
	"""
	Declared type descriptor.

	kind:
	- "path": `a::b::Name<args>`; `name` holds the joined path
	- "ref": `&'a mut T`; `args[0]` is the referent
	- "tuple": `(A, B)`; `()` is the unit type
	- "slice": `[T]` / `[T; N]`
	- "impl": `impl Bound + Bound` (existential)
	- "dyn": `dyn Bound + Bound`
	- "infer": `_`
	"""

	kind: str
	name: str = ""
	args: Tuple["TypeExpr", ...] = ()
	lifetimes: Tuple[str, ...] = ()
	bounds: Tuple["TypeExpr", ...] = ()
	mutable: bool = False
	length: Optional[str] = None
	span: Span = field(default_factory=Span)

	@property
	def last_segment(self) -> str:
		return self.name.rsplit("::", 1)[-1]

	def strip_refs(self) -> "TypeExpr":
		ty = self
		while ty.kind == "ref" and ty.args:
			ty = ty.args[0]
		return ty

	def walk(self) -> Iterator["TypeExpr"]:
		"""Yield this type and every nested type, outermost first."""
		yield self
		for sub in self.args:
			yield from sub.walk()
		for sub in self.bounds:
			yield from sub.walk()

	def find_impl_trait(self) -> Optional["TypeExpr"]:
		return next((t for t in self.walk() if t.kind == "impl"), None)

	def mentions_self(self, self_name: Optional[str] = None) -> bool:
		"""True when `Self` (or the enclosing impl's type name) appears anywhere in the type."""
		names = {"Self", self_name} if self_name else {"Self"}
		return any(t.kind == "path" and t.last_segment in names for t in self.walk())

	def render(self) -> str:
		if self.kind == "path":
			parts = list(self.lifetimes) + [a.render() for a in self.args]
			return f"{self.name}<{', '.join(parts)}>" if parts else self.name
		if self.kind == "ref":
			lt = f"{self.lifetimes[0]} " if self.lifetimes else ""
			mut = "mut " if self.mutable else ""
			return f"&{lt}{mut}{self.args[0].render()}"
		if self.kind == "tuple":
			if len(self.args) == 1:
				return f"({self.args[0].render()},)"
			return "(" + ", ".join(a.render() for a in self.args) + ")"
		if self.kind == "slice":
			inner = self.args[0].render()
			return f"[{inner}; {self.length}]" if self.length is not None else f"[{inner}]"
		if self.kind in ("impl", "dyn"):
			parts = [b.render() for b in self.bounds] + list(self.lifetimes)
			return f"{self.kind} " + " + ".join(parts)
		return "_"


UNIT_TYPE = TypeExpr(kind="tuple")


@dataclass(frozen=True)
class SelfParam:
	"""Shorthand receiver: `self`, `mut self`, `&self`, `&'a mut self`."""

	by_ref: bool
	mutable: bool
	lifetime: Optional[str] = None
	span: Span = field(default_factory=Span)


@dataclass(frozen=True)
class TypedParam:
	"""
	`pattern: Type`.

	`pattern` is "ident", "wild" (`_`) or "tuple"; only identifier patterns
	have a `name`.
	"""

	pattern: str
	name: Optional[str]
	type_expr: TypeExpr
	mutable: bool = False
	attrs: Tuple[Attribute, ...] = ()
	span: Span = field(default_factory=Span)


Param = Union[SelfParam, TypedParam]


@dataclass(frozen=True)
class GenericParam:
	"""`kind` is "lifetime", "type" or "const"."""

	kind: str
	name: str
	span: Span = field(default_factory=Span)


@dataclass(frozen=True)
class ImplContext:
	"""The `impl` block a declaration was found in."""

	self_ty: TypeExpr
	generics: Tuple[GenericParam, ...] = ()
	span: Span = field(default_factory=Span)


@dataclass(frozen=True)
class FnDecl:
	name: str
	params: Tuple[Param, ...]
	return_type: Optional[TypeExpr]
	attrs: Tuple[Attribute, ...] = ()
	generics: Tuple[GenericParam, ...] = ()
	async_span: Optional[Span] = None
	impl: Optional[ImplContext] = None
	name_span: Span = field(default_factory=Span)
	span: Span = field(default_factory=Span)

	@property
	def is_async(self) -> bool:
		return self.async_span is not None


@dataclass(frozen=True)
class ConstDecl:
	name: str
	type_expr: TypeExpr
	value_src: str
	attrs: Tuple[Attribute, ...] = ()
	impl: Optional[ImplContext] = None
	name_span: Span = field(default_factory=Span)
	span: Span = field(default_factory=Span)


Decl = Union[FnDecl, ConstDecl]


@dataclass(frozen=True)
class ImplBlock:
	context: ImplContext
	items: Tuple[Decl, ...]
	attrs: Tuple[Attribute, ...] = ()
	span: Span = field(default_factory=Span)


@dataclass
class SourceFile:
	items: list[Union[Decl, ImplBlock]]
	file: Optional[str] = None

	def declarations(self) -> list[Decl]:
		"""All declarations in source order, `impl` members flattened in place."""
		out: list[Decl] = []
		for item in self.items:
			if isinstance(item, ImplBlock):
				out.extend(item.items)
			else:
				out.append(item)
		return out


__all__ = [
	"AttrArg",
	"AttrAssign",
	"AttrLit",
	"AttrPath",
	"Attribute",
	"ConstDecl",
	"Decl",
	"FnDecl",
	"GenericParam",
	"ImplBlock",
	"ImplContext",
	"Param",
	"SelfParam",
	"SourceFile",
	"TypeExpr",
	"TypedParam",
	"UNIT_TYPE",
]
