# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Attribute classification.

Partitions a declaration's annotations into the binding-kind tag, the
external-name override, argument-shape attributes, signature-text request and
documentation. Annotations that mean nothing here are passed through
untouched. Errors are collected, never raised: classification keeps going so
one declaration can report every independent problem at once.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

from callspec.core.diagnostics import Diagnostic, ErrorKind, error
from callspec.core.span import Span
from callspec.parser.ast import AttrAssign, AttrLit, AttrPath, Attribute

from .model import (
	ArgumentAttribute,
	BindingKind,
	KeywordOnly,
	PositionalDefault,
	VariadicKeyword,
	VariadicPositional,
)

_PHASE = "classify"
_IDENT_RE = re.compile(r"^(r#)?[A-Za-z_][A-Za-z0-9_]*$")

# Path-form tags; the second item is the deprecated spelling's replacement.
_KIND_TAGS: dict[str, tuple[BindingKind, Optional[str]]] = {
	"new": (BindingKind.CONSTRUCTOR, None),
	"__new__": (BindingKind.CONSTRUCTOR, "#[new]"),
	"call": (BindingKind.CALL_OPERATOR, None),
	"__call__": (BindingKind.CALL_OPERATOR, "#[call]"),
	"classmethod": (BindingKind.CLASS_METHOD, None),
	"staticmethod": (BindingKind.STATIC_METHOD, None),
	"classattr": (BindingKind.CLASS_ATTRIBUTE, None),
	"getter": (BindingKind.GETTER, None),
	"setter": (BindingKind.SETTER, None),
}
_PROPERTY_TAGS = ("getter", "setter")
_DISABLED_TAGS = ("init", "__init__")

# Every annotation name the classifier consumes.
BINDING_TAGS = frozenset(_KIND_TAGS) | frozenset(_DISABLED_TAGS)


@dataclass(frozen=True)
class TextSignatureRequest:
	"""`#[text_signature = "(...)"]` (explicit) or `#[text_signature]` (generated)."""

	text: Optional[str]
	span: Span = field(default_factory=Span)

	@property
	def generated(self) -> bool:
		return self.text is None


@dataclass
class ClassifiedAttributes:
	kind: Optional[BindingKind] = None
	kind_span: Optional[Span] = None
	name_override: Optional[str] = None
	name_span: Optional[Span] = None
	arguments: list[ArgumentAttribute] = field(default_factory=list)
	text_signature: Optional[TextSignatureRequest] = None
	doc_lines: list[str] = field(default_factory=list)
	deprecations: list[str] = field(default_factory=list)
	passthrough: list[Attribute] = field(default_factory=list)
	diagnostics: list[Diagnostic] = field(default_factory=list)

	@property
	def binding_kind(self) -> BindingKind:
		return self.kind or BindingKind.PLAIN


class _Classifier:
	def __init__(self) -> None:
		self.out = ClassifiedAttributes()

	def report(self, kind: ErrorKind, code: str, msg: str, span: Span | None, notes: Sequence[str] = ()) -> None:
		self.out.diagnostics.append(error(kind, code, msg, span, phase=_PHASE, notes=notes))

	def set_kind(self, kind: BindingKind, span: Span) -> None:
		if self.out.kind is not None:
			notes = [f"first method type is here: {self.out.kind_span.short()}"] if self.out.kind_span else []
			self.report(
				ErrorKind.STRUCTURAL_CONFLICT,
				"duplicate-binding-kind",
				"cannot specify a second method type",
				span,
				notes,
			)
			return
		self.out.kind = kind
		self.out.kind_span = span

	def set_name(self, name: str, span: Span) -> None:
		if self.out.name_override is not None:
			notes = [f"first name is here: {self.out.name_span.short()}"] if self.out.name_span else []
			self.report(
				ErrorKind.STRUCTURAL_CONFLICT,
				"duplicate-name-override",
				"`name` may only be specified once",
				span,
				notes,
			)
			return
		self.out.name_override = name
		self.out.name_span = span

	# --- dispatch ----------------------------------------------------------

	def visit(self, attr: Attribute) -> None:
		name = attr.name
		if name in _DISABLED_TAGS:
			self.report(
				ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
				"init-disabled",
				"#[init] is disabled; use #[new] to define a constructor",
				attr.span,
			)
			return
		if name in _KIND_TAGS:
			self.visit_kind_tag(attr)
			return
		if name == "args" and attr.form == "list":
			self.visit_args(attr)
			return
		if name == "export" and attr.form == "list":
			self.visit_export(attr)
			return
		if name == "name" and attr.form == "name_value":
			self.visit_legacy_name(attr)
			return
		if name == "text_signature":
			self.visit_text_signature(attr)
			return
		if name == "doc" and attr.form == "name_value" and attr.value is not None and attr.value.kind == "str":
			self.out.doc_lines.append(str(attr.value.value))
			return
		self.out.passthrough.append(attr)

	def visit_kind_tag(self, attr: Attribute) -> None:
		tag = attr.name
		kind, replacement = _KIND_TAGS[tag]
		if replacement is not None:
			self.out.deprecations.append(f"`#[{tag}]` is deprecated; use `{replacement}` instead")
		if tag in _PROPERTY_TAGS and attr.inner:
			self.report(
				ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
				"inner-property-attribute",
				"inner attribute is not supported for setter and getter",
				attr.span,
			)
		if attr.form == "name_value":
			self.report(
				ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
				"unexpected-attribute-value",
				f"`#[{tag}]` does not take a value",
				attr.span,
			)
			self.set_kind(kind, attr.path.span)
			return
		if attr.form == "list" and tag in _PROPERTY_TAGS:
			self.set_kind(kind, attr.path.span)
			self.visit_property_name(attr)
			return
		if attr.form == "list" and attr.args:
			self.report(
				ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
				"unexpected-attribute-value",
				f"`#[{tag}]` does not take arguments",
				attr.args[0].span,
			)
		self.set_kind(kind, attr.path.span)

	def visit_property_name(self, attr: Attribute) -> None:
		args = attr.args or ()
		if len(args) != 1:
			self.report(
				ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
				"property-name-count",
				"setter/getter requires one value",
				attr.span,
			)
			return
		value = args[0]
		if isinstance(value, AttrPath) and len(value.segments) == 1:
			self.set_name(value.segments[0], value.span)
		elif isinstance(value, AttrLit):
			if value.kind != "str":
				self.report(
					ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
					"property-name-type",
					"setter/getter attribute requires str value",
					value.span,
				)
			elif not _IDENT_RE.match(str(value.value)):
				self.report(
					ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
					"property-name-ident",
					f"expected identifier for property name, found '{value.value}'",
					value.span,
				)
			else:
				self.set_name(str(value.value), value.span)
		else:
			self.report(
				ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
				"property-name-shape",
				"expected ident or string literal for property name",
				value.span,
			)

	def visit_export(self, attr: Attribute) -> None:
		for item in attr.args or ():
			if isinstance(item, AttrAssign) and item.name.is_ident("name"):
				if item.value.kind != "str":
					self.report(
						ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
						"name-type",
						"`name` requires a string value",
						item.value.span,
					)
					continue
				self.set_name(str(item.value.value), item.span)
				continue
			label = item.name.text if isinstance(item, AttrAssign) else getattr(item, "text", None) or "literal"
			self.report(
				ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
				"unknown-export-option",
				f"unknown export option `{label}`",
				item.span,
			)

	def visit_legacy_name(self, attr: Attribute) -> None:
		assert attr.value is not None
		if attr.value.kind != "str":
			self.report(
				ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
				"name-type",
				"`name` requires a string value",
				attr.value.span,
			)
			return
		self.out.deprecations.append("`#[name = ...]` is deprecated; use `#[export(name = ...)]` instead")
		self.set_name(str(attr.value.value), attr.span)

	def visit_text_signature(self, attr: Attribute) -> None:
		if self.out.text_signature is not None:
			self.report(
				ErrorKind.STRUCTURAL_CONFLICT,
				"duplicate-text-signature",
				"text_signature attribute already specified previously",
				attr.span,
			)
			return
		if attr.form == "path":
			self.out.text_signature = TextSignatureRequest(text=None, span=attr.span)
			return
		if attr.form == "list" or attr.value is None or attr.value.kind != "str":
			self.report(
				ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
				"text-signature-form",
				'expected `#[text_signature = "(...)"]` or `#[text_signature]`',
				attr.span,
			)
			return
		self.out.text_signature = TextSignatureRequest(text=str(attr.value.value), span=attr.value.span)

	def visit_args(self, attr: Attribute) -> None:
		"""
		Parse `#[args(...)]` items in order.

		Items after the `"*"` separator or after the variadic positional item
		are keyword-only. Ordering mistakes inside the list are structural
		conflicts; unknown names are left for the argument table.
		"""
		separator: Optional[Span] = None
		varargs: Optional[str] = None
		kwargs: Optional[str] = None

		def after_kwargs(span: Span) -> bool:
			if kwargs is None:
				return False
			self.report(
				ErrorKind.STRUCTURAL_CONFLICT,
				"args-after-kwargs",
				f"no arguments may follow variadic keyword `{kwargs}`",
				span,
			)
			return True

		for item in attr.args or ():
			if isinstance(item, AttrLit):
				if item.kind == "str" and item.value == "*":
					if separator is not None:
						self.report(ErrorKind.STRUCTURAL_CONFLICT, "duplicate-separator", "`*` may only be specified once", item.span)
					elif varargs is not None:
						self.report(
							ErrorKind.STRUCTURAL_CONFLICT,
							"separator-after-varargs",
							f"`*` not allowed after variadic positional `{varargs}`",
							item.span,
						)
					elif not after_kwargs(item.span):
						separator = item.span
					continue
				self.report(
					ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
					"args-item",
					"expected argument name, `name = \"default\"` or `\"*\"`",
					item.span,
				)
				continue
			path = item.name if isinstance(item, AttrAssign) else item
			if len(path.segments) != 1:
				self.report(ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT, "args-item", f"expected argument name, found `{path.text}`", path.span)
				continue
			name = path.segments[0]
			keyword_only = separator is not None or varargs is not None
			if isinstance(item, AttrPath):
				if after_kwargs(item.span):
					continue
				self.out.arguments.append(
					KeywordOnly(name, None, item.span) if keyword_only else PositionalDefault(name, None, item.span)
				)
				continue
			if item.value.kind != "str":
				self.report(
					ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
					"default-type",
					"argument default must be a string holding an expression",
					item.value.span,
				)
				continue
			text = str(item.value.value)
			if text == "*":
				if varargs is not None:
					self.report(
						ErrorKind.STRUCTURAL_CONFLICT,
						"duplicate-varargs",
						f"variadic positional already specified as `{varargs}`",
						item.span,
					)
				elif separator is not None:
					self.report(
						ErrorKind.STRUCTURAL_CONFLICT,
						"varargs-after-separator",
						"variadic positional not allowed after `*`",
						item.span,
					)
				elif not after_kwargs(item.span):
					varargs = name
					self.out.arguments.append(VariadicPositional(name, item.span))
				continue
			if text == "**":
				if kwargs is not None:
					self.report(
						ErrorKind.STRUCTURAL_CONFLICT,
						"duplicate-kwargs",
						f"variadic keyword already specified as `{kwargs}`",
						item.span,
					)
				else:
					kwargs = name
					self.out.arguments.append(VariadicKeyword(name, item.span))
				continue
			if after_kwargs(item.span):
				continue
			if not text.strip():
				self.report(
					ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
					"empty-default",
					f"default expression for `{name}` is empty",
					item.value.span,
				)
				continue
			self.out.arguments.append(
				KeywordOnly(name, text, item.span) if keyword_only else PositionalDefault(name, text, item.span)
			)

	def finish(self) -> ClassifiedAttributes:
		kind = self.out.kind
		if kind is not None and kind.rules.forbids_name_override and self.out.name_override is not None:
			self.report(
				ErrorKind.STRUCTURAL_CONFLICT,
				"name-not-allowed",
				f"`name` not allowed with `{kind.rules.label}`",
				self.out.name_span,
			)
		return self.out


def classify_attributes(attrs: Sequence[Attribute]) -> ClassifiedAttributes:
	"""Classify a declaration's annotations (source order is preserved)."""
	classifier = _Classifier()
	for attr in attrs:
		classifier.visit(attr)
	return classifier.finish()


__all__ = ["BINDING_TAGS", "ClassifiedAttributes", "TextSignatureRequest", "classify_attributes"]
