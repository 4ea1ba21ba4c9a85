# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Signature assembly: declaration -> CallSpec or diagnostics.

Per declaration the pipeline runs UNCLASSIFIED -> CLASSIFIED ->
RECEIVER_RESOLVED -> ASSEMBLED, or ends in REJECTED. Every stage runs even
after an earlier one reported errors so a single pass surfaces all independent
problems; a rejected declaration never produces a CallSpec.

Declarations share no state, so `assemble_all` may fan them out to worker
threads; only the DiagnosticSink is shared.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Optional, Sequence

from callspec.core.diagnostics import Diagnostic, DiagnosticSink, ErrorKind, error
from callspec.core.span import Span
from callspec.parser.ast import UNIT_TYPE, ConstDecl, Decl, FnDecl, GenericParam, ImplContext, SelfParam, TypeExpr, TypedParam

from .arg_attrs import ArgumentAttributeTable
from .attributes import BINDING_TAGS, ClassifiedAttributes, TextSignatureRequest, classify_attributes
from .callspec import CallSpec, ParameterDescriptor
from .model import NO_RECEIVER, BindingKind, BindingRules, ParamRole, ReceiverKind, unraw
from .receiver import resolve_receiver

_PHASE = "assemble"

DEFAULT_CONTEXT_TYPES = frozenset({"Python"})


class AssemblyState(Enum):
	UNCLASSIFIED = auto()
	CLASSIFIED = auto()
	RECEIVER_RESOLVED = auto()
	ASSEMBLED = auto()
	REJECTED = auto()


@dataclass(frozen=True)
class CheckerOptions:
	"""
	Checker knobs.

	`context_types` are the type names (last path segment, references
	stripped) that mark a runtime context handle parameter.
	"""

	context_types: frozenset[str] = DEFAULT_CONTEXT_TYPES


@dataclass(frozen=True)
class AssemblyResult:
	name: str
	state: AssemblyState
	spec: Optional[CallSpec] = None
	diagnostics: tuple[Diagnostic, ...] = ()
	span: Span = field(default_factory=Span)

	@property
	def ok(self) -> bool:
		return self.state is AssemblyState.ASSEMBLED


def is_context_type(ty: TypeExpr, context_types: Iterable[str]) -> bool:
	base = ty.strip_refs()
	return base.kind == "path" and base.last_segment in set(context_types)


def option_argument(ty: TypeExpr) -> Optional[TypeExpr]:
	"""Return `T` for `Option<T>`, else None."""
	if ty.kind == "path" and ty.last_segment == "Option" and len(ty.args) == 1:
		return ty.args[0]
	return None


def is_exported(decl: Decl) -> bool:
	"""Functions are always candidates; constants only when tagged."""
	if isinstance(decl, FnDecl):
		return True
	return any(a.name in BINDING_TAGS for a in decl.attrs)


def render_text_signature(rules: BindingRules, params: Sequence[ParameterDescriptor]) -> str:
	"""Render `($self, a, b=5, *args, c, **kwargs)` for the dynamic calling convention."""
	parts: list[str] = []
	if rules.signature_self:
		parts.append(rules.signature_self)
	star_emitted = False
	for p in params:
		if p.role is ParamRole.VARIADIC_POSITIONAL:
			parts.append(f"*{p.name}")
			star_emitted = True
		elif p.role is ParamRole.VARIADIC_KEYWORD:
			parts.append(f"**{p.name}")
		else:
			if p.role is ParamRole.KEYWORD_ONLY and not star_emitted:
				parts.append("*")
				star_emitted = True
			default = p.default
			if default is None and p.is_optional:
				default = "None"
			parts.append(f"{p.name}={default}" if default is not None else p.name)
	return "(" + ", ".join(parts) + ")"


def _render_doc(lines: Sequence[str]) -> str:
	return "\n".join(line[1:] if line.startswith(" ") else line for line in lines)


class _Assembly:
	"""One declaration's trip through the pipeline."""

	def __init__(self, decl: Decl, options: CheckerOptions) -> None:
		self.decl = decl
		self.options = options
		self.state = AssemblyState.UNCLASSIFIED
		self.diags: list[Diagnostic] = []

	def report(self, kind: ErrorKind, code: str, msg: str, span: Span | None, notes: Sequence[str] = ()) -> None:
		self.diags.append(error(kind, code, msg, span, phase=_PHASE, notes=notes))

	def classify(self) -> ClassifiedAttributes:
		classified = classify_attributes(self.decl.attrs)
		self.diags.extend(classified.diagnostics)
		self.state = AssemblyState.CLASSIFIED
		return classified

	def finish(self, spec: CallSpec) -> AssemblyResult:
		if any(d.is_error for d in self.diags):
			self.state = AssemblyState.REJECTED
			return AssemblyResult(self.decl.name, self.state, None, tuple(self.diags), self.decl.span)
		self.state = AssemblyState.ASSEMBLED
		return AssemblyResult(self.decl.name, self.state, spec, tuple(self.diags), self.decl.span)

	# --- shared checks -----------------------------------------------------

	def check_generics(self, generics: Sequence[GenericParam], impl: Optional[ImplContext]) -> None:
		for g in generics:
			if g.kind != "lifetime":
				self.report(
					ErrorKind.UNSUPPORTED_PARAMETER_SHAPE,
					"generic-parameter",
					"exported functions cannot have generic type parameters",
					g.span,
				)
		if impl is None:
			return
		for g in impl.generics:
			if g.kind != "lifetime":
				self.report(
					ErrorKind.UNSUPPORTED_PARAMETER_SHAPE,
					"generic-impl",
					f"exported items cannot live in a generic impl block (type parameter `{g.name}`)",
					g.span,
				)

	def check_return_type(self, ty: TypeExpr) -> None:
		found = ty.find_impl_trait()
		if found is not None:
			self.report(
				ErrorKind.UNSUPPORTED_PARAMETER_SHAPE,
				"impl-trait-return",
				"exported functions cannot return `impl Trait`",
				found.span,
			)

	def external_name(self, rules: BindingRules, classified: ClassifiedAttributes) -> str:
		native = unraw(self.decl.name)
		if rules.forced_name is not None:
			name = rules.forced_name
		elif classified.name_override is not None:
			name = unraw(classified.name_override)
		elif rules.property_prefix is not None and native.startswith(rules.property_prefix):
			name = native[len(rules.property_prefix):]
			if not name:
				self.report(
					ErrorKind.AMBIGUOUS_PROPERTY_NAME,
					"empty-property-name",
					f"cannot derive a property name from `{native}`; name it explicitly with `{rules.label[:-1]}(name)]`",
					self.decl.name_span,
				)
				name = native
		else:
			name = native
		span = classified.name_span or self.decl.name_span
		if not name:
			self.report(ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT, "empty-name", "external name must not be empty", span)
		elif "\0" in name:
			self.report(ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT, "nul-in-name", "external name must not contain NUL", span)
		return name

	def text_signature(
		self,
		rules: BindingRules,
		request: Optional[TextSignatureRequest],
		params: Sequence[ParameterDescriptor],
	) -> Optional[str]:
		if request is None:
			return None
		if not rules.allows_text_signature:
			assert rules.text_signature_error is not None and rules.text_signature_code is not None
			self.report(ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT, rules.text_signature_code, rules.text_signature_error, request.span)
			return None
		if request.generated:
			seen_default = False
			for p in params:
				if p.role is not ParamRole.POSITIONAL:
					continue
				if p.default is not None or p.is_optional:
					seen_default = True
				elif seen_default:
					self.report(
						ErrorKind.STRUCTURAL_CONFLICT,
						"text-signature-required-after-default",
						f"cannot generate text_signature: required parameter `{p.name}` follows a parameter with a default",
						request.span,
					)
					return None
			return render_text_signature(rules, params)
		text = request.text or ""
		if not (text.startswith("(") and text.endswith(")")):
			self.report(
				ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
				"text-signature-shape",
				"text_signature must start with `(` and end with `)`",
				request.span,
			)
			return None
		return text

	def doc(self, classified: ClassifiedAttributes, external_name: str, text_signature: Optional[str]) -> str:
		doc = _render_doc(classified.doc_lines)
		if text_signature is not None:
			doc = f"{external_name}{text_signature}\n--\n\n{doc}"
		if "\0" in doc:
			self.report(ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT, "nul-in-doc", "documentation must not contain NUL", self.decl.span)
		return doc

	# --- functions ---------------------------------------------------------

	def run_fn(self) -> AssemblyResult:
		decl = self.decl
		assert isinstance(decl, FnDecl)
		classified = self.classify()
		kind = classified.binding_kind
		rules = kind.rules

		if decl.async_span is not None:
			self.report(
				ErrorKind.UNSUPPORTED_PARAMETER_SHAPE,
				"async-fn",
				"exported functions cannot be async",
				decl.async_span,
			)
		self.check_generics(decl.generics, decl.impl)
		for param in decl.params:
			if isinstance(param, TypedParam):
				found = param.type_expr.find_impl_trait()
				if found is not None:
					self.report(
						ErrorKind.UNSUPPORTED_PARAMETER_SHAPE,
						"impl-trait-argument",
						"exported functions cannot have `impl Trait` arguments",
						found.span,
					)
		return_type = decl.return_type or UNIT_TYPE
		self.check_return_type(return_type)

		self_type = None
		if decl.impl is not None and decl.impl.self_ty.kind == "path":
			self_type = decl.impl.self_ty.last_segment
		resolution = resolve_receiver(decl.params, kind, decl_span=decl.span, self_type=self_type)
		self.diags.extend(resolution.diagnostics)
		self.state = AssemblyState.RECEIVER_RESOLVED

		rest = decl.params[1:] if resolution.skip_first else decl.params
		if rules.forbids_params and rest:
			self.report(
				ErrorKind.UNSUPPORTED_PARAMETER_SHAPE,
				"classattr-arguments",
				"class attribute methods cannot take arguments",
				rest[0].span,
			)

		receiver_name = None
		if resolution.binding.kind is ReceiverKind.FALLIBLE_CONVERSION:
			first = decl.params[0]
			assert isinstance(first, TypedParam)
			receiver_name = first.name

		named: list[TypedParam] = []
		for param in rest:
			if isinstance(param, SelfParam):
				continue  # reported by the receiver resolver
			if param.pattern != "ident" or param.name is None:
				self.report(ErrorKind.UNSUPPORTED_PARAMETER_SHAPE, "unsupported-pattern", "unsupported argument", param.span)
				continue
			named.append(param)

		table, table_diags = ArgumentAttributeTable.build(
			classified.arguments,
			[p.name for p in named if p.name is not None],
			receiver_name=receiver_name,
		)
		self.diags.extend(table_diags)

		descriptors: list[ParameterDescriptor] = []
		for param in named:
			assert param.name is not None
			name = unraw(param.name)
			is_ctx = is_context_type(param.type_expr, self.options.context_types)
			if is_ctx and name in table:
				self.report(
					ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
					"context-handle-attribute",
					f"runtime context parameter `{name}` cannot take argument attributes",
					param.span,
				)
			descriptors.append(
				ParameterDescriptor(
					name=name,
					type_expr=param.type_expr,
					role=ParamRole.POSITIONAL if is_ctx else table.role_for(name),
					default=None if is_ctx else table.default_for(name),
					is_context_handle=is_ctx,
					is_optional=option_argument(param.type_expr) is not None,
					span=param.span,
				)
			)
		user_params = [d for d in descriptors if not d.is_context_handle]
		self.check_order(user_params)

		external_name = self.external_name(rules, classified)
		text_signature = self.text_signature(rules, classified.text_signature, user_params)
		doc = self.doc(classified, external_name, text_signature)

		spec = CallSpec(
			binding_kind=kind,
			receiver=resolution.binding,
			native_name=decl.name,
			external_name=external_name,
			native_parameters=tuple(descriptors),
			return_type=return_type,
			doc=doc,
			text_signature=text_signature,
			deprecations=tuple(classified.deprecations),
			span=decl.span,
		)
		return self.finish(spec)

	def check_order(self, params: Sequence[ParameterDescriptor]) -> None:
		"""
		Declaration order is the calling-convention order; nothing is reordered.

		Parameters after the variadic positional must be keyword-only, nothing
		follows the variadic keyword, and positional parameters cannot follow
		keyword-only ones.
		"""
		varargs: Optional[ParameterDescriptor] = None
		kwargs: Optional[ParameterDescriptor] = None
		keyword_only: Optional[ParameterDescriptor] = None
		for p in params:
			if kwargs is not None:
				self.report(
					ErrorKind.STRUCTURAL_CONFLICT,
					"param-after-kwargs",
					f"parameter `{p.name}` follows variadic keyword `{kwargs.name}`",
					p.span,
				)
				continue
			if p.role is ParamRole.VARIADIC_KEYWORD:
				kwargs = p
			elif p.role is ParamRole.KEYWORD_ONLY:
				keyword_only = keyword_only or p
			elif p.role is ParamRole.VARIADIC_POSITIONAL:
				if keyword_only is not None:
					self.report(
						ErrorKind.STRUCTURAL_CONFLICT,
						"varargs-after-keyword-only",
						f"variadic positional `{p.name}` follows keyword-only parameter `{keyword_only.name}`",
						p.span,
					)
				varargs = p
			elif varargs is not None:
				self.report(
					ErrorKind.STRUCTURAL_CONFLICT,
					"positional-after-varargs",
					f"parameter `{p.name}` follows variadic positional `{varargs.name}` and must be marked keyword-only",
					p.span,
				)
			elif keyword_only is not None:
				self.report(
					ErrorKind.STRUCTURAL_CONFLICT,
					"positional-after-keyword-only",
					f"positional parameter `{p.name}` follows keyword-only parameter `{keyword_only.name}`",
					p.span,
				)

	# --- constants ---------------------------------------------------------

	def run_const(self) -> AssemblyResult:
		decl = self.decl
		assert isinstance(decl, ConstDecl)
		classified = self.classify()
		kind = classified.kind
		if kind is not BindingKind.CLASS_ATTRIBUTE:
			self.report(
				ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
				"const-binding-kind",
				"constants can only be exported with #[classattr]",
				classified.kind_span or decl.name_span,
			)
		rules = BindingKind.CLASS_ATTRIBUTE.rules
		self.check_generics((), decl.impl)
		self.check_return_type(decl.type_expr)
		_, table_diags = ArgumentAttributeTable.build(classified.arguments, ())
		self.diags.extend(table_diags)
		self.state = AssemblyState.RECEIVER_RESOLVED

		external_name = self.external_name(rules, classified)
		text_signature = self.text_signature(rules, classified.text_signature, ())
		doc = self.doc(classified, external_name, text_signature)
		spec = CallSpec(
			binding_kind=BindingKind.CLASS_ATTRIBUTE,
			receiver=NO_RECEIVER,
			native_name=decl.name,
			external_name=external_name,
			native_parameters=(),
			return_type=decl.type_expr,
			doc=doc,
			deprecations=tuple(classified.deprecations),
			span=decl.span,
		)
		return self.finish(spec)


def assemble(decl: Decl, *, options: Optional[CheckerOptions] = None) -> AssemblyResult:
	"""Assemble one declaration. Never raises for user errors."""
	assembly = _Assembly(decl, options or CheckerOptions())
	if isinstance(decl, ConstDecl):
		return assembly.run_const()
	return assembly.run_fn()


def assemble_all(
	decls: Sequence[Decl],
	*,
	options: Optional[CheckerOptions] = None,
	jobs: int = 1,
	sink: Optional[DiagnosticSink] = None,
) -> list[AssemblyResult]:
	"""
	Assemble independent declarations, optionally on `jobs` worker threads.

	Results come back in input order; each declaration's diagnostics are added
	to `sink` as one batch.
	"""
	opts = options or CheckerOptions()

	def _one(decl: Decl) -> AssemblyResult:
		result = assemble(decl, options=opts)
		if sink is not None:
			sink.extend(result.diagnostics)
		return result

	if jobs <= 1 or len(decls) <= 1:
		return [_one(d) for d in decls]
	with ThreadPoolExecutor(max_workers=jobs) as pool:
		return list(pool.map(_one, decls))


__all__ = [
	"AssemblyResult",
	"AssemblyState",
	"CheckerOptions",
	"DEFAULT_CONTEXT_TYPES",
	"assemble",
	"assemble_all",
	"is_context_type",
	"is_exported",
	"option_argument",
	"render_text_signature",
]
