# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
CallSpec: the validated description of how to invoke one declaration.

A CallSpec is the only artifact handed to the downstream trampoline emitter.
It is frozen; nothing mutates it after assembly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from callspec.core.span import Span
from callspec.parser.ast import TypeExpr

from .model import BindingKind, ParamRole, ReceiverBinding


@dataclass(frozen=True)
class ParameterDescriptor:
	name: str
	type_expr: TypeExpr
	role: ParamRole = ParamRole.POSITIONAL
	default: Optional[str] = None  # unparsed source text
	is_context_handle: bool = False
	is_optional: bool = False  # declared as `Option<T>`
	span: Span = field(default_factory=Span)

	def to_json(self) -> dict[str, Any]:
		return {
			"name": self.name,
			"type": self.type_expr.render(),
			"role": self.role.value,
			"default": self.default,
			"context_handle": self.is_context_handle,
			"optional": self.is_optional,
		}


@dataclass(frozen=True)
class CallSpec:
	binding_kind: BindingKind
	receiver: ReceiverBinding
	native_name: str
	external_name: str
	# Every non-receiver parameter in declaration order, context handles included.
	native_parameters: Tuple[ParameterDescriptor, ...]
	return_type: TypeExpr
	doc: str = ""
	text_signature: Optional[str] = None
	deprecations: Tuple[str, ...] = ()
	span: Span = field(default_factory=Span)

	@property
	def parameters(self) -> Tuple[ParameterDescriptor, ...]:
		"""Parameters of the dynamic calling convention (context handles excluded)."""
		return tuple(p for p in self.native_parameters if not p.is_context_handle)

	@property
	def context_parameters(self) -> Tuple[ParameterDescriptor, ...]:
		return tuple(p for p in self.native_parameters if p.is_context_handle)

	@property
	def varargs(self) -> Optional[ParameterDescriptor]:
		return next((p for p in self.parameters if p.role is ParamRole.VARIADIC_POSITIONAL), None)

	@property
	def kwargs(self) -> Optional[ParameterDescriptor]:
		return next((p for p in self.parameters if p.role is ParamRole.VARIADIC_KEYWORD), None)

	def null_terminated_name(self) -> str:
		return f"{self.external_name}\0"

	def null_terminated_doc(self) -> str:
		return f"{self.doc}\0"

	def to_json(self) -> dict[str, Any]:
		return {
			"binding_kind": self.binding_kind.value,
			"receiver": self.receiver.kind.value,
			"native_name": self.native_name,
			"external_name": self.external_name,
			"parameters": [p.to_json() for p in self.native_parameters],
			"return_type": self.return_type.render(),
			"doc": self.doc,
			"text_signature": self.text_signature,
			"deprecations": list(self.deprecations),
			"file": self.span.file,
			"line": self.span.line,
		}


__all__ = ["CallSpec", "ParameterDescriptor"]
