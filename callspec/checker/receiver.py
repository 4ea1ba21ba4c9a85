# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Receiver resolution.

Decides how (or whether) the receiver object is bound, based on the first
declared parameter and the binding kind's receiver policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from callspec.core.diagnostics import Diagnostic, ErrorKind, error
from callspec.core.span import Span
from callspec.parser.ast import Param, SelfParam, TypedParam

from .model import NO_RECEIVER, BindingKind, ReceiverBinding, ReceiverKind, ReceiverPolicy

_PHASE = "assemble"


@dataclass(frozen=True)
class ReceiverResolution:
	binding: ReceiverBinding
	# True when the first declared parameter is consumed (receiver or class object).
	skip_first: bool
	diagnostics: tuple[Diagnostic, ...] = ()


def is_receiver_shaped(param: Param, self_type: Optional[str] = None) -> bool:
	"""
	`self` shorthand, or a typed parameter whose type mentions `Self` or the
	enclosing impl's type name (`slf: PyRef<Counter>` inside `impl Counter`).
	"""
	if isinstance(param, SelfParam):
		return True
	return param.type_expr.mentions_self(self_type)


def _bind(param: Param) -> ReceiverBinding:
	if isinstance(param, SelfParam):
		kind = ReceiverKind.MUTABLE_BORROW if param.mutable else ReceiverKind.IMMUTABLE_BORROW
		return ReceiverBinding(kind=kind)
	assert isinstance(param, TypedParam)
	return ReceiverBinding(kind=ReceiverKind.FALLIBLE_CONVERSION, span=param.type_expr.span)


def resolve_receiver(
	params: Sequence[Param],
	kind: BindingKind,
	*,
	decl_span: Span | None = None,
	self_type: Optional[str] = None,
) -> ReceiverResolution:
	rules = kind.rules
	diags: list[Diagnostic] = []
	for param in params[1:]:
		if isinstance(param, SelfParam):
			diags.append(
				error(ErrorKind.UNSUPPORTED_PARAMETER_SHAPE, "unexpected-receiver", "unexpected receiver", param.span, phase=_PHASE)
			)
	first = params[0] if params else None

	if rules.receiver is ReceiverPolicy.REQUIRED:
		if first is None or not is_receiver_shaped(first, self_type):
			assert rules.missing_receiver_message is not None
			span = first.span if first is not None else decl_span
			diags.append(error(ErrorKind.MISSING_RECEIVER, "missing-receiver", rules.missing_receiver_message, span, phase=_PHASE))
			return ReceiverResolution(NO_RECEIVER, skip_first=False, diagnostics=tuple(diags))
		return ReceiverResolution(_bind(first), skip_first=True, diagnostics=tuple(diags))

	if rules.receiver is ReceiverPolicy.CLASS_OBJECT:
		if first is None:
			assert rules.missing_receiver_message is not None
			diags.append(
				error(ErrorKind.MISSING_RECEIVER, "missing-class-parameter", rules.missing_receiver_message, decl_span, phase=_PHASE)
			)
			return ReceiverResolution(NO_RECEIVER, skip_first=False, diagnostics=tuple(diags))
		if isinstance(first, SelfParam):
			diags.append(
				error(
					ErrorKind.UNSUPPORTED_PARAMETER_SHAPE,
					"receiver-not-allowed",
					f"receiver not allowed for {rules.label}",
					first.span,
					phase=_PHASE,
				)
			)
		return ReceiverResolution(NO_RECEIVER, skip_first=True, diagnostics=tuple(diags))

	# Receiver forbidden: only the `self` shorthand is a receiver here; typed
	# parameters (even `Self`-typed ones) are ordinary arguments.
	if isinstance(first, SelfParam):
		diags.append(
			error(
				ErrorKind.UNSUPPORTED_PARAMETER_SHAPE,
				"receiver-not-allowed",
				f"receiver not allowed for {rules.label}",
				first.span,
				phase=_PHASE,
			)
		)
		return ReceiverResolution(NO_RECEIVER, skip_first=True, diagnostics=tuple(diags))
	return ReceiverResolution(NO_RECEIVER, skip_first=False, diagnostics=tuple(diags))


__all__ = ["ReceiverResolution", "is_receiver_shaped", "resolve_receiver"]
