# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Closed vocabularies shared by the checker stages.

Binding-kind specific behavior lives in one rule table (`BindingRules`) so the
stages consult it uniformly instead of branching on individual kinds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Union

from callspec.core.span import Span


class BindingKind(Enum):
	"""Dispatch role of a declaration in the dynamic runtime."""

	PLAIN = "plain"
	CONSTRUCTOR = "constructor"
	CALL_OPERATOR = "call"
	CLASS_METHOD = "classmethod"
	STATIC_METHOD = "staticmethod"
	CLASS_ATTRIBUTE = "classattr"
	GETTER = "getter"
	SETTER = "setter"

	@property
	def rules(self) -> "BindingRules":
		return BINDING_RULES[self]


class ReceiverPolicy(Enum):
	REQUIRED = auto()
	FORBIDDEN = auto()
	# The first parameter receives the class object; it is skipped but is not a receiver.
	CLASS_OBJECT = auto()


@dataclass(frozen=True)
class BindingRules:
	label: str
	receiver: ReceiverPolicy
	forbids_params: bool = False
	forbids_name_override: bool = False
	forced_name: Optional[str] = None
	allows_text_signature: bool = False
	text_signature_error: Optional[str] = None
	text_signature_code: Optional[str] = None
	property_prefix: Optional[str] = None
	missing_receiver_message: Optional[str] = None
	# Leading pseudo-parameter of a generated text signature.
	signature_self: Optional[str] = None


BINDING_RULES: dict[BindingKind, BindingRules] = {
	BindingKind.PLAIN: BindingRules(
		label="method",
		receiver=ReceiverPolicy.REQUIRED,
		allows_text_signature=True,
		missing_receiver_message="static method needs #[staticmethod] attribute",
		signature_self="$self",
	),
	BindingKind.CONSTRUCTOR: BindingRules(
		label="#[new]",
		receiver=ReceiverPolicy.FORBIDDEN,
		forbids_name_override=True,
		forced_name="__new__",
		text_signature_error=(
			"text_signature not allowed on __new__; if you want to add a signature on "
			"__new__, put it on the class definition instead"
		),
		text_signature_code="text-signature-on-constructor",
	),
	BindingKind.CALL_OPERATOR: BindingRules(
		label="#[call]",
		receiver=ReceiverPolicy.REQUIRED,
		forbids_name_override=True,
		forced_name="__call__",
		text_signature_error="text_signature not allowed with #[call]",
		text_signature_code="text-signature-on-call",
		missing_receiver_message="expected receiver for #[call]",
	),
	BindingKind.CLASS_METHOD: BindingRules(
		label="#[classmethod]",
		receiver=ReceiverPolicy.CLASS_OBJECT,
		allows_text_signature=True,
		missing_receiver_message="expected class object parameter for #[classmethod]",
		signature_self="$cls",
	),
	BindingKind.STATIC_METHOD: BindingRules(
		label="#[staticmethod]",
		receiver=ReceiverPolicy.FORBIDDEN,
		allows_text_signature=True,
	),
	BindingKind.CLASS_ATTRIBUTE: BindingRules(
		label="#[classattr]",
		receiver=ReceiverPolicy.FORBIDDEN,
		forbids_params=True,
		text_signature_error="text_signature not allowed with #[classattr]",
		text_signature_code="text-signature-on-classattr",
	),
	BindingKind.GETTER: BindingRules(
		label="#[getter]",
		receiver=ReceiverPolicy.REQUIRED,
		text_signature_error="text_signature not allowed with #[getter]",
		text_signature_code="text-signature-on-getter",
		property_prefix="get_",
		missing_receiver_message="expected receiver for #[getter]",
	),
	BindingKind.SETTER: BindingRules(
		label="#[setter]",
		receiver=ReceiverPolicy.REQUIRED,
		text_signature_error="text_signature not allowed with #[setter]",
		text_signature_code="text-signature-on-setter",
		property_prefix="set_",
		missing_receiver_message="expected receiver for #[setter]",
	),
}


class ReceiverKind(Enum):
	NONE = "none"
	IMMUTABLE_BORROW = "immutable_borrow"
	MUTABLE_BORROW = "mutable_borrow"
	FALLIBLE_CONVERSION = "fallible_conversion"


@dataclass(frozen=True)
class ReceiverBinding:
	"""
	How the receiver object reaches the native declaration.

	For FALLIBLE_CONVERSION `span` points at the declared receiver type the
	wrapper object is converted into.
	"""

	kind: ReceiverKind = ReceiverKind.NONE
	span: Optional[Span] = None

	@property
	def present(self) -> bool:
		return self.kind is not ReceiverKind.NONE


NO_RECEIVER = ReceiverBinding()


class ParamRole(Enum):
	POSITIONAL = "positional"
	KEYWORD_ONLY = "keyword_only"
	VARIADIC_POSITIONAL = "variadic_positional"
	VARIADIC_KEYWORD = "variadic_keyword"


@dataclass(frozen=True)
class PositionalDefault:
	name: str
	default: Optional[str] = None
	span: Span = field(default_factory=Span)

	role = ParamRole.POSITIONAL


@dataclass(frozen=True)
class KeywordOnly:
	name: str
	default: Optional[str] = None
	span: Span = field(default_factory=Span)

	role = ParamRole.KEYWORD_ONLY


@dataclass(frozen=True)
class VariadicPositional:
	name: str
	span: Span = field(default_factory=Span)

	role = ParamRole.VARIADIC_POSITIONAL
	default = None


@dataclass(frozen=True)
class VariadicKeyword:
	name: str
	span: Span = field(default_factory=Span)

	role = ParamRole.VARIADIC_KEYWORD
	default = None


ArgumentAttribute = Union[PositionalDefault, KeywordOnly, VariadicPositional, VariadicKeyword]


def unraw(name: str) -> str:
	"""Strip raw-identifier escaping (`r#type` -> `type`)."""
	return name[2:] if name.startswith("r#") else name


__all__ = [
	"ArgumentAttribute",
	"BINDING_RULES",
	"BindingKind",
	"BindingRules",
	"KeywordOnly",
	"NO_RECEIVER",
	"ParamRole",
	"PositionalDefault",
	"ReceiverBinding",
	"ReceiverKind",
	"ReceiverPolicy",
	"VariadicKeyword",
	"VariadicPositional",
	"unraw",
]
