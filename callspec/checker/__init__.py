# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Signature checker: attribute classification, receiver resolution, argument
attribute lookup and CallSpec assembly.
"""

from .arg_attrs import ArgumentAttributeTable
from .assembler import (
	AssemblyResult,
	AssemblyState,
	CheckerOptions,
	assemble,
	assemble_all,
	is_exported,
	render_text_signature,
)
from .attributes import ClassifiedAttributes, TextSignatureRequest, classify_attributes
from .callspec import CallSpec, ParameterDescriptor
from .model import (
	ArgumentAttribute,
	BindingKind,
	KeywordOnly,
	ParamRole,
	PositionalDefault,
	ReceiverBinding,
	ReceiverKind,
	VariadicKeyword,
	VariadicPositional,
)
from .receiver import ReceiverResolution, resolve_receiver

__all__ = [
	"ArgumentAttribute",
	"ArgumentAttributeTable",
	"AssemblyResult",
	"AssemblyState",
	"BindingKind",
	"CallSpec",
	"CheckerOptions",
	"ClassifiedAttributes",
	"KeywordOnly",
	"ParamRole",
	"ParameterDescriptor",
	"PositionalDefault",
	"ReceiverBinding",
	"ReceiverKind",
	"ReceiverResolution",
	"TextSignatureRequest",
	"VariadicKeyword",
	"VariadicPositional",
	"assemble",
	"assemble_all",
	"classify_attributes",
	"is_exported",
	"render_text_signature",
	"resolve_receiver",
]
