# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Per-parameter argument attributes, keyed by parameter name.

Built once from the classifier's argument attributes and queried by the
assembler while it walks the parameter list.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence, Tuple

from callspec.core.diagnostics import Diagnostic, ErrorKind, error

from .model import ArgumentAttribute, ParamRole, VariadicKeyword, VariadicPositional, unraw

_PHASE = "assemble"
_VARIADIC = (ParamRole.VARIADIC_POSITIONAL, ParamRole.VARIADIC_KEYWORD)


def _conflict(prev: ArgumentAttribute, attr: ArgumentAttribute) -> Diagnostic:
	roles = {prev.role, attr.role}
	name = attr.name
	notes = [f"first attribute for `{name}` is here: {prev.span.short()}"]
	if roles == set(_VARIADIC):
		return error(
			ErrorKind.ATTRIBUTE_CONFLICT,
			"variadic-conflict",
			f"`{name}` cannot be both variadic positional and variadic keyword",
			attr.span,
			phase=_PHASE,
			notes=notes,
		)
	if roles & set(_VARIADIC) and (prev.default is not None or attr.default is not None):
		return error(
			ErrorKind.ILLEGAL_ATTRIBUTE_PLACEMENT,
			"default-on-variadic",
			f"default value not allowed on variadic parameter `{name}`",
			attr.span,
			phase=_PHASE,
			notes=notes,
		)
	return error(
		ErrorKind.ATTRIBUTE_CONFLICT,
		"duplicate-argument-attribute",
		f"argument `{name}` has conflicting attributes",
		attr.span,
		phase=_PHASE,
		notes=notes,
	)


class ArgumentAttributeTable:
	"""Read-only name -> ArgumentAttribute lookup."""

	def __init__(self, by_name: Mapping[str, ArgumentAttribute]) -> None:
		self._by_name = dict(by_name)

	@classmethod
	def build(
		cls,
		attributes: Iterable[ArgumentAttribute],
		param_names: Sequence[str],
		*,
		receiver_name: Optional[str] = None,
	) -> Tuple["ArgumentAttributeTable", list[Diagnostic]]:
		"""
		Index `attributes` by parameter name.

		The first attribute for a name wins; later ones are reported as
		conflicts. Names not in `param_names` (including the receiver's) are
		reported as unknown and dropped.
		"""
		known = {unraw(n) for n in param_names}
		receiver = unraw(receiver_name) if receiver_name else None
		by_name: dict[str, ArgumentAttribute] = {}
		diags: list[Diagnostic] = []
		for attr in attributes:
			name = unraw(attr.name)
			if name not in known:
				notes = [f"`{name}` is the receiver"] if name == receiver else []
				diags.append(
					error(
						ErrorKind.UNKNOWN_PARAMETER,
						"unknown-parameter",
						f"argument attribute names unknown parameter `{name}`",
						attr.span,
						phase=_PHASE,
						notes=notes,
					)
				)
				continue
			prev = by_name.get(name)
			if prev is not None:
				diags.append(_conflict(prev, attr))
				continue
			by_name[name] = attr
		return cls(by_name), diags

	def get(self, name: str) -> Optional[ArgumentAttribute]:
		return self._by_name.get(unraw(name))

	def __contains__(self, name: object) -> bool:
		return isinstance(name, str) and unraw(name) in self._by_name

	def __len__(self) -> int:
		return len(self._by_name)

	def is_variadic_positional(self, name: str) -> bool:
		return isinstance(self.get(name), VariadicPositional)

	def is_variadic_keyword(self, name: str) -> bool:
		return isinstance(self.get(name), VariadicKeyword)

	def is_keyword_only(self, name: str) -> bool:
		attr = self.get(name)
		return attr is not None and attr.role is ParamRole.KEYWORD_ONLY

	def default_for(self, name: str) -> Optional[str]:
		attr = self.get(name)
		return attr.default if attr is not None else None

	def role_for(self, name: str) -> ParamRole:
		attr = self.get(name)
		return attr.role if attr is not None else ParamRole.POSITIONAL


__all__ = ["ArgumentAttributeTable"]
