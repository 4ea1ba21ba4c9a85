# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Driver configuration.

Configuration comes from an optional JSON file (`--config`, or `callspec.json`
in the working directory) and is then overridden by command-line flags.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, Optional

from callspec.checker.assembler import DEFAULT_CONTEXT_TYPES, CheckerOptions

CONFIG_FORMAT = "callspec-config"
CONFIG_VERSION = 0
DEFAULT_CONFIG_NAME = "callspec.json"


@dataclass(frozen=True)
class DriverConfig:
	context_types: frozenset[str] = DEFAULT_CONTEXT_TYPES
	jobs: int = 1

	def checker_options(self) -> CheckerOptions:
		return CheckerOptions(context_types=self.context_types)

	def with_overrides(self, *, context_types: Optional[Iterable[str]] = None, jobs: Optional[int] = None) -> "DriverConfig":
		cfg = self
		if context_types:
			cfg = replace(cfg, context_types=cfg.context_types | frozenset(context_types))
		if jobs is not None:
			if jobs < 1:
				raise ValueError("jobs must be at least 1")
			cfg = replace(cfg, jobs=jobs)
		return cfg


def load_config_json(path: Path) -> DriverConfig:
	"""
	Load a configuration file.

	Format (JSON):
	{
	  "format": "callspec-config",
	  "version": 0,
	  "context_types": ["Python", "..."],   // optional, replaces the default set
	  "jobs": 4                             // optional
	}
	"""
	obj = json.loads(path.read_text(encoding="utf-8"))
	if not isinstance(obj, dict):
		raise ValueError("config must be a JSON object")
	if obj.get("format") != CONFIG_FORMAT or obj.get("version") != CONFIG_VERSION:
		raise ValueError("unsupported config format/version")

	cfg = DriverConfig()
	ctx = obj.get("context_types")
	if ctx is not None:
		if not isinstance(ctx, list) or not all(isinstance(t, str) and t for t in ctx):
			raise ValueError("config context_types must be a list of non-empty strings")
		cfg = replace(cfg, context_types=frozenset(ctx))
	jobs = obj.get("jobs")
	if jobs is not None:
		if not isinstance(jobs, int) or isinstance(jobs, bool) or jobs < 1:
			raise ValueError("config jobs must be a positive integer")
		cfg = replace(cfg, jobs=jobs)
	return cfg


def find_config(explicit: Optional[Path], cwd: Optional[Path] = None) -> Optional[Path]:
	"""An explicit path is returned as-is; otherwise `callspec.json` if present."""
	if explicit is not None:
		return explicit
	candidate = (cwd or Path.cwd()) / DEFAULT_CONFIG_NAME
	return candidate if candidate.exists() else None


__all__ = ["CONFIG_FORMAT", "DriverConfig", "find_config", "load_config_json"]
