# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Command-line driver for the callspec compiler."""

from .callspecc import main
from .config import DriverConfig, load_config_json

__all__ = ["DriverConfig", "load_config_json", "main"]
