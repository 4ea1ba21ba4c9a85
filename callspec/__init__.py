# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
callspec: signature analysis for native declarations exposed to a dynamic runtime.

The core (`callspec.checker`) turns one annotated declaration into a validated
`CallSpec` or a set of diagnostics. `callspec.parser` is the declaration
front-end and `callspec.driver` is the command-line entrypoint.
"""

__version__ = "0.1.0"
