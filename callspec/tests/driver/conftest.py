# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
import pytest


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch) -> None:
	"""
	Driver tests run in an empty working directory so a `callspec.json` lying
	around the checkout is never picked up implicitly.
	"""
	monkeypatch.chdir(tmp_path)
