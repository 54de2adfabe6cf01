"""Tests for the distribution metadata in pyproject.toml."""

from __future__ import annotations

import importlib
import re
from pathlib import Path

import click

PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def project_value(name):
    match = re.search(rf'^{name}\s*=\s*"([^"]*)"', PYPROJECT.read_text(), re.MULTILINE)
    return match.group(1) if match else None


def test_package_description_is_not_the_design_notes():
    assert project_value("readme") is None
    assert project_value("description")


def test_console_script_points_at_the_click_group():
    target = project_value("cloud-security-scanner")
    module_name, attr = target.split(":")

    entry_point = getattr(importlib.import_module(module_name), attr)

    assert isinstance(entry_point, click.Group)
    assert {"scan", "list-checks"} <= set(entry_point.commands)
