"""
Pytest configuration and shared fixtures for proxygen tests.

This module provides reusable fixtures and test utilities used across
the test suite.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import yaml

from proxygen.logging import SilentLogger, set_global_logger


@pytest.fixture(autouse=True)
def silent_global_logger():
    """Reset the global logger so tests never depend on CLI state."""
    set_global_logger(SilentLogger())
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def sample_config() -> dict[str, Any]:
    """Provide a minimal valid configuration."""
    return {"proxyname": "myproxy", "basepath": "/v1"}


@pytest.fixture
def create_template_tree(tmp_test_dir: Path):
    """
    Factory fixture for creating template source trees.

    Usage:
        src = create_template_tree("passthrough-template", {
            "apiproxy/original.xml": "<APIProxy name='{{= proxyname }}'/>",
        })
    """

    def _create(name: str, files: dict[str, str | bytes]) -> Path:
        root = tmp_test_dir / "templates" / name
        root.mkdir(parents=True, exist_ok=True)
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        return root

    return _create


@pytest.fixture
def passthrough_tree(create_template_tree) -> Path:
    """Provide a small API proxy template tree."""
    return create_template_tree(
        "passthrough-template",
        {
            "apiproxy/original.xml": (
                '<APIProxy name="{{= proxyname }}">\n'
                "  <BasePaths>{{= basepath }}</BasePaths>\n"
                "</APIProxy>\n"
            ),
            "apiproxy/policies/p1.xml": (
                '<AssignMessage name="AM-{{= proxyname }}"/>\n'
            ),
            "apiproxy/proxies/endpoint1.xml": (
                "<ProxyEndpoint>\n"
                "  <BasePath>{{= basepath }}</BasePath>\n"
                "</ProxyEndpoint>\n"
            ),
        },
    )


@pytest.fixture
def create_config_file(tmp_test_dir: Path):
    """
    Factory fixture for creating configuration files.

    Dicts are written as JSON (or YAML for .yaml/.yml names); strings are
    written verbatim so tests can include template directives.

    Usage:
        config_path = create_config_file("config.json", {"proxyname": "x"})
    """

    def _create(filename: str, data: dict[str, Any] | str) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(data, str):
            text = data
        elif path.suffix in (".yaml", ".yml"):
            text = yaml.safe_dump(data)
        else:
            text = json.dumps(data, indent=2)
        path.write_text(text, encoding="utf-8")
        return path

    return _create
