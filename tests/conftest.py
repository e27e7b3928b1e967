"""Pytest configuration and fixtures for Stencil tests."""

import pytest

from stencil import DictLoader, Environment


@pytest.fixture
def env():
    """Create a basic Stencil Environment."""
    return Environment()


@pytest.fixture
def errors():
    """List collecting recovered condition failures."""
    return []


@pytest.fixture
def env_collecting(errors):
    """Environment whose condition failures are appended to ``errors``."""
    return Environment(on_expression_error=errors.append)


@pytest.fixture
def templates():
    """Template sources shared by the loader-backed fixtures."""
    return {
        "base.html": (
            "<html>"
            "<head><title>{@block title}Default{/@block}</title></head>"
            "<body>{@block body}{/@block}</body>"
            "</html>"
        ),
        "child.html": "{@extends base.html}{@block body}Hello {{name}}{/@block}",
        "titled.html": "{@extends base.html}{@block title}Child{/@block}",
        "appended.html": "{@extends base.html}{@block title}{@parent} | Page{/@block}",
        "partial.html": "<p>{{name}}</p>",
        "page.html": "<main>{@include partial.html}</main>",
    }


@pytest.fixture
def env_with_loader(templates):
    """Create a Stencil Environment with DictLoader and test templates."""
    return Environment(loader=DictLoader(templates))


def assert_template_equal(template_result: str, expected: str) -> None:
    """Assert template result equals expected, normalizing whitespace.

    Args:
        template_result: The actual template rendering result.
        expected: The expected output.
    """
    actual_normalized = " ".join(template_result.split())
    expected_normalized = " ".join(expected.split())
    assert actual_normalized == expected_normalized, (
        f"Template output mismatch:\n"
        f"  Actual: {actual_normalized!r}\n"
        f"  Expected: {expected_normalized!r}"
    )
