r"""Unit tests for package initialization and metadata."""

from __future__ import annotations

import pytest

import arelay


def test_package_version_is_string() -> None:
    """Test that __version__ is a string."""
    assert isinstance(arelay.__version__, str)


def test_package_version_format() -> None:
    assert "." in arelay.__version__


def test_all_exports_defined() -> None:
    """Test that all items in __all__ are defined in the module."""
    for name in arelay.__all__:
        assert hasattr(arelay, name), f"{name} is in __all__ but not defined in module"


@pytest.mark.parametrize(
    "func_name",
    [
        "request_async",
        "get_async",
        "post_async",
        "put_async",
        "delete_async",
        "head_async",
        "patch_async",
        "options_async",
    ],
)
def test_request_functions_are_callable(func_name: str) -> None:
    assert callable(getattr(arelay, func_name))


@pytest.mark.parametrize(
    "name",
    [
        "ConfigurationError",
        "HTTPError",
        "MiddlewareContractError",
        "RequestTimeoutError",
        "TransportError",
        "UnsupportedBodyError",
    ],
)
def test_exceptions_share_base_class(name: str) -> None:
    assert issubclass(getattr(arelay, name), arelay.ArelayError)
