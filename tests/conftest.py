from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import Mock, patch

import pytest

from arelay.context import build_context
from arelay.core.config import ClientConfig

if TYPE_CHECKING:
    from collections.abc import Generator

    from arelay.context import RequestContext


@pytest.fixture
def mock_asleep() -> Generator[Mock, None, None]:
    """Patch asyncio.sleep to make tests run faster."""
    with patch("asyncio.sleep", return_value=None) as mock:
        yield mock


@pytest.fixture
def ctx() -> RequestContext:
    """Create a GET request context with the default options."""
    return build_context("GET", "https://api.example.com/data", ClientConfig().resolve())


@pytest.fixture
def mock_callback() -> Mock:
    """Create a mock callback function for testing observers."""
    return Mock()
