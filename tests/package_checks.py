from __future__ import annotations

import asyncio
import logging
import sys

import arelay

logger: logging.Logger = logging.getLogger(__name__)

# Use httpbin.org for real HTTP testing
HTTPBIN_URL = "https://httpbin.org"


async def check_get() -> None:
    logger.info("Checking get...")
    response = await arelay.get_async(f"{HTTPBIN_URL}/get", params={"check": "get"})
    assert response.status_code == 200
    assert response.body["args"] == {"check": "get"}


async def check_post() -> None:
    logger.info("Checking post...")
    response = await arelay.post_async(f"{HTTPBIN_URL}/post", body={"key": "value"})
    assert response.status_code == 200
    assert response.body["json"] == {"key": "value"}


async def check_redirect() -> None:
    logger.info("Checking redirect...")
    async with arelay.AsyncRelayClient(max_redirects=3) as client:
        response = await client.get(f"{HTTPBIN_URL}/redirect/2")
    assert response.status_code == 200
    assert response.redirects == 2


async def check_http_error() -> None:
    logger.info("Checking http error...")
    try:
        await arelay.get_async(f"{HTTPBIN_URL}/status/404")
    except arelay.HTTPError as exc:
        assert exc.status_code == 404
    else:
        msg = "Expected HTTPError for status 404"
        raise AssertionError(msg)


async def run_checks() -> None:
    await check_get()
    await check_post()
    await check_redirect()
    await check_http_error()


def main() -> None:
    r"""Run all package checks to validate installation and
    functionality."""
    try:
        asyncio.run(run_checks())
        logger.info("✅ All package checks passed successfully!")
    except Exception:
        logger.exception("❌ Package check failed")
        sys.exit(1)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
