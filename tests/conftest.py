"""Shared fixtures for the aw-client tests."""

import asyncio

import pytest

ENV_VARS = ("AW_SERVER_URL", "AW_TESTING", "AW_CLIENT_TIMEOUT", "AW_LOG_LEVEL", "AW_LOG_FILE")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of configuration tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class FakeTransport:
    """In-memory stand-in for HTTPTransport.

    Responses are registered per (method, path). A registered exception is
    raised, a callable is invoked with (params, body), anything else is
    returned as the decoded JSON body.
    """

    def __init__(self, delay: float = 0.0):
        self.calls = []
        self.log = []
        self.responses = {}
        self.delay = delay

    def respond(self, method, path, response):
        self.responses[(method, path)] = response

    async def request(self, method, path, params=None, body=None):
        self.calls.append((method, path, params, body))
        self.log.append(("start", method, path))
        try:
            await asyncio.sleep(self.delay)
            response = self.responses.get((method, path))
            if isinstance(response, Exception):
                raise response
            if callable(response):
                return response(params, body)
            return response
        finally:
            self.log.append(("end", method, path))

    async def get(self, path, params=None):
        return await self.request("GET", path, params=params)

    async def post(self, path, body=None, params=None):
        return await self.request("POST", path, params=params, body=body)

    async def delete(self, path, params=None):
        return await self.request("DELETE", path, params=params)

    def get_stats(self):
        return {"total_requests": len(self.calls)}


@pytest.fixture
def transport():
    return FakeTransport()
