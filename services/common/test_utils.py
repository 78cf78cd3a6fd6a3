"""
Common test utilities for Huddle service tests.

The meetings service talks to no external HTTP APIs; the conferencing
provider is referenced only by channel name. Tests still install rakes so any
accidental outbound call fails loudly instead of reaching the network.
"""

from typing import List
from unittest.mock import patch

from fastapi import FastAPI
from fastapi.testclient import TestClient


def _rake(target: str):
    return patch(
        target,
        side_effect=AssertionError(f"Real network call detected! {target} was called"),
    )


class BaseSelectiveHTTPIntegrationTest:
    """Blocks outbound network access while leaving ``TestClient`` usable."""

    # TestClient drives the ASGI app in-process and never opens a socket
    blocked_targets: List[str] = [
        "httpx.AsyncClient._send_single_request",
        "urllib.request.urlopen",
        "socket.create_connection",
    ]

    def setup_method(self, method):
        self.http_patches = [_rake(target) for target in self.blocked_targets]
        for http_patch in self.http_patches:
            http_patch.start()

    def teardown_method(self, method):
        for http_patch in self.http_patches:
            http_patch.stop()

    def create_test_client(self, app: FastAPI) -> TestClient:
        return TestClient(app)
