"""Tests for starting the service process."""

import os
import socket
import subprocess
import sys
import time

import httpx
import pytest

from election_registry.registry_api import main


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_run_passes_app_object(monkeypatch):
    import uvicorn

    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    main.run()

    assert len(calls) == 1
    app, kwargs = calls[0]
    assert app is main.app
    assert kwargs["port"] == main.settings.PORT


@pytest.mark.slow
def test_module_entry_point_serves_health():
    """Run `python -m election_registry.registry_api.main` and query it."""
    port = free_port()
    env = dict(os.environ, HOST="127.0.0.1", PORT=str(port), RABBITMQ_ENABLED="false")
    proc = subprocess.Popen(
        [sys.executable, "-m", "election_registry.registry_api.main"],
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT
    )

    try:
        deadline = time.time() + 20
        response = None
        while time.time() < deadline and proc.poll() is None:
            try:
                response = httpx.get(f"http://127.0.0.1:{port}/api/v1/health", timeout=1)
                break
            except httpx.TransportError:
                time.sleep(0.2)

        if response is None:
            proc.terminate()
            output = proc.communicate(timeout=10)[0].decode(errors="replace")
            pytest.fail(f"Service did not start:\n{output}")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
    finally:
        if proc.poll() is None:
            proc.terminate()
            proc.wait(timeout=10)
