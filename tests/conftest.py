"""Test configuration and shared fakes for the license panel."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable, Mapping
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from license_panel.config import RestoreTimings, Settings  # noqa: E402
from license_panel.restore.engine import RestoreEngine  # noqa: E402
from license_panel.restore.state import RestoreJobState  # noqa: E402
from license_panel.upstream.client import UpstreamOperation, UpstreamResult  # noqa: E402


class ScriptedUpstream:
  """In-memory upstream that replays scripted outcomes per operation and records every call."""

  def __init__(self) -> None:
    self.calls: list[tuple[str, dict[str, str]]] = []
    self.default = UpstreamResult(success=True, message="OK", payload={"success": True, "message": "OK"})
    self.on_call: Callable[[str, dict[str, str]], None] | None = None
    self.gate: asyncio.Event | None = None
    self._scripts: dict[str, list[UpstreamResult | Exception]] = {}

  def script(self, operation: UpstreamOperation | str, *outcomes: UpstreamResult | Exception) -> None:
    name = operation.value if isinstance(operation, UpstreamOperation) else operation
    self._scripts.setdefault(name, []).extend(outcomes)

  def calls_for(self, operation: UpstreamOperation | str) -> list[dict[str, str]]:
    name = operation.value if isinstance(operation, UpstreamOperation) else operation
    return [params for called, params in self.calls if called == name]

  async def invoke(self, operation: UpstreamOperation | str, parameters: Mapping[str, str] | None = None) -> UpstreamResult:
    name = operation.value if isinstance(operation, UpstreamOperation) else operation
    params = dict(parameters or {})
    self.calls.append((name, params))
    if self.on_call is not None:
      self.on_call(name, params)
    if self.gate is not None:
      await self.gate.wait()

    queue = self._scripts.get(name)
    outcome = queue.pop(0) if queue else self.default
    if isinstance(outcome, Exception):
      raise outcome
    return outcome


class SleepRecorder:
  """Sleep replacement that records requested delays and only yields to the loop."""

  def __init__(self) -> None:
    self.delays: list[float] = []

  async def __call__(self, seconds: float) -> None:
    self.delays.append(seconds)
    await asyncio.sleep(0)

  def count(self, seconds: float) -> int:
    return sum(1 for delay in self.delays if delay == seconds)


# Force anyio to use asyncio
@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def upstream() -> ScriptedUpstream:
  return ScriptedUpstream()


@pytest.fixture
def sleeper() -> SleepRecorder:
  return SleepRecorder()


@pytest.fixture
def restore_state() -> RestoreJobState:
  return RestoreJobState()


@pytest.fixture
def timings() -> RestoreTimings:
  return RestoreTimings()


@pytest.fixture
def settings() -> Settings:
  """Deterministic settings that ignore the process environment."""
  return Settings(
    environment="test",
    debug=False,
    allowed_origins=("http://localhost:3000",),
    log_dir="./logs",
    log_max_bytes=1024,
    log_backup_count=1,
    log_http_4xx=False,
    log_http_bodies=False,
    log_http_body_bytes=2048,
    upstream_url="https://upstream.test/api/seller/",
    upstream_timeout_seconds=5.0,
    seller_key=None,
    config_backend_url=None,
    app_name="Soryn",
    app_version="1.0",
    app_secret_salt=None,
    app_build_date=None,
    key_prefix="Soryn",
    default_mask="Soryn-XXXXX-XXXXX",
    restore=RestoreTimings(),
  )


@pytest.fixture
def engine(upstream: ScriptedUpstream, restore_state: RestoreJobState, timings: RestoreTimings, sleeper: SleepRecorder) -> RestoreEngine:
  return RestoreEngine(client=upstream, state=restore_state, timings=timings, sleep=sleeper)


@pytest.fixture
async def async_client(upstream: ScriptedUpstream, restore_state: RestoreJobState, engine: RestoreEngine):
  """HTTP client against the app with panel components wired to in-memory fakes."""
  from license_panel.main import app

  app.state.upstream_client = upstream
  app.state.restore_state = restore_state
  app.state.restore_engine = engine
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
  await engine.shutdown()
  app.state.upstream_client = None
  app.state.restore_state = None
  app.state.restore_engine = None
  app.dependency_overrides.clear()
