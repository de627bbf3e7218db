from __future__ import annotations

import pytest

from license_panel.core.errors import UpstreamRejection
from license_panel.services import licenses as services
from license_panel.upstream.client import UpstreamOperation, UpstreamResult


def reply(success: bool, message: str = "", **payload) -> UpstreamResult:
  return UpstreamResult(success=success, message=message or None, payload={"success": success, "message": message, **payload})


@pytest.mark.anyio
async def test_list_licenses_and_users(upstream) -> None:
  upstream.script(UpstreamOperation.FETCH_ALL_KEYS, reply(True, keys=[{"key": "Soryn-A", "status": "Used"}]))
  upstream.script(UpstreamOperation.FETCH_ALL_USERS, reply(True, users=[{"username": "Soryn-A"}]))

  assert await services.list_licenses(upstream) == [{"key": "Soryn-A", "status": "Used"}]
  assert await services.list_users(upstream) == [{"username": "Soryn-A"}]


@pytest.mark.anyio
async def test_list_licenses_without_field_is_empty(upstream) -> None:
  assert await services.list_licenses(upstream) == []


@pytest.mark.anyio
async def test_list_licenses_rejection_raises(upstream) -> None:
  upstream.script(UpstreamOperation.FETCH_ALL_KEYS, reply(False, "Seller key is invalid"))
  with pytest.raises(UpstreamRejection) as excinfo:
    await services.list_licenses(upstream)
  assert excinfo.value.message == "Seller key is invalid"


@pytest.mark.anyio
async def test_generate_licenses_sends_mask_and_owner(upstream) -> None:
  upstream.script(UpstreamOperation.ADD_KEY, reply(True, keys=["Soryn-11111-22222", "Soryn-33333-44444"]))

  keys = await services.generate_licenses(upstream, amount=2, duration=86400, level=3, mask="Soryn-XXXXX-XXXXX", owner="Soryn")

  assert keys == ["Soryn-11111-22222", "Soryn-33333-44444"]
  assert upstream.calls_for(UpstreamOperation.ADD_KEY) == [{"expiry": "86400", "mask": "Soryn-XXXXX-XXXXX", "level": "3", "amount": "2", "owner": "Soryn"}]


@pytest.mark.anyio
async def test_generate_single_key_reply(upstream) -> None:
  upstream.script(UpstreamOperation.ADD_KEY, reply(True, key="Soryn-ONLY-ONE"))
  assert await services.generate_licenses(upstream, amount=1, duration=60, level=1, mask="Soryn-X", owner="Soryn") == ["Soryn-ONLY-ONE"]


@pytest.mark.anyio
@pytest.mark.parametrize(
  ("scope", "operations"),
  [("licenses", ["delallkeys"]), ("unused", ["delunusedkeys"]), ("used", ["delusedkeys"]), ("users", ["delallusers"]), ("full", ["delallkeys", "delallusers"])],
)
async def test_wipe_scopes(upstream, scope, operations) -> None:
  result = await services.wipe(upstream, scope)
  assert result.success is True
  assert [name for name, _ in upstream.calls] == operations


@pytest.mark.anyio
async def test_full_wipe_reports_completion(upstream) -> None:
  result = await services.wipe(upstream, "full")
  assert result.message == "Full wipe complete"


@pytest.mark.anyio
async def test_full_wipe_stops_at_first_failure(upstream) -> None:
  upstream.script(UpstreamOperation.DELETE_ALL_KEYS, reply(False, "No keys found"))
  result = await services.wipe(upstream, "full")

  assert result.success is False
  assert result.message == "No keys found"
  assert [name for name, _ in upstream.calls] == ["delallkeys"]


@pytest.mark.anyio
async def test_unknown_wipe_scope(upstream) -> None:
  with pytest.raises(ValueError):
    await services.wipe(upstream, "everything")
  assert upstream.calls == []


@pytest.mark.anyio
async def test_ban_and_unban_also_target_user(upstream) -> None:
  await services.ban_license(upstream, "Soryn-A", "chargeback")
  await services.unban_license(upstream, "Soryn-A")

  assert upstream.calls == [
    ("ban", {"key": "Soryn-A", "reason": "chargeback"}),
    ("banuser", {"user": "Soryn-A", "reason": "chargeback"}),
    ("unban", {"key": "Soryn-A"}),
    ("unbanuser", {"user": "Soryn-A"}),
  ]


@pytest.mark.anyio
async def test_single_item_operations(upstream) -> None:
  await services.delete_license(upstream, "Soryn-A")
  await services.reset_hwid(upstream, "alice")
  await services.delete_user(upstream, "bob")

  assert upstream.calls == [("del", {"key": "Soryn-A"}), ("resethwid", {"user": "alice"}), ("deluser", {"user": "bob"})]


@pytest.mark.anyio
async def test_export_backup_bundles_licenses_and_users(upstream) -> None:
  upstream.script(UpstreamOperation.FETCH_ALL_KEYS, reply(True, keys=[{"key": "Soryn-A"}]))
  upstream.script(UpstreamOperation.FETCH_ALL_USERS, reply(True, users=[{"username": "u1"}, {"username": "u2"}]))

  document = await services.export_backup(upstream, app_name="Soryn")

  assert document.app_name == "Soryn"
  assert document.licenses == [{"key": "Soryn-A"}]
  assert len(document.users) == 2
  assert document.export_date.endswith("Z")
