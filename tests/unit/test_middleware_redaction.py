import json

from license_panel.core.middleware import _build_request_url, _format_body_for_log, _redact_query_string, _redact_sensitive_keys


def test_log_redaction():
  data = {"username": "user", "sellerkey": "abc", "nested": {"token": "secret_token", "public": "visible"}, "list": [{"Authorization": "Bearer x"}, {"other": "visible"}]}
  redacted = _redact_sensitive_keys(data)

  assert redacted["username"] == "user"
  assert redacted["sellerkey"] == "***"
  assert redacted["nested"]["token"] == "***"
  assert redacted["nested"]["public"] == "visible"
  assert redacted["list"][0]["Authorization"] == "***"
  assert redacted["list"][1]["other"] == "visible"


def test_query_string_credentials_are_masked():
  masked = _redact_query_string("sellerkey=top-secret&type=fetchallkeys")
  assert "top-secret" not in masked
  assert "type=fetchallkeys" in masked

  assert _redact_query_string("page=2&sort=key") == "page=2&sort=key"


def test_build_request_url_redacts_query():
  scope = {"path": "/api/licenses", "query_string": b"token=abc&x=1"}
  url = _build_request_url(scope)
  assert url.startswith("/api/licenses?")
  assert "abc" not in url

  assert _build_request_url({"path": "/api/health", "query_string": b""}) == "/api/health"


def test_format_body_for_log():
  body = json.dumps({"licenses": [{"key": "Soryn-A"}], "password": "hunter2"}).encode()
  formatted = _format_body_for_log(body, "application/json", 4096)
  assert "hunter2" not in formatted
  assert "Soryn-A" in formatted

  assert _format_body_for_log(b"", "application/json", 10) == "<empty>"
  assert _format_body_for_log(b"\x00\x01", "application/octet-stream", 10) == "<non-text body 2 bytes>"
  assert _format_body_for_log(b"a" * 50, "text/plain", 10).endswith("...(truncated)")
