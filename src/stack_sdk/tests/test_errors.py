"""Tests for stack_sdk.errors and stack_sdk.config."""

from pathlib import Path

from stack_sdk.config import DEFAULT_PAGE_SIZE, DEFAULT_POLL_INTERVAL, StackConfig
from stack_sdk.errors import (
    ErrorKind,
    InsufficientPermissions,
    PendingUserAction,
    ProviderError,
    SessionExpired,
    StackValidationError,
    UploadFailed,
)


class TestErrorKinds:
    def test_pending_is_not_terminal(self):
        e = PendingUserAction()
        assert e.kind is ErrorKind.PENDING_USER_ACTION
        assert e.is_terminal is False
        assert e.recovery == "retry"

    def test_provider_errors_are_terminal(self):
        for cls in (SessionExpired, InsufficientPermissions, ProviderError):
            assert cls("x").is_terminal is True

    def test_recovery_actions(self):
        assert SessionExpired().recovery == "sign_in"
        assert InsufficientPermissions().recovery == "fix_permissions"
        assert ProviderError().recovery == "restart_selection"

    def test_default_message_is_kind(self):
        assert str(SessionExpired()) == "SessionExpired"

    def test_subclasses_catchable_as_provider_error(self):
        assert issubclass(PendingUserAction, ProviderError)
        assert issubclass(InsufficientPermissions, ProviderError)

    def test_upload_failed_carries_filename(self):
        e = UploadFailed("a.jpg", "quota")
        assert e.filename == "a.jpg"
        assert e.to_dict() == {
            "kind": "UploadFailed", "message": "quota",
            "recovery": "retry", "filename": "a.jpg",
        }

    def test_validation_error_joins_problems(self):
        e = StackValidationError(["a", "b"])
        assert e.message == "a; b"
        assert e.kind.value == "ValidationError"


class TestStackConfig:
    def test_defaults_without_env(self, monkeypatch):
        for name in ("STACK_POLL_INTERVAL", "STACK_PAGE_SIZE", "STACK_PROXY_BASE_URL",
                     "SUPABASE_URL", "STACK_STORE_DIR", "GOOGLE_ACCESS_TOKEN"):
            monkeypatch.delenv(name, raising=False)
        config = StackConfig.from_env()
        assert config.poll_interval == DEFAULT_POLL_INTERVAL
        assert config.page_size == DEFAULT_PAGE_SIZE
        assert config.proxy_base_url == ""
        assert config.access_token is None

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("STACK_POLL_INTERVAL", "0.5")
        monkeypatch.setenv("STACK_PAGE_SIZE", "10")
        monkeypatch.setenv("STACK_STORE_DIR", "/tmp/stacks")
        monkeypatch.setenv("GOOGLE_ACCESS_TOKEN", "tok")
        config = StackConfig.from_env()
        assert config.poll_interval == 0.5
        assert config.page_size == 10
        assert config.store_dir == Path("/tmp/stacks")
        assert config.access_token == "tok"

    def test_proxy_falls_back_to_supabase_url(self, monkeypatch):
        monkeypatch.delenv("STACK_PROXY_BASE_URL", raising=False)
        monkeypatch.setenv("SUPABASE_URL", "https://proj.supabase.co")
        assert StackConfig.from_env().proxy_base_url == "https://proj.supabase.co"
