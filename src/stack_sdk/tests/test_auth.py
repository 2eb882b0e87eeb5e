"""Tests for stack_sdk.providers.auth: ProviderCredentials, ProviderAuth."""

import json
import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from stack_sdk.errors import SessionExpired
from stack_sdk.providers.auth import ProviderAuth, ProviderCredentials


# ── ProviderCredentials ────────────────────────────────────────────────

class TestProviderCredentials:
    def test_defaults(self):
        creds = ProviderCredentials()
        assert creds.access_token == ""
        assert creds.token_expires_at == 0.0
        assert creds.can_refresh() is False

    def test_token_valid_when_active(self):
        creds = ProviderCredentials(access_token="tok", token_expires_at=time.time() + 3600)
        assert creds.is_token_valid() is True

    def test_token_invalid_within_buffer(self):
        creds = ProviderCredentials(access_token="tok", token_expires_at=time.time() + 200)
        assert creds.is_token_valid() is False

    def test_can_refresh(self):
        assert ProviderCredentials(client_id="c", refresh_token="r").can_refresh() is True

    def test_from_dict_ignores_unknown_fields(self):
        creds = ProviderCredentials.from_dict({"client_id": "cid", "extra": 1})
        assert creds.client_id == "cid"


# ── ProviderAuth persistence ───────────────────────────────────────────

class TestProviderAuthPersistence:
    def test_save_and_load(self, tmp_path):
        auth = ProviderAuth(repo_root=tmp_path)
        auth.set_access_token("tok", expires_in=3600)

        loaded = ProviderAuth(repo_root=tmp_path).load_credentials()
        assert loaded.access_token == "tok"
        assert loaded.is_token_valid()

    def test_load_missing(self, tmp_path):
        assert ProviderAuth(repo_root=tmp_path).load_credentials() is None

    def test_load_corrupt(self, tmp_path):
        path = tmp_path / ".credentials" / "google_photos.json"
        path.parent.mkdir(parents=True)
        path.write_text("{broken")
        assert ProviderAuth(repo_root=tmp_path).load_credentials() is None


# ── Token refresh ──────────────────────────────────────────────────────

def write_creds(tmp_path, **fields):
    path = tmp_path / ".credentials" / "google_photos.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(ProviderCredentials(**fields).to_dict()))


class TestProviderAuthRefresh:
    def test_ensure_token_anonymous(self, tmp_path):
        assert ProviderAuth(repo_root=tmp_path).ensure_token() == ""

    def test_ensure_token_uses_valid_token(self, tmp_path):
        write_creds(tmp_path, access_token="tok", token_expires_at=time.time() + 3600)
        assert ProviderAuth(repo_root=tmp_path).ensure_token() == "tok"

    @patch("stack_sdk.providers.auth.requests.post")
    def test_ensure_token_refreshes_expired(self, mock_post, tmp_path):
        write_creds(tmp_path, client_id="cid", client_secret="sec", refresh_token="r",
                    access_token="old", token_expires_at=time.time() - 10)
        mock_resp = MagicMock()
        mock_resp.json.return_value = {"access_token": "new", "expires_in": 3600}
        mock_post.return_value = mock_resp

        auth = ProviderAuth(repo_root=tmp_path)
        assert auth.ensure_token() == "new"
        assert mock_post.call_args.kwargs["data"]["grant_type"] == "refresh_token"
        saved = json.loads((tmp_path / ".credentials" / "google_photos.json").read_text())
        assert saved["access_token"] == "new"

    @patch("stack_sdk.providers.auth.requests.post")
    def test_refresh_failure_is_session_expired(self, mock_post, tmp_path):
        write_creds(tmp_path, client_id="cid", refresh_token="r")
        mock_post.side_effect = requests.HTTPError("400")
        auth = ProviderAuth(repo_root=tmp_path)
        auth.load_credentials()
        with pytest.raises(SessionExpired):
            auth.refresh()

    @patch("stack_sdk.providers.auth.requests.post")
    def test_ensure_token_degrades_to_anonymous(self, mock_post, tmp_path):
        write_creds(tmp_path, client_id="cid", refresh_token="r")
        mock_post.side_effect = requests.ConnectionError("down")
        assert ProviderAuth(repo_root=tmp_path).ensure_token() == ""

    def test_refresh_without_refresh_token(self, tmp_path):
        with pytest.raises(SessionExpired):
            ProviderAuth(repo_root=tmp_path).refresh()
