"""Tests for the storage configuration commands."""

from __future__ import annotations

import json

import pytest

import tabsync.sync.coordinator as coordinator_module


def test_show_defaults(invoke, invoke_json):
    data, code = invoke_json("config", "show")
    assert code == 0
    assert data["data"] == {"enableGithub": False, "token": None, "gistId": None}

    result = invoke("config", "show")
    assert "GitHub sync: disabled" in result.output
    assert "Token: (not set)" in result.output


def test_enable_requires_token(invoke_json):
    data, code = invoke_json("config", "set", "--enable")
    assert code == 1
    assert data["error"]["code"] == "NOT_CONFIGURED"
    assert "token is required" in data["error"]["message"]


def test_enable_masks_token_in_output(invoke_json):
    data, code = invoke_json("config", "set", "--enable", "--token", "ghp_supersecret9876", "--gist-id", "g1")
    assert code == 0
    assert data["data"]["enableGithub"] is True
    assert data["data"]["token"].endswith("9876")
    assert "supersecret" not in json.dumps(data)
    assert data["data"]["gistId"] == "g1"


def test_token_stored_locally_in_full(invoke, cli_env):
    invoke("config", "set", "--token", "ghp_kept_locally")
    with open(f"{cli_env['TABSYNC_HOME']}/store/storage_config.json") as fh:
        assert json.load(fh)["token"] == "ghp_kept_locally"


def test_partial_update_keeps_other_fields(invoke_json):
    invoke_json("config", "set", "--token", "ghp_first_token_0001", "--gist-id", "g1")
    data, _ = invoke_json("config", "set", "--enable")
    assert data["data"]["enableGithub"] is True
    assert data["data"]["gistId"] == "g1"


def test_disable_forgets_credentials(invoke_json):
    invoke_json("config", "set", "--enable", "--token", "ghp_first_token_0001", "--gist-id", "g1")
    data, code = invoke_json("config", "set", "--disable")
    assert code == 0
    assert data["data"] == {"enableGithub": False, "token": None, "gistId": None}


def test_empty_gist_id_unsets(invoke_json):
    invoke_json("config", "set", "--gist-id", "g1")
    data, _ = invoke_json("config", "set", "--gist-id", "")
    assert data["data"]["gistId"] is None


class TestCreateGist:
    @pytest.fixture()
    def fake_gist(self, monkeypatch, remote):
        def factory(token, document_id=None, **kwargs):
            remote.document_id = document_id
            remote.on_document_created = kwargs.get("on_document_created")
            return remote

        monkeypatch.setattr(coordinator_module, "GistStore", factory)
        return remote

    def test_create_saves_gist_id(self, invoke_json, fake_gist):
        data, code = invoke_json("config", "create-gist", "--token", "ghp_create_token_4321")
        assert code == 0
        assert data["data"] == {"gistId": "gist-new"}

        shown, _ = invoke_json("config", "show")
        assert shown["data"]["gistId"] == "gist-new"
        assert shown["data"]["token"].endswith("4321")
        assert shown["data"]["enableGithub"] is False

    def test_create_without_token(self, invoke_json, fake_gist):
        data, code = invoke_json("config", "create-gist")
        assert code == 1
        assert data["error"]["code"] == "NOT_CONFIGURED"
        assert fake_gist.calls == []
