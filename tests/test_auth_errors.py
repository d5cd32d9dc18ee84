from __future__ import annotations

import pytest

from azure_footprint.auth import providers as auth_providers
from azure_footprint.util.errors import AzureClientError, as_exit_code, map_azure_error


class DummyAzureError(Exception):
    __module__ = "azure.core.exceptions"


class _RecordingCredential:
    def __init__(self, *args, **kwargs) -> None:
        self.args = args
        self.kwargs = kwargs

    def get_token(self, *scopes):
        return ("token", scopes)


def test_resolve_auth_client_secret(monkeypatch) -> None:
    monkeypatch.setattr(auth_providers, "ClientSecretCredential", _RecordingCredential)

    ctx = auth_providers.resolve_auth("client_secret", "tenant", "client", "s3cret")

    assert ctx.method == "client_secret"
    assert ctx.credential.args == ("tenant", "client", "s3cret")
    assert ctx.get_token("https://management.azure.com/.default") == (
        "token",
        ("https://management.azure.com/.default",),
    )


def test_resolve_auth_workload_identity(monkeypatch, tmp_path) -> None:
    token_file = tmp_path / "token"
    token_file.write_text("jwt", encoding="utf-8")
    monkeypatch.setattr(auth_providers, "WorkloadIdentityCredential", _RecordingCredential)

    ctx = auth_providers.resolve_auth("workload_identity", "tenant", "client", federated_token_file=str(token_file))

    assert ctx.method == "workload_identity"
    assert ctx.credential.kwargs == {
        "tenant_id": "tenant",
        "client_id": "client",
        "token_file_path": str(token_file),
    }


def test_resolve_auth_auto_prefers_workload_identity(monkeypatch) -> None:
    monkeypatch.setattr(auth_providers, "WorkloadIdentityCredential", _RecordingCredential)
    monkeypatch.setattr(auth_providers, "ClientSecretCredential", _RecordingCredential)
    monkeypatch.setenv("AZURE_FEDERATED_TOKEN_FILE", "/var/run/secrets/azure/tokens/azure-identity-token")

    ctx = auth_providers.resolve_auth("auto", "tenant", "client", "s3cret")

    assert ctx.method == "workload_identity"


def test_resolve_auth_auto_falls_back_to_client_secret(monkeypatch) -> None:
    monkeypatch.delenv("AZURE_FEDERATED_TOKEN_FILE", raising=False)
    monkeypatch.setattr(auth_providers, "ClientSecretCredential", _RecordingCredential)

    ctx = auth_providers.resolve_auth("auto", "tenant", "client", "s3cret")

    assert ctx.method == "client_secret"


def test_resolve_auth_missing_fields_raises_auth_error(monkeypatch) -> None:
    monkeypatch.delenv("AZURE_FEDERATED_TOKEN_FILE", raising=False)

    with pytest.raises(auth_providers.AuthError):
        auth_providers.resolve_auth("client_secret", "tenant", None, None)
    with pytest.raises(auth_providers.AuthError):
        auth_providers.resolve_auth("auto", None, None, None)
    with pytest.raises(auth_providers.AuthError):
        auth_providers.resolve_auth("managed", "tenant", "client", "s3cret")

    with pytest.raises(auth_providers.AuthError) as excinfo:
        auth_providers.resolve_auth("auto", None, None, None)
    assert as_exit_code(excinfo.value) == 3


def test_resolve_auth_maps_azure_errors(monkeypatch) -> None:
    def _raise(*args, **kwargs):
        raise DummyAzureError("boom")

    monkeypatch.setattr(auth_providers, "ClientSecretCredential", _raise)

    with pytest.raises(AzureClientError):
        auth_providers.resolve_auth("client_secret", "tenant", "client", "s3cret")


def test_map_azure_error_ignores_other_errors() -> None:
    assert map_azure_error(ValueError("nope"), "context") is None
    mapped = map_azure_error(DummyAzureError("denied"), "listing subscriptions")
    assert isinstance(mapped, AzureClientError)
    assert str(mapped) == "listing subscriptions: denied"
    assert as_exit_code(mapped) == 4
