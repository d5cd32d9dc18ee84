from __future__ import annotations

import pytest

from azure_footprint.config import (
    AzureSettings,
    RunConfig,
    load_azure_settings,
    load_run_config,
)

AZURE_ENV = (
    "AZURE_AUTH_MODE",
    "AZURE_TENANT_ID",
    "AZURE_CLIENT_ID",
    "AZURE_CLIENT_SECRET",
    "AZURE_FEDERATED_TOKEN_FILE",
    "AZURE_CONSUMPTION_CHUNKS_DAYS",
    "AZURE_SUBSCRIPTION_CHUNKS",
    "AZ_FP_START",
    "AZ_FP_END",
    "AZ_FP_GROUP_BY",
    "AZ_FP_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in AZURE_ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults_for_estimates() -> None:
    command, cfg = load_run_config(argv=["estimates"])
    assert command == "estimates"
    assert isinstance(cfg, RunConfig)
    assert cfg.group_by == "day"
    assert cfg.start and cfg.end
    assert cfg.azure.auth == "auto"
    assert cfg.azure.chunk_by_day is False
    assert cfg.azure.subscription_chunks is None


def test_env_sets_chunking_knobs(monkeypatch) -> None:
    monkeypatch.setenv("AZURE_CONSUMPTION_CHUNKS_DAYS", "true")
    monkeypatch.setenv("AZURE_SUBSCRIPTION_CHUNKS", "5")

    _, cfg = load_run_config(argv=["estimates"])

    assert cfg.azure.chunk_by_day is True
    assert cfg.azure.subscription_chunks == 5


def test_zero_subscription_chunks_means_unset(monkeypatch) -> None:
    monkeypatch.setenv("AZURE_SUBSCRIPTION_CHUNKS", "0")
    _, cfg = load_run_config(argv=["estimates"])
    assert cfg.azure.subscription_chunks is None


def test_cli_overrides_env(monkeypatch) -> None:
    monkeypatch.setenv("AZURE_SUBSCRIPTION_CHUNKS", "5")
    _, cfg = load_run_config(argv=["estimates", "--subscription-chunks", "2", "--no-chunk-by-day"])
    assert cfg.azure.subscription_chunks == 2
    assert cfg.azure.chunk_by_day is False


def test_config_file_used_when_env_and_cli_missing(tmp_path) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(
        "group_by: month\nstart: 2024-01-01\nend: 2024-02-01\nsubscription_chunks: 3\n",
        encoding="utf-8",
    )

    _, cfg = load_run_config(argv=["estimates", "--config", str(cfg_path)])

    assert cfg.group_by == "month"
    assert cfg.start == "2024-01-01"
    assert cfg.end == "2024-02-01"
    assert cfg.azure.subscription_chunks == 3


def test_env_overrides_config_file(monkeypatch, tmp_path) -> None:
    cfg_path = tmp_path / "config.json"
    cfg_path.write_text('{"group_by": "month", "chunk_by_day": true}', encoding="utf-8")
    monkeypatch.setenv("AZ_FP_GROUP_BY", "week")
    monkeypatch.setenv("AZURE_CONSUMPTION_CHUNKS_DAYS", "0")

    _, cfg = load_run_config(argv=["estimates", "--config", str(cfg_path)])

    assert cfg.group_by == "week"
    assert cfg.azure.chunk_by_day is False


def test_config_file_rejects_bad_types(tmp_path) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("subscription_chunks: many\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_run_config(argv=["estimates", "--config", str(cfg_path)])


def test_config_file_rejects_unknown_auth(tmp_path) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("auth: managed_identity\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_run_config(argv=["list-subscriptions", "--config", str(cfg_path)])


def test_config_file_warns_on_unknown_keys(tmp_path) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("client_secret: should-not-be-here\n", encoding="utf-8")

    with pytest.warns(UserWarning, match="client_secret"):
        _, cfg = load_run_config(argv=["list-subscriptions", "--config", str(cfg_path)])
    assert cfg.azure.client_secret is None


def test_secret_only_from_env(monkeypatch) -> None:
    monkeypatch.setenv("AZURE_CLIENT_SECRET", "s3cret")
    monkeypatch.setenv("AZURE_TENANT_ID", "tenant")
    monkeypatch.setenv("AZURE_CLIENT_ID", "client")
    monkeypatch.setenv("AZURE_AUTH_MODE", "WORKLOAD_IDENTITY")

    settings = load_azure_settings()

    assert isinstance(settings, AzureSettings)
    assert settings.client_secret == "s3cret"
    assert settings.auth == "workload_identity"
    assert "s3cret" not in repr(settings)


def test_estimate_input_path_from_cli(tmp_path) -> None:
    path = tmp_path / "lookup.csv"
    command, cfg = load_run_config(argv=["estimate-input", "--input", str(path), "--output", "out.csv"])
    assert command == "estimate-input"
    assert cfg.input == path
    assert str(cfg.output) == "out.csv"
