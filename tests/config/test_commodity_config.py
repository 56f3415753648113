"""
Tests for commodity_config: YAML loading, validation, the environment
override and the bridges that turn settings into kernel objects.
"""

from datetime import date

import pytest
import yaml

from commodity_config import DATABASE_URL_ENV, get_active_config
from commodity_config.bridges import (
    build_transfer_service,
    code_prefixes,
    init_engine_from_settings,
)
from commodity_config.loader import load_yaml_file, parse_settings
from commodity_config.schema import KernelSettings
from commodity_kernel.db.engine import reset_engine
from commodity_kernel.domain.transfers import TransferDraft, TransferStatus, TransferType

from fakes import product


def _write(tmp_path, data) -> str:
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestGetActiveConfig:
    def test_default_set(self, monkeypatch):
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
        settings = get_active_config()

        assert settings.database.url.startswith("postgresql")
        assert settings.codes.prefixes == {"GROUPAGE": "GRP", "STANDARD": "TRP"}
        assert settings.codes.padding == 5
        assert settings.ledger.delta_policy == "coupled"
        assert settings.transfers.default_status == "validated"
        assert settings.transfers.default_page_size == 20

    def test_database_url_env_override(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "sqlite:///tmp/commodity.db")
        assert get_active_config().database.url == "sqlite:///tmp/commodity.db"

    def test_explicit_path(self, tmp_path, monkeypatch):
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
        path = _write(tmp_path, {"ledger": {"delta_policy": "independent"}})
        settings = get_active_config(path)

        assert settings.ledger.delta_policy == "independent"
        assert settings.database.url == "sqlite://"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")


class TestParsing:
    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_file(path) == {}
        assert parse_settings({}) == KernelSettings()

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_yaml_file(path)

    def test_unknown_section(self):
        with pytest.raises(ValueError, match="Unknown configuration sections"):
            parse_settings({"metrics": {}})

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown keys in section 'ledger'"):
            parse_settings({"ledger": {"policy": "coupled"}})

    @pytest.mark.parametrize(
        "data",
        [
            {"ledger": {"delta_policy": "signed"}},
            {"transfers": {"default_status": "cancelled"}},
            {"transfers": {"default_page_size": 0}},
            {"codes": {"prefixes": {"GROUPAGE": "GRP"}}},
            {"codes": {"max_attempts": 0}},
            {"database": {"url": ""}},
        ],
    )
    def test_invalid_values(self, data):
        with pytest.raises(ValueError):
            parse_settings(data)


class TestBridges:
    def test_code_prefixes_keyed_by_transfer_type(self):
        assert code_prefixes(KernelSettings()) == {
            TransferType.GROUPAGE: "GRP",
            TransferType.STANDARD: "TRP",
        }

    def test_init_engine_from_settings(self):
        settings = parse_settings({"database": {"url": "sqlite://"}})
        try:
            engine = init_engine_from_settings(settings)
            assert engine.dialect.name == "sqlite"
        finally:
            reset_engine()

    @pytest.mark.sql
    def test_build_transfer_service_applies_settings(self, session, reference_data, clock):
        settings = parse_settings(
            {
                "codes": {"prefixes": {"GROUPAGE": "GX", "STANDARD": "SX"}, "padding": 3},
                "transfers": {"default_status": "pending", "default_page_size": 5},
            }
        )
        service = build_transfer_service(session, settings, clock=clock)
        transfer = service.create(
            TransferDraft(
                transfer_type=TransferType.GROUPAGE,
                sender_actor_id=reference_data.producer_id,
                receiver_actor_id=reference_data.opa_id,
                receiver_store_id=reference_data.store_b_id,
                transfer_date=date(2024, 1, 1),
                products=[product("grade_1", "10", 1)],
            )
        )

        assert transfer.code == "GX-2024-001"
        assert transfer.status is TransferStatus.PENDING
        assert service.list().per_page == 5
