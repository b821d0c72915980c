import pytest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from node_monitor.core.config import Settings, load_settings
from node_monitor.core.exceptions import ConfigurationError

def test_load_settings_with_full_environment(mock_env_vars):
    loaded = load_settings()
    assert loaded.tailnet_name == "example.com"
    assert loaded.down_threshold_minutes == 15
    assert loaded.reminder_interval_minutes == 240
    assert loaded.monitor_tag_list == ["tag:critical", "tag:prod"]

def test_missing_required_keys_are_listed(mock_env_vars, monkeypatch):
    monkeypatch.delenv("TAILNET_NAME")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "")
    with pytest.raises(ConfigurationError) as exc:
        load_settings()
    assert "TELEGRAM_CHAT_ID" in str(exc.value)
    assert "TAILNET_NAME" in str(exc.value)

def test_invalid_value_is_a_configuration_error(mock_env_vars, monkeypatch):
    monkeypatch.setenv("REMINDER_INTERVAL_MINUTES", "soon")
    with pytest.raises(ConfigurationError):
        load_settings()

def test_empty_monitor_tags_means_all_nodes():
    assert Settings(monitor_tags=" , ,").monitor_tag_list == []

def test_database_url_built_from_components():
    built = Settings(database_url="", db_host="db", db_port="5433", db_name="n", db_user="u", db_password="p")
    assert built.database_url == "postgresql://u:p@db:5433/n"
    assert Settings(database_url="sqlite://").database_url == "sqlite://"
