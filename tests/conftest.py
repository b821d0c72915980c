import pytest

@pytest.fixture
def mock_env_vars(monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "-10042")
    monkeypatch.setenv("TAILNET_NAME", "example.com")
    monkeypatch.setenv("TAILSCALE_OAUTH_CLIENT_ID", "client-id")
    monkeypatch.setenv("TAILSCALE_OAUTH_CLIENT_SECRET", "client-secret")
    monkeypatch.setenv("DOWN_THRESHOLD_MINUTES", "15")
    monkeypatch.setenv("REMINDER_INTERVAL_MINUTES", "240")
    monkeypatch.setenv("MONITOR_TAGS", "tag:critical, tag:prod")
    monkeypatch.setenv("STORE_BACKEND", "database")
