"""配置加载测试"""

from sheetcrm.core.config import SheetConfig, get_db_path, load_sheet_config

_ENV_VARS = (
    "SHEETCRM_TABLE_GENERAL",
    "SHEETCRM_TABLE_IOT",
    "SHEETCRM_TABLE_DT",
    "SHEETCRM_TABLE_DX",
    "SHEETCRM_TABLE_OPPORTUNITIES",
    "SHEETCRM_TABLE_COMPANIES",
    "SHEETCRM_TABLE_SYSTEM_CONFIG",
    "SHEETCRM_CACHE_TTL_S",
    "SHEETCRM_CALENDAR_WEBHOOK_URL",
    "SHEETCRM_CALENDAR_TIMEOUT_S",
)


class TestSheetConfig:
    def test_defaults(self, monkeypatch):
        for var in _ENV_VARS:
            monkeypatch.delenv(var, raising=False)
        config = load_sheet_config()
        assert config == SheetConfig()
        assert config.event_logs_iot == "EventLogs_IOT"
        assert config.cache_ttl_s == 0

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SHEETCRM_TABLE_IOT", "IoT紀錄")
        monkeypatch.setenv("SHEETCRM_TABLE_COMPANIES", "客戶公司")
        monkeypatch.setenv("SHEETCRM_CACHE_TTL_S", "120")
        monkeypatch.setenv("SHEETCRM_CALENDAR_WEBHOOK_URL", "http://calendar.local/hook")

        config = load_sheet_config()
        assert config.event_logs_iot == "IoT紀錄"
        assert config.companies == "客戶公司"
        assert config.cache_ttl_s == 120
        assert config.calendar_webhook_url == "http://calendar.local/hook"

    def test_invalid_int_falls_back(self, monkeypatch):
        monkeypatch.setenv("SHEETCRM_CACHE_TTL_S", "soon")
        monkeypatch.setenv("SHEETCRM_CALENDAR_TIMEOUT_S", "x")
        config = load_sheet_config()
        assert config.cache_ttl_s == 0
        assert config.calendar_timeout_s == 10


class TestDbPath:
    def test_explicit_path(self, monkeypatch):
        monkeypatch.setenv("SHEETCRM_DB_PATH", "/tmp/x.db")
        assert get_db_path() == "/tmp/x.db"

    def test_derived_from_data_dir(self, monkeypatch):
        monkeypatch.delenv("SHEETCRM_DB_PATH", raising=False)
        monkeypatch.setenv("SHEETCRM_DATA_DIR", "/srv/data")
        assert get_db_path() == "/srv/data/sqlite/sheetcrm.db"
