"""Environment-driven settings."""

from pwd_expiry.settings import Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        for name in ("AD_DC", "AD_DOMAIN", "AD_PORT", "AD_USE_SSL", "WARN_DAYS", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        st = Settings()
        assert st.ad_port == 636
        assert st.ad_use_ssl is True
        assert st.warn_days == 14
        assert st.export_format == "csv"
        assert st.log_level == "INFO"

    def test_environment(self, monkeypatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("AD_DC", "dc2")
        monkeypatch.setenv("AD_DOMAIN", "example.org")
        monkeypatch.setenv("AD_PORT", "389")
        monkeypatch.setenv("AD_USE_SSL", "false")
        monkeypatch.setenv("AD_STARTTLS", "true")
        monkeypatch.setenv("AD_SIZE_LIMIT", "1000")
        st = Settings()
        cfg = st.ad_config()
        assert cfg.host == "dc2.example.org"
        assert cfg.port == 389
        assert cfg.use_ssl is False
        assert cfg.starttls is True
        assert cfg.size_limit == 1000
        assert cfg.base_dn == "DC=example,DC=org"

    def test_dotenv_file(self, monkeypatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("AD_BIND_USER", raising=False)
        (tmp_path / ".env").write_text("AD_BIND_USER=svc_from_file\n", encoding="utf-8")
        assert Settings().ad_bind_user == "svc_from_file"

    def test_cached(self, settings_env) -> None:
        assert get_settings() is get_settings()
