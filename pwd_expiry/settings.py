from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .ad.models import ADConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # AD
    ad_dc: str = Field("", alias="AD_DC")
    ad_domain: str = Field("", alias="AD_DOMAIN")
    ad_port: int = Field(636, alias="AD_PORT")
    ad_use_ssl: bool = Field(True, alias="AD_USE_SSL")
    ad_starttls: bool = Field(False, alias="AD_STARTTLS")
    ad_bind_user: str = Field("", alias="AD_BIND_USER")
    ad_bind_password: str = Field("", alias="AD_BIND_PASSWORD")
    ad_base_dn: str = Field("", alias="AD_BASE_DN")
    ad_size_limit: int = Field(0, alias="AD_SIZE_LIMIT")  # 0 = server limit
    ad_dns_server: str = Field("", alias="AD_DNS_SERVER")

    # AD TLS validation (optional)
    ad_tls_validate: bool = Field(False, alias="AD_TLS_VALIDATE")
    ad_ca_cert_file: str = Field("", alias="AD_CA_CERT_FILE")

    # Report / export
    warn_days: int = Field(14, alias="WARN_DAYS")
    export_dir: str = Field(".", alias="EXPORT_DIR")
    export_format: str = Field("csv", alias="EXPORT_FORMAT")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_dir: str = Field("logs", alias="LOG_DIR")
    log_retention_days: int = Field(30, alias="LOG_RETENTION_DAYS")

    def ad_config(self) -> ADConfig:
        return ADConfig(
            dc_short=self.ad_dc,
            domain=self.ad_domain,
            port=self.ad_port,
            use_ssl=self.ad_use_ssl,
            starttls=self.ad_starttls,
            bind_username=self.ad_bind_user,
            bind_password=self.ad_bind_password,
            explicit_base_dn=self.ad_base_dn,
            tls_validate=self.ad_tls_validate,
            ca_cert_file=self.ad_ca_cert_file,
            dns_server=self.ad_dns_server,
            size_limit=self.ad_size_limit,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
