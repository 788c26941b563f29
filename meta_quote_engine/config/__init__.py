from pydantic_settings import BaseSettings, SettingsConfigDict

from meta_quote_engine.config.apm import APMConfig
from meta_quote_engine.config.engine import EngineDefaults
from meta_quote_engine.config.logger import LoggerConfig


class Settings(APMConfig, LoggerConfig, EngineDefaults, BaseSettings):
    NATIVE_TOKEN_ADDRESS: str = '0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee'
    ZERO_ADDRESS: str = '0x0000000000000000000000000000000000000000'
    VERSION: str = '0.1.0'

    model_config = SettingsConfigDict(env_file='.env', extra='ignore')


settings = Settings()
