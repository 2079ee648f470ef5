import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    debug_endpoints: bool = Field(False, alias="MINDFLOW_DEBUG_ENDPOINTS")
    plan_generator: Literal["algorithm", "llm"] = Field("algorithm", alias="MINDFLOW_PLAN_GENERATOR")
    llm_model: str = Field("gpt-5-mini", alias="MINDFLOW_LLM_MODEL")
    llm_reasoning: Literal["minimal", "low", "medium", "high"] = Field("low", alias="MINDFLOW_LLM_REASONING")
    llm_timeout_seconds: float = Field(30.0, gt=0, alias="MINDFLOW_LLM_TIMEOUT_SECONDS")
    timezone: str = Field("UTC", alias="MINDFLOW_TIMEZONE")
    database_url: Optional[str] = Field("sqlite:///./mindflow.db", alias="MINDFLOW_DATABASE_URL")
    database_pool_size: int = Field(10, alias="MINDFLOW_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="MINDFLOW_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="MINDFLOW_DATABASE_ECHO")
    database_auto_create: bool = Field(True, alias="MINDFLOW_DATABASE_AUTO_CREATE")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()  # type: ignore[arg-type]
        if settings.openai_api_key and not os.getenv("OPENAI_API_KEY"):
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key
        return settings
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
