from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# OpenAI-compatible chat completion provider
	ai_api_key: str | None = Field(default=None, validation_alias="AI_API_KEY")
	ai_base_url: str = Field(default="https://api.onspace.ai/v1", validation_alias="AI_BASE_URL")
	# Single fixed model for both generation endpoints
	ai_model: str = Field(default="google/gemini-3-flash-preview", validation_alias="AI_MODEL")
	# Transport timeout only; nothing above the HTTP layer times out
	ai_timeout_seconds: float = Field(default=120.0, validation_alias="AI_TIMEOUT_SECONDS")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=60 * 24 * 7, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# Comma separated, "*" allows every origin
	cors_allow_origins: str = Field(default="*", validation_alias="CORS_ALLOW_ORIGINS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	@property
	def cors_origins(self) -> list[str]:
		return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]

settings = Settings()
