# app/core/config.py
"""
Application configuration using Pydantic Settings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
import json
from pydantic import field_validator

from app.services.blob_store import BlobStorageConfig


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    """

    # Application
    APP_NAME: str = "InjuryDesk"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # text | json

    # Database
    DATABASE_URL: str

    # JWT Authentication
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours

    # Object storage. Either a connection string, or an account name + key pair.
    STORAGE_CONNECTION_STRING: str = ""
    STORAGE_ACCOUNT_NAME: str = ""
    STORAGE_ACCOUNT_KEY: str = ""
    STORAGE_REGION: str = "us-east-1"
    STORAGE_ENDPOINT_URL: str = ""  # MinIO / LocalStack
    STORAGE_CONTAINER_PREFIX: str = ""
    STORAGE_INIT_ON_STARTUP: bool = True
    STORAGE_SELF_TEST_ON_STARTUP: bool = True
    SAS_URL_EXPIRY_HOURS: int = 2

    # Uploads
    MAX_UPLOAD_SIZE: int = 52428800  # 50MB in bytes

    # AI
    AI_DEFAULT_PROVIDER: str = "bedrock"  # bedrock | none
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    BEDROCK_MODEL_ID: str = "anthropic.claude-3-haiku-20240307-v1:0"
    BEDROCK_MAX_TOKENS: int = 4096
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_MODEL: str = "gpt-4o"
    AZURE_OPENAI_DEFAULT_API_VERSION: str = "2024-02-15-preview"
    AI_REQUEST_TIMEOUT_SECONDS: int = 120
    AI_CHAT_HISTORY_LIMIT: int = 10

    # CORS
    CORS_ORIGINS: str = '["http://localhost:5173"]'

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("BEDROCK_MODEL_ID", "STORAGE_CONNECTION_STRING", mode="before")
    @classmethod
    def strip_value(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from string to list"""
        try:
            if isinstance(self.CORS_ORIGINS, str):
                return json.loads(self.CORS_ORIGINS)
            return self.CORS_ORIGINS
        except json.JSONDecodeError:
            return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    def blob_storage_config(self) -> BlobStorageConfig:
        """
        Build the explicit storage configuration handed to BlobStorageService.

        A connection string wins over the name/key pair. Missing credentials
        raise StorageConfigurationError.
        """
        if self.STORAGE_CONNECTION_STRING:
            return BlobStorageConfig.from_connection_string(
                self.STORAGE_CONNECTION_STRING,
                default_region=self.STORAGE_REGION,
                container_prefix=self.STORAGE_CONTAINER_PREFIX,
            )
        return BlobStorageConfig.from_account_key(
            account_name=self.STORAGE_ACCOUNT_NAME,
            account_key=self.STORAGE_ACCOUNT_KEY,
            region=self.STORAGE_REGION,
            endpoint_url=self.STORAGE_ENDPOINT_URL or None,
            container_prefix=self.STORAGE_CONTAINER_PREFIX,
        )

    @property
    def bedrock_configured(self) -> bool:
        return self.AI_DEFAULT_PROVIDER.lower() == "bedrock" and bool(self.BEDROCK_MODEL_ID)

    def aws_credentials(self) -> dict:
        """Explicit AWS keys when set, otherwise let boto3 resolve its default chain."""
        creds: dict = {"region_name": self.AWS_REGION}
        if self.AWS_ACCESS_KEY_ID and self.AWS_SECRET_ACCESS_KEY:
            creds["aws_access_key_id"] = self.AWS_ACCESS_KEY_ID
            creds["aws_secret_access_key"] = self.AWS_SECRET_ACCESS_KEY
        return creds


# Create settings instance
settings = Settings()
