from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "storefront-api"
    environment: str = "local"
    debug: bool = True
    log_level: str = "INFO"

    mongo_port: int = 27017
    mongo_host: str = "localhost"
    mongo_db: str = "storefront"
    mongo_password: str | None = None
    mongo_params: str | None = None
    mongo_user: str | None = None
    mongo_srv: bool = False

    jwt_algorithm: str = "HS256"
    jwt_secret_key: str = "very-secret-key"
    session_token_expires_days: int = 30

    otp_expires_minutes: int = 10
    otp_resend_cooldown_minutes: int = 1
    password_reset_expires_minutes: int = 30
    bcrypt_rounds: int = Field(default=12, ge=12)

    sendgrid_api_key: str | None = None
    mail_from_email: str = "no-reply@storefront.local"

    upload_dir: str = "uploads"
    cors_origins: list[str] = ["*"]

    model_config = SettingsConfigDict(env_file=(".env",), case_sensitive=False, frozen=True)

    @property
    def mongo_uri(self) -> str:
        auth = ""
        if self.mongo_user and self.mongo_password:
            auth = f"{self.mongo_user}:{self.mongo_password}@"
        params = f"?{self.mongo_params}" if self.mongo_params else ""
        if self.mongo_srv:
            return f"mongodb+srv://{auth}{self.mongo_host}/{self.mongo_db}{params}"
        return f"mongodb://{auth}{self.mongo_host}:{self.mongo_port}/{self.mongo_db}{params}"


settings = Settings()
