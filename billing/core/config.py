from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application Information
    app_name: str = Field(default="Course Billing")
    app_description: str = Field(default="Balances, payments and rentals for courses")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=True)
    production: bool = Field(default=False)
    api_prefix: str = Field(default="/api/v1")

    # Database Configuration
    db_url: Optional[str] = Field(default=None)  # overrides the parts below
    db_host: str = Field(default="127.0.0.1")
    db_port: int = Field(default=5432)
    db_database: str = Field(default="billing")
    db_username: str = Field(default="billing")
    db_password: str = Field(default="billing")
    db_echo: bool = Field(default=False)

    # JWT Configuration
    jwt_secret: str = Field(default="your-secret-key-change-in-production")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expiration_hours: int = Field(default=1)
    jwt_issuer: str = Field(default="Course Billing")

    # Email (SMTP)
    mail_host: str = Field(default="localhost")
    mail_port: int = Field(default=25)
    mail_username: str = Field(default="")
    mail_password: str = Field(default="")
    mail_encryption: str = Field(default="none")  # none, tls, ssl
    mail_timeout: int = Field(default=10)
    mail_from_address: str = Field(default="no-reply@example.com")
    mail_from_name: str = Field(default="Course Billing")

    # Billing
    currency: str = Field(default="RUB")
    rental_period_days: int = Field(default=7)
    payment_max_attempts: int = Field(default=3)

    # Expiry notifier
    notifier_enabled: bool = Field(default=False)
    notifier_window_hours: int = Field(default=24)
    notifier_cron_hour: int = Field(default=9)
    notifier_subject: str = Field(default="Your course rentals are ending soon")

    # Authorization
    admin_role: str = Field(default="ROLE_SUPER_ADMIN")
    password_hash_rounds: int = Field(default=12, ge=4, le=31)  # bcrypt cost

    # Logging
    log_level: str = Field(default="info")
    log_file: str = Field(default="logs/app.log")

    # Admin Defaults
    admin_default_email: str = Field(default="admin@example.com")
    admin_default_password: str = Field(default="Admin@123")

    @property
    def database_url(self) -> str:
        if self.db_url:
            return self.db_url
        return "postgresql+psycopg2://{user}:{password}@{host}:{port}/{database}".format(
            user=self.db_username,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_database,
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


def load_settings():
    try:
        settings = Settings()
        print("✅ Settings loaded successfully!")
        return settings
    except ValidationError as e:
        print("❌ Validation Error:", e)
        raise


settings = load_settings()
