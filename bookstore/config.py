from typing import Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENV: str = "local"
    log_level: str = "INFO"

    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "bookstore"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"

    # full SQLAlchemy url, wins over the postgres_* parts when set
    DATABASE_URL: Optional[str] = None

    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Cloudflare R2 (S3 compatible) for book cover images
    r2_account_id: Optional[str] = None
    r2_access_key_id: Optional[str] = None
    r2_secret_access_key: Optional[str] = None
    r2_bucket_name: str = "bookstore"
    signed_url_expires: int = 3600

    # shipping cost = base fee + fee per km of the precomputed address distance
    shipping_base_fee: float = 15.0
    shipping_fee_per_km: float = 0.5

    tracking_number_length: int = 8
    tracking_number_attempts: int = 5
    db_retry_attempts: int = 3
    db_retry_backoff: float = 0.05

    @property
    def database_url(self):
        if self.DATABASE_URL:
            return self.DATABASE_URL
        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"


settings = Settings()
