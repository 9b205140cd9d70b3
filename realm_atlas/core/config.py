"""Application configuration."""
import sys
from pydantic_settings import BaseSettings

KNOWN_USER_TYPES = ("free", "signed_in", "premium")


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql://atlas_user:atlas_pass@db:5432/atlas_db"
    SQL_ECHO: bool = False

    # Environment configuration
    ENVIRONMENT: str = "development"  # "development" or "production"

    # CORS configuration - comma-separated origins
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:5174"

    LOG_LEVEL: str = "INFO"

    # User type applied to GET /regions when the caller omits userType
    DEFAULT_USER_TYPE: str = "free"

    class Config:
        env_file = ".env"

    def get_cors_origins(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    def validate_production_settings(self) -> None:
        """Validate settings on startup.

        Raises SystemExit if the configuration cannot serve requests.
        """
        if self.DEFAULT_USER_TYPE not in KNOWN_USER_TYPES:
            print(
                f"FATAL: DEFAULT_USER_TYPE must be one of {', '.join(KNOWN_USER_TYPES)}",
                file=sys.stderr
            )
            sys.exit(1)

        if self.ENVIRONMENT == "production":
            if self.DATABASE_URL.startswith("sqlite"):
                print("FATAL: SQLite is not supported in production!", file=sys.stderr)
                print("Set DATABASE_URL to a PostgreSQL connection string.", file=sys.stderr)
                sys.exit(1)

            if self.SQL_ECHO:
                print("WARNING: SQL_ECHO is enabled in production!", file=sys.stderr)


settings = Settings()
# Validate on startup
settings.validate_production_settings()
