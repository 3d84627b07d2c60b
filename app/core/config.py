from typing import List, Literal, Union, Optional
from pydantic import AnyHttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Prescription Service"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # CORS
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Database
    POSTGRES_SERVER: Optional[str] = None
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    POSTGRES_PORT: str = "5432"
    DATABASE_URL: Optional[str] = None
    DATABASE_ECHO: bool = False

    @model_validator(mode='after')
    def assemble_db_connection(self) -> 'Settings':
        if not self.DATABASE_URL:
            if all([self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_SERVER, self.POSTGRES_DB]):
                self.DATABASE_URL = (
                    f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@"
                    f"{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
                )
            else:
                self.DATABASE_URL = "sqlite+aiosqlite:///./prescriptions.db"

        if self.DATABASE_URL.startswith("postgresql://"):
            self.DATABASE_URL = self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif self.DATABASE_URL.startswith("sqlite:///"):
            self.DATABASE_URL = self.DATABASE_URL.replace("sqlite:///", "sqlite+aiosqlite:///", 1)

        # asyncpg takes ssl=, not sslmode=
        self.DATABASE_URL = self.DATABASE_URL.replace("sslmode=require", "ssl=require")
        if "channel_binding=" in self.DATABASE_URL:
            import re
            self.DATABASE_URL = re.sub(r"[&?]channel_binding=[^&]*", "", self.DATABASE_URL)

        return self

    # JWT (tokens are issued by the identity provider; we only verify them)
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    JWT_ISSUER: Optional[str] = None
    JWT_AUDIENCE: Optional[str] = None
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Prescriptions
    PRESCRIPTION_OWNERSHIP_POLICY: Literal["doctor", "patient_user"] = "doctor"
    PRESCRIPTION_STATUS_POLICY: Literal["open", "strict"] = "open"
    PRESCRIPTION_QUANTITY_POLICY: Literal["reject", "coerce"] = "reject"
    PRESCRIPTION_LIST_DEFAULT_LIMIT: int = 10
    PRESCRIPTION_LIST_MAX_LIMIT: int = 100

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra='ignore')

settings = Settings()
