from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BALANCES_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # Collapse a -> b and b -> a debts into a single direction before presenting.
    net_pairwise_debts: bool = False
    # Minor-unit precision amounts are quantized to on ingestion (2 = cents).
    amount_places: int = Field(2, ge=0, le=8)

    log_level: str = "INFO"
    allowed_origins: str = "*"

    @property
    def origins(self) -> list[str]:
        origins = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        return origins or ["*"]


settings = Settings()
