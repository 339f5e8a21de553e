from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "VehicleLedger"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_VEHICLES_TABLE: str = Field(default="vehicle-ledger-vehicles")
    DYNAMO_FUEL_TABLE: str = Field(default="vehicle-ledger-fuel-entries")
    DYNAMO_EXPENSES_TABLE: str = Field(default="vehicle-ledger-expense-entries")
    DYNAMO_INCOME_TABLE: str = Field(default="vehicle-ledger-income-entries")

    # AWS S3
    S3_BUCKET_NAME: str = Field(default="vehicle-ledger-reports")
    S3_REGION: str = Field(default="eu-west-1")

    # Analytics
    DEFAULT_CURRENCY: str = Field(default="USD")
    BREAK_EVEN_THRESHOLD: float = Field(default=1.0)  # currency units


settings = Settings()
