from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pick2hmb.app.constants import DEFAULT_SINK, PICK_QUEUE, SOCKET_TIMEOUT_SECONDS


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    sink: str = Field(DEFAULT_SINK, validation_alias="HMB_SINK")
    hmb_timeout_seconds: float = Field(SOCKET_TIMEOUT_SECONDS, validation_alias="HMB_TIMEOUT_SECONDS")

    broker_host: str = Field("localhost", validation_alias="BROKER_HOST")
    broker_port: int = Field(5672, validation_alias="BROKER_PORT")
    broker_user: str = Field("guest", validation_alias="BROKER_USER")
    broker_password: str = Field("guest", validation_alias="BROKER_PASSWORD")

    queue_name: str = Field("pick2hmb", validation_alias="QUEUE_NAME")
    queue_max_length: int = Field(10_000, validation_alias="QUEUE_MAX_LENGTH")
    prefetch_count: int = Field(1, validation_alias="PREFETCH_COUNT")
    # Upstream messaging group the queue is bound to
    subscription_exchange: str = Field("seiscomp", validation_alias="SUBSCRIPTION_EXCHANGE")
    subscription: str = Field(PICK_QUEUE, validation_alias="SUBSCRIPTION")
    consumer_backend: str = Field("rabbitmq", validation_alias="CONSUMER_BACKEND")

    inventory_backend: str = Field("mongo", validation_alias="INVENTORY_BACKEND")
    inventory_file: str = Field("", validation_alias="INVENTORY_FILE")
    database_host: str = Field("localhost", validation_alias="DATABASE_HOST")
    database_port: int = Field(27017, validation_alias="DATABASE_PORT")
    database_user: str = Field("", validation_alias="DATABASE_USER")
    database_password: str = Field("", validation_alias="DATABASE_PASSWORD")
    database_name: str = Field("inventory", validation_alias="DATABASE_NAME")
    database_collection: str = Field("sensor_locations", validation_alias="DATABASE_COLLECTION")
    database_connection_timeout_ms: int = Field(5000, validation_alias="DATABASE_CONNECTION_TIMEOUT_MS")

    initial_backoff_seconds: float = Field(1.0, validation_alias="INITIAL_BACKOFF_SECONDS")
    max_backoff_seconds: float = Field(30.0, validation_alias="MAX_BACKOFF_SECONDS")
    max_connection_attempts: int = Field(10, validation_alias="MAX_CONNECTION_ATTEMPTS")
    backoff_multiplier: float = Field(2.0, validation_alias="BACKOFF_MULTIPLIER")

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(False, validation_alias="LOG_JSON")
