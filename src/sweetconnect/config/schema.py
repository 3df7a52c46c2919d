"""Pydantic models for all configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from sweetconnect.identity.roles import Role


class ServerConfig(BaseModel):
    """WebSocket push server."""

    host: str = "0.0.0.0"
    port: int = 8765


class StoreConfig(BaseModel):
    """Message store backend."""

    backend: Literal["sqlite", "memory"] = "sqlite"
    path: str = "sweetconnect.db"
    history_limit: int = 50

    @field_validator("history_limit")
    @classmethod
    def _cap_history(cls, value: int) -> int:
        return max(1, min(value, 50))


class MailConfig(BaseModel):
    """Outgoing notification mail."""

    transport: Literal["log", "smtp", "http"] = "log"
    brand: str = "SweetConnect"
    from_address: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    use_tls: bool = True
    api_url: str = ""
    api_key: str = ""
    timeout: float = 30.0


class DeliveryConfig(BaseModel):
    """Live push audience selection."""

    mode: Literal["broadcast", "targeted"] = "broadcast"


class ActorSeed(BaseModel):
    """An actor registered at startup."""

    email: str
    name: str = ""
    role: Role = Role.SHARED
    actor_id: str | None = None


class IdentityConfig(BaseModel):
    """Actor directory settings."""

    collective_name: str = "Tharun"
    seed_actors: list[ActorSeed] = Field(
        default_factory=lambda: [
            ActorSeed(email="admin@example.com", name="Admin", role=Role.ADMIN, actor_id="admin"),
            ActorSeed(
                email="shrreya@example.com",
                name="Shrreya",
                role=Role.CORRESPONDENT,
                actor_id="shrreya",
            ),
        ]
    )


class AppConfig(BaseModel):
    """Top-level application configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    mail: MailConfig = Field(default_factory=MailConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    log_level: str = "INFO"
