"""Входящие сообщения WebSocket (валидация полезной нагрузки)."""
from pydantic import BaseModel, ConfigDict, Field, field_validator

PROMOTION_PIECES = {"q", "r", "b", "n"}


class AuthMessage(BaseModel):
    player_id: str

    @field_validator("player_id")
    @classmethod
    def validate_player_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("player_id must not be empty")
        return value


class JoinQueueMessage(BaseModel):
    name: str = Field(default="", max_length=64)
    icon: str = Field(default="", max_length=256)


class MoveMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_square: str = Field(alias="from")
    to_square: str = Field(alias="to")
    promotion: str | None = None

    @field_validator("from_square", "to_square")
    @classmethod
    def validate_square(cls, value: str) -> str:
        value = value.strip().lower()
        if len(value) != 2 or not (value[0].isalpha() and value[1].isnumeric()):
            raise ValueError(f"Cannot interpret {value!r} as a square name.")
        return value

    @field_validator("promotion")
    @classmethod
    def validate_promotion(cls, value: str | None) -> str | None:
        if not value:
            return None
        value = value.strip().lower()
        if value not in PROMOTION_PIECES:
            raise ValueError(f"Cannot promote to {value!r}.")
        return value

    def descriptor(self) -> dict[str, str | None]:
        return {"from": self.from_square, "to": self.to_square, "promotion": self.promotion}
