from pydantic import BaseModel, Field

from app.schemas import RelaySourceType


class ValidateUrlIn(BaseModel):
    url: str | None = None


class StartRelayIn(BaseModel):
    relay_url: str | None = Field(None, description="rtmp:// or .m3u8 source")
    relay_type: RelaySourceType | None = None
    server_id: str | None = None
