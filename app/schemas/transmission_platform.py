"""Platform binding ODM schema."""

from datetime import datetime

from beanie import Document, Indexed

from .states import PlatformBindingState


class TransmissionPlatform(Document):
    """Fan-out target of one transmission on one user platform."""

    binding_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    transmission_id: Indexed(str)  # type: ignore[valid-type]
    user_platform_id: str
    platform_code: str | None = None

    status: PlatformBindingState = PlatformBindingState.ATIVA
    # <stream-name>_<platform-code>
    publisher_name: str

    created_at: datetime
    updated_at: datetime

    class Settings:
        name = "transmission_platforms"
