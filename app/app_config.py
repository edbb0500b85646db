from pydantic import BaseModel

from app.shared.config import config


def _str(key: str, default: str = "") -> str:
    return (config.get(key) or "").strip() or default


def _int(key: str, default: int) -> int:
    return int((config.get(key) or "").strip() or default)


def _float(key: str, default: float) -> float:
    return float((config.get(key) or "").strip() or default)


class AppEnvironConfig(BaseModel):
    DEBUG: bool = _str("DEBUG", "false").lower() == "true"

    # API server
    API_HOST: str = _str("API_HOST", "0.0.0.0")
    API_PORT: int = _int("API_PORT", 8000)
    API_WORKERS: int = _int("API_WORKERS", 1)
    API_CORS_ORIGINS: list[str] = [
        x.strip() for x in _str("API_CORS_ORIGINS", "*").split(",") if x.strip()
    ]

    # Persistence
    MONGO_LABEL: str = _str("MONGO_LABEL", "broadcast")

    # Media server control API (digest auth)
    MEDIA_SERVER_HOST: str = _str("MEDIA_SERVER_HOST", "127.0.0.1")
    MEDIA_SERVER_API_PORT: int = _int("MEDIA_SERVER_API_PORT", 8087)
    MEDIA_SERVER_USER: str = _str("MEDIA_SERVER_USER", "admin")
    MEDIA_SERVER_PASSWORD: str = _str("MEDIA_SERVER_PASSWORD")
    MEDIA_SERVER_APPLICATION: str = _str("MEDIA_SERVER_APPLICATION", "live")
    MEDIA_SERVER_API_TIMEOUT: float = _float("MEDIA_SERVER_API_TIMEOUT", 30)
    # Public streaming port used to build RTMP/HLS/DASH URLs
    MEDIA_SERVER_STREAMING_PORT: int = _int("MEDIA_SERVER_STREAMING_PORT", 1935)
    MEDIA_SERVER_PUSHPUBLISH_DIR: str = _str(
        "MEDIA_SERVER_PUSHPUBLISH_DIR", "/usr/local/WowzaStreamingEngine/conf/pushpublish"
    )
    # Bitrate in kbps reported for a freshly started stream
    MEDIA_SERVER_DEFAULT_BITRATE: int = _int("MEDIA_SERVER_DEFAULT_BITRATE", 2500)

    # SSH access to the media server host (mapping file deployment)
    MEDIA_SERVER_SSH_PORT: int = _int("MEDIA_SERVER_SSH_PORT", 22)
    MEDIA_SERVER_SSH_USER: str = _str("MEDIA_SERVER_SSH_USER", "root")
    MEDIA_SERVER_SSH_PASSWORD: str | None = _str("MEDIA_SERVER_SSH_PASSWORD") or None
    MEDIA_SERVER_SSH_KEY_PATH: str | None = _str("MEDIA_SERVER_SSH_KEY_PATH") or None
    SSH_CONNECT_TIMEOUT: float = _float("SSH_CONNECT_TIMEOUT", 15)

    # Relay fallback server, used when the request names no server
    RELAY_DEFAULT_SERVER_HOST: str = _str("RELAY_DEFAULT_SERVER_HOST") or _str(
        "MEDIA_SERVER_HOST", "127.0.0.1"
    )
    RELAY_DEFAULT_SERVER_SSH_PORT: int = _int("RELAY_DEFAULT_SERVER_SSH_PORT", 22)
    RELAY_DEFAULT_SERVER_SSH_USER: str = _str("RELAY_DEFAULT_SERVER_SSH_USER", "root")
    RELAY_DEFAULT_SERVER_SSH_PASSWORD: str | None = (
        _str("RELAY_DEFAULT_SERVER_SSH_PASSWORD") or _str("MEDIA_SERVER_SSH_PASSWORD") or None
    )

    # Relay process
    RELAY_FFMPEG_PATH: str = _str("RELAY_FFMPEG_PATH", "/usr/local/bin/ffmpeg")
    RELAY_OUTPUT_BASE_URL: str = _str("RELAY_OUTPUT_BASE_URL", "rtmp://localhost:1935")
    RELAY_SETTLE_SECONDS: float = _float("RELAY_SETTLE_SECONDS", 10)
    RELAY_PRESTOP_SECONDS: float = _float("RELAY_PRESTOP_SECONDS", 2)
    RELAY_PROBE_TIMEOUT_SECONDS: float = _float("RELAY_PROBE_TIMEOUT_SECONDS", 10)

    # A preparando row older than this is treated as an abandoned start
    TRANSMISSION_PREPARING_TIMEOUT_SECONDS: float = _float("TRANSMISSION_PREPARING_TIMEOUT_SECONDS", 300)

    # Stream quality defaults when neither request nor media server supply them
    DEFAULT_RESOLUTION: str = _str("DEFAULT_RESOLUTION", "1920x1080")
    DEFAULT_FPS: int = _int("DEFAULT_FPS", 30)


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
