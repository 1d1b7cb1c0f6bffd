from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class _Config(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    db_connection_string: str = "sqlite://:memory:"

    cloudinary_api_base: str = "https://api.cloudinary.com/v1_1"
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_upload_preset: str = "connect_app_preset"

    # sizes are in megabytes, posts and stories are separate policies
    post_max_image_mb: float = 5
    post_max_video_mb: float = 50
    story_max_image_mb: float = 5
    story_max_video_mb: float = 70

    upload_timeout: float = 180
    upload_max_attempts: int = 3
    upload_backoff_base: float = 2.0
    upload_backoff_jitter: float = 2.0
    upload_backoff_max: float = 15.0
    upload_network_probe: bool = True
    upload_probe_timeout: float = 5.0

    story_ttl: int = 60 * 60 * 24

    player_long_press_ms: int = 300
    player_double_tap_ms: int = 300
    player_pause_icon_ms: int = 800
    player_controls_ms: int = 3000
    player_loop: bool = True

    @field_validator("cloudinary_api_base", mode="before")
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("upload_max_attempts", mode="after")
    def at_least_one_attempt(cls, value: int) -> int:
        return max(1, value)


config = _Config()
