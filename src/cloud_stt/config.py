from pydantic_settings import BaseSettings, SettingsConfigDict


class CloudSttConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CLOUD_STT_")

    connect_timeout_s: float = 10.0
    read_timeout_s: float = 30.0
    http_timeout_s: float = 120.0
    poll_interval_s: float = 0.5

    realtime_sample_rate: int = 24000
    soniox_realtime_url: str = "wss://stt-rt.soniox.com/transcribe-websocket"

    api_key: str = ""
    api_key_file: str = ""

    log_file: str = ""

    def read_secret(self, path: str) -> str:
        if not path:
            return ""
        try:
            with open(path) as f:
                return f.read().strip()
        except FileNotFoundError:
            return ""

    def resolve_api_key(self, path: str = "") -> str:
        return self.read_secret(path or self.api_key_file) or self.api_key
