from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {
        "env_file": "../.env",
        "extra": "ignore",
        "env_prefix": "",
        "case_sensitive": False,
    }

    # Gemini models
    gemini_text_model: str = "gemini-2.5-flash"
    gemini_tts_model: str = "gemini-2.5-flash-preview-tts"
    gemini_image_model: str = "gemini-2.5-flash-image"
    tts_voice: str = "Kore"
    capability_timeout_seconds: float = 90.0

    # Narration audio (raw PCM returned by the TTS model)
    audio_sample_rate: int = 24000
    audio_channels: int = 1

    # Local storage (credential only)
    local_storage_path: str = "~/.landmark_explorer/local_storage.json"

    # App
    environment: str = "development"
    locale: str = "en"  # "en", "ko"
    log_level: str = "INFO"
    log_file: str = ""
    max_upload_bytes: int = 20 * 1024 * 1024
    use_mock_capabilities: bool = False


settings = Settings()
