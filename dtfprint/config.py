from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "DTF Print Pipeline"
    env: str = "local"
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    print_dpi: int = 300
    print_bleed_in: float = 0.125
    print_safety_margin_in: float = 0.125
    # transparent margin added around the generated subject, fraction of the shorter side
    print_margin_fraction: float = 0.12
    default_width_in: float = 11.0
    default_height_in: float = 11.0

    openai_api_key: str | None = None
    generator_api_url: str = "https://api.openai.com/v1/images/generations"
    generator_model: str = "gpt-image-1"
    generator_size_hint: str = "1024x1024"
    generator_prompt_suffix: str = (
        "Transparent background. Centered subject. Full subject in frame. "
        "Extra space from edges. Clean edges. No watermark. No text."
    )
    generator_fetch_timeout_seconds: float = 30.0

    acquisition_attempt_cap: int = 6
    acquisition_backoff_seconds: float = 1.5

    pipeline_max_workers: int = 4
    variation_count_max: int = 8

    proof_line_px: int = 2
    proof_line_alpha: float = 0.7

    storage_root: str = "data/blobs"
    storage_public_base_url: str | None = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
