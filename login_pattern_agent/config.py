from __future__ import annotations

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    llm_provider: str = "gemini"
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str | None = None
    llm_max_new_tokens: int = 1024

    headless: bool = False
    profile_base: str = "./profiles"
    chrome_path: str | None = None
    viewport_width: int = 1366
    viewport_height: int = 768
    navigation_timeout_ms: int = 60000
    initial_wait_ms: int = 2800

    wait_after_click_ms: int = 2200
    click_timeout_ms: int = 5000
    fill_settle_ms: int = 300
    placeholder_credential: str = "dummy@example.com"
    max_fields: int = 40
    max_controls: int = 80
    outer_html_limit: int = 300

    save_path_json: str = "./login_pattern.json"
    save_path_yaml: str = "./login_pattern.yaml"
    prompt_verbose: bool = False


def get_settings() -> Settings:
    return Settings()


settings = get_settings()
