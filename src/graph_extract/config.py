from __future__ import annotations
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings

from .prompts import SYSTEM_PROMPT, USER_PROMPT_TEMPLATE


class Settings(BaseSettings):
    # Ollama configuration
    ollama_base_url: str = "http://127.0.0.1:11434"
    ollama_extraction_model: str = ""
    temperature: float = 0.5
    request_timeout: Optional[float] = None

    # Prompts
    system_prompt: str = SYSTEM_PROMPT
    user_prompt_template: str = USER_PROMPT_TEMPLATE

    # Segmentation
    chunk_size: int = 1024

    # Logging / export
    log_preview_chars: int = 50
    debug_pipeline: bool = True
    export_dir: Path = Path("exports")

    class Config:
        env_file = ".env"


settings = Settings()


@dataclass(frozen=True)
class RunConfiguration:
    """Parameters for one extraction run. Never mutated while the run is active."""

    base_url: str
    model: str
    temperature: float
    system_prompt: str
    user_prompt_template: str
    chunk_size: int

    @classmethod
    def from_settings(cls, source: Settings | None = None, **overrides) :
        source = source or settings
        config = cls(
            base_url=source.ollama_base_url,
            model=source.ollama_extraction_model,
            temperature=source.temperature,
            system_prompt=source.system_prompt,
            user_prompt_template=source.user_prompt_template,
            chunk_size=source.chunk_size,
        )
        overrides = {k: v for k, v in overrides.items() if v is not None}
        if overrides:
            config = replace(config, **overrides)
        return config
