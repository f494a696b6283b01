"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        """Load settings from YAML file."""
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        # Flatten nested structure to match Settings field names
        flattened = {}
        if 'server' in data:
            flattened['host'] = data['server'].get('host')
            flattened['port'] = data['server'].get('port')
        if 'openai' in data:
            openai_cfg = data['openai']
            flattened['fast_model'] = openai_cfg.get('fast_model')
            flattened['balanced_model'] = openai_cfg.get('balanced_model')
            flattened['quality_model'] = openai_cfg.get('quality_model')
            flattened['tts_model'] = openai_cfg.get('tts_model')
            flattened['tts_voice'] = openai_cfg.get('tts_voice')
        if 'generation' in data:
            generation = data['generation']
            flattened['generation_max_attempts'] = generation.get('max_attempts')
            flattened['generation_base_delay_seconds'] = generation.get('base_delay_seconds')
        if 'extraction' in data:
            extraction = data['extraction']
            flattened['max_extract_chars'] = extraction.get('max_chars')
            flattened['max_pdf_pages'] = extraction.get('max_pdf_pages')
        if 'practice' in data:
            flattened['session_ttl_seconds'] = data['practice'].get('session_ttl_seconds')
        if 'storage' in data:
            flattened['user_data_filename'] = data['storage'].get('user_data_filename')

        # Remove None values
        return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI
    openai_api_key: str = Field(description="OpenAI API key")
    fast_model: str = Field(default="gpt-4o-mini")
    balanced_model: str = Field(default="gpt-4o-mini")
    quality_model: str = Field(default="gpt-4o")
    tts_model: str = Field(default="gpt-4o-mini-tts")
    tts_voice: str = Field(default="onyx")

    # Generation
    generation_max_attempts: int = Field(default=3)
    generation_base_delay_seconds: float = Field(default=1.0)

    # Extraction
    max_extract_chars: int = Field(default=25000)
    max_pdf_pages: int = Field(default=20)

    # Practice sessions idle for longer than this are dropped from memory
    session_ttl_seconds: float = Field(default=3600)

    # Supabase (optional: None disables remote persistence)
    supabase_url: str | None = Field(default=None)
    supabase_key: str | None = Field(default=None)

    # Authentication (optional: None disables auth)
    app_secret: str | None = Field(default=None)

    # Password gates for teacher actions. Compared in-process, not an authorization layer.
    teacher_password: str = Field(default="leerkracht")
    feedback_password: str = Field(default="TALFEEDBACK")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Storage
    user_data_filename: str = Field(default="taaltrekkers-data-v2.json")

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)

    @property
    def data_dir(self) -> Path:
        d = self.project_root / "data"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def user_data_path(self) -> Path:
        return self.data_dir / self.user_data_filename

    @property
    def prompts_dir(self) -> Path:
        return self.project_root / "config" / "prompts"

    @property
    def frontend_dir(self) -> Path:
        return self.project_root / "frontend"

    @property
    def supabase_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def model_for_tier(self, tier: str | None) -> str:
        """Map the 'fast' / 'balanced' / 'quality' tier to a model name."""
        if tier == "fast":
            return self.fast_model
        if tier == "quality":
            return self.quality_model
        return self.balanced_model

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()


@functools.lru_cache(maxsize=1)
def load_word_lists() -> dict:
    """Load the predefined word lists and their difficulty mapping from YAML."""
    path = _find_project_root() / "config" / "word_lists.yaml"
    if not path.exists():
        raise FileNotFoundError(f"Word list file not found: {path}")
    with open(path, encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    return data


@functools.lru_cache(maxsize=1)
def load_subject_instructions() -> dict:
    """Load subject -> prompt phrasing table from YAML."""
    path = _find_project_root() / "config" / "prompts" / "subjects.yaml"
    if not path.exists():
        raise FileNotFoundError(f"Subjects file not found: {path}")
    with open(path, encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    return data


@functools.lru_cache(maxsize=1)
def load_predefined_models() -> dict:
    """Load curated Frayer models that bypass generation."""
    path = _find_project_root() / "config" / "predefined_models.yaml"
    if not path.exists():
        return {}
    with open(path, encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    return data.get('models', {})
