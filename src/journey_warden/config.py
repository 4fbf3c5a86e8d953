"""Configuration management for Journey Warden."""

from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .healing.rules import HealingConfig
from .uncertainty.scorer import ScoringOptions

# Load .env file at import time
load_dotenv()

CONFIG_FILENAMES = ["journey_warden.yaml", "journey_warden.yml", ".journey_warden.yaml"]


class MatcherConfig(BaseModel):
    """Step matching configuration."""

    require_locator_hints: bool = True
    use_glossary_fallback: bool = True
    use_fuzzy: bool = True
    fuzzy_min_similarity: float = Field(default=0.85, ge=0.0, le=1.0)
    glossary_path: Path | None = None


class NormalizerConfig(BaseModel):
    include_blocked: bool = True
    strict: bool = False


class LangfuseConfig(BaseModel):
    """Langfuse observability configuration."""

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None


class RunnerConfig(BaseModel):
    """How the Playwright suite is launched for verification."""

    command: str = "npx playwright test"
    reporter_args: list[str] = Field(default_factory=lambda: ["--reporter=json"])
    timeout: int | None = 600
    cwd: Path | None = None


class Config(BaseSettings):
    """Main configuration for Journey Warden."""

    model_config = SettingsConfigDict(
        env_prefix="JOURNEY_WARDEN_",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    heal_log_dir: Path = Path(".journey_warden/heal-logs")
    report_dir: Path = Path(".journey_warden/reports")

    matcher: MatcherConfig = Field(default_factory=MatcherConfig)
    normalizer: NormalizerConfig = Field(default_factory=NormalizerConfig)
    healing: HealingConfig = Field(default_factory=HealingConfig)
    scoring: ScoringOptions = Field(default_factory=ScoringOptions)
    langfuse: LangfuseConfig = Field(default_factory=LangfuseConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from a YAML file, with environment variables filling the rest."""
    config_data: dict = {}

    if config_path is None:
        for name in CONFIG_FILENAMES:
            if Path(name).exists():
                config_path = Path(name)
                break

    if config_path and config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if raw and "journey_warden" in raw:
                config_data = raw["journey_warden"]
            elif raw:
                config_data = raw

    return Config(**config_data)
