"""
HireSignal - Configuration Management
Loads the YAML configuration once per process and exposes it as dataclasses.
"""

import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field


# Deterministic-leaning tasks never run hotter than this.
MAX_TEMPERATURE = 0.3
MAX_BATCH_WORKERS = 5


@dataclass
class InferenceConfig:
    """Language-model endpoint configuration."""
    base_url: str
    model: str
    timeout: int = 60
    api_key_env: str = "HIRESIGNAL_INFERENCE_API_KEY"
    api_key: Optional[str] = None
    likelihood_temperature: float = 0.25
    kit_temperature: float = 0.2

    def __post_init__(self):
        for name in ("likelihood_temperature", "kit_temperature"):
            value = getattr(self, name)
            if not 0.0 <= value <= MAX_TEMPERATURE:
                raise ValueError(f"{name} must be within [0, {MAX_TEMPERATURE}], got {value}")


@dataclass
class StoreConfig:
    """Data store configuration."""
    data_dir: str = "data"


@dataclass
class BatchConfig:
    """Bulk run configuration."""
    max_workers: int = 3
    deadline_seconds: float = 120.0

    def __post_init__(self):
        if not 1 <= self.max_workers <= MAX_BATCH_WORKERS:
            raise ValueError(f"batch.max_workers must be within [1, {MAX_BATCH_WORKERS}]")


@dataclass
class RankingConfig:
    """Corpus ranking limits."""
    corpus_fetch_limit: int = 100
    prompt_slice: int = 80


@dataclass
class KitConfig:
    """Interview kit cardinality rules."""
    min_questions: int = 8
    max_questions: int = 12
    min_per_category: int = 2


@dataclass
class FairnessConfig:
    """Fairness policy metadata attached to every audit entry."""
    policy_version: str = "1.0"


@dataclass
class ServerConfig:
    """HTTP surface configuration."""
    allowed_roles: List[str] = field(default_factory=lambda: ["recruiter", "admin"])
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_dir: str = "logs"


@dataclass
class AppConfig:
    """Complete application configuration."""
    inference: InferenceConfig
    store: StoreConfig = field(default_factory=StoreConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    ranking: RankingConfig = field(default_factory=RankingConfig)
    kit: KitConfig = field(default_factory=KitConfig)
    fairness: FairnessConfig = field(default_factory=FairnessConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    base_path: Path = field(default_factory=lambda: Path.cwd())

    @property
    def data_dir(self) -> Path:
        path = Path(self.store.data_dir)
        return path if path.is_absolute() else self.base_path / path

    @property
    def log_dir(self) -> Path:
        path = Path(self.logging.log_dir)
        return path if path.is_absolute() else self.base_path / path

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_path: Optional[Path] = None) -> "AppConfig":
        """
        Build a configuration from a parsed YAML mapping.

        Args:
            data: Mapping with one key per configuration section.
            base_path: Directory relative paths are resolved against.

        Returns:
            AppConfig instance.
        """
        return cls(
            inference=InferenceConfig(**data["inference"]),
            store=StoreConfig(**data.get("store", {})),
            batch=BatchConfig(**data.get("batch", {})),
            ranking=RankingConfig(**data.get("ranking", {})),
            kit=KitConfig(**data.get("kit", {})),
            fairness=FairnessConfig(**data.get("fairness", {})),
            server=ServerConfig(**data.get("server", {})),
            logging=LoggingConfig(**data.get("logging", {})),
            base_path=Path(base_path) if base_path else Path.cwd()
        )


class ConfigManager:
    """
    Manages configuration loading.

    Priority for each overridable value:
    1. Environment variable (HIRESIGNAL_*)
    2. config/default.yaml
    """

    ENV_OVERRIDES = {
        "HIRESIGNAL_DATA_DIR": ("store", "data_dir"),
        "HIRESIGNAL_INFERENCE_BASE_URL": ("inference", "base_url"),
        "HIRESIGNAL_INFERENCE_MODEL": ("inference", "model"),
    }

    def __init__(self, base_path: Optional[Path] = None):
        self.base_path = Path(base_path) if base_path else Path.cwd()
        self.config_dir = self.base_path / "config"
        self._config: Optional[AppConfig] = None

    def load_yaml(self, filepath: Path) -> Dict[str, Any]:
        """Load a YAML configuration file."""
        if not filepath.exists():
            raise FileNotFoundError(f"Configuration file not found: {filepath}")

        with open(filepath, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    def apply_env_overrides(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Overlay HIRESIGNAL_* environment variables onto the raw mapping."""
        for env_name, (section, key) in self.ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                data.setdefault(section, {})[key] = value

        inference = data.setdefault("inference", {})
        key_env = inference.get("api_key_env", "HIRESIGNAL_INFERENCE_API_KEY")
        if os.environ.get(key_env):
            inference["api_key"] = os.environ[key_env]
        return data

    def load(self) -> AppConfig:
        """
        Load complete application configuration.

        Returns:
            Complete AppConfig instance.
        """
        data = self.load_yaml(self.config_dir / "default.yaml")
        data = self.apply_env_overrides(data)
        self._config = AppConfig.from_dict(data, self.base_path)
        return self._config

    def use(self, config: AppConfig) -> AppConfig:
        """Install an already-built configuration instead of loading one."""
        self._config = config
        return config

    @property
    def config(self) -> AppConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            return self.load()
        return self._config

    def get_summary(self) -> Dict[str, Any]:
        """Get a non-secret summary of the configuration for the health endpoint."""
        config = self.config
        return {
            "model": config.inference.model,
            "inference_base_url": config.inference.base_url,
            "api_key_configured": bool(config.inference.api_key),
            "batch_workers": config.batch.max_workers,
            "policy_version": config.fairness.policy_version
        }


# Global config manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(base_path: Optional[Path] = None) -> ConfigManager:
    """Get or create the global config manager."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(base_path)
    return _config_manager


def get_config() -> AppConfig:
    """Get the current application configuration."""
    return get_config_manager().config
