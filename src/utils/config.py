"""Configuration loading and validation for tubesafe."""

import os
import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional
from pathlib import Path
from dotenv import load_dotenv
from rich.logging import RichHandler

from services.filter_service import FILTER_MODES
from utils.duration import DurationBounds

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / '.env')

AI_PROVIDERS = ('openai', 'anthropic')


def load_config() -> Dict:
    """Load configuration from environment variables."""
    def resolve_path(path: Optional[str], default_relative: str) -> str:
        if not path:
            return str(PROJECT_ROOT / default_relative)
        if Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    config = {
        # API keys
        'youtube_api_key': os.getenv('YOUTUBE_API_KEY'),
        'openai_api_key': os.getenv('OPENAI_API_KEY'),
        'anthropic_api_key': os.getenv('ANTHROPIC_API_KEY'),
        'ai_provider': os.getenv('AI_PROVIDER', 'openai'),

        # Model configurations
        'openai_model': os.getenv('OPENAI_MODEL', 'gpt-3.5-turbo'),
        'anthropic_model': os.getenv('ANTHROPIC_MODEL', 'claude-3-haiku-20240307'),

        # Filtering
        'custom_filter_prompt': os.getenv('CUSTOM_FILTER_PROMPT'),
        'default_filter_mode': os.getenv('DEFAULT_FILTER_MODE', 'balanced'),
        'min_duration': int(os.getenv('MIN_DURATION_MINUTES', '2')),
        'max_duration': int(os.getenv('MAX_DURATION_MINUTES', '30')),

        # Search
        'search_language': os.getenv('SEARCH_LANGUAGE', 'en'),
        'region_code': os.getenv('REGION_CODE', 'US'),

        # Cache and database
        'cache_duration_hours': int(os.getenv('CACHE_DURATION_HOURS', '24')),
        'database_path': resolve_path(os.getenv('DATABASE_PATH'), 'data/tubesafe.db'),
        'log_level': os.getenv('LOG_LEVEL', 'INFO'),
    }

    return config


def validate_config(config: Dict) -> List[str]:
    """Validate configuration and return list of errors."""
    errors = []

    if config.get('ai_provider') not in AI_PROVIDERS:
        errors.append(f"AI_PROVIDER must be one of {', '.join(AI_PROVIDERS)}")

    if config.get('default_filter_mode') not in FILTER_MODES:
        errors.append(f"DEFAULT_FILTER_MODE must be one of {', '.join(FILTER_MODES)}")

    min_duration = config.get('min_duration', 2)
    max_duration = config.get('max_duration', 30)
    if min_duration < 0 or max_duration < 0:
        errors.append("Duration bounds must be non-negative")
    elif min_duration > max_duration:
        errors.append("MIN_DURATION_MINUTES cannot exceed MAX_DURATION_MINUTES")

    if config.get('cache_duration_hours', 24) <= 0:
        errors.append("CACHE_DURATION_HOURS must be positive")

    # A missing YouTube key is not an error: searches return a placeholder result.
    return errors


@dataclass(frozen=True)
class PipelineConfig:
    """Settings for one pipeline run, read once and passed by value."""

    youtube_api_key: Optional[str]
    ai_provider: str
    ai_api_key: Optional[str]
    ai_model: Optional[str]
    custom_filter_prompt: Optional[str]
    duration_bounds: DurationBounds
    search_language: str = 'en'
    region_code: str = 'US'

    @classmethod
    def from_dict(cls, config: Dict) -> 'PipelineConfig':
        provider = config.get('ai_provider') or 'openai'
        if provider == 'anthropic':
            ai_api_key = config.get('anthropic_api_key')
            ai_model = config.get('anthropic_model')
        else:
            provider = 'openai'
            ai_api_key = config.get('openai_api_key')
            ai_model = config.get('openai_model')

        return cls(
            youtube_api_key=config.get('youtube_api_key') or None,
            ai_provider=provider,
            ai_api_key=ai_api_key or None,
            ai_model=ai_model,
            custom_filter_prompt=config.get('custom_filter_prompt') or None,
            duration_bounds=DurationBounds(
                min_minutes=config.get('min_duration', 2),
                max_minutes=config.get('max_duration', 30),
            ),
            search_language=config.get('search_language', 'en'),
            region_code=config.get('region_code', 'US'),
        )


class SettingsStore:
    """Mutable settings shared between callers, guarded by one lock."""

    def __init__(self, config: Optional[Dict] = None):
        self._lock = threading.Lock()
        self._config = dict(config if config is not None else load_config())

    def update(self, **changes) -> None:
        with self._lock:
            self._config.update(changes)

    def get(self, key: str, default=None):
        with self._lock:
            return self._config.get(key, default)

    def as_dict(self) -> Dict:
        with self._lock:
            return dict(self._config)

    def snapshot(self) -> PipelineConfig:
        """Take a consistent copy for one run under a single lock acquisition."""
        with self._lock:
            return PipelineConfig.from_dict(dict(self._config))


def setup_logging(log_level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """Set up logging configuration with Rich for terminal output."""
    # Clear any existing handlers
    logging.root.handlers.clear()

    rich_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False
    )
    handlers: List[logging.Handler] = [rich_handler]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=handlers,
        format="%(message)s"
    )

    # Suppress noisy third-party loggers
    noisy_loggers = [
        'urllib3.connectionpool',
        'requests.packages.urllib3.connectionpool'
    ]

    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
