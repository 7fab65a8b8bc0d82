#!/usr/bin/env python3
"""
PolicyCompare Configuration & Logging Module
============================================
Centralized configuration, structured logging, and error types.

Version: reads from version.json (module v1.0)
"""

import os
import sys
import json
import logging
import uuid
import time
import threading
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from pathlib import Path
from dataclasses import dataclass, field
from contextlib import contextmanager

# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================
DEFAULT_PORT = 5060
DEFAULT_MAX_DOCUMENT_LINES = 2000   # LCS table is lines x lines
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024  # 5MB max per log file
LOG_BACKUP_COUNT = 5                # Number of log backup files to keep

# Diff heuristics
DEFAULT_MODIFICATION_SIMILARITY = 0.5
DEFAULT_MODIFICATION_WINDOW = 5
DEFAULT_MAJOR_CHANGE_RATIO = 0.3
DEFAULT_MAJOR_WORD_DELTA = 10
DEFAULT_SECTION_TITLE_SIMILARITY = 0.8

# =============================================================================
# VERSION - Read from version.json (Single Source of Truth)
# =============================================================================
def _load_version():
    """Load version from version.json file."""
    version_file = Path(__file__).parent / 'version.json'
    try:
        if version_file.exists():
            with open(version_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
                return data.get('version', '1.0.0')
    except (OSError, json.JSONDecodeError):
        pass
    return '1.0.0'  # Fallback version

__version__ = _load_version()
VERSION = __version__
APP_NAME = "PolicyCompare"


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == 'true'


# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================

@dataclass
class AppConfig:
    """Application configuration with secure defaults."""

    # Server settings
    host: str = "127.0.0.1"  # Localhost only by default
    port: int = DEFAULT_PORT
    debug: bool = False

    # Storage
    base_dir: Path = field(default_factory=lambda: Path(__file__).parent)
    db_path: str = ""
    log_dir: Path = field(default_factory=lambda: Path(__file__).parent / 'logs')

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # Options: json, text
    log_to_file: bool = False
    log_to_console: bool = True

    # Comparison limits and heuristics
    max_document_lines: int = DEFAULT_MAX_DOCUMENT_LINES
    modification_similarity: float = DEFAULT_MODIFICATION_SIMILARITY
    modification_window: int = DEFAULT_MODIFICATION_WINDOW
    major_change_ratio: float = DEFAULT_MAJOR_CHANGE_RATIO
    major_word_delta: int = DEFAULT_MAJOR_WORD_DELTA
    section_title_similarity: float = DEFAULT_SECTION_TITLE_SIMILARITY

    def __post_init__(self):
        """Fill derived defaults."""
        if not self.db_path:
            self.db_path = str(self.base_dir / 'policy_versions.db')

        if self.log_to_file:
            self.log_dir.mkdir(exist_ok=True)

        # Production never runs in debug
        if os.environ.get('PC_ENV', 'development').lower() == 'production':
            self.debug = False
            self.log_level = "WARNING"

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Load configuration from environment variables."""
        return cls(
            host=os.environ.get('PC_HOST', '127.0.0.1'),
            port=int(os.environ.get('PC_PORT', str(DEFAULT_PORT))),
            debug=_env_flag('PC_DEBUG', 'false'),
            db_path=os.environ.get('PC_DB_PATH', ''),
            log_level=os.environ.get('PC_LOG_LEVEL', 'INFO'),
            log_format=os.environ.get('PC_LOG_FORMAT', 'json'),
            log_to_file=_env_flag('PC_LOG_TO_FILE', 'false'),
            log_to_console=_env_flag('PC_LOG_TO_CONSOLE', 'true'),
            max_document_lines=int(os.environ.get(
                'PC_MAX_DOCUMENT_LINES', str(DEFAULT_MAX_DOCUMENT_LINES))),
            modification_similarity=float(os.environ.get(
                'PC_MODIFICATION_SIMILARITY', str(DEFAULT_MODIFICATION_SIMILARITY))),
            modification_window=int(os.environ.get(
                'PC_MODIFICATION_WINDOW', str(DEFAULT_MODIFICATION_WINDOW))),
            major_change_ratio=float(os.environ.get(
                'PC_MAJOR_CHANGE_RATIO', str(DEFAULT_MAJOR_CHANGE_RATIO))),
            major_word_delta=int(os.environ.get(
                'PC_MAJOR_WORD_DELTA', str(DEFAULT_MAJOR_WORD_DELTA))),
            section_title_similarity=float(os.environ.get(
                'PC_SECTION_TITLE_SIMILARITY', str(DEFAULT_SECTION_TITLE_SIMILARITY))),
        )

    def validate(self) -> tuple:
        """Validate configuration and return (is_valid, errors)."""
        errors = []

        if self.debug and os.environ.get('PC_ENV') == 'production':
            errors.append("Debug mode cannot be enabled in production")

        for name in ('modification_similarity', 'major_change_ratio',
                     'section_title_similarity'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                errors.append(f"{name} must be between 0 and 1, got {value}")

        if self.modification_window < 2:
            errors.append("modification_window must be at least 2")

        if self.major_word_delta < 0:
            errors.append("major_word_delta cannot be negative")

        if self.max_document_lines <= 0:
            errors.append("max_document_lines must be positive")

        if self.log_format not in ('json', 'text'):
            errors.append(f"Invalid log_format: {self.log_format}. Must be 'json' or 'text'")

        return (len(errors) == 0, errors)

    def diff_thresholds(self):
        """Build the heuristic thresholds used by the diff engine."""
        from policy_compare.models import DiffThresholds
        return DiffThresholds(
            modification_similarity=self.modification_similarity,
            modification_window=self.modification_window,
            major_change_ratio=self.major_change_ratio,
            major_word_delta=self.major_word_delta,
            section_title_similarity=self.section_title_similarity,
        )


# Global config instance
_config: Optional[AppConfig] = None

def get_config() -> AppConfig:
    """Get or create the global configuration."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config():
    """Reset the global configuration (for testing)."""
    global _config
    _config = None


# =============================================================================
# STRUCTURED LOGGING
# =============================================================================

class StructuredLogger:
    """Thread-safe structured JSON logger with correlation IDs."""

    _local = threading.local()

    def __init__(self, name: str, config: Optional[AppConfig] = None):
        self.name = name
        self.config = config or get_config()
        self._setup_logger()

    def _setup_logger(self):
        """Configure the underlying Python logger."""
        self.logger = logging.getLogger(self.name)
        self.logger.setLevel(getattr(logging, self.config.log_level.upper(), logging.INFO))
        self.logger.handlers.clear()

        if self.config.log_format == 'json':
            formatter = JsonFormatter()
        else:
            formatter = logging.Formatter(
                '%(asctime)s [%(levelname)s] %(name)s - %(message)s'
            )

        if self.config.log_to_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        if self.config.log_to_file:
            from logging.handlers import RotatingFileHandler
            log_file = self.config.log_dir / f"{self.name.lower()}.log"
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

    @classmethod
    def set_correlation_id(cls, correlation_id: str):
        """Set correlation ID for current thread."""
        cls._local.correlation_id = correlation_id

    @classmethod
    def get_correlation_id(cls) -> str:
        """Get correlation ID for current thread."""
        return getattr(cls._local, 'correlation_id', None) or str(uuid.uuid4())[:8]

    @classmethod
    def new_correlation_id(cls) -> str:
        """Generate and set a new correlation ID."""
        correlation_id = str(uuid.uuid4())[:12]
        cls.set_correlation_id(correlation_id)
        return correlation_id

    def _build_log_record(self, level: str, message: str, **kwargs) -> Dict[str, Any]:
        """Build a structured log record."""
        return {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': level,
            'logger': self.name,
            'correlation_id': self.get_correlation_id(),
            'message': message,
            **kwargs
        }

    def _render(self, level: str, message: str, **kwargs) -> str:
        if self.config.log_format == 'json':
            return json.dumps(self._build_log_record(level, message, **kwargs), default=str)
        return message

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self.logger.debug(self._render('DEBUG', message, **kwargs))

    def info(self, message: str, **kwargs):
        """Log info message."""
        self.logger.info(self._render('INFO', message, **kwargs))

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self.logger.warning(self._render('WARNING', message, **kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs):
        """Log error message with optional exception info."""
        self.logger.error(self._render('ERROR', message, **kwargs), exc_info=exc_info)

    def exception(self, message: str, **kwargs):
        """Log exception with full traceback."""
        self.error(message, exc_info=True, **kwargs)

    @contextmanager
    def log_operation(self, operation: str, **context):
        """Context manager for logging operation start/end with timing."""
        start_time = time.time()
        self.debug(f"{operation} started", operation=operation, status='started', **context)
        try:
            yield
            duration_ms = (time.time() - start_time) * 1000
            self.info(f"{operation} completed", operation=operation, status='completed',
                      duration_ms=round(duration_ms, 2), **context)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self.warning(f"{operation} failed: {e}", operation=operation, status='failed',
                         duration_ms=round(duration_ms, 2), **context)
            raise


class JsonFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        try:
            # StructuredLogger already rendered a JSON record
            log_data = json.loads(message)
            if not isinstance(log_data, dict):
                raise ValueError
        except ValueError:
            log_data = {
                'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
                'level': record.levelname,
                'logger': record.name,
                'message': message,
            }

        if record.exc_info:
            log_data['traceback'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


# Factory function for getting loggers
def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name, get_config())


# =============================================================================
# ERROR HANDLING
# =============================================================================

class PolicyCompareError(Exception):
    """Base exception for PolicyCompare."""

    def __init__(self, message: str, code: str = "UNKNOWN_ERROR",
                 status_code: int = 500, details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to API response dict."""
        return {
            'success': False,
            'error': {
                'code': self.code,
                'message': self.message,
                'details': self.details
            }
        }


class ValidationError(PolicyCompareError):
    """Input validation error."""
    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400,
                         details={'field': field, **kwargs})


class NotFoundError(PolicyCompareError):
    """A referenced document or version does not exist."""
    def __init__(self, message: str, resource: Optional[str] = None,
                 resource_id: Any = None, **kwargs):
        super().__init__(message, code="NOT_FOUND", status_code=404,
                         details={'resource': resource, 'id': resource_id, **kwargs})
