"""Simple YAML configuration loader for LiveCast."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "recorder": {
        "rotation_interval_seconds": 6.0,
        "flush_grace_seconds": 0.1,
        "finalize_workers": 2,
        "status_refresh_seconds": 1.0,
    },
    "liveness": {
        "window_seconds": 30.0,
        "enforce_window_invariant": False,
    },
    "storage": {
        "backend": "file",
        "directory": "LIVERESULTS",
        "clear_on_start": True,
    },
    "encoder": {
        "type": "ffmpeg",
        "input_format": "v4l2",
        "input_device": "/dev/video0",
        "audio_format": None,
        "audio_device": None,
        "video_bitrate": 2000000,
        "audio_bitrate": 128000,
        "width": 1280,
        "height": 720,
        "frame_rate": 30,
    },
    "transcode": {
        "enabled": True,
        "ffmpeg_binary": "ffmpeg",
        "timeout_seconds": 30.0,
    },
    "server": {
        "host": "0.0.0.0",
        "port": 3000,
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/livecast.log",
        "console_output": True,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class LiveCastConfig:
    """LiveCast configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults
                        are used and relative paths resolve against the
                        current directory.
        """
        if config_path is None:
            self.config_file = None
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
        else:
            self.config_file = Path(config_path)

            if not self.config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

            logger.info(f"Loading configuration from: {self.config_file}")
            self.config = self._load_config()

        self._check_liveness_window()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}")

        if not loaded:
            raise ValueError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping")

        config = _merge(DEFAULT_CONFIG, loaded)

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        # Resolve segment store directory
        store_dir = config['storage'].get('directory')
        if store_dir and not os.path.isabs(store_dir):
            config['storage']['directory'] = str(config_dir / store_dir)

        # Resolve log file path
        log_path = config['logging'].get('file_path')
        if log_path and not os.path.isabs(log_path):
            config['logging']['file_path'] = str(config_dir / log_path)

    def _check_liveness_window(self) -> None:
        """Flag a liveness window that a normal rotation cadence can outlast."""
        window = float(self.get('liveness.window_seconds'))
        interval = float(self.get('recorder.rotation_interval_seconds'))
        if window > interval:
            return

        message = (f"liveness.window_seconds ({window}) is not greater than "
                   f"recorder.rotation_interval_seconds ({interval}); a healthy "
                   f"stream will be reported as not live between segments")
        if self.get('liveness.enforce_window_invariant', False):
            raise ValueError(message)
        logger.warning(message)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'recorder.rotation_interval_seconds').

        Args:
            key_path: Dot-separated key path (e.g., 'storage.directory')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'server.port')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        # Set the final value
        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_store_directory(self) -> str:
        """Get segment store directory path."""
        store_dir = self.get('storage.directory', 'LIVERESULTS')
        return str(Path(store_dir).absolute())
