"""Configuration management for photo-declutter."""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

from photo_declutter.utils.logger import setup_logger

logger = setup_logger(__name__)

MB = 1024 * 1024


class Config:
    """Manages user configuration and settings."""

    DEFAULT_CONFIG_DIR = Path.home() / ".photo-declutter"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

    DEFAULT_SETTINGS: Dict[str, Any] = {
        "protected_folders": [
            "Family Photos",
            "Wedding",
            "Kids",
            "Vacation",
            "Important",
        ],
        "analysis": {
            "target_size": 512,  # Square side used for decoding, in pixels
            "max_workers": 4,
            "max_assets": None,  # Analyse only the most recent N images
        },
        "similarity": {
            "distance_threshold": 10,  # Hamming distance between perceptual hashes
            "time_window_seconds": 3600,
            "strategy": "greedy",  # greedy, union_find
        },
        "blur": {
            "threshold": 100.0,  # Laplacian variance of a "just sharp" image
            "inclusion_cutoff": 0.3,
            "blurry_cutoff": 0.5,
            "very_blurry_cutoff": 0.7,
        },
        "categories": {
            "large_image_bytes": 5 * MB,
            "large_video_bytes": 50 * MB,
            "large_files_limit": 50,
            "screenshot_fraction": 0.01,
            "screenshot_minimum": 1,
            "low_resolution_floor": 1000,
        },
        "safety": {
            "use_recycle_bin": True,
            "max_undo_history_days": 30,
        },
    }

    def __init__(self, config_file: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to config file (default: ~/.photo-declutter/config.json)
        """
        self.config_file = config_file or self.DEFAULT_CONFIG_FILE
        self.settings: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        """Load configuration from file or create with defaults."""
        if self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    user_settings = json.load(f)
                self.settings = _merge(copy.deepcopy(self.DEFAULT_SETTINGS), user_settings)
                logger.debug(f"Loaded configuration from {self.config_file}")
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid config file: {e}. Using defaults.")
                self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        else:
            logger.info("No config file found. Creating with defaults.")
            self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
            self.save()

    def save(self) -> None:
        """Save configuration to file."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            json.dump(self.settings, f, indent=2)
        logger.debug(f"Saved configuration to {self.config_file}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (supports dot notation, e.g., 'blur.threshold')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.settings
        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split(".")
        target = self.settings
        for k in keys[:-1]:
            if k not in target or not isinstance(target[k], dict):
                target[k] = {}
            target = target[k]
        target[keys[-1]] = value
        self.save()

    def add_protected_folder(self, folder: str) -> None:
        """
        Add a folder to the protected folders list.

        Args:
            folder: Folder name or pattern to protect
        """
        protected = self.get("protected_folders", [])
        if folder not in protected:
            protected.append(folder)
            self.set("protected_folders", protected)
            logger.info(f"Added protected folder: {folder}")

    def remove_protected_folder(self, folder: str) -> None:
        """
        Remove a folder from the protected folders list.

        Args:
            folder: Folder name or pattern to unprotect
        """
        protected = self.get("protected_folders", [])
        if folder in protected:
            protected.remove(folder)
            self.set("protected_folders", protected)
            logger.info(f"Removed protected folder: {folder}")

    def is_path_protected(self, path: Path) -> bool:
        """
        Check if a path is in a protected folder.

        Args:
            path: Path to check

        Returns:
            True if path is protected
        """
        protected_folders = self.get("protected_folders", [])
        path_str = str(path).lower()
        return any(protected.lower() in path_str for protected in protected_folders)

    def get_staging_dir(self) -> Path:
        """Get the staging directory path."""
        return self.config_file.parent / "staging"

    def get_operations_log(self) -> Path:
        """Get the operations log file path."""
        return self.config_file.parent / "operations.log"


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge *override* into *base* and return *base*."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base
