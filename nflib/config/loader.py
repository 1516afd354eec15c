"""
Configuration Loader

Loads processing configuration from YAML files with support for:
- Default configurations in nflib/config/defaults/
- Local overrides in nflib/config/local/ (gitignored for development)
- Runtime overrides passed as dictionaries
"""

import copy
from pathlib import Path
from typing import Any, Dict, List, Optional
import yaml

from ..errors import ConfigError


class ConfigLoader:
    """
    Load and manage configuration from YAML files.

    Usage:
        config = ConfigLoader()
        processing = config.get_processing()
        settings = config.get_processing_config({'self_noise': {'search_half_width': 25}})
    """

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize the config loader.

        Args:
            config_dir: Base config directory. Defaults to this package's directory.
        """
        if config_dir:
            self.config_dir = Path(config_dir)
        else:
            self.config_dir = Path(__file__).parent

        self.defaults_dir = self.config_dir / 'defaults'
        self.local_dir = self.config_dir / 'local'
        self._cache: Dict[str, Any] = {}

    def _deep_merge(self, base: Dict, override: Dict) -> Dict:
        """
        Deep merge two dictionaries, with override taking precedence.
        """
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def _read_yaml(self, path: Path) -> Dict:
        with open(path, 'r') as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Could not parse {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Top level of {path} must be a mapping")
        return data

    def _layers(self, name: str) -> List[Path]:
        """YAML files making up one configuration, lowest precedence first."""
        default_path = self.defaults_dir / f'{name}.yaml'
        if not default_path.exists():
            raise FileNotFoundError(f"Default config not found: {default_path}")
        local_path = self.local_dir / f'{name}.yaml'
        return [default_path, local_path] if local_path.exists() else [default_path]

    def load(self, name: str, overrides: Optional[Dict] = None, use_cache: bool = True) -> Dict:
        """
        Load a configuration: defaults, then the local file, then overrides.

        Args:
            name: Config file name without extension (e.g., 'processing')
            overrides: Runtime overrides applied last (never cached)
            use_cache: Whether to use cached values

        Returns:
            Dict containing the merged configuration (a copy, safe to modify)
        """
        if overrides is None and use_cache and name in self._cache:
            return copy.deepcopy(self._cache[name])

        config: Dict = {}
        for path in self._layers(name):
            config = self._deep_merge(config, self._read_yaml(path))

        if overrides:
            return self._deep_merge(config, overrides)
        self._cache[name] = copy.deepcopy(config)
        return config

    def load_file(self, path: str, overrides: Optional[Dict] = None) -> Dict:
        """
        Load processing defaults overlaid with an explicit YAML file.

        Args:
            path: Path to a YAML file holding a partial processing config
            overrides: Runtime overrides applied last

        Returns:
            Dict containing the merged configuration
        """
        config = self._deep_merge(self.load('processing'), self._read_yaml(Path(path)))
        return self._deep_merge(config, overrides) if overrides else config

    def get_processing(self, overrides: Optional[Dict] = None) -> Dict:
        """Load processing configuration as a plain dictionary."""
        return self.load('processing', overrides)

    def get_processing_config(self, overrides: Optional[Dict] = None):
        """Load processing configuration as an immutable ProcessingConfig."""
        from .settings import ProcessingConfig
        return ProcessingConfig.from_dict(self.get_processing(overrides))

    def save_local(self, name: str, config: Dict) -> Path:
        """
        Save configuration to local override file.

        Args:
            name: Config file name without extension
            config: Configuration to save

        Returns:
            Path to saved file
        """
        self.local_dir.mkdir(parents=True, exist_ok=True)

        local_path = self.local_dir / f'{name}.yaml'
        with open(local_path, 'w') as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)

        if name in self._cache:
            del self._cache[name]

        return local_path

    def clear_cache(self):
        """Clear all cached configurations."""
        self._cache.clear()


# Singleton instance for convenience
_default_loader: Optional[ConfigLoader] = None


def get_config() -> ConfigLoader:
    """Get the default config loader instance."""
    global _default_loader
    if _default_loader is None:
        _default_loader = ConfigLoader()
    return _default_loader


def get_processing(overrides: Optional[Dict] = None) -> Dict:
    """Convenience function to get the processing config dictionary."""
    return get_config().get_processing(overrides)


def get_processing_config(overrides: Optional[Dict] = None):
    """Convenience function to get an immutable ProcessingConfig."""
    return get_config().get_processing_config(overrides)
