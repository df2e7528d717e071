"""Configuration management for xml-nexus."""

import os
import json
from pathlib import Path
from typing import Optional, Dict, Any
from dotenv import load_dotenv

from xml_nexus.models import ScannerConfig, DiscoveryConfig, MetadataConfig, BrowserProfile


class Config:
    """Configuration manager for the scanner."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration from file or defaults."""
        self.config_path = config_path or self._find_config_file()
        self.scanner_config = ScannerConfig()
        self.discovery_config = DiscoveryConfig()
        self.metadata_config = MetadataConfig()
        self._custom_settings: Dict[str, Any] = {}

        # Load environment variables
        load_dotenv()

        if self.config_path and Path(self.config_path).exists():
            self._load_from_file()

        # Environment wins over files
        self._load_from_env()

    def _find_config_file(self) -> Optional[str]:
        """Find configuration file in common locations."""
        search_paths = [
            Path.cwd() / "config.py",
            Path.cwd() / "config.json",
            Path.home() / ".xml-nexus" / "config.py",
            Path.home() / ".config" / "xml-nexus" / "config.json",
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        return None

    def _load_from_file(self):
        """Load configuration from file."""
        path = Path(self.config_path)

        if path.suffix == '.py':
            self._load_python_config(path)
        elif path.suffix == '.json':
            self._load_json_config(path)

    def _load_python_config(self, path: Path):
        """Load configuration from Python file."""
        import importlib.util

        spec = importlib.util.spec_from_file_location("config", path)
        if spec and spec.loader:
            config_module = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(config_module)

            if hasattr(config_module, 'SCANNER_CONFIG'):
                self.scanner_config = ScannerConfig(**config_module.SCANNER_CONFIG)

            if hasattr(config_module, 'DISCOVERY_CONFIG'):
                self.discovery_config = DiscoveryConfig(**config_module.DISCOVERY_CONFIG)

            if hasattr(config_module, 'METADATA_CONFIG'):
                self.metadata_config = MetadataConfig(**config_module.METADATA_CONFIG)

            if hasattr(config_module, 'CUSTOM'):
                self._custom_settings = config_module.CUSTOM

    def _load_json_config(self, path: Path):
        """Load configuration from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)

        if 'scanner' in data:
            self.scanner_config = ScannerConfig(**data['scanner'])

        if 'discovery' in data:
            self.discovery_config = DiscoveryConfig(**data['discovery'])

        if 'metadata' in data:
            self.metadata_config = MetadataConfig(**data['metadata'])

        if 'custom' in data:
            self._custom_settings = data['custom']

    def _load_from_env(self):
        """Override configuration with environment variables."""
        if user_agent := os.getenv('XML_NEXUS_USER_AGENT'):
            self.scanner_config.user_agent = user_agent

        if timeout := os.getenv('XML_NEXUS_TIMEOUT'):
            self.scanner_config.timeout = float(timeout)

        if max_depth := os.getenv('XML_NEXUS_MAX_DEPTH'):
            self.scanner_config.max_depth = int(max_depth)

        if max_urls := os.getenv('XML_NEXUS_MAX_URLS'):
            self.scanner_config.max_urls = int(max_urls)

        if max_concurrent := os.getenv('XML_NEXUS_MAX_CONCURRENT'):
            self.scanner_config.max_concurrent_fetches = int(max_concurrent)

        if verify_ssl := os.getenv('XML_NEXUS_VERIFY_SSL'):
            self.scanner_config.verify_ssl = verify_ssl.lower() in ('true', '1', 'yes')

        # Browser profile for metadata scraping
        if browser := os.getenv('XML_NEXUS_BROWSER'):
            try:
                self.metadata_config.browser_profile = BrowserProfile[browser.upper()].value
            except KeyError:
                pass

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key."""
        if key in self._custom_settings:
            return self._custom_settings[key]

        for section in (self.scanner_config, self.discovery_config, self.metadata_config):
            if hasattr(section, key):
                return getattr(section, key)

        return default

    def set(self, key: str, value: Any):
        """Set configuration value."""
        for section in (self.scanner_config, self.discovery_config, self.metadata_config):
            if hasattr(section, key):
                setattr(section, key, value)
                return

        self._custom_settings[key] = value

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            'scanner': self.scanner_config.model_dump(mode='json'),
            'discovery': self.discovery_config.model_dump(mode='json'),
            'metadata': self.metadata_config.model_dump(mode='json'),
            'custom': self._custom_settings
        }

    def save(self, path: Optional[str] = None):
        """Save configuration to file."""
        save_path = Path(path or self.config_path or './config.json')

        if save_path.suffix == '.py':
            self._save_python_config(save_path)
        else:
            self._save_json_config(save_path)

    def _save_python_config(self, path: Path):
        """Save configuration as Python file."""
        data = self.to_dict()
        sections = [
            ('Sitemap fetching and traversal', 'SCANNER_CONFIG', data['scanner']),
            ('Root sitemap discovery', 'DISCOVERY_CONFIG', data['discovery']),
            ('Page metadata scraping', 'METADATA_CONFIG', data['metadata']),
            ('Custom settings', 'CUSTOM', data['custom']),
        ]

        config_str = '"""Configuration file for xml-nexus."""\n'
        for comment, name, values in sections:
            config_str += f"\n# {comment}\n{name} = {{\n"
            for key, value in values.items():
                config_str += f"    {key!r}: {value!r},\n"
            config_str += "}\n"

        with open(path, 'w') as f:
            f.write(config_str)

    def _save_json_config(self, path: Path):
        """Save configuration as JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from file or create default."""
    return Config(config_path)


def create_default_config(path: str = './config.py'):
    """Create a default configuration file."""
    config = Config()

    config.scanner_config = ScannerConfig()
    config.discovery_config = DiscoveryConfig()
    config.metadata_config = MetadataConfig()

    config.save(path)
