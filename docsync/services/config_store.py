"""Persistence of the project configuration (documentation/config.json)"""

import json
import logging

from pydantic import ValidationError

from docsync.models.configuration import Configuration
from docsync.services.documentation_repository import DocumentationRepository
from docsync.utils.atomic import atomic_write_text

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or parsed"""

    def __init__(self, message: str, cause: Exception | None = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class ConfigStore:
    """Load and atomically save the project configuration"""

    def __init__(self, repository: DocumentationRepository):
        self.repository = repository

    def exists(self) -> bool:
        return self.repository.config_file.exists()

    def load(self) -> Configuration | None:
        """
        Load configuration from disk

        Returns:
            Configuration, or None if no configuration has been bootstrapped yet

        Raises:
            ConfigError: If the file exists but is not valid configuration JSON
        """
        config_file = self.repository.config_file
        if not config_file.exists():
            return None

        try:
            data = json.loads(config_file.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("configuration must contain a JSON object at the root")
            configuration = Configuration.model_validate(data)
        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            raise ConfigError(f"Invalid configuration in {config_file}: {e}", e) from e

        logger.debug(f"Loaded configuration from {config_file}")
        return configuration

    def save(self, configuration: Configuration) -> None:
        """Fully replace the stored configuration (write-temp-then-rename)"""
        payload = configuration.model_dump_json(by_alias=True, indent=2) + "\n"
        atomic_write_text(self.repository.config_file, payload)
        logger.info(f"Saved configuration to {self.repository.config_file}")
