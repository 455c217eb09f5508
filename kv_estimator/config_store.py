"""Persistence, import and export of the configuration document.

The configuration is stored as a JSON object. Loading merges the stored
document over the defaults so older documents missing newer fields still
load; a document that cannot be parsed is logged and replaced by the
defaults rather than surfaced as a crash.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from .models import Configuration

logger = logging.getLogger(__name__)

STORAGE_KEY = "kv-cache-cfg"
EXPORT_FILE_NAME = "kv-cache-config.json"
CONFIG_PATH_ENV = "KV_ESTIMATOR_CONFIG_PATH"

Document = Union[str, bytes, Mapping[str, Any]]


class ConfigDocumentError(ValueError):
    """Raised when a configuration document is not valid JSON or has bad fields."""


def default_config_path() -> Path:
    """Location of the persisted configuration.

    Uses the KV_ESTIMATOR_CONFIG_PATH environment variable when set.
    """
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".kv_estimator" / f"{STORAGE_KEY}.json"


def parse_document(raw: Document, base: Optional[Configuration] = None) -> Configuration:
    """Parse a configuration document and merge it over ``base``.

    Args:
        raw: JSON text, UTF-8 bytes, or an already-parsed mapping
        base: Configuration to merge over (defaults if None); never mutated

    Returns:
        The merged Configuration

    Raises:
        ConfigDocumentError: If the document is not a JSON object or a field is malformed
    """
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ConfigDocumentError(f"Invalid JSON: {e}") from e
    else:
        data = raw

    try:
        return Configuration.from_dict(data, base=base)
    except ValueError as e:
        raise ConfigDocumentError(str(e)) from e


def import_config(current: Configuration, raw: Document) -> Configuration:
    """Merge an imported document into the current configuration.

    Returns ``current`` unchanged if the document is malformed.
    """
    try:
        return parse_document(raw, base=current)
    except ConfigDocumentError as e:
        logger.warning("Ignoring imported configuration: %s", e)
        return current


def export_config(config: Configuration) -> str:
    """Serialize a configuration as pretty-printed JSON."""
    return json.dumps(config.to_dict(), indent=2)


class ConfigStore:
    """Best-effort JSON file store for the current configuration."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else default_config_path()

    def load(self) -> Configuration:
        """Load the stored configuration, falling back to defaults."""
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return Configuration()
        except OSError as e:
            logger.warning("Could not read %s: %s", self.path, e)
            return Configuration()

        try:
            return parse_document(raw)
        except ConfigDocumentError as e:
            logger.warning("Discarding stored configuration at %s: %s", self.path, e)
            return Configuration()

    def save(self, config: Configuration) -> bool:
        """Write the configuration; returns False instead of raising on I/O errors."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(export_config(config), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not save configuration to %s: %s", self.path, e)
            return False
        logger.debug("Saved configuration to %s", self.path)
        return True
