"""JSON persistence for a Vault and everything it owns."""

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from .config import ConfigManager
from .models import Vault

logger = logging.getLogger(__name__)


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for our data types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        return super().default(obj)


class VaultStoreError(Exception):
    """Raised when a stored vault cannot be read back."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Cannot load vault from {path}: {reason}")


class VaultStore:
    """Manages JSON file persistence for a vault.

    Categories, items, price options, stores, carts and cart items are
    nested inside the vault document, so deleting a parent removes its
    children on the next save.
    """

    def __init__(self, data_dir: Path | None = None):
        """Initialize vault store.

        Args:
            data_dir: Directory for data files. Defaults to ./data
        """
        self.data_dir = data_dir or Path.cwd() / "data"
        self._ensure_directories()

    @classmethod
    def from_config(cls, config: ConfigManager) -> "VaultStore":
        """Create a store rooted at the configured storage directory."""
        return cls(data_dir=config.data.storage_dir)

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _vault_path(self) -> Path:
        """Path to the vault file."""
        return self.data_dir / "vault.json"

    def load_vault(self) -> Vault:
        """Load the vault.

        Returns:
            Vault object, empty if file doesn't exist

        Raises:
            VaultStoreError: If the file is not a valid vault document
        """
        path = self._vault_path()
        if not path.exists():
            return Vault()

        try:
            with open(path) as f:
                data = json.load(f)
            vault = Vault.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise VaultStoreError(path, str(exc)) from exc

        logger.debug("Loaded vault %s with %d carts", vault.id, len(vault.carts))
        return vault

    def save_vault(self, vault: Vault) -> None:
        """Save the vault.

        Args:
            vault: Vault to save
        """
        path = self._vault_path()
        tmp_path = path.with_suffix(".json.tmp")

        with open(tmp_path, "w") as f:
            json.dump(vault.model_dump(), f, cls=JSONEncoder, indent=2)
        tmp_path.replace(path)

        logger.debug("Saved vault %s to %s", vault.id, path)
