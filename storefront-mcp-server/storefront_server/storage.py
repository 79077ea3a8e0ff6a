"""Durable cart storage."""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from .errors import PersistenceError
from .models import LineItem

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "storefront-cart"


class CartSnapshot(BaseModel):
    """Serialized cart as written to storage."""

    revision: int = Field(default=0, description="Mutation counter of the snapshot")
    lines: list[LineItem] = Field(default_factory=list)


class CartStorage:
    """Persists cart snapshots to a JSON file under a fixed key."""

    def __init__(self, cart_file: Optional[str] = None, key: str = CART_STORAGE_KEY) -> None:
        """
        Initialize the cart storage.

        Args:
            cart_file: Path of the JSON file. Defaults to ~/.storefront_cart.json
            key: Top-level key the cart is stored under
        """
        if cart_file is None:
            cart_file = str(Path.home() / ".storefront_cart.json")
        self.cart_file = cart_file
        self.key = key
        self._lock = threading.Lock()
        self._last_revision = -1

    def _read_file(self) -> dict:
        with open(self.cart_file, "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("Cart file does not hold a JSON object")
        return data

    def load(self) -> CartSnapshot:
        """Load the stored cart. A missing or unreadable entry yields an empty cart."""
        with self._lock:
            if not os.path.exists(self.cart_file):
                return CartSnapshot()
            try:
                entry = self._read_file().get(self.key)
                if entry is None:
                    return CartSnapshot()
                snapshot = CartSnapshot.model_validate(entry)
            except (OSError, ValueError, ValidationError) as e:
                # json.JSONDecodeError is a ValueError
                logger.warning(f"Ignoring unreadable cart in {self.cart_file}: {e}")
                return CartSnapshot()
            self._last_revision = snapshot.revision
            return snapshot

    def save(self, snapshot: CartSnapshot) -> None:
        """
        Write a cart snapshot.

        Snapshots older than the last one written are dropped, so the file
        always ends up holding the newest cart.

        Raises:
            PersistenceError: If the file could not be written
        """
        with self._lock:
            if snapshot.revision < self._last_revision:
                logger.debug(
                    f"Skipping stale cart snapshot {snapshot.revision} "
                    f"(already wrote {self._last_revision})"
                )
                return

            try:
                data = self._read_file() if os.path.exists(self.cart_file) else {}
            except (OSError, ValueError):
                data = {}
            data[self.key] = snapshot.model_dump(mode="json")

            directory = os.path.dirname(os.path.abspath(self.cart_file))
            try:
                fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".cart-", suffix=".json")
                try:
                    with os.fdopen(fd, "w") as f:
                        json.dump(data, f)
                    os.chmod(tmp_path, 0o600)
                    os.replace(tmp_path, self.cart_file)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.remove(tmp_path)
                    raise
            except OSError as e:
                raise PersistenceError(f"Could not save cart to {self.cart_file}: {e}") from e

            self._last_revision = snapshot.revision

