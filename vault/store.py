"""
Sealed on-disk persistence of the private data world state.

Each collection is written as one ChaCha20-Poly1305 sealed file
(<collection>.sealed) holding {key: base64(value)}; the collection name
is the AAD. The sealing key lives in keys.json beside the files.
"""

from __future__ import annotations

import base64
import json
import logging
import os
from typing import Dict, Optional

from cryptography.exceptions import InvalidTag

from .crypto import load_or_create_key, open_bytes, seal_bytes
from .stub import WorldState

logger = logging.getLogger(__name__)


class SealedStateError(Exception):
    """Raised when a sealed collection file cannot be opened."""
    pass


class Vault:
    def __init__(self, dirpath: str):
        self.dirpath = dirpath
        os.makedirs(dirpath, exist_ok=True)
        self.key = load_or_create_key(os.path.join(dirpath, "keys.json"))

    def _path(self, name: str) -> str:
        return os.path.join(self.dirpath, f"{name}.sealed")

    def _stage(self, name: str, plaintext: bytes) -> str:
        blob = seal_bytes(self.key, plaintext, name.encode("utf-8"))
        tmp = self._path(name) + ".tmp"
        with open(tmp, "wb") as f:
            f.write(blob)
            f.flush()
            os.fsync(f.fileno())
        return tmp

    def put(self, name: str, plaintext: bytes) -> str:
        path = self._path(name)
        os.replace(self._stage(name, plaintext), path)
        return path

    def get(self, name: str) -> Optional[bytes]:
        path = self._path(name)
        if not os.path.exists(path):
            return None
        with open(path, "rb") as f:
            blob = f.read()
        try:
            return open_bytes(self.key, blob, name.encode("utf-8"))
        except InvalidTag as e:
            raise SealedStateError(f"Sealed collection {name} failed authentication") from e

    def load_world(self, world: WorldState) -> WorldState:
        """Fill ``world`` with every sealed collection found on disk."""
        for config in world.collections:
            plaintext = self.get(config.name)
            if plaintext is None:
                continue
            encoded: Dict[str, str] = json.loads(plaintext)
            world.data[config.name] = {k: base64.b64decode(v) for k, v in encoded.items()}
            logger.debug(f"Loaded {len(encoded)} keys from {config.name}")
        return world

    def save_world(self, world: WorldState) -> None:
        """
        Seal every collection to a temp file first, then swap them all in.

        A failure while sealing or writing leaves the previous files intact.
        """
        staged = []
        try:
            for config in world.collections:
                space = world.data.get(config.name, {})
                encoded = {k: base64.b64encode(v).decode("utf-8") for k, v in space.items()}
                staged.append((
                    self._stage(config.name, json.dumps(encoded, sort_keys=True).encode("utf-8")),
                    self._path(config.name),
                ))
                logger.debug(f"Sealed {len(encoded)} keys into {config.name}")
        except Exception:
            for tmp, _ in staged:
                os.remove(tmp)
            raise
        for tmp, path in staged:
            os.replace(tmp, path)
