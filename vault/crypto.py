from __future__ import annotations

import binascii
import json
import os
import secrets

from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

NONCE_BYTES = 12  # 96-bit nonce


def new_key() -> bytes:
    return ChaCha20Poly1305.generate_key()

def key_to_hex(k: bytes) -> str:
    return binascii.hexlify(k).decode()

def key_from_hex(s: str) -> bytes:
    return binascii.unhexlify(s.strip())

def _read_key(path: str) -> bytes:
    with open(path, "r", encoding="utf-8") as f:
        return key_from_hex(json.load(f)["state_key_hex"])

def load_or_create_key(path: str) -> bytes:
    """
    Read the state sealing key from a keys.json file, creating it on first use.

    File layout: {"state_key_hex": "<64 hex chars>"}

    The key is written to a private temp file and hard-linked into place,
    so concurrent first users all end up with the one key that won.
    """
    if os.path.exists(path):
        return _read_key(path)
    key = new_key()
    tmp = f"{path}.{os.getpid()}.{secrets.token_hex(4)}.tmp"
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump({"state_key_hex": key_to_hex(key)}, f, indent=2, sort_keys=True)
        try:
            os.link(tmp, path)
        except FileExistsError:
            return _read_key(path)
    finally:
        os.remove(tmp)
    return key

def seal_bytes(key: bytes, plaintext: bytes, aad: bytes) -> bytes:
    """
    Encrypt with ChaCha20-Poly1305 AEAD; output is nonce || ciphertext.

    AAD binds the blob to its collection, so a sealed collection file
    cannot be swapped in under another collection's name.
    """
    aead = ChaCha20Poly1305(key)
    nonce = os.urandom(NONCE_BYTES)
    return nonce + aead.encrypt(nonce, plaintext, aad)

def open_bytes(key: bytes, blob: bytes, aad: bytes) -> bytes:
    """Decrypt with ChaCha20-Poly1305 AEAD; raises InvalidTag on tamper or wrong AAD."""
    aead = ChaCha20Poly1305(key)
    nonce, ct = blob[:NONCE_BYTES], blob[NONCE_BYTES:]
    return aead.decrypt(nonce, ct, aad)
