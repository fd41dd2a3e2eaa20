from __future__ import annotations

import json
import secrets
from dataclasses import dataclass
from typing import Any, Dict

from cryptography.hazmat.primitives.kdf.scrypt import Scrypt


def _scrypt_hash(password: str, salt: bytes, n: int = 2**14, r: int = 8, p: int = 1) -> bytes:
    kdf = Scrypt(salt=salt, length=32, n=n, r=r, p=p)
    return kdf.derive(password.encode("utf-8"))


@dataclass(frozen=True)
class PasswordHasher:
    """
    Salted scrypt digests for admin credentials.

    The encoded form is a JSON object so stored hashes carry their own kdf
    parameters and stay verifiable after the defaults change.
    """

    n: int = 2**14
    r: int = 8
    p: int = 1

    def hash(self, password: str) -> str:
        salt = secrets.token_bytes(16)
        digest = _scrypt_hash(password, salt, n=self.n, r=self.r, p=self.p)
        payload = {"salt": salt.hex(), "digest": digest.hex(), "kdf": {"name": "scrypt", "n": self.n, "r": self.r, "p": self.p}}
        return json.dumps(payload, sort_keys=True)

    def verify(self, password: str, encoded: str) -> bool:
        payload = _decode(encoded)
        if not payload:
            return False
        try:
            salt = bytes.fromhex(payload["salt"])
            expected = bytes.fromhex(payload["digest"])
        except (KeyError, TypeError, ValueError):
            return False
        kdf = payload.get("kdf") or {}
        digest = _scrypt_hash(str(password or ""), salt, n=int(kdf.get("n", 2**14)), r=int(kdf.get("r", 8)), p=int(kdf.get("p", 1)))
        return secrets.compare_digest(digest, expected)


def _decode(encoded: str) -> Dict[str, Any]:
    try:
        obj = json.loads(str(encoded or ""))
    except json.JSONDecodeError:
        return {}
    return obj if isinstance(obj, dict) else {}
