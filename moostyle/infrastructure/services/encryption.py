"""
============================================================
TARJETA CRC — infrastructure/services/encryption.py
============================================================
Class: FernetBackupCipher

Responsibilities:
  - Cifrar/descifrar payloads de backup usando cryptography.fernet.Fernet.
  - Fail-fast si la key configurada es inválida.
  - Fuera de producción, generar una key efímera si no hay una configurada
    (los backups de esa corrida solo se pueden descifrar en el mismo proceso).

Collaborators:
  - application.backup.BackupService
  - cryptography.fernet.Fernet
============================================================
"""

from __future__ import annotations

from cryptography.fernet import Fernet, InvalidToken

from ...crosscutting.exceptions import BackupError
from ...crosscutting.logger import logger


class FernetBackupCipher:
    """Cifrado simétrico de backups usando Fernet (AES-128-CBC + HMAC)."""

    def __init__(self, key: str, *, allow_ephemeral: bool = False):
        """
        Args:
            key: Key Fernet (base64, 32 bytes). Generar con Fernet.generate_key().
            allow_ephemeral: Si la key está vacía, generar una para este proceso.

        Raises:
            ValueError: Si la key está vacía (sin allow_ephemeral) o es inválida.
        """
        if not key or not key.strip():
            if not allow_ephemeral:
                raise ValueError(
                    "BACKUP_ENCRYPTION_KEY is required for backups. "
                    'Generate one with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"'
                )
            logger.warning("BACKUP_ENCRYPTION_KEY not set; using an ephemeral key")
            key = Fernet.generate_key().decode()
        try:
            self._fernet = Fernet(key.strip().encode())
        except Exception as exc:
            raise ValueError(
                f"BACKUP_ENCRYPTION_KEY is invalid (not a valid Fernet key): {exc}"
            ) from exc

    def encrypt(self, plaintext: bytes) -> bytes:
        """Cifra bytes y devuelve el token Fernet (base64-safe)."""
        return self._fernet.encrypt(plaintext)

    def decrypt(self, token: bytes) -> bytes:
        """Descifra y devuelve los bytes originales."""
        try:
            return self._fernet.decrypt(token)
        except InvalidToken as exc:
            logger.error("backup decryption failed (invalid key or corrupted data)")
            raise BackupError(
                "Failed to decrypt backup (key rotation or corruption)",
                original_error=exc,
            ) from exc
