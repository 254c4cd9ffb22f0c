"""Infrastructure services (encryption)."""

from .encryption import FernetBackupCipher

__all__ = ["FernetBackupCipher"]
