"""Encrypted backups (user data, system config, security logs)."""

from .backup_service import BackupResult, BackupService, BackupType, calculate_checksum

__all__ = ["BackupResult", "BackupService", "BackupType", "calculate_checksum"]
