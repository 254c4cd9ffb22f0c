"""
===============================================================================
TARJETA CRC — application/backup/backup_service.py
===============================================================================

Clase:
    BackupService

Responsabilidades:
    - Crear backups cifrados (Fernet) de tres tipos:
        * user_data: usuarios sanitizados (password -> "[ENCRYPTED]")
        * system_config: configuración sin secretos
        * security_logs: todos los *.log del directorio de logs
    - Escribir backup_dir/<type>-backup-<ts>.encrypted y su metadata
      (sha256, tamaño, conteo) en backup-history.json.
    - Verificar integridad (checksum), descifrar y reportar estado.

Colaboradores:
    - infrastructure.services.FernetBackupCipher
    - domain.repositories.UserRepository (list_all)
    - SecurityLogWriter (origen de los *.log)
    - crosscutting.exceptions.BackupError

Notas:
    - El historial se carga al construir el servicio (sobrevive reinicios).
    - Los nombres de archivo recibidos desde HTTP se validan: sin rutas.
===============================================================================
"""

from __future__ import annotations

import hashlib
import json
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from ...crosscutting.exceptions import BackupError
from ...crosscutting.logger import logger
from ...domain.repositories import UserRepository
from ...identity.users import User
from ...infrastructure.services.encryption import FernetBackupCipher
from ..security.log_files import SecurityLogWriter

HISTORY_FILE = "backup-history.json"
BACKUP_SUFFIX = ".encrypted"
BACKUP_FORMAT_VERSION = "1.0"


class BackupType(str, Enum):
    USER_DATA = "user_data"
    SYSTEM_CONFIG = "system_config"
    SECURITY_LOGS = "security_logs"

    @property
    def file_prefix(self) -> str:
        return self.value.replace("_", "-")


@dataclass(slots=True)
class BackupResult:
    success: bool
    backup_type: BackupType
    filename: str | None = None
    record_count: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


def calculate_checksum(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def sanitize_user(user: User) -> dict[str, Any]:
    return {
        "id": str(user.id),
        "username": user.username,
        "email": user.email,
        "name": user.name,
        "role": user.role.value,
        "is_active": user.is_active,
        "points": user.points,
        "membership_level": user.membership_level.value,
        "ban_reason": user.ban_reason,
        "banned_at": user.banned_at,
        "last_login_at": user.last_login_at,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
        "password": "[ENCRYPTED]",
    }


class BackupService:
    def __init__(
        self,
        backup_dir: str | Path,
        *,
        cipher: FernetBackupCipher,
        user_repository: UserRepository,
        log_writer: SecurityLogWriter,
        app_env: str = "development",
        config_summary: dict[str, Any] | None = None,
    ) -> None:
        self._dir = Path(backup_dir)
        self._cipher = cipher
        self._users = user_repository
        self._logs = log_writer
        self._app_env = app_env
        self._config_summary = config_summary or {}
        self._lock = threading.Lock()
        self._history: list[dict[str, Any]] = []
        self.load_history()

    # ------------------------------------------------------------------
    # Historial
    # ------------------------------------------------------------------
    @property
    def history(self) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(m) for m in self._history]

    def load_history(self) -> None:
        path = self._dir / HISTORY_FILE
        if not path.exists():
            return
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(
                "No se pudo cargar backup-history.json", extra={"error": str(exc)}
            )
            return
        if isinstance(data, list):
            self._history = [m for m in data if isinstance(m, dict)]

    def _save_history(self) -> None:
        path = self._dir / HISTORY_FILE
        path.write_text(json.dumps(self._history, indent=2, default=str), encoding="utf-8")

    # ------------------------------------------------------------------
    # Payloads
    # ------------------------------------------------------------------
    def _user_data_payload(self) -> tuple[dict[str, Any], int]:
        users = [sanitize_user(u) for u in self._users.list_all()]
        return {"data": users}, len(users)

    def _system_config_payload(self) -> tuple[dict[str, Any], int]:
        return {
            "environment": self._app_env,
            "database": {"url": "[REDACTED]"},
            "security": {
                "rate_limiting": True,
                "security_headers": True,
                "audit_logging": True,
            },
            "config": self._config_summary,
        }, 1

    def _security_logs_payload(self) -> tuple[dict[str, Any], int]:
        base = self._logs.base_dir
        files = []
        for path in self._logs.list_logs():
            content = path.read_text(encoding="utf-8", errors="replace")
            files.append(
                {
                    "filename": str(path.relative_to(base)),
                    "size": len(content),
                    "lines": content.count("\n"),
                    "content": content,
                }
            )
        return {"log_files": files}, len(files)

    # ------------------------------------------------------------------
    # Crear
    # ------------------------------------------------------------------
    def create_backup(self, backup_type: BackupType | str) -> BackupResult:
        try:
            kind = BackupType(backup_type)
        except ValueError as exc:
            raise BackupError(f"Unknown backup type: {backup_type}") from exc

        builders = {
            BackupType.USER_DATA: self._user_data_payload,
            BackupType.SYSTEM_CONFIG: self._system_config_payload,
            BackupType.SECURITY_LOGS: self._security_logs_payload,
        }
        now = datetime.now(timezone.utc)
        try:
            payload, record_count = builders[kind]()
            document = {
                "timestamp": now.isoformat(),
                "type": kind.value,
                "version": BACKUP_FORMAT_VERSION,
                "record_count": record_count,
                **payload,
            }
            raw = json.dumps(document, default=str).encode("utf-8")
            encrypted = self._cipher.encrypt(raw)

            with self._lock:
                self._dir.mkdir(parents=True, exist_ok=True)
                filename = f"{kind.file_prefix}-backup-{int(time.time() * 1000)}{BACKUP_SUFFIX}"
                path = self._dir / filename
                path.write_bytes(encrypted)
                metadata = {
                    "filename": filename,
                    "timestamp": now.isoformat(),
                    "type": kind.value,
                    "record_count": record_count,
                    "size": path.stat().st_size,
                    "checksum": calculate_checksum(path),
                }
                self._history.append(metadata)
                self._save_history()
        except Exception as exc:
            logger.exception("Backup failed", extra={"backup_type": kind.value})
            return BackupResult(success=False, backup_type=kind, error=str(exc))

        logger.info(
            "Backup created",
            extra={"backup_type": kind.value, "backup_file": filename, "records": record_count},
        )
        return BackupResult(
            success=True,
            backup_type=kind,
            filename=filename,
            record_count=record_count,
            metadata=dict(metadata),
        )

    # ------------------------------------------------------------------
    # Verificar / descifrar
    # ------------------------------------------------------------------
    def _resolve(self, filename: str) -> Path:
        if not filename or Path(filename).name != filename or filename.startswith("."):
            raise BackupError("Invalid backup filename")
        return self._dir / filename

    def _metadata_for(self, filename: str) -> dict[str, Any] | None:
        with self._lock:
            for meta in reversed(self._history):
                if meta.get("filename") == filename:
                    return dict(meta)
        return None

    def verify_backup(self, filename: str) -> dict[str, Any]:
        try:
            path = self._resolve(filename)
        except BackupError as exc:
            return {"valid": False, "error": exc.message}

        metadata = self._metadata_for(filename)
        if metadata is None:
            return {"valid": False, "error": "Backup metadata not found"}
        if not path.exists():
            return {"valid": False, "error": "Backup file not found"}

        actual = calculate_checksum(path)
        return {
            "valid": actual == metadata.get("checksum"),
            "expected_checksum": metadata.get("checksum"),
            "actual_checksum": actual,
            "size": path.stat().st_size,
            "expected_size": metadata.get("size"),
        }

    def decrypt_backup(self, filename: str) -> dict[str, Any]:
        path = self._resolve(filename)
        if not path.exists():
            raise BackupError("Backup file not found")
        raw = self._cipher.decrypt(path.read_bytes())
        return json.loads(raw.decode("utf-8"))

    def get_backup_status(self) -> dict[str, Any]:
        with self._lock:
            history = list(self._history)
        types: list[str] = []
        for meta in history:
            if meta.get("type") not in types:
                types.append(meta.get("type"))
        return {
            "total_backups": len(history),
            "last_backup": history[-1].get("timestamp") if history else "Never",
            "backup_types": types,
            "total_size": sum(int(m.get("size") or 0) for m in history),
        }
