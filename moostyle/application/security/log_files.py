"""
===============================================================================
CRC CARD — application/security/log_files.py
===============================================================================

Componente:
  SecurityLogWriter (append-only JSON-lines)

Responsabilidades:
  - Escribir un registro JSON por línea en archivos bajo security_log_dir
    (security.log, security-alerts.log, audit/..., metrics/...).
  - Crear directorios on-demand.
  - Serializar appends concurrentes del mismo proceso (un lock por writer).
  - Leer las últimas N líneas de un archivo (reportes admin).

Colaboradores:
  - crosscutting.config.get_settings (security_log_dir)
  - crosscutting.logger (falla de escritura => warning, nunca excepción)

Notas:
  - Best-effort: un disco lleno no debe tumbar el request.
  - Complementa el log del proceso (stdout JSON), no lo reemplaza.
===============================================================================
"""

from __future__ import annotations

import json
import threading
from collections import deque
from functools import lru_cache
from pathlib import Path
from typing import Any

from ...crosscutting.config import get_settings
from ...crosscutting.logger import logger


class SecurityLogWriter:
    def __init__(self, base_dir: str | Path) -> None:
        self._base_dir = Path(base_dir)
        self._lock = threading.Lock()

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def path_for(self, relative: str) -> Path:
        return self._base_dir / relative

    def append(self, relative: str, record: dict[str, Any]) -> bool:
        """Agrega una línea JSON. Retorna False si no se pudo escribir."""
        path = self.path_for(relative)
        line = json.dumps(record, default=str, ensure_ascii=False)
        try:
            with self._lock:
                path.parent.mkdir(parents=True, exist_ok=True)
                with path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
            return True
        except OSError as exc:
            logger.warning(
                "No se pudo escribir log de seguridad",
                extra={"file": relative, "error": str(exc)},
            )
            return False

    def tail(self, relative: str, limit: int = 50) -> list[dict[str, Any]]:
        """Últimos `limit` registros válidos (líneas corruptas se ignoran)."""
        path = self.path_for(relative)
        if limit <= 0 or not path.exists():
            return []
        with self._lock, path.open("r", encoding="utf-8") as fh:
            lines = deque(fh, maxlen=limit)
        records: list[dict[str, Any]] = []
        for line in lines:
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return records

    def list_logs(self) -> list[Path]:
        """Todos los *.log bajo el directorio (recursivo)."""
        if not self._base_dir.exists():
            return []
        return sorted(p for p in self._base_dir.rglob("*.log") if p.is_file())


@lru_cache(maxsize=1)
def get_security_log_writer() -> SecurityLogWriter:
    return SecurityLogWriter(get_settings().security_log_dir)
