# =============================================================================
# FILE: application/security/suspicious.py
# =============================================================================
"""
===============================================================================
POLICY: Suspicious Request Detector
===============================================================================

Qué es:
    Detector best-effort de requests sospechosos a partir del User-Agent y la
    URL. No bloquea: solo clasifica para alertas y métricas.

Patrones:
    - Rule Engine data-driven: reglas en _TOOL_PATTERNS / _ATTACK_RULES.
    - Determinismo: misma entrada => mismo resultado.

CRC (Component Card):
    Component: suspicious
    Responsibilities:
      - Detectar herramientas de escaneo / bots en UA o URL
      - Clasificar el tipo de ataque (SQL_INJECTION, XSS_ATTEMPT, ...)
    Collaborators:
      - api.security_logging (llama detect_suspicious_activity por request)
      - SecurityMetrics.record_suspicious_activity (consume el tipo)
===============================================================================
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final, Tuple
from urllib.parse import unquote_plus

SQL_INJECTION: Final[str] = "SQL_INJECTION"
XSS_ATTEMPT: Final[str] = "XSS_ATTEMPT"
SUSPICIOUS_USER_AGENT: Final[str] = "SUSPICIOUS_USER_AGENT"
UNUSUAL_PATTERN: Final[str] = "UNUSUAL_PATTERN"
RAPID_REQUESTS: Final[str] = "RAPID_REQUESTS"

# Herramientas / palabras clave (UA o URL), case-insensitive.
_TOOL_PATTERNS: Tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.I)
    for p in (
        r"sqlmap",
        r"nikto",
        r"nmap",
        r"bot",
        r"crawler",
        r"scanner",
        r"exploit",
        r"injection",
        r"xss",
        r"csrf",
    )
)

# Clasificación de ataque sobre la URL decodificada (orden = prioridad).
_ATTACK_RULES: Tuple[Tuple[str, re.Pattern[str]], ...] = (
    (
        SQL_INJECTION,
        re.compile(
            r"(union\s+(all\s+)?select|'\s*or\s+'?1'?\s*=\s*'?1|drop\s+table|;\s*--|sleep\s*\()",
            re.I,
        ),
    ),
    (XSS_ATTEMPT, re.compile(r"(<\s*script|javascript:|onerror\s*=)", re.I)),
)


@dataclass(frozen=True, slots=True)
class SuspiciousMatch:
    activity_type: str
    pattern: str
    source: str  # "user_agent" | "url"


def classify_attack(url: str) -> str | None:
    decoded = unquote_plus(url or "")
    for activity_type, regex in _ATTACK_RULES:
        if regex.search(decoded):
            return activity_type
    return None


def detect_suspicious_activity(
    user_agent: str | None, url: str | None
) -> SuspiciousMatch | None:
    """
    Retorna el primer match (None si el request parece normal).

    Prioridad: ataque clasificado en URL > herramienta en UA > palabra clave en URL.
    """
    ua = user_agent or ""
    path = url or ""

    attack = classify_attack(path)
    if attack is not None:
        return SuspiciousMatch(activity_type=attack, pattern=attack.lower(), source="url")

    for regex in _TOOL_PATTERNS:
        if regex.search(ua):
            return SuspiciousMatch(
                activity_type=SUSPICIOUS_USER_AGENT, pattern=regex.pattern, source="user_agent"
            )

    decoded = unquote_plus(path)
    for regex in _TOOL_PATTERNS:
        if regex.search(decoded):
            return SuspiciousMatch(
                activity_type=UNUSUAL_PATTERN, pattern=regex.pattern, source="url"
            )
    return None
