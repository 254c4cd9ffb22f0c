"""Security services: JSON-line logs, suspicious detection, metrics, audit trail."""

from .audit_trail import AuditTrail, get_audit_trail, sanitize_request_data
from .log_files import SecurityLogWriter, get_security_log_writer
from .security_metrics import SecurityMetrics, get_security_metrics
from .suspicious import SuspiciousMatch, detect_suspicious_activity

__all__ = [
    "AuditTrail",
    "get_audit_trail",
    "sanitize_request_data",
    "SecurityLogWriter",
    "get_security_log_writer",
    "SecurityMetrics",
    "get_security_metrics",
    "SuspiciousMatch",
    "detect_suspicious_activity",
]
