"""
Name: BackupService Tests

Responsibilities:
  - Encrypted backups of the three types, with checksum metadata
  - Verify / decrypt / status
  - Filename validation and tamper detection
"""

import json
from uuid import uuid4

import pytest

from moostyle.application.backup.backup_service import (
    HISTORY_FILE,
    BackupService,
    BackupType,
)
from moostyle.application.security.log_files import SecurityLogWriter
from moostyle.crosscutting.exceptions import BackupError
from moostyle.identity.users import User
from moostyle.infrastructure.repositories.in_memory import (
    InMemoryStore,
    InMemoryUserRepository,
)
from moostyle.infrastructure.services.encryption import FernetBackupCipher

pytestmark = pytest.mark.unit


@pytest.fixture
def users() -> InMemoryUserRepository:
    repo = InMemoryUserRepository(InMemoryStore())
    repo.create(
        User(
            id=uuid4(),
            email="cow@example.com",
            username="cow",
            password_hash="$argon2id$secret-hash",
        )
    )
    return repo


@pytest.fixture
def log_writer(tmp_path) -> SecurityLogWriter:
    writer = SecurityLogWriter(tmp_path / "logs")
    writer.append("security.log", {"type": "REQUEST"})
    writer.append("audit/general-audit.log", {"operation": "Profile Update"})
    return writer


@pytest.fixture
def cipher() -> FernetBackupCipher:
    return FernetBackupCipher("", allow_ephemeral=True)


@pytest.fixture
def service(tmp_path, cipher, users, log_writer) -> BackupService:
    return BackupService(
        tmp_path / "backups",
        cipher=cipher,
        user_repository=users,
        log_writer=log_writer,
        app_env="test",
        config_summary={"points_per_item": 2},
    )


def test_user_data_backup_hides_password_hashes(service, tmp_path):
    result = service.create_backup("user_data")

    assert result.success is True
    assert result.filename.startswith("user-data-backup-")
    assert result.filename.endswith(".encrypted")
    assert result.record_count == 1

    raw = (tmp_path / "backups" / result.filename).read_bytes()
    assert b"cow@example.com" not in raw

    document = service.decrypt_backup(result.filename)
    assert document["type"] == "user_data"
    assert document["data"][0]["password"] == "[ENCRYPTED]"
    assert "secret-hash" not in json.dumps(document)


def test_system_config_backup_redacts_database(service):
    result = service.create_backup(BackupType.SYSTEM_CONFIG)
    document = service.decrypt_backup(result.filename)

    assert document["database"] == {"url": "[REDACTED]"}
    assert document["environment"] == "test"
    assert document["config"] == {"points_per_item": 2}


def test_created_backup_is_logged_with_its_file(service, tmp_path, caplog):
    with caplog.at_level("INFO", logger="moostyle"):
        result = service.create_backup(BackupType.SYSTEM_CONFIG)

    assert result.success is True
    record = next(r for r in caplog.records if r.getMessage() == "Backup created")
    assert record.backup_file == result.filename
    assert record.backup_type == "system_config"
    assert (tmp_path / "backups" / result.filename).exists()


def test_security_logs_backup_includes_nested_logs(service):
    result = service.create_backup(BackupType.SECURITY_LOGS)
    document = service.decrypt_backup(result.filename)

    names = sorted(f["filename"] for f in document["log_files"])
    assert result.record_count == 2
    assert names == ["audit/general-audit.log", "security.log"]


def test_unknown_type_raises(service):
    with pytest.raises(BackupError):
        service.create_backup("everything")


def test_verify_detects_tampering(service, tmp_path):
    filename = service.create_backup(BackupType.USER_DATA).filename

    assert service.verify_backup(filename)["valid"] is True

    path = tmp_path / "backups" / filename
    path.write_bytes(path.read_bytes() + b"x")
    verdict = service.verify_backup(filename)
    assert verdict["valid"] is False
    assert verdict["expected_checksum"] != verdict["actual_checksum"]


@pytest.mark.parametrize("filename", ["../etc/passwd", "a/b.encrypted", ".hidden", ""])
def test_verify_rejects_paths(service, filename):
    verdict = service.verify_backup(filename)
    assert verdict == {"valid": False, "error": "Invalid backup filename"}


def test_verify_unknown_backup(service):
    assert service.verify_backup("nope.encrypted")["error"] == "Backup metadata not found"


def test_status_and_history_survive_restart(service, tmp_path, cipher, users, log_writer):
    assert service.get_backup_status()["last_backup"] == "Never"

    service.create_backup(BackupType.USER_DATA)
    service.create_backup(BackupType.SECURITY_LOGS)
    service.create_backup(BackupType.USER_DATA)

    status = service.get_backup_status()
    assert status["total_backups"] == 3
    assert status["backup_types"] == ["user_data", "security_logs"]
    assert status["total_size"] > 0
    assert (tmp_path / "backups" / HISTORY_FILE).exists()

    reloaded = BackupService(
        tmp_path / "backups", cipher=cipher, user_repository=users, log_writer=log_writer
    )
    assert len(reloaded.history) == 3


def test_decrypt_with_other_key_fails(service, tmp_path, users, log_writer):
    filename = service.create_backup(BackupType.USER_DATA).filename
    other = BackupService(
        tmp_path / "backups",
        cipher=FernetBackupCipher("", allow_ephemeral=True),
        user_repository=users,
        log_writer=log_writer,
    )

    with pytest.raises(BackupError):
        other.decrypt_backup(filename)
