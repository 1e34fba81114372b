"""Scheduled backup: one workbook per run, retention, file-name whitelist."""
import os

import pytest
from openpyxl import load_workbook

from sitebook.config import settings
from sitebook.services import backup_job


@pytest.fixture
def backup_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "backup_dir", tmp_path / "backup")
    return tmp_path / "backup"


@pytest.mark.asyncio
async def test_run_writes_workbook_with_a_sheet_per_table(async_engine_and_session, backup_dir):
    _, session_factory = async_engine_and_session
    filename = await backup_job.run_scheduled_backup(session_factory)
    assert backup_job.BACKUP_FILENAME_PATTERN.match(filename)
    wb = load_workbook(backup_dir / filename)
    assert wb.sheetnames == ["Workers", "Attendance", "Client Ledger", "Expenses", "Payments", "Estimate Items"]
    assert not (backup_dir / backup_job.LOCK_NAME).exists()
    assert backup_job.list_backup_files()[0]["filename"] == filename


@pytest.mark.asyncio
async def test_run_skipped_while_locked(async_engine_and_session, backup_dir):
    _, session_factory = async_engine_and_session
    backup_dir.mkdir(parents=True)
    (backup_dir / backup_job.LOCK_NAME).touch()
    assert await backup_job.run_scheduled_backup(session_factory) is None


def test_prune_keeps_newest(tmp_path):
    for i in range(5):
        f = tmp_path / f"site_backup_2024010{i}_000000.xlsx"
        f.write_bytes(b"x")
        os.utime(f, (1_700_000_000 + i, 1_700_000_000 + i))
    backup_job._prune_old_backups(tmp_path, keep=2)
    assert sorted(p.name for p in tmp_path.iterdir()) == [
        "site_backup_20240103_000000.xlsx",
        "site_backup_20240104_000000.xlsx",
    ]


def test_get_backup_path_whitelist(backup_dir):
    backup_dir.mkdir(parents=True)
    (backup_dir / "site_backup_20240101_000000.xlsx").write_bytes(b"x")
    assert backup_job.get_backup_path("site_backup_20240101_000000.xlsx") is not None
    assert backup_job.get_backup_path("../site_backup_20240101_000000.xlsx") is None
    assert backup_job.get_backup_path("site_backup_20240102_000000.xlsx") is None
