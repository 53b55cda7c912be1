"""Snapshot verification

Checks that a downloaded backup really is a usable SQLite database before it
is allowed to replace the local one.
"""

import hashlib
import sqlite3
from pathlib import Path
from typing import Optional, Tuple

from cloud_backup.logger import Logger, create_logger

SQLITE_HEADER = b"SQLite format 3\x00"


class SnapshotVerifier:
    """Verifies database snapshot integrity"""

    def __init__(self, logger: Optional[Logger] = None):
        self.logger = logger or create_logger("cloud-backup-verify")

    def calculate_checksum(self, filepath: Path, algorithm: str = "sha256") -> str:
        """Calculate the hex checksum of a file, read in chunks"""
        hash_func = hashlib.new(algorithm)
        with open(filepath, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                hash_func.update(chunk)
        return hash_func.hexdigest()

    def has_sqlite_header(self, filepath: Path) -> bool:
        try:
            with open(filepath, "rb") as f:
                return f.read(len(SQLITE_HEADER)) == SQLITE_HEADER
        except OSError:
            return False

    def check_integrity(self, filepath: Path) -> Tuple[bool, Optional[str]]:
        """Run PRAGMA integrity_check on a read-only connection

        Returns:
            Tuple of (success, error_message)
        """
        try:
            conn = sqlite3.connect(f"{filepath.resolve().as_uri()}?mode=ro", uri=True)
            try:
                row = conn.execute("PRAGMA integrity_check").fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            return False, f"Integrity check failed: {e}"

        if not row or row[0] != "ok":
            return False, f"Integrity check reported: {row[0] if row else 'nothing'}"
        return True, None

    def verify_snapshot(self, filepath: Path) -> Tuple[bool, dict]:
        """Complete snapshot verification

        Returns:
            Tuple of (success, details_dict)
        """
        results = {
            "filepath": str(filepath),
            "exists": filepath.exists(),
            "header_valid": False,
            "integrity_valid": False,
            "errors": [],
        }

        if not results["exists"]:
            results["errors"].append("File does not exist")
            return False, results

        results["header_valid"] = self.has_sqlite_header(filepath)
        if not results["header_valid"]:
            results["errors"].append("Not a SQLite database")
        else:
            ok, error = self.check_integrity(filepath)
            results["integrity_valid"] = ok
            if not ok:
                results["errors"].append(error)

        success = results["header_valid"] and results["integrity_valid"]
        if success:
            results["sha256"] = self.calculate_checksum(filepath)
            self.logger.info("Snapshot verification passed", filepath=filepath.name)
        else:
            self.logger.warning(
                "Snapshot verification failed", filepath=filepath.name, errors=results["errors"]
            )
        return success, results
