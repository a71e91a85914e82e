"""Safe asset deletion with staging and undo capability."""

import json
import shutil
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from send2trash import send2trash

from photo_declutter.core.errors import DeletionError
from photo_declutter.utils.config import Config
from photo_declutter.utils.logger import setup_logger

logger = setup_logger(__name__)


class SafeAssetDeleter:
    """Stages deletions in a recoverable area before they become permanent."""

    def __init__(self, config: Config):
        """
        Initialize the safe asset deleter.

        Args:
            config: Configuration instance
        """
        self.config = config
        self.staging_dir = config.get_staging_dir()
        self.operations_log = config.get_operations_log()

        self.staging_dir.mkdir(parents=True, exist_ok=True)

    def stage_for_deletion(
        self,
        file_paths: List[Path],
        reason: str = "cleanup",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Stage files for deletion by moving them to the staging area.

        The batch is all-or-nothing: every path is validated before anything
        moves, and a failure midway puts already-moved files back.

        Args:
            file_paths: List of file paths to stage
            reason: Reason for deletion (e.g., 'duplicates', 'similar')
            metadata: Optional metadata about the staged files

        Returns:
            Operation ID for undo/tracking

        Raises:
            DeletionError: If any file is missing, protected, or cannot be moved
        """
        asset_ids = [str(path) for path in file_paths]
        if not file_paths:
            raise DeletionError(asset_ids, "nothing to delete")

        missing = [str(path) for path in file_paths if not path.exists()]
        if missing:
            raise DeletionError(asset_ids, f"{len(missing)} files not found: {missing[0]}")

        protected = [str(path) for path in file_paths if self.config.is_path_protected(path)]
        if protected:
            raise DeletionError(asset_ids, f"{len(protected)} files are in protected folders: {protected[0]}")

        operation_id = f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"
        operation_dir = self.staging_dir / operation_id
        operation_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Staging {len(file_paths)} files for deletion")

        moved: List[Tuple[Path, Path]] = []
        staged_files: List[Dict[str, Any]] = []
        for file_path in file_paths:
            staged_path = self._free_name(operation_dir, file_path)
            try:
                size = file_path.stat().st_size
                shutil.move(str(file_path), str(staged_path))
            except OSError as e:
                logger.error(f"Failed to stage {file_path}: {e}")
                self._rollback(moved)
                shutil.rmtree(operation_dir, ignore_errors=True)
                raise DeletionError(asset_ids, f"could not move {file_path}: {e}") from e

            moved.append((file_path, staged_path))
            staged_files.append(
                {
                    "original_path": str(file_path),
                    "staged_path": str(staged_path),
                    "size": size,
                    "timestamp": datetime.now().isoformat(),
                }
            )
            logger.debug(f"Staged: {file_path} -> {staged_path}")

        operation_metadata = {
            "operation_id": operation_id,
            "timestamp": datetime.now().isoformat(),
            "reason": reason,
            "files_staged": len(staged_files),
            "files": staged_files,
            "metadata": metadata or {},
            "status": "staged",
        }
        self._write_metadata(operation_dir, operation_metadata)
        self._log_operation(operation_metadata)

        logger.info(f"Staged {len(staged_files)} files (operation: {operation_id})")
        return operation_id

    def undo_staging(self, operation_id: str) -> bool:
        """
        Undo a staging operation by restoring files to original locations.

        Args:
            operation_id: ID of the operation to undo

        Returns:
            True if at least one file was restored
        """
        operation_dir = self.staging_dir / operation_id
        operation_metadata = self._read_metadata(operation_dir)
        if operation_metadata is None:
            return False

        restored_count = 0
        for file_info in operation_metadata["files"]:
            staged_path = Path(file_info["staged_path"])
            original_path = Path(file_info["original_path"])

            if not staged_path.exists():
                logger.warning(f"Staged file not found: {staged_path}")
                continue

            if original_path.exists():
                logger.warning(f"Original location occupied, cannot restore: {original_path}")
                continue

            original_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(staged_path), str(original_path))
            restored_count += 1
            logger.debug(f"Restored: {staged_path} -> {original_path}")

        operation_metadata["status"] = "undone"
        operation_metadata["undo_timestamp"] = datetime.now().isoformat()
        operation_metadata["files_restored"] = restored_count
        self._write_metadata(operation_dir, operation_metadata)

        logger.info(f"Restored {restored_count}/{len(operation_metadata['files'])} files")
        return restored_count > 0

    def confirm_deletion(self, operation_id: str, use_recycle_bin: bool = True) -> bool:
        """
        Permanently delete staged files (move to recycle bin or delete).

        Args:
            operation_id: ID of the staging operation
            use_recycle_bin: Move to recycle bin instead of permanent deletion

        Returns:
            True if at least one file was deleted
        """
        operation_dir = self.staging_dir / operation_id
        operation_metadata = self._read_metadata(operation_dir)
        if operation_metadata is None:
            return False

        deleted_count = 0
        for file_info in operation_metadata["files"]:
            staged_path = Path(file_info["staged_path"])

            if not staged_path.exists():
                logger.warning(f"File not found: {staged_path}")
                continue

            try:
                if use_recycle_bin:
                    send2trash(str(staged_path))
                    logger.debug(f"Moved to recycle bin: {staged_path}")
                else:
                    staged_path.unlink()
                    logger.debug(f"Permanently deleted: {staged_path}")
                deleted_count += 1
            except OSError as e:
                logger.error(f"Failed to delete {staged_path}: {e}")
                continue

        operation_metadata["status"] = "deleted"
        operation_metadata["deletion_timestamp"] = datetime.now().isoformat()
        operation_metadata["files_deleted"] = deleted_count
        operation_metadata["used_recycle_bin"] = use_recycle_bin
        self._write_metadata(operation_dir, operation_metadata)

        logger.info(
            f"Deleted {deleted_count}/{len(operation_metadata['files'])} files "
            f"({'recycle bin' if use_recycle_bin else 'permanent'})"
        )
        return deleted_count > 0

    def list_staged_operations(self) -> List[Dict[str, Any]]:
        """
        List all staging operations.

        Returns:
            List of operation metadata dictionaries, oldest first
        """
        operations: List[Dict[str, Any]] = []

        if not self.staging_dir.exists():
            return operations

        for operation_dir in sorted(self.staging_dir.iterdir()):
            if not operation_dir.is_dir():
                continue
            metadata = self._read_metadata(operation_dir, quiet=True)
            if metadata is not None:
                operations.append(metadata)

        return operations

    def clean_old_operations(self, max_age_days: int = 30) -> int:
        """
        Clean up old staging operations.

        Args:
            max_age_days: Maximum age in days for staging operations

        Returns:
            Number of operations cleaned up
        """
        if not self.staging_dir.exists():
            return 0

        cleaned = 0
        cutoff = datetime.now().timestamp() - (max_age_days * 24 * 60 * 60)

        for operation_dir in self.staging_dir.iterdir():
            if not operation_dir.is_dir():
                continue

            if operation_dir.stat().st_mtime < cutoff:
                try:
                    shutil.rmtree(operation_dir)
                    cleaned += 1
                    logger.debug(f"Cleaned old operation: {operation_dir.name}")
                except OSError as e:
                    logger.warning(f"Failed to clean {operation_dir}: {e}")

        if cleaned > 0:
            logger.info(f"Cleaned {cleaned} old staging operations")

        return cleaned

    @staticmethod
    def _free_name(operation_dir: Path, file_path: Path) -> Path:
        staged_path = operation_dir / file_path.name
        counter = 1
        while staged_path.exists():
            staged_path = operation_dir / f"{file_path.stem}_{counter}{file_path.suffix}"
            counter += 1
        return staged_path

    @staticmethod
    def _rollback(moved: List[Tuple[Path, Path]]) -> None:
        for original_path, staged_path in reversed(moved):
            try:
                shutil.move(str(staged_path), str(original_path))
            except OSError as e:
                logger.error(f"Rollback failed for {original_path}: {e}")

    @staticmethod
    def _write_metadata(operation_dir: Path, operation_metadata: Dict[str, Any]) -> None:
        with open(operation_dir / "operation.json", "w", encoding="utf-8") as f:
            json.dump(operation_metadata, f, indent=2)

    @staticmethod
    def _read_metadata(operation_dir: Path, quiet: bool = False) -> Optional[Dict[str, Any]]:
        metadata_file = operation_dir / "operation.json"
        if not metadata_file.exists():
            if not quiet:
                logger.error(f"Operation not found: {operation_dir.name}")
            return None
        try:
            with open(metadata_file, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Error reading operation metadata {operation_dir}: {e}")
            return None

    def _log_operation(self, operation_metadata: Dict[str, Any]) -> None:
        """
        Append an operation summary to the operations log.

        Args:
            operation_metadata: Operation metadata to log
        """
        try:
            self.operations_log.parent.mkdir(parents=True, exist_ok=True)
            with open(self.operations_log, "a", encoding="utf-8") as f:
                log_entry = {
                    "timestamp": operation_metadata["timestamp"],
                    "operation_id": operation_metadata["operation_id"],
                    "reason": operation_metadata["reason"],
                    "files_count": operation_metadata["files_staged"],
                    "status": operation_metadata["status"],
                }
                f.write(json.dumps(log_entry) + "\n")
        except OSError as e:
            logger.warning(f"Failed to log operation: {e}")
