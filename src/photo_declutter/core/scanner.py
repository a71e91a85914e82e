"""File scanner for discovering photos and videos in directories."""

import os
from pathlib import Path
from typing import List, Optional, Set

from tqdm import tqdm

from photo_declutter.core.models import MediaType
from photo_declutter.utils.logger import setup_logger

logger = setup_logger(__name__)


class MediaScanner:
    """Scans directories for image and video files with progress tracking."""

    IMAGE_EXTENSIONS = {
        ".jpg",
        ".jpeg",
        ".png",
        ".gif",
        ".bmp",
        ".webp",
        ".heic",
        ".heif",
        ".tiff",
        ".tif",
    }

    VIDEO_EXTENSIONS = {
        ".mp4",
        ".mov",
        ".m4v",
        ".avi",
        ".mkv",
        ".3gp",
        ".mts",
    }

    def __init__(self, show_progress: bool = False):
        """
        Initialize the media scanner.

        Args:
            show_progress: Show progress bar during scanning
        """
        self.show_progress = show_progress

    def scan_directory(
        self, directory: Path, recursive: bool = True, skip_hidden: bool = True
    ) -> List[Path]:
        """
        Scan a directory for photo and video files.

        Args:
            directory: Directory path to scan
            recursive: Recursively scan subdirectories
            skip_hidden: Skip hidden files and folders

        Returns:
            List of media file paths, sorted

        Raises:
            FileNotFoundError: If directory doesn't exist
            NotADirectoryError: If the path is not a directory
        """
        if not directory.exists():
            raise FileNotFoundError(f"Directory not found: {directory}")

        if not directory.is_dir():
            raise NotADirectoryError(f"Not a directory: {directory}")

        logger.info(f"Scanning directory: {directory}")

        all_files = self._discover_files(directory, recursive, skip_hidden)
        logger.debug(f"Found {len(all_files)} files to check")

        if self.show_progress:
            file_iter = tqdm(all_files, desc="Filtering media", unit="file")
        else:
            file_iter = all_files

        media_files = [path for path in file_iter if self.media_type(path) is not None]

        logger.info(f"Found {len(media_files)} media files")
        return sorted(media_files)

    def media_type(self, file_path: Path) -> Optional[MediaType]:
        """
        Classify a file by extension.

        Args:
            file_path: File path to check

        Returns:
            MediaType, or None when the file is not a supported photo or video
        """
        suffix = file_path.suffix.lower()
        if suffix in self.IMAGE_EXTENSIONS:
            return MediaType.IMAGE
        if suffix in self.VIDEO_EXTENSIONS:
            return MediaType.VIDEO
        return None

    def _discover_files(
        self, directory: Path, recursive: bool, skip_hidden: bool
    ) -> List[Path]:
        """
        Discover all files in a directory.

        Args:
            directory: Directory to scan
            recursive: Scan subdirectories
            skip_hidden: Skip hidden files/folders

        Returns:
            List of all file paths
        """
        files: List[Path] = []

        try:
            if recursive:
                for root, dirs, filenames in os.walk(directory):
                    root_path = Path(root)

                    if skip_hidden:
                        dirs[:] = [d for d in dirs if not d.startswith(".")]

                    # Skip symlinks to avoid loops
                    dirs[:] = [d for d in dirs if not (root_path / d).is_symlink()]

                    for filename in filenames:
                        file_path = root_path / filename
                        if skip_hidden and filename.startswith("."):
                            continue
                        if file_path.is_symlink():
                            continue
                        files.append(file_path)
            else:
                for item in directory.iterdir():
                    if not item.is_file() or item.is_symlink():
                        continue
                    if skip_hidden and item.name.startswith("."):
                        continue
                    files.append(item)

        except PermissionError as e:
            logger.warning(f"Permission denied accessing directory: {e}")

        return files

    def scan_multiple_directories(
        self, directories: List[Path], recursive: bool = True, skip_hidden: bool = True
    ) -> List[Path]:
        """
        Scan multiple directories for media.

        Args:
            directories: List of directory paths
            recursive: Recursively scan subdirectories
            skip_hidden: Skip hidden files and folders

        Returns:
            Combined list of unique media file paths
        """
        all_media: Set[Path] = set()

        for directory in directories:
            try:
                all_media.update(self.scan_directory(directory, recursive, skip_hidden))
            except (FileNotFoundError, NotADirectoryError) as e:
                logger.error(f"Error scanning {directory}: {e}")
                continue

        return sorted(all_media)
