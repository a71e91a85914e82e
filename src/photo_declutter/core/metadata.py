"""Read asset metadata (capture time, dimensions, flags) from media files."""

from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from PIL import ExifTags, Image, UnidentifiedImageError

from photo_declutter.core.models import Asset, MediaType
from photo_declutter.utils.logger import setup_logger

logger = setup_logger(__name__)

EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"

# Orientations that rotate the stored pixels by 90 degrees
_TRANSPOSED_ORIENTATIONS = {5, 6, 7, 8}


def read_asset(path: Path, media_type: MediaType = MediaType.IMAGE) -> Asset:
    """
    Build an Asset for a file on disk.

    Capture time comes from EXIF (DateTimeOriginal, DateTimeDigitized,
    DateTime, in that order) and falls back to the modification time. Videos
    are not decoded; their dimensions are reported as zero.

    Args:
        path: Media file
        media_type: Whether the file is an image or a video

    Returns:
        Asset whose id is the absolute path of the file

    Raises:
        OSError: If the file cannot be stat'ed
    """
    stat = path.stat()
    modified = datetime.fromtimestamp(stat.st_mtime)

    width = height = 0
    capture_time: Optional[datetime] = None

    if media_type == MediaType.IMAGE:
        try:
            with Image.open(path) as img:
                width, height, capture_time = _image_properties(img)
        except (UnidentifiedImageError, OSError) as e:
            logger.debug(f"Could not read image metadata for {path}: {e}")

    return Asset(
        id=str(path.resolve()),
        capture_time=capture_time or modified,
        width=width,
        height=height,
        byte_size=stat.st_size,
        media_type=media_type,
        is_screenshot=is_screenshot_name(path.name),
        path=path.resolve(),
    )


def is_screenshot_name(filename: str) -> bool:
    """Screenshots are recognised by name ("Screenshot ...", "Screen Shot ...")."""
    return "screenshot" in filename.lower().replace(" ", "").replace("_", "")


def parse_exif_datetime(value: object) -> Optional[datetime]:
    """Parse an EXIF 'YYYY:MM:DD HH:MM:SS' value; None when malformed."""
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip().rstrip("\x00"), EXIF_DATE_FORMAT)
    except ValueError:
        return None


def _image_properties(img: Image.Image) -> Tuple[int, int, Optional[datetime]]:
    width, height = img.size
    exif = img.getexif()
    if not exif:
        return width, height, None

    if exif.get(ExifTags.Base.Orientation) in _TRANSPOSED_ORIENTATIONS:
        width, height = height, width

    exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
    for tag in (ExifTags.Base.DateTimeOriginal, ExifTags.Base.DateTimeDigitized):
        parsed = parse_exif_datetime(exif_ifd.get(tag))
        if parsed is not None:
            return width, height, parsed

    return width, height, parse_exif_datetime(exif.get(ExifTags.Base.DateTime))
