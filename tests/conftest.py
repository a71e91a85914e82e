"""Shared fixtures: in-memory asset store, asset factory and isolated config."""

import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Set

import pytest
from PIL import Image

from photo_declutter.core.errors import DeletionError
from photo_declutter.core.models import Asset, MediaType, sort_chronologically
from photo_declutter.core.store import AssetStore
from photo_declutter.utils.config import Config

BASE_TIME = datetime(2024, 6, 1, 12, 0, 0)


def make_asset(
    asset_id: str,
    seconds: float = 0,
    width: int = 4032,
    height: int = 3024,
    byte_size: Optional[int] = None,
    media_type: MediaType = MediaType.IMAGE,
    is_screenshot: bool = False,
) -> Asset:
    """Asset captured *seconds* after BASE_TIME."""
    return Asset(
        id=asset_id,
        capture_time=BASE_TIME + timedelta(seconds=seconds),
        width=width,
        height=height,
        byte_size=byte_size,
        media_type=media_type,
        is_screenshot=is_screenshot,
    )


def solid_image(color=(128, 128, 128), size: int = 64) -> Image.Image:
    return Image.new("RGB", (size, size), color)


def checkerboard_image(size: int = 64, cell: int = 8) -> Image.Image:
    img = Image.new("L", (size, size), 0)
    pixels = img.load()
    for x in range(size):
        for y in range(size):
            if (x // cell + y // cell) % 2 == 0:
                pixels[x, y] = 255
    return img.convert("RGB")


class FakeAssetStore(AssetStore):
    """Asset store held entirely in memory."""

    def __init__(
        self,
        assets: Sequence[Asset] = (),
        images: Optional[Dict[str, Image.Image]] = None,
        failing_ids: Optional[Set[str]] = None,
        sizes: Optional[Dict[str, int]] = None,
    ):
        self.assets = {asset.id: asset for asset in assets}
        self.images = images or {}
        self.failing_ids = failing_ids or set()
        self.sizes = sizes or {}
        self.deleted: List[List[str]] = []
        self.fetch_calls: List[str] = []
        self.reject_deletes = False
        self._lock = threading.Lock()

    def enumerate_assets(
        self,
        media_type: Optional[MediaType] = None,
        predicate: Optional[Callable[[Asset], bool]] = None,
    ) -> List[Asset]:
        selected = [
            asset
            for asset in self.assets.values()
            if (media_type is None or asset.media_type == media_type)
            and (predicate is None or predicate(asset))
        ]
        return sort_chronologically(selected)

    def fetch_image(self, asset_id: str, target_size: int) -> Image.Image:
        with self._lock:
            self.fetch_calls.append(asset_id)
        if asset_id in self.failing_ids:
            raise OSError("cannot identify image file")
        image = self.images[asset_id] if asset_id in self.images else solid_image()
        return image.resize((target_size, target_size))

    def byte_size(self, asset_id: str) -> Optional[int]:
        return self.sizes.get(asset_id)

    def delete(self, asset_ids: Sequence[str]) -> str:
        if self.reject_deletes:
            raise DeletionError(asset_ids, "user denied access")
        unknown = [asset_id for asset_id in asset_ids if asset_id not in self.assets]
        if unknown:
            raise DeletionError(asset_ids, f"unknown ids: {unknown}")
        for asset_id in asset_ids:
            del self.assets[asset_id]
        self.deleted.append(list(asset_ids))
        return f"op-{len(self.deleted)}"


@pytest.fixture
def asset_factory():
    return make_asset


@pytest.fixture
def fake_store_factory():
    return FakeAssetStore


@pytest.fixture
def config(tmp_path):
    """Config stored under tmp_path with a single known protected folder."""
    cfg = Config(tmp_path / "settings" / "config.json")
    cfg.set("protected_folders", ["DoNotTouch"])
    return cfg
