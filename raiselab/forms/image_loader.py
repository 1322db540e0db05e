"""
Item image loading for quotation PDFs.

Every image is fetched, decoded, downscaled to at most 800px wide and
re-encoded as JPEG (quality 85) before it goes anywhere near the PDF, so a
5 MB product photo costs ~100 KB in the document.

prefetch_item_images() fans the loads out on a thread pool and joins them
all before drawing starts. A bad URL costs that one item its image; the
rest of the quotation still renders.
"""

import io
import os
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import requests
from PIL import Image, UnidentifiedImageError

from raiselab.core import paths
from raiselab.core.models import ImageLayout
from raiselab.core.settings import get_float, get_int, get_setting

log = logging.getLogger("image_loader")

MAX_WIDTH = 800
JPEG_QUALITY = 85
WIDE_RATIO = 1.3


class ImageLoadError(Exception):
    """An item image could not be fetched or decoded."""


@dataclass(frozen=True)
class LoadedImage:
    data: bytes         # JPEG bytes, ready for the PDF
    width: int          # source width in px
    height: int         # source height in px

    @property
    def is_wide(self) -> bool:
        return self.width > self.height * WIDE_RATIO

    @property
    def orientation(self) -> ImageLayout:
        return classify_orientation(self.width, self.height)


def classify_orientation(width: float, height: float) -> ImageLayout:
    return ImageLayout.WIDE if width > height * WIDE_RATIO else ImageLayout.TALL


# ═══════════════════════════════════════════════════════════════════════════════
# Fetch + transform
# ═══════════════════════════════════════════════════════════════════════════════

def _fetch(url: str, timeout: float = None) -> bytes:
    if url.startswith(("http://", "https://")):
        timeout = timeout if timeout is not None else get_float("image_timeout")
        try:
            resp = requests.get(url, timeout=timeout)
        except requests.RequestException as e:
            raise ImageLoadError(f"fetch failed for {url}: {e}") from e
        if resp.status_code != 200:
            raise ImageLoadError(f"{url} returned HTTP {resp.status_code}")
        return resp.content

    path = url if os.path.isabs(url) else os.path.join(paths.UPLOAD_DIR, url.lstrip("/"))
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise ImageLoadError(f"cannot read {path}: {e}") from e


def transform_image(raw: bytes) -> LoadedImage:
    """Decode, downscale to MAX_WIDTH and re-encode as JPEG."""
    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageLoadError(f"cannot decode image: {e}") from e

    width, height = img.size
    if width > MAX_WIDTH:
        scale = MAX_WIDTH / width
        img = img.resize((MAX_WIDTH, max(1, round(height * scale))), Image.LANCZOS)

    # JPEG has no alpha; flatten transparent PNGs onto white like a canvas would
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        flat = Image.new("RGB", rgba.size, (255, 255, 255))
        flat.paste(rgba, mask=rgba.split()[-1])
        img = flat
    elif img.mode != "RGB":
        img = img.convert("RGB")

    out = io.BytesIO()
    img.save(out, format="JPEG", quality=JPEG_QUALITY)
    return LoadedImage(data=out.getvalue(), width=width, height=height)


def load_image(url: str, timeout: float = None) -> LoadedImage:
    """Fetch one image URL (or uploads-relative path) and make it PDF-ready."""
    if not url:
        raise ImageLoadError("empty image url")
    return transform_image(_fetch(url, timeout=timeout))


# ═══════════════════════════════════════════════════════════════════════════════
# Fan-out
# ═══════════════════════════════════════════════════════════════════════════════

def prefetch_item_images(items: Iterable, max_workers: int = None) -> Dict[object, LoadedImage]:
    """Load every item image concurrently. Returns {item.image_key: LoadedImage}.

    Items sharing a URL share one download. Failed items are simply absent.
    """
    wanted = {}
    for item in items:
        if item.image_url:
            wanted.setdefault(item.image_url, []).append(item.image_key)
    if not wanted:
        return {}

    max_workers = max_workers or get_int("image_workers")
    results = {}
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(wanted)))) as executor:
        futures = {url: executor.submit(load_image, url) for url in wanted}
        for url, future in futures.items():
            try:
                loaded = future.result()
            except Exception as e:
                for key in wanted[url]:
                    log.warning("Could not load item image for %s: %s", key, e)
                continue
            for key in wanted[url]:
                results[key] = loaded
            log.debug("Image %s: %dx%d (%s)", url, loaded.width, loaded.height,
                      loaded.orientation.value)

    log.info("Prefetched %d/%d item images", len(results),
             sum(len(keys) for keys in wanted.values()))
    return results


# ═══════════════════════════════════════════════════════════════════════════════
# Logo
# ═══════════════════════════════════════════════════════════════════════════════

def _find_logo() -> Optional[str]:
    """Find logo: data/assets/{quotation-logo,logo}.{png,jpg,jpeg}"""
    for d in (paths.ASSETS_DIR, paths.DATA_DIR):
        for name in ("quotation-logo", "logo"):
            for ext in ("png", "jpg", "jpeg"):
                p = os.path.join(d, f"{name}.{ext}")
                if os.path.exists(p):
                    return p
    return None


def load_logo() -> Optional[LoadedImage]:
    """The fixed quotation logo, or None (quotation renders without it)."""
    source = get_setting("logo_url") or _find_logo()
    if not source:
        log.debug("No quotation logo configured")
        return None
    try:
        return load_image(source)
    except ImageLoadError as e:
        log.warning("Could not load quotation logo: %s", e)
        return None
