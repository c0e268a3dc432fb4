from typing import Iterable, Optional

from emotehub.models.catalog import ImageVariant

MIME_PREFERENCE = {
    "image/webp": 4,
    "image/gif": 3,
    "image/avif": 2,
    "image/png": 1,
}

EXTENSIONS = {
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/avif": ".avif",
    "image/png": ".png",
}


def mime_rank(mime: str) -> int:
    return MIME_PREFERENCE.get(mime, 0)


def extension_for(mime: str) -> str:
    return EXTENSIONS.get(mime, ".png")


def _preference_key(image: ImageVariant):
    # width and url only break exact ties so the pick never depends on input order
    return (-mime_rank(image.mime), -image.scale, -image.width, image.url)


def select_best_image(images: Iterable[ImageVariant]) -> Optional[ImageVariant]:
    """
    Pick the single best rendition of an emote.

    Animated renditions win over static ones. Within the winning group the
    MIME preference (webp > gif > avif > png > anything else) decides, then
    the larger scale. Returns None when there is nothing to choose from.
    """
    images = list(images)
    animated = [img for img in images if img.animated]
    candidates = animated or [img for img in images if not img.animated]
    if not candidates:
        return None
    return min(candidates, key=_preference_key)
