"""Decode, resample and re-encode one image (CPU-bound, runs on worker threads)"""

from io import BytesIO

from PIL import Image, ImageFilter, UnidentifiedImageError

from ..errors import DecodeError, EncodeError
from ..models import FilterKind, ResizeConfig

# Fixed, non-configurable JPEG quality for thumbnails
JPEG_QUALITY = 8

_RESAMPLING = {
    FilterKind.NEAREST: Image.Resampling.NEAREST,
    FilterKind.TRIANGLE: Image.Resampling.BILINEAR,
    FilterKind.GAUSSIAN: Image.Resampling.BILINEAR,
    FilterKind.CATMULL_ROM: Image.Resampling.BICUBIC,
    FilterKind.LANCZOS3: Image.Resampling.LANCZOS,
}

# Sigma of the Gaussian kernel per unit of downscale factor
_GAUSSIAN_SIGMA = 0.5


class ResizeWorker:
    """Stateless bytes-to-bytes thumbnail transform.

    Holds only the immutable ResizeConfig, so one instance can be shared by
    every worker thread.
    """

    def __init__(self, config: ResizeConfig):
        self.config = config

    def __call__(self, data: bytes) -> bytes:
        return self.resize(data)

    def resize(self, data: bytes) -> bytes:
        """Resize encoded image bytes to exactly width x height and return JPEG bytes"""
        img = self._decode(data)
        try:
            img = _to_jpeg_mode(img)
            img = self._resample(img)
        except (OSError, ValueError) as e:
            raise DecodeError(f"Cannot convert decoded image ({e})") from e
        return self._encode(img)

    def _decode(self, data: bytes) -> Image.Image:
        try:
            img = Image.open(BytesIO(data))
            # Force the full decode here so truncated files fail as decode errors
            img.load()
            return img
        except Image.DecompressionBombError as e:
            raise DecodeError(f"Image too large to decode safely ({e})") from e
        except UnidentifiedImageError as e:
            raise DecodeError("Unsupported or invalid image data") from e
        except (OSError, SyntaxError, ValueError) as e:
            raise DecodeError(f"Cannot decode image ({e})") from e

    def _resample(self, img: Image.Image) -> Image.Image:
        size = (self.config.width, self.config.height)
        kind = self.config.filter_kind
        if kind is FilterKind.GAUSSIAN:
            scale = max(img.width / size[0], img.height / size[1])
            if scale > 1:
                img = img.filter(ImageFilter.GaussianBlur(radius=_GAUSSIAN_SIGMA * scale))
        return img.resize(size, _RESAMPLING[kind])

    def _encode(self, img: Image.Image) -> bytes:
        output = BytesIO()
        try:
            img.save(output, format="JPEG", quality=JPEG_QUALITY)
        except (OSError, ValueError, KeyError) as e:
            raise EncodeError(f"Cannot encode JPEG ({e})") from e
        return output.getvalue()


def resize_image(data: bytes, config: ResizeConfig) -> bytes:
    """Shortcut for ResizeWorker(config).resize(data)"""
    return ResizeWorker(config).resize(data)


def _to_jpeg_mode(img: Image.Image) -> Image.Image:
    """Convert to a mode the JPEG encoder accepts, flattening alpha onto white"""
    if img.mode in ("RGB", "L"):
        return img
    if img.mode == "P":
        img = img.convert("RGBA" if "transparency" in img.info else "RGB")
    if img.mode in ("RGBA", "LA", "PA"):
        img = img.convert("RGBA")
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background
    if img.mode.startswith("I;16"):
        img = img.convert("I")
    if img.mode == "I":
        # 16-bit grayscale: scale down to 8 bits
        img = img.point(lambda v: v * (1 / 256)).convert("L")
    elif img.mode == "F":
        # Float samples span 0..1
        img = img.point(lambda v: v * 255).convert("L")
    return img if img.mode in ("RGB", "L") else img.convert("RGB")
