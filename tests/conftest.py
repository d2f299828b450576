import tempfile
from pathlib import Path

import pytest
from PIL import Image


@pytest.fixture
def workspace():
    """Temporary src/ and dst/ directories."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "src").mkdir()
        yield root / "src", root / "dst"


@pytest.fixture
def make_image():
    """Write a real image file and return its path."""

    def _make(path, size=(64, 64), mode="RGB", color=None, fmt=None):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        if color is None:
            # A gradient, so that resampling actually has something to do
            img = Image.linear_gradient("L").resize(size)
            if mode != "L":
                img = img.convert(mode)
        else:
            img = Image.new(mode, size, color)
        img.save(path, format=fmt)
        return path

    return _make


@pytest.fixture
def make_corrupt():
    """Write bytes that no decoder accepts."""

    def _make(path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"this is not an image" * 20)
        return path

    return _make
