# tests/conftest.py
# Ensure project root is importable as a module during pytest runs
import pathlib
import sys

import numpy as np
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dectree import Dataset  # noqa: E402


def dataset_bytes(images, labels):
    """Encode images/labels in the binary dataset layout, independently of save_dataset."""
    out = bytearray(np.array([len(labels)], dtype="=i4").tobytes())
    for img, label in zip(images, labels):
        out.append(int(label))
        out.extend(np.asarray(img, dtype=np.uint8).reshape(-1).tobytes())
    return bytes(out)


@pytest.fixture
def write_dataset(tmp_path):
    def _write(images, labels, name="data.bin"):
        path = tmp_path / name
        path.write_bytes(dataset_bytes(images, labels))
        return path
    return _write


@pytest.fixture
def black_white_images():
    """Two all-zero images labelled 0 and two all-255 images labelled 1."""
    images = np.zeros((4, 28, 28), dtype=np.uint8)
    images[2:] = 255
    labels = np.array([0, 0, 1, 1], dtype=np.uint8)
    return images, labels


@pytest.fixture
def black_white_dataset(black_white_images):
    images, labels = black_white_images
    return Dataset(images, labels)


@pytest.fixture
def distinct_binary_dataset():
    """60 distinct 4x4 binary images with random labels."""
    rng = np.random.default_rng(0)
    codes = rng.choice(2 ** 16, size=60, replace=False)
    bits = (codes[:, None] >> np.arange(16)) & 1
    images = (bits * 255).astype(np.uint8)
    labels = rng.integers(0, 10, size=60)
    return Dataset(images, labels, width=4)
