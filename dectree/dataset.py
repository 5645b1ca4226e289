"""
In-memory image datasets and their binary file format.

A dataset file holds a signed 32-bit item count N (native byte order)
followed by N records, each a one byte label and ``width * width`` pixel
intensities in row-major order. The width is agreed on out of band.
"""

from pathlib import Path

import numpy as np

from .config import NUM_CLASSES, WIDTH
from .logger import setup_logger

logger = setup_logger(__name__)

HEADER_DTYPE = np.dtype("=i4")


class DatasetFormatError(ValueError):
    """Raised when a dataset file does not match the expected layout."""


def _readonly(array):
    array.flags.writeable = False
    return array


class Image:
    """
    A square grayscale image.

    Parameters
    ----------
    data : array-like
        ``width * width`` intensities in [0, 255], flat or shaped (width, width)
    width : int, optional
        Side length; inferred from a 2D ``data`` when omitted
    """

    def __init__(self, data, width=None):
        pixels = np.asarray(data)
        if width is None:
            if pixels.ndim == 2 and pixels.shape[0] == pixels.shape[1]:
                width = pixels.shape[0]
            else:
                width = int(round(np.sqrt(pixels.size)))
        if pixels.size != width * width:
            raise ValueError(
                f"Image has {pixels.size} pixels, expected {width * width}"
            )
        if pixels.dtype != np.uint8:
            if pixels.size and (pixels.min() < 0 or pixels.max() > 255):
                raise ValueError("Pixel intensities must be in [0, 255]")
            pixels = pixels.astype(np.uint8)

        pixels = pixels.reshape(-1)
        if pixels.flags.writeable:
            pixels = _readonly(pixels.copy())

        self.sx = width
        self.sy = width
        self.data = pixels

    def __getitem__(self, pixel):
        return self.data[pixel]

    def __len__(self):
        return self.data.size

    def to_array(self):
        """Return the pixels as a (sy, sx) array."""
        return self.data.reshape(self.sy, self.sx)


class Dataset:
    """
    An ordered collection of (image, label) pairs.

    Images are kept as one read-only ``(N, width * width)`` uint8 matrix so
    that tree nodes can refer to members by index without copying pixels.

    Parameters
    ----------
    images : array-like of shape (N, width, width) or (N, width * width)
        Pixel intensities in [0, 255]
    labels : array-like of shape (N,)
        Labels in [0, num_classes)
    width : int, default=28
        Side length of every image
    num_classes : int, default=10
        Number of distinct labels
    """

    def __init__(self, images, labels, width=WIDTH, num_classes=NUM_CLASSES):
        images = np.asarray(images)
        labels = np.asarray(labels)
        num_pixels = width * width

        if labels.ndim != 1:
            raise ValueError("labels must be a 1D array")
        num_items = labels.shape[0]
        if images.shape[0] != num_items:
            raise ValueError(
                f"Got {images.shape[0]} images but {num_items} labels"
            )
        if num_items:
            images = images.reshape(num_items, -1)
        else:
            images = images.reshape(0, num_pixels)
        if images.shape[1] != num_pixels:
            raise ValueError(
                f"Images have {images.shape[1]} pixels, expected {num_pixels}"
            )
        if num_items:
            if not np.issubdtype(labels.dtype, np.integer):
                raise ValueError(f"labels must be integers, got {labels.dtype}")
            if images.min() < 0 or images.max() > 255:
                raise ValueError("Pixel intensities must be in [0, 255]")
            if labels.min() < 0 or labels.max() >= num_classes:
                raise ValueError(f"Labels must be in [0, {num_classes})")

        self.width = width
        self.num_classes = num_classes
        self.images = _readonly(images.astype(np.uint8, copy=True))
        self.labels = _readonly(labels.astype(np.uint8, copy=True))

    @property
    def num_items(self):
        return self.labels.shape[0]

    @property
    def num_pixels(self):
        return self.width * self.width

    def __len__(self):
        return self.num_items

    def image(self, index):
        """Return member ``index`` as an ``Image`` sharing the dataset's memory."""
        return Image(self.images[index], width=self.width)

    def indices(self):
        """Index subset covering the whole dataset."""
        return np.arange(self.num_items)

    def __repr__(self):
        return (f"Dataset(num_items={self.num_items}, width={self.width}, "
                f"num_classes={self.num_classes})")


def load_dataset(path, width=WIDTH, num_classes=NUM_CLASSES):
    """
    Read a dataset file.

    Parameters
    ----------
    path : str or Path
        File in the binary dataset format
    width : int, default=28
        Image side length the file was written with

    Returns
    -------
    dataset : Dataset

    Raises
    ------
    OSError
        If the file cannot be opened or read
    DatasetFormatError
        If the file size does not match its declared item count, or a label
        is out of range
    """
    path = Path(path)
    with open(path, "rb") as f:
        raw = f.read()

    if len(raw) < HEADER_DTYPE.itemsize:
        raise DatasetFormatError(f"{path}: file too short for the item count header")

    num_items = int(np.frombuffer(raw, dtype=HEADER_DTYPE, count=1)[0])
    if num_items < 0:
        raise DatasetFormatError(f"{path}: negative item count {num_items}")

    record_size = 1 + width * width
    expected = HEADER_DTYPE.itemsize + num_items * record_size
    if len(raw) != expected:
        raise DatasetFormatError(
            f"{path}: expected {expected} bytes for {num_items} images of "
            f"width {width}, found {len(raw)}"
        )

    if num_items:
        records = np.frombuffer(
            raw, dtype=np.uint8, count=num_items * record_size,
            offset=HEADER_DTYPE.itemsize
        ).reshape(num_items, record_size)
    else:
        records = np.empty((0, record_size), dtype=np.uint8)

    labels = records[:, 0]
    if num_items and labels.max() >= num_classes:
        bad = int(np.argmax(labels >= num_classes))
        raise DatasetFormatError(
            f"{path}: label {labels[bad]} of item {bad} outside [0, {num_classes})"
        )

    dataset = Dataset(records[:, 1:], labels, width=width, num_classes=num_classes)
    logger.info(f"Loaded {num_items} images of width {width} from {path}")
    return dataset


def save_dataset(dataset, path):
    """Write ``dataset`` in the binary dataset format."""
    path = Path(path)
    records = np.empty((dataset.num_items, 1 + dataset.num_pixels), dtype=np.uint8)
    records[:, 0] = dataset.labels
    records[:, 1:] = dataset.images

    with open(path, "wb") as f:
        f.write(np.array([dataset.num_items], dtype=HEADER_DTYPE).tobytes())
        f.write(records.tobytes())

    logger.info(f"Saved {dataset.num_items} images to {path}")


def release_dataset(dataset):
    """Drop the pixel and label arrays held by ``dataset``."""
    dataset.images = _readonly(np.empty((0, dataset.num_pixels), dtype=np.uint8))
    dataset.labels = _readonly(np.empty(0, dtype=np.uint8))
