import gzip
import struct

import numpy as np
import pytest

from mnistnet.data.idx import DataSet
from mnistnet.data.registry import (
    TEST_IMAGES,
    TEST_LABELS,
    TRAIN_IMAGES,
    TRAIN_LABELS,
    get_dataset,
)
from mnistnet.data.rwfile import DatasetLoadError, read_file
from mnistnet.data.utils import IndexWalker, make_batch


def _labels_bytes(labels, magic=2049, count=None):
    count = len(labels) if count is None else count
    return struct.pack(">II", magic, count) + bytes(labels)


def _images_bytes(images, rows, cols, magic=2051, count=None):
    count = len(images) if count is None else count
    body = b"".join(bytes(img) for img in images)
    return struct.pack(">IIII", magic, count, rows, cols) + body


def _write_pair(root, labels, images, rows=2, cols=2, prefix="train"):
    labels_path = root / f"{prefix}-labels-idx1-ubyte"
    images_path = root / f"{prefix}-images-idx3-ubyte"
    labels_path.write_bytes(_labels_bytes(labels))
    images_path.write_bytes(_images_bytes(images, rows, cols))
    return labels_path, images_path


_IMAGES = [[0, 255, 51, 102], [255, 255, 0, 0], [10, 20, 30, 40]]
_LABELS = [7, 0, 9]


def test_load_idx_pair(tmp_path):
    labels_path, images_path = _write_pair(tmp_path, _LABELS, _IMAGES)
    ds = DataSet.load(labels_path, images_path)
    assert ds.size() == 3
    assert len(ds) == 3
    assert ds.image_shape == (2, 2)
    assert ds.label(0) == 7

    image = ds.image_to_matrix(0)
    assert image.shape == (1, 4)
    np.testing.assert_allclose(image.data, [0.0, 1.0, 0.2, 0.4])

    label = ds.label_to_matrix(2)
    assert label.shape == (1, 10)
    assert label[0, 9] == 1.0
    assert float(np.sum(label.data)) == 1.0


def test_load_gzipped_files(tmp_path):
    labels_path = tmp_path / "labels.gz"
    images_path = tmp_path / "images.gz"
    labels_path.write_bytes(gzip.compress(_labels_bytes(_LABELS)))
    images_path.write_bytes(gzip.compress(_images_bytes(_IMAGES, 2, 2)))
    ds = DataSet.load(labels_path, images_path)
    assert ds.size() == 3
    assert ds.label(2) == 9


def test_missing_file_fails(tmp_path):
    labels_path, _ = _write_pair(tmp_path, _LABELS, _IMAGES)
    with pytest.raises(DatasetLoadError):
        DataSet.load(labels_path, tmp_path / "nope")


def test_empty_file_fails(tmp_path):
    path = tmp_path / "empty"
    path.write_bytes(b"")
    with pytest.raises(DatasetLoadError):
        read_file(path)


def test_truncated_images_fail(tmp_path):
    labels_path, images_path = _write_pair(tmp_path, _LABELS, _IMAGES)
    images_path.write_bytes(images_path.read_bytes()[:-1])
    with pytest.raises(DatasetLoadError):
        DataSet.load(labels_path, images_path)


def test_count_mismatch_fails(tmp_path):
    labels_path, images_path = _write_pair(tmp_path, _LABELS[:2], _IMAGES)
    with pytest.raises(DatasetLoadError):
        DataSet.load(labels_path, images_path)


def test_bad_magic_fails(tmp_path):
    labels_path, images_path = _write_pair(tmp_path, _LABELS, _IMAGES)
    labels_path.write_bytes(_labels_bytes(_LABELS, magic=2051))
    with pytest.raises(DatasetLoadError):
        DataSet.load(labels_path, images_path)


def test_out_of_range_index(tmp_path):
    ds = DataSet.load(*_write_pair(tmp_path, _LABELS, _IMAGES))
    with pytest.raises(IndexError):
        ds.image_to_matrix(3)
    with pytest.raises(IndexError):
        ds.label(-1)


def test_make_batch_stacks_rows(tmp_path):
    ds = DataSet.load(*_write_pair(tmp_path, _LABELS, _IMAGES))
    x, t = make_batch(ds, [2, 0])
    assert x.shape == (2, 4)
    assert t.shape == (2, 10)
    assert x.row(0) == ds.image_to_matrix(2)
    np.testing.assert_array_equal(t.argmax_rows(), [9, 7])


def test_index_walker_stays_in_range():
    walker = IndexWalker(7, np.random.default_rng(0))
    indices = walker.next_indices(500)
    assert len(indices) == 500
    assert min(indices) >= 0 and max(indices) < 7
    assert len(set(indices)) == 7


def test_registry_mnist_from_directory(tmp_path):
    _write_pair(tmp_path, _LABELS, _IMAGES, prefix="train")
    _write_pair(tmp_path, _LABELS[:2], _IMAGES[:2], prefix="t10k")
    pair = get_dataset("mnist", data_dir=tmp_path)
    assert (tmp_path / TRAIN_LABELS).exists() and (tmp_path / TRAIN_IMAGES).exists()
    assert (tmp_path / TEST_LABELS).exists() and (tmp_path / TEST_IMAGES).exists()
    assert pair.train.size() == 3
    assert pair.test.size() == 2
    assert pair.d_in == 4
    assert pair.d_out == 10
    assert pair.provenance["source"] == "idx"


def test_registry_mnist_missing_files(tmp_path):
    with pytest.raises(DatasetLoadError):
        get_dataset("mnist", data_dir=tmp_path)


def test_registry_synthetic_and_unknown():
    pair = get_dataset("synthetic", n_samples=12, n_features=3, num_classes=3)
    assert pair.d_in == 3
    assert pair.d_out == 3
    assert pair.train.size() == 12
    assert [pair.train.label(i) for i in range(6)] == [0, 1, 2, 0, 1, 2]
    with pytest.raises(KeyError):
        get_dataset("cifar")
