import numpy as np
import pytest

from voxtools import Image, copy, to_array, voxels


def test_image_pads_to_three_dimensions():
    image = Image(np.arange(6).reshape((2, 3)))
    assert image.ndim() == 3
    assert image.shape == (2, 3, 1)


def test_image_cursor(volume):
    volume.set_index(0, 2)
    volume.set_index(1, 3)
    volume.move_index(2, 4)
    volume.move_index(2, -1)
    assert [volume.index(d) for d in range(3)] == [2, 3, 3]
    assert volume.value() == volume.data[2, 3, 3]

    volume.set_value(7)
    assert volume.data[2, 3, 3] == 7

    volume.reset()
    assert [volume.index(d) for d in range(3)] == [0, 0, 0]


def test_voxels_raster_order():
    image = Image(np.zeros((2, 2, 1)))
    assert list(voxels(image)) == [(0, 0, 0), (1, 0, 0), (0, 1, 0), (1, 1, 0)]


def test_copy_and_to_array(volume4d):
    np.testing.assert_array_equal(to_array(volume4d), volume4d.data)

    dst = Image(np.zeros(volume4d.shape, dtype=np.float32))
    copy(volume4d, dst)
    np.testing.assert_array_equal(dst.data, volume4d.data)


def test_copy_shape_mismatch(volume):
    with pytest.raises(ValueError):
        copy(volume, Image(np.zeros((2, 2, 2))))


def test_slab(volume4d):
    np.testing.assert_array_equal(volume4d.slab((1,)), volume4d.data[..., 1])
    with pytest.raises(IndexError):
        volume4d.slab()


def test_dtype_override():
    image = Image(np.arange(8, dtype=np.int16).reshape((2, 2, 2)),
                  dtype=np.float32)
    assert image.dtype == np.float32
    image.set_index(0, 1)
    assert image.value().dtype == np.float32
    assert image.slab().dtype == np.float32


def test_set_value_counts_writes():
    image = Image(np.zeros((2, 2, 2)))
    assert image.version == 0
    image.set_value(1)
    image.move_index(0, 1)
    image.set_value(2)
    assert image.version == 2
    copy(Image(np.ones((2, 2, 2))), image)
    assert image.version == 10
