import numpy as np
import pytest

from voxtools import Image, Nearest, Linear, Cubic, get_interpolator, \
    default_out_of_bounds_value
from voxtools.image import copy, goto
from voxtools.interpolate import affine_grid, identity_grid


@pytest.mark.parametrize('klass', [Nearest, Linear, Cubic])
def test_grid_points_are_preserved(volume, klass):
    interp = klass(volume)
    coords = identity_grid(volume.shape, dtype=np.float64)
    values, valid = interp.sample(coords)
    assert valid.all()
    np.testing.assert_allclose(values, volume.data, rtol=1e-4, atol=1e-4)


@pytest.mark.parametrize('klass', [Nearest, Linear])
def test_grid_points_are_exact(volume, klass):
    interp = klass(volume)
    interp.voxel([2, 3, 4])
    assert interp.value() == volume.data[2, 3, 4]


def test_linear_midpoint(volume):
    interp = Linear(volume)
    assert interp.voxel([1.5, 2, 3])
    expected = 0.5 * (volume.data[1, 2, 3] + volume.data[2, 2, 3])
    np.testing.assert_allclose(interp.value(), expected, rtol=1e-6)


def test_nearest_rounds_half_up(volume):
    interp = Nearest(volume)
    interp.voxel([1.5, 2.4, 3])
    assert interp.value() == volume.data[2, 2, 3]


def test_bounds(volume):
    interp = Linear(volume)
    assert interp.voxel([-0.5, 0, 0])
    assert interp.voxel([4.5, 5.5, 6.5])
    assert not interp.voxel([-0.51, 0, 0])
    assert not interp
    assert np.isnan(interp.value())
    assert interp.voxel([4.5, 0, 0])
    # border neighbours are clamped
    np.testing.assert_allclose(interp.value(), volume.data[4, 0, 0])


def test_out_of_bounds_value(volume):
    interp = Cubic(volume, out_of_bounds=-1)
    values, valid = interp.sample([[0, 0, 0], [10, 0, 0]])
    assert valid.tolist() == [True, False]
    assert values[1] == -1


def test_integer_data():
    image = Image(np.arange(27, dtype=np.int16).reshape((3, 3, 3)))
    interp = Nearest(image)
    assert interp.dtype == np.int16
    assert interp.out_of_bounds == 0
    interp.voxel([1, 1, 1])
    assert interp.value() == 13
    assert Linear(image).dtype == np.float32


def test_default_out_of_bounds_value():
    assert np.isnan(default_out_of_bounds_value(np.float32))
    assert default_out_of_bounds_value(np.uint8) == 0


def test_passthrough_index(volume4d):
    interp = Linear(volume4d)
    interp.set_index(3, 2)
    interp.voxel([1, 2, 3])
    assert interp.value() == volume4d.data[1, 2, 3, 2]
    interp.move_index(3, -1)
    assert interp.index(3) == 1
    assert interp.value() == volume4d.data[1, 2, 3, 1]


def test_accessor_contract(volume4d):
    interp = Cubic(volume4d)
    assert interp.ndim() == 4
    assert [interp.size(d) for d in range(4)] == [4, 5, 6, 3]
    assert interp.voxsize(0) == 1
    assert interp.name() == 'volume4d'
    np.testing.assert_array_equal(interp.transform(), np.eye(4))


def test_affine_grid():
    mat = np.array([[2, 0, 0, 1], [0, 1, 0, 0], [0, 0, 1, -1], [0, 0, 0, 1]])
    grid = affine_grid(mat, (2, 3, 4), dtype=np.float64)
    assert grid.shape == (2, 3, 4, 3)
    np.testing.assert_array_equal(grid[1, 2, 3], [3, 2, 2])


@pytest.mark.parametrize('method,klass', [
    ('nearest', Nearest), ('Linear', Linear), (3, Cubic), (Linear, Linear)])
def test_get_interpolator(method, klass):
    assert get_interpolator(method) is klass


def test_get_interpolator_unknown():
    with pytest.raises(ValueError):
        get_interpolator('sinc')
    with pytest.raises(TypeError):
        get_interpolator(int)


@pytest.mark.parametrize('klass', [Nearest, Linear, Cubic])
def test_writes_are_seen_after_sampling(klass):
    image = Image(np.zeros((5, 5, 5), dtype=np.float32))
    interp = klass(image)
    interp.voxel([2, 2, 2])
    assert interp.value() == 0
    goto(image, (2, 2, 2))
    image.set_value(10)
    assert interp.value() == pytest.approx(10, abs=1e-4)


def test_integer_writes_are_seen_after_sampling():
    image = Image(np.zeros((3, 3, 3), dtype=np.int16))
    interp = Linear(image)
    interp.voxel([1.5, 1, 1])
    assert interp.value() == 0
    copy(Image(np.full((3, 3, 3), 4, dtype=np.int16)), image)
    assert interp.value() == 4


def test_spatial_index_is_not_a_cursor(volume4d):
    interp = Nearest(volume4d)
    interp.voxel([1.2, 2, 3])
    for axis in range(3):
        with pytest.raises(IndexError):
            interp.index(axis)
        with pytest.raises(IndexError):
            interp.set_index(axis, 0)
        with pytest.raises(IndexError):
            interp.move_index(axis, 1)
    assert interp.index(3) == 0
