"""Grid accessors backed by stored voxel data.

Every accessor in voxtools (stored images, interpolators, resliced
views) exposes the same small contract:

    ndim(), size(axis), voxsize(axis), transform(), name()
    index(axis), set_index(axis, value), move_index(axis, increment)
    reset(), value()

The loop helpers of this module only rely on this contract, so they
work identically on stored and on resampled data.
"""

import itertools
import numpy as np
from .space import Geometry
from .utils import argpad


class Image:
    """Voxel accessor on top of an array (in memory, memory-mapped or
    lazily loaded by nibabel)."""

    def __init__(self, data, affine=None, voxel_size=None, name=None,
                 dtype=None):
        """

        Parameters
        ----------
        data : array_like
            Voxel data. Arrays with less than three dimensions are
            padded with singleton dimensions.

        affine : (4, 4) matrix_like, default=centered field-of-view
            Orientation matrix, mapping voxels to scanner space

        voxel_size : iterable[float], default=from affine
            Voxel size along each axis

        name : str, optional
            Name of the image (usually, its file name)

        dtype : np.dtype, default=data.dtype
            Type of the values read from ``data``. Needed when reading
            converts the stored values (e.g., scaled nibabel proxies).
        """
        if not hasattr(data, 'shape') or not hasattr(data, 'dtype'):
            data = np.asarray(data)
        shape = argpad(data.shape, max(3, len(data.shape)), 1)
        if len(data.shape) < 3:
            data = np.reshape(np.asarray(data), shape)
        self._data = data
        self._geometry = Geometry(shape, affine, voxel_size, name=name)
        self._index = [0] * len(shape)
        self._dtype = np.dtype(dtype if dtype is not None else data.dtype)
        self._version = 0

    @classmethod
    def load(cls, x, **kwargs):
        """Open a file or nibabel object without loading its data."""
        from .io import VolumeReader
        return VolumeReader(**kwargs).read(x)

    @property
    def data(self):
        return self._data

    @property
    def geometry(self):
        return self._geometry

    @property
    def dtype(self):
        return self._dtype

    @property
    def version(self):
        """Number of writes made through ``set_value``."""
        return self._version

    @property
    def shape(self):
        return self._geometry.shape

    def ndim(self):
        return self._geometry.ndim()

    def size(self, axis):
        return self._geometry.size(axis)

    def voxsize(self, axis):
        return self._geometry.voxsize(axis)

    def transform(self):
        return self._geometry.transform()

    def name(self):
        return self._geometry.name()

    def index(self, axis):
        return self._index[axis]

    def set_index(self, axis, value):
        self._index[axis] = int(value)

    def move_index(self, axis, increment):
        self._index[axis] += int(increment)

    def reset(self):
        self._index = [0] * self.ndim()

    def value(self):
        value = self._data[tuple(self._index)]
        return np.asarray(value, dtype=self._dtype)[()]

    def set_value(self, value):
        self._data[tuple(self._index)] = value
        self._version += 1

    def slab(self, extra=()):
        """Return the 3D spatial block at a given index along the
        non-spatial axes, as a numpy array."""
        extra = tuple(extra)
        if len(extra) != self.ndim() - 3:
            raise IndexError('Expected {} non-spatial indices but got {}'
                             .format(self.ndim() - 3, len(extra)))
        return np.asarray(self._data[(slice(None),) * 3 + extra],
                          dtype=self._dtype)

    def __repr__(self):
        return 'Image({!r}, shape={}, dtype={})'.format(
            self.name(), list(self.shape), self.dtype)


def shape_of(accessor):
    """Shape of any grid accessor."""
    return tuple(accessor.size(d) for d in range(accessor.ndim()))


def voxels(accessor):
    """Iterate over all voxel indices of an accessor in raster order.

    The first axis is the most rapidly changing one.
    """
    shape = shape_of(accessor)
    for index in itertools.product(*(range(s) for s in reversed(shape))):
        yield index[::-1]


def goto(accessor, index):
    """Move the cursor of an accessor to a voxel."""
    for axis, i in enumerate(index):
        accessor.set_index(axis, i)


def copy(source, destination):
    """Copy all values from one accessor into another.

    Parameters
    ----------
    source : accessor
        Any readable accessor (e.g., an ``Image`` or a ``Reslice``)
    destination : accessor
        A writable accessor with the same shape

    """
    if shape_of(source) != shape_of(destination):
        raise ValueError('Cannot copy: shapes {} and {} differ'
                         .format(shape_of(source), shape_of(destination)))
    for index in voxels(source):
        goto(source, index)
        goto(destination, index)
        destination.set_value(source.value())


def to_array(accessor, dtype=None):
    """Read all values of an accessor into a new array.

    Parameters
    ----------
    accessor : accessor
        Any readable accessor
    dtype : np.dtype, default=accessor.dtype or float64

    Returns
    -------
    array : np.ndarray

    """
    dtype = dtype or getattr(accessor, 'dtype', np.float64)
    out = Image(np.empty(shape_of(accessor), dtype=dtype))
    copy(accessor, out)
    return out.data
