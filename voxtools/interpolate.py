"""Interpolators: accessors that sample a volume at continuous
voxel coordinates.

An interpolator wraps an ``Image`` and offers the same accessor contract
as the image itself, plus:

    voxel(position)  move to a continuous (source) voxel coordinate
    valid / bool()   whether the last position was inside the volume
    value()          sample at the last position (or out-of-bounds value)
    sample(coords)   vectorized version of voxel + value

Non-spatial axes (>= 3) are indexed, not interpolated. Each interpolator
owns its cursor, so several interpolators can share the same image.
"""

import itertools
import numpy as np
from scipy.ndimage import spline_filter1d, map_coordinates
from .image import Image
from .utils import argdef


def default_out_of_bounds_value(dtype):
    """Value meaning "no data" for a given data type.

    NaN for floating point (and complex) types, zero for all other types,
    which cannot represent NaN.
    """
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.inexact):
        return dtype.type(np.nan)
    return dtype.type(0)


def identity_grid(shape, dtype=None):
    """Generate a dense identity grid

    Parameters
    ----------
    shape : iterable of length D
        Shape of the dense grid.
    dtype : type, default=float64
        Output data type.

    Returns
    -------
    grid : np.ndarray of shape (*shape, D)
        Dense identity grid.

    """
    grid = np.stack(np.meshgrid(*(np.arange(s, dtype=dtype) for s in shape),
                                indexing='ij', copy=False), axis=-1)
    return grid


def affine_grid(mat, shape, dtype=None):
    """Generate a dense affine grid.

    Parameters
    ----------
    mat : array_like of shape (D, D+1) or (D+1, D+1)
        Affine matrix.
        - mat[:D, :D] contains the linear part of the affine transform
        - mat[:D, D] contains the translation part of the affine transform
    shape : iterable of length D
        Shape of the dense grid.
    dtype : type, default=mat.dtype
        Output data type.

    Returns
    -------
    grid : np.ndarray of shape (*shape, D)
        Dense affine grid.

    """
    mat = np.asarray(mat, dtype=dtype)
    dim = mat.shape[1] - 1
    assert(len(shape) == dim)
    if dtype is None:
        dtype = mat.dtype

    # Generate identity grid
    grid = identity_grid(shape, dtype)

    # Compose with affine
    linear = mat[:dim, :dim]
    translation = mat[:dim, dim].reshape((1,)*dim + (dim,))
    grid = np.dot(grid, linear.transpose())
    grid += translation

    return grid


def bound_nearest(i, n, inplace=True):
    """Clamp indices into [0, n-1]."""
    i = np.asarray(i)
    return np.clip(i, 0, n-1, out=i if inplace else None)


class Interpolator:
    """Base class for interpolators.

    Subclasses implement ``_interpolate(coeffs, coords)``, which samples
    a 3D block of coefficients at in-bounds coordinates, and may
    override ``_prepare(slab)``, which converts a 3D block of voxel
    values into coefficients.
    """

    order = None

    def __init__(self, image, out_of_bounds=None):
        """

        Parameters
        ----------
        image : Image or array_like
            Volume to sample

        out_of_bounds : scalar, default=NaN (floats) or 0 (integers)
            Value returned when sampling outside of the volume
        """
        if not isinstance(image, Image):
            image = Image(image)
        self.image = image
        self.dtype = self._value_dtype(image.dtype)
        out_of_bounds = argdef(out_of_bounds,
                               default_out_of_bounds_value(self.dtype))
        self.out_of_bounds = self.dtype.type(out_of_bounds)
        self._lower = -0.5
        self._upper = np.asarray([image.size(d) - 0.5 for d in range(3)])
        self._extra = [0] * (image.ndim() - 3)
        self._position = np.zeros(3)
        self._valid = bool(np.all(self._upper >= 0))
        self._coeffs_key = None
        self._coeffs = None

    @staticmethod
    def _value_dtype(dtype):
        return np.result_type(dtype, np.float32)

    def ndim(self):
        return self.image.ndim()

    def size(self, axis):
        return self.image.size(axis)

    def voxsize(self, axis):
        return self.image.voxsize(axis)

    def transform(self):
        return self.image.transform()

    def name(self):
        return self.image.name()

    def index(self, axis):
        if axis < 3:
            raise IndexError('Spatial axes are positioned with voxel()')
        return self._extra[axis - 3]

    def set_index(self, axis, value):
        if axis < 3:
            raise IndexError('Spatial axes are positioned with voxel()')
        self._extra[axis - 3] = int(value)

    def move_index(self, axis, increment):
        if axis < 3:
            raise IndexError('Spatial axes are positioned with voxel()')
        self._extra[axis - 3] += int(increment)

    def inbounds(self, coords):
        """Mask of coordinates that fall inside the volume."""
        coords = np.asarray(coords)
        return np.all((coords >= self._lower) & (coords <= self._upper),
                      axis=-1)

    def voxel(self, position):
        """Move to a continuous voxel coordinate.

        Returns
        -------
        valid : bool
            True if the position falls inside the volume

        """
        self._position = np.asarray(position, dtype=np.float64)[:3]
        self._valid = bool(self.inbounds(self._position))
        return self._valid

    @property
    def valid(self):
        return self._valid

    def __bool__(self):
        return self._valid

    @property
    def position(self):
        return self._position

    def value(self):
        if not self._valid:
            return self.out_of_bounds
        return self._interpolate(self.coefficients(),
                                 self._position[None, :])[0]

    def sample(self, coords):
        """Sample the volume at many coordinates at once.

        Parameters
        ----------
        coords : (..., 3) array_like
            Continuous voxel coordinates

        Returns
        -------
        values : (...) np.ndarray[self.dtype]
            Sampled values. Out-of-bounds samples take the value
            ``self.out_of_bounds``.
        valid : (...) np.ndarray[bool]
            Mask of in-bounds samples.

        """
        coords = np.asarray(coords, dtype=np.float64)
        batch = coords.shape[:-1]
        coords = coords.reshape((-1, 3))
        valid = self.inbounds(coords)
        values = np.full(len(coords), self.out_of_bounds, dtype=self.dtype)
        if valid.any():
            values[valid] = self._interpolate(self.coefficients(),
                                              coords[valid])
        return values.reshape(batch), valid.reshape(batch)

    def coefficients(self):
        """Interpolation coefficients of the current 3D block.

        The block is selected by the cursor along non-spatial axes. The
        last block is kept so that scanning a volume does not reload it
        for every voxel, and rebuilt after writes made through
        ``Image.set_value``.
        """
        key = (tuple(self._extra), getattr(self.image, 'version', 0))
        if key != self._coeffs_key:
            self._coeffs = self._prepare(self.image.slab(key[0]))
            self._coeffs_key = key
        return self._coeffs

    def _prepare(self, slab):
        return np.asarray(slab, dtype=self.dtype)

    def _interpolate(self, coeffs, coords):
        raise NotImplementedError

    def __repr__(self):
        return '{}({!r})'.format(type(self).__name__, self.image)


class Nearest(Interpolator):
    """Nearest-neighbour interpolation."""

    order = 0

    @staticmethod
    def _value_dtype(dtype):
        return np.dtype(dtype)

    def _interpolate(self, coeffs, coords):
        index = np.floor(coords + 0.5).astype(np.int64)
        index = tuple(bound_nearest(index[:, d], coeffs.shape[d])
                      for d in range(3))
        return coeffs[index]


class Linear(Interpolator):
    """Trilinear interpolation.

    Neighbours that fall outside of the grid are replaced by the
    nearest voxel on the border.
    """

    order = 1

    def _interpolate(self, coeffs, coords):
        corner0 = np.floor(coords)
        weights1 = coords - corner0
        weights0 = 1 - weights1
        corner0 = corner0.astype(np.int64)

        out = np.zeros(len(coords), dtype=self.dtype)
        for corner in itertools.product([0, 1], repeat=3):
            w = np.ones(len(coords))
            index = []
            for d, c in enumerate(corner):
                w *= weights1[:, d] if c else weights0[:, d]
                index.append(bound_nearest(corner0[:, d] + c,
                                           coeffs.shape[d]))
            # Corners with null weight are skipped so that non-finite
            # neighbours do not leak into exact grid positions.
            mask = w != 0
            out[mask] += w[mask] * coeffs[tuple(i[mask] for i in index)]
        return out


class Cubic(Interpolator):
    """Cubic B-spline interpolation (scipy.ndimage)."""

    order = 3
    bound = 'mirror'

    def _prepare(self, slab):
        slab = np.asarray(slab, dtype=self.dtype)
        for axis in range(3):
            if slab.shape[axis] > 1:
                slab = spline_filter1d(slab, order=self.order, axis=axis,
                                       mode=self.bound, output=self.dtype)
        return slab

    def _interpolate(self, coeffs, coords):
        return map_coordinates(coeffs, coords.transpose(), order=self.order,
                               mode=self.bound, prefilter=False,
                               output=self.dtype)


interpolators = {
    'nearest': Nearest,
    'linear': Linear,
    'cubic': Cubic,
    0: Nearest,
    1: Linear,
    3: Cubic,
}


def get_interpolator(interp):
    """Return an interpolator class.

    Parameters
    ----------
    interp : {'nearest', 'linear', 'cubic', 0, 1, 3} or type
        Interpolation method, by name, by order or by class.

    Returns
    -------
    klass : type
        Subclass of ``Interpolator``

    """
    if isinstance(interp, type):
        if not issubclass(interp, Interpolator):
            raise TypeError('{} is not an Interpolator'.format(interp))
        return interp
    key = interp.lower() if isinstance(interp, str) else interp
    try:
        return interpolators[key]
    except (KeyError, TypeError):
        raise ValueError('Unknown interpolation method {!r}'.format(interp))
