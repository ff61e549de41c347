"""Utilities related to voxel/world spaces.

A space is the combination of a voxel grid (its shape) and of an
orientation matrix mapping voxel coordinates to scanner (world)
coordinates. Orientation matrices include the voxel scaling, following
the nibabel convention.
"""

import numpy as np
from .linalg import homogeneous, inv
from .hints import Matrix, Shape


def default_affine(shape):
    """Create default orientation matrix.

    We follow the same convention as nibabel/SPM: (0,0,0) is in the
    center of the field-of-view.

    """
    shape = np.asarray(list(shape)[:3] + [1] * max(0, 3 - len(shape)))
    shift = -shape.astype(np.float64)/2 + 0.5
    mat = np.eye(4, dtype=np.float64)
    mat[:3, 3] = shift
    return mat


def voxel_size(mat):
    """Return the voxel size associated with an affine matrix."""
    mat = np.asarray(mat)
    return np.sqrt((mat[:-1, :-1] ** 2).sum(axis=0))


def apply_affine(mat, points):
    """Apply an affine matrix to a set of points.

    Parameters
    ----------
    mat : (D+1, D+1) array_like
        Affine matrix
    points : (..., D) array_like
        Point coordinates

    Returns
    -------
    points : (..., D) np.ndarray
        Transformed coordinates

    """
    mat = np.asarray(mat)
    points = np.asarray(points, dtype=np.float64)
    dim = mat.shape[-1] - 1
    return np.dot(points, mat[:dim, :dim].transpose()) + mat[:dim, dim]


class Geometry:
    """Shape, voxel size and orientation of a voxel grid.

    A geometry is immutable: it can be shared by any number of
    accessors, including across threads.
    """

    def __init__(self, shape, affine=None, voxel_size=None, name=None):
        # type: (Shape, Matrix, Shape, str) -> None
        """

        Parameters
        ----------
        shape : iterable[int]
            Number of voxels along each axis

        affine : (4, 4) matrix_like, default=centered field-of-view
            Orientation matrix, mapping voxels to scanner space

        voxel_size : iterable[float], default=from affine
            Voxel size along each axis. Axes beyond the third default
            to 1.

        name : str, optional
            Name used when reporting on this grid
        """
        shape = tuple(int(s) for s in shape)
        if any(s < 0 for s in shape):
            raise ValueError('Sizes must be non-negative but got {}'
                             .format(shape))
        if affine is None:
            affine = default_affine(shape)
        affine = homogeneous(affine)
        if affine.shape != (4, 4):
            raise ValueError('Expected a 4x4 orientation matrix but got '
                             'shape {}'.format(affine.shape))
        if voxel_size is None:
            vs = list(np.sqrt((affine[:3, :3] ** 2).sum(axis=0)))
            voxel_size = vs[:len(shape)] + [1.] * max(0, len(shape) - 3)
        voxel_size = tuple(float(v) for v in voxel_size)
        if len(voxel_size) != len(shape):
            raise ValueError('Expected {} voxel sizes but got {}'
                             .format(len(shape), len(voxel_size)))
        affine.setflags(write=False)
        self._shape = shape
        self._affine = affine
        self._voxel_size = voxel_size
        self._name = name or ''
        self._inverse = None

    @classmethod
    def like(cls, obj):
        """Build a geometry from any object that describes a grid.

        Parameters
        ----------
        obj : Geometry or accessor or nib.SpatialImage or str
            A geometry, any object exposing ``size``/``voxsize``/
            ``transform``, a nibabel image or a path to a file.

        Returns
        -------
        geometry : Geometry

        """
        if isinstance(obj, Geometry):
            return obj
        if all(hasattr(obj, attr) for attr in ('ndim', 'size', 'voxsize',
                                                'transform')):
            ndim = obj.ndim()
            name = obj.name() if hasattr(obj, 'name') else None
            return cls([obj.size(d) for d in range(ndim)],
                       obj.transform(),
                       [obj.voxsize(d) for d in range(ndim)],
                       name=name)
        # Import here to avoid a cycle (io depends on space)
        from .io import VolumeReader
        return VolumeReader().inspect(obj)

    @property
    def shape(self):
        return self._shape

    @property
    def affine(self):
        return self._affine

    def ndim(self):
        return len(self._shape)

    def size(self, axis):
        return self._shape[axis]

    def voxsize(self, axis):
        return self._voxel_size[axis]

    def transform(self):
        return self._affine

    def name(self):
        return self._name

    def voxel2scanner(self):
        return self._affine

    def scanner2voxel(self):
        if self._inverse is None:
            inverse = inv(self._affine)
            inverse.setflags(write=False)
            self._inverse = inverse
        return self._inverse

    def __eq__(self, other):
        if not isinstance(other, Geometry):
            return NotImplemented
        return (self._shape == other._shape and
                self._voxel_size == other._voxel_size and
                np.array_equal(self._affine, other._affine))

    def __hash__(self):
        return hash((self._shape, self._voxel_size,
                     self._affine.tobytes()))

    def __repr__(self):
        return 'Geometry(shape={}, voxel_size={})'.format(
            list(self._shape), [round(v, 4) for v in self._voxel_size])
