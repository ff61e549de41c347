"""Reslice a volume onto the grid of another volume.

A ``Reslice`` object is an accessor that provides, at each voxel of a
reference grid, the value that a source volume takes at the same
location in scanner space (optionally after an additional transform).
It has the same dimensions, voxel sizes and orientation matrix as the
reference for the three spatial axes, and the same dimensions as the
source for any other axis (e.g., channels or time points).

Values are computed on request; nothing is stored. For example:

    >>> source = Image.load('data.nii.gz')
    >>> reference = Geometry.like('reference.nii.gz')
    >>> resliced = Reslice(source, reference, interp='cubic')
    >>> out = render(resliced)

To deal with aliasing when sampling a high-resolution image onto a
coarser grid, several samples may be taken at regular sub-voxel
intervals and averaged. By default, the number of samples along each
axis is chosen from the geometry of the two grids. Passing
``oversample=[1, 1, 1]`` disables oversampling.
"""

import logging
import math
import numpy as np
from .image import Image
from .interpolate import get_interpolator, affine_grid
from .linalg import mm, homogeneous
from .space import Geometry, apply_affine
from .hints import Matrix, Vector, AnyArray, InterpSpec
from typing import Optional

logger = logging.getLogger(__name__)

NoTransform = np.eye(4)
NoTransform.setflags(write=False)
AutoOverSample = ()

# Tolerance on the number of source voxels spanned by a reference voxel,
# so that stretches numerically just above an integer are rounded down.
_OVERSAMPLE_TOLERANCE = 0.999


def compose(source, reference, transform=None):
    """Map reference voxels to source voxels.

    Parameters
    ----------
    source : Geometry
        Source grid
    reference : Geometry
        Reference grid
    transform : (4, 4) matrix_like, optional
        Transform from reference scanner space to source scanner space

    Returns
    -------
    mat : (4, 4) np.ndarray
        source.scanner2voxel @ transform @ reference.voxel2scanner

    """
    if transform is None:
        transform = NoTransform
    transform = homogeneous(transform)
    if transform.shape != (4, 4):
        raise ValueError('Expected a 4x4 transform but got shape {}'
                         .format(transform.shape))
    return mm(np.stack([source.scanner2voxel(),
                        transform,
                        reference.voxel2scanner()]))


def auto_oversample(direct_transform):
    """Number of samples needed along each axis to avoid aliasing.

    This is the number of source voxels spanned by a single step
    along each axis of the reference grid.

    Parameters
    ----------
    direct_transform : (4, 4) array_like
        Reference-to-source voxel mapping

    Returns
    -------
    factors : tuple[int]

    """
    origin = apply_affine(direct_transform, np.zeros(3))
    steps = apply_affine(direct_transform, np.eye(3))
    lengths = np.sqrt(((steps - origin) ** 2).sum(axis=-1))
    return tuple(max(1, int(math.ceil(_OVERSAMPLE_TOLERANCE * length)))
                 for length in lengths)


def check_oversample(oversample):
    """Validate explicit oversampling factors."""
    oversample = list(oversample)
    if len(oversample) != 3:
        raise ValueError('Expected 3 oversampling factors but got {}'
                         .format(len(oversample)))
    factors = []
    for factor in oversample:
        if int(factor) != factor or factor < 1:
            raise ValueError('oversample factors must be positive integers '
                             'but got {}'.format(oversample))
        factors.append(int(factor))
    return tuple(factors)


class Reslice:
    """Accessor providing values interpolated from another volume
    on the grid of a reference volume."""

    def __init__(self, source, reference, transform=NoTransform,
                 oversample=AutoOverSample, out_of_bounds=None,
                 interp='linear'):
        # type: (AnyArray, object, Matrix, Vector, Optional[float], InterpSpec) -> None
        """

        Parameters
        ----------
        source : Image or Interpolator or array_like
            Volume to reslice. If an interpolator is provided, it is
            used as is and ``interp`` / ``out_of_bounds`` are ignored.

        reference : Geometry or accessor or nib.SpatialImage or str
            Grid onto which to reslice. Only its three first axes
            are used.

        transform : (4, 4) matrix_like, default=identity
            Additional transform, applied in scanner space. It maps
            scanner coordinates of the reference to scanner
            coordinates of the source.

        oversample : [int, int, int], default=automatic
            Number of samples to average along each axis of the
            reference grid. An empty sequence (or None) means that
            factors are chosen so that no source voxel is skipped.

        out_of_bounds : scalar, default=NaN (floats) or 0 (integers)
            Value returned when sampling outside of the source

        interp : {'nearest', 'linear', 'cubic'} or int or type, default='linear'
            Interpolation method
        """
        if hasattr(source, 'voxel') and hasattr(source, 'sample'):
            self.interp = source
        else:
            if not isinstance(source, Image):
                source = Image(source)
            self.interp = get_interpolator(interp)(source, out_of_bounds)
        if self.interp.ndim() < 3:
            raise ValueError('Source must have at least 3 dimensions')

        reference = Geometry.like(reference)
        if reference.ndim() < 3:
            raise ValueError('Reference must have at least 3 dimensions '
                             'but has {}'.format(reference.ndim()))
        self._shape = tuple(reference.size(d) for d in range(3))
        self._voxel_size = tuple(reference.voxsize(d) for d in range(3))
        self._transform = reference.transform()
        self._x = [0, 0, 0]

        source_geometry = Geometry.like(self.interp)
        direct_transform = compose(source_geometry, reference, transform)
        direct_transform.setflags(write=False)
        self._direct_transform = direct_transform
        logger.debug('reference-to-source voxel transform:\n%s',
                     direct_transform)

        if oversample is None or len(oversample) == 0:
            self._oversample = auto_oversample(direct_transform)
        else:
            self._oversample = check_oversample(oversample)

        nb_samples = int(np.prod(self._oversample))
        self._oversampling = nb_samples > 1
        if self._oversampling:
            logger.info('using oversampling factors [ %d %d %d ]',
                        *self._oversample)
            self._inc = tuple(1. / f for f in self._oversample)
            self._from = tuple(0.5 * (i - 1.) for i in self._inc)
            self._norm = 1. / nb_samples
        else:
            self._inc = (1., 1., 1.)
            self._from = (0., 0., 0.)
            self._norm = 1.

    # ------------------------------------------------------------------
    #   Read-only configuration
    # ------------------------------------------------------------------

    @property
    def direct_transform(self):
        return self._direct_transform

    @property
    def oversample(self):
        return self._oversample

    @property
    def oversampling(self):
        return self._oversampling

    @property
    def norm(self):
        """Weight of each sub-sample in the oversampled average."""
        return self._norm

    @property
    def dtype(self):
        return self.interp.dtype

    @property
    def out_of_bounds(self):
        return self.interp.out_of_bounds

    @property
    def shape(self):
        return tuple(self.size(d) for d in range(self.ndim()))

    # ------------------------------------------------------------------
    #   Accessor
    # ------------------------------------------------------------------

    def ndim(self):
        return self.interp.ndim()

    def size(self, axis):
        return self._shape[axis] if axis < 3 else self.interp.size(axis)

    def voxsize(self, axis):
        return self._voxel_size[axis] if axis < 3 else self.interp.voxsize(axis)

    def transform(self):
        return self._transform

    def name(self):
        return self.interp.name()

    def index(self, axis):
        return self._x[axis] if axis < 3 else self.interp.index(axis)

    def set_index(self, axis, value):
        if axis < 3:
            self._x[axis] = int(value)
        else:
            self.interp.set_index(axis, value)

    def move_index(self, axis, increment):
        if axis < 3:
            self._x[axis] += int(increment)
        else:
            self.interp.move_index(axis, increment)

    def reset(self):
        self._x = [0, 0, 0]
        for axis in range(3, self.ndim()):
            self.interp.set_index(axis, 0)

    def offsets(self):
        """Sub-voxel offsets at which samples are taken, shape (N, 3)."""
        axes = [self._from[d] + np.arange(self._oversample[d]) * self._inc[d]
                for d in range(3)]
        grid = np.meshgrid(*axes, indexing='ij')
        return np.stack([g.reshape(-1) for g in grid], axis=-1)

    def value(self):
        """Value at the current cursor position."""
        if self._oversampling:
            start = np.asarray(self._x, dtype=np.float64) + self._from
            result = self.dtype.type(0)
            s = np.empty(3)
            for z in range(self._oversample[2]):
                s[2] = start[2] + z * self._inc[2]
                for y in range(self._oversample[1]):
                    s[1] = start[1] + y * self._inc[1]
                    for x in range(self._oversample[0]):
                        s[0] = start[0] + x * self._inc[0]
                        if not self.interp.voxel(
                                apply_affine(self._direct_transform, s)):
                            continue
                        result += self.interp.value()
            return self.dtype.type(result * self._norm)

        self.interp.voxel(apply_affine(self._direct_transform, self._x))
        return self.interp.value()

    def __repr__(self):
        return 'Reslice({!r}, shape={}, oversample={})'.format(
            self.name(), list(self.shape), list(self._oversample))


def make_reslice(source, reference, interp='linear', **kwargs):
    """Build a ``Reslice`` from files, nibabel images or arrays.

    Parameters
    ----------
    source : str or nib.SpatialImage or Image or array_like
        Volume to reslice
    reference : str or nib.SpatialImage or Geometry or accessor
        Reference grid
    interp : {'nearest', 'linear', 'cubic'} or int or type, default='linear'
        Interpolation method

    Other Parameters
    ----------------
    transform, oversample, out_of_bounds
        See ``Reslice``

    Returns
    -------
    reslicer : Reslice

    """
    if isinstance(source, str) or hasattr(source, 'dataobj'):
        source = Image.load(source)
    return Reslice(source, reference, interp=interp, **kwargs)


def render(reslicer):
    """Compute all values of a resliced view at once.

    This gives the same values, up to rounding, as reading
    ``reslicer.value()`` at every voxel, but evaluates them in a
    vectorized fashion. The cursor of the reslicer is left unchanged.

    Parameters
    ----------
    reslicer : Reslice

    Returns
    -------
    out : np.ndarray[reslicer.dtype] of shape reslicer.shape

    """
    interp = reslicer.interp
    shape = reslicer.shape
    spatial = shape[:3]
    extra = shape[3:]
    out = np.empty(shape, dtype=reslicer.dtype)
    cursor = [interp.index(d) for d in range(3, len(shape))]

    # Reference voxel -> source voxel, then shifted by each offset
    offsets = reslicer.offsets() if reslicer.oversampling else np.zeros((1, 3))
    shifts = np.dot(offsets, reslicer.direct_transform[:3, :3].transpose())
    grid = affine_grid(reslicer.direct_transform, spatial,
                       dtype=np.float64).reshape((-1, 3))

    try:
        for index in np.ndindex(*extra):
            for axis, i in enumerate(index):
                interp.set_index(3 + axis, i)
            if not reslicer.oversampling:
                values, _ = interp.sample(grid)
            else:
                values = np.zeros(len(grid), dtype=reslicer.dtype)
                for shift in shifts:
                    samples, valid = interp.sample(grid + shift)
                    values[valid] += samples[valid]
                values = (values * reslicer.norm).astype(reslicer.dtype)
            out[(Ellipsis,) + index] = values.reshape(spatial)
    finally:
        for axis, i in enumerate(cursor):
            interp.set_index(3 + axis, i)
    return out


def reslice(source, reference, transform=None, oversample=None,
            out_of_bounds=None, interp='linear'):
    # type: (AnyArray, object, Matrix, Vector, Optional[float], InterpSpec) -> np.ndarray
    """Reslice a volume onto a reference grid.

    Parameters
    ----------
    source : str or nib.SpatialImage or Image or array_like
        Volume to reslice

    reference : str or nib.SpatialImage or Geometry or accessor
        Reference grid

    transform : (4, 4) matrix_like, default=identity
        Transform from reference scanner space to source scanner space

    oversample : [int, int, int], default=automatic
        Oversampling factors

    out_of_bounds : scalar, default=NaN (floats) or 0 (integers)
        Value used outside of the source field-of-view

    interp : {'nearest', 'linear', 'cubic'} or int, default='linear'
        Interpolation method

    Returns
    -------
    out : np.ndarray
        Resliced volume

    """
    reslicer = make_reslice(source, reference, interp=interp,
                            transform=transform, oversample=oversample,
                            out_of_bounds=out_of_bounds)
    return render(reslicer)
