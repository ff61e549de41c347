import logging
import os.path
import nibabel as nb
import numpy as np
from nibabel.spatialimages import SpatialImage
from .image import Image
from .linalg import homogeneous, inv
from .space import Geometry
from .utils import argpad, argdef

logger = logging.getLogger(__name__)


def _fileparts(fname):
    """Split a filename into directory / basename / extension.

    If the last extension is ``.gz``, this function checks if another
    extension is present, in which case it returns ``.<ext>.gz``
    """
    dir = os.path.dirname(fname)
    basename = os.path.basename(fname)
    basename, ext = os.path.splitext(basename)
    if ext == '.gz':
        basename, ext0 = os.path.splitext(basename)
        ext = ext0 + ext
    return dir, basename, ext


class VolumeReader:
    """Versatile reader for volume files or objects.

    Data are not loaded in memory: nibabel images are accessed through
    their array proxy and numpy files are memory-mapped.
    """

    def __init__(self, allow_memmap=True, allow_pickle=False):
        """

        Parameters
        ----------
        allow_memmap : bool, default=True
            Memory-map ``.npy`` files rather than loading them.

        allow_pickle : bool, default=False
            Allow loading pickled object arrays stored in npy files.
            Reasons for disallowing pickles include security, as
            loading pickled data can execute arbitrary code. If pickles
            are disallowed, loading object arrays will fail.
        """
        self.allow_memmap = allow_memmap
        self.allow_pickle = allow_pickle

    def __call__(self, *args, **kwargs):
        return self.read(*args, **kwargs)

    def _open(self, x):
        name = None
        if isinstance(x, str):
            name = x
            x = os.path.expanduser(x)
            _, _, ext = _fileparts(x)
            if ext == '.npy':
                x = np.load(x, allow_pickle=self.allow_pickle,
                            mmap_mode='r' if self.allow_memmap else None)
            else:
                x = nb.load(x)
            logger.debug('opened %s', name)
        return x, name

    def inspect(self, x):
        """Read the geometry of a volume without reading its data.

        Parameters
        ----------
        x : str or nib.SpatialImage or array_like

        Returns
        -------
        geometry : Geometry

        """
        x, name = self._open(x)
        if isinstance(x, SpatialImage):
            shape = argpad(x.shape, max(3, len(x.shape)), 1)
            vs = argpad(x.header.get_zooms(), len(shape), 1.)
            return Geometry(shape, x.affine, vs, name=name)
        if isinstance(x, Image):
            return x.geometry
        if not hasattr(x, 'shape'):
            x = np.asarray(x)
        if not isinstance(x, np.ndarray) or x.dtype == object:
            raise TypeError("Input type '{}' not handled".format(type(x)))
        shape = argpad(x.shape, max(3, len(x.shape)), 1)
        return Geometry(shape, name=name)

    def read(self, x):
        """Open a volume stored in a file, a nibabel object or an array.

        Parameters
        ----------
        x : str or nib.SpatialImage or array_like
            An input volume, on disk or in memory.

        Returns
        -------
        x : Image
            An image accessor. Data are loaded on access.

        """
        if isinstance(x, Image):
            return x
        geometry = self.inspect(x)
        x, _ = self._open(x)
        dtype = None
        if isinstance(x, SpatialImage):
            data = x.dataobj
            slope = getattr(data, 'slope', 1.)
            inter = getattr(data, 'inter', 0.)
            if slope != 1 or inter != 0:
                # scaled integers are read as floats
                dtype = np.result_type(data.dtype,
                                       np.asarray(slope).dtype,
                                       np.asarray(inter).dtype)
            if len(data.shape) < 3:
                data = np.asarray(data)
        else:
            data = x if isinstance(x, np.ndarray) else np.asarray(x)
        # voxel sizes stored in the header take precedence over the affine
        return Image(data, geometry.affine,
                     [geometry.voxsize(d) for d in range(geometry.ndim())],
                     name=geometry.name(), dtype=dtype)


class VolumeWriter:
    """Versatile writer for volume files."""

    def __init__(self, dtype=None, dir=None, ext=None, prefix=None,
                 basename=None, fname=None, dummy=False):
        """

        Parameters
        ----------
        dtype : str or type, optional
            Output data type

        dir : str, default=same as input or current directory
            Output directory

        ext : str, default=same as input or '.nii.gz'
            Output extension

        prefix : str, optional
            Output filename prefix

        basename : str, default=prefixed input or prefix or 'array'
            Output basename

        fname : str
            Output file name (full path + name + extension).
            Default: built from dir/prefix/basename/ext

        dummy : bool, default=False
            Do not write anything

        """
        self.dtype = dtype
        self.dir = dir
        self.ext = ext
        self.prefix = prefix
        self.basename = basename
        self.fname = fname
        self.dummy = dummy

    def __call__(self, *args, **kwargs):
        return self.write(*args, **kwargs)

    def filename(self, input_name=None, prefix=None):
        """Build the output file name.

        Priority is: attributes / input file name / defaults.
        """
        info = {}
        if input_name:
            info['dir'], info['basename'], info['ext'] = \
                _fileparts(input_name)
        dir = argdef(self.dir, info.get('dir') or None, '.')
        ext = argdef(self.ext, info.get('ext'), '.nii.gz')
        prefix = argdef(prefix, self.prefix, '')
        basename = argdef(self.basename, info.get('basename'),
                          'array' if len(prefix) == 0 else '')
        return argdef(self.fname, os.path.join(dir, prefix + basename + ext))

    def write(self, x, affine=None, fname=None, input_name=None,
              prefix=None, dtype=None):
        """Write an array to disk.

        Parameters
        ----------
        x : array_like
            Volume to write
        affine : (4, 4) matrix_like, optional
            Orientation matrix
        fname : str, optional
            Output file name. Default: built from the writer's options
            and ``input_name``.
        input_name : str, optional
            Name of the input file, used to build the output name
        prefix : str, optional
            Overrides the writer's prefix

        Returns
        -------
        obj : nib.SpatialImage or np.ndarray
            Written object (or input array if ``dummy``)

        """
        x = np.asarray(x)
        if self.dummy:
            return x

        dtype = np.dtype(argdef(dtype, self.dtype, x.dtype))
        fname = argdef(fname, self.filename(input_name, prefix))
        _, _, ext = _fileparts(fname)

        if ext == '.npy':
            # --- Save using numpy ---
            np.save(fname, x.astype(dtype), allow_pickle=False)
            obj = np.load(fname, allow_pickle=False, mmap_mode='r')

        else:
            # --- Save using nibabel ---

            # Some formats do not like 4D volumes, even if the fourth
            # dimension is a singleton. In this case, we remove the fourth
            # dimension. However, if the fourth dimension is > 1, we let it
            # untouched in order to trigger warnings or errors.
            if len(x.shape) > 3 and np.all(np.array(x.shape[3:]) == 1):
                x = x.reshape(x.shape[:3])

            klass = nb.Nifti1Image
            if ext in ('.mgh', '.mgz'):
                klass = nb.MGHImage
            obj = klass(x.astype(dtype), affine)
            obj.header.set_data_dtype(dtype)
            nb.save(obj, fname)

        logger.info('written %s', fname)
        return obj


def load_transform(fname, inverse=False):
    """Read an affine transform from a text file.

    Parameters
    ----------
    fname : str
        Text file with 3 or 4 rows of 4 values
    inverse : bool, default=False
        Return the inverse of the stored transform

    Returns
    -------
    mat : (4, 4) np.ndarray

    """
    mat = homogeneous(np.loadtxt(os.path.expanduser(fname), ndmin=2))
    if mat.shape != (4, 4):
        raise ValueError('Expected a 4x4 transform in {} but got shape {}'
                         .format(fname, mat.shape))
    if inverse:
        mat = inv(mat)
    return mat
