"""Resampling of volumetric images onto arbitrary voxel grids."""

from .space import Geometry, default_affine, voxel_size, apply_affine
from .image import Image, copy, to_array, voxels
from .interpolate import Interpolator, Nearest, Linear, Cubic, \
    get_interpolator, default_out_of_bounds_value
from .reslice import Reslice, NoTransform, AutoOverSample, make_reslice, \
    render, reslice
from .io import VolumeReader, VolumeWriter, load_transform
