import logging

import numpy as np
import pytest

from voxtools import Geometry, Image

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def volume(rng):
    """Random float32 volume with an identity orientation matrix."""
    return Image(rng.random((5, 6, 7), dtype=np.float32), np.eye(4),
                 name='volume')


@pytest.fixture
def volume4d(rng):
    """Random float32 volume with three channels."""
    return Image(rng.random((4, 5, 6, 3), dtype=np.float32), np.eye(4),
                 name='volume4d')


@pytest.fixture
def coarse_geometry():
    """Grid with voxels twice as large as the volume along the first axis."""
    affine = np.diag([2., 1., 1., 1.])
    return Geometry((3, 6, 7), affine)
