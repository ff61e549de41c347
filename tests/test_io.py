import os

import nibabel as nb
import numpy as np
import pytest

from voxtools import Geometry, Image, VolumeReader, VolumeWriter, \
    load_transform, make_reslice, render
from voxtools.__main__ import main


@pytest.fixture
def nifti(tmp_path, rng):
    affine = np.diag([2., 1., 1., 1.])
    affine[:3, 3] = [-4, 3, 1]
    data = rng.random((4, 5, 6), dtype=np.float32)
    fname = str(tmp_path / 'source.nii.gz')
    nb.save(nb.Nifti1Image(data, affine), fname)
    return fname, data, affine


def test_inspect(nifti):
    fname, data, affine = nifti
    geom = VolumeReader().inspect(fname)
    assert geom.shape == data.shape
    assert geom.voxsize(0) == 2
    assert geom.name() == fname
    np.testing.assert_allclose(geom.affine, affine)


def test_read_is_lazy(nifti):
    fname, data, affine = nifti
    image = VolumeReader().read(fname)
    assert isinstance(image, Image)
    assert not isinstance(image.data, np.ndarray)
    image.set_index(1, 2)
    assert image.value() == data[0, 2, 0]
    np.testing.assert_array_equal(image.slab(), data)


def test_read_npy(tmp_path, rng):
    data = rng.random((3, 4))
    fname = str(tmp_path / 'array.npy')
    np.save(fname, data)
    image = Image.load(fname)
    assert image.shape == (3, 4, 1)
    np.testing.assert_array_equal(image.slab()[..., 0], data)


def test_write_and_reslice(nifti, tmp_path):
    fname, data, affine = nifti
    reslicer = make_reslice(fname, fname, oversample=[1, 1, 1])
    writer = VolumeWriter(dir=str(tmp_path), prefix='resliced_')
    writer(render(reslicer), affine=reslicer.transform(), input_name=fname)
    out = nb.load(str(tmp_path / 'resliced_source.nii.gz'))
    np.testing.assert_allclose(out.get_fdata(), data, rtol=1e-6)
    np.testing.assert_allclose(out.affine, affine)


def test_writer_filename(tmp_path):
    writer = VolumeWriter(dir=str(tmp_path), ext='.npy')
    assert writer.filename('/some/where/img.nii.gz', prefix='p_') == \
        os.path.join(str(tmp_path), 'p_img.npy')
    assert writer.filename() == os.path.join(str(tmp_path), 'array.npy')
    obj = writer(np.zeros((2, 2, 2)), input_name='img.nii')
    assert obj.shape == (2, 2, 2)


def test_load_transform(tmp_path):
    mat = np.eye(4)
    mat[:3, 3] = [1, 2, 3]
    fname = str(tmp_path / 'transform.txt')
    np.savetxt(fname, mat[:3])
    np.testing.assert_allclose(load_transform(fname), mat)
    np.testing.assert_allclose(load_transform(fname, inverse=True) @ mat,
                               np.eye(4), atol=1e-12)


def test_load_transform_bad_shape(tmp_path):
    fname = str(tmp_path / 'transform.txt')
    np.savetxt(fname, np.eye(3))
    with pytest.raises(ValueError):
        load_transform(fname)


def test_command_line(nifti, tmp_path):
    fname, data, affine = nifti
    ref_affine = np.diag([4., 1., 1., 1.])
    ref_affine[:3, 3] = [-3, 3, 1]
    ref = str(tmp_path / 'ref.nii.gz')
    nb.save(nb.Nifti1Image(np.zeros((2, 5, 6), dtype=np.float32),
                           ref_affine), ref)
    outdir = tmp_path / 'out'
    outdir.mkdir()

    main(['reslice', '-i', fname, '-o', str(outdir), '--interp', 'nearest',
          '--oversample', '1', '1', '1', ref])

    out = nb.load(str(outdir / 'resliced_source.nii.gz'))
    assert out.shape == (2, 5, 6)
    np.testing.assert_allclose(out.affine, ref_affine)
    # reference voxel i sits on source voxel 2i+0.5, rounded up
    np.testing.assert_array_equal(out.get_fdata(dtype=np.float32),
                                  data[[1, 3]])


def test_command_line_rejects_bad_oversample(nifti):
    fname, _, _ = nifti
    with pytest.raises(ValueError):
        main(['reslice', '-i', fname, '--oversample', '0', '1', '1', fname])


def test_geometry_like_file(nifti):
    fname, data, _ = nifti
    assert Geometry.like(fname).shape == data.shape


def test_read_scaled_integers(tmp_path):
    # non-integer values stored as int16 force a scale factor
    values = np.arange(60, dtype=np.float64).reshape((3, 4, 5)) * 0.25 + 0.1
    img = nb.Nifti1Image(values, np.eye(4))
    img.set_data_dtype(np.int16)
    fname = str(tmp_path / 'scaled.nii')
    nb.save(img, fname)
    expected = nb.load(fname).get_fdata()

    image = VolumeReader().read(fname)
    assert image.data.dtype == np.int16
    assert image.data.slope != 1 or image.data.inter != 0
    assert np.issubdtype(image.dtype, np.floating)
    image.set_index(0, 1)
    np.testing.assert_allclose(image.value(), expected[1, 0, 0])
    assert image.slab().dtype == image.dtype

    out = render(make_reslice(image, image, interp='nearest',
                              oversample=[1, 1, 1]))
    assert np.issubdtype(out.dtype, np.floating)
    np.testing.assert_allclose(out, expected)
    np.testing.assert_allclose(out, values, atol=0.01)
