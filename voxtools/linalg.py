from warnings import warn
import numpy as np


def matmul(x1, x2=None, axis=None, **kwargs):
    """Matrix multiplication (with extended capabilities)

    Parameters
    ----------
    x1 : array_like
        First matrix
    x2 : array_like, optional
        Second matrix
    axis : int, optional
        Axis along which to extract matrices. Default axis is 0
    **kwargs
        Other keyword only arguments. See numpy.matmul

    Returns
    -------
    x : ndarray
        * If x2 is None: extract matrices from x1 along an axis and
          multiply them together, left to right.
        * Else: classic matrix multiplication x1 @ x2. See numpy.matmul

    """
    if x2 is None:
        # Product across a dimension of x1
        x1 = np.asarray(x1)
        if axis is None:
            axis = 0
        x = np.take(x1, 0, axis=axis)
        for n_mat in range(1, x1.shape[axis]):
            x = np.matmul(x, np.take(x1, n_mat, axis=axis))
        return x
    else:
        # Product of two matrices
        if axis is not None:
            raise ValueError('Cannot use ``x2`` and ``axis`` together.')
        return np.matmul(x1, x2, **kwargs)


def mm(*args, **kwargs):
    """Alias for matmul"""
    return matmul(*args, **kwargs)


def homogeneous(mat, dtype=np.float64):
    """Complete a (D, D+1) affine matrix into a (D+1, D+1) one.

    Parameters
    ----------
    mat : (D, D+1) or (D+1, D+1) array_like

    Returns
    -------
    mat : (D+1, D+1) np.ndarray

    """
    mat = np.array(mat, dtype=dtype)
    if mat.ndim != 2 or mat.shape[1] - mat.shape[0] not in (0, 1):
        raise ValueError('Expected a (D, D+1) or (D+1, D+1) affine matrix '
                         'but got shape {}'.format(mat.shape))
    if mat.shape[0] < mat.shape[1]:
        dim = mat.shape[0]
        pad = np.zeros((1, dim + 1), dtype=dtype)
        pad[0, -1] = 1
        mat = np.concatenate((mat, pad), axis=0)
    return mat


def inv(mat):
    """Invert an affine matrix, warning if it is (nearly) singular."""
    mat = np.asarray(mat, dtype=np.float64)
    if np.linalg.cond(mat) > 1 / np.finfo(mat.dtype).eps:
        warn('Affine matrix is close to singular; its inverse may be '
             'inaccurate.', RuntimeWarning)
    return np.linalg.inv(mat)
