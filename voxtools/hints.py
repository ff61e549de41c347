from typing import Union, Iterable, Sequence
import numpy as np
import nibabel as nib

Array = Union[np.ndarray, Iterable, int, float]
Matrix = Array
Vector = Matrix
Shape = Sequence[int]
FileArray = Union[str, nib.spatialimages.SpatialImage]
AnyArray = Union[Array, FileArray]
InterpSpec = Union[str, int, type]
