import numpy as np


def vec(list):
    """Handy shorthand to make a double-precision float array."""
    return np.array(list, dtype=np.float64)


def normalize(v):
    """Return a unit vector in the direction of the vector v.

    Works on a single vector or on a batch of shape (..., 3). A zero vector
    has no direction, so it comes back as NaN in every component.
    """
    with np.errstate(invalid='ignore', divide='ignore'):
        return v / np.linalg.norm(v, axis=-1, keepdims=True)


def length_squared(v):
    return np.sum(v * v, axis=-1)


def length(v):
    return np.sqrt(length_squared(v))


def clamp_unit(x):
    """Clamp color values into [0, 1]; NaN maps to 0."""
    x = np.nan_to_num(np.asarray(x, dtype=np.float64), nan=0.0, posinf=1.0, neginf=0.0)
    return np.clip(x, 0.0, 1.0)
