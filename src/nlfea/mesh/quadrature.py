"""
Quadrature Rules
================

Integration point tables for the reference shapes.

Every rule is returned as an array of shape (n_points, 4) holding
[r, s, t, w] rows, i.e. local coordinates padded to three components
followed by the weight.
"""

from functools import lru_cache

import numpy as np


def _pad(coords: np.ndarray, weights: np.ndarray) -> np.ndarray:
    coords = np.atleast_2d(coords)
    table = np.zeros((len(weights), 4))
    table[:, :coords.shape[1]] = coords
    table[:, 3] = weights
    return table


@lru_cache(maxsize=None)
def gauss_line(n_points: int) -> np.ndarray:
    """
    Gauss-Legendre rule on [-1, 1].

    Args:
        n_points: number of points (1 to 5)

    Returns:
        table: shape (n_points, 4)
    """
    if not 1 <= n_points <= 5:
        raise ValueError(f"Unsupported number of line integration points: {n_points}")
    xi, w = np.polynomial.legendre.leggauss(n_points)
    return _pad(xi.reshape(-1, 1), w)


@lru_cache(maxsize=None)
def gauss_quad(n_points: int) -> np.ndarray:
    """
    Tensor product Gauss rule on [-1, 1]².

    Args:
        n_points: total number of points (1, 4, 9 or 16)
    """
    n = int(round(np.sqrt(n_points)))
    if n * n != n_points or not 1 <= n <= 4:
        raise ValueError(f"Unsupported number of quadrilateral integration points: {n_points}")
    xi, w = np.polynomial.legendre.leggauss(n)
    coords = np.array([[xi[i], xi[j]] for j in range(n) for i in range(n)])
    weights = np.array([w[i] * w[j] for j in range(n) for i in range(n)])
    return _pad(coords, weights)


@lru_cache(maxsize=None)
def gauss_hex(n_points: int) -> np.ndarray:
    """
    Tensor product Gauss rule on [-1, 1]³.

    Args:
        n_points: total number of points (1, 8 or 27)
    """
    n = int(round(n_points ** (1.0 / 3.0)))
    if n ** 3 != n_points or not 1 <= n <= 3:
        raise ValueError(f"Unsupported number of hexahedron integration points: {n_points}")
    xi, w = np.polynomial.legendre.leggauss(n)
    coords = np.array([[xi[i], xi[j], xi[k]]
                       for k in range(n) for j in range(n) for i in range(n)])
    weights = np.array([w[i] * w[j] * w[k]
                        for k in range(n) for j in range(n) for i in range(n)])
    return _pad(coords, weights)


@lru_cache(maxsize=None)
def gauss_triangle(n_points: int) -> np.ndarray:
    """
    Symmetric rules on the reference triangle (0,0)-(1,0)-(0,1).

    Weights add up to the reference area 1/2.

    Args:
        n_points: number of points (1, 3 or 6)
    """
    if n_points == 1:
        return _pad(np.array([[1 / 3, 1 / 3]]), np.array([0.5]))
    elif n_points == 3:
        coords = np.array([[1 / 6, 1 / 6], [2 / 3, 1 / 6], [1 / 6, 2 / 3]])
        return _pad(coords, np.full(3, 1 / 6))
    elif n_points == 6:
        a = 0.445948490915965
        b = 0.091576213509771
        wa = 0.223381589678011 / 2
        wb = 0.109951743655322 / 2
        coords = np.array([
            [a, a], [1 - 2 * a, a], [a, 1 - 2 * a],
            [b, b], [1 - 2 * b, b], [b, 1 - 2 * b],
        ])
        return _pad(coords, np.array([wa, wa, wa, wb, wb, wb]))
    raise ValueError(f"Unsupported number of triangle integration points: {n_points}")


@lru_cache(maxsize=None)
def gauss_tetra(n_points: int) -> np.ndarray:
    """
    Rules on the reference tetrahedron; weights add up to 1/6.

    Args:
        n_points: number of points (1 or 4)
    """
    if n_points == 1:
        return _pad(np.array([[0.25, 0.25, 0.25]]), np.array([1 / 6]))
    elif n_points == 4:
        a = 0.5854101966249685
        b = 0.1381966011250105
        coords = np.array([[b, b, b], [a, b, b], [b, a, b], [b, b, a]])
        return _pad(coords, np.full(4, 1 / 24))
    raise ValueError(f"Unsupported number of tetrahedron integration points: {n_points}")
