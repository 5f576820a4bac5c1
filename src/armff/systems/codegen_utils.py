# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Code Generation Utilities

Compile SymPy expressions into NumPy callables.

All generated functions return 1D arrays, even for scalar expressions:
- Scalar expr: returns shape (1,)
- Vector expr: returns shape (n,)

Extract scalar: result[0] or result.item()
"""

from typing import Callable, List, Union

import numpy as np
import sympy as sp

# sign(0) == 0 in both SymPy and NumPy, so the static friction term
# vanishes at rest after compilation as well.
SYMPY_TO_NUMPY_LAMBDIFY = {
    "sign": np.sign,
    "cos": np.cos,
    "sin": np.sin,
}


def generate_numpy_function(
    expr: Union[sp.Expr, List[sp.Expr], sp.Matrix],
    symbols: List[sp.Symbol],
) -> Callable[..., np.ndarray]:
    """
    Generate a NumPy function from SymPy expression(s).

    Args:
        expr: SymPy expression, list, or Matrix
        symbols: Input symbols in order

    Returns:
        Compiled NumPy function returning a flat float64 array

    Examples:
        >>> x, y = sp.symbols("x y")
        >>> f = generate_numpy_function(sp.Matrix([x + y, x * y]), [x, y])
        >>> f(2.0, 3.0)
        array([5., 6.])
    """
    if isinstance(expr, list):
        expr = sp.Matrix(expr)
    elif not isinstance(expr, sp.MatrixBase):
        expr = sp.Matrix([expr])

    func = sp.lambdify(symbols, expr, modules=[SYMPY_TO_NUMPY_LAMBDIFY, "numpy"])

    def wrapped_func(*args):
        # Matrix results come back as (n, 1) arrays
        return np.asarray(func(*args), dtype=np.float64).flatten()

    return wrapped_func


__all__ = ["SYMPY_TO_NUMPY_LAMBDIFY", "generate_numpy_function"]
