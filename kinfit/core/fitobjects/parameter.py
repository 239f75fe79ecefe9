"""
Generic fit object made of named scalar parameters.
"""

from .base import BaseFitObject


class ParameterFitObject(BaseFitObject):
    """
    Fit object holding an arbitrary list of parameters.

    Parameters
    ----------
    name : str
        Object name
    values : sequence of float
        Starting (and, for measured parameters, measured) values
    errors : sequence of float or None, optional
        Measurement errors. A None entry marks the parameter as unmeasured.
        If omitted, all parameters are unmeasured.
    measured : sequence of bool, optional
        Explicit measured flags (overrides the flags derived from errors)
    fixed : sequence of bool, optional
        Fixed flags
    param_names : sequence of str, optional
        Parameter names (default: p0, p1, ...)

    Examples
    --------
    >>> x = ParameterFitObject('x', [10.0, 5.0], errors=[1.0, 1.0])
    >>> u = ParameterFitObject('u', [0.0])            # one unmeasured parameter
    """

    def __init__(self, name, values, errors=None, measured=None, fixed=None, param_names=None):
        values = list(values)
        n = len(values)
        if param_names is None:
            param_names = [f"p{i}" for i in range(n)]
        if len(param_names) != n:
            raise ValueError(f"Expected {n} parameter names, got {len(param_names)}")
        super().__init__(name, param_names)

        if errors is None:
            errors = [None] * n
        if len(errors) != n:
            raise ValueError(f"Expected {n} errors, got {len(errors)}")
        if measured is None:
            measured = [err is not None for err in errors]
        if fixed is None:
            fixed = [False] * n

        for i in range(n):
            self.par[i] = values[i]
            self.mpar[i] = values[i]
            self.measured[i] = measured[i]
            self.fixed[i] = fixed[i]
            if errors[i] is not None:
                self.set_error(i, errors[i])
