"""
Constraints over individual fit-object parameters.
"""

import numpy as np

from .base import BaseHardConstraint


class LinearConstraint(BaseHardConstraint):
    """
    Linear constraint: sum(coeff * parameter) - value = 0.

    Parameters
    ----------
    terms : sequence of (fitobject, ilocal, coeff)
        Parameters entering the sum with their coefficients
    value : float, optional
        Right-hand side
    name : str, optional
        Constraint name

    Examples
    --------
    >>> # x1 + x2 = 20
    >>> c = LinearConstraint([(obj, 0, 1.0), (obj, 1, 1.0)], value=20.0)
    """

    def __init__(self, terms, value=0.0, name='linear'):
        super().__init__(name)
        self.terms = [(fitobject, int(ilocal), float(coeff)) for fitobject, ilocal, coeff in terms]
        if not self.terms:
            raise ValueError("LinearConstraint needs at least one term")
        self.value = float(value)

    def get_value(self):
        total = sum(coeff * fitobject.get_param(ilocal) for fitobject, ilocal, coeff in self.terms)
        return total - self.value

    def get_derivatives(self, npar, der):
        for fitobject, ilocal, coeff in self.terms:
            self._add_derivative(der, npar, fitobject, ilocal, coeff)


class FunctionConstraint(BaseHardConstraint):
    """
    Constraint given by an arbitrary function of fit-object parameters.

    Parameters
    ----------
    func : callable
        func(*values) -> float, zero when the constraint is satisfied
    refs : sequence of (fitobject, ilocal)
        Parameters passed to func, in order
    grad : callable, optional
        grad(*values) -> sequence of partial derivatives, one per ref.
        If omitted, central finite differences are used.
    step : float, optional
        Relative finite-difference step
    name : str, optional
        Constraint name

    Examples
    --------
    >>> # x * y = 12
    >>> c = FunctionConstraint(lambda x, y: x * y - 12.0, [(obj, 0), (obj, 1)],
    ...                        grad=lambda x, y: (y, x))
    """

    def __init__(self, func, refs, grad=None, step=1e-6, name='function'):
        super().__init__(name)
        if not callable(func):
            raise ValueError("func must be callable")
        self.func = func
        self.refs = [(fitobject, int(ilocal)) for fitobject, ilocal in refs]
        if not self.refs:
            raise ValueError("FunctionConstraint needs at least one parameter reference")
        self.grad = grad
        self.step = float(step)

    def _values(self):
        return [fitobject.get_param(ilocal) for fitobject, ilocal in self.refs]

    def get_value(self):
        return float(self.func(*self._values()))

    def gradient(self):
        """Partial derivatives with respect to the referenced parameters."""
        values = self._values()
        if self.grad is not None:
            grad = np.asarray(self.grad(*values), dtype=float)
            if grad.shape != (len(values),):
                raise ValueError(f"{self.name}: gradient has shape {grad.shape}, "
                                 f"expected ({len(values)},)")
            return grad

        grad = np.zeros(len(values))
        for i, value in enumerate(values):
            h = self.step * max(abs(value), 1.0)
            up = list(values)
            down = list(values)
            up[i] = value + h
            down[i] = value - h
            grad[i] = (self.func(*up) - self.func(*down)) / (2 * h)
        return grad

    def get_derivatives(self, npar, der):
        for (fitobject, ilocal), d in zip(self.refs, self.gradient()):
            self._add_derivative(der, npar, fitobject, ilocal, d)
