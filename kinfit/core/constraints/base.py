"""
Base class for hard (equality) constraints.
"""


class BaseHardConstraint:
    """
    Scalar equality constraint over the global fit parameters.

    A constraint is satisfied when get_value() returns zero. The fitter
    asks for the gradient row through get_derivatives(); parameters that
    are fixed (global index -1) never appear in it.
    """

    def __init__(self, name='constraint'):
        self.name = str(name)

    def __repr__(self):
        return f"{type(self).__name__}({self.name})"

    def get_name(self):
        return self.name

    def set_name(self, name):
        self.name = str(name)

    def get_value(self):
        """Current value of the constraint function."""
        raise NotImplementedError

    def get_derivatives(self, npar, der):
        """
        Add the gradient of the constraint to a row of the Jacobian.

        Parameters
        ----------
        npar : int
            Number of global parameters (length of der)
        der : ndarray
            Jacobian row, zeroed by the caller and filled in place
        """
        raise NotImplementedError

    @staticmethod
    def _add_derivative(der, npar, fitobject, ilocal, value):
        iglobal = fitobject.get_global_par_num(ilocal)
        if fitobject.is_param_fixed(ilocal) or not 0 <= iglobal < npar:
            return
        der[iglobal] += value
