"""
Base class for fit objects.

A fit object owns a small local parameter vector (e.g. E, theta, phi of a
jet). The fitter only talks to fit objects through the methods defined
here: parameter flags and values, the global index assigned by the
fitter, the parameter update and the covariance contribution.
"""

import math

import numpy as np


class BaseFitObject:
    """
    Abstract fit object with a local parameter vector.

    Attributes
    ----------
    name : str
        Object name (used in logging and reports)
    par : ndarray
        Current parameter values
    mpar : ndarray
        Measured parameter values
    measured : ndarray of bool
        True for parameters with an a priori measurement
    fixed : ndarray of bool
        True for parameters that are not varied by the fit
    globalparnum : ndarray of int
        Global parameter index assigned by the fitter, -1 if unassigned
    meas_cov : ndarray
        A priori (measurement) covariance of the local parameters
    cov : ndarray
        Current local covariance; the fitter writes the fitted
        covariance here after a successful error calculation
    """

    def __init__(self, name, param_names):
        if not param_names:
            raise ValueError("A fit object needs at least one parameter")
        self.name = str(name)
        self.param_names = list(param_names)
        n = len(self.param_names)
        self.par = np.zeros(n)
        self.mpar = np.zeros(n)
        self.measured = np.zeros(n, dtype=bool)
        self.fixed = np.zeros(n, dtype=bool)
        self.globalparnum = np.full(n, -1, dtype=int)
        self.meas_cov = np.zeros((n, n))
        self.cov = np.zeros((n, n))

    def __repr__(self):
        pars = ", ".join(f"{pn}={p:.6g}" for pn, p in zip(self.param_names, self.par))
        return f"{type(self).__name__}({self.name}: {pars})"

    def _check_index(self, ilocal):
        if not 0 <= ilocal < len(self.par):
            raise IndexError(f"{self.name}: parameter index {ilocal} out of range "
                             f"(npar={len(self.par)})")

    # ===================== Parameter access =====================
    def get_npar(self):
        return len(self.par)

    def get_name(self):
        return self.name

    def set_name(self, name):
        self.name = str(name)

    def get_param_name(self, ilocal):
        self._check_index(ilocal)
        return self.param_names[ilocal]

    def get_param(self, ilocal):
        self._check_index(ilocal)
        return float(self.par[ilocal])

    def set_param(self, ilocal, value):
        """
        Set a parameter value.

        Subclasses may normalise the value before storing it (the stored
        value is what the fitter reads back).

        Returns
        -------
        bool
            False if the value is not physically acceptable
        """
        self._check_index(ilocal)
        self.par[ilocal] = value
        return bool(math.isfinite(value))

    def get_mparam(self, ilocal):
        self._check_index(ilocal)
        return float(self.mpar[ilocal])

    def set_mparam(self, ilocal, value):
        self._check_index(ilocal)
        self.mpar[ilocal] = value
        return True

    def is_param_measured(self, ilocal):
        self._check_index(ilocal)
        return bool(self.measured[ilocal])

    def set_param_measured(self, ilocal, measured=True):
        self._check_index(ilocal)
        self.measured[ilocal] = measured

    def is_param_fixed(self, ilocal):
        self._check_index(ilocal)
        return bool(self.fixed[ilocal])

    def fix_param(self, ilocal, fix=True):
        self._check_index(ilocal)
        self.fixed[ilocal] = fix
        if fix:
            self.globalparnum[ilocal] = -1

    def release_param(self, ilocal):
        self.fix_param(ilocal, False)

    def get_global_par_num(self, ilocal):
        self._check_index(ilocal)
        return int(self.globalparnum[ilocal])

    def set_global_par_num(self, ilocal, iglobal):
        """Assign the global index; refused for fixed parameters."""
        self._check_index(ilocal)
        if self.fixed[ilocal]:
            return False
        self.globalparnum[ilocal] = iglobal
        return True

    # ===================== Covariance =====================
    def get_cov(self, ilocal, jlocal):
        self._check_index(ilocal)
        self._check_index(jlocal)
        return float(self.cov[ilocal, jlocal])

    def set_cov(self, ilocal, jlocal, value):
        """Set an entry of the current local covariance (kept symmetric)."""
        self._check_index(ilocal)
        self._check_index(jlocal)
        self.cov[ilocal, jlocal] = value
        self.cov[jlocal, ilocal] = value

    def get_meas_cov(self, ilocal, jlocal):
        self._check_index(ilocal)
        self._check_index(jlocal)
        return float(self.meas_cov[ilocal, jlocal])

    def set_meas_cov(self, ilocal, jlocal, value):
        """Set an a priori covariance entry; also resets the current entry."""
        self._check_index(ilocal)
        self._check_index(jlocal)
        self.meas_cov[ilocal, jlocal] = value
        self.meas_cov[jlocal, ilocal] = value
        self.set_cov(ilocal, jlocal, value)

    def get_error(self, ilocal):
        """Current uncertainty (square root of the covariance diagonal)."""
        return math.sqrt(max(self.get_cov(ilocal, ilocal), 0.0))

    def set_error(self, ilocal, error):
        if error < 0:
            raise ValueError(f"{self.name}: negative error {error} for "
                             f"parameter {self.param_names[ilocal]}")
        self.set_meas_cov(ilocal, ilocal, error * error)

    # ===================== Fitter interface =====================
    def update_params(self, etaxi, npar):
        """
        Read new parameter values from the global parameter vector.

        Every unfixed parameter with an assigned global index is set via
        set_param(); the stored (possibly normalised) value is written
        back into etaxi.

        Parameters
        ----------
        etaxi : ndarray
            Global parameter vector (modified in place)
        npar : int
            Number of global parameters

        Returns
        -------
        bool
            False if any new value was rejected
        """
        result = True
        for ilocal in range(self.get_npar()):
            iglobal = self.globalparnum[ilocal]
            if self.fixed[ilocal] or not 0 <= iglobal < npar:
                continue
            if not self.set_param(ilocal, float(etaxi[iglobal])):
                result = False
            etaxi[iglobal] = self.par[ilocal]
        return result

    def add_to_glob_cov(self, glcov):
        """Add the measurement covariance of this object to the global matrix."""
        active = [i for i in range(self.get_npar())
                  if self.measured[i] and not self.fixed[i] and self.globalparnum[i] >= 0]
        for i in active:
            iglobal = self.globalparnum[i]
            for j in active:
                glcov[iglobal, self.globalparnum[j]] += self.meas_cov[i, j]

    def get_chi2(self):
        """Chi-square contribution from the pulls of the measured parameters."""
        chi2 = 0.0
        for i in range(self.get_npar()):
            if self.measured[i] and not self.fixed[i] and self.meas_cov[i, i] > 0:
                chi2 += (self.par[i] - self.mpar[i]) ** 2 / self.meas_cov[i, i]
        return chi2
