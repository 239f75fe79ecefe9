"""
Linear-algebra workspace of the OPAL fitter.

All vectors and matrices used by one fit live in a FitWorkspace that is
sized from (npar, nmea, nunm, ncon). The buffers are mutated in place
during the iterations and only reallocated when the dimensions change,
so repeated fits of the same topology reuse them.
"""

import numpy as np
from scipy.linalg import cho_factor, cho_solve


# Smallest accepted diagonal element of the Cholesky factor of the
# unit-diagonal (equilibrated) matrix; smaller pivots mean singular.
SINGULARITY_TOLERANCE = 1e-7


def _equilibrate(matrix):
    """Return (scaled matrix, scale vector) with a unit diagonal, or None."""
    if not np.all(np.isfinite(matrix)):
        return None
    diag = np.diag(matrix)
    if np.any(diag <= 0):
        return None
    scale = 1.0 / np.sqrt(diag)
    return matrix * np.outer(scale, scale), scale


def _cholesky(matrix):
    """Cholesky factor of the equilibrated matrix, or None if singular."""
    equilibrated = _equilibrate(matrix)
    if equilibrated is None:
        return None
    scaled, scale = equilibrated
    try:
        factor = cho_factor(scaled, lower=False, check_finite=False)
    except np.linalg.LinAlgError:
        return None
    if np.min(np.abs(np.diag(factor[0]))) < SINGULARITY_TOLERANCE:
        return None
    return factor, scale


def invert_spd(matrix, out):
    """
    Invert a symmetric positive-definite matrix.

    Parameters
    ----------
    matrix : ndarray
        Square matrix (not modified; only its upper triangle is used)
    out : ndarray
        Destination for the inverse, same shape as matrix

    Returns
    -------
    bool
        False if the matrix is singular or not positive definite;
        out is left untouched in that case
    """
    n = matrix.shape[0]
    if n == 0:
        return True
    decomposition = _cholesky(matrix)
    if decomposition is None:
        return False
    factor, scale = decomposition
    out[...] = cho_solve(factor, np.eye(n), check_finite=False) * np.outer(scale, scale)
    return True


def solve_spd(matrix, rhs):
    """
    Solve matrix * x = rhs in place for a symmetric positive-definite matrix.

    Returns
    -------
    bool
        False if the matrix is singular; rhs is left untouched in that case
    """
    n = matrix.shape[0]
    if n == 0:
        return True
    decomposition = _cholesky(matrix)
    if decomposition is None:
        return False
    factor, scale = decomposition
    rhs[...] = scale * cho_solve(factor, scale * rhs, check_finite=False)
    return True


class FitWorkspace:
    """
    Reusable buffers for one fitter instance.

    Layout of the global parameter vector and of the Jacobian::

        etaxi  = ( eta | xi )            eta: nmea measured, xi: nunm unmeasured
        Fetaxi = ( Feta | Fxi )          ncon rows

    Attributes
    ----------
    f, r, lam, Fxidxi : ndarray (ncon,)
        Constraint values, reduced residual, Lagrange multipliers, Fxi*dxi
    Fetaxi : ndarray (ncon, npar)
        Constraint Jacobian
    S, Sinv : ndarray (ncon, ncon)
        Reduced system matrix and its inverse
    V, Vnew : ndarray (npar, npar)
        Input and fitted covariance
    Vinv, G, IGV : ndarray (nmea, nmea)
    SinvFxi : ndarray (ncon, nunm)
    SinvFeta, FetaV : ndarray (ncon, nmea)
    W1 : ndarray (nunm, nunm)
    H, HU : ndarray (nmea, nunm)
    dxi : ndarray (nunm,)
    FetaTlambda, y, y_eta, Vinvy_eta : ndarray (nmea,)
    etaxi, etasv : ndarray (npar,)
    """

    def __init__(self):
        self.dims = None
        self.npar = self.nmea = self.nunm = self.ncon = 0

    def _shapes(self):
        npar, nmea, nunm, ncon = self.npar, self.nmea, self.nunm, self.ncon
        return {
            'f': (ncon,),
            'r': (ncon,),
            'Fetaxi': (ncon, npar),
            'S': (ncon, ncon),
            'Sinv': (ncon, ncon),
            'SinvFxi': (ncon, nunm),
            'SinvFeta': (ncon, nmea),
            'W1': (nunm, nunm),
            'G': (nmea, nmea),
            'H': (nmea, nunm),
            'HU': (nmea, nunm),
            'IGV': (nmea, nmea),
            'V': (npar, npar),
            'Vinv': (nmea, nmea),
            'Vnew': (npar, npar),
            'dxi': (nunm,),
            'Fxidxi': (ncon,),
            'lam': (ncon,),
            'FetaTlambda': (nmea,),
            'etaxi': (npar,),
            'etasv': (npar,),
            'y': (nmea,),
            'y_eta': (nmea,),
            'Vinvy_eta': (nmea,),
            'FetaV': (ncon, nmea),
        }

    def resize(self, npar, nmea, nunm, ncon):
        """
        Size the buffers for the given dimensions.

        Returns
        -------
        bool
            True if the buffers were (re)allocated, False if the previous
            allocation was reused
        """
        if npar != nmea + nunm:
            raise ValueError(f"npar={npar} does not equal nmea+nunm={nmea + nunm}")
        dims = (npar, nmea, nunm, ncon)
        if dims == self.dims:
            return False
        self.dims = dims
        self.npar, self.nmea, self.nunm, self.ncon = dims
        for name, shape in self._shapes().items():
            setattr(self, name, np.zeros(shape))
        return True

    # Views into the buffers; valid until the next reallocation.
    @property
    def eta(self):
        return self.etaxi[:self.nmea]

    @property
    def xi(self):
        return self.etaxi[self.nmea:]

    @property
    def Feta(self):
        return self.Fetaxi[:, :self.nmea]

    @property
    def Fxi(self):
        return self.Fetaxi[:, self.nmea:]

    @property
    def Vetaeta(self):
        return self.V[:self.nmea, :self.nmea]
