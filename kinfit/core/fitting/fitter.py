"""
OPAL-style kinematic fitter.

Constrained least-squares fit with Lagrange multipliers, solved by a
damped Newton iteration (after the WWFGO algorithm). Measured parameters
eta are pulled towards their measurements y with covariance V, unmeasured
parameters xi are determined by the constraints alone::

             ( eta )  nmea                  ( Vetaeta | Vetaxi )
    etaxi =  ( --- )              V      =  ( --------+------- )
             ( xi  )  nunm                  ( Vxieta  | Vxixi  )

    Fetaxi = ( Feta | Fxi )   (ncon rows, gradient of each constraint)
"""

import numpy as np

from .base import BaseFitter
from .statistics import prob
from .workspace import FitWorkspace, invert_spd, solve_spd
from ...utils.logger import get_logger


# Capacity limits of a single fit
NPARMAX = 1000
NUNMMAX = 100
NCONMAX = 1000

# Convergence criteria
NITMAX = 200          # maximum number of iterations
DCHIKC = 1.0e-3       # max change of chi2 from constraints
DCHITC = 1.0e-4       # max relative change of chi2 from measurements
DCHIKT = 1.0e-2       # max ratio of constraint chi2 to measurement chi2
DCHIK = 1.05          # factor by which constraint chi2 may grow before a step is bad
CHIMXW = 10000.       # chi2 above which the fit is considered runaway
ALMIN = 0.05          # smallest damping factor
EPS = 1.0e-6          # tolerance for constraint values and parameter changes

# Error codes
CONVERGED = 0
MAX_ITERATIONS = 1
CHI2_RUNAWAY = 2
STEP_FLOOR = 3
STEP_CUT = 4
CONTINUE = 5
RESTORE_FAILED = 6
SINGULAR_S = 7
SINGULAR_W1 = 8
SINGULAR_ERRORS = 9

ERROR_MESSAGES = {
    CONVERGED: 'converged',
    MAX_ITERATIONS: 'maximum number of iterations exceeded',
    CHI2_RUNAWAY: 'chi2 exceeded runaway threshold',
    STEP_FLOOR: 'step rejected at minimum step size',
    STEP_CUT: 'step size reduced',
    CONTINUE: 'iterating',
    RESTORE_FAILED: 'saved parameters rejected by fit objects',
    SINGULAR_S: 'covariance or reduced system matrix singular',
    SINGULAR_W1: 'unmeasured parameter system singular',
    SINGULAR_ERRORS: 'singular matrix in error calculation',
}


class OPALFitter(BaseFitter):
    """
    Kinematic fitter with Lagrange multipliers and Newton iterations.

    Parameters
    ----------
    debug : int, optional
        Verbosity of the debug output (0 = none, 1 = per iteration,
        2 = vectors and matrices, 3 = also intermediate error matrices)
    max_iterations : int, optional
        Iteration cap (default 200)

    Attributes
    ----------
    npar, nmea, nunm, ncon : int
        Problem dimensions, set by initialize()
    ierr : int
        Error code of the last fit (see ERROR_MESSAGES)
    nit : int
        Number of iterations of the last fit
    alph : float
        Current damping factor for the unmeasured parameter step
    cov : ndarray or None
        Flat, row-major fitted covariance of size cov_dim**2
    cov_valid : bool
        True if cov holds the result of the last fit

    Examples
    --------
    >>> fitter = OPALFitter()
    >>> fitter.add_fit_object(obj)
    >>> fitter.add_constraint(LinearConstraint([(obj, 0, 1.0), (obj, 1, 1.0)], value=20.0))
    >>> probability = fitter.fit()
    >>> fitter.get_error(), fitter.get_chi2()
    """

    def __init__(self, debug=0, max_iterations=NITMAX):
        super().__init__()
        self.debug = debug
        self.max_iterations = max_iterations
        self.npar = 0
        self.nmea = 0
        self.nunm = 0
        self.ncon = 0
        self.ierr = 0
        self.nit = 0
        self.alph = 1.0
        self.chit = 0.0
        self.chik = 0.0
        self.chi2 = 0.0
        self.fitprob = 0.0
        self.workspace = FitWorkspace()
        self.cov = None
        self.cov_dim = 0
        self.cov_valid = False
        self.logger = get_logger()

    # ===================== Setup =====================
    def initialize(self):
        """
        Assign global parameter numbers and size the workspace.

        Measured, unfixed parameters are numbered first (0..nmea-1), then
        unmeasured, unfixed ones (nmea..npar-1).

        Returns
        -------
        bool
            True (capacity violations raise ValueError)
        """
        self.cov_valid = False

        iglobal = 0
        for measured in (True, False):
            for fitobject in self.fitobjects:
                for ilocal in range(fitobject.get_npar()):
                    if (fitobject.is_param_measured(ilocal) == measured
                            and not fitobject.is_param_fixed(ilocal)):
                        fitobject.set_global_par_num(ilocal, iglobal)
                        if self.debug:
                            self.logger.debug(
                                f"Object {fitobject.get_name()} Parameter "
                                f"{fitobject.get_param_name(ilocal)} is "
                                f"{'measured' if measured else 'unmeasured'}, global number {iglobal}")
                        iglobal += 1
            if measured:
                self.nmea = iglobal

        self.npar = iglobal
        self.nunm = self.npar - self.nmea
        self.ncon = len(self.constraints)
        if self.npar > NPARMAX:
            raise ValueError(f"Too many parameters: {self.npar} > {NPARMAX}")
        if self.nunm > NUNMMAX:
            raise ValueError(f"Too many unmeasured parameters: {self.nunm} > {NUNMMAX}")
        if self.ncon > NCONMAX:
            raise ValueError(f"Too many constraints: {self.ncon} > {NCONMAX}")

        self.workspace.resize(self.npar, self.nmea, self.nunm, self.ncon)
        return True

    def update_fit_objects(self, etaxi):
        """
        Push the global parameter vector into all fit objects.

        Returns
        -------
        bool
            False if any fit object rejected its new parameters
        """
        result = True
        for fitobject in self.fitobjects:
            if not fitobject.update_params(etaxi, self.npar):
                result = False
        return result

    # ===================== Internal steps =====================
    def _eval_derivatives(self):
        ws = self.workspace
        ws.Fetaxi.fill(0.0)
        for k, constraint in enumerate(self.constraints):
            constraint.get_derivatives(self.npar, ws.Fetaxi[k])

    def _calc_reduced_matrix(self):
        """S = Feta * Vetaeta * Feta^T (+ Fxi * Fxi^T if there are unmeasured parameters)."""
        ws = self.workspace
        ws.FetaV[...] = ws.Feta @ ws.Vetaeta
        ws.S[...] = ws.FetaV @ ws.Feta.T
        if self.nunm > 0:
            # Keeps S regular when a constraint depends on no measured parameter
            ws.S += ws.Fxi @ ws.Fxi.T

    def _debug_print(self, array, name, level=2):
        if self.debug < level:
            return
        for index in zip(*np.nonzero(array)):
            self.logger.debug(f"{name}{[int(i) for i in index]} = {array[index]}")

    # ===================== Fit =====================
    def fit(self):
        """
        Perform the kinematic fit.

        Returns
        -------
        float
            Fit probability, or -1 if the fit had to be aborted (the error
            code tells why)
        """
        self.initialize()
        ws = self.workspace
        nmea, nunm, ncon, npar = self.nmea, self.nunm, self.ncon, self.npar

        # eta, xi, Feta, Fxi and Vetaeta are views into the workspace
        eta = ws.eta
        xi = ws.xi
        Feta = ws.Feta
        Fxi = ws.Fxi
        Vetaeta = ws.Vetaeta

        for fitobject in self.fitobjects:
            for ilocal in range(fitobject.get_npar()):
                if fitobject.is_param_fixed(ilocal):
                    continue
                iglobal = fitobject.get_global_par_num(ilocal)
                ws.etaxi[iglobal] = fitobject.get_param(ilocal)
                if fitobject.is_param_measured(ilocal):
                    ws.y[iglobal] = fitobject.get_mparam(ilocal)

        self._eval_derivatives()
        self._debug_print(ws.Fetaxi, "1: Fetaxi")

        chinew = chit = chik = 0.0
        alph = 1.0
        self.alph = alph
        self.nit = 0
        self.ierr = 0
        chik0 = 100.
        chit0 = 100.

        repeat = True
        scut = False
        calcerr = True

        if self.tracer is not None:
            self.tracer.initialize(self)

        while repeat:
            updatesuccess = True

            # Retry with a smaller step in the same direction
            if scut:
                ws.etaxi[:] = ws.etasv
                updatesuccess = self.update_fit_objects(ws.etaxi)
                if not updatesuccess:
                    self.logger.error("OPALFitter.fit: saved parameters rejected by fit objects")
                    self.ierr = RESTORE_FAILED
                    return -1.0
                self._eval_derivatives()
                self._debug_print(ws.Fetaxi, "1: Fetaxi")
            else:
                ws.etasv[:] = ws.etaxi
                chik0 = chik
                chit0 = chit

            # Covariance matrix
            ws.V.fill(0.0)
            for fitobject in self.fitobjects:
                fitobject.add_to_glob_cov(ws.V)
            self._debug_print(ws.V, "V")
            vinv_ok = invert_spd(Vetaeta, ws.Vinv)
            self._debug_print(ws.Vinv, "Vinv", level=3)

            # Constraint values and reduced residual r = f + Feta*(y - eta)
            for k, constraint in enumerate(self.constraints):
                ws.f[k] = constraint.get_value()
            self._debug_print(ws.f, "f")
            np.subtract(ws.y, eta, out=ws.y_eta)
            ws.r[:] = ws.f + Feta @ ws.y_eta
            self._debug_print(ws.r, "r")

            self._calc_reduced_matrix()
            self._debug_print(ws.S, "S")

            if not vinv_ok or not invert_spd(ws.S, ws.Sinv):
                self.logger.warning("OPALFitter.fit: "
                                    f"{'S' if vinv_ok else 'V'} is singular, fit aborted")
                self.ierr = SINGULAR_S
                calcerr = False
                break

            # lambda = Sinv*r for now, corrected below
            ws.lam[:] = ws.Sinv @ ws.r

            # New unmeasured parameters
            if nunm > 0:
                # W1 = Fxi^T * Sinv * Fxi
                ws.SinvFxi[...] = ws.Sinv @ Fxi
                ws.W1[...] = Fxi.T @ ws.SinvFxi
                self._debug_print(ws.W1, "W1")

                # W1 * dxi = -alph * Fxi^T * Sinv * r
                ws.dxi[:] = -alph * (Fxi.T @ ws.lam)
                if not solve_spd(ws.W1, ws.dxi):
                    self.logger.warning("OPALFitter.fit: W1 is singular, fit aborted")
                    self.ierr = SINGULAR_W1
                    calcerr = False
                    break
                self._debug_print(ws.dxi, "dxi")
                xi += ws.dxi

                # lambda = Sinv*r + Sinv*Fxi*dxi
                ws.Fxidxi[:] = Fxi @ ws.dxi
                ws.lam += ws.Sinv @ ws.Fxidxi
            self._debug_print(ws.lam, "lambda")

            # New measured parameters: eta = y - Vetaeta * Feta^T * lambda
            ws.FetaTlambda[:] = Feta.T @ ws.lam
            eta[:] = ws.y - Vetaeta @ ws.FetaTlambda
            self._debug_print(eta, "updated eta")

            # Constraints ask the fit objects for their parameters
            updatesuccess = self.update_fit_objects(ws.etaxi)
            if self.debug:
                for k, constraint in enumerate(self.constraints):
                    self.logger.debug(f"Value of constraint {k} = {constraint.get_value()}")
            self._eval_derivatives()
            self._debug_print(ws.Fetaxi, "2: Fetaxi")

            # New chi2
            np.subtract(ws.y, eta, out=ws.y_eta)
            ws.Vinvy_eta[:] = ws.Vinv @ ws.y_eta
            chit = float(ws.y_eta @ ws.Vinvy_eta)
            chik = sum(abs(2 * ws.lam[k] * constraint.get_value())
                       for k, constraint in enumerate(self.constraints))
            chinew = chit + chik
            self.chit, self.chik, self.chi2 = chit, chik, chinew

            self.nit += 1
            nit = self.nit

            sconv = (abs(chik - chik0) < DCHIKC
                     and abs(chit - chit0) < DCHITC * chit
                     and chik < DCHIKT * chit)
            # All constraints fulfilled and all parameters stable;
            # assumes parameters and constraints of order 1
            sconv2 = (bool(np.all(np.abs(ws.f) < EPS))
                      and bool(np.all(np.abs(ws.etaxi - ws.etasv) < EPS)))
            sconv = sconv or sconv2

            sbad = (chik > DCHIK * chik0
                    and chik > DCHIKT * chit
                    and chik > chik0 + 1.e-10)

            scut = False

            if nit > self.max_iterations:
                repeat = False
                self.ierr = MAX_ITERATIONS
            elif sconv and updatesuccess:
                repeat = False
                self.ierr = CONVERGED
            elif nit > 2 and chinew > CHIMXW and updatesuccess:
                repeat = False
                calcerr = False
                self.ierr = CHI2_RUNAWAY
            elif (sbad and nit > 1) or not updatesuccess:
                # Constraint chi2 increased or unphysical step: try a smaller step
                if alph == ALMIN:
                    repeat = False
                    calcerr = False
                    self.ierr = STEP_FLOOR
                else:
                    alph = max(ALMIN, 0.5 * alph)
                    scut = True
                    self.ierr = STEP_CUT
            else:
                alph = min(alph + 0.1, 1.)
                self.ierr = CONTINUE
            self.alph = alph

            if self.debug:
                self.logger.debug(f"======== NIT = {nit},  CHI2 = {chinew},  "
                                  f"ierr = {self.ierr}, alph = {alph}")
                for i, fitobject in enumerate(self.fitobjects):
                    self.logger.debug(f"fitobject {i}: {fitobject!r}")

            if self.tracer is not None:
                self.tracer.step(self)

        if self.ierr not in (CONVERGED, CONTINUE, STEP_CUT):
            self.logger.warning(f"OPALFitter.fit: {ERROR_MESSAGES[self.ierr]} "
                                f"(ierr = {self.ierr}, nit = {self.nit})")

        # Error calculation; the result goes into Vnew
        ws.Vnew.fill(0.0)
        errors_ok = True
        if calcerr:
            errors_ok = self._propagate_errors()

        self.chi2 = chinew
        self.fitprob = prob(chinew, ncon - nunm) if ncon - nunm > 0 else 0.5

        if self.tracer is not None:
            self.tracer.finish(self)

        if not errors_ok:
            return -1.0
        return self.fitprob

    def _propagate_errors(self):
        """
        Compute the covariance matrix of the fitted parameters.

        Uses the Jacobian and covariance of the last iteration. The result
        is stored in the workspace (Vnew), in the fit objects and in the
        flat buffer cov.

        Returns
        -------
        bool
            False if a matrix was singular (error code 9)
        """
        ws = self.workspace
        nmea, nunm = self.nmea, self.nunm
        Feta = ws.Feta
        Fxi = ws.Fxi
        Vetaeta = ws.Vetaeta

        self._debug_print(Vetaeta, "V", level=3)
        self._debug_print(Feta, "Feta", level=3)

        self._calc_reduced_matrix()
        self._debug_print(ws.S, "S", level=3)
        if not invert_spd(ws.S, ws.Sinv):
            self.logger.warning("OPALFitter: S is singular in error calculation")
            self.ierr = SINGULAR_ERRORS
            self.cov_valid = False
            return False

        # G = Feta^T * Sinv * Feta
        ws.SinvFeta[...] = ws.Sinv @ Feta
        ws.G[...] = Feta.T @ ws.SinvFeta
        self._debug_print(ws.G, "G(1)", level=3)

        if nunm > 0:
            # H = Feta^T * Sinv * Fxi
            ws.SinvFxi[...] = ws.Sinv @ Fxi
            ws.H[...] = Feta.T @ ws.SinvFxi
            self._debug_print(ws.H, "H", level=3)

            # U^-1 = Fxi^T * Sinv * Fxi; U is the xi-xi block of Vnew
            ws.W1[...] = Fxi.T @ ws.SinvFxi
            U = ws.Vnew[nmea:, nmea:]
            if not invert_spd(ws.W1, U):
                self.logger.warning("OPALFitter: U is singular in error calculation")
                self.ierr = SINGULAR_ERRORS
                self.cov_valid = False
                return False
            self._debug_print(U, "U", level=3)

            # Covariance between measured and unmeasured parameters
            ws.HU[...] = ws.H @ U
            ws.Vnew[:nmea, nmea:] = -(Vetaeta @ ws.HU)
            ws.Vnew[nmea:, :nmea] = ws.Vnew[:nmea, nmea:].T

            # G - H*U*H^T
            ws.G -= ws.HU @ ws.H.T

        # I - G*V
        ws.IGV[...] = np.eye(nmea) - ws.G @ Vetaeta

        # Error matrix of the fitted measured parameters
        ws.Vnew[:nmea, :nmea] = Vetaeta @ ws.IGV
        self._debug_print(ws.Vnew, "Vnew", level=3)

        for fitobject in self.fitobjects:
            for ilocal in range(fitobject.get_npar()):
                iglobal = fitobject.get_global_par_num(ilocal)
                for jlocal in range(ilocal, fitobject.get_npar()):
                    jglobal = fitobject.get_global_par_num(jlocal)
                    if iglobal >= 0 and jglobal >= 0 and not (
                            fitobject.is_param_fixed(ilocal) or fitobject.is_param_fixed(jlocal)):
                        fitobject.set_cov(ilocal, jlocal, ws.Vnew[iglobal, jglobal])

        cov_dim = nmea + nunm
        if self.cov is None or self.cov_dim != cov_dim:
            self.cov = np.zeros(cov_dim * cov_dim)
        self.cov_dim = cov_dim
        self.cov[:] = ws.Vnew.ravel()
        self.cov_valid = True
        return True

    # ===================== Results =====================
    def get_error(self):
        return self.ierr

    def get_probability(self):
        return self.fitprob

    def get_chi2(self):
        return self.chi2

    def get_dof(self):
        return self.ncon - self.nunm

    def get_iterations(self):
        return self.nit

    def get_ncon(self):
        return self.ncon

    def get_nsoft(self):
        return 0

    def get_nunm(self):
        return self.nunm

    def get_npar(self):
        return self.npar

    def get_global_covariance_matrix(self):
        """
        Fitted covariance of all global parameters.

        Returns
        -------
        ndarray or None
            (cov_dim, cov_dim) copy of the covariance, None if not valid
        """
        if not self.cov_valid:
            return None
        return self.cov.reshape(self.cov_dim, self.cov_dim).copy()
