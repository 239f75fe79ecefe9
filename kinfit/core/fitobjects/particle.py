"""
Four-vector fit objects: jets and neutrinos.
"""

import math

from .base import BaseFitObject


class ParticleFitObject(BaseFitObject):
    """
    Fit object with a four-momentum.

    Subclasses provide the four-momentum and its derivatives with respect
    to the local parameters; constraints on momentum and mass only use
    this interface.
    """

    def __init__(self, name, param_names, mass=0.0):
        super().__init__(name, param_names)
        if mass < 0:
            raise ValueError(f"{name}: negative mass {mass}")
        self.mass = float(mass)

    def get_mass(self):
        return self.mass

    def get_e(self):
        raise NotImplementedError

    def get_px(self):
        raise NotImplementedError

    def get_py(self):
        raise NotImplementedError

    def get_pz(self):
        raise NotImplementedError

    def get_p(self):
        return math.sqrt(self.get_px()**2 + self.get_py()**2 + self.get_pz()**2)

    def get_four_momentum(self):
        return self.get_e(), self.get_px(), self.get_py(), self.get_pz()

    def get_four_momentum_derivatives(self, ilocal):
        """
        Derivatives of (E, px, py, pz) with respect to local parameter ilocal.

        Returns
        -------
        tuple of float
            (dE, dpx, dpy, dpz)
        """
        raise NotImplementedError


class JetFitObject(ParticleFitObject):
    """
    Jet parameterised by energy and polar/azimuthal angles.

    Parameters
    ----------
    e, theta, phi : float
        Measured energy, polar angle and azimuthal angle
    de, dtheta, dphi : float
        Measurement errors
    mass : float, optional
        Jet mass (default 0)
    name : str, optional
        Object name

    Notes
    -----
    Local parameter order: 0 = E, 1 = theta, 2 = phi.
    phi is kept within pi of its measured value; an energy not larger
    than the mass is rejected by set_param().
    """

    E, THETA, PHI = 0, 1, 2

    def __init__(self, e, theta, phi, de, dtheta, dphi, mass=0.0, name='jet'):
        super().__init__(name, ['E', 'theta', 'phi'], mass=mass)
        for i, (value, error) in enumerate(((e, de), (theta, dtheta), (phi, dphi))):
            self.par[i] = value
            self.mpar[i] = value
            self.measured[i] = True
            self.set_error(i, error)

    def set_param(self, ilocal, value):
        self._check_index(ilocal)
        if not math.isfinite(value):
            self.par[ilocal] = value
            return False
        if ilocal == self.PHI:
            value = self.mpar[self.PHI] + math.remainder(value - self.mpar[self.PHI], 2 * math.pi)
        self.par[ilocal] = value
        if ilocal == self.E:
            return value > self.mass
        return True

    def _momentum(self):
        e = self.par[self.E]
        return math.sqrt(max(e * e - self.mass * self.mass, 0.0))

    def get_e(self):
        return float(self.par[self.E])

    def get_px(self):
        return self._momentum() * math.sin(self.par[self.THETA]) * math.cos(self.par[self.PHI])

    def get_py(self):
        return self._momentum() * math.sin(self.par[self.THETA]) * math.sin(self.par[self.PHI])

    def get_pz(self):
        return self._momentum() * math.cos(self.par[self.THETA])

    def get_p(self):
        return self._momentum()

    def get_four_momentum_derivatives(self, ilocal):
        self._check_index(ilocal)
        p = self._momentum()
        st, ct = math.sin(self.par[self.THETA]), math.cos(self.par[self.THETA])
        sp, cp = math.sin(self.par[self.PHI]), math.cos(self.par[self.PHI])
        if ilocal == self.E:
            dpde = self.par[self.E] / p if p > 0 else 0.0
            return 1.0, dpde * st * cp, dpde * st * sp, dpde * ct
        if ilocal == self.THETA:
            return 0.0, p * ct * cp, p * ct * sp, -p * st
        return 0.0, -p * st * sp, p * st * cp, 0.0


class NeutrinoFitObject(JetFitObject):
    """
    Massless particle whose energy and angles are all unmeasured.

    The given values are only starting values for the fit.
    """

    def __init__(self, e, theta, phi, name='neutrino'):
        super().__init__(e, theta, phi, 0.0, 0.0, 0.0, mass=0.0, name=name)
        for i in range(self.get_npar()):
            self.measured[i] = False
