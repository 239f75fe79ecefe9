"""
Four-momentum constraints on particle fit objects.
"""

import math

from .base import BaseHardConstraint


class _ParticleConstraint(BaseHardConstraint):
    """Constraint over a list of ParticleFitObject instances."""

    def __init__(self, fitobjects=None, name='particles'):
        super().__init__(name)
        self.fitobjects = []
        for fitobject in fitobjects or []:
            self.add_to_fo_list(fitobject)

    def add_to_fo_list(self, fitobject):
        """Add a particle to the sum entering this constraint."""
        if not hasattr(fitobject, 'get_four_momentum_derivatives'):
            raise ValueError(f"{fitobject!r} does not provide a four-momentum")
        self.fitobjects.append(fitobject)

    def reset_fo_list(self):
        self.fitobjects = []

    def total_four_momentum(self):
        e = px = py = pz = 0.0
        for fitobject in self.fitobjects:
            fe, fpx, fpy, fpz = fitobject.get_four_momentum()
            e += fe
            px += fpx
            py += fpy
            pz += fpz
        return e, px, py, pz


class MomentumConstraint(_ParticleConstraint):
    """
    Linear combination of the summed four-momentum.

    value = sum_i (efact*E_i + pxfact*px_i + pyfact*py_i + pzfact*pz_i) - value

    Examples
    --------
    >>> px_balance = MomentumConstraint(pxfact=1.0, fitobjects=[j1, j2], name='px')
    >>> energy = MomentumConstraint(efact=1.0, value=500.0, fitobjects=[j1, j2], name='E')
    """

    def __init__(self, efact=0.0, pxfact=0.0, pyfact=0.0, pzfact=0.0, value=0.0,
                 fitobjects=None, name='momentum'):
        super().__init__(fitobjects, name)
        self.factors = (float(efact), float(pxfact), float(pyfact), float(pzfact))
        if not any(self.factors):
            raise ValueError("MomentumConstraint needs at least one nonzero factor")
        self.value = float(value)

    def get_value(self):
        total = self.total_four_momentum()
        return sum(f * p for f, p in zip(self.factors, total)) - self.value

    def get_derivatives(self, npar, der):
        for fitobject in self.fitobjects:
            for ilocal in range(fitobject.get_npar()):
                dp = fitobject.get_four_momentum_derivatives(ilocal)
                self._add_derivative(der, npar, fitobject, ilocal,
                                     sum(f * d for f, d in zip(self.factors, dp)))


class MassConstraint(_ParticleConstraint):
    """
    Invariant mass of the summed four-momentum equals a given mass.

    Examples
    --------
    >>> w_mass = MassConstraint(80.4, fitobjects=[j1, j2], name='mW')
    """

    def __init__(self, mass, fitobjects=None, name='mass'):
        super().__init__(fitobjects, name)
        self.mass = float(mass)

    def get_mass(self):
        e, px, py, pz = self.total_four_momentum()
        return math.sqrt(max(e * e - px * px - py * py - pz * pz, 0.0))

    def get_value(self):
        return self.get_mass() - self.mass

    def get_derivatives(self, npar, der):
        e, px, py, pz = self.total_four_momentum()
        m = self.get_mass()
        if m <= 0:
            # gradient undefined at zero mass
            return
        for fitobject in self.fitobjects:
            for ilocal in range(fitobject.get_npar()):
                de, dpx, dpy, dpz = fitobject.get_four_momentum_derivatives(ilocal)
                self._add_derivative(der, npar, fitobject, ilocal,
                                     (e * de - px * dpx - py * dpy - pz * dpz) / m)
