"""
Shared fixtures for the kinfit test suite.
"""

import math

import pytest

from kinfit import (
    ParameterFitObject,
    JetFitObject,
    LinearConstraint,
    MomentumConstraint,
    OPALFitter,
)


@pytest.fixture
def sum_problem():
    """x1 = 10 +- 1, x2 = 5 +- 1, constraint x1 + x2 = 20."""
    obj = ParameterFitObject('x', [10.0, 5.0], errors=[1.0, 1.0])
    fitter = OPALFitter()
    fitter.add_fit_object(obj)
    fitter.add_constraint(LinearConstraint([(obj, 0, 1.0), (obj, 1, 1.0)], value=20.0, name='sum'))
    return fitter, obj


@pytest.fixture
def back_to_back_jets():
    """Two transverse jets at phi = 0 and phi = pi with unbalanced energies."""
    j1 = JetFitObject(50.0, math.pi / 2, 0.0, 5.0, 0.02, 0.02, name='j1')
    j2 = JetFitObject(45.0, math.pi / 2, math.pi, 5.0, 0.02, 0.02, name='j2')
    return j1, j2


@pytest.fixture
def px_balance(back_to_back_jets):
    j1, j2 = back_to_back_jets
    return MomentumConstraint(pxfact=1.0, fitobjects=[j1, j2], name='px')


def _numeric_derivative(func, fitobject, ilocal, h=1e-6):
    """Central difference of func() with respect to a fit-object parameter."""
    value = fitobject.par[ilocal]
    fitobject.par[ilocal] = value + h
    up = func()
    fitobject.par[ilocal] = value - h
    down = func()
    fitobject.par[ilocal] = value
    return (up - down) / (2 * h)


@pytest.fixture
def numeric_derivative():
    return _numeric_derivative
