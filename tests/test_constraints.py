"""
Tests for constraint values and gradients.
"""

import math

import numpy as np
import pytest

from kinfit import (
    ParameterFitObject,
    JetFitObject,
    LinearConstraint,
    FunctionConstraint,
    MomentumConstraint,
    MassConstraint,
    OPALFitter,
)


def jacobian_row(constraint, fitobjects):
    """Gradient row of a constraint after global numbering."""
    fitter = OPALFitter()
    for fitobject in fitobjects:
        fitter.add_fit_object(fitobject)
    fitter.add_constraint(constraint)
    fitter.initialize()
    der = np.zeros(fitter.get_npar())
    constraint.get_derivatives(fitter.get_npar(), der)
    return der


def check_gradient(constraint, fitobjects, numeric_derivative, abs_tol=1e-5):
    der = jacobian_row(constraint, fitobjects)
    for fitobject in fitobjects:
        for ilocal in range(fitobject.get_npar()):
            iglobal = fitobject.get_global_par_num(ilocal)
            if iglobal < 0:
                continue
            expected = numeric_derivative(constraint.get_value, fitobject, ilocal)
            assert der[iglobal] == pytest.approx(expected, abs=abs_tol)


# ===================== Linear and function constraints =====================

def test_linear_constraint_value_and_gradient():
    obj = ParameterFitObject('x', [10.0, 5.0], errors=[1.0, 1.0])
    c = LinearConstraint([(obj, 0, 1.0), (obj, 1, 2.0)], value=20.0, name='sum')
    assert c.get_name() == 'sum'
    assert c.get_value() == pytest.approx(0.0)
    np.testing.assert_allclose(jacobian_row(c, [obj]), [1.0, 2.0])


def test_linear_constraint_skips_fixed_parameters():
    obj = ParameterFitObject('x', [10.0, 5.0, 1.0], errors=[1.0, 1.0, 1.0], fixed=[False, True, False])
    c = LinearConstraint([(obj, 0, 1.0), (obj, 1, 3.0), (obj, 2, -1.0)])
    assert c.get_value() == pytest.approx(24.0)
    np.testing.assert_allclose(jacobian_row(c, [obj]), [1.0, -1.0])


def test_linear_constraint_needs_terms():
    with pytest.raises(ValueError):
        LinearConstraint([])


def test_function_constraint_numeric_gradient():
    obj = ParameterFitObject('xy', [3.0, 5.0], errors=[0.5, 0.5])
    c = FunctionConstraint(lambda x, y: x * y - 12.0, [(obj, 0), (obj, 1)])
    assert c.get_value() == pytest.approx(3.0)
    np.testing.assert_allclose(c.gradient(), [5.0, 3.0], rtol=1e-6)
    np.testing.assert_allclose(jacobian_row(c, [obj]), [5.0, 3.0], rtol=1e-6)


def test_function_constraint_explicit_gradient():
    obj = ParameterFitObject('xy', [3.0, 5.0], errors=[0.5, 0.5])
    c = FunctionConstraint(lambda x, y: x * y - 12.0, [(obj, 0), (obj, 1)],
                           grad=lambda x, y: (y, x))
    np.testing.assert_array_equal(c.gradient(), [5.0, 3.0])


def test_function_constraint_gradient_shape_checked():
    obj = ParameterFitObject('xy', [3.0, 5.0], errors=[0.5, 0.5])
    c = FunctionConstraint(lambda x, y: x * y, [(obj, 0), (obj, 1)], grad=lambda x, y: (y,))
    with pytest.raises(ValueError):
        c.gradient()


def test_function_constraint_argument_checks():
    obj = ParameterFitObject('x', [1.0])
    with pytest.raises(ValueError):
        FunctionConstraint(1.0, [(obj, 0)])
    with pytest.raises(ValueError):
        FunctionConstraint(lambda x: x, [])


# ===================== Momentum and mass constraints =====================

def test_momentum_constraint_value(back_to_back_jets, px_balance):
    assert px_balance.get_value() == pytest.approx(5.0)
    j1, j2 = back_to_back_jets
    energy = MomentumConstraint(efact=1.0, value=90.0, fitobjects=[j1, j2])
    assert energy.get_value() == pytest.approx(5.0)


def test_momentum_constraint_needs_factor():
    with pytest.raises(ValueError):
        MomentumConstraint()


def test_momentum_constraint_rejects_non_particles():
    with pytest.raises(ValueError):
        MomentumConstraint(efact=1.0, fitobjects=[ParameterFitObject('x', [1.0])])


@pytest.mark.parametrize("factors", [
    dict(efact=1.0),
    dict(pxfact=1.0),
    dict(pyfact=1.0),
    dict(pzfact=1.0),
    dict(efact=0.5, pxfact=-1.0, pzfact=2.0),
])
def test_momentum_constraint_gradient(factors, numeric_derivative):
    j1 = JetFitObject(50.0, 0.7, 1.1, 5.0, 0.1, 0.1, name='j1')
    j2 = JetFitObject(40.0, 2.1, -2.0, 4.0, 0.1, 0.1, mass=5.0, name='j2')
    c = MomentumConstraint(fitobjects=[j1, j2], **factors)
    check_gradient(c, [j1, j2], numeric_derivative)


def test_mass_of_back_to_back_jets():
    j1 = JetFitObject(50.0, math.pi / 2, 0.0, 5.0, 0.1, 0.1)
    j2 = JetFitObject(50.0, math.pi / 2, math.pi, 5.0, 0.1, 0.1)
    c = MassConstraint(91.2, fitobjects=[j1, j2], name='mZ')
    assert c.get_mass() == pytest.approx(100.0)
    assert c.get_value() == pytest.approx(100.0 - 91.2)
    der = jacobian_row(c, [j1, j2])
    assert der[0] == pytest.approx(1.0)
    assert der[3] == pytest.approx(1.0)


def test_mass_constraint_gradient(numeric_derivative):
    j1 = JetFitObject(50.0, 0.7, 1.1, 5.0, 0.1, 0.1, name='j1')
    j2 = JetFitObject(40.0, 2.1, -2.0, 4.0, 0.1, 0.1, mass=5.0, name='j2')
    c = MassConstraint(80.4, fitobjects=[j1, j2])
    check_gradient(c, [j1, j2], numeric_derivative)


def test_mass_constraint_fo_list():
    j1 = JetFitObject(50.0, math.pi / 2, 0.0, 5.0, 0.1, 0.1)
    c = MassConstraint(0.0)
    c.add_to_fo_list(j1)
    assert c.get_mass() == pytest.approx(0.0, abs=1e-6)
    c.reset_fo_list()
    assert c.fitobjects == []
    assert c.total_four_momentum() == (0.0, 0.0, 0.0, 0.0)


def test_zero_mass_has_no_gradient():
    j1 = JetFitObject(50.0, math.pi / 2, 0.0, 5.0, 0.1, 0.1)
    c = MassConstraint(10.0, fitobjects=[j1])
    np.testing.assert_array_equal(jacobian_row(c, [j1]), np.zeros(3))
