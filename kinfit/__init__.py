"""
Kinematic fitting with Lagrange multipliers.
"""

from .core.fitobjects import (
    BaseFitObject,
    ParameterFitObject,
    ParticleFitObject,
    JetFitObject,
    NeutrinoFitObject,
    create_fit_object,
)
from .core.constraints import (
    BaseHardConstraint,
    LinearConstraint,
    FunctionConstraint,
    MomentumConstraint,
    MassConstraint,
)
from .core.fitting import OPALFitter, BaseTracer, TextTracer, prob, get_fit_report

__version__ = "0.1.0"

__all__ = [
    'BaseFitObject',
    'ParameterFitObject',
    'ParticleFitObject',
    'JetFitObject',
    'NeutrinoFitObject',
    'create_fit_object',
    'BaseHardConstraint',
    'LinearConstraint',
    'FunctionConstraint',
    'MomentumConstraint',
    'MassConstraint',
    'OPALFitter',
    'BaseTracer',
    'TextTracer',
    'prob',
    'get_fit_report',
]
