"""Hard constraints for kinematic fitting."""

from .base import BaseHardConstraint
from .linear import LinearConstraint, FunctionConstraint
from .momentum import MomentumConstraint, MassConstraint

__all__ = [
    'BaseHardConstraint',
    'LinearConstraint',
    'FunctionConstraint',
    'MomentumConstraint',
    'MassConstraint',
]
