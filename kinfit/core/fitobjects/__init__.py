"""
Fit objects for kinematic fitting.

This module provides the fit-object interface used by the fitter and a
few concrete parameterizations (generic parameters, jets, neutrinos).
"""

from .base import BaseFitObject
from .parameter import ParameterFitObject
from .particle import ParticleFitObject, JetFitObject, NeutrinoFitObject


# Fit object registry - maps type names to classes
FIT_OBJECT_TYPES = {
    'parameter': ParameterFitObject,
    'jet': JetFitObject,
    'neutrino': NeutrinoFitObject,
}


def create_fit_object(kind, *args, **kwargs):
    """
    Create a fit object by type name.

    Parameters
    ----------
    kind : str
        Fit object type ('parameter', 'jet', 'neutrino')
    *args, **kwargs
        Constructor arguments of the fit object class

    Returns
    -------
    BaseFitObject
        New fit object

    Raises
    ------
    KeyError
        If the type name is not found in the registry

    Examples
    --------
    >>> jet = create_fit_object('jet', 50.0, 1.2, 0.3, 5.0, 0.02, 0.02, name='j1')
    """
    if kind not in FIT_OBJECT_TYPES:
        raise KeyError(f"Fit object type '{kind}' not found. Available: {list_fit_objects()}")
    return FIT_OBJECT_TYPES[kind](*args, **kwargs)


def list_fit_objects():
    """List all available fit object type names."""
    return list(FIT_OBJECT_TYPES.keys())


__all__ = [
    'BaseFitObject',
    'ParameterFitObject',
    'ParticleFitObject',
    'JetFitObject',
    'NeutrinoFitObject',
    'create_fit_object',
    'list_fit_objects',
    'FIT_OBJECT_TYPES',
]
