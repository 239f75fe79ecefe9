"""Fitting engine for kinematic fits."""

from .base import BaseFitter
from .fitter import OPALFitter, ERROR_MESSAGES, NPARMAX, NUNMMAX, NCONMAX
from .workspace import FitWorkspace, invert_spd, solve_spd
from .tracer import BaseTracer, TextTracer
from .statistics import prob, calculate_statistics, format_statistics
from .report import export_parameters, get_fit_report

__all__ = [
    'BaseFitter',
    'OPALFitter',
    'ERROR_MESSAGES',
    'NPARMAX',
    'NUNMMAX',
    'NCONMAX',
    'FitWorkspace',
    'invert_spd',
    'solve_spd',
    'BaseTracer',
    'TextTracer',
    'prob',
    'calculate_statistics',
    'format_statistics',
    'export_parameters',
    'get_fit_report',
]
