"""
Tracers: observers that are notified at the start, after every iteration
and at the end of a fit.
"""

import logging

from ...utils.logger import get_logger


class BaseTracer:
    """Tracer interface; all hooks are no-ops."""

    def initialize(self, fitter):
        pass

    def step(self, fitter):
        pass

    def finish(self, fitter):
        pass


class TextTracer(BaseTracer):
    """
    Tracer writing a one-line summary of each fit stage to a logger.

    Parameters
    ----------
    logger : logging.Logger, optional
        Destination logger (default: the package logger)
    level : int, optional
        Logging level of the records
    show_objects : bool, optional
        Also log every fit object after each iteration
    """

    def __init__(self, logger=None, level=logging.INFO, show_objects=False):
        self.logger = logger if logger is not None else get_logger()
        self.level = level
        self.show_objects = show_objects

    def initialize(self, fitter):
        self.logger.log(self.level,
                        f"Fit start: npar={fitter.get_npar()} nunm={fitter.get_nunm()} "
                        f"ncon={fitter.get_ncon()}")

    def step(self, fitter):
        self.logger.log(self.level,
                        f"NIT = {fitter.get_iterations()}, CHI2 = {fitter.get_chi2():.6g}, "
                        f"ierr = {fitter.get_error()}, alph = {fitter.alph:.3g}")
        if self.show_objects:
            for i, fitobject in enumerate(fitter.get_fit_objects()):
                self.logger.log(self.level, f"  fitobject {i}: {fitobject!r}")

    def finish(self, fitter):
        self.logger.log(self.level,
                        f"Fit finished: ierr = {fitter.get_error()}, CHI2 = {fitter.get_chi2():.6g}, "
                        f"prob = {fitter.get_probability():.6g}, NIT = {fitter.get_iterations()}")
