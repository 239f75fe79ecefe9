"""
Common bookkeeping of kinematic fitters.
"""


class BaseFitter:
    """
    Holds the ordered fit objects and constraints of a fit, and an
    optional tracer.

    The order in which objects and constraints are added is the order
    used for global parameter numbering and for the Jacobian rows.
    """

    def __init__(self):
        self.fitobjects = []
        self.constraints = []
        self.tracer = None

    def add_fit_object(self, fitobject):
        self.fitobjects.append(fitobject)

    def add_constraint(self, constraint):
        self.constraints.append(constraint)

    def get_fit_objects(self):
        return self.fitobjects

    def get_constraints(self):
        return self.constraints

    def reset(self):
        """Remove all fit objects and constraints."""
        self.fitobjects = []
        self.constraints = []

    def get_tracer(self):
        return self.tracer

    def set_tracer(self, tracer):
        self.tracer = tracer

    def fit(self):
        raise NotImplementedError

    def initialize(self):
        raise NotImplementedError
