"""Core package initialization."""

from . import fitobjects
from . import constraints
from . import fitting

__all__ = ['fitobjects', 'constraints', 'fitting']
