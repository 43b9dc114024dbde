"""Utility modules for the control core."""

from .math_utils import *
from .errors import *

__all__ = ['math_utils', 'errors']
