"""
Linreg package for least-squares line fitting.

Clients submit (x, y) samples, receive a best-fit line with its
coefficient of determination, and may persist the samples as named
datasets for later retrieval or deletion.
"""

__version__ = '0.1.0'

from linreg.system import System
from linreg.components.config import Config, ConfigManager
