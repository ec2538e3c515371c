"""
nmorph: detection and shape normalization of nuclei in microscopy images.
"""

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
