# Licensed under the GPLv3 - see LICENSE
"""dBASE (.dbf) table reader."""

from .base import open, Table, Reader, TableClosedError, ReaderStateError  # noqa
from .header import DBFHeader, UnsupportedColumnError  # noqa
from .column import DecodeError  # noqa

try:
    from .version import version as __version__
except ImportError:
    __version__ = ''

# Define minima for the documentation, but do not bother to explicitly check.
__minimum_python_version__ = '3.10'
__minimum_astropy_version__ = '5.1'
__minimum_numpy_version__ = '1.24'
