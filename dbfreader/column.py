# Licensed under the GPLv3 - see LICENSE
"""
Definitions for dBASE columns.

Each column knows where its field is stored inside a row record (``offset``
and ``size`` in bytes) and how to turn the raw bytes of that field into a
python value.  Subclasses implement ``_decode``; the public ``decode`` method
checks the buffer and turns any failure into a `DecodeError` that identifies
the column and the offending bytes.

The mapping `COLUMN_TYPES` from dBASE type codes to column classes is the
closed set of types understood by `~dbfreader.header.DBFHeader`.
"""
import re
import string
import decimal
import datetime
import operator

import numpy as np

from .utils import fixedvalue


__all__ = ['DecodeError', 'Column', 'TextColumn', 'NumericColumn',
           'LogicalColumn', 'DateColumn', 'LongColumn', 'COLUMN_TYPES']

_TRAILING = string.whitespace + '\x00'
_NUMBER = re.compile(r'[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$', re.ASCII)
_DATE = re.compile(r'\d{8}$', re.ASCII)


class DecodeError(ValueError):
    """Error in decoding the bytes of a field.

    Parameters
    ----------
    column : `Column`
        Column for which decoding failed.
    data : bytes
        Raw bytes of the field.
    reason : str, optional
        Why the bytes could not be decoded.
    """
    def __init__(self, column, data, reason=None):
        self.column = column
        self.data = bytes(data)
        self.reason = reason
        msg = "cannot decode {0!r} for column '{1}'".format(self.data,
                                                            column.name)
        if reason:
            msg += ": {0}".format(reason)
        super().__init__(msg)


class Column:
    """Base class for dBASE columns.

    Subclasses should define a one-letter ``type_code`` and a ``_decode``
    method.  Those with a size that is the same for all instances should
    define ``size`` as a `~dbfreader.utils.fixedvalue`.

    Parameters
    ----------
    name : str
        Column name.  Cannot be empty.
    offset : int
        Offset of the field within a row record in bytes.  Row records start
        with a deletion flag, so the first column has offset 1.
    size : int, optional
        Size of the field in bytes.  Needed only for columns without a fixed
        size.
    """

    type_code = None
    """dBASE type code for this column type."""

    def __init__(self, name, offset, size=None):
        if not isinstance(name, str) or not name:
            raise ValueError('column name should be a non-empty string.')
        offset = operator.index(offset)
        if offset < 0:
            raise ValueError('column offset should be >= 0, not {0}.'
                             .format(offset))
        if size is None:
            size = getattr(self.__class__, 'size', None)
            if size is None:
                raise ValueError('{0} needs an explicit size.'
                                 .format(self.__class__.__name__))
        size = operator.index(size)
        if size <= 0:
            raise ValueError('column size should be > 0, not {0}.'
                             .format(size))
        self.name = name
        self.offset = offset
        self.size = size

    @property
    def slice(self):
        """Slice selecting the field from a row record."""
        return slice(self.offset, self.offset + self.size)

    def decode(self, data, encoding='ascii', errors='strict'):
        """Decode the raw bytes of a field.

        Parameters
        ----------
        data : bytes-like
            Raw field, of exactly ``size`` bytes.
        encoding : str, optional
            Encoding used for text stored in the field.  Default: 'ascii'.
        errors : str, optional
            How to handle text that cannot be decoded, as for `bytes.decode`.
            Default: 'strict'.

        Returns
        -------
        value
            Decoded value, or `None` for a blank field of a type that allows
            it.

        Raises
        ------
        DecodeError
            If the bytes are not valid for the column type.
        """
        data = bytes(data)
        if len(data) != self.size:
            raise ValueError("column '{0}' needs {1} bytes, got {2}."
                             .format(self.name, self.size, len(data)))
        try:
            return self._decode(data, encoding, errors)
        except DecodeError:
            raise
        except (ValueError, ArithmeticError) as exc:
            raise DecodeError(self, data, str(exc)) from exc

    def _decode(self, data, encoding, errors):
        raise NotImplementedError  # pragma: no cover

    def _key(self):
        return (self.name, self.offset, self.size)

    def __eq__(self, other):
        return type(self) is type(other) and self._key() == other._key()

    def __hash__(self):
        return hash((type(self),) + self._key())

    def __repr__(self):
        return ("{0}(name={1!r}, offset={2}, size={3})"
                .format(self.__class__.__name__, self.name, self.offset,
                        self.size))


class TextColumn(Column):
    """Character column, decoded to a `str` without trailing whitespace.

    A blank field gives an empty string.
    """
    type_code = 'C'

    def _decode(self, data, encoding, errors):
        return data.decode(encoding, errors).rstrip(_TRAILING)


class NumericColumn(Column):
    """Numeric column, decoded to a `~decimal.Decimal`.

    Numbers are stored as right-aligned text.  A blank field gives `None`.

    Parameters
    ----------
    name : str
        Column name.
    offset : int
        Offset of the field within a row record in bytes.
    size : int
        Size of the field in bytes.
    decimals : int, optional
        Number of decimal places declared for the column.  Only informative;
        the value is decoded exactly as stored.  Default: 0.
    """
    type_code = 'N'

    def __init__(self, name, offset, size, decimals=0):
        super().__init__(name, offset, size)
        decimals = operator.index(decimals)
        if decimals < 0:
            raise ValueError('number of decimals should be >= 0, not {0}.'
                             .format(decimals))
        self.decimals = decimals

    def _decode(self, data, encoding, errors):
        text = data.decode(encoding, errors).strip(_TRAILING)
        if not text:
            return None
        if not _NUMBER.match(text):
            raise ValueError('{0!r} is not a decimal number'.format(text))
        return decimal.Decimal(text)

    def _key(self):
        return super()._key() + (self.decimals,)

    def __repr__(self):
        return ("{0}(name={1!r}, offset={2}, size={3}, decimals={4})"
                .format(self.__class__.__name__, self.name, self.offset,
                        self.size, self.decimals))


class LogicalColumn(Column):
    """Logical column, decoded to `True`, `False`, or `None`.

    'T' and 'Y' mean `True`, 'F' and 'N' `False` (ignoring case); anything
    else, usually '?' or a space, means the value is not set.
    """
    type_code = 'L'

    @fixedvalue
    def size(cls):
        """Logical fields are always a single byte."""
        return 1

    def _decode(self, data, encoding, errors):
        flag = chr(data[0]).upper()
        if flag in 'TY':
            return True
        if flag in 'FN':
            return False
        return None


class DateColumn(Column):
    """Date column, stored as 'YYYYMMDD' and decoded to a `~datetime.date`.

    A blank field gives `None`.
    """
    type_code = 'D'

    @fixedvalue
    def size(cls):
        """Dates always take 8 bytes."""
        return 8

    def _decode(self, data, encoding, errors):
        text = data.decode(encoding, errors)
        if not text.strip(_TRAILING):
            return None
        if not _DATE.match(text):
            raise ValueError('{0!r} does not match YYYYMMDD'.format(text))
        return datetime.date(int(text[:4]), int(text[4:6]), int(text[6:]))


class LongColumn(Column):
    """Long integer column: a signed little-endian 32-bit integer."""
    type_code = 'I'

    _dtype = np.dtype('<i4')

    @fixedvalue
    def size(cls):
        """Long integers always take 4 bytes."""
        return 4

    def _decode(self, data, encoding, errors):
        return int(np.frombuffer(data, dtype=self._dtype)[0])


COLUMN_TYPES = {cls.type_code: cls for cls in (
    TextColumn, NumericColumn, LogicalColumn, DateColumn, LongColumn)}
"""Supported column classes, keyed by their dBASE type code."""
