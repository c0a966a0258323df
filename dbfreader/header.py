# Licensed under the GPLv3 - see LICENSE
"""
Definitions for dBASE table headers.

A dBASE header consists of a 32-byte preamble, followed by one 32-byte
descriptor per column and a terminating 0x0D byte; the header may be padded
further up to the header length given in the preamble.  All integers are
little-endian.

The preamble and the column descriptors are both unpacked with a
`~struct.Struct` into a tuple of "words", and their values are accessed
through a dict-like interface, with the conversions defined by a
`HeaderParser`.  `DBFHeader` combines the preamble with the columns built
from the descriptors.
"""
import struct
import datetime
import warnings

from astropy.utils import lazyproperty

from .column import COLUMN_TYPES, NumericColumn
from .utils import fixedvalue, check_readable, read_exactly, seek_forward


__all__ = ['TERMINATOR', 'UnsupportedColumnError',
           'make_parser', 'ParserDict', 'HeaderParser',
           'ParsedRecord', 'DBFPreamble', 'DBFColumnDescriptor', 'DBFHeader']


TERMINATOR = 0x0D
"""Byte value that ends the table of column descriptors."""


class UnsupportedColumnError(ValueError):
    """A column descriptor has a type code that cannot be decoded."""
    def __init__(self, name, type_code):
        self.name = name
        self.type_code = type_code
        super().__init__("column '{0}' has unsupported type {1!r} "
                         "(supported: {2})."
                         .format(name, type_code,
                                 ', '.join(sorted(COLUMN_TYPES))))


def make_parser(index, forward=None):
    """Construct a function that gets a value from unpacked header words.

    Parameters
    ----------
    index : int
        Index into the tuple of words passed to the function.
    forward : callable, optional
        Function used to convert the word to a value.  If not given, the word
        is returned as is.

    Returns
    -------
    parser : function
        To be used as ``parser(words)``.
    """
    if forward is None:
        def parser(words):
            return words[index]

    else:
        def parser(words):
            return forward(words[index])

    return parser


class ParserDict:
    """Lazily evaluated dictionary of parsers.

    Implemented as a non-data descriptor.  When first accessed on an
    instance, it creates a dict under its own name in the instance's
    ``__dict__``, so that further attribute access returns the dict
    directly.

    Parameters
    ----------
    function : callable
        Function that creates a parser from a header keyword definition,
        i.e., ``make_parser``.
    """

    def __init__(self, function):
        self.function = function

    def __set_name__(self, owner, name):
        self.name = name
        self.__doc__ = f"Lazily evaluated dict of {name}"

    def __get__(self, instance, cls=None):
        if instance is None:
            return self
        d = {key: self.function(*definition)
             for key, definition in instance.items()}
        setattr(instance, self.name, d)
        return d

    def __repr__(self):
        return f"{self.__class__.__name__}({self.function})"


class HeaderParser(dict):
    """Parser for header keywords.

    A dictionary of header keywords, with values that describe how they are
    encoded.  Initialisation is as a normal dict, with (ordered) key, value
    pairs, with each value a tuple containing:

    index : int
        Index into the unpacked header words for this key.
    forward : callable, optional
        Function converting the word to the value.

    The ``parsers`` attribute is a dict of functions that get a given
    keyword from the header words.  It is calculated on first access, so the
    definitions should not be changed afterwards.
    """
    parsers = ParserDict(make_parser)


class ParsedRecord:
    """Base class for fixed-size binary records accessed via a parser.

    Subclasses should define:

      _struct : `~struct.Struct` instance that unpacks the record.

      _header_parser : `HeaderParser` instance for the record's keys.

    Parameters
    ----------
    words : tuple
        Unpacked record words.
    verify : bool, optional
        Whether to do basic verification of integrity.  Default: `True`.
    """

    _struct = struct.Struct('')
    _header_parser = HeaderParser()

    def __init__(self, words, verify=True):
        self.words = tuple(words)
        if verify:
            self.verify()

    def verify(self):
        """Verify that the number of words is consistent with the struct."""
        assert len(self.words) == len(self._struct.unpack(
            bytes(self._struct.size)))

    @fixedvalue
    def nbytes(cls):
        """Size of the record in bytes."""
        return cls._struct.size

    @classmethod
    def frombytes(cls, data, verify=True):
        """Create a record from its raw bytes."""
        return cls(cls._struct.unpack(data), verify=verify)

    @classmethod
    def fromfile(cls, fh, verify=True):
        """Read a record from a filehandle.

        Raises
        ------
        EOFError
            If the file ends before the whole record could be read.
        """
        return cls.frombytes(read_exactly(fh, cls._struct.size),
                             verify=verify)

    def __getitem__(self, item):
        try:
            return self._header_parser.parsers[item](self.words)
        except KeyError:
            raise KeyError("{0} does not contain {1}"
                           .format(self.__class__.__name__, item)) from None

    def keys(self):
        return self._header_parser.keys()

    def __contains__(self, key):
        return key in self.keys()

    def __eq__(self, other):
        return type(self) is type(other) and self.words == other.words

    def __repr__(self):
        name = self.__class__.__name__
        outs = [f"{k}: {self[k]!r}" for k in self.keys()]
        return "<{} {}>".format(name, (",\n  " + " "*len(name)).join(outs))


class DBFPreamble(ParsedRecord):
    """The fixed 32-byte start of a dBASE header.

    Holds the version byte, the date of last modification (stored as years
    since 1900, month, and day), the number of rows, and the lengths of the
    header and of each row record.
    """
    _struct = struct.Struct('<4BIHH20x')
    _header_parser = HeaderParser(
        (('version', (0,)),
         ('year', (1, lambda year: year + 1900)),
         ('month', (2,)),
         ('day', (3,)),
         ('nrows', (4,)),
         ('header_nbytes', (5,)),
         ('row_nbytes', (6,))))


def _decode_name(raw):
    return raw.split(b'\x00', 1)[0].decode('latin-1').strip()


class DBFColumnDescriptor(ParsedRecord):
    """A 32-byte column descriptor from a dBASE header.

    Gives the column name (11 bytes, padded with NUL), the one-letter type
    code, the size of the field in bytes, and, for numeric columns, the
    number of decimal places.
    """
    _struct = struct.Struct('<11sc4xBB14x')
    _header_parser = HeaderParser(
        (('name', (0, _decode_name)),
         ('type_code', (1, lambda code: code.decode('latin-1'))),
         ('size', (2,)),
         ('decimals', (3,))))

    def to_column(self, offset):
        """Create the column described, starting at the given row offset.

        Raises
        ------
        UnsupportedColumnError
            If the type code is not in `~dbfreader.column.COLUMN_TYPES`.
        """
        try:
            column_class = COLUMN_TYPES[self['type_code']]
        except KeyError:
            raise UnsupportedColumnError(self['name'],
                                         self['type_code']) from None

        if column_class is NumericColumn:
            return column_class(self['name'], offset, self['size'],
                                decimals=self['decimals'])
        if getattr(column_class, 'size', None) is None:
            return column_class(self['name'], offset, self['size'])
        # Types like logical or date fix their own size.
        return column_class(self['name'], offset)


class DBFHeader:
    """dBASE table header.

    Parameters
    ----------
    preamble : `DBFPreamble`
        The fixed first part of the header.
    columns : iterable of `~dbfreader.column.Column`
        The columns, in the order in which they are stored in a row.
    verify : bool, optional
        Whether to check that the row length given in the preamble is
        consistent with the columns.  Default: `True`.

    Notes
    -----
    Normally, the header is read from a file using `DBFHeader.fromfile`.
    A custom header loader can build one directly from a preamble and columns.
    """

    def __init__(self, preamble, columns, verify=True):
        self.preamble = preamble
        self.columns = tuple(columns)
        seen = set()
        for column in self.columns:
            if column.name in seen:
                raise ValueError("duplicate column name '{0}'."
                                 .format(column.name))
            seen.add(column.name)
        if verify:
            self.verify()

    def verify(self):
        """Check that the row length matches the columns."""
        assert self.row_nbytes == 1 + sum(column.size
                                          for column in self.columns), (
            "row length {0} inconsistent with the column sizes."
            .format(self.row_nbytes))

    @classmethod
    def fromfile(cls, fh, verify=True):
        """Read a dBASE header from a filehandle.

        The filehandle should be positioned at the start of the table.  On
        return, it is positioned at the start of the first row, even if the
        stream cannot seek.

        Parameters
        ----------
        fh : filehandle
            Binary stream to read from.
        verify : bool, optional
            Whether to verify the header.  Default: `True`.

        Raises
        ------
        ValueError
            If ``fh`` is not a readable stream.
        UnsupportedColumnError
            If any column has a type that cannot be decoded.
        EOFError
            If the stream ends inside the header.
        """
        check_readable(fh)
        preamble = DBFPreamble.fromfile(fh, verify=verify)
        descriptors = []
        while True:
            first = read_exactly(fh, 1)
            if first[0] == TERMINATOR:
                break
            rest = read_exactly(fh, DBFColumnDescriptor.nbytes - 1)
            descriptors.append(DBFColumnDescriptor.frombytes(first + rest,
                                                             verify=verify))

        columns = []
        offset = 1  # Skip the deletion flag.
        for descriptor in descriptors:
            column = descriptor.to_column(offset)
            columns.append(column)
            offset += column.size

        nbytes_read = (preamble.nbytes
                       + len(descriptors) * DBFColumnDescriptor.nbytes + 1)
        header_nbytes = preamble['header_nbytes']
        if header_nbytes > nbytes_read:
            seek_forward(fh, header_nbytes - nbytes_read)
        elif header_nbytes < nbytes_read:
            warnings.warn("Odd, read {0} bytes while the header length is {1}"
                          .format(nbytes_read, header_nbytes))

        return cls(preamble, columns, verify=verify)

    @property
    def version(self):
        """Version byte of the table."""
        return self.preamble['version']

    @lazyproperty
    def last_modified(self):
        """Date of last modification, or `None` if it is not a valid date."""
        try:
            return datetime.date(self.preamble['year'],
                                 self.preamble['month'],
                                 self.preamble['day'])
        except ValueError as exc:
            warnings.warn("invalid last modification date in header ({0})."
                          .format(exc))
            return None

    @property
    def nrows(self):
        """Number of rows in the table."""
        return self.preamble['nrows']

    @property
    def header_nbytes(self):
        """Length of the header in bytes, i.e., the offset of the first row."""
        return self.preamble['header_nbytes']

    @property
    def row_nbytes(self):
        """Length of a row record in bytes, including the deletion flag."""
        return self.preamble['row_nbytes']

    @property
    def column_names(self):
        return tuple(column.name for column in self.columns)

    @lazyproperty
    def _columns_by_name(self):
        return {column.name: column for column in self.columns}

    @lazyproperty
    def _columns_by_lower_name(self):
        by_lower = {}
        for column in self.columns:
            by_lower.setdefault(column.name.lower(), column)
        return by_lower

    def get_column(self, name):
        """Get a column by name.

        An exact match is tried first, then one ignoring case.

        Raises
        ------
        KeyError
            If the table has no such column.
        """
        column = self._columns_by_name.get(name)
        if column is None and isinstance(name, str):
            column = self._columns_by_lower_name.get(name.lower())
        if column is None:
            raise KeyError("table does not contain column {0!r}".format(name))
        return column

    def __eq__(self, other):
        return (type(self) is type(other)
                and self.preamble == other.preamble
                and self.columns == other.columns)

    def __repr__(self):
        name = self.__class__.__name__
        outs = ["version: {0}".format(self.version),
                "last_modified: {0}".format(self.last_modified),
                "nrows: {0}".format(self.nrows),
                "header_nbytes: {0}".format(self.header_nbytes),
                "row_nbytes: {0}".format(self.row_nbytes)]
        outs += ["column: {0!r}".format(column) for column in self.columns]
        return "<{} {}>".format(name, (",\n  " + " "*len(name)).join(outs))
