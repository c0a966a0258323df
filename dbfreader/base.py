# Licensed under the GPLv3 - see LICENSE
"""Classes for accessing dBASE tables.

A `Table` wraps an open binary stream together with the header parsed from
its start.  Rows are accessed through a single `Reader`, which consumes the
row records in order; since the stream is only ever moved forward, tables
can be read from pipes and other streams that cannot seek.

The `open` function, created by `TableOpener`, opens a table from a file name
or from an already open binary stream.
"""
import io
import os
import codecs
import functools

from .column import (Column, TextColumn, NumericColumn, LogicalColumn,
                     DateColumn, LongColumn)
from .header import DBFHeader
from .file_info import TableInfo
from .utils import check_readable, read_exactly


__all__ = ['TableClosedError', 'ReaderStateError',
           'Table', 'Reader', 'TableOpener', 'open']


class TableClosedError(ValueError):
    """Operation attempted on a closed table."""
    pass


class ReaderStateError(RuntimeError):
    """Operation not possible in the current state of the table reader."""
    pass


class Table:
    """dBASE table, holding the stream and its header.

    Normally, instances are created with `~dbfreader.open`.  The table owns
    the stream: closing the table closes the stream.  Tables can be used as
    context managers.

    Parameters
    ----------
    fh_raw : filehandle
        Binary stream positioned at the first row record.
    header : `~dbfreader.header.DBFHeader`
        Header of the table.
    reader_class : callable, optional
        Used to create the reader in `open_reader`, called with the table,
        the encoding, and the error handling scheme.  Default: `Reader`.
    """

    info = TableInfo()

    def __init__(self, fh_raw, header, *, reader_class=None):
        if header is None:
            raise ValueError('a table needs a header.')
        if reader_class is None:
            reader_class = Reader
        elif not callable(reader_class):
            raise TypeError('reader_class should be callable.')
        self.fh_raw = fh_raw
        self._header = header
        self._reader_class = reader_class
        self._reader_opened = False
        self._closed = False

    def _check_closed(self):
        if self._closed:
            raise TableClosedError('I/O operation on closed table.')

    @property
    def closed(self):
        """Whether the table (and its stream) has been closed."""
        return self._closed

    @property
    def header(self):
        """Header of the table."""
        self._check_closed()
        return self._header

    @property
    def columns(self):
        """Columns of the table, in the order in which they are stored."""
        return self.header.columns

    @property
    def column_names(self):
        return self.header.column_names

    @property
    def last_modified(self):
        """Date the table was last modified."""
        return self.header.last_modified

    @property
    def nrows(self):
        """Number of rows given in the header, including deleted ones."""
        return self.header.nrows

    @property
    def version(self):
        return self.header.version

    def __len__(self):
        return self.nrows

    def open_reader(self, encoding='ascii', errors='strict'):
        """Open the reader of the table.

        Only one reader can ever be opened for a given table, even if an
        earlier one has been exhausted.

        Parameters
        ----------
        encoding : str, optional
            Encoding of text in the rows.  Default: 'ascii'.
        errors : str, optional
            How to handle text that cannot be decoded, as for `bytes.decode`.
            Default: 'strict'.

        Returns
        -------
        reader : `Reader`
            Positioned before the first row.

        Raises
        ------
        ValueError
            If ``encoding`` is `None`.
        LookupError
            If ``encoding`` or ``errors`` is unknown.
        TableClosedError
            If the table is closed.
        ReaderStateError
            If a reader was opened before.
        """
        if encoding is None:
            raise ValueError('encoding cannot be None.')
        codecs.lookup(encoding)
        codecs.lookup_error(errors)
        self._check_closed()
        if self._reader_opened:
            raise ReaderStateError('the table can open only one reader.')

        self._reader_opened = True
        return self._reader_class(self, encoding, errors)

    def read_rows(self, encoding='ascii', errors='strict',
                  skip_deleted=False):
        """Open the reader of the table and iterate over all its rows.

        The reader is opened immediately, so any error in opening it is
        raised here rather than when iteration starts.

        Parameters are as for `open_reader`, with in addition:

        skip_deleted : bool, optional
            Whether to leave out rows flagged as deleted.  Default: `False`.

        Returns
        -------
        rows : iterator of dict
            Values of each row, keyed by column name.
        """
        reader = self.open_reader(encoding, errors)

        def rows():
            while reader.read():
                if skip_deleted and reader.deleted:
                    continue
                yield reader.values()

        return rows()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Close the table and its stream.  Can be called repeatedly."""
        if self._closed:
            return
        self._closed = True
        self.fh_raw.close()

    def __repr__(self):
        if self._closed:
            return "<{0} (closed)>".format(self.__class__.__name__)
        return ("<{0} fh_raw={1} nrows={2}\n    columns={3}>"
                .format(self.__class__.__name__, self.fh_raw, self.nrows,
                        self.column_names))


class Reader:
    """Sequential reader of the rows of a dBASE table.

    Normally created with `Table.open_reader`.  The reader starts before the
    first row; each call to `read` moves it to the next one, after which
    values can be retrieved with `get_value` or `values`.

    Rows flagged as deleted are returned like any other; check `deleted` to
    filter them.

    Parameters
    ----------
    table : `Table`
        Table to read from.
    encoding : str, optional
        Encoding of text in the rows.  Default: 'ascii'.
    errors : str, optional
        How to handle text that cannot be decoded.  Default: 'strict'.
    """

    def __init__(self, table, encoding='ascii', errors='strict'):
        if table is None:
            raise ValueError('a reader needs a table.')
        if encoding is None:
            raise ValueError('encoding cannot be None.')
        self._table = table
        self._encoding = encoding
        self._errors = errors
        self._row = None
        self._row_index = None
        self._exhausted = False

    @property
    def table(self):
        """Table this reader belongs to."""
        return self._table

    @property
    def encoding(self):
        return self._encoding

    @property
    def errors(self):
        return self._errors

    @property
    def row_index(self):
        """Index of the current row, or `None` if there is none."""
        return None if self._row is None else self._row_index

    @property
    def exhausted(self):
        """Whether all rows have been read."""
        return self._exhausted

    def read(self):
        """Move to the next row.

        Returns
        -------
        success : bool
            `True` if a row was read, `False` once all rows given in the
            header have been read.

        Raises
        ------
        TableClosedError
            If the table is closed.
        EOFError
            If the stream ends before the row record is complete.
        """
        self._table._check_closed()
        if self._exhausted:
            return False

        header = self._table.header
        index = 0 if self._row_index is None else self._row_index + 1
        if index >= header.nrows:
            self._exhausted = True
            self._row = None
            return False

        self._row = read_exactly(self._table.fh_raw, header.row_nbytes)
        self._row_index = index
        return True

    def _current_row(self):
        self._table._check_closed()
        if self._row is None:
            if self._exhausted:
                raise ReaderStateError('no current row: all rows were read.')
            raise ReaderStateError('no current row: call read() first.')
        return self._row

    @property
    def deleted(self):
        """Whether the current row is flagged as deleted."""
        return self._current_row()[:1] != b' '

    def _get_column(self, column):
        header = self._table.header
        if isinstance(column, Column):
            if column not in header.columns:
                raise KeyError("table does not contain {0!r}".format(column))
            return column
        return header.get_column(column)

    def _decode(self, column):
        return column.decode(self._current_row()[column.slice],
                             self._encoding, self._errors)

    def get_value(self, column):
        """Get the value of a column in the current row.

        Parameters
        ----------
        column : str or `~dbfreader.column.Column`
            Column name (matched exactly or ignoring case) or column instance.

        Raises
        ------
        KeyError
            If the table has no such column.
        ReaderStateError
            If there is no current row.
        ~dbfreader.column.DecodeError
            If the field cannot be decoded.
        """
        return self._decode(self._get_column(column))

    def _get_typed(self, column, column_class):
        column = self._get_column(column)
        if not isinstance(column, column_class):
            raise TypeError("column '{0}' is a {1}, not a {2}."
                            .format(column.name, column.__class__.__name__,
                                    column_class.__name__))
        return self._decode(column)

    def get_string(self, column):
        """Get the value of a text column in the current row."""
        return self._get_typed(column, TextColumn)

    def get_decimal(self, column):
        """Get the value of a numeric column in the current row."""
        return self._get_typed(column, NumericColumn)

    def get_boolean(self, column):
        """Get the value of a logical column in the current row."""
        return self._get_typed(column, LogicalColumn)

    def get_date(self, column):
        """Get the value of a date column in the current row."""
        return self._get_typed(column, DateColumn)

    def get_int(self, column):
        """Get the value of a long integer column in the current row."""
        return self._get_typed(column, LongColumn)

    def values(self):
        """Get all values of the current row, keyed by column name."""
        return {column.name: self._decode(column)
                for column in self._table.columns}

    def __iter__(self):
        while self.read():
            yield self.values()

    def __repr__(self):
        return ("<{0} row_index={1} encoding={2!r}{3}>"
                .format(self.__class__.__name__, self.row_index,
                        self._encoding,
                        ' (exhausted)' if self._exhausted else ''))


class TableOpener:
    """Opener of dBASE tables.

    Instances can be used as a function to open a table.  It is probably best
    used inside a wrapper, so that the documentation can reflect the
    docstring of ``__call__`` rather than of this class.

    Parameters
    ----------
    table_class : type
        Class used to wrap the stream and header, normally `Table`.
    header_loader : callable
        Reads the header from the stream, called as
        ``header_loader(fh, verify=verify)``.  Normally
        `DBFHeader.fromfile <dbfreader.header.DBFHeader.fromfile>`.
    """

    def __init__(self, table_class, header_loader):
        self.table_class = table_class
        self.header_loader = header_loader

    def is_fh(self, name):
        """Whether name is a filehandle."""
        return hasattr(name, 'read')

    def get_fh(self, name):
        """Ensure name is a readable filehandle, opening it if necessary."""
        if name is None:
            raise ValueError('need a file name or a stream, not None.')

        if self.is_fh(name):
            check_readable(name)
            return name

        name = os.fspath(name)
        if not name:
            raise ValueError('file name cannot be empty.')
        return io.open(name, 'rb')

    def __call__(self, name, *, header_loader=None, reader_class=None,
                 verify=True):
        """
        Open a dBASE table for reading.

        The header is read immediately.  The returned table owns the stream,
        i.e., closing the table closes the stream.

        Parameters
        ----------
        name : str, path-like, or filehandle
            File name or binary stream opened for reading.
        header_loader : callable, optional
            Reads the header, called as ``header_loader(fh, verify=verify)``.
            Default: `~dbfreader.header.DBFHeader.fromfile`.
        reader_class : callable, optional
            Creates the reader of the table, called with the table, the
            encoding, and the error handling scheme.  Default: `Reader`.
        verify : bool, optional
            Whether to verify the header.  Default: `True`.

        Returns
        -------
        table : `~dbfreader.base.Table`

        Raises
        ------
        ValueError
            If ``name`` is `None` or empty, or is a stream that cannot be
            read.
        ~dbfreader.header.UnsupportedColumnError
            If the table has columns of a type that cannot be decoded.
        EOFError
            If the stream ends inside the header.
        """
        if header_loader is None:
            header_loader = self.header_loader
        elif not callable(header_loader):
            raise TypeError('header_loader should be callable.')

        fh = self.get_fh(name)
        try:
            header = header_loader(fh, verify=verify)
            return self.table_class(fh, header, reader_class=reader_class)
        except BaseException:
            if fh is not name:
                fh.close()
            raise

    def wrapped(self, module=None, doc=None):
        """Wrap as a function named open, replacing docstring and module."""

        @functools.wraps(self.__call__)
        def open(*args, **kwargs):
            return self(*args, **kwargs)

        if doc:
            open.__doc__ = doc

        if module:
            open.__module__ = module

        return open


open = TableOpener(Table, DBFHeader.fromfile).wrapped(module=__name__)
