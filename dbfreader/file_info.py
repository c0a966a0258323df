# Licensed under the GPLv3 - see LICENSE
"""Provide the ``info`` property of tables.

Loosely based on `~astropy.utils.data_info.DataInfo`.  Information is
gathered on first access and any errors are stored rather than raised, so
that ``table.info`` can always be displayed.
"""
import copy
import operator
import warnings


__all__ = ['info_item', 'InfoBase', 'TableInfo']


class info_item:
    """Like a lazy property, evaluated only once.

    Can be used as a decorator.  It replaces itself with the evaluation of
    the function, i.e., it is not a data descriptor.  Any errors encountered
    during the evaluation are stored in the instance's ``errors`` dict.

    Parameters
    ----------
    attr : str or callable, optional
        If a string, the attribute to get from ``needs``.  If a callable, it
        will be called with the instance as its argument.  If not given, the
        name is taken from the attribute the item is assigned to.
    needs : str or tuple of str
        The attributes that need to be present (and not `None`) to get or
        calculate ``attr``.
    default : value, optional
        The value to return if the needs are not met.  Default: `None`.
    doc : str, optional
        Docstring of the descriptor.
    copy : bool
        Whether to copy the value (e.g., to give each instance its own
        `dict`).
    """
    _fget = None

    def __init__(self, attr=None, *, needs=(), default=None, doc=None,
                 copy=False):
        needs = tuple(needs) if isinstance(needs, (tuple, list)) else (needs,)
        self.needs = needs
        self.default = default
        self.copy = copy
        self._init_wrapup(attr, doc)

    def _init_wrapup(self, attr, doc=None):
        if callable(attr):
            self._fget = attr
            self.name = attr.__name__
            doc = attr.__doc__
        elif attr is not None:
            self.name = attr
            if self._fget is None and self.needs:
                full_attr = '.'.join(self.needs+(attr,))
                self._fget = operator.attrgetter(full_attr)
                doc = "Link to " + full_attr.replace('_parent', 'parent')
        if doc and self.__doc__ is self.__class__.__doc__:
            self.__doc__ = doc

    def __set_name__(self, owner, name):
        self._init_wrapup(name)

    def __call__(self, func):
        """For use as a decorator when not yet fully initialized."""
        if hasattr(self, 'name'):
            raise TypeError(f"assigned {self.__class__.__name__!r}"
                            f"is not callable")
        self._init_wrapup(func)
        return self

    def __get__(self, instance, cls=None):
        if instance is None:
            return self

        if self._fget and all(getattr(instance, need, None) is not None
                              for need in self.needs):
            try:
                value = self._fget(instance)
            except Exception as exc:
                instance.errors[self.name] = exc
                value = self.default
        else:
            value = self.default

        if self.copy:
            value = copy.copy(value)

        setattr(instance, self.name, value)
        return value

    def __str__(self):
        short_doc = (self.__doc__ or '').split('\n')[0]
        return f"{self.name}: {short_doc}"

    def __repr__(self):
        return f"<{self.__class__.__name__} {str(self)}>"


class InfoBase:
    """Container providing a standardized interface to table information.

    All access to the parent should be via `info_item`, which ensures that
    any errors are stored in ``self.errors``.  The instance evaluates as
    `True` if the parent could be interpreted.

    Parameters
    ----------
    parent : instance, optional
        Instance the ``info`` is attached to.  `None` for the class version.
    """

    attr_names = ()
    """Attributes that the container provides."""

    _parent = None
    closed = info_item(needs='_parent', doc='Whether parent is closed')
    errors = info_item(default={}, copy=True,
                       doc='dict of attributes that raised errors.')
    warnings = info_item(default={}, copy=True,
                         doc='dict of attributes that gave warnings.')

    def __init__(self, parent=None):
        if parent is not None:
            self._parent = parent
            if not self.closed:
                for attr in self.attr_names:
                    getattr(self, attr)

    def _up_to_date(self):
        return self.closed == self._parent.closed

    def __get__(self, instance, owner_cls):
        if instance is None:
            return self

        info = instance.__dict__.get('info')
        if info is None or not info._up_to_date():
            info = instance.__dict__['info'] = self.__class__(parent=instance)

        return info

    def __delete__(self, instance):
        # Having __delete__ makes this a data descriptor, so that __get__ is
        # called even though "info" is stored in the instance __dict__.
        instance.__dict__.pop('info', None)

    def __bool__(self):
        return self.format is not None

    def __call__(self):
        """Create a dict with the information, leaving out empty entries."""
        info = {}
        for attr in self.attr_names:
            value = getattr(self, attr)
            if not (value is None or (isinstance(value, dict)
                                      and value == {})):
                info[attr] = value

        return info

    def __repr__(self):
        if self._parent is None:
            return '\n'.join(
                [f"{self.__class__.__name__} (unbound) with attributes:"]
                + [f"  {getattr(self.__class__, attr)}"
                   for attr in self.attr_names])

        if self.closed:
            return "Table closed. Not parsable."

        result = [self._parent.__class__.__name__ + ' information:']
        for attr in self.attr_names:
            value = getattr(self, attr)
            if isinstance(value, dict):
                prefix = f"\n{attr}: "
                spaces = ' ' * (len(attr)+2)
                for key, val in value.items():
                    str_val = str(val) or repr(val)
                    result.append(f"{prefix} {key}: {str_val}")
                    prefix = spaces

            elif value is not None:
                result.append(f"{attr} = {value}")

        if not self:
            result.append('\nNot parsable. Wrong format?')

        return '\n'.join(result)


class TableInfo(InfoBase):
    """Standardized information on dBASE tables.

    Examples
    --------
    The most common use is simply to print information::

        >>> import dbfreader
        >>> from dbfreader.data import SAMPLE_DBF
        >>> table = dbfreader.open(SAMPLE_DBF)
        >>> table.info
        Table information:
        format = dbf
        version = 3
        last_modified = 2014-02-20
        nrows = 3
        ncolumns = 5
        header_nbytes = 193
        row_nbytes = 39
        <BLANKLINE>
        columns:  TEXT: C(15)
                  NUMERIC: N(10,3)
                  LOGICAL: L(1)
                  DATE: D(8)
                  LONG: I(4)
        >>> table.close()
    """
    attr_names = ('format', 'version', 'last_modified', 'nrows', 'ncolumns',
                  'header_nbytes', 'row_nbytes', 'columns',
                  'errors', 'warnings')
    """Attributes that the container provides."""

    version = info_item(needs='header', doc='Version byte of the table.')
    nrows = info_item(needs='header', doc='Number of rows in the table.')
    header_nbytes = info_item(needs='header', doc='Header length in bytes.')
    row_nbytes = info_item(needs='header', doc='Row record length in bytes.')

    @info_item(needs='_parent')
    def header(self):
        """Header of the table."""
        return self._parent.header

    @info_item(needs='header')
    def format(self):
        """The file format."""
        return 'dbf'

    @info_item(needs='header')
    def last_modified(self):
        """Date the table was last modified."""
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter('always')
            value = self.header.last_modified
        if w:
            self.warnings['last_modified'] = str(w[-1].message)
        return value

    @info_item(needs='header')
    def ncolumns(self):
        """Number of columns."""
        return len(self.header.columns)

    @info_item(needs='header')
    def columns(self):
        """Type code and size of each column, keyed by name."""
        columns = {}
        for column in self.header.columns:
            size = str(column.size)
            if hasattr(column, 'decimals') and column.decimals:
                size += ',{0}'.format(column.decimals)
            columns[column.name] = '{0}({1})'.format(column.type_code, size)
        return columns
