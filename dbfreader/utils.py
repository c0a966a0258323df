# Licensed under the GPLv3 - see LICENSE
"""Stream helpers shared by the header parser and the row reader."""
from astropy.utils import classproperty


__all__ = ['fixedvalue', 'check_readable', 'read_exactly', 'seek_forward',
           'SINGLE_BYTE_THRESHOLD', 'MAX_SKIP_BUFFER']

SINGLE_BYTE_THRESHOLD = 3
"""Largest offset that is skipped with single-byte reads."""
MAX_SKIP_BUFFER = 255
"""Maximum number of bytes read in one go when skipping forward."""


class fixedvalue(classproperty):
    """Property that is fixed for all instances of a class.

    Based on `astropy.utils.decorators.classproperty`, but with
    a setter that passes if the value is identical to the fixed
    value, and otherwise raises a `ValueError`.
    """
    def __set__(self, instance, value):
        fixed_value = self.__get__(instance, type(instance))
        if value != fixed_value:
            raise ValueError('fixed property can only be set to {}.'
                             .format(fixed_value))


def check_readable(fh):
    """Check that ``fh`` is an open binary stream that allows reading.

    Raises
    ------
    ValueError
        If ``fh`` is `None`, has no ``read`` method, is closed, or reports
        that it is not readable.
    """
    if fh is None:
        raise ValueError('stream cannot be None.')
    if not hasattr(fh, 'read'):
        raise ValueError('stream {!r} has no read method.'.format(fh))
    if getattr(fh, 'closed', False):
        raise ValueError('stream is closed.')
    readable = getattr(fh, 'readable', None)
    if readable is not None and not readable():
        raise ValueError('the stream does not allow reading.')


def read_exactly(fh, count):
    """Read exactly ``count`` bytes from a stream.

    Keeps reading if the stream returns fewer bytes than requested (as raw
    or socket streams may), until ``count`` bytes are gathered.

    Raises
    ------
    EOFError
        If the stream ends before ``count`` bytes could be read.
    """
    data = fh.read(count)
    if data is None:
        data = b''
    while len(data) < count:
        extra = fh.read(count - len(data))
        if not extra:
            raise EOFError('could only read {0} of {1} bytes.'
                           .format(len(data), count))
        data += extra
    return data


def _seekable(fh):
    seekable = getattr(fh, 'seekable', None)
    if seekable is None:
        return False
    try:
        return seekable()
    except (OSError, ValueError):
        return False


def seek_forward(fh, offset):
    """Move the position of a stream forward by ``offset`` bytes.

    Seekable streams are simply moved relative to the current position.
    Streams that cannot seek (pipes, sockets, decompressors) are advanced by
    reading and discarding data: single bytes for small offsets, otherwise
    chunks of at most `MAX_SKIP_BUFFER` bytes.  Reading stops early if the
    stream runs out of data.

    Parameters
    ----------
    fh : filehandle
        Binary stream to move forward.
    offset : int
        Number of bytes to skip.  Must be non-negative.
    """
    if fh is None:
        raise ValueError('stream cannot be None.')
    if offset < 0:
        raise ValueError('can only seek forward, not by {0} bytes.'
                         .format(offset))

    if _seekable(fh):
        fh.seek(offset, 1)
        return

    if offset <= SINGLE_BYTE_THRESHOLD:
        for _ in range(offset):
            fh.read(1)
        return

    chunk = min(MAX_SKIP_BUFFER, offset)
    remaining = offset
    while remaining > 0:
        data = fh.read(min(chunk, remaining))
        if not data:
            break
        remaining -= len(data)
