# Licensed under the GPLv3 - see LICENSE
import io
import struct
import datetime

import pytest

from ..header import (TERMINATOR, UnsupportedColumnError, ParserDict,
                      HeaderParser, ParsedRecord, DBFPreamble,
                      DBFColumnDescriptor, DBFHeader)
from ..column import (TextColumn, NumericColumn, LogicalColumn, DateColumn,
                      LongColumn)
from ..data import SAMPLE_DBF as SAMPLE_FILE
from .tables import (make_descriptor, make_table, NonSeekableStream,
                     UnreadableStream)


class TestHeaderParser:
    def setup_class(cls):
        cls.header_parser = HeaderParser(
            (('first', (0,)),
             ('second', (1, str.upper))))

    def test_parserdict(self):
        assert isinstance(HeaderParser.parsers, ParserDict)
        assert HeaderParser.parsers.name == 'parsers'
        assert repr(HeaderParser.parsers).startswith('ParserDict')
        assert 'Lazily evaluated' in HeaderParser.parsers.__doc__

    def test_parsers(self):
        words = ('a', 'b')
        parsers = self.header_parser.parsers
        assert set(parsers) == {'first', 'second'}
        assert parsers['first'](words) == 'a'
        assert parsers['second'](words) == 'B'
        # Evaluated only once.
        assert self.header_parser.parsers is parsers


class Pair(ParsedRecord):
    _struct = struct.Struct('<2H')
    _header_parser = HeaderParser(
        (('a', (0,)),
         ('b', (1, lambda value: value * 2))))


class TestParsedRecord:
    def test_record(self):
        pair = Pair.frombytes(b'\x01\x00\x02\x00')
        assert pair['a'] == 1
        assert pair['b'] == 4
        assert 'a' in pair
        assert 'c' not in pair
        assert list(pair.keys()) == ['a', 'b']
        assert Pair.nbytes == 4
        assert pair.nbytes == 4
        assert pair == Pair([1, 2])
        assert pair != Pair((1, 3))
        assert repr(pair).startswith('<Pair a: 1,')
        with pytest.raises(KeyError, match='Pair does not contain c'):
            pair['c']

    def test_verify(self):
        with pytest.raises(AssertionError):
            Pair((1,))
        assert Pair((1,), verify=False).words == (1,)

    def test_fromfile(self):
        fh = io.BytesIO(b'\x01\x00\x02\x00\x03\x00')
        assert Pair.fromfile(fh) == Pair((1, 2))
        with pytest.raises(EOFError):
            Pair.fromfile(fh)


class TestDescriptors:
    def test_preamble(self):
        with open(SAMPLE_FILE, 'rb') as fh:
            preamble = DBFPreamble.fromfile(fh)
            assert fh.tell() == 32
        assert DBFPreamble.nbytes == 32
        assert preamble['version'] == 3
        assert preamble['year'] == 2014
        assert preamble['month'] == 2
        assert preamble['day'] == 20
        assert preamble['nrows'] == 3
        assert preamble['header_nbytes'] == 193
        assert preamble['row_nbytes'] == 39
        assert repr(preamble).startswith('<DBFPreamble version: 3,')

    def test_descriptor(self):
        assert DBFColumnDescriptor.nbytes == 32
        descriptor = DBFColumnDescriptor.frombytes(
            make_descriptor('NUMERIC', 'N', 10, 3))
        assert descriptor['name'] == 'NUMERIC'
        assert descriptor['type_code'] == 'N'
        assert descriptor['size'] == 10
        assert descriptor['decimals'] == 3
        assert descriptor.to_column(16) == NumericColumn('NUMERIC', 16, 10,
                                                         decimals=3)

    def test_name_padding(self):
        descriptor = DBFColumnDescriptor.frombytes(
            make_descriptor(b'AB\x00XYZ', 'C', 5))
        assert descriptor['name'] == 'AB'
        descriptor = DBFColumnDescriptor.frombytes(
            make_descriptor(b'ELEVENCHARS', 'C', 5))
        assert descriptor['name'] == 'ELEVENCHARS'

    def test_fixed_size_from_type(self):
        # Logical columns are always a single byte, whatever is declared.
        descriptor = DBFColumnDescriptor.frombytes(
            make_descriptor('FLAG', 'L', 2))
        assert descriptor.to_column(1) == LogicalColumn('FLAG', 1)

    def test_unsupported(self):
        descriptor = DBFColumnDescriptor.frombytes(
            make_descriptor('MEMO', 'M', 10))
        with pytest.raises(UnsupportedColumnError) as excinfo:
            descriptor.to_column(1)
        assert excinfo.value.name == 'MEMO'
        assert excinfo.value.type_code == 'M'


class TestHeader:
    def test_header(self):
        with open(SAMPLE_FILE, 'rb') as fh:
            header = DBFHeader.fromfile(fh)
            assert fh.tell() == 193
            assert fh.read(1) == b' '
        assert header.version == 3
        assert header.last_modified == datetime.date(2014, 2, 20)
        assert header.nrows == 3
        assert header.header_nbytes == 193
        assert header.row_nbytes == 39
        assert header.column_names == ('TEXT', 'NUMERIC', 'LOGICAL',
                                       'DATE', 'LONG')
        assert header.columns == (
            TextColumn('TEXT', 1, 15),
            NumericColumn('NUMERIC', 16, 10, decimals=3),
            LogicalColumn('LOGICAL', 26),
            DateColumn('DATE', 27),
            LongColumn('LONG', 35))
        assert repr(header).startswith('<DBFHeader version: 3,')
        with open(SAMPLE_FILE, 'rb') as fh:
            assert DBFHeader.fromfile(fh) == header

    @pytest.mark.parametrize('type_code,size,column_class,expected_size', [
        ('C', 20, TextColumn, 20),
        ('N', 8, NumericColumn, 8),
        ('L', 1, LogicalColumn, 1),
        ('D', 8, DateColumn, 8),
        ('I', 4, LongColumn, 4)])
    def test_column_layout(self, type_code, size, column_class,
                           expected_size):
        columns = [('FIRST', 'C', 5), ('SECOND', type_code, size),
                   ('THIRD', 'C', 2)]
        header = DBFHeader.fromfile(io.BytesIO(make_table(columns)))
        first, second, third = header.columns
        assert first.offset == 1
        assert type(second) is column_class
        assert second.offset == 6
        assert second.size == expected_size
        assert third.offset == 6 + expected_size
        assert header.row_nbytes == 1 + 5 + expected_size + 2

    def test_no_columns(self):
        header = DBFHeader.fromfile(io.BytesIO(make_table([])))
        assert header.columns == ()
        assert header.header_nbytes == 33
        assert header.row_nbytes == 1

    @pytest.mark.parametrize('type_code', ['M', 'F', 'B', '@', '0', 'c'])
    def test_unsupported(self, type_code):
        data = make_table([('TEXT', 'C', 5), ('BAD', type_code, 10)])
        with pytest.raises(UnsupportedColumnError, match="'BAD'") as excinfo:
            DBFHeader.fromfile(io.BytesIO(data))
        assert excinfo.value.type_code == type_code
        assert isinstance(excinfo.value, ValueError)

    @pytest.mark.parametrize('padding', [1, 3, 68, 263, 300])
    @pytest.mark.parametrize('stream_class', [io.BytesIO, NonSeekableStream])
    def test_padding(self, stream_class, padding):
        data = make_table([('A', 'C', 2)], [b' ab'],
                          padding=b'\x00' * padding)
        fh = stream_class(data)
        header = DBFHeader.fromfile(fh)
        assert header.header_nbytes == 32 + 32 + 1 + padding
        assert fh.tell() == header.header_nbytes
        assert fh.read(3) == b' ab'

    def test_header_nbytes_too_small(self):
        data = make_table([('A', 'C', 2)], [b' ab'], header_nbytes=60)
        fh = io.BytesIO(data)
        with pytest.warns(UserWarning, match='Odd, read 65 bytes'):
            header = DBFHeader.fromfile(fh)
        assert header.header_nbytes == 60
        assert fh.tell() == 65

    def test_row_nbytes_inconsistent(self):
        data = make_table([('A', 'C', 2)], row_nbytes=10)
        with pytest.raises(AssertionError, match='row length 10'):
            DBFHeader.fromfile(io.BytesIO(data))
        header = DBFHeader.fromfile(io.BytesIO(data), verify=False)
        assert header.row_nbytes == 10

    def test_duplicate_names(self):
        data = make_table([('A', 'C', 2), ('A', 'C', 3)])
        with pytest.raises(ValueError, match='duplicate'):
            DBFHeader.fromfile(io.BytesIO(data))

    def test_invalid_last_modified(self):
        data = make_table([('A', 'C', 2)], date=(114, 0, 0))
        header = DBFHeader.fromfile(io.BytesIO(data))
        with pytest.warns(UserWarning, match='invalid last modification'):
            assert header.last_modified is None

    @pytest.mark.parametrize('nbytes', [0, 20, 31, 32, 50, 64, 95])
    def test_truncated(self, nbytes):
        with open(SAMPLE_FILE, 'rb') as fh:
            data = fh.read(nbytes)
        with pytest.raises(EOFError):
            DBFHeader.fromfile(io.BytesIO(data))

    def test_missing_padding(self):
        # Header length beyond the end of the stream; skipping just stops.
        data = make_table([('A', 'C', 2)], header_nbytes=100, eof=False)
        header = DBFHeader.fromfile(NonSeekableStream(data))
        assert header.header_nbytes == 100

    def test_terminator(self):
        with open(SAMPLE_FILE, 'rb') as fh:
            fh.seek(192)
            assert fh.read(1)[0] == TERMINATOR

    def test_not_readable(self):
        with pytest.raises(ValueError):
            DBFHeader.fromfile(None)
        with pytest.raises(ValueError, match='not allow reading'):
            DBFHeader.fromfile(UnreadableStream(make_table([])))

    def test_get_column(self):
        data = make_table([('Name', 'C', 2), ('NAME', 'C', 3),
                           ('VALUE', 'N', 5)])
        header = DBFHeader.fromfile(io.BytesIO(data))
        assert header.get_column('Name') is header.columns[0]
        assert header.get_column('NAME') is header.columns[1]
        assert header.get_column('name') is header.columns[0]
        assert header.get_column('value') is header.columns[2]
        for name in ('MISSING', '', None, 1):
            with pytest.raises(KeyError):
                header.get_column(name)

    def test_custom_header(self):
        with open(SAMPLE_FILE, 'rb') as fh:
            preamble = DBFPreamble.fromfile(fh)
        columns = [TextColumn('TEXT', 1, 38)]
        header = DBFHeader(preamble, columns)
        assert header.columns == tuple(columns)
        assert header.nrows == 3
        with pytest.raises(AssertionError):
            DBFHeader(preamble, [TextColumn('TEXT', 1, 37)])
