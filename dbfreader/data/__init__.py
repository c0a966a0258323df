# Licensed under the GPLv3 - see LICENSE
"""Sample dBASE tables."""

# Use private names to avoid inclusion in the sphinx documentation.
from os import path as _path


def _full_path(name, dirname=_path.dirname(_path.abspath(__file__))):
    return _path.join(dirname, name)


SAMPLE_DBF = _full_path('sample.dbf')
"""dBASE III table with one column of each supported type.

Version 3, last modified 2014-02-20, 3 rows, header length 193 (no padding),
row length 39, followed by the 0x1A end-of-file marker.

Columns: TEXT (C, 15), NUMERIC (N, 10, 3 decimals), LOGICAL (L),
DATE (D), LONG (I).

Content (the second row is flagged as deleted):
TEXT          NUMERIC  LOGICAL DATE       LONG
'text 1 text' 123.123  T       2014-02-20 123456
'text 2 text' 456.456  F       1998-08-15 -6544321
''            (blank)  ?       (blank)    0
"""
