import os

from ..util import write_bax_file, write_ccs_file

ZMWS = [(1, 120), (2, 50), (3, 110), (4, 0), (5, 60)]
"""
(hole number, read length) of the mock movie
"""

REGIONS = [
    (5, 2, 0, 60, 700),
    (1, 0, 60, 70, 0),
    (1, 2, 10, 100, 850),
    (1, 0, 20, 30, 0),
    (3, 0, 10, 100, 0),
    (3, 2, 10, 100, 800),
    (1, 1, 10, 20, 0),
]
"""
region table rows, deliberately out of order. Hole 2 has no HQ region and hole 3 is a single adapter
"""

CCS_ZMWS = [(1, 40), (3, 0), (5, 25)]


def mock_bax(dirname, name='m1.1.bax.h5', **kwargs):
    kwargs.setdefault('regions', REGIONS)
    return write_bax_file(os.path.join(dirname, name), ZMWS, **kwargs)


def mock_ccs_h5(dirname, name='m1.1.ccs.h5', **kwargs):
    return write_ccs_file(os.path.join(dirname, name), CCS_ZMWS, **kwargs)
