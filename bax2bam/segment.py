"""
segmentation of polymerase reads into the records of each read type
"""
from concurrent import futures
from functools import partial
import itertools
import logging

import numpy as np

from .constants import BASE_FEATURE, READ_TYPE, SCRAP_REGION, SCRAP_ZMW
from .interval import Interval, compute_scrap_intervals, compute_subread_intervals
from .read_group import make_read_group_id
from .region import RegionTable
from .util import DEVNULL
from .zmw import slice_features

HQ_SCORE_SCALE = 1000.0
""":class:`float`: region table scores are stored as integers on a 0-1000 scale"""


class OutputRecord:
    """
    a single emitted read. Created once by a pipeline and never changed afterwards

    Attributes:
        movie_name (str): the movie the read came from
        hole_number (int): the ZMW the read came from
        read_type (str): one of :attr:`~bax2bam.constants.READ_TYPE`
        read_group_id (str): the id of the read group this record references
        features (FeatureSlice): the sequence and base features of the read
        query_start (int): start of the read on the polymerase read, None for CCS reads
        query_end (int): end of the read on the polymerase read, None for CCS reads
        num_passes (int): number of passes (always 1 except for CCS reads)
        snr (:class:`list` of :class:`float`): signal-to-noise for A, C, G, T, None for CCS reads
        local_context_flags (int): None unless set by the subread pipeline
        read_score (float): the read quality (0-1), None when unknown
        scrap_region_type (str): scrap records only, one of :attr:`~bax2bam.constants.SCRAP_REGION`
        scrap_zmw_type (str): scrap records only, one of :attr:`~bax2bam.constants.SCRAP_ZMW`
    """

    def __init__(
        self, movie_name, hole_number, read_type, read_group_id, features,
        query_start=None, query_end=None, num_passes=1, snr=None, local_context_flags=None,
        read_score=None, scrap_region_type=None, scrap_zmw_type=None
    ):
        self.movie_name = movie_name
        self.hole_number = int(hole_number)
        self.read_type = READ_TYPE.enforce(read_type)
        self.read_group_id = read_group_id
        self.features = features
        self.query_start = query_start
        self.query_end = query_end
        self.num_passes = num_passes
        self.snr = snr
        self.local_context_flags = local_context_flags
        self.read_score = read_score
        self.scrap_region_type = scrap_region_type
        self.scrap_zmw_type = scrap_zmw_type
        if query_start is not None:
            if query_start >= query_end:
                raise ValueError('records must cover at least one base', query_start, query_end)
            if len(features) != query_end - query_start:
                raise ValueError('feature slice does not match the query interval', len(features), query_start, query_end)

    @property
    def name(self):
        """
        Example:
            >>> record.name
            'm1/42/10_100'
        """
        if self.read_type == READ_TYPE.CCS:
            return '{}/{}/ccs'.format(self.movie_name, self.hole_number)
        return '{}/{}/{}_{}'.format(self.movie_name, self.hole_number, self.query_start, self.query_end)

    @property
    def sequence(self):
        return self.features.sequence

    def key(self):
        """
        identity used to restore file order after out of order processing
        """
        return (self.hole_number, self.read_type, self.query_start, self.query_end)

    def flatten(self):
        row = {
            'name': self.name,
            'read_group_id': self.read_group_id,
            'sequence': self.sequence,
            'num_passes': self.num_passes,
            'hole_number': self.hole_number,
            'query_start': self.query_start,
            'query_end': self.query_end,
            'snr': self.snr,
            'local_context_flags': self.local_context_flags,
            'read_score': self.read_score,
            'scrap_region_type': self.scrap_region_type,
            'scrap_zmw_type': self.scrap_zmw_type,
        }
        for feature in BASE_FEATURE.values():
            values = self.features.feature(feature)
            row[feature] = values.tolist() if isinstance(values, np.ndarray) else values
        row['qualities'] = None if self.features.qualities is None else self.features.qualities.tolist()
        return row

    def __eq__(self, other):
        if not isinstance(other, OutputRecord):
            return False
        return self.flatten() == other.flatten()

    def __repr__(self):
        return '{}({}, {})'.format(self.__class__.__name__, self.name, self.read_type)


def _read_score(zmw, zmw_regions):
    if zmw_regions is not None and zmw_regions.hq_row() is not None:
        return zmw_regions.hq_score / HQ_SCORE_SCALE
    return zmw.read_score


def _make_record(zmw, movie_name, read_type, read_group_ids, interval, read_score, **kwargs):
    return OutputRecord(
        movie_name,
        zmw.hole_number,
        read_type,
        read_group_ids[read_type],
        slice_features(zmw, interval[0], interval[1]),
        query_start=interval[0],
        query_end=interval[1],
        num_passes=1,
        snr=list(zmw.hq_region_snr),
        read_score=read_score,
        **kwargs
    )


def polymerase_records(zmw, zmw_regions, movie_name, read_group_ids):
    """
    one record spanning the full polymerase read
    """
    if not len(zmw):
        return [], []
    record = _make_record(
        zmw, movie_name, READ_TYPE.POLYMERASE, read_group_ids, (0, len(zmw)), _read_score(zmw, zmw_regions))
    return [record], []


def hqregion_records(zmw, zmw_regions, movie_name, read_group_ids):
    """
    one record for the HQ region and one scrap record for the low quality prefix before it.
    ZMWs without a usable HQ region produce neither
    """
    if zmw_regions is None or not zmw_regions.has_hq_region():
        return [], []
    hq_start = zmw_regions.hq_start
    hq_end = min(zmw_regions.hq_end, len(zmw))
    if hq_end <= hq_start:
        return [], []
    read_score = _read_score(zmw, zmw_regions)
    records = [_make_record(zmw, movie_name, READ_TYPE.HQREGION, read_group_ids, (hq_start, hq_end), read_score)]
    scraps = []
    if hq_start > 0:
        scraps.append(_make_record(
            zmw, movie_name, READ_TYPE.SCRAP, read_group_ids, (0, hq_start), read_score,
            scrap_region_type=SCRAP_REGION.LQREGION, scrap_zmw_type=SCRAP_ZMW.NORMAL))
    return records, scraps


def subread_records(zmw, zmw_regions, movie_name, read_group_ids):
    """
    one record per adapter delimited subread of the HQ region, plus a scrap record for every span of the
    polymerase read not covered by a subread
    """
    if zmw_regions is None:
        return [], []
    intervals = [interval for _, interval in iter_zmw_intervals([zmw], _SingleZmwTable(zmw_regions))]
    if not intervals:
        return [], []
    read_score = _read_score(zmw, zmw_regions)
    records = [
        _make_record(
            zmw, movie_name, READ_TYPE.SUBREAD, read_group_ids, interval, read_score,
            local_context_flags=interval.local_context_flags)
        for interval in intervals
    ]
    hq_region = Interval(zmw_regions.hq_start, min(zmw_regions.hq_end, len(zmw)))
    scraps = [
        _make_record(
            zmw, movie_name, READ_TYPE.SCRAP, read_group_ids, scrap, read_score,
            scrap_region_type=scrap.region_type, scrap_zmw_type=SCRAP_ZMW.NORMAL)
        for scrap in compute_scrap_intervals(len(zmw), hq_region, intervals)
    ]
    return records, scraps


def ccs_records(ccs, zmw_regions, movie_name, read_group_ids):
    """
    one record per consensus read with a non-empty sequence
    """
    if not len(ccs):
        return [], []
    record = OutputRecord(
        movie_name,
        ccs.hole_number,
        READ_TYPE.CCS,
        read_group_ids[READ_TYPE.CCS],
        slice_features(ccs, 0, len(ccs)),
        num_passes=ccs.num_passes,
    )
    return [record], []


class _SingleZmwTable:
    """
    region table view over the rows of a single ZMW, so that workers do not need the full table
    """

    def __init__(self, zmw_regions):
        self.zmw_regions = zmw_regions

    def __getitem__(self, hole_number):
        if hole_number != self.zmw_regions.hole_number:
            raise KeyError('ZMW not in this table', hole_number)
        return self.zmw_regions


PIPELINES = {
    READ_TYPE.POLYMERASE: polymerase_records,
    READ_TYPE.HQREGION: hqregion_records,
    READ_TYPE.SUBREAD: subread_records,
    READ_TYPE.CCS: ccs_records,
}
"""
pipeline function by the primary read type it produces
"""

SCRAP_READ_TYPES = {READ_TYPE.HQREGION, READ_TYPE.SUBREAD}
""":class:`set`: read types whose pipelines also produce scrap records"""


def iter_zmw_intervals(zmws, region_table):
    """
    generate (ZMW, subread interval) pairs, pulling the next ZMW only once the intervals of the current
    ZMW are exhausted. ZMWs without subreads are skipped. The subread pipeline consumes this one ZMW at a time

    Args:
        zmws (iterable): :class:`~bax2bam.zmw.ZmwRecord` objects in file order
        region_table (RegionTable): the region annotations

    Yields:
        tuple: (ZmwRecord, SubreadInterval) where the interval never extends past the end of the read
    """
    for zmw in zmws:
        for interval in compute_subread_intervals(zmw.hole_number, region_table, len(zmw)):
            yield zmw, interval


def _process_zmw(read_type, movie_name, read_group_ids, zmw, zmw_regions):
    return PIPELINES[read_type](zmw, zmw_regions, movie_name, read_group_ids)


class SegmentationEngine:
    """
    runs a single read type pipeline over the ZMWs of a movie. Output is always in input order

    Example:
        >>> engine = SegmentationEngine(READ_TYPE.SUBREAD, 'm1', region_table)
        >>> for records, scraps in engine.run(reader):
        ...     pass
    """

    def __init__(self, read_type, movie_name, region_table=None, processes=1, batch_size=1000, log=DEVNULL):
        """
        Args:
            read_type (str): the primary read type to produce
            movie_name (str): the movie the ZMWs belong to
            region_table (RegionTable): required for the HQREGION and SUBREAD read types
            processes (int): number of worker processes, ZMWs are processed in the calling process when 1
            batch_size (int): number of ZMWs handed to the worker pool at a time
        """
        if read_type not in PIPELINES:
            raise ValueError('no pipeline for read type', read_type)
        if read_type in SCRAP_READ_TYPES and region_table is None:
            raise ValueError('a region table is required for the read type', read_type)
        self.read_type = read_type
        self.movie_name = movie_name
        self.region_table = region_table if region_table is not None else RegionTable()
        self.processes = max(1, int(processes))
        self.batch_size = max(1, int(batch_size))
        self.log = log
        self.read_group_ids = {rt: make_read_group_id(movie_name, rt) for rt in READ_TYPE.values()}
        self.counts = {'zmws': 0, 'skipped': 0, 'records': 0, 'scraps': 0}

    @property
    def has_scraps(self):
        return self.read_type in SCRAP_READ_TYPES

    def _zmw_regions(self, zmw):
        if self.read_type == READ_TYPE.CCS:
            return None
        return self.region_table[zmw.hole_number]

    def process(self, zmw):
        """
        Returns:
            tuple: (records, scraps) for a single ZMW
        """
        return _process_zmw(self.read_type, self.movie_name, self.read_group_ids, zmw, self._zmw_regions(zmw))

    def _tally(self, zmw, records, scraps):
        self.counts['zmws'] += 1
        self.counts['records'] += len(records)
        self.counts['scraps'] += len(scraps)
        if not records:
            self.counts['skipped'] += 1
            self.log('no', self.read_type, 'records for ZMW', zmw.hole_number, level=logging.DEBUG)

    def run(self, zmws):
        """
        Args:
            zmws (iterable): records in file order

        Yields:
            tuple: (records, scraps) for each ZMW, in the order the ZMWs were given
        """
        if self.processes == 1:
            for zmw in zmws:
                records, scraps = self.process(zmw)
                self._tally(zmw, records, scraps)
                yield records, scraps
            return

        func = partial(_process_zmw, self.read_type, self.movie_name, self.read_group_ids)
        zmws = iter(zmws)
        with futures.ProcessPoolExecutor(max_workers=self.processes) as pool:
            while True:
                batch = list(itertools.islice(zmws, self.batch_size))
                if not batch:
                    break
                results = pool.map(func, batch, [self._zmw_regions(z) for z in batch])
                for zmw, (records, scraps) in zip(batch, results):
                    self._tally(zmw, records, scraps)
                    yield records, scraps
