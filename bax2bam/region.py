"""
region annotation table: per-ZMW HQ region, adapter and insert rows
"""
import itertools

from .constants import DEFAULT_REGION_TYPES, REGION_TYPE
from .error import RegionTableError
from .interval import Interval


class RegionAnnotation:
    """
    a single row of the region table
    """
    __slots__ = ['hole_number', 'region_type_index', 'start', 'end', 'score']

    def __init__(self, hole_number, region_type_index, start, end, score=0):
        self.hole_number = int(hole_number)
        self.region_type_index = int(region_type_index)
        self.start = int(start)
        self.end = int(end)
        self.score = int(score)

    def key(self):
        return (self.hole_number, self.region_type_index, self.start)

    def interval(self):
        return Interval(self.start, max(self.start, self.end))

    def __eq__(self, other):
        if not isinstance(other, RegionAnnotation):
            return False
        return self.flatten() == other.flatten()

    def flatten(self):
        return (self.hole_number, self.region_type_index, self.start, self.end, self.score)

    def __repr__(self):
        return '{}({})'.format(self.__class__.__name__, ', '.join([str(v) for v in self.flatten()]))


class RegionAnnotations:
    """
    the region table rows for a single ZMW

    Args:
        hole_number (int): the ZMW these rows belong to
        rows (:class:`list` of :class:`RegionAnnotation`): rows sorted by (region type, start)
        region_types (:class:`list` of :class:`str`): region type name for each region type index
    """

    def __init__(self, hole_number, rows=None, region_types=None):
        self.hole_number = hole_number
        self.rows = list(rows or [])
        self.region_types = list(region_types or DEFAULT_REGION_TYPES)
        self._by_type = {}
        for row in self.rows:
            if row.hole_number != hole_number:
                raise RegionTableError('row does not belong to this ZMW', hole_number, row)
            try:
                region_type = self.region_types[row.region_type_index]
            except IndexError:
                raise RegionTableError('unknown region type index', row.region_type_index, self.region_types)
            self._by_type.setdefault(region_type, []).append(row)

    def _rows(self, region_type):
        return self._by_type.get(region_type, [])

    def hq_row(self):
        hq_rows = self._rows(REGION_TYPE.HQREGION)
        return hq_rows[0] if hq_rows else None

    def has_hq_region(self):
        """
        Returns:
            bool: True if the ZMW has an HQ region row with a non-empty span
        """
        row = self.hq_row()
        return row is not None and row.end > row.start

    @property
    def hq_start(self):
        row = self.hq_row()
        if row is None:
            raise KeyError('no HQ region for ZMW', self.hole_number)
        return row.start

    @property
    def hq_end(self):
        row = self.hq_row()
        if row is None:
            raise KeyError('no HQ region for ZMW', self.hole_number)
        return row.end

    @property
    def hq_score(self):
        row = self.hq_row()
        if row is None:
            raise KeyError('no HQ region for ZMW', self.hole_number)
        return row.score

    def hq_interval(self):
        return Interval(self.hq_start, max(self.hq_start, self.hq_end))

    def adapter_intervals(self):
        """
        Returns:
            :class:`list` of :class:`~bax2bam.interval.Interval`: adapters in ascending start order
        """
        return [row.interval() for row in self._rows(REGION_TYPE.ADAPTER)]

    def insert_intervals(self):
        return [row.interval() for row in self._rows(REGION_TYPE.INSERT)]

    def __len__(self):
        return len(self.rows)


class RegionTable:
    """
    read-only lookup of region annotations by hole number
    """

    def __init__(self, zmw_regions=None, region_types=None):
        self.region_types = list(region_types or DEFAULT_REGION_TYPES)
        self.zmw_regions = zmw_regions or {}

    @classmethod
    def from_rows(cls, rows, region_types=None):
        """
        build the table from raw rows. Rows are sorted by (hole number, region type, start) once here,
        everything downstream relies on that order

        Args:
            rows (iterable): :class:`RegionAnnotation` objects or 5-element sequences
            region_types (:class:`list` of :class:`str`): region type name for each region type index
        """
        region_types = list(region_types or DEFAULT_REGION_TYPES)
        for region_type in region_types:
            if region_type not in REGION_TYPE.values():
                raise RegionTableError('unsupported region type', region_type)
        annotations = []
        for row in rows:
            if not isinstance(row, RegionAnnotation):
                if len(row) != 5:
                    raise RegionTableError('region table rows must have 5 columns', row)
                row = RegionAnnotation(*row)
            annotations.append(row)
        annotations.sort(key=lambda r: r.key())

        zmw_regions = {}
        for hole_number, group in itertools.groupby(annotations, key=lambda r: r.hole_number):
            zmw_regions[hole_number] = RegionAnnotations(hole_number, group, region_types)
        return cls(zmw_regions, region_types)

    def __getitem__(self, hole_number):
        try:
            return self.zmw_regions[hole_number]
        except KeyError:
            return RegionAnnotations(hole_number, region_types=self.region_types)

    def __contains__(self, hole_number):
        return hole_number in self.zmw_regions

    def __len__(self):
        return len(self.zmw_regions)

    def hole_numbers(self):
        return sorted(self.zmw_regions.keys())


def lookup_hq_region(hole_number, region_table):
    """
    Returns:
        tuple: (found, start, end, score). start, end and score are 0 when the ZMW has no HQ region row
    """
    zmw_regions = region_table[hole_number]
    if zmw_regions.hq_row() is None:
        return False, 0, 0, 0
    return True, zmw_regions.hq_start, zmw_regions.hq_end, zmw_regions.hq_score
