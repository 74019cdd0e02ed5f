from .constants import LOCAL_CONTEXT, SCRAP_REGION


class Interval:
    """
    half-open range of base positions [start, end) over a single ZMW read
    """

    def __init__(self, start, end=None):
        """
        Args:
            start (int): the start of the interval (inclusive)
            end (int): the end of the interval (exclusive)
        """
        self.start = int(start)
        self.end = int(end) if end is not None else self.start
        if self.start < 0:
            raise AttributeError('interval start must be non-negative', self.start, self.end)
        if self.start > self.end:
            raise AttributeError('interval start > end is not allowed', self.start, self.end)

    def __getitem__(self, index):
        try:
            index = int(index)
        except ValueError:
            raise IndexError('index input accessor must be an integer', index)
        if index == 0:
            return self.start
        elif index == 1:
            return self.end
        raise IndexError('index input accessor is out of bounds: 0 or 1 only', index)

    def __len__(self):
        """
        the number of bases covered by the interval

        Example:
            >>> len(Interval(10, 20))
            10
        """
        return self.end - self.start

    def is_empty(self):
        return self.end <= self.start

    @classmethod
    def overlaps(cls, first, other):
        """
        checks if two intervals share at least one base

        Example:
            >>> Interval.overlaps(Interval(1, 4), Interval(4, 7))
            False
            >>> Interval.overlaps((1, 10), (9, 11))
            True
        """
        return first[0] < other[1] and other[0] < first[1]

    @classmethod
    def intersection(cls, *intervals):
        """
        returns None if there is no intersection

        Example:
            >>> Interval.intersection((1, 10), (2, 8), (7, 15))
            Interval(7, 8)
            >>> Interval.intersection((1, 2), (5, 9))
            None
        """
        if len(intervals) < 1:
            raise AttributeError('cannot compute the intersection of an empty set of intervals')
        low = max([i[0] for i in intervals])
        high = min([i[1] for i in intervals])
        if low >= high:
            return None
        return Interval(low, high)

    @classmethod
    def min_nonoverlapping(cls, *intervals):
        """
        for a list of intervals, orders them and merges any overlapping or abutting intervals

        Example:
            >>> Interval.min_nonoverlapping((1, 10), (7, 8), (10, 14), (17, 20))
            [Interval(1, 14), Interval(17, 20)]
        """
        intervals = sorted([i for i in intervals if i[1] > i[0]], key=lambda x: (x[0], x[1]))
        if not intervals:
            return []
        new_intervals = [Interval(intervals[0][0], intervals[0][1])]
        for itvl in intervals[1:]:
            if itvl[0] <= new_intervals[-1].end:
                new_intervals[-1] = Interval(new_intervals[-1].start, max(new_intervals[-1].end, itvl[1]))
            else:
                new_intervals.append(Interval(itvl[0], itvl[1]))
        return new_intervals

    def __contains__(self, other):
        try:
            return other[0] >= self.start and other[1] <= self.end
        except TypeError:
            return self.start <= other < self.end

    def __eq__(self, other):
        try:
            return self[0] == other[0] and self[1] == other[1]
        except (TypeError, IndexError):
            return False

    def __lt__(self, other):
        return (self[0], self[1]) < (other[0], other[1])

    def __hash__(self):
        return hash((self.start, self.end))

    def __repr__(self):
        return '{}({}, {})'.format(self.__class__.__name__, self.start, self.end)


class SubreadInterval(Interval):
    """
    an interval of the HQ region delimited by adapters and/or the HQ region boundaries

    Attributes:
        local_context_flags (int): bitwise OR of :attr:`~bax2bam.constants.LOCAL_CONTEXT` values
    """

    def __init__(self, start, end, adapter_before=False, adapter_after=False):
        Interval.__init__(self, start, end)
        self.local_context_flags = LOCAL_CONTEXT.NO_LOCAL_CONTEXT
        if adapter_before:
            self.local_context_flags |= LOCAL_CONTEXT.ADAPTER_BEFORE
        if adapter_after:
            self.local_context_flags |= LOCAL_CONTEXT.ADAPTER_AFTER

    @property
    def adapter_before(self):
        return bool(self.local_context_flags & LOCAL_CONTEXT.ADAPTER_BEFORE)

    @property
    def adapter_after(self):
        return bool(self.local_context_flags & LOCAL_CONTEXT.ADAPTER_AFTER)

    def __eq__(self, other):
        if not Interval.__eq__(self, other):
            return False
        return self.local_context_flags == getattr(other, 'local_context_flags', self.local_context_flags)

    # equal intervals must hash equal, even across interval classes
    __hash__ = Interval.__hash__

    def __repr__(self):
        return '{}({}, {}, adapter_before={}, adapter_after={})'.format(
            self.__class__.__name__, self.start, self.end, self.adapter_before, self.adapter_after)


class ScrapInterval(Interval):
    """
    an interval of the polymerase read excluded from the primary output

    Attributes:
        region_type (str): one of :attr:`~bax2bam.constants.SCRAP_REGION`
    """

    def __init__(self, start, end, region_type):
        Interval.__init__(self, start, end)
        self.region_type = SCRAP_REGION.enforce(region_type)

    def __eq__(self, other):
        if not Interval.__eq__(self, other):
            return False
        return self.region_type == getattr(other, 'region_type', self.region_type)

    __hash__ = Interval.__hash__

    def __repr__(self):
        return '{}({}, {}, {})'.format(self.__class__.__name__, self.start, self.end, repr(self.region_type))


def compute_subread_intervals(hole_number, region_table, length=None):
    """
    partition the HQ region of a ZMW into the adapter-free spans between adapters

    Args:
        hole_number (int): the ZMW to compute the subreads for
        region_table (RegionTable): region annotations, rows sorted by (hole number, region type, start)
        length (int): length of the polymerase read. The HQ region is clipped to it when given

    Returns:
        :class:`list` of :class:`SubreadInterval`: subreads in ascending order, empty if the ZMW has no usable HQ region

    Example:
        >>> compute_subread_intervals(1, table)  # HQ [10, 100), adapters [20, 30) and [60, 70)
        [SubreadInterval(10, 20, adapter_before=False, adapter_after=True),
         SubreadInterval(30, 60, adapter_before=True, adapter_after=True),
         SubreadInterval(70, 100, adapter_before=True, adapter_after=False)]
    """
    intervals = []
    zmw_regions = region_table[hole_number]

    if not zmw_regions.has_hq_region():
        return intervals

    hq_start = zmw_regions.hq_start
    hq_end = zmw_regions.hq_end
    if length is not None:
        hq_end = min(hq_end, length)
    if hq_end <= hq_start:
        return intervals

    def emit(start, end, adapter_before, adapter_after):
        if start < end:
            intervals.append(SubreadInterval(start, end, adapter_before, adapter_after))

    last_adapter = None
    region_start = hq_start
    for adapter in zmw_regions.adapter_intervals():
        if adapter.end < hq_start:
            continue
        if adapter.start > hq_end:
            break  # adapters are sorted by start

        if last_adapter is not None:
            emit(last_adapter.end, adapter.start, True, True)
        elif region_start < adapter.start:
            emit(region_start, adapter.start, False, True)

        last_adapter = adapter
        region_start = adapter.end

    if last_adapter is not None:
        emit(last_adapter.end, hq_end, True, False)
    elif region_start < hq_end:
        emit(region_start, hq_end, False, False)
    return intervals


def compute_scrap_intervals(length, hq_region, subreads):
    """
    compute the complement of the subreads over the full polymerase read

    Every base of [0, length) which is not part of a subread falls in exactly one scrap interval.
    The complement is split at the HQ region boundaries. Pieces outside the HQ region are
    low quality (L) scraps and pieces inside it are adapter (A) scraps

    Args:
        length (int): length of the polymerase read
        hq_region (Interval): the HQ region of the read
        subreads (:class:`list` of :class:`Interval`): the subreads of the read

    Returns:
        :class:`list` of :class:`ScrapInterval`: scraps in ascending order

    Example:
        >>> compute_scrap_intervals(120, Interval(10, 100), [Interval(10, 20), Interval(30, 60), Interval(70, 100)])
        [ScrapInterval(0, 10, 'L'), ScrapInterval(20, 30, 'A'), ScrapInterval(60, 70, 'A'), ScrapInterval(100, 120, 'L')]
    """
    hq_start = min(max(hq_region[0], 0), length)
    hq_end = min(max(hq_region[1], hq_start), length)
    breaks = {0, length, hq_start, hq_end}
    for subread in subreads:
        breaks.add(subread[0])
        breaks.add(subread[1])
    breaks = sorted(breaks)

    covered = Interval.min_nonoverlapping(*subreads)
    scraps = []
    for start, end in zip(breaks, breaks[1:]):
        if any([start >= c.start and end <= c.end for c in covered]):
            continue
        region_type = SCRAP_REGION.ADAPTER if hq_start <= start and end <= hq_end else SCRAP_REGION.LQREGION
        if scraps and scraps[-1].end == start and scraps[-1].region_type == region_type:
            scraps[-1] = ScrapInterval(scraps[-1].start, end, region_type)
        else:
            scraps.append(ScrapInterval(start, end, region_type))
    return scraps
