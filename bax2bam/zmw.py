"""
per-ZMW read records and the feature slicer
"""
import numpy as np

from .constants import BASE_FEATURE, CCS_FEATURES, FEATURE_ATTRIBUTE, SNR_BASES
from .error import SliceRangeError


def _as_qvs(values):
    if values is None:
        return None
    return np.asarray(values, dtype=np.uint8)


def _as_frames(values):
    if values is None:
        return None
    return np.asarray(values, dtype=np.uint16)


def _as_ascii(values):
    if values is None:
        return None
    if isinstance(values, (bytes, bytearray)):
        return bytes(values).decode('ascii')
    if isinstance(values, np.ndarray):
        return values.astype(np.uint8).tobytes().decode('ascii')
    return str(values)


class FeatureSlice:
    """
    the sequence and per-base features covering a single interval of a read

    Every feature is either None (not present in the source) or has exactly one value per base
    """

    def __init__(
        self, sequence,
        deletion_qv=None, deletion_tag=None, insertion_qv=None, ipd=None, merge_qv=None,
        substitution_qv=None, substitution_tag=None, pulse_width=None, qualities=None
    ):
        self.sequence = _as_ascii(sequence)
        self.deletion_qv = _as_qvs(deletion_qv)
        self.insertion_qv = _as_qvs(insertion_qv)
        self.merge_qv = _as_qvs(merge_qv)
        self.substitution_qv = _as_qvs(substitution_qv)
        self.deletion_tag = _as_ascii(deletion_tag)
        self.substitution_tag = _as_ascii(substitution_tag)
        self.ipd = _as_frames(ipd)
        self.pulse_width = _as_frames(pulse_width)
        self.qualities = _as_qvs(qualities)

        for feature in self.present_features():
            if len(self.feature(feature)) != len(self.sequence):
                raise ValueError(
                    'feature length does not match the sequence length', feature,
                    len(self.feature(feature)), len(self.sequence))
        if self.qualities is not None and len(self.qualities) != len(self.sequence):
            raise ValueError('qualities length does not match the sequence length')

    def __len__(self):
        return len(self.sequence)

    def feature(self, feature):
        """
        Args:
            feature (str): one of :attr:`~bax2bam.constants.BASE_FEATURE`

        Returns:
            the per-base values of the feature or None if it is not present
        """
        return getattr(self, FEATURE_ATTRIBUTE[BASE_FEATURE.enforce(feature)])

    def has_feature(self, feature):
        return self.feature(feature) is not None

    def present_features(self):
        return [f for f in BASE_FEATURE.values() if getattr(self, FEATURE_ATTRIBUTE[f]) is not None]

    def _slice_kwargs(self, start, end):
        kwargs = {}
        for feature in self.present_features():
            attr = FEATURE_ATTRIBUTE[feature]
            values = getattr(self, attr)
            if isinstance(values, np.ndarray):
                kwargs[attr] = values[start:end].copy()
            else:
                kwargs[attr] = values[start:end]
        if self.qualities is not None:
            kwargs['qualities'] = self.qualities[start:end].copy()
        return kwargs


class ZmwRecord(FeatureSlice):
    """
    the full polymerase read of a single ZMW

    Attributes:
        hole_number (int): the ZMW identifier
        hq_region_snr (:class:`list` of :class:`float`): HQ region signal to noise for A, C, G, T
        read_score (float): the basecaller read score (0-1), None if not available
    """

    def __init__(self, hole_number, sequence, hq_region_snr=None, read_score=None, **features):
        FeatureSlice.__init__(self, sequence, **features)
        self.hole_number = int(hole_number)
        if hq_region_snr is None:
            hq_region_snr = [0.0] * len(SNR_BASES)
        if len(hq_region_snr) != len(SNR_BASES):
            raise ValueError('expected one signal-to-noise value per base', SNR_BASES, hq_region_snr)
        self.hq_region_snr = [float(s) for s in hq_region_snr]
        self.read_score = None if read_score is None else float(read_score)

    def slice(self, start, end):
        return slice_features(self, start, end)

    def __repr__(self):
        return '{}(hole_number={}, length={})'.format(self.__class__.__name__, self.hole_number, len(self))


class CcsRecord(FeatureSlice):
    """
    the circular consensus read of a single ZMW
    """

    def __init__(self, hole_number, sequence, num_passes=0, qualities=None, **features):
        for feature in features:
            if feature not in [FEATURE_ATTRIBUTE[f] for f in CCS_FEATURES]:
                raise TypeError('unsupported CCS feature', feature)
        FeatureSlice.__init__(self, sequence, qualities=qualities, **features)
        self.hole_number = int(hole_number)
        self.num_passes = int(num_passes)

    def __repr__(self):
        return '{}(hole_number={}, length={}, num_passes={})'.format(
            self.__class__.__name__, self.hole_number, len(self), self.num_passes)


def slice_features(record, start, end):
    """
    copy the sequence and every present feature of a record over [start, end)

    Args:
        record (FeatureSlice): the source record
        start (int): first base position (inclusive)
        end (int): last base position (exclusive)

    Returns:
        FeatureSlice: positions map 1:1 onto record positions start to end - 1

    Raises:
        SliceRangeError: the range is not within the record
    """
    if start < 0 or start > end or end > len(record):
        raise SliceRangeError('slice [{}, {}) is outside of the record [0, {})'.format(start, end, len(record)))
    return FeatureSlice(record.sequence[start:end], **record._slice_kwargs(start, end))
