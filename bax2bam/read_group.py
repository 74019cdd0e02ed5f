"""
read group metadata shared by every record of a single (movie, read type) pair
"""
import hashlib

import numpy as np

from .constants import (
    BASE_FEATURE,
    CCS_FEATURES,
    FEATURE_TAG,
    FRAME_CODEC,
    FRAME_FEATURES,
    PLATFORM,
    READ_GROUP_ID_LENGTH,
    READ_TYPE,
)

FRAME_CODEC_LABEL = {FRAME_CODEC.V1: 'CodecV1', FRAME_CODEC.RAW: 'Frames'}
CODEC_FROM_LABEL = {v: k for k, v in FRAME_CODEC_LABEL.items()}


def make_read_group_id(movie_name, read_type):
    """
    the read group id is the first 8 hex characters of the md5 digest of "{movie}//{read type}"

    Example:
        >>> make_read_group_id('m1', 'SUBREAD')
        'a09d3ff6'
    """
    raw_id = '{}//{}'.format(movie_name, READ_TYPE.enforce(read_type))
    return hashlib.md5(raw_id.encode('utf-8')).hexdigest()[:READ_GROUP_ID_LENGTH]


def format_frame_rate(frame_rate):
    """
    Example:
        >>> format_frame_rate(75.00577)
        '75.00577'
        >>> format_frame_rate(np.float32(75.00577))
        '75.00577'
        >>> format_frame_rate(None)
    """
    if frame_rate is None:
        return None
    if isinstance(frame_rate, np.floating):
        # shortest repr at the stored precision, float32 in bax files
        return str(frame_rate)
    return str(float(frame_rate))


class ReadGroupInfo:
    """
    Attributes:
        read_group_id (str): 8 lowercase hex characters
        movie_name (str): the movie the reads came from
        read_type (str): one of :attr:`~bax2bam.constants.READ_TYPE`
        basecaller_version (str): None when the source does not have it
        binding_kit (str): None when the source does not have it
        sequencing_kit (str): None when the source does not have it
        frame_rate_hz (str): decimal string, None when the source does not have it
        features (:class:`dict` of :class:`str` by :class:`str`): BAM tag by base feature, advertised features only
        ipd_codec (str): one of :attr:`~bax2bam.constants.FRAME_CODEC`, None when no frame feature is advertised
    """

    def __init__(
        self, movie_name, read_type, basecaller_version=None, binding_kit=None, sequencing_kit=None,
        frame_rate_hz=None, features=None, ipd_codec=None, read_group_id=None
    ):
        self.movie_name = movie_name
        self.read_type = READ_TYPE.enforce(read_type)
        self.read_group_id = read_group_id or make_read_group_id(movie_name, read_type)
        self.platform = PLATFORM
        self.basecaller_version = basecaller_version or None
        self.binding_kit = binding_kit or None
        self.sequencing_kit = sequencing_kit or None
        self.frame_rate_hz = frame_rate_hz or None
        self.features = {}
        for feature in features or []:
            self.features[BASE_FEATURE.enforce(feature)] = FEATURE_TAG[feature]
        self.ipd_codec = FRAME_CODEC.enforce(ipd_codec) if ipd_codec else None
        if self.ipd_codec is None and any([f in self.features for f in FRAME_FEATURES]):
            raise ValueError('a frame codec is required to advertise frame features', self.features)

    def has_base_feature(self, feature):
        return feature in self.features

    def base_feature_tag(self, feature):
        """
        Raises:
            KeyError: the feature is not advertised by this read group
        """
        return self.features[feature]

    def description(self):
        """
        the contents of the DS field of the @RG header line

        Example:
            >>> ReadGroupInfo('m1', 'SUBREAD', features=['DeletionQV', 'Ipd'], ipd_codec='V1').description()
            'READTYPE=SUBREAD;DeletionQV=dq;Ipd:CodecV1=ip'
        """
        fields = ['READTYPE={}'.format(self.read_type)]
        for feature in BASE_FEATURE.values():
            if feature not in self.features:
                continue
            if feature in FRAME_FEATURES:
                fields.append('{}:{}={}'.format(feature, FRAME_CODEC_LABEL[self.ipd_codec], self.features[feature]))
            else:
                fields.append('{}={}'.format(feature, self.features[feature]))
        for key, value in [
            ('BINDINGKIT', self.binding_kit),
            ('SEQUENCINGKIT', self.sequencing_kit),
            ('BASECALLERVERSION', self.basecaller_version),
            ('FRAMERATEHZ', self.frame_rate_hz),
        ]:
            if value is not None:
                fields.append('{}={}'.format(key, value))
        return ';'.join(fields)

    def to_header_dict(self):
        """
        Returns:
            dict: the @RG line in the form expected by :class:`pysam.AlignmentHeader`
        """
        return {
            'ID': self.read_group_id,
            'PL': self.platform,
            'PU': self.movie_name,
            'DS': self.description(),
        }

    @classmethod
    def from_header_dict(cls, read_group):
        """
        parse an @RG line (as given by pysam) back into a ReadGroupInfo
        """
        return cls.from_description(read_group['ID'], read_group['PU'], read_group.get('DS', ''))

    @classmethod
    def from_description(cls, read_group_id, movie_name, description):
        """
        parse the DS field of an @RG line

        Example:
            >>> ReadGroupInfo.from_description('a09d3ff6', 'm1', 'READTYPE=SUBREAD;DeletionQV=dq').features
            {'DeletionQV': 'dq'}
        """
        kwargs = {}
        features = []
        read_type = None
        for field in description.split(';'):
            if not field:
                continue
            key, value = field.split('=', 1)
            if key == 'READTYPE':
                read_type = value
            elif key == 'BINDINGKIT':
                kwargs['binding_kit'] = value
            elif key == 'SEQUENCINGKIT':
                kwargs['sequencing_kit'] = value
            elif key == 'BASECALLERVERSION':
                kwargs['basecaller_version'] = value
            elif key == 'FRAMERATEHZ':
                kwargs['frame_rate_hz'] = value
            elif ':' in key:
                feature, codec_label = key.split(':', 1)
                features.append(feature)
                kwargs['ipd_codec'] = CODEC_FROM_LABEL[codec_label]
            else:
                features.append(key)
        if read_type is None:
            raise ValueError('read group description does not have a READTYPE', description)
        return cls(movie_name, read_type, features=features, read_group_id=read_group_id, **kwargs)

    def __eq__(self, other):
        if not isinstance(other, ReadGroupInfo):
            return False
        return self.to_header_dict() == other.to_header_dict()

    def __repr__(self):
        return '{}({}, {}, {})'.format(self.__class__.__name__, self.read_group_id, self.movie_name, self.read_type)


def build_read_group(run_info, read_type, requested_features=None, present_features=None, lossless_frames=False):
    """
    build the read group for a given read type of a movie

    Args:
        run_info (RunInfo): movie level attributes from the source file
        read_type (str): one of :attr:`~bax2bam.constants.READ_TYPE`
        requested_features (:class:`list` of :class:`str`): base features asked for, all when None
        present_features (:class:`list` of :class:`str`): base features present in the source, all when None
        lossless_frames (bool): store frames uncompressed rather than with the V1 codec

    Returns:
        ReadGroupInfo: the read group
    """
    read_type = READ_TYPE.enforce(read_type)
    features = set(BASE_FEATURE.values())
    if requested_features is not None:
        features &= set(requested_features)
    if present_features is not None:
        features &= set(present_features)
    if read_type == READ_TYPE.CCS:
        features &= set(CCS_FEATURES)

    ipd_codec = None
    if any([f in features for f in FRAME_FEATURES]):
        ipd_codec = FRAME_CODEC.RAW if lossless_frames else FRAME_CODEC.V1

    return ReadGroupInfo(
        run_info.movie_name,
        read_type,
        basecaller_version=run_info.basecaller_version,
        binding_kit=run_info.binding_kit,
        sequencing_kit=run_info.sequencing_kit,
        frame_rate_hz=format_frame_rate(run_info.frame_rate),
        features=[f for f in BASE_FEATURE.values() if f in features],
        ipd_codec=ipd_codec,
    )
