"""
module responsible for the controlled vocabularies and constants used throughout the bax2bam package
"""
import os
import re


PROGNAME = 'bax2bam'
EXIT_OK = 0
EXIT_ERROR = 1

PLATFORM = 'PACBIO'
SAM_VERSION = '1.5'
PACBIO_BAM_VERSION = '3.0.1'
SORT_ORDER = 'unknown'

NA_MAPPING_QUALITY = 255
""":class:`int`: mapping quality written on every (unmapped) record"""

READ_GROUP_ID_LENGTH = 8
""":class:`int`: number of hex characters of the md5 digest used as the read group id"""

SNR_BASES = 'ACGT'
""":class:`str`: order of the signal-to-noise values written to the sn tag"""


def cast_boolean(input_value):
    """
    cast a string (or boolean) to a boolean

    Example:
        >>> cast_boolean('yes')
        True
        >>> cast_boolean('0')
        False
    """
    value = str(input_value).lower()
    if value in ['t', 'true', '1', 'y', 'yes', 'on']:
        return True
    elif value in ['f', 'false', '0', 'n', 'no', 'off']:
        return False
    raise TypeError('casting to boolean failed', input_value)


class Bax2BamNamespace:
    """
    Namespace to hold module constants and the typed defaults of the command line

    Example:
        >>> nspace = Bax2BamNamespace(thing=1, otherthing=2)
        >>> nspace.thing
        1
        >>> nspace.otherthing
        2
    """
    DELIM = r'[;,\s]+'
    """:class:`str`: separators allowed between the items of a list given through the environment"""
    ENV_PREFIX = 'BAX2BAM'

    def __init__(self, *pos, **kwargs):
        for name in ['_defns', '_types', '_members']:
            object.__setattr__(self, name, {})
        for name in ['_nullable', '_listable', '_env_overwritable']:
            object.__setattr__(self, name, set())

        for attr, val in [(k, k) for k in pos] + list(kwargs.items()):
            if attr in self._members:
                raise AttributeError('attribute is already defined', attr, self._members[attr])
            self[attr] = val
            self._set_type(attr, type(val))

    def __repr__(self):
        members = sorted(['{}={}'.format(k, repr(v)) for k, v in self.items()])
        return '{}({})'.format(self.__class__.__name__, ', '.join(members))

    def get_env_name(self, attr):
        """
        Example:
            >>> Bax2BamNamespace(a=1).get_env_name('a')
            'BAX2BAM_A'
        """
        return '{}_{}'.format(self.ENV_PREFIX, attr).upper()

    def get_env_var(self, attr):
        """
        read and cast the environment variable for an attribute

        Raises:
            KeyError: the variable is not set
        """
        env = os.environ[self.get_env_name(attr)].strip()
        attr_type = self._types.get(attr, str)
        if attr in self._listable:
            return self.parse_listable_string(env, attr_type, attr in self._nullable)
        if attr in self._nullable and env.lower() == 'none':
            return None
        return attr_type(env)

    @classmethod
    def parse_listable_string(cls, string, cast_type=str, nullable=False):
        """
        split a delimited string and cast each item

        Example:
            >>> Bax2BamNamespace.parse_listable_string('1,2,3', int)
            [1, 2, 3]
            >>> Bax2BamNamespace.parse_listable_string('1;2,None', int, True)
            [1, 2, None]
        """
        string = string.strip()
        if not string:
            return []
        return [None if nullable and val.lower() == 'none' else cast_type(val) for val in re.split(cls.DELIM, string)]

    def is_env_overwritable(self, attr):
        return attr in self._env_overwritable

    def __getattribute__(self, attr):
        try:
            return object.__getattribute__(self, attr)
        except AttributeError:
            members = object.__getattribute__(self, '_members')
            if attr not in members:
                raise
        if self.is_env_overwritable(attr):
            try:
                return self.get_env_var(attr)
            except KeyError:
                pass
        return members[attr]

    def __setattr__(self, attr, val):
        if attr.startswith('_'):
            raise ValueError('cannot set private', attr)
        self._members[attr] = val

    def __getitem__(self, key):
        return getattr(self, key)

    def __setitem__(self, key, val):
        setattr(self, key, val)

    def __iter__(self):
        return iter(self.keys())

    def __contains__(self, attr):
        return attr in self._members

    def keys(self):
        return list(self._members)

    def values(self):
        return [self[k] for k in self._members]

    def items(self):
        """
        Example:
            >>> Bax2BamNamespace(thing=1, otherthing=2).items()
            [('thing', 1), ('otherthing', 2)]
        """
        return [(k, self[k]) for k in self._members]

    def to_dict(self):
        return dict(self.items())

    def enforce(self, value):
        """
        Returns:
            the input value

        Raises:
            KeyError: the value is not a member of this namespace

        Example:
            >>> READ_TYPE.enforce('SUBREAD')
            'SUBREAD'
        """
        if value not in self.values():
            raise KeyError('{} is not a valid member'.format(repr(value)), self.values())
        return value

    def __call__(self, value):
        # lets a namespace act as an argparse type
        try:
            return self.enforce(value)
        except KeyError:
            raise TypeError('Invalid value {} for {}. Must be one of: {}'.format(
                repr(value), self.__class__.__name__, self.values()))

    def _set_type(self, attr, cast_type):
        self._types[attr] = cast_boolean if cast_type == bool else cast_type

    def type(self, attr):
        """
        Raises:
            KeyError: the attribute does not exist
        """
        return self._types[attr]

    def define(self, attr, *pos):
        """
        the help text of an attribute, or the default (when given) for attributes without one
        """
        if pos:
            return self._defns.get(attr, pos[0])
        return self._defns[attr]

    def add(self, attr, value, defn=None, cast_type=None, nullable=False, env_overwritable=False, listable=False):
        """
        Add a typed attribute

        Args:
            attr (str): name of the attribute being added
            value: the default value
            defn (str): help text for the command line
            cast_type (callable): casts strings given on the command line or through the environment
            nullable (bool): the attribute may be None
            env_overwritable (bool): the matching environment variable takes precedence over the value
            listable (bool): the attribute holds a list of cast_type
        """
        self._set_type(attr, cast_type or type(value))
        if defn:
            self._defns[attr] = defn
        for flag, members in [(nullable, self._nullable), (env_overwritable, self._env_overwritable), (listable, self._listable)]:
            if flag:
                members.add(attr)
        self[attr] = value


READ_TYPE = Bax2BamNamespace(
    POLYMERASE='POLYMERASE',
    HQREGION='HQREGION',
    SUBREAD='SUBREAD',
    SCRAP='SCRAP',
    CCS='CCS'
)
"""
holds controlled vocabulary for the read types written to the READTYPE field of a read group

- ``POLYMERASE``: the full polymerase read
- ``HQREGION``: the high quality region of the polymerase read
- ``SUBREAD``: an adapter delimited pass of the insert
- ``SCRAP``: material excluded from the primary output
- ``CCS``: circular consensus read
"""

REGION_TYPE = Bax2BamNamespace(
    ADAPTER='Adapter',
    INSERT='Insert',
    HQREGION='HQRegion'
)
"""
names of the region types stored in the RegionTypes attribute of a region table
"""

DEFAULT_REGION_TYPES = [REGION_TYPE.ADAPTER, REGION_TYPE.INSERT, REGION_TYPE.HQREGION]
"""
region type order used when the region table does not carry a RegionTypes attribute
"""

LOCAL_CONTEXT = Bax2BamNamespace(
    NO_LOCAL_CONTEXT=0,
    ADAPTER_BEFORE=1,
    ADAPTER_AFTER=2
)
"""
bit flags for the local context (cx) of a subread

- ``ADAPTER_BEFORE``: the subread is preceded by an adapter
- ``ADAPTER_AFTER``: the subread is followed by an adapter
"""

BASE_FEATURE = Bax2BamNamespace(
    DELETION_QV='DeletionQV',
    DELETION_TAG='DeletionTag',
    INSERTION_QV='InsertionQV',
    IPD='Ipd',
    MERGE_QV='MergeQV',
    SUBSTITUTION_QV='SubstitutionQV',
    SUBSTITUTION_TAG='SubstitutionTag',
    PULSE_WIDTH='PulseWidth'
)
"""
per-base features which may be carried alongside the sequence
"""

FEATURE_TAG = Bax2BamNamespace(**{
    BASE_FEATURE.DELETION_QV: 'dq',
    BASE_FEATURE.DELETION_TAG: 'dt',
    BASE_FEATURE.INSERTION_QV: 'iq',
    BASE_FEATURE.IPD: 'ip',
    BASE_FEATURE.MERGE_QV: 'mq',
    BASE_FEATURE.SUBSTITUTION_QV: 'sq',
    BASE_FEATURE.SUBSTITUTION_TAG: 'st',
    BASE_FEATURE.PULSE_WIDTH: 'pw'
})
"""
BAM tag for each base feature. The mapping does not depend on the read type
"""

FEATURE_ATTRIBUTE = Bax2BamNamespace(**{
    BASE_FEATURE.DELETION_QV: 'deletion_qv',
    BASE_FEATURE.DELETION_TAG: 'deletion_tag',
    BASE_FEATURE.INSERTION_QV: 'insertion_qv',
    BASE_FEATURE.IPD: 'ipd',
    BASE_FEATURE.MERGE_QV: 'merge_qv',
    BASE_FEATURE.SUBSTITUTION_QV: 'substitution_qv',
    BASE_FEATURE.SUBSTITUTION_TAG: 'substitution_tag',
    BASE_FEATURE.PULSE_WIDTH: 'pulse_width'
})
"""
name of the record attribute holding each base feature
"""

FEATURE_DATASET = Bax2BamNamespace(**{
    BASE_FEATURE.DELETION_QV: 'DeletionQV',
    BASE_FEATURE.DELETION_TAG: 'DeletionTag',
    BASE_FEATURE.INSERTION_QV: 'InsertionQV',
    BASE_FEATURE.IPD: 'PreBaseFrames',
    BASE_FEATURE.MERGE_QV: 'MergeQV',
    BASE_FEATURE.SUBSTITUTION_QV: 'SubstitutionQV',
    BASE_FEATURE.SUBSTITUTION_TAG: 'SubstitutionTag',
    BASE_FEATURE.PULSE_WIDTH: 'WidthInFrames'
})
"""
name of the dataset in the PulseData/BaseCalls group holding each base feature
"""

QV_FEATURES = [BASE_FEATURE.DELETION_QV, BASE_FEATURE.INSERTION_QV, BASE_FEATURE.MERGE_QV, BASE_FEATURE.SUBSTITUTION_QV]
TAG_FEATURES = [BASE_FEATURE.DELETION_TAG, BASE_FEATURE.SUBSTITUTION_TAG]
FRAME_FEATURES = [BASE_FEATURE.IPD, BASE_FEATURE.PULSE_WIDTH]

CCS_FEATURES = [BASE_FEATURE.DELETION_QV, BASE_FEATURE.INSERTION_QV, BASE_FEATURE.SUBSTITUTION_QV]
"""
the only base features a CCS read ever advertises
"""

DEFAULT_PULSE_FEATURES = [
    BASE_FEATURE.DELETION_QV,
    BASE_FEATURE.DELETION_TAG,
    BASE_FEATURE.INSERTION_QV,
    BASE_FEATURE.IPD,
    BASE_FEATURE.MERGE_QV,
    BASE_FEATURE.SUBSTITUTION_QV,
    BASE_FEATURE.PULSE_WIDTH
]

FRAME_CODEC = Bax2BamNamespace(
    V1='V1',
    RAW='RAW'
)
"""
encoding of the frame (ip/pw) arrays

- ``V1``: lossy 8-bit PacBio codec
- ``RAW``: lossless 16-bit frame counts
"""

SCRAP_REGION = Bax2BamNamespace(
    ADAPTER='A',
    LQREGION='L'
)
"""
value of the sc tag on scrap records
"""

SCRAP_ZMW = Bax2BamNamespace(
    NORMAL='N'
)
"""
value of the sz tag on scrap records
"""

CONVERSION_MODE = Bax2BamNamespace(
    SUBREAD='subread',
    HQREGION='hqregion',
    POLYMERASE='polymerase',
    CCS='ccs'
)

OUTPUT_SUFFIX = {
    READ_TYPE.POLYMERASE: '.polymerase.bam',
    READ_TYPE.HQREGION: '.hqregions.bam',
    READ_TYPE.SUBREAD: '.subreads.bam',
    READ_TYPE.CCS: '.ccs.bam',
}
"""
output file suffix for the primary output of each read type
"""

SCRAP_SUFFIX = {
    READ_TYPE.HQREGION: '.lqregions.bam',
    READ_TYPE.SUBREAD: '.scraps.bam',
}
"""
output file suffix for the scrap output of read types which produce one
"""
