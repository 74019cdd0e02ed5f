"""
writing (and reading back) unaligned PacBio BAM files with pysam
"""
import array
import os

import numpy as np
import pysam

from . import __version__
from .codec import encode_frames
from .constants import (
    BASE_FEATURE,
    FEATURE_TAG,
    FRAME_CODEC,
    FRAME_FEATURES,
    NA_MAPPING_QUALITY,
    PACBIO_BAM_VERSION,
    PROGNAME,
    QV_FEATURES,
    SAM_VERSION,
    SORT_ORDER,
    TAG_FEATURES,
)
from .read_group import ReadGroupInfo

PBI_SUFFIX = '.pbi'
MAX_QV = 93
PHRED_OFFSET = 33
UNMAPPED_FLAG = 4


def qvs_to_ascii(qvs):
    """
    Phred+33 encode an array of quality values

    Example:
        >>> qvs_to_ascii([0, 10, 40])
        '!+I'
    """
    qvs = np.minimum(np.asarray(qvs, dtype=np.int64), MAX_QV) + PHRED_OFFSET
    return qvs.astype(np.uint8).tobytes().decode('ascii')


def ascii_to_qvs(string):
    """
    Example:
        >>> ascii_to_qvs('!+I').tolist()
        [0, 10, 40]
    """
    return (np.frombuffer(string.encode('ascii'), dtype=np.uint8) - PHRED_OFFSET).astype(np.uint8)


def build_header(read_groups, program_version=__version__, command_line=None):
    """
    Args:
        read_groups (:class:`list` of :class:`~bax2bam.read_group.ReadGroupInfo`): one per read type in the file
        program_version (str): version written to the @PG line
        command_line (str): command line written to the @PG line

    Returns:
        pysam.AlignmentHeader: the header
    """
    program = {'ID': PROGNAME, 'PN': PROGNAME, 'VN': program_version}
    if command_line:
        program['CL'] = command_line
    header = {
        'HD': {'VN': SAM_VERSION, 'SO': SORT_ORDER, 'pb': PACBIO_BAM_VERSION},
        'RG': [rg.to_header_dict() for rg in read_groups],
        'PG': [program],
    }
    return pysam.AlignmentHeader.from_dict(header)


def to_aligned_segment(record, header, read_group=None):
    """
    convert an output record to an unmapped pysam record

    Args:
        record (~bax2bam.segment.OutputRecord): the record to convert
        header (pysam.AlignmentHeader): header of the file the segment will be written to
        read_group (~bax2bam.read_group.ReadGroupInfo): restricts the features written to the advertised ones

    Returns:
        pysam.AlignedSegment: the BAM record
    """
    segment = pysam.AlignedSegment(header)
    segment.query_name = record.name
    segment.query_sequence = record.sequence
    segment.flag = UNMAPPED_FLAG
    segment.reference_id = -1
    segment.reference_start = -1
    segment.mapping_quality = NA_MAPPING_QUALITY
    segment.next_reference_id = -1
    segment.next_reference_start = -1
    segment.template_length = 0
    if record.features.qualities is not None:
        segment.query_qualities = array.array('B', record.features.qualities.tolist())

    segment.set_tag('RG', record.read_group_id, value_type='Z')
    segment.set_tag('zm', record.hole_number, value_type='i')
    if record.query_start is not None:
        segment.set_tag('qs', record.query_start, value_type='i')
        segment.set_tag('qe', record.query_end, value_type='i')
    segment.set_tag('np', record.num_passes, value_type='i')
    if record.read_score is not None:
        segment.set_tag('rq', record.read_score, value_type='f')
    if record.snr is not None:
        segment.set_tag('sn', array.array('f', record.snr))
    if record.local_context_flags is not None:
        segment.set_tag('cx', record.local_context_flags, value_type='i')

    ipd_codec = FRAME_CODEC.V1
    if read_group is not None and read_group.ipd_codec is not None:
        ipd_codec = read_group.ipd_codec
    for feature in BASE_FEATURE.values():
        values = record.features.feature(feature)
        if values is None:
            continue
        if read_group is not None and not read_group.has_base_feature(feature):
            continue
        tag = FEATURE_TAG[feature]
        if feature in QV_FEATURES:
            segment.set_tag(tag, qvs_to_ascii(values), value_type='Z')
        elif feature in TAG_FEATURES:
            segment.set_tag(tag, values, value_type='Z')
        elif feature in FRAME_FEATURES:
            codes = encode_frames(values, ipd_codec)
            typecode = 'B' if ipd_codec == FRAME_CODEC.V1 else 'H'
            segment.set_tag(tag, array.array(typecode, codes.tolist()))

    if record.scrap_region_type is not None:
        segment.set_tag('sc', record.scrap_region_type, value_type='A')
    if record.scrap_zmw_type is not None:
        segment.set_tag('sz', record.scrap_zmw_type, value_type='A')
    return segment


class BamWriter:
    """
    writes output records to a single BAM file

    Example:
        >>> with BamWriter('m1.subreads.bam', [read_group]) as writer:
        ...     writer.write(record)
    """

    def __init__(self, filename, read_groups, command_line=None):
        """
        Args:
            filename (str): path to the output BAM file
            read_groups (:class:`list` of :class:`~bax2bam.read_group.ReadGroupInfo`): read groups of the file
            command_line (str): written to the @PG line
        """
        self.filename = filename
        self.read_groups = {rg.read_group_id: rg for rg in read_groups}
        self.header = build_header(read_groups, command_line=command_line)
        self.fh = pysam.AlignmentFile(filename, 'wb', header=self.header)
        self.count = 0

    def write(self, record):
        read_group = self.read_groups.get(record.read_group_id)
        if read_group is None:
            raise KeyError('record references a read group not in the header', record.name, record.read_group_id)
        self.fh.write(to_aligned_segment(record, self.header, read_group))
        self.count += 1

    def close(self):
        if self.fh is not None:
            self.fh.close()
            self.fh = None

    def __enter__(self):
        return self

    def __exit__(self, *pos):
        self.close()


def read_groups_from_header(header):
    """
    Returns:
        :class:`list` of :class:`~bax2bam.read_group.ReadGroupInfo`: the read groups of a BAM header
    """
    return [ReadGroupInfo.from_header_dict(rg) for rg in header.to_dict().get('RG', [])]


def read_bam(filename):
    """
    read an unaligned BAM file written by :class:`BamWriter`

    Returns:
        tuple: the read groups (:class:`list` of :class:`~bax2bam.read_group.ReadGroupInfo`) and
        the records (:class:`list` of :class:`pysam.AlignedSegment`) in file order
    """
    with pysam.AlignmentFile(filename, 'rb', check_sq=False) as fh:
        read_groups = read_groups_from_header(fh.header)
        records = [read for read in fh.fetch(until_eof=True)]
    return read_groups, records


def index_exists(filename):
    """
    checks for the PacBio index (.pbi) of a BAM file
    """
    return os.path.isfile(filename + PBI_SUFFIX)
