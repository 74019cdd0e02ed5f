import hashlib

import numpy as np
import pytest

from bax2bam.constants import BASE_FEATURE, FRAME_CODEC, READ_TYPE
from bax2bam.hdf import RunInfo
from bax2bam.read_group import (
    ReadGroupInfo,
    build_read_group,
    format_frame_rate,
    make_read_group_id,
)

RUN_INFO = RunInfo(
    'm140905_042212_sidney_c100564852550000001823085912221377_s1_X0',
    binding_kit='100356300',
    sequencing_kit='100356200',
    basecaller_version='2.3.0.3.154799',
    frame_rate=75.00577,
)


class TestMakeReadGroupId:
    def test_known_values(self):
        assert make_read_group_id('m1', READ_TYPE.SUBREAD) == 'a09d3ff6'
        assert make_read_group_id('m1', READ_TYPE.HQREGION) == '2aa4aa23'
        assert make_read_group_id('m1', READ_TYPE.POLYMERASE) == '9cc0876a'
        assert make_read_group_id('m1', READ_TYPE.SCRAP) == 'e40bed2d'
        assert make_read_group_id('m1', READ_TYPE.CCS) == '8c505a99'

    def test_matches_md5(self):
        movie = RUN_INFO.movie_name
        for read_type in READ_TYPE.values():
            expected = hashlib.md5('{}//{}'.format(movie, read_type).encode('utf-8')).hexdigest()[:8]
            assert make_read_group_id(movie, read_type) == expected

    def test_bad_read_type(self):
        with pytest.raises(KeyError):
            make_read_group_id('m1', 'subread')


class TestFormatFrameRate:
    def test_format(self):
        assert format_frame_rate(75.00577) == '75.00577'
        assert format_frame_rate(80) == '80.0'
        assert format_frame_rate(np.float32(75.00577)) == '75.00577'
        assert format_frame_rate(np.float64(75.00577)) == '75.00577'
        assert format_frame_rate(None) is None


class TestReadGroupInfo:
    def test_optional_attributes_absent(self):
        rg = ReadGroupInfo('m1', READ_TYPE.POLYMERASE, basecaller_version='', binding_kit=None)
        assert rg.basecaller_version is None
        assert rg.binding_kit is None
        assert rg.description() == 'READTYPE=POLYMERASE'
        assert rg.to_header_dict() == {'ID': '9cc0876a', 'PL': 'PACBIO', 'PU': 'm1', 'DS': 'READTYPE=POLYMERASE'}

    def test_description(self):
        rg = ReadGroupInfo(
            'm1', READ_TYPE.SUBREAD, basecaller_version='2.3', binding_kit='B', sequencing_kit='S',
            frame_rate_hz='75.0', features=[BASE_FEATURE.PULSE_WIDTH, BASE_FEATURE.DELETION_QV, BASE_FEATURE.IPD],
            ipd_codec=FRAME_CODEC.V1)
        assert rg.description() == (
            'READTYPE=SUBREAD;DeletionQV=dq;Ipd:CodecV1=ip;PulseWidth:CodecV1=pw;'
            'BINDINGKIT=B;SEQUENCINGKIT=S;BASECALLERVERSION=2.3;FRAMERATEHZ=75.0'
        )

    def test_lossless_description(self):
        rg = ReadGroupInfo('m1', READ_TYPE.SUBREAD, features=[BASE_FEATURE.IPD], ipd_codec=FRAME_CODEC.RAW)
        assert rg.description() == 'READTYPE=SUBREAD;Ipd:Frames=ip'

    def test_frame_features_need_codec(self):
        with pytest.raises(ValueError):
            ReadGroupInfo('m1', READ_TYPE.SUBREAD, features=[BASE_FEATURE.IPD])

    def test_base_feature_tag(self):
        rg = ReadGroupInfo('m1', READ_TYPE.SUBREAD, features=[BASE_FEATURE.SUBSTITUTION_TAG])
        assert rg.has_base_feature(BASE_FEATURE.SUBSTITUTION_TAG)
        assert rg.base_feature_tag(BASE_FEATURE.SUBSTITUTION_TAG) == 'st'
        assert not rg.has_base_feature(BASE_FEATURE.DELETION_TAG)
        with pytest.raises(KeyError):
            rg.base_feature_tag(BASE_FEATURE.DELETION_TAG)

    def test_from_header_dict(self):
        rg = build_read_group(RUN_INFO, READ_TYPE.SUBREAD)
        parsed = ReadGroupInfo.from_header_dict(rg.to_header_dict())
        assert parsed == rg
        assert parsed.ipd_codec == FRAME_CODEC.V1
        assert parsed.frame_rate_hz == '75.00577'

    def test_eq_other_types(self):
        rg = ReadGroupInfo('m1', READ_TYPE.SUBREAD)
        assert rg == ReadGroupInfo('m1', READ_TYPE.SUBREAD)
        assert rg != ReadGroupInfo('m1', READ_TYPE.SCRAP)
        assert rg != None  # noqa: E711
        assert rg != 'a09d3ff6'

    def test_from_description_requires_read_type(self):
        with pytest.raises(ValueError):
            ReadGroupInfo.from_description('a09d3ff6', 'm1', 'DeletionQV=dq')


class TestBuildReadGroup:
    def test_subread(self):
        rg = build_read_group(
            RUN_INFO, READ_TYPE.SUBREAD,
            requested_features=[
                BASE_FEATURE.DELETION_QV, BASE_FEATURE.DELETION_TAG, BASE_FEATURE.INSERTION_QV, BASE_FEATURE.IPD,
                BASE_FEATURE.MERGE_QV, BASE_FEATURE.SUBSTITUTION_QV, BASE_FEATURE.PULSE_WIDTH
            ])
        assert rg.read_group_id == make_read_group_id(RUN_INFO.movie_name, READ_TYPE.SUBREAD)
        assert rg.platform == 'PACBIO'
        assert rg.movie_name == RUN_INFO.movie_name
        assert rg.read_type == 'SUBREAD'
        assert rg.basecaller_version == '2.3.0.3.154799'
        assert rg.binding_kit == '100356300'
        assert rg.sequencing_kit == '100356200'
        assert float(rg.frame_rate_hz) == pytest.approx(75.00577)
        assert rg.base_feature_tag(BASE_FEATURE.DELETION_QV) == 'dq'
        assert rg.base_feature_tag(BASE_FEATURE.DELETION_TAG) == 'dt'
        assert rg.base_feature_tag(BASE_FEATURE.INSERTION_QV) == 'iq'
        assert rg.base_feature_tag(BASE_FEATURE.IPD) == 'ip'
        assert rg.base_feature_tag(BASE_FEATURE.MERGE_QV) == 'mq'
        assert rg.base_feature_tag(BASE_FEATURE.SUBSTITUTION_QV) == 'sq'
        assert rg.base_feature_tag(BASE_FEATURE.PULSE_WIDTH) == 'pw'
        assert not rg.has_base_feature(BASE_FEATURE.SUBSTITUTION_TAG)
        assert rg.ipd_codec == FRAME_CODEC.V1

    def test_present_features_limit(self):
        rg = build_read_group(
            RUN_INFO, READ_TYPE.POLYMERASE, present_features=[BASE_FEATURE.DELETION_QV, BASE_FEATURE.MERGE_QV])
        assert sorted(rg.features) == [BASE_FEATURE.DELETION_QV, BASE_FEATURE.MERGE_QV]
        assert rg.ipd_codec is None

    def test_ccs(self):
        rg = build_read_group(RUN_INFO, READ_TYPE.CCS)
        assert sorted(rg.features) == sorted([BASE_FEATURE.DELETION_QV, BASE_FEATURE.INSERTION_QV, BASE_FEATURE.SUBSTITUTION_QV])
        for feature in [BASE_FEATURE.DELETION_TAG, BASE_FEATURE.IPD, BASE_FEATURE.MERGE_QV, BASE_FEATURE.SUBSTITUTION_TAG]:
            assert not rg.has_base_feature(feature)

    def test_lossless_frames(self):
        rg = build_read_group(RUN_INFO, READ_TYPE.SUBREAD, lossless_frames=True)
        assert rg.ipd_codec == FRAME_CODEC.RAW
        assert 'Ipd:Frames=ip' in rg.description()

    def test_missing_run_info(self):
        rg = build_read_group(RunInfo('m1'), READ_TYPE.HQREGION, requested_features=[])
        assert rg.binding_kit is None
        assert rg.sequencing_kit is None
        assert rg.basecaller_version is None
        assert rg.frame_rate_hz is None
        assert rg.description() == 'READTYPE=HQREGION'
        assert rg.read_group_id == '2aa4aa23'
