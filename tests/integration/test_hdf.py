import os
import shutil
from tempfile import mkdtemp
import unittest

import h5py
import numpy as np

from bax2bam.constants import BASE_FEATURE, CCS_FEATURES, READ_TYPE
from bax2bam.error import InputFileError
from bax2bam.hdf import BaxReader, CcsReader, RunInfo, check_same_movie, decode_attribute
from bax2bam.interval import compute_subread_intervals
from bax2bam.read_group import build_read_group

from . import ZMWS, mock_bax, mock_ccs_h5
from ..util import BINDING_KIT, CHANGE_LIST_ID, FRAME_RATE, SEQUENCING_KIT, mock_features, mock_sequence


class TestDecodeAttribute(unittest.TestCase):

    def test_bytes(self):
        self.assertEqual('P6-C4', decode_attribute(b'P6-C4'))
        self.assertEqual('P6-C4', decode_attribute(np.bytes_(b'P6-C4')))

    def test_array(self):
        self.assertEqual(['Adapter', 'Insert'], decode_attribute(np.array([b'Adapter', b'Insert'])))

    def test_scalar(self):
        self.assertEqual(75.5, decode_attribute(75.5))
        self.assertEqual('x', decode_attribute(np.array(b'x')))


class TestBaxReader(unittest.TestCase):

    def setUp(self):
        self.output = mkdtemp()
        self.filename = mock_bax(self.output)

    def tearDown(self):
        shutil.rmtree(self.output)

    def test_run_info(self):
        with BaxReader(self.filename) as reader:
            run_info = reader.run_info
            self.assertEqual('m1', run_info.movie_name)
            self.assertEqual(BINDING_KIT, run_info.binding_kit)
            self.assertEqual(SEQUENCING_KIT, run_info.sequencing_kit)
            self.assertEqual(CHANGE_LIST_ID, run_info.basecaller_version)
            self.assertAlmostEqual(FRAME_RATE, run_info.frame_rate, places=5)
            self.assertEqual('TGAC', run_info.base_map)

    def test_float32_frame_rate_rendered_as_stored(self):
        with BaxReader(self.filename) as reader:
            run_info = reader.run_info
        self.assertEqual(np.float32, type(run_info.frame_rate))
        self.assertEqual('75.00577', build_read_group(run_info, READ_TYPE.SUBREAD).frame_rate_hz)
        self.assertIn('FRAMERATEHZ=75.00577', build_read_group(run_info, READ_TYPE.SUBREAD).description())

    def test_missing_run_info(self):
        filename = mock_bax(
            self.output, name='bare.bax.h5', binding_kit=None, sequencing_kit=None, change_list_id=None,
            frame_rate=None)
        with BaxReader(filename) as reader:
            run_info = reader.run_info
            self.assertIsNone(run_info.binding_kit)
            self.assertIsNone(run_info.sequencing_kit)
            self.assertIsNone(run_info.basecaller_version)
            self.assertIsNone(run_info.frame_rate)

    def test_missing_movie_name(self):
        with h5py.File(self.filename, 'a') as fh:
            del fh['ScanData/RunInfo'].attrs['MovieName']
        with BaxReader(self.filename) as reader:
            with self.assertRaises(InputFileError):
                reader.run_info

    def test_iteration(self):
        with BaxReader(self.filename) as reader:
            self.assertEqual(len(ZMWS), len(reader))
            zmws = list(reader)
        self.assertEqual([h for h, _ in ZMWS], [z.hole_number for z in zmws])
        self.assertEqual([n for _, n in ZMWS], [len(z) for z in zmws])

        total = sum([n for _, n in ZMWS])
        features = mock_features(total)
        sequence = mock_sequence(total)
        offset = 120 + 50 + 110
        fifth = zmws[4]
        self.assertEqual(sequence[offset:offset + 60], fifth.sequence)
        self.assertEqual(features['DeletionQV'][offset:offset + 60].tolist(), fifth.deletion_qv.tolist())
        self.assertEqual(features['PreBaseFrames'][offset:offset + 60].tolist(), fifth.ipd.tolist())
        self.assertEqual(features['WidthInFrames'][offset:offset + 60].tolist(), fifth.pulse_width.tolist())
        self.assertEqual(
            features['SubstitutionTag'][offset:offset + 60].tobytes().decode('ascii'), fifth.substitution_tag)
        self.assertIsNone(fifth.qualities)

    def test_snr_reordered_to_acgt(self):
        with BaxReader(self.filename) as reader:
            first = reader.read_zmw(0)
            third = reader.read_zmw(2)
        # the file stores T, G, A, C
        self.assertEqual([30.0, 40.0, 20.0, 10.0], first.hq_region_snr)
        self.assertEqual([32.0, 42.0, 22.0, 12.0], third.hq_region_snr)

    def test_read_score(self):
        filename = mock_bax(self.output, name='rs.bax.h5', read_scores=[0.5, 0.6, 0.7, 0.0, 0.9])
        with BaxReader(filename) as reader:
            self.assertAlmostEqual(0.6, reader.read_zmw(1).read_score, places=5)
        with BaxReader(self.filename) as reader:
            self.assertIsNone(reader.read_zmw(1).read_score)

    def test_requested_features(self):
        with BaxReader(self.filename, features=[BASE_FEATURE.DELETION_QV, BASE_FEATURE.IPD]) as reader:
            zmw = reader.read_zmw(0)
        self.assertEqual([BASE_FEATURE.DELETION_QV, BASE_FEATURE.IPD], zmw.present_features())

    def test_present_features(self):
        filename = mock_bax(self.output, name='few.bax.h5', datasets=['DeletionQV', 'MergeQV'])
        with BaxReader(filename) as reader:
            self.assertEqual([BASE_FEATURE.DELETION_QV, BASE_FEATURE.MERGE_QV], reader.present_features())
            zmw = reader.read_zmw(0)
        self.assertIsNone(zmw.ipd)
        self.assertIsNone(zmw.insertion_qv)

    def test_region_table(self):
        with BaxReader(self.filename) as reader:
            table = reader.region_table()
        self.assertEqual([1, 3, 5], table.hole_numbers())
        self.assertEqual((10, 100), (table[1].hq_start, table[1].hq_end))
        self.assertEqual(850, table[1].hq_score)
        self.assertEqual(
            [(10, 20), (30, 60), (70, 100)],
            [(i.start, i.end) for i in compute_subread_intervals(1, table)])
        self.assertFalse(table[2].has_hq_region())

    def test_region_table_without_types(self):
        filename = mock_bax(self.output, name='notypes.bax.h5', region_types=None)
        with BaxReader(filename) as reader:
            table = reader.region_table()
        self.assertEqual(10, table[1].hq_start)

    def test_missing_region_table(self):
        with h5py.File(self.filename, 'a') as fh:
            del fh['PulseData/Regions']
        with BaxReader(self.filename) as reader:
            self.assertEqual(0, len(reader.region_table()))

    def test_close(self):
        reader = BaxReader(self.filename)
        reader.close()
        self.assertIsNone(reader.fh)
        reader.close()

    def test_not_hdf5(self):
        filename = os.path.join(self.output, 'text.bax.h5')
        with open(filename, 'w') as fh:
            fh.write('not hdf5')
        with self.assertRaises(InputFileError):
            BaxReader(filename)

    def test_missing_file(self):
        with self.assertRaises(InputFileError):
            BaxReader(os.path.join(self.output, 'missing.bax.h5'))

    def test_missing_basecalls(self):
        filename = os.path.join(self.output, 'nobasecalls.bax.h5')
        with h5py.File(filename, 'w') as fh:
            fh.create_group('ScanData/RunInfo').attrs['MovieName'] = 'm1'
        with self.assertRaises(InputFileError):
            BaxReader(filename)

    def test_check_same_movie(self):
        other = mock_bax(self.output, name='m2.1.bax.h5', movie_name='m2')
        with BaxReader(self.filename) as first, BaxReader(other) as second:
            self.assertEqual('m1', check_same_movie([first]))
            with self.assertRaises(InputFileError):
                check_same_movie([first, second])


class TestCcsReader(unittest.TestCase):

    def setUp(self):
        self.output = mkdtemp()
        self.filename = mock_ccs_h5(self.output, num_passes=[4, 0, 9])

    def tearDown(self):
        shutil.rmtree(self.output)

    def test_records(self):
        with CcsReader(self.filename) as reader:
            self.assertEqual('m1', reader.run_info.movie_name)
            self.assertEqual(CHANGE_LIST_ID, reader.run_info.basecaller_version)
            self.assertEqual(sorted(CCS_FEATURES), sorted(reader.present_features()))
            records = list(reader)
        self.assertEqual([1, 3, 5], [r.hole_number for r in records])
        self.assertEqual([40, 0, 25], [len(r) for r in records])
        self.assertEqual([4, 0, 9], [r.num_passes for r in records])
        self.assertEqual((np.arange(40, 65) % 40).tolist(), records[2].qualities.tolist())
        self.assertIsNone(records[0].ipd)

    def test_bax_is_not_ccs(self):
        filename = mock_bax(self.output)
        with self.assertRaises(InputFileError):
            CcsReader(filename)


class TestRunInfo(unittest.TestCase):

    def test_defaults(self):
        run_info = RunInfo('m1', frame_rate='80')
        self.assertEqual(80.0, run_info.frame_rate)
        self.assertEqual('ACGT', run_info.base_map)
