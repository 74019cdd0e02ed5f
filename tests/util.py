import os

import h5py
import numpy as np
import pytest

MOVIE_NAME = 'm1'
BINDING_KIT = '100356300'
SEQUENCING_KIT = '100356200'
CHANGE_LIST_ID = '2.3.0.3.154799'
FRAME_RATE = 75.00577
FILE_BASE_MAP = 'TGAC'

long_running_test = pytest.mark.skipif(
    os.environ.get('RUN_FULL') != '1',
    reason='Only running FAST tests subset',
)


def mock_sequence(length, offset=0):
    bases = 'ACGT'
    return ''.join([bases[(i + offset) % 4] for i in range(length)])


def mock_features(length, offset=0):
    """
    per-base values which differ at every position so that slicing errors are visible
    """
    positions = np.arange(offset, offset + length)
    tags = np.array([ord('ACGTN'[p % 5]) for p in positions], dtype=np.uint8)
    return {
        'DeletionQV': (positions % 31).astype(np.uint8),
        'DeletionTag': tags,
        'InsertionQV': ((positions + 1) % 29).astype(np.uint8),
        'MergeQV': ((positions + 2) % 23).astype(np.uint8),
        'SubstitutionQV': ((positions + 3) % 19).astype(np.uint8),
        'SubstitutionTag': tags[::-1].copy(),
        'PreBaseFrames': (positions * 7 % 1200).astype(np.uint16),
        'WidthInFrames': (positions * 3 % 70).astype(np.uint16),
    }


def write_bax_file(
    filename, zmws, regions=(), movie_name=MOVIE_NAME, region_types=('Adapter', 'Insert', 'HQRegion'),
    datasets=None, binding_kit=BINDING_KIT, sequencing_kit=SEQUENCING_KIT, change_list_id=CHANGE_LIST_ID,
    frame_rate=FRAME_RATE, base_map=FILE_BASE_MAP, read_scores=None
):
    """
    write a minimal bax.h5 file

    Args:
        zmws (list): (hole number, read length) pairs in file order
        regions (list): region table rows (hole number, region type index, start, end, score)
        datasets (list): names of the per-base datasets to write, all when None
    """
    offsets = np.cumsum([0] + [length for _, length in zmws])
    total = int(offsets[-1])
    with h5py.File(filename, 'w') as fh:
        run_info = fh.create_group('ScanData/RunInfo')
        run_info.attrs['MovieName'] = movie_name
        if binding_kit is not None:
            run_info.attrs['BindingKit'] = binding_kit
        if sequencing_kit is not None:
            run_info.attrs['SequencingKit'] = sequencing_kit
        if frame_rate is not None:
            fh.create_group('ScanData/AcqParams').attrs['FrameRate'] = np.float32(frame_rate)  # bax files store float32
        fh.create_group('ScanData/DyeSet').attrs['BaseMap'] = base_map

        basecalls = fh.create_group('PulseData/BaseCalls')
        if change_list_id is not None:
            basecalls.attrs['ChangeListID'] = change_list_id
        basecalls.create_dataset('ZMW/HoleNumber', data=np.array([h for h, _ in zmws], dtype=np.uint32))
        basecalls.create_dataset('ZMW/NumEvent', data=np.array([n for _, n in zmws], dtype=np.int32))

        sequence = mock_sequence(total)
        basecalls.create_dataset('Basecall', data=np.frombuffer(sequence.encode('ascii'), dtype=np.uint8))
        basecalls.create_dataset('QualityValue', data=np.full(total, 20, dtype=np.uint8))
        for name, values in mock_features(total).items():
            if datasets is None or name in datasets:
                basecalls.create_dataset(name, data=values)

        # SNR columns follow the file base map
        snr = np.array([[10.0 + i, 20.0 + i, 30.0 + i, 40.0 + i] for i in range(len(zmws))], dtype=np.float32)
        basecalls.create_dataset('ZMWMetrics/HQRegionSNR', data=snr)
        if read_scores is not None:
            basecalls.create_dataset('ZMWMetrics/ReadScore', data=np.array(read_scores, dtype=np.float32))

        table = np.array(list(regions), dtype=np.int32).reshape((-1, 5))
        dset = fh.create_dataset('PulseData/Regions', data=table)
        if region_types is not None:
            dset.attrs['RegionTypes'] = [t.encode('ascii') for t in region_types]
    return filename


def write_ccs_file(filename, zmws, movie_name=MOVIE_NAME, num_passes=None):
    """
    write a minimal ccs.h5 file

    Args:
        zmws (list): (hole number, read length) pairs in file order
    """
    offsets = np.cumsum([0] + [length for _, length in zmws])
    total = int(offsets[-1])
    with h5py.File(filename, 'w') as fh:
        fh.create_group('ScanData/RunInfo').attrs['MovieName'] = movie_name
        fh['ScanData/RunInfo'].attrs['BindingKit'] = BINDING_KIT
        fh['ScanData/RunInfo'].attrs['SequencingKit'] = SEQUENCING_KIT
        fh.create_group('ScanData/AcqParams').attrs['FrameRate'] = np.float32(FRAME_RATE)
        fh.create_group('PulseData/BaseCalls').attrs['ChangeListID'] = CHANGE_LIST_ID

        ccs = fh.create_group('PulseData/ConsensusBaseCalls')
        ccs.create_dataset('ZMW/HoleNumber', data=np.array([h for h, _ in zmws], dtype=np.uint32))
        ccs.create_dataset('ZMW/NumEvent', data=np.array([n for _, n in zmws], dtype=np.int32))
        sequence = mock_sequence(total, offset=1)
        ccs.create_dataset('Basecall', data=np.frombuffer(sequence.encode('ascii'), dtype=np.uint8))
        ccs.create_dataset('QualityValue', data=(np.arange(total) % 40).astype(np.uint8))
        features = mock_features(total)
        for name in ['DeletionQV', 'InsertionQV', 'SubstitutionQV']:
            ccs.create_dataset(name, data=features[name])
        if num_passes is None:
            num_passes = [5] * len(zmws)
        ccs.create_dataset('Passes/NumPasses', data=np.array(num_passes, dtype=np.int32))
    return filename
