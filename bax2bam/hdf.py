"""
reader sessions for the legacy HDF5 basecaller files (bax.h5, bas.h5, ccs.h5)

All file, group and attribute handles belong to a single reader session and are released when the
session is closed
"""
import h5py
import numpy as np

from .constants import BASE_FEATURE, CCS_FEATURES, DEFAULT_REGION_TYPES, FEATURE_ATTRIBUTE, FEATURE_DATASET, SNR_BASES
from .error import InputFileError
from .region import RegionTable
from .util import LOG
from .zmw import CcsRecord, ZmwRecord

RUN_INFO_GROUP = 'ScanData/RunInfo'
ACQ_PARAMS_GROUP = 'ScanData/AcqParams'
DYE_SET_GROUP = 'ScanData/DyeSet'
BASECALLS_GROUP = 'PulseData/BaseCalls'
CONSENSUS_GROUP = 'PulseData/ConsensusBaseCalls'
REGIONS_DATASET = 'PulseData/Regions'


def decode_attribute(value):
    """
    normalize an HDF5 attribute value to a python string (or list of strings)

    Example:
        >>> decode_attribute(b'P6-C4')
        'P6-C4'
        >>> decode_attribute(np.array([b'Adapter', b'Insert']))
        ['Adapter', 'Insert']
    """
    if isinstance(value, np.ndarray):
        if value.shape == ():
            return decode_attribute(value[()])
        return [decode_attribute(v) for v in value.tolist()]
    if isinstance(value, (bytes, np.bytes_)):
        return value.decode('utf-8')
    return value


class RunInfo:
    """
    movie level attributes of a basecaller file

    Attributes:
        movie_name (str): the name of the movie
        binding_kit (str): None when the file does not have it
        sequencing_kit (str): None when the file does not have it
        basecaller_version (str): the ChangeListID of the basecaller, None when the file does not have it
        frame_rate (float): camera frame rate in Hz, None when the file does not have it. Numpy floats keep
            their stored precision so that the value can be rendered exactly as written
        base_map (str): order of the bases in the per-channel arrays
    """

    def __init__(
        self, movie_name, binding_kit=None, sequencing_kit=None, basecaller_version=None, frame_rate=None,
        base_map=SNR_BASES
    ):
        self.movie_name = movie_name
        self.binding_kit = binding_kit
        self.sequencing_kit = sequencing_kit
        self.basecaller_version = basecaller_version
        if frame_rate is not None and not isinstance(frame_rate, np.floating):
            frame_rate = float(frame_rate)
        self.frame_rate = frame_rate
        self.base_map = base_map

    def __repr__(self):
        return '{}(movie_name={})'.format(self.__class__.__name__, repr(self.movie_name))


class _Hdf5Session:
    """
    owns the h5py file handle of a single basecaller file
    """
    DATA_GROUP = BASECALLS_GROUP

    def __init__(self, filename):
        self.filename = filename
        self.fh = None
        try:
            self.fh = h5py.File(filename, 'r')
        except OSError as err:
            raise InputFileError('could not open the basecaller file', filename, str(err))
        if self.DATA_GROUP not in self.fh:
            self.close()
            raise InputFileError('missing required group {}'.format(self.DATA_GROUP), filename)
        self.data_group = self.fh[self.DATA_GROUP]
        self.hole_numbers = np.asarray(self.data_group['ZMW/HoleNumber'][()], dtype=np.uint32)
        self.num_events = np.asarray(self.data_group['ZMW/NumEvent'][()], dtype=np.int64)
        if len(self.hole_numbers) != len(self.num_events):
            self.close()
            raise InputFileError('ZMW/HoleNumber and ZMW/NumEvent differ in length', filename)
        self.offsets = np.concatenate([[0], np.cumsum(self.num_events)]).astype(np.int64)
        self._run_info = None

    def __enter__(self):
        return self

    def __exit__(self, *pos):
        self.close()

    def close(self):
        if self.fh is not None:
            self.fh.close()
            self.fh = None
            self.data_group = None

    def _attribute(self, group_name, attr):
        if group_name not in self.fh:
            return None
        attrs = self.fh[group_name].attrs
        if attr not in attrs:
            return None
        value = decode_attribute(attrs[attr])
        if isinstance(value, str) and not value:
            return None
        return value

    @property
    def run_info(self):
        if self._run_info is None:
            movie_name = self._attribute(RUN_INFO_GROUP, 'MovieName')
            if not movie_name:
                raise InputFileError('missing movie name ({}@MovieName)'.format(RUN_INFO_GROUP), self.filename)
            basecaller_version = self._attribute(BASECALLS_GROUP, 'ChangeListID')
            if basecaller_version is None and self.DATA_GROUP != BASECALLS_GROUP:
                basecaller_version = self._attribute(self.DATA_GROUP, 'ChangeListID')
            self._run_info = RunInfo(
                movie_name,
                binding_kit=self._attribute(RUN_INFO_GROUP, 'BindingKit'),
                sequencing_kit=self._attribute(RUN_INFO_GROUP, 'SequencingKit'),
                basecaller_version=basecaller_version,
                frame_rate=self._attribute(ACQ_PARAMS_GROUP, 'FrameRate'),
                base_map=self._attribute(DYE_SET_GROUP, 'BaseMap') or SNR_BASES,
            )
        return self._run_info

    def __len__(self):
        return len(self.hole_numbers)

    def _read(self, dataset_name, index):
        start = self.offsets[index]
        end = self.offsets[index + 1]
        return self.data_group[dataset_name][start:end]


class BaxReader(_Hdf5Session):
    """
    reader session over the polymerase reads of a bax.h5 (or single part bas.h5) file

    Example:
        >>> with BaxReader('m1.1.bax.h5') as reader:
        ...     table = reader.region_table()
        ...     for zmw in reader:
        ...         pass
    """

    def __init__(self, filename, features=None):
        """
        Args:
            filename (str): path to the bax.h5 file
            features (:class:`list` of :class:`str`): base features to load, all present features when None
        """
        _Hdf5Session.__init__(self, filename)
        if 'Basecall' not in self.data_group:
            self.close()
            raise InputFileError('missing the Basecall dataset', filename)
        present = self.present_features()
        self.features = present if features is None else [f for f in features if f in present]
        self._snr = None
        self._read_score = None
        if 'ZMWMetrics/HQRegionSNR' in self.data_group:
            self._snr = self.data_group['ZMWMetrics/HQRegionSNR'][()]
        if 'ZMWMetrics/ReadScore' in self.data_group:
            self._read_score = self.data_group['ZMWMetrics/ReadScore'][()]

    def present_features(self):
        """
        Returns:
            :class:`list` of :class:`str`: the base features which have a dataset in this file
        """
        return [f for f in BASE_FEATURE.values() if FEATURE_DATASET[f] in self.data_group]

    def region_table(self):
        """
        Returns:
            RegionTable: the region annotations of this file, empty when the file has no region table
        """
        if REGIONS_DATASET not in self.fh:
            LOG('no region table found in', self.filename)
            return RegionTable()
        regions = self.fh[REGIONS_DATASET]
        region_types = decode_attribute(regions.attrs['RegionTypes']) if 'RegionTypes' in regions.attrs else None
        rows = regions[()]
        if len(rows) and (rows.ndim != 2 or rows.shape[1] != 5):
            raise InputFileError('region table must have 5 columns', self.filename, rows.shape)
        return RegionTable.from_rows(rows.tolist(), region_types or DEFAULT_REGION_TYPES)

    def hq_region_snr(self, index):
        if self._snr is None:
            return [0.0] * len(SNR_BASES)
        snr = [float(s) for s in self._snr[index]]
        base_map = self.run_info.base_map.upper()
        return [snr[base_map.index(base)] for base in SNR_BASES]

    def read_zmw(self, index):
        """
        Args:
            index (int): position of the ZMW in the file

        Returns:
            ZmwRecord: the polymerase read
        """
        features = {}
        for feature in self.features:
            features[FEATURE_ATTRIBUTE[feature]] = self._read(FEATURE_DATASET[feature], index)
        return ZmwRecord(
            int(self.hole_numbers[index]),
            self._read('Basecall', index),
            hq_region_snr=self.hq_region_snr(index),
            read_score=None if self._read_score is None else float(self._read_score[index]),
            **features
        )

    def __iter__(self):
        for index in range(len(self)):
            yield self.read_zmw(index)


class CcsReader(_Hdf5Session):
    """
    reader session over the consensus reads of a ccs.h5 file
    """
    DATA_GROUP = CONSENSUS_GROUP

    def present_features(self):
        return [f for f in CCS_FEATURES if FEATURE_DATASET[f] in self.data_group]

    def read_zmw(self, index):
        features = {}
        for feature in self.present_features():
            features[FEATURE_ATTRIBUTE[feature]] = self._read(FEATURE_DATASET[feature], index)
        num_passes = 0
        if 'Passes/NumPasses' in self.data_group:
            num_passes = int(self.data_group['Passes/NumPasses'][index])
        qualities = self._read('QualityValue', index) if 'QualityValue' in self.data_group else None
        return CcsRecord(
            int(self.hole_numbers[index]),
            self._read('Basecall', index),
            num_passes=num_passes,
            qualities=qualities,
            **features
        )

    def __iter__(self):
        for index in range(len(self)):
            yield self.read_zmw(index)


def check_same_movie(readers):
    """
    Raises:
        InputFileError: the readers do not all belong to the same movie
    """
    movies = {r.run_info.movie_name for r in readers}
    if len(movies) > 1:
        raise InputFileError('all input files must belong to the same movie', sorted(movies))
    return movies.pop() if movies else None
