#!python
import argparse
import logging
import os
import platform
import sys
import time

from . import __version__
from . import config as _config
from .bam import BamWriter
from .constants import (
    CONVERSION_MODE,
    EXIT_ERROR,
    EXIT_OK,
    OUTPUT_SUFFIX,
    PROGNAME,
    READ_TYPE,
    SCRAP_SUFFIX,
    Bax2BamNamespace,
)
from .error import InputFileError, RegionTableError
from .hdf import BaxReader, CcsReader, check_same_movie
from .read_group import build_read_group
from .segment import SegmentationEngine
from . import util as _util

MODE_READ_TYPE = {
    CONVERSION_MODE.SUBREAD: READ_TYPE.SUBREAD,
    CONVERSION_MODE.HQREGION: READ_TYPE.HQREGION,
    CONVERSION_MODE.POLYMERASE: READ_TYPE.POLYMERASE,
    CONVERSION_MODE.CCS: READ_TYPE.CCS,
}


def output_filenames(output_prefix, read_type):
    """
    Returns:
        tuple: the primary output file and the scrap output file (None for read types without scraps)

    Example:
        >>> output_filenames('out/m1', 'SUBREAD')
        ('out/m1.subreads.bam', 'out/m1.scraps.bam')
    """
    scraps = None
    if read_type in SCRAP_SUFFIX:
        scraps = output_prefix + SCRAP_SUFFIX[read_type]
    return output_prefix + OUTPUT_SUFFIX[read_type], scraps


def _open_readers(inputs, read_type, pulse_features):
    readers = []
    try:
        for filename in inputs:
            if read_type == READ_TYPE.CCS:
                readers.append(CcsReader(filename))
            else:
                readers.append(BaxReader(filename, features=pulse_features))
    except Exception:
        for reader in readers:
            reader.close()
        raise
    return readers


def _shared_features(readers):
    features = None
    for reader in readers:
        present = set(reader.present_features())
        features = present if features is None else features & present
    return features or set()


def convert(
    inputs, mode=CONVERSION_MODE.SUBREAD, output_prefix=None, pulse_features=None, lossless_frames=False,
    processes=1, command_line=None, log=_util.LOG
):
    """
    convert the basecaller files of a single movie to BAM

    Args:
        inputs (:class:`list` of :class:`str`): paths to the bax.h5 (or ccs.h5) files of the movie, in order
        mode (str): one of :attr:`~bax2bam.constants.CONVERSION_MODE`
        output_prefix (str): prefix of the output files, defaults to the movie name
        pulse_features (:class:`list` of :class:`str`): base features to write, all present features when None
        lossless_frames (bool): write raw frame counts rather than V1 codes
        processes (int): number of worker processes
        command_line (str): written to the @PG header line

    Returns:
        :class:`list` of :class:`str`: the BAM files written

    Raises:
        InputFileError: an input file is unreadable or the inputs belong to different movies
    """
    read_type = MODE_READ_TYPE[CONVERSION_MODE.enforce(mode)]
    if not inputs:
        raise InputFileError('no input files given')
    readers = _open_readers(inputs, read_type, pulse_features)
    try:
        movie_name = check_same_movie(readers)
        if output_prefix is None:
            output_prefix = movie_name
        if os.path.dirname(output_prefix):
            _util.mkdirp(os.path.dirname(output_prefix))

        run_info = readers[0].run_info
        present_features = _shared_features(readers)
        read_group = build_read_group(
            run_info, read_type, requested_features=pulse_features, present_features=present_features,
            lossless_frames=lossless_frames)
        primary_file, scrap_file = output_filenames(output_prefix, read_type)

        log('writing:', primary_file, time_stamp=True)
        writer = BamWriter(primary_file, [read_group], command_line=command_line)
        scrap_writer = None
        try:
            if scrap_file:
                scrap_read_group = build_read_group(
                    run_info, READ_TYPE.SCRAP, requested_features=pulse_features,
                    present_features=present_features, lossless_frames=lossless_frames)
                log('writing:', scrap_file, time_stamp=True)
                scrap_writer = BamWriter(scrap_file, [scrap_read_group], command_line=command_line)

            for reader in readers:
                log('reading:', reader.filename, time_stamp=True)
                region_table = None
                if read_type != READ_TYPE.CCS:
                    region_table = reader.region_table()
                    log('loaded region annotations for', len(region_table), 'ZMWs', indent_level=1)
                engine = SegmentationEngine(
                    read_type, movie_name, region_table, processes=processes, log=log.indent())
                for records, scraps in engine.run(reader):
                    for record in records:
                        writer.write(record)
                    for scrap in scraps:
                        scrap_writer.write(scrap)
                log(
                    'processed {zmws} ZMWs: {records} records, {scraps} scraps, {skipped} ZMWs without records'.format(
                        **engine.counts), indent_level=1)
        finally:
            writer.close()
            if scrap_writer is not None:
                scrap_writer.close()
    finally:
        for reader in readers:
            reader.close()

    log('wrote', writer.count, 'records to', primary_file, time_stamp=True)
    if scrap_writer is not None:
        log('wrote', scrap_writer.count, 'records to', scrap_file, time_stamp=True)
        return [primary_file, scrap_file]
    return [primary_file]


def main(argv=None):
    """
    sets up the parser and checks the validity of command line args, then runs the conversion

    Args:
        argv (list): List of arguments, defaults to command line arguments
    """
    if argv is None:  # need to do at run time or patching will not behave as expected
        argv = sys.argv[1:]
    start_time = int(time.time())

    parser = argparse.ArgumentParser(
        prog=PROGNAME, formatter_class=_config.CustomHelpFormatter, add_help=False,
        description='converts PacBio basecaller files (bax.h5, ccs.h5) of a single movie to PacBio BAM')
    required = parser.add_argument_group('required arguments')
    optional = parser.add_argument_group('optional arguments')
    required.add_argument('inputs', nargs='+', help='path to the input files', metavar='FILEPATH')
    _config.augment_parser(['help', 'version', 'log', 'log_level'], optional)
    _config.augment_parser(_config.DEFAULTS.keys(), optional)

    args = Bax2BamNamespace(**parser.parse_args(argv).__dict__)

    log_conf = {'format': '{message}', 'style': '{', 'level': args.log_level}

    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    if args.log:  # redirect stdout AND stderr to a log file
        log_conf['filename'] = args.log
    logging.basicConfig(**log_conf)

    _util.LOG('{}: {}'.format(PROGNAME, __version__))
    _util.LOG('hostname:', platform.node(), time_stamp=False)
    _util.log_arguments(args)

    try:
        inputs = _util.bash_expands(*args.inputs)
    except FileNotFoundError:
        parser.error('input file(s) {} do not exist'.format(args.inputs))

    try:
        convert(
            inputs,
            mode=args.mode,
            output_prefix=args.output_prefix,
            pulse_features=args.pulse_features,
            lossless_frames=args.lossless_frames,
            processes=args.processes,
            command_line=' '.join([PROGNAME] + list(argv)),
        )
    except (InputFileError, RegionTableError, OSError) as err:
        _util.LOG('error:', err, level=logging.ERROR)
        return EXIT_ERROR

    duration = int(time.time()) - start_time
    _util.LOG('run time (s): {}'.format(duration), time_stamp=True)
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
