import argparse

from . import __version__
from .constants import BASE_FEATURE, CONVERSION_MODE, DEFAULT_PULSE_FEATURES, cast_boolean
from .util import WeakBax2BamNamespace, get_env_variable


def cast_base_feature(name):
    """
    match a base feature name ignoring case, so that the legacy spelling IPD is accepted

    Example:
        >>> cast_base_feature('IPD')
        'Ipd'
    """
    for feature in BASE_FEATURE.values():
        if feature.lower() == str(name).lower():
            return feature
    raise TypeError('Invalid base feature {}. Must be one of: {}'.format(repr(name), BASE_FEATURE.values()))


DEFAULTS = WeakBax2BamNamespace()
DEFAULTS.add(
    'mode', CONVERSION_MODE.SUBREAD, cast_type=CONVERSION_MODE,
    defn='the type of reads to produce. subread and hqregion also write a companion scraps/lqregions file',
)
DEFAULTS.add(
    'output_prefix', None, cast_type=str, nullable=True,
    defn='prefix for the output files. Defaults to the movie name in the current directory',
)
DEFAULTS.add(
    'pulse_features', DEFAULT_PULSE_FEATURES, cast_type=cast_base_feature, listable=True,
    defn='base features to write when present in the input files',
)
DEFAULTS.add(
    'lossless_frames', False, cast_type=cast_boolean,
    defn='store IPD and pulse width as raw 16-bit frame counts instead of the lossy 8-bit V1 codec',
)
DEFAULTS.add(
    'processes', 1, cast_type=int,
    defn='number of worker processes used to segment ZMWs',
)


class CustomHelpFormatter(argparse.ArgumentDefaultsHelpFormatter):
    """
    subclass the default help formatter to stop default printing for required arguments
    """

    def _format_args(self, action, default_metavar):
        if action.metavar is None:
            action.metavar = get_metavar(action.type)
        return super(CustomHelpFormatter, self)._format_args(action, default_metavar)

    def _get_help_string(self, action):
        if action.required:
            return action.help
        return super(CustomHelpFormatter, self)._get_help_string(action)

    def add_arguments(self, actions):
        # sort the arguments alphanumerically so they print in the help that way
        actions = sorted(actions, key=lambda x: getattr(x, 'option_strings'))
        super(CustomHelpFormatter, self).add_arguments(actions)


def get_metavar(arg_type):
    """
    For a given argument type, returns the string to be used for the metavar argument in add_argument

    Example:
        >>> get_metavar(bool)
        '{True,False}'
    """
    if arg_type in [bool, cast_boolean]:
        return '{True,False}'
    elif arg_type == float:
        return 'FLOAT'
    elif arg_type == int:
        return 'INT'
    elif arg_type == CONVERSION_MODE:
        return '{{{}}}'.format(','.join(CONVERSION_MODE.values()))
    elif arg_type in [BASE_FEATURE, cast_base_feature]:
        return 'FEATURE'
    return None


def augment_parser(arguments, parser):
    """
    Adds options to the argument parser. Separate function to facilitate the pipeline steps
    all having a similar look/feel

    Args:
        arguments (:class:`list` of :class:`str`): names of the arguments to add
        parser (argparse.ArgumentParser): the parser (or argument group) to add them to
    """
    for arg in arguments:
        if arg == 'help':
            parser.add_argument('-h', '--help', action='help', help='show this help message and exit')
        elif arg == 'version':
            parser.add_argument(
                '-v', '--version', action='version', version='%(prog)s version ' + __version__,
                help='Outputs the version number')
        elif arg == 'log':
            parser.add_argument('--log', help='redirect stdout to a log file', default=None)
        elif arg == 'log_level':
            parser.add_argument(
                '--log_level', help='level of logging to output', choices=['INFO', 'DEBUG'],
                default=get_env_variable('log_level', 'INFO'))
        elif arg == 'output_prefix':
            parser.add_argument(
                '-o', '--output_prefix', default=DEFAULTS.output_prefix, help=DEFAULTS.define(arg),
                metavar='PREFIX')
        elif arg == 'pulse_features':
            parser.add_argument(
                '--pulse_features', default=DEFAULTS.pulse_features, type=_pulse_feature_list,
                help=DEFAULTS.define(arg) + '. Comma separated, one of: {}'.format(','.join(BASE_FEATURE.values())),
                metavar='FEATURE[,FEATURE...]')
        elif arg in DEFAULTS:
            value_type = DEFAULTS.type(arg)
            default_value = DEFAULTS[arg]
            if value_type in [bool, cast_boolean]:
                parser.add_argument(
                    '--{}'.format(arg), default=default_value, type=cast_boolean, nargs='?', const=True,
                    help=DEFAULTS.define(arg), metavar=get_metavar(value_type))
            elif value_type == CONVERSION_MODE:
                parser.add_argument(
                    '--{}'.format(arg), default=default_value, choices=CONVERSION_MODE.values(),
                    help=DEFAULTS.define(arg))
            else:
                parser.add_argument(
                    '--{}'.format(arg), default=default_value, type=value_type,
                    help=DEFAULTS.define(arg))
        else:
            raise KeyError('invalid argument', arg)


def _pulse_feature_list(string):
    try:
        return WeakBax2BamNamespace.parse_listable_string(string, cast_base_feature)
    except TypeError as err:
        raise argparse.ArgumentTypeError(str(err))
