from datetime import datetime
from glob import glob
import logging
import os

from braceexpand import braceexpand

from .constants import Bax2BamNamespace, cast_boolean

ENV_VAR_PREFIX = 'BAX2BAM_'


class Log:
    """
    callable over the builtin logging. Positional args are joined with spaces and each nested step
    of the conversion is indented one level further than its parent
    """
    def __init__(self, indent_str='  ', indent_level=0, level=logging.INFO):
        self.indent_str = indent_str
        self.indent_level = indent_level
        self.level = level

    def __call__(self, *pos, time_stamp=False, level=None, indent_level=0, **kwargs):
        level = self.level if level is None else level
        if level is None:
            return
        prefix = datetime.now().strftime('[%Y-%m-%d %H:%M:%S]') if time_stamp else ' ' * 21
        prefix += ' ' + self.indent_str * (self.indent_level + indent_level)
        logging.log(level, prefix + ' '.join([str(p) for p in pos]), **kwargs)

    def indent(self):
        return Log(self.indent_str, self.indent_level + 1, self.level)

    def __enter__(self):
        return self

    def __exit__(self, *pos):
        pass


LOG = Log()
DEVNULL = Log(level=None)


def cast(value, cast_func):
    """
    Example:
        >>> cast('1', int)
        1
        >>> cast('false', bool)
        False
    """
    return cast_boolean(value) if cast_func == bool else cast_func(value)


def get_env_variable(arg, default, cast_type=None):
    """
    Args:
        arg (str): the option name, looked up as BAX2BAM_<NAME>
        default: returned when the variable is not set
        cast_type (callable): defaults to the type of the default

    Example:
        >>> get_env_variable('log_level', 'INFO')
        'INFO'
    """
    value = os.environ.get(ENV_VAR_PREFIX + str(arg).upper())
    if value is None:
        return default
    return cast(value, cast_type or type(default))


class WeakBax2BamNamespace(Bax2BamNamespace):
    """
    namespace where every attribute can be overridden by its BAX2BAM_ environment variable
    """

    def is_env_overwritable(self, attr):
        return True


def bash_expands(*expressions):
    """
    expand file expressions with bash-style braces and globs. Matches of each expression are sorted

    Returns:
        :class:`list` of :class:`str`: absolute paths to the matching files

    Raises:
        FileNotFoundError: an expression does not match any file

    Example:
        >>> bash_expands('./m1.{1,2,3}.bax.h5')
        [...]
    """
    result = []
    for expression in expressions:
        matches = []
        for name in braceexpand(expression):
            matches.extend(sorted(glob(name)))
        if not matches:
            raise FileNotFoundError('no files match the expression', expression)
        result.extend(matches)
    return [os.path.abspath(f) for f in result]


def log_arguments(args):
    """
    log the parsed command line, one argument per line

    Args:
        args (Bax2BamNamespace): the parsed arguments
    """
    LOG('arguments', time_stamp=True)
    with LOG.indent() as log:
        for arg, val in sorted(args.items()):
            if isinstance(val, list) and len(val) > 1:
                log(arg, '= [')
                for item in val:
                    log(repr(item), indent_level=1)
                log(']')
            elif isinstance(val, list):
                log(arg, '= {}'.format(val))
            else:
                log(arg, '=', repr(val))


def mkdirp(dirname):
    """
    create a directory and any missing parents. Existing directories are not an error

    Raises:
        OSError: the path exists and is not a directory
    """
    LOG("creating output directory: '{}'".format(dirname))
    os.makedirs(dirname, exist_ok=True)
    return dirname
