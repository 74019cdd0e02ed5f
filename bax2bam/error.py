class SliceRangeError(IndexError):
    """
    raised when a feature slice is requested outside of the bounds of a ZMW record

    the slicer never truncates or pads, a bad range is a bug in the caller
    """
    pass


class InputFileError(ValueError):
    """
    raised when an input basecaller file is missing required groups or does not match the other inputs
    """
    pass


class RegionTableError(ValueError):
    pass
