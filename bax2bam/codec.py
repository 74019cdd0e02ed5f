"""
the PacBio V1 frame codec used to store IPD and pulse width frame counts in 8 bits
"""
import numpy as np

from .constants import FRAME_CODEC

CODEC_BASE = 2
CODEC_BITS = 6


def _make_framepoints():
    """
    the 256 frame counts which can be represented exactly. Four blocks of 64 points, the step between
    points doubling with each block: 0-63 by 1, 64-190 by 2, 192-444 by 4, 448-952 by 8
    """
    block_size = CODEC_BASE ** CODEC_BITS
    framepoints = []
    next_point = 0
    for block in range(256 // block_size):
        grain = CODEC_BASE ** block
        points = [j * grain + next_point for j in range(block_size)]
        next_point = points[-1] + grain
        framepoints.extend(points)
    return np.array(framepoints, dtype=np.uint16)


def _make_frame_to_code(framepoints):
    frame_to_code = np.zeros(int(framepoints[-1]) + 1, dtype=np.uint8)
    for code in range(len(framepoints) - 1):
        lower = int(framepoints[code])
        upper = int(framepoints[code + 1])
        if upper > lower + 1:
            middle = (lower + upper) // 2
            frame_to_code[lower:middle] = code
            frame_to_code[middle:upper] = code + 1
        else:
            frame_to_code[lower] = code
    frame_to_code[-1] = len(framepoints) - 1
    return frame_to_code


FRAMEPOINTS = _make_framepoints()
FRAME_TO_CODE = _make_frame_to_code(FRAMEPOINTS)
MAX_FRAMEPOINT = int(FRAMEPOINTS[-1])


def encode_frames_v1(frames):
    """
    encode frame counts to V1 codes. Counts above the largest framepoint saturate

    Example:
        >>> encode_frames_v1([0, 63, 64, 65, 953, 10000]).tolist()
        [0, 63, 64, 65, 255, 255]
    """
    frames = np.minimum(np.asarray(frames, dtype=np.int64), MAX_FRAMEPOINT)
    if frames.size and frames.min() < 0:
        raise ValueError('frame counts must be non-negative')
    return FRAME_TO_CODE[frames]


def decode_frames_v1(codes):
    """
    decode V1 codes back to frame counts

    Example:
        >>> decode_frames_v1([0, 64, 65, 255]).tolist()
        [0, 64, 66, 952]
    """
    return FRAMEPOINTS[np.asarray(codes, dtype=np.uint8)]


def encode_frames(frames, codec):
    """
    Args:
        frames: the frame counts
        codec (str): one of :attr:`~bax2bam.constants.FRAME_CODEC`

    Returns:
        numpy.ndarray: uint8 codes for V1, uint16 counts for RAW
    """
    if FRAME_CODEC.enforce(codec) == FRAME_CODEC.V1:
        return encode_frames_v1(frames)
    return np.asarray(frames, dtype=np.uint16)
