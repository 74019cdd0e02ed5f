"""
converts legacy PacBio basecaller (bax.h5/ccs.h5) files to PacBio BAM
"""
__version__ = '0.3.0'
