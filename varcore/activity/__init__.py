"""
band pass filtered activity profiles and the active regions they are partitioned into
"""
from .profile import (
    ActivityProfile,
    ActivityProfileState,
    BandPassActivityProfile,
    determine_filter_size,
    make_kernel,
)
from .region import ActiveRegion
