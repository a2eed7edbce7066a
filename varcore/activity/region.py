from typing import List, Optional

from ..interval import Interval


class ActiveRegion:
    """
    a contiguous span of the activity profile in which every position is either active or inactive, an
    active region may also cover a short inactive gap between active runs which were joined

    Attributes:
        location (Interval): the positions the region was built from
        extended_location (Interval): the location padded by the extension, within the bounds of the contig
        is_active (bool): whether the filtered activity of the region is above the threshold
        supporting_states (List[ActivityProfileState]): the filtered states of each position in the region
        extension (int): the padding used for the extended location
    """

    def __init__(
        self,
        location: Interval,
        supporting_states: List,
        is_active: bool,
        extension: int = 0,
        contig_length: Optional[int] = None,
    ):
        self.location = location
        self.supporting_states = list(supporting_states)
        self.is_active = bool(is_active)
        self.extension = extension
        self.contig_length = contig_length
        self.extended_location = location.expand(extension, contig_length)

    @property
    def contig(self):
        return self.location.contig

    @property
    def start(self):
        return self.location.start

    @property
    def end(self):
        return self.location.end

    @property
    def size(self):
        return len(self.location)

    def __len__(self):
        return self.size

    def __eq__(self, other):
        if not isinstance(other, ActiveRegion):
            return NotImplemented
        return (self.location, self.is_active, self.extended_location) == (
            other.location,
            other.is_active,
            other.extended_location,
        )

    def __hash__(self):
        return hash((self.location, self.is_active, self.extended_location))

    def __repr__(self):
        return '{}({}:{}-{}, active={}, extended={}-{})'.format(
            self.__class__.__name__,
            self.contig,
            self.start,
            self.end,
            self.is_active,
            self.extended_location.start,
            self.extended_location.end,
        )
