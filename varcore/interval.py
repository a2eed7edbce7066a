from .error import InvalidArgumentError


class Interval:
    """
    a 1-based, fully closed span of positions on a single contig
    """

    def __init__(self, contig, start, end=None):
        """
        Args:
            contig (str): the name of the contig/chromosome
            start (int): the start of the interval (inclusive)
            end (int): the end of the interval (inclusive)
        """
        self.contig = contig
        self.start = int(start)
        self.end = int(end) if end is not None else self.start
        if self.start > self.end:
            raise InvalidArgumentError('interval start > end is not allowed', self.start, self.end)

    def __getitem__(self, index):
        try:
            index = int(index)
        except ValueError:
            raise IndexError('index input accessor must be an integer', index)
        if index == 0:
            return self.start
        elif index == 1:
            return self.end
        raise IndexError('index input accessor is out of bounds: 1 or 2 only', index)

    def __len__(self):
        """
        the number of positions in the interval

        Example:
            >>> len(Interval('1', 1, 11))
            11
        """
        return self.end - self.start + 1

    def __eq__(self, other):
        if not isinstance(other, Interval):
            return NotImplemented
        return (self.contig, self.start, self.end) == (other.contig, other.start, other.end)

    def __lt__(self, other):
        return (self.contig, self.start, self.end) < (other.contig, other.start, other.end)

    def __hash__(self):
        return hash((self.contig, self.start, self.end))

    def __repr__(self):
        return '{}({}:{}-{})'.format(self.__class__.__name__, self.contig, self.start, self.end)

    def __contains__(self, other):
        if isinstance(other, Interval):
            return other.contig == self.contig and other.start >= self.start and other.end <= self.end
        return self.start <= other <= self.end

    def overlaps(self, other):
        """
        checks if two intervals have any positions in common

        Example:
            >>> Interval('1', 1, 4).overlaps(Interval('1', 5, 7))
            False
            >>> Interval('1', 1, 10).overlaps(Interval('1', 10, 11))
            True
        """
        if self.contig != other.contig:
            return False
        return not (self.end < other.start or self.start > other.end)

    def dist(self, other):
        """
        the minimum distance between two intervals on the same contig, 0 if they overlap

        Example:
            >>> Interval('1', 1, 4).dist(Interval('1', 5, 7))
            -1
            >>> Interval('1', 5, 7).dist(Interval('1', 1, 4))
            1
        """
        if self.end < other.start:
            return self.end - other.start
        elif self.start > other.end:
            return self.start - other.end
        return 0

    def union(self, other):
        """
        the smallest interval covering both intervals

        Raises:
            InvalidArgumentError: if the intervals are on different contigs
        """
        if self.contig != other.contig:
            raise InvalidArgumentError('cannot union intervals on different contigs', self, other)
        return Interval(self.contig, min(self.start, other.start), max(self.end, other.end))

    def intersection(self, other):
        """
        returns None if there is no intersection

        Example:
            >>> Interval('1', 1, 10).intersection(Interval('1', 7, 15))
            Interval(1:7-10)
        """
        if not self.overlaps(other):
            return None
        return Interval(self.contig, max(self.start, other.start), min(self.end, other.end))

    def expand(self, padding, contig_length=None):
        """
        pad both sides of the interval, staying within the bounds of the contig

        Args:
            padding (int): number of positions to add on either side
            contig_length (int): the last valid position of the contig, unbounded if not given

        Example:
            >>> Interval('1', 5, 10).expand(10, contig_length=15)
            Interval(1:1-15)
        """
        end = self.end + padding
        if contig_length is not None:
            end = min(end, contig_length)
        return Interval(self.contig, max(1, self.start - padding), max(end, self.end))
