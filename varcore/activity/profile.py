"""
Per-position activity profiles which are smoothed and partitioned into active and inactive regions

Positions are added one at a time and in order. The raw probabilities are stored as added and the filtered
(smoothed) values are computed when they are read. A filtered value is cached once no future addition can
change it, and only those final positions are ever popped from the profile so that the regions returned
do not depend on how often the profile is popped
"""
import math
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from ..constants import DEFAULTS, STATE_TYPE, float_fraction
from ..error import DiscontinuityError, InvalidArgumentError
from ..interval import Interval
from .region import ActiveRegion


@dataclass(frozen=True)
class ActivityProfileState:
    """
    the probability that a single position is active

    Attributes:
        contig: the contig/chromosome name
        position: the 1-based position
        prob: the probability the position is active
        state_type: the kind of extra evidence the state carries (:attr:`~varcore.constants.STATE_TYPE`)
        value: for soft-clip states, the number of high quality soft clipped bases
    """

    contig: str
    position: int
    prob: float
    state_type: str = STATE_TYPE.NONE
    value: Optional[float] = None

    @property
    def location(self) -> Interval:
        return Interval(self.contig, self.position)


def make_kernel(filter_size: int, sigma: float) -> np.ndarray:
    """
    Build a normalized gaussian kernel

    Args:
        filter_size: the half-width of the kernel
        sigma: the standard deviation of the gaussian, 0 gives a kernel with all weight on the center

    Returns:
        numpy.ndarray: the 2 * filter_size + 1 kernel weights

    Raises:
        InvalidArgumentError: the filter size or sigma is negative

    Example:
        >>> make_kernel(1, 1).round(3).tolist()
        [0.274, 0.452, 0.274]
    """
    if filter_size < 0:
        raise InvalidArgumentError('filter size cannot be negative', filter_size)
    if sigma < 0:
        raise InvalidArgumentError('sigma cannot be negative', sigma)
    offsets = np.arange(-filter_size, filter_size + 1, dtype=float)
    if sigma == 0:
        kernel = (offsets == 0).astype(float)
    else:
        kernel = np.exp(-(offsets ** 2) / (2 * sigma ** 2))
    return kernel / kernel.sum()


def determine_filter_size(kernel: np.ndarray, min_prob_to_keep: Optional[float] = None) -> int:
    """
    the half-width of the kernel once the tail weights below the minimum probability are dropped
    """
    if min_prob_to_keep is None:
        min_prob_to_keep = DEFAULTS.min_prob_to_keep_in_filter
    middle = (len(kernel) - 1) // 2
    end = middle
    while end > 0 and kernel[end - 1] >= min_prob_to_keep:
        end -= 1
    return middle - end


def _split_run(length: int, max_size: int) -> List[int]:
    """
    the sizes of the fewest chunks no larger than max_size which a run splits into, sizes differ by at most one

    Example:
        >>> _split_run(210, 100)
        [70, 70, 70]
        >>> _split_run(7, 3)
        [3, 2, 2]
    """
    count = -(-length // max_size)
    size, extra = divmod(length, count)
    return [size + 1] * extra + [size] * (count - extra)


def _merge_runs(runs: List[List], extension: int) -> List[List]:
    """
    join active runs whose extended spans overlap or touch, absorbing the inactive gap between them
    """
    blocks = []
    for offset, length, active in runs:
        if active and len(blocks) >= 2 and not blocks[-1][2] and blocks[-1][1] <= 2 * extension:
            gap = blocks.pop()
            blocks[-1][1] += gap[1] + length
        else:
            blocks.append([offset, length, active])
    return blocks


class ActivityProfile:
    """
    Queue of contiguous per-position activity probabilities on a single contig

    The plain profile does not smooth the probabilities, states carrying high quality soft clips still
    spread their probability to the neighbouring positions

    Args:
        contig_lengths: the length of each contig, positions are unbounded on contigs not listed
        active_threshold: positions with a filtered probability above this are active
    """

    def __init__(self, contig_lengths: Optional[Dict[str, int]] = None, active_threshold: Optional[float] = None):
        self.contig_lengths = dict(contig_lengths) if contig_lengths else {}
        if active_threshold is None:
            active_threshold = DEFAULTS.active_threshold
        self.active_threshold = float_fraction(active_threshold)
        self._kernel = np.array([1.0])
        self._filter_size = 0
        self._reset()

    def _reset(self):
        self.contig = None
        self.region_start = None
        self.region_stop = None
        self._states = []
        self._raw = []
        self._raw_start = None
        self._final = []
        self._runs = []

    @property
    def kernel(self) -> np.ndarray:
        return self._kernel.copy()

    @property
    def filter_size(self) -> int:
        return self._filter_size

    @property
    def band_size(self) -> int:
        return 2 * self._filter_size + 1

    @property
    def max_prob_propagation_distance(self) -> int:
        """
        the furthest a single added state can change the filtered values
        """
        return DEFAULTS.max_prob_propagation_distance + self._filter_size

    @property
    def is_empty(self) -> bool:
        return self.region_start is None

    @property
    def size(self) -> int:
        if self.is_empty:
            return 0
        return self._extent_end() - self.region_start + 1

    def __len__(self):
        return self.size

    @property
    def span(self) -> Optional[Interval]:
        if self.is_empty:
            return None
        return Interval(self.contig, self.region_start, self._extent_end())

    def _contig_length(self, contig=None) -> Optional[int]:
        return self.contig_lengths.get(self.contig if contig is None else contig)

    def _extent_end(self) -> int:
        end = self._raw_start + len(self._raw) - 1 + self._filter_size
        contig_length = self._contig_length()
        if contig_length is not None:
            end = min(end, contig_length)
        return max(end, self.region_stop)

    def _last_final_position(self) -> int:
        contig_length = self._contig_length()
        if contig_length is not None and self.region_stop >= contig_length:
            return self.region_stop
        return self.region_stop - self.max_prob_propagation_distance

    def process_state(self, state: ActivityProfileState) -> Iterable[Tuple[int, float]]:
        """
        the raw probability contributions (position, probability) of a newly added state
        """
        if state.state_type != STATE_TYPE.HIGH_QUALITY_SOFT_CLIPS:
            return [(state.position, state.prob)]
        spread = min(int(state.value or 0), DEFAULTS.max_prob_propagation_distance)
        contig_length = self._contig_length(state.contig)
        contributions = []
        for position in range(state.position - spread, state.position + spread + 1):
            if position < 1 or (contig_length is not None and position > contig_length):
                continue
            contributions.append((position, state.prob))
        return contributions

    def _incorporate(self, position: int, prob: float):
        index = position - self._raw_start
        if index < 0:
            return
        if index >= len(self._raw):
            self._raw.extend([0.0] * (index - len(self._raw) + 1))
        self._raw[index] += prob

    def add(self, state: ActivityProfileState):
        """
        Add the next position to the profile

        Raises:
            InvalidArgumentError: the probability is not between 0 and 1 or the position is outside the contig
            DiscontinuityError: the state is not on the same contig or not immediately after the last position added
        """
        if not 0 <= state.prob <= 1:
            raise InvalidArgumentError('activity probability must be between 0 and 1', state.prob)
        STATE_TYPE(state.state_type)
        contig_length = self._contig_length(state.contig)
        if state.position < 1 or (contig_length is not None and state.position > contig_length):
            raise InvalidArgumentError('position is outside the contig', state.contig, state.position, contig_length)

        if self.is_empty:
            self.contig = state.contig
            self.region_start = state.position
            self._raw_start = state.position - self._filter_size
            self._raw = [0.0] * self._filter_size
        elif state.contig != self.contig or state.position != self.region_stop + 1:
            raise DiscontinuityError(
                'state must be added immediately after the last position',
                '{}:{}'.format(self.contig, self.region_stop),
                '{}:{}'.format(state.contig, state.position),
            )
        self.region_stop = state.position
        self._states.append(state)
        if len(self._raw) < self.region_stop - self._raw_start + 1:
            self._raw.extend([0.0] * (self.region_stop - self._raw_start + 1 - len(self._raw)))
        for position, prob in self.process_state(state):
            self._incorporate(position, prob)

    def _filtered_value(self, position: int) -> float:
        lower = position - self._filter_size - self._raw_start
        upper = lower + self.band_size
        window = np.zeros(self.band_size)
        start = max(lower, 0)
        end = min(upper, len(self._raw))
        if start < end:
            window[start - lower:end - lower] = self._raw[start:end]
        return math.fsum(self._kernel * window)

    def _add_to_runs(self, runs: List[List], offset: int, prob: float):
        active = prob > self.active_threshold
        if runs and runs[-1][2] == active:
            runs[-1][1] += 1
        else:
            runs.append([offset, 1, active])

    def _update_final(self):
        for position in range(self.region_start + len(self._final), self._last_final_position() + 1):
            value = self._filtered_value(position)
            self._add_to_runs(self._runs, len(self._final), value)
            self._final.append(value)

    def _filtered_probabilities(self, last_position: int) -> List[float]:
        self._update_final()
        result = self._final[:last_position - self.region_start + 1]
        for position in range(self.region_start + len(result), last_position + 1):
            result.append(self._filtered_value(position))
        return result

    def _make_states(self, first_position: int, probs: List[float]) -> List[ActivityProfileState]:
        states = []
        for position, prob in enumerate(probs, start=first_position):
            if position <= self.region_stop:
                states.append(replace(self._states[position - self.region_start], prob=prob))
            else:
                states.append(ActivityProfileState(self.contig, position, prob))
        return states

    def get_state_list(self) -> List[ActivityProfileState]:
        """
        the filtered state of every position in the profile, including the positions past the last added
        position which the filter has spread probability to
        """
        if self.is_empty:
            return []
        probs = self._filtered_probabilities(self._extent_end())
        return self._make_states(self.region_start, probs)

    def get_probabilities(self) -> np.ndarray:
        if self.is_empty:
            return np.array([])
        return np.array(self._filtered_probabilities(self._extent_end()))

    def _pop(self, count: int):
        self._states = self._states[count:]
        self._final = self._final[count:]
        self._runs = [[offset - count, length, active] for offset, length, active in self._runs if offset >= count]
        self.region_start += count
        drop = self.region_start - self._filter_size - self._raw_start
        if drop > 0:
            self._raw = self._raw[drop:]
            self._raw_start += drop

    def pop_ready_active_regions(
        self, extension: int, min_size: int, max_size: int, force: bool = False
    ) -> List[ActiveRegion]:
        """
        Remove the regions which can no longer change from the start of the profile

        The final positions are partitioned into runs of active and inactive positions. Active runs whose
        extended spans would overlap or touch (separated by at most 2 * extension inactive positions) are joined
        into a single active region which includes the gap between them. Anything longer than the maximum size is
        split into the fewest chunks no larger than max_size, with sizes differing by at most one and the larger
        chunks first.

        Without force the trailing run may still grow so it is held back, as is an active region until at
        more than 2 * extension inactive positions follow it

        Args:
            extension: padding used for the extended location of each region
            min_size: the smallest region to emit (trailing runs are always held back until complete)
            max_size: the largest region to emit
            force: emit everything up to the last added position and empty the profile

        Returns:
            List[ActiveRegion]: the regions in position order

        Raises:
            InvalidArgumentError: the extension is negative, the min size is negative or greater than the max size
        """
        if extension < 0:
            raise InvalidArgumentError('extension cannot be negative', extension)
        if min_size < 0:
            raise InvalidArgumentError('min_size cannot be negative', min_size)
        if max_size < 1 or max_size < min_size:
            raise InvalidArgumentError('max_size must be positive and no less than min_size', min_size, max_size)
        if self.is_empty:
            return []
        if not force and self.size < max_size + self.max_prob_propagation_distance:
            return []

        if force:
            probs = self._filtered_probabilities(self.region_stop)
            runs = [list(run) for run in self._runs]
            for offset in range(len(self._final), len(probs)):
                self._add_to_runs(runs, offset, probs[offset])
        else:
            self._update_final()
            probs = self._final
            runs = self._runs
        blocks = _merge_runs(runs, extension)

        contig_length = self._contig_length()
        regions = []
        consumed = 0
        for index, (offset, length, active) in enumerate(blocks):
            if not force:
                if index == len(blocks) - 1:
                    break
                if active and blocks[index + 1][1] <= 2 * extension:
                    break
            for chunk in _split_run(length, max_size):
                start = self.region_start + offset
                regions.append(
                    ActiveRegion(
                        Interval(self.contig, start, start + chunk - 1),
                        self._make_states(start, probs[offset:offset + chunk]),
                        active,
                        extension,
                        contig_length,
                    )
                )
                offset += chunk
            consumed = offset

        if force:
            self._reset()
        elif consumed:
            self._pop(consumed)
        return regions


class BandPassActivityProfile(ActivityProfile):
    """
    Activity profile smoothed by a gaussian band pass filter

    Args:
        contig_lengths: the length of each contig
        max_filter_size: the largest half-width of the kernel
        sigma: the standard deviation of the kernel
        adaptive_filter_size: shrink the kernel by dropping tail weights too small to matter
        active_threshold: positions with a filtered probability above this are active

    Example:
        >>> BandPassActivityProfile(max_filter_size=50, sigma=1).band_size
        9
    """

    def __init__(
        self,
        contig_lengths: Optional[Dict[str, int]] = None,
        max_filter_size: Optional[int] = None,
        sigma: Optional[float] = None,
        adaptive_filter_size: bool = True,
        active_threshold: Optional[float] = None,
    ):
        ActivityProfile.__init__(self, contig_lengths, active_threshold)
        if max_filter_size is None:
            max_filter_size = DEFAULTS.max_filter_size
        if sigma is None:
            sigma = DEFAULTS.sigma
        self._sigma = float(sigma)
        kernel = make_kernel(max_filter_size, self._sigma)
        if adaptive_filter_size:
            self._filter_size = determine_filter_size(kernel)
            kernel = make_kernel(self._filter_size, self._sigma)
        else:
            self._filter_size = max_filter_size
        self._kernel = kernel

    @property
    def sigma(self) -> float:
        return self._sigma
