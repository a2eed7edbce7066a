import logging
from collections import Counter

logger = logging.getLogger('varcore')

DIAGNOSTICS = Counter()
"""
:class:`collections.Counter`: tally of inputs that were accepted leniently rather than raising an error

- ``malformed_likelihoods``: likelihood vectors whose length did not match the ploidy and allele count
- ``uninformative_likelihoods``: likelihood vectors dropped because they could not discriminate between genotypes
"""


def count_diagnostic(name, amount=1):
    """
    increment one of the diagnostic counters

    Args:
        name (str): the counter to increment
        amount (int): the amount to increment by
    """
    DIAGNOSTICS[name] += amount


def reset_diagnostics():
    """
    clear all diagnostic counters

    Returns:
        Counter: a copy of the counters before they were cleared
    """
    previous = Counter(DIAGNOSTICS)
    DIAGNOSTICS.clear()
    return previous


def choose(n, k):
    """
    binomial coefficient, 0 for out of range arguments

    Example:
        >>> choose(4, 2)
        6
        >>> choose(2, 3)
        0
    """
    if k < 0 or n < 0 or k > n:
        return 0
    result = 1
    for i in range(1, k + 1):
        result = result * (n - k + i) // i
    return result
