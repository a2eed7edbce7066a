"""
Re-projection of per-sample genotype likelihoods, allele depths and strand counts when the allele set of a
record changes.

Genotype likelihood vectors are ordered by the canonical enumeration of allele index multisets: for a given
ploidy the sorted index tuples are listed in colex order (compared from the largest index down), so for a
diploid sample with alleles 0, 1 and 2 the order is 00, 01, 11, 02, 12, 22. The index of a sorted tuple
``(a1, ..., aP)`` is ``sum(C(a_k + k - 1, k))``.
"""
import functools
import itertools
from typing import Dict, List, Sequence, Tuple

import numpy as np

from .allele import Allele
from .constants import DEFAULTS, GENOTYPE_ASSIGNMENT_METHOD, VCF_KEY
from .error import InvalidArgumentError
from .util import choose, count_diagnostic, logger
from .variant import Genotype, GenotypeBuilder, VariantRecord, no_call_alleles


def num_likelihoods(n_alleles: int, ploidy: int) -> int:
    """
    the number of genotype combinations for a sample

    Example:
        >>> num_likelihoods(3, 2)
        6
        >>> num_likelihoods(2, 3)
        4
    """
    if n_alleles < 1 or ploidy < 0:
        raise InvalidArgumentError('invalid allele count or ploidy', n_alleles, ploidy)
    return choose(n_alleles + ploidy - 1, ploidy)


def genotype_index(allele_indices: Sequence[int]) -> int:
    """
    the position of a genotype (given as allele indices in any order) in the canonical likelihood order

    Example:
        >>> genotype_index([1, 0])
        1
        >>> genotype_index([2, 2])
        5
    """
    return sum(choose(allele + k, k + 1) for k, allele in enumerate(sorted(allele_indices)))


def genotype_allele_indices(index: int, ploidy: int) -> Tuple[int, ...]:
    """
    the sorted allele indices of the genotype at a given position in the canonical likelihood order

    Example:
        >>> genotype_allele_indices(4, 2)
        (1, 2)
        >>> genotype_allele_indices(7, 3)
        (0, 2, 2)
    """
    if index < 0:
        raise InvalidArgumentError('genotype index must be non-negative', index)
    remaining = index
    result = []
    for k in range(ploidy, 0, -1):
        allele = 0
        while choose(allele + k, k) <= remaining:
            allele += 1
        remaining -= choose(allele + k - 1, k)
        result.append(allele)
    return tuple(reversed(result))


@functools.lru_cache(maxsize=64)
def enumerate_genotypes(n_alleles: int, ploidy: int) -> Tuple[Tuple[int, ...], ...]:
    """
    all genotypes (as sorted allele indices) in the canonical likelihood order

    Example:
        >>> enumerate_genotypes(3, 2)
        ((0, 0), (0, 1), (1, 1), (0, 2), (1, 2), (2, 2))
    """
    combos = itertools.combinations_with_replacement(range(n_alleles), ploidy)
    return tuple(sorted(combos, key=lambda combo: tuple(reversed(combo))))


def likelihoods_are_uninformative(likelihoods: Sequence[float]) -> bool:
    return sum(likelihoods) > DEFAULTS.sum_gl_thresh_nocall


def normalize_log10(likelihoods: Sequence[float]) -> List[float]:
    """
    shift log10 values so that the best is 0

    Example:
        >>> normalize_log10([-3, -1, -2])
        [-2.0, 0.0, -1.0]
    """
    values = np.asarray(likelihoods, dtype=float)
    return (values - values.max()).tolist()


def get_gq_log10_from_likelihoods(chosen: int, likelihoods: Sequence[float]) -> float:
    """
    the log10 probability that the chosen genotype is wrong

    Args:
        chosen: index of the chosen genotype
        likelihoods: log10 likelihoods of all genotypes
    """
    others = [gl for i, gl in enumerate(likelihoods) if i != chosen]
    if not others:
        return 0.0
    qual = likelihoods[chosen] - max(others)
    if qual < 0:
        values = np.asarray(likelihoods, dtype=float)
        posteriors = np.power(10, values - values.max())
        posteriors /= posteriors.sum()
        return float(np.log10(1.0 - posteriors[chosen]))
    return -1 * qual


def calculate_gq_from_pls(pls: Sequence[int]) -> int:
    """
    the genotype quality from phred-scaled likelihoods: the gap between the best and the second best values

    Raises:
        InvalidArgumentError: fewer than 2 likelihoods are given

    Example:
        >>> calculate_gq_from_pls([0, 10, 20])
        10
        >>> calculate_gq_from_pls([35, 40, -10, 15, 20])
        25
    """
    if pls is None or len(pls) < 2:
        raise InvalidArgumentError('at least 2 likelihoods are required to calculate GQ', pls)
    best, second = sorted(pls)[:2]
    return second - best


def determine_sac_indexes_to_use(record: VariantRecord, alleles_to_use: Sequence[Allele]) -> List[int]:
    """
    the strand count (SAC) positions to keep for a subset of alleles, the reference pair is always kept
    """
    if record is None or alleles_to_use is None:
        raise InvalidArgumentError('a record and the alleles to use are required')
    indexes = [0, 1]
    for i, allele in enumerate(record.alleles[1:], 1):
        if allele in alleles_to_use:
            indexes.extend([2 * i, 2 * i + 1])
    return indexes


def make_new_sacs(genotype: Genotype, sac_indexes_to_use: Sequence[int]) -> List[int]:
    """
    select the strand counts at the given positions
    """
    old = genotype.get_extended_attribute(VCF_KEY.STRAND_COUNT_BY_SAMPLE)
    if old is None:
        raise InvalidArgumentError('genotype has no strand counts', genotype.sample_name)
    return [int(old[i]) for i in sac_indexes_to_use]


def _allele_index_map(original_alleles, alleles_to_use) -> List[int]:
    index_map = []
    for allele in alleles_to_use:
        try:
            index_map.append(original_alleles.index(allele))
        except ValueError:
            raise InvalidArgumentError('allele to use is not one of the original alleles', allele)
    return index_map


def _subset_likelihoods(genotype, n_original, index_map, unchanged):
    ploidy = genotype.ploidy
    expected = num_likelihoods(n_original, ploidy)
    if len(genotype.likelihoods) != expected:
        logger.debug(
            'wrong number of likelihoods for sample {} ({} but expected {})'.format(
                genotype.sample_name, len(genotype.likelihoods), expected
            )
        )
        count_diagnostic('malformed_likelihoods')
        return None
    if unchanged:
        return list(genotype.likelihoods)
    new_likelihoods = []
    for combo in enumerate_genotypes(len(index_map), ploidy):
        new_likelihoods.append(genotype.likelihoods[genotype_index([index_map[i] for i in combo])])
    return normalize_log10(new_likelihoods)


def _assign_genotype(builder, genotype, method, likelihoods, alleles_to_use):
    if method == GENOTYPE_ASSIGNMENT_METHOD.DO_NOT_ASSIGN_GENOTYPES:
        return
    elif method == GENOTYPE_ASSIGNMENT_METHOD.SET_TO_NO_CALL:
        builder.alleles(no_call_alleles(genotype.ploidy)).no_gq()
    elif method == GENOTYPE_ASSIGNMENT_METHOD.USE_PLS_TO_ASSIGN:
        if likelihoods is None or likelihoods_are_uninformative(likelihoods):
            builder.alleles(no_call_alleles(genotype.ploidy)).no_gq()
        else:
            best = int(np.argmax(likelihoods))
            indices = genotype_allele_indices(best, genotype.ploidy)
            builder.alleles([alleles_to_use[i] for i in indices])
            builder.gq(int(round(-10 * get_gq_log10_from_likelihoods(best, likelihoods))))
    else:
        ref = alleles_to_use[0]
        best_match = [allele if allele in alleles_to_use else ref for allele in genotype.alleles]
        builder.alleles(best_match).no_gq().no_ad().no_likelihoods()


def _subset_genotypes(
    genotypes: Dict[str, Genotype], original_alleles, alleles_to_use, method
) -> Dict[str, Genotype]:
    original_alleles = list(original_alleles)
    alleles_to_use = list(alleles_to_use)
    index_map = _allele_index_map(original_alleles, alleles_to_use)
    unchanged = alleles_to_use == original_alleles
    sac_indexes = [x for j in index_map for x in (2 * j, 2 * j + 1)]

    result = {}
    for name, genotype in genotypes.items():
        builder = GenotypeBuilder.from_genotype(genotype)
        likelihoods = None
        if genotype.has_likelihoods:
            likelihoods = _subset_likelihoods(genotype, len(original_alleles), index_map, unchanged)
            if likelihoods is not None and likelihoods_are_uninformative(likelihoods):
                count_diagnostic('uninformative_likelihoods')
                builder.no_likelihoods()
            else:
                builder.likelihoods(likelihoods)

        _assign_genotype(builder, genotype, method, likelihoods, alleles_to_use)

        if genotype.has_ad and method != GENOTYPE_ASSIGNMENT_METHOD.BEST_MATCH_TO_ORIGINAL:
            if len(genotype.ad) != len(original_alleles):
                builder.no_ad()
            else:
                builder.ad([genotype.ad[j] for j in index_map])

        sacs = genotype.get_extended_attribute(VCF_KEY.STRAND_COUNT_BY_SAMPLE)
        if sacs is not None:
            if len(sacs) == 2 * len(original_alleles):
                builder.attribute(VCF_KEY.STRAND_COUNT_BY_SAMPLE, make_new_sacs(genotype, sac_indexes))
            else:
                builder.rm_attribute(VCF_KEY.STRAND_COUNT_BY_SAMPLE)
        result[name] = builder.build()
    return result


def subset_alleles(
    record: VariantRecord,
    alleles_to_use: Sequence[Allele],
    assignment_method: str = GENOTYPE_ASSIGNMENT_METHOD.USE_PLS_TO_ASSIGN,
) -> Dict[str, Genotype]:
    """
    Re-derive the genotypes of a record for a smaller (or reordered) set of its alleles

    Likelihood combinations which use a dropped allele are discarded and the remaining values are shifted
    so that the best is 0. Likelihood vectors which do not match the ploidy and allele count of the record are
    dropped (and counted) rather than raising an error

    Args:
        record: the record whose genotypes should be subset
        alleles_to_use: the alleles to keep, starting with the reference
        assignment_method: how the genotype calls should be assigned afterwards (:attr:`~varcore.constants.GENOTYPE_ASSIGNMENT_METHOD`)

    Returns:
        Dict[str,Genotype]: the new genotypes by sample name

    Raises:
        InvalidArgumentError: fewer than 2 alleles are given, the first allele is not the reference, or an allele is not in the record
    """
    if record is None:
        raise InvalidArgumentError('a record is required')
    if alleles_to_use is None or len(alleles_to_use) < 2:
        raise InvalidArgumentError('must subset to at least 2 alleles (the reference and an alternate)', alleles_to_use)
    if not alleles_to_use[0].is_reference:
        raise InvalidArgumentError('the first allele to use must be the reference', alleles_to_use[0])
    assignment_method = GENOTYPE_ASSIGNMENT_METHOD(assignment_method)
    return _subset_genotypes(record.genotypes, record.alleles, alleles_to_use, assignment_method)


def update_pls_and_ad(selected: VariantRecord, original: VariantRecord) -> Dict[str, Genotype]:
    """
    Fix the likelihoods, allele depths and strand counts of a record whose alleles were selected from an
    original record. The genotype calls are not changed

    Raises:
        InvalidArgumentError: the selected record has more alleles than the original
    """
    if selected is None or original is None:
        raise InvalidArgumentError('both the selected and the original records are required')
    if selected.n_alleles > original.n_alleles:
        raise InvalidArgumentError(
            'the selected record has more alleles than the original, it appears to be combined rather than selected'
        )
    if selected.n_alleles == original.n_alleles:
        return dict(selected.genotypes)
    return _subset_genotypes(
        selected.genotypes,
        original.alleles,
        selected.alleles,
        GENOTYPE_ASSIGNMENT_METHOD.DO_NOT_ASSIGN_GENOTYPES,
    )


def subset_to_ref_only(record: VariantRecord, ploidy: int) -> Dict[str, Genotype]:
    """
    Turn every genotype into a homozygous reference call, keeping only the depth and genotype quality

    Args:
        record: the record whose genotypes are converted
        ploidy: the ploidy used for samples without any alleles

    Raises:
        InvalidArgumentError: the record is missing or the ploidy is less than 1
    """
    if record is None:
        raise InvalidArgumentError('a record is required')
    if ploidy < 1:
        raise InvalidArgumentError('ploidy must be at least 1', ploidy)
    ref = record.reference
    result = {}
    for name, genotype in record.genotypes.items():
        sample_ploidy = genotype.ploidy or ploidy
        result[name] = (
            GenotypeBuilder(name, [ref] * sample_ploidy).dp(genotype.dp).gq(genotype.gq).build()
        )
    return result
