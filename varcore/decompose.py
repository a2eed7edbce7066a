"""
Decomposition of complex variant records into simpler ones, and the allele clipping and tandem repeat
helpers it relies on
"""
from typing import List, Optional, Sequence, Tuple

from .allele import Allele
from .constants import GENOTYPE_ASSIGNMENT_METHOD
from .error import InvalidArgumentError
from .likelihoods import subset_alleles
from .variant import (
    AlleleMapper,
    VariantRecord,
    VariantRecordBuilder,
    calculate_chromosome_counts,
    update_genotypes_with_mapped_alleles,
)


def compute_reverse_clipping(unclipped_alleles: Sequence[Allele], ref_bases: str) -> int:
    """
    count the trailing bases shared by all (non-symbolic) alleles and the reference. No allele is ever
    clipped down to nothing

    Args:
        unclipped_alleles: the alleles to compare
        ref_bases: the reference sequence the alleles are compared against

    Returns:
        int: the number of bases that can be clipped, -1 if the whole reference would be clipped

    Example:
        >>> compute_reverse_clipping([Allele('ATT', True), Allele('CTT')], 'ATT')
        2
        >>> compute_reverse_clipping([Allele('ATT', True), Allele('CTT'), Allele('CGG')], 'ATT')
        0
    """
    ref_bases = str(ref_bases).upper()
    clipping = 0
    still_clipping = True

    while still_clipping:
        for allele in unclipped_alleles:
            if allele.is_symbolic:
                continue
            length = allele.length()
            if length - clipping == 0:
                return clipping - 1
            if length - clipping < 0 or length == 0:
                still_clipping = False
            elif len(ref_bases) == clipping:
                return -1
            elif allele.bases[length - clipping - 1] != ref_bases[len(ref_bases) - clipping - 1]:
                still_clipping = False
        if still_clipping:
            clipping += 1
    return clipping


def compute_forward_clipping(unclipped_alleles: Sequence[Allele]) -> int:
    """
    find the last leading base shared by all alleles. The right-most base of an allele is never clipped

    Returns:
        int: index of the last shared leading base, -1 if no base can be clipped, there are fewer than 2
        alleles, or any allele is symbolic

    Example:
        >>> compute_forward_clipping([Allele('ACGC', True), Allele('ACGA')])
        2
        >>> compute_forward_clipping([Allele('AT', True), Allele('AC'), Allele('A')])
        -1
    """
    if len(unclipped_alleles) <= 1:
        return -1
    if any(allele.is_symbolic for allele in unclipped_alleles):
        return -1
    min_length = min(allele.length() for allele in unclipped_alleles)
    first = unclipped_alleles[0].bases
    last_shared = -1

    for i in range(0, min_length - 1):
        base = first[i]
        for allele in unclipped_alleles:
            if allele.bases[i] != base:
                return last_shared
        last_shared = i
    return last_shared


def _clip_alleles(record: VariantRecord, fwd_trim_end: int, rev_trim: int) -> VariantRecord:
    rev_trim = max(rev_trim, 0)
    if fwd_trim_end == -1 and rev_trim == 0:
        return record

    mapping = {}
    for allele in record.alleles:
        if allele.is_symbolic:
            mapping[allele] = allele
        else:
            bases = allele.bases[fwd_trim_end + 1:allele.length() - rev_trim]
            mapping[allele] = Allele(bases, allele.is_reference)
    alleles = list(mapping.values())

    genotypes = update_genotypes_with_mapped_alleles(record.genotypes, AlleleMapper(mapping))
    start = record.start + fwd_trim_end + 1
    return (
        VariantRecordBuilder.from_record(record)
        .loc(record.contig, start, start + alleles[0].length() - 1)
        .alleles(alleles)
        .genotypes(genotypes)
        .build()
    )


def trim_alleles(record: VariantRecord, trim_forward: bool = True, trim_reverse: bool = True) -> VariantRecord:
    """
    Remove the bases shared by all alleles of a record, trailing bases first and then leading bases

    Genotypes are updated to the trimmed alleles and the start and stop positions shifted accordingly.
    Records with a single allele and SNPs are returned as-is

    Example:
        >>> record = VariantRecordBuilder('', '1', 1, alleles=['ACGTT', 'ACCCTT']).build()
        >>> trimmed = trim_alleles(record)
        >>> [str(a) for a in trimmed.alleles], trimmed.start
        (['G', 'CC'], 3)
    """
    if record is None:
        raise InvalidArgumentError('a record is required')
    if record.n_alleles <= 1 or record.is_snp:
        return record

    rev_trim = compute_reverse_clipping(record.alleles, record.reference.bases) if trim_reverse else 0
    rev_trimmed = _clip_alleles(record, -1, rev_trim)
    fwd_trim = compute_forward_clipping(rev_trimmed.alleles) if trim_forward else -1
    return _clip_alleles(rev_trimmed, fwd_trim, 0)


def reverse_trim_alleles(record: VariantRecord) -> VariantRecord:
    return trim_alleles(record, trim_forward=False, trim_reverse=True)


def forward_trim_alleles(record: VariantRecord) -> VariantRecord:
    return trim_alleles(record, trim_forward=True, trim_reverse=False)


def split_to_biallelics(
    record: VariantRecord,
    trim_left: bool = False,
    assignment_method: str = GENOTYPE_ASSIGNMENT_METHOD.SET_TO_NO_CALL,
) -> List[VariantRecord]:
    """
    Split a multi-allelic record into one record per alternate allele

    Each new record has the reference and a single alternate allele. The genotypes are re-derived for the
    new allele pair (and no-called by default since the original call cannot be attributed to a single
    alternate), the chromosome counts are recalculated and the alleles are trimmed

    Args:
        record: the record to split
        trim_left: also trim the leading bases shared by the reference and the alternate
        assignment_method: how the genotypes of the split records are assigned

    Returns:
        List[VariantRecord]: the biallelic records, in the order of the original alternate alleles

    Example:
        >>> record = VariantRecordBuilder('', '1', 10, alleles=['CAAA', 'CAAAAA', 'C']).build()
        >>> [(str(r.alleles[0]), str(r.alleles[1]), r.stop) for r in split_to_biallelics(record)]
        [('C', 'CAA', 10), ('CAAA', 'C', 13)]
    """
    if record is None:
        raise InvalidArgumentError('a record is required')
    if not record.is_variant or record.is_biallelic:
        return [record]

    biallelics = []
    for alt in record.alternate_alleles:
        alleles = [record.reference, alt]
        genotypes = subset_alleles(record, alleles, assignment_method)
        split = VariantRecordBuilder.from_record(record).alleles(alleles).genotypes(genotypes).build()
        split = calculate_chromosome_counts(split, remove_stale=True)
        biallelics.append(trim_alleles(split, trim_forward=trim_left, trim_reverse=True))
    return biallelics


def split_to_primitives(record: VariantRecord) -> List[VariantRecord]:
    """
    Split a biallelic multi-nucleotide substitution into single nucleotide variants, one per differing base

    Records which are not substitutions of equal length alleles are returned as-is

    Raises:
        InvalidArgumentError: the record is not biallelic

    Example:
        >>> record = VariantRecordBuilder('', '1', 10, alleles=['ACA', 'GCG']).build()
        >>> [(r.start, str(r.alleles[0]), str(r.alleles[1])) for r in split_to_primitives(record)]
        [(10, 'A', 'G'), (12, 'A', 'G')]
    """
    if record is None:
        raise InvalidArgumentError('a record is required')
    if not record.is_biallelic:
        raise InvalidArgumentError('only biallelic records can be split into primitive alleles', str(record))
    if not record.is_mnp:
        return [record]

    ref = record.reference
    alt = record.alternate_alleles[0]
    result = []
    for i, (ref_base, alt_base) in enumerate(zip(ref.bases, alt.bases)):
        if ref_base == alt_base:
            continue
        new_ref = Allele(ref_base, True)
        new_alt = Allele(alt_base)
        mapper = AlleleMapper({ref: new_ref, alt: new_alt})
        result.append(
            VariantRecordBuilder.from_record(record)
            .loc(record.contig, record.start + i, record.start + i)
            .alleles([new_ref, new_alt])
            .genotypes(update_genotypes_with_mapped_alleles(record.genotypes, mapper))
            .build()
        )
    return result


def find_repeated_substring(bases: str) -> int:
    """
    the length of the shortest unit which, repeated, makes up the whole sequence

    Example:
        >>> find_repeated_substring('CACACA')
        2
        >>> find_repeated_substring('CACACAC')
        7
    """
    rep_length = 1
    while rep_length <= len(bases):
        unit = bases[:rep_length]
        if all(bases[start:start + rep_length] == unit for start in range(rep_length, len(bases), rep_length)):
            return rep_length
        rep_length += 1
    return rep_length


def find_number_of_repetitions(repeat_unit: str, test_string: str, look_forward: bool = True) -> int:
    """
    count the consecutive copies of a repeat unit at the start (or end) of a sequence

    Example:
        >>> find_number_of_repetitions('ATG', 'ATGATGATGATG')
        4
        >>> find_number_of_repetitions('AT', 'GATAT', look_forward=False)
        2
    """
    unit_length = len(repeat_unit)
    if not unit_length:
        raise InvalidArgumentError('the repeat unit cannot be empty')
    repeats = 0
    if look_forward:
        starts = range(0, len(test_string), unit_length)
    else:
        starts = range(len(test_string) - unit_length, -1, -unit_length)
    for start in starts:
        if test_string[start:start + unit_length] == repeat_unit:
            repeats += 1
        else:
            break
    return repeats


def get_num_tandem_repeat_units_for_bases(
    ref_bases: str, alt_bases: str, remaining_ref_context: str
) -> Tuple[List[int], str]:
    """
    count the copies of the repeat unit (taken from the longer allele) in the reference and the alternate,
    each followed by the reference context

    Returns:
        Tuple[List[int],str]: the counts for the reference and the alternate, and the repeat unit
    """
    longer = alt_bases if len(alt_bases) > len(ref_bases) else ref_bases
    repeat_unit = longer[:find_repeated_substring(longer)]
    if not repeat_unit:
        return [0, 0], repeat_unit
    in_ref = find_number_of_repetitions(repeat_unit, ref_bases, True)
    ref_count = find_number_of_repetitions(repeat_unit, ref_bases + remaining_ref_context, True) - in_ref
    alt_count = find_number_of_repetitions(repeat_unit, alt_bases + remaining_ref_context, True) - in_ref
    return [ref_count, alt_count], repeat_unit


def get_num_tandem_repeat_units(
    record: VariantRecord, ref_bases_with_pad: str
) -> Optional[Tuple[List[int], str]]:
    """
    Describe an indel record as a change in the number of copies of a tandem repeat unit

    Args:
        record: the indel record (alleles padded with the preceding reference base)
        ref_bases_with_pad: the reference sequence starting at the padding base of the record

    Returns:
        Tuple[List[int],str]: the number of repeat units in the reference followed by each alternate allele,
        and the repeat unit. None if the record is not an indel or an allele is not a tandem expansion

    Example:
        >>> record = VariantRecordBuilder('', '1', 20, alleles=['A', 'AATC']).build()
        >>> get_num_tandem_repeat_units(record, 'TATCATCATCGGA')
        ([3, 4], 'ATC')
    """
    if not record.is_indel:
        return None
    context = str(ref_bases_with_pad).upper()[1:]
    ref_bases = record.reference.bases[1:]
    lengths = []
    repeat_unit = None
    for allele in record.alternate_alleles:
        counts, repeat_unit = get_num_tandem_repeat_units_for_bases(ref_bases, allele.bases[1:], context)
        if counts[0] == 0 or counts[1] == 0:
            return None
        if not lengths:
            lengths.append(counts[0])
        lengths.append(counts[1])
    return lengths, repeat_unit


def _bases_are_repeated(longer: str, shorter: str, ref_context: str, min_matches: int) -> bool:
    potential_repeat = longer[len(shorter):]
    size = len(potential_repeat)
    for i in range(min_matches):
        end = (i + 1) * size
        if len(ref_context) < end:
            return False
        if ref_context[i * size:end] != potential_repeat:
            return False
    return True


def is_repeat_allele(ref: Allele, alt: Allele, ref_context: str) -> bool:
    """
    True when the longer allele extends the shorter one by a sequence repeated in the reference context
    """
    if not (ref.bases.startswith(alt.bases) or alt.bases.startswith(ref.bases)):
        return False
    if ref.length() > alt.length():
        return _bases_are_repeated(ref.bases, alt.bases, ref_context, 2)
    return _bases_are_repeated(alt.bases, ref.bases, ref_context, 1)


def is_tandem_repeat(record: VariantRecord, ref_bases_with_pad: str) -> bool:
    """
    True when every alternate allele of an indel record expands or contracts a repeat of the reference

    Example:
        >>> record = VariantRecordBuilder('', '1', 1, alleles=['N', 'NA']).build()
        >>> is_tandem_repeat(record, 'NAAC')
        True
    """
    if not record.is_indel:
        return False
    context = str(ref_bases_with_pad).upper()[1:]
    return all(is_repeat_allele(record.reference, alt, context) for alt in record.alternate_alleles)
