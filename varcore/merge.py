"""
Reconcile records describing the same site in several call sets into a single record

The records are merged onto a common (longest) reference allele. Alternate alleles of records with a
shorter reference are extended with the missing trailing reference bases so that every allele of the merged
record describes the same span
"""
from typing import Dict, Iterable, List, Optional, Sequence

from .allele import Allele, extend, is_usable_alternate_allele
from .constants import FILTERED_RECORD_MERGE_TYPE, GENOTYPE_MERGE_TYPE, MERGE_TAG, NO_CALL, VCF_KEY
from .error import IncompatibleAllelesError, InvalidArgumentError
from .util import logger
from .variant import (
    AlleleMapper,
    Genotype,
    GenotypeBuilder,
    VariantRecord,
    VariantRecordBuilder,
    calculate_chromosome_counts,
    update_genotypes_with_mapped_alleles,
)

__all__ = [
    'AlleleMapper',
    'create_allele_mapping',
    'determine_reference_allele',
    'has_pl_incompatible_alleles',
    'merge',
    'merged_sample_name',
    'resolve_incompatible_alleles',
    'strip_pls_and_ad',
    'update_genotypes_with_mapped_alleles',
]


def determine_reference_allele(records: Sequence[VariantRecord]) -> Optional[Allele]:
    """
    find the longest reference allele of a set of records at the same start position

    Raises:
        IncompatibleAllelesError: two different references have the same length or a shorter reference is not a prefix of the longest one

    Example:
        >>> records = [VariantRecordBuilder('a', '1', 1, alleles=['A', 'T']).build(),
        ...     VariantRecordBuilder('b', '1', 1, alleles=['AT', 'A']).build()]
        >>> determine_reference_allele(records)
        Allele(AT*)
    """
    ref = None
    for record in records:
        current = record.reference
        if ref is None or ref.length() < current.length():
            ref = current
        elif ref.length() == current.length() and ref != current:
            raise IncompatibleAllelesError(
                'the provided reference alleles are not consistent', ref, current, record.contig, record.start
            )
    for record in records:
        if not ref.bases.startswith(record.reference.bases):
            raise IncompatibleAllelesError(
                'reference allele is not a prefix of the longest reference allele', record.reference, ref
            )
    return ref


def create_allele_mapping(
    ref_allele: Allele, record: VariantRecord, current_alleles: Iterable[Allele]
) -> Dict[Allele, Allele]:
    """
    map the alternate alleles of a record with a shorter reference onto a longer reference allele by
    appending the missing trailing reference bases

    Args:
        ref_allele: the longer reference allele
        record: the record whose alternate alleles are mapped
        current_alleles: alleles already collected, reused when an extended allele matches one of them

    Returns:
        Dict[Allele,Allele]: mapping of each original alternate allele to its extended version. Symbolic
        alleles map to themselves

    Raises:
        IncompatibleAllelesError: the new reference is not longer than the reference of the record
    """
    record_ref = record.reference
    if ref_allele.length() <= record_ref.length():
        raise IncompatibleAllelesError(
            'the new reference allele must be longer than the reference of the record', ref_allele, record_ref
        )
    extra_bases = ref_allele.bases[record_ref.length():]
    current_alleles = list(current_alleles)
    mapping = {}
    for allele in record.alternate_alleles:
        if is_usable_alternate_allele(allele):
            extended = extend(allele, extra_bases)
            for existing in current_alleles:
                if extended == existing:
                    extended = existing
                    break
            mapping[allele] = extended
        else:
            mapping[allele] = allele
    return mapping


def resolve_incompatible_alleles(
    ref_allele: Allele, record: VariantRecord, current_alleles: Iterable[Allele]
) -> AlleleMapper:
    """
    the allele mapper which moves a record onto the common reference allele, the identity mapper when the
    record already uses it
    """
    if ref_allele == record.reference:
        return AlleleMapper(record=record)
    mapping = {record.reference: ref_allele}
    mapping.update(create_allele_mapping(ref_allele, record, current_alleles))
    return AlleleMapper(mapping)


def merged_sample_name(name: str, index: int, uniquify: bool) -> str:
    """
    Example:
        >>> merged_sample_name('NA12878', 2, True)
        'NA12878.2'
    """
    if uniquify:
        return '{}.{}'.format(name, index)
    return name


def has_pl_incompatible_alleles(merged_alleles: Sequence[Allele], record_alleles: Sequence[Allele]) -> bool:
    """
    True when the likelihoods of a record cannot be carried over to the merged record because its alleles
    differ in number or in order from the merged alleles
    """
    if len(merged_alleles) != len(record_alleles):
        return True
    return any(merged != original for merged, original in zip(merged_alleles, record_alleles))


def strip_pls_and_ad(genotypes: Dict[str, Genotype]) -> Dict[str, Genotype]:
    """
    remove the likelihoods and the allele depths from a set of genotypes
    """
    return {
        name: GenotypeBuilder.from_genotype(genotype).no_likelihoods().no_ad().build()
        for name, genotype in genotypes.items()
    }


def _max_allele_count(value) -> int:
    if isinstance(value, str):
        value = value.split(',')
    if isinstance(value, (list, tuple)):
        counts = [int(v) for v in value if v not in [NO_CALL, None]]
        return max(counts) if counts else 0
    return int(value)


def _sort_by_priority(indexed_records, priority):
    for _, record in indexed_records:
        if record.source not in priority:
            raise InvalidArgumentError('record source is not in the priority list', record.source, priority)
    return sorted(indexed_records, key=lambda item: priority.index(item[1].source))


def merge(
    records: Iterable[VariantRecord],
    priority: Optional[List[str]] = None,
    filtered_record_merge_type: str = FILTERED_RECORD_MERGE_TYPE.KEEP_IF_ANY_UNFILTERED,
    genotype_merge_type: str = GENOTYPE_MERGE_TYPE.PRIORITIZE,
    annotate_origin: bool = True,
    set_key: Optional[str] = 'set',
    filtered_are_uncalled: bool = False,
    merge_info_with_max_ac: bool = False,
    original_num_records: Optional[int] = None,
) -> Optional[VariantRecord]:
    """
    Merge records from different sources that start at the same position into a single record

    Args:
        records: the records to merge
        priority: names of the record sources in order of priority
        filtered_record_merge_type: how the filters of the inputs are combined (:attr:`~varcore.constants.FILTERED_RECORD_MERGE_TYPE`)
        genotype_merge_type: how the genotypes of the inputs are combined (:attr:`~varcore.constants.GENOTYPE_MERGE_TYPE`),
            uniquified samples are numbered by the position of their record in the input, not the priority order
        annotate_origin: add an info annotation describing which sources the record came from
        set_key: the info key used for the origin annotation
        filtered_are_uncalled: ignore filtered input records
        merge_info_with_max_ac: use the info of the input with the largest allele count instead of merging the info of all inputs
        original_num_records: the number of sources, used to decide if the record was found in all of them

    Returns:
        VariantRecord: the merged record, None when there is nothing to merge

    Raises:
        InvalidArgumentError: the records are not at the same position or a record source is missing from the priority list
        IncompatibleAllelesError: the reference alleles of the records cannot be reconciled

    Example:
        >>> r1 = VariantRecordBuilder('a', '1', 10, alleles=['A', 'T']).pass_filters().build()
        >>> r2 = VariantRecordBuilder('b', '1', 10, alleles=['A', 'G']).pass_filters().build()
        >>> merged = merge([r1, r2], priority=['a', 'b'])
        >>> [str(a) for a in merged.alleles], merged.info['set']
        (['A', 'T', 'G'], 'Intersection')
    """
    indexed_records = list(enumerate(records or [], start=1))
    if not indexed_records:
        return None
    filtered_record_merge_type = FILTERED_RECORD_MERGE_TYPE(filtered_record_merge_type)
    genotype_merge_type = GENOTYPE_MERGE_TYPE(genotype_merge_type)

    if priority is not None and genotype_merge_type != GENOTYPE_MERGE_TYPE.UNSORTED:
        indexed_records = _sort_by_priority(indexed_records, list(priority))
    if original_num_records is None:
        original_num_records = len(priority) if priority is not None else len(indexed_records)

    if filtered_are_uncalled:
        indexed_records = [(index, record) for index, record in indexed_records if record.is_not_filtered]
        if not indexed_records:
            return None
    records = [record for _, record in indexed_records]

    first = records[0]
    for record in records[1:]:
        if record.contig != first.contig or record.start != first.start:
            raise InvalidArgumentError(
                'all records being merged must start at the same position',
                '{}:{}'.format(first.contig, first.start),
                '{}:{}'.format(record.contig, record.start),
            )
    if genotype_merge_type == GENOTYPE_MERGE_TYPE.REQUIRE_UNIQUE:
        logger.debug('sample uniqueness is not enforced, merging genotypes by priority')
    uniquify = genotype_merge_type == GENOTYPE_MERGE_TYPE.UNIQUIFY

    ref_allele = determine_reference_allele(records)
    alleles = [ref_allele]
    genotypes = {}
    filters = set()
    filters_applied = False
    n_filtered = 0
    variant_sources = []
    ids = []
    qual = None
    longest = first
    info = {}
    inconsistent_keys = set()
    depth = 0
    max_ac = -1
    max_ac_record = None
    remapped = False

    for index, record in indexed_records:
        if record.length > longest.length:
            longest = record
        if record.is_filtered:
            n_filtered += 1
        filters_applied = filters_applied or record.filters_were_applied
        filters.update(record.filters or [])
        if record.is_variant and record.source not in variant_sources:
            variant_sources.append(record.source)

        mapper = resolve_incompatible_alleles(ref_allele, record, alleles)
        for allele in mapper.values():
            if allele not in alleles:
                alleles.append(allele)

        record_genotypes = record.genotypes
        if mapper.needs_remapping:
            remapped = True
            record_genotypes = update_genotypes_with_mapped_alleles(record_genotypes, mapper)
        for genotype in record_genotypes.values():
            name = merged_sample_name(genotype.sample_name, index, uniquify)
            if name in genotypes:
                continue
            if uniquify:
                genotype = GenotypeBuilder.from_genotype(genotype).name(name).build()
            genotypes[name] = genotype

        if qual is None and record.qual is not None:
            qual = record.qual
        if record.has_id:
            for record_id in record.id.split(','):
                if record_id not in ids:
                    ids.append(record_id)

        if VCF_KEY.ALLELE_COUNT in record.info:
            record_ac = _max_allele_count(record.info[VCF_KEY.ALLELE_COUNT])
            if record_ac > max_ac:
                max_ac = record_ac
                max_ac_record = record

        for key, value in record.info.items():
            if key == VCF_KEY.DEPTH:
                if value not in [NO_CALL, None]:
                    depth += int(value)
                continue
            if key in inconsistent_keys:
                continue
            if key in info and info[key] != NO_CALL and info[key] != value:
                inconsistent_keys.add(key)
                del info[key]
            elif key not in info or info[key] == NO_CALL:
                info[key] = value

    if remapped:
        logger.debug(
            'remapped alleles of records at {}:{} onto the reference {}'.format(first.contig, first.start, ref_allele)
        )

    strip_likelihoods = False
    for record in records:
        if record.n_alleles == 1:
            continue
        if has_pl_incompatible_alleles(alleles, record.alleles):
            if genotypes:
                logger.debug(
                    'stripping likelihoods at {}:{} due to incompatible alleles merged={} record={}'.format(
                        first.contig, first.start, alleles, list(record.alleles)
                    )
                )
            genotypes = strip_pls_and_ad(genotypes)
            strip_likelihoods = True
            break

    if (
        filtered_record_merge_type == FILTERED_RECORD_MERGE_TYPE.KEEP_IF_ANY_UNFILTERED
        and n_filtered != len(records)
    ) or filtered_record_merge_type == FILTERED_RECORD_MERGE_TYPE.KEEP_UNCONDITIONAL:
        filters.clear()

    if depth > 0:
        info[VCF_KEY.DEPTH] = depth
    if merge_info_with_max_ac and max_ac_record is not None:
        info = dict(max_ac_record.info)

    if annotate_origin and set_key:
        if n_filtered == 0 and len(variant_sources) == original_num_records:
            origin = MERGE_TAG.INTERSECTION
        elif n_filtered == len(records):
            origin = MERGE_TAG.FILTER_IN_ALL
        elif not variant_sources:
            origin = MERGE_TAG.REF_IN_ALL
        else:
            sources = []
            for record in records:
                if not record.is_variant:
                    continue
                source = MERGE_TAG.FILTER_PREFIX + record.source if record.is_filtered else record.source
                if source not in sources:
                    sources.append(source)
            origin = '-'.join(sources)
        info[set_key] = origin

    builder = (
        VariantRecordBuilder(first.source, longest.contig, longest.start, longest.stop, alleles)
        .id(','.join(ids) if ids else NO_CALL)
        .qual(qual)
        .info(info)
        .genotypes(genotypes)
    )
    if filters_applied:
        builder.filters(filters)
    else:
        builder.unfiltered()
    merged = builder.build()
    if strip_likelihoods:
        merged = calculate_chromosome_counts(merged, remove_stale=True)
    return merged
