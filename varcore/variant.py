"""
the variant record model: immutable records and genotypes built through mutable builders
"""
from collections import abc
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .allele import Allele
from .constants import NO_CALL, VCF_KEY
from .error import InvalidArgumentError
from .interval import Interval


@dataclass(frozen=True)
class Genotype:
    """
    the call for a single sample at a variant site

    Attributes:
        sample_name: name of the sample
        alleles: the called alleles, one per chromosome copy
        gq: genotype quality (phred-scaled)
        dp: read depth
        ad: allele depths, one per allele of the record
        likelihoods: log10 genotype likelihoods in canonical genotype order
        filters: sample-level filter string
        phased: whether the alleles are phased
        extended: any other per-sample fields (read-only)
    """

    sample_name: str
    alleles: Tuple[Allele, ...] = ()
    gq: Optional[int] = None
    dp: Optional[int] = None
    ad: Optional[Tuple[int, ...]] = None
    likelihoods: Optional[Tuple[float, ...]] = None
    filters: Optional[str] = None
    phased: bool = False
    extended: Mapping[str, object] = field(default_factory=dict, compare=True, hash=False)

    def __post_init__(self):
        object.__setattr__(self, 'extended', MappingProxyType(dict(self.extended)))

    @property
    def ploidy(self) -> int:
        return len(self.alleles)

    @property
    def pl(self) -> Optional[Tuple[int, ...]]:
        """
        the likelihoods as phred-scaled values shifted so that the best genotype is 0

        Example:
            >>> GenotypeBuilder('s').likelihoods([-2, -1, 0]).build().pl
            (20, 10, 0)
        """
        if self.likelihoods is None:
            return None
        best = max(self.likelihoods)
        return tuple(int(round(-10 * (gl - best))) for gl in self.likelihoods)

    @property
    def has_likelihoods(self) -> bool:
        return self.likelihoods is not None

    @property
    def has_ad(self) -> bool:
        return self.ad is not None

    @property
    def has_gq(self) -> bool:
        return self.gq is not None

    @property
    def has_dp(self) -> bool:
        return self.dp is not None

    @property
    def is_no_call(self) -> bool:
        return all(allele.is_no_call for allele in self.alleles)

    @property
    def is_called(self) -> bool:
        return bool(self.alleles) and all(allele.is_called for allele in self.alleles)

    @property
    def is_hom_ref(self) -> bool:
        return self.is_called and all(allele.is_reference for allele in self.alleles)

    @property
    def is_het(self) -> bool:
        return self.is_called and len(set(self.alleles)) > 1

    @property
    def is_hom_var(self) -> bool:
        return self.is_called and len(set(self.alleles)) == 1 and self.alleles[0].is_non_reference

    @property
    def is_filtered(self) -> bool:
        return self.filters is not None and self.filters != 'PASS'

    def count_allele(self, allele: Allele) -> int:
        return sum(1 for a in self.alleles if a == allele)

    def get_extended_attribute(self, key, default=None):
        return self.extended.get(key, default)

    def __str__(self):
        sep = '|' if self.phased else '/'
        return '{}:{}'.format(self.sample_name, sep.join([str(a) for a in self.alleles]))


class GenotypeBuilder:
    """
    mutable builder for :class:`Genotype`

    Example:
        >>> g = GenotypeBuilder('s1', [Allele('A', True), Allele('T')]).gq(30).build()
        >>> g.is_het
        True
    """

    def __init__(self, sample_name: Optional[str] = None, alleles: Optional[Iterable[Allele]] = None):
        self._sample_name = sample_name
        self._alleles = list(alleles) if alleles is not None else []
        self._gq = None
        self._dp = None
        self._ad = None
        self._likelihoods = None
        self._filters = None
        self._phased = False
        self._extended = {}

    @classmethod
    def from_genotype(cls, genotype: Genotype) -> 'GenotypeBuilder':
        builder = cls(genotype.sample_name, genotype.alleles)
        builder._gq = genotype.gq
        builder._dp = genotype.dp
        builder._ad = genotype.ad
        builder._likelihoods = genotype.likelihoods
        builder._filters = genotype.filters
        builder._phased = genotype.phased
        builder._extended = dict(genotype.extended)
        return builder

    def name(self, sample_name: str) -> 'GenotypeBuilder':
        self._sample_name = sample_name
        return self

    def alleles(self, alleles: Iterable[Allele]) -> 'GenotypeBuilder':
        self._alleles = list(alleles)
        return self

    def gq(self, gq: Optional[int]) -> 'GenotypeBuilder':
        self._gq = None if gq is None else int(gq)
        return self

    def no_gq(self) -> 'GenotypeBuilder':
        return self.gq(None)

    def dp(self, dp: Optional[int]) -> 'GenotypeBuilder':
        self._dp = None if dp is None else int(dp)
        return self

    def ad(self, ad: Optional[Iterable[int]]) -> 'GenotypeBuilder':
        self._ad = None if ad is None else tuple(int(v) for v in ad)
        return self

    def no_ad(self) -> 'GenotypeBuilder':
        return self.ad(None)

    def likelihoods(self, likelihoods: Optional[Iterable[float]]) -> 'GenotypeBuilder':
        """
        set the log10 genotype likelihoods
        """
        self._likelihoods = None if likelihoods is None else tuple(float(v) for v in likelihoods)
        return self

    def pl(self, pls: Optional[Iterable[int]]) -> 'GenotypeBuilder':
        """
        set the likelihoods from phred-scaled values
        """
        if pls is None:
            return self.likelihoods(None)
        return self.likelihoods([-1 * p / 10.0 for p in pls])

    def no_likelihoods(self) -> 'GenotypeBuilder':
        return self.likelihoods(None)

    def filters(self, filters: Optional[str]) -> 'GenotypeBuilder':
        self._filters = filters
        return self

    def phased(self, phased: bool = True) -> 'GenotypeBuilder':
        self._phased = bool(phased)
        return self

    def attribute(self, key: str, value) -> 'GenotypeBuilder':
        self._extended[key] = value
        return self

    def rm_attribute(self, key: str) -> 'GenotypeBuilder':
        self._extended.pop(key, None)
        return self

    def build(self) -> Genotype:
        if not self._sample_name:
            raise InvalidArgumentError('a genotype requires a sample name')
        for allele in self._alleles:
            if not isinstance(allele, Allele):
                raise InvalidArgumentError('genotype alleles must be Allele objects', allele)
        return Genotype(
            sample_name=self._sample_name,
            alleles=tuple(self._alleles),
            gq=self._gq,
            dp=self._dp,
            ad=self._ad,
            likelihoods=self._likelihoods,
            filters=self._filters,
            phased=self._phased,
            extended=self._extended,
        )


@dataclass(frozen=True)
class VariantRecord:
    """
    a variant site: its location, alleles, annotations and per-sample genotypes

    Attributes:
        contig: the chromosome name
        start: the 1-based start position
        stop: the 1-based inclusive end position
        alleles: the reference allele followed by the alternate alleles
        source: name of the call set this record came from
        id: the record identifier, '.' when missing
        qual: the site quality, None when missing
        filters: None when filters were not applied, an empty set for PASS, otherwise the failed filters
        info: site level annotations (read-only)
        genotypes: per-sample calls keyed by sample name (read-only)
    """

    contig: str
    start: int
    stop: int
    alleles: Tuple[Allele, ...]
    source: str = ''
    id: str = NO_CALL
    qual: Optional[float] = None
    filters: Optional[frozenset] = None
    info: Mapping[str, object] = field(default_factory=dict, hash=False)
    genotypes: Mapping[str, Genotype] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, 'info', MappingProxyType(dict(self.info)))
        object.__setattr__(self, 'genotypes', MappingProxyType(dict(self.genotypes)))

    @property
    def reference(self) -> Allele:
        return self.alleles[0]

    @property
    def alternate_alleles(self) -> List[Allele]:
        return list(self.alleles[1:])

    @property
    def n_alleles(self) -> int:
        return len(self.alleles)

    @property
    def location(self) -> Interval:
        return Interval(self.contig, self.start, self.stop)

    @property
    def length(self) -> int:
        return self.stop - self.start + 1

    @property
    def has_id(self) -> bool:
        return self.id != NO_CALL

    @property
    def is_biallelic(self) -> bool:
        return len(self.alleles) == 2

    @property
    def is_variant(self) -> bool:
        return len(self.alleles) > 1

    @property
    def is_symbolic(self) -> bool:
        return any(a.is_symbolic for a in self.alleles[1:])

    @property
    def is_snp(self) -> bool:
        return (
            self.is_variant
            and not self.is_symbolic
            and self.reference.length() == 1
            and all(a.length() == 1 for a in self.alleles[1:])
        )

    @property
    def is_mnp(self) -> bool:
        ref_len = self.reference.length()
        return (
            self.is_variant
            and not self.is_symbolic
            and ref_len > 1
            and all(a.length() == ref_len for a in self.alleles[1:])
        )

    @property
    def is_indel(self) -> bool:
        ref_len = self.reference.length()
        return (
            self.is_variant
            and not self.is_symbolic
            and all(a.length() != ref_len for a in self.alleles[1:])
        )

    @property
    def indel_lengths(self) -> List[int]:
        return [a.length() - self.reference.length() for a in self.alleles[1:]]

    @property
    def filters_were_applied(self) -> bool:
        return self.filters is not None

    @property
    def is_filtered(self) -> bool:
        return bool(self.filters)

    @property
    def is_not_filtered(self) -> bool:
        return not self.filters

    @property
    def sample_names(self) -> List[str]:
        return list(self.genotypes.keys())

    @property
    def has_genotypes(self) -> bool:
        return bool(self.genotypes)

    def get_genotype(self, sample_name: str) -> Optional[Genotype]:
        return self.genotypes.get(sample_name)

    def has_allele(self, allele: Allele) -> bool:
        return allele in self.alleles

    def allele_index(self, allele: Allele) -> int:
        """
        the index of an allele in the record, -1 if it is not present
        """
        try:
            return self.alleles.index(allele)
        except ValueError:
            return -1

    def get_max_ploidy(self, default: int = 2) -> int:
        ploidies = [g.ploidy for g in self.genotypes.values() if g.ploidy]
        return max(ploidies) if ploidies else default

    def get_called_chr_count(self, allele: Optional[Allele] = None) -> int:
        """
        the number of called alleles across all samples, restricted to a single allele when given
        """
        total = 0
        for genotype in self.genotypes.values():
            for called in genotype.alleles:
                if called.is_no_call:
                    continue
                if allele is None or called == allele:
                    total += 1
        return total

    def __str__(self):
        return '{}:{}-{} {} {}'.format(
            self.contig, self.start, self.stop, [str(a) for a in self.alleles], self.sample_names
        )


class VariantRecordBuilder:
    """
    mutable builder for :class:`VariantRecord`

    Alleles given as strings are converted, the first becoming the reference

    Example:
        >>> record = VariantRecordBuilder('vcf1', 'chr1', 10, alleles=['A', 'T']).build()
        >>> record.stop
        10
    """

    def __init__(self, source='', contig=None, start=None, stop=None, alleles=None):
        self._source = source or ''
        self._contig = contig
        self._start = start
        self._stop = stop
        self._alleles = []
        self._id = NO_CALL
        self._qual = None
        self._filters = None
        self._info = {}
        self._genotypes = {}
        if alleles is not None:
            self.alleles(alleles)

    @classmethod
    def from_record(cls, record: VariantRecord) -> 'VariantRecordBuilder':
        builder = cls(record.source, record.contig, record.start, record.stop, record.alleles)
        builder._id = record.id
        builder._qual = record.qual
        builder._filters = None if record.filters is None else set(record.filters)
        builder._info = dict(record.info)
        builder._genotypes = dict(record.genotypes)
        return builder

    def source(self, source: str) -> 'VariantRecordBuilder':
        self._source = source or ''
        return self

    def loc(self, contig: str, start: int, stop: Optional[int] = None) -> 'VariantRecordBuilder':
        self._contig = contig
        self._start = start
        self._stop = stop
        return self

    def contig(self, contig: str) -> 'VariantRecordBuilder':
        self._contig = contig
        return self

    def start(self, start: int) -> 'VariantRecordBuilder':
        self._start = start
        return self

    def stop(self, stop: Optional[int]) -> 'VariantRecordBuilder':
        self._stop = stop
        return self

    def compute_stop(self) -> 'VariantRecordBuilder':
        """
        set the stop position from the start position and the reference length
        """
        self._stop = self._start + self._reference_length() - 1
        return self

    def alleles(self, alleles: Iterable) -> 'VariantRecordBuilder':
        converted = []
        for i, allele in enumerate(alleles):
            if not isinstance(allele, Allele):
                allele = Allele(allele, is_reference=(i == 0))
            converted.append(allele)
        self._alleles = converted
        return self

    def id(self, id_: Optional[str]) -> 'VariantRecordBuilder':
        self._id = id_ if id_ else NO_CALL
        return self

    def qual(self, qual: Optional[float]) -> 'VariantRecordBuilder':
        self._qual = qual
        return self

    def filters(self, filters: Optional[Iterable[str]]) -> 'VariantRecordBuilder':
        """
        set the filters. None means filters were never applied, 'PASS' and '.' are not stored as filters
        """
        if filters is None:
            self._filters = None
        else:
            if isinstance(filters, str):
                filters = [filters]
            self._filters = {f for f in filters if f not in ['PASS', NO_CALL]}
        return self

    def pass_filters(self) -> 'VariantRecordBuilder':
        self._filters = set()
        return self

    def unfiltered(self) -> 'VariantRecordBuilder':
        self._filters = None
        return self

    def info(self, info: Dict[str, object]) -> 'VariantRecordBuilder':
        self._info = dict(info)
        return self

    def attribute(self, key: str, value) -> 'VariantRecordBuilder':
        self._info[key] = value
        return self

    def rm_attribute(self, key: str) -> 'VariantRecordBuilder':
        self._info.pop(key, None)
        return self

    def genotypes(self, genotypes) -> 'VariantRecordBuilder':
        """
        set the genotypes from a mapping of sample name to genotype or an iterable of genotypes
        """
        if isinstance(genotypes, abc.Mapping):
            genotypes = genotypes.values()
        self._genotypes = {}
        for genotype in genotypes:
            self._genotypes[genotype.sample_name] = genotype
        return self

    def no_genotypes(self) -> 'VariantRecordBuilder':
        self._genotypes = {}
        return self

    def _reference_length(self):
        if not self._alleles:
            raise InvalidArgumentError('cannot compute the stop position without alleles')
        return max(self._alleles[0].length(), 1)

    def build(self) -> VariantRecord:
        if not self._contig:
            raise InvalidArgumentError('a variant record requires a contig')
        if self._start is None or self._start < 1:
            raise InvalidArgumentError('a variant record requires a 1-based start position', self._start)
        if not self._alleles:
            raise InvalidArgumentError('a variant record requires at least one allele')
        if not self._alleles[0].is_reference:
            raise InvalidArgumentError('the first allele must be the reference', self._alleles[0])
        if any(a.is_reference for a in self._alleles[1:]):
            raise InvalidArgumentError('only one reference allele is allowed', self._alleles)
        if len(set(self._alleles)) != len(self._alleles):
            raise InvalidArgumentError('duplicate alleles are not allowed', self._alleles)

        stop = self._stop
        expected_stop = self._start + self._reference_length() - 1
        if stop is None:
            stop = expected_stop
        elif stop != expected_stop and not any(a.is_symbolic for a in self._alleles):
            raise InvalidArgumentError(
                'stop position does not match the length of the reference allele', stop, expected_stop
            )
        if stop < self._start:
            raise InvalidArgumentError('stop position cannot be before the start', self._start, stop)

        return VariantRecord(
            contig=self._contig,
            start=self._start,
            stop=stop,
            alleles=tuple(self._alleles),
            source=self._source,
            id=self._id,
            qual=self._qual,
            filters=None if self._filters is None else frozenset(self._filters),
            info=self._info,
            genotypes=self._genotypes,
        )


def no_call_alleles(ploidy: int) -> List[Allele]:
    """
    a list of no-call alleles for a given ploidy

    Example:
        >>> no_call_alleles(2)
        [Allele(.), Allele(.)]
    """
    return [Allele.NO_CALL] * ploidy


def calculate_chromosome_counts(record: VariantRecord, remove_stale: bool = True) -> VariantRecord:
    """
    compute the allele number (AN), allele counts (AC) and allele frequencies (AF) from the called genotypes

    Args:
        record: the record to annotate
        remove_stale: drop existing AN/AC/AF values when no chromosome was called

    Returns:
        VariantRecord: a copy of the record with updated info

    Raises:
        InvalidArgumentError: if the record is not given
    """
    if record is None:
        raise InvalidArgumentError('a record is required to calculate chromosome counts')
    builder = VariantRecordBuilder.from_record(record)
    called = record.get_called_chr_count()
    if called == 0 and remove_stale:
        for key in [VCF_KEY.ALLELE_COUNT, VCF_KEY.ALLELE_FREQUENCY, VCF_KEY.ALLELE_NUMBER]:
            builder.rm_attribute(key)
        return builder.build()
    if record.has_genotypes:
        builder.attribute(VCF_KEY.ALLELE_NUMBER, called)
        if record.is_variant:
            counts = [record.get_called_chr_count(alt) for alt in record.alternate_alleles]
            builder.attribute(VCF_KEY.ALLELE_COUNT, counts)
            builder.attribute(
                VCF_KEY.ALLELE_FREQUENCY, [(count / called if called else 0.0) for count in counts]
            )
        else:
            builder.rm_attribute(VCF_KEY.ALLELE_COUNT)
            builder.rm_attribute(VCF_KEY.ALLELE_FREQUENCY)
    return builder.build()


class AlleleMapper:
    """
    maps the alleles of a record onto another set of alleles, the identity mapping when no map is given

    Example:
        >>> mapper = AlleleMapper({Allele('A'): Allele('AT')})
        >>> mapper.remap([Allele('A'), Allele('C')])
        [Allele(AT), Allele(C)]
    """

    def __init__(self, mapping: Optional[Dict[Allele, Allele]] = None, record: Optional[VariantRecord] = None):
        if mapping is None and record is None:
            raise InvalidArgumentError('an allele mapper requires a mapping or a record')
        self.mapping = mapping
        self.record = record

    @property
    def needs_remapping(self) -> bool:
        return self.mapping is not None

    def values(self) -> List[Allele]:
        """
        the alleles being mapped onto, in order
        """
        if self.mapping is not None:
            return list(self.mapping.values())
        return list(self.record.alleles)

    def remap_allele(self, allele: Allele) -> Allele:
        if self.mapping is not None and allele in self.mapping:
            return self.mapping[allele]
        return allele

    def remap(self, alleles: Iterable[Allele]) -> List[Allele]:
        return [self.remap_allele(allele) for allele in alleles]


def update_genotypes_with_mapped_alleles(
    genotypes: Dict[str, Genotype], allele_mapper: AlleleMapper
) -> Dict[str, Genotype]:
    """
    replace the called alleles of each genotype using an allele mapper

    Returns:
        Dict[str,Genotype]: the updated genotypes by sample name
    """
    if genotypes is None or allele_mapper is None:
        raise InvalidArgumentError('genotypes and an allele mapper are required')
    result = {}
    for name, genotype in genotypes.items():
        result[name] = GenotypeBuilder.from_genotype(genotype).alleles(allele_mapper.remap(genotype.alleles)).build()
    return result
