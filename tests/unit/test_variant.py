import unittest

import pytest
from varcore.allele import Allele
from varcore.constants import VCF_KEY
from varcore.error import InvalidArgumentError
from varcore.variant import (
    AlleleMapper,
    GenotypeBuilder,
    VariantRecordBuilder,
    calculate_chromosome_counts,
    no_call_alleles,
    update_genotypes_with_mapped_alleles,
)

from .mock import mock_genotype, mock_record

REF = Allele('A', True)
ALT_T = Allele('T')
ALT_G = Allele('G')


class TestGenotype(unittest.TestCase):
    def test_het(self):
        genotype = mock_genotype('s1', [REF, ALT_T])
        self.assertTrue(genotype.is_het)
        self.assertTrue(genotype.is_called)
        self.assertFalse(genotype.is_hom_ref)
        self.assertFalse(genotype.is_hom_var)
        self.assertEqual(2, genotype.ploidy)

    def test_hom_ref(self):
        genotype = mock_genotype('s1', [REF, REF])
        self.assertTrue(genotype.is_hom_ref)
        self.assertFalse(genotype.is_het)

    def test_hom_var(self):
        genotype = mock_genotype('s1', [ALT_T, ALT_T])
        self.assertTrue(genotype.is_hom_var)

    def test_no_call(self):
        genotype = mock_genotype('s1', no_call_alleles(2))
        self.assertTrue(genotype.is_no_call)
        self.assertFalse(genotype.is_called)
        self.assertFalse(genotype.is_hom_ref)

    def test_pl_from_likelihoods(self):
        genotype = mock_genotype('s1', [REF, ALT_T], likelihoods=[-3.0, -0.5, -2.0])
        self.assertEqual((25, 0, 15), genotype.pl)

    def test_likelihoods_from_pl(self):
        genotype = mock_genotype('s1', [REF, ALT_T], pl=[0, 10, 100])
        self.assertEqual((0.0, -1.0, -10.0), genotype.likelihoods)
        self.assertEqual((0, 10, 100), genotype.pl)
        self.assertTrue(genotype.has_likelihoods)

    def test_filtered(self):
        self.assertFalse(GenotypeBuilder('s1').filters('PASS').build().is_filtered)
        self.assertTrue(GenotypeBuilder('s1').filters('LowGQ').build().is_filtered)
        self.assertFalse(GenotypeBuilder('s1').build().is_filtered)

    def test_count_allele(self):
        genotype = mock_genotype('s1', [REF, ALT_T, ALT_T])
        self.assertEqual(2, genotype.count_allele(ALT_T))
        self.assertEqual(0, genotype.count_allele(ALT_G))

    def test_name_required(self):
        with self.assertRaises(InvalidArgumentError):
            GenotypeBuilder(None, [REF]).build()

    def test_alleles_must_be_objects(self):
        with self.assertRaises(InvalidArgumentError):
            GenotypeBuilder('s1', ['A']).build()


class TestGenotypeBuilder:
    def test_from_genotype_copies(self):
        original = mock_genotype('s1', [REF, ALT_T], pl=[10, 0, 20], ad=[3, 4], gq=10, dp=7, SAC=[1, 2, 2, 2])
        copy = GenotypeBuilder.from_genotype(original).build()
        assert copy == original
        assert copy.get_extended_attribute(VCF_KEY.STRAND_COUNT_BY_SAMPLE) == [1, 2, 2, 2]

    def test_edit_does_not_change_original(self):
        original = mock_genotype('s1', [REF, ALT_T], ad=[3, 4], gq=10)
        edited = GenotypeBuilder.from_genotype(original).no_ad().no_gq().name('s2').build()
        assert original.ad == (3, 4)
        assert original.gq == 10
        assert edited.ad is None
        assert edited.gq is None
        assert edited.sample_name == 's2'

    def test_phased(self):
        genotype = GenotypeBuilder('s1', [REF, ALT_T]).phased().build()
        assert genotype.phased
        assert str(genotype) == 's1:A|T'

    def test_rm_attribute(self):
        genotype = GenotypeBuilder('s1').attribute('XX', 1).rm_attribute('XX').build()
        assert genotype.get_extended_attribute('XX') is None

    def test_extended_is_read_only(self):
        builder = GenotypeBuilder('s1').attribute('XX', 1)
        genotype = builder.build()
        with pytest.raises(TypeError):
            genotype.extended['XX'] = 2
        builder.attribute('XX', 3)
        assert genotype.get_extended_attribute('XX') == 1
        assert genotype.extended == {'XX': 1}


class TestVariantRecordBuilder(unittest.TestCase):
    def test_string_alleles(self):
        record = VariantRecordBuilder('src', '1', 10, alleles=['ACT', 'A', 'ACTT']).build()
        self.assertEqual(Allele('ACT', True), record.reference)
        self.assertEqual([Allele('A'), Allele('ACTT')], record.alternate_alleles)
        self.assertEqual(12, record.stop)
        self.assertEqual(3, record.length)
        self.assertEqual('src', record.source)

    def test_stop_must_match_reference(self):
        with self.assertRaises(InvalidArgumentError):
            VariantRecordBuilder('', '1', 10, 15, ['ACT', 'A']).build()

    def test_symbolic_record_stop(self):
        record = VariantRecordBuilder('', '1', 10, 200, ['A', '<DEL>']).build()
        self.assertEqual(200, record.stop)
        self.assertTrue(record.is_symbolic)

    def test_compute_stop(self):
        record = VariantRecordBuilder('', '1', 10, 11, ['AC', 'A']).start(20).compute_stop().build()
        self.assertEqual(21, record.stop)

    def test_reference_first(self):
        with self.assertRaises(InvalidArgumentError):
            VariantRecordBuilder('', '1', 10, alleles=[ALT_T, REF]).build()

    def test_single_reference(self):
        with self.assertRaises(InvalidArgumentError):
            VariantRecordBuilder('', '1', 10, alleles=[REF, Allele('A', True)]).build()

    def test_duplicate_alleles(self):
        with self.assertRaises(InvalidArgumentError):
            VariantRecordBuilder('', '1', 10, alleles=['A', 'T', 'T']).build()

    def test_contig_required(self):
        with self.assertRaises(InvalidArgumentError):
            VariantRecordBuilder('', None, 10, alleles=['A', 'T']).build()

    def test_start_required(self):
        with self.assertRaises(InvalidArgumentError):
            VariantRecordBuilder('', '1', 0, alleles=['A', 'T']).build()

    def test_alleles_required(self):
        with self.assertRaises(InvalidArgumentError):
            VariantRecordBuilder('', '1', 10).build()

    def test_filters(self):
        self.assertFalse(mock_record(['A', 'T']).filters_were_applied)
        passed = mock_record(['A', 'T'], filters='PASS')
        self.assertTrue(passed.filters_were_applied)
        self.assertFalse(passed.is_filtered)
        self.assertEqual(frozenset(), passed.filters)
        failed = mock_record(['A', 'T'], filters=['q10', 'PASS'])
        self.assertTrue(failed.is_filtered)
        self.assertEqual({'q10'}, failed.filters)

    def test_from_record_round_trip(self):
        record = mock_record(
            ['A', 'T'], source='a', filters=['q10'], id_='rs1', qual=30, info={'DP': 10},
            genotypes=[mock_genotype('s1', [REF, ALT_T])]
        )
        self.assertEqual(record, VariantRecordBuilder.from_record(record).build())
        edited = VariantRecordBuilder.from_record(record).rm_attribute('DP').pass_filters().build()
        self.assertEqual({'DP': 10}, record.info)
        self.assertEqual({}, edited.info)
        self.assertFalse(edited.is_filtered)

    def test_mappings_are_read_only(self):
        record = mock_record(['A', 'T'], info={'DP': 10}, genotypes=[mock_genotype('s1', [REF, ALT_T])])
        with self.assertRaises(TypeError):
            record.info['DP'] = 20
        with self.assertRaises(TypeError):
            record.genotypes['s2'] = mock_genotype('s2', [REF, REF])
        self.assertEqual(10, record.info['DP'])
        self.assertEqual(['s1'], record.sample_names)

    def test_builder_keeps_its_own_copy(self):
        builder = VariantRecordBuilder('a', '1', 10, alleles=['A', 'T']).info({'DP': 10})
        record = builder.build()
        builder.attribute('DP', 20)
        self.assertEqual({'DP': 10}, record.info)
        self.assertEqual({'DP': 20}, builder.build().info)

    def test_genotypes_from_record_mapping(self):
        record = mock_record(['A', 'T'], genotypes=[mock_genotype('s1', [REF, ALT_T])])
        copy = VariantRecordBuilder('b', '1', 10, alleles=['A', 'T']).genotypes(record.genotypes).build()
        self.assertEqual(record.genotypes, copy.genotypes)

    def test_missing_id(self):
        self.assertFalse(mock_record(['A', 'T']).has_id)
        self.assertEqual('.', mock_record(['A', 'T'], id_='').id)
        self.assertTrue(mock_record(['A', 'T'], id_='rs1').has_id)


class TestVariantRecordTypes:
    def test_snp(self):
        record = mock_record(['A', 'T', 'G'])
        assert record.is_snp
        assert not record.is_indel
        assert not record.is_mnp
        assert not record.is_biallelic

    def test_mnp(self):
        record = mock_record(['AC', 'TG'])
        assert record.is_mnp
        assert not record.is_snp

    def test_indel(self):
        record = mock_record(['AC', 'A', 'ACCC'])
        assert record.is_indel
        assert record.indel_lengths == [-1, 2]

    def test_mixed(self):
        record = mock_record(['A', 'T', 'AC'])
        assert not record.is_snp
        assert not record.is_indel
        assert not record.is_mnp

    def test_not_variant(self):
        record = mock_record(['A'])
        assert not record.is_variant
        assert not record.is_snp
        assert record.alternate_alleles == []

    def test_symbolic(self):
        record = mock_record(['A', '<DEL>'], stop=100)
        assert record.is_symbolic
        assert not record.is_indel
        assert not record.is_snp


class TestVariantRecordGenotypes:
    def test_sample_names_keep_order(self):
        record = mock_record(
            ['A', 'T'], genotypes=[mock_genotype('b', [REF, REF]), mock_genotype('a', [REF, ALT_T])]
        )
        assert record.sample_names == ['b', 'a']
        assert record.get_genotype('a').is_het
        assert record.get_genotype('c') is None
        assert record.has_genotypes

    def test_max_ploidy(self):
        record = mock_record(
            ['A', 'T'], genotypes=[mock_genotype('a', [REF]), mock_genotype('b', [REF, ALT_T, ALT_T])]
        )
        assert record.get_max_ploidy() == 3
        assert mock_record(['A', 'T']).get_max_ploidy(default=4) == 4

    def test_allele_index(self):
        record = mock_record(['A', 'T', 'G'])
        assert record.allele_index(ALT_G) == 2
        assert record.allele_index(Allele('C')) == -1
        assert record.has_allele(REF)

    def test_called_chr_count(self):
        record = mock_record(
            ['A', 'T', 'G'],
            genotypes=[
                mock_genotype('a', [REF, ALT_T]),
                mock_genotype('b', [ALT_T, ALT_G]),
                mock_genotype('c', no_call_alleles(2)),
            ],
        )
        assert record.get_called_chr_count() == 4
        assert record.get_called_chr_count(ALT_T) == 2
        assert record.get_called_chr_count(REF) == 1


class TestCalculateChromosomeCounts:
    def test_counts(self):
        record = mock_record(
            ['A', 'T', 'G'],
            genotypes=[
                mock_genotype('s1', [REF, ALT_T]),
                mock_genotype('s2', [ALT_T, ALT_T]),
                mock_genotype('s3', no_call_alleles(2)),
            ],
        )
        result = calculate_chromosome_counts(record)
        assert result.info[VCF_KEY.ALLELE_NUMBER] == 4
        assert result.info[VCF_KEY.ALLELE_COUNT] == [3, 0]
        assert result.info[VCF_KEY.ALLELE_FREQUENCY] == [0.75, 0.0]
        assert VCF_KEY.ALLELE_NUMBER not in record.info

    def test_remove_stale(self):
        record = mock_record(
            ['A', 'T'], info={'AC': [2], 'AF': [0.5], 'AN': 4}, genotypes=[mock_genotype('s1', no_call_alleles(2))]
        )
        result = calculate_chromosome_counts(record, remove_stale=True)
        assert result.info == {}

    def test_keep_stale(self):
        record = mock_record(['A', 'T'], info={'AC': [2]}, genotypes=[mock_genotype('s1', no_call_alleles(2))])
        result = calculate_chromosome_counts(record, remove_stale=False)
        assert result.info[VCF_KEY.ALLELE_NUMBER] == 0
        assert result.info[VCF_KEY.ALLELE_COUNT] == [0]

    def test_missing_record_error(self):
        with pytest.raises(InvalidArgumentError):
            calculate_chromosome_counts(None)


class TestAlleleMapper:
    def test_identity(self):
        record = mock_record(['A', 'T'])
        mapper = AlleleMapper(record=record)
        assert not mapper.needs_remapping
        assert mapper.values() == [REF, ALT_T]
        assert mapper.remap([ALT_T]) == [ALT_T]

    def test_mapping(self):
        mapper = AlleleMapper({Allele('A', True): Allele('AT', True), ALT_T: Allele('TT')})
        assert mapper.needs_remapping
        assert mapper.remap([REF, ALT_T, Allele.NO_CALL]) == [Allele('AT', True), Allele('TT'), Allele.NO_CALL]
        assert mapper.values() == [Allele('AT', True), Allele('TT')]

    def test_requires_input(self):
        with pytest.raises(InvalidArgumentError):
            AlleleMapper()

    def test_update_genotypes(self):
        genotypes = {'s1': mock_genotype('s1', [REF, ALT_T], gq=20)}
        mapper = AlleleMapper({REF: Allele('AT', True), ALT_T: Allele('TT')})
        result = update_genotypes_with_mapped_alleles(genotypes, mapper)
        assert result['s1'].alleles == (Allele('AT', True), Allele('TT'))
        assert result['s1'].gq == 20
        assert genotypes['s1'].alleles == (REF, ALT_T)
