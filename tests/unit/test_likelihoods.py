import unittest

import pytest
from varcore.allele import Allele
from varcore.constants import GENOTYPE_ASSIGNMENT_METHOD, VCF_KEY
from varcore.error import InvalidArgumentError
from varcore.likelihoods import (
    calculate_gq_from_pls,
    determine_sac_indexes_to_use,
    enumerate_genotypes,
    genotype_allele_indices,
    genotype_index,
    get_gq_log10_from_likelihoods,
    likelihoods_are_uninformative,
    make_new_sacs,
    normalize_log10,
    num_likelihoods,
    subset_alleles,
    subset_to_ref_only,
    update_pls_and_ad,
)
from varcore.util import DIAGNOSTICS, reset_diagnostics
from varcore.variant import VariantRecordBuilder

from .mock import mock_genotype, mock_record

REF = Allele('A', True)
ALT_T = Allele('T')
ALT_G = Allele('G')

# log10 likelihoods for the genotypes AA, AT, TT, AG, TG, GG
LIKELIHOODS = [-5.0, -1.0, -4.0, -0.5, -3.0, -6.0]


def tri_allelic(**kwargs):
    genotype = mock_genotype('s1', [REF, ALT_G], likelihoods=LIKELIHOODS, **kwargs)
    return mock_record([REF, ALT_T, ALT_G], genotypes=[genotype])


class TestGenotypeOrdering(unittest.TestCase):
    def test_num_likelihoods(self):
        self.assertEqual(3, num_likelihoods(2, 2))
        self.assertEqual(6, num_likelihoods(3, 2))
        self.assertEqual(10, num_likelihoods(4, 2))
        self.assertEqual(4, num_likelihoods(2, 3))
        self.assertEqual(2, num_likelihoods(2, 1))
        with self.assertRaises(InvalidArgumentError):
            num_likelihoods(0, 2)

    def test_diploid_order(self):
        self.assertEqual(
            ((0, 0), (0, 1), (1, 1), (0, 2), (1, 2), (2, 2)),
            enumerate_genotypes(3, 2),
        )

    def test_triploid_order(self):
        self.assertEqual(((0, 0, 0), (0, 0, 1), (0, 1, 1), (1, 1, 1)), enumerate_genotypes(2, 3))

    def test_index_matches_enumeration(self):
        for n_alleles, ploidy in [(3, 2), (4, 3), (2, 4), (5, 1)]:
            genotypes = enumerate_genotypes(n_alleles, ploidy)
            self.assertEqual(num_likelihoods(n_alleles, ploidy), len(genotypes))
            for index, genotype in enumerate(genotypes):
                self.assertEqual(index, genotype_index(genotype))
                self.assertEqual(genotype, genotype_allele_indices(index, ploidy))

    def test_index_ignores_allele_order(self):
        self.assertEqual(genotype_index([0, 2]), genotype_index([2, 0]))
        self.assertEqual(3, genotype_index([2, 0]))

    def test_negative_index_error(self):
        with self.assertRaises(InvalidArgumentError):
            genotype_allele_indices(-1, 2)


class TestLikelihoodHelpers:
    def test_normalize(self):
        assert normalize_log10([-3, -1, -2]) == [-2.0, 0.0, -1.0]

    def test_uninformative(self):
        assert likelihoods_are_uninformative([0, 0, 0])
        assert likelihoods_are_uninformative([0, -0.05, 0])
        assert not likelihoods_are_uninformative([0, -1, -2])

    def test_gq_log10(self):
        assert get_gq_log10_from_likelihoods(1, [-4.0, 0.0, -3.0]) == -3.0
        assert get_gq_log10_from_likelihoods(0, [0.0]) == 0.0

    def test_gq_log10_chosen_not_best(self):
        assert get_gq_log10_from_likelihoods(0, [-1.0, 0.0]) == pytest.approx(-0.0413926852)

    @pytest.mark.parametrize(
        'pls,expected',
        [
            ([0, 15, 20], 15),
            ([20, 0, 15], 15),
            ([20, 15, 0], 15),
            ([0, 0, 10], 0),
            ([35, 40, -10, 15, 20], 25),
            ([1, 2], 1),
        ],
    )
    def test_calculate_gq_from_pls(self, pls, expected):
        assert calculate_gq_from_pls(pls) == expected

    def test_calculate_gq_from_pls_error(self):
        with pytest.raises(InvalidArgumentError):
            calculate_gq_from_pls([10])
        with pytest.raises(InvalidArgumentError):
            calculate_gq_from_pls(None)


class TestStrandCounts:
    def test_indexes(self):
        record = mock_record([REF, ALT_T, ALT_G])
        assert determine_sac_indexes_to_use(record, [REF, ALT_G]) == [0, 1, 4, 5]
        assert determine_sac_indexes_to_use(record, [REF, ALT_T]) == [0, 1, 2, 3]
        assert determine_sac_indexes_to_use(record, [REF, ALT_T, ALT_G]) == [0, 1, 2, 3, 4, 5]

    def test_indexes_error(self):
        with pytest.raises(InvalidArgumentError):
            determine_sac_indexes_to_use(None, [REF])

    def test_make_new_sacs(self):
        genotype = mock_genotype('s1', [REF, ALT_T], SAC=[5, 6, 1, 2, 3, 4])
        assert make_new_sacs(genotype, [0, 1, 4, 5]) == [5, 6, 3, 4]

    def test_make_new_sacs_error(self):
        with pytest.raises(InvalidArgumentError):
            make_new_sacs(mock_genotype('s1', [REF, ALT_T]), [0, 1])


class TestSubsetAlleles:
    def setup_method(self):
        reset_diagnostics()

    def test_use_pls_to_assign(self):
        genotype = subset_alleles(tri_allelic(), [REF, ALT_T], GENOTYPE_ASSIGNMENT_METHOD.USE_PLS_TO_ASSIGN)['s1']
        assert genotype.likelihoods == (-4.0, 0.0, -3.0)
        assert genotype.alleles == (REF, ALT_T)
        assert genotype.gq == 30

    def test_use_pls_picks_best_retained_combination(self):
        genotype = subset_alleles(tri_allelic(), [REF, ALT_G], GENOTYPE_ASSIGNMENT_METHOD.USE_PLS_TO_ASSIGN)['s1']
        assert genotype.likelihoods == (-4.5, 0.0, -5.5)
        assert genotype.alleles == (REF, ALT_G)
        assert genotype.gq == 45
        assert genotype.pl == (45, 0, 55)

    def test_use_pls_ties_keep_first(self):
        genotype = mock_genotype('s1', [REF, ALT_T], likelihoods=[-1, -1, -5, -6, -7, -8])
        record = mock_record([REF, ALT_T, ALT_G], genotypes=[genotype])
        result = subset_alleles(record, [REF, ALT_T])['s1']
        assert result.alleles == (REF, REF)
        assert result.gq == 0

    def test_reordered_alleles(self):
        genotype = subset_alleles(
            tri_allelic(), [REF, ALT_G, ALT_T], GENOTYPE_ASSIGNMENT_METHOD.USE_PLS_TO_ASSIGN
        )['s1']
        assert genotype.likelihoods == (-4.5, 0.0, -5.5, -0.5, -2.5, -3.5)
        assert genotype.alleles == (REF, ALT_G)

    def test_unchanged_alleles_keep_likelihoods(self):
        genotype = subset_alleles(
            tri_allelic(), [REF, ALT_T, ALT_G], GENOTYPE_ASSIGNMENT_METHOD.DO_NOT_ASSIGN_GENOTYPES
        )['s1']
        assert list(genotype.likelihoods) == LIKELIHOODS

    def test_set_to_no_call(self):
        genotype = subset_alleles(
            tri_allelic(gq=20), [REF, ALT_T], GENOTYPE_ASSIGNMENT_METHOD.SET_TO_NO_CALL
        )['s1']
        assert genotype.is_no_call
        assert genotype.ploidy == 2
        assert genotype.gq is None
        assert genotype.likelihoods == (-4.0, 0.0, -3.0)

    def test_best_match_to_original(self):
        genotype = subset_alleles(
            tri_allelic(ad=[3, 4, 5], gq=20), [REF, ALT_T], GENOTYPE_ASSIGNMENT_METHOD.BEST_MATCH_TO_ORIGINAL
        )['s1']
        assert genotype.alleles == (REF, REF)
        assert not genotype.has_likelihoods
        assert not genotype.has_ad
        assert not genotype.has_gq

    def test_best_match_keeps_expressible_call(self):
        genotype = subset_alleles(
            tri_allelic(), [REF, ALT_G], GENOTYPE_ASSIGNMENT_METHOD.BEST_MATCH_TO_ORIGINAL
        )['s1']
        assert genotype.alleles == (REF, ALT_G)

    def test_do_not_assign(self):
        genotype = subset_alleles(
            tri_allelic(gq=20), [REF, ALT_T], GENOTYPE_ASSIGNMENT_METHOD.DO_NOT_ASSIGN_GENOTYPES
        )['s1']
        assert genotype.alleles == (REF, ALT_G)
        assert genotype.gq == 20
        assert genotype.likelihoods == (-4.0, 0.0, -3.0)

    def test_allele_depths(self):
        genotype = subset_alleles(tri_allelic(ad=[10, 5, 7]), [REF, ALT_G])['s1']
        assert genotype.ad == (10, 7)

    def test_malformed_allele_depths_dropped(self):
        genotype = subset_alleles(tri_allelic(ad=[10, 5]), [REF, ALT_G])['s1']
        assert not genotype.has_ad

    def test_strand_counts(self):
        genotype = subset_alleles(tri_allelic(SAC=[1, 2, 3, 4, 5, 6]), [REF, ALT_G])['s1']
        assert genotype.get_extended_attribute(VCF_KEY.STRAND_COUNT_BY_SAMPLE) == [1, 2, 5, 6]

    def test_malformed_strand_counts_dropped(self):
        genotype = subset_alleles(tri_allelic(SAC=[1, 2, 3, 4]), [REF, ALT_G])['s1']
        assert genotype.get_extended_attribute(VCF_KEY.STRAND_COUNT_BY_SAMPLE) is None

    def test_malformed_likelihoods(self):
        genotype = mock_genotype('s1', [REF, ALT_T], likelihoods=[0, -1, -2, -3], gq=50)
        record = mock_record([REF, ALT_T, ALT_G], genotypes=[genotype])
        result = subset_alleles(record, [REF, ALT_T])['s1']
        assert not result.has_likelihoods
        assert result.is_no_call
        assert result.gq is None
        assert DIAGNOSTICS['malformed_likelihoods'] == 1

    def test_uninformative_likelihoods(self):
        genotype = mock_genotype('s1', [REF, ALT_T], likelihoods=[0, 0, 0, -5, -5, -5])
        record = mock_record([REF, ALT_T, ALT_G], genotypes=[genotype])
        result = subset_alleles(record, [REF, ALT_T])['s1']
        assert not result.has_likelihoods
        assert result.is_no_call
        assert DIAGNOSTICS['uninformative_likelihoods'] == 1

    def test_no_likelihoods(self):
        genotype = mock_genotype('s1', [REF, ALT_T])
        record = mock_record([REF, ALT_T, ALT_G], genotypes=[genotype])
        result = subset_alleles(record, [REF, ALT_T])['s1']
        assert result.is_no_call
        assert not DIAGNOSTICS

    def test_haploid(self):
        genotype = mock_genotype('s1', [ALT_G], likelihoods=[-3, -2, 0])
        record = mock_record([REF, ALT_T, ALT_G], genotypes=[genotype])
        result = subset_alleles(record, [REF, ALT_T])['s1']
        assert result.likelihoods == (-1.0, 0.0)
        assert result.alleles == (ALT_T,)
        assert result.gq == 10

    def test_too_few_alleles_error(self):
        with pytest.raises(InvalidArgumentError):
            subset_alleles(tri_allelic(), [REF])

    def test_reference_first_error(self):
        with pytest.raises(InvalidArgumentError):
            subset_alleles(tri_allelic(), [ALT_T, REF])

    def test_unknown_allele_error(self):
        with pytest.raises(InvalidArgumentError):
            subset_alleles(tri_allelic(), [REF, Allele('C')])

    def test_bad_method_error(self):
        with pytest.raises(InvalidArgumentError):
            subset_alleles(tri_allelic(), [REF, ALT_T], 'guess')


class TestUpdatePlsAndAd:
    def test_selected_subset(self):
        original = tri_allelic(ad=[10, 5, 7], gq=20)
        selected = (
            VariantRecordBuilder.from_record(original).alleles([REF, ALT_G]).genotypes(original.genotypes).build()
        )
        genotype = update_pls_and_ad(selected, original)['s1']
        assert genotype.likelihoods == (-4.5, 0.0, -5.5)
        assert genotype.ad == (10, 7)
        assert genotype.alleles == (REF, ALT_G)
        assert genotype.gq == 20

    def test_same_alleles(self):
        original = tri_allelic()
        assert update_pls_and_ad(original, original) == original.genotypes

    def test_more_alleles_error(self):
        with pytest.raises(InvalidArgumentError):
            update_pls_and_ad(tri_allelic(), mock_record([REF, ALT_T]))


class TestSubsetToRefOnly:
    def test_hom_ref(self):
        genotypes = [
            mock_genotype('s1', [ALT_T, ALT_G], likelihoods=LIKELIHOODS, ad=[1, 2, 3], gq=30, dp=6),
            mock_genotype('s2', [ALT_T]),
            mock_genotype('s3', []),
        ]
        record = mock_record([REF, ALT_T, ALT_G], genotypes=genotypes)
        result = subset_to_ref_only(record, 2)
        assert result['s1'].alleles == (REF, REF)
        assert result['s1'].dp == 6
        assert result['s1'].gq == 30
        assert not result['s1'].has_likelihoods
        assert not result['s1'].has_ad
        assert result['s2'].alleles == (REF,)
        assert result['s3'].alleles == (REF, REF)

    def test_bad_ploidy_error(self):
        with pytest.raises(InvalidArgumentError):
            subset_to_ref_only(tri_allelic(), 0)
