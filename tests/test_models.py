"""
Tests for regression and mixed-effects models
"""

import logging
import pytest
import numpy as np
import pandas as pd
from pyavis import metrics, models
from pyavis.models import ModelError, REGRESSION_COLUMNS


@pytest.fixture
def linear_comparison():
    """Abundance exactly 2 * vocalization_rate + 1 for LINE, no acoustic variation for
    FLAT, HEARD recorded acoustically but never counted"""
    x = np.array([0.0, 0.5, 1.0, 1.5, 2.0])
    sites = [f'S{i}' for i in range(5)]
    line = pd.DataFrame({'site': sites, 'species_code': 'LINE', 'vocalization_rate': x,
                         'abundance': 2 * x + 1,
                         'restoration_type': ['benchmark', 'active', 'natural', 'benchmark', 'active']})
    flat = line.assign(species_code='FLAT', vocalization_rate=1.0)
    rare = line.assign(species_code='RARE', vocalization_rate=[0, 0, 0, 0, 1.0], abundance=[0, 0, 0, 0, 2.0])
    heard = line.assign(species_code='HEARD', abundance=0.0)
    return pd.concat([line, flat, rare, heard], ignore_index=True)


@pytest.mark.unit
class TestSpeciesRegressions:
    """Per-species OLS of abundance on acoustic activity"""

    def test_exact_line(self, linear_comparison):
        result = models.species_regressions(linear_comparison).set_index('species_code')
        assert result.loc['LINE', 'slope'] == pytest.approx(2.0)
        assert result.loc['LINE', 'intercept'] == pytest.approx(1.0)
        assert result.loc['LINE', 'r2'] == pytest.approx(1.0)
        assert result.loc['LINE', 'pearson_r'] == pytest.approx(1.0)
        assert result.loc['LINE', 'n'] == 5

    def test_no_variation_skipped(self, linear_comparison, caplog):
        with caplog.at_level(logging.WARNING, logger='pyavis.models'):
            result = models.species_regressions(linear_comparison)
        assert 'FLAT' not in set(result.species_code)
        assert 'no variation' in caplog.text

    def test_constant_response_kept(self, linear_comparison):
        result = models.species_regressions(linear_comparison).set_index('species_code')
        heard = result.loc['HEARD']
        assert heard['slope'] == 0
        assert heard['intercept'] == 0
        assert heard['r2'] == 0
        assert heard['n_occupied'] == 4
        assert np.isnan(heard['p_value'])

    def test_rare_species_skipped(self, linear_comparison):
        result = models.species_regressions(linear_comparison, min_sites=3)
        assert 'RARE' not in set(result.species_code)
        result = models.species_regressions(linear_comparison, min_sites=1)
        assert 'RARE' in set(result.species_code)

    def test_empty_result_keeps_columns(self, linear_comparison):
        result = models.species_regressions(linear_comparison, min_sites=50)
        assert len(result) == 0
        assert list(result.columns) == ['species_code'] + REGRESSION_COLUMNS

    def test_simulated_study(self, comparison):
        result = models.species_regressions(comparison)
        assert len(result) > 0
        assert result.r2.between(0, 1).all()
        assert result.p_value.dropna().between(0, 1).all()

    def test_detection_rate_predictor(self, comparison):
        result = models.species_regressions(comparison, x='detection_rate', y='max_count')
        assert len(result) > 0


@pytest.mark.unit
class TestTreatmentRegressions:
    """OLS within each restoration type"""

    def test_overall_row(self, comparison):
        result = models.treatment_regressions(comparison)
        assert set(result.restoration_type) == {'benchmark', 'active', 'natural', 'all'}
        overall = result.set_index('restoration_type').loc['all']
        assert overall['n'] == len(comparison)

    def test_without_overall(self, comparison):
        result = models.treatment_regressions(comparison, overall=False)
        assert 'all' not in set(result.restoration_type)


@pytest.mark.unit
class TestMixedModels:
    """statsmodels MixedLM wrappers"""

    def test_method_mixed_model(self, comparison):
        table, result = models.method_mixed_model(comparison)
        assert list(table.columns) == ['estimate', 'std_err', 'z', 'p_value', 'ci_lower', 'ci_upper']
        assert 'vocalization_rate' in table.index
        assert 'Intercept' in table.index
        assert table.loc['vocalization_rate', 'estimate'] == pytest.approx(
            result.fe_params['vocalization_rate'])

    def test_simple_formula(self, comparison):
        table, _ = models.method_mixed_model(comparison, formula='abundance ~ detection_rate')
        assert list(table.index) == ['Intercept', 'detection_rate']
        assert table.loc['detection_rate', 'ci_lower'] <= table.loc['detection_rate', 'estimate']

    def test_richness_model(self, survey_data):
        richness = metrics.richness_table(survey_data['point_counts'], survey_data['acoustic'],
                                          survey_data['sites'])
        table, _ = models.richness_model(richness)
        # intercept, method, two treatment contrasts and their interactions
        assert len(table) == 6
        assert 'Intercept' in table.index

    def test_single_group(self, comparison):
        one = comparison[comparison.species_code == comparison.species_code.iloc[0]]
        with pytest.raises(ModelError, match="two levels"):
            models.method_mixed_model(one)

    def test_too_few_rows(self, comparison):
        tiny = comparison.groupby('species_code').head(1).head(4)
        with pytest.raises(ModelError, match="more data"):
            models.method_mixed_model(tiny, formula='abundance ~ vocalization_rate')


@pytest.mark.unit
class TestBodyMass:
    """Species statistic against body mass"""

    @pytest.fixture
    def regressions(self, survey_data):
        species = survey_data['species']
        return pd.DataFrame({'species_code': species.species_code,
                             'slope': 2 * np.log10(species.body_mass_g) - 1})

    def test_exact_relationship(self, regressions, survey_data):
        merged, summary = models.body_mass_correlation(regressions, survey_data['species'])
        assert summary['n'] == 6
        assert summary['slope'] == pytest.approx(2.0)
        assert summary['intercept'] == pytest.approx(-1.0)
        assert summary['pearson_r'] == pytest.approx(1.0)
        assert 'log10_body_mass' in merged.columns

    def test_missing_mass_dropped(self, regressions, survey_data):
        species = survey_data['species'].copy()
        species.loc[0, 'body_mass_g'] = np.nan
        merged, summary = models.body_mass_correlation(regressions, species)
        assert summary['n'] == 5
        assert len(merged) == 5

    def test_no_mass_column(self, regressions, survey_data):
        with pytest.raises(ModelError, match="body_mass_g"):
            models.body_mass_correlation(regressions, survey_data['species'].drop(columns='body_mass_g'))

    def test_too_few_species(self, regressions, survey_data):
        with pytest.raises(ModelError, match="at least 3 species"):
            models.body_mass_correlation(regressions.head(2), survey_data['species'])
