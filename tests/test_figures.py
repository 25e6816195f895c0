"""
Tests for the figure functions

Each figure is drawn from the simulated study and written to a temporary
directory; the tests only check that a Figure comes back and the PNG exists.
"""

import pytest
import pandas as pd
from matplotlib.figure import Figure
from pyavis import curves, figures, formatter, indicator, metrics, models
from pyavis.repeatability import repeatability


@pytest.mark.unit
class TestFigures:
    """Figure smoke tests"""

    def test_method_scatter(self, comparison, tmp_path):
        path = tmp_path / 'scatter.png'
        fig = figures.method_scatter(comparison, path=path)
        assert isinstance(fig, Figure)
        assert path.exists()

    def test_method_scatter_on_axes(self, comparison):
        import matplotlib.pyplot as plt
        fig, axes = plt.subplots(1, 2)
        out = figures.method_scatter(comparison, x='detection_rate', ax=axes[1], fit=False)
        assert out is fig

    def test_species_panels(self, comparison, tmp_path):
        regressions = models.species_regressions(comparison)
        path = tmp_path / 'panels.png'
        fig = figures.species_panels(comparison, regressions, ncols=3, path=path)
        assert len(fig.axes) >= len(regressions)
        assert path.exists()

    def test_rank_plots(self, survey_data, comparison, tmp_path):
        pc = curves.rank_abundance(comparison, 'abundance')
        ac = curves.rank_abundance(comparison, 'vocalization_rate')
        fig = figures.rank_abundance_plot({'point_count': pc, 'acoustic': ac},
                                          path=tmp_path / 'ranks.png')
        assert isinstance(fig, Figure)

        merged, _ = curves.compare_ranks(pc, ac)
        fig = figures.rank_comparison_plot(merged, path=tmp_path / 'rank_comparison.png')
        assert (tmp_path / 'rank_comparison.png').exists()

    def test_rank_comparison_no_shared(self, tmp_path):
        merged = pd.DataFrame({'species_code': ['OVEN'], 'rank_point_count': [1.0],
                               'rank_acoustic': [float('nan')]})
        fig = figures.rank_comparison_plot(merged)
        assert fig.axes[0].texts[0].get_text() == 'No data'

    def test_accumulation_plot(self, survey_data, tmp_path):
        random = curves.species_accumulation(formatter.incidence_matrix(survey_data['point_counts']),
                                             n_perm=20, seed=1)
        exact = curves.species_accumulation(formatter.incidence_matrix(survey_data['acoustic']),
                                            method='exact')
        fig = figures.accumulation_plot({'point_count': random, 'acoustic': exact},
                                        path=tmp_path / 'accumulation.png')
        assert len(fig.axes[0].lines) == 2

    def test_indicator_plot(self, comparison, survey_data, tmp_path):
        matrix = formatter.community_matrix(comparison, 'abundance')
        groups = formatter.site_groups(matrix, survey_data['sites'])
        result = indicator.indval(matrix, groups, n_perm=99, seed=1)
        fig = figures.indicator_plot(result, alpha=1.0, path=tmp_path / 'indicators.png')
        assert isinstance(fig, Figure)

    def test_indicator_plot_empty(self):
        result = pd.DataFrame({'species_code': ['OVEN'], 'group': ['benchmark'], 'stat': [0.2],
                               'p_value': [0.9]})
        fig = figures.indicator_plot(result)
        assert fig.axes[0].texts[0].get_text() == 'No data'

    def test_richness_plot(self, survey_data, tmp_path):
        richness = metrics.richness_table(survey_data['point_counts'], survey_data['acoustic'],
                                          survey_data['sites'])
        fig = figures.richness_plot(richness, path=tmp_path / 'richness.png')
        assert isinstance(fig, Figure)

    def test_repeatability_plot(self, survey_data, tmp_path):
        pc = survey_data['point_counts']
        boot = repeatability(metrics.species_richness(pc, by=('site', 'visit')), value='richness',
                             n_iter=20, seed=1)
        fig = figures.repeatability_plot(boot.run(), stat='slope', path=tmp_path / 'boot.png')
        assert isinstance(fig, Figure)

    def test_body_mass_plot(self, comparison, survey_data, tmp_path):
        regressions = models.species_regressions(comparison, min_sites=1)
        merged, _ = models.body_mass_correlation(regressions, survey_data['species'])
        fig = figures.body_mass_plot(merged, path=tmp_path / 'mass.png')
        assert isinstance(fig, Figure)
