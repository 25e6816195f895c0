"""
Tests for split-half bootstrap repeatability
"""

import logging
import pytest
import numpy as np
import pandas as pd
from pyavis import metrics
from pyavis.repeatability import repeatability, STATISTICS


@pytest.fixture
def constant_visits():
    """Five sites surveyed four times, each site records the same value every visit"""
    rows = [{'site': f'S{i}', 'visit': v, 'richness': i + 1}
            for i in range(5) for v in range(1, 5)]
    return pd.DataFrame(rows)


@pytest.fixture
def visit_abundance(survey_data):
    pc = survey_data['point_counts']
    values = metrics.abundance(pc, by=('site', 'visit'))
    visits = pc[['site', 'visit']].drop_duplicates()
    return values, visits


@pytest.mark.unit
class TestRepeatabilitySetup:
    """Matrix construction and site filtering"""

    def test_matrix_shape(self, visit_abundance):
        values, visits = visit_abundance
        boot = repeatability(values, visits, 'abundance', n_iter=10, seed=1)
        assert boot.matrix.shape == (len(visits), len(boot.columns))
        assert len(boot.sites) == 12
        assert all(len(rows) == 3 for rows in boot.visit_rows)

    def test_missing_visits_are_zeros(self):
        values = pd.DataFrame({'site': ['A', 'B', 'C'], 'visit': [1, 1, 1], 'richness': [2, 3, 4]})
        visits = pd.DataFrame({'site': list('AABBCC'), 'visit': [1, 2] * 3})
        boot = repeatability(values, visits, 'richness', n_iter=5, seed=1)
        assert boot.matrix.shape == (6, 1)
        assert boot.matrix[:, 0].tolist() == [2, 0, 3, 0, 4, 0]

    def test_single_visit_sites_dropped(self, constant_visits, caplog):
        extra = pd.DataFrame({'site': ['S9'], 'visit': [1], 'richness': [7]})
        values = pd.concat([constant_visits, extra], ignore_index=True)
        with caplog.at_level(logging.WARNING, logger='pyavis.repeatability'):
            boot = repeatability(values, value='richness', n_iter=5, seed=1)
        assert 'S9' not in set(boot.sites)
        assert 'fewer than two visits' in caplog.text

    def test_too_few_sites(self, constant_visits):
        values = constant_visits[constant_visits.site.isin(['S0', 'S1'])]
        with pytest.raises(ValueError, match="at least three sites"):
            repeatability(values, value='richness')

    def test_all_zero(self, constant_visits):
        with pytest.raises(ValueError, match="No non-zero values"):
            repeatability(constant_visits.assign(richness=0), value='richness')

    def test_environment_workers(self, constant_visits, monkeypatch):
        monkeypatch.setenv('PYAVIS_N_JOBS', '3')
        boot = repeatability(constant_visits, value='richness')
        assert boot.n_jobs == 3
        assert repeatability(constant_visits, value='richness', n_jobs=1).n_jobs == 1


@pytest.mark.unit
class TestRepeatabilityRun:
    """Bootstrap iterations and summaries"""

    def test_perfect_repeatability(self, constant_visits):
        boot = repeatability(constant_visits, value='richness', n_iter=20, seed=2)
        iterations = boot.run()
        assert list(iterations.columns) == ['iteration'] + STATISTICS
        assert len(iterations) == 20
        assert np.allclose(iterations.slope, 1.0)
        assert np.allclose(iterations.intercept, 0.0, atol=1e-9)
        assert np.allclose(iterations.r2, 1.0)

    def test_reproducible(self, visit_abundance):
        values, visits = visit_abundance
        a = repeatability(values, visits, n_iter=25, seed=9).run()
        b = repeatability(values, visits, n_iter=25, seed=9).run()
        pd.testing.assert_frame_equal(a, b)

    def test_seed_changes_splits(self, visit_abundance):
        values, visits = visit_abundance
        a = repeatability(values, visits, n_iter=25, seed=9).run()
        b = repeatability(values, visits, n_iter=25, seed=10).run()
        assert not np.allclose(a.slope, b.slope)

    @pytest.mark.slow
    def test_workers_match_serial(self, visit_abundance):
        values, visits = visit_abundance
        serial = repeatability(values, visits, n_iter=30, seed=5, n_jobs=1).run()
        pooled = repeatability(values, visits, n_iter=30, seed=5, n_jobs=2).run()
        pd.testing.assert_frame_equal(serial, pooled)

    def test_summary(self, visit_abundance):
        values, visits = visit_abundance
        boot = repeatability(values, visits, n_iter=50, seed=3)
        summary = boot.summary()
        assert list(summary.index) == STATISTICS
        assert list(summary.columns) == ['mean', 'sd', 'lower', 'upper', 'n']
        assert (summary.lower <= summary.upper).all()
        assert summary.loc['r2', 'mean'] <= 1

    def test_detection_rate_values(self, survey_data):
        ac = survey_data['acoustic']
        values = metrics.detection_rate(ac, by=('site', 'visit'))
        boot = repeatability(values, ac[['site', 'visit']], 'detection_rate', n_iter=10, seed=1)
        assert boot.run().r2.between(0, 1).all()
