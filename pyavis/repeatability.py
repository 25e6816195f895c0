# -*- coding: utf-8 -*-
"""
Bootstrap repeatability of a survey metric.

How repeatable is a metric when a site is surveyed again? Each bootstrap
iteration randomly splits the visits of every site into two halves, averages
the per-visit metric within each half, and fits the linear model
half_B ~ half_A across sites (or site x species pairs). Repeating this
``n_iter`` times gives a distribution of slope, intercept, r-squared and
Pearson r.

Iterations are independent, so they are farmed out to a process pool when
``n_jobs > 1``. Every iteration draws its split from its own child of a
single ``numpy.random.SeedSequence``, so a seed gives the same results for
any number of workers.

Typical Usage
-------------
>>> from pyavis.repeatability import repeatability
>>> values, visits = project.visit_metrics('acoustic', 'vocalization_rate')
>>> boot = repeatability(values, visits, 'vocalization_rate', n_iter=1000, seed=1, n_jobs=4)
>>> iterations = boot.run()
>>> boot.summary()
"""

import logging
import os
from concurrent.futures import ProcessPoolExecutor
import numpy as np
import pandas as pd
import statsmodels.api as sm
from tqdm import tqdm

logger = logging.getLogger(__name__)

STATISTICS = ['slope', 'intercept', 'r2', 'pearson_r']


def _fit_halves(x, y):
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        return dict.fromkeys(STATISTICS, np.nan)
    fit = sm.OLS(y, sm.add_constant(x, has_constant='add')).fit()
    return {'slope': fit.params[1],
            'intercept': fit.params[0],
            'r2': fit.rsquared,
            'pearson_r': np.corrcoef(x, y)[0, 1]}

def _bootstrap_iteration(seed, visit_rows, matrix):
    'one random split of every site into two visit halves'
    rng = np.random.default_rng(seed)
    half_a = np.empty((len(visit_rows), matrix.shape[1]))
    half_b = np.empty_like(half_a)
    for i, rows in enumerate(visit_rows):
        shuffled = rng.permutation(rows)
        k = len(rows) // 2
        half_a[i] = matrix[shuffled[:k]].mean(axis=0)
        half_b[i] = matrix[shuffled[k:]].mean(axis=0)
    return _fit_halves(half_a.ravel(), half_b.ravel())

def _bootstrap_chunk(seeds, visit_rows, matrix):
    return [_bootstrap_iteration(s, visit_rows, matrix) for s in seeds]


class repeatability():
    '''
    Split-half bootstrap of a per-visit survey metric.

    Attributes:
    - value (str): name of the metric column being assessed
    - n_iter (int): number of bootstrap iterations
    - seed (int or None): seed of the parent SeedSequence
    - n_jobs (int): worker processes, 1 runs in the calling process
    - sites (array): sites with at least two visits, the only ones used
    - matrix (ndarray): site-visit x species metric values (zeros filled)
    - iterations (DataFrame): per-iteration statistics after run()
    '''

    def __init__(self, values, visits=None, value='abundance', n_iter=1000, seed=None, n_jobs=None, progress=False):
        '''
        Parameters:
        - values (DataFrame): per-visit metric with site, visit, optionally
          species_code, and the ``value`` column
        - visits (DataFrame, optional): every surveyed site-visit. Visits in
          this table without a row in ``values`` count as zeros. Defaults to
          the site-visits found in ``values``.
        - value (str): metric column
        - n_iter (int): bootstrap iterations
        - seed (int, optional): random seed
        - n_jobs (int, optional): worker processes, defaults to the
          PYAVIS_N_JOBS environment variable or 1
        - progress (bool): show a tqdm progress bar
        '''
        self.value = value
        self.n_iter = int(n_iter)
        self.seed = seed
        if n_jobs is None:
            n_jobs = int(os.environ.get('PYAVIS_N_JOBS', 1))
        self.n_jobs = max(1, int(n_jobs))
        self.progress = progress
        self.iterations = None

        if visits is None:
            visits = values[['site', 'visit']]
        visits = visits[['site', 'visit']].drop_duplicates().sort_values(['site', 'visit'])

        # keep sites that can be split in two
        n_visits = visits.groupby('site')['visit'].transform('size')
        dropped = visits.loc[n_visits < 2, 'site'].unique()
        if len(dropped) > 0:
            logger.warning("%d sites with fewer than two visits excluded from the bootstrap", len(dropped))
        visits = visits[n_visits >= 2].reset_index(drop=True)
        if visits['site'].nunique() < 3:
            raise ValueError("Repeatability needs at least three sites with two or more visits")

        # site-visit x species matrix, zeros where nothing was recorded
        if 'species_code' in values.columns:
            wide = values.dropna(subset=['species_code']).pivot_table(index=['site', 'visit'],
                                                                      columns='species_code',
                                                                      values=value,
                                                                      aggfunc='sum',
                                                                      fill_value=0)
        else:
            wide = values.groupby(['site', 'visit'])[[value]].sum()
        wide = wide.reindex(pd.MultiIndex.from_frame(visits), fill_value=0)
        wide = wide.loc[:, (wide != 0).any(axis=0)]
        if wide.shape[1] == 0:
            raise ValueError(f"No non-zero values of {value} to bootstrap")

        self.columns = wide.columns
        self.matrix = wide.to_numpy(dtype=float)
        self.sites = visits['site'].unique()
        self.visit_rows = [np.flatnonzero(visits['site'].to_numpy() == s) for s in self.sites]

        logger.info("Repeatability of %s: %d sites, %d site-visits, %d columns",
                    value, len(self.sites), len(visits), self.matrix.shape[1])

    def run(self):
        '''Run the bootstrap and return one row of statistics per iteration.'''
        seeds = np.random.SeedSequence(self.seed).spawn(self.n_iter)

        if self.n_jobs == 1:
            results = [_bootstrap_iteration(s, self.visit_rows, self.matrix)
                       for s in tqdm(seeds, desc=f'bootstrap {self.value}', disable=not self.progress)]
        else:
            chunks = [c for c in np.array_split(np.arange(self.n_iter), self.n_jobs * 4) if len(c) > 0]
            results = []
            with ProcessPoolExecutor(max_workers=self.n_jobs) as executor:
                futures = [executor.submit(_bootstrap_chunk, [seeds[i] for i in chunk],
                                           self.visit_rows, self.matrix)
                           for chunk in chunks]
                for future in tqdm(futures, desc=f'bootstrap {self.value}', disable=not self.progress):
                    results.extend(future.result())

        iterations = pd.DataFrame(results, columns=STATISTICS)
        iterations.insert(0, 'iteration', np.arange(1, len(iterations) + 1))
        n_failed = int(iterations['slope'].isna().sum())
        if n_failed:
            logger.warning("%d of %d iterations had no variation in one half and were not fit",
                           n_failed, self.n_iter)

        self.iterations = iterations
        return iterations

    def summary(self, interval=0.95):
        '''Mean, standard deviation and percentile interval of each statistic.'''
        if self.iterations is None:
            self.run()

        lo, hi = (1 - interval) / 2, 1 - (1 - interval) / 2
        rows = []
        for stat in STATISTICS:
            vals = self.iterations[stat].dropna()
            rows.append({'statistic': stat,
                         'mean': vals.mean(),
                         'sd': vals.std(),
                         'lower': vals.quantile(lo) if len(vals) else np.nan,
                         'upper': vals.quantile(hi) if len(vals) else np.nan,
                         'n': len(vals)})
        return pd.DataFrame(rows).set_index('statistic')
