# -*- coding: utf-8 -*-
"""
Rank-abundance and species accumulation curves.

Rank-abundance curves order species by their total abundance (or acoustic
rate) so that the dominance structure each survey method sees can be
compared, and :func:`compare_ranks` measures how well the two orderings agree.
Species accumulation curves show how richness grows with survey effort
(site-visits), either by averaging random unit orders or with the exact
expectation of Kindt (rarefaction over units).
"""

import logging
import numpy as np
import pandas as pd
from scipy import stats
from scipy.special import gammaln

logger = logging.getLogger(__name__)


def rank_abundance(table, value, by=None):
    """
    Rank species by their summed ``value``.

    Parameters
    ----------
    table : pandas.DataFrame
        Long metric table with species_code and ``value`` columns
    value : str
        Column to total, e.g. 'abundance' or 'vocalization_rate'
    by : str or sequence of str, optional
        Rank separately within each group (e.g. 'restoration_type')

    Returns
    -------
    pandas.DataFrame
        ``by`` + species_code, ``value``, relative_abundance, rank. Rank 1 is
        the most abundant species and tied species share the lower rank.
    """
    by = [] if by is None else ([by] if isinstance(by, str) else list(by))

    totals = table.dropna(subset=['species_code']).groupby(by + ['species_code'], as_index=False)[value].sum()
    totals = totals[totals[value] > 0].copy()

    if by:
        group_total = totals.groupby(by)[value].transform('sum')
        ranks = totals.groupby(by)[value].rank(method='min', ascending=False)
    else:
        group_total = totals[value].sum()
        ranks = totals[value].rank(method='min', ascending=False)

    totals['relative_abundance'] = totals[value] / group_total
    totals['rank'] = ranks.astype(int)
    return totals.sort_values(by + ['rank', 'species_code']).reset_index(drop=True)

def compare_ranks(ranks_a, ranks_b, labels=('point_count', 'acoustic')):
    """
    Compare two rank-abundance tables species by species.

    Returns
    -------
    merged : pandas.DataFrame
        species_code with ``rank_<label>`` and ``relative_abundance_<label>``
        for both tables (NaN where a method missed the species)
    summary : dict
        n_shared, spearman_rho, spearman_p, kendall_tau, kendall_p computed
        over the species detected by both methods
    """
    la, lb = labels
    a = ranks_a[['species_code', 'rank', 'relative_abundance']].rename(
        columns={'rank': f'rank_{la}', 'relative_abundance': f'relative_abundance_{la}'})
    b = ranks_b[['species_code', 'rank', 'relative_abundance']].rename(
        columns={'rank': f'rank_{lb}', 'relative_abundance': f'relative_abundance_{lb}'})
    merged = a.merge(b, on='species_code', how='outer').sort_values('species_code').reset_index(drop=True)

    shared = merged.dropna(subset=[f'rank_{la}', f'rank_{lb}'])
    summary = {'n_shared': len(shared),
               'only_' + la: int(merged[f'rank_{lb}'].isna().sum()),
               'only_' + lb: int(merged[f'rank_{la}'].isna().sum()),
               'spearman_rho': np.nan, 'spearman_p': np.nan,
               'kendall_tau': np.nan, 'kendall_p': np.nan}

    if len(shared) < 3:
        logger.warning("Only %d species shared between %s and %s, rank correlation skipped",
                       len(shared), la, lb)
        return merged, summary

    rho, rho_p = stats.spearmanr(shared[f'rank_{la}'], shared[f'rank_{lb}'])
    tau, tau_p = stats.kendalltau(shared[f'rank_{la}'], shared[f'rank_{lb}'])
    summary.update({'spearman_rho': float(rho), 'spearman_p': float(rho_p),
                    'kendall_tau': float(tau), 'kendall_p': float(tau_p)})
    return merged, summary

def _log_comb(n, k):
    return gammaln(n + 1) - gammaln(k + 1) - gammaln(n - k + 1)

def species_accumulation(incidence, n_perm=100, method='random', seed=None, quantiles=(0.025, 0.975)):
    """
    Species accumulation curve over sampling units.

    Parameters
    ----------
    incidence : pandas.DataFrame or numpy.ndarray
        Unit x species presence matrix (see formatter.incidence_matrix)
    n_perm : int
        Number of random unit orders for ``method='random'``
    method : {'random', 'exact'}
        'random' averages permuted accumulation orders. 'exact' returns the
        expected richness sum(1 - C(N - f_i, n) / C(N, n)) with no spread.
    seed : int, optional
        Seed for the permutation generator
    quantiles : tuple of float
        Lower and upper quantiles reported for the random curves

    Returns
    -------
    pandas.DataFrame
        units (1..N), richness, sd, lower, upper
    """
    X = np.asarray(incidence, dtype=bool)
    n_units = X.shape[0]
    if n_units == 0:
        raise ValueError("Incidence matrix has no sampling units")
    units = np.arange(1, n_units + 1)

    if method == 'random':
        if n_perm < 1:
            raise ValueError(f"Random accumulation needs at least one permutation, got n_perm={n_perm}")
        rng = np.random.default_rng(seed)
        curves = np.empty((n_perm, n_units))
        for i in range(n_perm):
            order = rng.permutation(n_units)
            curves[i] = np.logical_or.accumulate(X[order], axis=0).sum(axis=1)
        sd = curves.std(axis=0, ddof=1) if n_perm > 1 else np.zeros(n_units)
        return pd.DataFrame({'units': units,
                             'richness': curves.mean(axis=0),
                             'sd': sd,
                             'lower': np.quantile(curves, quantiles[0], axis=0),
                             'upper': np.quantile(curves, quantiles[1], axis=0)})

    elif method == 'exact':
        freq = X.sum(axis=0)
        richness = np.empty(n_units)
        for i, n in enumerate(units):
            possible = (n_units - freq) >= n
            p_missing = np.zeros(len(freq))
            p_missing[possible] = np.exp(_log_comb(n_units - freq[possible], n) - _log_comb(n_units, n))
            richness[i] = (1.0 - p_missing).sum()
        return pd.DataFrame({'units': units,
                             'richness': richness,
                             'sd': np.nan,
                             'lower': np.nan,
                             'upper': np.nan})

    raise ValueError(f"Unknown accumulation method '{method}', use 'random' or 'exact'")
