# -*- coding: utf-8 -*-
"""
Indicator species analysis for site groups along the restoration gradient.

Two association statistics are provided, both tested with the same
label-permutation scheme:

- **indval**: group-equalized indicator value IndVal.g (De Caceres & Legendre
  2009). Specificity A is the mean abundance in the candidate group divided
  by the sum of all group means, fidelity B is the proportion of candidate
  sites occupied, and the statistic is sqrt(A * B).
- **point_biserial**: correlation between abundance and group membership
  (r.g when group-equalized, each site weighted by (N / K) / N_group).

Candidate groups are the single restoration types (``duleg=True``) or every
non-empty proper combination of types (``duleg=False``), which lets a species
characteristic of, say, both restored types be reported as such.

The p-value of a species is (number of permutations whose best statistic is
at least the observed best statistic + 1) / (n_perm + 1).

Typical Usage
-------------
>>> from pyavis import formatter, indicator
>>> matrix = formatter.community_matrix(project.abundance, 'abundance')
>>> groups = formatter.site_groups(matrix, project.sites)
>>> result = indicator.indval(matrix, groups, n_perm=999, seed=42)
>>> indicator.summary_table(result, alpha=0.05)
"""

import itertools
import logging
import numpy as np
import pandas as pd
from statsmodels.stats.multitest import multipletests
from tqdm import tqdm

logger = logging.getLogger(__name__)


def _candidates(n_groups, duleg):
    if duleg or n_groups < 3:
        return [(g,) for g in range(n_groups)]
    combos = []
    for size in range(1, n_groups):
        combos.extend(itertools.combinations(range(n_groups), size))
    return combos

def _indval_stats(X, codes, n_groups, candidates):
    'return (stat, extras) arrays, candidates x species'
    present = X > 0
    means = np.vstack([X[codes == g].mean(axis=0) for g in range(n_groups)])
    total = means.sum(axis=0)

    A = np.empty((len(candidates), X.shape[1]))
    B = np.empty_like(A)
    for i, combo in enumerate(candidates):
        member = np.isin(codes, combo)
        A[i] = means[list(combo)].sum(axis=0) / total
        B[i] = present[member].mean(axis=0)
    return np.sqrt(A * B), {'A': A, 'B': B}

def _make_rg_stats(equalized):
    def _rg_stats(X, codes, n_groups, candidates):
        counts = np.bincount(codes, minlength=n_groups)
        if equalized:
            w = (len(codes) / n_groups) / counts[codes]
        else:
            w = np.ones(len(codes))
        w = w / w.sum()

        # species with the same value at every site have no association
        constant = np.ptp(X, axis=0) == 0
        Xc = X - w @ X
        Xc[:, constant] = 0.0
        var_x = w @ Xc ** 2
        r = np.empty((len(candidates), X.shape[1]))
        for i, combo in enumerate(candidates):
            m = np.isin(codes, combo).astype(float)
            mc = m - w @ m
            cov = (w * mc) @ Xc
            var_m = w @ mc ** 2
            with np.errstate(divide='ignore', invalid='ignore'):
                r[i] = cov / np.sqrt(var_x * var_m)
        return np.nan_to_num(r), {}
    return _rg_stats

def _association(community, groups, stat_func, n_perm, duleg, seed, progress):
    community = community.loc[:, (community > 0).any(axis=0)]
    groups = pd.Series(groups).reindex(community.index)
    if groups.isna().any():
        raise ValueError("Every row of the community matrix needs a group label")

    levels = sorted(groups.unique())
    if len(levels) < 2:
        raise ValueError("Indicator species analysis needs at least two site groups")

    codes = groups.map({lvl: i for i, lvl in enumerate(levels)}).to_numpy(dtype=int)
    X = community.to_numpy(dtype=float)
    candidates = _candidates(len(levels), duleg)

    stat, extras = stat_func(X, codes, len(levels), candidates)
    best = stat.argmax(axis=0)
    observed = stat[best, np.arange(X.shape[1])]

    rng = np.random.default_rng(seed)
    exceed = np.zeros(X.shape[1])
    for _ in tqdm(range(n_perm), desc='permutations', disable=not progress):
        perm_stat, _ = stat_func(X, rng.permutation(codes), len(levels), candidates)
        exceed += perm_stat.max(axis=0) >= observed - 1e-12

    cols = np.arange(X.shape[1])
    result = pd.DataFrame({
        'species_code': community.columns,
        'group': ['+'.join(str(levels[g]) for g in candidates[b]) for b in best],
        'n_groups': [len(candidates[b]) for b in best],
    })
    for name, values in extras.items():
        result[name] = values[best, cols]
    result['stat'] = observed
    result['p_value'] = (exceed + 1) / (n_perm + 1)

    logger.info("Tested %d species against %d candidate groups with %d permutations",
                X.shape[1], len(candidates), n_perm)
    return result

def indval(community, groups, n_perm=999, duleg=True, seed=None, progress=False):
    """
    Indicator value (IndVal.g) of every species for its best site group.

    Parameters
    ----------
    community : pandas.DataFrame
        Site x species matrix of abundances or presences
    groups : pandas.Series
        Group label for each row of ``community`` (aligned on index)
    n_perm : int
        Number of label permutations for the significance test
    duleg : bool
        Only consider single groups. When False every proper combination of
        groups is a candidate
    seed : int, optional
        Seed for the permutation generator

    Returns
    -------
    pandas.DataFrame
        species_code, group, n_groups, A, B, stat, p_value. Species absent
        from every site are dropped.
    """
    return _association(community, groups, _indval_stats, n_perm, duleg, seed, progress)

def point_biserial(community, groups, equalized=True, n_perm=999, duleg=True, seed=None, progress=False):
    """
    Point-biserial correlation of every species with its best site group.

    With ``equalized`` the correlation is computed with site weights that give
    every group the same total weight (r.g), so unbalanced designs do not
    favour the largest restoration type.

    Returns
    -------
    pandas.DataFrame
        species_code, group, n_groups, stat, p_value
    """
    return _association(community, groups, _make_rg_stats(equalized), n_perm, duleg, seed, progress)

def summary_table(result, alpha=0.05, adjust=None):
    '''Significant associations, sorted by group and decreasing statistic.

    ``adjust`` names a statsmodels multiple-testing method (e.g. 'fdr_bh');
    when given, significance is judged on the adjusted p-values.'''
    result = result.copy()
    p_col = 'p_value'
    if adjust is not None and len(result) > 0:
        result['p_adjusted'] = multipletests(result['p_value'], method=adjust)[1]
        p_col = 'p_adjusted'

    significant = result[result[p_col] <= alpha]
    return significant.sort_values(['group', 'stat'], ascending=[True, False]).reset_index(drop=True)
