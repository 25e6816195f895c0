# -*- coding: utf-8 -*-
"""
Statistical models relating point count and acoustic survey metrics.

Core Models
-----------
- **species_regressions**: OLS of a point count metric on an acoustic metric,
  fitted separately for every species across sites
- **treatment_regressions**: the same OLS within each restoration type
- **method_mixed_model**: linear mixed-effects model across all species with
  a random intercept per species
- **richness_model**: mixed model of richness by survey method and
  restoration type with a random intercept per site
- **body_mass_correlation**: does the point count / acoustic relationship of a
  species scale with its body mass?

Notes
-----
- Species with too few occupied sites, or no variation in the predictor, are
  skipped and logged rather than aborting the loop. A species the predictor
  method records while the response stays constant (e.g. heard but never
  counted) is kept as a flat line with r2 = 0 and no p-value
- statsmodels ConvergenceWarnings raised while fitting mixed models are
  logged instead of printed
- Models that cannot be fit at all raise :class:`ModelError`

See Also
--------
metrics.method_comparison : builds the site x species table these models use
repeatability : bootstrap repeatability of a single survey method
"""

import logging
import warnings
import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from statsmodels.tools.sm_exceptions import ConvergenceWarning
from scipy import stats

logger = logging.getLogger(__name__)

REGRESSION_COLUMNS = ['n', 'n_occupied', 'slope', 'slope_se', 'intercept', 'r2', 'p_value', 'pearson_r']

class ModelError(Exception):
    """Raised when a statistical model cannot be fit"""
    pass


def _grouped_ols(data, x, y, by, min_occupied):
    rows = []
    for key, grp in data.groupby(by, sort=True):
        occupied = int(((grp[x] > 0) | (grp[y] > 0)).sum())
        if occupied < min_occupied:
            logger.debug("%s %s skipped: occupied at %d sites", by, key, occupied)
            continue
        if grp[x].nunique() < 2:
            logger.warning("%s %s skipped: no variation in %s", by, key, x)
            continue
        if grp[y].nunique() < 2:
            logger.debug("%s %s: %s constant, flat fit", by, key, y)
            rows.append({by: key,
                         'n': len(grp),
                         'n_occupied': occupied,
                         'slope': 0.0,
                         'slope_se': 0.0,
                         'intercept': float(grp[y].iloc[0]),
                         'r2': 0.0,
                         'p_value': np.nan,
                         'pearson_r': np.nan})
            continue

        fit = smf.ols(f'{y} ~ {x}', data=grp).fit()
        r, _ = stats.pearsonr(grp[x], grp[y])
        rows.append({by: key,
                     'n': int(fit.nobs),
                     'n_occupied': occupied,
                     'slope': fit.params[x],
                     'slope_se': fit.bse[x],
                     'intercept': fit.params['Intercept'],
                     'r2': fit.rsquared,
                     'p_value': fit.pvalues[x],
                     'pearson_r': r})

    return pd.DataFrame(rows, columns=[by] + REGRESSION_COLUMNS)

def species_regressions(comparison, x='vocalization_rate', y='abundance', min_sites=3):
    """
    Fit ``y ~ x`` across sites separately for each species.

    Parameters
    ----------
    comparison : pandas.DataFrame
        Site x species table from metrics.method_comparison
    x, y : str
        Predictor and response columns
    min_sites : int
        Minimum number of sites where either method recorded the species

    Species without variation in ``x`` are skipped. Species whose ``y`` is
    constant (for example recorded acoustically but never counted) get a flat
    line: slope 0, r2 0, p_value and pearson_r NaN.

    Returns
    -------
    pandas.DataFrame
        species_code, n, n_occupied, slope, slope_se, intercept, r2,
        p_value, pearson_r
    """
    result = _grouped_ols(comparison, x, y, 'species_code', min_sites)
    logger.info("Fitted %s ~ %s for %d of %d species", y, x, len(result),
                comparison['species_code'].nunique())
    return result

def treatment_regressions(comparison, x='vocalization_rate', y='abundance', overall=True, min_rows=3):
    '''Fit ``y ~ x`` within each restoration type, plus an 'all' row pooling
    every site and species when ``overall`` is set.'''
    result = _grouped_ols(comparison, x, y, 'restoration_type', min_rows)
    if overall:
        pooled = _grouped_ols(comparison.assign(restoration_type='all'), x, y, 'restoration_type', min_rows)
        result = pd.concat([result, pooled], ignore_index=True)
    return result

def coefficient_table(result):
    '''Fixed-effect estimates of a fitted MixedLM as a tidy DataFrame.'''
    names = result.fe_params.index
    ci = result.conf_int().loc[names]
    return pd.DataFrame({'estimate': result.fe_params,
                         'std_err': result.bse_fe,
                         'z': result.tvalues.loc[names],
                         'p_value': result.pvalues.loc[names],
                         'ci_lower': ci[0],
                         'ci_upper': ci[1]})

def _fit_mixedlm(formula, data, groups, reml=True):
    if data[groups].nunique() < 2:
        raise ModelError(f"Mixed model needs at least two levels of '{groups}'")
    if len(data) < 5:
        raise ModelError(f"Mixed model needs more data (only {len(data)} rows)")

    model = smf.mixedlm(formula, data, groups=data[groups])
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter('always')
        try:
            result = model.fit(reml=reml)
        except (np.linalg.LinAlgError, ValueError) as err:
            raise ModelError(f"Mixed model '{formula}' failed to fit: {err}") from err

    for w in caught:
        if issubclass(w.category, ConvergenceWarning):
            logger.warning("Mixed model '%s': %s", formula, w.message)
        else:
            logger.debug("Mixed model '%s' raised %s: %s", formula, w.category.__name__, w.message)

    return coefficient_table(result), result

def method_mixed_model(comparison, formula='abundance ~ vocalization_rate * C(restoration_type)',
                       groups='species_code', reml=True):
    """
    Linear mixed-effects model of point count abundance on acoustic activity.

    Parameters
    ----------
    comparison : pandas.DataFrame
        Site x species table from metrics.method_comparison
    formula : str
        Fixed-effects formula (patsy syntax)
    groups : str
        Column defining the random intercept, species by default

    Returns
    -------
    table : pandas.DataFrame
        estimate, std_err, z, p_value, ci_lower, ci_upper per fixed effect
    result : statsmodels MixedLMResults
        The fitted model
    """
    return _fit_mixedlm(formula, comparison, groups, reml=reml)

def richness_model(richness, formula='richness ~ C(method) * C(restoration_type)', groups='site', reml=True):
    '''Mixed model of species richness by survey method and restoration type,
    with a random intercept for site (each site is surveyed by both methods).'''
    return _fit_mixedlm(formula, richness, groups, reml=reml)

def body_mass_correlation(regressions, species, value='slope'):
    """
    Relate a per-species statistic to log10 body mass.

    Returns
    -------
    merged : pandas.DataFrame
        The regression rows with body_mass_g and log10_body_mass attached
    summary : dict
        n, slope, intercept, r2, p_value (OLS) and pearson_r, pearson_p
    """
    if 'body_mass_g' not in species.columns:
        raise ModelError("Species table has no body_mass_g column")

    merged = regressions.merge(species[['species_code', 'body_mass_g']], on='species_code', how='left')
    merged = merged.dropna(subset=['body_mass_g', value])
    merged = merged[merged['body_mass_g'] > 0].copy()
    if len(merged) < 3:
        raise ModelError(f"Body mass correlation needs at least 3 species, found {len(merged)}")

    merged['log10_body_mass'] = np.log10(merged['body_mass_g'])
    fit = smf.ols(f'{value} ~ log10_body_mass', data=merged).fit()
    r, p = stats.pearsonr(merged['log10_body_mass'], merged[value])

    summary = {'n': len(merged),
               'slope': fit.params['log10_body_mass'],
               'intercept': fit.params['Intercept'],
               'r2': fit.rsquared,
               'p_value': fit.pvalues['log10_body_mass'],
               'pearson_r': float(r),
               'pearson_p': float(p)}
    return merged.reset_index(drop=True), summary
