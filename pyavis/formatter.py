# -*- coding: utf-8 -*-
"""
Community Data Formatting Module
================================

Functions here reshape long survey and metric tables into the wide matrices
that the multivariate routines expect.

Functions
---------
community_matrix : site x species matrix of any metric (abundance, rates)
    Input for indicator species analysis and rank comparisons.

incidence_matrix : sampling unit x species presence matrix
    One row per site-visit. Input for species accumulation curves.

site_groups : restoration type aligned to a matrix index
    Group labels for indicator species permutation tests.

Typical Usage
-------------
>>> from pyavis import formatter
>>> abund = formatter.community_matrix(project.abundance, 'abundance',
...                                    units=project.effort.site)
>>> groups = formatter.site_groups(abund, project.sites)
>>> incid = formatter.incidence_matrix(project.point_counts)

Notes
-----
- Units without a single detection are kept as rows of zeros, they are
  real survey effort and matter for fidelity and accumulation.
- Acoustic rows with an empty species_code and point count rows with a
  count of 0 are never treated as a detection.
"""

import numpy as np
import pandas as pd
from pyavis.validation import ValidationError


def _unit_index(units, index):
    if len(index) == 1:
        return pd.Index(sorted(pd.unique(units[index[0]])), name=index[0])
    units = units[index].drop_duplicates().sort_values(index)
    return pd.MultiIndex.from_frame(units)

def community_matrix(table, value, index='site', columns='species_code', presence=False,
                     units=None, aggfunc='sum'):
    '''Pivot a long metric table to a unit x species matrix filled with zeros.

    ``units`` optionally lists every surveyed unit (a Series or DataFrame of
    the ``index`` columns) so that units with no detections get a row.'''
    index = [index] if isinstance(index, str) else list(index)

    obs = table.dropna(subset=[columns])
    matrix = obs.pivot_table(index=index,
                             columns=columns,
                             values=value,
                             aggfunc=aggfunc,
                             fill_value=0)

    if units is None:
        units = table
    elif isinstance(units, pd.Series):
        units = units.to_frame(name=index[0])
    matrix = matrix.reindex(_unit_index(units, index), fill_value=0)
    matrix.columns.name = columns

    if presence:
        matrix = (matrix > 0).astype(int)
    return matrix

def incidence_matrix(survey, unit=('site', 'visit')):
    """
    Build a sampling unit x species presence/absence matrix from a raw survey table.

    Parameters
    ----------
    survey : pandas.DataFrame
        Point count or acoustic table
    unit : sequence of str
        Columns identifying a sampling unit, site-visits by default

    Returns
    -------
    pandas.DataFrame
        Boolean matrix, one row per unit (including units with no
        detections), one column per species
    """
    unit = list(unit)
    obs = survey.dropna(subset=['species_code'])
    if 'count' in obs.columns:
        obs = obs[pd.to_numeric(obs['count']) > 0]
    obs = obs[unit + ['species_code']].drop_duplicates()

    crosstab = pd.crosstab(index=[obs[c] for c in unit], columns=obs['species_code'])
    crosstab = crosstab.reindex(_unit_index(survey, unit), fill_value=0)
    crosstab.columns.name = 'species_code'
    return crosstab > 0

def site_groups(matrix, sites, group='restoration_type'):
    '''Return the site grouping aligned to the rows of ``matrix``.'''
    if isinstance(matrix.index, pd.MultiIndex):
        row_sites = matrix.index.get_level_values('site')
    else:
        row_sites = matrix.index

    lookup = sites.set_index('site')[group]
    groups = pd.Series(lookup.reindex(row_sites).values, index=matrix.index, name=group)

    if groups.isna().any():
        missing = np.unique(np.asarray(row_sites[groups.isna().values], dtype=str))
        raise ValidationError(
            f"No {group} for sites: {', '.join(missing[:5])}. "
            f"Every surveyed site must appear in the site table."
        )
    return groups
