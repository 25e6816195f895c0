# -*- coding: utf-8 -*-
"""
Survey metric functions for point count and acoustic bird data.

This module turns the raw survey tables into the per-site (or per-visit)
metrics that every downstream comparison is built from. Each function makes
one pass over its input: filter, group, aggregate and join survey effort.

Core Metrics
------------
- **abundance**: Point count individuals per visit, plus the largest single-visit count
- **vocalization_rate**: Acoustic vocalizations per 10-second clip analysed
- **detection_rate**: Proportion of clips in which a species was detected
- **species_richness**: Distinct species recorded per sampling unit
- **method_comparison**: Site x species join of both survey methods

Effort Handling
---------------
Point count effort is the number of visits, acoustic effort is the number of
clips analysed. Clips without any detection appear in the acoustic table with
an empty species_code, so effort is always recovered from the survey table
itself and never from the detections alone.

Typical Usage
-------------
>>> import pyavis.metrics as metrics
>>> abund = metrics.abundance(point_counts)
>>> voc = metrics.vocalization_rate(acoustic)
>>> det = metrics.detection_rate(acoustic)
>>> comparison = metrics.method_comparison(abund, voc, det, sites)

See Also
--------
formatter.community_matrix : Site x species matrices built from these tables
survey_project.calculate_metrics : Runs the full metric pass for a project
"""

import logging
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

METHODS = ['point_count', 'acoustic']


def _as_list(by):
    if isinstance(by, str):
        return [by]
    return list(by)

def _unique(columns):
    # keep order, drop repeats (e.g. by=('site','visit') plus 'visit')
    return list(dict.fromkeys(columns))

def _observed(df):
    'rows that record a species'
    obs = df.dropna(subset=['species_code'])
    if 'count' in obs.columns:
        obs = obs[pd.to_numeric(obs['count']) > 0]
    return obs

def truncate_distance(point_counts, max_distance):
    """
    Drop point count records detected beyond a fixed radius.

    Parameters
    ----------
    point_counts : pandas.DataFrame
        Point count table, optionally carrying a ``distance_m`` column
    max_distance : float or None
        Truncation radius in meters. None returns the table unchanged.

    Returns
    -------
    pandas.DataFrame
        Records within the radius. Records without a distance are kept.
    """
    if max_distance is None:
        return point_counts.copy()

    if 'distance_m' not in point_counts.columns:
        logger.warning("No distance_m column in point count data, truncation at %s m skipped", max_distance)
        return point_counts.copy()

    distance = pd.to_numeric(point_counts['distance_m'], errors='coerce')
    keep = distance.isna() | (distance <= max_distance)
    logger.info("Distance truncation at %s m removed %d of %d point count records",
                max_distance, int((~keep).sum()), len(point_counts))
    return point_counts[keep].copy()

def subsample_clips(acoustic, n_clips, seed=None):
    """
    Equalize acoustic effort by keeping at most ``n_clips`` clips per site-visit.

    Clips are drawn at random without replacement; site-visits with fewer
    clips keep all of them.
    """
    rng = np.random.default_rng(seed)
    clips = acoustic[['site', 'visit', 'clip']].drop_duplicates()

    kept = []
    for _, grp in clips.groupby(['site', 'visit'], sort=True):
        if len(grp) > n_clips:
            grp = grp.iloc[np.sort(rng.choice(len(grp), n_clips, replace=False))]
        kept.append(grp)

    kept = pd.concat(kept, ignore_index=True)
    out = acoustic.merge(kept, on=['site', 'visit', 'clip'], how='inner')
    logger.info("Clip subsampling kept %d of %d clips (max %d per visit)",
                len(kept), len(clips), n_clips)
    return out

def clip_effort(acoustic, by=('site',)):
    'number of distinct clips analysed per ``by`` group'
    by = _as_list(by)
    clips = acoustic[_unique(by + ['visit', 'clip'])].drop_duplicates()
    return clips.groupby(by).size().rename('n_clips').reset_index()

def visit_effort(point_counts, by=('site',)):
    'number of distinct point count visits per ``by`` group'
    by = _as_list(by)
    visits = point_counts[_unique(by + ['visit'])].drop_duplicates()
    return visits.groupby(by).size().rename('n_visits').reset_index()

def survey_effort(point_counts, acoustic=None, by=('site',)):
    """
    Tabulate survey effort for both methods.

    Returns
    -------
    pandas.DataFrame
        ``by`` columns plus ``n_visits`` and, when acoustic data is given,
        ``n_clips``. Units surveyed by only one method get 0 for the other.
    """
    by = _as_list(by)
    effort = visit_effort(point_counts, by)
    if acoustic is not None:
        effort = effort.merge(clip_effort(acoustic, by), on=by, how='outer')
        effort[['n_visits', 'n_clips']] = effort[['n_visits', 'n_clips']].fillna(0).astype(int)
    return effort.sort_values(by).reset_index(drop=True)

def abundance(point_counts, by=('site',)):
    """
    Calculate point count abundance per species.

    Counts from multiple time intervals within a visit are summed first, then
    the visit totals are averaged over every visit made to the ``by`` unit,
    including visits on which the species was not recorded.

    Parameters
    ----------
    point_counts : pandas.DataFrame
        Columns site, visit, species_code, count
    by : sequence of str
        Grouping keys, ('site',) for site level and ('site', 'visit') for
        per-visit values

    Returns
    -------
    pandas.DataFrame
        ``by`` + species_code, total_count, max_count, n_visits, abundance
    """
    by = _as_list(by)
    effort = visit_effort(point_counts, by)

    obs = _observed(point_counts).copy()
    obs['count'] = pd.to_numeric(obs['count'])
    per_visit = obs.groupby(_unique(by + ['visit']) + ['species_code'], as_index=False)['count'].sum()

    totals = per_visit.groupby(by + ['species_code']).agg(total_count=('count', 'sum'),
                                                          max_count=('count', 'max')).reset_index()
    totals = totals.merge(effort, on=by, how='left')
    totals['abundance'] = totals['total_count'] / totals['n_visits']
    return totals.sort_values(by + ['species_code']).reset_index(drop=True)

def vocalization_rate(acoustic, by=('site',)):
    """
    Calculate acoustic vocalizations per clip analysed.

    Each annotated row counts as one vocalization unless a ``vocalizations``
    column says otherwise.

    Returns
    -------
    pandas.DataFrame
        ``by`` + species_code, vocalizations, n_clips, vocalization_rate
    """
    by = _as_list(by)
    effort = clip_effort(acoustic, by)

    obs = acoustic.dropna(subset=['species_code']).copy()
    if 'vocalizations' in obs.columns:
        obs['vocalizations'] = pd.to_numeric(obs['vocalizations'], errors='coerce').fillna(1)
    else:
        obs['vocalizations'] = 1

    totals = obs.groupby(by + ['species_code'], as_index=False)['vocalizations'].sum()
    totals = totals.merge(effort, on=by, how='left')
    totals['vocalization_rate'] = totals['vocalizations'] / totals['n_clips']
    return totals.sort_values(by + ['species_code']).reset_index(drop=True)

def detection_rate(acoustic, by=('site',)):
    """
    Calculate the proportion of analysed clips in which each species was detected.

    Returns
    -------
    pandas.DataFrame
        ``by`` + species_code, detections, n_clips, detection_rate (0 - 1)
    """
    by = _as_list(by)
    effort = clip_effort(acoustic, by)

    obs = acoustic.dropna(subset=['species_code'])
    detections = obs[_unique(by + ['visit', 'clip']) + ['species_code']].drop_duplicates()
    totals = detections.groupby(by + ['species_code']).size().rename('detections').reset_index()
    totals = totals.merge(effort, on=by, how='left')
    totals['detection_rate'] = totals['detections'] / totals['n_clips']
    return totals.sort_values(by + ['species_code']).reset_index(drop=True)

def species_richness(survey, by=('site',)):
    """
    Count distinct species per sampling unit.

    Units present in the survey table without any detection get a richness of 0.
    """
    by = _as_list(by)
    units = survey[by].drop_duplicates()
    rich = _observed(survey).groupby(by)['species_code'].nunique().rename('richness').reset_index()
    out = units.merge(rich, on=by, how='left')
    out['richness'] = out['richness'].fillna(0).astype(int)
    return out.sort_values(by).reset_index(drop=True)

def richness_table(point_counts, acoustic, sites, by=('site',)):
    """
    Long-format richness for both survey methods with the site treatment attached.

    Returns
    -------
    pandas.DataFrame
        ``by`` + method, richness, restoration_type
    """
    by = _as_list(by)
    pc = species_richness(point_counts, by)
    pc['method'] = 'point_count'
    ac = species_richness(acoustic, by)
    ac['method'] = 'acoustic'

    out = pd.concat([pc, ac], ignore_index=True)
    out = out.merge(sites[['site', 'restoration_type']], on='site', how='left')
    return out[by + ['method', 'richness', 'restoration_type']]

def method_comparison(abund, voc, det, sites, complete=True):
    """
    Join point count abundance with acoustic rates per site and species.

    Parameters
    ----------
    abund : pandas.DataFrame
        Output of :func:`abundance`
    voc : pandas.DataFrame
        Output of :func:`vocalization_rate`
    det : pandas.DataFrame
        Output of :func:`detection_rate`
    sites : pandas.DataFrame
        Site table with restoration_type
    complete : bool
        Expand to every site x species combination so that absences enter
        the per-species regressions as zeros

    Returns
    -------
    pandas.DataFrame
        site, species_code, abundance, max_count, vocalization_rate,
        detection_rate, detected_by, restoration_type
    """
    keys = ['site', 'species_code']
    table = abund[keys + ['abundance', 'max_count']].merge(
        voc[keys + ['vocalization_rate']], on=keys, how='outer').merge(
        det[keys + ['detection_rate']], on=keys, how='outer')

    if complete and len(table) > 0:
        grid = pd.MultiIndex.from_product([sorted(table['site'].unique()),
                                           sorted(table['species_code'].unique())],
                                          names=keys).to_frame(index=False)
        table = grid.merge(table, on=keys, how='left')

    values = ['abundance', 'max_count', 'vocalization_rate', 'detection_rate']
    table[values] = table[values].fillna(0)

    heard = table['vocalization_rate'] > 0
    counted = table['abundance'] > 0
    table['detected_by'] = np.select([heard & counted, counted, heard],
                                     ['both', 'point_count', 'acoustic'],
                                     default='neither')

    table = table.merge(sites[['site', 'restoration_type']], on='site', how='left')
    missing = table.loc[table['restoration_type'].isna(), 'site'].unique()
    if len(missing) > 0:
        logger.warning("Sites without a restoration type: %s", ', '.join(map(str, missing)))

    return table.sort_values(keys).reset_index(drop=True)
