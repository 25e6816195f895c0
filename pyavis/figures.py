# -*- coding: utf-8 -*-
"""
Figures comparing point count and acoustic survey results.

Every function draws one figure, returns the matplotlib ``Figure`` and, when
``path`` is given, saves it as a 300 dpi PNG. Sites are colored by
restoration type with the same palette throughout.
"""

import logging
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import statsmodels.api as sm
from matplotlib import rcParams

logger = logging.getLogger(__name__)

rcParams['font.size'] = 6
rcParams['font.family'] = 'serif'

TREATMENT_COLORS = {'benchmark': '#1b7837',
                    'active': '#762a83',
                    'natural': '#e08214'}

METHOD_LABELS = {'point_count': 'Point count',
                 'acoustic': 'Acoustic'}


def _color(level, i):
    return TREATMENT_COLORS.get(level, f'C{i}')

def _ols_line(x, y, n=50):
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    fit = sm.OLS(y, sm.add_constant(x, has_constant='add')).fit()
    xs = np.linspace(x.min(), x.max(), n)
    return xs, fit.params[0] + fit.params[1] * xs

def _finish(fig, path):
    fig.tight_layout()
    if path is not None:
        fig.savefig(path, dpi=300, bbox_inches='tight')
        logger.info("Saved figure to %s", path)
    return fig

def _no_data(ax, title):
    ax.text(0.5, 0.5, 'No data', ha='center', va='center', transform=ax.transAxes)
    ax.set_title(title)

def method_scatter(comparison, x='vocalization_rate', y='abundance', hue='restoration_type',
                   fit=True, ax=None, path=None, xlabel=None, ylabel=None):
    '''Scatter of a point count metric against an acoustic metric with an
    OLS line for each ``hue`` level.'''
    if ax is None:
        fig, ax = plt.subplots(figsize=(3.5, 3))
    else:
        fig = ax.figure

    for i, (level, grp) in enumerate(comparison.groupby(hue, sort=True)):
        color = _color(level, i)
        ax.scatter(grp[x], grp[y], s=8, alpha=0.7, color=color, edgecolor='none', label=level)
        if fit and grp[x].nunique() > 1:
            xs, ys = _ols_line(grp[x], grp[y])
            ax.plot(xs, ys, color=color, lw=1)

    ax.set_xlabel(xlabel or x.replace('_', ' '))
    ax.set_ylabel(ylabel or y.replace('_', ' '))
    ax.grid(True, alpha=0.3)
    if len(comparison) > 0:
        ax.legend(frameon=False, title=hue.replace('_', ' '))
    return _finish(fig, path)

def species_panels(comparison, regressions, x='vocalization_rate', y='abundance',
                   species=None, ncols=4, path=None):
    '''Grid of per-species scatter plots with their fitted regression lines.'''
    if species is None:
        species = list(regressions.sort_values('r2', ascending=False)['species_code'])
    n = max(len(species), 1)
    nrows = int(np.ceil(n / ncols))
    fig, axes = plt.subplots(nrows, ncols, figsize=(1.8 * ncols, 1.6 * nrows), squeeze=False)
    fits = regressions.set_index('species_code')

    for ax, sp in zip(axes.ravel(), species):
        dat = comparison[comparison['species_code'] == sp]
        colors = [_color(t, 0) for t in dat['restoration_type']]
        ax.scatter(dat[x], dat[y], s=6, c=colors, edgecolor='none')
        if sp in fits.index and len(dat) > 0:
            row = fits.loc[sp]
            xs = np.linspace(dat[x].min(), dat[x].max(), 20)
            ax.plot(xs, row['intercept'] + row['slope'] * xs, color='k', lw=0.8)
            ax.set_title(f"{sp}  $r^2$ = {row['r2']:.2f}")
        else:
            ax.set_title(str(sp))
        ax.grid(True, alpha=0.3)

    for ax in axes.ravel()[len(species):]:
        ax.axis('off')
    fig.supxlabel(x.replace('_', ' '))
    fig.supylabel(y.replace('_', ' '))
    return _finish(fig, path)

def rank_abundance_plot(ranks, value='relative_abundance', log=True, path=None):
    '''Rank-abundance (Whittaker) curves, one line per entry of ``ranks``
    (a dict of label -> curves.rank_abundance table).'''
    fig, ax = plt.subplots(figsize=(3.5, 3))
    for i, (label, table) in enumerate(ranks.items()):
        table = table.sort_values('rank')
        ax.plot(table['rank'], table[value], marker='o', ms=2, lw=1, color=f'C{i}',
                label=METHOD_LABELS.get(label, label))
    if log:
        ax.set_yscale('log')
    ax.set_xlabel('Species rank')
    ax.set_ylabel(value.replace('_', ' '))
    ax.grid(True, alpha=0.3)
    ax.legend(frameon=False)
    return _finish(fig, path)

def rank_comparison_plot(merged, labels=('point_count', 'acoustic'), annotate=True, path=None):
    '''Species rank under one method against the other, with the 1:1 line.'''
    la, lb = labels
    shared = merged.dropna(subset=[f'rank_{la}', f'rank_{lb}'])
    fig, ax = plt.subplots(figsize=(3, 3))
    if shared.empty:
        _no_data(ax, 'Rank comparison')
        return _finish(fig, path)

    ax.scatter(shared[f'rank_{la}'], shared[f'rank_{lb}'], s=8, color='steelblue')
    top = max(shared[f'rank_{la}'].max(), shared[f'rank_{lb}'].max())
    ax.plot([1, top], [1, top], ls='--', color='gray', lw=0.8)
    if annotate:
        for _, row in shared.iterrows():
            ax.annotate(row['species_code'], (row[f'rank_{la}'], row[f'rank_{lb}']),
                        fontsize=4, xytext=(2, 2), textcoords='offset points')
    ax.set_xlabel(f"Rank ({METHOD_LABELS.get(la, la)})")
    ax.set_ylabel(f"Rank ({METHOD_LABELS.get(lb, lb)})")
    ax.grid(True, alpha=0.3)
    return _finish(fig, path)

def accumulation_plot(curves, path=None):
    '''Species accumulation curves with their quantile ribbon.

    ``curves`` maps a label to a curves.species_accumulation table.'''
    fig, ax = plt.subplots(figsize=(3.5, 3))
    for i, (label, table) in enumerate(curves.items()):
        color = _color(label, i)
        ax.plot(table['units'], table['richness'], color=color, lw=1,
                label=METHOD_LABELS.get(label, label))
        if table['lower'].notna().any():
            ax.fill_between(table['units'], table['lower'], table['upper'], color=color, alpha=0.2, lw=0)
    ax.set_xlabel('Site-visits surveyed')
    ax.set_ylabel('Species richness')
    ax.grid(True, alpha=0.3)
    ax.legend(frameon=False)
    return _finish(fig, path)

def indicator_plot(result, alpha=0.05, path=None):
    '''Horizontal bars of the association statistic for significant species.'''
    sig = result[result['p_value'] <= alpha].sort_values(['group', 'stat'])
    fig, ax = plt.subplots(figsize=(3.5, max(2, 0.12 * len(sig) + 0.8)))
    if sig.empty:
        _no_data(ax, f'Indicator species (p <= {alpha})')
        return _finish(fig, path)

    groups = list(pd.unique(sig['group']))
    colors = [_color(g, groups.index(g)) for g in sig['group']]
    ax.barh(np.arange(len(sig)), sig['stat'], color=colors, edgecolor='black', lw=0.3)
    ax.set_yticks(np.arange(len(sig)))
    ax.set_yticklabels(sig['species_code'])
    ax.set_xlabel('Indicator statistic')
    ax.set_title(f'Indicator species (p <= {alpha})')
    handles = [plt.Rectangle((0, 0), 1, 1, color=_color(g, i)) for i, g in enumerate(groups)]
    ax.legend(handles, groups, frameon=False)
    ax.grid(True, alpha=0.3, axis='x')
    return _finish(fig, path)

def richness_plot(richness, path=None):
    '''Box plots of site richness by restoration type for each survey method.'''
    fig, ax = plt.subplots(figsize=(3.5, 3))
    treatments = sorted(richness['restoration_type'].dropna().unique())
    methods = [m for m in METHOD_LABELS if m in set(richness['method'])]
    width = 0.8 / max(len(methods), 1)

    for j, method in enumerate(methods):
        data = [richness[(richness['method'] == method) & (richness['restoration_type'] == t)]['richness']
                for t in treatments]
        pos = np.arange(len(treatments)) + (j - (len(methods) - 1) / 2) * width
        bp = ax.boxplot(data, positions=pos, widths=width * 0.9, patch_artist=True)
        for box in bp['boxes']:
            box.set_facecolor(f'C{j}')
            box.set_alpha(0.6)
        ax.plot([], [], color=f'C{j}', lw=4, alpha=0.6, label=METHOD_LABELS[method])

    ax.set_xticks(np.arange(len(treatments)))
    ax.set_xticklabels(treatments)
    ax.set_ylabel('Species richness')
    ax.grid(True, alpha=0.3, axis='y')
    ax.legend(frameon=False)
    return _finish(fig, path)

def repeatability_plot(iterations, stat='r2', path=None):
    '''Histogram of a bootstrap statistic with its mean marked.'''
    vals = iterations[stat].dropna()
    fig, ax = plt.subplots(figsize=(3, 2.5))
    if vals.empty:
        _no_data(ax, 'Bootstrap repeatability')
        return _finish(fig, path)
    ax.hist(vals, bins=30, color='steelblue', edgecolor='black', lw=0.3)
    ax.axvline(vals.mean(), color='red', ls='--', lw=1)
    ax.set_xlabel(stat)
    ax.set_ylabel('Iterations')
    ax.set_title(f'Mean {stat} = {vals.mean():.3f} ({len(vals)} iterations)')
    return _finish(fig, path)

def body_mass_plot(merged, value='slope', path=None):
    '''Per-species statistic against log10 body mass with the OLS line.'''
    fig, ax = plt.subplots(figsize=(3, 2.5))
    ax.scatter(merged['log10_body_mass'], merged[value], s=8, color='steelblue')
    if len(merged) > 1 and merged['log10_body_mass'].nunique() > 1:
        xs, ys = _ols_line(merged['log10_body_mass'], merged[value])
        ax.plot(xs, ys, color='k', lw=1)
    ax.set_xlabel('log10 body mass (g)')
    ax.set_ylabel(value.replace('_', ' '))
    ax.grid(True, alpha=0.3)
    return _finish(fig, path)
