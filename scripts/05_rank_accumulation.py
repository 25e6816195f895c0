"""
Rank-Abundance and Species Accumulation Script
Compares the dominance structure and the effort needed to reach a given
richness for point counts and acoustic surveys.
"""

# import modules
import os
import sys
import logging
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)
import matplotlib.pyplot as plt
from pyavis import setup_logging, figures, curves
from pyavis.survey_project import survey_project

# Set up project
project_dir = r"C:\path\to\your\project"  # UPDATE THIS
db_name = 'restoration_birds'
max_distance = 100
n_perm = 200
seed = 2024

logger = setup_logging(level=logging.INFO)
project = survey_project.from_directory(project_dir, db_name, max_distance=max_distance)
project.calculate_metrics()

#%% Rank abundance
ranks = {'point_count': curves.rank_abundance(project.abundance, 'abundance'),
         'acoustic': curves.rank_abundance(project.vocalization_rate, 'vocalization_rate')}
merged, rank_stats = curves.compare_ranks(ranks['point_count'], ranks['acoustic'])
print(rank_stats)
project.export(merged, 'rank_comparison')

fig = figures.rank_abundance_plot(ranks, path=os.path.join(project.figures_dir, 'rank_abundance.png'))
plt.close(fig)
fig = figures.rank_comparison_plot(merged, path=os.path.join(project.figures_dir, 'rank_comparison.png'))
plt.close(fig)

#%% Species accumulation over site-visits, overall and per restoration type
for treatment in [None, 'benchmark', 'active', 'natural']:
    accumulation = {}
    for method in ['point_count', 'acoustic']:
        incidence = project.site_visit_incidence(method)
        if treatment is not None:
            sites = project.treatment_sites(treatment)
            incidence = incidence[incidence.index.get_level_values('site').isin(sites)]
        if len(incidence) == 0:
            continue
        accumulation[method] = curves.species_accumulation(incidence, n_perm=n_perm, seed=seed)

    label = treatment or 'all'
    for method, table in accumulation.items():
        project.export(table, f'accumulation_{method}_{label}')
    fig = figures.accumulation_plot(accumulation,
                                    path=os.path.join(project.figures_dir, f'accumulation_{label}.png'))
    plt.close(fig)
