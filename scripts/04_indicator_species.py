"""
Indicator Species Script
Indicator species analysis (IndVal.g and point-biserial r.g) of restoration
types, run separately on point count and acoustic data.
"""

# import modules
import os
import sys
import logging
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)
import matplotlib.pyplot as plt
from pyavis import setup_logging, figures, formatter, indicator
from pyavis.survey_project import survey_project

# Set up project
project_dir = r"C:\path\to\your\project"  # UPDATE THIS
db_name = 'restoration_birds'
max_distance = 100

n_perm = 999
alpha = 0.05
duleg = False            # False also tests combinations of restoration types
seed = 2024

logger = setup_logging(level=logging.INFO)
project = survey_project.from_directory(project_dir, db_name, max_distance=max_distance)
project.calculate_metrics()

for method in ['point_count', 'acoustic']:
    matrix = project.community(method)
    groups = formatter.site_groups(matrix, project.sites)

    #%% IndVal.g
    iv = indicator.indval(matrix, groups, n_perm=n_perm, duleg=duleg, seed=seed, progress=True)
    significant = indicator.summary_table(iv, alpha=alpha)
    print(f"{method}: {len(significant)} indicator species (IndVal.g)")
    print(significant)
    project.export(iv, f'indval_{method}')

    #%% Point-biserial r.g on presence/absence
    rg = indicator.point_biserial(matrix > 0, groups, equalized=True, n_perm=n_perm,
                                  duleg=duleg, seed=seed, progress=True)
    project.export(rg, f'point_biserial_{method}')

    fig = figures.indicator_plot(iv, alpha=alpha,
                                 path=os.path.join(project.figures_dir, f'indicators_{method}.png'))
    plt.close(fig)
