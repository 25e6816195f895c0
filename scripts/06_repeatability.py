"""
Repeatability Script
Split-half bootstrap of point count and acoustic metrics: how similar is a
site's value when its visits are divided into two random halves?
"""

# import modules
import os
import sys
import logging
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)
import time
import matplotlib.pyplot as plt
from pyavis import setup_logging, figures
from pyavis.repeatability import repeatability
from pyavis.survey_project import survey_project

# Set up project
project_dir = r"C:\path\to\your\project"  # UPDATE THIS
db_name = 'restoration_birds'
max_distance = 100

n_iter = 1000
n_jobs = 4
seed = 2024

# method, metric pairs to assess
assessments = [('point_count', 'abundance'),
               ('point_count', 'richness'),
               ('acoustic', 'vocalization_rate'),
               ('acoustic', 'detection_rate'),
               ('acoustic', 'richness')]

if __name__ == '__main__':
    logger = setup_logging(level=logging.INFO)
    project = survey_project.from_directory(project_dir, db_name, max_distance=max_distance)

    for method, value in assessments:
        start_t = time.time()
        values, visits = project.visit_metrics(method, value)
        boot = repeatability(values, visits, value, n_iter=n_iter, seed=seed, n_jobs=n_jobs, progress=True)
        iterations = boot.run()
        summary = boot.summary()
        print(f"{method} {value} ({time.time() - start_t:.1f} s)")
        print(summary)

        project.export(iterations, f'repeatability_{method}_{value}')
        project.export(summary, f'repeatability_summary_{method}_{value}', index=True)
        fig = figures.repeatability_plot(iterations, stat='r2',
                                         path=os.path.join(project.figures_dir, f'repeatability_{method}_{value}.png'))
        plt.close(fig)
