"""
pyavis Quick Start Example
==========================

This script walks through a complete comparison of point count and acoustic
surveys, from project creation to the bootstrap repeatability of each method.

Before running:
1. Create the input files tblPointCounts.csv, tblAcoustic.csv, tblSites.csv
   and (optionally) tblSpecies.csv in the project directory
2. Update the project_dir variable below
"""

import os
import logging
import matplotlib.pyplot as plt
import pyavis
from pyavis import curves, figures, formatter, indicator, models, ModelError
from pyavis.repeatability import repeatability
from pyavis.survey_project import survey_project

# =============================================================================
# CONFIGURATION - Update these paths for your project
# =============================================================================

# Set your project directory (no spaces recommended)
project_dir = r"C:\path\to\your\project"  # UPDATE THIS
db_name = 'restoration_birds'

max_distance = 100   # point count truncation radius (m)
n_perm = 999         # indicator species permutations
n_iter = 1000        # bootstrap iterations
seed = 2024

if __name__ == '__main__':
    logger = pyavis.setup_logging(level=logging.INFO)

    # =========================================================================
    # STEP 1: Initialize Project
    # =========================================================================
    print("=" * 80)
    print("STEP 1: Loading survey tables and initializing database")
    print("=" * 80)

    project = survey_project.from_directory(project_dir, db_name, max_distance=max_distance)
    print(f"✓ Project initialized at: {project.db}")
    print(f"✓ Sites: {len(project.sites)}")

    # =========================================================================
    # STEP 2: Site Metrics
    # =========================================================================
    print("\n" + "=" * 80)
    print("STEP 2: Calculating abundance, rates and richness")
    print("=" * 80)

    comparison = project.calculate_metrics()
    print(f"✓ {comparison.species_code.nunique()} species at {comparison.site.nunique()} sites")

    # =========================================================================
    # STEP 3: Method Comparison
    # =========================================================================
    print("\n" + "=" * 80)
    print("STEP 3: Point count abundance vs acoustic vocalization rate")
    print("=" * 80)

    by_species = models.species_regressions(comparison)
    print(by_species.sort_values('r2', ascending=False).head(10))
    try:
        table, result = models.method_mixed_model(comparison)
        print(table)
    except ModelError as e:
        logger.warning(f"Mixed model not fit: {e}")
    plt.close(figures.method_scatter(comparison, path=os.path.join(project.figures_dir, 'method_scatter.png')))

    # =========================================================================
    # STEP 4: Indicator Species
    # =========================================================================
    print("\n" + "=" * 80)
    print("STEP 4: Indicator species of restoration types")
    print("=" * 80)

    for method in ['point_count', 'acoustic']:
        matrix = project.community(method)
        groups = formatter.site_groups(matrix, project.sites)
        iv = indicator.indval(matrix, groups, n_perm=n_perm, seed=seed)
        print(method)
        print(indicator.summary_table(iv))

    # =========================================================================
    # STEP 5: Species Accumulation
    # =========================================================================
    print("\n" + "=" * 80)
    print("STEP 5: Species accumulation over site-visits")
    print("=" * 80)

    accumulation = {m: curves.species_accumulation(project.site_visit_incidence(m), seed=seed)
                    for m in ['point_count', 'acoustic']}
    plt.close(figures.accumulation_plot(accumulation, path=os.path.join(project.figures_dir, 'accumulation.png')))

    # =========================================================================
    # STEP 6: Repeatability
    # =========================================================================
    print("\n" + "=" * 80)
    print("STEP 6: Bootstrap repeatability")
    print("=" * 80)

    values, visits = project.visit_metrics('acoustic', 'vocalization_rate')
    boot = repeatability(values, visits, 'vocalization_rate', n_iter=n_iter, seed=seed, n_jobs=4)
    boot.run()
    print(boot.summary())
