"""
Method Comparison Script
Relates point count abundance to acoustic vocalization and detection rates,
species by species, within restoration types and in a mixed-effects model,
and tests whether the relationship scales with body mass.
"""

# import modules
import os
import sys
import logging
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)
import matplotlib.pyplot as plt
from pyavis import setup_logging, figures, models, ModelError
from pyavis.survey_project import survey_project

# Set up project
project_dir = r"C:\path\to\your\project"  # UPDATE THIS
db_name = 'restoration_birds'
max_distance = 100
min_sites = 3            # species must be recorded at this many sites to be modelled
acoustic_metrics = ['vocalization_rate', 'detection_rate']

logger = setup_logging(level=logging.INFO)
project = survey_project.from_directory(project_dir, db_name, max_distance=max_distance)
comparison = project.calculate_metrics()

for x in acoustic_metrics:
    print("=" * 80)
    print(f"abundance ~ {x}")
    print("=" * 80)

    #%% Per species and per treatment regressions
    by_species = models.species_regressions(comparison, x=x, y='abundance', min_sites=min_sites)
    by_treatment = models.treatment_regressions(comparison, x=x, y='abundance')
    print(by_treatment)
    project.export(by_species, f'species_regressions_{x}')
    project.export(by_treatment, f'treatment_regressions_{x}')
    project.write_table(by_species, f'/results/species_regressions_{x}')

    fig = figures.method_scatter(comparison, x=x, y='abundance',
                                 path=os.path.join(project.figures_dir, f'abundance_vs_{x}.png'))
    plt.close(fig)
    fig = figures.species_panels(comparison, by_species, x=x, y='abundance',
                                 path=os.path.join(project.figures_dir, f'species_panels_{x}.png'))
    plt.close(fig)

    #%% Mixed-effects model across species
    try:
        table, result = models.method_mixed_model(comparison,
                                                  formula=f'abundance ~ {x} * C(restoration_type)')
        print(table)
        project.export(table, f'mixed_model_{x}', index=True)
    except ModelError as e:
        logger.warning(f"Mixed model not fit: {e}")

    #%% Body mass
    if project.species is not None and 'body_mass_g' in project.species.columns:
        try:
            merged, summary = models.body_mass_correlation(by_species, project.species, value='slope')
            print(summary)
            project.export(merged, f'body_mass_{x}')
            fig = figures.body_mass_plot(merged, value='slope',
                                         path=os.path.join(project.figures_dir, f'body_mass_{x}.png'))
            plt.close(fig)
        except ModelError as e:
            logger.warning(f"Body mass correlation not fit: {e}")
