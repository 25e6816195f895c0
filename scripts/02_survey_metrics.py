"""
Survey Metrics Script
Calculates abundance, vocalization and detection rates and species richness
for every site, then summarizes richness by survey method and treatment.
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

logger = setup_logging(level=logging.INFO)
project = survey_project.from_directory(project_dir, db_name, max_distance=max_distance)

#%% Calculate site metrics
comparison = project.calculate_metrics()
print(f"Site x species comparison table: {len(comparison)} rows")
print(comparison.detected_by.value_counts())

#%% Richness by method and restoration type
richness_summary = project.richness.groupby(['method', 'restoration_type']).richness.describe()
print(richness_summary)
project.export(richness_summary, 'richness_summary', index=True)

try:
    table, result = models.richness_model(project.richness)
    print(result.summary())
    project.export(table, 'richness_mixed_model', index=True)
    project.write_table(table, '/results/richness_mixed_model')
except ModelError as e:
    logger.warning(f"Richness model not fit: {e}")

fig = figures.richness_plot(project.richness, path=os.path.join(project.figures_dir, 'richness_by_treatment.png'))
plt.close(fig)
