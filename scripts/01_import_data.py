"""
Data Import Script
Validates the survey tables and builds the project database.
"""

# import modules
import os
import sys
import logging
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)
from pyavis import setup_logging, ValidationError
from pyavis.survey_project import survey_project

# Set up project
project_dir = r"C:\path\to\your\project"  # UPDATE THIS
db_name = 'restoration_birds'

max_distance = 100       # point count truncation radius (m), None keeps every record
clips_per_visit = None   # equalize acoustic effort, None keeps every clip
seed = 2024

log_file = os.path.join(project_dir, 'Output', 'pyavis_analysis.log')
os.makedirs(os.path.dirname(log_file), exist_ok=True)
logger = setup_logging(level=logging.INFO, log_file=log_file)

#%% Create the project
print("=" * 80)
print("STEP 1: Loading and validating survey tables")
print("=" * 80)

try:
    project = survey_project.from_directory(project_dir,
                                            db_name,
                                            max_distance=max_distance,
                                            clips_per_visit=clips_per_visit,
                                            seed=seed)
except ValidationError as e:
    logger.error(f"Input data failed validation: {e}")
    sys.exit(1)

print(f"✓ Project database: {project.db}")
print(f"✓ Sites: {len(project.sites)}")
effort = project.effort.merge(project.sites[['site', 'restoration_type']], on='site')
print(effort.groupby('restoration_type')[['n_visits', 'n_clips']].sum())
project.export(project.effort, 'effort')
