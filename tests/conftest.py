"""
Shared pytest fixtures for pyavis tests

This module provides reusable test fixtures for:
- A small hand-checked survey (three sites) with known metric values
- A simulated restoration study (twelve sites, six species)
- Temporary project directories with the standard input files
"""

import matplotlib
matplotlib.use('Agg')

import pytest
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from pyavis.survey_project import INPUT_FILES


def pytest_configure(config):
    config.addinivalue_line('markers', 'unit: fast tests of a single function')
    config.addinivalue_line('markers', 'smoke: minimal import and sanity checks')
    config.addinivalue_line('markers', 'integration: tests touching the project database')
    config.addinivalue_line('markers', 'slow: tests that start worker processes')


SPECIES = pd.DataFrame({
    'species_code': ['AMRO', 'BCCH', 'HETH', 'OVEN', 'WIWR', 'PIWO'],
    'common_name': ['American Robin', 'Black-capped Chickadee', 'Hermit Thrush',
                    'Ovenbird', 'Winter Wren', 'Pileated Woodpecker'],
    'scientific_name': ['Turdus migratorius', 'Poecile atricapillus', 'Catharus guttatus',
                        'Seiurus aurocapilla', 'Troglodytes hiemalis', 'Dryocopus pileatus'],
    'body_mass_g': [77.0, 11.0, 31.0, 19.0, 9.0, 287.0]
})

# expected individuals per visit, in SPECIES order
DENSITY = {'benchmark': [0.3, 1.5, 1.0, 3.0, 1.2, 0.4],
           'active':    [2.0, 1.0, 0.4, 0.0, 0.3, 0.1],
           'natural':   [1.2, 1.2, 0.8, 0.0, 0.6, 0.2]}


def make_survey_data(seed=42, n_sites=12, n_visits=3, n_clips=10):
    """
    Simulate point counts and acoustic annotations along a restoration gradient.

    Ovenbird (OVEN) occurs only at benchmark sites. Acoustic detection
    probability per clip rises with local density.
    """
    rng = np.random.default_rng(seed)
    types = ['benchmark', 'active', 'natural']
    codes = np.asarray(SPECIES.species_code)
    sites = pd.DataFrame({'site': [f'S{i + 1:02d}' for i in range(n_sites)],
                          'restoration_type': [types[i % 3] for i in range(n_sites)]})

    pc_rows, ac_rows = [], []
    for site, rtype in zip(sites.site, sites.restoration_type):
        density = np.array(DENSITY[rtype]) * rng.uniform(0.6, 1.4)
        for visit in range(1, n_visits + 1):
            counts = rng.poisson(density)
            for code, n in zip(codes, counts):
                if n > 0:
                    pc_rows.append({'site': site, 'visit': visit, 'species_code': code,
                                    'count': int(n), 'distance_m': float(rng.uniform(5, 150))})
            if counts.sum() == 0:
                pc_rows.append({'site': site, 'visit': visit, 'species_code': np.nan,
                                'count': 0, 'distance_m': np.nan})

            for clip in range(1, n_clips + 1):
                heard = rng.random(len(codes)) < 1 - np.exp(-0.4 * density)
                if not heard.any():
                    ac_rows.append({'site': site, 'visit': visit, 'clip': clip,
                                    'species_code': np.nan, 'vocalizations': 0})
                for code in codes[heard]:
                    ac_rows.append({'site': site, 'visit': visit, 'clip': clip,
                                    'species_code': code, 'vocalizations': int(1 + rng.poisson(1.0))})

    return {'point_counts': pd.DataFrame(pc_rows),
            'acoustic': pd.DataFrame(ac_rows),
            'sites': sites,
            'species': SPECIES.copy()}


@pytest.fixture
def small_sites():
    """Three sites, one per restoration type"""
    return pd.DataFrame({
        'site': ['A', 'B', 'C'],
        'restoration_type': ['benchmark', 'active', 'natural']
    })


@pytest.fixture
def small_point_counts():
    """
    Point counts with hand-checked metrics

    A: 2 visits, OVEN 3 (two intervals) then 1, AMRO 4 on visit 2
    B: 2 visits, AMRO 2 then nothing counted
    C: 1 visit, AMRO 1 and BCCH 3
    """
    return pd.DataFrame({
        'site': ['A', 'A', 'A', 'A', 'B', 'B', 'C', 'C'],
        'visit': [1, 1, 2, 2, 1, 2, 1, 1],
        'species_code': ['OVEN', 'OVEN', 'OVEN', 'AMRO', 'AMRO', np.nan, 'AMRO', 'BCCH'],
        'count': [2, 1, 1, 4, 2, 0, 1, 3],
        'distance_m': [20.0, 80.0, 150.0, np.nan, 45.0, np.nan, 60.0, 110.0]
    })


@pytest.fixture
def small_acoustic():
    """
    Acoustic clips with hand-checked metrics

    A: 4 clips, OVEN in 3 of them (6 vocalizations), AMRO in 1
    B: 2 clips, AMRO in 1 (2 vocalizations)
    C: 3 clips, BCCH in 1
    """
    return pd.DataFrame({
        'site': ['A', 'A', 'A', 'A', 'A', 'B', 'B', 'C', 'C', 'C'],
        'visit': [1, 1, 1, 2, 2, 1, 1, 1, 1, 1],
        'clip': [1, 1, 2, 1, 2, 1, 2, 1, 2, 3],
        'species_code': ['OVEN', 'AMRO', 'OVEN', np.nan, 'OVEN', np.nan, 'AMRO', 'BCCH', np.nan, np.nan],
        'vocalizations': [3, 1, 2, 0, 1, 0, 2, 1, 0, 0]
    })


@pytest.fixture
def survey_data():
    """Simulated restoration study, regenerated for every test"""
    return make_survey_data()


@pytest.fixture
def comparison(survey_data):
    """Site x species method comparison table of the simulated study"""
    from pyavis import metrics
    pc = survey_data['point_counts']
    ac = survey_data['acoustic']
    return metrics.method_comparison(metrics.abundance(pc),
                                     metrics.vocalization_rate(ac),
                                     metrics.detection_rate(ac),
                                     survey_data['sites'])


@pytest.fixture
def project_inputs(tmp_path, survey_data):
    """
    Project directory holding the standard tbl*.csv input files

    Returns:
        Path: Project directory path
    """
    project_dir = tmp_path / "survey_project"
    project_dir.mkdir()
    for name, file_name in INPUT_FILES.items():
        survey_data[name].to_csv(project_dir / file_name, index=False)
    return project_dir


@pytest.fixture(autouse=True)
def close_figures():
    """Close any figures a test leaves open"""
    yield
    plt.close('all')
