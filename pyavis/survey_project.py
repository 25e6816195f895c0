# -*- coding: utf-8 -*-
'''
Module contains the survey project class that ties the point count and
acoustic tables of a restoration study to a project directory and database.'''

# import modules required for function dependencies
import logging
import os
import h5py
import numpy as np
import pandas as pd
import pyavis.formatter as formatter
import pyavis.metrics as metrics
from pyavis.validation import (validate_point_count_data, validate_acoustic_data,
                               validate_site_data, validate_species_data,
                               validate_project_dir, validate_file_exists, ValidationError)

__all__ = ['survey_project', 'INPUT_FILES']

logger = logging.getLogger(__name__)

INPUT_FILES = {'point_counts': 'tblPointCounts.csv',
               'acoustic': 'tblAcoustic.csv',
               'sites': 'tblSites.csv',
               'species': 'tblSpecies.csv'}

class survey_project():
    '''
    A class to manage the data and derived metrics of a bird survey method comparison.

    The project holds the point count, acoustic, site and species tables,
    builds the standard project directory structure and keeps every derived
    table in an HDF5 project database as well as in CSV exports.

    Attributes:
    - project_dir (str): The directory where project data and outputs are stored.
    - db_name (str): The name of the project database.
    - db (str): The path to the project HDF5 database.
    - point_counts (DataFrame): Point count records with species names joined.
    - acoustic (DataFrame): Acoustic clip annotations with species names joined.
    - sites (DataFrame): Site table with restoration_type.
    - species (DataFrame or None): Species code lookup.
    - data_dir, output_dir, figures_dir, tables_dir (str): Project folders.

    Methods:
    - calculate_metrics: Abundance, rates, richness and the method comparison table.
    - visit_metrics: Per-visit metric tables for the bootstrap.
    - community: Site x species matrix for one survey method.
    - write_table / read_table / export: HDF5 and CSV persistence.
    '''

    def __init__(self, project_dir, db_name, point_count_data, acoustic_data, site_data,
                 species_data = None, max_distance = None, clips_per_visit = None, seed = None):
        '''
        Initializes the survey project with its datasets and parameters.

        Parameters:
        - project_dir (str): The root directory for the project.
        - db_name (str): The name of the HDF5 database file to be created or used.
        - point_count_data (DataFrame): Point count records.
        - acoustic_data (DataFrame): Acoustic clip annotations.
        - site_data (DataFrame): Site table with restoration_type.
        - species_data (DataFrame, optional): Species code lookup.
        - max_distance (float, optional): Point count truncation radius in meters.
        - clips_per_visit (int, optional): Subsample acoustic clips to equalize effort.
        - seed (int, optional): Random seed for clip subsampling.
        '''
        validate_project_dir(project_dir)
        validate_point_count_data(point_count_data)
        validate_acoustic_data(acoustic_data)
        validate_site_data(site_data)
        validate_species_data(species_data)

        # set model parameters
        self.project_dir = project_dir
        self.db_name = db_name
        self.db = os.path.join(project_dir, '%s.h5'%(db_name))
        self.max_distance = max_distance
        self.clips_per_visit = clips_per_visit
        self.seed = seed

        self.sites = site_data.copy()
        self.species = species_data.copy() if species_data is not None else None

        point_counts = metrics.truncate_distance(point_count_data, max_distance)
        acoustic = acoustic_data
        if clips_per_visit is not None:
            acoustic = metrics.subsample_clips(acoustic, clips_per_visit, seed = seed)
        self.point_counts = self._join_species(point_counts, 'point count')
        self.acoustic = self._join_species(acoustic, 'acoustic')

        unknown_sites = (set(self.point_counts.site) | set(self.acoustic.site)) - set(self.sites.site)
        if unknown_sites:
            raise ValidationError(
                f"Surveyed sites missing from site data: {', '.join(sorted(map(str, unknown_sites)))}"
            )

        self.effort = metrics.survey_effort(self.point_counts, self.acoustic)
        self.abundance = None
        self.vocalization_rate = None
        self.detection_rate = None
        self.richness = None
        self.comparison = None

        # create standard project directory if it does not already exist
        self.data_dir = os.path.join(project_dir, 'Data')
        self.output_dir = os.path.join(project_dir, 'Output')
        self.figures_dir = os.path.join(self.output_dir, 'Figures')
        self.tables_dir = os.path.join(self.output_dir, 'Tables')
        for folder in [project_dir, self.data_dir, self.output_dir, self.figures_dir, self.tables_dir]:
            if not os.path.exists(folder):
                os.makedirs(folder)

        # create a project database and write the input tables to HDF
        self.initialize_hdf5()

        logger.info("Project %s: %d sites, %d point count visits, %d acoustic clips",
                    db_name, len(self.sites), int(self.effort.n_visits.sum()),
                    int(self.effort.n_clips.sum()))

    @classmethod
    def from_directory(cls, project_dir, db_name, **kwargs):
        '''Create a project from the standard tbl*.csv input files in ``project_dir``.

        tblSpecies.csv is optional, the other three files are required.'''
        tables = {}
        for name, file_name in INPUT_FILES.items():
            path = os.path.join(project_dir, file_name)
            if name == 'species' and not os.path.exists(path):
                tables[name] = None
                continue
            validate_file_exists(path, f"{name.replace('_', ' ')} table")
            tables[name] = pd.read_csv(path)
            logger.info("Loaded %d rows from %s", len(tables[name]), file_name)

        return cls(project_dir,
                   db_name,
                   tables['point_counts'],
                   tables['acoustic'],
                   tables['sites'],
                   species_data = tables['species'],
                   **kwargs)

    def _join_species(self, survey, label):
        survey = survey.copy()
        if self.species is None:
            return survey

        codes = set(survey['species_code'].dropna())
        unknown = sorted(map(str, codes - set(self.species['species_code'])))
        if unknown:
            logger.warning("%d %s species codes not in the species table: %s",
                           len(unknown), label, ', '.join(unknown[:10]))

        lookup = [c for c in ['species_code', 'common_name', 'scientific_name'] if c in self.species.columns]
        return survey.merge(self.species[lookup], on = 'species_code', how = 'left')

    def initialize_hdf5(self):
        '''Initialize the HDF5 project database and store the input tables'''
        with h5py.File(self.db, 'a') as hdf5:
            new_project = 'project_setup' not in hdf5
            for group in ['project_setup', 'metrics', 'results']:
                if group not in hdf5:
                    hdf5.create_group(group)

        if new_project:
            self.write_table(self.point_counts, '/project_setup/point_counts')
            self.write_table(self.acoustic, '/project_setup/acoustic')
            self.write_table(self.sites, '/project_setup/sites')
            if self.species is not None:
                self.write_table(self.species, '/project_setup/species')

    def write_table(self, df, key):
        '''Write a DataFrame to the project database, replacing any existing table'''
        df.to_hdf(self.db, key = key, mode = 'a')
        logger.debug("Wrote %d rows to %s", len(df), key)

    def read_table(self, key):
        return pd.read_hdf(self.db, key = key)

    def export(self, df, name, index = False):
        '''Export a result table as CSV to Output/Tables and return its path'''
        path = os.path.join(self.tables_dir, '%s.csv'%(name))
        df.to_csv(path, index = index)
        logger.info("Exported %s (%d rows)", path, len(df))
        return path

    def calculate_metrics(self, complete = True):
        '''Calculate all site level metrics for both survey methods.

        Results are kept as attributes, written to /metrics in the project
        database and exported as CSV. Returns the method comparison table.'''
        self.abundance = metrics.abundance(self.point_counts)
        self.vocalization_rate = metrics.vocalization_rate(self.acoustic)
        self.detection_rate = metrics.detection_rate(self.acoustic)
        self.richness = metrics.richness_table(self.point_counts, self.acoustic, self.sites)
        self.comparison = metrics.method_comparison(self.abundance,
                                                    self.vocalization_rate,
                                                    self.detection_rate,
                                                    self.sites,
                                                    complete = complete)

        tables = {'effort': self.effort,
                  'abundance': self.abundance,
                  'vocalization_rate': self.vocalization_rate,
                  'detection_rate': self.detection_rate,
                  'richness': self.richness,
                  'comparison': self.comparison}
        for name, df in tables.items():
            self.write_table(df, '/metrics/%s'%(name))
            self.export(df, name)

        logger.info("Metrics calculated for %d species at %d sites",
                    self.comparison.species_code.nunique(), self.comparison.site.nunique())
        return self.comparison

    def _survey(self, method):
        if method == 'point_count':
            return self.point_counts
        elif method == 'acoustic':
            return self.acoustic
        raise ValueError(f"Unknown survey method '{method}', use one of {', '.join(metrics.METHODS)}")

    def visit_metrics(self, method, value = None):
        '''Per-visit metric table and the list of surveyed site-visits.

        ``value`` is 'abundance' (point counts), 'vocalization_rate' or
        'detection_rate' (acoustic), or 'richness' for either method.'''
        survey = self._survey(method)
        if value is None:
            value = 'abundance' if method == 'point_count' else 'vocalization_rate'

        by = ('site', 'visit')
        if value == 'richness':
            values = metrics.species_richness(survey, by = by)
        elif value == 'abundance' and method == 'point_count':
            values = metrics.abundance(survey, by = by)
        elif value == 'vocalization_rate' and method == 'acoustic':
            values = metrics.vocalization_rate(survey, by = by)
        elif value == 'detection_rate' and method == 'acoustic':
            values = metrics.detection_rate(survey, by = by)
        else:
            raise ValueError(f"Metric '{value}' is not available for {method} data")

        visits = survey[['site', 'visit']].drop_duplicates().reset_index(drop = True)
        return values, visits

    def community(self, method, value = None, presence = False):
        '''Site x species matrix of one survey method, every surveyed site included.'''
        survey = self._survey(method)
        if self.comparison is None:
            self.calculate_metrics()

        if method == 'point_count':
            table = self.abundance
            value = value or 'abundance'
        else:
            value = value or 'vocalization_rate'
            table = self.detection_rate if value == 'detection_rate' else self.vocalization_rate

        return formatter.community_matrix(table, value, units = survey['site'], presence = presence)

    def site_visit_incidence(self, method):
        '''Site-visit x species presence matrix of one survey method.'''
        return formatter.incidence_matrix(self._survey(method), unit = ('site', 'visit'))

    def treatment_sites(self, restoration_type):
        return np.asarray(self.sites[self.sites.restoration_type == restoration_type].site)
