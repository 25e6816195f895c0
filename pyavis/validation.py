"""
Input validation utilities for pyavis
"""
import os
import warnings
import pandas as pd

__all__ = ['RESTORATION_TYPES', 'ValidationError', 'validate_point_count_data', 'validate_acoustic_data',
           'validate_site_data', 'validate_species_data', 'validate_project_dir', 'validate_file_exists']

RESTORATION_TYPES = ['benchmark', 'active', 'natural']

class ValidationError(Exception):
    """Custom exception for validation errors"""
    pass

def _check_columns(df, required_columns, table_name):
    missing_cols = [c for c in required_columns if c not in df.columns]
    if missing_cols:
        raise ValidationError(
            f"{table_name} missing required columns: {', '.join(missing_cols)}. "
            f"Required columns: {', '.join(required_columns)}"
        )

def _check_not_null(df, columns, table_name):
    for col in columns:
        if df[col].isna().any():
            n_missing = int(df[col].isna().sum())
            raise ValidationError(
                f"{table_name} has {n_missing} rows with a missing '{col}'. "
                f"Every record must identify its {col}."
            )

def validate_point_count_data(point_counts):
    """
    Validate the point count table has required columns and sensible counts.

    Parameters
    ----------
    point_counts : pandas.DataFrame
        One row per species per visit (or per time interval within a visit).
        A visit on which nothing was counted may appear with an empty
        species_code and a count of 0

    Raises
    ------
    ValidationError
        If required columns are missing or counts are invalid

    Returns
    -------
    bool
        True if validation passes
    """
    required_columns = ['site', 'visit', 'species_code', 'count']
    _check_columns(point_counts, required_columns, 'Point count data')
    _check_not_null(point_counts, ['site', 'visit', 'count'], 'Point count data')

    counts = pd.to_numeric(point_counts['count'], errors='coerce')
    if counts.isna().any():
        bad = point_counts.loc[counts.isna(), 'count'].astype(str).unique()
        raise ValidationError(
            f"Non-numeric point counts found: {', '.join(bad[:5])}."
        )

    if (counts < 0).any():
        raise ValidationError(
            f"Negative point counts found ({int((counts < 0).sum())} rows). "
            f"Counts must be zero or greater."
        )

    if 'distance_m' in point_counts.columns:
        distances = pd.to_numeric(point_counts['distance_m'], errors='coerce')
        if (distances < 0).any():
            raise ValidationError("Negative detection distances found in point count data.")

    return True

def validate_acoustic_data(acoustic):
    """
    Validate the acoustic annotation table.

    Clips without any detection are expected to appear once with an empty
    species_code so that clip effort can be recovered from the table.

    Parameters
    ----------
    acoustic : pandas.DataFrame
        One row per annotated clip and species

    Raises
    ------
    ValidationError
        If required columns are missing or vocalization counts are invalid

    Returns
    -------
    bool
        True if validation passes
    """
    required_columns = ['site', 'visit', 'clip', 'species_code']
    _check_columns(acoustic, required_columns, 'Acoustic data')
    _check_not_null(acoustic, ['site', 'visit', 'clip'], 'Acoustic data')

    if 'vocalizations' in acoustic.columns:
        voc = pd.to_numeric(acoustic['vocalizations'], errors='coerce')
        if (voc < 0).any():
            raise ValidationError(
                "Negative vocalization counts found in acoustic data."
            )

    return True

def validate_site_data(site_data):
    """
    Validate the site table and its restoration categories.

    Raises
    ------
    ValidationError
        If required columns are missing, sites repeat or the restoration
        type is unknown

    Returns
    -------
    bool
        True if validation passes
    """
    required_columns = ['site', 'restoration_type']
    _check_columns(site_data, required_columns, 'Site data')

    # Check for duplicate sites
    if site_data['site'].duplicated().any():
        duplicates = site_data[site_data['site'].duplicated()]['site'].astype(str).values
        raise ValidationError(
            f"Duplicate sites found in site data: {', '.join(duplicates[:5])}. "
            f"Each site must be unique."
        )

    invalid_types = set(site_data['restoration_type'].dropna().unique()) - set(RESTORATION_TYPES)
    if invalid_types or site_data['restoration_type'].isna().any():
        invalid_types = sorted(str(t) for t in invalid_types) or ['<missing>']
        raise ValidationError(
            f"Invalid restoration_type values found: {', '.join(invalid_types)}. "
            f"Valid values: {', '.join(RESTORATION_TYPES)}"
        )

    return True

def validate_species_data(species_data):
    """
    Validate the species code lookup table.

    Returns
    -------
    bool
        True if validation passes, or if no species table was supplied
    """
    if species_data is None:
        return True  # species lookup is optional

    required_columns = ['species_code', 'common_name']
    _check_columns(species_data, required_columns, 'Species data')

    if species_data['species_code'].duplicated().any():
        duplicates = species_data[species_data['species_code'].duplicated()]['species_code'].astype(str).values
        raise ValidationError(
            f"Duplicate species codes found: {', '.join(duplicates[:5])}. "
            f"Each species_code must be unique."
        )

    if 'body_mass_g' in species_data.columns:
        mass = pd.to_numeric(species_data['body_mass_g'], errors='coerce')
        if (mass <= 0).any():
            raise ValidationError("Body mass must be positive where it is given.")

    return True

def validate_project_dir(project_dir):
    """
    Validate project directory path.

    Raises
    ------
    ValidationError
        If path is too long

    Returns
    -------
    bool
        True if validation passes
    """
    # spaces are tolerated with a warning
    if ' ' in str(project_dir):
        warnings.warn(
            "Project directory path contains spaces. "
            "This may cause issues on some systems. "
            "Consider using underscores instead."
        )

    if len(str(project_dir)) > 200:
        raise ValidationError(
            f"Project directory path is too long ({len(str(project_dir))} characters). "
            f"Maximum recommended length: 200 characters."
        )

    return True

def validate_file_exists(file_path, file_description="File"):
    """
    Check if a file exists and is readable.

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    PermissionError
        If file exists but isn't readable

    Returns
    -------
    bool
        True if file exists and is readable
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(
            f"{file_description} not found: {file_path}"
        )

    if not os.access(file_path, os.R_OK):
        raise PermissionError(
            f"{file_description} exists but is not readable: {file_path}"
        )

    return True
