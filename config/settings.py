"""Application settings and configuration."""

import os
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).parent.parent

# Data paths
DATA_DIR = Path(os.getenv("YIELD_GAP_DATA_DIR", str(BASE_DIR / "data")))
SURVEY_DATA_FILE = DATA_DIR / "wheat_survey.csv"
YIELD_CEILING_FILE = DATA_DIR / "gyga_candidates.csv"
COUNTRY_AVERAGE_FILE = DATA_DIR / "gyga_country_average.csv"

# Output directory
OUTPUT_DIR = Path(os.getenv("YIELD_GAP_OUTPUT_DIR", str(BASE_DIR / "output")))

# Survey columns
ID_COLUMNS = ["household_id", "plot_id", "subplot_id", "year"]
YIELD_COLUMN = "yield_t_ha"
SITE_COLUMNS = ["country", "climate_zone", "latitude", "longitude"]

CONTINUOUS_COVARIATES = [
    "seed_rate",
    "n_rate",
    "p_rate",
    "herbicide_volume",
    "hand_weeding",
    "gs_rainfall",
    "gs_temperature",
    "soil_water",
]

CATEGORICAL_COVARIATES = [
    "variety_type",
    "soil_depth",
    "soil_fertility",
    "waterlogging",
    "drought",
    "pests",
    "disease",
    "residue_management",
]

# Stratum key for percentile classification and grouping keys for reporting
STRATUM_COLUMNS = ["year", "climate_zone", "soil_fertility"]
GROUP_COLUMNS = ["zone", "farming_system"]

PREPARATION_SETTINGS = {
    "epsilon": 1e-3,
    "impute": None,  # None or "median"
    "max_yield": None,
}

FRONTIER_SETTINGS = {
    "functional_forms": ["cobb_douglas", "translog"],
    "max_iter": int(os.getenv("YIELD_GAP_FRONTIER_MAX_ITER", "1000")),
    "efficiency_estimator": "jlms",  # or "battese_coelli"
    "screen_collinearity": True,
    "vif_threshold": 10.0,
}

CLASSIFIER_SETTINGS = {
    "lower_percentile": 10,
    "upper_percentile": 90,
    "min_stratum_size": 1,
}

RESOLVER_SETTINGS = {
    "max_distance_km": float(os.getenv("YIELD_GAP_MAX_DISTANCE_KM", "30")),
}

DECOMPOSITION_SETTINGS = {
    "yw_basis": "annual",  # or "long_run"
    "tolerance": 1e-6,
}

# API settings
API_SETTINGS = {
    "title": "Yield Gap Decomposition API",
    "description": "API for decomposing wheat yield gaps into efficiency, resource and technology components",
    "version": "1.0.0",
}
