__version__ = '0.1.0'

# Import the submodules first that have no dependencies
from .logger import setup_logging
from .validation import *

# metric and reshaping functions
from . import metrics
from . import formatter

# statistical routines, which work on metric tables
from . import indicator
from . import curves
from . import models
from .models import ModelError
from .repeatability import repeatability

# plotting
from . import figures

# Finally, import the survey_project class, which depends on metrics and formatter
from .survey_project import *
