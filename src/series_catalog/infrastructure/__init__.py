"""Infrastructure layer for the series catalog."""

from . import repositories
from . import storage
