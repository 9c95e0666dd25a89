# Ensure all model classes are imported and registered on Base.metadata
from .store import Store  # noqa: F401
from .metrics import GrowthMetric, AbsoluteMetric  # noqa: F401
from .upload import UploadHistory  # noqa: F401
