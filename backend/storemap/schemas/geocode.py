from pydantic import BaseModel, ConfigDict, Field

from storemap.core.config import GEOCODE_DEFAULT_BATCH_SIZE
from storemap.services.geocode_batch import GeocodeMode


class GeocodeRequestSchema(BaseModel):
    """
    Body of the geocoding endpoint.
    """
    model_config = ConfigDict(populate_by_name=True)

    mode: GeocodeMode = GeocodeMode.SMART
    batch_size: int = Field(default=GEOCODE_DEFAULT_BATCH_SIZE, alias="batchSize", ge=1, le=5000)
    dry_run: bool = Field(default=False, alias="dryRun")
