# backend storemap configuration
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()  # Load environment variables


@dataclass(frozen=True)
class BoundingBox:
    """Latitude/longitude window a geocoded store must fall into."""
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon


CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Hosted auth provider (Supabase-compatible /auth/v1/user endpoint)
AUTH_URL = os.getenv("AUTH_URL", "")
AUTH_API_KEY = os.getenv("AUTH_API_KEY", "")
AUTH_TIMEOUT_SECONDS = float(os.getenv("AUTH_TIMEOUT_SECONDS", "5"))

# Geocoding
MAPBOX_ACCESS_TOKEN = os.getenv("MAPBOX_ACCESS_TOKEN", "")
MAPBOX_GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"
GEOCODE_COUNTRY_CODE = "mx"
GEOCODE_COUNTRY_NAME = "México"
GEOCODE_RATE_PER_SECOND = float(os.getenv("GEOCODE_RATE_PER_SECOND", "10"))
GEOCODE_SMART_THRESHOLD = int(os.getenv("GEOCODE_SMART_THRESHOLD", "600"))
GEOCODE_DEFAULT_BATCH_SIZE = int(os.getenv("GEOCODE_DEFAULT_BATCH_SIZE", "50"))
GEOCODE_TIMEOUT_SECONDS = float(os.getenv("GEOCODE_TIMEOUT_SECONDS", "10"))

# Rough envelope of Mexico; results outside it are treated as mismatches
MEXICO_BOUNDS = BoundingBox(min_lat=14.5, max_lat=32.7, min_lon=-118.4, max_lon=-86.7)

# Cap on error messages returned to clients
MAX_REPORTED_ERRORS = 10
