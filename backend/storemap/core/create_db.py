from storemap.core.db import init_db
import storemap.models  # noqa: F401  ensure models are registered

# Create tables in the database without going through alembic
if __name__ == "__main__":
    init_db()
