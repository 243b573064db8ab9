"""Root conftest — shared test configuration."""

import os

# Never touch a real database, the real remote directory, or the network probe
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CONNECTIVITY_ENABLED", "false")
os.environ.setdefault("REMOTE_USERS_URL", "http://directory.test/users")
