"""Root conftest — shared test configuration."""

import os

# Ensure tests never reach a real backend
os.environ.setdefault("ROADMAP_API_BASE_URL", "http://test")
os.environ.setdefault("ROADMAP_LOG_FORMAT", "text")
