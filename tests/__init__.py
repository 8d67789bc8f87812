"""
Spotlight Cache Service test suite

Structure:
- unit/: feed client, asset fetcher, transcoder, cache store, refresh, scheduler, settings, logging
- integration/: FastAPI routes and the static image mount via TestClient
"""
